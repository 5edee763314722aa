import logging
from typing import Optional

import moviepy as mp

logger = logging.getLogger(__name__)


def probe_duration(local_path: str) -> Optional[float]:
    """
    Reads the duration of a local video file with moviepy.

    Used when the model reports no usable duration. Probe failures are
    logged and yield None so that the analysis itself still succeeds.
    """
    try:
        video_clip = mp.VideoFileClip(local_path)
    except (OSError, ValueError):
        logger.warning("Error probing %s with moviepy", local_path, exc_info=True)
        return None
    try:
        duration_seconds = video_clip.duration
    finally:
        # Close the video clip to release the file handle
        video_clip.close()
    logger.info("Probed video duration: %s seconds", duration_seconds)
    if not duration_seconds or duration_seconds <= 0:
        return None
    return float(duration_seconds)
