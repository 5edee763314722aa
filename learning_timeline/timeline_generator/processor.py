"""
Per-video processing pipeline: upload to Gemini, analyze, sanitize, persist.

A video moves uploaded -> processing -> ready, with error reachable from any
processing stage. Admission is an atomic compare-and-swap on the video
document, and the long-running part runs under the task supervisor so a
cancelled or timed-out run still ends in a terminal status.
"""
import logging
import mimetypes
import os
from datetime import datetime, timezone
from typing import Callable, Optional

from ..common.artifact_store import ArtifactStore
from ..common.exceptions import ProcessingConflictError, VideoNotFoundError
from ..common.gemini_client import GeminiClient, MediaHandle
from ..common.models import ProcessingStage, ProcessingStatus, transition
from ..common.storage_manager import StorageManager
from ..common.task_supervisor import TaskContext, TaskSupervisor
from ..common.utils import parse_seconds
from ..common.video_asset_manager import VideoAssetManager
from .content_config import AIContentConfig, DEFAULT_CONFIG, config_fingerprint
from .media_probe import probe_duration
from .prompts import build_analysis_prompt
from .sanitizer import log_findings, parse_analysis_response, sanitize_analysis

logger = logging.getLogger(__name__)

TIMELINE_FIELDS = ("transcript", "concepts", "quiz", "checkpoints", "summary", "duration")


def _mime_type_for(storage_path: str) -> str:
    mime_type, _ = mimetypes.guess_type(storage_path)
    if mime_type and mime_type.startswith("video/"):
        return mime_type
    return "video/mp4"


class VideoProcessor:
    """Drives one video through the analysis pipeline."""

    def __init__(
        self,
        asset_manager: VideoAssetManager,
        storage: StorageManager,
        gemini: GeminiClient,
        supervisor: TaskSupervisor,
        artifacts: Optional[ArtifactStore] = None,
        config: AIContentConfig = DEFAULT_CONFIG,
        poll_interval: float = 5.0,
        duration_probe: Callable[[str], Optional[float]] = probe_duration,
    ):
        self.asset_manager = asset_manager
        self.storage = storage
        self.gemini = gemini
        self.supervisor = supervisor
        self.artifacts = artifacts
        self.config = config
        self.poll_interval = poll_interval
        self.duration_probe = duration_probe
        self.fingerprint = config_fingerprint(config)

    def start_processing(self, video_id: str) -> None:
        """
        Admits a video for processing and detaches the pipeline.

        Raises:
            VideoNotFoundError: if the video does not exist.
            ProcessingConflictError: if the video is already being processed.
        """
        admitted = self.asset_manager.begin_processing(video_id)
        if admitted is None:
            raise VideoNotFoundError(video_id)
        if not admitted:
            logger.warning("Video %s is already being processed", video_id,
                           extra={"extra_fields": {"video_id": video_id}})
            raise ProcessingConflictError(video_id)

        logger.info("Video processing started for %s", video_id,
                    extra={"extra_fields": {"video_id": video_id}})
        self.supervisor.submit(
            f"process:{video_id}",
            lambda ctx: self.process_video(video_id, ctx),
            on_failure=lambda e: self._mark_error(video_id, e),
        )

    def process_video(self, video_id: str, ctx: Optional[TaskContext] = None) -> None:
        """
        Runs the pipeline for a video already admitted into 'processing'.

        Exceptions propagate to the caller; under the supervisor they end in
        ``_mark_error``.
        """
        ctx = ctx or TaskContext(f"process:{video_id}")
        log_extra = {"extra_fields": {"video_id": video_id}}

        video = self.asset_manager.get_video(video_id)
        if video is None:
            raise VideoNotFoundError(video_id)
        storage_path = video["storagePath"]

        if video.get("aiAnalysisCompletedAt") and video.get("aiAnalysisVersion") == self.fingerprint:
            logger.info("Found cached AI analysis for %s, skipping Gemini call", video_id, extra=log_extra)
            download_url = self.storage.generate_read_url(storage_path)
            self._finish(video_id, {"downloadUrl": download_url})
            logger.info("Video processing complete (from cache) for %s", video_id, extra=log_extra)
            return

        logger.info("No cached analysis found for %s, calling Gemini", video_id, extra=log_extra)
        ctx.raise_if_cancelled()
        self.asset_manager.update_video(
            video_id, {"processingStage": ProcessingStage.UPLOADING_TO_GEMINI.value})

        mime_type = _mime_type_for(storage_path)
        local_path = None
        media: Optional[MediaHandle] = None
        try:
            if self.gemini.uses_file_api:
                local_path = self.storage.download(storage_path)
                ctx.raise_if_cancelled()
                media = self.gemini.upload_media(local_path, mime_type, display_name=video_id)
            else:
                media = self.gemini.reference_media(self.storage.gcs_uri(storage_path), mime_type)

            ctx.raise_if_cancelled()
            self.asset_manager.update_video(
                video_id, {"processingStage": ProcessingStage.ANALYZING_CONTENT.value})
            self.gemini.wait_until_processed(media, poll_interval=self.poll_interval, ctx=ctx)

            prompt = build_analysis_prompt(self.config)
            ctx.raise_if_cancelled()
            logger.info("Generating analysis for %s...", video_id, extra=log_extra)
            raw_response = self.gemini.generate(prompt, media=media)

            parsed = parse_analysis_response(raw_response)
            if not parse_seconds(parsed.get("duration")) and local_path is not None:
                probed = self.duration_probe(local_path)
                if probed:
                    logger.info("Model reported no duration for %s, using probed %ss", video_id, probed,
                                extra=log_extra)
                    parsed["duration"] = probed
            analysis = sanitize_analysis(parsed, self.config)
            log_findings(video_id, analysis, self.config)
        finally:
            self._cleanup(video_id, media, local_path)

        if self.artifacts is not None:
            self.artifacts.write_analysis(video_id, storage_path, prompt, raw_response, analysis,
                                          self.fingerprint)

        download_url = self.storage.generate_read_url(storage_path)
        now = datetime.now(timezone.utc)
        result = {field: analysis[field] for field in TIMELINE_FIELDS}
        result.update({
            "downloadUrl": download_url,
            "processedAt": now,
            "aiAnalysisCompletedAt": now,
            "aiAnalysisVersion": self.fingerprint,
        })
        self._finish(video_id, result)
        logger.info("Video processing complete for %s: %d concepts, %d checkpoints, %d quiz questions",
                    video_id, len(analysis["concepts"]), len(analysis["checkpoints"]), len(analysis["quiz"]),
                    extra=log_extra)

    def _finish(self, video_id: str, data: dict) -> None:
        status = transition(ProcessingStatus.PROCESSING, ProcessingStatus.READY)
        self.asset_manager.update_video(video_id, {**data, "status": status.value}, clear_fields=("error",))

    def _mark_error(self, video_id: str, error: Exception) -> None:
        status = transition(ProcessingStatus.PROCESSING, ProcessingStatus.ERROR)
        message = str(error) or "Processing failed"
        logger.error("Error processing video %s: %s", video_id, message,
                     extra={"extra_fields": {"video_id": video_id}})
        self.asset_manager.update_video(video_id, {"status": status.value, "error": message})

    def _cleanup(self, video_id: str, media: Optional[MediaHandle], local_path: Optional[str]) -> None:
        log_extra = {"extra_fields": {"video_id": video_id}}
        if media is not None:
            try:
                self.gemini.delete_media(media)
            except Exception:
                logger.warning("Failed to delete Gemini file for %s", video_id, exc_info=True, extra=log_extra)
        if local_path and os.path.exists(local_path):
            try:
                os.remove(local_path)
            except OSError:
                logger.warning("Failed to remove temp file %s", local_path, exc_info=True, extra=log_extra)
