"""Cloud Run service that generates the learning timeline of an uploaded video"""

import logging
from typing import Optional

from flask import Flask, jsonify

from ..common.clients import build_clients
from ..common.exceptions import ProcessingConflictError, VideoNotFoundError
from ..common.logging_config import configure_logger
from ..common.settings import Settings
from .content_config import get_content_config
from .processor import VideoProcessor

logger = logging.getLogger(__name__)


def build_processor(settings: Settings) -> VideoProcessor:
    clients = build_clients(settings)
    return VideoProcessor(
        asset_manager=clients.asset_manager,
        storage=clients.storage,
        gemini=clients.gemini,
        supervisor=clients.supervisor,
        artifacts=clients.artifacts,
        config=get_content_config(settings.content_profile),
        poll_interval=settings.media_poll_interval,
    )


def create_app(processor: Optional[VideoProcessor] = None) -> Flask:
    """
    Creates the Flask app. Without a processor, clients are built from the environment.
    """
    configure_logger()
    if processor is None:
        processor = build_processor(Settings.from_env())

    app = Flask(__name__)

    @app.route("/videos/<video_id>/process", methods=["POST"])
    def process_video(video_id):
        """
        Admits the video for processing and returns before the analysis runs.
        """
        log_extra = {"extra_fields": {"video_id": video_id}}
        try:
            processor.start_processing(video_id)
        except VideoNotFoundError as e:
            return jsonify({"error": str(e)}), 404
        except ProcessingConflictError as e:
            return jsonify({"error": str(e)}), 409
        except Exception as e:
            logger.critical("Failed to start video processing for %s", video_id, exc_info=True, extra=log_extra)
            return jsonify({"error": "Failed to start video processing", "message": str(e)}), 500

        return jsonify({
            "message": "Video processing started",
            "videoId": video_id,
            "status": "processing",
        }), 202

    return app
