"""Cloud Run service for refinement suggestions and engagement analysis of a generated timeline"""

import logging
from typing import Optional

from flask import Flask, jsonify, request
from pydantic import ValidationError

from ..common.clients import build_clients
from ..common.exceptions import MissingConceptsError, VideoNotFoundError
from ..common.logging_config import configure_logger
from ..common.settings import Settings
from ..timeline_generator.content_config import get_content_config
from .service import RefinementService
from .suggestions import parse_suggestion

logger = logging.getLogger(__name__)


def build_service(settings: Settings) -> RefinementService:
    clients = build_clients(settings)
    return RefinementService(
        asset_manager=clients.asset_manager,
        gemini=clients.gemini,
        supervisor=clients.supervisor,
        artifacts=clients.artifacts,
        config=get_content_config(settings.content_profile),
    )


def create_app(service: Optional[RefinementService] = None) -> Flask:
    configure_logger()
    if service is None:
        service = build_service(Settings.from_env())

    app = Flask(__name__)

    @app.errorhandler(VideoNotFoundError)
    def handle_not_found(e):
        return jsonify({"error": str(e)}), 404

    @app.errorhandler(MissingConceptsError)
    def handle_missing_concepts(e):
        return jsonify({"error": "No concepts found", "message": str(e)}), 400

    @app.route("/videos/<video_id>/refine-concepts", methods=["POST"])
    def refine_concepts(video_id):
        request_json = request.get_json(silent=True)
        focus_area = request_json.get("focusArea") if isinstance(request_json, dict) else None
        if focus_area is not None and not isinstance(focus_area, str):
            return jsonify({"error": "focusArea must be a string"}), 400

        try:
            service.start_refinement(video_id, focus_area.strip() if focus_area else None)
        except (VideoNotFoundError, MissingConceptsError):
            raise
        except Exception as e:
            logger.critical("Failed to start refinement for %s", video_id, exc_info=True,
                            extra={"extra_fields": {"video_id": video_id}})
            return jsonify({"error": "Failed to start refinement", "message": str(e)}), 500

        return jsonify({
            "status": "refining",
            "videoId": video_id,
            "message": "AI refinement started. Poll refinement status to get results.",
        }), 202

    @app.route("/videos/<video_id>/analyze-engagement", methods=["POST"])
    def analyze_engagement(video_id):
        try:
            service.start_engagement_analysis(video_id)
        except (VideoNotFoundError, MissingConceptsError):
            raise
        except Exception as e:
            logger.critical("Failed to start engagement analysis for %s", video_id, exc_info=True,
                            extra={"extra_fields": {"video_id": video_id}})
            return jsonify({"error": "Failed to start engagement analysis", "message": str(e)}), 500

        return jsonify({
            "status": "analyzing",
            "videoId": video_id,
            "message": "Engagement analysis started. Poll engagement status to get results.",
        }), 202

    @app.route("/videos/<video_id>/apply-suggestion", methods=["POST"])
    def apply_suggestion(video_id):
        request_json = request.get_json(silent=True)
        if (not isinstance(request_json, dict) or "suggestionType" not in request_json
                or not isinstance(request_json.get("suggestion"), dict)):
            return jsonify({"error": "suggestionType and suggestion are required"}), 400

        try:
            suggestion = parse_suggestion(request_json["suggestionType"], request_json.get("suggestion"))
        except ValidationError as e:
            logger.warning("Rejected %s suggestion for %s: %s", request_json.get("suggestionType"), video_id, e,
                           extra={"extra_fields": {"video_id": video_id}})
            return jsonify({"error": "Invalid suggestion", "message": str(e)}), 400

        try:
            updated = service.apply_suggestion(video_id, suggestion)
        except VideoNotFoundError:
            raise
        except Exception as e:
            logger.critical("Failed to apply suggestion to %s", video_id, exc_info=True,
                            extra={"extra_fields": {"video_id": video_id}})
            return jsonify({"error": "Failed to apply suggestion", "message": str(e)}), 500
        return jsonify({"video": updated}), 200

    @app.route("/videos/<video_id>/refinement-status", methods=["GET"])
    def refinement_status(video_id):
        return jsonify(service.get_refinement_status(video_id)), 200

    @app.route("/videos/<video_id>/engagement-status", methods=["GET"])
    def engagement_status(video_id):
        return jsonify(service.get_engagement_status(video_id)), 200

    return app
