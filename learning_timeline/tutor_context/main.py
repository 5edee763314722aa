"""Cloud Run service that answers student questions and briefs the voice agent on the tutoring context"""

import logging
from typing import Optional

from flask import Flask, jsonify, request

from ..common.gemini_client import GeminiClient
from ..common.logging_config import configure_logger
from ..common.settings import Settings
from .questions import answer_question
from .summarizer import summarize_tutor_context

logger = logging.getLogger(__name__)

FALLBACK_ANSWER = "Sorry, I couldn't generate a response right now."


def build_gemini(settings: Settings) -> GeminiClient:
    return GeminiClient(
        model_name=settings.gemini_model,
        api_key=settings.gemini_api_key,
        project_id=settings.project_id,
        max_output_tokens=settings.gemini_max_tokens,
    )


def create_app(gemini: Optional[GeminiClient] = None) -> Flask:
    configure_logger()
    if gemini is None:
        gemini = build_gemini(Settings.from_env())

    app = Flask(__name__)

    @app.route("/ask", methods=["POST"])
    def ask():
        """
        Answers a question about the video in two or three sentences.
        """
        request_json = request.get_json(silent=True)
        if not isinstance(request_json, dict) or not request_json.get("videoId") or not request_json.get("question"):
            logger.error("Invalid ask request: missing 'videoId' or 'question'.")
            return jsonify({"error": "Missing required fields: videoId, question"}), 400

        video_id = request_json["videoId"]
        question = request_json["question"]
        response = {"videoId": video_id, "question": question, "timestamp": request_json.get("timestamp")}
        try:
            answer = answer_question(gemini, video_id, str(question), request_json.get("context") or {})
        except Exception:
            logger.critical("Failed to answer question for %s", video_id, exc_info=True,
                            extra={"extra_fields": {"video_id": video_id}})
            return jsonify({**response, "answer": FALLBACK_ANSWER}), 500
        return jsonify({**response, "answer": answer}), 200

    @app.route("/context-summary", methods=["POST"])
    def context_summary():
        """
        Condenses the player's tutoring context into a plain-text briefing.
        """
        request_json = request.get_json(silent=True)
        if (not isinstance(request_json, dict) or not request_json.get("videoId")
                or not isinstance(request_json.get("context"), dict)):
            logger.error("Invalid context summary request: missing 'videoId' or 'context'.")
            return jsonify({"error": "Missing required fields: videoId, context"}), 400

        video_id = str(request_json["videoId"])
        try:
            summary = summarize_tutor_context(gemini, {**request_json["context"], "videoId": video_id})
        except Exception as e:
            logger.critical("Failed to summarize tutor context for %s", video_id, exc_info=True,
                            extra={"extra_fields": {"video_id": video_id}})
            return jsonify({"videoId": video_id, "summary": "", "error": "Failed to summarize tutor context",
                            "message": str(e)}), 500
        return jsonify({"videoId": video_id, "summary": summary}), 200

    return app
