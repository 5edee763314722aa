""" File-based audit log of every Gemini exchange, one JSON document per video """
import json
import logging
import os
from datetime import datetime, timezone
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

_TIMELINE_FIELDS = ("concepts", "checkpoints", "quiz")
_REFINEMENT_FIELDS = ("refinementStatus", "refinementSuggestions", "refinementCompletedAt",
                      "refinementFocusArea")
_ENGAGEMENT_FIELDS = ("engagementStatus", "engagementAnalysis", "engagementAnalyzedAt")


def _json_default(value):
    if isinstance(value, datetime):
        return value.isoformat()
    return str(value)


class ArtifactStore:
    """
    Writes ``<output_dir>/<video_id>.json`` snapshots for debugging and review.

    Writes are best-effort: failures are logged and never raised, so the
    audit log can not change the outcome of the operation that produced it.
    """

    def __init__(self, output_dir: str = "output"):
        self.output_dir = output_dir

    def path_for(self, video_id: str) -> str:
        return os.path.join(self.output_dir, f"{video_id}.json")

    def write_analysis(
        self,
        video_id: str,
        storage_path: str,
        prompt: str,
        raw_response: str,
        parsed_analysis: Dict[str, Any],
        fingerprint: str,
    ) -> bool:
        """Saves the complete analysis exchange, replacing any earlier snapshot."""
        document = {
            "videoId": video_id,
            "videoPath": storage_path,
            "analysisDate": datetime.now(timezone.utc).isoformat(),
            "aiConfigVersion": fingerprint,
            "prompt": prompt,
            "rawResponse": raw_response,
            "parsedAnalysis": parsed_analysis,
        }
        return self._write(video_id, document)

    def record_video_state(self, video_id: str, video: Dict[str, Any]) -> bool:
        """
        Merges the current timeline and any finished refinement/engagement
        results into an existing snapshot. Videos without a snapshot are skipped.
        """
        path = self.path_for(video_id)
        if not os.path.exists(path):
            logger.info("No output JSON for %s, skipping update", video_id,
                        extra={"extra_fields": {"video_id": video_id}})
            return False

        existing = self._read(video_id)
        if existing is None:
            return False

        parsed = dict(existing.get("parsedAnalysis") or {})
        for field in _TIMELINE_FIELDS:
            if video.get(field) is not None:
                parsed[field] = video[field]
        existing["parsedAnalysis"] = parsed

        if video.get("refinementStatus") == "complete" and video.get("refinementSuggestions"):
            existing.update({field: video.get(field) for field in _REFINEMENT_FIELDS})
        if video.get("engagementStatus") == "complete" and video.get("engagementAnalysis"):
            existing.update({field: video.get(field) for field in _ENGAGEMENT_FIELDS})

        return self._write(video_id, existing)

    def _read(self, video_id: str) -> Optional[Dict[str, Any]]:
        try:
            with open(self.path_for(video_id), "r", encoding="utf-8") as f:
                return json.load(f)
        except (OSError, ValueError):
            logger.error("Error reading output JSON for %s", video_id, exc_info=True,
                         extra={"extra_fields": {"video_id": video_id}})
            return None

    def _write(self, video_id: str, document: Dict[str, Any]) -> bool:
        path = self.path_for(video_id)
        try:
            os.makedirs(self.output_dir, exist_ok=True)
            with open(path, "w", encoding="utf-8") as f:
                json.dump(document, f, indent=2, default=_json_default)
        except (OSError, TypeError, ValueError):
            logger.error("Error writing output JSON for %s", video_id, exc_info=True,
                         extra={"extra_fields": {"video_id": video_id}})
            return False
        logger.info("Output JSON saved to %s", path, extra={"extra_fields": {"video_id": video_id}})
        return True
