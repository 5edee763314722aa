"""
Refinement suggestions and engagement analysis for an existing timeline.

Both runs have the same shape: admit synchronously (the video must exist and
have concepts), mark the run as started, then detach the Gemini call to the
task supervisor. The detached part persists either ``complete`` with its
result or ``error`` with a message.
"""
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from ..common.artifact_store import ArtifactStore
from ..common.exceptions import MalformedResponseError, MissingConceptsError, VideoNotFoundError
from ..common.gemini_client import GeminiClient
from ..common.models import EngagementStatus, RefinementStatus, transition
from ..common.task_supervisor import TaskContext, TaskSupervisor
from ..common.utils import extract_json_object
from ..common.video_asset_manager import VideoAssetManager
from ..timeline_generator.content_config import AIContentConfig, DEFAULT_CONFIG
from .prompts import build_engagement_prompt, build_refinement_prompt
from .structured_output_schema import ENGAGEMENT_ANALYSIS_SCHEMA
from .suggestions import Suggestion, apply_suggestion_to_video, normalize_suggestion_bundle

logger = logging.getLogger(__name__)


def _video_metadata(video: Dict[str, Any]) -> Dict[str, Any]:
    return {"duration": video.get("duration"), "title": video.get("title")}


class RefinementService:
    """Runs the refinement and engagement passes and merges accepted suggestions."""

    def __init__(
        self,
        asset_manager: VideoAssetManager,
        gemini: GeminiClient,
        supervisor: TaskSupervisor,
        artifacts: Optional[ArtifactStore] = None,
        config: AIContentConfig = DEFAULT_CONFIG,
    ):
        self.asset_manager = asset_manager
        self.gemini = gemini
        self.supervisor = supervisor
        self.artifacts = artifacts
        self.config = config

    def _require_concepts(self, video_id: str) -> Dict[str, Any]:
        video = self.asset_manager.get_video(video_id)
        if video is None:
            raise VideoNotFoundError(video_id)
        if not video.get("concepts"):
            raise MissingConceptsError("Video must have at least one concept")
        return video

    # Refinement

    def start_refinement(self, video_id: str, focus_area: Optional[str] = None) -> None:
        """
        Starts a refinement run.

        Raises:
            VideoNotFoundError: if the video does not exist.
            MissingConceptsError: if the video has no concepts yet.
        """
        video = self._require_concepts(video_id)
        status = transition(RefinementStatus.parse(video.get("refinementStatus")), RefinementStatus.REFINING)

        clear_fields = ["refinementError", "refinementSuggestions"]
        data = {"refinementStatus": status.value}
        if focus_area:
            data["refinementFocusArea"] = focus_area
        else:
            clear_fields.append("refinementFocusArea")
        self.asset_manager.update_video(video_id, data, clear_fields=clear_fields)

        logger.info("Refinement started for %s (focus: %s)", video_id, focus_area or "none",
                    extra={"extra_fields": {"video_id": video_id, "focus_area": focus_area}})
        self.supervisor.submit(
            f"refine:{video_id}",
            lambda ctx: self.run_refinement(video_id, ctx),
            on_failure=lambda e: self._refinement_failed(video_id, e),
        )

    def run_refinement(self, video_id: str, ctx: Optional[TaskContext] = None) -> Dict[str, Any]:
        ctx = ctx or TaskContext(f"refine:{video_id}")
        log_extra = {"extra_fields": {"video_id": video_id}}

        video = self.asset_manager.get_video(video_id)
        if video is None:
            raise VideoNotFoundError(video_id)

        prompt = build_refinement_prompt(
            video.get("concepts") or [],
            video.get("checkpoints") or [],
            video.get("quiz") or [],
            _video_metadata(video),
            engagement_analysis=video.get("engagementAnalysis"),
            focus_area=video.get("refinementFocusArea"),
            config=self.config,
        )
        ctx.raise_if_cancelled()
        logger.info("Requesting refinement suggestions for %s", video_id, extra=log_extra)
        response_text = self.gemini.generate(prompt)

        parsed = extract_json_object(response_text)
        if parsed is None:
            logger.error("No JSON object in refinement response for %s: %.500s", video_id, response_text,
                         extra=log_extra)
            raise MalformedResponseError("Failed to parse AI response")
        suggestions = normalize_suggestion_bundle(parsed)

        status = transition(RefinementStatus.REFINING, RefinementStatus.COMPLETE)
        self.asset_manager.update_video(video_id, {
            "refinementStatus": status.value,
            "refinementSuggestions": suggestions,
            "refinementCompletedAt": datetime.now(timezone.utc),
        })
        logger.info("Refinement suggestions generated for %s: %s", video_id,
                    {key: len(suggestions[key]) for key in ("conceptsToAdd", "conceptsToImprove",
                                                             "checkpointsToAdd", "quizQuestionsToAdd")},
                    extra=log_extra)
        self._record_artifact(video_id)
        return suggestions

    def _refinement_failed(self, video_id: str, error: Exception) -> None:
        status = transition(RefinementStatus.REFINING, RefinementStatus.ERROR)
        self.asset_manager.update_video(video_id, {
            "refinementStatus": status.value,
            "refinementError": str(error) or "Refinement failed",
        })

    # Engagement analysis

    def start_engagement_analysis(self, video_id: str) -> None:
        """
        Starts an engagement analysis run.

        Raises:
            VideoNotFoundError: if the video does not exist.
            MissingConceptsError: if the video has no concepts yet.
        """
        video = self._require_concepts(video_id)
        status = transition(EngagementStatus.parse(video.get("engagementStatus")), EngagementStatus.ANALYZING)
        self.asset_manager.update_video(
            video_id, {"engagementStatus": status.value},
            clear_fields=("engagementError", "engagementAnalysis"),
        )

        logger.info("Engagement analysis started for %s", video_id,
                    extra={"extra_fields": {"video_id": video_id}})
        self.supervisor.submit(
            f"engagement:{video_id}",
            lambda ctx: self.run_engagement_analysis(video_id, ctx),
            on_failure=lambda e: self._engagement_failed(video_id, e),
        )

    def run_engagement_analysis(self, video_id: str, ctx: Optional[TaskContext] = None) -> Dict[str, Any]:
        ctx = ctx or TaskContext(f"engagement:{video_id}")
        log_extra = {"extra_fields": {"video_id": video_id}}

        video = self.asset_manager.get_video(video_id)
        if video is None:
            raise VideoNotFoundError(video_id)

        prompt = build_engagement_prompt(
            video.get("concepts") or [],
            video.get("checkpoints") or [],
            video.get("quiz") or [],
            _video_metadata(video),
            config=self.config,
        )
        ctx.raise_if_cancelled()
        logger.info("Requesting engagement analysis for %s", video_id, extra=log_extra)
        response_text = self.gemini.generate(prompt, response_schema=ENGAGEMENT_ANALYSIS_SCHEMA)

        analysis = extract_json_object(response_text)
        if analysis is None:
            logger.error("No JSON object in engagement response for %s: %.500s", video_id, response_text,
                         extra=log_extra)
            raise MalformedResponseError("Failed to parse AI response")

        status = transition(EngagementStatus.ANALYZING, EngagementStatus.COMPLETE)
        self.asset_manager.update_video(video_id, {
            "engagementStatus": status.value,
            "engagementAnalysis": analysis,
            "engagementAnalyzedAt": datetime.now(timezone.utc),
        })
        overall = analysis.get("overallAnalysis") or {}
        logger.info("Engagement analysis complete for %s: score %s, tier %s", video_id,
                    overall.get("totalScore", 0), overall.get("tier", "Unknown"), extra=log_extra)
        self._record_artifact(video_id)
        return analysis

    def _engagement_failed(self, video_id: str, error: Exception) -> None:
        status = transition(EngagementStatus.ANALYZING, EngagementStatus.ERROR)
        self.asset_manager.update_video(video_id, {
            "engagementStatus": status.value,
            "engagementError": str(error) or "Engagement analysis failed",
        })

    # Merge-back and status

    def apply_suggestion(self, video_id: str, suggestion: Suggestion) -> Dict[str, Any]:
        """
        Merges an accepted suggestion into the timeline and returns the updated video.

        Raises:
            VideoNotFoundError: if the video does not exist.
        """
        video = self.asset_manager.get_video(video_id)
        if video is None:
            raise VideoNotFoundError(video_id)

        updated_fields = apply_suggestion_to_video(video, suggestion, self.config)
        self.asset_manager.update_video(video_id, updated_fields)
        logger.info("Applied %s suggestion to %s", suggestion.suggestionType, video_id,
                    extra={"extra_fields": {"video_id": video_id}})

        updated = self.asset_manager.get_video(video_id) or {**video, **updated_fields}
        self._record_artifact(video_id, updated)
        return updated

    def get_refinement_status(self, video_id: str) -> Dict[str, Any]:
        video = self.asset_manager.get_video(video_id)
        if video is None:
            raise VideoNotFoundError(video_id)
        return {
            "refinementStatus": RefinementStatus.parse(video.get("refinementStatus")).value,
            "refinementSuggestions": video.get("refinementSuggestions"),
            "refinementCompletedAt": video.get("refinementCompletedAt"),
            "refinementError": video.get("refinementError"),
        }

    def get_engagement_status(self, video_id: str) -> Dict[str, Any]:
        video = self.asset_manager.get_video(video_id)
        if video is None:
            raise VideoNotFoundError(video_id)
        return {
            "engagementStatus": EngagementStatus.parse(video.get("engagementStatus")).value,
            "engagementAnalysis": video.get("engagementAnalysis"),
            "engagementAnalyzedAt": video.get("engagementAnalyzedAt"),
            "engagementError": video.get("engagementError"),
        }

    def _record_artifact(self, video_id: str, video: Optional[Dict[str, Any]] = None) -> None:
        if self.artifacts is None:
            return
        try:
            if video is None:
                video = self.asset_manager.get_video(video_id)
            if video is not None:
                self.artifacts.record_video_state(video_id, video)
        except Exception:
            logger.warning("Failed to update output JSON for %s", video_id, exc_info=True,
                           extra={"extra_fields": {"video_id": video_id}})
