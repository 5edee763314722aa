"""
Short briefing of a student's tutoring context for the external voice agent.

The agent receives plain text only, so the briefing must make the topic and
the current segment obvious without the agent asking the student.
"""
import json
import logging
import math
from typing import Any, Dict

from ..common.gemini_client import GeminiClient

logger = logging.getLogger(__name__)

MAX_SUMMARY_CHARS = 900
MAX_ALL_CONCEPTS = 20
MAX_RECENT_MESSAGES = 10

CONTEXT_SUMMARY_PROMPT = """You are a tutoring context summarizer.

Goal: Produce a short briefing that makes the topic and current segment obvious to the model that reads it.

Rules:
- Output plain text only.
- Max {max_chars} characters.
- Include: (1) one-line topic label, (2) what section/time we are in, (3) what the student seems confused about (infer from recent messages), (4) 3-6 key concepts as bullet points.
- Do NOT ask the student what topic they mean.

INPUT CONTEXT (JSON snippets):
videoId: {video_id}
currentTime: {current_time}
transcriptSnippet: {transcript_snippet}
nearbyConcepts: {nearby_concepts}
allConcepts: {all_concepts}
nearbyCheckpoints: {nearby_checkpoints}
interactionSummary: {interaction_summary}
recentMessages: {recent_messages}

Now write the briefing."""


def safe_json(value: Any, max_chars: int) -> str:
    """Serializes ``value`` to JSON, cutting it to ``max_chars`` and marking the cut with an ellipsis."""
    text = json.dumps(value, ensure_ascii=False, default=str)
    if len(text) <= max_chars:
        return text
    return text[:max_chars] + "…"


def _current_second(value) -> int:
    try:
        seconds = float(value or 0)
    except (TypeError, ValueError):
        return 0
    return int(math.floor(seconds)) if math.isfinite(seconds) else 0


def _list(value) -> list:
    return value if isinstance(value, list) else []


def build_context_summary_prompt(context: Dict[str, Any]) -> str:
    return CONTEXT_SUMMARY_PROMPT.format(
        max_chars=MAX_SUMMARY_CHARS,
        video_id=context.get("videoId", ""),
        current_time=_current_second(context.get("currentTime")),
        transcript_snippet=safe_json(context.get("transcriptSnippet") or "", 1800),
        nearby_concepts=safe_json(_list(context.get("nearbyConcepts")), 1400),
        all_concepts=safe_json(_list(context.get("allConcepts"))[:MAX_ALL_CONCEPTS], 1400),
        nearby_checkpoints=safe_json(_list(context.get("nearbyCheckpoints")), 1400),
        interaction_summary=safe_json(context.get("interactionSummary"), 800),
        recent_messages=safe_json(_list(context.get("recentMessages"))[-MAX_RECENT_MESSAGES:], 1200),
    )


def summarize_tutor_context(gemini: GeminiClient, context: Dict[str, Any]) -> str:
    """
    Asks Gemini for the briefing and trims it to MAX_SUMMARY_CHARS.

    Args:
        gemini: client used for the text-only generation call.
        context: videoId, currentTime, transcriptSnippet, nearbyConcepts,
            allConcepts, nearbyCheckpoints, interactionSummary, recentMessages.
    """
    prompt = build_context_summary_prompt(context)
    summary = gemini.generate(prompt).strip()
    logger.info("Generated tutor context summary for %s (%d chars)", context.get("videoId"), len(summary),
                extra={"extra_fields": {"video_id": context.get("videoId")}})
    return summary[:MAX_SUMMARY_CHARS]
