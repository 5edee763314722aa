"""
Turns the untrusted analysis response from Gemini into a result that is
safe to persist.

The sanitizer bounds and defaults fields; it never rejects individual items
for pedagogical reasons. The hierarchy and checkpoint timing checks report
findings for the caller to log.
"""
import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from ..common.exceptions import MalformedAnalysisError
from ..common.utils import (clamp_non_negative, clamp_seconds, format_number, parse_seconds,
                            strip_code_fences)
from .content_config import AIContentConfig, DEFAULT_CONFIG

logger = logging.getLogger(__name__)

_TRUTHY_STRINGS = {"true", "yes", "1"}


@dataclass(frozen=True)
class TimingViolation:
    """A checkpoint placed outside the window its type calls for."""

    checkpoint_index: int
    checkpoint_type: str
    related_concept: Optional[str]
    message: str


def parse_analysis_response(response_text: str) -> Dict[str, Any]:
    """
    Decodes the analysis response, removing a code fence if the model added one.

    Raises:
        MalformedAnalysisError: if the text is empty, not JSON, or not a JSON object.
    """
    cleaned = strip_code_fences(response_text)
    if not cleaned:
        raise MalformedAnalysisError("Empty response from Gemini")
    try:
        parsed = json.loads(cleaned)
    except json.JSONDecodeError as e:
        raise MalformedAnalysisError(f"Failed to parse analysis response: {e}") from e
    if not isinstance(parsed, dict):
        raise MalformedAnalysisError(
            f"Analysis response must be a JSON object, got {type(parsed).__name__}")
    return parsed


def _to_bool(value) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in _TRUTHY_STRINGS
    return bool(value)


def sanitize_concept(concept: Dict[str, Any], duration: Optional[float] = None) -> Dict[str, Any]:
    """Returns a copy with the timestamp clamped to the video and a boolean visualEmphasis."""
    sanitized = dict(concept)
    sanitized["timestamp"] = clamp_seconds(parse_seconds(concept.get("timestamp")), duration)
    sanitized["visualEmphasis"] = _to_bool(concept.get("visualEmphasis", False))
    return sanitized


def sanitize_checkpoint(checkpoint: Dict[str, Any], duration: Optional[float] = None,
                        config: AIContentConfig = DEFAULT_CONFIG) -> Dict[str, Any]:
    """
    Returns a copy with bounded timing fields.

    The timestamp is clamped to the video. contextStartTimestamp and
    pauseDelaySeconds are only kept non-negative; a missing pause delay gets
    the configured default and an unparseable context start is dropped.
    """
    sanitized = dict(checkpoint)
    sanitized["timestamp"] = clamp_seconds(parse_seconds(checkpoint.get("timestamp")), duration)

    context_start = clamp_non_negative(parse_seconds(checkpoint.get("contextStartTimestamp")))
    if context_start is None:
        sanitized.pop("contextStartTimestamp", None)
    else:
        sanitized["contextStartTimestamp"] = context_start

    pause_delay = clamp_non_negative(parse_seconds(checkpoint.get("pauseDelaySeconds")))
    if pause_delay is None:
        pause_delay = config.checkpoints.pause_delay_seconds.default
    sanitized["pauseDelaySeconds"] = pause_delay
    return sanitized


def _objects(value) -> List[Dict[str, Any]]:
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, dict)]


def sanitize_analysis(raw: Any, config: AIContentConfig = DEFAULT_CONFIG) -> Dict[str, Any]:
    """
    Produces a structurally complete analysis result.

    All six top-level fields are always present. With a known duration every
    concept and checkpoint timestamp lies in [0, duration]; an unknown or
    non-positive duration only keeps timestamps non-negative.
    """
    if not isinstance(raw, dict):
        raw = {}

    duration = clamp_non_negative(parse_seconds(raw.get("duration"))) or 0
    duration_cap = duration if duration > 0 else None

    return {
        "transcript": raw.get("transcript") or "",
        "concepts": [sanitize_concept(c, duration_cap) for c in _objects(raw.get("concepts"))],
        "quiz": _objects(raw.get("quiz")),
        "checkpoints": [sanitize_checkpoint(cp, duration_cap, config)
                        for cp in _objects(raw.get("checkpoints"))],
        "summary": raw.get("summary") or "",
        "duration": duration,
    }


def concept_key(concept: Dict[str, Any], index: int) -> str:
    """The "{timestamp}-{index}" key sub concepts use to point at their parent."""
    timestamp = parse_seconds(concept.get("timestamp"))
    return f"{format_number(timestamp if timestamp is not None else 0)}-{index}"


def validate_concept_hierarchy(concepts: List[Dict[str, Any]]) -> List[str]:
    """
    Checks the main/sub structure of a concept list.

    Returns:
        A list of human-readable violations; empty when the hierarchy is valid.
    """
    by_key = {concept_key(c, i): c for i, c in enumerate(concepts)}
    violations = []
    for index, concept in enumerate(concepts):
        title = concept.get("concept") or f"#{index}"
        concept_type = concept.get("conceptType")
        parent_id = concept.get("parentId")

        if concept_type == "main":
            if parent_id:
                violations.append(f"Main concept '{title}' must not have a parentId")
        elif concept_type == "sub":
            if not parent_id:
                violations.append(f"Sub concept '{title}' is missing a parentId")
                continue
            parent = by_key.get(str(parent_id))
            if parent is None:
                violations.append(f"Sub concept '{title}' references unknown parent '{parent_id}'")
            elif parent.get("conceptType") != "main":
                violations.append(f"Sub concept '{title}' has parent '{parent_id}' which is not a main concept")
        else:
            violations.append(f"Concept '{title}' has invalid conceptType {concept_type!r}")
    return violations


def check_checkpoint_timing(result: Dict[str, Any],
                            config: AIContentConfig = DEFAULT_CONFIG) -> List[TimingViolation]:
    """
    Compares checkpoint placement against the timing rules given to the model.

    Prediction checkpoints belong inside the pre-window before their concept;
    every other type belongs after the concept has been explained. Checkpoints
    whose related concept can not be found are not checked. Nothing is
    rejected or moved.
    """
    concept_times = {}
    for concept in result.get("concepts") or []:
        title = concept.get("concept")
        timestamp = parse_seconds(concept.get("timestamp"))
        if title and timestamp is not None:
            concept_times.setdefault(title, timestamp)

    window = config.checkpoints.prediction_window
    min_explanation = config.checkpoints.explanation_window.min
    violations = []

    for index, checkpoint in enumerate(result.get("checkpoints") or []):
        related = checkpoint.get("relatedConcept")
        concept_time = concept_times.get(related)
        checkpoint_time = parse_seconds(checkpoint.get("timestamp"))
        if concept_time is None or checkpoint_time is None:
            continue

        checkpoint_type = checkpoint.get("type") or "unknown"
        if checkpoint_type == "prediction":
            lead = concept_time - checkpoint_time
            if not window.min <= lead <= window.max:
                violations.append(TimingViolation(
                    index, checkpoint_type, related,
                    f"prediction at {format_number(checkpoint_time)}s is {format_number(lead)}s before "
                    f"'{related}', expected {format_number(window.min)}-{format_number(window.max)}s",
                ))
        elif checkpoint_time < concept_time + min_explanation:
            violations.append(TimingViolation(
                index, checkpoint_type, related,
                f"{checkpoint_type} at {format_number(checkpoint_time)}s comes before '{related}' "
                f"({format_number(concept_time)}s) has been explained",
            ))
    return violations


def log_findings(video_id: str, result: Dict[str, Any], config: AIContentConfig = DEFAULT_CONFIG) -> None:
    """Logs hierarchy and timing findings for a freshly sanitized result."""
    log_extra = {"extra_fields": {"video_id": video_id}}
    for violation in validate_concept_hierarchy(result.get("concepts") or []):
        logger.warning("Concept hierarchy: %s", violation, extra=log_extra)
    for violation in check_checkpoint_timing(result, config):
        logger.warning("Checkpoint %d timing: %s", violation.checkpoint_index, violation.message, extra=log_extra)
