"""
Refinement suggestions a creator can accept, and merging them into a timeline.

Each accepted suggestion is one variant of a closed union tagged by
``suggestionType``. Applying it returns new concept, checkpoint and quiz
lists; the caller persists them.
"""
import logging
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

from ..common.utils import parse_seconds
from ..timeline_generator.content_config import AIContentConfig, DEFAULT_CONFIG
from ..timeline_generator.sanitizer import sanitize_checkpoint, sanitize_concept

logger = logging.getLogger(__name__)

SUGGESTION_ARRAYS = (
    "conceptsToAdd",
    "conceptsToImprove",
    "timelineGaps",
    "checkpointsToAdd",
    "checkpointsToImprove",
    "quizQuestionsToAdd",
    "quizQuestionsToImprove",
)


class _Suggestion(BaseModel):
    model_config = ConfigDict(extra="ignore")

    reason: Optional[str] = None


class ConceptAdd(_Suggestion):
    suggestionType: Literal["conceptAdd"]
    concept: Dict[str, Any]


class ConceptImprove(_Suggestion):
    """Replaces every concept whose title equals ``original["concept"]``."""

    suggestionType: Literal["conceptImprove"]
    original: Dict[str, Any]
    improved: Dict[str, Any]


class CheckpointAdd(_Suggestion):
    suggestionType: Literal["checkpointAdd"]
    checkpoint: Dict[str, Any]


class CheckpointImprove(_Suggestion):
    """Replaces the checkpoint at ``originalIndex``, the position it had when suggested."""

    suggestionType: Literal["checkpointImprove"]
    originalIndex: int = Field(ge=0)
    improved: Dict[str, Any]
    original: Optional[Dict[str, Any]] = None


class QuizAdd(_Suggestion):
    suggestionType: Literal["quizAdd"]
    question: Dict[str, Any]


class QuizImprove(_Suggestion):
    """Replaces every question whose text equals ``original["question"]``."""

    suggestionType: Literal["quizImprove"]
    original: Dict[str, Any]
    improved: Dict[str, Any]


Suggestion = Annotated[
    Union[ConceptAdd, ConceptImprove, CheckpointAdd, CheckpointImprove, QuizAdd, QuizImprove],
    Field(discriminator="suggestionType"),
]

_suggestion_adapter = TypeAdapter(Suggestion)


def parse_suggestion(suggestion_type: str, payload: Dict[str, Any]) -> Suggestion:
    """
    Validates an accepted suggestion as sent by the client.

    Raises:
        pydantic.ValidationError: for an unknown type or a payload missing the
            fields that type needs.
    """
    data = dict(payload or {})
    data["suggestionType"] = suggestion_type
    return _suggestion_adapter.validate_python(data)


def normalize_suggestion_bundle(raw: Dict[str, Any]) -> Dict[str, Any]:
    """Ensures all seven suggestion arrays exist; other keys are kept."""
    bundle = dict(raw)
    for key in SUGGESTION_ARRAYS:
        if not isinstance(bundle.get(key), list):
            bundle[key] = []
    return bundle


def _list(value) -> List[Dict[str, Any]]:
    return list(value) if isinstance(value, list) else []


def apply_suggestion_to_video(
    video: Dict[str, Any],
    suggestion: Suggestion,
    config: AIContentConfig = DEFAULT_CONFIG,
) -> Dict[str, List[Dict[str, Any]]]:
    """
    Merges one suggestion into the video's timeline.

    Added and improved concepts and checkpoints are bounded to the video's
    duration the same way a fresh analysis is. Improve suggestions whose key
    matches nothing leave the lists unchanged.

    Returns:
        dict: the new ``concepts``, ``checkpoints`` and ``quiz`` lists.
    """
    concepts = _list(video.get("concepts"))
    checkpoints = _list(video.get("checkpoints"))
    quiz = _list(video.get("quiz"))
    duration = parse_seconds(video.get("duration"))

    if isinstance(suggestion, ConceptAdd):
        concepts.append(sanitize_concept(suggestion.concept, duration))
    elif isinstance(suggestion, ConceptImprove):
        title = suggestion.original.get("concept")
        improved = sanitize_concept(suggestion.improved, duration)
        concepts = [improved if c.get("concept") == title else c for c in concepts]
    elif isinstance(suggestion, CheckpointAdd):
        checkpoints.append(sanitize_checkpoint(suggestion.checkpoint, duration, config))
    elif isinstance(suggestion, CheckpointImprove):
        if suggestion.originalIndex < len(checkpoints):
            checkpoints[suggestion.originalIndex] = sanitize_checkpoint(suggestion.improved, duration, config)
        else:
            logger.warning("Checkpoint index %d out of range (%d checkpoints)",
                           suggestion.originalIndex, len(checkpoints))
    elif isinstance(suggestion, QuizAdd):
        quiz.append(dict(suggestion.question))
    elif isinstance(suggestion, QuizImprove):
        question = suggestion.original.get("question")
        quiz = [dict(suggestion.improved) if q.get("question") == question else q for q in quiz]
    else:
        raise TypeError(f"Unsupported suggestion: {type(suggestion).__name__}")

    return {"concepts": concepts, "checkpoints": checkpoints, "quiz": quiz}
