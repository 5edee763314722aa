"""
Lifecycle states of a video document.

The processing pipeline, the refinement loop and the engagement analysis
each own one status field. Every write to those fields goes through
``transition`` so that an illegal jump fails loudly instead of leaving a
document in a state nothing will ever move it out of.
"""
from enum import Enum

from .exceptions import InvalidTransitionError


class ProcessingStatus(str, Enum):
    UPLOADED = "uploaded"
    PROCESSING = "processing"
    READY = "ready"
    ERROR = "error"

    @classmethod
    def parse(cls, value) -> "ProcessingStatus":
        # Documents created before processing existed carry "uploading" or nothing.
        if value in (None, "", "uploading"):
            return cls.UPLOADED
        return cls(value)


class ProcessingStage(str, Enum):
    INITIALIZING = "initializing"
    UPLOADING_TO_GEMINI = "uploading_to_gemini"
    ANALYZING_CONTENT = "analyzing_content"


class RefinementStatus(str, Enum):
    IDLE = "idle"
    REFINING = "refining"
    COMPLETE = "complete"
    ERROR = "error"

    @classmethod
    def parse(cls, value) -> "RefinementStatus":
        return cls(value) if value else cls.IDLE


class EngagementStatus(str, Enum):
    IDLE = "idle"
    ANALYZING = "analyzing"
    COMPLETE = "complete"
    ERROR = "error"

    @classmethod
    def parse(cls, value) -> "EngagementStatus":
        return cls(value) if value else cls.IDLE


_ALLOWED_TRANSITIONS = {
    ProcessingStatus: {
        ProcessingStatus.UPLOADED: {ProcessingStatus.PROCESSING},
        ProcessingStatus.PROCESSING: {ProcessingStatus.READY, ProcessingStatus.ERROR},
        ProcessingStatus.READY: {ProcessingStatus.PROCESSING},
        ProcessingStatus.ERROR: {ProcessingStatus.PROCESSING},
    },
    # Restarting a running refinement or engagement run is allowed: the
    # newest run's result wins.
    RefinementStatus: {
        RefinementStatus.IDLE: {RefinementStatus.REFINING},
        RefinementStatus.REFINING: {RefinementStatus.REFINING, RefinementStatus.COMPLETE,
                                    RefinementStatus.ERROR},
        RefinementStatus.COMPLETE: {RefinementStatus.REFINING},
        RefinementStatus.ERROR: {RefinementStatus.REFINING},
    },
    EngagementStatus: {
        EngagementStatus.IDLE: {EngagementStatus.ANALYZING},
        EngagementStatus.ANALYZING: {EngagementStatus.ANALYZING, EngagementStatus.COMPLETE,
                                     EngagementStatus.ERROR},
        EngagementStatus.COMPLETE: {EngagementStatus.ANALYZING},
        EngagementStatus.ERROR: {EngagementStatus.ANALYZING},
    },
}


def can_transition(current: Enum, target: Enum) -> bool:
    """Returns True if ``current`` may move to ``target``."""
    if type(current) is not type(target):
        return False
    return target in _ALLOWED_TRANSITIONS[type(current)][current]


def transition(current: Enum, target: Enum) -> Enum:
    """
    Validates a status change and returns the new status.

    Raises:
        InvalidTransitionError: if the change is not allowed.
    """
    if not can_transition(current, target):
        raise InvalidTransitionError(
            f"Cannot move {type(current).__name__} from '{current.value}' to '{target.value}'"
        )
    return target
