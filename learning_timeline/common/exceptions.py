""" Errors raised by the timeline services """


class LearningTimelineError(Exception):
    """Base class for all errors raised by this package."""


class VideoNotFoundError(LearningTimelineError):
    """The requested video document does not exist."""

    def __init__(self, video_id: str):
        super().__init__(f"Video not found: {video_id}")
        self.video_id = video_id


class ProcessingConflictError(LearningTimelineError):
    """Processing was requested for a video that is already being processed."""

    def __init__(self, video_id: str):
        super().__init__("Video is already being processed")
        self.video_id = video_id


class MissingConceptsError(LearningTimelineError):
    """Refinement or engagement analysis needs at least one concept."""


class InvalidTransitionError(LearningTimelineError):
    """A lifecycle status change that the state tables do not allow."""


class MediaProcessingError(LearningTimelineError):
    """Gemini reported that the uploaded media could not be processed."""


class MalformedAnalysisError(LearningTimelineError):
    """The analysis response could not be parsed as a JSON object."""


class MalformedResponseError(LearningTimelineError):
    """No JSON object could be found in a refinement or engagement response."""


class TaskCancelledError(LearningTimelineError):
    """A supervised background task was cancelled or ran past its deadline."""
