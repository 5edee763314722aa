"""
Tunable parameters that shape the learning timeline Gemini generates.

The prompt builders turn a config into instructions, and the sanitizer and
timing checks enforce the same numbers on the response. The fingerprint of a
config is stored with each analysis so that changing any value invalidates
cached results.
"""
import dataclasses
import hashlib
import json
from dataclasses import dataclass, field
from typing import Dict

# Bump when the prompt templates or the sanitizer change in a way that
# should invalidate cached analyses even with an unchanged config.
ANALYSIS_VERSION = "1.0.0"


@dataclass(frozen=True)
class CountRange:
    min: int
    max: int

    def __str__(self) -> str:
        return f"{self.min}-{self.max}"


@dataclass(frozen=True)
class SecondsRange:
    min: float
    max: float


@dataclass(frozen=True)
class ConceptConfig:
    target_count: CountRange = CountRange(5, 12)
    # Share of high/medium/low importance concepts (should sum to ~1.0)
    importance_weights: Dict[str, float] = field(
        default_factory=lambda: {"high": 0.25, "medium": 0.5, "low": 0.25})
    main_concepts: float = 0.65
    sub_concepts: float = 0.35
    visual_emphasis_threshold: float = 0.7
    max_title_length: int = 80
    max_description_length: int = 150
    max_visual_elements_length: int = 150


@dataclass(frozen=True)
class VisualHighlightConfig:
    enabled: bool = True
    target_count: CountRange = CountRange(2, 8)
    type_weights: Dict[str, float] = field(default_factory=lambda: {
        "code": 1.2, "diagram": 1.1, "demo": 1.0, "formula": 0.9, "chart": 0.8})
    min_spacing: int = 15


@dataclass(frozen=True)
class QuizConfig:
    target_count: CountRange = CountRange(4, 8)
    difficulty_weights: Dict[str, float] = field(
        default_factory=lambda: {"recall": 0.3, "comprehension": 0.5, "application": 0.2})
    distractor_similarity: float = 0.7


@dataclass(frozen=True)
class PauseDelayConfig:
    default: float = 0.35
    min: float = 0.2
    max: float = 1.0


@dataclass(frozen=True)
class CheckpointConfig:
    enabled: bool = True
    target_count: CountRange = CountRange(3, 6)
    pause_delay_seconds: PauseDelayConfig = PauseDelayConfig()
    placement_strategy: Dict[str, float] = field(default_factory=lambda: {
        "afterMajorConcept": 1.3, "midConcept": 0.6, "beforeTransition": 1.1, "afterVisualDemo": 1.2})
    type_weights: Dict[str, float] = field(default_factory=lambda: {
        "quickQuiz": 0.5, "reflection": 0.2, "prediction": 0.15, "application": 0.15})
    min_spacing: int = 120
    max_concepts_before_checkpoint: int = 3
    # Prediction checkpoints sit this many seconds before their concept.
    prediction_window: SecondsRange = SecondsRange(5, 10)
    # How long a concept usually takes to explain before it can be quizzed.
    explanation_window: SecondsRange = SecondsRange(20, 90)


@dataclass(frozen=True)
class AudioVisualSyncConfig:
    enabled: bool = True
    correlation_weight: float = 0.8
    sync_window: int = 3


@dataclass(frozen=True)
class TranscriptConfig:
    include_timestamps: bool = True
    timestamp_interval: int = 30
    cleanup_filler: bool = True


@dataclass(frozen=True)
class AIContentConfig:
    concepts: ConceptConfig = ConceptConfig()
    visual_highlights: VisualHighlightConfig = VisualHighlightConfig()
    quiz: QuizConfig = QuizConfig()
    checkpoints: CheckpointConfig = CheckpointConfig()
    audio_visual_sync: AudioVisualSyncConfig = AudioVisualSyncConfig()
    transcript: TranscriptConfig = TranscriptConfig()
    # No timestamp may come closer than this to the end of the video.
    timestamp_safety_margin: int = 10


# Optimized for technical education
DEFAULT_CONFIG = AIContentConfig()

MATH_SCIENCE_CONFIG = dataclasses.replace(
    DEFAULT_CONFIG,
    concepts=dataclasses.replace(
        DEFAULT_CONFIG.concepts,
        importance_weights={"high": 0.35, "medium": 0.45, "low": 0.2}),
    visual_highlights=dataclasses.replace(
        DEFAULT_CONFIG.visual_highlights,
        type_weights={"code": 0.8, "diagram": 1.3, "demo": 0.9, "formula": 1.4, "chart": 1.1}),
)

CREATIVE_CONFIG = dataclasses.replace(
    DEFAULT_CONFIG,
    concepts=dataclasses.replace(
        DEFAULT_CONFIG.concepts,
        importance_weights={"high": 0.2, "medium": 0.5, "low": 0.3}),
    visual_highlights=dataclasses.replace(
        DEFAULT_CONFIG.visual_highlights,
        type_weights={"code": 0.6, "diagram": 1.0, "demo": 1.4, "formula": 0.5, "chart": 0.7}),
)

CONTENT_PROFILES = {
    "default": DEFAULT_CONFIG,
    "math_science": MATH_SCIENCE_CONFIG,
    "creative": CREATIVE_CONFIG,
}


def get_content_config(profile: str = "default") -> AIContentConfig:
    """
    Looks up a named config profile.

    Raises:
        ValueError: for an unknown profile name.
    """
    try:
        return CONTENT_PROFILES[profile]
    except KeyError:
        raise ValueError(
            f"Unknown AI content profile '{profile}'. Expected one of: {', '.join(CONTENT_PROFILES)}"
        ) from None


def config_fingerprint(config: AIContentConfig) -> str:
    """
    Version token stored as ``aiAnalysisVersion``.

    Two configs share a fingerprint only if every value matches and they
    were produced by the same ANALYSIS_VERSION.
    """
    canonical = json.dumps(dataclasses.asdict(config), sort_keys=True, separators=(",", ":"))
    digest = hashlib.sha256(canonical.encode("utf-8")).hexdigest()[:12]
    return f"{ANALYSIS_VERSION}+{digest}"
