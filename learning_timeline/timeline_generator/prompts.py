import math

from .content_config import AIContentConfig, DEFAULT_CONFIG


def _pct(weight: float) -> int:
    return round(weight * 100)


def format_duration(seconds) -> str:
    """
    Renders a duration as "M:SS (N seconds)".

    Missing, negative or non-numeric durations render as "Unknown".
    """
    if isinstance(seconds, bool) or not isinstance(seconds, (int, float)):
        return "Unknown"
    if not math.isfinite(seconds) or seconds < 0:
        return "Unknown"
    total = int(seconds)
    return f"{total // 60}:{total % 60:02d} ({total} seconds)"


TARGETS_SECTION = """
CONTENT GENERATION TARGETS:
- Key Concepts: {concept_range} concepts
  • {high_pct}% HIGH importance (must-understand)
  • {medium_pct}% MEDIUM importance (should-understand)
  • {low_pct}% LOW importance (good-to-know)
  • {main_pct}% main concepts, {sub_pct}% sub-concepts

- Quiz Questions: {quiz_range} questions
  • {recall_pct}% recall/definition
  • {comprehension_pct}% comprehension/understanding
  • {application_pct}% application/problem-solving

- Learning Checkpoints: {checkpoint_range} interactive pause points
  • {quick_quiz_pct}% quickQuiz (test recall)
  • {reflection_pct}% reflection (self-explanation)
  • {prediction_pct}% prediction (anticipate next)
  • {application_cp_pct}% application (hands-on)

- Visual Highlights: {visual_range} moments where the screen is essential
  • type priority: {visual_weights}
  • at least {visual_spacing}s apart

TEXT CONSTRAINTS:
- Concept titles: max {max_title} chars
- Descriptions: max {max_description} chars
- Visual elements: max {max_visual} chars
"""


ANALYSIS_PROMPT = """You are an expert educational content analyzer. Analyze this video to create an INTERACTIVE LEARNING TIMELINE that transforms passive watching into active learning.

⚠️ CRITICAL REQUIREMENTS:
1. TIME UNITS: All timestamps and durations MUST be numeric seconds (not mm:ss strings)
2. TIMESTAMP ACCURACY:
   - Measure the ACTUAL video duration precisely
   - EVERY timestamp MUST be less than the video duration
   - DO NOT create timestamps beyond the video end
   - Keep a {margin}-second safety margin (if video is {example_duration}s, max timestamp should be {example_ceiling}s)
   - Double-check all timestamps before outputting
{targets}
CORE ANALYSIS APPROACH:

1. AUDIO ANALYSIS (What the instructor SAYS):
   - Transcribe spoken words verbatim
   - Identify teaching points from narration
   - For EACH concept, capture a transcript snippet (~30-60 seconds) of what the instructor says

2. VISUAL ANALYSIS (What appears ON SCREEN):
   - Capture code snippets, terminal commands, formulas
   - Describe diagrams, charts, architecture drawings
   - Identify when visual content is ESSENTIAL to understanding

3. AUDIO-VISUAL SYNC:{sync_section}

OUTPUT STRUCTURE (ALL SECTIONS REQUIRED):

1. **KEY CONCEPTS** (REQUIRED: {concept_range}) - Interactive timeline markers that CLEARLY signal topic transitions:
{{
  "concept": "DISTINCT, clear title that signals topic boundary ({max_title} chars max)",
  "timestamp": 145,
  "transcriptSnippet": "What the instructor says during this concept",
  "description": "Concise explanation combining audio + visual context ({max_description} chars max)",
  "importance": "core" | "supporting" | "supplementary",
  "conceptType": "main" | "sub",
  "parentId": "timestamp-index",
  "visualEmphasis": true | false,
  "visualElements": "What's on screen ONLY if it adds to audio ({max_visual} chars max)"
}}

IMPORTANCE LEVELS:
- "core": Central to the video's main topic; the instructor spends significant time on it
- "supporting": Builds on or connects core concepts; covered in moderate depth
- "supplementary": Adds context or breadth; mentioned briefly
Don't mark everything as "core" - be selective to help students prioritize.

CONCEPT HIERARCHY RULES (CRITICAL):
- Main concepts mark MAJOR TOPIC BOUNDARIES (conceptType: "main", NO parentId)
- Sub concepts are details/examples under a main concept (conceptType: "sub", MUST have parentId)
- parentId format: "{{timestamp}}-{{index}}" where index is the 0-based position of the MAIN concept in the concepts array
  (e.g., "52-0" for a main concept at 52s that is first in the array)
- A parentId must always point to a main concept, never to another sub concept
- Analyze from 0:00 to the END of the video; topic transitions happen throughout the entire lecture

DESCRIPTION GUIDELINES:
- Casual and conversational, use "you"/"your", active voice
- MAX {max_description} CHARACTERS - descriptions over the limit WILL BE TRUNCATED
- One core insight only; explain any technical term in the same sentence

2. **QUIZ QUESTIONS** (REQUIRED: {quiz_range}) - Test understanding:
{{
  "question": "Clear, specific question",
  "options": ["Answer 1", "Answer 2", "Answer 3", "Answer 4"],
  "correctAnswer": 1,
  "explanation": "Why this answer is correct, referencing visual or audio cues",
  "relatedConcept": "Exact concept title this question tests"
}}
Wrong options should be plausible (similarity to the correct answer about {distractor_pct}%).

3. **LEARNING CHECKPOINTS** (REQUIRED: {checkpoint_range}) - Interactive pause points:
{{
  "timestamp": 180,
  "type": "quickQuiz" | "reflection" | "prediction" | "application",
  "prompt": "Engaging question or instruction for student interaction",
  "options": ["Option 1", "Option 2", "Option 3", "Option 4"],
  "correctAnswer": 0,
  "hint": "Optional helpful clue",
  "relatedConcept": "Link to the concept this reinforces",
  "contextStartTimestamp": 60,
  "pauseDelaySeconds": {pause_default}
}}
- "options" and "correctAnswer" are REQUIRED for quickQuiz only (0-based index)
- contextStartTimestamp is the ABSOLUTE second where the related explanation begins, not an offset
- pauseDelaySeconds is how long after the timestamp to pause ({pause_min}-{pause_max} secs, default {pause_default})

⚠️ CRITICAL CHECKPOINT TIMING RULES:
1. quickQuiz, reflection and application: MUST be placed AFTER the concept is fully explained
   - concept timestamp + time to explain it (usually {explain_min}-{explain_max} seconds)
   - NEVER ask students about a concept they haven't learned yet
2. prediction: MUST be placed {prediction_min}-{prediction_max} seconds BEFORE its concept
   - checkpoint.timestamp >= (concept.timestamp - {prediction_max}) AND <= (concept.timestamp - {prediction_min})
   - Example: concept at 100s → prediction between {prediction_example_low}s and {prediction_example_high}s

PLACEMENT STRATEGY:
- After major concepts (weight: {after_major}) - highest priority
- After visual demos (weight: {after_visual})
- Before topic transitions (weight: {before_transition})
- Mid-concept (weight: {mid_concept}) - lowest priority
- Minimum {min_spacing}s spacing between checkpoints
- Maximum {max_concepts_before} concepts before forcing a checkpoint
- Place checkpoints at natural pauses in speech, never mid-sentence

4. **TRANSCRIPT**: Array of timestamped transcript items
   Format: [{{ "text": "sentence or phrase", "timestamp": seconds }}, ...]{transcript_section}

5. **SUMMARY**: 2-3 sentences covering main topics and learning outcomes

6. **DURATION**: Video length in seconds

RESPONSE FORMAT (PURE JSON, NO MARKDOWN):
{{
  "transcript": [{{ "text": "...", "timestamp": 0 }}],
  "concepts": [
    {{ "concept": "REST API Fundamentals", "timestamp": 120, "transcriptSnippet": "...", "description": "...", "importance": "core", "conceptType": "main", "visualEmphasis": false }},
    {{ "concept": "GET Request Anatomy", "timestamp": 145, "transcriptSnippet": "...", "description": "...", "importance": "supporting", "conceptType": "sub", "parentId": "120-0", "visualEmphasis": true, "visualElements": "..." }}
  ],
  "quiz": [...],
  "checkpoints": [...],
  "summary": "...",
  "duration": {example_duration}
}}

VALIDATION CHECKLIST - Before submitting, verify:
✅ "duration" contains the ACTUAL video length in seconds (not 0, not a guess)
✅ ALL timestamps are LESS than duration, the last one at least {margin} seconds before it
✅ If duration is {example_duration}s, NO timestamp exceeds {example_ceiling}s
✅ ALL concepts have "conceptType", "transcriptSnippet" and "visualEmphasis"
✅ ALL sub-concepts have "parentId"; main concepts do NOT
✅ At least {sub_pct}% are sub-concepts
✅ quickQuiz checkpoints have options + correctAnswer
✅ "checkpoints" has {checkpoint_range} items, at least {min_spacing}s apart
✅ Every checkpoint includes "contextStartTimestamp" and "pauseDelaySeconds" within {pause_min}-{pause_max} seconds

CRITICAL: Return ONLY valid JSON. No markdown fences, no explanations, just pure JSON."""

# Worked example used in the prompt's safety margin instructions.
EXAMPLE_DURATION = 694


def _weights(weights) -> str:
    ranked = sorted(weights.items(), key=lambda item: item[1], reverse=True)
    return ", ".join(f"{name} {weight}" for name, weight in ranked)


def build_targets_section(config: AIContentConfig = DEFAULT_CONFIG) -> str:
    concepts = config.concepts
    quiz = config.quiz
    checkpoints = config.checkpoints
    visuals = config.visual_highlights
    return TARGETS_SECTION.format(
        concept_range=concepts.target_count,
        high_pct=_pct(concepts.importance_weights["high"]),
        medium_pct=_pct(concepts.importance_weights["medium"]),
        low_pct=_pct(concepts.importance_weights["low"]),
        main_pct=_pct(concepts.main_concepts),
        sub_pct=_pct(concepts.sub_concepts),
        quiz_range=quiz.target_count,
        recall_pct=_pct(quiz.difficulty_weights["recall"]),
        comprehension_pct=_pct(quiz.difficulty_weights["comprehension"]),
        application_pct=_pct(quiz.difficulty_weights["application"]),
        checkpoint_range=checkpoints.target_count,
        quick_quiz_pct=_pct(checkpoints.type_weights["quickQuiz"]),
        reflection_pct=_pct(checkpoints.type_weights["reflection"]),
        prediction_pct=_pct(checkpoints.type_weights["prediction"]),
        application_cp_pct=_pct(checkpoints.type_weights["application"]),
        visual_range=visuals.target_count if visuals.enabled else "0",
        visual_weights=_weights(visuals.type_weights),
        visual_spacing=visuals.min_spacing,
        max_title=concepts.max_title_length,
        max_description=concepts.max_description_length,
        max_visual=concepts.max_visual_elements_length,
    )


def build_analysis_prompt(config: AIContentConfig = DEFAULT_CONFIG) -> str:
    """
    Builds the instruction sent with the video to produce a learning timeline.

    Every bound the sanitizer and the checkpoint timing check apply later is
    stated here, so the instruction and the enforcement use the same numbers.
    """
    concepts = config.concepts
    checkpoints = config.checkpoints
    pause = checkpoints.pause_delay_seconds
    prediction = checkpoints.prediction_window

    if config.audio_visual_sync.enabled:
        sync_section = (
            "\n   ONLY mark 'visualEmphasis: true' when the visual ADDS critical information beyond audio,"
            "\n   the instructor references what's on screen, or students MUST see it to understand."
            f"\n   Treat audio and visuals as related when they occur within {config.audio_visual_sync.sync_window}s of each other."
            f"\n   Use visualEmphasis for roughly the top {_pct(1 - concepts.visual_emphasis_threshold)}% most visual concepts."
        )
    else:
        sync_section = "\n   Set 'visualEmphasis: false' for every concept."

    transcript_section = ""
    if config.transcript.cleanup_filler:
        transcript_section += '\n   (Remove filler words like "um", "uh", "like")'
    if config.transcript.include_timestamps:
        transcript_section += (
            f"\n   Split into chunks of 1-3 sentences, at most {config.transcript.timestamp_interval} seconds apart,"
            "\n   each with the timestamp at which it is spoken"
        )

    return ANALYSIS_PROMPT.format(
        margin=config.timestamp_safety_margin,
        example_duration=EXAMPLE_DURATION,
        example_ceiling=EXAMPLE_DURATION - config.timestamp_safety_margin,
        targets=build_targets_section(config),
        sync_section=sync_section,
        concept_range=concepts.target_count,
        max_title=concepts.max_title_length,
        max_description=concepts.max_description_length,
        max_visual=concepts.max_visual_elements_length,
        sub_pct=_pct(concepts.sub_concepts),
        quiz_range=config.quiz.target_count,
        distractor_pct=_pct(config.quiz.distractor_similarity),
        checkpoint_range=checkpoints.target_count,
        pause_default=pause.default,
        pause_min=pause.min,
        pause_max=pause.max,
        explain_min=int(checkpoints.explanation_window.min),
        explain_max=int(checkpoints.explanation_window.max),
        prediction_min=int(prediction.min),
        prediction_max=int(prediction.max),
        prediction_example_low=int(100 - prediction.max),
        prediction_example_high=int(100 - prediction.min),
        after_major=checkpoints.placement_strategy["afterMajorConcept"],
        after_visual=checkpoints.placement_strategy["afterVisualDemo"],
        before_transition=checkpoints.placement_strategy["beforeTransition"],
        mid_concept=checkpoints.placement_strategy["midConcept"],
        min_spacing=checkpoints.min_spacing,
        max_concepts_before=checkpoints.max_concepts_before_checkpoint,
        transcript_section=transcript_section,
    )
