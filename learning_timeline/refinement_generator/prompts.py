"""
Prompts for the follow-up passes over an existing timeline.

The refinement prompt asks for seven kinds of suggestions; the engagement
prompt asks for a scored learning-effectiveness report. Both are pure
functions of the persisted timeline and tolerate partially filled items.
"""
from typing import Any, Dict, List, Optional

from ..common.utils import format_number, parse_seconds, seconds_to_mmss
from ..timeline_generator.content_config import AIContentConfig, DEFAULT_CONFIG
from ..timeline_generator.prompts import format_duration

# Concepts listed in the engagement prompt's content overview.
ENGAGEMENT_OVERVIEW_LIMIT = 10
ENGAGEMENT_SEGMENTS = 10


def _mark(item: Dict[str, Any]) -> str:
    seconds = parse_seconds(item.get("timestamp"))
    return f"[{seconds_to_mmss(max(0, seconds or 0))}]"


def _duration_seconds(video_metadata: Dict[str, Any]) -> str:
    duration = parse_seconds(video_metadata.get("duration"))
    return format_number(duration) if duration and duration > 0 else "0"


def _joined(values, fallback: str) -> str:
    if not isinstance(values, list) or not values:
        return fallback
    return ", ".join(str(v) for v in values)


def _section(value) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _dicts(value) -> List[Dict[str, Any]]:
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, dict)]


def _score(section: Dict[str, Any]) -> str:
    score = section.get("score")
    return "N/A" if score is None else str(score)


def format_engagement_report(engagement_analysis: Dict[str, Any]) -> str:
    """Condenses a stored engagement analysis into the lines the refinement prompt needs."""
    engagement_analysis = _section(engagement_analysis)
    engagement = _section(engagement_analysis.get("engagementRate"))
    balance = _section(engagement_analysis.get("activePassiveBalance"))
    graph = _section(engagement_analysis.get("learningRateGraph"))
    accessibility = _section(engagement_analysis.get("accessibilityScore"))
    pedagogy = _section(engagement_analysis.get("pedagogicalScore"))

    segments = _dicts(graph.get("segments"))
    segment_lines = "\n".join(
        f"  Segment {i + 1} ({seg.get('timeRange', '?')}): {seg.get('score', 'N/A')}/100"
        for i, seg in enumerate(segments)
    ) or "No data available"

    drops = _dicts(graph.get("criticalDropPoints"))
    drop_text = "; ".join(
        f"{seconds_to_mmss(max(0, parse_seconds(drop.get('timestamp')) or 0))} - {drop.get('reason', '')}"
        for drop in drops
    ) or "None"

    return f"""

ENGAGEMENT ANALYSIS REPORT:
This video has been analyzed for learning effectiveness. Use these insights to guide your refinement suggestions.

**Engagement Score**: {_score(engagement)}/100
- Strengths: {_joined(engagement.get("strengths"), "None identified")}
- Weaknesses: {_joined(engagement.get("weaknesses"), "None identified")}

**Active/Passive Balance**: {_score(balance)}/100 ({balance.get("activePercentage", 0)}% active, {balance.get("passivePercentage", 0)}% passive)
- Analysis: {balance.get("analysis") or "No analysis available"}

**Learning Rate Graph** (Attention retention across video):
{segment_lines}
- Critical Drops: {drop_text}

**Accessibility Score**: {_score(accessibility)}/100
- Prerequisites: {_joined(accessibility.get("prerequisites"), "None")}
- Barriers: {_joined(accessibility.get("barriers"), "None identified")}

**Teaching Quality**: {_score(pedagogy)}/100
"""


def _format_concepts(concepts: List[Dict[str, Any]]) -> str:
    return "\n\n".join(
        f"{i + 1}. {_mark(c)} {c.get('concept', 'Untitled')} "
        f"({c.get('conceptType') or 'main'}, {c.get('importance', 'unknown')})\n"
        f"   Description: {c.get('description', '')}"
        for i, c in enumerate(concepts)
    ) or "(none)"


def _format_checkpoints(checkpoints: List[Dict[str, Any]]) -> str:
    lines = []
    for i, cp in enumerate(checkpoints):
        cp_type = cp.get("type", "unknown")
        rule = "(OK BEFORE concept)" if cp_type == "prediction" else "(MUST BE AFTER concept)"
        context_start = cp.get("contextStartTimestamp")
        pause_delay = cp.get("pauseDelaySeconds")
        lines.append(
            f"{i + 1}. {_mark(cp)} {cp_type} {rule}\n"
            f"   Prompt: {cp.get('prompt', '')}\n"
            f"   Related Concept: {cp.get('relatedConcept') or 'None specified'}\n"
            f"   Context Start Timestamp: {'(missing)' if context_start is None else context_start}\n"
            f"   Pause Delay Seconds: {'(missing)' if pause_delay is None else pause_delay}"
        )
    return "\n\n".join(lines) or "(none)"


def _format_quiz(quiz: List[Dict[str, Any]]) -> str:
    lines = []
    for i, q in enumerate(quiz):
        options = q.get("options") if isinstance(q.get("options"), list) else []
        answer = q.get("correctAnswer")
        correct = options[answer] if isinstance(answer, int) and 0 <= answer < len(options) else "Unknown"
        lines.append(
            f"{i + 1}. {q.get('question', '')}\n"
            f"   Options: {', '.join(str(o) for o in options)}\n"
            f"   Correct: {correct}"
        )
    return "\n\n".join(lines) or "(none)"


REFINEMENT_PROMPT = """You are an expert educational content analyzer. Review the existing learning content (concepts, checkpoints, quizzes) from this video and suggest improvements.

⚠️ CRITICAL REQUIREMENTS:
1. TIME UNITS: All timestamps MUST be numeric seconds (not mm:ss)
2. TIMESTAMP VALIDATION: Video duration is {duration_seconds} seconds
   - ALL suggested timestamps MUST be less than {duration_seconds} seconds
   - DO NOT suggest timestamps beyond video end
   - Keep {margin}-second safety margin from video end
3. Any mm:ss shown below is just for human readability - output numeric seconds only

VIDEO METADATA:
- Duration: {duration_display}
- Title: {title}{engagement_context}{focus_context}

EXISTING CONCEPTS ({concept_count} total):
{concepts}

EXISTING CHECKPOINTS ({checkpoint_count} total):
{checkpoints}

EXISTING QUIZ QUESTIONS ({quiz_count} total):
{quiz}

YOUR TASK:
Analyze ALL content above and provide SEVEN types of suggestions:

1. **Concepts to Add**: important topics, examples or transitions MISSING from the timeline
2. **Concepts to Improve**: vague titles, weak descriptions, wrong importance levels, missing visual context
3. **Timeline Gaps**: time ranges with no concepts, why they matter and what they likely contain
4. **Checkpoints to Add**: quick quizzes after major concepts, predictions before complex topics, reflections at transitions
   - Avoid consecutive checkpoints of the same type and duplicates of existing ones
   - Keep checkpoints at least {min_spacing} seconds apart
5. **Checkpoints to Improve**: better prompts, more appropriate types, better timing
   - quickQuiz/reflection/application MUST come AFTER the related concept is explained (concept timestamp + {explain_min}-{explain_max} seconds)
   - prediction checkpoints belong {prediction_min}-{prediction_max} seconds BEFORE their concept
6. **Quiz Questions to Add**: cover important concepts not yet tested; each question tests a distinct skill
7. **Quiz Questions to Improve**: clearer wording, better distractors, more accurate explanations

RESPONSE FORMAT (JSON only):
{{
  "conceptsToAdd": [
    {{
      "concept": {{
        "concept": "Title of new concept",
        "timestamp": 180,
        "description": "Clear description",
        "importance": "core" | "supporting" | "supplementary",
        "conceptType": "main" | "sub",
        "parentId": "timestamp-index of the parent main concept (sub concepts only)"
      }},
      "reason": "Why this concept should be added"
    }}
  ],
  "conceptsToImprove": [
    {{ "original": {{ ...existing concept... }}, "improved": {{ ...improved version... }}, "reason": "What's being improved and why" }}
  ],
  "timelineGaps": [
    {{ "startTime": 330, "endTime": 510, "reason": "3-minute gap with no concepts" }}
  ],
  "checkpointsToAdd": [
    {{
      "checkpoint": {{
        "timestamp": 240,
        "type": "quickQuiz" | "reflection" | "prediction" | "application",
        "prompt": "Question or prompt text",
        "options": ["Option 1", "Option 2"],
        "correctAnswer": 0,
        "hint": "Optional hint",
        "relatedConcept": "Related concept title",
        "contextStartTimestamp": 220,
        "pauseDelaySeconds": {pause_default}
      }},
      "reason": "Why this checkpoint would be valuable"
    }}
  ],
  "checkpointsToImprove": [
    {{ "originalIndex": 0, "original": {{ ...existing checkpoint... }}, "improved": {{ ...improved version... }}, "reason": "What's being improved and why" }}
  ],
  "quizQuestionsToAdd": [
    {{
      "question": {{ "question": "Question text", "options": ["A", "B", "C", "D"], "correctAnswer": 0, "explanation": "Why this is correct", "relatedConcept": "Concept title" }},
      "reason": "Why this question is needed"
    }}
  ],
  "quizQuestionsToImprove": [
    {{ "original": {{ ...existing question... }}, "improved": {{ ...improved version... }}, "reason": "What's being improved and why" }}
  ]
}}

IMPORTANT:
- Only suggest changes that would genuinely improve learning; arrays can be empty
- "originalIndex" is the 0-based position of the checkpoint in the EXISTING CHECKPOINTS list
- ALWAYS include "contextStartTimestamp" (absolute second where the related explanation begins) and "pauseDelaySeconds" ({pause_min}-{pause_max}, default {pause_default}) for any checkpoint you add or improve
- Return ONLY valid JSON, no markdown formatting"""


def build_refinement_prompt(
    existing_concepts: List[Dict[str, Any]],
    existing_checkpoints: List[Dict[str, Any]],
    existing_quiz: List[Dict[str, Any]],
    video_metadata: Dict[str, Any],
    engagement_analysis: Optional[Dict[str, Any]] = None,
    focus_area: Optional[str] = None,
    config: AIContentConfig = DEFAULT_CONFIG,
) -> str:
    """
    Builds the refinement instruction from the current timeline.

    A stored engagement analysis is condensed into a report section, and a
    focus area becomes a creator directive that the suggestions prioritize.
    """
    video_metadata = _section(video_metadata)
    existing_concepts = _dicts(existing_concepts)
    existing_checkpoints = _dicts(existing_checkpoints)
    existing_quiz = _dicts(existing_quiz)
    checkpoints_config = config.checkpoints
    pause = checkpoints_config.pause_delay_seconds

    engagement_context = format_engagement_report(engagement_analysis) if engagement_analysis else ""
    focus_context = ""
    if focus_area:
        focus_context = (
            f'\n\n**CREATOR FOCUS**: The creator specifically wants to improve: "{focus_area}"\n'
            "Prioritize suggestions that address this focus area. Make these suggestions actionable and specific.\n"
        )

    return REFINEMENT_PROMPT.format(
        duration_seconds=_duration_seconds(video_metadata),
        margin=config.timestamp_safety_margin,
        duration_display=format_duration(parse_seconds(video_metadata.get("duration"))),
        title=video_metadata.get("title") or "Untitled",
        engagement_context=engagement_context,
        focus_context=focus_context,
        concept_count=len(existing_concepts),
        concepts=_format_concepts(existing_concepts),
        checkpoint_count=len(existing_checkpoints),
        checkpoints=_format_checkpoints(existing_checkpoints),
        quiz_count=len(existing_quiz),
        quiz=_format_quiz(existing_quiz),
        min_spacing=checkpoints_config.min_spacing,
        explain_min=int(checkpoints_config.explanation_window.min),
        explain_max=int(checkpoints_config.explanation_window.max),
        prediction_min=int(checkpoints_config.prediction_window.min),
        prediction_max=int(checkpoints_config.prediction_window.max),
        pause_min=pause.min,
        pause_max=pause.max,
        pause_default=pause.default,
    )


ENGAGEMENT_PROMPT = """You are an expert learning science analyst. Evaluate this educational video's effectiveness for student engagement and learning outcomes.

⚠️ CRITICAL REQUIREMENTS:
1. TIME UNITS: All timestamps MUST be numeric seconds (not mm:ss)
2. TIMESTAMP VALIDATION: Video duration is {duration_seconds} seconds
   - ALL timestamps MUST be less than {duration_seconds} seconds
   - Keep {margin}-second safety margin from video end
3. Any mm:ss notation below is only for readability - output numeric seconds

VIDEO METADATA:
- Duration: {duration_display}
- Title: {title}
- Concepts: {concept_count} total
- Checkpoints: {checkpoint_count} interactive moments
- Quiz Questions: {quiz_count} total
- Checkpoint pause delay range: {pause_min}-{pause_max}s (default {pause_default}s)

CONTENT OVERVIEW:
{overview}

YOUR TASK:
Analyze this video across multiple learning dimensions and provide actionable insights.
Use simple, clear language that any creator can understand. Avoid academic jargon.

1. **Engagement Rate (0-100)**: pacing, concept density, interactive checkpoints, variety
   - Checkpoints boost engagement through active learning
2. **Learning Accessibility (0-100)**: prerequisite knowledge, concept clarity, complexity jumps
3. **Active vs Passive Learning Balance (0-100)**: 0 = purely passive lecture, 100 = purely hands-on
   - {checkpoint_count} checkpoints and {quiz_count} quiz questions add active learning
   - Ideal range: 40-70 for most content
4. **Learning Rate Graph**: divide the video into {segments} equal segments and rate each 0-100
   - Segments with checkpoints should score higher
   - Mark critical drop points where students might lose focus
5. **Pedagogical Score (0-100)**: scaffolding, examples, reinforcement, checkpoint placement, assessment alignment

RESPONSE FORMAT (JSON only):
{{
  "engagementRate": {{ "score": 75, "strengths": ["..."], "weaknesses": ["..."], "recommendations": ["..."] }},
  "accessibilityScore": {{ "score": 60, "prerequisites": ["..."], "barriers": ["..."], "improvements": ["..."] }},
  "activePassiveBalance": {{ "score": 35, "activePercentage": 20, "passivePercentage": 80, "analysis": "...", "recommendations": ["..."] }},
  "learningRateGraph": {{
    "segments": [{{ "timeRange": "0:00-1:00", "score": 85, "reason": "Strong intro" }}],
    "criticalDropPoints": [{{ "timestamp": 180, "reason": "Concept overload, needs a checkpoint" }}]
  }},
  "pedagogicalScore": {{ "score": 72, "strengths": ["..."], "gaps": ["..."], "improvements": ["..."] }},
  "overallAnalysis": {{
    "totalScore": 67,
    "tier": "Excellent" | "Good" | "Needs Improvement" | "Poor",
    "topPriorities": ["Add interaction at 3:15 to break passive section"]
  }}
}}

IMPORTANT:
- Be specific with timestamps and actionable recommendations
- "segments" must contain exactly {segments} entries
- Return ONLY valid JSON, no markdown formatting"""


def build_engagement_prompt(
    concepts: List[Dict[str, Any]],
    checkpoints: List[Dict[str, Any]],
    quiz: List[Dict[str, Any]],
    video_metadata: Dict[str, Any],
    config: AIContentConfig = DEFAULT_CONFIG,
) -> str:
    video_metadata = _section(video_metadata)
    concepts = _dicts(concepts)
    pause = config.checkpoints.pause_delay_seconds

    overview = "\n".join(
        f"{i + 1}. {_mark(c)} {c.get('concept', 'Untitled')} ({c.get('importance', 'unknown')})"
        for i, c in enumerate(concepts[:ENGAGEMENT_OVERVIEW_LIMIT])
    )
    if len(concepts) > ENGAGEMENT_OVERVIEW_LIMIT:
        overview += f"\n... and {len(concepts) - ENGAGEMENT_OVERVIEW_LIMIT} more concepts"

    return ENGAGEMENT_PROMPT.format(
        duration_seconds=_duration_seconds(video_metadata),
        margin=config.timestamp_safety_margin,
        duration_display=format_duration(parse_seconds(video_metadata.get("duration"))),
        title=video_metadata.get("title") or "Untitled",
        concept_count=len(concepts),
        checkpoint_count=len(checkpoints),
        quiz_count=len(quiz),
        pause_min=pause.min,
        pause_max=pause.max,
        pause_default=pause.default,
        overview=overview,
        segments=ENGAGEMENT_SEGMENTS,
    )
