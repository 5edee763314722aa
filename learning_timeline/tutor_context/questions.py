"""
Short answers to a student's question about the video they are watching.

The caller sends whatever context the player has at hand: a transcript
snippet and the concepts near the current position.
"""
import logging
from typing import Any, Dict, List

from ..common.gemini_client import GeminiClient

logger = logging.getLogger(__name__)

MAX_TRANSCRIPT_CHARS = 2000

QUESTION_PROMPT = """You are a helpful learning assistant. A student is watching an educational video and has a question.

VIDEO CONTEXT:
Transcript: {transcript}...
Key Concepts: {concepts}

STUDENT QUESTION: {question}

Provide a clear, concise answer (2-3 sentences) based on the video content. If the question is not related to the video, politely redirect the student to ask about the video content."""


def concept_titles(context: Dict[str, Any]) -> List[str]:
    """
    Titles of the concepts in ``nearbyConcepts`` (or ``concepts`` when absent).

    Items may be plain strings or concept objects; items without a title are skipped.
    """
    raw = context.get("nearbyConcepts")
    if not isinstance(raw, list):
        raw = context.get("concepts")
    if not isinstance(raw, list):
        return []

    titles = []
    for item in raw:
        title = item if isinstance(item, str) else item.get("concept") if isinstance(item, dict) else None
        if title:
            titles.append(str(title))
    return titles


def build_question_prompt(question: str, context: Dict[str, Any]) -> str:
    transcript = str(context.get("transcriptSnippet") or context.get("transcript") or "")
    return QUESTION_PROMPT.format(
        transcript=transcript[:MAX_TRANSCRIPT_CHARS],
        concepts=", ".join(concept_titles(context)),
        question=question,
    )


def answer_question(gemini: GeminiClient, video_id: str, question: str, context: Dict[str, Any]) -> str:
    prompt = build_question_prompt(question, context if isinstance(context, dict) else {})
    answer = gemini.generate(prompt).strip()
    logger.info("Answered student question for %s (%d chars)", video_id, len(answer),
                extra={"extra_fields": {"video_id": video_id}})
    return answer
