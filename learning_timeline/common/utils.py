import json
import logging
import math
import re
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

_NON_NUMERIC = re.compile(r"[^0-9.]")
_LEADING_NUMBER = re.compile(r"\d*\.?\d+")


def strip_code_fences(response_text: str) -> str:
    """
    Removes a markdown code fence wrapped around a Gemini response.

    Args:
        response_text: Raw response text from Gemini

    Returns:
        The text between the fences, or the stripped text if it is not fenced.
    """
    text = (response_text or "").strip()
    if not text.startswith("```"):
        return text

    lines = text.split("\n")
    # Drop the opening fence line (``` or ```json)
    lines = lines[1:]
    if lines and lines[-1].strip() == "```":
        lines = lines[:-1]
    return "\n".join(lines).strip()


def extract_json_object(response_text: str) -> Optional[Dict[str, Any]]:
    """
    Finds the first top-level JSON object in free-form model output.

    Leading and trailing prose (or code fences) around the object is ignored.

    Returns:
        The decoded object, or None if no object can be decoded.
    """
    text = response_text or ""
    decoder = json.JSONDecoder()
    start = text.find("{")
    while start != -1:
        try:
            value, _ = decoder.raw_decode(text, start)
        except json.JSONDecodeError:
            start = text.find("{", start + 1)
            continue
        if isinstance(value, dict):
            return value
        start = text.find("{", start + 1)
    return None


def parse_seconds(value: Any) -> Optional[float]:
    """
    Converts a timestamp the model produced into seconds.

    Accepts numbers, "MM:SS" and "HH:MM:SS" strings, and loosely formatted
    numeric text such as "145s" or "~90 seconds".

    Returns:
        The number of seconds, or None if nothing numeric can be recovered.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value) if math.isfinite(value) else None
    if not isinstance(value, str):
        return None

    trimmed = value.strip()
    if ":" in trimmed:
        parts = trimmed.split(":")
        try:
            numbers = [float(part) for part in parts]
        except ValueError:
            numbers = None
        if numbers and all(math.isfinite(n) for n in numbers):
            if len(numbers) == 3:
                hours, minutes, seconds = numbers
                return hours * 3600 + minutes * 60 + seconds
            if len(numbers) == 2:
                minutes, seconds = numbers
                return minutes * 60 + seconds

    match = _LEADING_NUMBER.search(_NON_NUMERIC.sub("", trimmed))
    if match:
        return float(match.group(0))
    return None


def clamp_seconds(value: Optional[float], max_seconds: Optional[float] = None) -> float:
    """
    Bounds a parsed timestamp to [0, max_seconds].

    A missing or non-positive ``max_seconds`` only enforces non-negativity;
    an unparseable value becomes 0.
    """
    if value is None or math.isnan(value):
        return 0
    if not max_seconds or max_seconds <= 0:
        return max(0, value)
    return max(0, min(value, max_seconds))


def clamp_non_negative(value: Optional[float]) -> Optional[float]:
    if value is None or math.isnan(value):
        return None
    return max(0, value)


def seconds_to_mmss(seconds: float) -> str:
    """
    Convert seconds to M:SS for the human-readable parts of a prompt.

    Args:
        seconds: Time in seconds (e.g., 90)

    Returns:
        Time in M:SS format (e.g., "1:30")
    """
    minutes = int(seconds) // 60
    secs = int(seconds) % 60
    return f"{minutes}:{secs:02d}"


def format_number(value: float) -> str:
    """Writes whole numbers without a decimal point (52.0 -> "52")."""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)
