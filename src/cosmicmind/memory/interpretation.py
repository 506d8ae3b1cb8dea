"""
Lightweight interpretation heuristics for raw events.

Turns raw text into a short descriptive interpretation and an emotional
resonance mapping. These are keyword rules, not language understanding;
callers rely only on the output shapes.
"""

from typing import Dict

from cosmicmind.models import Emotion

GREETING = "A greeting directed at me."
QUESTION = "An explicit question seeking information."
MALFUNCTION = "A reported malfunction or failure."


def interpret(raw: str) -> str:
    """
    Interpret raw text into a short descriptive string.

    Args:
        raw: Raw event text

    Returns:
        Interpretation text (never empty)
    """
    lowered = raw.lower()
    if "hello" in lowered:
        return GREETING
    if "query" in lowered or "?" in raw:
        return QUESTION
    if "error" in lowered or "fail" in lowered:
        return MALFUNCTION
    return f"A data token: '{raw}'."


def infer_resonance(raw: str, interpretation: str) -> Dict[Emotion, float]:
    """
    Infer the emotional resonance of an event.

    Args:
        raw: Raw event text
        interpretation: Output of interpret()

    Returns:
        Emotion -> intensity; contains at least one entry
    """
    lowered = raw.lower()
    result: Dict[Emotion, float] = {}
    if "hello" in lowered:
        result[Emotion.CURIOSITY] = 0.7
        result[Emotion.AWE] = 0.1
    if "?" in raw:
        result[Emotion.CURIOSITY] = 0.9
    if "error" in lowered:
        result[Emotion.FEAR] = 0.6
        result[Emotion.SURPRISE] = 0.4
    if not result:
        result[Emotion.CURIOSITY] = 0.4
    return result
