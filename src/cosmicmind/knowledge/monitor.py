"""
Hypothesis monitor: checks open predictions against each new frame.

The monitor only flips violated flags and lowers confidence; it never
creates or deletes hypotheses. Each violation contributes its pre-violation
confidence to the surprise returned to the caller.
"""

import logging
from typing import Iterable

from cosmicmind.models import Emotion, EmotionalMatrix, Frame, Hypothesis

logger = logging.getLogger(__name__)

AWAITING_MARKER = "expecting"
ACKNOWLEDGEMENT_EVIDENCE = ("response", "Hello")
SURPRISE_INFLUENCE = {Emotion.SURPRISE: 0.9, Emotion.FEAR: 0.2}
SURPRISE_WEIGHT = 0.6


def awaits_acknowledgement(hypothesis: Hypothesis) -> bool:
    return AWAITING_MARKER in hypothesis.prediction


def acknowledges(frame: Frame) -> bool:
    return any(token in frame.raw_input for token in ACKNOWLEDGEMENT_EVIDENCE)


def check_hypotheses(frame: Frame, hypotheses: Iterable[Hypothesis],
                     emotions: EmotionalMatrix) -> float:
    """
    Check open hypotheses against a newly built frame.

    Args:
        frame: The new frame
        hypotheses: Current hypothesis set (mutated in place)
        emotions: Emotional matrix, nudged toward surprise on each violation

    Returns:
        float: Summed surprise (0.0 when nothing was violated)
    """
    surprise = 0.0
    for hypothesis in hypotheses:
        if hypothesis.violated or not awaits_acknowledgement(hypothesis):
            continue
        if acknowledges(frame):
            continue
        surprise += hypothesis.mark_violated()
        emotions.modulate(SURPRISE_INFLUENCE, SURPRISE_WEIGHT)
        logger.info(
            f"SURPRISE! Hypothesis violated: {hypothesis.prediction} "
            f"Received '{frame.raw_input}' instead."
        )
    return surprise
