"""
Truth and hypothesis synthesis from the attentional focus.

A fixed battery of independent pattern detectors scans the focused frames.
Each detector that fires proposes one candidate truth; candidates whose
emergent principle already exists are discarded, so repeated cycles never
accumulate duplicate truths. Sufficiently confident new truths each yield
at most one hypothesis per pattern family.
"""

import logging
from dataclasses import dataclass
from typing import Callable, Iterable, List, Optional, Set

from cosmicmind.errors import PreconditionUnmet
from cosmicmind.models import Frame, Hypothesis, Truth

logger = logging.getLogger(__name__)

MIN_FOCUS_FRAMES = 2
HYPOTHESIS_CONFIDENCE_FLOOR = 0.4

GREETING_CONCEPT = "Recurring Greeting"
GREETING_PRINCIPLE = "The input pattern 'Hello' is an intentional external signal."
GREETING_PREDICTION = (
    "After a 'Hello' signal, the external entity is expecting acknowledgement or response."
)

NUMERIC_CONCEPT = "NumericStream"
NUMERIC_PRINCIPLE = "A numeric sequence appears in the data stream; may encode structured info."
NUMERIC_PREDICTION = "Numeric sequences will continue to appear and may increase in complexity."
NUMERIC_HYPOTHESIS_FACTOR = 0.8


@dataclass(frozen=True)
class PatternDetector:
    """
    One detector in the battery.

    Attributes:
        concept: Concept label of the truth it proposes
        principle: Emergent principle text of that truth
        confidence: Confidence of that truth
        min_frames: Qualifying frames needed for the detector to fire
        qualifies: Predicate selecting qualifying frames
    """
    concept: str
    principle: str
    confidence: float
    min_frames: int
    qualifies: Callable[[Frame], bool]

    def detect(self, focus: List[Frame]) -> Optional[Truth]:
        matching = [f for f in focus if self.qualifies(f)]
        if len(matching) < self.min_frames:
            return None
        return Truth(
            concept=self.concept,
            supporting_frames={f.id for f in matching},
            confidence=self.confidence,
            principle=self.principle,
        )


def _is_greeting(frame: Frame) -> bool:
    return "hello" in frame.raw_input.lower() or "greeting" in frame.interpretation.lower()


def _has_digit(frame: Frame) -> bool:
    return any(ch.isdigit() for ch in frame.raw_input)


DETECTORS = (
    PatternDetector(GREETING_CONCEPT, GREETING_PRINCIPLE, 0.9, 3, _is_greeting),
    PatternDetector(NUMERIC_CONCEPT, NUMERIC_PRINCIPLE, 0.7, 2, _has_digit),
)


def require_focus(focus: List[Frame]) -> None:
    """Raise PreconditionUnmet when the focus is too small to reflect on."""
    if len(focus) < MIN_FOCUS_FRAMES:
        raise PreconditionUnmet(
            f"Synthesis needs at least {MIN_FOCUS_FRAMES} focus frames, got {len(focus)}"
        )


def synthesize_truths(focus: List[Frame], existing: Iterable[Truth],
                      detectors=DETECTORS) -> List[Truth]:
    """
    Run the detector battery over the focus.

    Fewer than two focus frames is a documented no-op, not an error.

    Args:
        focus: Attentional focus frames
        existing: Truths already in the store
        detectors: Detector battery to run

    Returns:
        New truths whose principle text is not already known
    """
    try:
        require_focus(focus)
    except PreconditionUnmet as e:
        logger.debug(f"Skipping synthesis: {e}")
        return []

    logger.info(f"Reflecting on {len(focus)} focused frames.")
    known: Set[str] = {t.principle for t in existing}
    results = []
    for detector in detectors:
        candidate = detector.detect(focus)
        if candidate is None or candidate.principle in known:
            continue
        known.add(candidate.principle)
        logger.info(f"Derived new truth: {candidate.principle}")
        results.append(candidate)
    return results


def _mentions(truth: Truth, keyword: str) -> bool:
    return keyword in truth.principle.lower() or keyword in truth.concept.lower()


def derive_hypotheses(truths: Iterable[Truth]) -> List[Hypothesis]:
    """
    Derive falsifiable predictions from new truths.

    Only truths with confidence above 0.4 qualify, and each yields at most
    one hypothesis: greeting truths predict an acknowledgement at the
    truth's confidence, numeric truths predict continuation at 0.8x.

    Args:
        truths: Truths accepted this cycle

    Returns:
        New hypotheses
    """
    hypotheses = []
    for truth in truths:
        if truth.confidence <= HYPOTHESIS_CONFIDENCE_FLOOR:
            continue
        if _mentions(truth, "greeting"):
            hypothesis = Hypothesis(GREETING_PREDICTION, truth.id, truth.confidence)
        elif _mentions(truth, "numeric"):
            hypothesis = Hypothesis(
                NUMERIC_PREDICTION, truth.id, truth.confidence * NUMERIC_HYPOTHESIS_FACTOR
            )
        else:
            continue
        logger.info(f"New hypothesis: {hypothesis.prediction}")
        hypotheses.append(hypothesis)
    return hypotheses
