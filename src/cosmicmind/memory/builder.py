"""Frame construction for ingested events."""

from datetime import datetime
from typing import Optional

from cosmicmind.memory.interpretation import infer_resonance, interpret
from cosmicmind.memory.signature import generate_signature
from cosmicmind.models import Frame, new_id
from cosmicmind.utils import now

INITIAL_SALIENCE = 0.5


def build_frame(raw: str, timestamp: Optional[datetime] = None) -> Frame:
    """
    Wrap a raw event into a new frame.

    Interpretation, resonance and signature are pure functions of ``raw``;
    only the identity and timestamp are fresh.

    Args:
        raw: Raw event text
        timestamp: Creation time (defaults to now)

    Returns:
        Frame with salience 0.5 and no connections
    """
    interpretation = interpret(raw)
    resonance = infer_resonance(raw, interpretation)
    return Frame(
        id=new_id(),
        timestamp=timestamp or now(),
        raw_input=raw,
        interpretation=interpretation,
        emotional_resonance=resonance,
        signature=generate_signature(raw, interpretation, resonance),
        salience=INITIAL_SALIENCE,
    )
