"""
Utility functions for the CosmicMind engine.

Includes clamping, timestamp helpers, and vector distance used by the
similarity-linking rule.
"""

import math
from datetime import datetime, timezone
from typing import Optional, Sequence

import numpy as np


def clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    """Clamp value into [low, high]."""
    return min(max(value, low), high)


def now() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def to_iso(moment: Optional[datetime]) -> Optional[str]:
    """Serialize a datetime to ISO-8601, passing None through."""
    return moment.isoformat() if moment is not None else None


def from_iso(text: Optional[str]) -> Optional[datetime]:
    """
    Parse an ISO-8601 timestamp.

    A trailing 'Z' is accepted, and naive timestamps are assumed to be UTC.

    Args:
        text: ISO timestamp or None

    Returns:
        Aware datetime, or None if text is None
    """
    if text is None:
        return None
    if text.endswith('Z'):
        text = text[:-1] + '+00:00'
    moment = datetime.fromisoformat(text)
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment


def euclidean_distance(a: Sequence[float], b: Sequence[float]) -> float:
    """
    Euclidean distance between two vectors.

    Vectors of unequal length are never similar: their distance is infinite.

    Args:
        a: First vector
        b: Second vector

    Returns:
        float: Distance in [0, inf]
    """
    if len(a) != len(b):
        return math.inf
    diff = np.asarray(a, dtype=float) - np.asarray(b, dtype=float)
    return float(np.linalg.norm(diff))
