"""
Qualia signatures: deterministic fingerprints for similarity linking.

A signature is a fixed-length vector built from two parts:
- 8 pseudo-random values expanded from a seed derived from the raw text and
  its interpretation (64-bit linear congruential generator)
- one intensity slot per enumerated emotion (0 when absent)

Identical (raw, interpretation, emotions) triples always produce identical
signatures, so linking is reproducible across runs and agents.
"""

import math
from typing import Dict, List, Sequence

from cosmicmind.models import Emotion
from cosmicmind.utils import euclidean_distance

SEED_LENGTH = 8
SIGNATURE_LENGTH = SEED_LENGTH + len(Emotion)

_LCG_MULTIPLIER = 6364136223846793005
_LCG_INCREMENT = 1442695040888963407
_MASK_64 = (1 << 64) - 1


def _byte_sum(text: str) -> int:
    return sum(text.encode("utf-8"))


def expand_seed(seed: int, length: int = SEED_LENGTH) -> List[float]:
    """
    Expand a seed into ``length`` values in [0, 1).

    Args:
        seed: Non-negative integer seed
        length: Number of values to produce

    Returns:
        List of floats with three decimal places of resolution
    """
    state = seed & _MASK_64
    values = []
    for _ in range(length):
        state = (state * _LCG_MULTIPLIER + _LCG_INCREMENT) & _MASK_64
        values.append((state % 1000) / 1000.0)
    return values


def emotion_vector(emotions: Dict[Emotion, float]) -> List[float]:
    """One slot per emotion in declaration order, 0.0 where absent."""
    return [float(emotions.get(e, 0.0)) for e in Emotion]


def generate_signature(raw: str, interpretation: str,
                       emotions: Dict[Emotion, float]) -> List[float]:
    """
    Build the qualia signature for an event.

    Args:
        raw: Raw event text
        interpretation: Derived interpretation text
        emotions: Emotional resonance of the event

    Returns:
        List[float]: Signature of length SIGNATURE_LENGTH
    """
    seed = _byte_sum(raw) ^ (_byte_sum(interpretation) << 1)
    return expand_seed(seed) + emotion_vector(emotions)


def signature_distance(a: Sequence[float], b: Sequence[float]) -> float:
    """
    Distance between two signatures.

    Euclidean for equal lengths, infinite otherwise.
    """
    return euclidean_distance(a, b)


def is_similar(a: Sequence[float], b: Sequence[float], threshold: float) -> bool:
    distance = signature_distance(a, b)
    return not math.isinf(distance) and distance < threshold
