"""Perception strata: signatures, interpretation, frame building and the tapestry."""

from cosmicmind.memory.builder import build_frame
from cosmicmind.memory.signature import generate_signature, signature_distance
from cosmicmind.memory.tapestry import Tapestry

__all__ = ["Tapestry", "build_frame", "generate_signature", "signature_distance"]
