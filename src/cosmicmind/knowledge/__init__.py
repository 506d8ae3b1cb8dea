"""Knowledge layer: truth and hypothesis synthesis, hypothesis monitoring."""

from cosmicmind.knowledge.monitor import check_hypotheses
from cosmicmind.knowledge.synthesis import derive_hypotheses, synthesize_truths

__all__ = ["synthesize_truths", "derive_hypotheses", "check_hypotheses"]
