"""
CosmicMind: a cognitive state engine for long-running agents.

The engine ingests discrete text events as frames, links similar frames into
a tapestry, and periodically runs a cognition cycle that:
- synthesizes deduplicated truths from the most salient frames
- derives falsifiable hypotheses and watches for their violation
- nudges goal priorities and decides on at most one action
- persists a versioned continuity snapshot

Peer agents exchange truths over a small envelope protocol and merge them
with a trust weight chosen by the sender.
"""

__version__ = "0.1.0"

from cosmicmind.engine import CosmicMind
from cosmicmind.models import Action, Emotion, Goal, GoalStatus, SelfConcept

__all__ = ["CosmicMind", "SelfConcept", "Goal", "GoalStatus", "Emotion", "Action"]
