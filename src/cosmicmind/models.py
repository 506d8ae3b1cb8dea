"""
Core records of the cognitive state engine.

Frames, Truths, Hypotheses, Goals and the Self-Concept are plain dataclasses
with explicit ``to_dict``/``from_dict`` converters so that the continuity
store and the peer protocol share one JSON shape.
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional, Set

from cosmicmind.utils import clamp, from_iso, now, to_iso


def new_id() -> str:
    """Fresh identity for a record."""
    return str(uuid.uuid4())


class Emotion(str, Enum):
    """Enumerated emotion labels. Declaration order defines signature slots."""
    JOY = "joy"
    SADNESS = "sadness"
    FEAR = "fear"
    ANGER = "anger"
    SURPRISE = "surprise"
    DISGUST = "disgust"
    CURIOSITY = "curiosity"
    AWE = "awe"


def _emotions_to_dict(values: Dict[Emotion, float]) -> Dict[str, float]:
    return {emotion.value: float(v) for emotion, v in values.items()}


def _emotions_from_dict(data: Optional[Dict[str, float]]) -> Dict[Emotion, float]:
    result = {}
    for label, value in (data or {}).items():
        try:
            result[Emotion(label)] = float(value)
        except ValueError:
            # Unknown labels from newer peers or snapshots are dropped.
            continue
    return result


class EmotionalMatrix:
    """
    Current affective intensities per emotion.

    Every emotion starts at the neutral midpoint 0.5. Modulation adds
    ``influence * weight`` to each emotion present in the influence mapping
    and clamps to [0, 1]; absent emotions are left unchanged.
    """

    NEUTRAL = 0.5

    def __init__(self, state: Optional[Dict[Emotion, float]] = None):
        self.state: Dict[Emotion, float] = {e: self.NEUTRAL for e in Emotion}
        if state:
            self.state.update(state)

    def modulate(self, influence: Dict[Emotion, float], weight: float) -> None:
        for emotion, value in influence.items():
            current = self.state.get(emotion, self.NEUTRAL)
            self.state[emotion] = clamp(current + value * weight)

    def describe(self) -> str:
        significant = sorted(
            ((e, v) for e, v in self.state.items() if v > 0.05),
            key=lambda item: item[1],
            reverse=True
        )
        if not significant:
            return "neutral"
        return ", ".join(f"{e.value}: {v:.2f}" for e, v in significant)

    def snapshot(self) -> Dict[Emotion, float]:
        return dict(self.state)

    def __repr__(self):
        return f"EmotionalMatrix({self.describe()})"


@dataclass
class Frame:
    """
    A recorded interpretation of one input event.

    Everything except salience and connections is fixed at creation.

    Attributes:
        id: Stable identity
        timestamp: Creation time (UTC)
        raw_input: Raw event text
        interpretation: Derived descriptive text
        emotional_resonance: Emotion -> intensity in [0, 1]
        signature: Qualia signature vector
        salience: Attentional weight in [0, 1]
        connections: Ids of similarity-linked frames
    """
    id: str
    timestamp: datetime
    raw_input: str
    interpretation: str
    emotional_resonance: Dict[Emotion, float]
    signature: List[float]
    salience: float = 0.5
    connections: Set[str] = field(default_factory=set)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "timestamp": to_iso(self.timestamp),
            "raw_input": self.raw_input,
            "interpretation": self.interpretation,
            "emotional_resonance": _emotions_to_dict(self.emotional_resonance),
            "signature": [float(v) for v in self.signature],
            "salience": self.salience,
            "connections": sorted(self.connections),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Frame":
        return cls(
            id=data["id"],
            timestamp=from_iso(data["timestamp"]),
            raw_input=data["raw_input"],
            interpretation=data.get("interpretation", ""),
            emotional_resonance=_emotions_from_dict(data.get("emotional_resonance")),
            signature=[float(v) for v in data.get("signature", [])],
            salience=float(data.get("salience", 0.5)),
            connections=set(data.get("connections", [])),
        )


@dataclass
class Truth:
    """
    A synthesized generalization supported by several frames.

    Two truths with the same ``principle`` text are the same truth; the
    store reconciles them instead of keeping both.
    """
    concept: str
    supporting_frames: Set[str]
    confidence: float
    principle: str
    id: str = field(default_factory=new_id)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "concept": self.concept,
            "supporting_frames": sorted(self.supporting_frames),
            "confidence": self.confidence,
            "principle": self.principle,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Truth":
        return cls(
            id=data["id"],
            concept=data["concept"],
            supporting_frames=set(data.get("supporting_frames", [])),
            confidence=float(data["confidence"]),
            principle=data["principle"],
        )


@dataclass
class Hypothesis:
    """A falsifiable prediction derived from a truth. Once violated, stays violated."""
    prediction: str
    truth_id: str
    confidence: float
    violated: bool = False
    id: str = field(default_factory=new_id)

    def mark_violated(self) -> float:
        """
        Flip the violated flag and halve confidence.

        Returns:
            float: Confidence before the violation (the surprise it carries)
        """
        before = self.confidence
        self.violated = True
        self.confidence = before * 0.5
        return before

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "prediction": self.prediction,
            "truth_id": self.truth_id,
            "confidence": self.confidence,
            "violated": self.violated,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Hypothesis":
        return cls(
            id=data["id"],
            prediction=data["prediction"],
            truth_id=data["truth_id"],
            confidence=float(data["confidence"]),
            violated=bool(data.get("violated", False)),
        )


class GoalStatus(str, Enum):
    ACTIVE = "active"
    ACHIEVED = "achieved"
    FAILED = "failed"


@dataclass
class Goal:
    description: str
    priority: float
    status: GoalStatus = GoalStatus.ACTIVE
    id: str = field(default_factory=new_id)

    @property
    def is_active(self) -> bool:
        return self.status == GoalStatus.ACTIVE

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "description": self.description,
            "priority": self.priority,
            "status": self.status.value,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Goal":
        return cls(
            id=data["id"],
            description=data["description"],
            priority=float(data["priority"]),
            status=GoalStatus(data.get("status", "active")),
        )


@dataclass
class Action:
    """One decision produced by a cognition cycle."""
    intent: str
    payload: str
    justification: str

    def to_dict(self) -> dict:
        return {
            "intent": self.intent,
            "payload": self.payload,
            "justification": self.justification,
        }


@dataclass
class SelfConcept:
    """
    The agent's identity, values and goal set.

    Goals are keyed by id so they can be mutated in place; content equality
    plays no part in goal identity.
    """
    identity: str
    core_values: Set[str] = field(default_factory=set)
    limitations: Set[str] = field(default_factory=set)
    understanding: str = ""
    goals: Dict[str, Goal] = field(default_factory=dict)

    @classmethod
    def create(cls, identity: str, core_values=(), limitations=(),
               understanding: str = "", goals=()) -> "SelfConcept":
        """Build a self-concept from plain iterables of values and goals."""
        return cls(
            identity=identity,
            core_values=set(core_values),
            limitations=set(limitations),
            understanding=understanding,
            goals={g.id: g for g in goals},
        )

    def active_goals(self) -> List[Goal]:
        return [g for g in self.goals.values() if g.is_active]

    def to_dict(self) -> dict:
        return {
            "identity": self.identity,
            "core_values": sorted(self.core_values),
            "limitations": sorted(self.limitations),
            "understanding": self.understanding,
            "goals": [g.to_dict() for g in sorted(self.goals.values(), key=lambda g: g.id)],
        }

    @classmethod
    def from_dict(cls, data: dict) -> "SelfConcept":
        goals = [Goal.from_dict(g) for g in data.get("goals", [])]
        return cls(
            identity=data["identity"],
            core_values=set(data.get("core_values", [])),
            limitations=set(data.get("limitations", [])),
            understanding=data.get("understanding", ""),
            goals={g.id: g for g in goals},
        )


@dataclass
class Snapshot:
    """
    Durable form of the whole engine state.

    Attributes:
        version: Schema version
        saved_at: Save time
        agent_id: Owning agent identity
        telos: Mission statement at save time
        frames: All frames
        truths: All truths
        hypotheses: All hypotheses
        self_concept: Identity, values and goals
        emotions: Emotional matrix state
        cycle_count: Cognition cycles completed
    """
    version: int
    saved_at: datetime
    agent_id: str
    telos: str
    frames: List[Frame]
    truths: List[Truth]
    hypotheses: List[Hypothesis]
    self_concept: SelfConcept
    emotions: Dict[Emotion, float]
    cycle_count: int

    def to_dict(self) -> dict:
        return {
            "version": self.version,
            "saved_at": to_iso(self.saved_at),
            "agent_id": self.agent_id,
            "telos": self.telos,
            "frames": [f.to_dict() for f in self.frames],
            "truths": [t.to_dict() for t in self.truths],
            "hypotheses": [h.to_dict() for h in self.hypotheses],
            "self_concept": self.self_concept.to_dict(),
            "emotions": _emotions_to_dict(self.emotions),
            "cycle_count": self.cycle_count,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Snapshot":
        return cls(
            version=int(data["version"]),
            saved_at=from_iso(data.get("saved_at")) or now(),
            agent_id=data.get("agent_id", ""),
            telos=data.get("telos", ""),
            frames=[Frame.from_dict(f) for f in data.get("frames", [])],
            truths=[Truth.from_dict(t) for t in data.get("truths", [])],
            hypotheses=[Hypothesis.from_dict(h) for h in data.get("hypotheses", [])],
            self_concept=SelfConcept.from_dict(data["self_concept"]),
            emotions=_emotions_from_dict(data.get("emotions")),
            cycle_count=int(data.get("cycle_count", 0)),
        )
