"""
CosmicMind: orchestrator of the cognitive state engine.

Owns the shared aggregate (tapestry, truths, hypotheses, self-concept,
emotional matrix) and serializes every writer behind one lock:

- ingest: event -> frame -> hypothesis check -> links -> tapestry
- cognize: one full cognition cycle, persisted at the end
- integrate_truths: trust-weighted merge of peer truths

Lock acquisition order is the total order of mutations, so any ingestion
that returned before a cycle started is visible to that cycle.
"""

import copy
import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Dict, Iterable, List, Optional

import networkx as nx

from cosmicmind.config import MindConfig
from cosmicmind.dynamics import deliberate, evaluate_goals, metamorphose
from cosmicmind.errors import IncompatibleSnapshotVersion, PersistenceReadFailed, PersistenceWriteFailed
from cosmicmind.knowledge import check_hypotheses, derive_hypotheses, synthesize_truths
from cosmicmind.memory import Tapestry, build_frame
from cosmicmind.memory.tapestry import DEFAULT_SIMILARITY_THRESHOLD
from cosmicmind.models import (
    Action,
    EmotionalMatrix,
    Frame,
    Hypothesis,
    SelfConcept,
    Snapshot,
    Truth,
    new_id,
)
from cosmicmind.network.protocol import encode_envelope
from cosmicmind.network.sync import PeerSync, merge_truths
from cosmicmind.network.transport import Transport
from cosmicmind.storage import SCHEMA_VERSION, ContinuityStore
from cosmicmind.utils import clamp, now

logger = logging.getLogger(__name__)

INGEST_EMOTION_WEIGHT = 0.8
DEFAULT_FOCUS_SIZE = 12


class CosmicMind:
    """
    A long-running cognitive agent.

    Attributes:
        agent_id: Genesis identity
        telos: Fixed mission statement
        ethical_framework: Guiding principles (carried, not evaluated)
        tapestry: All frames, similarity-linked
        truths: Truth id -> Truth
        hypotheses: Hypothesis id -> Hypothesis
        self_concept: Identity, values and goals
        emotions: Emotional matrix
        cycle_count: Completed cognition cycles
        store: Continuity store, or None for an ephemeral mind
        peer_sync: Peer protocol handler bound to this mind
    """

    def __init__(self, telos: str, self_concept: SelfConcept,
                 ethical_framework: Iterable[str] = (),
                 agent_id: Optional[str] = None,
                 store: Optional[ContinuityStore] = None,
                 focus_size: int = DEFAULT_FOCUS_SIZE,
                 similarity_threshold: float = DEFAULT_SIMILARITY_THRESHOLD,
                 share_trust: float = 0.6,
                 load: bool = True):
        """
        Initialize a mind, resuming from its continuity snapshot if present.

        Args:
            telos: Mission statement
            self_concept: Initial self-concept (replaced by a loaded snapshot)
            ethical_framework: Guiding principles
            agent_id: Genesis identity (fresh UUID when None)
            store: Continuity store; None disables persistence
            focus_size: Frames in the attentional focus
            similarity_threshold: Maximum signature distance for a link
            share_trust: Trust weight attached to outbound truth shares
            load: Whether to load the snapshot at startup
        """
        self.agent_id = agent_id or new_id()
        self.telos = telos
        self.ethical_framework = list(ethical_framework)
        self.self_concept = self_concept
        self.focus_size = focus_size

        self.tapestry = Tapestry(similarity_threshold)
        self.truths: Dict[str, Truth] = {}
        self.hypotheses: Dict[str, Hypothesis] = {}
        self.emotions = EmotionalMatrix()
        self.cycle_count = 0

        self.store = store
        self.peer_sync = PeerSync(self, share_trust=share_trust)
        self.transport: Optional[Transport] = None

        self._action_buffer: List[Action] = []
        self._lock = threading.RLock()
        self._executor: Optional[ThreadPoolExecutor] = None

        if load and store is not None:
            self.load_state()

    @classmethod
    def from_config(cls, config: MindConfig, telos: str, self_concept: SelfConcept,
                    ethical_framework: Iterable[str] = ()) -> "CosmicMind":
        """Build a persistent mind from configuration."""
        return cls(
            telos=telos,
            self_concept=self_concept,
            ethical_framework=ethical_framework,
            agent_id=config.agent_id,
            store=ContinuityStore(config.state_dir, config.agent_id),
            focus_size=config.focus_size,
            similarity_threshold=config.similarity_threshold,
            share_trust=config.share_trust,
        )

    # =========================================================================
    # Perception
    # =========================================================================

    def ingest(self, text: str) -> Frame:
        """
        Turn one raw event into a frame and weave it into the tapestry.

        Args:
            text: Raw event text

        Returns:
            Copy of the inserted frame
        """
        with self._lock:
            frame = build_frame(text)
            surprise = check_hypotheses(frame, self.hypotheses.values(), self.emotions)
            frame.salience = clamp(frame.salience + surprise)
            self._boost_for_goals(frame)
            frame.connections = self.tapestry.link(frame)
            self.emotions.modulate(frame.emotional_resonance, INGEST_EMOTION_WEIGHT)
            self.tapestry.upsert(frame)
            logger.info(
                f"New phenomenon (salience: {frame.salience:.2f}, "
                f"links: {len(frame.connections)}): {frame.interpretation}"
            )
            return copy.deepcopy(frame)

    def ingest_async(self, text: str) -> Future:
        """
        Queue an ingestion without waiting for it.

        Queued ingestions run one at a time, in submission order, and still
        serialize against cycles through the engine lock.
        """
        with self._lock:
            if self._executor is None:
                self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="ingest")
            executor = self._executor
        return executor.submit(self.ingest, text)

    def _boost_for_goals(self, frame: Frame) -> None:
        # Events mentioning a goal's final word draw attention in proportion to its priority.
        for goal in self.self_concept.active_goals():
            words = goal.description.split()
            if words and words[-1] in frame.raw_input:
                frame.salience = clamp(frame.salience + goal.priority)

    # =========================================================================
    # Cognition
    # =========================================================================

    def cognize(self) -> List[Action]:
        """
        Run one cognition cycle.

        Stages, in order: attend, reflect, hypothesize, evaluate goals,
        deliberate, metamorphose, persist. Persistence failures are logged
        and do not abort the cycle.

        Returns:
            Actions produced this cycle (the pending buffer is cleared)
        """
        with self._lock:
            self.cycle_count += 1
            logger.info(f"--- Beginning cognitive cycle {self.cycle_count} ---")

            focus = self.tapestry.focus(self.focus_size)
            logger.info(f"Attentional focus on {len(focus)} frames.")

            new_truths = synthesize_truths(focus, self.truths.values())
            for truth in new_truths:
                self.truths[truth.id] = truth

            new_hypotheses = derive_hypotheses(new_truths)
            for hypothesis in new_hypotheses:
                self.hypotheses[hypothesis.id] = hypothesis

            evaluate_goals(new_truths, self.self_concept)

            action = deliberate(self.self_concept)
            if action is not None:
                self._action_buffer.append(action)

            metamorphose(new_truths, new_hypotheses, self.self_concept, self.emotions)

            self.persist()

            actions = list(self._action_buffer)
            self._action_buffer.clear()
            return actions

    # =========================================================================
    # Continuity
    # =========================================================================

    def snapshot(self) -> Snapshot:
        """Consistent deep copy of the whole engine state."""
        with self._lock:
            return Snapshot(
                version=SCHEMA_VERSION,
                saved_at=now(),
                agent_id=self.agent_id,
                telos=self.telos,
                frames=copy.deepcopy(self.tapestry.frames()),
                truths=copy.deepcopy(list(self.truths.values())),
                hypotheses=copy.deepcopy(list(self.hypotheses.values())),
                self_concept=copy.deepcopy(self.self_concept),
                emotions=self.emotions.snapshot(),
                cycle_count=self.cycle_count,
            )

    def persist(self) -> bool:
        """
        Save a snapshot.

        The snapshot and the write happen under the engine lock, so saves land
        on disk in mutation order.

        Returns:
            bool: True if written; False if persistence is disabled or failed
        """
        if self.store is None:
            return False
        with self._lock:
            try:
                self.store.save(self.snapshot())
            except PersistenceWriteFailed as e:
                logger.error(f"Persistence failed: {e}",
                             extra={"operation": "persist", "error_type": type(e).__name__})
                return False
        return True

    def load_state(self) -> bool:
        """
        Load and merge the continuity snapshot.

        Unreadable or incompatible snapshots are logged and the mind keeps
        its fresh in-memory state.

        Returns:
            bool: True if a snapshot was applied
        """
        if self.store is None:
            return False
        try:
            snapshot = self.store.load()
        except IncompatibleSnapshotVersion as e:
            logger.error(f"Ignoring incompatible snapshot: {e}",
                         extra={"operation": "load", "error_type": type(e).__name__})
            return False
        except PersistenceReadFailed as e:
            logger.error(f"Failed to load persisted state: {e}",
                         extra={"operation": "load", "error_type": type(e).__name__})
            return False
        if snapshot is None:
            return False
        self.restore(snapshot)
        return True

    def restore(self, snapshot: Snapshot) -> None:
        """
        Merge a snapshot into live state.

        Frames, truths and hypotheses merge by identity; the self-concept,
        emotional state and cycle counter are replaced.
        """
        with self._lock:
            for frame in snapshot.frames:
                self.tapestry.upsert(frame)
            for truth in snapshot.truths:
                self.truths[truth.id] = truth
            for hypothesis in snapshot.hypotheses:
                self.hypotheses[hypothesis.id] = hypothesis
            self.self_concept = snapshot.self_concept
            self.emotions = EmotionalMatrix(snapshot.emotions)
            self.cycle_count = snapshot.cycle_count

    # =========================================================================
    # Peers
    # =========================================================================

    def integrate_truths(self, truths: Iterable[Truth], trust_weight: float) -> int:
        """
        Merge truths shared by a peer.

        Returns:
            int: Number of truths that were new
        """
        with self._lock:
            added = merge_truths(self.truths, truths, trust_weight)
        logger.info(f"Integrated {added} external truths (trust weight: {trust_weight}).")
        return added

    def connect_transport(self, transport: Transport) -> None:
        """Attach a transport so inbound buffers reach the peer protocol."""
        transport.attach(self.peer_sync.handle)
        self.transport = transport

    def broadcast_introduce(self) -> int:
        """Introduce this mind to every connected peer."""
        if self.transport is None:
            return 0
        return self.transport.broadcast(encode_envelope(self.peer_sync.introduction()))

    def share_truths(self, peer_id: str) -> bool:
        """Push every local truth to one peer."""
        if self.transport is None:
            return False
        return self.transport.send(peer_id, encode_envelope(self.peer_sync.share_truths()))

    # =========================================================================
    # Queries
    # =========================================================================

    def list_truths(self) -> List[Truth]:
        with self._lock:
            return copy.deepcopy(list(self.truths.values()))

    def list_frames(self) -> List[Frame]:
        with self._lock:
            return copy.deepcopy(self.tapestry.frames())

    def list_hypotheses(self) -> List[Hypothesis]:
        with self._lock:
            return copy.deepcopy(list(self.hypotheses.values()))

    def get_truth(self, truth_id: str) -> Optional[Truth]:
        with self._lock:
            truth = self.truths.get(truth_id)
            return copy.deepcopy(truth) if truth is not None else None

    def get_frame(self, frame_id: str) -> Optional[Frame]:
        with self._lock:
            frame = self.tapestry.get(frame_id)
            return copy.deepcopy(frame) if frame is not None else None

    def tapestry_graph(self) -> nx.Graph:
        """Copy of the frame similarity graph."""
        with self._lock:
            return self.tapestry.to_graph()

    def summary(self) -> str:
        """Human-readable multi-line status block."""
        with self._lock:
            lines = [
                "--- CosmicMind Summary ---",
                f"ID: {self.agent_id}",
                f"Identity: {self.self_concept.identity}",
                f"Telos: {self.telos}",
                f"Cycle Count: {self.cycle_count}",
                f"Frames count: {len(self.tapestry)}",
                f"Frame clusters: {len(self.tapestry.clusters())}",
                f"Derived truths: {len(self.truths)}",
                f"Active hypotheses: {sum(1 for h in self.hypotheses.values() if not h.violated)}",
                f"Active goals: {len(self.self_concept.active_goals())}",
                f"Known peers: {len(self.peer_sync.known_peers)}",
                f"Emotional state: {self.emotions.describe()}",
                "--- End Summary ---",
            ]
        return "\n".join(lines)

    def close(self) -> None:
        """Drain queued ingestions."""
        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None

    def __repr__(self):
        return (f"CosmicMind(id={self.agent_id[:8]}, frames={len(self.tapestry)}, "
                f"truths={len(self.truths)}, cycle={self.cycle_count})")
