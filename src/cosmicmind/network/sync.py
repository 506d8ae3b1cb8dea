"""
Peer sync: envelope dispatch and trust-weighted truth merging.

Dispatch table:
- introduce     -> reply share-truths with every local truth
- share-truths  -> merge inbound truths
- request-sync  -> same reply as introduce
- accept-sync   -> acknowledged, no state change
- ping          -> acknowledged, no state change

Merge rule for an inbound truth with trust weight w: a local truth with the
same principle text becomes the union of both supporting-frame sets with
confidence min(1, local + inbound * w); otherwise the inbound truth is
inserted unchanged. The weight belongs to the sender's sharing policy and is
not validated here.
"""

import dataclasses
import logging
from datetime import datetime
from typing import TYPE_CHECKING, Callable, Dict, Iterable, Optional

from cosmicmind.errors import DecodeFailed
from cosmicmind.models import Truth, new_id
from cosmicmind.network.protocol import (
    Envelope,
    IntroducePayload,
    MessageType,
    ShareTruthsPayload,
    decode_envelope,
    decode_payload,
    encode_envelope,
)

if TYPE_CHECKING:
    from cosmicmind.engine import CosmicMind

logger = logging.getLogger(__name__)

Reply = Callable[[bytes], None]


def merge_truth(store: Dict[str, Truth], inbound: Truth, trust_weight: float) -> bool:
    """
    Merge one inbound truth into an identity-keyed truth store.

    The local truth keeps its identity and concept label when reconciled.
    A new truth whose id is already taken locally is stored under a fresh id.

    Args:
        store: Truth id -> Truth (mutated in place)
        inbound: Truth received from a peer
        trust_weight: Sender's trust weight

    Returns:
        bool: True if the truth was new, False if it reinforced a local one
    """
    existing = next((t for t in store.values() if t.principle == inbound.principle), None)
    if existing is None:
        if inbound.id in store:
            # Id collision with an unrelated local truth: keep both.
            inbound = dataclasses.replace(inbound, id=new_id())
        store[inbound.id] = inbound
        return True
    store[existing.id] = Truth(
        id=existing.id,
        concept=existing.concept,
        supporting_frames=existing.supporting_frames | inbound.supporting_frames,
        confidence=min(1.0, existing.confidence + inbound.confidence * trust_weight),
        principle=existing.principle,
    )
    return False


def merge_truths(store: Dict[str, Truth], truths: Iterable[Truth], trust_weight: float) -> int:
    """Merge a batch of inbound truths; returns how many were new."""
    return sum(1 for t in truths if merge_truth(store, t, trust_weight))


class PeerSync:
    """
    Protocol handler bound to one engine.

    Attributes:
        mind: Engine whose truth set is shared and merged
        share_trust: Trust weight attached to outbound shares
        known_peers: Sender id -> timestamp of its last envelope
    """

    def __init__(self, mind: "CosmicMind", share_trust: float = 0.6):
        self.mind = mind
        self.share_trust = share_trust
        self.known_peers: Dict[str, datetime] = {}

    def introduction(self) -> Envelope:
        payload = IntroducePayload(
            id=self.mind.agent_id,
            identity=self.mind.self_concept.identity,
            telos=self.mind.telos,
        )
        return Envelope(self.mind.agent_id, MessageType.INTRODUCE, payload.to_dict())

    def share_truths(self) -> Envelope:
        payload = ShareTruthsPayload(truths=self.mind.list_truths(), trust_weight=self.share_trust)
        return Envelope(self.mind.agent_id, MessageType.SHARE_TRUTHS, payload.to_dict())

    def handle(self, data: bytes, reply: Optional[Reply] = None) -> Optional[Envelope]:
        """
        Handle one inbound buffer.

        Malformed envelopes and payloads are logged and ignored.

        Args:
            data: Raw envelope bytes
            reply: Best-effort send back to the originating peer

        Returns:
            The decoded envelope, or None if it could not be decoded
        """
        try:
            envelope = decode_envelope(data)
        except DecodeFailed as e:
            logger.warning(f"Failed to decode inbound envelope: {e}",
                           extra={"operation": "peer_decode", "error_type": type(e).__name__})
            return None
        self.dispatch(envelope, reply)
        return envelope

    def dispatch(self, envelope: Envelope, reply: Optional[Reply] = None) -> None:
        logger.info(f"Received {envelope.type.value} from {envelope.sender}.")
        self.known_peers[envelope.sender] = envelope.timestamp

        if envelope.type == MessageType.INTRODUCE:
            if envelope.payload is not None:
                try:
                    intro = decode_payload(envelope, IntroducePayload)
                    logger.info(f"Peer introduced: {intro.identity} [{intro.id}] - {intro.telos}")
                except DecodeFailed as e:
                    logger.warning(f"Ignoring introduce payload: {e}")
            self._send_truths(reply)
        elif envelope.type == MessageType.SHARE_TRUTHS:
            try:
                shared = decode_payload(envelope, ShareTruthsPayload)
            except DecodeFailed as e:
                logger.warning(f"Ignoring share-truths payload: {e}",
                               extra={"operation": "peer_merge", "error_type": type(e).__name__})
                return
            self.mind.integrate_truths(shared.truths, shared.trust_weight)
        elif envelope.type == MessageType.REQUEST_SYNC:
            self._send_truths(reply)
        elif envelope.type == MessageType.ACCEPT_SYNC:
            logger.info("Sync accepted.")

    def _send_truths(self, reply: Optional[Reply]) -> None:
        if reply is None:
            return
        reply(encode_envelope(self.share_truths()))
