"""
Peer wire format.

An envelope is a self-describing JSON record::

    {"sender": "...", "type": "share-truths", "payload": {...}, "timestamp": "..."}

The payload shape depends on the message type. Envelopes are transient and
never persisted.
"""

import json
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional

from cosmicmind.errors import DecodeFailed
from cosmicmind.models import Truth
from cosmicmind.utils import from_iso, now, to_iso


class MessageType(str, Enum):
    INTRODUCE = "introduce"
    SHARE_TRUTHS = "share-truths"
    REQUEST_SYNC = "request-sync"
    ACCEPT_SYNC = "accept-sync"
    PING = "ping"


@dataclass
class Envelope:
    """One peer-to-peer protocol message."""
    sender: str
    type: MessageType
    payload: Optional[dict] = None
    timestamp: datetime = field(default_factory=now)

    def to_dict(self) -> dict:
        return {
            "sender": self.sender,
            "type": self.type.value,
            "payload": self.payload,
            "timestamp": to_iso(self.timestamp),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Envelope":
        return cls(
            sender=data["sender"],
            type=MessageType(data["type"]),
            payload=data.get("payload"),
            timestamp=from_iso(data["timestamp"]),
        )


@dataclass
class IntroducePayload:
    id: str
    identity: str
    telos: str

    def to_dict(self) -> dict:
        return {"id": self.id, "identity": self.identity, "telos": self.telos}

    @classmethod
    def from_dict(cls, data: dict) -> "IntroducePayload":
        return cls(id=data["id"], identity=data["identity"], telos=data["telos"])


@dataclass
class ShareTruthsPayload:
    """Truths offered by a peer, with the trust weight of its sharing policy."""
    truths: List[Truth]
    trust_weight: float

    def to_dict(self) -> dict:
        return {
            "truths": [t.to_dict() for t in self.truths],
            "trust_weight": self.trust_weight,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ShareTruthsPayload":
        return cls(
            truths=[Truth.from_dict(t) for t in data["truths"]],
            trust_weight=float(data["trust_weight"]),
        )


@dataclass
class RequestSyncPayload:
    since: Optional[datetime] = None

    def to_dict(self) -> dict:
        return {"since": to_iso(self.since)}

    @classmethod
    def from_dict(cls, data: dict) -> "RequestSyncPayload":
        return cls(since=from_iso(data.get("since")))


def encode_envelope(envelope: Envelope) -> bytes:
    """Serialize an envelope to UTF-8 JSON bytes with stable key order."""
    return json.dumps(envelope.to_dict(), sort_keys=True).encode("utf-8")


def decode_envelope(data: bytes) -> Envelope:
    """
    Parse envelope bytes.

    Args:
        data: Raw buffer from a transport

    Returns:
        Envelope

    Raises:
        DecodeFailed: If the buffer is not a well-formed envelope
    """
    try:
        raw = json.loads(data.decode("utf-8"))
        if not isinstance(raw, dict):
            raise TypeError("envelope must be a JSON object")
        return Envelope.from_dict(raw)
    except (UnicodeDecodeError, json.JSONDecodeError, KeyError, TypeError,
            ValueError, AttributeError) as e:
        raise DecodeFailed(f"Malformed envelope: {e}") from e


def decode_payload(envelope: Envelope, payload_cls):
    """
    Parse an envelope's payload into ``payload_cls``.

    Raises:
        DecodeFailed: If the payload is missing or has the wrong shape
    """
    if not isinstance(envelope.payload, dict):
        raise DecodeFailed(f"{envelope.type.value} envelope carries no payload")
    try:
        return payload_cls.from_dict(envelope.payload)
    except (KeyError, TypeError, ValueError, AttributeError) as e:
        raise DecodeFailed(f"Malformed {envelope.type.value} payload: {e}") from e
