"""Peer protocol: envelopes, sync and transports."""

from cosmicmind.network.protocol import Envelope, MessageType, decode_envelope, encode_envelope
from cosmicmind.network.service import PeerService
from cosmicmind.network.sync import PeerSync, merge_truth, merge_truths
from cosmicmind.network.transport import LoopbackTransport, TcpTransport, Transport

__all__ = [
    "Envelope",
    "MessageType",
    "encode_envelope",
    "decode_envelope",
    "PeerSync",
    "PeerService",
    "merge_truth",
    "merge_truths",
    "Transport",
    "LoopbackTransport",
    "TcpTransport",
]
