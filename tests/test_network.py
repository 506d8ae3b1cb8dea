"""
Tests for the peer protocol: envelopes, truth merging and transports.
"""

import asyncio
import json
import threading
import time
from unittest.mock import MagicMock

import numpy as np
import pytest

from cosmicmind import CosmicMind
from cosmicmind.config import MindConfig
from cosmicmind.errors import DecodeFailed
from cosmicmind.knowledge.synthesis import GREETING_PRINCIPLE
from cosmicmind.models import Truth
from cosmicmind.network import (
    Envelope,
    LoopbackTransport,
    MessageType,
    TcpTransport,
    decode_envelope,
    encode_envelope,
    merge_truth,
    merge_truths,
)
from cosmicmind.network.protocol import IntroducePayload, ShareTruthsPayload, decode_payload

from conftest import make_self_concept


def make_peer(agent_id, greetings=0):
    mind = CosmicMind("Share knowledge", make_self_concept(), agent_id=agent_id)
    for _ in range(greetings):
        mind.ingest("Hello?")
    if greetings:
        mind.cognize()
    return mind


def link(a, b):
    ta, tb = LoopbackTransport(a.agent_id), LoopbackTransport(b.agent_id)
    ta.connect(tb)
    a.connect_transport(ta)
    b.connect_transport(tb)
    return ta, tb


class TestEnvelope:
    """Test envelope encoding and guarded decoding."""

    def test_encode_decode(self):
        envelope = Envelope("agent-a", MessageType.PING)
        decoded = decode_envelope(encode_envelope(envelope))

        assert decoded.sender == "agent-a"
        assert decoded.type == MessageType.PING
        assert decoded.payload is None
        assert decoded.timestamp == envelope.timestamp

    def test_wire_type_names(self):
        raw = json.loads(encode_envelope(Envelope("a", MessageType.SHARE_TRUTHS, {})))

        assert raw["type"] == "share-truths"
        assert set(raw) == {"sender", "type", "payload", "timestamp"}

    def test_share_truths_payload(self):
        truth = Truth("C", {"f1", "f2"}, 0.7, "P")
        envelope = Envelope("a", MessageType.SHARE_TRUTHS,
                            ShareTruthsPayload([truth], 0.6).to_dict())
        payload = decode_payload(decode_envelope(encode_envelope(envelope)), ShareTruthsPayload)

        assert payload.truths == [truth]
        assert payload.trust_weight == 0.6

    @pytest.mark.parametrize("data", [
        b"not json",
        b"[1, 2]",
        b"\xff\xfe",
        b'{"sender": "a", "type": "bogus", "timestamp": "2024-01-01T00:00:00+00:00"}',
        b'{"type": "ping", "timestamp": "2024-01-01T00:00:00+00:00"}',
    ])
    def test_malformed_envelope(self, data):
        with pytest.raises(DecodeFailed):
            decode_envelope(data)

    def test_missing_payload(self):
        with pytest.raises(DecodeFailed):
            decode_payload(Envelope("a", MessageType.INTRODUCE), IntroducePayload)


class TestMergeTruth:
    """Test trust-weighted reconciliation."""

    def test_new_truth_inserted(self):
        store = {}
        inbound = Truth("C", {"f1"}, 0.7, "P")

        assert merge_truth(store, inbound, 0.6) is True
        assert store == {inbound.id: inbound}

    def test_same_principle_reinforced(self):
        local = Truth("Recurring Greeting", {"f1", "f2"}, 0.9, GREETING_PRINCIPLE, id="local")
        inbound = Truth("Greeting", {"f3"}, 0.9, GREETING_PRINCIPLE, id="remote")
        store = {local.id: local}

        assert merge_truth(store, inbound, 0.6) is False
        merged = store["local"]
        assert list(store) == ["local"]
        assert merged.concept == "Recurring Greeting"
        assert merged.supporting_frames == {"f1", "f2", "f3"}
        assert merged.confidence == 1.0

    def test_partial_trust(self):
        store = {"l": Truth("C", {"f1"}, 0.2, "P", id="l")}
        merge_truth(store, Truth("C", {"f1"}, 0.5, "P"), 0.6)

        assert np.isclose(store["l"].confidence, 0.5)

    def test_confidence_never_exceeds_one(self):
        store = {"l": Truth("C", set(), 0.95, "P", id="l")}
        for _ in range(5):
            merge_truth(store, Truth("C", set(), 1.0, "P"), 1.0)

        assert store["l"].confidence == 1.0

    def test_merge_batch_counts_new(self):
        store = {"l": Truth("C", set(), 0.5, "P", id="l")}
        added = merge_truths(store, [Truth("C", set(), 0.5, "P"), Truth("D", set(), 0.5, "Q")], 0.6)

        assert added == 1
        assert len(store) == 2

    def test_id_collision_keeps_local_truth(self):
        local = Truth("C", {"f1"}, 0.8, "local principle", id="shared-id")
        store = {local.id: local}

        assert merge_truth(store, Truth("D", {"f2"}, 0.5, "remote principle", id="shared-id"), 0.6)

        assert store["shared-id"] is local
        assert {t.principle for t in store.values()} == {"local principle", "remote principle"}
        assert len(store) == 2


class TestPeerSync:
    """Test dispatch between engines over a loopback link."""

    def test_introduce_pulls_truths(self):
        a = make_peer("agent-a", greetings=3)
        b = make_peer("agent-b")
        link(a, b)

        assert b.broadcast_introduce() == 1

        truths = b.list_truths()
        assert [t.principle for t in truths] == [GREETING_PRINCIPLE]
        assert np.isclose(truths[0].confidence, 0.9)
        assert "agent-b" in a.peer_sync.known_peers
        assert "agent-a" in b.peer_sync.known_peers

    def test_repeat_share_reinforces(self):
        a = make_peer("agent-a", greetings=3)
        b = make_peer("agent-b")
        link(a, b)
        b.broadcast_introduce()
        a.share_truths("agent-b")

        truths = b.list_truths()
        assert len(truths) == 1
        assert truths[0].confidence == 1.0
        assert truths[0].supporting_frames == a.list_truths()[0].supporting_frames

    def test_merge_into_existing_truth(self):
        a = make_peer("agent-a", greetings=3)
        b = make_peer("agent-b", greetings=3)
        link(a, b)
        a.share_truths("agent-b")

        truths = b.list_truths()
        assert len(truths) == 1
        assert truths[0].confidence == 1.0
        assert len(truths[0].supporting_frames) == 6

    def test_share_to_unknown_peer(self):
        a = make_peer("agent-a", greetings=3)
        link(a, make_peer("agent-b"))

        assert a.share_truths("agent-z") is False

    def test_no_transport(self):
        a = make_peer("agent-a")

        assert a.broadcast_introduce() == 0
        assert a.share_truths("agent-b") is False

    def test_malformed_buffer_ignored(self):
        a = make_peer("agent-a", greetings=3)
        before = a.list_truths()

        assert a.peer_sync.handle(b"garbage") is None
        assert a.list_truths() == before

    def test_malformed_payload_ignored(self):
        a = make_peer("agent-a")
        envelope = Envelope("agent-x", MessageType.SHARE_TRUTHS, {"truths": "oops", "trust_weight": 1})
        a.peer_sync.handle(encode_envelope(envelope))

        assert a.list_truths() == []
        assert "agent-x" in a.peer_sync.known_peers

    def test_ping_has_no_effect(self):
        a = make_peer("agent-a", greetings=3)
        replies = []
        a.peer_sync.handle(encode_envelope(Envelope("agent-x", MessageType.PING)), replies.append)

        assert replies == []
        assert len(a.list_truths()) == 1

    def test_request_sync_replies_with_truths(self):
        a = make_peer("agent-a", greetings=3)
        replies = []
        a.peer_sync.handle(encode_envelope(Envelope("agent-x", MessageType.REQUEST_SYNC, {})),
                           replies.append)

        assert len(replies) == 1
        reply = decode_envelope(replies[0])
        assert reply.type == MessageType.SHARE_TRUTHS
        assert reply.sender == "agent-a"
        shared = decode_payload(reply, ShareTruthsPayload)
        assert shared.trust_weight == 0.6
        assert [t.principle for t in shared.truths] == [GREETING_PRINCIPLE]


class TestTcpTransport:
    """Test the asyncio stream transport end to end."""

    def test_introduce_over_tcp(self):
        a = make_peer("agent-a", greetings=3)
        b = make_peer("agent-b")

        async def scenario():
            server = TcpTransport(port=0)
            client = TcpTransport(port=0)
            a.connect_transport(server)
            b.connect_transport(client)
            port = await server.start()
            peer_id = await client.connect("127.0.0.1", port)
            try:
                assert client.peers() == [peer_id]
                assert b.broadcast_introduce() == 1
                for _ in range(100):
                    if b.list_truths():
                        break
                    await asyncio.sleep(0.02)
            finally:
                await client.close()
                await server.close()

        asyncio.run(scenario())

        assert [t.principle for t in b.list_truths()] == [GREETING_PRINCIPLE]
        assert "agent-b" in a.peer_sync.known_peers

    def test_closed_connections_release_tasks(self):
        async def scenario():
            server = TcpTransport(port=0)
            client = TcpTransport(port=0)
            port = await server.start()
            await client.connect("127.0.0.1", port)
            for _ in range(100):
                if server._tasks:
                    break
                await asyncio.sleep(0.02)
            opened = len(server._tasks)
            await client.close()
            for _ in range(100):
                if not server._tasks:
                    break
                await asyncio.sleep(0.02)
            remaining = len(server._tasks)
            await server.close()
            return opened, remaining

        assert asyncio.run(scenario()) == (1, 0)

    def test_blocked_handler_does_not_stall_loop(self):
        a = make_peer("agent-a", greetings=3)
        b = make_peer("agent-b")
        held, release = threading.Event(), threading.Event()

        def hold_lock():
            with a._lock:
                held.set()
                release.wait(2)

        holder = threading.Thread(target=hold_lock)
        holder.start()
        held.wait(2)

        async def scenario():
            server = TcpTransport(port=0)
            client = TcpTransport(port=0)
            a.connect_transport(server)
            b.connect_transport(client)
            port = await server.start()
            await client.connect("127.0.0.1", port)
            try:
                b.broadcast_introduce()
                await asyncio.sleep(0.1)
                started = time.monotonic()
                await asyncio.sleep(0.05)
                stalled = time.monotonic() - started
                release.set()
                for _ in range(100):
                    if b.list_truths():
                        break
                    await asyncio.sleep(0.02)
            finally:
                release.set()
                await client.close()
                await server.close()
            return stalled

        stalled = asyncio.run(scenario())
        holder.join(5)

        assert stalled < 0.5
        assert [t.principle for t in b.list_truths()] == [GREETING_PRINCIPLE]

    def test_send_to_unknown_peer(self):
        assert TcpTransport().send("10.0.0.1:1", b"{}") is False

    def test_from_config(self):
        transport = TcpTransport.from_config(MindConfig(peer_port=45555))

        assert transport.port == 45555
        assert transport.host == "127.0.0.1"


class TestLoopbackTransport:
    """Test in-process delivery."""

    def test_delivery_and_reply(self):
        left, right = LoopbackTransport("left"), LoopbackTransport("right")
        left.connect(right)
        handler = MagicMock()
        right.attach(handler)

        assert left.send("right", b"payload") is True
        data, reply = handler.call_args[0]
        assert data == b"payload"

        seen = MagicMock()
        left.attach(seen)
        reply(b"answer")
        seen.assert_called_once()
        assert seen.call_args[0][0] == b"answer"

    def test_disconnect(self):
        left, right = LoopbackTransport("left"), LoopbackTransport("right")
        left.connect(right)
        right.disconnect("left")

        assert left.peers() == []
        assert left.broadcast(b"x") == 0

    def test_unattached_receiver_drops(self):
        left, right = LoopbackTransport("left"), LoopbackTransport("right")
        left.connect(right)

        assert left.send("right", b"x") is True
