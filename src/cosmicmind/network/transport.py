"""
Pluggable peer transports.

The engine never touches sockets itself: a transport delivers opaque inbound
buffers to a handler (normally ``PeerSync.handle``) together with a reply
callable, and accepts buffers to send. Sends are fire-and-forget with no
delivery confirmation and no retry.

- LoopbackTransport: in-process links between engines (tests, demos)
- TcpTransport: asyncio streams with newline-delimited envelopes
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Callable, Dict, List, Optional, Set, Tuple

logger = logging.getLogger(__name__)

Reply = Callable[[bytes], None]
Handler = Callable[[bytes, Reply], object]

STREAM_LIMIT = 2 ** 20


class Transport(ABC):
    """Channel delivering opaque buffers between peers."""

    def __init__(self):
        self._handler: Optional[Handler] = None

    def attach(self, handler: Handler) -> None:
        """Register the callable that receives every inbound buffer."""
        self._handler = handler

    def _deliver(self, data: bytes, reply: Reply) -> None:
        if self._handler is None:
            logger.warning("Dropping inbound buffer: no handler attached.")
            return
        self._handler(data, reply)

    @abstractmethod
    def send(self, peer_id: str, data: bytes) -> bool:
        """Send to one peer. Returns False if the peer is unknown."""

    @abstractmethod
    def peers(self) -> List[str]:
        """Ids of currently connected peers."""

    def broadcast(self, data: bytes) -> int:
        """Send to every connected peer; returns the number attempted."""
        sent = 0
        for peer_id in self.peers():
            if self.send(peer_id, data):
                sent += 1
        return sent


class LoopbackTransport(Transport):
    """
    In-process transport.

    Connected transports call straight into each other's handler, so a
    request and its reply complete before ``send`` returns.
    """

    def __init__(self, peer_id: str):
        super().__init__()
        self.peer_id = peer_id
        self._links: Dict[str, "LoopbackTransport"] = {}

    def connect(self, other: "LoopbackTransport") -> None:
        self._links[other.peer_id] = other
        other._links[self.peer_id] = self

    def disconnect(self, peer_id: str) -> None:
        other = self._links.pop(peer_id, None)
        if other is not None:
            other._links.pop(self.peer_id, None)

    def peers(self) -> List[str]:
        return list(self._links)

    def send(self, peer_id: str, data: bytes) -> bool:
        target = self._links.get(peer_id)
        if target is None:
            logger.warning(f"Cannot send to unknown peer {peer_id}.")
            return False
        target.receive(data, self.peer_id)
        return True

    def receive(self, data: bytes, sender_id: str) -> None:
        self._deliver(data, lambda payload: self.send(sender_id, payload))


class TcpTransport(Transport):
    """
    asyncio TCP transport.

    Every connection, inbound or outbound, is keyed by ``host:port`` of the
    remote end. Each envelope travels as one line of JSON. ``send`` must be
    called from the loop thread.
    """

    def __init__(self, host: str = "127.0.0.1", port: int = 44444):
        super().__init__()
        self.host = host
        self.port = port
        self._server: Optional[asyncio.AbstractServer] = None
        self._writers: Dict[str, asyncio.StreamWriter] = {}
        self._tasks: Set[asyncio.Task] = set()

    @classmethod
    def from_config(cls, config, host: str = "127.0.0.1") -> "TcpTransport":
        return cls(host=host, port=config.peer_port)

    async def start(self) -> int:
        """
        Start listening.

        Returns:
            int: Bound port (useful when constructed with port 0)
        """
        self._server = await asyncio.start_server(
            self._on_connection, self.host, self.port, limit=STREAM_LIMIT
        )
        self.port = self._server.sockets[0].getsockname()[1]
        logger.info(f"Network listener ready on port {self.port}.")
        return self.port

    async def connect(self, host: str, port: int) -> str:
        """Open an outbound connection; returns its peer id."""
        reader, writer = await asyncio.open_connection(host, port, limit=STREAM_LIMIT)
        return self._register(reader, writer)

    async def _on_connection(self, reader: asyncio.StreamReader,
                             writer: asyncio.StreamWriter) -> None:
        peer_id = self._register(reader, writer)
        logger.info(f"Accepted new connection from {peer_id}.")

    def _register(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> str:
        peer_id = self._peer_key(writer.get_extra_info("peername"))
        self._writers[peer_id] = writer
        task = asyncio.ensure_future(self._receive_loop(peer_id, reader))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return peer_id

    @staticmethod
    def _peer_key(peername: Optional[Tuple]) -> str:
        if not peername:
            return "unknown"
        return f"{peername[0]}:{peername[1]}"

    async def _receive_loop(self, peer_id: str, reader: asyncio.StreamReader) -> None:
        # Handlers run on the default executor; replies go back through the
        # loop thread, which owns the writers.
        loop = asyncio.get_running_loop()

        def reply(payload: bytes) -> None:
            try:
                loop.call_soon_threadsafe(self.send, peer_id, payload)
            except RuntimeError as e:
                logger.warning(f"Reply to {peer_id} dropped: {e}")

        try:
            while True:
                line = await reader.readline()
                if not line:
                    break
                data = line.rstrip(b"\n")
                if data:
                    await loop.run_in_executor(None, self._deliver, data, reply)
        except (ConnectionError, asyncio.IncompleteReadError, asyncio.LimitOverrunError) as e:
            logger.warning(f"Connection to {peer_id} lost: {e}")
        finally:
            self._drop(peer_id)

    def _drop(self, peer_id: str) -> None:
        writer = self._writers.pop(peer_id, None)
        if writer is not None:
            writer.close()

    def peers(self) -> List[str]:
        return list(self._writers)

    def send(self, peer_id: str, data: bytes) -> bool:
        writer = self._writers.get(peer_id)
        if writer is None or writer.is_closing():
            logger.warning(f"Cannot send to unknown peer {peer_id}.")
            return False
        try:
            writer.write(data + b"\n")
        except (ConnectionError, RuntimeError) as e:
            logger.warning(f"Send to {peer_id} failed: {e}")
            return False
        return True

    async def close(self) -> None:
        for peer_id in list(self._writers):
            self._drop(peer_id)
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._tasks.clear()
        if self._server is not None:
            self._server.close()
            await self._server.wait_closed()
            self._server = None
