"""
Peer service: a TCP transport on its own event loop thread.

Lets a synchronous host (the shell, the scheduler) run the asyncio
transport in the background. Every transport call is marshalled onto the
loop thread; callers block until it completes.
"""

import asyncio
import logging
import threading
from typing import TYPE_CHECKING, Optional

from cosmicmind.network.transport import TcpTransport

if TYPE_CHECKING:
    from cosmicmind.engine import CosmicMind

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 5.0


class PeerService:
    """
    Background peer listener bound to one engine.

    Attributes:
        mind: Engine receiving peer envelopes
        transport: TCP transport owned by the service
        timeout: Seconds to wait for each loop call
    """

    def __init__(self, mind: "CosmicMind", transport: TcpTransport,
                 timeout: float = DEFAULT_TIMEOUT):
        self.mind = mind
        self.transport = transport
        self.timeout = timeout
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._thread: Optional[threading.Thread] = None

    @classmethod
    def from_config(cls, mind: "CosmicMind", config) -> "PeerService":
        return cls(mind, TcpTransport.from_config(config))

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> int:
        """
        Start the loop thread and the listener.

        Returns:
            int: Bound port

        Raises:
            OSError: If the port cannot be bound (the service is stopped again)
        """
        self._loop = asyncio.new_event_loop()
        self._thread = threading.Thread(target=self._loop.run_forever,
                                        name="peer-network", daemon=True)
        self._thread.start()
        self.mind.connect_transport(self.transport)
        try:
            return self._call(self.transport.start())
        except OSError:
            self.stop()
            raise

    def connect(self, host: str, port: int) -> str:
        """Open a connection to a peer; returns its peer id."""
        peer_id = self._call(self.transport.connect(host, port))
        logger.info(f"Connected to peer {peer_id}.")
        return peer_id

    def introduce(self) -> int:
        """Broadcast an introduce envelope to every connected peer."""
        return self._call(self._introduce())

    async def _introduce(self) -> int:
        return self.mind.broadcast_introduce()

    def _call(self, coro):
        if self._loop is None:
            coro.close()
            raise RuntimeError("Peer service is not running")
        future = asyncio.run_coroutine_threadsafe(coro, self._loop)
        return future.result(self.timeout)

    def stop(self) -> None:
        """Close every connection and stop the loop thread."""
        if self._loop is None:
            return
        try:
            self._call(self.transport.close())
        except Exception:
            logger.exception("Error while closing peer transport")
        self._loop.call_soon_threadsafe(self._loop.stop)
        if self._thread is not None:
            self._thread.join(self.timeout)
        self._loop.close()
        self._loop = None
        self._thread = None
