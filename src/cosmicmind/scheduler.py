"""
Periodic cognition trigger.

A scheduler owns one engine handle and runs cognition cycles on a fixed
period from a single daemon thread, so fires can never overlap. Manual
cycles (``run_once``) go through the same engine lock.
"""

import logging
import threading
from typing import Callable, List, Optional

from cosmicmind.engine import CosmicMind
from cosmicmind.models import Action

logger = logging.getLogger(__name__)

ActionCallback = Callable[[List[Action]], None]


class CognitionScheduler:
    """
    Fixed-period cognition timer.

    Attributes:
        mind: Engine driven by this scheduler
        interval: Seconds between cycles
        initial_delay: Seconds before the first cycle
        on_actions: Called with each cycle's actions
        cycles_run: Cycles triggered by this scheduler
    """

    def __init__(self, mind: CosmicMind, interval: float = 6.0,
                 initial_delay: float = 2.0,
                 on_actions: Optional[ActionCallback] = None):
        self.mind = mind
        self.interval = interval
        self.initial_delay = initial_delay
        self.on_actions = on_actions
        self.cycles_run = 0
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @classmethod
    def from_config(cls, mind: CosmicMind, config,
                    on_actions: Optional[ActionCallback] = None) -> "CognitionScheduler":
        return cls(mind, config.cycle_interval, config.initial_delay, on_actions)

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.running:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name="cognition", daemon=True)
        self._thread.start()
        logger.info(f"Background cognition every {self.interval}s "
                    f"(first cycle in {self.initial_delay}s).")

    def stop(self, timeout: Optional[float] = None) -> None:
        """Stop after the cycle in progress, if any, completes."""
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None

    def run_once(self) -> List[Action]:
        """Run one cycle now and report its actions."""
        actions = self.mind.cognize()
        self.cycles_run += 1
        if self.on_actions is not None and actions:
            self.on_actions(actions)
        return actions

    def _run(self) -> None:
        if self._stop.wait(self.initial_delay):
            return
        while not self._stop.is_set():
            try:
                self.run_once()
            except Exception:
                logger.exception("Scheduled cognition cycle failed; retrying next period.")
            if self._stop.wait(self.interval):
                break
