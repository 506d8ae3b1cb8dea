"""
Runtime configuration for a CosmicMind agent.

Values come from the environment (optionally seeded from a ``.env`` file)
with defaults suited to a single interactive agent.
"""

import os
import uuid
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv


def _default_state_dir() -> Path:
    return Path.home() / ".cosmicmind"


@dataclass
class MindConfig:
    """
    Agent configuration.

    Attributes:
        agent_id: Genesis identity; keys the continuity file
        state_dir: Directory holding continuity snapshots
        cycle_interval: Seconds between scheduled cognition cycles
        initial_delay: Seconds before the first scheduled cycle
        focus_size: Frames in the attentional focus
        similarity_threshold: Maximum signature distance for a link
        share_trust: Trust weight attached to truths this agent shares
        peer_port: TCP port for the peer transport
        log_level: Logging level name for the shell
    """
    agent_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    state_dir: Path = field(default_factory=_default_state_dir)
    cycle_interval: float = 6.0
    initial_delay: float = 2.0
    focus_size: int = 12
    similarity_threshold: float = 0.45
    share_trust: float = 0.6
    peer_port: int = 44444
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, env_file: Optional[Path] = None) -> "MindConfig":
        """
        Build configuration from COSMICMIND_* environment variables.

        Args:
            env_file: Optional .env path; the default lookup is used when None

        Returns:
            MindConfig with unset values left at their defaults
        """
        if env_file is not None:
            load_dotenv(env_file)
        else:
            load_dotenv()

        defaults = cls()
        state_dir = os.getenv("COSMICMIND_STATE_DIR")
        return cls(
            agent_id=os.getenv("COSMICMIND_AGENT_ID", defaults.agent_id),
            state_dir=Path(state_dir).expanduser() if state_dir else defaults.state_dir,
            cycle_interval=float(os.getenv("COSMICMIND_CYCLE_INTERVAL", defaults.cycle_interval)),
            initial_delay=float(os.getenv("COSMICMIND_INITIAL_DELAY", defaults.initial_delay)),
            focus_size=int(os.getenv("COSMICMIND_FOCUS_SIZE", defaults.focus_size)),
            similarity_threshold=float(
                os.getenv("COSMICMIND_SIMILARITY_THRESHOLD", defaults.similarity_threshold)
            ),
            share_trust=float(os.getenv("COSMICMIND_SHARE_TRUST", defaults.share_trust)),
            peer_port=int(os.getenv("COSMICMIND_PEER_PORT", defaults.peer_port)),
            log_level=os.getenv("COSMICMIND_LOG_LEVEL", defaults.log_level).upper(),
        )
