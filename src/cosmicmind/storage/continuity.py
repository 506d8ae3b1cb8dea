"""
Continuity store: one versioned JSON snapshot per agent.

Snapshots are written with sorted keys for diffability and replaced
atomically (temp file in the same directory, fsync, os.replace), so an
interrupted or failed save never corrupts the previous snapshot.
"""

import json
import logging
import os
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Optional

from cosmicmind.errors import IncompatibleSnapshotVersion, PersistenceReadFailed, PersistenceWriteFailed
from cosmicmind.models import Snapshot

logger = logging.getLogger(__name__)

SCHEMA_VERSION = 3


class ContinuityStore:
    """
    File-backed snapshot storage for one agent identity.

    Attributes:
        directory (Path): Directory holding snapshot files
        agent_id (str): Agent identity keying the file name
        path (Path): Full path of this agent's snapshot
    """

    def __init__(self, directory, agent_id: str):
        """
        Initialize continuity store.

        Args:
            directory: Directory for snapshot files (created on first save)
            agent_id: Agent identity
        """
        self.directory = Path(directory).expanduser()
        self.agent_id = agent_id
        self.path = self.directory / f"cosmicMind.{agent_id}.v{SCHEMA_VERSION}.json"

    @contextmanager
    def _atomic_writer(self):
        """Yield a text handle whose contents replace the snapshot on success."""
        self.directory.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{self.path.name}.", suffix=".tmp", dir=str(self.directory)
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                yield handle
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(tmp_name, self.path)
        except BaseException:
            try:
                os.unlink(tmp_name)
            except FileNotFoundError:
                pass
            raise

    def save(self, snapshot: Snapshot) -> Path:
        """
        Write a snapshot atomically.

        Args:
            snapshot: Full engine state

        Returns:
            Path of the written snapshot

        Raises:
            PersistenceWriteFailed: If serialization or the write fails
        """
        try:
            payload = json.dumps(snapshot.to_dict(), indent=2, sort_keys=True)
            with self._atomic_writer() as handle:
                handle.write(payload)
        except (OSError, TypeError, ValueError) as e:
            raise PersistenceWriteFailed(f"Cannot save snapshot to {self.path}: {e}") from e
        logger.info(f"State persisted to {self.path}.")
        return self.path

    def exists(self) -> bool:
        return self.path.exists()

    def load(self) -> Optional[Snapshot]:
        """
        Read this agent's snapshot.

        Returns:
            Snapshot, or None if no snapshot exists

        Raises:
            IncompatibleSnapshotVersion: If the schema version differs
            PersistenceReadFailed: If the file cannot be read or parsed
        """
        if not self.path.exists():
            logger.info("No existing state file; starting fresh.")
            return None
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError, UnicodeDecodeError) as e:
            raise PersistenceReadFailed(f"Cannot read snapshot {self.path}: {e}") from e

        if not isinstance(data, dict):
            raise PersistenceReadFailed(f"Snapshot {self.path} is not a JSON object")
        version = data.get("version")
        if version != SCHEMA_VERSION:
            raise IncompatibleSnapshotVersion(version, SCHEMA_VERSION)

        try:
            snapshot = Snapshot.from_dict(data)
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise PersistenceReadFailed(f"Malformed snapshot {self.path}: {e}") from e
        logger.info(f"Loaded persisted state (version {snapshot.version}) from {self.path}.")
        return snapshot

    def __repr__(self):
        return f"ContinuityStore(path={self.path})"
