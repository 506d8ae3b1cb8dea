"""
Exception hierarchy for the CosmicMind engine.

None of these are fatal: persistence and decode failures are caught at the
engine and peer boundaries, logged, and the engine keeps running with the
best state it has.
"""


class CosmicMindError(Exception):
    """Base exception for engine operations."""
    pass


class PersistenceWriteFailed(CosmicMindError):
    """Raised when a snapshot cannot be written. The previous snapshot is left intact."""
    pass


class PersistenceReadFailed(CosmicMindError):
    """Raised when an existing snapshot cannot be read or parsed."""
    pass


class IncompatibleSnapshotVersion(PersistenceReadFailed):
    """Raised when a snapshot carries a schema version this engine does not read."""

    def __init__(self, found, expected):
        super().__init__(f"Snapshot version {found} is incompatible (expected {expected})")
        self.found = found
        self.expected = expected


class DecodeFailed(CosmicMindError):
    """Raised when a peer envelope or payload is malformed."""
    pass


class PreconditionUnmet(CosmicMindError):
    """
    A stage was asked to run without its inputs.

    Synthesis on fewer than two focus frames is a documented no-op and does
    not raise; this type names that condition for callers that want to check
    it explicitly.
    """
    pass
