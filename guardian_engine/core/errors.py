"""Guardian Engine exceptions."""


class GuardianError(Exception):
    """Base class for errors raised by the engine."""
    pass


class DependencyCycleError(GuardianError):
    """Raised when a relationship would make a fact depend on itself."""
    pass


class SnapshotStoreError(GuardianError):
    """Raised when the snapshot store cannot be read or written."""
    pass
