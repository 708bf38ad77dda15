"""Module: galerainit.exceptions

Purpose: Error hierarchy for the Galera init sequence.

Key Components:
- GaleraInitError: Base class, caught by the commands to exit non-zero
- One subclass per failing step of the sequence
"""

from __future__ import annotations


class GaleraInitError(Exception):
    """Base exception for galera-init errors."""

    pass


class EnvironmentResolutionError(GaleraInitError):
    """Raised when a required pod environment variable is missing or invalid."""

    pass


class OrdinalParseError(GaleraInitError, ValueError):
    """Raised when the pod ordinal cannot be parsed from the pod name."""

    pass


class ClusterClientConstructionError(GaleraInitError):
    """Raised when the Kubernetes client cannot be built."""

    pass


class SnapshotCleanupError(GaleraInitError):
    """Raised when membership state cannot be cleaned up after a snapshot restore."""

    pass


class ConfigMaterializeError(GaleraInitError):
    """Raised when the Galera config cannot be rendered, patched or written."""

    pass


class BootstrapMarkerWriteError(GaleraInitError):
    """Raised when the bootstrap marker cannot be written.

    The sequencer treats this one as continue-on-error.
    """

    pass


class PredecessorWaitError(GaleraInitError):
    """Raised when waiting for the previous Pod is cancelled or times out."""

    def __init__(self, pod_name: str, reason: str) -> None:
        self.pod_name = pod_name
        self.reason = reason
        super().__init__(f"error waiting for previous Pod '{pod_name}' to be ready: {reason}")


class TransferCleanupError(GaleraInitError):
    """Raised when stale SST files cannot be removed."""

    pass


class InitLockTimeoutError(GaleraInitError):
    """Raised when the init file lock cannot be acquired in time."""

    pass


class InvalidSettingError(GaleraInitError):
    """Raised when a GALERA_INIT_* setting has an invalid value."""

    pass
