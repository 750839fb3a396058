"""
svid-helper: keeps a child process supplied with rotating X.509 SVIDs.

The RotationDaemon consumes identity updates from an UpdateSource, writes
the first SVID of each update to disk as PEM files, and starts the child
process on the first update or sends it a reload signal on later ones.
"""

from importlib.metadata import PackageNotFoundError, version

from .app import Sidecar
from .config import SidecarConfig, load_config
from .credentials import CredentialWriter
from .daemon import RotationDaemon
from .exceptions import (
    ConfigError,
    CredentialError,
    HelperError,
    SignalDeliveryError,
    SourceError,
    SpawnError,
    SupervisorError,
    UnknownSignalError,
)
from .shutdown import InterruptHandler
from .signals import resolve, signal_names
from .source import (
    ChannelUpdateSource,
    IdentityEntry,
    IdentityUpdate,
    UpdateSource,
    load_source_factory,
)
from .supervisor import ChildState, ProcessSupervisor
from .workload import WorkloadApiSource

# Version is read from package metadata (pyproject.toml)
try:
    __version__ = version("svid-helper")
except PackageNotFoundError:
    # Package not installed, use fallback (development mode)
    __version__ = "0.1.0-dev"

__all__ = [
    "__version__",
    # Core
    "ChannelUpdateSource",
    "ChildState",
    "CredentialWriter",
    "IdentityEntry",
    "IdentityUpdate",
    "InterruptHandler",
    "ProcessSupervisor",
    "RotationDaemon",
    "Sidecar",
    "SidecarConfig",
    "UpdateSource",
    "WorkloadApiSource",
    # Functions
    "load_config",
    "load_source_factory",
    "resolve",
    "signal_names",
    # Exceptions
    "ConfigError",
    "CredentialError",
    "HelperError",
    "SignalDeliveryError",
    "SourceError",
    "SpawnError",
    "SupervisorError",
    "UnknownSignalError",
]
