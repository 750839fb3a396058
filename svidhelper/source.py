"""
Identity update source interface.

The helper does not talk to the identity provider itself. It consumes any
object implementing UpdateSource: a blocking start() run loop, a stop()
method and an ``updates`` queue of IdentityUpdate messages. Concrete sources
(e.g. a Workload API client bound to the agent socket) are plugged into the
CLI through the ``source`` config key, a "module:callable" factory path.
"""

from __future__ import annotations

import importlib
import queue
import threading
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from .exceptions import ConfigError

if TYPE_CHECKING:
    from .config import SidecarConfig
    from .log import Logger


@dataclass(frozen=True)
class IdentityEntry:
    """A single X.509 SVID as delivered by the identity provider."""

    spiffe_id: str
    x509_svid: bytes  # one or more concatenated DER certificates, leaf first
    x509_svid_key: bytes  # raw private key DER
    bundle: bytes  # one or more concatenated DER CA certificates


@dataclass(frozen=True)
class IdentityUpdate:
    """
    An identity rotation message.

    Only the first entry is written to disk; any further entries are
    ignored, the helper serves a single workload identity.
    """

    svids: tuple[IdentityEntry, ...] = field(default_factory=tuple)

    @property
    def first(self) -> IdentityEntry | None:
        """First SVID of the update, or None for an empty update."""
        return self.svids[0] if self.svids else None


@runtime_checkable
class UpdateSource(Protocol):
    """Streaming producer of identity updates."""

    updates: queue.Queue[IdentityUpdate]

    def start(self) -> None:
        """Run the source until stopped; raise on unrecoverable failure."""
        ...

    def stop(self) -> None:
        """Ask a running start() to return."""
        ...


SourceFactory = Callable[["SidecarConfig", "Logger"], UpdateSource]


class ChannelUpdateSource:
    """
    In-process update source backed by a bounded queue.

    Producers call publish() to hand over updates; with the default maxsize of
    one, publish() blocks while the daemon is still processing the previous
    update. fail() makes start() raise, which the daemon treats as fatal.

    Example:
        source = ChannelUpdateSource()
        daemon = RotationDaemon(lg, config, source)
        threading.Thread(target=daemon.run, daemon=True).start()
        source.publish(IdentityUpdate(svids=(entry,)))
    """

    def __init__(self, maxsize: int = 1) -> None:
        self.updates: queue.Queue[IdentityUpdate] = queue.Queue(maxsize=maxsize)
        self._done = threading.Event()
        self._error: BaseException | None = None

    @property
    def stopped(self) -> bool:
        return self._done.is_set()

    def start(self) -> None:
        self._done.wait()
        if self._error is not None:
            raise self._error

    def stop(self) -> None:
        self._done.set()

    def publish(self, update: IdentityUpdate, timeout: float | None = None) -> None:
        """Queue an update, blocking while the queue is full."""
        self.updates.put(update, timeout=timeout)

    def fail(self, error: BaseException) -> None:
        """Terminate start() with the given error."""
        self._error = error
        self._done.set()


def load_source_factory(path: str) -> SourceFactory:
    """
    Import an update source factory from a "module:callable" path.

    Args:
        path: Dotted module path and attribute, e.g. "mypkg.spire:create_source"

    Returns:
        The factory callable, invoked as factory(config, lg)

    Raises:
        ConfigError: If the path is malformed, the module cannot be imported
            or the attribute is missing or not callable
    """
    module_name, sep, attr = path.partition(":")
    if not sep or not module_name or not attr:
        raise ConfigError("source must be of the form 'module:callable'", source=path)

    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise ConfigError(
            "cannot import update source module", source=path, error=str(e)
        ) from e

    factory: Any = module
    for part in attr.split("."):
        factory = getattr(factory, part, None)
        if factory is None:
            raise ConfigError("update source factory not found", source=path)

    if not callable(factory):
        raise ConfigError("update source factory is not callable", source=path)
    return factory  # type: ignore[no-any-return]
