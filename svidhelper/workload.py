"""
Workload API update source.

Streams X.509 contexts from a SPIFFE agent over its Workload API socket with
py-spiffe and republishes each one as an IdentityUpdate. This is the source
the CLI uses when the config names no other one.
"""

from __future__ import annotations

import queue
import threading
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from cryptography.hazmat.primitives import serialization
from spiffe import WorkloadApiClient

from .exceptions import SourceError
from .source import IdentityEntry, IdentityUpdate

if TYPE_CHECKING:
    from .config import SidecarConfig
    from .log import Logger

ClientFactory = Callable[[str | None], Any]

_SOCKET_SCHEMES = ("unix:", "tcp:")


def socket_address(agent_address: str) -> str | None:
    """
    Turn the configured agent address into a Workload API socket address.

    A bare filesystem path becomes a unix:// address. An empty address yields
    None, which leaves the choice to the SPIFFE_ENDPOINT_SOCKET variable.
    """
    if not agent_address:
        return None
    if agent_address.startswith(_SOCKET_SCHEMES):
        return agent_address
    return "unix://" + agent_address


def _der_certificates(certs: Any) -> bytes:
    return b"".join(c.public_bytes(serialization.Encoding.DER) for c in certs)


def context_to_update(context: Any) -> IdentityUpdate:
    """
    Convert a py-spiffe X509Context into an IdentityUpdate.

    Each SVID is paired with the bundle of its own trust domain. The key is
    re-encoded as PKCS#8 DER, the form the Workload API delivers it in.
    """
    entries = []
    for svid in context.x509_svids:
        bundle = context.x509_bundle_set.get_bundle_for_trust_domain(
            svid.spiffe_id.trust_domain
        )
        authorities = bundle.x509_authorities if bundle is not None else ()
        entries.append(
            IdentityEntry(
                spiffe_id=str(svid.spiffe_id),
                x509_svid=_der_certificates(svid.cert_chain),
                x509_svid_key=svid.private_key.private_bytes(
                    serialization.Encoding.DER,
                    serialization.PrivateFormat.PKCS8,
                    serialization.NoEncryption(),
                ),
                bundle=_der_certificates(authorities),
            )
        )
    return IdentityUpdate(svids=tuple(entries))


def _default_client(socket_path: str | None) -> Any:
    return WorkloadApiClient(socket_path=socket_path)


class WorkloadApiSource:
    """
    Update source backed by the SPIFFE Workload API.

    start() opens the X.509 context stream and blocks until stop() is called.
    The first context must arrive within ``timeout`` seconds (0 waits
    forever). Stream errors reported by the client are fatal: start() raises
    them as SourceError.

    Example:
        source = WorkloadApiSource(lg, "/tmp/agent.sock", timeout=5.0)
        daemon = RotationDaemon(lg, config, source)

    Args:
        lg: Logger
        agent_address: Agent socket path or unix:// / tcp:// address
        timeout: Seconds to wait for the first X.509 context
        client_factory: Callable building a client from a socket address
            (default: spiffe.WorkloadApiClient)
    """

    def __init__(
        self,
        lg: Logger,
        agent_address: str,
        timeout: float,
        client_factory: ClientFactory | None = None,
    ) -> None:
        self._lg = lg
        self._address = socket_address(agent_address)
        self._timeout = timeout
        self._client_factory = client_factory or _default_client

        self.updates: queue.Queue[IdentityUpdate] = queue.Queue(maxsize=1)
        self._done = threading.Event()
        self._received = threading.Event()
        self._error: BaseException | None = None

    @classmethod
    def from_config(cls, config: SidecarConfig, lg: Logger) -> WorkloadApiSource:
        return cls(lg, config.agent_address, config.timeout)

    @property
    def address(self) -> str | None:
        return self._address

    def start(self) -> None:
        """
        Stream X.509 contexts until stopped.

        Raises:
            SourceError: If the client cannot be created, no context arrives
                within the timeout, or the stream reports an error
        """
        try:
            client = self._client_factory(self._address)
        except Exception as e:
            raise SourceError(
                "cannot create Workload API client", agent=self._address, error=str(e)
            ) from e

        try:
            handle = client.stream_x509_contexts(
                on_success=self._on_context, on_error=self._on_error
            )
            try:
                self._wait()
            finally:
                handle.cancel()
        finally:
            client.close()

        if self._error is not None:
            raise SourceError(
                "Workload API stream failed",
                agent=self._address,
                error=str(self._error),
            ) from self._error

    def stop(self) -> None:
        self._done.set()

    def _wait(self) -> None:
        if self._timeout > 0 and not self._done.wait(self._timeout):
            if not self._received.is_set():
                self._error = TimeoutError(
                    f"no X.509 context within {self._timeout:g}s"
                )
                return
        self._done.wait()

    def _on_context(self, context: Any) -> None:
        update = context_to_update(context)
        self._received.set()
        self._lg.debug("received X.509 context", extra={"svids": len(update.svids)})
        # Hand over the update unless a stop arrives while the daemon is busy
        while not self._done.is_set():
            try:
                self.updates.put(update, timeout=0.1)
                return
            except queue.Full:
                continue

    def _on_error(self, error: BaseException) -> None:
        self._lg.error("Workload API stream error", extra={"exception": error})
        if self._error is None:
            self._error = error
        self._done.set()


def create_source(config: SidecarConfig, lg: Logger) -> WorkloadApiSource:
    """Source factory for the ``source`` config key."""
    return WorkloadApiSource.from_config(config, lg)
