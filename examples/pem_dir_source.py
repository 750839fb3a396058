#!/usr/bin/env python3
"""
PEM Directory Update Source Example

An update source that republishes credentials issued by some other tool into
a staging directory. Whenever the staged certificate changes, its contents are
handed to the helper, which writes them to cert_dir and reloads the child.

Staging layout (under $PEM_STAGING_DIR, default ./staging):
    cert.pem    - SVID certificate chain, leaf first
    key.pem     - private key (any PEM encoding)
    bundle.pem  - trust bundle

Running the Example:
    # From the project root, so the examples package is importable
    python -m svidhelper.cli -config examples/helper.yaml
"""

import os
import queue
import threading
from pathlib import Path

from cryptography import x509
from cryptography.hazmat.primitives import serialization

from svidhelper.config import SidecarConfig
from svidhelper.exceptions import SourceError
from svidhelper.log import Logger
from svidhelper.source import IdentityEntry, IdentityUpdate


def _der_chain(path: Path) -> bytes:
    certs = x509.load_pem_x509_certificates(path.read_bytes())
    return b"".join(c.public_bytes(serialization.Encoding.DER) for c in certs)


def _spiffe_id(path: Path) -> str:
    leaf = x509.load_pem_x509_certificates(path.read_bytes())[0]
    try:
        san = leaf.extensions.get_extension_for_class(x509.SubjectAlternativeName)
    except x509.ExtensionNotFound:
        return ""
    uris = san.value.get_values_for_type(x509.UniformResourceIdentifier)
    return uris[0] if uris else ""


def _key_der(path: Path) -> bytes:
    key = serialization.load_pem_private_key(path.read_bytes(), password=None)
    return key.private_bytes(
        serialization.Encoding.DER,
        serialization.PrivateFormat.TraditionalOpenSSL,
        serialization.NoEncryption(),
    )


class PemDirSource:
    """Polls a staging directory and publishes its credentials on change."""

    def __init__(self, lg: Logger, staging_dir: Path, interval: float) -> None:
        self._lg = lg
        self._dir = staging_dir
        self._interval = interval
        self._stop = threading.Event()
        self._last_mtime: float | None = None
        self.updates: queue.Queue[IdentityUpdate] = queue.Queue(maxsize=1)

    def start(self) -> None:
        if not self._dir.is_dir():
            raise SourceError("staging directory not found", dir=str(self._dir))

        while not self._stop.is_set():
            cert = self._dir / "cert.pem"
            try:
                mtime = cert.stat().st_mtime
            except FileNotFoundError:
                mtime = None
            if mtime is not None and mtime != self._last_mtime:
                self._publish(cert)
                self._last_mtime = mtime
            self._stop.wait(self._interval)

    def stop(self) -> None:
        self._stop.set()

    def _publish(self, cert: Path) -> None:
        try:
            entry = IdentityEntry(
                spiffe_id=_spiffe_id(cert),
                x509_svid=_der_chain(cert),
                x509_svid_key=_key_der(self._dir / "key.pem"),
                bundle=_der_chain(self._dir / "bundle.pem"),
            )
        except (OSError, ValueError) as e:
            # Staging may be mid-write; the next change retries
            self._lg.warning("cannot read staged credentials", extra={"exception": e})
            return

        self._lg.debug("publishing staged credentials", extra={"id": entry.spiffe_id})
        update = IdentityUpdate(svids=(entry,))
        while not self._stop.is_set():
            try:
                self.updates.put(update, timeout=self._interval)
                return
            except queue.Full:
                continue


def create_source(config: SidecarConfig, lg: Logger) -> PemDirSource:
    staging = Path(os.environ.get("PEM_STAGING_DIR", "staging"))
    return PemDirSource(lg, staging, interval=max(config.timeout / 5, 0.1))
