"""
Credential bundle writer.

Turns the raw DER material of an identity update into the three PEM files
the child process reads: the SVID certificate chain, its private key and the
trust bundle.

Files are truncated and rewritten in place rather than swapped in with a
rename, so a child that reads them while a rotation is in progress can see a
partially written file. Rotations are infrequent and the child is only
signalled after all three writes succeeded.
"""

from __future__ import annotations

import base64
import os
from pathlib import Path
from typing import TYPE_CHECKING

from cryptography import x509
from cryptography.hazmat.primitives import serialization

from .exceptions import CredentialError
from .log import LoggerFactory

if TYPE_CHECKING:
    from .config import SidecarConfig
    from .log import Logger
    from .source import IdentityUpdate

CERTS_FILE_MODE = 0o644
KEY_FILE_MODE = 0o600

# The key blob is not inspected; the label is the same for every algorithm.
KEY_PEM_LABEL = "EC PRIVATE KEY"

_SEQUENCE_TAG = 0x30
_PEM_LINE_LENGTH = 64


def split_der(data: bytes) -> list[bytes]:
    """
    Split concatenated DER structures into their individual encodings.

    Each structure must be an ASN.1 SEQUENCE with a definite length, which
    holds for X.509 certificates.

    Args:
        data: Zero or more DER SEQUENCEs back to back

    Returns:
        The encodings in input order; empty for empty input

    Raises:
        CredentialError: If the data is not a sequence of complete SEQUENCEs
    """
    chunks: list[bytes] = []
    offset = 0
    total = len(data)

    while offset < total:
        if data[offset] != _SEQUENCE_TAG:
            raise CredentialError("malformed DER: expected SEQUENCE", offset=offset)
        if offset + 2 > total:
            raise CredentialError("malformed DER: truncated header", offset=offset)

        first = data[offset + 1]
        if first < 0x80:
            length, header = first, 2
        else:
            num_octets = first & 0x7F
            if num_octets == 0 or num_octets > 4:
                raise CredentialError(
                    "malformed DER: unsupported length encoding", offset=offset
                )
            if offset + 2 + num_octets > total:
                raise CredentialError("malformed DER: truncated length", offset=offset)
            length = int.from_bytes(data[offset + 2 : offset + 2 + num_octets], "big")
            header = 2 + num_octets

        end = offset + header + length
        if end > total:
            raise CredentialError(
                "malformed DER: truncated content", offset=offset, length=length
            )
        chunks.append(data[offset:end])
        offset = end

    return chunks


def parse_certificates(data: bytes) -> list[x509.Certificate]:
    """
    Parse concatenated DER certificates.

    Raises:
        CredentialError: If any certificate fails to parse
    """
    certs = []
    for index, der in enumerate(split_der(data)):
        try:
            certs.append(x509.load_der_x509_certificate(der))
        except ValueError as e:
            raise CredentialError(
                "cannot parse certificate", index=index, error=str(e)
            ) from e
    return certs


def pem_block(label: str, der: bytes) -> bytes:
    """Encode bytes as a single PEM block with the given label."""
    b64 = base64.b64encode(der).decode("ascii")
    step = _PEM_LINE_LENGTH
    lines = [b64[i : i + step] for i in range(0, len(b64), step)]
    body = "".join(line + "\n" for line in lines)
    return f"-----BEGIN {label}-----\n{body}-----END {label}-----\n".encode("ascii")


def certificates_to_pem(data: bytes) -> bytes:
    """Re-encode concatenated DER certificates as concatenated PEM blocks."""
    return b"".join(
        cert.public_bytes(serialization.Encoding.PEM)
        for cert in parse_certificates(data)
    )


def write_file(path: Path, data: bytes, mode: int) -> None:
    """
    Replace the contents of a file and set its permission bits.

    The mode is applied even when the file already exists or the umask
    would mask it.
    """
    flags = os.O_WRONLY | os.O_CREAT | os.O_TRUNC
    with os.fdopen(os.open(path, flags, mode), "wb") as f:
        os.fchmod(f.fileno(), mode)
        f.write(data)


class CredentialWriter:
    """
    Writes identity updates to the configured credential files.

    Example:
        writer = CredentialWriter.from_config(lg, config)
        writer.dump_bundle(update)  # svid.pem, svid_key.pem, svid_bundle.pem
    """

    def __init__(
        self,
        lg: Logger,
        cert_dir: str | Path,
        svid_file_name: str,
        svid_key_file_name: str,
        svid_bundle_file_name: str,
    ) -> None:
        self._lg = LoggerFactory.derive(lg, "credentials")
        self._cert_dir = Path(cert_dir)
        self._svid_file = self._cert_dir / svid_file_name
        self._key_file = self._cert_dir / svid_key_file_name
        self._bundle_file = self._cert_dir / svid_bundle_file_name

    @classmethod
    def from_config(cls, lg: Logger, config: SidecarConfig) -> CredentialWriter:
        return cls(
            lg,
            config.cert_dir,
            config.svid_file_name,
            config.svid_key_file_name,
            config.svid_bundle_file_name,
        )

    @property
    def svid_file(self) -> Path:
        return self._svid_file

    @property
    def key_file(self) -> Path:
        return self._key_file

    @property
    def bundle_file(self) -> Path:
        return self._bundle_file

    def dump_bundle(self, update: IdentityUpdate) -> None:
        """
        Write the first SVID of an update to disk.

        Writes the certificate, key and bundle files in that order and stops
        at the first failure, leaving later files at their previous contents.
        Additional SVIDs in the update are ignored.

        Raises:
            CredentialError: If the update is empty or any write fails
        """
        svid = update.first
        if svid is None:
            raise CredentialError("identity update carries no SVIDs")

        if len(update.svids) > 1:
            self._lg.debug(
                "ignoring additional SVIDs", extra={"ignored": len(update.svids) - 1}
            )

        self.write_certs(self._svid_file, svid.x509_svid)
        self.write_key(self._key_file, svid.x509_svid_key)
        self.write_certs(self._bundle_file, svid.bundle)

        self._lg.info(
            "wrote credentials",
            extra={"spiffe_id": svid.spiffe_id, "dir": str(self._cert_dir)},
        )

    def write_certs(self, path: Path, data: bytes) -> None:
        """
        Write concatenated DER certificates to a file as PEM blocks.

        Raises:
            CredentialError: If the data does not parse or the write fails
        """
        try:
            pem = certificates_to_pem(data)
        except CredentialError as e:
            e.context.setdefault("file", str(path))
            raise
        self._write(path, pem, CERTS_FILE_MODE)

    def write_key(self, path: Path, data: bytes) -> None:
        """
        Write a private key to a file as a single PEM block.

        Raises:
            CredentialError: If the write fails
        """
        self._write(path, pem_block(KEY_PEM_LABEL, data), KEY_FILE_MODE)

    def _write(self, path: Path, data: bytes, mode: int) -> None:
        try:
            write_file(path, data, mode)
        except OSError as e:
            raise CredentialError(
                "cannot write credential file", file=str(path), error=e.strerror
            ) from e
        self._lg.trace("wrote file", extra={"file": str(path), "bytes": len(data)})
