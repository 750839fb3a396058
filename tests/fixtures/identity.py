"""
Identity material fixtures for testing.

Generates a throwaway CA and SVIDs signed by it, and wraps them into the
IdentityEntry / IdentityUpdate messages the daemon consumes.
"""

import datetime
from collections.abc import Callable
from dataclasses import dataclass

import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.x509.oid import NameOID

from svidhelper.source import IdentityEntry, IdentityUpdate

TRUST_DOMAIN = "spiffe://example.org"


@dataclass
class Authority:
    """A certificate authority able to issue certificates."""

    cert: x509.Certificate
    key: ec.EllipticCurvePrivateKey

    @property
    def der(self) -> bytes:
        return self.cert.public_bytes(serialization.Encoding.DER)


def _validity() -> tuple[datetime.datetime, datetime.datetime]:
    now = datetime.datetime.now(datetime.timezone.utc)
    return now - datetime.timedelta(minutes=5), now + datetime.timedelta(hours=1)


def make_authority(common_name: str = "example.org CA") -> Authority:
    """Create a self-signed CA."""
    key = ec.generate_private_key(ec.SECP256R1())
    name = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, common_name)])
    not_before, not_after = _validity()
    cert = (
        x509.CertificateBuilder()
        .subject_name(name)
        .issuer_name(name)
        .public_key(key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(not_before)
        .not_valid_after(not_after)
        .add_extension(x509.BasicConstraints(ca=True, path_length=None), critical=True)
        .sign(key, hashes.SHA256())
    )
    return Authority(cert=cert, key=key)


def issue_svid(
    ca: Authority, spiffe_id: str
) -> tuple[x509.Certificate, ec.EllipticCurvePrivateKey]:
    """Issue a leaf certificate carrying spiffe_id as URI SAN."""
    key = ec.generate_private_key(ec.SECP256R1())
    not_before, not_after = _validity()
    cert = (
        x509.CertificateBuilder()
        .subject_name(x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, "svid")]))
        .issuer_name(ca.cert.subject)
        .public_key(key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(not_before)
        .not_valid_after(not_after)
        .add_extension(
            x509.SubjectAlternativeName([x509.UniformResourceIdentifier(spiffe_id)]),
            critical=False,
        )
        .sign(ca.key, hashes.SHA256())
    )
    return cert, key


def key_der(key: ec.EllipticCurvePrivateKey) -> bytes:
    return key.private_bytes(
        serialization.Encoding.DER,
        serialization.PrivateFormat.PKCS8,
        serialization.NoEncryption(),
    )


def spiffe_id_of(cert: x509.Certificate) -> str:
    san = cert.extensions.get_extension_for_class(x509.SubjectAlternativeName)
    return san.value.get_values_for_type(x509.UniformResourceIdentifier)[0]


@pytest.fixture(scope="session")
def authority() -> Authority:
    """Session-wide test CA."""
    return make_authority()


@pytest.fixture
def make_entry(authority: Authority) -> Callable[..., IdentityEntry]:
    """
    Factory building IdentityEntry messages.

    Usage:
        entry = make_entry("web")                     # leaf only
        entry = make_entry("web", chain=[intermediate])
    """

    def factory(
        name: str = "workload", chain: list[x509.Certificate] | None = None
    ) -> IdentityEntry:
        spiffe_id = f"{TRUST_DOMAIN}/{name}"
        cert, key = issue_svid(authority, spiffe_id)
        svid_der = cert.public_bytes(serialization.Encoding.DER)
        for extra in chain or []:
            svid_der += extra.public_bytes(serialization.Encoding.DER)
        return IdentityEntry(
            spiffe_id=spiffe_id,
            x509_svid=svid_der,
            x509_svid_key=key_der(key),
            bundle=authority.der,
        )

    return factory


@pytest.fixture
def identity_entry(make_entry: Callable[..., IdentityEntry]) -> IdentityEntry:
    """A single valid SVID."""
    return make_entry()


@pytest.fixture
def identity_update(identity_entry: IdentityEntry) -> IdentityUpdate:
    """An update carrying exactly one SVID."""
    return IdentityUpdate(svids=(identity_entry,))
