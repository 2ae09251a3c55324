"""Shared fixtures: certificates and CRLs built with cryptography."""

from datetime import datetime, timedelta, timezone

import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.x509.oid import NameOID

NOW = datetime(2026, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture(scope="session")
def private_key():
    """One RSA key shared by all generated entities."""
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def make_cert(private_key):
    """Build a self-signed certificate expiring after the given delta from NOW."""

    def _make(expires_in: timedelta, common_name: str = "test.example.com") -> x509.Certificate:
        name = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, common_name)])
        return (
            x509.CertificateBuilder()
            .subject_name(name)
            .issuer_name(name)
            .public_key(private_key.public_key())
            .serial_number(x509.random_serial_number())
            .not_valid_before(NOW - timedelta(days=365))
            .not_valid_after(NOW + expires_in)
            .sign(private_key, hashes.SHA256())
        )

    return _make


@pytest.fixture
def make_crl(private_key):
    """Build a CRL whose nextUpdate is the given delta from NOW."""

    def _make(next_update_in: timedelta) -> x509.CertificateRevocationList:
        issuer = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, "Test CA")])
        return (
            x509.CertificateRevocationListBuilder()
            .issuer_name(issuer)
            .last_update(NOW - timedelta(days=1))
            .next_update(NOW + next_update_in)
            .sign(private_key, hashes.SHA256())
        )

    return _make


def pem(entity) -> bytes:
    return entity.public_bytes(serialization.Encoding.PEM)


def der(entity) -> bytes:
    return entity.public_bytes(serialization.Encoding.DER)


@pytest.fixture
def write_file(tmp_path):
    """Write bytes to a file under tmp_path and return its path as a string."""

    def _write(name: str, data: bytes) -> str:
        path = tmp_path / name
        path.write_bytes(data)
        return str(path)

    return _write
