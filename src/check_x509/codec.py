"""PEM to DER conversion and DER decoding of certificates and CRLs."""

import logging
import subprocess
import warnings
from typing import Optional, Protocol

from cryptography import x509
from cryptography.hazmat.primitives import serialization
from cryptography.utils import CryptographyDeprecationWarning

from check_x509.exceptions import ConfigError, ConversionError, DecodeError
from check_x509.models import DecodedEntity, EntityKind

logger = logging.getLogger(__name__)


class Converter(Protocol):
    """Turns one PEM armored entity into DER bytes."""

    def pem_to_der(self, pem: bytes, kind: EntityKind) -> bytes:
        ...


class Decoder(Protocol):
    """Decodes DER bytes into the expiration data of a certificate or CRL."""

    def decode_der(self, der: bytes, kind: EntityKind, index: int = 0) -> DecodedEntity:
        ...


def _load(data: bytes, kind: EntityKind, pem: bool):
    # Certificates with non-positive serial numbers still have a usable notAfter
    with warnings.catch_warnings():
        warnings.simplefilter("ignore", CryptographyDeprecationWarning)
        if kind is EntityKind.CRL:
            if pem:
                return x509.load_pem_x509_crl(data)
            return x509.load_der_x509_crl(data)
        if pem:
            return x509.load_pem_x509_certificate(data)
        return x509.load_der_x509_certificate(data)


class CryptographyConverter:
    """PEM to DER conversion using the cryptography library."""

    def pem_to_der(self, pem: bytes, kind: EntityKind) -> bytes:
        try:
            entity = _load(pem, kind, pem=True)
        except (ValueError, TypeError) as e:
            raise ConversionError(f"PEM to DER conversion failed for {kind.label}: {e}") from e
        return entity.public_bytes(serialization.Encoding.DER)


class OpenSSLConverter:
    """PEM to DER conversion by running the openssl command line tool."""

    def __init__(self, openssl_path: str = "openssl", timeout: float = 10.0):
        self.openssl_path = openssl_path
        self.timeout = timeout

    def pem_to_der(self, pem: bytes, kind: EntityKind) -> bytes:
        subcommand = "crl" if kind is EntityKind.CRL else "x509"
        cmd = [self.openssl_path, subcommand, "-inform", "PEM", "-outform", "DER"]
        logger.debug(f"Running {' '.join(cmd)}")
        try:
            result = subprocess.run(
                cmd,
                input=pem,
                capture_output=True,
                timeout=self.timeout,
                check=False,
            )
        except FileNotFoundError as e:
            raise ConversionError(f"openssl binary not found: {self.openssl_path}") from e
        except subprocess.TimeoutExpired as e:
            raise ConversionError(f"openssl timed out after {self.timeout}s") from e

        if result.returncode != 0 or not result.stdout:
            stderr = result.stderr.decode("utf-8", errors="replace").strip()
            raise ConversionError(
                f"PEM to DER conversion failed for {kind.label}: openssl exited with "
                f"{result.returncode}{': ' + stderr if stderr else ''}"
            )
        return result.stdout


class CryptographyDecoder:
    """DER decoding using the cryptography library."""

    def decode_der(self, der: bytes, kind: EntityKind, index: int = 0) -> DecodedEntity:
        try:
            entity = _load(der, kind, pem=False)
        except (ValueError, TypeError) as e:
            raise DecodeError(f"Unable to decode {kind.label}: {e}") from e

        if kind is EntityKind.CRL:
            expires = entity.next_update_utc
            if expires is None:
                raise DecodeError("CRL has no nextUpdate field")
        else:
            expires = entity.not_valid_after_utc
        return DecodedEntity(kind=kind, expires=expires, index=index)


def get_converter(name: Optional[str] = None) -> Converter:
    """
    Return a converter by name.

    Args:
        name: "cryptography" (default) or "openssl"

    Returns:
        Converter instance
    """
    if name is None or name == "cryptography":
        return CryptographyConverter()
    if name == "openssl":
        return OpenSSLConverter()
    raise ConfigError(f"Unknown converter '{name}' (expected cryptography or openssl)")
