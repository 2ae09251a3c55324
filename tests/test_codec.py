"""Tests for PEM conversion and DER decoding."""

import subprocess
from datetime import timedelta
from unittest.mock import MagicMock, patch

import pytest

from check_x509.codec import (
    CryptographyConverter,
    CryptographyDecoder,
    OpenSSLConverter,
    get_converter,
)
from check_x509.exceptions import ConfigError, ConversionError, DecodeError
from check_x509.models import EntityKind
from conftest import NOW, der, pem


def test_cryptography_converter_certificate(make_cert):
    """Test PEM certificate conversion yields the DER encoding."""
    cert = make_cert(timedelta(days=30))
    assert CryptographyConverter().pem_to_der(pem(cert), EntityKind.CERTIFICATE) == der(cert)


def test_cryptography_converter_crl(make_crl):
    crl = make_crl(timedelta(days=3))
    assert CryptographyConverter().pem_to_der(pem(crl), EntityKind.CRL) == der(crl)


def test_cryptography_converter_malformed():
    """Test that garbage PEM raises ConversionError."""
    bad = b"-----BEGIN CERTIFICATE-----\nnot base64 at all\n-----END CERTIFICATE-----\n"
    with pytest.raises(ConversionError, match="PEM to DER conversion failed"):
        CryptographyConverter().pem_to_der(bad, EntityKind.CERTIFICATE)


def test_cryptography_converter_wrong_kind(make_crl):
    """Test that a CRL is not accepted as a certificate."""
    with pytest.raises(ConversionError):
        CryptographyConverter().pem_to_der(pem(make_crl(timedelta(days=3))), EntityKind.CERTIFICATE)


def test_decoder_certificate_not_after(make_cert):
    decoded = CryptographyDecoder().decode_der(der(make_cert(timedelta(days=10))), EntityKind.CERTIFICATE, index=2)

    assert decoded.kind is EntityKind.CERTIFICATE
    assert decoded.expires == NOW + timedelta(days=10)
    assert decoded.expires.tzinfo is not None
    assert decoded.index == 2


def test_decoder_crl_next_update(make_crl):
    decoded = CryptographyDecoder().decode_der(der(make_crl(timedelta(days=3))), EntityKind.CRL)

    assert decoded.kind is EntityKind.CRL
    assert decoded.expires == NOW + timedelta(days=3)


def test_decoder_malformed_der():
    with pytest.raises(DecodeError, match="Unable to decode certificate"):
        CryptographyDecoder().decode_der(b"\x30\x03\x02\x01", EntityKind.CERTIFICATE)


def test_decoder_pem_given_as_der(make_cert):
    """Test that PEM bytes are not silently accepted as DER."""
    with pytest.raises(DecodeError):
        CryptographyDecoder().decode_der(pem(make_cert(timedelta(days=10))), EntityKind.CERTIFICATE)


@patch("check_x509.codec.x509.load_der_x509_crl")
def test_decoder_crl_without_next_update(mock_load):
    mock_load.return_value = MagicMock(next_update_utc=None)

    with pytest.raises(DecodeError, match="no nextUpdate"):
        CryptographyDecoder().decode_der(b"crl", EntityKind.CRL)


@patch("check_x509.codec.subprocess.run")
def test_openssl_converter_certificate(mock_run):
    """Test the openssl command line used for certificates."""
    mock_run.return_value = MagicMock(returncode=0, stdout=b"DERBYTES", stderr=b"")

    assert OpenSSLConverter().pem_to_der(b"PEM", EntityKind.CERTIFICATE) == b"DERBYTES"

    args, kwargs = mock_run.call_args
    assert args[0] == ["openssl", "x509", "-inform", "PEM", "-outform", "DER"]
    assert kwargs["input"] == b"PEM"


@patch("check_x509.codec.subprocess.run")
def test_openssl_converter_crl(mock_run):
    mock_run.return_value = MagicMock(returncode=0, stdout=b"DERBYTES", stderr=b"")

    OpenSSLConverter(openssl_path="/usr/local/bin/openssl").pem_to_der(b"PEM", EntityKind.CRL)

    assert mock_run.call_args[0][0][:2] == ["/usr/local/bin/openssl", "crl"]


@patch("check_x509.codec.subprocess.run")
def test_openssl_converter_failure(mock_run):
    mock_run.return_value = MagicMock(returncode=1, stdout=b"", stderr=b"unable to load certificate")

    with pytest.raises(ConversionError, match="unable to load certificate"):
        OpenSSLConverter().pem_to_der(b"PEM", EntityKind.CERTIFICATE)


@patch("check_x509.codec.subprocess.run", side_effect=FileNotFoundError("openssl"))
def test_openssl_converter_missing_binary(mock_run):
    with pytest.raises(ConversionError, match="openssl binary not found"):
        OpenSSLConverter().pem_to_der(b"PEM", EntityKind.CERTIFICATE)


@patch("check_x509.codec.subprocess.run", side_effect=subprocess.TimeoutExpired(cmd="openssl", timeout=10))
def test_openssl_converter_timeout(mock_run):
    with pytest.raises(ConversionError, match="timed out"):
        OpenSSLConverter().pem_to_der(b"PEM", EntityKind.CERTIFICATE)


def test_get_converter():
    assert isinstance(get_converter(), CryptographyConverter)
    assert isinstance(get_converter("cryptography"), CryptographyConverter)
    assert isinstance(get_converter("openssl"), OpenSSLConverter)
    with pytest.raises(ConfigError, match="Unknown converter"):
        get_converter("gnutls")
