"""Exceptions raised while checking X509 entities.

Every exception here is fatal to a run and maps to the UNKNOWN status.
"""

from typing import List, Optional

from check_x509.models import Severity


class CheckX509Error(Exception):
    """Base class for errors that abort a check run."""

    severity = Severity.UNKNOWN


class ConfigError(CheckX509Error):
    """Invalid, inconsistent or missing configuration."""

    def __init__(self, message: str, errors: Optional[List[str]] = None):
        self.errors = list(errors) if errors else [message]
        super().__init__(message)

    @classmethod
    def from_errors(cls, errors: List[str]) -> "ConfigError":
        return cls("; ".join(errors), errors)


class ThresholdParseError(ConfigError):
    """Threshold expression does not match <number><unit>."""


class DecodeError(CheckX509Error):
    """Certificate or CRL bytes could not be decoded."""


class ConversionError(DecodeError):
    """PEM data could not be converted to DER."""


class EntityReadError(CheckX509Error):
    """Entity file could not be read."""
