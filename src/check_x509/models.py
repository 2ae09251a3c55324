"""Data models for X509 expiration checks."""

import os
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum, IntEnum
from typing import Dict, List, Optional, Tuple


class Severity(IntEnum):
    """Monitoring status levels. The value doubles as the process exit code."""

    OK = 0
    WARNING = 1
    CRITICAL = 2
    UNKNOWN = 3
    DEPENDENT = 4  # Never produced here, kept for plugin protocol compatibility


class EntityKind(str, Enum):
    """Kind of X509 entity being checked."""

    CERTIFICATE = "cert"
    CRL = "crl"

    @property
    def label(self) -> str:
        return "certificate" if self is EntityKind.CERTIFICATE else "CRL"


class EntityFormat(str, Enum):
    """On-disk encoding of an entity file."""

    PEM = "pem"
    DER = "der"
    BUNDLE = "bundle"

    @classmethod
    def parse(cls, value: str) -> "EntityFormat":
        """Parse a configured format name (PEM, DER or bundle, any case)."""
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ValueError(f"unknown format '{value}' (expected PEM, DER or bundle)") from None


@dataclass(frozen=True)
class EntityConfig:
    """One certificate or CRL to check."""

    name: str  # Filesystem path
    kind: EntityKind
    format: Optional[EntityFormat] = None
    warn: Optional[timedelta] = None
    crit: Optional[timedelta] = None

    @property
    def display_name(self) -> str:
        return os.path.basename(self.name)


@dataclass(frozen=True)
class GlobalConfig:
    """Fully resolved settings for one run."""

    warn: timedelta
    crit: timedelta
    cert_format: EntityFormat = EntityFormat.PEM
    crl_format: EntityFormat = EntityFormat.PEM
    entities: Tuple[EntityConfig, ...] = ()
    verbose: bool = False

    def format_for(self, entity: EntityConfig) -> EntityFormat:
        """Entity format override, else the default for its kind."""
        if entity.format is not None:
            return entity.format
        if entity.kind is EntityKind.CRL:
            return self.crl_format
        return self.cert_format

    def thresholds_for(self, entity: EntityConfig) -> Tuple[timedelta, timedelta]:
        """Return (warn, crit) for an entity, preferring its own overrides."""
        if entity.warn is not None and entity.crit is not None:
            return entity.warn, entity.crit
        return self.warn, self.crit


@dataclass(frozen=True)
class DecodedEntity:
    """The part of a decoded certificate or CRL needed for expiry checks."""

    kind: EntityKind
    expires: datetime  # notAfter for certificates, nextUpdate for CRLs (UTC)
    index: int = 0  # Position inside a bundle


@dataclass
class SubEntityResult:
    """Severity of a single decoded certificate or CRL."""

    index: int
    expires: datetime
    remaining: timedelta
    severity: Severity


@dataclass
class EntityResult:
    """Result of evaluating one configured entity."""

    name: str
    severity: Severity
    sub_results: List[SubEntityResult] = field(default_factory=list)


@dataclass
class StatusReport:
    """Non-OK entity names grouped by severity, in evaluation order."""

    buckets: Dict[Severity, List[str]] = field(default_factory=dict)

    def add(self, severity: Severity, name: str) -> None:
        if severity == Severity.OK:
            return
        self.buckets.setdefault(severity, []).append(name)

    def names(self, severity: Severity) -> List[str]:
        return list(self.buckets.get(severity, []))

    def __contains__(self, severity: object) -> bool:
        return severity in self.buckets

    def __bool__(self) -> bool:
        return bool(self.buckets)
