"""Expiration evaluation of configured entities."""

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from check_x509.codec import Converter, Decoder
from check_x509.decoder import decode_file
from check_x509.exceptions import EntityReadError
from check_x509.models import (
    EntityConfig,
    EntityResult,
    GlobalConfig,
    Severity,
    SubEntityResult,
)

logger = logging.getLogger(__name__)


def severity_for(remaining: timedelta, warn: timedelta, crit: timedelta) -> Severity:
    """Map remaining validity to a severity. Boundaries are inclusive."""
    if remaining <= crit:
        return Severity.CRITICAL
    if remaining <= warn:
        return Severity.WARNING
    return Severity.OK


def evaluate_entity(
    config: GlobalConfig,
    entity: EntityConfig,
    now: Optional[datetime] = None,
    converter: Optional[Converter] = None,
    decoder: Optional[Decoder] = None,
) -> EntityResult:
    """
    Evaluate one configured certificate or CRL.

    For bundles every block is checked and the worst severity wins.

    Args:
        config: Resolved run configuration
        entity: Entity to check
        now: Current time (defaults to now, UTC)
        converter: PEM to DER converter
        decoder: DER decoder

    Returns:
        EntityResult named after the basename of the entity path

    Raises:
        EntityReadError: If the file cannot be read
        DecodeError: If any certificate or CRL in the file is malformed
    """
    now = now or datetime.now(timezone.utc)
    fmt = config.format_for(entity)
    warn, crit = config.thresholds_for(entity)
    result = EntityResult(name=entity.display_name, severity=Severity.OK)

    logger.debug(f"Checking {entity.kind.label} {entity.name} as {fmt.value.upper()} (warn={warn}, crit={crit})")
    try:
        for decoded in decode_file(entity.name, fmt, entity.kind, converter, decoder):
            remaining = decoded.expires - now
            severity = severity_for(remaining, warn, crit)
            logger.debug(
                f"{entity.name}[{decoded.index}]: expires {decoded.expires.isoformat()}, "
                f"remaining {remaining}, {severity.name}"
            )
            result.sub_results.append(
                SubEntityResult(
                    index=decoded.index,
                    expires=decoded.expires,
                    remaining=remaining,
                    severity=severity,
                )
            )
            result.severity = max(result.severity, severity)
    except OSError as e:
        raise EntityReadError(f"Unable to read {entity.name}: {e.strerror or e}") from e

    return result
