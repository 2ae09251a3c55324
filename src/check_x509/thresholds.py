"""Threshold expression parsing (e.g. "4w", "36h")."""

import re
from datetime import timedelta
from typing import Dict

from check_x509.exceptions import ThresholdParseError

# Seconds per unit. Years are 365 days, not calendar aware.
UNIT_SECONDS: Dict[str, int] = {
    "m": 60,
    "h": 60 * 60,
    "d": 24 * 60 * 60,
    "w": 7 * 24 * 60 * 60,
    "y": 365 * 24 * 60 * 60,
}

_THRESHOLD_RE = re.compile(r"([0-9]+)([mhdwy])")


def parse_threshold(text: str) -> timedelta:
    """
    Parse a threshold expression into a duration.

    The expression is a decimal count immediately followed by one lowercase
    unit letter: m (minutes), h (hours), d (days), w (weeks) or y (years).

    Args:
        text: Threshold expression such as "4w"

    Returns:
        The threshold as a timedelta

    Raises:
        ThresholdParseError: If the expression is malformed
    """
    match = _THRESHOLD_RE.fullmatch(text) if isinstance(text, str) else None
    if not match:
        raise ThresholdParseError(
            f"Invalid threshold '{text}': expected <number><unit> with unit one of m, h, d, w, y"
        )
    count, unit = match.groups()
    try:
        return timedelta(seconds=int(count) * UNIT_SECONDS[unit])
    except OverflowError:
        raise ThresholdParseError(f"Invalid threshold '{text}': out of range") from None
