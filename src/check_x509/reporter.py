"""Status aggregation and output formatting."""

from typing import Iterable, Tuple

from check_x509.models import EntityResult, Severity, StatusReport, SubEntityResult

OK_MESSAGE = "OK: All X509 entities are valid"


def build_report(results: Iterable[Tuple[Severity, str]]) -> StatusReport:
    """Group non-OK entity names by severity."""
    report = StatusReport()
    for severity, name in results:
        report.add(severity, name)
    return report


def aggregate(results: Iterable[Tuple[Severity, str]]) -> Tuple[Severity, str]:
    """
    Determine the overall status of a run.

    Args:
        results: (severity, display name) pairs in evaluation order

    Returns:
        Overall severity and the one-line summary
    """
    report = build_report(results)

    if Severity.CRITICAL in report:
        overall = Severity.CRITICAL
    elif Severity.WARNING in report:
        overall = Severity.WARNING
    elif not report:
        return Severity.OK, OK_MESSAGE
    else:
        overall = Severity.UNKNOWN

    return overall, f"{overall.name}: {', '.join(report.names(overall))}"


def format_remaining(remaining) -> str:
    """Human readable remaining time, e.g. "12d 3h" or "expired 2d 1h ago"."""
    seconds = int(remaining.total_seconds())
    prefix = ""
    if seconds < 0:
        prefix = "expired "
        seconds = -seconds
    days, rest = divmod(seconds, 86400)
    hours = rest // 3600
    text = f"{days}d {hours}h"
    return f"{prefix}{text} ago" if prefix else text


def format_verbose_line(result: EntityResult, sub: SubEntityResult) -> str:
    """Diagnostic line for one certificate or CRL inside an entity."""
    expires = sub.expires.strftime("%Y-%m-%d %H:%M:%S UTC")
    return f"{result.name}[{sub.index}]: expires {expires} ({format_remaining(sub.remaining)}) - {sub.severity.name}"
