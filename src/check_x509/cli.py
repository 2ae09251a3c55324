"""CLI entry point using Typer."""

import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Tuple

import click
import typer
from typer.core import TyperCommand

from check_x509 import __version__
from check_x509.codec import get_converter
from check_x509.config import ConfigOverrides, load_config_file, resolve_config
from check_x509.evaluator import evaluate_entity
from check_x509.exceptions import CheckX509Error
from check_x509.models import Severity
from check_x509.reporter import aggregate, format_verbose_line

NO_CONFIG_MESSAGE = "OK: No config file, nothing to check"

app = typer.Typer(
    help="Check X509 certificates and CRLs for upcoming expiration.",
    add_completion=False,
)

# Configure logging
logging.basicConfig(
    level=logging.WARNING,
    format="%(levelname)s: %(message)s",
)

logger = logging.getLogger(__name__)


def configure_logging(debug: bool) -> None:
    """Raise the check_x509 loggers to DEBUG on stderr when debug is set."""
    logging.getLogger("check_x509").setLevel(logging.DEBUG if debug else logging.WARNING)


class CheckCommand(TyperCommand):
    """Command that reports usage errors as UNKNOWN instead of Click's exit code 2."""

    def parse_args(self, ctx: click.Context, args: List[str]) -> List[str]:
        try:
            return super().parse_args(ctx, args)
        except click.UsageError as e:
            typer.echo(f"{Severity.UNKNOWN.name}: {e.format_message()}")
            raise typer.Exit(int(Severity.UNKNOWN))


def run_check(
    config_path: Optional[Path],
    overrides: ConfigOverrides,
    converter_name: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Tuple[Severity, List[str]]:
    """
    Run a complete check.

    Args:
        config_path: YAML config file, if any
        overrides: Command line settings
        converter_name: PEM converter ("cryptography" or "openssl")
        now: Current time, for tests

    Returns:
        Overall severity and the lines to print, summary last

    Raises:
        CheckX509Error: On any configuration, read or decode error
    """
    file_config = None
    if config_path is not None:
        file_config = load_config_file(config_path)
        if file_config is None and not overrides.has_entities:
            return Severity.OK, [NO_CONFIG_MESSAGE]

    config = resolve_config(file_config, overrides)
    converter = get_converter(converter_name)

    lines: List[str] = []
    results = []
    for entity in config.entities:
        result = evaluate_entity(config, entity, now=now, converter=converter)
        if config.verbose:
            lines.extend(format_verbose_line(result, sub) for sub in result.sub_results)
        results.append((result.severity, result.name))

    severity, summary = aggregate(results)
    lines.append(summary)
    return severity, lines


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"check_x509 {__version__}")
        raise typer.Exit()


@app.command(cls=CheckCommand, context_settings={"help_option_names": ["-h", "--help"]})
def check(
    config: Optional[Path] = typer.Option(None, "--config", help="YAML configuration file"),
    certs: Optional[List[str]] = typer.Option(
        None, "--cert", "--certificate", help="Certificate to check (repeatable, replaces config file entities)"
    ),
    crls: Optional[List[str]] = typer.Option(
        None, "--crl", "--revocation", help="CRL to check (repeatable, replaces config file entities)"
    ),
    cert_format: Optional[str] = typer.Option(None, "--cert-format", help="Default certificate format: PEM, DER or bundle"),
    crl_format: Optional[str] = typer.Option(None, "--crl-format", help="Default CRL format: PEM, DER or bundle"),
    crit: Optional[str] = typer.Option(None, "-c", "--crit", "--critical", help="Critical threshold, e.g. 1w (default: 1w)"),
    warn: Optional[str] = typer.Option(None, "-w", "--warn", "--warning", help="Warning threshold, e.g. 4w (default: 4w)"),
    debug: bool = typer.Option(False, "-d", "--debug", help="Debug logging on stderr"),
    verbose: bool = typer.Option(False, "-v", "--verbose", help="Print expiration of every checked entity"),
    converter: str = typer.Option("cryptography", "--converter", help="PEM to DER converter: cryptography or openssl"),
    version: Optional[bool] = typer.Option(
        None, "--version", callback=_version_callback, is_eager=True, help="Show version and exit"
    ),
):
    """Check certificates and CRLs and exit with a monitoring status code."""
    configure_logging(debug)

    overrides = ConfigOverrides(
        certs=list(certs or []),
        crls=list(crls or []),
        warn=warn,
        crit=crit,
        cert_format=cert_format,
        crl_format=crl_format,
        verbose=verbose,
    )

    try:
        severity, lines = run_check(config, overrides, converter_name=converter)
    except CheckX509Error as e:
        logger.debug(f"Check aborted: {e}", exc_info=debug)
        typer.echo(f"{e.severity.name}: {e}")
        sys.exit(int(e.severity))

    for line in lines:
        typer.echo(line)
    sys.exit(int(severity))
