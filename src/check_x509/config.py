"""Configuration loading and resolution."""

import logging
import os
from dataclasses import dataclass, field
from datetime import timedelta
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml

from check_x509.exceptions import ConfigError, ThresholdParseError
from check_x509.models import EntityConfig, EntityFormat, EntityKind, GlobalConfig
from check_x509.thresholds import parse_threshold

logger = logging.getLogger(__name__)

DEFAULT_WARN = "4w"
DEFAULT_CRIT = "1w"
DEFAULT_FORMAT = EntityFormat.PEM


@dataclass
class ConfigOverrides:
    """Settings given on the command line. None means "not given"."""

    certs: List[str] = field(default_factory=list)
    crls: List[str] = field(default_factory=list)
    warn: Optional[str] = None
    crit: Optional[str] = None
    cert_format: Optional[str] = None
    crl_format: Optional[str] = None
    verbose: bool = False

    @property
    def has_entities(self) -> bool:
        return bool(self.certs or self.crls)


def load_config_file(path: Union[str, Path]) -> Optional[Dict[str, Any]]:
    """
    Load the YAML configuration file.

    Args:
        path: Path to the configuration file

    Returns:
        The top-level mapping, or None if the file holds no document

    Raises:
        ConfigError: If the file cannot be read or is not a YAML mapping
    """
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except OSError as e:
        raise ConfigError(f"Unable to read config file {path}: {e.strerror or e}") from e
    except UnicodeDecodeError as e:
        raise ConfigError(f"Unable to read config file {path}: not valid UTF-8 ({e.reason})") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"Unable to parse config file {path}: {e}") from e

    if data is None:
        logger.debug(f"Config file {path} is empty")
        return None
    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a mapping at the top level")
    logger.debug(f"Loaded config file {path}")
    return data


def _pick(override: Optional[str], file_config: Dict[str, Any], key: str, default: Any) -> Any:
    if override is not None:
        return override
    value = file_config.get(key)
    return default if value is None else value


def _parse_format(value: Any, key: str) -> EntityFormat:
    if isinstance(value, EntityFormat):
        return value
    try:
        return EntityFormat.parse(value)
    except ValueError as e:
        raise ConfigError(f"Invalid {key}: {e}") from None


def _parse_global_threshold(value: Any, key: str) -> timedelta:
    try:
        return parse_threshold(str(value))
    except ThresholdParseError as e:
        raise ThresholdParseError(f"Invalid global {key}: {e}") from None


def _is_readable_file(path: str) -> bool:
    return os.path.isfile(path) and os.access(path, os.R_OK)


def _entity_from_mapping(raw: Any, position: int, errors: List[str]) -> Optional[EntityConfig]:
    """Validate one configured entity, appending every problem to errors."""
    if not isinstance(raw, dict):
        errors.append(f"entity #{position}: expected a mapping with name and type")
        return None

    name = raw.get("name")
    if not name:
        errors.append(f"entity #{position}: missing name")
        return None
    name = str(name)
    entity_errors = len(errors)

    kind: Optional[EntityKind] = None
    try:
        kind = EntityKind(str(raw.get("type")).strip().lower())
    except ValueError:
        errors.append(f"{name}: unknown type '{raw.get('type')}' (expected cert or crl)")

    fmt: Optional[EntityFormat] = None
    if raw.get("format") is not None:
        try:
            fmt = EntityFormat.parse(raw["format"])
        except ValueError as e:
            errors.append(f"{name}: {e}")

    if not _is_readable_file(name):
        errors.append(f"{name}: file does not exist or is not readable")

    warn: Optional[timedelta] = None
    crit: Optional[timedelta] = None
    has_warn = raw.get("warn") is not None
    has_crit = raw.get("crit") is not None
    if has_warn != has_crit:
        errors.append(f"{name}: warn and crit must be given together")
    elif has_warn:
        try:
            warn = parse_threshold(str(raw["warn"]))
            crit = parse_threshold(str(raw["crit"]))
        except ThresholdParseError as e:
            errors.append(f"{name}: {e}")
        else:
            if crit >= warn:
                errors.append(f"{name}: crit ({raw['crit']}) must be less than warn ({raw['warn']})")

    if len(errors) > entity_errors or kind is None:
        return None
    return EntityConfig(name=name, kind=kind, format=fmt, warn=warn, crit=crit)


def resolve_config(
    file_config: Optional[Dict[str, Any]],
    overrides: Optional[ConfigOverrides] = None,
) -> GlobalConfig:
    """
    Merge command line overrides with the config file and validate the result.

    Precedence is override, then file, then built-in default. Entities given on
    the command line replace the file's entity list entirely.

    Args:
        file_config: Parsed config file, or None
        overrides: Command line settings

    Returns:
        Validated GlobalConfig

    Raises:
        ConfigError: If validation fails. Entity problems are collected and
            reported together.
    """
    file_config = file_config or {}
    overrides = overrides or ConfigOverrides()

    warn_text = _pick(overrides.warn, file_config, "warn", DEFAULT_WARN)
    crit_text = _pick(overrides.crit, file_config, "crit", DEFAULT_CRIT)
    cert_format = _parse_format(_pick(overrides.cert_format, file_config, "cert-format", DEFAULT_FORMAT), "cert-format")
    crl_format = _parse_format(_pick(overrides.crl_format, file_config, "crl-format", DEFAULT_FORMAT), "crl-format")

    if overrides.has_entities:
        if file_config.get("entities"):
            logger.debug("Entities given on the command line, ignoring entities from config file")
        raw_entities: List[Any] = [{"name": path, "type": EntityKind.CERTIFICATE.value} for path in overrides.certs]
        raw_entities += [{"name": path, "type": EntityKind.CRL.value} for path in overrides.crls]
    else:
        raw_entities = file_config.get("entities") or []
        if not isinstance(raw_entities, list):
            raise ConfigError("entities must be a list")

    if not raw_entities:
        raise ConfigError("No entities to check")

    warn = _parse_global_threshold(warn_text, "warn")
    crit = _parse_global_threshold(crit_text, "crit")
    if crit >= warn:
        raise ConfigError(f"crit ({crit_text}) must be less than warn ({warn_text})")

    errors: List[str] = []
    entities = []
    for position, raw in enumerate(raw_entities, 1):
        entity = _entity_from_mapping(raw, position, errors)
        if entity is not None:
            entities.append(entity)

    if errors:
        for error in errors:
            logger.debug(f"Config error: {error}")
        raise ConfigError.from_errors(errors)

    logger.debug(f"Resolved {len(entities)} entities, warn={warn}, crit={crit}")
    return GlobalConfig(
        warn=warn,
        crit=crit,
        cert_format=cert_format,
        crl_format=crl_format,
        entities=tuple(entities),
        verbose=overrides.verbose,
    )
