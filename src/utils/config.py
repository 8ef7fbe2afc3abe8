"""
Configuration for Catalog Reconciliation

Settings are resolved in three layers: built-in defaults, an optional
YAML file, then RECONCILER_* environment variables. Command line flags
are applied on top by the CLI.

Example YAML:

    chunk_size: 1000
    scope: retail
    export_format: csv
    output_dir: exports
    field_mapping:
      pos_id_fields: [Barcode, UPC]
      pos_price_field: Retail
"""

import logging
import os
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml

from src.reconciliation.models import FieldMapping, Scope

logger = logging.getLogger(__name__)

ENV_PREFIX = "RECONCILER_"
EXPORT_FORMATS = ("xlsx", "csv")


class ConfigError(Exception):
    """Raised when configuration values are invalid."""
    pass


@dataclass
class ReconcilerConfig:
    """Resolved reconciliation settings."""

    chunk_size: int = 1000
    yield_every: int = 5
    scope: Scope = Scope.ALL
    export_format: str = "xlsx"
    output_dir: Path = Path("exports")
    log_level: str = "INFO"
    json_logging: bool = False
    pushgateway: Optional[str] = None
    field_mapping: FieldMapping = field(default_factory=FieldMapping)

    def validate(self) -> "ReconcilerConfig":
        """
        Check value ranges.

        Raises:
            ConfigError: If a value is out of range
        """
        if self.chunk_size < 1:
            raise ConfigError(f"chunk_size must be positive, got {self.chunk_size}")
        if self.yield_every < 1:
            raise ConfigError(f"yield_every must be positive, got {self.yield_every}")
        if self.export_format not in EXPORT_FORMATS:
            raise ConfigError(
                f"export_format must be one of {EXPORT_FORMATS}, got '{self.export_format}'"
            )
        if not isinstance(logging.getLevelName(self.log_level.upper()), int):
            raise ConfigError(f"Unknown log_level '{self.log_level}'")
        return self

    def with_overrides(self, **overrides: Any) -> "ReconcilerConfig":
        """Return a copy with the non-None overrides applied."""
        values = {k: v for k, v in overrides.items() if v is not None}
        return _coerce(replace(self), values).validate()


def load_config(
    path: Optional[Union[str, Path]] = None,
    environ: Optional[Dict[str, str]] = None
) -> ReconcilerConfig:
    """
    Load configuration from defaults, a YAML file and the environment.

    Args:
        path: Optional YAML file
        environ: Environment mapping (defaults to os.environ)

    Returns:
        Validated ReconcilerConfig

    Raises:
        ConfigError: If the file cannot be read or a value is invalid
    """
    config = ReconcilerConfig()

    if path is not None:
        config = _coerce(config, _read_yaml(Path(path)))

    env_values = _read_env(os.environ if environ is None else environ)
    if env_values:
        config = _coerce(config, env_values)

    return config.validate()


def _read_yaml(path: Path) -> Dict[str, Any]:
    if not path.exists():
        raise ConfigError(f"Config file not found: {path}")

    try:
        with open(path, 'r') as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a mapping")

    logger.debug(f"Loaded config file: {path}")
    return data


def _read_env(environ: Dict[str, str]) -> Dict[str, Any]:
    values: Dict[str, Any] = {}

    for config_field in fields(ReconcilerConfig):
        if config_field.name == "field_mapping":
            continue
        env_name = f"{ENV_PREFIX}{config_field.name.upper()}"
        if env_name in environ:
            values[config_field.name] = environ[env_name]

    # JSON_LOGGING is shared with other tooling
    if "json_logging" not in values and "JSON_LOGGING" in environ:
        values["json_logging"] = environ["JSON_LOGGING"]

    return values


def _coerce(config: ReconcilerConfig, values: Dict[str, Any]) -> ReconcilerConfig:
    known = {f.name for f in fields(ReconcilerConfig)}
    unknown = set(values) - known
    if unknown:
        raise ConfigError(f"Unknown config keys: {sorted(unknown)}")

    updates: Dict[str, Any] = {}
    try:
        for name, value in values.items():
            if name in ("chunk_size", "yield_every"):
                updates[name] = int(value)
            elif name == "scope":
                updates[name] = Scope.parse(value)
            elif name == "export_format":
                updates[name] = str(value).lower()
            elif name == "output_dir":
                updates[name] = Path(value)
            elif name == "json_logging":
                updates[name] = _as_bool(value)
            elif name == "field_mapping":
                updates[name] = (
                    value if isinstance(value, FieldMapping)
                    else FieldMapping.from_dict(value)
                )
            else:
                updates[name] = value
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Invalid config value: {e}") from e

    return replace(config, **updates)


def _as_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ("1", "true", "yes", "on")
