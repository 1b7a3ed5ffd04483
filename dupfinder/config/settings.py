"""
dupfinder settings: optional YAML file + CLI overrides.

File layout (root key "dupfinder"):

    dupfinder:
      scan:
        directories: [~/Pictures, /mnt/backup]
        method: hash
        min_file_size: 10K
        extensions: [jpg, png]
        exclude_pattern: "/\\.cache/"
        workers: 8
      action:
        keep_policy: oldest
        mode: hardlink
        dry_run: true
      report:
        format: json
        output_path: reports/dupes.json

Without an "action" section the run only finds duplicates.
"""

import os
from pathlib import Path
from typing import Any, Mapping, Optional

import structlog
import yaml
from pydantic import BaseModel, Field, ValidationError

from dupfinder.config.exceptions import ConfigurationError
from dupfinder.dedup.models import ActionConfig, ReportFormat, ScanConfig

logger = structlog.get_logger(__name__)

CONFIG_ENV = "DUPFINDER_CONFIG"
ROOT_KEY = "dupfinder"


class ReportSettings(BaseModel):
    """Where and how the report is written."""

    format: ReportFormat = ReportFormat.text
    output_path: Optional[Path] = Field(
        default=None,
        description="Save the report to this file (text mode saves CSV)",
    )


class DupFinderSettings(BaseModel):
    """Complete runtime configuration."""

    scan: ScanConfig = Field(default_factory=ScanConfig)
    action: Optional[ActionConfig] = Field(
        default=None,
        description="Keep policy and action; None = find only",
    )
    report: ReportSettings = Field(default_factory=ReportSettings)


def resolve_config_path(config_path: Optional[str] = None, environ: Optional[Mapping[str, str]] = None) -> Optional[Path]:
    """Explicit path first, then DUPFINDER_CONFIG; None if neither is set."""
    environ = os.environ if environ is None else environ
    raw = config_path or environ.get(CONFIG_ENV)
    if not raw:
        return None
    return Path(raw).expanduser()


def load_settings(config_path: Optional[Path] = None) -> DupFinderSettings:
    """
    Load and validate a YAML settings file.

    Args:
        config_path: YAML file, or None for built-in defaults

    Raises:
        ConfigurationError: missing file, invalid YAML, missing root key,
            or a value rejected by validation
    """
    if config_path is None:
        return DupFinderSettings()

    if not config_path.is_file():
        raise ConfigurationError(f"Config file not found: {config_path}")

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            raw = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in {config_path}: {e}") from e

    if not isinstance(raw, dict) or ROOT_KEY not in raw:
        raise ConfigurationError(f"Invalid config {config_path}: missing '{ROOT_KEY}' root key")

    settings = build_settings(raw[ROOT_KEY] or {})

    logger.info(
        "dupfinder_config_loaded",
        config_path=str(config_path),
        directories=len(settings.scan.directories),
        action=settings.action.mode.value if settings.action else None,
    )
    return settings


def build_settings(data: Mapping[str, Any]) -> DupFinderSettings:
    """Validate a plain mapping, turning ValidationError into ConfigurationError."""
    try:
        return DupFinderSettings.model_validate(data)
    except ValidationError as e:
        raise ConfigurationError(_format_validation_error(e)) from e


def apply_overrides(
    settings: DupFinderSettings,
    scan: Optional[Mapping[str, Any]] = None,
    action: Optional[Mapping[str, Any]] = None,
    report: Optional[Mapping[str, Any]] = None,
) -> DupFinderSettings:
    """
    Merge CLI values over file values.

    None values are ignored (flag not given). A non-empty action mapping
    enables actions even if the file had none.
    """
    data = settings.model_dump()

    for section, overrides in (("scan", scan), ("report", report)):
        for key, value in (overrides or {}).items():
            if value is not None:
                data[section][key] = value

    action_overrides = {k: v for k, v in (action or {}).items() if v is not None}
    if action_overrides:
        data["action"] = {**(data["action"] or {}), **action_overrides}

    return build_settings(data)


def _format_validation_error(error: ValidationError) -> str:
    parts = []
    for err in error.errors():
        location = ".".join(str(p) for p in err["loc"])
        parts.append(f"{location}: {err['msg']}")
    return "Invalid configuration: " + "; ".join(parts)
