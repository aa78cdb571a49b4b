from __future__ import annotations

import logging
import os
from datetime import timedelta
from pathlib import Path
from typing import Any

import yaml
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    ValidationInfo,
    field_validator,
)
from pydantic_settings import BaseSettings, SettingsConfigDict

from backup_remote_files.config._validators import (
    coerce_duration,
    default_duration,
    validate_metrics_prefix,
)
from backup_remote_files.core.durations import format_duration
from backup_remote_files.domain.exceptions import ConfigError
from backup_remote_files.domain.models import BackupItem

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL = "1d"
DEFAULT_RETRY_INTERVAL = "1d"
DEFAULT_TIMEOUT = "10m"
DEFAULT_METRICS_PREFIX = "backupremotefiles"

# Configuration file format
#
# backups:
#   <id>:
#     url: <some url>
#     username: <some username>
#     password: <some password>
#     outputFile: <output file>
#
# interval: "1h"          # default "1d"
# retryInterval: "5m"     # default "1d"
# timeout: "10m"          # default "10m", "0" disables
# metricsPrefix: "backupremotefiles"

_FILE_KEYS = {
    "interval": "interval",
    "retry_interval": "retryInterval",
    "timeout": "timeout",
}


class BackupConfig(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid", populate_by_name=True)

    url: str = Field(min_length=1)
    username: str = ""
    password: str = Field(default="", repr=False)
    output_file: str = Field(alias="outputFile", min_length=1)

    @field_validator("username", "password", mode="before")
    @classmethod
    def _coerce_credential(cls, value: Any) -> str:
        if value is None:
            return ""
        if isinstance(value, bool) or not isinstance(value, str | int | float):
            msg = "credentials must be plain strings"
            raise ValueError(msg)
        return str(value)


class ExporterConfig(BaseModel):
    """Validated content of the YAML configuration file."""

    model_config = ConfigDict(frozen=True, extra="forbid", populate_by_name=True)

    backups: dict[str, BackupConfig]
    interval: timedelta = Field(
        default_factory=lambda: default_duration(DEFAULT_INTERVAL, "interval")
    )
    retry_interval: timedelta = Field(
        default_factory=lambda: default_duration(DEFAULT_RETRY_INTERVAL, "retryInterval"),
        alias="retryInterval",
    )
    timeout: timedelta = Field(
        default_factory=lambda: default_duration(DEFAULT_TIMEOUT, "timeout")
    )
    metrics_prefix: str = Field(default=DEFAULT_METRICS_PREFIX, alias="metricsPrefix")

    @field_validator("backups", mode="before")
    @classmethod
    def _validate_backups(cls, value: Any) -> dict[str, Any]:
        if not isinstance(value, dict):
            msg = "'backups' must be a mapping of id to backup definition"
            raise ValueError(msg)
        return {str(key): item for key, item in value.items()}

    @field_validator("interval", "retry_interval", mode="before")
    @classmethod
    def _validate_interval(cls, value: Any, info: ValidationInfo) -> timedelta:
        return coerce_duration(value, _FILE_KEYS[info.field_name])

    @field_validator("timeout", mode="before")
    @classmethod
    def _validate_timeout(cls, value: Any) -> timedelta:
        return coerce_duration(value, "timeout", allow_zero=True)

    @field_validator("metrics_prefix", mode="before")
    @classmethod
    def _validate_prefix(cls, value: Any) -> str:
        return validate_metrics_prefix(value)

    @property
    def fetch_timeout_seconds(self) -> float | None:
        """Per-operation fetch timeout, or ``None`` for unbounded blocking."""
        seconds = self.timeout.total_seconds()
        return seconds or None

    def build_items(self) -> list[BackupItem]:
        """Create the tracked items in file order, each in the safe initial state."""
        return [
            BackupItem(
                id=item_id,
                url=backup.url,
                username=backup.username,
                password=backup.password,
                destination=Path(backup.output_file),
            )
            for item_id, backup in self.backups.items()
        ]


class RuntimeSettings(BaseSettings):
    """Process-level settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        extra="ignore",
        populate_by_name=True,
        env_file=".env",
        env_file_encoding="utf-8",
    )

    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")
    log_file: str | None = Field(default=None, validation_alias="LOG_FILE")
    log_json: bool = Field(default=True, validation_alias="LOG_JSON")

    @field_validator("log_level", mode="before")
    @classmethod
    def _validate_log_level(cls, value: Any) -> str:
        log_level = str(value or "INFO").upper()
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if log_level not in valid_levels:
            msg = f"Invalid log level: {value}. Must be one of {valid_levels}"
            raise ValueError(msg)
        return log_level

    @field_validator("log_file", mode="before")
    @classmethod
    def _validate_log_file(cls, value: Any) -> str | None:
        if value is None:
            return None
        trimmed = str(value).strip()
        return trimmed or None


def load_config(path: str | os.PathLike[str]) -> ExporterConfig:
    """Load and validate the YAML configuration file.

    Args:
        path: Location of the configuration file.

    Returns:
        Immutable ExporterConfig instance.

    Raises:
        ConfigError: If the file cannot be read, parsed or validated.
        ConfigDefectError: If a built-in default value is invalid.
    """
    config_path = Path(path)
    try:
        raw_text = config_path.read_text(encoding="utf-8")
    except OSError as exc:
        msg = "Failed to read configuration file"
        raise ConfigError(msg, details={"file": str(config_path), "error": str(exc)}) from exc

    try:
        data = yaml.safe_load(raw_text)
    except yaml.YAMLError as exc:
        msg = "Failed to parse configuration file"
        raise ConfigError(msg, details={"file": str(config_path), "error": str(exc)}) from exc

    if not isinstance(data, dict):
        msg = "Configuration file must contain a mapping at the top level"
        raise ConfigError(msg, details={"file": str(config_path)})

    try:
        cfg = ExporterConfig.model_validate(data)
    except ValidationError as exc:
        msg = f"Invalid configuration: {exc}"
        raise ConfigError(msg, details={"file": str(config_path)}) from exc

    _log_effective_config(cfg, config_path)
    return cfg


def _log_effective_config(cfg: ExporterConfig, config_path: Path) -> None:
    logger.info("config_loaded", extra={"file": str(config_path), "backups": len(cfg.backups)})
    logger.info(
        "config_value",
        extra={"key": "interval", "value": format_duration(cfg.interval)},
    )
    logger.info(
        "config_value",
        extra={"key": "retryInterval", "value": format_duration(cfg.retry_interval)},
    )
    logger.info(
        "config_value",
        extra={"key": "timeout", "value": format_duration(cfg.timeout)},
    )
    logger.info("config_value", extra={"key": "metricsPrefix", "value": cfg.metrics_prefix})
    for item_id, backup in cfg.backups.items():
        logger.info(
            "config_backup",
            extra={"id": item_id, "url": backup.url, "output_file": backup.output_file},
        )
    if not cfg.backups:
        logger.warning("config_no_backups", extra={"file": str(config_path)})
