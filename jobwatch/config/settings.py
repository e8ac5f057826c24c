"""Application settings with Pydantic Settings validation.

Values come from environment variables (prefix ``JOB_MONITOR_``) or a ``.env``
file. Non-sensitive defaults can also be provided in ``config/job_monitor.yaml``,
which is validated against ``config/schemas/job_monitor.schema.json``.
Environment values always win over the YAML file.
"""

import json
import os
from pathlib import Path
from typing import Any, Final, Literal, cast

import yaml
from jsonschema import ValidationError as JSONSchemaValidationError
from jsonschema import validate
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from jobwatch.config.logging_config import get_logger
from jobwatch.domain.exceptions import ConfigurationError
from jobwatch.domain.monitor_constants import (
    DEFAULT_MAX_HISTORY_COUNT,
    DEFAULT_MAX_JOB_AGE,
    DEFAULT_NOTIFICATION_SPACING_SECONDS,
    DEFAULT_POLL_INTERVAL_SECONDS,
)

CONFIG_PATH_ENV: Final[str] = "JOB_MONITOR_CONFIG_PATH"
DEFAULT_CONFIG_PATH: Final[Path] = Path("config/job_monitor.yaml")
DEFAULT_SCHEMA_DIR: Final[Path] = Path("config/schemas")
METRICS_PORT_DEFAULT: Final[int] = 9100

logger = cast(Any, get_logger(__name__))


def load_schema(
    schema_name: str, schema_dir: Path = DEFAULT_SCHEMA_DIR
) -> dict[str, Any]:
    """Load JSON Schema from the schema directory.

    Args:
        schema_name: Schema name without extension (e.g., "job_monitor")
        schema_dir: Directory holding ``*.schema.json`` files

    Returns:
        JSON Schema dictionary or empty dict if not found
    """
    schema_path = schema_dir / f"{schema_name}.schema.json"
    if not schema_path.exists():
        return {}

    try:
        with open(schema_path, encoding="utf-8") as f:
            return json.load(f)
    except (json.JSONDecodeError, OSError) as e:
        logger.warning(
            "config_schema_load_failed",
            schema=schema_name,
            error=str(e),
        )
        return {}


def validate_config_section(
    config: dict[str, Any],
    schema_name: str,
    file_path: str = "",
    schema_dir: Path = DEFAULT_SCHEMA_DIR,
) -> None:
    """Validate config section against JSON Schema.

    Raises:
        ConfigurationError: If validation fails
    """
    schema = load_schema(schema_name, schema_dir)
    if not schema:
        # No schema available, skip validation
        return

    try:
        validate(instance=config, schema=schema)
        logger.debug("config_validation_succeeded", schema=schema_name)
    except JSONSchemaValidationError as e:
        error_msg = f"Config validation failed for {schema_name}"
        if file_path:
            error_msg += f" (file: {file_path})"
        error_msg += f": {e.message}"
        raise ConfigurationError(error_msg) from e


def load_config_file(
    path: Path | None = None, schema_dir: Path = DEFAULT_SCHEMA_DIR
) -> dict[str, Any]:
    """Load the YAML config file, returning an empty dict when it is absent.

    Raises:
        ConfigurationError: If the file is not valid YAML or fails the schema
    """
    config_path = path or Path(os.getenv(CONFIG_PATH_ENV, str(DEFAULT_CONFIG_PATH)))
    if not config_path.exists():
        return {}

    try:
        with open(config_path, encoding="utf-8") as f:
            config = yaml.safe_load(f) or {}
    except (yaml.YAMLError, OSError) as e:
        raise ConfigurationError(f"Could not read {config_path}: {e}") from e

    if not isinstance(config, dict):
        raise ConfigurationError(f"{config_path} must contain a mapping")

    validate_config_section(config, config_path.stem, str(config_path), schema_dir)
    logger.debug("config_file_loaded", path=str(config_path))
    return config


class Settings(BaseSettings):
    """Job monitor settings."""

    model_config = SettingsConfigDict(
        env_prefix="JOB_MONITOR_",
        env_file=".env" if Path(".env").exists() else None,
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Polling
    poll_interval_seconds: float = Field(
        default=DEFAULT_POLL_INTERVAL_SECONDS,
        description="Period of the shared polling clock",
    )
    max_job_age_seconds: float = Field(
        default=DEFAULT_MAX_JOB_AGE.total_seconds(),
        description="Age after which an unfinished job is marked Timeout",
    )
    timeout_policy: Literal["leave_running", "cancel"] = Field(
        default="leave_running",
        description="What to do with the remote operation after a local timeout",
    )

    # History
    max_history_count: int = Field(
        default=DEFAULT_MAX_HISTORY_COUNT,
        description="Task records retained for introspection",
    )

    # Notifications
    notification_sink: Literal["log", "desktop"] = Field(
        default="log", description="Where completion notifications are rendered"
    )
    notification_spacing_seconds: float = Field(
        default=DEFAULT_NOTIFICATION_SPACING_SECONDS,
        description="Minimum delay between two notification deliveries",
    )

    # Observability
    log_level: str = Field(default="INFO", description="Logging level")
    json_logs: bool = Field(default=False, description="Emit JSON log lines")
    metrics_enabled: bool = Field(
        default=False, description="Expose Prometheus metrics over HTTP"
    )
    metrics_port: int = Field(
        default=METRICS_PORT_DEFAULT, description="Prometheus exporter port"
    )

    def __init__(self, **data: Any):
        """Initialize settings, filling unset fields from the YAML config file."""
        config = load_config_file()

        super().__init__(**data)
        self._apply_yaml_defaults(config)

    @field_validator(
        "poll_interval_seconds", "max_job_age_seconds", "max_history_count"
    )
    @classmethod
    def _ensure_positive(cls, value: float) -> float:
        if value <= 0:
            msg = "value must be positive"
            raise ValueError(msg)
        return value

    @field_validator("notification_spacing_seconds")
    @classmethod
    def _ensure_non_negative(cls, value: float) -> float:
        if value < 0:
            msg = "notification_spacing_seconds must be non-negative"
            raise ValueError(msg)
        return value

    def _apply_yaml_defaults(self, config: dict[str, Any]) -> None:
        """Apply YAML-sourced defaults without overriding env-provided values."""

        fields_from_env = set(self.model_fields_set)

        def _assign(field_name: str, value: Any) -> None:
            if value is None:
                return
            if field_name in fields_from_env:
                return

            object.__setattr__(self, field_name, value)
            self.model_fields_set.add(field_name)

        monitor_config = config.get("monitor") or {}
        _assign("poll_interval_seconds", monitor_config.get("poll_interval_seconds"))
        _assign("max_job_age_seconds", monitor_config.get("max_job_age_seconds"))
        _assign("timeout_policy", monitor_config.get("timeout_policy"))

        history_config = config.get("history") or {}
        _assign("max_history_count", history_config.get("max_count"))

        notifications_config = config.get("notifications") or {}
        _assign("notification_sink", notifications_config.get("sink"))
        _assign(
            "notification_spacing_seconds",
            notifications_config.get("spacing_seconds"),
        )

        logging_config = config.get("logging") or {}
        _assign("log_level", logging_config.get("level"))
        _assign("json_logs", logging_config.get("json"))

        metrics_config = config.get("metrics") or {}
        _assign("metrics_enabled", metrics_config.get("enabled"))
        _assign("metrics_port", metrics_config.get("port"))


# Global settings instance
_settings: Settings | None = None


def get_settings() -> Settings:
    """Get or create global settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings
