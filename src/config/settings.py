"""Application settings with Pydantic Settings validation.

Secrets (Slack token, storage keys) are loaded from the environment or .env.
Non-sensitive configuration is loaded from config/main.yaml and the other
config/*.yaml files, merged and validated against JSON schemas.
"""

import json
from pathlib import Path
from typing import Any, Final, cast

import yaml
from jsonschema import ValidationError as JSONSchemaValidationError
from jsonschema import validate
from pydantic import Field, SecretStr, ValidationInfo, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from src.config.logging_config import get_logger
from src.domain.models import (
    BusinessHours,
    CycleOptions,
    DeliveryOrder,
    DeliveryPolicy,
    LedgerMode,
)

POLL_INTERVAL_SECONDS_DEFAULT: Final[float] = 10.0
BUSINESS_TIMEZONE_DEFAULT: Final[str] = "Asia/Seoul"
BUSINESS_START_HOUR_DEFAULT: Final[int] = 9
BUSINESS_END_HOUR_DEFAULT: Final[int] = 18
LEDGER_PATH_DEFAULT: Final[str] = "processed_event_time.json"

logger = cast(Any, get_logger(__name__))


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Deep merge two dictionaries.

    Args:
        base: Base dictionary
        override: Dictionary to merge into base (takes precedence)

    Returns:
        Merged dictionary
    """
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def load_schema(schema_name: str) -> dict[str, Any]:
    """Load JSON Schema from config/schemas/.

    Args:
        schema_name: Schema name without extension (e.g., "main")

    Returns:
        JSON Schema dictionary or empty dict if not found
    """
    schema_path = Path("config/schemas") / f"{schema_name}.schema.json"
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
    config: dict[str, Any], schema_name: str, file_path: str = ""
) -> None:
    """Validate config section against JSON Schema.

    Raises:
        ValueError: If validation fails
    """
    schema = load_schema(schema_name)
    if not schema:
        return

    try:
        validate(instance=config, schema=schema)
        logger.debug("config_validation_succeeded", schema=schema_name)
    except JSONSchemaValidationError as e:
        error_msg = f"Config validation failed for {schema_name}"
        if file_path:
            error_msg += f" (file: {file_path})"
        error_msg += f": {e.message}"
        raise ValueError(error_msg) from e


def _load_yaml_file(path: Path, schema_name: str) -> dict[str, Any]:
    try:
        with open(path, encoding="utf-8") as f:
            loaded = yaml.safe_load(f) or {}
    except (yaml.YAMLError, OSError) as e:
        logger.warning("config_file_load_failed", path=str(path), error=str(e))
        return {}

    validate_config_section(loaded, schema_name, str(path))
    logger.debug("config_file_loaded", path=str(path), schema=schema_name)
    return loaded


def load_all_configs() -> dict[str, Any]:
    """Load and merge all YAML configs from config/ directory.

    Loading order (later overrides earlier):
    1. config/main.yaml
    2. All other config/*.yaml files (sorted alphabetically)

    Returns:
        Merged configuration dictionary

    Raises:
        ValueError: If a file fails schema validation
    """
    merged_config: dict[str, Any] = {}
    file_count = 0

    main_path = Path("config/main.yaml")
    if main_path.exists():
        merged_config = _load_yaml_file(main_path, "main")
        file_count += 1

    config_dir = Path("config")
    if config_dir.is_dir():
        for yaml_file in sorted(config_dir.glob("*.yaml")):
            if yaml_file.name == "main.yaml":
                continue
            try:
                file_config = _load_yaml_file(yaml_file, yaml_file.stem)
            except ValueError as e:
                logger.error(
                    "config_validation_failed",
                    path=str(yaml_file),
                    schema=yaml_file.stem,
                    error=str(e),
                )
                raise
            merged_config = deep_merge(merged_config, file_config)
            file_count += 1

    logger.info("config_load_complete", file_count=file_count)
    return merged_config


class Settings(BaseSettings):
    """Application settings.

    Secrets are loaded from the environment / .env file.
    Non-sensitive config is loaded from config/*.yaml with fallback to defaults.
    """

    model_config = SettingsConfigDict(
        env_file=".env" if Path(".env").exists() else None,
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # === SECRETS (from .env) ===

    slack_bot_token: SecretStr = Field(
        ..., description="Slack Bot User OAuth Token (from .env)"
    )
    storage_access_key: SecretStr = Field(
        ..., description="Object storage access key (from .env)"
    )
    storage_secret_key: SecretStr = Field(
        ..., description="Object storage secret key (from .env)"
    )

    @field_validator(
        "slack_bot_token", "storage_access_key", "storage_secret_key", mode="before"
    )
    @classmethod
    def _ensure_secret(
        cls, value: SecretStr | str | None, info: ValidationInfo
    ) -> SecretStr:
        if value is None:
            raise ValueError(f"{info.field_name} must be provided")

        if isinstance(value, SecretStr):
            secret_value = value.get_secret_value()
        else:
            secret_value = str(value)

        if not secret_value.strip():
            raise ValueError(f"{info.field_name} must not be empty")

        return value if isinstance(value, SecretStr) else SecretStr(secret_value)

    def __init__(self, **data: Any):
        """Initialize settings with auto-loaded configs from all YAML files."""
        config = load_all_configs()

        super().__init__(**data)
        self._apply_yaml_defaults(config)

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

        storage_config = config.get("storage") or {}
        _assign("storage_region", storage_config.get("region"))
        _assign("storage_endpoint_url", storage_config.get("endpoint_url"))
        _assign("storage_bucket", storage_config.get("bucket"))
        _assign("storage_verify_tls", storage_config.get("verify_tls"))
        _assign("events_prefix", storage_config.get("events_prefix"))
        _assign("processed_prefix", storage_config.get("processed_prefix"))
        _assign("archive_on_success", storage_config.get("archive_on_success"))

        slack_config = config.get("slack") or {}
        _assign("slack_receiver_email", slack_config.get("receiver_email"))

        policy_config = config.get("policy") or {}
        _assign("notify_event_type", policy_config.get("event_type"))
        _assign("notify_status", policy_config.get("status"))

        schedule_config = config.get("schedule") or {}
        _assign("poll_interval_seconds", schedule_config.get("poll_interval_seconds"))
        _assign("business_timezone", schedule_config.get("timezone"))
        _assign("business_start_hour", schedule_config.get("business_start_hour"))
        _assign("business_end_hour", schedule_config.get("business_end_hour"))

        ledger_config = config.get("ledger") or {}
        if ledger_config.get("mode") is not None:
            _assign("ledger_mode", LedgerMode(ledger_config["mode"]))
        _assign("ledger_path", ledger_config.get("path"))
        if ledger_config.get("delivery_order") is not None:
            _assign("delivery_order", DeliveryOrder(ledger_config["delivery_order"]))

        logging_config = config.get("logging") or {}
        _assign("log_level", logging_config.get("level"))

    # Object storage
    storage_region: str = Field(default="", description="Object storage region")
    storage_endpoint_url: str | None = Field(
        default=None, description="S3-compatible endpoint URL (None = AWS)"
    )
    storage_bucket: str = Field(default="", description="Bucket with event files")
    storage_verify_tls: bool = Field(
        default=True, description="Verify the storage endpoint's TLS certificate"
    )
    events_prefix: str = Field(
        default="issues/", description="Prefix producers write event files under"
    )
    processed_prefix: str = Field(
        default="processed/", description="Prefix delivered event files are moved to"
    )
    archive_on_success: bool = Field(
        default=True, description="Move event files after successful delivery"
    )

    # Slack
    slack_receiver_email: str = Field(
        default="", description="Email of the Slack user receiving notifications"
    )

    # Delivery policy
    notify_event_type: str = Field(
        default="com.example.issue", description="Event type that triggers delivery"
    )
    notify_status: str = Field(
        default="접수(Receipt)", description="Issue status that triggers delivery"
    )

    # Schedule
    poll_interval_seconds: float = Field(
        default=POLL_INTERVAL_SECONDS_DEFAULT,
        gt=0,
        description="Seconds between bucket polls",
    )
    business_timezone: str = Field(
        default=BUSINESS_TIMEZONE_DEFAULT, description="Time zone of business hours"
    )
    business_start_hour: int = Field(
        default=BUSINESS_START_HOUR_DEFAULT, ge=0, le=23, description="Inclusive"
    )
    business_end_hour: int = Field(
        default=BUSINESS_END_HOUR_DEFAULT, ge=1, le=24, description="Exclusive"
    )

    # Ledger
    ledger_mode: LedgerMode = Field(
        default=LedgerMode.TIMESTAMP, description="Deduplication strategy"
    )
    ledger_path: str = Field(
        default=LEDGER_PATH_DEFAULT, description="Ledger snapshot file"
    )
    delivery_order: DeliveryOrder = Field(
        default=DeliveryOrder.MARK_FIRST,
        description="Advance the ledger before or after delivery",
    )

    # Observability
    log_level: str = Field(default="INFO", description="Logging level")

    def delivery_policy(self) -> DeliveryPolicy:
        return DeliveryPolicy(
            event_type=self.notify_event_type, status=self.notify_status
        )

    def business_hours(self) -> BusinessHours:
        return BusinessHours(
            tz_name=self.business_timezone,
            start_hour=self.business_start_hour,
            end_hour=self.business_end_hour,
        )

    def cycle_options(self) -> CycleOptions:
        return CycleOptions(
            events_prefix=self.events_prefix,
            processed_prefix=self.processed_prefix,
            archive_on_success=self.archive_on_success,
            ledger_mode=self.ledger_mode,
            delivery_order=self.delivery_order,
        )


# Global settings instance
_settings: Settings | None = None


def get_settings() -> Settings:
    """Get or create global settings instance.

    Returns:
        Settings instance
    """
    global _settings
    if _settings is None:
        _settings = Settings()  # type: ignore[call-arg]
    return _settings
