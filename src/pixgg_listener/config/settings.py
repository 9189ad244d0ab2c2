"""Application settings loaded from environment variables and config files.

Configuration is loaded from (highest priority first):
1. Environment variables (``PUSHER_*``, ``WEBHOOK_*``, ``SERVER_*``, ...)
2. A ``.env`` file in the working directory
3. YAML config file (``CONFIG_PATH`` env var)
4. Defaults defined here
"""

from __future__ import annotations

import enum
from pathlib import Path
from typing import Any, Self

import yaml
from pydantic import AnyUrl, Field, TypeAdapter, ValidationError, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from pixgg_listener.errors.listener_errors import ConfigurationError

_URL_ADAPTER: TypeAdapter[AnyUrl] = TypeAdapter(AnyUrl)

# ---------------------------------------------------------------------------
# Enums for validated choices
# ---------------------------------------------------------------------------


class LogLevel(enum.StrEnum):
    """Supported log verbosity levels, most severe first."""

    ERROR = "error"
    WARN = "warn"
    INFO = "info"
    DEBUG = "debug"


# ---------------------------------------------------------------------------
# Sub-config models
# ---------------------------------------------------------------------------


class PusherConfig(BaseSettings):
    """Pusher subscription settings."""

    model_config = SettingsConfigDict(
        env_prefix="PUSHER_",
        env_file=".env",
        extra="ignore",
        case_sensitive=False,
    )

    app_key: str = ""
    cluster: str = ""
    channel_key: str = ""
    event_name: str = ""
    host: str = Field(default="", description="Override for ws-<cluster>.pusher.com")
    encrypted: bool = True

    @property
    def ws_host(self) -> str:
        """Websocket host for the configured cluster."""
        return self.host or f"ws-{self.cluster}.pusher.com"


class WebhookConfig(BaseSettings):
    """Outbound webhook settings."""

    model_config = SettingsConfigDict(
        env_prefix="WEBHOOK_",
        env_file=".env",
        extra="ignore",
        case_sensitive=False,
    )

    target_url: str = ""
    timeout: int = Field(default=10000, ge=1, description="Request timeout in milliseconds")
    count_rejected_as_failed: bool = Field(
        default=False,
        description="Count non-2xx responses as failed instead of sent",
    )

    @field_validator("target_url")
    @classmethod
    def _check_absolute_url(cls, value: str) -> str:
        if not value:
            return value
        try:
            _URL_ADAPTER.validate_python(value)
        except ValidationError:
            msg = f"invalid webhook target url: {value}"
            raise ValueError(msg) from None
        return value

    @property
    def timeout_seconds(self) -> float:
        """Timeout converted to seconds for httpx."""
        return self.timeout / 1000


class ServerConfig(BaseSettings):
    """Status server settings."""

    model_config = SettingsConfigDict(
        env_prefix="SERVER_",
        env_file=".env",
        extra="ignore",
        case_sensitive=False,
    )

    host: str = "0.0.0.0"  # noqa: S104
    port: int = 3000


class MetricsConfig(BaseSettings):
    """Prometheus metrics settings."""

    model_config = SettingsConfigDict(
        env_prefix="METRICS_",
        env_file=".env",
        extra="ignore",
        case_sensitive=False,
    )

    enabled: bool = False
    port: int = 9090


# ---------------------------------------------------------------------------
# Top-level config
# ---------------------------------------------------------------------------

# field path -> environment variable, in the order they are reported
_REQUIRED: tuple[tuple[str, str, str], ...] = (
    ("pusher", "app_key", "PUSHER_APP_KEY"),
    ("pusher", "cluster", "PUSHER_CLUSTER"),
    ("pusher", "channel_key", "PUSHER_CHANNEL_KEY"),
    ("pusher", "event_name", "PUSHER_EVENT_NAME"),
    ("webhook", "target_url", "WEBHOOK_TARGET_URL"),
)


def _load_yaml(path: str | Path) -> dict[str, Any]:
    """Load a YAML configuration file and return its contents as a dict.

    Returns an empty dict if the file doesn't exist or is empty.
    """
    p = Path(path)
    if not p.exists():
        return {}
    text = p.read_text(encoding="utf-8")
    data = yaml.safe_load(text)
    return data if isinstance(data, dict) else {}


class AppConfig(BaseSettings):
    """Top-level application configuration.

    Loads settings from environment variables, a ``.env`` file, an optional
    YAML file, and built-in defaults.
    """

    model_config = SettingsConfigDict(
        env_nested_delimiter="__",
        env_file=".env",
        extra="ignore",
        case_sensitive=False,
    )

    log_level: LogLevel = LogLevel.INFO
    config_path: str = ""

    pusher: PusherConfig = Field(default_factory=PusherConfig)
    webhook: WebhookConfig = Field(default_factory=WebhookConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    metrics: MetricsConfig = Field(default_factory=MetricsConfig)

    @field_validator("log_level", mode="before")
    @classmethod
    def _fallback_log_level(cls, value: Any) -> Any:
        """Unknown levels fall back to ``info``."""
        if isinstance(value, LogLevel):
            return value
        normalized = str(value).strip().lower()
        if normalized in LogLevel._value2member_map_:
            return normalized
        return LogLevel.INFO

    @model_validator(mode="before")
    @classmethod
    def _merge_yaml(cls, values: dict[str, Any]) -> dict[str, Any]:
        """Merge YAML config file contents under the env var overrides."""
        config_path = values.get("config_path", "")
        if not config_path:
            return values
        yaml_data = _load_yaml(config_path)
        for key, val in yaml_data.items():
            field = cls.model_fields.get(key)
            if field is None:
                continue
            current = values.get(key)
            if isinstance(val, dict) and field.default_factory is not None:
                # Sub-configs read their own env prefix; those values win.
                if isinstance(current, dict):
                    values[key] = {**val, **current}
                elif current is None:
                    from_env = field.default_factory().model_dump(exclude_unset=True)  # type: ignore[call-arg]
                    values[key] = {**val, **from_env}
            elif current is None:
                values[key] = val
        return values

    @classmethod
    def from_yaml(cls, path: str | Path) -> Self:
        """Construct ``AppConfig`` loading defaults from a YAML file.

        Environment variables still override YAML values.
        """
        return cls(config_path=str(path))

    def missing_settings(self) -> list[str]:
        """Return the environment names of required settings that are empty."""
        missing: list[str] = []
        for section, name, env_name in _REQUIRED:
            if not getattr(getattr(self, section), name):
                missing.append(env_name)
        return missing

    def validate_required(self) -> Self:
        """Raise ``ConfigurationError`` unless every required setting is present."""
        missing = self.missing_settings()
        if missing:
            msg = f"Required settings are not configured: {', '.join(missing)}"
            raise ConfigurationError(msg, problems=missing)
        return self


def load_config(**overrides: Any) -> AppConfig:
    """Build and validate the application config.

    Raises:
        ConfigurationError: A required value is absent or the webhook target
            is not an absolute URL.
    """
    try:
        config = AppConfig(**overrides)
    except ValidationError as exc:
        problems = [
            f"{'.'.join(str(p) for p in err['loc']) or 'config'}: {err['msg']}"
            for err in exc.errors()
        ]
        msg = f"Invalid configuration: {'; '.join(problems)}"
        raise ConfigurationError(msg, problems=problems) from exc
    return config.validate_required()
