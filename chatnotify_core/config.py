"""Notification config loading.

Config is a single YAML file. Every section is optional; omitted values
fall back to the dataclass defaults below.

Example:
    engine:
      default_duration_ms: 5000
      enable_post_username_override: false
      client_variant: browser
    dispatcher:
      queue_size: 0
    trace:
      enabled: false
      sample_rate: 1.0
    server:
      url: https://chat.example.com
      token: secret
    strings:
      notification.dm: Direct Message
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from .errors import ConfigLoadError
from .models import DEFAULT_NOTIFICATION_DURATION_MS
from .trace_emitter import TraceConfig
from .user_agent import ClientVariant


@dataclass(frozen=True)
class EngineConfig:
    """Engine-wide policy.

    Attributes:
        default_duration_ms: Alert duration when the user has none set.
        enable_post_username_override: Server allows posts to override
            the displayed author name.
        client_variant: Running client kind; None when it cannot be detected.
    """

    default_duration_ms: int = DEFAULT_NOTIFICATION_DURATION_MS
    enable_post_username_override: bool = False
    client_variant: ClientVariant | None = None


@dataclass(frozen=True)
class DispatcherConfig:
    """Inbound queue settings. A queue_size of 0 means unbounded."""

    queue_size: int = 0


@dataclass(frozen=True)
class ServerConfig:
    """Chat server connection settings."""

    url: str
    token: str | None = None


@dataclass
class NotifyConfig:
    """A fully loaded config."""

    engine: EngineConfig = field(default_factory=EngineConfig)
    dispatcher: DispatcherConfig = field(default_factory=DispatcherConfig)
    trace: TraceConfig = field(default_factory=TraceConfig)
    server: ServerConfig | None = None
    strings: dict[str, str] = field(default_factory=lambda: {})


def _load_yaml(path: Path) -> dict[str, Any]:
    """Load YAML file with error handling."""
    if not path.exists():
        raise ConfigLoadError(f"File not found: {path}")
    try:
        with path.open() as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as err:
        raise ConfigLoadError(f"Invalid YAML in {path}: {err}") from err
    if not isinstance(data, dict):
        raise ConfigLoadError(f"Config root must be a mapping: {path}")
    return data


def _flag(value: Any) -> bool:
    """Read a YAML flag; quoted strings count only when they say "true"."""
    if isinstance(value, str):
        return value.strip().lower() == "true"
    return bool(value)


def _section(data: dict[str, Any], name: str) -> dict[str, Any]:
    section = data.get(name) or {}
    if not isinstance(section, dict):
        raise ConfigLoadError(f"Config section '{name}' must be a mapping")
    return section


def parse_engine(data: dict[str, Any]) -> EngineConfig:
    """Parse the engine section."""
    variant = None
    if (raw_variant := data.get("client_variant")) is not None:
        try:
            variant = ClientVariant(str(raw_variant))
        except ValueError as err:
            raise ConfigLoadError(f"Unknown client_variant: {raw_variant}") from err

    try:
        duration = int(data.get("default_duration_ms", DEFAULT_NOTIFICATION_DURATION_MS))
    except (TypeError, ValueError) as err:
        raise ConfigLoadError("default_duration_ms must be an integer") from err
    if duration < 0:
        raise ConfigLoadError("default_duration_ms must not be negative")

    return EngineConfig(
        default_duration_ms=duration,
        enable_post_username_override=_flag(
            data.get("enable_post_username_override", False)
        ),
        client_variant=variant,
    )


def parse_config(data: dict[str, Any]) -> NotifyConfig:
    """Build a NotifyConfig from already-parsed YAML data."""
    engine = parse_engine(_section(data, "engine"))

    dispatcher_data = _section(data, "dispatcher")
    trace_data = _section(data, "trace")
    try:
        queue_size = int(dispatcher_data.get("queue_size", 0))
        sample_rate = float(trace_data.get("sample_rate", 1.0))
    except (TypeError, ValueError) as err:
        raise ConfigLoadError(f"Invalid numeric config value: {err}") from err

    if queue_size < 0:
        raise ConfigLoadError("queue_size must not be negative")
    if not 0.0 <= sample_rate <= 1.0:
        raise ConfigLoadError("sample_rate must be between 0.0 and 1.0")
    trace = TraceConfig(
        enabled=_flag(trace_data.get("enabled", False)),
        sample_rate=sample_rate,
        include_metrics=_flag(trace_data.get("include_metrics", True)),
    )

    server = None
    if server_data := _section(data, "server"):
        if not server_data.get("url"):
            raise ConfigLoadError("server.url is required when server is set")
        server = ServerConfig(
            url=str(server_data["url"]).rstrip("/"),
            token=server_data.get("token"),
        )

    strings = {str(k): str(v) for k, v in _section(data, "strings").items()}

    return NotifyConfig(
        engine=engine,
        dispatcher=DispatcherConfig(queue_size=queue_size),
        trace=trace,
        server=server,
        strings=strings,
    )


def load_config(path: Path) -> NotifyConfig:
    """Load config from a YAML file.

    Raises:
        ConfigLoadError: If the file is missing or holds invalid values.
    """
    return parse_config(_load_yaml(path))
