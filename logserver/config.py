"""Configuration: frozen dataclass from defaults, YAML file, env vars and CLI."""

import argparse
import ipaddress
import logging
import os
import sys
from dataclasses import dataclass, fields

import yaml

from logserver.errors import ConfigError

logger = logging.getLogger(__name__)

CONFIG_FILE_ENV = "LOG_SERVER_CONFIG"

_ENV_VARS = {
    "host": "SERVER_HOST",
    "port": "SERVER_PORT",
    "log_path": "LOG_PATH",
    "max_log_bytes": "MAX_LOG_BYTES",
    "buffer_size": "BUFFER_SIZE",
    "persistent_connections": "PERSISTENT_CONNECTIONS",
    "read_timeout": "READ_TIMEOUT",
    "drain_timeout": "DRAIN_TIMEOUT",
    "dashboard_port": "DASHBOARD_PORT",
    "log_level": "LOG_LEVEL",
}

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def _parse_bool(value) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ("true", "1", "yes")


@dataclass(frozen=True)
class ServerConfig:
    host: str = "127.0.0.1"
    port: int = 5000
    log_path: str = "CentralLog.txt"
    max_log_bytes: int = 10000
    buffer_size: int = 1024
    persistent_connections: bool = True
    read_timeout: float = 1.0
    drain_timeout: float = 0.0  # 0 = wait for every handler
    dashboard_port: int = 0  # 0 = dashboard disabled
    log_level: str = "INFO"


_FIELD_TYPES = {f.name: f.type for f in fields(ServerConfig)}


def load_yaml_config(path: str | None) -> dict:
    """Load a flat mapping of ServerConfig fields from a YAML file."""
    if not path:
        return {}
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except FileNotFoundError:
        raise ConfigError(f"config file {path} not found")
    except yaml.YAMLError as exc:
        raise ConfigError(f"invalid YAML in {path}: {exc}")

    if not isinstance(data, dict):
        raise ConfigError(f"config file {path} must contain a mapping")
    unknown = sorted(set(data) - set(_FIELD_TYPES))
    if unknown:
        raise ConfigError(f"unknown config keys in {path}: {', '.join(unknown)}")
    logger.info("Loaded YAML config from %s", path)
    return data


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Central TCP log server with a size-capped log file"
    )
    parser.add_argument("--config", default=None, help="YAML config file")
    parser.add_argument("--host", default=None, help="Listen address")
    parser.add_argument("--port", default=None, help="Listen port")
    parser.add_argument("--log-path", default=None, help="Log file path")
    parser.add_argument(
        "--max-log-bytes",
        default=None,
        help="Shut down once the log reaches this size (0 = never)",
    )
    parser.add_argument("--buffer-size", default=None, help="Max message size")
    parser.add_argument(
        "--single-shot",
        action="store_true",
        help="Serve one message per connection",
    )
    parser.add_argument("--read-timeout", default=None, help="Idle read poll (s)")
    parser.add_argument(
        "--drain-timeout",
        default=None,
        help="Max seconds to wait for handlers on shutdown (0 = forever)",
    )
    parser.add_argument(
        "--dashboard-port", default=None, help="Stats dashboard port (0 = off)"
    )
    parser.add_argument("--log-level", default=None, help="Console log level")
    return parser.parse_args(argv)


def load_config(argv: list[str] | None = None) -> ServerConfig:
    """Build ServerConfig from defaults <- YAML <- env vars <- CLI args.

    Raises ConfigError if a value has the wrong type or is out of range.
    """
    if argv is None:
        argv = sys.argv[1:]
    args = parse_args(argv)

    raw: dict = {}
    raw.update(load_yaml_config(args.config or os.environ.get(CONFIG_FILE_ENV)))

    for name, env_var in _ENV_VARS.items():
        value = os.environ.get(env_var)
        if value is not None and value != "":
            raw[name] = value

    for name in _FIELD_TYPES:
        value = getattr(args, name, None)
        if value is not None:
            raw[name] = value
    if args.single_shot:
        raw["persistent_connections"] = False

    config = ServerConfig(**{k: _coerce(k, v) for k, v in raw.items()})
    validate(config)
    return config


def _coerce(name: str, value):
    kind = _FIELD_TYPES[name]
    try:
        if kind is bool:
            return _parse_bool(value)
        if kind is int:
            if isinstance(value, bool):
                raise ValueError(value)
            return int(str(value).strip())
        if kind is float:
            return float(value)
    except (TypeError, ValueError):
        raise ConfigError(
            f"{name} must be {kind.__name__}, got {value!r}"
        ) from None
    return str(value)


def validate(config: ServerConfig):
    """Reject values the server cannot start with."""
    try:
        ipaddress.ip_address(config.host)
    except ValueError:
        raise ConfigError(f"host must be an IP address, got {config.host!r}")
    if not 0 <= config.port <= 65535:
        raise ConfigError(f"port must be in 0..65535, got {config.port}")
    if config.max_log_bytes < 0:
        raise ConfigError(f"max_log_bytes must be >= 0, got {config.max_log_bytes}")
    if not config.log_path:
        raise ConfigError("log_path must not be empty")
    if config.buffer_size <= 0:
        raise ConfigError(f"buffer_size must be > 0, got {config.buffer_size}")
    if config.read_timeout <= 0:
        raise ConfigError(f"read_timeout must be > 0, got {config.read_timeout}")
    if config.drain_timeout < 0:
        raise ConfigError(f"drain_timeout must be >= 0, got {config.drain_timeout}")
    if not 0 <= config.dashboard_port <= 65535:
        raise ConfigError(
            f"dashboard_port must be in 0..65535, got {config.dashboard_port}"
        )
    if config.log_level.upper() not in LOG_LEVELS:
        raise ConfigError(f"log_level must be one of {LOG_LEVELS}")
