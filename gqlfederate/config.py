"""Gateway configuration: loading, defaults and derived values."""

from __future__ import annotations

import enum
import json
import logging
import os
import re
from dataclasses import dataclass, field
from datetime import timedelta
from fractions import Fraction
from typing import Any, Optional

logger = logging.getLogger(__name__)

VERSION = "dev"

SERVICE_LIST_ENV = "GQLFEDERATE_SERVICE_LIST"
LOG_LEVEL_ENV = "GQLFEDERATE_LOG_LEVEL"

_LOG_LEVELS = {
    "panic": logging.CRITICAL,
    "fatal": logging.CRITICAL,
    "error": logging.ERROR,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "info": logging.INFO,
    "debug": logging.DEBUG,
    "trace": 5,
}

_UNITS = {
    "ns": 1,
    "us": 1_000,
    "µs": 1_000,
    "μs": 1_000,
    "ms": 1_000_000,
    "s": 1_000_000_000,
    "m": 60 * 1_000_000_000,
    "h": 3600 * 1_000_000_000,
}
_COMPONENT = re.compile(r"([0-9]*)(?:\.([0-9]*))?([^0-9.]*)")
_MAX_NANOSECONDS = 2**63 - 1


class ConfigError(ValueError):
    """The configuration is invalid or cannot be decoded."""


def parse_duration(text: str) -> timedelta:
    """Parse a duration such as "300ms", "1.5h" or "2h45m"."""
    invalid = ValueError(f'time: invalid duration "{text}"')
    rest = text
    negative = False
    if rest[:1] in ("+", "-"):
        negative = rest[0] == "-"
        rest = rest[1:]
    if rest == "0":
        return timedelta(0)
    if not rest:
        raise invalid

    total = Fraction(0)
    while rest:
        match = _COMPONENT.match(rest)
        whole, fraction, unit = match.groups()
        if not whole and not fraction:
            raise invalid
        if not unit:
            raise ValueError(f'time: missing unit in duration "{text}"')
        if unit not in _UNITS:
            raise ValueError(f'time: unknown unit "{unit}" in duration "{text}"')
        number = Fraction(int(whole or "0"))
        if fraction:
            number += Fraction(int(fraction), 10 ** len(fraction))
        total += number * _UNITS[unit]
        rest = rest[match.end():]

    nanoseconds = int(total)
    if nanoseconds > _MAX_NANOSECONDS + (1 if negative else 0):
        raise invalid
    duration = timedelta(microseconds=nanoseconds // 1000)
    return -duration if negative else duration


@dataclass
class PluginConfig:
    """The configuration for a named plugin; the config is kept as decoded JSON."""

    name: str = ""
    config: Any = None


@dataclass
class TimeoutConfig:
    read_timeout: str = ""
    write_timeout: str = ""
    idle_timeout: str = ""
    read_timeout_duration: timedelta = timedelta(0)
    write_timeout_duration: timedelta = timedelta(0)
    idle_timeout_duration: timedelta = timedelta(0)

    def _update(self, data: Any, key: str) -> None:
        if not isinstance(data, dict):
            raise ConfigError(f"{key}: expected an object, got {_json_type(data)}")
        for name, value in data.items():
            attr = {"read": "read_timeout", "write": "write_timeout", "idle": "idle_timeout"}.get(name.lower())
            if attr is None or value is None:
                continue
            if not isinstance(value, str):
                raise ConfigError(f"{key}.{name}: expected a string, got {_json_type(value)}")
            setattr(self, attr, value)

    def _resolve(self, name: str, defaults: "TimeoutConfig") -> None:
        for kind in ("read", "write", "idle"):
            text = getattr(self, f"{kind}_timeout")
            if text:
                try:
                    setattr(self, f"{kind}_timeout_duration", parse_duration(text))
                except ValueError as exc:
                    raise ConfigError(f"invalid {name} {kind} timeout: {exc}") from exc
            if getattr(self, f"{kind}_timeout_duration") == timedelta(0):
                setattr(self, f"{kind}_timeout_duration", getattr(defaults, f"{kind}_timeout_duration"))


class _Kind(enum.Enum):
    STR = "string"
    BOOL = "boolean"
    INT = "integer"
    STR_LIST = "list of strings"
    TIMEOUTS = "timeouts"
    LOG_LEVEL = "log level"
    PLUGINS = "plugins"
    OBJECT = "object"


_CONFIG_KEYS = {
    "id-field-name": ("id_field_name", _Kind.STR),
    "gateway-address": ("gateway_listen_address", _Kind.STR),
    "disable-introspection": ("disable_introspection", _Kind.BOOL),
    "metrics-address": ("metrics_listen_address", _Kind.STR),
    "private-address": ("private_listen_address", _Kind.STR),
    "gateway-port": ("gateway_port", _Kind.INT),
    "metrics-port": ("metrics_port", _Kind.INT),
    "private-port": ("private_port", _Kind.INT),
    "default-timeouts": ("default_timeouts", _Kind.TIMEOUTS),
    "gateway-timeouts": ("gateway_timeouts", _Kind.TIMEOUTS),
    "private-timeouts": ("private_timeouts", _Kind.TIMEOUTS),
    "services": ("services", _Kind.STR_LIST),
    "loglevel": ("log_level", _Kind.LOG_LEVEL),
    "poll-interval": ("poll_interval", _Kind.STR),
    "max-requests-per-query": ("max_requests_per_query", _Kind.INT),
    "max-service-response-size": ("max_service_response_size", _Kind.INT),
    "telemetry": ("telemetry", _Kind.OBJECT),
    "plugins": ("plugins", _Kind.PLUGINS),
    "extensions": ("extensions", _Kind.OBJECT),
}


def _json_type(value: Any) -> str:
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, list):
        return "array"
    if isinstance(value, dict):
        return "object"
    return "null"


def _parse_log_level(text: str) -> int:
    try:
        return _LOG_LEVELS[text.lower()]
    except KeyError:
        raise ValueError(f'not a valid log level: "{text}"') from None


def _decode_plugins(value: Any) -> list[PluginConfig]:
    if not isinstance(value, list):
        raise ConfigError(f"plugins: expected an array, got {_json_type(value)}")
    plugins = []
    for item in value:
        if not isinstance(item, dict):
            raise ConfigError(f"plugins: expected an object, got {_json_type(item)}")
        plugin = PluginConfig()
        for key, raw in item.items():
            if key.lower() == "name" and raw is not None:
                if not isinstance(raw, str):
                    raise ConfigError(f"plugins.name: expected a string, got {_json_type(raw)}")
                plugin.name = raw
            elif key.lower() == "config":
                plugin.config = raw
        plugins.append(plugin)
    return plugins


@dataclass
class Config:
    """The gateway configuration."""

    id_field_name: str = ""
    gateway_listen_address: str = ""
    disable_introspection: bool = False
    metrics_listen_address: str = ""
    private_listen_address: str = ""
    gateway_port: int = 8082
    metrics_port: int = 9009
    private_port: int = 8083
    default_timeouts: TimeoutConfig = field(
        default_factory=lambda: TimeoutConfig(read_timeout="5s", write_timeout="10s", idle_timeout="120s")
    )
    gateway_timeouts: TimeoutConfig = field(default_factory=TimeoutConfig)
    private_timeouts: TimeoutConfig = field(default_factory=TimeoutConfig)
    services: list[str] = field(default_factory=list)
    log_level: int = logging.DEBUG
    poll_interval: str = "10s"
    poll_interval_duration: timedelta = timedelta(0)
    max_requests_per_query: int = 50
    max_service_response_size: int = 1024 * 1024
    telemetry: dict = field(default_factory=dict)
    plugins: list[PluginConfig] = field(default_factory=list)
    extensions: Optional[dict] = None
    config_files: list[str] = field(default_factory=list)

    @staticmethod
    def _addr_or_port(address: str, port: int) -> str:
        return address or f":{port}"

    def gateway_address(self) -> str:
        """The host:port the gateway listens on."""
        return self._addr_or_port(self.gateway_listen_address, self.gateway_port)

    def private_address(self) -> str:
        """The host:port of the private server."""
        return self._addr_or_port(self.private_listen_address, self.private_port)

    def private_http_address(self, path: str) -> str:
        """An HTTP URL on the private server for the given path."""
        if not self.private_listen_address:
            return f"http://localhost:{self.private_port}/{path}"
        return f"http://{self.private_listen_address}/{path}"

    def metric_address(self) -> str:
        """The host:port of the metrics server."""
        return self._addr_or_port(self.metrics_listen_address, self.metrics_port)

    def load(self) -> None:
        """Load or reload every config file, then derive durations and services."""
        self.extensions = None
        plugins: list[PluginConfig] = []
        for path in self.config_files:
            self.plugins = []
            with open(path, encoding="utf-8") as handle:
                try:
                    self._apply(json.load(handle))
                except (ValueError, ConfigError) as exc:
                    raise ConfigError(f'error decoding config file "{path}": {exc}') from exc
            plugins.extend(self.plugins)
        self.plugins = plugins

        env_level = os.environ.get(LOG_LEVEL_ENV, "")
        try:
            self.log_level = _parse_log_level(env_level)
        except ValueError:
            if env_level:
                logger.warning("invalid loglevel: %s", env_level)
        logging.getLogger(__package__ or __name__).setLevel(self.log_level)

        try:
            self.poll_interval_duration = parse_duration(self.poll_interval)
        except ValueError as exc:
            raise ConfigError(f"invalid poll interval: {exc}") from exc

        defaults = self.default_timeouts
        for kind in ("read", "write", "idle"):
            try:
                duration = parse_duration(getattr(defaults, f"{kind}_timeout"))
            except ValueError as exc:
                raise ConfigError(f"invalid default {kind} timeout: {exc}") from exc
            setattr(defaults, f"{kind}_timeout_duration", duration)
        self.gateway_timeouts._resolve("gateway", defaults)
        self.private_timeouts._resolve("private", defaults)

        self.services = self._build_service_list()

    def _apply(self, data: Any) -> None:
        if not isinstance(data, dict):
            raise ConfigError(f"cannot decode {_json_type(data)} into the configuration")
        for key, value in data.items():
            spec = _CONFIG_KEYS.get(key.lower())
            if spec is None or value is None:
                continue
            attr, kind = spec
            if kind is _Kind.STR:
                if not isinstance(value, str):
                    raise ConfigError(f"{key}: expected a string, got {_json_type(value)}")
                setattr(self, attr, value)
            elif kind is _Kind.BOOL:
                if not isinstance(value, bool):
                    raise ConfigError(f"{key}: expected a boolean, got {_json_type(value)}")
                setattr(self, attr, value)
            elif kind is _Kind.INT:
                if isinstance(value, bool) or not isinstance(value, int):
                    raise ConfigError(f"{key}: expected an integer, got {_json_type(value)}")
                setattr(self, attr, value)
            elif kind is _Kind.STR_LIST:
                if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
                    raise ConfigError(f"{key}: expected an array of strings")
                setattr(self, attr, list(value))
            elif kind is _Kind.TIMEOUTS:
                getattr(self, attr)._update(value, key)
            elif kind is _Kind.LOG_LEVEL:
                if not isinstance(value, str):
                    raise ConfigError(f"{key}: expected a string, got {_json_type(value)}")
                setattr(self, attr, _parse_log_level(value))
            elif kind is _Kind.PLUGINS:
                self.plugins = _decode_plugins(value)
            elif kind is _Kind.OBJECT:
                if not isinstance(value, dict):
                    raise ConfigError(f"{key}: expected an object, got {_json_type(value)}")
                setattr(self, attr, {**(getattr(self, attr) or {}), **value})

    def _build_service_list(self) -> list[str]:
        services = dict.fromkeys(self.services)
        services.update(dict.fromkeys(os.environ.get(SERVICE_LIST_ENV, "").split()))
        if not services:
            files = " ".join(self.config_files)
            raise ConfigError(f"no services found in {SERVICE_LIST_ENV} or [{files}]")
        return list(services)


def get_config(config_files: list[str]) -> Config:
    """Build the gateway configuration from the given files."""
    config = Config(config_files=list(config_files))
    config.load()
    return config