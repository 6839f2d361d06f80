"""Exporter settings loaded from a YAML file."""

from __future__ import annotations

import math
import os
import re
from datetime import timedelta
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .errors import FatalStartupError

DEFAULT_CONFIG_PATH = os.getenv("JWT_EXPORTER_CONFIG", "/config/config.yaml")
DEFAULT_LABEL_SELECTOR = "monitor.jwt.io/monitoring=true"
DEFAULT_ANNOTATION_KEY = "jwt-exporter/secret-key"

_DURATION_UNITS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}
_DURATION_TERM = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|ms|s|m|h)")


def parse_duration(value: str) -> timedelta:
    """Parse a Go style duration such as ``1h30m`` or ``250ms``."""
    raw = value.strip()
    if raw in ("0", ""):
        return timedelta(0)
    position = 0
    seconds = 0.0
    while position < len(raw):
        match = _DURATION_TERM.match(raw, position)
        if match is None:
            raise ValueError(f"invalid duration {value!r}")
        seconds += float(match.group(1)) * _DURATION_UNITS[match.group(2)]
        position = match.end()
    return timedelta(seconds=seconds)


def parse_address(address: str) -> tuple[str, int]:
    """Split ``host:port`` into its parts; an empty host binds every interface."""
    host, sep, port = address.rpartition(":")
    if not sep or not port.isdigit():
        raise ValueError(f"invalid listen address {address!r}")
    if host.startswith("[") and host.endswith("]"):
        host = host[1:-1]
    port_number = int(port)
    if not 0 <= port_number <= 65535:
        raise ValueError(f"port out of range in {address!r}")
    return host or "0.0.0.0", port_number


def expand_path(path: str) -> str:
    """Expand environment variables first, then a leading ``~``."""
    return os.path.expanduser(os.path.expandvars(path))


class Settings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    address: str = Field(default=":8080")
    metrics_path: str = Field(default="/metrics")
    label_selectors: list[str] = Field(default_factory=lambda: [DEFAULT_LABEL_SELECTOR])
    polling_interval: timedelta = Field(default=timedelta(hours=1))
    kubeconfig_path: str = Field(default="")
    annotation_key: str = Field(default=DEFAULT_ANNOTATION_KEY)
    atomic_publish: bool = Field(default=False)

    @field_validator("address")
    @classmethod
    def _validate_address(cls, value: str) -> str:
        parse_address(value)
        return value

    @field_validator("metrics_path")
    @classmethod
    def _validate_metrics_path(cls, value: str) -> str:
        if not value.startswith("/"):
            raise ValueError("metrics_path must start with '/'")
        return value

    @field_validator("label_selectors", mode="before")
    @classmethod
    def _null_selectors(cls, value: Any) -> Any:
        return [] if value is None else value

    @field_validator("polling_interval", mode="before")
    @classmethod
    def _parse_interval(cls, value: Any) -> Any:
        if isinstance(value, bool):
            raise ValueError("polling_interval must be a duration")
        if isinstance(value, (int, float)):
            if not math.isfinite(value):
                raise ValueError("polling_interval must be finite")
            return timedelta(seconds=value)
        if isinstance(value, str):
            return parse_duration(value)
        return value

    @field_validator("polling_interval")
    @classmethod
    def _positive_interval(cls, value: timedelta) -> timedelta:
        if value <= timedelta(0):
            raise ValueError("polling_interval must be positive")
        return value

    @property
    def listen_host(self) -> str:
        return parse_address(self.address)[0]

    @property
    def listen_port(self) -> int:
        return parse_address(self.address)[1]

    @property
    def polling_interval_seconds(self) -> float:
        return self.polling_interval.total_seconds()

    @property
    def expanded_kubeconfig_path(self) -> str:
        return expand_path(self.kubeconfig_path)


def load_settings(path: str | Path = DEFAULT_CONFIG_PATH) -> Settings:
    """Read the YAML configuration file; any failure is fatal for startup."""
    try:
        raw = Path(path).read_text(encoding="utf-8")
    except OSError as exc:
        raise FatalStartupError(f"Unable to read configuration file {path}: {exc}") from exc

    try:
        document = yaml.safe_load(raw)
    except yaml.YAMLError as exc:
        raise FatalStartupError(f"Unable to parse configuration file {path}: {exc}") from exc

    if document is None:
        document = {}
    if not isinstance(document, dict):
        raise FatalStartupError(f"Configuration file {path} must contain a mapping")

    try:
        return Settings.model_validate(document)
    except ValidationError as exc:
        raise FatalStartupError(f"Invalid settings detected: {exc}") from exc
