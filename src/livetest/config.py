"""Harness configuration."""

from __future__ import annotations

import os
from dataclasses import dataclass, fields
from typing import Any, Mapping

from uvicorn.config import LOG_LEVELS

ENV_PREFIX = "LIVETEST_"


@dataclass(frozen=True, slots=True)
class HarnessConfig:
    """
    Settings for one TestClient.

    Attributes:
        host: Interface the server binds to
        port: Port to bind; 0 lets the OS pick an ephemeral one
        probe_path: Path polled by the startup prober
        probe_interval: Seconds between startup probes
        startup_timeout: Upper bound for startup probing; None waits forever
        request_timeout: Timeout applied by the HTTP client to each request
        log_level: uvicorn log level
        lifespan: uvicorn lifespan mode ("auto", "on" or "off")
    """
    host: str = "127.0.0.1"
    port: int = 0
    probe_path: str = "/"
    probe_interval: float = 0.05
    startup_timeout: float | None = None
    request_timeout: float | None = 5.0
    log_level: str = "warning"
    lifespan: str = "auto"

    def __post_init__(self):
        if not 0 <= self.port <= 65535:
            raise ValueError(f"port out of range: {self.port}")
        if self.probe_interval <= 0:
            raise ValueError("probe_interval must be positive")
        if not self.probe_path.startswith("/"):
            raise ValueError(f"probe_path must start with '/': {self.probe_path!r}")
        if self.lifespan not in ("auto", "on", "off"):
            raise ValueError(f"unknown lifespan mode: {self.lifespan!r}")
        if self.log_level not in LOG_LEVELS:
            raise ValueError(
                f"unknown log level {self.log_level!r}, expected one of {sorted(LOG_LEVELS)}"
            )

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None, **overrides: Any) -> "HarnessConfig":
        """Build a config from LIVETEST_* environment variables, then apply overrides."""
        env = os.environ if environ is None else environ
        values: dict[str, Any] = {}
        for f in fields(cls):
            raw = env.get(ENV_PREFIX + f.name.upper())
            if raw is None:
                continue
            values[f.name] = _convert(f.name, raw)
        values.update(overrides)
        return cls(**values)


def _convert(name: str, raw: str) -> Any:
    match name:
        case "port":
            return int(raw)
        case "probe_interval":
            return float(raw)
        case "log_level":
            return raw.strip().lower()
        case "startup_timeout" | "request_timeout":
            if raw.strip().lower() in ("", "none"):
                return None
            return float(raw)
        case _:
            return raw
