"""
Environment-driven settings.

Every value can be overridden through a `DRUGTRACE_*` variable; CLI flags in
`drugtrace.__main__` take precedence over the environment.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping


def _normalize_base_url(url: str) -> str:
    url = url.strip()
    if not url:
        return ""
    # Allow passing just host:port.
    if "://" not in url:
        url = "http://" + url
    return url.rstrip("/")


def _int_env(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError as ex:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from ex


@dataclass(frozen=True)
class Settings:
    admin: str = "admin"
    admin_name: str = "Admin"
    host: str = "127.0.0.1"
    port: int = 8000
    log_level: str = "info"
    event_buffer: int = 10_000
    url: str = ""


def load_settings(env: Mapping[str, str] | None = None) -> Settings:
    env = os.environ if env is None else env

    admin = env.get("DRUGTRACE_ADMIN", "admin").strip()
    if not admin:
        raise ValueError("DRUGTRACE_ADMIN cannot be empty")

    event_buffer = _int_env(env, "DRUGTRACE_EVENT_BUFFER", 10_000)
    if event_buffer <= 0:
        raise ValueError("DRUGTRACE_EVENT_BUFFER must be positive")

    return Settings(
        admin=admin,
        admin_name=env.get("DRUGTRACE_ADMIN_NAME", "Admin"),
        host=env.get("DRUGTRACE_HOST", "127.0.0.1"),
        port=_int_env(env, "DRUGTRACE_PORT", 8000),
        log_level=env.get("DRUGTRACE_LOG_LEVEL", "info").strip().lower() or "info",
        event_buffer=event_buffer,
        url=_normalize_base_url(env.get("DRUGTRACE_URL", "")),
    )
