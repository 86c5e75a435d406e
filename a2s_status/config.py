from __future__ import annotations

import math
import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

from .errors import ConfigurationError

# Floors for the two timers (seconds)
MIN_INTERVAL_SECONDS = 5.0
MIN_HEARTBEAT_SECONDS = 30.0

DEFAULT_INTERVAL_SECONDS = 60.0
DEFAULT_HEARTBEAT_SECONDS = 300.0
DEFAULT_SERVER_LABEL = "Game Server"
DEFAULT_STATE_FILE = "last_state.json"

QUERY_PROTOCOLS = ("a2s", "tcp")


@dataclass(frozen=True)
class Settings:
    # discord
    webhook_url: str

    # target server
    host: str
    port: int
    query_protocol: str = "a2s"
    query_timeout: float = 2.5
    query_attempts: int = 2

    # timers
    interval_seconds: float = DEFAULT_INTERVAL_SECONDS
    heartbeat_seconds: float = DEFAULT_HEARTBEAT_SECONDS

    # display
    server_label: str = DEFAULT_SERVER_LABEL
    display_capacity: int = 0

    # storage / logging
    state_file: Path = Path(DEFAULT_STATE_FILE)
    debug_log_enabled: bool = False
    debug_log_file: Path = Path("debug.log")


def _getenv_str(env, name: str, default: str = "") -> str:
    return (env.get(name) or default).strip()


def _getenv_bool(env, name: str, default: bool) -> bool:
    v = _getenv_str(env, name, str(default)).lower()
    return v in ("1", "true", "yes", "y", "on")


def _is_placeholder_webhook(url: str) -> bool:
    return (not url) or ("CHANGE_ME" in url)


class _Parser:
    """Collects every problem so one run reports them all."""

    def __init__(self, env):
        self.env = env
        self.problems: list[str] = []

    def number(self, name: str, default: str | None, cast, *, minimum=None, maximum=None):
        raw = _getenv_str(self.env, name, default or "")
        if not raw:
            self.problems.append(f"{name} is required")
            return None
        try:
            value = cast(raw)
        except ValueError:
            self.problems.append(f"{name} must be a number, got {raw!r}")
            return None
        if not math.isfinite(value):
            self.problems.append(f"{name} must be a finite number, got {raw!r}")
            return None
        if minimum is not None and value < minimum:
            self.problems.append(f"{name} must be >= {minimum:g}, got {raw}")
            return None
        if maximum is not None and value > maximum:
            self.problems.append(f"{name} must be <= {maximum:g}, got {raw}")
            return None
        return value


def settings_from_env(env) -> Settings:
    """Build and validate Settings from a mapping of environment values."""
    p = _Parser(env)

    webhook_url = _getenv_str(env, "WEBHOOK_URL")
    if _is_placeholder_webhook(webhook_url):
        p.problems.append("WEBHOOK_URL is required")
    elif not webhook_url.startswith(("http://", "https://")):
        p.problems.append("WEBHOOK_URL must be an http(s) URL")
    webhook_url = webhook_url.rstrip("/")

    host = _getenv_str(env, "HOST")
    if not host:
        p.problems.append("HOST is required")

    port = p.number("PORT", None, int, minimum=1, maximum=65535)
    interval = p.number("INTERVAL_SECONDS", str(DEFAULT_INTERVAL_SECONDS), float,
                        minimum=MIN_INTERVAL_SECONDS)
    heartbeat = p.number("HEARTBEAT_SECONDS", str(DEFAULT_HEARTBEAT_SECONDS), float,
                         minimum=MIN_HEARTBEAT_SECONDS)
    display_capacity = p.number("DISPLAY_MAXPLAYERS", "0", int, minimum=0)
    query_timeout = p.number("QUERY_TIMEOUT", "2.5", float)
    if query_timeout is not None and query_timeout <= 0:
        p.problems.append("QUERY_TIMEOUT must be > 0")
    query_attempts = p.number("QUERY_ATTEMPTS", "2", int, minimum=1)

    protocol = _getenv_str(env, "QUERY_PROTOCOL", "a2s").lower()
    if protocol not in QUERY_PROTOCOLS:
        p.problems.append(f"QUERY_PROTOCOL must be one of {', '.join(QUERY_PROTOCOLS)}, got {protocol!r}")

    if p.problems:
        raise ConfigurationError("Missing/invalid config: " + "; ".join(p.problems))

    return Settings(
        webhook_url=webhook_url,
        host=host,
        port=port,
        query_protocol=protocol,
        query_timeout=query_timeout,
        query_attempts=query_attempts,
        interval_seconds=interval,
        heartbeat_seconds=heartbeat,
        server_label=_getenv_str(env, "SERVER_LABEL", DEFAULT_SERVER_LABEL),
        display_capacity=display_capacity,
        state_file=Path(_getenv_str(env, "STATE_FILE", DEFAULT_STATE_FILE)).expanduser(),
        debug_log_enabled=_getenv_bool(env, "DEBUG_LOG_ENABLED", False),
        debug_log_file=Path(_getenv_str(env, "DEBUG_LOG_FILE", "debug.log")).expanduser(),
    )


def load_settings(env_file: str | Path | None = None) -> Settings:
    if env_file is not None:
        env_path = Path(env_file)
        if not env_path.exists():
            raise ConfigurationError(f"env file not found: {env_path}")
        load_dotenv(dotenv_path=env_path)
    else:
        load_dotenv()
    return settings_from_env(os.environ)
