from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping

from .fetching import DEFAULT_TIMEOUT, DEFAULT_USER_AGENT
from .scheduler import DEFAULT_SPEED_WPM

__all__ = [
    "DEFAULT_PORT",
    "MAX_SPEED_WPM",
    "MIN_SPEED_WPM",
    "ReaderConfig",
    "ServerConfig",
]

DEFAULT_PORT = 5174
MIN_SPEED_WPM = 100
MAX_SPEED_WPM = 3000
USER_AGENT_ENV = "SPEEDREAD_USER_AGENT"
FETCH_TIMEOUT_ENV = "SPEEDREAD_FETCH_TIMEOUT"
PORT_ENV = "PORT"


def _env_float(env: Mapping[str, str], key: str, default: float) -> float:
    raw = env.get(key)
    if raw is None or not raw.strip():
        return default
    try:
        value = float(raw)
    except ValueError as exc:
        raise ValueError(f"{key} must be a number, got {raw!r}") from exc
    if value <= 0:
        raise ValueError(f"{key} must be positive, got {raw!r}")
    return value


def _env_int(env: Mapping[str, str], key: str, default: int) -> int:
    raw = env.get(key)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ValueError(f"{key} must be an integer, got {raw!r}") from exc


@dataclass(slots=True)
class ServerConfig:
    host: str = "0.0.0.0"
    port: int = DEFAULT_PORT
    user_agent: str = DEFAULT_USER_AGENT
    fetch_timeout: float = DEFAULT_TIMEOUT
    debug: bool = False

    @classmethod
    def from_env(cls, env: Mapping[str, str] | None = None, **overrides: object) -> "ServerConfig":
        env = os.environ if env is None else env
        config = cls(
            port=_env_int(env, PORT_ENV, DEFAULT_PORT),
            user_agent=env.get(USER_AGENT_ENV) or DEFAULT_USER_AGENT,
            fetch_timeout=_env_float(env, FETCH_TIMEOUT_ENV, DEFAULT_TIMEOUT),
        )
        for key, value in overrides.items():
            if value is not None:
                setattr(config, key, value)
        return config


@dataclass(slots=True)
class ReaderConfig:
    speed_wpm: int = DEFAULT_SPEED_WPM
    chunk_size: int = 1
    pause_seconds: float = 0.25
    user_agent: str = DEFAULT_USER_AGENT
    fetch_timeout: float = DEFAULT_TIMEOUT

    def __post_init__(self) -> None:
        if not MIN_SPEED_WPM <= self.speed_wpm <= MAX_SPEED_WPM:
            raise ValueError(
                f"speed must be between {MIN_SPEED_WPM} and {MAX_SPEED_WPM} WPM, got {self.speed_wpm}"
            )
        if self.chunk_size not in (1, 2, 3):
            raise ValueError(f"chunk size must be 1, 2 or 3, got {self.chunk_size}")
        if self.pause_seconds < 0:
            raise ValueError("pause must be non-negative.")
