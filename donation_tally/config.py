"""Runtime settings for the donation tally, overridable from the environment."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping

from .counter import DEFAULT_DURATION_SECONDS, DEFAULT_STEPS, DEFAULT_VISIBILITY_THRESHOLD
from .store import DONATIONS_KEY

DEFAULT_DB_PATH = Path(".data/donation_tally.db")
DEFAULT_MONTHLY_GOAL = 50_000_000
DEFAULT_POLL_INTERVAL_SECONDS = 1.0

_ENV_PREFIX = "DONATION_TALLY_"


def _env(environ: Mapping[str, str], name: str) -> str | None:
    value = environ.get(_ENV_PREFIX + name)
    if value is None:
        return None
    stripped = value.strip()
    return stripped or None


def _parse_int(name: str, value: str) -> int:
    try:
        return int(value.replace("_", ""))
    except ValueError:
        raise ValueError(f"{_ENV_PREFIX}{name} must be a whole number, got {value!r}.") from None


def _parse_float(name: str, value: str) -> float:
    try:
        return float(value)
    except ValueError:
        raise ValueError(f"{_ENV_PREFIX}{name} must be a number, got {value!r}.") from None


@dataclass(frozen=True)
class TallySettings:
    db_path: Path = DEFAULT_DB_PATH
    storage_key: str = DONATIONS_KEY
    monthly_goal: int = DEFAULT_MONTHLY_GOAL
    animation_duration: float = DEFAULT_DURATION_SECONDS
    animation_steps: int = DEFAULT_STEPS
    visibility_threshold: float = DEFAULT_VISIBILITY_THRESHOLD
    poll_interval: float = DEFAULT_POLL_INTERVAL_SECONDS
    log_level: str = "INFO"

    def __post_init__(self) -> None:
        if not self.storage_key:
            raise ValueError("Storage key cannot be empty.")
        if self.monthly_goal < 0:
            raise ValueError("Monthly goal cannot be negative.")
        if self.animation_duration <= 0:
            raise ValueError("Animation duration must be positive.")
        if self.animation_steps <= 0:
            raise ValueError("Animation steps must be positive.")
        if not 0 < self.visibility_threshold <= 1:
            raise ValueError("Visibility threshold must be between 0 and 1.")
        if self.poll_interval <= 0:
            raise ValueError("Poll interval must be positive.")

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> TallySettings:
        if environ is None:
            environ = os.environ

        overrides: dict[str, object] = {}
        db_path = _env(environ, "DB_PATH")
        if db_path is not None:
            overrides["db_path"] = Path(db_path)
        storage_key = _env(environ, "STORAGE_KEY")
        if storage_key is not None:
            overrides["storage_key"] = storage_key
        goal = _env(environ, "MONTHLY_GOAL")
        if goal is not None:
            overrides["monthly_goal"] = _parse_int("MONTHLY_GOAL", goal)
        duration = _env(environ, "ANIMATION_DURATION")
        if duration is not None:
            overrides["animation_duration"] = _parse_float("ANIMATION_DURATION", duration)
        steps = _env(environ, "ANIMATION_STEPS")
        if steps is not None:
            overrides["animation_steps"] = _parse_int("ANIMATION_STEPS", steps)
        poll_interval = _env(environ, "POLL_INTERVAL")
        if poll_interval is not None:
            overrides["poll_interval"] = _parse_float("POLL_INTERVAL", poll_interval)
        log_level = _env(environ, "LOG_LEVEL")
        if log_level is not None:
            overrides["log_level"] = log_level.upper()

        return cls(**overrides)  # type: ignore[arg-type]


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
