from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"", "0", "false", "no", "off"}


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    value = raw.strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value not in _FALSE_VALUES:
        logger.warning(f"Ignoring {name}={raw!r}: not a boolean")
        return default
    return False


def _env_int(name: str, default: Optional[int]) -> Optional[int]:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning(f"Ignoring {name}={raw!r}: not an integer")
        return default


@dataclass
class SchedulerConfig:
    """Settings for the scheduling engine.

    strict_cycles: raise CycleError when the critical path computation
        starves tasks caught in a cycle instead of silently dropping them.
    max_depth: longest dependency chain the earliest-start walk follows
        before giving up; None means unbounded.
    default_duration: duration given to new tasks that do not state one.
    """

    strict_cycles: bool = False
    max_depth: Optional[int] = None
    default_duration: int = 1

    @classmethod
    def from_env(cls, dotenv_path: Optional[str] = None) -> "SchedulerConfig":
        """Read settings from PLANNER_* environment variables (and a .env file)."""
        load_dotenv(dotenv_path)

        strict = _env_bool("PLANNER_STRICT_CYCLES", False)
        max_depth = _env_int("PLANNER_MAX_DEPTH", None)
        if max_depth is not None and max_depth < 1:
            logger.warning(f"Ignoring PLANNER_MAX_DEPTH={max_depth}: must be positive")
            max_depth = None
        default_duration = _env_int("PLANNER_DEFAULT_DURATION", 1)
        if default_duration < 1:
            logger.warning(
                f"Ignoring PLANNER_DEFAULT_DURATION={default_duration}: must be positive"
            )
            default_duration = 1

        return cls(
            strict_cycles=strict,
            max_depth=max_depth,
            default_duration=default_duration,
        )
