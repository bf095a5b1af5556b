"""Settings read from LOOPSCOPE_* environment variables.

Bad values never abort a run: they are reported and the default is used.
"""
from __future__ import annotations
import os
from enum import Enum
from typing import Callable, Mapping, Optional, TypeVar

from loguru import logger
from pydantic import BaseModel, ConfigDict, Field

ENV_PREFIX = "LOOPSCOPE"

T = TypeVar("T")

class AdmitMode(str, Enum):
    Eager = "eager"
    Stepwise = "stepwise"

LOG_LEVELS = ("TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL")

class Settings(BaseModel):
    model_config = ConfigDict(frozen=True)

    tick_interval_ms: int = Field(default=1000, ge=1)
    speed: float = Field(default=1.0, gt=0)
    trace_capacity: int = Field(default=20, ge=1)
    admit_mode: AdmitMode = AdmitMode.Eager
    max_ticks: int = Field(default=10000, ge=1)
    leaf_steps: bool = True
    log_level: str = "WARNING"

def _k(suffix: str) -> str:
    return f"{ENV_PREFIX}_{suffix}"

def _parse_bool(raw: str) -> bool:
    value = raw.strip().lower()
    if value in {"1", "true", "yes", "y", "on"}:
        return True
    if value in {"0", "false", "no", "n", "off"}:
        return False
    raise ValueError(f"not a boolean: {raw!r}")

def _parse_level(raw: str) -> str:
    level = raw.strip().upper()
    if level not in LOG_LEVELS:
        raise ValueError(f"unknown log level: {raw!r}")
    return level

def _positive(cast: Callable[[str], T]) -> Callable[[str], T]:
    def parse(raw: str) -> T:
        value = cast(raw.strip())
        if value <= 0:
            raise ValueError(f"must be > 0: {raw!r}")
        return value
    return parse

_PARSERS = {
    "tick_interval_ms": _positive(int),
    "speed": _positive(float),
    "trace_capacity": _positive(int),
    "admit_mode": lambda raw: AdmitMode(raw.strip().lower()),
    "max_ticks": _positive(int),
    "leaf_steps": _parse_bool,
    "log_level": _parse_level,
}

def load_settings(env: Optional[Mapping[str, str]] = None, **overrides) -> Settings:
    """Build Settings from the environment (or ``env``); keyword overrides win."""
    source = os.environ if env is None else env
    values = {}
    for name, parse in _PARSERS.items():
        key = _k(name.upper())
        raw = source.get(key)
        if raw is None or raw.strip() == "":
            continue
        try:
            values[name] = parse(raw)
        except ValueError as e:
            default = Settings.model_fields[name].default
            logger.warning("Ignoring {}={!r} ({}); using {}", key, raw, e, default)
    values.update({k: v for k, v in overrides.items() if v is not None})
    return Settings(**values)
