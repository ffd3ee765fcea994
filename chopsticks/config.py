"""
Configuration - Game timings and rule flags.

Defaults match the classic online game. Every field can be overridden
from the environment with a ``CHOPSTICKS_`` prefixed variable, e.g.
``CHOPSTICKS_TURN_SECONDS=20``.
"""

from __future__ import annotations
from dataclasses import dataclass, fields
from functools import lru_cache
from typing import Mapping
import os


ENV_PREFIX = "CHOPSTICKS_"

_TRUE_VALUES = ("1", "true", "yes", "on")


@dataclass(frozen=True)
class GameConfig:
    """Timing (in seconds) and rule switches for a match."""
    turn_seconds: float = 30.0
    strike_limit: int = 2
    janken_delay: float = 3.0
    computer_delay: float = 1.0
    heartbeat_interval: float = 5.0
    poll_interval: float = 1.0
    clock_tick: float = 0.1

    # "subscribe" uses store push notifications, "poll" re-reads every poll_interval
    sync_mode: str = "subscribe"

    # Rule variants
    allow_self_attack: bool = True

    # Network protocol switches
    verify_remote: bool = True
    atomic_claims: bool = True
    claim_attempts: int = 3
    room_code_length: int = 6

    def __post_init__(self):
        if self.sync_mode not in ("subscribe", "poll"):
            raise ValueError(f"Unknown sync mode: {self.sync_mode}")
        if self.strike_limit < 1:
            raise ValueError("strike_limit must be at least 1")

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> GameConfig:
        """Build a config from CHOPSTICKS_* environment variables."""
        environ = os.environ if environ is None else environ
        overrides = {}
        for f in fields(cls):
            raw = environ.get(ENV_PREFIX + f.name.upper())
            if raw is None:
                continue
            if f.type == "bool":
                overrides[f.name] = raw.lower() in _TRUE_VALUES
            elif f.type == "int":
                overrides[f.name] = int(raw)
            elif f.type == "float":
                overrides[f.name] = float(raw)
            else:
                overrides[f.name] = raw
        return cls(**overrides)


@lru_cache
def get_config() -> GameConfig:
    return GameConfig.from_env()
