"""Runtime configuration read from the environment."""
from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping, Optional

POLICY_NAMES = ("basic", "greedy-corner")


def _seconds(env: Mapping[str, str], name: str, default: float) -> float:
    raw = env.get(name)
    if raw is None or raw == "":
        return default
    try:
        value = float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number of seconds, got {raw!r}") from None
    if value < 0:
        raise ValueError(f"{name} must not be negative")
    return value


def default_policy(env: Optional[Mapping[str, str]] = None) -> str:
    """Policy name used when a caller does not pick one."""
    env = os.environ if env is None else env
    raw = env.get("DISCFLIP_DEFAULT_POLICY") or "greedy-corner"
    name = raw.strip().lower()
    if name not in POLICY_NAMES:
        raise ValueError(
            f"DISCFLIP_DEFAULT_POLICY must be one of {list(POLICY_NAMES)}, got {raw!r}"
        )
    return name


@dataclass(frozen=True)
class Timings:
    """Playback pacing in seconds."""

    flip_step: float = 0.1
    trailing: float = 0.2
    opponent_delay: float = 0.8
    pass_delay: float = 0.5

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "Timings":
        env = os.environ if env is None else env
        defaults = cls()
        return cls(
            flip_step=_seconds(env, "DISCFLIP_FLIP_STEP", defaults.flip_step),
            trailing=_seconds(env, "DISCFLIP_TRAILING_DELAY", defaults.trailing),
            opponent_delay=_seconds(env, "DISCFLIP_OPPONENT_DELAY", defaults.opponent_delay),
            pass_delay=_seconds(env, "DISCFLIP_PASS_DELAY", defaults.pass_delay),
        )

    @classmethod
    def instant(cls) -> "Timings":
        return cls(flip_step=0.0, trailing=0.0, opponent_delay=0.0, pass_delay=0.0)
