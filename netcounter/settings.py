"""Runtime settings for NetCounter, read from the environment."""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Final

from netcounter.counter import DEFAULT_ACCURACY_KB, DEFAULT_INTERVAL_S
from netcounter.models import UINT32_MAX

logger = logging.getLogger(__name__)

MANAGER_ENV: Final = "NETCOUNTER_MANAGER"
ACCURACY_ENV: Final = "NETCOUNTER_ACCURACY_KB"
INTERVAL_ENV: Final = "NETCOUNTER_INTERVAL_S"
SEED_ENV: Final = "NETCOUNTER_SIMULATION_SEED"

MANAGER_CHOICES: Final = ("auto", "connman", "fake")


def _read_uint32(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name, "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        logger.warning("Invalid %s=%r, using %d", name, raw, default)
        return default
    if value < 0 or value > UINT32_MAX:
        logger.warning("Out of range %s=%d, using %d", name, value, default)
        return default
    return value


@dataclass(frozen=True)
class Settings:
    """Settings for one NetCounter process."""

    manager: str = "auto"  # auto tries ConnMan, then falls back to fake
    accuracy_kb: int = DEFAULT_ACCURACY_KB
    interval_s: int = DEFAULT_INTERVAL_S
    simulation_seed: int | None = None

    @classmethod
    def from_env(cls, env: Mapping[str, str] | None = None) -> Settings:
        """Build settings from environment variables.

        Invalid values are logged and replaced by their defaults.
        """
        if env is None:
            env = os.environ

        manager = env.get(MANAGER_ENV, "auto").strip().lower() or "auto"
        if manager not in MANAGER_CHOICES:
            logger.warning("Unknown %s=%r, using auto", MANAGER_ENV, manager)
            manager = "auto"

        seed = None
        raw_seed = env.get(SEED_ENV, "").strip()
        if raw_seed:
            try:
                seed = int(raw_seed)
            except ValueError:
                logger.warning("Invalid %s=%r, ignoring", SEED_ENV, raw_seed)

        return cls(
            manager=manager,
            accuracy_kb=_read_uint32(env, ACCURACY_ENV, DEFAULT_ACCURACY_KB),
            interval_s=_read_uint32(env, INTERVAL_ENV, DEFAULT_INTERVAL_S),
            simulation_seed=seed,
        )
