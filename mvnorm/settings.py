"""
Process-level settings read from the environment (and a .env file if present).
"""

import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

from mvnorm.device import Target
from mvnorm.errors import ConfigError
from mvnorm.layer_config import parse_bool

load_dotenv()


@dataclass
class Settings:
    """
    Attributes:
        preferable_target: Target new layers prefer; None picks CUDA when present
        disable_batched: Never attempt the batched strategy
        force_perf_check: Override the vendor heuristic (None leaves it alone)
        log_level: Level name used by entry-point scripts
    """
    preferable_target: Optional[Target] = None
    disable_batched: bool = False
    force_perf_check: Optional[bool] = None
    log_level: str = "INFO"


def _env(name: str) -> Optional[str]:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return None
    return value.strip()


def load_settings() -> Settings:
    target_name = _env("MVN_PREFERABLE_TARGET")
    target = None
    if target_name is not None:
        try:
            target = Target(target_name.lower())
        except ValueError as exc:
            raise ConfigError(
                f"MVN_PREFERABLE_TARGET must be one of {[t.value for t in Target]}, got {target_name!r}"
            ) from exc

    disable = _env("MVN_DISABLE_BATCHED")
    force = _env("MVN_FORCE_PERF_CHECK")
    return Settings(
        preferable_target=target,
        disable_batched=parse_bool(disable, "MVN_DISABLE_BATCHED") if disable is not None else False,
        force_perf_check=parse_bool(force, "MVN_FORCE_PERF_CHECK") if force is not None else None,
        log_level=(_env("MVN_LOG_LEVEL") or "INFO").upper(),
    )
