"""
Runtime settings read from the environment (.env is loaded by the entry points).

- SIGNAL_MAX_WORKERS: worker threads for per-item extraction (default 4, min 1).
- SIGNAL_IMAGE_GRID: downsample grid edge in pixels (default 100, 1-1000).
- SIGNAL_DECODE_TIMEOUT: seconds allowed per image decode (default 5.0).
- SIGNAL_RANDOM_SEED: optional int seed for coordinate jitter, ids and population estimates.
- LOG_LEVEL: logging level name (default INFO).
Invalid values fall back to the default.
"""

import logging
import os
from dataclasses import dataclass
from typing import Optional

logger = logging.getLogger("disaster_api.config")

DEFAULT_MAX_WORKERS = 4
DEFAULT_IMAGE_GRID = 100
DEFAULT_DECODE_TIMEOUT = 5.0
MAX_IMAGE_GRID = 1000


def _env_int(name: str, default: Optional[int]) -> Optional[int]:
    v = os.environ.get(name)
    if v is None or v.strip() == "":
        return default
    try:
        return int(v.strip())
    except ValueError:
        logger.warning("ignoring invalid %s=%r", name, v)
        return default


def _env_float(name: str, default: float) -> float:
    v = os.environ.get(name)
    if v is None or v.strip() == "":
        return default
    try:
        return float(v.strip())
    except ValueError:
        logger.warning("ignoring invalid %s=%r", name, v)
        return default


@dataclass(frozen=True)
class Settings:
    max_workers: int = DEFAULT_MAX_WORKERS
    image_grid: int = DEFAULT_IMAGE_GRID
    decode_timeout: float = DEFAULT_DECODE_TIMEOUT
    random_seed: Optional[int] = None
    log_level: str = "INFO"


def load_settings() -> Settings:
    """Build Settings from the current environment."""
    workers = max(1, _env_int("SIGNAL_MAX_WORKERS", DEFAULT_MAX_WORKERS))
    grid = max(1, min(MAX_IMAGE_GRID, _env_int("SIGNAL_IMAGE_GRID", DEFAULT_IMAGE_GRID)))
    timeout = _env_float("SIGNAL_DECODE_TIMEOUT", DEFAULT_DECODE_TIMEOUT)
    if timeout <= 0:
        timeout = DEFAULT_DECODE_TIMEOUT
    level = (os.environ.get("LOG_LEVEL") or "INFO").strip().upper()
    if not isinstance(logging.getLevelName(level), int):
        level = "INFO"
    return Settings(
        max_workers=workers,
        image_grid=grid,
        decode_timeout=timeout,
        random_seed=_env_int("SIGNAL_RANDOM_SEED", None),
        log_level=level,
    )
