"""
Shared Utility Functions

Common utility functions used across modules.
"""

import time
from pathlib import Path
from time import perf_counter
from typing import Callable, TypeVar

T = TypeVar('T')

# Repository root: lib/ lives directly under it
PLUGIN_ROOT = Path(__file__).resolve().parent.parent


def measure_duration_ms(func: Callable[[], T]) -> tuple[T, int]:
    """
    Measure function duration in milliseconds.

    Args:
        func: A callable that takes no arguments

    Returns:
        A tuple of (result, duration_ms)
    """
    start = perf_counter()
    result = func()
    duration_ms = int((perf_counter() - start) * 1000)
    return result, duration_ms


def new_session_id() -> str:
    """Timestamp-based identifier for a setup run, e.g. 20261017-142530."""
    return time.strftime('%Y%m%d-%H%M%S')


def resolve_config_path(path: Path | str, base: Path = PLUGIN_ROOT) -> Path:
    """
    Resolve a config path given on the command line or in the environment.

    Absolute and ~ paths are used as-is. Relative paths are tried against
    the current directory first, then against `base`.
    """
    candidate = Path(path).expanduser()
    if candidate.is_absolute() or candidate.exists():
        return candidate
    return base / candidate
