"""Simulated transfer progress for staged files.

Each staged file gets its own task running a bounded stochastic counter: every
tick adds a random step in ``[step_min, step_max]`` until the total reaches
100, where it is clamped and the task ends.
"""

import asyncio
import logging
import math
import random
from collections.abc import Callable

from app.core.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

PROGRESS_COMPLETE = 100


def validate_step_range(step_min: int, step_max: int) -> None:
    if step_min <= 0:
        raise ConfigurationError(f"progress_step_min must be positive, got {step_min}")
    if step_max < step_min:
        raise ConfigurationError(f"progress_step_max ({step_max}) is lower than progress_step_min ({step_min})")


def max_ticks(step_min: int) -> int:
    """Upper bound on the number of ticks any file needs to reach 100."""
    return math.ceil(PROGRESS_COMPLETE / step_min)


def next_progress(current: int, rng: random.Random, step_min: int, step_max: int) -> int:
    return min(PROGRESS_COMPLETE, current + rng.randint(step_min, step_max))


async def simulate_progress(
    file_id: str,
    report: Callable[[str, int], bool],
    interval: float,
    step_min: int,
    step_max: int,
    rng: random.Random,
) -> int:
    """Drives one file from 0 to 100, reporting each new value through ``report``.

    ``report`` returns False once the file is no longer staged, which ends the
    simulation early. Returns the last reported progress value.
    """
    progress = 0
    while progress < PROGRESS_COMPLETE:
        await asyncio.sleep(interval)
        progress = next_progress(progress, rng, step_min, step_max)
        if not report(file_id, progress):
            logger.debug("PROGRESS: %s left the staging list at %d%%, stopping", file_id, progress)
            return progress
    return progress
