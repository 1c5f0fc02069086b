"""
Utility Functions for the Resonance Touch Interface

This module provides numeric helpers, the clock abstraction used for
timing and scheduling, and a retry helper for transient operations.
"""

import asyncio
import logging
import time
from typing import Awaitable, Callable, Optional, Tuple, Type, TypeVar

logger = logging.getLogger("resonance_touch.utils")

T = TypeVar("T")


def clamp(value: float, minimum: float = 0.0, maximum: float = 1.0) -> float:
    """Clamp a value between minimum and maximum bounds."""
    return max(minimum, min(maximum, value))


def calculate_emotional_intensity(
    pressure: float, thermal: float, pulse: Optional[float] = None
) -> float:
    """
    Combine normalized sensor readings into an emotional intensity.

    Pressure contributes 60%, thermal 30% and pulse (when present) 10%.
    """
    intensity = pressure * 0.6 + thermal * 0.3
    if pulse is not None:
        intensity += pulse * 0.1
    return clamp(intensity)


class SystemClock:
    """Wall-clock time source used outside of tests.

    Anything with the same three methods can be injected instead, which
    keeps latency and uptime measurements deterministic under test.
    """

    def time(self) -> float:
        """Current wall-clock time in seconds since the epoch."""
        return time.time()

    def monotonic(self) -> float:
        """Monotonic time in seconds, for measuring intervals."""
        return time.perf_counter()

    async def sleep(self, seconds: float) -> None:
        await asyncio.sleep(seconds)


async def retry_with_backoff(
    func: Callable[[], Awaitable[T]],
    max_attempts: int = 3,
    base_delay: float = 0.1,
    max_delay: float = 2.0,
    retry_on: Tuple[Type[BaseException], ...] = (Exception,),
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> T:
    """
    Run an async operation, retrying failures with exponential backoff.

    Args:
        func: Zero-argument coroutine function to run
        max_attempts: Total number of attempts, including the first one
        base_delay: Delay in seconds before the second attempt
        max_delay: Upper bound for any single delay
        retry_on: Exception types that trigger a retry
        sleep: Coroutine used to wait between attempts

    Returns:
        The result of the first successful attempt

    Raises:
        The exception from the last attempt once all attempts are exhausted
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be at least 1")

    attempt = 1
    while True:
        try:
            return await func()
        except retry_on as e:
            if attempt >= max_attempts:
                logger.error(f"Operation failed after {attempt} attempts: {e}")
                raise
            delay = min(max_delay, base_delay * (2 ** (attempt - 1)))
            logger.warning(
                f"Attempt {attempt}/{max_attempts} failed ({e}), retrying in {delay:.2f}s"
            )
            await sleep(delay)
            attempt += 1
