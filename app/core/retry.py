"""
Bounded retry with exponential backoff.

Used around operations that can lose a race against a concurrent writer
whose transaction is not yet visible, e.g. a get-or-create that hit a
unique constraint. The policy re-runs a lookup until it produces a value
or the attempt budget is spent.

Usage:
    from core.retry import RetryPolicy

    policy = RetryPolicy(max_attempts=3, base_delay=0.5)
    conversation = policy.run(lambda: Conversation.objects.filter(...).first())
    if conversation is None:
        # Budget exhausted
        ...

Design Notes:
    - The first attempt runs immediately; delays apply between attempts
    - Delay for attempt n (n >= 2) is base_delay * multiplier ** (n - 2),
      capped at max_delay when set
    - sleep is injectable so tests never block
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, TypeVar

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    """Configuration and runner for a bounded backoff loop."""

    max_attempts: int = 3
    """Total number of attempts, including the first immediate one."""

    base_delay: float = 0.5
    """Seconds to wait before the second attempt."""

    multiplier: float = 2.0
    """Growth factor applied to the delay after each failed attempt."""

    max_delay: float | None = None
    """Upper bound for a single delay, or None for no cap."""

    sleep: Callable[[float], None] = field(default=time.sleep, repr=False, compare=False)

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.base_delay < 0:
            raise ValueError("base_delay cannot be negative")

    def delays(self) -> Iterator[float]:
        """Yield the wait before each attempt after the first."""
        delay = self.base_delay
        for _ in range(self.max_attempts - 1):
            if self.max_delay is not None:
                delay = min(delay, self.max_delay)
            yield delay
            delay *= self.multiplier

    def run(self, operation: Callable[[], T | None], description: str = "operation") -> T | None:
        """
        Call operation until it returns a value other than None.

        Args:
            operation: Zero-argument callable; None means "not yet"
            description: Label used in log lines

        Returns:
            The first non-None result, or None when every attempt missed
        """
        result = operation()
        if result is not None:
            return result

        for attempt, delay in enumerate(self.delays(), start=2):
            logger.debug(
                f"{description}: attempt {attempt - 1} missed, retrying in {delay:.3f}s"
            )
            self.sleep(delay)
            result = operation()
            if result is not None:
                return result

        logger.warning(f"{description}: gave up after {self.max_attempts} attempts")
        return None
