from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Callable, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _always_retry(_: Exception) -> bool:
    return True


@dataclass
class RetryResult:
    success: bool
    attempts: int
    value: object = None
    error: Optional[Exception] = None


@dataclass
class RetryPolicy:
    """Exponential backoff shared by every retried destination.

    Delays run ``base_delay * factor ** (attempt - 1)`` capped at
    ``max_delay``: 1s then 2s with the defaults.
    """

    max_attempts: int = 3
    base_delay: float = 1.0
    factor: float = 2.0
    max_delay: float = 5.0
    is_retryable: Callable[[Exception], bool] = _always_retry
    sleep: Callable[[float], None] = field(default=time.sleep, repr=False)

    def delay_for(self, attempt: int) -> float:
        return min(self.base_delay * self.factor ** (attempt - 1), self.max_delay)

    def with_predicate(self, is_retryable: Callable[[Exception], bool]) -> "RetryPolicy":
        return RetryPolicy(
            max_attempts=self.max_attempts,
            base_delay=self.base_delay,
            factor=self.factor,
            max_delay=self.max_delay,
            is_retryable=is_retryable,
            sleep=self.sleep,
        )

    def run(self, operation: Callable[[], T], label: str = "operation") -> RetryResult:
        """Call ``operation`` until it returns or the policy gives up. Never raises."""
        last_error: Optional[Exception] = None
        attempt = 0
        while attempt < self.max_attempts:
            attempt += 1
            try:
                value = operation()
            except Exception as exc:  # noqa: BLE001 - outcome is reported, not raised
                last_error = exc
                logger.warning("%s attempt %d/%d failed: %s", label, attempt, self.max_attempts, exc)
                if not self.is_retryable(exc):
                    logger.error("%s failed with a non-retryable error; giving up", label)
                    break
                if attempt < self.max_attempts:
                    delay = self.delay_for(attempt)
                    logger.info("%s retrying in %.1fs", label, delay)
                    self.sleep(delay)
                continue
            return RetryResult(success=True, attempts=attempt, value=value)
        return RetryResult(success=False, attempts=attempt, error=last_error)
