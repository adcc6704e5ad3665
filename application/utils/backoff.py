"""Retry/backoff policy injected into services that talk to flaky upstreams."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
    wait_random,
)

from core.logging_config import get_logger


logger = get_logger(__name__)


@dataclass(frozen=True)
class BackoffPolicy:
    """Bounded exponential backoff with additive jitter.

    ``max_attempts`` counts the first try. Delays grow as
    ``base_delay * 2**(n-1)`` capped at ``max_delay``, plus ``U(0, jitter)``.
    """

    max_attempts: int = 3
    base_delay: float = 0.5
    max_delay: float = 4.0
    jitter: float = 0.25

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        if min(self.base_delay, self.max_delay, self.jitter) < 0:
            raise ValueError("delays must be >= 0")

    @classmethod
    def from_settings(cls, retry: Any) -> "BackoffPolicy":
        return cls(
            max_attempts=int(retry.max_attempts),
            base_delay=float(retry.base_delay),
            max_delay=float(retry.max_delay),
            jitter=float(retry.jitter),
        )

    @classmethod
    def no_wait(cls, max_attempts: int = 3) -> "BackoffPolicy":
        return cls(max_attempts=max_attempts, base_delay=0.0, max_delay=0.0, jitter=0.0)

    def retrying(self, retry_on: tuple[type[BaseException], ...], *, operation: str = "upstream_call") -> AsyncRetrying:
        def _log_retry(state: RetryCallState) -> None:
            exc = state.outcome.exception() if state.outcome else None
            logger.warning(
                "retrying_after_failure",
                operation=operation,
                attempt=state.attempt_number,
                max_attempts=self.max_attempts,
                error=str(exc) if exc else None,
            )

        return AsyncRetrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_exponential(multiplier=self.base_delay, max=self.max_delay) + wait_random(0, self.jitter),
            retry=retry_if_exception_type(retry_on),
            before_sleep=_log_retry,
            reraise=True,
        )
