"""Retry with exponential backoff for transient filesystem errors."""

import errno
import logging
import random
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TypeVar

from ..config.schema import RetryConfig

logger = logging.getLogger(__name__)

T = TypeVar("T")

TRANSIENT_ERRNOS = frozenset(
    {
        errno.EBUSY,
        errno.EMFILE,
        errno.ENFILE,
        errno.EAGAIN,
        errno.EINTR,
        errno.ETXTBSY,
    }
)

TRANSIENT_MESSAGES = ("resource busy", "temporarily unavailable")


@dataclass
class RetryPolicy:
    """How often and how long to wait before retrying.

    Attempt ``n`` (zero based) waits ``base_delay * 2**n`` seconds plus a
    uniform random jitter in ``[0, max_jitter]``.
    """

    max_retries: int = 3
    base_delay: float = 1.0
    max_jitter: float = 1.0
    sleep: Callable[[float], None] = field(default=time.sleep, repr=False)

    @classmethod
    def from_config(cls, config: RetryConfig) -> "RetryPolicy":
        return cls(
            max_retries=config.max_retries,
            base_delay=config.base_delay,
            max_jitter=config.max_jitter,
        )

    def delay(self, attempt: int) -> float:
        return self.base_delay * (2**attempt) + random.uniform(0, self.max_jitter)


def is_transient_error(error: BaseException) -> bool:
    """Return True for errors worth retrying (busy files, descriptor limits)."""
    if isinstance(error, OSError) and error.errno in TRANSIENT_ERRNOS:
        return True
    message = str(error).lower()
    return any(text in message for text in TRANSIENT_MESSAGES)


def with_retry(
    operation: Callable[[], T],
    *,
    is_retryable: Callable[[BaseException], bool] = is_transient_error,
    policy: RetryPolicy | None = None,
    description: str = "operation",
) -> T:
    """Run ``operation`` and retry it while it fails with a retryable error.

    Non-retryable errors propagate immediately. When the retries are used up
    the last error is re-raised unchanged.
    """
    policy = policy or RetryPolicy()
    attempt = 0
    while True:
        try:
            return operation()
        except Exception as e:
            if not is_retryable(e) or attempt >= policy.max_retries:
                if attempt:
                    logger.debug(
                        "%s failed after %d attempt(s): %s", description, attempt + 1, e
                    )
                raise
            delay = policy.delay(attempt)
            attempt += 1
            logger.warning(
                "%s failed (%s), retrying in %.1fs (attempt %d/%d)",
                description,
                e,
                delay,
                attempt,
                policy.max_retries,
            )
            policy.sleep(delay)
