from __future__ import annotations

import random
import socket
import time
from dataclasses import dataclass
from typing import Callable, Optional, TypeVar

import httplib2
from googleapiclient.errors import HttpError

from sheet_manager import logger as logger_mod

log = logger_mod.get_logger()

T = TypeVar("T")

RETRYABLE_ERRNOS = {
    104,  # ECONNRESET
    110,  # ETIMEDOUT
    111,  # ECONNREFUSED
    113,  # EHOSTUNREACH
}


@dataclass(frozen=True)
class RetryConfig:
    """Retry/backoff settings for Google API calls.

    The default makes a single attempt: errors reach the caller exactly as
    the client library raised them. Raise `max_retries` to opt in to backoff.
    """

    max_retries: int = 1
    base_delay_s: float = 1.0
    max_delay_s: float = 60.0

    def __post_init__(self) -> None:
        if self.max_retries < 1:
            object.__setattr__(self, "max_retries", 1)
        if self.base_delay_s <= 0:
            object.__setattr__(self, "base_delay_s", 0.1)
        if self.max_delay_s < self.base_delay_s:
            object.__setattr__(self, "max_delay_s", float(self.base_delay_s))


def http_status(error: HttpError) -> Optional[int]:
    return getattr(getattr(error, "resp", None), "status", None)


def is_retryable_http_error(error: HttpError) -> bool:
    """Return True for server errors, throttling, timeouts and quota-flavoured 403s."""

    status = http_status(error)
    if not isinstance(status, int):
        return False
    if 500 <= status <= 599 or status in (408, 429):
        return True
    if status == 403:
        msg = str(error).lower()
        return any(
            s in msg for s in ("quota", "rate limit", "ratelimit", "user-rate")
        )
    return False


def is_retryable_non_http_error(error: Exception) -> bool:
    """Return True for timeouts and connection-level failures."""

    if isinstance(error, (TimeoutError, socket.timeout, httplib2.HttpLib2Error)):
        return True
    if isinstance(error, OSError):
        return getattr(error, "errno", None) in RETRYABLE_ERRNOS
    return False


def _is_retryable(error: Exception) -> bool:
    if isinstance(error, HttpError):
        return is_retryable_http_error(error)
    return is_retryable_non_http_error(error)


def execute_with_retry(
    fn: Callable[[], T],
    *,
    context: str,
    retry: RetryConfig | None = None,
) -> T:
    """Run one Google API call, logging failures and optionally backing off."""

    retry = retry or RetryConfig()
    delay = retry.base_delay_s

    for attempt in range(1, retry.max_retries + 1):
        try:
            return fn()
        except Exception as e:
            if attempt == retry.max_retries or not _is_retryable(e):
                kind = "HttpError" if isinstance(e, HttpError) else type(e).__name__
                log.error(
                    f"❌ Google API {kind} while {context} "
                    f"(attempt {attempt}/{retry.max_retries}): {e}"
                )
                raise

            # exponential backoff with jitter (0.7x-1.3x)
            wait = min(retry.max_delay_s, delay) * (0.7 + random.random() * 0.6)
            log.warning(
                f"⚠️ Retryable Google API error while {context}; retrying in {wait:.1f}s "
                f"(attempt {attempt}/{retry.max_retries})"
            )
            time.sleep(wait)
            delay *= 2

    raise RuntimeError(f"Unknown error while {context}")
