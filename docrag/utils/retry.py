"""Bounded retry with exponential backoff and per-call timeouts.

Embedding and vector-store calls are network-bound and fail transiently
(rate limits, dropped connections).  :func:`call_with_retry` wraps one such
call so that:

1. each attempt runs under ``asyncio.wait_for`` with the caller's timeout;
   a timeout is converted into the caller-supplied *transient* error type so
   it is retried like any other transient failure;
2. only the exception types listed in *retry_on* trigger another attempt --
   terminal errors propagate immediately;
3. after ``max_attempts`` the last exception is re-raised unchanged, so the
   coordinator sees the real cause, not a ``tenacity.RetryError``.
"""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, TypeVar

import structlog
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from docrag.utils.errors import DocRagError

logger = structlog.get_logger(logger_name=__name__)

_T = TypeVar("_T")


def _log_retry(operation: str) -> Callable[[RetryCallState], None]:
    def _before_sleep(retry_state: RetryCallState) -> None:
        exc = retry_state.outcome.exception() if retry_state.outcome else None
        logger.warning(
            "retrying_operation",
            operation=operation,
            attempt=retry_state.attempt_number,
            wait_s=round(retry_state.next_action.sleep, 3) if retry_state.next_action else 0.0,
            error=str(exc),
        )

    return _before_sleep


async def call_with_retry(
    operation: str,
    call: Callable[[], Awaitable[_T]],
    *,
    timeout: float | None,
    retry_on: tuple[type[BaseException], ...],
    timeout_error: Callable[[str], DocRagError],
    max_attempts: int = 3,
    backoff_base: float = 0.5,
    backoff_max: float = 8.0,
) -> _T:
    """Run *call* with a timeout per attempt and exponential backoff between attempts.

    Parameters
    ----------
    operation:
        Short label used in log events (e.g. ``"embed_batch"``).
    call:
        Zero-argument factory returning a fresh awaitable per attempt.
    timeout:
        Seconds allowed per attempt; ``None`` disables the timeout.
    retry_on:
        Exception types that warrant another attempt.
    timeout_error:
        Builds the exception raised when an attempt times out.  Should be
        one of the *retry_on* types so timeouts are retried.
    max_attempts:
        Total attempts including the first (minimum 1).
    backoff_base, backoff_max:
        Multiplier and cap (seconds) for ``tenacity.wait_exponential``.

    Returns
    -------
    The value produced by the first successful attempt.
    """

    async def _attempt() -> _T:
        try:
            return await asyncio.wait_for(call(), timeout=timeout)
        except asyncio.TimeoutError as exc:
            raise timeout_error(f"{operation} timed out after {timeout}s") from exc

    retrying = AsyncRetrying(
        stop=stop_after_attempt(max(1, max_attempts)),
        wait=wait_exponential(multiplier=backoff_base, max=backoff_max),
        retry=retry_if_exception_type(retry_on),
        before_sleep=_log_retry(operation),
        reraise=True,
    )
    async for attempt in retrying:
        with attempt:
            return await _attempt()
    raise AssertionError("unreachable: tenacity exhausted without raising")  # pragma: no cover
