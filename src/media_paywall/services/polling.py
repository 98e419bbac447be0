"""Bounded client-side polling for payment status."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from media_paywall.domain.errors import PollingCancelled, VerificationTimeout
from media_paywall.domain.payments import PaymentStatus

_logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RetryPolicy:
    """How many times to ask, and how long to wait between asks."""

    max_attempts: int = 10
    interval_seconds: float = 2.0

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.interval_seconds < 0:
            raise ValueError("interval_seconds must not be negative")


async def poll_payment_status(
    fetch: Callable[[], Awaitable[PaymentStatus]],
    policy: RetryPolicy | None = None,
    cancel: asyncio.Event | None = None,
) -> PaymentStatus:
    """Call ``fetch`` until it returns a terminal status.

    Raises VerificationTimeout once the attempt budget is spent; the payment
    may still complete later through the provider webhook. Raises
    PollingCancelled as soon as ``cancel`` is set.
    """
    policy = policy or RetryPolicy()
    for attempt in range(1, policy.max_attempts + 1):
        if cancel is not None and cancel.is_set():
            raise PollingCancelled()
        status = await fetch()
        if status.is_terminal:
            _logger.info("Payment status settled: status=%s attempt=%s", status, attempt)
            return status
        if attempt == policy.max_attempts:
            break
        if await _wait(policy.interval_seconds, cancel):
            raise PollingCancelled()
    _logger.warning("Payment status polling timed out after %s attempts", policy.max_attempts)
    raise VerificationTimeout(VerificationTimeout.user_message)


async def _wait(seconds: float, cancel: asyncio.Event | None) -> bool:
    """Sleep for the interval; return True if cancelled meanwhile."""
    if cancel is None:
        await asyncio.sleep(seconds)
        return False
    try:
        await asyncio.wait_for(cancel.wait(), timeout=seconds)
    except TimeoutError:
        return False
    return True
