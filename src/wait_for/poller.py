"""Per-endpoint polling until a TCP connection succeeds or the wait is cancelled."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import time
from typing import AsyncIterator, Awaitable, Callable, Optional, TypeVar

from tenacity import AsyncRetrying, RetryCallState, retry_if_exception_type

from .errors import DialTransient, WaitCancelled
from .events import Clock, Event
from .spec import EndpointSpec

logger = logging.getLogger("wait-for")

T = TypeVar("T")


class CancelScope:
    """Broadcast cancellation signal shared by every poller of one wait."""

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self._reason: Optional[str] = None

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    @property
    def reason(self) -> Optional[str]:
        return self._reason

    def cancel(self, reason: str = "wait cancelled") -> bool:
        """Trigger the scope; returns False if it was already triggered."""

        if self._event.is_set():
            return False
        self._reason = reason
        self._event.set()
        logger.debug("Cancellation scope triggered", extra={"reason": reason})
        return True

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise WaitCancelled(self._reason or "wait cancelled")

    async def wait(self) -> None:
        await self._event.wait()

    async def guard(self, awaitable: Awaitable[T]) -> T:
        """Await ``awaitable`` unless the scope is cancelled first.

        On cancellation the pending work is cancelled and reaped before
        :class:`WaitCancelled` is raised.
        """

        work = asyncio.ensure_future(awaitable)
        waiter = asyncio.ensure_future(self.wait())
        try:
            await asyncio.wait({work, waiter}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for future in (work, waiter):
                if not future.done():
                    future.cancel()
            await asyncio.gather(work, waiter, return_exceptions=True)
        if work.cancelled():
            self.raise_if_cancelled()
        return work.result()

    async def sleep(self, seconds: float) -> None:
        """Sleep for ``seconds`` unless the scope is cancelled first."""

        try:
            await asyncio.wait_for(self._event.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            return
        self.raise_if_cancelled()


async def dial(spec: EndpointSpec) -> None:
    """Open and immediately close a TCP connection to ``spec``."""

    try:
        _, writer = await asyncio.wait_for(
            asyncio.open_connection(spec.host, spec.port),
            timeout=spec.poll_interval,
        )
    except (OSError, asyncio.TimeoutError, ValueError, OverflowError) as exc:
        raise DialTransient(spec.target, exc) from exc
    writer.close()
    with contextlib.suppress(OSError):
        await writer.wait_closed()


def _until_next_tick(interval: float) -> Callable[[RetryCallState], float]:
    # Attempts are aligned to ticks of ``interval`` counted from the first
    # attempt; ticks missed by a slow dial are skipped.
    def _wait(retry_state: RetryCallState) -> float:
        elapsed = (retry_state.outcome_timestamp or time.monotonic()) - retry_state.start_time
        return interval - (elapsed % interval)

    return _wait


def _log_retry(spec: EndpointSpec) -> Callable[[RetryCallState], None]:
    def _before_sleep(retry_state: RetryCallState) -> None:
        exc = retry_state.outcome.exception() if retry_state.outcome else None
        logger.debug(
            "Endpoint not ready",
            extra={
                "target": spec.target,
                "attempt": retry_state.attempt_number,
                "error": str(exc) if exc else None,
                "next_attempt_in": retry_state.next_action.sleep if retry_state.next_action else None,
            },
        )

    return _before_sleep


async def poll(
    spec: EndpointSpec,
    scope: CancelScope,
    started: float,
    *,
    clock: Clock = time.monotonic,
) -> AsyncIterator[Event]:
    """Yield START, then READY once ``spec`` accepts a connection.

    The first dial happens immediately and later ones once per poll interval.
    A connection error never ends the wait; only cancellation of ``scope``
    does, in which case a FAILED event carrying :class:`WaitCancelled` is
    yielded instead of READY.
    """

    yield Event.start(spec, started, clock)

    retrying = AsyncRetrying(
        sleep=scope.sleep,
        retry=retry_if_exception_type(DialTransient),
        wait=_until_next_tick(spec.poll_interval),
        before_sleep=_log_retry(spec),
        reraise=True,
    )
    try:
        async for attempt in retrying:
            with attempt:
                scope.raise_if_cancelled()
                await scope.guard(dial(spec))
    except WaitCancelled as exc:
        logger.debug("Stopped polling", extra={"target": spec.target, "reason": exc.reason})
        yield Event.failed(spec, started, exc, clock)
        return

    logger.info("Endpoint ready", extra={"target": spec.target})
    yield Event.ready(spec, started, clock)


__all__ = ["CancelScope", "dial", "poll"]
