"""Waiting on many endpoints at once under a single timeout."""

from __future__ import annotations

import asyncio
import logging
import time
from contextlib import aclosing
from typing import AsyncIterator, Callable, List, Optional, Sequence

from .errors import ExceededTimeout
from .events import Clock, Event, Status, WaitOutcome
from .merge import EventMerger
from .poller import CancelScope, poll
from .spec import EndpointSpec

logger = logging.getLogger("wait-for")


class WaitOrchestrator:
    """Run one poller per endpoint and decide the overall outcome.

    :meth:`events` is the primary interface and yields every event as it
    arrives. The outcome is decided by the first FAILED event, by the last
    READY event, or by the timeout, whichever comes first; at that point the
    shared scope is cancelled and :attr:`outcome` is set. The generator only
    finishes after every poller has terminated.
    """

    def __init__(
        self,
        specs: Sequence[EndpointSpec],
        timeout: float,
        *,
        clock: Clock = time.monotonic,
    ) -> None:
        self._specs: List[EndpointSpec] = list(specs)
        self._timeout = timeout
        self._clock = clock
        self._scope = CancelScope()
        self._started = False
        self.outcome: Optional[WaitOutcome] = None

    @property
    def scope(self) -> CancelScope:
        return self._scope

    def _decide(self, outcome: WaitOutcome, reason: str) -> None:
        self.outcome = outcome
        self._scope.cancel(reason)
        if outcome.ok:
            logger.info("All endpoints ready", extra={"count": len(self._specs), "elapsed": outcome.elapsed})
        else:
            logger.info(
                "Wait failed",
                extra={
                    "error": str(outcome.error),
                    "target": outcome.culprit.target if outcome.culprit else None,
                    "elapsed": outcome.elapsed,
                },
            )

    async def events(self) -> AsyncIterator[Event]:
        if self._started:
            raise RuntimeError("WaitOrchestrator can only be run once")
        self._started = True

        started = self._clock()
        if not self._specs:
            self._decide(WaitOutcome(elapsed=0.0), "no endpoints to wait on")
            return

        loop = asyncio.get_running_loop()
        deadline = loop.time() + self._timeout
        pollers = [poll(spec, self._scope, started, clock=self._clock) for spec in self._specs]
        ready = 0

        logger.info(
            "Waiting for endpoints",
            extra={"targets": [spec.target for spec in self._specs], "timeout": self._timeout},
        )
        async with EventMerger(pollers) as merged:
            try:
                while self.outcome is None:
                    try:
                        event = await asyncio.wait_for(merged.get(), timeout=max(deadline - loop.time(), 0))
                    except asyncio.TimeoutError:
                        error = ExceededTimeout(self._timeout)
                        event = Event.failed(None, started, error, self._clock)
                        self._decide(WaitOutcome(elapsed=event.elapsed, error=error), str(error))
                        yield event
                        break

                    if event is None:
                        raise RuntimeError("all pollers finished without reaching a decision")

                    if event.status.is_terminal:
                        if event.status is Status.FAILED:
                            self._decide(
                                WaitOutcome(elapsed=event.elapsed, error=event.error, culprit=event.spec),
                                f"{event.target} failed",
                            )
                        else:
                            ready += 1
                            if ready == len(self._specs):
                                self._decide(WaitOutcome(elapsed=event.elapsed), "all endpoints ready")
                    yield event
            finally:
                self._scope.cancel("wait finished")


async def await_all(
    specs: Sequence[EndpointSpec],
    timeout: float,
    *,
    clock: Clock = time.monotonic,
    on_event: Optional[Callable[[Event], None]] = None,
) -> WaitOutcome:
    """Wait until every endpoint in ``specs`` is ready, or fail."""

    orchestrator = WaitOrchestrator(specs, timeout, clock=clock)
    async with aclosing(orchestrator.events()) as events:
        async for event in events:
            if on_event is not None:
                on_event(event)
    if orchestrator.outcome is None:
        raise RuntimeError("wait finished without an outcome")
    return orchestrator.outcome


__all__ = ["WaitOrchestrator", "await_all"]
