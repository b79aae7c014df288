"""Status events emitted while waiting and the outcome they reduce to."""

from __future__ import annotations

import time
from dataclasses import dataclass
from enum import Enum, auto
from typing import Callable, Optional

from .spec import EndpointSpec

NO_TARGET = "<none>"

Clock = Callable[[], float]


class Status(Enum):
    """Lifecycle states of a single endpoint wait."""

    START = auto()
    READY = auto()
    FAILED = auto()

    @property
    def is_terminal(self) -> bool:
        return self is not Status.START


@dataclass(frozen=True)
class Event:
    """A state transition of one endpoint, or a synthetic orchestrator event."""

    status: Status
    spec: Optional[EndpointSpec]
    elapsed: float
    error: Optional[BaseException] = None

    def __post_init__(self) -> None:
        if self.status is Status.FAILED and self.error is None:
            raise ValueError("FAILED event requires an error")
        if self.status is not Status.FAILED and self.error is not None:
            raise ValueError(f"{self.status.name} event cannot carry an error")

    @property
    def target(self) -> str:
        if self.spec is None:
            return NO_TARGET
        return self.spec.target

    @classmethod
    def start(cls, spec: EndpointSpec, started: float, clock: Clock = time.monotonic) -> "Event":
        return cls(Status.START, spec, clock() - started)

    @classmethod
    def ready(cls, spec: EndpointSpec, started: float, clock: Clock = time.monotonic) -> "Event":
        return cls(Status.READY, spec, clock() - started)

    @classmethod
    def failed(
        cls,
        spec: Optional[EndpointSpec],
        started: float,
        error: BaseException,
        clock: Clock = time.monotonic,
    ) -> "Event":
        return cls(Status.FAILED, spec, clock() - started, error)


@dataclass(frozen=True)
class WaitOutcome:
    """Final result of waiting on a set of endpoints."""

    elapsed: float
    error: Optional[BaseException] = None
    culprit: Optional[EndpointSpec] = None

    @property
    def ok(self) -> bool:
        return self.error is None


__all__ = ["Clock", "Event", "NO_TARGET", "Status", "WaitOutcome"]
