"""Live per-poller status used for progress reporting."""

from __future__ import annotations

import logging
from copy import deepcopy
from typing import Any, Dict

from .events import Event, Status

logger = logging.getLogger("wait-for")


class StatusBoard:
    """Latest state of every poller, fed from one event loop.

    Entries are keyed by the endpoint spec instance, so duplicate addresses
    are tracked as separate pollers.
    """

    def __init__(self) -> None:
        self._pollers: Dict[int, Dict[str, Any]] = {}

    def record(self, event: Event) -> None:
        """Record the state carried by ``event``; synthetic events are ignored."""

        if event.spec is None:
            return
        state = {
            "target": event.target,
            "status": event.status.name.lower(),
            "ready": event.status is Status.READY,
            "elapsed": event.elapsed,
            "last_error": str(event.error) if event.error is not None else None,
        }
        self._pollers[id(event.spec)] = state

        logger.debug("Recorded poller state", extra={"target": event.target, "state": state})

    def snapshot(self) -> Dict[str, Any]:
        """Copy of every poller state in start order, with an overall ``ok``."""

        pollers = deepcopy(list(self._pollers.values()))
        ok = all(state["ready"] for state in pollers)
        return {"ok": ok, "pollers": pollers}


__all__ = ["StatusBoard"]
