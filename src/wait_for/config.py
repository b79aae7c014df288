"""Runtime settings sourced from environment variables."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, replace
from typing import Optional

from .spec import parse_duration

logger = logging.getLogger("wait-for")


@dataclass(frozen=True)
class WaitConfig:
    """Defaults applied to every wait unless overridden on the command line."""

    timeout: float = 5.0
    poll_interval: float = 0.5
    status_interval: float = 1.0
    quiet: bool = False

    @classmethod
    def from_env(cls) -> "WaitConfig":
        """Create a configuration instance from process environment variables."""

        def _get_bool(key: str, default: bool = False) -> bool:
            return os.getenv(key, str(default)).strip().lower() in {"1", "true", "yes", "on"}

        def _get_duration(key: str, default: float) -> float:
            raw = os.getenv(key, "").strip()
            if not raw:
                return default
            return parse_duration(raw)

        config = cls(
            timeout=_get_duration("WAIT_FOR_TIMEOUT", cls.timeout),
            poll_interval=_get_duration("WAIT_FOR_POLL_FREQ", cls.poll_interval),
            status_interval=_get_duration("WAIT_FOR_STATUS_FREQ", cls.status_interval),
            quiet=_get_bool("WAIT_FOR_QUIET"),
        )
        logger.debug("Loaded configuration from environment", extra={"config": config})
        return config

    def override(
        self,
        *,
        timeout: Optional[float] = None,
        poll_interval: Optional[float] = None,
        status_interval: Optional[float] = None,
        quiet: Optional[bool] = None,
    ) -> "WaitConfig":
        """Return a copy with every non-``None`` argument applied."""

        changes = {
            "timeout": timeout,
            "poll_interval": poll_interval,
            "status_interval": status_interval,
            "quiet": quiet,
        }
        return replace(self, **{key: value for key, value in changes.items() if value is not None})


__all__ = ["WaitConfig"]
