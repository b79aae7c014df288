"""Error kinds raised while parsing endpoints and waiting on them."""

from __future__ import annotations

from typing import Optional

from .durations import format_duration


class WaitError(Exception):
    """Base class for every error raised by wait-for."""


class SpecError(WaitError, ValueError):
    """Raised when a raw address cannot be turned into an endpoint spec."""


class MissingPort(SpecError):
    def __init__(self, message: str = "neither port nor protocol is given") -> None:
        super().__init__(message)


class UnknownScheme(SpecError):
    def __init__(self, scheme: str) -> None:
        self.scheme = scheme
        super().__init__(f'port not given and protocol is unknown: "{scheme}"')


class InvalidDuration(SpecError):
    def __init__(self, text: str, reason: Optional[str] = None) -> None:
        self.text = text
        message = f"invalid duration {text!r}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class InvalidAddress(SpecError):
    def __init__(self, address: str, reason: str) -> None:
        self.address = address
        self.reason = reason
        super().__init__(f"address {address}: {reason}")


class DialTransient(WaitError):
    """A connection attempt failed; the poller tries again on its next tick."""

    def __init__(self, target: str, cause: BaseException) -> None:
        self.target = target
        super().__init__(f"dial {target}: {cause}")


class WaitCancelled(WaitError):
    """The shared cancellation scope was triggered."""

    def __init__(self, reason: str = "wait cancelled") -> None:
        self.reason = reason
        super().__init__(reason)


class ExceededTimeout(WaitError):
    """The global timeout elapsed before every endpoint became ready."""

    def __init__(self, timeout: float) -> None:
        self.timeout = timeout
        super().__init__(f"exceeded timeout limit of {format_duration(timeout)}")


__all__ = [
    "DialTransient",
    "ExceededTimeout",
    "InvalidAddress",
    "InvalidDuration",
    "MissingPort",
    "SpecError",
    "UnknownScheme",
    "WaitCancelled",
    "WaitError",
]
