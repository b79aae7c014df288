"""Parsing of raw ``[scheme://]host[:port][#interval]`` addresses."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple

from .durations import UNIT_SECONDS
from .errors import InvalidAddress, InvalidDuration, MissingPort, UnknownScheme

logger = logging.getLogger("wait-for")

SCHEME_PORTS = {
    "amqp": "5672",
    "amqps": "5671",
    "http": "80",
    "https": "443",
    "imap": "143",
    "mysql": "3306",
    "ldap": "389",
    "ldaps": "636",
    "postgresql": "5432",
    "smtp": "25",
}

_ADDRESS_PATTERN = re.compile(r"(?:(?P<scheme>[A-Za-z]+)://)?(?P<host>[^#]*)(?:#(?P<freq>.*))?")
_DURATION_PART = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|μs|ms|s|m|h)")
_PORT_PATTERN = re.compile(r"[A-Za-z0-9][A-Za-z0-9_-]*")


@dataclass(frozen=True)
class EndpointSpec:
    """A single TCP endpoint to wait on."""

    host: str
    port: str
    poll_interval: float

    @property
    def addr(self) -> str:
        if ":" in self.host:
            return f"[{self.host}]:{self.port}"
        return f"{self.host}:{self.port}"

    @property
    def target(self) -> str:
        return f"tcp://{self.addr}"


def parse_duration(text: str) -> float:
    """Parse a duration such as ``500ms``, ``3s`` or ``1m30s`` into seconds.

    A bare ``0`` is accepted; every other value needs a unit on each number.
    """

    value = text
    sign = 1.0
    if value[:1] in ("+", "-"):
        sign = -1.0 if value[0] == "-" else 1.0
        value = value[1:]
    if value == "0":
        return 0.0
    if not value:
        raise InvalidDuration(text)

    total = 0.0
    pos = 0
    while pos < len(value):
        match = _DURATION_PART.match(value, pos)
        if match is None:
            raise InvalidDuration(text)
        total += float(match.group(1)) * UNIT_SECONDS[match.group(2)]
        pos = match.end()
    return sign * total


def split_host_port(address: str) -> Tuple[str, str]:
    """Split ``host:port`` or ``[ipv6]:port`` into its two parts."""

    if address.startswith("["):
        end = address.find("]")
        if end < 0:
            raise InvalidAddress(address, "missing ']' in address")
        rest = address[end + 1 :]
        if not rest.startswith(":"):
            raise InvalidAddress(address, "missing port in address")
        host, port = address[1:end], rest[1:]
        if "[" in host or "]" in port or "[" in port:
            raise InvalidAddress(address, "unexpected bracket in address")
        return host, port

    if address.count(":") > 1:
        raise InvalidAddress(address, "too many colons in address")
    host, _, port = address.rpartition(":")
    if "[" in host or "]" in host:
        raise InvalidAddress(address, "unexpected bracket in address")
    return host, port


def _validate_interval(text: str, interval: float) -> float:
    if interval <= 0:
        raise InvalidDuration(text, "poll interval must be positive")
    return interval


def parse_spec(raw: str, default_poll_interval: float) -> EndpointSpec:
    """Turn one raw address into an :class:`EndpointSpec`.

    An explicit port always wins over the default port of the scheme; a
    ``#interval`` suffix overrides ``default_poll_interval`` for this endpoint.
    """

    match = _ADDRESS_PATTERN.fullmatch(raw)
    if match is None or not match.group("host"):
        raise InvalidAddress(raw, "missing host")

    scheme: Optional[str] = match.group("scheme")
    host = match.group("host")
    freq: Optional[str] = match.group("freq")

    if ":" in host:
        host, port = split_host_port(host)
        if not port:
            raise MissingPort()
        if not host:
            raise InvalidAddress(raw, "missing host")
    elif scheme:
        port = SCHEME_PORTS.get(scheme.lower())
        if port is None:
            raise UnknownScheme(scheme)
    else:
        raise MissingPort()

    if not _PORT_PATTERN.fullmatch(port):
        raise InvalidAddress(raw, f"invalid port {port!r}")

    if freq is None:
        poll_interval = _validate_interval(str(default_poll_interval), default_poll_interval)
    else:
        poll_interval = _validate_interval(freq, parse_duration(freq))

    return EndpointSpec(host=host, port=port, poll_interval=poll_interval)


def parse_specs(raws: Iterable[str], default_poll_interval: float) -> List[EndpointSpec]:
    """Parse every raw address, raising on the first invalid one."""

    specs = [parse_spec(raw, default_poll_interval) for raw in raws]
    logger.debug("Parsed endpoint specs", extra={"targets": [spec.target for spec in specs]})
    return specs


__all__ = [
    "EndpointSpec",
    "SCHEME_PORTS",
    "parse_duration",
    "parse_spec",
    "parse_specs",
    "split_host_port",
]
