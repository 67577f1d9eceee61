"""Resolver interface, query priorities, errors and retry policies."""

from __future__ import annotations

from abc import ABC, abstractmethod
from enum import IntEnum
from typing import Callable, Optional

import dns.message
import dns.rcode

# Made-up rcode indicating an interface error.
RESOLVER_ERR_RCODE = 100
# Made-up rcode indicating that a query timed out.
TIMEOUT_RCODE = 101

Retry = Callable[[int, int, Optional[dns.message.Message]], bool]

RETRY_CODES = (TIMEOUT_RCODE, RESOLVER_ERR_RCODE)

POOL_RETRY_CODES = (
    TIMEOUT_RCODE,
    RESOLVER_ERR_RCODE,
    int(dns.rcode.REFUSED),
    int(dns.rcode.SERVFAIL),
    int(dns.rcode.NOTIMP),
)


class Priority(IntEnum):
    """Priority levels for resolver queries."""

    LOW = 0
    NORMAL = 1
    HIGH = 2
    CRITICAL = 3


_ATTEMPTS = {
    Priority.CRITICAL: 500,
    Priority.HIGH: 250,
    Priority.NORMAL: 100,
    Priority.LOW: 50,
}


class ResolveError(Exception):
    """A failed DNS query, carrying the rcode that describes the failure."""

    def __init__(self, message: str, rcode: int) -> None:
        super().__init__(message)
        self.message = message
        self.rcode = rcode

    def __str__(self) -> str:
        return self.message


class Resolver(ABC):
    """Something that performs DNS resolutions."""

    @abstractmethod
    def stop(self) -> None:
        """Stop the resolver."""

    @abstractmethod
    def stopped(self) -> bool:
        """Return True if the resolver has been stopped."""

    @abstractmethod
    def query(
        self, msg: dns.message.Message, priority: int, retry: Optional[Retry] = None
    ) -> dns.message.Message:
        """Send msg and return the reply; raise ResolveError on failure."""

    @abstractmethod
    def wildcard_type(self, msg: dns.message.Message, domain: str) -> int:
        """Return the DNS wildcard type for the name queried in msg."""


def attempts_exceeded(times: int, priority: int) -> bool:
    """Return True when times is beyond the attempts allowed for priority."""
    return times > _ATTEMPTS.get(priority, 0)


def _check_policy(times: int, priority: int, msg, codes) -> bool:
    if attempts_exceeded(times, priority):
        return False
    if msg is None:
        return False
    return int(msg.rcode()) in codes


def retry_policy(times: int, priority: int, msg) -> bool:
    """Default policy deciding whether a DNS query should be tried again."""
    return _check_policy(times, priority, msg, RETRY_CODES)


def pool_retry_policy(times: int, priority: int, msg) -> bool:
    """Policy used by resolver pools deciding whether a query should be tried again."""
    return _check_policy(times, priority, msg, POOL_RETRY_CODES)