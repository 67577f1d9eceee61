"""Tracking of outstanding DNS exchanges and resolver timeout averages."""

from __future__ import annotations

import queue
import threading
import time
from collections import deque
from dataclasses import dataclass, field
from typing import Callable, Optional

import dns.message

from reconkit.messages import remove_last_dot
from reconkit.retries import ResolveError

# Seconds until a resolver query expires.
QUERY_TIMEOUT = 2.0

MIN_NUM_IN_AVERAGE = 10
MAX_NUM_IN_AVERAGE = 20
FAILURE_PERCENTAGE = 0.8
EXPIRE_DURATION = 30.0

Clock = Callable[[], float]


@dataclass
class ResolveResult:
    """The outcome of a query: a reply, or an error and whether to try again."""

    msg: Optional[dns.message.Message] = None
    again: bool = False
    error: Optional[ResolveError] = None


@dataclass
class ResolveRequest:
    """A query that has been handed to a resolver and awaits its reply."""

    id: int
    name: str
    qtype: int
    msg: Optional[dns.message.Message] = None
    timestamp: Optional[float] = None
    result: "queue.Queue[ResolveResult]" = field(
        default_factory=lambda: queue.Queue(maxsize=2)
    )


def xchg_key(msg_id: int, name: str) -> str:
    """Return the key that identifies an exchange by message id and name."""
    return f"{msg_id}:{remove_last_dot(name).lower()}"


class XchgManager:
    """Holds the requests that are waiting for replies."""

    def __init__(self, timeout: Optional[float] = None, clock: Clock = time.monotonic) -> None:
        self.timeout = QUERY_TIMEOUT if timeout is None else timeout
        self._clock = clock
        self._lock = threading.Lock()
        self._xchgs: dict[str, ResolveRequest] = {}

    def __len__(self) -> int:
        with self._lock:
            return len(self._xchgs)

    def add(self, req: ResolveRequest) -> None:
        """Track req; raise ValueError when its key is already in use."""
        key = xchg_key(req.id, req.name)
        with self._lock:
            if key in self._xchgs:
                raise ValueError(f"Key {key} is already in use")
            self._xchgs[key] = req

    def update_timestamp(self, msg_id: int, name: str) -> None:
        """Mark the request as sent now, which starts its expiration time."""
        with self._lock:
            req = self._xchgs.get(xchg_key(msg_id, name))
            if req is not None:
                req.timestamp = self._clock()

    def remove(self, msg_id: int, name: str) -> Optional[ResolveRequest]:
        """Stop tracking the request and return it, or None when it is unknown."""
        with self._lock:
            return self._xchgs.pop(xchg_key(msg_id, name), None)

    def remove_expired(self) -> list[ResolveRequest]:
        """Remove and return the sent requests whose time has run out."""
        with self._lock:
            now = self._clock()
            expired = [
                key
                for key, req in self._xchgs.items()
                if req.timestamp is not None and now > req.timestamp + self.timeout
            ]
            return [self._xchgs.pop(key) for key in expired]

    def remove_all(self) -> list[ResolveRequest]:
        """Remove and return every tracked request."""
        with self._lock:
            removed = list(self._xchgs.values())
            self._xchgs.clear()
            return removed


@dataclass
class _WindowEntry:
    timeout: bool
    timestamp: float


class SlidingWindowTimeouts:
    """Keeps a recent window of timeouts per resolver to detect failing ones."""

    def __init__(self, clock: Clock = time.monotonic) -> None:
        self._clock = clock
        self._lock = threading.Lock()
        self._windows: dict[str, deque[_WindowEntry]] = {}

    def update_timeouts(self, key: str, timeout: bool) -> bool:
        """Record one query result; return True when key times out too often."""
        with self._lock:
            now = self._clock()
            window = self._windows.setdefault(key, deque(maxlen=MAX_NUM_IN_AVERAGE))
            window.append(_WindowEntry(timeout, now))

            while window and now > window[0].timestamp + EXPIRE_DURATION:
                window.popleft()

            if len(window) < MIN_NUM_IN_AVERAGE:
                return False
            timeouts = sum(1 for entry in window if entry.timeout)
            return timeouts / len(window) >= FAILURE_PERCENTAGE