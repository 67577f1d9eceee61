"""A pool that spreads DNS queries across many resolvers, optionally checked by a trusted baseline."""

from __future__ import annotations

import copy
import logging
import threading
import time
from typing import Callable, Iterable, Optional

import dns.message
import dns.rcode

from reconkit.exchange import SlidingWindowTimeouts
from reconkit.retries import (
    RESOLVER_ERR_RCODE,
    TIMEOUT_RCODE,
    ResolveError,
    Resolver,
    Retry,
    attempts_exceeded,
)

PARTITION_SWITCH_DELAY = 30.0
MAX_SERVFAILS = 5
_IDLE = 0.01


def _partition(resolvers: list[Resolver], partnum: int) -> list[list[Resolver]]:
    num = len(resolvers) // partnum
    parts = []
    for i in range(partnum):
        start = i * num
        if i == partnum - 1:
            part = resolvers[start:]
        else:
            # Each leading partition leaves out its last slot
            part = resolvers[start : max(start, start + num - 1)]
        if part:
            parts.append(part)
    return parts


class ResolverPool(Resolver):
    """Sends queries to resolvers in turn, pausing those that time out too often.

    When a baseline resolver is given, answers found by the pool are confirmed
    with it, and resolvers that report false positives are stopped.
    """

    def __init__(
        self,
        resolvers: Iterable[Resolver],
        delay: float = 2.0,
        baseline: Optional[Resolver] = None,
        partnum: int = 1,
        logger: Optional[logging.Logger] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        resolvers = list(resolvers)
        if not resolvers:
            raise ValueError("a resolver pool needs at least one resolver")
        partnum = max(partnum, 1)

        self._clock = clock
        self._lock = threading.Lock()
        self._log = logger if logger is not None else logging.getLogger(__name__)
        self._baseline = baseline
        self._delay = delay
        self._avgs = SlidingWindowTimeouts()
        self._waits: dict[str, float] = {}
        self._sfcount = 0
        self._cur_part = 0
        self._cur_idx = 0
        self._last = clock()
        self._stopped = False
        self._partitions = _partition(resolvers, partnum)

    def __str__(self) -> str:
        return "ResolverPool"

    def stop(self) -> None:
        with self._lock:
            if self._stopped:
                return
            self._stopped = True
            partitions, self._partitions = self._partitions, []

        for part in partitions:
            for resolver in part:
                resolver.stop()
        if self._baseline is not None:
            self._baseline.stop()

    def stopped(self) -> bool:
        with self._lock:
            return self._stopped

    def _usable(self, resolver: Resolver, now: float) -> bool:
        wait = self._waits.get(str(resolver))
        return (wait is None or now > wait) and not resolver.stopped()

    def _next_partition(self) -> None:
        now = self._clock()
        if now < self._last + PARTITION_SWITCH_DELAY:
            return
        self._cur_part = (self._cur_part + 1) % len(self._partitions)
        self._last = now
        self._cur_idx = 0

    def _all_stopped(self) -> bool:
        with self._lock:
            return all(r.stopped() for part in self._partitions for r in part)

    def _next_resolver(self) -> Optional[Resolver]:
        count = 0
        while True:
            with self._lock:
                if self._stopped or not self._partitions:
                    return None
                if self._sfcount > MAX_SERVFAILS:
                    self._next_partition()
                part = self._partitions[self._cur_part]
                resolver = part[self._cur_idx]
                self._cur_idx = (self._cur_idx + 1) % len(part)
                usable = self._usable(resolver, self._clock())
            if usable:
                return resolver

            count = (count + 1) % len(part)
            if count == 0 or count > 5:
                with self._lock:
                    self._next_partition()
                if self._all_stopped():
                    return None
                time.sleep(_IDLE)

    def _inc_servfail_count(self) -> None:
        with self._lock:
            if self._clock() < self._last + PARTITION_SWITCH_DELAY:
                return
            self._sfcount += 1

    def _update_wait(self, key: str, delay: float) -> None:
        with self._lock:
            self._waits[key] = self._clock() + delay

    def _num_usable_resolvers(self) -> int:
        with self._lock:
            now = self._clock()
            return sum(1 for part in self._partitions for r in part if self._usable(r, now))

    def query(
        self, msg: dns.message.Message, priority: int, retry: Optional[Retry] = None
    ) -> dns.message.Message:
        if self._baseline is not None and self._num_usable_resolvers() == 0:
            return self._baseline.query(msg, priority, retry)

        error: Optional[ResolveError] = None
        reply: Optional[dns.message.Message] = None
        resolver: Optional[Resolver] = None
        times = 1
        while not attempts_exceeded(times, priority):
            resolver = self._next_resolver()
            if resolver is None:
                break

            try:
                reply = resolver.query(msg, priority, None)
                error = None
            except ResolveError as exc:
                reply = None
                error = exc

            timeout = error is not None and error.rcode == TIMEOUT_RCODE
            key = str(resolver)
            # Pause use of the resolver if queries have failed too often
            if self._avgs.update_timeouts(key, timeout) and timeout:
                self._log.debug("Pausing resolver %s after repeated timeouts", key)
                self._update_wait(key, self._delay)

            if error is None:
                break
            # Timeouts and resolver errors cause retries without the callback
            if error.rcode in (TIMEOUT_RCODE, RESOLVER_ERR_RCODE):
                times += 1
                continue
            if error.rcode == dns.rcode.SERVFAIL:
                self._inc_servfail_count()
                times += 1
                continue

            failed = copy.copy(msg)
            failed.set_rcode(error.rcode)
            if retry is None or not retry(times, priority, failed):
                break
            times += 1

        if error is not None:
            raise error
        if reply is None:
            raise ResolveError("Resolver: the pool has no usable resolvers", RESOLVER_ERR_RCODE)

        if self._baseline is not None and reply.answer:
            # Validate findings from an untrusted resolver
            reply = self._baseline.query(msg, priority, retry)
            if not reply.answer and resolver is not None:
                self._log.debug("Stopping resolver %s after a false positive", resolver)
                resolver.stop()
        return reply

    def wildcard_type(self, msg: dns.message.Message, domain: str) -> int:
        if self._baseline is not None:
            return self._baseline.wildcard_type(msg, domain)
        with self._lock:
            if not self._partitions:
                raise ResolveError("Resolver: ResolverPool has been stopped", RESOLVER_ERR_RCODE)
            first = self._partitions[0][0]
        return first.wildcard_type(msg, domain)