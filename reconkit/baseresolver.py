"""A rate-limited resolver that sends DNS queries over UDP to one server and detects wildcards."""

from __future__ import annotations

import copy
import itertools
import logging
import queue
import random
import threading
import time
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Iterable, Optional

import dns.exception
import dns.flags
import dns.message
import dns.query
import dns.rcode
import dns.rdatatype

from reconkit.exchange import ResolveRequest, ResolveResult, XchgManager
from reconkit.messages import ExtractedAnswer, extract_answers, query_msg, remove_last_dot
from reconkit.network import dial
from reconkit.retries import (
    RESOLVER_ERR_RCODE,
    RETRY_CODES,
    TIMEOUT_RCODE,
    Priority,
    ResolveError,
    Resolver,
    Retry,
    retry_policy,
)

# Limits related to DNS labels.
MAX_DNS_NAME_LEN = 253
MAX_DNS_LABEL_LEN = 63
MIN_LABEL_LEN = 6
MAX_LABEL_LEN = 24
LDH_CHARS = "abcdefghijklmnopqrstuvwxyz0123456789-"

DEFAULT_PORT = 53
NUM_OF_WILDCARD_TESTS = 3
WILDCARD_TEST_TIMEOUT = 30.0
TCP_TIMEOUT = 60.0

_WILDCARD_QUERY_TYPES = (dns.rdatatype.CNAME, dns.rdatatype.A, dns.rdatatype.AAAA)
_TICK = 0.5
_READ_TIMEOUT = 0.2
_VALID_PRIORITIES = frozenset(Priority)


class WildcardType(IntEnum):
    """The kinds of DNS wildcard that can be detected."""

    NONE = 0
    STATIC = 1
    DYNAMIC = 2


@dataclass
class _Wildcard:
    type: WildcardType = WildcardType.NONE
    answers: list[ExtractedAnswer] = field(default_factory=list)
    ready: threading.Event = field(default_factory=threading.Event)


class _RateLimiter:
    """Spaces calls evenly so that at most per_sec happen each second."""

    def __init__(self, per_sec: int) -> None:
        self._interval = 1.0 / per_sec
        self._next = 0.0
        self._lock = threading.Lock()

    def take(self) -> None:
        with self._lock:
            now = time.monotonic()
            wait = self._next - now
            self._next = max(now, self._next) + self._interval
        if wait > 0:
            time.sleep(wait)


def _with_default_port(addr: str) -> str:
    if addr.startswith("[") and "]:" in addr:
        return addr
    if addr.count(":") == 1:
        return addr
    if ":" in addr:
        return f"[{addr}]:{DEFAULT_PORT}"
    return f"{addr}:{DEFAULT_PORT}"


def _split_address(addr: str) -> tuple[str, int]:
    host, _, port = addr.rpartition(":")
    return host.strip("[]"), int(port)


def _record_data(answers: Iterable[ExtractedAnswer]) -> set[str]:
    return {answer.data.strip(".") for answer in answers}


def _error_result(message: str, rcode: int, again: bool, msg=None) -> ResolveResult:
    return ResolveResult(msg=msg, again=again, error=ResolveError(message, rcode))


class BaseResolver(Resolver):
    """Sends DNS queries to one server, no faster than per_sec each second.

    Raises ValueError when per_sec is not positive and OSError when the
    server cannot be reached.
    """

    def __init__(
        self,
        addr: str,
        per_sec: int,
        logger: Optional[logging.Logger] = None,
        query_timeout: Optional[float] = None,
    ) -> None:
        addr = _with_default_port(addr)
        if per_sec <= 0:
            raise ValueError(f"the query rate for {addr} must be positive")

        self.address = addr
        self.per_sec = per_sec
        self._log = logger if logger is not None else logging.getLogger(__name__)
        self._sock = dial("udp", addr)
        self._sock.settimeout(_READ_TIMEOUT)

        self._lock = threading.Lock()
        self._stopped = False
        self._done = threading.Event()
        self._limiter = _RateLimiter(per_sec)
        self._xchgs = XchgManager(timeout=query_timeout)
        self._outgoing: queue.PriorityQueue = queue.PriorityQueue()
        self._seq = itertools.count()

        self._wildcard_lock = threading.Lock()
        self._wildcards: dict[str, _Wildcard] = {}

        for target in (self._send_queries, self._responses, self._timeouts):
            threading.Thread(target=target, daemon=True).start()

    def __str__(self) -> str:
        return self.address

    def stop(self) -> None:
        with self._lock:
            self._stopped = True
            self._done.set()

    def stopped(self) -> bool:
        with self._lock:
            return self._stopped

    def query(
        self, msg: dns.message.Message, priority: int, retry: Optional[Retry] = None
    ) -> dns.message.Message:
        if priority not in _VALID_PRIORITIES:
            raise ResolveError(
                f"Resolver: Invalid priority parameter: {priority}", RESOLVER_ERR_RCODE
            )

        times = 0
        while True:
            if self.stopped():
                raise ResolveError(
                    f"Resolver: {self.address} has been stopped", RESOLVER_ERR_RCODE
                )
            times += 1
            result = self._queue_query(msg, priority)
            if result.error is None:
                return result.msg
            if retry is None:
                raise result.error

            reply = result.msg
            if reply is None:
                reply = copy.copy(msg)
                reply.set_rcode(result.error.rcode)
            if not retry(times, priority, reply):
                raise result.error

    def _queue_query(self, msg: dns.message.Message, priority: int) -> ResolveResult:
        question = msg.question[0]
        req = ResolveRequest(
            id=msg.id,
            name=remove_last_dot(question.name.to_text()),
            qtype=int(question.rdtype),
            msg=msg,
        )
        try:
            self._xchgs.add(req)
        except ValueError as exc:
            return _error_result(
                f"Failed to obtain a valid message identifier: {exc}", RESOLVER_ERR_RCODE, True
            )
        self._outgoing.put((-int(priority), next(self._seq), req))

        while True:
            try:
                return req.result.get(timeout=_TICK)
            except queue.Empty:
                if self._done.is_set() and self._xchgs.remove(req.id, req.name) is not None:
                    return _error_result(
                        f"Resolver {self.address} has stopped", RESOLVER_ERR_RCODE, False
                    )

    @staticmethod
    def _return_request(req: ResolveRequest, result: ResolveResult) -> None:
        try:
            req.result.put_nowait(result)
        except queue.Full:
            pass

    def _send_queries(self) -> None:
        while not self._done.is_set():
            try:
                _, _, req = self._outgoing.get(timeout=_TICK)
            except queue.Empty:
                continue
            self._limiter.take()
            self._write_message(req)

    def _write_message(self, req: ResolveRequest) -> None:
        try:
            self._sock.send(req.msg.to_wire())
        except (OSError, dns.exception.DNSException) as exc:
            self._xchgs.remove(req.id, req.name)
            self._return_request(
                req,
                _error_result(f"Failed to write the query msg: {exc}", TIMEOUT_RCODE, True),
            )
            return
        # The expiration time starts once the message is on the wire
        self._xchgs.update_timestamp(req.id, req.name)

    def _timeouts(self) -> None:
        while not self._done.wait(_TICK):
            for req in self._xchgs.remove_expired():
                if req.msg is not None:
                    self._return_request(
                        req,
                        _error_result(
                            f"Query on resolver {self.address}, for {req.name} "
                            f"type {req.qtype} timed out",
                            TIMEOUT_RCODE,
                            True,
                        ),
                    )
        # Let every waiting caller return
        for req in self._xchgs.remove_all():
            if req.msg is not None:
                self._return_request(
                    req,
                    _error_result(
                        f"Resolver {self.address} has stopped", RESOLVER_ERR_RCODE, False
                    ),
                )

    def _responses(self) -> None:
        try:
            while not self._done.is_set():
                try:
                    data = self._sock.recv(65535)
                except OSError:
                    continue
                try:
                    reply = dns.message.from_wire(data)
                except (dns.exception.DNSException, ValueError):
                    continue
                if not reply.question:
                    continue
                req = self._xchgs.remove(reply.id, reply.question[0].name.to_text())
                if req is not None:
                    self._process_message(reply, req)
        finally:
            self._sock.close()

    def _process_message(self, reply: dns.message.Message, req: ResolveRequest) -> None:
        rcode = int(reply.rcode())
        if rcode != dns.rcode.NOERROR:
            self._return_request(
                req,
                _error_result(
                    f"Query on resolver {self.address}, for {req.name} type {req.qtype} "
                    f"returned error {dns.rcode.to_text(rcode)}",
                    rcode,
                    rcode in RETRY_CODES,
                    msg=reply,
                ),
            )
            return

        if reply.flags & dns.flags.TC:
            threading.Thread(target=self._tcp_exchange, args=(req,), daemon=True).start()
            return

        self._return_request(req, ResolveResult(msg=reply))

    def _tcp_exchange(self, req: ResolveRequest) -> None:
        try:
            host, port = _split_address(self.address)
            reply = dns.query.tcp(req.msg, host, timeout=TCP_TIMEOUT, port=port)
        except (dns.exception.DNSException, OSError, ValueError) as exc:
            self._return_request(
                req,
                _error_result(
                    f"Failed to perform the exchange via TCP to {self.address}: {exc}",
                    RESOLVER_ERR_RCODE,
                    True,
                ),
            )
            return
        self._return_request(req, ResolveResult(msg=reply))

    def wildcard_type(self, msg: dns.message.Message, domain: str) -> int:
        name = remove_last_dot(msg.question[0].name.to_text()).lower()
        domain = remove_last_dot(domain).lower()

        base = len(domain.split("."))
        labels = name.split(".")
        if len(labels) > base:
            labels = labels[1:]

        # Check for a DNS wildcard at each level, starting with the root domain
        for start in range(len(labels) - base, -1, -1):
            wildcard = self._fetch_wildcard(".".join(labels[start:]))
            if wildcard.type == WildcardType.DYNAMIC:
                return WildcardType.DYNAMIC
            if wildcard.type == WildcardType.STATIC:
                if not msg.answer:
                    return WildcardType.STATIC
                common = _record_data(extract_answers(msg)) & _record_data(wildcard.answers)
                if common:
                    return WildcardType.STATIC

        return self._check_ips_across_levels(name, domain, extract_answers(msg))

    def _fetch_wildcard(self, sub: str) -> _Wildcard:
        with self._wildcard_lock:
            wildcard = self._wildcards.get(sub)
            if wildcard is None:
                wildcard = _Wildcard()
                self._wildcards[sub] = wildcard
                threading.Thread(
                    target=self._wildcard_test, args=(sub, wildcard), daemon=True
                ).start()

        if wildcard.ready.wait(WILDCARD_TEST_TIMEOUT):
            return wildcard

        expired = _Wildcard(type=WildcardType.DYNAMIC)
        expired.ready.set()
        with self._wildcard_lock:
            self._wildcards[sub] = expired
        return expired

    def _check_ips_across_levels(
        self, name: str, domain: str, records: list[ExtractedAnswer]
    ) -> int:
        if not records:
            return WildcardType.NONE

        base = len(domain.split("."))
        labels = name.lower().split(".")
        if len(labels) <= base or len(labels) - base < 3:
            return WildcardType.NONE

        common: set[str] = set()
        with self._wildcard_lock:
            for start in range(1, len(labels) - base + 1):
                wildcard = self._wildcards.get(".".join(labels[start:]))
                if wildcard is None or not wildcard.answers:
                    break
                data = _record_data(wildcard.answers)
                common = data if start == 1 else common & data

        return WildcardType.STATIC if common else WildcardType.NONE

    def _wildcard_test(self, sub: str, wildcard: _Wildcard) -> None:
        returned_records = False
        common: set[str] = set()
        answers: list[ExtractedAnswer] = []

        # Query several times with unlikely names within this subdomain
        for attempt in range(NUM_OF_WILDCARD_TESTS):
            name = ""
            for _ in range(10):
                name = unlikely_name(sub)
                if name:
                    break

            found: list[ExtractedAnswer] = []
            for qtype in _WILDCARD_QUERY_TYPES:
                try:
                    reply = self.query(query_msg(name, qtype), Priority.CRITICAL, retry_policy)
                except ResolveError:
                    continue
                if reply.answer:
                    returned_records = True
                    found.extend(extract_answers(reply))

            data = _record_data(found)
            common = data if attempt == 0 else common & data
            answers.extend(found)

        seen: set[str] = set()
        final: list[ExtractedAnswer] = []
        for answer in answers:
            answer.data = answer.data.strip(".")
            if answer.data in common and answer.data not in seen:
                final.append(answer)
                seen.add(answer.data)

        kind = WildcardType.NONE
        if returned_records:
            kind = WildcardType.STATIC if final else WildcardType.DYNAMIC
            self._log.info(
                "DNS wildcard detected: Resolver %s: %s: type: %d", self.address, "*." + sub, kind
            )

        wildcard.type = kind
        wildcard.answers = final
        wildcard.ready.set()


def unlikely_name(sub: str) -> str:
    """Return a random name within sub that is unlikely to exist, or "" if none was made."""
    chars = list(LDH_CHARS)
    limit = MAX_DNS_NAME_LEN - (len(sub) + 1)
    limit = max(MIN_LABEL_LEN, min(limit, MAX_LABEL_LEN))

    random.shuffle(chars)
    length = MIN_LABEL_LEN + random.randint(0, limit - MIN_LABEL_LEN)
    label = "".join(chars[random.randrange(len(chars) - 1)] for _ in range(length))

    label = label.strip("-")
    if not label:
        return ""
    return f"{label}.{sub}"