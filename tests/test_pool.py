import itertools

import dns.message
import dns.rcode
import dns.rdatatype
import dns.rrset
import pytest

from reconkit.messages import query_msg
from reconkit.pool import ResolverPool
from reconkit.retries import TIMEOUT_RCODE, Priority, ResolveError, Resolver


def answer_reply(msg):
    reply = dns.message.make_response(msg)
    reply.answer.append(
        dns.rrset.from_text(msg.question[0].name, 300, "IN", "A", "192.0.2.1")
    )
    return reply


def empty_reply(msg):
    return dns.message.make_response(msg)


class FakeResolver(Resolver):
    def __init__(self, name, outcome, wildcard=0):
        self.name = name
        self.outcome = outcome
        self.wildcard = wildcard
        self.calls = 0
        self._stopped = False

    def __str__(self):
        return self.name

    def stop(self):
        self._stopped = True

    def stopped(self):
        return self._stopped

    def query(self, msg, priority, retry=None):
        self.calls += 1
        if isinstance(self.outcome, ResolveError):
            raise self.outcome
        return self.outcome(msg)

    def wildcard_type(self, msg, domain):
        return self.wildcard


def counting_clock():
    ticks = itertools.count()
    return lambda: float(next(ticks))


def msg():
    return query_msg("www.example.com", dns.rdatatype.A)


def test_empty_pool_is_rejected():
    with pytest.raises(ValueError):
        ResolverPool([])


def test_pool_name():
    assert str(ResolverPool([FakeResolver("r0", answer_reply)])) == "ResolverPool"


def test_queries_rotate_through_resolvers():
    r0 = FakeResolver("r0", answer_reply)
    r1 = FakeResolver("r1", answer_reply)
    pool = ResolverPool([r0, r1], delay=0.0)
    first = pool.query(msg(), Priority.HIGH)
    pool.query(msg(), Priority.HIGH)
    assert len(first.answer) == 1
    assert (r0.calls, r1.calls) == (1, 1)


def test_timeouts_move_on_to_next_resolver():
    bad = FakeResolver("bad", ResolveError("timed out", TIMEOUT_RCODE))
    good = FakeResolver("good", answer_reply)
    pool = ResolverPool([bad, good], delay=0.0)
    reply = pool.query(msg(), Priority.NORMAL)
    assert reply.answer
    assert bad.calls == 1 and good.calls == 1


def test_servfail_is_retried_without_callback():
    failing = FakeResolver("sf", ResolveError("servfail", int(dns.rcode.SERVFAIL)))
    good = FakeResolver("good", answer_reply)
    calls = []
    pool = ResolverPool([failing, good], delay=0.0)
    reply = pool.query(msg(), Priority.NORMAL, lambda *args: calls.append(args) or True)
    assert reply.answer
    assert calls == []


def test_retry_callback_sees_rcode_and_controls_attempts():
    nx = FakeResolver("nx", ResolveError("nxdomain", int(dns.rcode.NXDOMAIN)))
    seen = []

    def retry(times, priority, reply):
        seen.append((times, reply.rcode()))
        return times < 3

    pool = ResolverPool([nx], delay=0.0)
    with pytest.raises(ResolveError) as info:
        pool.query(msg(), Priority.HIGH, retry)
    assert info.value.rcode == dns.rcode.NXDOMAIN
    assert nx.calls == 3
    assert [t for t, _ in seen] == [1, 2, 3]
    assert all(rcode == dns.rcode.NXDOMAIN for _, rcode in seen)


def test_error_without_retry_is_raised():
    refused = FakeResolver("ref", ResolveError("refused", int(dns.rcode.REFUSED)))
    pool = ResolverPool([refused], delay=0.0)
    with pytest.raises(ResolveError) as info:
        pool.query(msg(), Priority.LOW)
    assert info.value.rcode == dns.rcode.REFUSED
    assert refused.calls == 1


def test_attempts_are_limited_by_priority():
    slow = FakeResolver("slow", ResolveError("timed out", TIMEOUT_RCODE))
    pool = ResolverPool([slow], delay=0.0, clock=counting_clock())
    with pytest.raises(ResolveError) as info:
        pool.query(msg(), Priority.LOW)
    assert info.value.rcode == TIMEOUT_RCODE
    assert slow.calls == 50


def test_baseline_answers_when_no_resolver_is_usable():
    r0 = FakeResolver("r0", answer_reply)
    r0.stop()
    baseline = FakeResolver("base", answer_reply)
    pool = ResolverPool([r0], baseline=baseline)
    reply = pool.query(msg(), Priority.HIGH)
    assert reply.answer
    assert baseline.calls == 1 and r0.calls == 0


def test_false_positive_stops_untrusted_resolver():
    untrusted = FakeResolver("u", answer_reply)
    baseline = FakeResolver("base", empty_reply)
    pool = ResolverPool([untrusted], baseline=baseline)
    reply = pool.query(msg(), Priority.HIGH)
    assert reply.answer == []
    assert untrusted.stopped()
    assert not baseline.stopped()


def test_confirmed_answer_keeps_resolver():
    untrusted = FakeResolver("u", answer_reply)
    baseline = FakeResolver("base", answer_reply)
    pool = ResolverPool([untrusted], baseline=baseline)
    assert pool.query(msg(), Priority.HIGH).answer
    assert not untrusted.stopped()
    assert baseline.calls == 1


def test_stop_stops_everything_once():
    r0 = FakeResolver("r0", answer_reply)
    r1 = FakeResolver("r1", answer_reply)
    baseline = FakeResolver("base", answer_reply)
    pool = ResolverPool([r0, r1], baseline=baseline)
    assert not pool.stopped()
    pool.stop()
    pool.stop()
    assert pool.stopped()
    assert r0.stopped() and r1.stopped() and baseline.stopped()


def test_wildcard_type_prefers_baseline():
    r0 = FakeResolver("r0", answer_reply, wildcard=1)
    baseline = FakeResolver("base", answer_reply, wildcard=2)
    assert ResolverPool([r0], baseline=baseline).wildcard_type(msg(), "example.com") == 2
    assert ResolverPool([r0]).wildcard_type(msg(), "example.com") == 1


def test_partitions_start_with_first_resolver():
    resolvers = [FakeResolver(f"r{i}", answer_reply) for i in range(4)]
    pool = ResolverPool(resolvers, partnum=2)
    pool.query(msg(), Priority.HIGH)
    assert resolvers[0].calls == 1
    assert sum(r.calls for r in resolvers) == 1