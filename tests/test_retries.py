import dns.message
import dns.rcode
import pytest

from reconkit.retries import (
    RESOLVER_ERR_RCODE,
    TIMEOUT_RCODE,
    Priority,
    ResolveError,
    Resolver,
    attempts_exceeded,
    pool_retry_policy,
    retry_policy,
)


def _msg(rcode):
    msg = dns.message.make_query("owasp.org", "A")
    msg.set_rcode(rcode)
    return msg


@pytest.mark.parametrize(
    "priority, limit",
    [
        (Priority.LOW, 50),
        (Priority.NORMAL, 100),
        (Priority.HIGH, 250),
        (Priority.CRITICAL, 500),
    ],
)
def test_attempts_exceeded(priority, limit):
    assert attempts_exceeded(limit, priority) is False
    assert attempts_exceeded(limit + 1, priority) is True


def test_unknown_priority_allows_nothing():
    assert attempts_exceeded(1, 42) is True


def test_retry_policy_codes():
    assert retry_policy(1, Priority.LOW, _msg(TIMEOUT_RCODE)) is True
    assert retry_policy(1, Priority.LOW, _msg(RESOLVER_ERR_RCODE)) is True
    assert retry_policy(1, Priority.LOW, _msg(dns.rcode.NOERROR)) is False
    assert retry_policy(1, Priority.LOW, _msg(dns.rcode.SERVFAIL)) is False
    assert retry_policy(1, Priority.LOW, None) is False


def test_retry_policy_stops_after_attempts():
    assert retry_policy(51, Priority.LOW, _msg(TIMEOUT_RCODE)) is False


def test_pool_retry_policy_codes():
    for code in (dns.rcode.SERVFAIL, dns.rcode.REFUSED, dns.rcode.NOTIMP, TIMEOUT_RCODE):
        assert pool_retry_policy(1, Priority.NORMAL, _msg(code)) is True
    assert pool_retry_policy(1, Priority.NORMAL, _msg(dns.rcode.NXDOMAIN)) is False


def test_resolve_error():
    err = ResolveError("Resolver: stopped", RESOLVER_ERR_RCODE)
    assert str(err) == "Resolver: stopped"
    assert err.rcode == RESOLVER_ERR_RCODE
    with pytest.raises(ResolveError):
        raise err


def test_resolver_is_abstract():
    with pytest.raises(TypeError):
        Resolver()