import dns.message
import dns.rrset

from reconkit.retries import TIMEOUT_RCODE, Priority, ResolveError, Resolver, retry_policy
from reconkit.subdomain import first_proper_subdomain


class FakeResolver(Resolver):
    def __init__(self, ns_zones=(), a_only=(), failing=()):
        self.ns_zones = set(ns_zones)
        self.a_only = set(a_only)
        self.failing = set(failing)
        self.queried = []
        self._stopped = False

    def stop(self):
        self._stopped = True

    def stopped(self):
        return self._stopped

    def query(self, msg, priority, retry=None):
        qname = msg.question[0].name.to_text()
        name = qname.rstrip(".")
        self.queried.append((name, priority, retry))
        if name in self.failing:
            raise ResolveError("query failed", TIMEOUT_RCODE)
        resp = dns.message.make_response(msg)
        if name in self.ns_zones:
            resp.answer.append(dns.rrset.from_text(qname, 300, "IN", "NS", "ns1." + qname))
        if name in self.a_only:
            resp.answer.append(dns.rrset.from_text(qname, 300, "IN", "A", "192.0.2.1"))
        return resp

    def wildcard_type(self, msg, domain):
        return 0


def test_finds_enclosing_zone():
    resolver = FakeResolver(ns_zones={"example.com"})
    assert first_proper_subdomain(resolver, "www.sub.example.com", Priority.HIGH) == "example.com"
    assert [q[0] for q in resolver.queried] == [
        "www.sub.example.com",
        "sub.example.com",
        "example.com",
    ]


def test_returns_longest_match_first():
    resolver = FakeResolver(ns_zones={"sub.example.com", "example.com"})
    assert first_proper_subdomain(resolver, "www.sub.example.com", Priority.HIGH) == "sub.example.com"


def test_no_zone_found_and_tld_not_queried():
    resolver = FakeResolver()
    assert first_proper_subdomain(resolver, "www.example.com", Priority.LOW) == ""
    queried = [q[0] for q in resolver.queried]
    assert "com" not in queried
    assert len(queried) == 2


def test_errors_and_non_ns_answers_are_skipped():
    resolver = FakeResolver(
        ns_zones={"example.com"}, a_only={"www.sub.example.com"}, failing={"sub.example.com"}
    )
    assert first_proper_subdomain(resolver, "www.sub.example.com", Priority.HIGH) == "example.com"


def test_passes_priority_and_retry_policy():
    resolver = FakeResolver(ns_zones={"example.com"})
    first_proper_subdomain(resolver, "example.com", Priority.CRITICAL)
    assert resolver.queried == [("example.com", Priority.CRITICAL, retry_policy)]


def test_surrounding_whitespace_is_ignored():
    resolver = FakeResolver(ns_zones={"example.com"})
    assert first_proper_subdomain(resolver, "  www.example.com \n", Priority.HIGH) == "example.com"