from unittest.mock import patch

import dns.edns
import dns.exception
import dns.message
import dns.query
import dns.rrset
import pytest

from reconkit.ecs import client_subnet_check
from reconkit.retries import RESOLVER_ERR_RCODE, ResolveError


def _responder(values, rdtype="TXT", captured=None):
    def respond(q, where, **kwargs):
        if captured is not None:
            captured.append((q, where, kwargs))
        resp = dns.message.make_response(q)
        qname = q.question[0].name
        for value in values:
            resp.answer.append(dns.rrset.from_text(qname, 60, "IN", rdtype, value))
        return resp

    return respond


def test_clean_resolver_passes_and_query_is_sent():
    captured = []
    with patch("dns.query.udp", side_effect=_responder(['"192.0.2.10"'], captured=captured)):
        assert client_subnet_check("192.0.2.53:53") is None
    query, where, kwargs = captured[0]
    assert where == "192.0.2.53"
    assert kwargs["port"] == 53
    ecs = [opt for opt in query.options if isinstance(opt, dns.edns.ECSOption)]
    assert len(ecs) == 1 and ecs[0].srclen == 0


def test_custom_port_and_default_port():
    captured = []
    with patch("dns.query.udp", side_effect=_responder(['"192.0.2.10"'], captured=captured)):
        assert client_subnet_check("192.0.2.53:5353") is None
        assert client_subnet_check("192.0.2.54") is None
    assert [(c[1], c[2]["port"]) for c in captured] == [("192.0.2.53", 5353), ("192.0.2.54", 53)]


def test_bracketed_ipv6_address():
    captured = []
    with patch("dns.query.udp", side_effect=_responder(['"192.0.2.10"'], captured=captured)):
        assert client_subnet_check("[2001:db8::1]:53") is None
    assert captured[0][1] == "2001:db8::1"
    assert captured[0][2]["port"] == 53


def test_leaking_resolver_fails():
    reply = _responder(['"192.0.2.10"', '"edns0-client-subnet 192.0.2.0/24"'])
    with patch("dns.query.udp", side_effect=reply):
        with pytest.raises(ResolveError, match="EDNS client subnet data was sent"):
            client_subnet_check("192.0.2.53:53")


def test_no_answers_fails():
    with patch("dns.query.udp", side_effect=_responder([])):
        with pytest.raises(ResolveError, match="No answers returned"):
            client_subnet_check("192.0.2.53:53")


def test_no_txt_records_fails():
    with patch("dns.query.udp", side_effect=_responder(["192.0.2.1"], rdtype="A")):
        with pytest.raises(ResolveError, match="No TXT records returned"):
            client_subnet_check("192.0.2.53:53")


def test_query_failure_raises_resolve_error():
    with patch("dns.query.udp", side_effect=dns.exception.Timeout()):
        with pytest.raises(ResolveError, match="Failed to query") as info:
            client_subnet_check("192.0.2.53:53")
    assert info.value.rcode == RESOLVER_ERR_RCODE