"""Checking that a resolver does not pass on EDNS client subnet data."""

from __future__ import annotations

import dns.exception
import dns.query
import dns.rdatatype

from reconkit.messages import answers_by_type, extract_answers, query_msg
from reconkit.retries import RESOLVER_ERR_RCODE, ResolveError

CHECK_NAME = "o-o.myaddr.l.google.com"
CHECK_TIMEOUT = 2.0
DEFAULT_PORT = 53


def _split_server(server: str) -> tuple[str, int]:
    if server.startswith("["):
        host, _, rest = server[1:].partition("]")
        port = rest[1:] if rest.startswith(":") else ""
    elif server.count(":") == 1:
        host, _, port = server.partition(":")
    else:
        host, port = server, ""
    return host, int(port) if port else DEFAULT_PORT


def _fail(message: str) -> ResolveError:
    return ResolveError(f"ClientSubnetCheck: {message}", RESOLVER_ERR_RCODE)


def client_subnet_check(resolver: str) -> None:
    """Raise ResolveError unless the resolver at "host:port" hides client subnet data."""
    msg = query_msg(CHECK_NAME, dns.rdatatype.TXT)
    try:
        host, port = _split_server(resolver)
        reply = dns.query.udp(msg, host, timeout=CHECK_TIMEOUT, port=port)
    except (dns.exception.DNSException, OSError, ValueError) as exc:
        raise _fail(
            f"Failed to query '{CHECK_NAME}' using the resolver at {resolver}: {exc}"
        ) from exc

    answers = extract_answers(reply)
    if not answers:
        raise _fail(f"No answers returned from '{CHECK_NAME}' using the resolver at {resolver}")

    records = answers_by_type(answers, dns.rdatatype.TXT)
    if not records:
        raise _fail(
            f"No TXT records returned from '{CHECK_NAME}' using the resolver at {resolver}"
        )

    if any(record.data.startswith("edns0-client-subnet") for record in records):
        raise _fail(f"The EDNS client subnet data was sent through using resolver {resolver}")