"""Enumerating a DNS zone by walking its NSEC records."""

from __future__ import annotations

import re
from typing import Optional

import dns.message
import dns.rdatatype

from reconkit.baseresolver import MAX_DNS_LABEL_LEN, MAX_DNS_NAME_LEN
from reconkit.dnsutil import subdomain_regex
from reconkit.messages import walk_msg
from reconkit.retries import RESOLVER_ERR_RCODE, Priority, ResolveError, Resolver, retry_policy

WALK_QUERY_ATTEMPTS = 100

_WALK_PRIORITIES = frozenset({Priority.CRITICAL, Priority.HIGH, Priority.LOW})


class _GapNotFound(LookupError):
    pass


def nsec_traversal(resolver: Resolver, domain: str, priority: int) -> list[str]:
    """Return the names of domain found by following its NSEC chain."""
    if priority not in _WALK_PRIORITIES:
        raise ResolveError(
            f"Resolver: Invalid priority parameter: {priority}", RESOLVER_ERR_RCODE
        )
    if resolver.stopped():
        raise ResolveError("Resolver: The resolver has been stopped", RESOLVER_ERR_RCODE)

    results: list[str] = []
    next_name = "0"
    while next_name:
        query = next_name
        for qtype in (dns.rdatatype.NSEC, dns.rdatatype.A):
            try:
                found, next_name = _search_gap(resolver, query, domain + ".", qtype, priority)
            except _GapNotFound:
                next_name = ""
                continue

            if found:
                results.append(f"{found}.{domain}")
            if not next_name:
                break
    return results


def _search_gap(
    resolver: Resolver, name: str, domain: str, qtype, priority: int
) -> tuple[str, str]:
    pattern = subdomain_regex(domain)

    for attempt in walk_attempts(name, domain, qtype):
        reply = _walk_msg_request(resolver, f"{attempt}.{domain}", qtype, priority)
        if reply is None:
            continue
        for rrset in [*reply.answer, *reply.authority]:
            for rdata in rrset:
                prev, nxt = _check_record(rrset, rdata, attempt, name, domain, pattern)
                if prev or nxt:
                    return prev, nxt

    raise _GapNotFound(f"NsecTraversal: Resolver {resolver}: NSEC record not found")


def _check_record(rrset, rdata, attempt: str, name: str, domain: str, pattern: re.Pattern):
    expected = domain if name == "0" else f"{name}.{domain}"
    owner = rrset.name.to_text().strip().lower()
    if rrset.rdtype != dns.rdatatype.NSEC or owner != expected:
        return "", ""
    return _parse_nsec_record(owner, rdata.next.to_text(), attempt, domain, pattern)


def _parse_nsec_record(owner: str, next_text: str, attempt: str, domain: str, pattern):
    prev = owner.strip().lower()
    nxt = next_text.strip().lower()
    if (prev != domain and not pattern.search(prev)) or not pattern.search(nxt):
        return "", ""

    prev = remove_domain_portion(prev, domain)
    nxt = remove_domain_portion(nxt, domain)
    if first_is_less(prev, attempt) and (first_is_less(attempt, nxt) or nxt == ""):
        return prev, nxt
    return "", ""


def first_is_less(prev: str, next_name: str) -> bool:
    """Return True when any label of prev, aligned from the right, sorts at or before next_name's."""
    pairs = zip(reversed(prev.split(".")), reversed(next_name.split(".")))
    return any(p <= n for p, n in pairs)


def _walk_msg_request(
    resolver: Resolver, name: str, qtype, priority: int
) -> Optional[dns.message.Message]:
    for _ in range(WALK_QUERY_ATTEMPTS):
        try:
            reply = resolver.query(walk_msg(name, qtype), priority, retry_policy)
        except ResolveError:
            continue
        if reply is not None:
            return reply
    return None


def walk_attempts(name: str, domain: str, qtype) -> list[str]:
    """Return the host portions to query when looking for the NSEC record after name."""
    nn = check_length(name.lower(), domain.lower())
    if qtype == dns.rdatatype.NSEC:
        return [nn]

    # The last character of the host portion duplicated
    parts = nn.split(".")
    parts[-1] = parts[-1] + parts[-1][-1:]
    return [f"0.{nn}", ".".join(parts), nn + "0", nn + "-"]


def check_length(name: str, domain: str) -> str:
    """Shorten name so that it fits in a DNS name below domain."""
    parts = name.split(".")
    if len(f"{name}.{domain}".encode("utf-8")) > MAX_DNS_NAME_LEN and len(parts) >= 2:
        parts = parts[1:]

    fixed = []
    for label in parts:
        if len(label.encode("utf-8")) > MAX_DNS_LABEL_LEN:
            last = label[-1]
            suffix = "0" if last == "-" else "a" if last == "9" else "z"
            label = label[:MAX_DNS_LABEL_LEN] + suffix
        fixed.append(label)
    return ".".join(fixed)


def remove_domain_portion(name: str, domain: str) -> str:
    """Return the labels of name that come before domain, or "" when there are none."""
    if name == domain:
        return ""
    domain_labels = domain.split(".")[:-1]
    name_labels = name.split(".")[:-1]
    if len(name_labels) <= len(domain_labels):
        return ""
    return ".".join(name_labels[: len(name_labels) - len(domain_labels)])