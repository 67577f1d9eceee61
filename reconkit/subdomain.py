"""Finding the closest enclosing zone of a DNS name."""

from __future__ import annotations

import dns.rdatatype

from reconkit.messages import answers_by_type, extract_answers, query_msg
from reconkit.retries import ResolveError, Resolver, retry_policy


def first_proper_subdomain(resolver: Resolver, name: str, priority: int) -> str:
    """Return the longest suffix of name that answers an NS query, or an empty string."""
    labels = name.strip().split(".")

    for start in range(len(labels) - 1):
        sub = ".".join(labels[start:])
        try:
            reply = resolver.query(query_msg(sub, dns.rdatatype.NS), priority, retry_policy)
        except ResolveError:
            continue

        if answers_by_type(extract_answers(reply), dns.rdatatype.NS):
            return sub
    return ""