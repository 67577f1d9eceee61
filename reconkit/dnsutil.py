"""DNS name helpers: subdomain regular expressions, label handling and address formats."""

from __future__ import annotations

import ipaddress
import re
from itertools import takewhile

SUBRE = r"(([a-zA-Z0-9]{1}|[_a-zA-Z0-9]{1}[_a-zA-Z0-9-]{0,61}[a-zA-Z0-9]{1})[.]{1})+"

_MAX_LABEL_LEN = 63
_MAX_NAME_OCTETS = 254  # wire length without the terminating root byte

_NAME_PIECE = re.compile(r"\\[0-9]{3}|\\.|\\$|\.|[^.\\]", re.S)


def subdomain_regex_string(domain: str) -> str:
    """Return a pattern matching subdomain names that end with domain."""
    return SUBRE + domain.replace(".", "[.]")


def subdomain_regex(domain: str) -> re.Pattern:
    """Return a compiled pattern matching subdomain names that end with domain."""
    return re.compile(subdomain_regex_string(domain))


def any_subdomain_regex_string() -> str:
    """Return a pattern matching any DNS subdomain name."""
    return SUBRE + "[a-zA-Z]{2,61}"


def any_subdomain_regex() -> re.Pattern:
    """Return a compiled pattern matching any DNS subdomain name."""
    return re.compile(any_subdomain_regex_string())


def remove_asterisk_label(s: str) -> str:
    """Return the name with everything up to the last asterisk label removed."""
    index = s.rfind("*.")
    if index == -1:
        return s
    return s[index + 2 :]


def reverse_string(s: str) -> str:
    """Return the characters of s in reverse order."""
    return s[::-1]


def reverse_ip(ip: str) -> str:
    """Return the dotted address with its parts in reverse order."""
    return ".".join(reversed(ip.split(".")))


def expand_ipv6_addr(addr: str) -> str:
    """Return the IPv6 address written out in full, eight groups of four hex digits."""
    ip = ipaddress.ip_address(addr)
    if isinstance(ip, ipaddress.IPv4Address):
        ip = ipaddress.IPv6Address(f"::ffff:{ip}")
    return ip.exploded


def ipv6_nibble_format(ip: str) -> str:
    """Return the IPv6 address in reversed nibble format."""
    digits = expand_ipv6_addr(ip).replace(":", "")
    return ".".join(reversed(digits))


def is_domain_name(name: str) -> bool:
    """Return True when name can be encoded as a DNS domain name."""
    if not name:
        return False
    if name == ".":
        return True

    text = name if name.endswith(".") else name + "."
    label_len = 0
    total = 0
    closed = True
    for piece in _NAME_PIECE.findall(text):
        if piece == ".":
            if label_len == 0 or label_len > _MAX_LABEL_LEN:
                return False
            total += 1 + label_len
            if total > _MAX_NAME_OCTETS:
                return False
            label_len = 0
            closed = True
        else:
            label_len += 1 if piece.startswith("\\") else len(piece.encode("utf-8"))
            closed = False
    if not closed:
        return label_len <= _MAX_LABEL_LEN and total + 1 + label_len <= _MAX_NAME_OCTETS
    return True


def _labels(name: str) -> list[str]:
    return [label for label in name.lower().split(".") if label]


def is_subdomain(parent: str, child: str) -> bool:
    """Return True when child is parent or lies below it (case-insensitive)."""
    parent_labels = _labels(parent)
    child_labels = _labels(child)
    common = sum(
        1
        for _ in takewhile(
            lambda pair: pair[0] == pair[1],
            zip(reversed(parent_labels), reversed(child_labels)),
        )
    )
    return common == len(parent_labels)