"""Request and output records passed between the enumeration components."""

from __future__ import annotations

import ipaddress
from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import IntEnum
from typing import Optional, Union

from reconkit.dnsutil import is_domain_name, is_subdomain, remove_asterisk_label

IPAddress = Union[ipaddress.IPv4Address, ipaddress.IPv6Address]
IPNetwork = Union[ipaddress.IPv4Network, ipaddress.IPv6Network]

# Request tag types.
NONE = "none"
ALT = "alt"
GUESS = "guess"
ARCHIVE = "archive"
API = "api"
AXFR = "axfr"
BRUTE = "brute"
CERT = "cert"
CRAWL = "crawl"
DNS = "dns"
RIR = "rir"
EXTERNAL = "ext"
SCRAPE = "scrape"

_TRUSTED_TAGS = frozenset({ARCHIVE, AXFR, CERT, CRAWL, DNS})

# Pub/sub topics.
NEW_NAME_TOPIC = "amass:newname"
NEW_ADDR_TOPIC = "amass:newaddr"
SUB_DISCOVERED_TOPIC = "amass:newsub"
ASN_REQUEST_TOPIC = "amass:asnreq"
NEW_ASN_TOPIC = "amass:newasn"
WHOIS_REQUEST_TOPIC = "amass:whoisreq"
NEW_WHOIS_TOPIC = "amass:whoisinfo"
LOG_TOPIC = "amass:log"
OUTPUT_TOPIC = "amass:output"


class ContextKey(IntEnum):
    """Keys for values carried along with service requests."""

    CONFIG = 0
    EVENT_BUS = 1


def _parse_ip(text: str) -> Optional[IPAddress]:
    if not isinstance(text, str) or "%" in text:
        return None
    try:
        return ipaddress.ip_address(text)
    except ValueError:
        return None


def _parse_cidr(text: str) -> Optional[IPNetwork]:
    if not isinstance(text, str) or "/" not in text:
        return None
    try:
        return ipaddress.ip_network(text, strict=False)
    except ValueError:
        return None


def _valid_name_pair(name: str, domain: str) -> bool:
    return is_domain_name(name) and is_domain_name(domain) and is_subdomain(domain, name)


@dataclass
class DNSAnswer:
    """A single DNS resource record."""

    name: str = ""
    type: int = 0
    ttl: int = 0
    data: str = ""


@dataclass
class DNSRequest:
    """A DNS name moving through the enumeration."""

    name: str = ""
    domain: str = ""
    records: list[DNSAnswer] = field(default_factory=list)
    tag: str = ""
    source: str = ""

    def clone(self) -> "DNSRequest":
        return replace(self, records=list(self.records))

    def valid(self) -> bool:
        return _valid_name_pair(self.name, self.domain)


@dataclass
class ResolvedRequest:
    """A DNS name that has been resolved."""

    name: str = ""
    domain: str = ""
    records: list[DNSAnswer] = field(default_factory=list)
    tag: str = ""
    source: str = ""

    def clone(self) -> "ResolvedRequest":
        return replace(self, records=list(self.records))

    def valid(self) -> bool:
        return _valid_name_pair(self.name, self.domain)


@dataclass
class SubdomainRequest:
    """A subdomain discovered during enumeration."""

    name: str = ""
    domain: str = ""
    records: list[DNSAnswer] = field(default_factory=list)
    tag: str = ""
    source: str = ""
    times: int = 0

    def clone(self) -> "SubdomainRequest":
        """Return a copy; the times counter starts over at zero."""
        return replace(self, records=list(self.records), times=0)

    def valid(self) -> bool:
        return _valid_name_pair(self.name, self.domain) and self.times != 0


@dataclass
class ZoneXFRRequest:
    """A request for a zone transfer."""

    name: str = ""
    domain: str = ""
    server: str = ""
    tag: str = ""
    source: str = ""

    def clone(self) -> "ZoneXFRRequest":
        return replace(self)


@dataclass
class AddrRequest:
    """A network address moving through the enumeration."""

    address: str = ""
    in_scope: bool = False
    domain: str = ""
    tag: str = ""
    source: str = ""

    def clone(self) -> "AddrRequest":
        return replace(self)

    def valid(self) -> bool:
        if _parse_ip(self.address) is None:
            return False
        if self.domain and not is_domain_name(self.domain):
            return False
        return True


@dataclass
class ASNRequest:
    """Autonomous system and netblock information."""

    address: str = ""
    asn: int = 0
    prefix: str = ""
    cc: str = ""
    registry: str = ""
    allocation_date: Optional[datetime] = None
    description: str = ""
    netblocks: Optional[set[str]] = None
    tag: str = ""
    source: str = ""

    def clone(self) -> "ASNRequest":
        return replace(self, netblocks=set(self.netblocks or ()))

    def valid(self) -> bool:
        if _parse_ip(self.address) is None:
            return False
        if _parse_cidr(self.prefix) is None:
            return False
        return all(_parse_cidr(block) is not None for block in self.netblocks or ())


@dataclass
class WhoisRequest:
    """Data used during reverse whois lookups."""

    domain: str = ""
    company: str = ""
    email: str = ""
    new_domains: list[str] = field(default_factory=list)
    tag: str = ""
    source: str = ""


@dataclass
class AddressInfo:
    """Network addressing details attached to an output record."""

    address: Optional[IPAddress] = None
    netblock: Optional[IPNetwork] = None
    cidr_str: str = ""
    asn: int = 0
    description: str = ""


@dataclass
class Output:
    """The output data for an enumerated DNS name."""

    name: str = ""
    domain: str = ""
    addresses: list[AddressInfo] = field(default_factory=list)
    tag: str = ""
    sources: list[str] = field(default_factory=list)

    def clone(self) -> "Output":
        return replace(self, addresses=list(self.addresses), sources=list(self.sources))


def trusted_tag(tag: str) -> bool:
    """Return True when findings with this tag should be trusted even facing DNS wildcards."""
    return tag in _TRUSTED_TAGS


def sanitize_dns_request(req: DNSRequest) -> DNSRequest:
    """Normalise the name and domain of req in place and return it."""
    name = req.name.lower().strip()
    name = remove_asterisk_label(name)
    req.name = name.strip(".")
    req.domain = req.domain.lower().strip().strip(".")
    return req