"""Building DNS query messages and pulling data out of DNS replies."""

from __future__ import annotations

import ipaddress
from dataclasses import dataclass
from typing import Callable, Iterable

import dns.edns
import dns.exception
import dns.message
import dns.rdatatype
import dns.reversename
import dns.rrset

from reconkit.dnsutil import is_domain_name
from reconkit.records import AXFR, DNSAnswer, DNSRequest

DEFAULT_MSG_SIZE = 4096
XFR_SOURCE = "DNS Zone XFR"


@dataclass
class ExtractedAnswer:
    """Data taken from one record of a DNS answer section."""

    name: str = ""
    type: int = 0
    data: str = ""


def remove_last_dot(name: str) -> str:
    """Return name without its trailing dot."""
    return name[:-1] if name.endswith(".") else name


def _fqdn(name: str) -> str:
    return name if name.endswith(".") else name + "."


def setup_options() -> dns.edns.ECSOption:
    """Return the EDNS client subnet option that hides the querier's location."""
    return dns.edns.ECSOption("0.0.0.0", srclen=0, scopelen=0)


def query_msg(name: str, qtype) -> dns.message.Message:
    """Return a message for a forward DNS query of name and qtype."""
    return dns.message.make_query(
        _fqdn(name),
        qtype,
        use_edns=0,
        payload=DEFAULT_MSG_SIZE,
        options=[setup_options()],
    )


def reverse_msg(addr: str):
    """Return a PTR query message for addr, or None when addr is not an IP address."""
    try:
        reverse = dns.reversename.from_address(addr)
    except (dns.exception.DNSException, ValueError):
        return None
    return query_msg(reverse.to_text(), dns.rdatatype.PTR)


def walk_msg(name: str, qtype) -> dns.message.Message:
    """Return a message for an NSEC walk query, with the DNSSEC OK bit set."""
    return dns.message.make_query(
        _fqdn(name),
        qtype,
        use_edns=0,
        want_dnssec=True,
        payload=DEFAULT_MSG_SIZE,
    )


def answers_by_type(answers: Iterable[ExtractedAnswer], qtype) -> list[ExtractedAnswer]:
    """Return only the answers of type qtype."""
    return [answer for answer in answers if answer.type == qtype]


def _decode(piece: bytes) -> str:
    return piece.decode("utf-8", errors="backslashreplace")


def _ip_value(address: str) -> str:
    try:
        ip = ipaddress.ip_address(address)
    except ValueError:
        return ""
    if isinstance(ip, ipaddress.IPv6Address) and ip.ipv4_mapped is not None:
        ip = ip.ipv4_mapped
    return str(ip)


def _name_value(target) -> str:
    name = remove_last_dot(target.to_text())
    return name if is_domain_name(name) else ""


def _txt_value(rdata) -> str:
    return " ".join(_decode(piece) for piece in rdata.strings)


_EXTRACTORS: dict[int, Callable] = {
    dns.rdatatype.A: lambda rd: _ip_value(rd.address),
    dns.rdatatype.AAAA: lambda rd: _ip_value(rd.address),
    dns.rdatatype.CNAME: lambda rd: _name_value(rd.target),
    dns.rdatatype.PTR: lambda rd: _name_value(rd.target),
    dns.rdatatype.NS: lambda rd: _name_value(rd.target),
    dns.rdatatype.MX: lambda rd: _name_value(rd.exchange),
    dns.rdatatype.TXT: _txt_value,
    dns.rdatatype.SOA: lambda rd: rd.mname.to_text() + "," + rd.rname.to_text(),
    dns.rdatatype.SPF: _txt_value,
    dns.rdatatype.SRV: lambda rd: _name_value(rd.target),
}


def extract_answers(msg: dns.message.Message) -> list[ExtractedAnswer]:
    """Return the usable records of the answer section of msg."""
    answers = []
    for rrset in msg.answer:
        extractor = _EXTRACTORS.get(rrset.rdtype)
        if extractor is None:
            continue
        owner = remove_last_dot(rrset.name.to_text().lower())
        for rdata in rrset:
            value = extractor(rdata)
            if value:
                answers.append(ExtractedAnswer(owner, int(rrset.rdtype), value.strip()))
    return answers


def _pieces_with_spaces(rdata) -> str:
    return "".join(_decode(piece) + " " for piece in rdata.strings)


_XFR_FORMATS: dict[int, Callable] = {
    dns.rdatatype.CNAME: lambda rd: remove_last_dot(rd.target.to_text()),
    dns.rdatatype.A: lambda rd: _ip_value(rd.address),
    dns.rdatatype.AAAA: lambda rd: _ip_value(rd.address),
    dns.rdatatype.PTR: lambda rd: remove_last_dot(rd.target.to_text()),
    dns.rdatatype.NS: lambda rd: remove_last_dot(rd.target.to_text()),
    dns.rdatatype.MX: lambda rd: remove_last_dot(rd.exchange.to_text()),
    dns.rdatatype.TXT: _pieces_with_spaces,
    dns.rdatatype.SOA: lambda rd: rd.mname.to_text() + " " + rd.rname.to_text(),
    dns.rdatatype.SPF: _pieces_with_spaces,
    dns.rdatatype.SRV: lambda rd: remove_last_dot(rd.target.to_text()),
}


def xfr_requests(records: Iterable[dns.rrset.RRset], domain: str) -> list[DNSRequest]:
    """Group the records of a zone transfer into one DNS request per owner name."""
    found: dict[str, DNSRequest] = {}
    for rrset in records:
        formatter = _XFR_FORMATS.get(rrset.rdtype)
        if formatter is None:
            continue
        owner = rrset.name.to_text()
        if rrset.rdtype == dns.rdatatype.NS:
            owner = owner.split(" ")[-1]
        name = remove_last_dot(owner)

        for rdata in rrset:
            record = DNSAnswer(name=name, type=int(rrset.rdtype), data=formatter(rdata))
            request = found.get(name)
            if request is None:
                found[name] = DNSRequest(
                    name=name,
                    domain=domain,
                    records=[record],
                    tag=AXFR,
                    source=XFR_SOURCE,
                )
            else:
                request.records.append(record)
    return list(found.values())