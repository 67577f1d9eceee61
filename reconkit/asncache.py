"""Cache of autonomous system and netblock information."""

from __future__ import annotations

import ipaddress
import threading
from typing import Optional, Union

from reconkit.network import RESERVED_CIDR_DESCRIPTION, is_reserved_address
from reconkit.records import RIR, ASNRequest

IPAddress = Union[ipaddress.IPv4Address, ipaddress.IPv6Address]
IPNetwork = Union[ipaddress.IPv4Network, ipaddress.IPv6Network]


def _parse_ip(text: str) -> Optional[IPAddress]:
    if not isinstance(text, str) or "%" in text:
        return None
    try:
        ip = ipaddress.ip_address(text)
    except ValueError:
        return None
    if isinstance(ip, ipaddress.IPv6Address) and ip.ipv4_mapped is not None:
        return ip.ipv4_mapped
    return ip


def _parse_cidr(text: str) -> Optional[IPNetwork]:
    if "/" not in text:
        return None
    try:
        return ipaddress.ip_network(text, strict=False)
    except ValueError:
        return None


class ASNCache:
    """Stores ASN records and answers which netblock an address belongs to."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._cache: dict[int, ASNRequest] = {}
        self._ranges: dict[IPNetwork, ASNRequest] = {}

    def update(self, req: ASNRequest) -> None:
        """Store req, or merge its details into the record already held for its ASN."""
        with self._lock:
            entry = self._cache.get(req.asn)
            if entry is None:
                self._cache[req.asn] = req
                if req.netblocks is None:
                    req.netblocks = {req.prefix}
                return

            if not entry.prefix and req.prefix:
                entry.prefix = req.prefix
            if not entry.cc and req.cc:
                entry.cc = req.cc
            if not entry.registry and req.registry:
                entry.registry = req.registry
            if entry.allocation_date is None and req.allocation_date is not None:
                entry.allocation_date = req.allocation_date
            if not entry.description and req.description:
                entry.description = req.description

            extra = req.netblocks if req.netblocks is not None else {req.prefix}
            if entry.netblocks is None:
                entry.netblocks = set()
            entry.netblocks |= extra

    def asn_search(self, asn: int) -> Optional[ASNRequest]:
        """Return the cached record for asn, or None."""
        with self._lock:
            return self._cache.get(asn)

    def addr_search(self, addr: str) -> Optional[ASNRequest]:
        """Return the ASN and netblock that addr belongs to, or None when unknown."""
        ip = _parse_ip(addr)
        if ip is None:
            return None

        reserved = is_reserved_address(ip)
        if reserved is not None:
            return ASNRequest(
                address=addr,
                asn=0,
                prefix=reserved,
                description=RESERVED_CIDR_DESCRIPTION,
                tag=RIR,
                source="RIR",
            )

        found = self._search_ranges(ip)
        if found is None:
            self._load_range(ip)
            found = self._search_ranges(ip)
            if found is None:
                return None

        network, data = found
        return ASNRequest(
            address=addr,
            asn=data.asn,
            cc=data.cc,
            prefix=str(network),
            netblocks={str(network)},
            description=data.description,
            tag=RIR,
            source="RIR",
        )

    def _search_ranges(self, ip: IPAddress) -> Optional[tuple[IPNetwork, ASNRequest]]:
        with self._lock:
            matches = [
                (network, data)
                for network, data in self._ranges.items()
                if network.version == ip.version and ip in network
            ]
        if not matches:
            return None
        # The least specific containing network is reported first.
        return min(matches, key=lambda item: item[0].prefixlen)

    def _load_range(self, ip: IPAddress) -> None:
        with self._lock:
            best: Optional[tuple[IPNetwork, ASNRequest]] = None
            for record in self._cache.values():
                for netblock in record.netblocks or ():
                    network = _parse_cidr(netblock)
                    if network is None or network.prefixlen == 0:
                        continue
                    if network.version != ip.version or ip not in network:
                        continue
                    # Keep the smallest netblock
                    if best is not None and best[0].prefixlen > network.prefixlen:
                        continue
                    best = (network, record)
            if best is not None:
                self._ranges[best[0]] = best[1]