"""IP address arithmetic, reserved-range checks and network dialing."""

from __future__ import annotations

import ipaddress
import socket
from typing import Optional, Union

IPAddress = Union[ipaddress.IPv4Address, ipaddress.IPv6Address]
IPNetwork = Union[ipaddress.IPv4Network, ipaddress.IPv6Network]

IPV4_RE = (
    r"((25[0-5]|2[0-4][0-9]|[01]?[0-9][0-9]?)[.]){3}"
    r"(25[0-5]|2[0-4][0-9]|[01]?[0-9][0-9]?)"
)

RESERVED_CIDR_DESCRIPTION = "Reserved Network Address Blocks"

RESERVED_CIDRS = (
    "192.168.0.0/16",
    "172.16.0.0/12",
    "10.0.0.0/8",
    "127.0.0.0/8",
    "224.0.0.0/4",
    "240.0.0.0/4",
    "100.64.0.0/10",
    "198.18.0.0/15",
    "169.254.0.0/16",
    "192.88.99.0/24",
    "192.0.0.0/24",
    "192.0.2.0/24",
    "192.94.77.0/24",
    "192.94.78.0/24",
    "192.52.193.0/24",
    "192.12.109.0/24",
    "192.31.196.0/24",
    "192.0.0.0/29",
)

_RESERVED_NETWORKS = tuple(ipaddress.ip_network(cidr) for cidr in RESERVED_CIDRS)

# Local interface address (optionally in CIDR form) that outgoing connections bind to.
local_addr: Optional[str] = None


def _to_ip(value) -> IPAddress:
    if isinstance(value, (ipaddress.IPv4Address, ipaddress.IPv6Address)):
        return value
    return ipaddress.ip_address(value)


def _to_network(value) -> IPNetwork:
    if isinstance(value, (ipaddress.IPv4Network, ipaddress.IPv6Network)):
        return value
    return ipaddress.ip_network(value, strict=False)


def _unmapped(ip: IPAddress) -> IPAddress:
    if isinstance(ip, ipaddress.IPv6Address) and ip.ipv4_mapped is not None:
        return ip.ipv4_mapped
    return ip


def _display(ip) -> str:
    if ip is None:
        return ""
    if isinstance(ip, (ipaddress.IPv4Address, ipaddress.IPv6Address)):
        return str(_unmapped(ip))
    return str(ip)


def is_ipv4(ip) -> bool:
    """Return True when the address does not look like an IPv6 address."""
    return _display(ip).count(":") < 2


def is_ipv6(ip) -> bool:
    """Return True when the address is written in IPv6 form."""
    return _display(ip).count(":") >= 2


def is_reserved_address(addr) -> Optional[str]:
    """Return the reserved CIDR that holds addr, or None when it is not reserved."""
    try:
        ip = _unmapped(_to_ip(addr))
    except (ValueError, TypeError):
        return None
    return next(
        (str(net) for net in _RESERVED_NETWORKS if net.version == ip.version and ip in net),
        None,
    )


def first_last(cidr) -> tuple[IPAddress, IPAddress]:
    """Return the first and last address of the netblock."""
    net = _to_network(cidr)
    return net.network_address, net.broadcast_address


def _check_same_family(first: IPAddress, second: IPAddress) -> None:
    if first.version != second.version:
        raise ValueError(f"addresses {first} and {second} are of different families")


def range_to_cidr(first, last) -> Optional[IPNetwork]:
    """Return the CIDR that starts at first and fits inside the range up to last."""
    start, end = _to_ip(first), _to_ip(last)
    _check_same_family(start, end)
    start_int, end_int = int(start), int(end)
    if start_int > end_int:
        return None

    width = start.max_prefixlen
    bits = 1
    mask = 1
    while bits < width:
        aligned = (start_int >> bits) << bits
        if (start_int | mask) > end_int or aligned != start_int:
            bits -= 1
            break
        bits += 1
        mask = (mask << 1) + 1

    return ipaddress.ip_network(f"{start}/{width - bits}", strict=False)


def all_hosts(cidr) -> list[IPAddress]:
    """Return every host address in the netblock, without network and broadcast addresses."""
    hosts = list(_to_network(cidr))
    if len(hosts) > 2:
        hosts = hosts[1:-1]
    return hosts


def range_hosts(start, end) -> list[IPAddress]:
    """Return all addresses from start to end, inclusive."""
    if start is None or end is None:
        return []
    first, last = _to_ip(start), _to_ip(end)
    _check_same_family(first, last)
    if last < first:
        return []
    cls = type(first)
    return [cls(value) for value in range(int(first), int(last) + 1)]


def cidr_subset(cidr, addr, num: int) -> list[IPAddress]:
    """Return up to num addresses of the netblock centred on addr."""
    net = _to_network(cidr)
    ip = _to_ip(addr)
    if ip.version != net.version or ip not in net:
        return [ip]

    offset = max(num, 0) // 2
    cls = type(ip)
    low = max(int(ip) - offset, int(net.network_address))
    high = min(int(ip) + offset, int(net.broadcast_address))
    if low == high:
        return [cls(low)]
    return range_hosts(cls(low), cls(high))


def ip_inc(ip) -> IPAddress:
    """Return the address that follows ip, wrapping around at the end of the space."""
    address = _to_ip(ip)
    return type(address)((int(address) + 1) % (1 << address.max_prefixlen))


def ip_dec(ip) -> IPAddress:
    """Return the address that precedes ip, wrapping around at zero."""
    address = _to_ip(ip)
    return type(address)((int(address) - 1) % (1 << address.max_prefixlen))


def _split_host_port(addr: str) -> tuple[str, str]:
    if addr.startswith("["):
        end = addr.find("]")
        if end < 0 or addr[end + 1 : end + 2] != ":":
            raise ValueError(f"missing port in address {addr}")
        return addr[1:end], addr[end + 2 :]
    host, sep, port = addr.rpartition(":")
    if not sep:
        raise ValueError(f"missing port in address {addr}")
    if ":" in host:
        raise ValueError(f"too many colons in address {addr}")
    return host, port


def _local_ip() -> Optional[str]:
    if local_addr is None:
        return None
    try:
        return str(ipaddress.ip_interface(local_addr).ip)
    except ValueError:
        return None


def dial(network: str, addr: str, timeout: Optional[float] = None) -> socket.socket:
    """Open a connected TCP or UDP socket to addr ("host:port").

    When local_addr is set, the socket is bound to that address first.
    """
    host, port_text = _split_host_port(addr)
    port = int(port_text)

    if network.startswith("tcp"):
        socktype = socket.SOCK_STREAM
    elif network.startswith("udp"):
        socktype = socket.SOCK_DGRAM
    else:
        raise ValueError(f"unknown network {network}")

    family = socket.AF_UNSPEC
    if network.endswith("4"):
        family = socket.AF_INET
    elif network.endswith("6"):
        family = socket.AF_INET6

    local_ip = _local_ip()
    source = (local_ip, port) if local_ip is not None else None

    last_error: Optional[OSError] = None
    for fam, stype, proto, _, sockaddr in socket.getaddrinfo(host, port, family, socktype):
        sock = socket.socket(fam, stype, proto)
        try:
            sock.settimeout(timeout)
            if source is not None:
                sock.bind(source)
            sock.connect(sockaddr)
            return sock
        except OSError as exc:
            sock.close()
            last_error = exc
    if last_error is not None:
        raise last_error
    raise OSError(f"no usable addresses for {addr}")