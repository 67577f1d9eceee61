"""CSV output of discovered graphs in the table form that Maltego imports."""

from __future__ import annotations

import ipaddress
from typing import Sequence, TextIO

from reconkit.viz import Edge, Node

COLUMN_TYPES = (
    "maltego.Domain",
    "maltego.DNSName",
    "maltego.NSRecord",
    "maltego.MXRecord",
    "maltego.IPv4Address",
    "maltego.Netblock",
    "maltego.AS",
    "maltego.Company",
    "maltego.DNSName",
)

_TYPE_INDEX = {
    "domain": 0,
    "subdomain": 1,
    "ptr": 8,
    "cname": 8,
    "address": 4,
    "ns": 2,
    "mx": 3,
    "netblock": 5,
    "as": 6,
    "company": 7,
}


def cidr_to_maltego_netblock(cidr: str) -> str:
    """Return the netblock as "first-last" addresses, or "" when cidr is not valid."""
    if "/" not in cidr:
        return ""
    try:
        network = ipaddress.ip_network(cidr, strict=False)
    except ValueError:
        return ""
    return f"{network.network_address}-{network.broadcast_address}"


def _cell(data: str, kind: str) -> str:
    return cidr_to_maltego_netblock(data) if kind == "netblock" else data


def _write_line(output: TextIO, data1: str, type1: str, data2: str, type2: str) -> None:
    row = [""] * len(COLUMN_TYPES)
    row[_TYPE_INDEX.get(type1, 0)] = _cell(data1, type1)
    row[_TYPE_INDEX.get(type2, 0)] = _cell(data2, type2)
    output.write(",".join(row) + "\n")


def _next_node(node_id: int, outgoing: bool, edge: Edge):
    if outgoing:
        return edge.to if edge.from_ == node_id else None
    return edge.from_ if edge.to == node_id else None


def _company(title: str) -> str:
    parts = title.split(":")
    if len(parts) < 3:
        raise ValueError(f"AS node title has no company part: {title!r}")
    return parts[2].strip().replace(",", "")


def _traverse(
    output: TextIO,
    node_id: int,
    nodes: Sequence[Node],
    edges: Sequence[Edge],
    seen: set[int],
) -> None:
    node = nodes[node_id]
    d1, t1 = node.label, node.type
    outgoing = t1 in ("netblock", "as")

    if node_id in seen:
        return
    seen.add(node_id)

    if t1 == "as":
        _write_line(output, d1, t1, _company(node.title), "company")

    for edge in edges:
        sub_outgoing = outgoing
        n = _next_node(node_id, outgoing, edge)
        if n is None and t1 in ("subdomain", "domain"):
            sub_outgoing = True
            n = _next_node(node_id, sub_outgoing, edge)
        if n is None:
            continue

        d2, t2 = nodes[n].label, nodes[n].type
        if "cname" in edge.title:
            if sub_outgoing:
                _write_line(output, d1, "cname", d2, t2)
            else:
                _write_line(output, d1, t1, d2, "cname")
        else:
            _write_line(output, d1, t1, d2, t2)
        _traverse(output, n, nodes, edges, seen)


def write_maltego_data(output: TextIO, nodes: Sequence[Node], edges: Sequence[Edge]) -> None:
    """Write the graph to output as CSV rows, walking out from each autonomous system."""
    nodes = list(nodes)
    edges = list(edges)
    output.write(",".join(COLUMN_TYPES) + "\n")
    seen: set[int] = set()
    for index, node in enumerate(nodes):
        if node.type == "as":
            _traverse(output, index, nodes, edges, seen)