"""JSON output of discovered graphs in the Graphistry edge-list format."""

from __future__ import annotations

import json
from datetime import datetime
from typing import Iterable, TextIO

from reconkit.viz import Edge, Node

NAME_PREFIX = "Reconkit_"

_COLORS = {
    "subdomain": 3,
    "domain": 5,
    "address": 7,
    "ptr": 10,
    "ns": 0,
    "mx": 9,
    "netblock": 4,
    "as": 1,
}

_MONTHS = ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")

_HTML_ESCAPES = {
    "<": "\\u003c",
    ">": "\\u003e",
    "&": "\\u0026",
    "\u2028": "\\u2028",
    "\u2029": "\\u2029",
}


def _graph_name(now: datetime) -> str:
    return f"{NAME_PREFIX}{_MONTHS[now.month - 1]}_{now.day}_{now:%Y_%H_%M_%S}"


def _escape_html(text: str) -> str:
    return "".join(_HTML_ESCAPES.get(ch, ch) for ch in text)


def write_graphistry_data(output: TextIO, nodes: Iterable[Node], edges: Iterable[Edge]) -> None:
    """Write the graph to output as an indented Graphistry JSON document."""
    labels = [
        {
            "node": str(index),
            "pointLabel": node.label,
            "pointTitle": node.title,
            "pointColor": _COLORS.get(node.type, 0),
            "type": node.type,
            "source": node.source,
        }
        for index, node in enumerate(nodes)
    ]
    graph = [
        {"src": str(edge.from_), "dst": str(edge.to), "edgeTitle": edge.title}
        for edge in edges
    ]
    document = {
        "name": _graph_name(datetime.now()),
        "type": "edgelist",
        "bindings": {
            "sourceField": "src",
            "destinationField": "dst",
            "idField": "node",
        },
        "graph": graph or None,
        "labels": labels or None,
    }
    output.write(_escape_html(json.dumps(document, indent=2, ensure_ascii=False)) + "\n")