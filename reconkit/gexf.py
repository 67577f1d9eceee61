"""GEXF output of discovered graphs, for display in Gephi."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Iterable, Optional, TextIO

from reconkit.viz import Edge, Node

XML_NS = "http://www.gephi.org/gexf"
XML_NS_VIZ = "http://www.gephi.org/gexf/viz"
VERSION = "1.3"
CREATOR = "Reconkit"
DESCRIPTION = "Reconkit Network Mapping"

_PREFIX = "  "
_INDENT = "    "

_COLORS = {
    "subdomain": (34, 153, 84),
    "domain": (242, 44, 13),
    "address": (243, 156, 18),
    "ptr": (237, 243, 26),
    "ns": (26, 243, 240),
    "mx": (142, 68, 173),
    "netblock": (243, 26, 188),
    "as": (26, 69, 243),
}

_ESCAPES = {
    '"': "&#34;",
    "'": "&#39;",
    "&": "&amp;",
    "<": "&lt;",
    ">": "&gt;",
    "\t": "&#x9;",
    "\n": "&#xA;",
    "\r": "&#xD;",
}


def _escape(text: str) -> str:
    return "".join(_ESCAPES.get(ch, ch) for ch in text)


@dataclass
class _Element:
    tag: str
    attrs: list[tuple[str, str]] = field(default_factory=list)
    children: list["_Element"] = field(default_factory=list)
    text: Optional[str] = None

    def start_tag(self) -> str:
        attrs = "".join(f' {name}="{_escape(value)}"' for name, value in self.attrs)
        return f"<{self.tag}{attrs}>"


def _serialize(element: _Element, depth: int, parts: list[str], first: bool) -> None:
    if not first:
        parts.append("\n")
    parts.append(_PREFIX + _INDENT * depth + element.start_tag())
    if element.text is not None:
        parts.append(_escape(element.text))
    elif element.children:
        for child in element.children:
            _serialize(child, depth + 1, parts, False)
        parts.append("\n" + _PREFIX + _INDENT * depth)
    parts.append(f"</{element.tag}>")


def _node_element(index: int, node: Node) -> _Element:
    attrs = [("id", str(index))]
    if node.label:
        attrs.append(("label", node.label))
    values = _Element(
        "attvalues",
        children=[
            _Element("attvalue", [("for", "0"), ("value", node.title)]),
            _Element("attvalue", [("for", "1"), ("value", node.source)]),
            _Element("attvalue", [("for", "2"), ("value", node.type)]),
        ],
    )
    children = [values]
    color = _COLORS.get(node.type)
    if color is not None:
        r, g, b = color
        children.append(_Element("viz:color", [("r", str(r)), ("g", str(g)), ("b", str(b))]))
    return _Element("node", attrs, children)


def _edge_element(index: int, edge: Edge) -> _Element:
    attrs = [("id", str(index))]
    if edge.label:
        attrs.append(("label", edge.label))
    attrs += [("source", str(edge.from_)), ("target", str(edge.to))]
    return _Element("edge", attrs)


def _document(nodes: Iterable[Node], edges: Iterable[Edge], today: str) -> _Element:
    meta = _Element(
        "meta",
        [("lastmodifieddate", today)],
        [_Element("creator", text=CREATOR), _Element("description", text=DESCRIPTION)],
    )
    attributes = _Element(
        "attributes",
        [("class", "node")],
        [
            _Element("attribute", [("id", "0"), ("title", "Title"), ("type", "string")]),
            _Element("attribute", [("id", "1"), ("title", "Source"), ("type", "string")]),
            _Element("attribute", [("id", "2"), ("title", "Type"), ("type", "string")]),
        ],
    )
    graph_children = [attributes]
    node_elements = [_node_element(i, n) for i, n in enumerate(nodes)]
    if node_elements:
        graph_children.append(_Element("nodes", children=node_elements))
    edge_elements = [_edge_element(i, e) for i, e in enumerate(edges)]
    if edge_elements:
        graph_children.append(_Element("edges", children=edge_elements))

    graph = _Element(
        "graph", [("mode", "static"), ("defaultedgetype", "directed")], graph_children
    )
    return _Element(
        "gexf",
        [("xmlns", XML_NS), ("version", VERSION), ("xmlns:viz", XML_NS_VIZ)],
        [meta, graph],
    )


def write_gexf_data(output: TextIO, nodes: Iterable[Node], edges: Iterable[Edge]) -> None:
    """Write the graph to output as an indented GEXF document."""
    output.write('<?xml version="1.0" encoding="UTF-8"?>\n')
    today = datetime.now(timezone.utc).strftime("%Y-%m-%d")
    parts: list[str] = []
    _serialize(_document(nodes, edges, today), 0, parts, True)
    output.write("".join(parts))