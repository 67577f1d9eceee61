"""Graphviz DOT output for discovered graphs."""

from __future__ import annotations

from typing import Iterable, TextIO

from jinja2 import Template

from reconkit.viz import Edge, Node, node_color

GRAPH_NAME = "Attack Surface Network Mapping"

_DOT_TEMPLATE = Template(
    """
digraph "{{ name }}" {
\tsize = "7.5,10"; ranksep="2.5 equally"; ratio=auto;

{% for node in nodes %}
        node [label="{{ node.label }}",color="{{ node.color }}",type="{{ node.type }}",source="{{ node.source }}"]; n{{ node.id }};
{% endfor %}

{% for edge in edges %}
        n{{ edge.source }} -> n{{ edge.destination }} [label="{{ edge.label }}"];
{% endfor %}
}
""",
    keep_trailing_newline=True,
    autoescape=False,
)


def write_dot_data(output: TextIO, nodes: Iterable[Node], edges: Iterable[Edge]) -> None:
    """Write the graph to output in DOT format; node ids start at 1."""
    dot_nodes = [
        {
            "id": index,
            "label": node.label,
            "color": node_color(node.type),
            "type": node.type,
            "source": node.source,
        }
        for index, node in enumerate(nodes, start=1)
    ]
    dot_edges = [
        {"source": edge.from_ + 1, "destination": edge.to + 1, "label": edge.title}
        for edge in edges
    ]
    output.write(_DOT_TEMPLATE.render(name=GRAPH_NAME, nodes=dot_nodes, edges=dot_edges))