"""Graph node and edge records shared by the visualisation writers."""

from __future__ import annotations

from dataclasses import dataclass

_TYPES = ("subdomain", "domain", "address", "ptr", "ns", "mx", "netblock", "as")
_COLORS = ("green", "red", "orange", "yellow", "cyan", "purple", "pink", "blue")

NODE_COLORS = dict(zip(_TYPES, _COLORS))


@dataclass
class Edge:
    """A directed edge between two nodes, given by their positions in the node list."""

    from_: int = 0
    to: int = 0
    label: str = ""
    title: str = ""


@dataclass
class Node:
    """A graph node."""

    id: int = 0
    type: str = ""
    label: str = ""
    title: str = ""
    source: str = ""
    actual_type: str = ""


def node_color(node_type: str) -> str:
    """Return the colour name used for nodes of this type, or an empty string."""
    return NODE_COLORS.get(node_type, "")