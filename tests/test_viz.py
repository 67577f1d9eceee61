import pytest

from reconkit.viz import Edge, Node, node_color


@pytest.mark.parametrize(
    "node_type, color",
    [
        ("subdomain", "green"),
        ("domain", "red"),
        ("address", "orange"),
        ("ptr", "yellow"),
        ("ns", "cyan"),
        ("mx", "purple"),
        ("netblock", "pink"),
        ("as", "blue"),
    ],
)
def test_node_color(node_type, color):
    assert node_color(node_type) == color


def test_node_color_unknown():
    assert node_color("cname") == ""


def test_records_hold_values():
    edge = Edge(from_=2, to=5, label="l", title="t")
    assert (edge.from_, edge.to, edge.label, edge.title) == (2, 5, "l", "t")
    node = Node(id=3, type="domain", label="owasp.org")
    assert node.source == ""
    assert node_color(node.type) == "red"