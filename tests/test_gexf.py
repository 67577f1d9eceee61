import io
import xml.etree.ElementTree as ET
from datetime import date, datetime, timezone

from reconkit.gexf import XML_NS, XML_NS_VIZ, write_gexf_data
from reconkit.viz import Edge, Node

NS = {"g": XML_NS, "viz": XML_NS_VIZ}


def _render(nodes, edges):
    out = io.StringIO()
    write_gexf_data(out, nodes, edges)
    return out.getvalue()


def _sample():
    nodes = [
        Node(type="domain", label="example.com", title="example.com", source="DNS"),
        Node(type="mystery", label="", title="odd"),
    ]
    edges = [Edge(from_=0, to=1, label="link", title="link")]
    return nodes, edges


def test_header_and_root():
    text = _render([], [])
    assert text.startswith('<?xml version="1.0" encoding="UTF-8"?>\n')
    root = ET.fromstring(text)
    assert root.tag == "{%s}gexf" % XML_NS
    assert root.get("version") == "1.3"


def test_meta_date_format():
    root = ET.fromstring(_render([], []))
    meta = root.find("g:meta", NS)
    stamp = meta.get("lastmodifieddate")
    assert len(stamp) == 10
    written = date.fromisoformat(stamp)
    assert abs((written - datetime.now(timezone.utc).date()).days) <= 1


def test_nodes_round_trip():
    nodes, edges = _sample()
    root = ET.fromstring(_render(nodes, edges))
    found = root.findall("g:graph/g:nodes/g:node", NS)
    assert [n.get("id") for n in found] == ["0", "1"]
    assert found[0].get("label") == "example.com"
    assert found[1].get("label") is None
    values = [(v.get("for"), v.get("value")) for v in found[0].findall("g:attvalues/g:attvalue", NS)]
    assert values == [("0", "example.com"), ("1", "DNS"), ("2", "domain")]


def test_colors_only_for_known_types():
    nodes, edges = _sample()
    root = ET.fromstring(_render(nodes, edges))
    found = root.findall("g:graph/g:nodes/g:node", NS)
    color = found[0].find("viz:color", NS)
    assert (color.get("r"), color.get("g"), color.get("b")) == ("242", "44", "13")
    assert found[1].find("viz:color", NS) is None


def test_edges_round_trip():
    nodes, edges = _sample()
    root = ET.fromstring(_render(nodes, edges))
    edge = root.find("g:graph/g:edges/g:edge", NS)
    assert edge.get("source") == "0"
    assert edge.get("target") == "1"
    assert edge.get("label") == "link"
    assert edge.get("weight") is None


def test_empty_graph_omits_nodes_and_edges():
    root = ET.fromstring(_render([], []))
    graph = root.find("g:graph", NS)
    assert graph.find("g:nodes", NS) is None
    assert graph.find("g:edges", NS) is None
    assert len(graph.findall("g:attributes/g:attribute", NS)) == 3


def test_special_characters_are_escaped():
    label = 'a<b>&"c\'\n'
    root = ET.fromstring(_render([Node(type="ns", label=label, title=label)], []))
    node = root.find("g:graph/g:nodes/g:node", NS)
    assert node.get("label") == label


def test_graph_attributes():
    text = _render([], [])
    assert '<graph mode="static" defaultedgetype="directed">' in text
    assert '<attribute id="0" title="Title" type="string"></attribute>' in text