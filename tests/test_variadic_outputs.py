"""Tests for variadic output groups: multi-link slots and deferred shrink."""
import os
import sys

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from slotstudio.events import ConnectionEvent, SlotDirection, SlotSnapshot
from slotstudio.graph import Graph, GraphNode
from slotstudio.variadic import VariadicNode


def _fanout(graph):
    node = VariadicNode("Fanout")
    node.add_var_output("O")
    return graph.add(node)


def _sink(graph):
    node = GraphNode("Sink")
    node.add_input("in")
    return graph.add(node)


def _names(slots):
    return [s.name for s in slots]


def test_first_link_grows_group():
    g = Graph()
    src = _fanout(g)
    link = g.connect(src, "O- 0", _sink(g), "in")

    assert _names(src.outputs) == ["O- 0", "O- 1"]
    assert src.outputs[0].links == [link.id]
    assert src.outputs[1].links == []
    assert src.groups["O"].count == 2


def test_second_link_on_same_slot_does_not_grow():
    g = Graph()
    src = _fanout(g)
    l1 = g.connect(src, "O- 0", _sink(g), "in")
    l2 = g.connect(src, "O- 0", _sink(g), "in")

    assert _names(src.outputs) == ["O- 0", "O- 1"]
    assert src.outputs[0].links == [l1.id, l2.id]
    assert src.groups["O"].count == 2


def test_first_link_on_last_slot_grows_again():
    g = Graph()
    src = _fanout(g)
    g.connect(src, "O- 0", _sink(g), "in")
    g.connect(src, "O- 0", _sink(g), "in")
    g.connect(src, "O- 1", _sink(g), "in")

    assert _names(src.outputs) == ["O- 0", "O- 1", "O- 2"]
    assert src.groups["O"].count == 3


def test_shrink_waits_for_last_link():
    g = Graph()
    src = _fanout(g)
    l1 = g.connect(src, "O- 0", _sink(g), "in")
    l2 = g.connect(src, "O- 0", _sink(g), "in")

    g.disconnect(l1.id)
    assert _names(src.outputs) == ["O- 0", "O- 1"]
    assert src.outputs[0].links == [l2.id]

    g.disconnect(l2.id)
    assert _names(src.outputs) == ["O- 0"]
    assert src.groups["O"].count == 1


def test_shrink_renumbers_and_moves_links():
    g = Graph()
    src = _fanout(g)
    l1 = g.connect(src, "O- 0", _sink(g), "in")
    l2 = g.connect(src, "O- 1", _sink(g), "in")
    l3 = g.connect(src, "O- 1", _sink(g), "in")

    g.disconnect(l1.id)

    assert _names(src.outputs) == ["O- 0", "O- 1"]
    assert src.outputs[0].links == [l2.id, l3.id]
    assert g.links[l2.id].origin_slot == 0
    assert g.links[l3.id].origin_slot == 0
    assert src.groups["O"].count == 2


def test_event_for_later_link_does_not_grow():
    """Only the transition from no links to one link adds a slot."""
    node = VariadicNode()
    node.add_var_output("O")
    event = ConnectionEvent(SlotDirection.OUTPUT, 0, True, 6, SlotSnapshot("O- 0", "*", (5, 6)))

    node.on_connections_change(event)

    assert _names(node.outputs) == ["O- 0"]


def test_disconnect_at_count_one_is_ignored():
    node = VariadicNode()
    node.add_var_output("O")
    event = ConnectionEvent(SlotDirection.OUTPUT, 0, False, 5, SlotSnapshot("O- 0", "*"))

    node.on_connections_change(event)

    assert _names(node.outputs) == ["O- 0"]
    assert node.groups["O"].count == 1


def test_input_and_output_groups_on_one_node():
    g = Graph()
    node = VariadicNode("Both")
    node.add_var_input("I")
    node.add_var_output("O")
    g.add(node)
    upstream = _fanout(g)

    g.connect(upstream, "O- 0", node, "I- 0")
    g.connect(node, "O- 0", _sink(g), "in")

    assert _names(node.inputs) == ["I- 0", "I- 1"]
    assert _names(node.outputs) == ["O- 0", "O- 1"]
    assert _names(upstream.outputs) == ["O- 0", "O- 1"]
