"""Tests for the graph host: slot primitives, links and event delivery."""
import os
import sys

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from slotstudio.events import SlotDirection
from slotstudio.graph import Graph, GraphNode, is_valid_connection, NODE_MIN_WIDTH
from slotstudio.models import (
    DuplicateSlotError, IncompatibleSlotError, LinkNotFoundError,
    SlotNamingError, SlotNotFoundError, SlotOccupiedError,
)
from slotstudio.variadic import VariadicNode


class RecorderNode(GraphNode):
    """Records every connection change it receives into a shared journal."""

    def __init__(self, title, journal):
        super().__init__(title)
        self.journal = journal

    def on_connections_change(self, event):
        self.journal.append((self.title, event.direction, event.connected, event.slot.link_ids))


def _pair(graph, out_type="*", in_type="*"):
    a = GraphNode("A")
    a.add_output("out", out_type)
    b = GraphNode("B")
    b.add_input("x", in_type)
    b.add_input("y", in_type)
    return graph.add(a), graph.add(b)


# --- Slot primitives ---

def test_duplicate_slot_name_raises():
    node = GraphNode()
    node.add_input("x")
    with pytest.raises(DuplicateSlotError):
        node.add_input("x")
    node.add_output("x")
    with pytest.raises(DuplicateSlotError):
        node.add_output("x")


def test_find_slot_by_name():
    node = GraphNode()
    node.add_input("x")
    node.add_output("y")
    assert node.find_input_slot("x") == 0
    assert node.find_input_slot("missing") == -1
    assert node.find_input_slot("x", return_obj=True) is node.inputs[0]
    assert node.find_output_slot("missing", return_obj=True) is None


def test_size_follows_slot_count():
    node = GraphNode()
    base = node.size
    assert base[0] >= NODE_MIN_WIDTH
    node.add_input("x")
    node.add_input("y")
    assert node.size[1] > base[1]
    node.remove_input(1)
    assert node.size == node.compute_size()


def test_remove_missing_slot_raises():
    node = GraphNode()
    with pytest.raises(SlotNotFoundError):
        node.remove_input(0)
    with pytest.raises(SlotNotFoundError):
        node.remove_output(3)


# --- Links ---

def test_connect_attaches_link_on_both_ends():
    g = Graph()
    a, b = _pair(g, out_type="NUMBER")
    link = g.connect(a, "out", b, "y")
    assert link.type == "NUMBER"
    assert (link.origin_id, link.origin_slot, link.target_id, link.target_slot) == (a.id, 0, b.id, 1)
    assert a.outputs[0].links == [link.id]
    assert b.inputs[1].link == link.id
    assert g.links[link.id] is link


def test_connect_to_occupied_input_raises():
    g = Graph()
    a, b = _pair(g)
    g.connect(a, 0, b, 0)
    with pytest.raises(SlotOccupiedError):
        g.connect(a, 0, b, 0)


def test_connect_unknown_slot_raises():
    g = Graph()
    a, b = _pair(g)
    with pytest.raises(SlotNotFoundError):
        g.connect(a, "nope", b, 0)
    with pytest.raises(SlotNotFoundError):
        g.connect(a, 0, b, 5)


def test_connect_incompatible_types_raises():
    g = Graph()
    a, b = _pair(g, out_type="NUMBER", in_type="STRING")
    with pytest.raises(IncompatibleSlotError):
        g.connect(a, 0, b, 0)
    assert g.links == {}


def test_type_compatibility_rules():
    assert is_valid_connection("*", "NUMBER")
    assert is_valid_connection("STRING", "")
    assert is_valid_connection("number", "NUMBER")
    assert is_valid_connection("NUMBER,STRING", "string")
    assert not is_valid_connection("NUMBER", "STRING")


def test_connect_node_outside_graph_raises():
    g = Graph()
    a, _ = _pair(g)
    stray = GraphNode()
    stray.add_input("x")
    with pytest.raises(ValueError):
        g.connect(a, 0, stray, 0)


def test_add_node_twice_raises():
    g = Graph()
    node = g.add(GraphNode())
    with pytest.raises(ValueError):
        Graph().add(node)


def test_disconnect_unknown_link_raises():
    with pytest.raises(LinkNotFoundError):
        Graph().disconnect(42)


def test_disconnect_clears_both_ends():
    g = Graph()
    a, b = _pair(g)
    link = g.connect(a, 0, b, 0)
    g.disconnect(link.id)
    assert a.outputs[0].links == []
    assert b.inputs[0].link is None
    assert g.links == {}


def test_remove_input_shifts_later_link_slots():
    g = Graph()
    a, b = _pair(g)
    link = g.connect(a, 0, b, "y")
    b.remove_input(0)
    assert g.links[link.id].target_slot == 0
    assert b.inputs[0].link == link.id


def test_remove_linked_input_drops_link():
    g = Graph()
    a, b = _pair(g)
    link = g.connect(a, 0, b, "x")
    b.remove_input(0)
    assert link.id not in g.links
    assert a.outputs[0].links == []


# --- Events ---

def test_connect_notifies_origin_then_target():
    g = Graph()
    journal = []
    a = RecorderNode("A", journal)
    a.add_output("out")
    b = RecorderNode("B", journal)
    b.add_input("in")
    g.add(a)
    g.add(b)

    link = g.connect(a, 0, b, 0)
    g.disconnect(link.id)

    assert journal == [
        ("A", SlotDirection.OUTPUT, True, (link.id,)),
        ("B", SlotDirection.INPUT, True, (link.id,)),
        ("B", SlotDirection.INPUT, False, ()),
        ("A", SlotDirection.OUTPUT, False, ()),
    ]


def test_graph_event_handler_receives_events():
    events = []
    g = Graph(event_handler=lambda kind, data: events.append(kind))
    a, b = _pair(g)
    link = g.connect(a, 0, b, 0)
    g.disconnect(link.id)
    g.remove(b)
    assert events == [
        "node_added", "node_added", "link_added", "link_removed", "node_removed",
    ]


def test_remove_node_disconnects_and_shrinks_neighbours():
    g = Graph()
    src = GraphNode("Source")
    src.add_output("out")
    g.add(src)
    sink = VariadicNode("Sink")
    sink.add_var_input("V")
    g.add(sink)
    g.connect(src, 0, sink, 0)
    g.connect(src, 0, sink, 1)
    assert sink.groups["V"].count == 3

    g.remove(src)

    assert src.id not in g.nodes
    assert src.graph is None
    assert g.links == {}
    assert [s.name for s in sink.inputs] == ["V- 0"]
    assert sink.groups["V"].count == 1


def test_remove_variadic_node_with_links():
    g = Graph()
    src = GraphNode("Source")
    src.add_output("out")
    g.add(src)
    sink = VariadicNode("Sink")
    sink.add_var_input("V")
    g.add(sink)
    g.connect(src, 0, sink, 0)
    g.connect(src, 0, sink, 1)

    g.remove(sink)

    assert src.outputs[0].links == []
    assert g.links == {}


# --- Rejected changes ---

class RejectDisconnectNode(GraphNode):
    """Raises whenever one of its links is removed."""

    def on_connections_change(self, event):
        if not event.connected:
            raise SlotNamingError(event.slot.name, "in", "?")


def test_connect_rejected_by_origin_leaves_no_link():
    events = []
    g = Graph(event_handler=lambda kind, data: events.append(kind))
    src = VariadicNode("Source")
    src.add_var_output("O")
    src.add_output("O- x")
    sink = VariadicNode("Sink")
    sink.add_var_input("V")
    g.add(src)
    g.add(sink)

    with pytest.raises(SlotNamingError):
        g.connect(src, "O- x", sink, "V- 0")

    assert g.links == {}
    assert src.outputs[1].links == []
    assert [(s.name, s.link) for s in sink.inputs] == [("V- 0", None)]
    assert sink.groups["V"].count == 1
    assert events[-2:] == ["link_added", "link_removed"]


def test_connect_rejected_by_target_undoes_origin_growth():
    g = Graph()
    src = VariadicNode("Source")
    src.add_var_output("O")
    sink = VariadicNode("Sink")
    sink.add_var_input("V")
    sink.add_input("V- x")
    g.add(src)
    g.add(sink)

    with pytest.raises(SlotNamingError):
        g.connect(src, "O- 0", sink, "V- x")

    assert g.links == {}
    assert [(s.name, s.links) for s in src.outputs] == [("O- 0", [])]
    assert src.groups["O"].count == 1
    assert sink.inputs[1].link is None


def test_rejected_disconnect_still_notifies_origin():
    g = Graph()
    journal = []
    a = RecorderNode("A", journal)
    a.add_output("out")
    b = RejectDisconnectNode("B")
    b.add_input("in")
    g.add(a)
    g.add(b)
    link = g.connect(a, 0, b, 0)

    with pytest.raises(SlotNamingError):
        g.disconnect(link.id)

    assert g.links == {}
    assert b.inputs[0].link is None
    assert journal[-1] == ("A", SlotDirection.OUTPUT, False, ())
