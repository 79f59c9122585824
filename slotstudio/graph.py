"""Graph host: nodes, slots and links.

Pure Python, no UI dependency. Owns the topology that the editor front end
edits and delivers connection-change events to nodes.

Slot semantics:
  input   - accepts at most one incoming link (``InputSlot.link``)
  output  - fans out to any number of links (``OutputSlot.links``)

Event order
-----------
connect     origin node (OUTPUT) first, then target node (INPUT)
disconnect  target node (INPUT) first, then origin node (OUTPUT)

Both slots already reflect the change when a node is notified, so a node may
add, remove or rename its own slots from inside ``on_connections_change``.
Removing a slot shifts the slot index stored on the links of later slots.
If a node raises while reacting to a new link, the link is taken out again
and the error propagates. A disconnect always reaches both nodes.
"""
from __future__ import annotations
import copy
from dataclasses import dataclass, field, replace
from typing import Any, Callable, Dict, List, Optional, Union

from slotstudio.events import ConnectionEvent, SlotDirection, SlotSnapshot
from slotstudio.logger import logger as node_logger
from slotstudio.models import (
    DuplicateSlotError, IncompatibleSlotError, LinkNotFoundError,
    SlotNotFoundError, SlotOccupiedError,
)


ANY_TYPE = "*"

# Layout constants used by GraphNode.compute_size
NODE_SLOT_HEIGHT = 20
NODE_MIN_WIDTH = 140
NODE_TEXT_SIZE = 14
NODE_SLOT_PADDING = 10


def is_valid_connection(type_a: str, type_b: str) -> bool:
    """Return True if a slot of type_a may link to a slot of type_b.

    Empty and "*" types accept anything. Comma-separated types match if any
    member matches, case-insensitively.
    """
    if not type_a or not type_b or type_a == ANY_TYPE or type_b == ANY_TYPE:
        return True
    a = {t.strip().lower() for t in type_a.split(",")}
    b = {t.strip().lower() for t in type_b.split(",")}
    return bool(a & b)


# ---------------------------------------------------------------------------
# Slots and links
# ---------------------------------------------------------------------------

@dataclass
class InputSlot:
    name: str
    type: str = ANY_TYPE
    link: Optional[int] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    def snapshot(self) -> SlotSnapshot:
        ids = () if self.link is None else (self.link,)
        return SlotSnapshot(self.name, self.type, ids)


@dataclass
class OutputSlot:
    name: str
    type: str = ANY_TYPE
    links: List[int] = field(default_factory=list)
    extra: Dict[str, Any] = field(default_factory=dict)

    def snapshot(self) -> SlotSnapshot:
        return SlotSnapshot(self.name, self.type, tuple(self.links))


@dataclass
class Link:
    id: int
    type: str
    origin_id: int
    origin_slot: int
    target_id: int
    target_slot: int


# ---------------------------------------------------------------------------
# Node
# ---------------------------------------------------------------------------

class GraphNode:
    """A node with ordered input and output slots."""

    type = "basic/node"
    title = "Node"

    def __init__(self, title: Optional[str] = None):
        self.id: Optional[int] = None
        self.graph: Optional[Graph] = None
        if title is not None:
            self.title = title
        self.inputs: List[InputSlot] = []
        self.outputs: List[OutputSlot] = []
        self.properties: Dict[str, Any] = {}
        self.size: List[float] = self.compute_size()

    def __repr__(self):
        return f"<{type(self).__name__} {self.type}#{self.id} {self.title!r}>"

    # --- slot primitives ---

    def add_input(self, name: str, type: str = ANY_TYPE, **extra) -> InputSlot:
        if self.find_input_slot(name) != -1:
            raise DuplicateSlotError(f"Node '{self.title}' already has an input named '{name}'")
        slot = InputSlot(name, type, extra=extra)
        self.inputs.append(slot)
        self.set_size(self.compute_size())
        return slot

    def add_output(self, name: str, type: str = ANY_TYPE, **extra) -> OutputSlot:
        if self.find_output_slot(name) != -1:
            raise DuplicateSlotError(f"Node '{self.title}' already has an output named '{name}'")
        slot = OutputSlot(name, type, extra=extra)
        self.outputs.append(slot)
        self.set_size(self.compute_size())
        return slot

    def remove_input(self, slot: int) -> InputSlot:
        """Remove the input at position slot, dropping its link if any."""
        if not 0 <= slot < len(self.inputs):
            raise SlotNotFoundError(f"Node '{self.title}' has no input #{slot}")
        removed = self.inputs.pop(slot)
        if self.graph is not None:
            if removed.link is not None:
                self.graph._detach_link(removed.link)
                removed.link = None
            for later in self.inputs[slot:]:
                if later.link is not None:
                    self.graph.links[later.link].target_slot -= 1
        self.set_size(self.compute_size())
        return removed

    def remove_output(self, slot: int) -> OutputSlot:
        """Remove the output at position slot, dropping its links if any."""
        if not 0 <= slot < len(self.outputs):
            raise SlotNotFoundError(f"Node '{self.title}' has no output #{slot}")
        removed = self.outputs.pop(slot)
        if self.graph is not None:
            for link_id in list(removed.links):
                self.graph._detach_link(link_id)
            removed.links = []
            for later in self.outputs[slot:]:
                for link_id in later.links:
                    self.graph.links[link_id].origin_slot -= 1
        self.set_size(self.compute_size())
        return removed

    def find_input_slot(self, name: str, return_obj: bool = False):
        """Return the position of the named input (-1), or the slot (None)."""
        for i, slot in enumerate(self.inputs):
            if slot.name == name:
                return slot if return_obj else i
        return None if return_obj else -1

    def find_output_slot(self, name: str, return_obj: bool = False):
        """Return the position of the named output (-1), or the slot (None)."""
        for i, slot in enumerate(self.outputs):
            if slot.name == name:
                return slot if return_obj else i
        return None if return_obj else -1

    # --- layout ---

    def compute_size(self) -> List[float]:
        """Preferred size for the current title and slot lists."""
        char_width = NODE_TEXT_SIZE * 0.6
        rows = max(len(self.inputs), len(self.outputs), 1)
        title_width = len(self.title) * char_width + NODE_SLOT_PADDING * 2
        in_width = max((len(s.name) for s in self.inputs), default=0) * char_width
        out_width = max((len(s.name) for s in self.outputs), default=0) * char_width
        width = max(in_width + out_width + NODE_SLOT_PADDING * 3, title_width, NODE_MIN_WIDTH)
        height = rows * NODE_SLOT_HEIGHT + NODE_SLOT_PADDING
        return [width, height]

    def set_size(self, size: List[float]) -> None:
        self.size = [size[0], size[1]]

    # --- lifecycle ---

    def clone(self) -> "GraphNode":
        """Structural copy without id, graph membership or links."""
        node = copy.copy(self)
        node.id = None
        node.graph = None
        node.inputs = [replace(s, link=None, extra=copy.deepcopy(s.extra)) for s in self.inputs]
        node.outputs = [replace(s, links=[], extra=copy.deepcopy(s.extra)) for s in self.outputs]
        node.properties = copy.deepcopy(self.properties)
        node.size = list(self.size)
        return node

    def on_connections_change(self, event: ConnectionEvent) -> None:
        """Called after a link on one of this node's slots was added or removed."""


# ---------------------------------------------------------------------------
# Graph
# ---------------------------------------------------------------------------

SlotRef = Union[int, str]


class Graph:
    """Owns nodes and links and notifies nodes of connection changes."""

    def __init__(self, event_handler: Optional[Callable] = None):
        self.nodes: Dict[int, GraphNode] = {}
        self.links: Dict[int, Link] = {}
        self.last_node_id = 0
        self.last_link_id = 0
        self.event_handler = event_handler
        self.log_entries: List[dict] = []

    def _emit(self, event_type: str, **data):
        """Emit an event (for WebSocket streaming)."""
        if self.event_handler:
            self.event_handler(event_type, data)

    def _log_handler(self, level: str, node_id: int, node_type: str, message: str):
        """Captures logs from nodes via the logger singleton."""
        entry = {
            "level": level,
            "node_id": node_id,
            "node_type": node_type,
            "message": message,
        }
        self.log_entries.append(entry)
        self._emit("log", **entry)
        print(f"  [{level}] [{node_type}:{node_id}] {message}")

    # --- nodes ---

    def add(self, node: GraphNode) -> GraphNode:
        if node.graph is not None:
            raise ValueError(f"{node!r} already belongs to a graph")
        self.last_node_id += 1
        node.id = self.last_node_id
        node.graph = self
        self.nodes[node.id] = node
        self._emit("node_added", node_id=node.id, node_type=node.type)
        return node

    def get_node(self, node_id: int) -> GraphNode:
        try:
            return self.nodes[node_id]
        except KeyError:
            raise LookupError(f"Node {node_id} does not exist") from None

    def remove(self, node: GraphNode) -> None:
        """Disconnect every link of node, then remove it from the graph."""
        self._check_member(node)
        while True:
            attached = [s.link for s in node.inputs if s.link is not None]
            attached += [link_id for s in node.outputs for link_id in s.links]
            if not attached:
                break
            self.disconnect(attached[0])
        del self.nodes[node.id]
        self._emit("node_removed", node_id=node.id, node_type=node.type)
        node.graph = None

    def clone_node(self, node: GraphNode) -> GraphNode:
        return self.add(node.clone())

    # --- links ---

    def connect(self, origin: GraphNode, origin_slot: SlotRef,
                target: GraphNode, target_slot: SlotRef) -> Link:
        """Link an output of origin to an input of target."""
        self._check_member(origin)
        self._check_member(target)
        origin_slot = self._resolve(origin, origin_slot, SlotDirection.OUTPUT)
        target_slot = self._resolve(target, target_slot, SlotDirection.INPUT)
        output = origin.outputs[origin_slot]
        input_ = target.inputs[target_slot]

        if input_.link is not None:
            raise SlotOccupiedError(
                f"Input '{input_.name}' of node {target.id} is already linked (link {input_.link})"
            )
        if not is_valid_connection(output.type, input_.type):
            raise IncompatibleSlotError(
                f"Cannot link '{output.name}' ({output.type}) to '{input_.name}' ({input_.type})"
            )

        self.last_link_id += 1
        link = Link(
            id=self.last_link_id,
            type=output.type,
            origin_id=origin.id,
            origin_slot=origin_slot,
            target_id=target.id,
            target_slot=target_slot,
        )
        self.links[link.id] = link
        output.links.append(link.id)
        input_.link = link.id
        self._emit("link_added", link_id=link.id, origin_id=origin.id, target_id=target.id)

        try:
            self._dispatch(origin, SlotDirection.OUTPUT, origin_slot, True, link.id)
        except Exception:
            self._unlink(link)
            raise
        try:
            self._dispatch(target, SlotDirection.INPUT, link.target_slot, True, link.id)
        except Exception:
            # The origin already reacted to the link, so it hears about the undo
            self._unlink(link)
            self._dispatch(origin, SlotDirection.OUTPUT, link.origin_slot, False, link.id)
            raise
        return link

    def disconnect(self, link_id: int) -> None:
        """Remove a link and notify both of its nodes."""
        link = self.links.get(link_id)
        if link is None:
            raise LinkNotFoundError(f"Link {link_id} does not exist")
        self._unlink(link)

        target = self.nodes[link.target_id]
        origin = self.nodes[link.origin_id]
        try:
            self._dispatch(target, SlotDirection.INPUT, link.target_slot, False, link_id)
        finally:
            self._dispatch(origin, SlotDirection.OUTPUT, link.origin_slot, False, link_id)

    def _unlink(self, link: Link) -> None:
        self._detach_link(link.id)
        self._emit("link_removed", link_id=link.id, origin_id=link.origin_id,
                   target_id=link.target_id)

    def _detach_link(self, link_id: int) -> Link:
        """Drop a link from the graph and both of its slots, without notifying."""
        link = self.links.pop(link_id)
        target = self.nodes.get(link.target_id)
        if target is not None and link.target_slot < len(target.inputs):
            input_ = target.inputs[link.target_slot]
            if input_.link == link_id:
                input_.link = None
        origin = self.nodes.get(link.origin_id)
        if origin is not None and link.origin_slot < len(origin.outputs):
            output = origin.outputs[link.origin_slot]
            if link_id in output.links:
                output.links.remove(link_id)
        return link

    # --- helpers ---

    def _check_member(self, node: GraphNode):
        if node.graph is not self:
            raise ValueError(f"{node!r} is not part of this graph")

    def _resolve(self, node: GraphNode, ref: SlotRef, direction: SlotDirection) -> int:
        """Turn a slot name or position into a valid position."""
        if direction is SlotDirection.INPUT:
            slots, kind = node.inputs, "input"
            pos = node.find_input_slot(ref) if isinstance(ref, str) else ref
        else:
            slots, kind = node.outputs, "output"
            pos = node.find_output_slot(ref) if isinstance(ref, str) else ref
        if not 0 <= pos < len(slots):
            raise SlotNotFoundError(f"Node {node.id} has no {kind} {ref!r}")
        return pos

    def _dispatch(self, node: GraphNode, direction: SlotDirection, position: int,
                  connected: bool, link_id: int):
        slots = node.inputs if direction is SlotDirection.INPUT else node.outputs
        event = ConnectionEvent(
            direction=direction,
            position=position,
            connected=connected,
            link_id=link_id,
            slot=slots[position].snapshot(),
        )
        node_logger._set_context(node.id, node.type, self._log_handler)
        try:
            node.on_connections_change(event)
        finally:
            node_logger._clear_context()
