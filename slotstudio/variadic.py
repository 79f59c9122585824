"""Variadic nodes: slot groups that grow and shrink with their connections.

A node declares a slot group with ``add_var_input`` / ``add_var_output``. The
group starts with one slot named ``encode(base_name, 0)``:

    node.add_var_input("value", "NUMBER")     # inputs: value- 0

Connecting to the last slot of a group adds the next one, disconnecting
removes the vacated slot and shifts the names of the slots after it down by
one so indices stay contiguous:

    value- 0 (L1), value- 1 (L2), value- 2
    disconnect L1  ->  value- 0 (L2), value- 1

Inputs grow on every connection (they hold one link each). Outputs only grow
on a slot's first link and only shrink once a slot has lost all of its links.
A group never shrinks below its single base slot.
"""
from dataclasses import dataclass, replace
from typing import Dict, Optional, Tuple

from slotstudio.events import ConnectionEvent, SlotDirection
from slotstudio.graph import ANY_TYPE, GraphNode
from slotstudio.logger import logger
from slotstudio.models import SlotGroupError
from slotstudio.naming import DEFAULT_JOIN, SlotNameCodec


@dataclass
class SlotGroup:
    """One dynamically sized family of slots."""
    base_name: str
    data_type: str
    direction: SlotDirection
    count: int = 0


class VariadicNode(GraphNode):
    """Graph node whose registered slot groups follow their connections."""

    type = "basic/variadic"
    title = "Variadic"

    # Join token placed between a group's base name and a slot index
    join = DEFAULT_JOIN

    def __init__(self, title: Optional[str] = None):
        super().__init__(title)
        self.groups: Dict[str, SlotGroup] = {}

    @property
    def codec(self) -> SlotNameCodec:
        return SlotNameCodec(self.join)

    # --- naming (override for richer names) ---

    def encode_name(self, base_name: str, index: int) -> str:
        return self.codec.encode(base_name, index)

    def split_name(self, name: str) -> Optional[Tuple[str, str]]:
        return self.codec.split(name)

    def decode_name(self, name: str) -> Optional[Tuple[str, int]]:
        return self.codec.decode(name)

    # --- registry ---

    def add_var_input(self, base_name: str, type: str = ANY_TYPE, **extra):
        """Add the next input of group base_name, registering the group if new."""
        group = self._group(base_name, type, SlotDirection.INPUT)
        slot = self.add_input(self.encode_name(base_name, group.count), type, **extra)
        group.count += 1
        return slot

    def add_var_output(self, base_name: str, type: str = ANY_TYPE, **extra):
        """Add the next output of group base_name, registering the group if new."""
        group = self._group(base_name, type, SlotDirection.OUTPUT)
        slot = self.add_output(self.encode_name(base_name, group.count), type, **extra)
        group.count += 1
        return slot

    def _group(self, base_name: str, type: str, direction: SlotDirection) -> SlotGroup:
        group = self.groups.get(base_name)
        if group is None:
            group = self.groups[base_name] = SlotGroup(base_name, type, direction)
        elif group.direction is not direction:
            raise SlotGroupError(
                f"Slot group '{base_name}' is already registered as {group.direction.value}"
            )
        return group

    # --- reaction ---

    def on_connections_change(self, event: ConnectionEvent) -> None:
        name = event.slot.name
        split = self.split_name(name)
        if split is None:
            return
        group = self.groups.get(split[0])
        if group is None or group.direction is not event.direction:
            return
        # Raises SlotNamingError before the group is touched.
        _, index = self.decode_name(name)

        if event.connected:
            self._grow(group, event)
        else:
            self._shrink(group, event, index)

    def _grow(self, group: SlotGroup, event: ConnectionEvent):
        if event.is_input:
            self.add_input(self.encode_name(group.base_name, group.count), group.data_type)
        else:
            # Outputs fan out: only the slot's first link adds a sibling
            if event.slot.link_ids[:1] != (event.link_id,):
                return
            self.add_output(self.encode_name(group.base_name, group.count), group.data_type)
        group.count += 1
        logger.debug(f"Group '{group.base_name}' grew to {group.count} {group.direction.value}s")

    def _shrink(self, group: SlotGroup, event: ConnectionEvent, index: int):
        if group.count == 1:
            return
        if event.is_input:
            self.remove_input(event.position)
            slots = self.inputs
        else:
            # Still linked elsewhere
            if event.slot.link_ids:
                return
            self.remove_output(event.position)
            slots = self.outputs

        for i in range(index, group.count - 1):
            slot = self._find(slots, self.encode_name(group.base_name, i + 1))
            slot.name = self.encode_name(group.base_name, i)
        group.count -= 1
        self.set_size(self.compute_size())
        logger.debug(f"Group '{group.base_name}' shrank to {group.count} {group.direction.value}s")

    @staticmethod
    def _find(slots, name):
        for slot in slots:
            if slot.name == name:
                return slot
        raise LookupError(f"Slot '{name}' is missing from its group")

    # --- clone ---

    def clone(self) -> "VariadicNode":
        """Copy of this node with every slot group collapsed to its base slot."""
        node = super().clone()
        node.groups = {name: replace(group) for name, group in self.groups.items()}
        collapsed = False
        for group in node.groups.values():
            if group.count <= 1:
                continue
            extra = {node.encode_name(group.base_name, i) for i in range(1, group.count)}
            if group.direction is SlotDirection.INPUT:
                node.inputs = [s for s in node.inputs if s.name not in extra]
            else:
                node.outputs = [s for s in node.outputs if s.name not in extra]
            group.count = 1
            collapsed = True
        if collapsed:
            node.set_size(node.compute_size())
        return node
