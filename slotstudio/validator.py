"""Slot consistency validator for SlotStudio.

Validates variadic nodes and graphs and returns a list of issues, each a dict:
    {"level": "error"|"warning", "node_id": int|None, "message": str}
"""
from collections import Counter
from typing import Any, Dict, List

from slotstudio.events import SlotDirection
from slotstudio.graph import Graph, GraphNode
from slotstudio.models import SlotNamingError
from slotstudio.variadic import VariadicNode


def _issue(level: str, node_id, message: str) -> Dict[str, Any]:
    return {"level": level, "node_id": node_id, "message": message}


def validate_node(node: GraphNode) -> List[Dict[str, Any]]:
    """Validate slot names and slot groups of one node.

    Checks performed:
    1. Duplicate slot names per direction (error)
    2. Group count below one (error)
    3. Missing group slots, i.e. gaps (error)
    4. Group slots beyond the group's count (error)
    5. Group slot with a type other than the group's (error)
    6. Unparseable variadic names (error)
    7. Input group without exactly one free trailing slot (warning)
    8. Unconnected output group slot before the last one (warning)
    """
    issues: List[Dict[str, Any]] = []

    # --- Check 1: Duplicate names ---
    for kind, slots in (("input", node.inputs), ("output", node.outputs)):
        counts = Counter(s.name for s in slots)
        for name, n in counts.items():
            if n > 1:
                issues.append(_issue("error", node.id, f"Duplicate {kind} name '{name}' ({n}x)"))

    if not isinstance(node, VariadicNode):
        return issues

    for group in node.groups.values():
        base = group.base_name
        is_input = group.direction is SlotDirection.INPUT
        slots = node.inputs if is_input else node.outputs
        kind = group.direction.value

        # --- Check 2: Count floor ---
        if group.count < 1:
            issues.append(_issue("error", node.id, f"Group '{base}' has count {group.count}"))
            continue

        members = {}
        for slot in slots:
            split = node.split_name(slot.name)
            if split is None or split[0] != base:
                continue
            try:
                _, index = node.decode_name(slot.name)
            except SlotNamingError as e:
                # --- Check 6 ---
                issues.append(_issue("error", node.id, str(e)))
                continue
            members[index] = slot

        for i in range(group.count):
            # --- Check 3: Gaps ---
            if i not in members:
                issues.append(_issue(
                    "error", node.id,
                    f"Group '{base}' is missing {kind} '{node.encode_name(base, i)}'",
                ))
            # --- Check 5: Type drift ---
            elif members[i].type != group.data_type:
                issues.append(_issue(
                    "error", node.id,
                    f"{kind.capitalize()} '{members[i].name}' has type '{members[i].type}', "
                    f"group '{base}' expects '{group.data_type}'",
                ))

        # --- Check 4: Beyond count ---
        for i in sorted(members):
            if i >= group.count:
                issues.append(_issue(
                    "error", node.id,
                    f"{kind.capitalize()} '{members[i].name}' is beyond group '{base}' count {group.count}",
                ))

        ordered = [members[i] for i in range(group.count) if i in members]
        if is_input:
            # --- Check 7: One free trailing input ---
            if group.count > 1 and ordered:
                connected = [s for s in ordered if s.link is not None]
                if len(connected) != group.count - 1 or ordered[-1].link is not None:
                    issues.append(_issue(
                        "warning", node.id,
                        f"Input group '{base}' should have exactly one free trailing slot",
                    ))
        else:
            # --- Check 8: Only the last output may be unconnected ---
            for slot in ordered[:-1]:
                if not slot.links:
                    issues.append(_issue(
                        "warning", node.id,
                        f"Output '{slot.name}' is unconnected but not the last of group '{base}'",
                    ))

    return issues


def validate_graph(graph: Graph) -> List[Dict[str, Any]]:
    """Validate every node plus the link table of a graph."""
    issues: List[Dict[str, Any]] = []
    for node in graph.nodes.values():
        issues.extend(validate_node(node))

    for link in graph.links.values():
        origin = graph.nodes.get(link.origin_id)
        target = graph.nodes.get(link.target_id)
        if origin is None or target is None:
            issues.append(_issue("error", None, f"Link {link.id} references a missing node"))
            continue
        if link.origin_slot >= len(origin.outputs) or link.id not in origin.outputs[link.origin_slot].links:
            issues.append(_issue("error", origin.id, f"Link {link.id} is not on output #{link.origin_slot}"))
        if link.target_slot >= len(target.inputs) or target.inputs[link.target_slot].link != link.id:
            issues.append(_issue("error", target.id, f"Link {link.id} is not on input #{link.target_slot}"))

    for node in graph.nodes.values():
        for slot in node.inputs:
            if slot.link is not None and slot.link not in graph.links:
                issues.append(_issue("error", node.id, f"Input '{slot.name}' references missing link {slot.link}"))
        for slot in node.outputs:
            for link_id in slot.links:
                if link_id not in graph.links:
                    issues.append(_issue("error", node.id, f"Output '{slot.name}' references missing link {link_id}"))

    return issues
