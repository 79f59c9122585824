"""Public API for SlotStudio plugin developers.

Plugin authors only need to import from this module:
    from slotstudio.plugin_api import node, Port, VariadicNode, logger
"""
import warnings
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Type

from slotstudio.logger import NodeLogger, logger
from slotstudio.models import UnknownNodeTypeError
from slotstudio.variadic import VariadicNode

__all__ = [
    "Port", "node", "register_node", "unregister_node", "get_registry",
    "get_node_classes", "create_node", "VariadicNode", "NodeLogger", "logger",
]


# --- Port definition ---

@dataclass
class Port:
    """Defines an input or output port on a node.

    A variadic port declares a slot group: the node starts with one slot named
    after the port and grows a new one each time the last slot is connected.
    """
    name: str
    type: str = "*"  # "NUMBER", "STRING", "*" (any), etc.
    variadic: bool = False
    extra: Dict[str, Any] = field(default_factory=dict)


# --- Node registry (filled by @node decorator and register_node) ---

_NODE_REGISTRY: dict = {}
_NODE_CLASSES: dict = {}


def _normalize_ports(ports) -> List[Dict[str, Any]]:
    normalized = []
    for p in ports or []:
        if isinstance(p, Port):
            p = {"name": p.name, "type": p.type, "variadic": p.variadic, "extra": p.extra}
        normalized.append({
            "name": p["name"],
            "type": p.get("type", "*"),
            "variadic": bool(p.get("variadic", False)),
            "extra": dict(p.get("extra", {})),
        })
    return normalized


def register_node(node_info: dict, node_class: Optional[Type[VariadicNode]] = None) -> dict:
    """Register a node type from a NODE_INFO dict.

    node_info keys: type (required), label, category, description, doc,
    ports_in, ports_out. node_class defaults to VariadicNode.
    """
    node_type = node_info["type"]
    if node_type in _NODE_REGISTRY:
        warnings.warn(f"Node type '{node_type}' is registered twice; the last one wins")

    spec = {
        "type": node_type,
        "label": node_info.get("label", node_type),
        "category": node_info.get("category", "MISC"),
        "description": node_info.get("description", ""),
        "doc": node_info.get("doc", ""),
        "inputs": _normalize_ports(node_info.get("ports_in")),
        "outputs": _normalize_ports(node_info.get("ports_out")),
    }
    _NODE_REGISTRY[node_type] = spec
    _NODE_CLASSES[node_type] = node_class or VariadicNode
    return spec


def unregister_node(node_type: str) -> None:
    _NODE_REGISTRY.pop(node_type, None)
    _NODE_CLASSES.pop(node_type, None)


def node(
    type: str,
    label: str,
    category: str,
    description: str = "",
    doc: str = "",
    ports_in: List[Port] = None,
    ports_out: List[Port] = None,
):
    """Decorator to register a VariadicNode subclass as a SlotStudio node.

    Usage:
        @node(
            type="my_concat",
            label="Concat",
            category="TEXT",
            ports_in=[Port("text", "STRING", variadic=True)],
            ports_out=[Port("text", "STRING")],
        )
        class Concat(VariadicNode):
            join = "- "
    """
    info = {
        "type": type,
        "label": label,
        "category": category,
        "description": description,
        "doc": doc,
        "ports_in": ports_in or [],
        "ports_out": ports_out or [],
    }

    def decorator(cls: Type[VariadicNode]) -> Type[VariadicNode]:
        cls._node_spec = register_node(info, cls)
        return cls

    return decorator


def get_registry() -> dict:
    """Return a copy of the node registry."""
    return dict(_NODE_REGISTRY)


def get_node_classes() -> dict:
    """Return a copy of the node class table."""
    return dict(_NODE_CLASSES)


def create_node(node_type: str, title: Optional[str] = None) -> VariadicNode:
    """Instantiate a registered node type with its declared slots."""
    spec = _NODE_REGISTRY.get(node_type)
    if spec is None:
        raise UnknownNodeTypeError(node_type)
    n = _NODE_CLASSES[node_type](title or spec["label"])
    n.type = node_type
    for port in spec["inputs"]:
        if port["variadic"]:
            n.add_var_input(port["name"], port["type"], **port["extra"])
        else:
            n.add_input(port["name"], port["type"], **port["extra"])
    for port in spec["outputs"]:
        if port["variadic"]:
            n.add_var_output(port["name"], port["type"], **port["extra"])
        else:
            n.add_output(port["name"], port["type"], **port["extra"])
    return n
