"""Shared Pydantic models and errors for SlotStudio."""
from pydantic import BaseModel
from typing import Optional, List, Dict, Any


class SlotModel(BaseModel):
    name: str
    type: str
    link: Optional[int] = None
    links: Optional[List[int]] = None
    extra: Dict[str, Any] = {}


class SlotGroupModel(BaseModel):
    base_name: str
    data_type: str
    direction: str
    count: int


class NodeModel(BaseModel):
    id: int
    type: str
    title: str
    size: List[float] = [0, 0]
    inputs: List[SlotModel] = []
    outputs: List[SlotModel] = []
    groups: List[SlotGroupModel] = []


class LinkModel(BaseModel):
    id: int
    type: str
    origin_id: int
    origin_slot: int
    target_id: int
    target_slot: int


class GraphSnapshot(BaseModel):
    nodes: List[NodeModel] = []
    links: List[LinkModel] = []


class SlotStudioError(Exception):
    """Base class for errors raised by SlotStudio."""


class SlotNamingError(SlotStudioError):
    """Raised when a slot name carries the join token but no valid index."""

    def __init__(self, name: str, base_name: str, suffix: str):
        self.name = name
        self.base_name = base_name
        self.suffix = suffix
        super().__init__(
            f"Slot '{name}' looks variadic (base '{base_name}') "
            f"but its index '{suffix}' is not a number"
        )


class SlotGroupError(SlotStudioError, ValueError):
    """Raised when a slot group is registered for conflicting directions."""


class DuplicateSlotError(SlotStudioError, ValueError):
    """Raised when a node already has a slot with the requested name."""


class SlotNotFoundError(SlotStudioError, LookupError):
    """Raised when a slot position or name does not exist on a node."""


class LinkNotFoundError(SlotStudioError, LookupError):
    """Raised when a link id is not part of the graph."""


class SlotOccupiedError(SlotStudioError):
    """Raised when connecting to an input that already has a link."""


class IncompatibleSlotError(SlotStudioError):
    """Raised when the origin and target slot types do not match."""


class UnknownNodeTypeError(SlotStudioError, LookupError):
    """Raised when creating a node whose type is not registered."""

    def __init__(self, node_type: str):
        self.node_type = node_type
        super().__init__(f"Node type '{node_type}' is not registered")
