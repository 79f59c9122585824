"""Connection-change event records delivered by the graph to its nodes."""
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple


class SlotDirection(Enum):
    INPUT = "input"
    OUTPUT = "output"


@dataclass(frozen=True)
class SlotSnapshot:
    """State of a slot right after the link was attached or detached."""
    name: str
    type: str
    link_ids: Tuple[int, ...] = ()


@dataclass(frozen=True)
class ConnectionEvent:
    direction: SlotDirection
    position: int
    connected: bool
    link_id: Optional[int]
    slot: SlotSnapshot

    @property
    def is_input(self) -> bool:
        return self.direction is SlotDirection.INPUT
