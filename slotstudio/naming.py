"""Slot name codec.

A variadic slot name carries its group and position:

    encode("value", 2)  ->  "value- 2"
    decode("value- 2")  ->  ("value", 2)

Base names may themselves contain the join token; only the last segment is
treated as the index. Names without the join token are not managed.
"""
from dataclasses import dataclass
from typing import Optional, Tuple

from slotstudio.models import SlotNamingError


DEFAULT_JOIN = "- "


@dataclass(frozen=True)
class SlotNameCodec:
    """Maps (base name, index) pairs to slot names and back."""
    join: str = DEFAULT_JOIN

    def encode(self, base_name: str, index: int) -> str:
        return f"{base_name}{self.join}{index}"

    def split(self, name: str) -> Optional[Tuple[str, str]]:
        """Split a name into (base name, raw suffix), or None if not managed."""
        parts = name.split(self.join)
        if len(parts) < 2:
            return None
        return self.join.join(parts[:-1]), parts[-1]

    def parse_index(self, name: str, base_name: str, suffix: str) -> int:
        if not (suffix.isascii() and suffix.isdigit()):
            raise SlotNamingError(name, base_name, suffix)
        return int(suffix)

    def decode(self, name: str) -> Optional[Tuple[str, int]]:
        """Return (base name, index), or None if the name is not managed.

        Raises SlotNamingError if the name contains the join token but the
        trailing segment is not a non-negative integer.
        """
        split = self.split(name)
        if split is None:
            return None
        base_name, suffix = split
        return base_name, self.parse_index(name, base_name, suffix)
