"""Object attribute memory entries (sprites)."""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import Sequence


class Priority(IntEnum):
    """Whether a sprite draws in front of or behind the background."""

    FRONT = 0
    BACK = 1


@dataclass
class Sprite:
    """One 4-byte OAM entry, decoded."""

    y: int = 0
    tile_id: int = 0
    palette: int = 0
    priority: Priority = Priority.FRONT
    flip_v: bool = False
    flip_h: bool = False
    x: int = 0

    @classmethod
    def from_bytes(cls, data: Sequence[int]) -> "Sprite":
        """Decode bytes: y, tile id, attributes (VHP...pp), x."""
        attr = data[2]
        return cls(
            y=data[0],
            tile_id=data[1],
            palette=attr & 0x03,
            priority=Priority((attr & 0x20) >> 5),
            flip_h=bool(attr & 0x40),
            flip_v=bool(attr & 0x80),
            x=data[3],
        )

    def attributes(self) -> int:
        """Re-encode the attribute byte (unimplemented bits read as 0)."""
        a = self.palette | (int(self.priority) << 5)
        if self.flip_h:
            a |= 1 << 6
        if self.flip_v:
            a |= 1 << 7
        return a

    def __str__(self) -> str:
        return f"{self.x},{self.y}: {self.tile_id}, {self.attributes():08b}"