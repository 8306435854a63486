"""The PPU's internal scroll/address registers (v and t)."""

from __future__ import annotations

from typing import Union

_MASK = 0xFFFF


class Loopy:
    """A 15-bit scroll register laid out as yyy NN YYYYY XXXXX.

    yyy is fine Y, NN the nametable select, YYYYY coarse Y and XXXXX coarse X.
    """

    __slots__ = ("value",)

    def __init__(self, value: int = 0) -> None:
        self.value = value & _MASK

    def __str__(self) -> str:
        return (
            f"{self.fine_y():03b}:{self.nametable_y():01b}{self.nametable_x():01b}:"
            f"{self.coarse_y():05b}:{self.coarse_x():05b}"
        )

    def __repr__(self) -> str:
        return f"Loopy(0x{self.value:04x})"

    def __int__(self) -> int:
        return self.value

    def __index__(self) -> int:
        return self.value

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Loopy):
            return self.value == other.value
        if isinstance(other, int):
            return self.value == other
        return NotImplemented

    __hash__ = None  # type: ignore[assignment]

    def set(self, value: Union[int, "Loopy"]) -> None:
        self.value = int(value) & _MASK

    def coarse_x(self) -> int:
        return self.value & 0x001F

    def set_coarse_x(self, n: int) -> None:
        self.value = ((self.value & 0xFFE0) | n) & _MASK

    def reset_coarse_x(self) -> None:
        self.value &= 0xFFE0

    def increment_coarse_x(self) -> None:
        self.value = (self.value + 1) & _MASK

    def coarse_y(self) -> int:
        return (self.value & 0x03E0) >> 5

    def set_coarse_y(self, n: int) -> None:
        self.value = ((self.value & 0xFC1F) | (n << 5)) & _MASK

    def reset_coarse_y(self) -> None:
        self.value &= 0xFC1F

    def increment_coarse_y(self) -> None:
        self.value = (self.value + 32) & _MASK

    def nametable_x(self) -> int:
        return (self.value & 0x0400) >> 10

    def set_nametable_x(self, val: int) -> None:
        self.value = (self.value & 0xFBFF) | ((val & 0x01) << 10)

    def toggle_nametable_x(self) -> None:
        self.value ^= 0x0400

    def nametable_y(self) -> int:
        return (self.value & 0x0800) >> 11

    def set_nametable_y(self, val: int) -> None:
        self.value = (self.value & 0xF7FF) | ((val & 0x01) << 11)

    def toggle_nametable_y(self) -> None:
        self.value ^= 0x0800

    def fine_y(self) -> int:
        return (self.value & 0x7000) >> 12

    def set_fine_y(self, n: int) -> None:
        # Masks the existing fine Y bits with n rather than replacing them.
        self.value &= (0x0FFF | (n << 12)) & _MASK

    def increment_fine_y(self) -> None:
        self.value = (self.value + 0x1000) & _MASK

    def reset_fine_y(self) -> None:
        self.value &= 0x0FFF