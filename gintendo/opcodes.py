"""6502 addressing modes and the opcode decoding table."""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from types import MappingProxyType
from typing import Mapping, Optional

STACK_PAGE = 0x0100


class Mode(IntEnum):
    """Memory addressing modes of the 6502."""

    IMPLICIT = 0
    ACCUMULATOR = 1
    IMMEDIATE = 2
    ZERO_PAGE = 3
    ZERO_PAGE_X = 4
    ZERO_PAGE_X_BUT_Y = 5  # undocumented: written like zero page X, indexed by Y
    ZERO_PAGE_Y = 6
    RELATIVE = 7
    ABSOLUTE = 8
    ABSOLUTE_X = 9
    ABSOLUTE_Y = 10
    INDIRECT = 11
    INDIRECT_X = 12  # indexed indirect
    INDIRECT_Y = 13  # indirect indexed

    @property
    def label(self) -> str:
        """Display name; the undocumented zero page mode has none."""
        if self is Mode.ZERO_PAGE_X_BUT_Y:
            return ""
        return self.name


@dataclass(frozen=True)
class Opcode:
    """A decoded instruction: mnemonic, addressing mode, length and base cycles."""

    name: str
    mode: Mode
    size: int
    cycles: int

    def __str__(self) -> str:
        return f"{{{self.name}, {self.mode.label}}}"


_M = Mode

_TABLE: dict[int, tuple[str, Mode, int, int]] = {
    0x69: ("ADC", _M.IMMEDIATE, 2, 2),
    0x65: ("ADC", _M.ZERO_PAGE, 2, 3),
    0x75: ("ADC", _M.ZERO_PAGE_X, 2, 4),
    0x6D: ("ADC", _M.ABSOLUTE, 3, 4),
    0x7D: ("ADC", _M.ABSOLUTE_X, 3, 4),
    0x79: ("ADC", _M.ABSOLUTE_Y, 3, 4),
    0x61: ("ADC", _M.INDIRECT_X, 2, 6),
    0x71: ("ADC", _M.INDIRECT_Y, 2, 5),
    0x29: ("AND", _M.IMMEDIATE, 2, 2),
    0x25: ("AND", _M.ZERO_PAGE, 2, 3),
    0x35: ("AND", _M.ZERO_PAGE_X, 2, 4),
    0x2D: ("AND", _M.ABSOLUTE, 3, 4),
    0x3D: ("AND", _M.ABSOLUTE_X, 3, 4),
    0x39: ("AND", _M.ABSOLUTE_Y, 3, 4),
    0x21: ("AND", _M.INDIRECT_X, 2, 6),
    0x31: ("AND", _M.INDIRECT_Y, 2, 5),
    0x0A: ("ASL", _M.ACCUMULATOR, 1, 2),
    0x06: ("ASL", _M.ZERO_PAGE, 2, 5),
    0x16: ("ASL", _M.ZERO_PAGE_X, 2, 6),
    0x0E: ("ASL", _M.ABSOLUTE, 3, 6),
    0x1E: ("ASL", _M.ABSOLUTE_X, 3, 7),
    0x90: ("BCC", _M.RELATIVE, 2, 2),
    0xB0: ("BCS", _M.RELATIVE, 2, 2),
    0xF0: ("BEQ", _M.RELATIVE, 2, 2),
    0x24: ("BIT", _M.ZERO_PAGE, 2, 3),
    0x2C: ("BIT", _M.ABSOLUTE, 3, 4),
    0x30: ("BMI", _M.RELATIVE, 2, 2),
    0xD0: ("BNE", _M.RELATIVE, 2, 2),
    0x10: ("BPL", _M.RELATIVE, 2, 2),
    0x00: ("BRK", _M.IMPLICIT, 2, 7),
    0x50: ("BVC", _M.RELATIVE, 2, 2),
    0x70: ("BVS", _M.RELATIVE, 2, 2),
    0x18: ("CLC", _M.IMPLICIT, 1, 2),
    0xD8: ("CLD", _M.IMPLICIT, 1, 2),
    0x58: ("CLI", _M.IMPLICIT, 1, 2),
    0xB8: ("CLV", _M.IMPLICIT, 1, 2),
    0xC9: ("CMP", _M.IMMEDIATE, 2, 2),
    0xC5: ("CMP", _M.ZERO_PAGE, 2, 3),
    0xD5: ("CMP", _M.ZERO_PAGE_X, 2, 4),
    0xCD: ("CMP", _M.ABSOLUTE, 3, 4),
    0xDD: ("CMP", _M.ABSOLUTE_X, 3, 4),
    0xD9: ("CMP", _M.ABSOLUTE_Y, 3, 4),
    0xC1: ("CMP", _M.INDIRECT_X, 2, 6),
    0xD1: ("CMP", _M.INDIRECT_Y, 2, 5),
    0xE0: ("CPX", _M.IMMEDIATE, 2, 2),
    0xE4: ("CPX", _M.ZERO_PAGE, 2, 3),
    0xEC: ("CPX", _M.ABSOLUTE, 3, 4),
    0xC0: ("CPY", _M.IMMEDIATE, 2, 2),
    0xC4: ("CPY", _M.ZERO_PAGE, 2, 3),
    0xCC: ("CPY", _M.ABSOLUTE, 3, 4),
    0xC6: ("DEC", _M.ZERO_PAGE, 2, 5),
    0xD6: ("DEC", _M.ZERO_PAGE_X, 2, 6),
    0xCE: ("DEC", _M.ABSOLUTE, 3, 6),
    0xDE: ("DEC", _M.ABSOLUTE_X, 3, 7),
    0xCA: ("DEX", _M.IMPLICIT, 1, 2),
    0x88: ("DEY", _M.IMPLICIT, 1, 2),
    0x49: ("EOR", _M.IMMEDIATE, 2, 2),
    0x45: ("EOR", _M.ZERO_PAGE, 2, 3),
    0x55: ("EOR", _M.ZERO_PAGE_X, 2, 4),
    0x4D: ("EOR", _M.ABSOLUTE, 3, 4),
    0x5D: ("EOR", _M.ABSOLUTE_X, 3, 4),
    0x59: ("EOR", _M.ABSOLUTE_Y, 3, 4),
    0x41: ("EOR", _M.INDIRECT_X, 2, 6),
    0x51: ("EOR", _M.INDIRECT_Y, 2, 5),
    0xE6: ("INC", _M.ZERO_PAGE, 2, 5),
    0xF6: ("INC", _M.ZERO_PAGE_X, 2, 6),
    0xEE: ("INC", _M.ABSOLUTE, 3, 6),
    0xFE: ("INC", _M.ABSOLUTE_X, 3, 7),
    0xE8: ("INX", _M.IMPLICIT, 1, 2),
    0xC8: ("INY", _M.IMPLICIT, 1, 2),
    0x4C: ("JMP", _M.ABSOLUTE, 3, 3),
    0x6C: ("JMP", _M.INDIRECT, 3, 5),
    0x20: ("JSR", _M.ABSOLUTE, 3, 6),
    0xA9: ("LDA", _M.IMMEDIATE, 2, 2),
    0xA5: ("LDA", _M.ZERO_PAGE, 2, 3),
    0xB5: ("LDA", _M.ZERO_PAGE_X, 2, 4),
    0xAD: ("LDA", _M.ABSOLUTE, 3, 4),
    0xBD: ("LDA", _M.ABSOLUTE_X, 3, 4),
    0xB9: ("LDA", _M.ABSOLUTE_Y, 3, 4),
    0xA1: ("LDA", _M.INDIRECT_X, 2, 6),
    0xB1: ("LDA", _M.INDIRECT_Y, 2, 5),
    0xA2: ("LDX", _M.IMMEDIATE, 2, 2),
    0xA6: ("LDX", _M.ZERO_PAGE, 2, 3),
    0xB6: ("LDX", _M.ZERO_PAGE_Y, 2, 4),
    0xAE: ("LDX", _M.ABSOLUTE, 3, 4),
    0xBE: ("LDX", _M.ABSOLUTE_Y, 3, 4),
    0xA0: ("LDY", _M.IMMEDIATE, 2, 2),
    0xA4: ("LDY", _M.ZERO_PAGE, 2, 3),
    0xB4: ("LDY", _M.ZERO_PAGE_X, 2, 4),
    0xAC: ("LDY", _M.ABSOLUTE, 3, 4),
    0xBC: ("LDY", _M.ABSOLUTE_X, 3, 4),
    0x4A: ("LSR", _M.ACCUMULATOR, 1, 2),
    0x46: ("LSR", _M.ZERO_PAGE, 2, 5),
    0x56: ("LSR", _M.ZERO_PAGE_X, 2, 6),
    0x4E: ("LSR", _M.ABSOLUTE, 3, 6),
    0x5E: ("LSR", _M.ABSOLUTE_X, 3, 7),
    0x04: ("NOP", _M.ZERO_PAGE, 2, 2),
    0x44: ("NOP", _M.ZERO_PAGE, 2, 2),
    0x64: ("NOP", _M.ZERO_PAGE, 2, 2),
    0x0C: ("NOP", _M.ABSOLUTE, 2, 2),
    0x14: ("NOP", _M.ZERO_PAGE_X, 2, 2),
    0x34: ("NOP", _M.ZERO_PAGE_X, 2, 2),
    0x54: ("NOP", _M.ZERO_PAGE_X, 2, 2),
    0x74: ("NOP", _M.ZERO_PAGE_X, 2, 2),
    0xD4: ("NOP", _M.ZERO_PAGE_X, 2, 2),
    0xF4: ("NOP", _M.ZERO_PAGE_X, 2, 2),
    0xEA: ("NOP", _M.IMPLICIT, 1, 2),
    0x1A: ("NOP", _M.IMPLICIT, 2, 2),
    0x3A: ("NOP", _M.IMPLICIT, 2, 2),
    0x5A: ("NOP", _M.IMPLICIT, 2, 2),
    0xDA: ("NOP", _M.IMPLICIT, 2, 2),
    0x80: ("NOP", _M.IMPLICIT, 2, 2),
    0x1C: ("NOP", _M.ABSOLUTE_X, 2, 2),
    0x3C: ("NOP", _M.ABSOLUTE_X, 2, 2),
    0x5C: ("NOP", _M.ABSOLUTE_X, 2, 2),
    0x7C: ("NOP", _M.ABSOLUTE_X, 2, 2),
    0xDC: ("NOP", _M.ABSOLUTE_X, 2, 2),
    0xFC: ("NOP", _M.ABSOLUTE_X, 2, 2),
    0x09: ("ORA", _M.IMMEDIATE, 2, 2),
    0x05: ("ORA", _M.ZERO_PAGE, 2, 3),
    0x15: ("ORA", _M.ZERO_PAGE_X, 2, 4),
    0x0D: ("ORA", _M.ABSOLUTE, 3, 4),
    0x1D: ("ORA", _M.ABSOLUTE_X, 3, 4),
    0x19: ("ORA", _M.ABSOLUTE_Y, 3, 4),
    0x01: ("ORA", _M.INDIRECT_X, 2, 6),
    0x11: ("ORA", _M.INDIRECT_Y, 2, 5),
    0x48: ("PHA", _M.IMPLICIT, 1, 3),
    0x08: ("PHP", _M.IMPLICIT, 1, 3),
    0x68: ("PLA", _M.IMPLICIT, 1, 4),
    0x28: ("PLP", _M.IMPLICIT, 1, 4),
    0x2A: ("ROL", _M.ACCUMULATOR, 1, 2),
    0x26: ("ROL", _M.ZERO_PAGE, 2, 5),
    0x36: ("ROL", _M.ZERO_PAGE_X, 2, 6),
    0x2E: ("ROL", _M.ABSOLUTE, 3, 6),
    0x3E: ("ROL", _M.ABSOLUTE_X, 3, 7),
    0x6A: ("ROR", _M.ACCUMULATOR, 1, 2),
    0x66: ("ROR", _M.ZERO_PAGE, 2, 5),
    0x76: ("ROR", _M.ZERO_PAGE_X, 2, 6),
    0x6E: ("ROR", _M.ABSOLUTE, 3, 6),
    0x7E: ("ROR", _M.ABSOLUTE_X, 3, 7),
    0x40: ("RTI", _M.IMPLICIT, 1, 6),
    0x60: ("RTS", _M.IMPLICIT, 1, 6),
    0xE9: ("SBC", _M.IMMEDIATE, 2, 2),
    0xEB: ("SBC", _M.IMMEDIATE, 2, 2),
    0xE5: ("SBC", _M.ZERO_PAGE, 2, 3),
    0xF5: ("SBC", _M.ZERO_PAGE_X, 2, 4),
    0xED: ("SBC", _M.ABSOLUTE, 3, 4),
    0xFD: ("SBC", _M.ABSOLUTE_X, 3, 4),
    0xF9: ("SBC", _M.ABSOLUTE_Y, 3, 4),
    0xE1: ("SBC", _M.INDIRECT_X, 2, 6),
    0xF1: ("SBC", _M.INDIRECT_Y, 2, 5),
    0x38: ("SEC", _M.IMPLICIT, 1, 2),
    0xF8: ("SED", _M.IMPLICIT, 1, 2),
    0x78: ("SEI", _M.IMPLICIT, 1, 2),
    0x85: ("STA", _M.ZERO_PAGE, 2, 3),
    0x95: ("STA", _M.ZERO_PAGE_X, 2, 4),
    0x8D: ("STA", _M.ABSOLUTE, 3, 4),
    0x9D: ("STA", _M.ABSOLUTE_X, 3, 5),
    0x99: ("STA", _M.ABSOLUTE_Y, 3, 5),
    0x81: ("STA", _M.INDIRECT_X, 2, 6),
    0x91: ("STA", _M.INDIRECT_Y, 2, 6),
    0x86: ("STX", _M.ZERO_PAGE, 2, 3),
    0x96: ("STX", _M.ZERO_PAGE_Y, 2, 4),
    0x8E: ("STX", _M.ABSOLUTE, 3, 4),
    0x84: ("STY", _M.ZERO_PAGE, 2, 3),
    0x94: ("STY", _M.ZERO_PAGE_X, 2, 4),
    0x8C: ("STY", _M.ABSOLUTE, 3, 4),
    0xAA: ("TAX", _M.IMPLICIT, 1, 2),
    0xA8: ("TAY", _M.IMPLICIT, 1, 2),
    0xBA: ("TSX", _M.IMPLICIT, 1, 2),
    0x8A: ("TXA", _M.IMPLICIT, 1, 2),
    0x9A: ("TXS", _M.IMPLICIT, 1, 2),
    0x98: ("TYA", _M.IMPLICIT, 1, 2),
    # Undocumented instructions
    0xA3: ("LAX", _M.INDIRECT_X, 2, 6),
    0xB3: ("LAX", _M.INDIRECT_Y, 2, 5),
    0xBF: ("LAX", _M.ABSOLUTE_Y, 3, 4),
    0xAF: ("LAX", _M.ABSOLUTE, 3, 4),
    0xB7: ("LAX", _M.ZERO_PAGE_Y, 2, 4),
    0xA7: ("LAX", _M.ZERO_PAGE_Y, 2, 3),
    0x83: ("SAX", _M.IMMEDIATE, 2, 2),
    0x87: ("SAX", _M.ZERO_PAGE, 2, 3),
    0x8F: ("SAX", _M.ABSOLUTE, 2, 4),
    0x97: ("SAX", _M.ZERO_PAGE_X_BUT_Y, 2, 4),
    0xCF: ("DCM", _M.ABSOLUTE, 3, 6),
    0xDF: ("DCM", _M.ABSOLUTE_X, 3, 7),
    0xDB: ("DCM", _M.ABSOLUTE_Y, 3, 7),
    0xC7: ("DCM", _M.ZERO_PAGE, 2, 5),
    0xD7: ("DCM", _M.ZERO_PAGE_X, 2, 6),
    0xC3: ("DCM", _M.INDIRECT_X, 2, 8),
    0xD3: ("DCM", _M.INDIRECT_Y, 2, 8),
    0xEF: ("ISB", _M.ABSOLUTE, 3, 6),
    0xFF: ("ISB", _M.ABSOLUTE_X, 3, 7),
    0xFB: ("ISB", _M.ABSOLUTE_Y, 3, 7),
    0xE7: ("ISB", _M.ZERO_PAGE, 2, 5),
    0xF7: ("ISB", _M.ZERO_PAGE_X, 2, 6),
    0xE3: ("ISB", _M.INDIRECT_X, 2, 8),
    0xF3: ("ISB", _M.INDIRECT_Y, 2, 8),
    0x0F: ("SLO", _M.ABSOLUTE, 3, 6),
    0x1F: ("SLO", _M.ABSOLUTE_X, 3, 7),
    0x1B: ("SLO", _M.ABSOLUTE_Y, 3, 7),
    0x07: ("SLO", _M.ZERO_PAGE, 2, 5),
    0x17: ("SLO", _M.ZERO_PAGE_X, 2, 6),
    0x03: ("SLO", _M.INDIRECT_X, 2, 8),
    0x13: ("SLO", _M.INDIRECT_Y, 2, 8),
}

OPCODES: Mapping[int, Opcode] = MappingProxyType(
    {code: Opcode(*entry) for code, entry in _TABLE.items()}
)


def lookup(code: int) -> Optional[Opcode]:
    """Return the opcode for an instruction byte, or None if it is not known."""
    return OPCODES.get(code & 0xFF)