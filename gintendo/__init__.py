"""An NES emulator: 6502 CPU, PPU, iNES ROM loading, the NROM mapper and a console bus."""

__version__ = "0.1.0"