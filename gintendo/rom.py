"""iNES / NES 2.0 ROM image parsing."""

from __future__ import annotations

import io
from dataclasses import dataclass
from enum import IntEnum
from pathlib import Path
from typing import Optional, Union

HEADER_SIZE = 16
TRAINER_SIZE = 512
PRG_BLOCK_SIZE = 16384
CHR_BLOCK_SIZE = 8192
PC_INST_SIZE = 8192
PC_PROM_SIZE = 32

INES_MAGIC = "NES\x1a"

# flags6 bits; the top nibble is the low nibble of the mapper number
MIRRORING = 1 << 0
BATTERY_BACKED_SRAM = 1 << 1
TRAINER = 1 << 2
IGNORE_MIRRORING = 1 << 3

# flags7 bits; the top nibble is the high nibble of the mapper number
VS_UNISYSTEM = 0x01
PLAYCHOICE_10 = 0x02

# flags9 bits
TV_SYSTEM = 0x01

NTSC = 0
PAL = 1


class RomError(Exception):
    """Raised when a ROM image cannot be read or parsed."""


class Mirroring(IntEnum):
    """Nametable mirroring arrangement requested by the cartridge."""

    HORIZONTAL = 0
    VERTICAL = 1
    FOUR_SCREEN = 2


@dataclass
class Header:
    """The 16-byte header at the start of an iNES or NES 2.0 image."""

    constant: str = ""
    prg_size: int = 0
    chr_size: int = 0
    flags6: int = 0
    flags7: int = 0
    flags8: int = 0
    flags9: int = 0
    flags10: int = 0
    flags11: int = 0
    flags12: int = 0
    flags13: int = 0
    flags14: int = 0
    flags15: int = 0

    def __str__(self) -> str:
        return (
            f"{self.constant}, prg({self.prg_size}), chr({self.chr_size}), "
            f"flags({self.flags6:02x}, {self.flags7:02x}, {self.flags8:02x}, "
            f"{self.flags9:02x}, {self.flags10:02x})"
        )

    def mirroring_mode(self) -> Mirroring:
        if self.flags6 & IGNORE_MIRRORING:
            return Mirroring.FOUR_SCREEN
        return Mirroring(self.flags6 & MIRRORING)

    def has_trainer(self) -> bool:
        return self.flags6 & TRAINER == TRAINER

    def has_play_choice(self) -> bool:
        return self.flags7 & PLAYCHOICE_10 == PLAYCHOICE_10

    def has_prg_ram(self) -> bool:
        return bool(self.flags6 & BATTERY_BACKED_SRAM)

    def prg_ram_size(self) -> int:
        """PRG RAM size in 8KB units; a zero flags8 means one unit."""
        if not self.has_prg_ram():
            return 0
        return self.flags8 or 1

    def tv_system(self) -> int:
        return self.flags9 & TV_SYSTEM

    def is_ines_format(self) -> bool:
        return self.constant == INES_MAGIC

    def is_nes2_format(self) -> bool:
        return self.is_ines_format() and (self.flags7 & 0x0C) == 0x08

    def ignore_high_nibble(self) -> bool:
        """True when junk in bytes 12-15 means flags7's mapper nibble is unreliable."""
        tail = (self.flags12, self.flags13, self.flags14, self.flags15)
        return any(tail) and not self.is_nes2_format()

    def mapper_num(self) -> int:
        mn = (self.flags6 & 0xF0) >> 4
        if not self.ignore_high_nibble():
            mn |= self.flags7 & 0xF0
        if self.is_nes2_format():
            return ((self.flags8 & 0x0F) << 8) | mn
        return mn


def parse_header(data: bytes) -> Header:
    """Build a Header from the first 16 bytes of an image."""
    if len(data) < HEADER_SIZE:
        raise RomError(f"header needs {HEADER_SIZE} bytes, got {len(data)}")
    return Header(
        constant=bytes(data[0:4]).decode("latin-1"),
        prg_size=data[4],
        chr_size=data[5],
        flags6=data[6],
        flags7=data[7],
        flags8=data[8],
        flags9=data[9],
        flags10=data[10],
        flags11=data[11],
        flags12=data[12],
        flags13=data[13],
        flags14=data[14],
    )


def _format_bytes(data: Union[bytes, bytearray]) -> str:
    return "[" + " ".join(str(b) for b in data) + "]"


class ROM:
    """A loaded cartridge image: header, PRG and CHR data and optional extras."""

    def __init__(
        self,
        header: Header,
        prg: bytearray,
        chr_data: bytearray,
        path: str = "",
        trainer: Optional[bytes] = None,
        pc_inst_rom: Optional[bytes] = None,
        pc_prom: Optional[bytes] = None,
    ) -> None:
        self.path = path
        self.header = header
        self.prg = prg
        self.chr = chr_data
        self.trainer = trainer
        self.pc_inst_rom = pc_inst_rom
        self.pc_prom = pc_prom

    @classmethod
    def from_bytes(cls, data: bytes, path: str = "") -> "ROM":
        stream = io.BytesIO(data)
        hbytes = stream.read(HEADER_SIZE)
        if len(hbytes) != HEADER_SIZE:
            raise RomError("couldn't read header")
        header = parse_header(hbytes)

        def take(size: int, what: str) -> bytes:
            chunk = stream.read(size)
            if len(chunk) != size:
                raise RomError(f"error reading {what} (read {len(chunk)}, wanted {size})")
            return chunk

        trainer = take(TRAINER_SIZE, "trainer data") if header.has_trainer() else None
        prg = bytearray(take(PRG_BLOCK_SIZE * header.prg_size, "PRG ROM"))
        chr_data = bytearray(take(CHR_BLOCK_SIZE * header.chr_size, "CHR ROM"))

        pc_inst_rom = pc_prom = None
        if header.has_play_choice():
            pc_inst_rom = take(PC_INST_SIZE, "PlayChoice INST ROM")
            pc_prom = take(PC_PROM_SIZE, "PlayChoice PROM")

        return cls(header, prg, chr_data, path, trainer, pc_inst_rom, pc_prom)

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "ROM":
        try:
            data = Path(path).read_bytes()
        except OSError as exc:
            raise RomError(f"couldn't open ROM file {str(path)!r}: {exc}") from exc
        return cls.from_bytes(data, str(path))

    def __str__(self) -> str:
        lines = [f"{self.header}\n"]
        if self.header.has_trainer():
            lines.append(f"Trainer: {_format_bytes(self.trainer or b'')}\n")
        lines.append(f"PRG: {_format_bytes(self.prg)}\n")
        lines.append(f"CHR: {_format_bytes(self.chr)}\n")
        return "".join(lines)

    def num_prg_blocks(self) -> int:
        return self.header.prg_size

    def prg_read(self, addr: int) -> int:
        return self.prg[addr]

    def prg_write(self, addr: int, val: int) -> None:
        self.prg[addr] = val & 0xFF

    def chr_read(self, addr: int) -> int:
        return self.chr[addr]

    def chr_write(self, addr: int, val: int) -> None:
        self.chr[addr] = val & 0xFF

    def mapper_num(self) -> int:
        return self.header.mapper_num()

    def mirroring_mode(self) -> Mirroring:
        return self.header.mirroring_mode()

    def has_save_ram(self) -> bool:
        return self.header.has_prg_ram()