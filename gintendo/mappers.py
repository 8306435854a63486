"""Cartridge mappers, registered by the numeric id used in ROM headers."""

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Callable, NoReturn, Optional, Union

from .rom import ROM, Mirroring, RomError


class MapperError(Exception):
    """Raised for unknown mappers, bad registrations and unsupported accesses."""


class Mapper(ABC):
    """Interface between the console and a cartridge's PRG and CHR memory."""

    id: int
    name: str

    @abstractmethod
    def init(self, rom: ROM) -> None:
        """Attach the loaded ROM."""

    @abstractmethod
    def prg_read(self, addr: int) -> int:
        """Read PRG data at a CPU address."""

    @abstractmethod
    def prg_write(self, addr: int, val: int) -> None:
        """Write PRG data at a CPU address."""

    @abstractmethod
    def chr_read(self, addr: int) -> int:
        """Read CHR data at a PPU address."""

    @abstractmethod
    def chr_write(self, addr: int, val: int) -> None:
        """Write CHR data at a PPU address."""

    @abstractmethod
    def mirroring_mode(self) -> int:
        """The nametable mirroring mode in use."""

    @abstractmethod
    def has_save_ram(self) -> bool:
        """Whether the cartridge exposes save RAM at 0x6000-0x7FFF."""


_REGISTRY: dict[int, Callable[[], Mapper]] = {}


def register_mapper(mapper_id: int, factory: Callable[[], Mapper]) -> None:
    """Register a mapper factory for an id; each id may be registered once."""
    if mapper_id in _REGISTRY:
        existing = _REGISTRY[mapper_id]()
        raise MapperError(
            f"Can't re-register mapper id {mapper_id}. It's used by {existing.name!r}."
        )
    _REGISTRY[mapper_id] = factory


def load(rom_file: Union[str, Path]) -> Mapper:
    """Load a ROM file and return the mapper it asks for, initialised with it."""
    try:
        rom = ROM.from_file(rom_file)
    except RomError as exc:
        raise MapperError(f"couldn't load ROM: {exc}") from exc

    mapper_id = rom.mapper_num()
    factory = _REGISTRY.get(mapper_id)
    if factory is None:
        raise MapperError(f"unknown mapper id {mapper_id}")

    mapper = factory()
    mapper.init(rom)
    return mapper


class BaseMapper(Mapper, ABC):
    """Common state for mappers backed by a ROM image."""

    def __init__(self, mapper_id: int, name: str) -> None:
        self.id = mapper_id
        self.name = name
        self.rom: Optional[ROM] = None

    def __str__(self) -> str:
        return self.name

    def init(self, rom: ROM) -> None:
        self.rom = rom

    def _loaded(self) -> ROM:
        if self.rom is None:
            raise MapperError(f"{self.name}: no ROM loaded")
        return self.rom

    def mirroring_mode(self) -> Mirroring:
        return self._loaded().mirroring_mode()

    def has_save_ram(self) -> bool:
        return self._loaded().has_save_ram()


class NROM(BaseMapper):
    """Mapper 0: up to 32KB of PRG, mirrored when only 16KB is present."""

    def __init__(self) -> None:
        super().__init__(0, "NROM")

    def prg_read(self, addr: int) -> int:
        rom = self._loaded()
        a = (addr - 0x8000) & 0xFFFF
        blocks = rom.num_prg_blocks()
        if blocks == 1:
            return rom.prg_read(a % 0x4000)
        if blocks == 2:
            return rom.prg_read(a)
        raise MapperError("mapper0: Reading above 32k of PRG Data.")

    def _reject(self, what: str, addr: int, val: int) -> NoReturn:
        raise MapperError(
            f"mapper0: {what} (addr 0x{addr & 0xFFFF:04x}, val 0x{val & 0xFF:02x})"
        )

    def prg_write(self, addr: int, val: int) -> None:
        self._reject("Writing PRG Data.", addr, val)

    def chr_read(self, addr: int) -> int:
        return self._loaded().chr_read(addr)

    def chr_write(self, addr: int, val: int) -> None:
        self._reject("These ROMs don't support ChrWrite().", addr, val)


class DummyMapper(Mapper):
    """A flat 64KB memory used in place of a cartridge, mainly for tests."""

    def __init__(self, mirror_mode: int = Mirroring.HORIZONTAL) -> None:
        self.id = 0
        self.name = "dummy mapper"
        self.mirror_mode = mirror_mode
        self.memory = bytearray(0x10000)

    def init(self, rom: ROM) -> None:
        pass

    def prg_read(self, addr: int) -> int:
        return self.memory[addr]

    def prg_write(self, addr: int, val: int) -> None:
        self.memory[addr] = val & 0xFF

    def chr_read(self, addr: int) -> int:
        return self.memory[addr]

    def chr_write(self, addr: int, val: int) -> None:
        self.memory[addr] = val & 0xFF

    def mirroring_mode(self) -> int:
        return self.mirror_mode

    def has_save_ram(self) -> bool:
        return True


register_mapper(0, NROM)