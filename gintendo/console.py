"""The NES system bus: RAM, PPU registers, controllers and the cartridge."""

from __future__ import annotations

import sys
import threading
from typing import Callable, Optional, Sequence, TextIO

from .cpu import CPU
from .mappers import Mapper
from .ppu import OAMDATA, PPU

NES_BASE_MEMORY = 0x800  # 2KB of built-in RAM

MAX_ADDRESS = 0xFFFF
MEM_SIZE = MAX_ADDRESS + 1
MAX_NES_BASE_RAM = 0x1FFF
MAX_PPU_REG_MIRRORED = 0x3FFF
MAX_IO_REG = 0x4020
MAX_SRAM = 0x6000

OAMDMA = 0x4014  # Triggers DMA from CPU memory to OAM
CONT1 = 0x4016  # Player 1 controller
CONT2 = 0x4017  # Player 2 controller

KeyState = Callable[[], Sequence[bool]]

_MENU = (
    "(B)reak - add breakpoint",
    "(C)lear - cleear breakpoints",
    "(R)un - run to completion",
    "(S)step - step the cpu one instruction",
    "R(e)set - hit the reset button",
    "(M)memory - select a memory range to display",
    "S(t)ack - show last 3 items on the stack",
    "(I)instruction - show instruction memory locations",
    "(P)C - set program counter",
    "PP(U) - show PPU status",
    "(O)AM - Dump OAM data",
    "(Q)uit - shutdown the gintentdo",
)


def _no_keys() -> Sequence[bool]:
    return (False,) * 8


class Controller:
    """A standard joypad read serially through its shift register.

    key_state returns eight booleans in button order:
    A, B, Select, Start, Up, Down, Left, Right.
    """

    def __init__(self, key_state: Optional[KeyState] = None) -> None:
        self.key_state = key_state or _no_keys
        self.strobe = False
        self.buttons = 0
        self.idx = 0

    def write(self, val: int) -> None:
        if val & 0x01:
            self.strobe = True
            self.idx = 0
        else:
            self.strobe = False
            self.buttons = 0
            self.poll()

    def read(self) -> int:
        """Next button bit; 1 once all eight have been read."""
        if self.idx > 7:
            return 1
        ret = (self.buttons & (1 << self.idx)) >> self.idx
        self.idx += 1
        return ret

    def poll(self) -> None:
        for i, pressed in enumerate(list(self.key_state())[:8]):
            if pressed:
                self.buttons |= 1 << i


class Console:
    """Wires CPU, PPU, RAM, controllers and a cartridge mapper together."""

    def __init__(self, mapper: Mapper, key_state: Optional[KeyState] = None) -> None:
        self.mapper = mapper
        self.ram = bytearray(NES_BASE_MEMORY)
        self.ticks = 0
        self.controllers = (Controller(key_state), Controller(key_state))
        self.cpu = CPU(self)
        self.ppu = PPU(self)

    def mirror_mode(self) -> int:
        return self.mapper.mirroring_mode()

    def trigger_nmi(self) -> None:
        """Used by the PPU to signal the CPU that vblank has started."""
        self.cpu.trigger_nmi()

    def chr_read(self, addr: int) -> int:
        """Used by the PPU to reach CHR data on the cartridge."""
        return self.mapper.chr_read(addr)

    def read(self, addr: int) -> int:
        addr &= MAX_ADDRESS
        if addr <= MAX_NES_BASE_RAM:
            return self.ram[addr & 0x07FF]
        if addr <= MAX_PPU_REG_MIRRORED:
            return self.ppu.read_reg(addr & 0x2007)
        if addr < MAX_IO_REG:
            if addr == CONT1:
                return self.controllers[0].read()
            return 0
        if addr <= MAX_SRAM:
            return 0
        return self.mapper.prg_read(addr)

    def write(self, addr: int, val: int) -> None:
        addr &= MAX_ADDRESS
        val &= 0xFF
        if addr <= MAX_NES_BASE_RAM:
            self.ram[addr & 0x07FF] = val
        elif addr <= MAX_PPU_REG_MIRRORED:
            self.ppu.write_reg(addr & 0x2007, val)
        elif addr < MAX_IO_REG:
            if addr == OAMDMA:
                base = val << 8
                for a in range(base, base + 256):
                    self.ppu.write_reg(OAMDATA, self.read(a))
                self.cpu.add_dma_cycles()
            elif addr == CONT1:
                self.controllers[0].write(val)
        elif addr <= MAX_SRAM:
            pass
        else:
            self.mapper.prg_write(addr, val)

    def clear_mem(self) -> None:
        self.ram = bytearray(len(self.ram))

    def update(self) -> None:
        """Called once per displayed frame to refresh controller state."""
        for controller in self.controllers:
            controller.poll()

    def clock(self) -> None:
        """One master clock: a PPU dot every tick, a CPU cycle every third."""
        self.ppu.tick()
        if self.ticks % 3 == 0:
            self.cpu.tick()
        self.ticks += 1

    def step(self) -> int:
        """Execute one CPU instruction and the matching PPU dots; return the dots."""
        dots = self.cpu.step() * 3
        for _ in range(dots):
            self.ppu.tick()
        return dots

    def run(self, stop_event: threading.Event) -> None:
        """Clock the machine until stop_event is set."""
        while not stop_event.is_set():
            self.clock()

    def bios(
        self,
        stop_event: threading.Event,
        input_fn: Callable[[str], str] = input,
        output: Optional[TextIO] = None,
    ) -> None:
        """Interactive debugging monitor; returns on quit or end of input."""
        out = output if output is not None else sys.stdout
        breaks: set[int] = set()

        def ask(prompt: str) -> str:
            out.write(prompt)
            out.flush()
            return input_fn("")

        def read_address(prompt: str) -> int:
            text = ask(prompt).strip()[:4]
            try:
                return int(text, 16) & MAX_ADDRESS
            except ValueError:
                return 0

        while True:
            out.write(f"{self.cpu}\n\n")
            for line in _MENU:
                out.write(line + "\n")
            try:
                choice = ask("Choice: ").strip()[:1].lower()
                self._bios_choice(choice, stop_event, breaks, read_address, out)
            except EOFError:
                return
            except _Quit:
                return

    def _bios_choice(self, choice, stop_event, breaks, read_address, out) -> None:
        if choice == "b":
            breaks.add(read_address("Breakpoint (eg: ff15): "))
        elif choice == "c":
            breaks.clear()
        elif choice == "p":
            self.cpu.pc = read_address("Set PC to what address (eg: 0400)?: ")
        elif choice == "q":
            raise _Quit
        elif choice == "r":
            try:
                self.run(stop_event)
            except KeyboardInterrupt:
                pass
        elif choice == "s":
            self.step()
        elif choice == "t":
            out.write("\n")
            for i in range(3):
                m = (self.cpu.stack_addr() + i) & MAX_ADDRESS
                out.write(f"0x{m:04x}: 0x{self.read(m):02x} ")
                if m == 0x01FF:
                    break
            out.write("\n\n")
        elif choice == "i":
            out.write(f"\n{self.cpu.inst()}\n\n")
        elif choice == "u":
            out.write(f"{self.ppu}\n")
        elif choice == "e":
            self.cpu.reset()
        elif choice == "o":
            for i, sprite in enumerate(self.ppu.oam_entries()):
                out.write(f"{i}: {sprite}\n")
        elif choice == "m":
            out.write("\n")
            low = read_address("Low address (eg f00d): ")
            high = read_address("High address (eg beef): ")
            out.write("\n")
            count = 1
            addr = low
            while True:
                out.write(f"0x{addr:04x}: 0x{self.read(addr):02x} ")
                if count % 5 == 0:
                    out.write("\n")
                if addr == high or addr == MAX_ADDRESS:
                    break
                count += 1
                addr += 1
            out.write("\n\n")


class _Quit(Exception):
    pass