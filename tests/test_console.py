import io
import threading

import pytest

from gintendo.console import Console, Controller
from gintendo.cpu import INT_NMI
from gintendo.mappers import DummyMapper
from gintendo.rom import Mirroring


@pytest.fixture
def console():
    return Console(DummyMapper())


def test_base_nes_mapping(console):
    for i in range(10):
        console.write(i, i + 1)
    for base in (0, 0x800, 0x1000, 0x1800):
        for i in range(10):
            assert console.read(base + i) == i + 1


def test_ppu_registers_are_mirrored(console):
    console.write(0x2003 + 8, 0x05)
    assert console.ppu.oamaddr == 0x05
    console.write(0x3FFB, 0x07)
    assert console.ppu.oamaddr == 0x07


def test_cartridge_space_goes_to_mapper():
    mapper = DummyMapper()
    c = Console(mapper)
    c.write(0x8000, 0x42)
    assert mapper.memory[0x8000] == 0x42
    assert c.read(0x8000) == 0x42


def test_sram_region_reads_zero(console):
    console.write(0x5000, 0x99)
    assert console.read(0x5000) == 0


def test_oam_dma_copies_page(console):
    for i in range(256):
        console.write(0x0200 + i, i)
    before = console.cpu.cycles
    console.write(0x4003 + 0x11, 0x02)
    assert bytes(console.ppu.oam_data) == bytes(range(256))
    assert console.cpu.cycles == before + 513


def test_clear_mem(console):
    console.write(0x10, 0xAA)
    console.clear_mem()
    assert console.read(0x10) == 0


def test_mirror_mode_and_chr_read():
    mapper = DummyMapper(Mirroring.VERTICAL)
    mapper.memory[0x0123] = 0x77
    c = Console(mapper)
    assert c.mirror_mode() == Mirroring.VERTICAL
    assert c.chr_read(0x0123) == 0x77


def test_trigger_nmi(console):
    console.trigger_nmi()
    assert console.cpu.pending_interrupt == INT_NMI


def test_controller_reads_buttons_in_order():
    state = [True, False, True, False, False, False, False, True]
    c = Console(DummyMapper(), key_state=lambda: state)
    c.write(0x4016, 1)
    c.write(0x4016, 0)
    got = [c.read(0x4016) for _ in range(8)]
    assert got == [1, 0, 1, 0, 0, 0, 0, 1]
    assert c.read(0x4016) == 1


def test_controller_strobe_resets_index():
    ctl = Controller(lambda: [True] * 8)
    ctl.write(0)
    assert ctl.read() == 1
    ctl.write(1)
    assert ctl.idx == 0
    assert ctl.strobe is True


def test_controller_without_keys_reads_zero():
    ctl = Controller()
    ctl.write(0)
    assert [ctl.read() for _ in range(8)] == [0] * 8


def test_update_polls_controllers():
    c = Console(DummyMapper(), key_state=lambda: [False, True] + [False] * 6)
    c.update()
    assert c.controllers[0].buttons == 0b10


def test_clock_counts_ticks(console):
    for _ in range(3):
        console.clock()
    assert console.ticks == 3
    assert console.ppu.scandot == 3


def test_step_runs_three_dots_per_cycle(console):
    console.write(0x0000, 0xEA)  # NOP at the reset vector target
    dots = console.step()
    assert dots == 6
    assert console.ppu.scandot == 6
    assert console.cpu.pc == 1


def test_run_stops_when_event_set(console):
    stop = threading.Event()
    stop.set()
    console.run(stop)
    assert console.ticks == 0


def _feed(lines):
    it = iter(lines)

    def input_fn(_prompt):
        try:
            return next(it)
        except StopIteration:
            raise EOFError from None

    return input_fn


def test_bios_quit_prints_menu(console):
    out = io.StringIO()
    console.bios(threading.Event(), _feed(["q"]), out)
    text = out.getvalue()
    assert "Choice: " in text
    assert "(Q)uit - shutdown the gintentdo" in text


def test_bios_set_pc(console):
    console.bios(threading.Event(), _feed(["p", "0400", "q"]), io.StringIO())
    assert console.cpu.pc == 0x0400


def test_bios_memory_dump(console):
    console.write(0x0000, 0xAB)
    console.write(0x0001, 0xCD)
    out = io.StringIO()
    console.bios(threading.Event(), _feed(["m", "0000", "0001", "q"]), out)
    assert "0x0000: 0xab 0x0001: 0xcd " in out.getvalue()


def test_bios_ends_on_eof(console):
    out = io.StringIO()
    console.bios(threading.Event(), _feed(["c"]), out)
    assert out.getvalue().count("Choice: ") == 2


def test_bios_run_respects_stop(console):
    stop = threading.Event()
    stop.set()
    console.bios(stop, _feed(["r", "q"]), io.StringIO())
    assert console.ticks == 0