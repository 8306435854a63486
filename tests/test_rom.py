import pytest

from gintendo.rom import (
    BATTERY_BACKED_SRAM,
    CHR_BLOCK_SIZE,
    PC_INST_SIZE,
    PC_PROM_SIZE,
    PRG_BLOCK_SIZE,
    TRAINER_SIZE,
    Header,
    Mirroring,
    ROM,
    RomError,
    parse_header,
)

MAGIC = "NES\x1A"


def _image(prg_blocks=1, chr_blocks=1, flags6=0, flags7=0, extra=b""):
    header = bytes([0x4E, 0x45, 0x53, 0x1A, prg_blocks, chr_blocks, flags6, flags7]) + bytes(8)
    prg = bytes(i & 0xFF for i in range(PRG_BLOCK_SIZE * prg_blocks))
    chr_data = bytes((i * 3) & 0xFF for i in range(CHR_BLOCK_SIZE * chr_blocks))
    return header, prg, chr_data, extra


def test_parse_header():
    data = bytes([0x4E, 0x45, 0x53, 0x1A, 0x02, 0x01, 0x01] + [0] * 9)
    want = Header(constant="NES\x1a", prg_size=2, chr_size=1, flags6=1)
    assert parse_header(data) == want


def test_parse_header_too_short():
    with pytest.raises(RomError):
        parse_header(b"NES\x1a")


def test_header_str():
    h = Header(constant="NES\x1a", prg_size=2, chr_size=1, flags6=1)
    assert str(h) == "NES\x1a, prg(2), chr(1), flags(01, 00, 00, 00, 00)"


@pytest.mark.parametrize(
    "constant,flags7,want_ines,want_nes2",
    [
        (MAGIC, 0x08, True, True),
        (MAGIC, 0x0C, True, False),
        ("BOB\x1A", 0x10, False, False),
        ("BOB\x1A", 0x04, False, False),
        ("BOB\x1A", 0x08, False, False),
    ],
)
def test_nes2_format(constant, flags7, want_ines, want_nes2):
    h = Header(constant=constant, flags7=flags7)
    assert h.is_ines_format() == want_ines
    assert h.is_nes2_format() == want_nes2


@pytest.mark.parametrize(
    "f6,f7,f8,f12,f13,f14,f15,want",
    [
        (0xEF, 0xF0, 0, 0, 0, 0, 0, 0xFE),
        (0xFF, 0xE0, 0, 0, 0, 0, 0, 0xEF),
        (0xC0, 0xB0, 0, 0, 1, 1, 1, 0x0C),
        (0x1F, 0x20, 0, 0, 1, 1, 1, 0x01),
        (0xFF, 0xF8, 0, 0, 0, 1, 1, 0xFF),
        (0xFF, 0xF8, 0x44, 0, 0, 1, 1, 0x4FF),
        (0xAF, 0xD8, 0, 0, 0, 0, 0, 0xDA),
    ],
)
def test_mapper_num(f6, f7, f8, f12, f13, f14, f15, want):
    h = Header(
        constant=MAGIC, flags6=f6, flags7=f7, flags8=f8,
        flags12=f12, flags13=f13, flags14=f14, flags15=f15,
    )
    assert h.mapper_num() == want


@pytest.mark.parametrize("flags6,want", [(0xFF, True), (0x04, True), (0x0C, True), (0x0A, False)])
def test_has_trainer(flags6, want):
    assert Header(constant=MAGIC, flags6=flags6).has_trainer() == want


@pytest.mark.parametrize("flags7,want", [(0xFF, True), (0x02, True), (0x0D, False), (0x01, False)])
def test_has_play_choice(flags7, want):
    assert Header(constant=MAGIC, flags7=flags7).has_play_choice() == want


@pytest.mark.parametrize(
    "flags6,want",
    [
        (0xFF, Mirroring.FOUR_SCREEN),
        (0x00, Mirroring.HORIZONTAL),
        (0x01, Mirroring.VERTICAL),
        (0x08, Mirroring.FOUR_SCREEN),
        (0x09, Mirroring.FOUR_SCREEN),
    ],
)
def test_mirroring_mode(flags6, want):
    assert Header(constant=MAGIC, flags6=flags6).mirroring_mode() == want


@pytest.mark.parametrize(
    "flags6,flags8,want,want_size",
    [
        (0, 0, False, 0),
        (0, 16, False, 0),
        (BATTERY_BACKED_SRAM, 0, True, 1),
        (BATTERY_BACKED_SRAM, 1, True, 1),
        (BATTERY_BACKED_SRAM, 16, True, 16),
    ],
)
def test_battery_backed_sram(flags6, flags8, want, want_size):
    h = Header(constant=MAGIC, flags6=flags6, flags8=flags8)
    assert h.has_prg_ram() == want
    assert h.prg_ram_size() == want_size


def test_from_bytes_loads_prg_and_chr():
    header, prg, chr_data, _ = _image(prg_blocks=2, chr_blocks=1)
    rom = ROM.from_bytes(header + prg + chr_data)
    assert rom.num_prg_blocks() == 2
    assert bytes(rom.prg) == prg
    assert bytes(rom.chr) == chr_data
    assert rom.prg_read(PRG_BLOCK_SIZE + 5) == prg[PRG_BLOCK_SIZE + 5]
    assert rom.chr_read(100) == chr_data[100]
    assert rom.trainer is None


def test_from_bytes_with_trainer():
    header, prg, chr_data, _ = _image(flags6=0x04)
    trainer = bytes([0xAB]) * TRAINER_SIZE
    rom = ROM.from_bytes(header + trainer + prg + chr_data)
    assert rom.trainer == trainer
    assert bytes(rom.prg) == prg
    assert str(rom).startswith(str(rom.header) + "\nTrainer: [171 ")


def test_from_bytes_with_play_choice():
    header, prg, chr_data, _ = _image(flags7=0x02)
    inst = bytes([1]) * PC_INST_SIZE
    prom = bytes([2]) * PC_PROM_SIZE
    rom = ROM.from_bytes(header + prg + chr_data + inst + prom)
    assert rom.pc_inst_rom == inst
    assert rom.pc_prom == prom


def test_play_choice_missing_prom_is_error():
    header, prg, chr_data, _ = _image(flags7=0x02)
    with pytest.raises(RomError):
        ROM.from_bytes(header + prg + chr_data + bytes(PC_INST_SIZE))


def test_truncated_prg_is_error():
    header, prg, chr_data, _ = _image()
    with pytest.raises(RomError):
        ROM.from_bytes(header + prg[:100])


def test_truncated_header_is_error():
    with pytest.raises(RomError):
        ROM.from_bytes(b"NES\x1a\x01")


def test_write_round_trip():
    header, prg, chr_data, _ = _image()
    rom = ROM.from_bytes(header + prg + chr_data)
    rom.prg_write(10, 0x42)
    rom.chr_write(20, 0x24)
    assert rom.prg_read(10) == 0x42
    assert rom.chr_read(20) == 0x24


def test_from_file(tmp_path):
    header, prg, chr_data, _ = _image(flags6=0x13)
    path = tmp_path / "game.nes"
    path.write_bytes(header + prg + chr_data)
    rom = ROM.from_file(path)
    assert rom.path == str(path)
    assert rom.mapper_num() == 1
    assert rom.mirroring_mode() == Mirroring.VERTICAL
    assert rom.has_save_ram() is True


def test_from_missing_file(tmp_path):
    with pytest.raises(RomError):
        ROM.from_file(tmp_path / "missing.nes")