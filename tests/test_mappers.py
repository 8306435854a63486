import pytest

from gintendo.mappers import (
    NROM,
    BaseMapper,
    DummyMapper,
    MapperError,
    load,
    register_mapper,
)
from gintendo.rom import CHR_BLOCK_SIZE, PRG_BLOCK_SIZE, ROM, Mirroring


def _image(prg_blocks=1, flags6=0, flags7=0, flags8=0):
    header = bytes([0x4E, 0x45, 0x53, 0x1A, prg_blocks, 1, flags6, flags7, flags8]) + bytes(7)
    prg = bytes((i * 7) & 0xFF for i in range(PRG_BLOCK_SIZE * prg_blocks))
    chr_data = bytes((i * 5) & 0xFF for i in range(CHR_BLOCK_SIZE))
    return header + prg + chr_data, prg, chr_data


def _nrom(prg_blocks=1, flags6=0):
    data, prg, chr_data = _image(prg_blocks, flags6)
    m = NROM()
    m.init(ROM.from_bytes(data))
    return m, prg, chr_data


def test_nrom_single_block_is_mirrored():
    m, prg, _ = _nrom(1)
    for offset in (0, 1, 0x1234, 0x3FFF):
        assert m.prg_read(0x8000 + offset) == prg[offset]
        assert m.prg_read(0xC000 + offset) == prg[offset]


def test_nrom_two_blocks_not_mirrored():
    m, prg, _ = _nrom(2)
    assert m.prg_read(0xC000 + 3) == prg[PRG_BLOCK_SIZE + 3]
    assert m.prg_read(0xFFFF) == prg[-1]


def test_nrom_too_much_prg():
    m, _, _ = _nrom(3)
    with pytest.raises(MapperError):
        m.prg_read(0x8000)


def test_nrom_chr_read():
    m, _, chr_data = _nrom()
    assert m.chr_read(0x1FFF) == chr_data[0x1FFF]


def test_nrom_rejects_writes():
    m, _, _ = _nrom()
    with pytest.raises(MapperError):
        m.prg_write(0x8000, 1)
    with pytest.raises(MapperError):
        m.chr_write(0, 1)


def test_nrom_identity_and_flags():
    m, _, _ = _nrom(flags6=0x03)
    assert (m.id, m.name, str(m)) == (0, "NROM", "NROM")
    assert m.mirroring_mode() == Mirroring.VERTICAL
    assert m.has_save_ram() is True


def test_base_mapper_without_rom():
    with pytest.raises(MapperError):
        NROM().mirroring_mode()


def test_register_duplicate_id():
    with pytest.raises(MapperError):
        register_mapper(0, NROM)


def test_load_nrom(tmp_path):
    data, prg, _ = _image()
    path = tmp_path / "nrom.nes"
    path.write_bytes(data)
    m = load(path)
    assert isinstance(m, NROM)
    assert m.prg_read(0x8010) == prg[0x10]


def test_load_unknown_mapper(tmp_path):
    data, _, _ = _image(flags6=0xE0, flags7=0xE0)
    path = tmp_path / "unknown.nes"
    path.write_bytes(data)
    with pytest.raises(MapperError, match="unknown mapper id"):
        load(path)


def test_load_missing_file(tmp_path):
    with pytest.raises(MapperError, match="couldn't load ROM"):
        load(tmp_path / "missing.nes")


class _Probe(BaseMapper):
    def __init__(self):
        super().__init__(0x7FF, "probe")

    def prg_read(self, addr):
        return self._loaded().prg_read(addr)

    def prg_write(self, addr, val):
        self._loaded().prg_write(addr, val)

    def chr_read(self, addr):
        return self._loaded().chr_read(addr)

    def chr_write(self, addr, val):
        self._loaded().chr_write(addr, val)


def test_registered_factory_used_by_load(tmp_path):
    register_mapper(0x7FF, _Probe)
    data, _, _ = _image(flags6=0xF0, flags7=0xF8, flags8=0x07)
    path = tmp_path / "nes2.nes"
    path.write_bytes(data)
    m = load(path)
    assert isinstance(m, _Probe)
    assert m.rom.mapper_num() == m.id


def test_dummy_round_trip():
    d = DummyMapper(Mirroring.VERTICAL)
    d.prg_write(0xFFFF, 0x12)
    d.chr_write(0x0010, 0x34)
    assert d.prg_read(0xFFFF) == 0x12
    assert d.chr_read(0x0010) == 0x34
    assert d.chr_read(0xFFFF) == 0x12
    assert d.mirroring_mode() == Mirroring.VERTICAL
    assert d.has_save_ram() is True
    assert d.name == "dummy mapper"