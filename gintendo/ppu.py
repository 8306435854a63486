"""The NES picture processing unit."""

from __future__ import annotations

from typing import Protocol

from .loopy import Loopy
from .oam import Priority, Sprite
from .rom import Mirroring

NES_RES_WIDTH = 256
NES_RES_HEIGHT = 240

# Registers as the CPU sees them
PPUCTRL = 0x2000
PPUMASK = 0x2001
PPUSTATUS = 0x2002
OAMADDR = 0x2003
OAMDATA = 0x2004
PPUSCROLL = 0x2005
PPUADDR = 0x2006
PPUDATA = 0x2007

# PPUCTRL bits
CTRL_NAMETABLE1 = 1
CTRL_NAMETABLE2 = 1 << 1
CTRL_VRAM_ADD_INCREMENT = 1 << 2
CTRL_SPRITE_PATTERN_ADDR = 1 << 3
CTRL_BACKGROUND_PATTERN_ADDR = 1 << 4
CTRL_SPRITE_SIZE = 1 << 5
CTRL_MASTER_SLAVE_SELECT = 1 << 6
CTRL_GENERATE_NMI = 1 << 7

# PPUSTATUS bits
STATUS_SPRITE_OVERFLOW = 1 << 5
STATUS_SPRITE_0_HIT = 1 << 6
STATUS_VERTICAL_BLANK = 1 << 7

# PPUMASK bits
MASK_GREYSCALE = 1 << 0
MASK_SHOW_LEFT_TILES = 1 << 1
MASK_SHOW_LEFT_SPRITES = 1 << 2
MASK_RENDER_BG = 1 << 3
MASK_RENDER_FG = 1 << 4
MASK_EMPHASIZE_RED = 1 << 5
MASK_EMPHASIZE_GREEN = 1 << 6
MASK_EMPHASIZE_BLUE = 1 << 7

# PPU address space
BASE_NAMETABLE = 0x2000
ATTRIBUTE_OFFSET = 0x03C0
NAMETABLE_END = 0x2FFF
NAMETABLE_MIRROR_END = 0x3EFF
PALETTE_RAM = 0x3F00
PALETTE_MIRROR_END = 0x3FFF

_COLORS = (
    0x808080, 0x003DA6, 0x0012B0, 0x440096, 0xA1005E,
    0xC70028, 0xBA0600, 0x8C1700, 0x5C2F00, 0x104500,
    0x054A00, 0x00472E, 0x004166, 0x000000, 0x050505,
    0x050505, 0xC7C7C7, 0x0077FF, 0x2155FF, 0x8237FA,
    0xEB2FB5, 0xFF2950, 0xFF2200, 0xD63200, 0xC46200,
    0x358000, 0x058F00, 0x008A55, 0x0099CC, 0x212121,
    0x090909, 0x090909, 0xFFFFFF, 0x0FD7FF, 0x69A2FF,
    0xD480FF, 0xFF45F3, 0xFF618B, 0xFF8833, 0xFF9C12,
    0xFABC20, 0x9FE30E, 0x2BF035, 0x0CF0A4, 0x05FBFF,
    0x5E5E5E, 0x0D0D0D, 0x0D0D0D, 0xFFFFFF, 0xA6FCFF,
    0xB3ECFF, 0xDAABEB, 0xFFA8F9, 0xFFABB3, 0xFFD2B0,
    0xFFEFA6, 0xFFF79C, 0xD7E895, 0xA6EDAF, 0xA2F2DA,
    0x99FFFC, 0xDDDDDD, 0x111111, 0x111111,
)

SYSTEM_PALETTE: tuple[tuple[int, int, int], ...] = tuple(
    ((c >> 16) & 0xFF, (c >> 8) & 0xFF, c & 0xFF) for c in _COLORS
)


class Bus(Protocol):
    def chr_read(self, addr: int) -> int: ...

    def trigger_nmi(self) -> None: ...

    def mirror_mode(self) -> int: ...


def _reverse8(b: int) -> int:
    return int(f"{b:08b}"[::-1], 2)


def _hidden_sprite() -> Sprite:
    return Sprite(y=0xFF)


class PPU:
    """Cycle-driven background and sprite renderer writing into an RGBA frame."""

    def __init__(self, bus: Bus) -> None:
        self.bus = bus
        self.pixels = bytearray(NES_RES_WIDTH * NES_RES_HEIGHT * 4)
        self.palette_table = bytearray(32)
        self.oam_data = bytearray(256)
        self.vram = bytearray(2048)
        self.mirror_mode = bus.mirror_mode()

        self.v = Loopy(0)
        self.t = Loopy(0)
        self.x = 0
        self.w_latch = 0

        self.ctrl = 0
        self.status = 0
        self.mask = 0
        self.oamaddr = 0

        self.scanline = 0
        self.scandot = 0
        self.frame = 0
        self.odd_frame = False

        self.buffer_data = 0

        self.bg_sp_lo = 0
        self.bg_sp_hi = 0
        self.bg_sa_lo = 0
        self.bg_sa_hi = 0
        self.bg_next_tile = 0
        self.bg_next_attrib = 0
        self.bg_next_tile_lsb = 0
        self.bg_next_tile_msb = 0

        self.secondary_oam: list[Sprite] = []
        self.active_sprites = 0
        self.can_zero_hit = False
        self.fg_sp_lo = [0] * 8
        self.fg_sp_hi = [0] * 8

        self.reset()

    def reset(self) -> None:
        self.scandot = 0
        self.scanline = 0
        self.frame = 0
        self.w_latch = 0
        self.odd_frame = False
        self.ctrl = 0
        self.mask = 0
        self.status = 0
        self.secondary_oam = [_hidden_sprite() for _ in range(8)]
        self.active_sprites = 0
        self.can_zero_hit = False

    def __str__(self) -> str:
        return (
            f"x={self.scandot}, y={self.scanline}, v={self.v} fineX={self.x:03b} "
            f"(t={self.t}), ctrl={self.ctrl:08b},mask={self.mask:08b},"
            f"status={self.status:08b},w={self.w_latch} "
        )

    def oam_entries(self) -> list[Sprite]:
        """All 64 sprites currently in OAM."""
        return [Sprite.from_bytes(self.oam_data[i:i + 4]) for i in range(0, 256, 4)]

    def resolution(self) -> tuple[int, int]:
        return NES_RES_WIDTH, NES_RES_HEIGHT

    # Register access

    def write_reg(self, reg: int, val: int) -> None:
        val &= 0xFF
        if reg == PPUCTRL:
            self.ctrl = val
            self.t.set_nametable_x(val)
            self.t.set_nametable_y(val >> 1)
        elif reg == PPUMASK:
            self.mask = val
        elif reg == OAMADDR:
            self.oamaddr = val
        elif reg == OAMDATA:
            self.oam_data[self.oamaddr] = val
            self.oamaddr = (self.oamaddr + 1) & 0xFF
        elif reg == PPUSCROLL:
            if self.w_latch == 0:
                self.t.set_coarse_x(val >> 3)
                self.x = val & 0x07
                self.w_latch = 1
            else:
                self.t.set_coarse_y((val & 0xF8) >> 3)
                self.t.set_fine_y(val & 0x07)
                self.w_latch = 0
        elif reg == PPUADDR:
            if self.w_latch == 0:
                self.t.set(((val & 0x3F) << 8) | (int(self.t) & 0x00FF))
                self.w_latch = 1
            else:
                self.t.set((int(self.t) & 0xFF00) | val)
                self.v.set(self.t)
                self.w_latch = 0
        elif reg == PPUDATA:
            self._write(int(self.v), val)
            self.vram_increment()

    def read_reg(self, reg: int) -> int:
        """Read a register; write-only registers read as 0."""
        ret = 0
        if reg == PPUSTATUS:
            ret = (self.status & 0xE0) | (self.buffer_data & 0x1F)
            self.clear_vblank()
            self.w_latch = 0
        elif reg == OAMDATA:
            if self._visible_line() and self.scandot <= 64:
                ret = 0xFF
            else:
                ret = self.oam_data[self.oamaddr]
        elif reg == PPUDATA:
            ret = self.buffer_data
            self.buffer_data = self._read(int(self.v))
            # Palette reads are not delayed through the buffer.
            if int(self.v) > PALETTE_RAM:
                ret = self.buffer_data
            self.vram_increment()
        return ret

    def vram_increment(self) -> None:
        if self.ctrl & CTRL_VRAM_ADD_INCREMENT:
            self.v.increment_coarse_y()
        else:
            self.v.increment_coarse_x()

    # Memory

    def tile_map_addr(self, addr: int) -> int:
        """Map a nametable address to an offset in the 2KB of VRAM."""
        a = addr & 0x0FFF
        if self.mirror_mode == Mirroring.FOUR_SCREEN:
            raise ValueError("four-screen mirroring needs VRAM on the cartridge")
        if self.mirror_mode == Mirroring.VERTICAL:
            return (a & 0x03FF) + (0x400 if a & 0x0400 else 0)
        if self.mirror_mode == Mirroring.HORIZONTAL:
            return (a & 0x03FF) + (0x400 if a & 0x0800 else 0)
        return a

    def _read(self, addr: int) -> int:
        a = addr & 0x3FFF
        if a < BASE_NAMETABLE:
            return self.bus.chr_read(a)
        if a <= NAMETABLE_MIRROR_END:
            return self.vram[self.tile_map_addr((a & 0x0FFF) + BASE_NAMETABLE)]
        a &= 0x001F
        if a in (0x10, 0x14, 0x18, 0x1C):
            a -= 0x10
        val = self.palette_table[a]
        if self.mask & MASK_GREYSCALE:
            return val & 0x30
        return val & 0x3F

    def _write(self, addr: int, val: int) -> None:
        a = addr & 0x3FFF
        if a < BASE_NAMETABLE:
            return
        if a <= NAMETABLE_MIRROR_END:
            self.vram[self.tile_map_addr((a & 0x0FFF) + BASE_NAMETABLE)] = val & 0xFF
        else:
            self.palette_table[a & 0x001F] = val & 0xFF

    # Status and control helpers

    def clear_vblank(self) -> None:
        self.status &= ~STATUS_VERTICAL_BLANK & 0xFF

    def set_vblank(self) -> None:
        self.status |= STATUS_VERTICAL_BLANK

    def _nmi_enabled(self) -> bool:
        return bool(self.ctrl & CTRL_GENERATE_NMI)

    def _render_background(self) -> bool:
        return bool(self.mask & MASK_RENDER_BG)

    def _render_foreground(self) -> bool:
        return bool(self.mask & MASK_RENDER_FG)

    def _rendering_enabled(self) -> bool:
        return self._render_background() or self._render_foreground()

    def background_table_id(self) -> int:
        return (self.ctrl & CTRL_BACKGROUND_PATTERN_ADDR) >> 4

    def sprite_table_id(self) -> int:
        return (self.ctrl & CTRL_SPRITE_PATTERN_ADDR) >> 3

    def sprite_size(self) -> int:
        return 16 if self.ctrl & CTRL_SPRITE_SIZE else 8

    def _visible_line(self) -> bool:
        return 0 <= self.scanline < 240

    def _visible_dot(self) -> bool:
        return 1 <= self.scandot <= 256

    def _prerender_line(self) -> bool:
        return self.scanline == 261

    def _render_line(self) -> bool:
        return self._visible_line() or self._prerender_line()

    def _vblank_line(self) -> bool:
        return not self._render_line()

    def _prefetch_cycle(self) -> bool:
        return 321 <= self.scandot <= 336

    def _fetch_cycle(self) -> bool:
        return self._visible_dot() or self._prefetch_cycle()

    def _increment_scan(self) -> None:
        if (
            self._rendering_enabled()
            and self.odd_frame
            and self._prerender_line()
            and self.scandot == 339
        ):
            self.scandot = 0
            self.scanline = 0
            self.frame += 1
            self.odd_frame = not self.odd_frame
            return

        self.scandot += 1
        if self.scandot >= 341:
            self.scandot = 0
            self.scanline += 1
            if self.scanline > 261:
                self.scanline = 0
                self.frame += 1
                self.odd_frame = not self.odd_frame

    # Background

    def _update_bg(self) -> None:
        self._update_bg_shifters()
        phase = self.scandot % 8
        v = self.v
        if phase == 1:
            self.bg_next_tile = self._read(BASE_NAMETABLE | (int(v) & 0x0FFF))
        elif phase == 3:
            attrib = self._read(
                BASE_NAMETABLE
                | ATTRIBUTE_OFFSET
                | (v.nametable_y() << 11)
                | (v.nametable_x() << 10)
                | ((v.coarse_y() >> 2) << 3)
                | (v.coarse_x() >> 2)
            )
            if v.coarse_y() & 0x02:
                attrib >>= 4
            if v.coarse_x() & 0x02:
                attrib >>= 2
            self.bg_next_attrib = attrib & 0x03
        elif phase == 5:
            addr = (self.background_table_id() << 12) + (self.bg_next_tile << 4) + v.fine_y()
            self.bg_next_tile_lsb = self._read(addr)
        elif phase == 7:
            addr = (
                (self.background_table_id() << 12)
                + (self.bg_next_tile << 4)
                + v.fine_y()
                + 8
            )
            self.bg_next_tile_msb = self._read(addr)
        elif phase == 0:
            self._load_bg_shifters()

    def _load_bg_shifters(self) -> None:
        self.bg_sp_lo = (self.bg_sp_lo & 0xFF00) | self.bg_next_tile_lsb
        self.bg_sp_hi = (self.bg_sp_hi & 0xFF00) | self.bg_next_tile_msb
        self.bg_sa_lo = (self.bg_sa_lo & 0xFF00) | (0xFF if self.bg_next_attrib & 0x01 else 0)
        self.bg_sa_hi = (self.bg_sa_hi & 0xFF00) | (0xFF if self.bg_next_attrib & 0x02 else 0)

    def _update_bg_shifters(self) -> None:
        if self._render_background():
            self.bg_sp_lo = (self.bg_sp_lo << 1) & 0xFFFF
            self.bg_sp_hi = (self.bg_sp_hi << 1) & 0xFFFF
            self.bg_sa_lo = (self.bg_sa_lo << 1) & 0xFFFF
            self.bg_sa_hi = (self.bg_sa_hi << 1) & 0xFFFF

    # Sprites

    def _update_fg_shifters(self) -> None:
        if not self._render_foreground():
            return
        for i in range(self.active_sprites):
            sprite = self.secondary_oam[i]
            if sprite.x > 0:
                sprite.x -= 1
            else:
                self.fg_sp_lo[i] = (self.fg_sp_lo[i] << 1) & 0xFF
                self.fg_sp_hi[i] = (self.fg_sp_hi[i] << 1) & 0xFF

    def _evaluate_sprites(self) -> None:
        self.active_sprites = 0
        self.can_zero_hit = False
        for sprite in self.secondary_oam:
            sprite.y = 0xFF

        size = self.sprite_size()
        for oim in range(0, 64, 4):
            sprite = Sprite.from_bytes(self.oam_data[oim:oim + 4])
            d = (self.scanline - sprite.y) & 0xFFFF
            if 0 <= d < size:
                if oim == 0:
                    self.can_zero_hit = True
                if self.active_sprites < 8:
                    self.secondary_oam[self.active_sprites] = sprite
                    self.active_sprites += 1
                else:
                    self.status |= STATUS_SPRITE_OVERFLOW
                    break

    def _fetch_sprite_patterns(self) -> None:
        tall = self.sprite_size() == 16
        for i, sprite in enumerate(self.secondary_oam):
            chr_idx = self.sprite_table_id()
            tile = sprite.tile_id
            diff = (self.scanline - sprite.y) & 0xFFFF
            yoff = diff & 0x0007
            if sprite.flip_v:
                yoff = 7 - yoff

            if tall:
                chr_idx = sprite.tile_id & 0x01
                tile &= 0x00FE
                if (sprite.flip_v and diff < 8) or (not sprite.flip_v and diff >= 8):
                    tile += 1

            addr = ((chr_idx << 12) | (tile << 4) | yoff) & 0xFFFF
            lo = self._read(addr)
            hi = self._read((addr + 8) & 0xFFFF)
            if sprite.flip_h:
                lo = _reverse8(lo)
                hi = _reverse8(hi)
            self.fg_sp_lo[i] = lo
            self.fg_sp_hi[i] = hi

    # Output

    def _set_pixel(self, x: int, y: int, rgb: tuple[int, int, int]) -> None:
        offset = (y * NES_RES_WIDTH + x) * 4
        self.pixels[offset:offset + 4] = bytes((*rgb, 0xFF))

    def _render_pixel(self) -> None:
        bg_pix = bg_pal = 0
        if self._render_background():
            fine_x = 0x8000 >> self.x
            p0 = 1 if self.bg_sp_lo & fine_x else 0
            p1 = 1 if self.bg_sp_hi & fine_x else 0
            bg_pix = (p1 << 1) | p0
            pa0 = 1 if self.bg_sa_lo & fine_x else 0
            pa1 = 1 if self.bg_sa_hi & fine_x else 0
            bg_pal = (pa1 << 1) | pa0

        fg_pix = fg_pal = 0
        fg_prio = render_zero = False
        if self._render_foreground():
            for i in range(self.active_sprites):
                sprite = self.secondary_oam[i]
                if sprite.x != 0:
                    continue
                fg_pix = ((self.fg_sp_hi[i] & 0x80) >> 6) | ((self.fg_sp_lo[i] & 0x80) >> 7)
                fg_pal = sprite.palette + 0x04
                if sprite.priority is Priority.FRONT:
                    fg_prio = True
                # Earlier sprites win over later ones.
                if fg_pix != 0:
                    if i == 0:
                        render_zero = True
                    break

        pix, pal = bg_pix, bg_pal
        if bg_pix == 0 and fg_pix > 0:
            pix, pal = fg_pix, fg_pal
        elif bg_pix > 0 and fg_pix > 0:
            if fg_prio:
                pix, pal = fg_pix, fg_pal
            if (
                self.can_zero_hit
                and render_zero
                and self._render_background()
                and self._render_foreground()
            ):
                first = 1 if self.mask & (MASK_SHOW_LEFT_TILES | MASK_SHOW_LEFT_SPRITES) else 9
                if first <= self.scandot < 258:
                    self.status |= STATUS_SPRITE_0_HIT

        addr = PALETTE_RAM + (pal << 2) + pix
        self._set_pixel(
            self.scandot - 1, self.scanline, SYSTEM_PALETTE[self._read(addr) & 0x3F]
        )

    def tick(self) -> None:
        """Advance the PPU by one dot."""
        self._increment_scan()
        rendering = self._rendering_enabled()

        if self._prerender_line():
            if self.scandot == 1:
                self.clear_vblank()
                self.status &= ~(STATUS_SPRITE_OVERFLOW | STATUS_SPRITE_0_HIT) & 0xFF
                self.fg_sp_lo = [0] * 8
                self.fg_sp_hi = [0] * 8

            if rendering:
                if self._fetch_cycle():
                    self._update_bg()
                if 280 <= self.scandot <= 304:
                    self.v.set_fine_y(self.t.fine_y())
                    self.v.set_nametable_y(self.t.nametable_y())
                    self.v.set_coarse_y(self.t.coarse_y())

        if self._visible_line():
            if self._visible_dot():
                self._render_pixel()
                self._update_fg_shifters()
            if self._fetch_cycle():
                self._update_bg()

        if rendering and self._render_line() and self._fetch_cycle():
            if self.scandot % 8 == 0:
                if self.v.coarse_x() == 31:
                    self.v.reset_coarse_x()
                    self.v.toggle_nametable_x()
                else:
                    self.v.increment_coarse_x()

            if self.scandot == 256:
                if self.v.fine_y() < 7:
                    self.v.increment_fine_y()
                else:
                    self.v.reset_fine_y()
                    coarse_y = self.v.coarse_y()
                    if coarse_y == 29:
                        self.v.reset_coarse_y()
                        self.v.toggle_nametable_y()
                    elif coarse_y == 31:
                        self.v.reset_coarse_y()
                    else:
                        self.v.increment_coarse_y()
                self._load_bg_shifters()

        if rendering and self._render_line() and self.scandot == 257:
            self.v.set_coarse_x(self.t.coarse_x())
            self.v.set_nametable_x(self.t.nametable_x())

        if self._vblank_line() and self.scanline == 241 and self.scandot == 1:
            self.set_vblank()
            if self._nmi_enabled():
                self.bus.trigger_nmi()

        if self._visible_line():
            if self.scandot == 257:
                self._evaluate_sprites()
            if self.scandot >= 320:
                self._fetch_sprite_patterns()