# gintendo

A small Nintendo Entertainment System emulator. It has:

- a MOS 6502 CPU core (`gintendo.cpu.CPU`), undocumented opcodes and BCD
  arithmetic included
- the 6502 opcode table (`gintendo.opcodes`)
- a picture processing unit (`gintendo.ppu.PPU`) that draws backgrounds and
  sprites into a 256x240 RGBA frame buffer
- an iNES / NES 2.0 ROM loader (`gintendo.rom`)
- the NROM cartridge mapper, mapper 0 (`gintendo.mappers.NROM`)
- a console bus (`gintendo.console.Console`) that ties these together,
  with controller input and a text debug monitor

## Installation

```
pip install .
```

To run the tests as well:

```
pip install ".[test]"
pytest
```

## Running a game

```
gintendo --nes_rom path/to/game.nes
```

A pygame window opens at twice the NES resolution of 256x240 and can be
resized. The emulated machine runs in a background thread while the window
redraws at about 60 frames a second. If the ROM cannot be loaded, the error
is logged and the command exits with status 1.

Controller 1 uses these keys:

| NES button | Key         |
|------------|-------------|
| A          | A           |
| B          | B           |
| Select     | Space       |
| Start      | Enter       |
| D-pad      | Arrow keys  |

## Using the pieces from Python

```python
from gintendo.mappers import DummyMapper
from gintendo.console import Console

console = Console(DummyMapper(0), key_state=lambda: [False] * 8)
console.write(0x0000, 0x42)
assert console.read(0x0800) == 0x42  # the 2KB of RAM is mirrored
```

- `gintendo.mappers.load(path)` reads a ROM file and returns the mapper its
  header asks for, initialised with it. It raises `MapperError` for an
  unreadable file or an unknown mapper number.
- `gintendo.rom.ROM.from_file(path)` and `ROM.from_bytes(data)` parse an
  iNES image; `gintendo.rom.parse_header` decodes just the 16-byte header.
  Problems raise `RomError`.
- `gintendo.cpu.CPU` works with any object that has `read(addr)` and
  `write(addr, val)` methods, so it can run on its own against a flat 64KB
  memory. `CPU.step()` executes one instruction and returns the cycles it
  owes; an unknown opcode raises `InvalidInstruction`.
- `Console.clock()` advances one master clock (one PPU dot, and a CPU
  cycle every third tick); `Console.step()` executes one CPU instruction
  and the matching PPU dots; `Console.run(stop_event)` clocks until the
  `threading.Event` is set.

### Debug monitor

`Console.bios(stop_event)` is a text monitor that reads choices from
`input` (or a function you pass as `input_fn`) and writes to stdout (or
`output`). It can step the CPU, set the program counter, run the machine,
reset the CPU, and show memory ranges, the top of the stack, the current
instruction bytes, the PPU state and the 64 OAM entries. It returns on `q`
or at end of input. Breakpoint addresses can be entered and cleared, but
they are only recorded: running does not stop at them.

## What it does not do

- Only mapper 0 (NROM) is provided. ROMs asking for any other mapper number
  are rejected.
- There is no sound: APU registers are ignored.
- Only controller 1 is readable; controller 2 reads as 0.
- Cartridge save RAM is not emulated, and NROM rejects writes to PRG and
  CHR memory with `MapperError`.
- Four-screen nametable mirroring is not supported; the PPU raises
  `ValueError` when asked to use it.