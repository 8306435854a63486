[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "gintendo"
version = "0.1.0"
description = "A Nintendo Entertainment System emulator with a 6502 CPU core, a PPU, an iNES loader and NROM cartridge support."
requires-python = ">=3.10"
keywords = ["nes", "emulator", "6502", "ppu", "ines", "retro"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Intended Audience :: End Users/Desktop",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Games/Entertainment",
    "Topic :: System :: Emulators",
]
dependencies = [
    "pygame",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
gintendo = "gintendo.app:main"

[tool.hatch.build.targets.wheel]
packages = ["gintendo"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
