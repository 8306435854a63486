"""Command-line entry point: load a ROM and show it in a window."""

from __future__ import annotations

import argparse
import logging
import threading
from typing import Optional, Sequence

from .console import Console
from .mappers import MapperError, load

log = logging.getLogger(__name__)


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="gintendo", description="Run an NES ROM.")
    parser.add_argument(
        "-nes_rom",
        "--nes_rom",
        dest="nes_rom",
        default="",
        help="Path to NES ROM to run.",
    )
    return parser.parse_args(argv)


def _run_display(console: Console, keys: list) -> None:
    import pygame

    key_codes = (
        pygame.K_a,  # A
        pygame.K_b,  # B
        pygame.K_SPACE,  # Select
        pygame.K_RETURN,  # Start
        pygame.K_UP,
        pygame.K_DOWN,
        pygame.K_LEFT,
        pygame.K_RIGHT,
    )

    pygame.init()
    try:
        width, height = console.ppu.resolution()
        screen = pygame.display.set_mode((width * 2, height * 2), pygame.RESIZABLE)
        pygame.display.set_caption("Gintendo")
        clock = pygame.time.Clock()
        running = True
        while running:
            for event in pygame.event.get():
                if event.type == pygame.QUIT:
                    running = False
            pressed = pygame.key.get_pressed()
            keys[:] = [bool(pressed[k]) for k in key_codes]
            console.update()
            frame = pygame.image.frombuffer(
                bytes(console.ppu.pixels), (width, height), "RGBA"
            )
            screen.blit(pygame.transform.scale(frame, screen.get_size()), (0, 0))
            pygame.display.flip()
            clock.tick(60)
    finally:
        pygame.quit()


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    try:
        mapper = load(args.nes_rom)
    except MapperError as exc:
        log.error("Couldn't load mapper: %s", exc)
        return 1

    keys = [False] * 8
    console = Console(mapper, key_state=lambda: keys)

    stop = threading.Event()
    worker = threading.Thread(target=console.run, args=(stop,), daemon=True)
    worker.start()
    try:
        _run_display(console, keys)
    finally:
        stop.set()
        worker.join()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())