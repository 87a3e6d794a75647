"""A window that shows a packed 0xRRGGBB pixel buffer, refreshed by a callback."""

from __future__ import annotations

from typing import Callable

import numpy as np
import pygame

TITLE = "Test - ESC to exit"
_MAX_FPS = 1000


def _window_open() -> bool:
    for event in pygame.event.get():
        if event.type == pygame.QUIT:
            return False
        if event.type == pygame.KEYDOWN and event.key == pygame.K_ESCAPE:
            return False
    return not pygame.key.get_pressed()[pygame.K_ESCAPE]


def _present(screen: pygame.Surface, buffer: np.ndarray, width: int, height: int) -> None:
    packed = np.asarray(buffer, dtype=np.uint32).reshape(height, width)
    rgb = np.stack(
        [(packed >> 16) & 0xFF, (packed >> 8) & 0xFF, packed & 0xFF], axis=-1
    ).astype(np.uint8)
    surface = pygame.surfarray.make_surface(np.ascontiguousarray(rgb.transpose(1, 0, 2)))
    screen.blit(surface, (0, 0))
    pygame.display.flip()


def run_window(
    update_window_buffer: Callable[[np.ndarray], object], width: int, height: int
) -> int:
    """Open a window and redraw it from a fresh buffer until it is closed or ESC is hit.

    Before every frame ``update_window_buffer`` receives a zeroed array of
    ``width * height`` packed pixels, row major, to fill in. Returns the
    number of frames drawn.
    """
    pygame.display.init()
    try:
        screen = pygame.display.set_mode((width, height))
        pygame.display.set_caption(TITLE)
        clock = pygame.time.Clock()
        frames = 0
        while _window_open():
            buffer = np.zeros(width * height, dtype=np.uint32)
            update_window_buffer(buffer)
            _present(screen, buffer, width, height)
            frames += 1
            clock.tick(_MAX_FPS)
        return frames
    finally:
        pygame.display.quit()