"""Encodings of (y, x) pixel indices into model inputs."""

from __future__ import annotations

import math
from typing import Sequence

from .ray_sampling import HEIGHT, WIDTH


def identity(e: Sequence[int]) -> tuple[float, float]:
    """Return the pixel index as floats."""
    return (float(e[0]), float(e[1]))


def scale_by_screen_size(e: Sequence[int]) -> tuple[float, float]:
    """Scale a (y, x) index into the unit square."""
    return (e[0] / HEIGHT, e[1] / WIDTH)


def _center(e: Sequence[float]) -> tuple[float, float]:
    return (1.0 - e[0] - 0.5, e[1] - 0.5)


def scale_by_screen_size_and_center(e: Sequence[int]) -> tuple[float, float]:
    """Scale into the unit square, then center with y pointing up."""
    return _center(scale_by_screen_size(e))


def _corners_and_polar(e: Sequence[float]) -> list[float]:
    ec = _center(e)
    return [
        e[0],
        e[1],
        1.0 - e[0],
        1.0 - e[1],
        math.sqrt(ec[0] * ec[0] + ec[1] * ec[1]),
        1.0 / math.tan(ec[0] / (ec[1] + 1e-6) + 1e-6),
    ]


def scale_by_screen_size_and_coconet(e: Sequence[int]) -> list[float]:
    """Distances to the corners plus a polar-style pair for the scaled index."""
    return _corners_and_polar(scale_by_screen_size(e))


def _fourier_features(e: Sequence[float], length: int) -> list[float]:
    encoding = [0.0] * length
    for i in range(length // 2):
        frequency = 2.0 ** (i // 2)
        if i % 2 == 0:
            encoding[i] = math.sin(frequency * e[1])
        else:
            encoding[i] = math.cos(frequency * e[0])
    return encoding


def scale_by_screen_size_and_fourier(e: Sequence[int], length: int) -> list[float]:
    """Fourier features of the centered index; only the first half is filled."""
    return _fourier_features(scale_by_screen_size_and_center(e), length)