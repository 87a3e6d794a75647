"""Packing colours into 0xRRGGBB screen pixels."""

from __future__ import annotations

import math
from typing import Sequence


def _float_to_u8(value: float) -> int:
    """Truncate toward zero and saturate to 0..255; NaN becomes 0."""
    if math.isnan(value):
        return 0
    if value <= 0:
        return 0
    if value >= 255:
        return 255
    return int(value)


def from_u8_rgb(r: int, g: int, b: int) -> int:
    """Pack three byte channels into a 0xRRGGBB integer."""
    return ((r & 0xFF) << 16) | ((g & 0xFF) << 8) | (b & 0xFF)


def rgba_to_u8_array(rgba: int) -> tuple[int, int, int]:
    """Split a packed pixel into its (r, g, b) bytes."""
    return ((rgba >> 16) & 0xFF, (rgba >> 8) & 0xFF, rgba & 0xFF)


def prediction_array_as_u32(rgba: Sequence[float]) -> int:
    """Pack an RGBA colour with channels in [0, 1]; alpha is ignored."""
    return from_u8_rgb(*(_float_to_u8(channel * 255.0) for channel in rgba[:3]))