"""Loading training views from image files."""

from __future__ import annotations

import os
from typing import Iterable

import numpy as np
from PIL import Image


def load_image_as_array(path: str | os.PathLike[str]) -> np.ndarray:
    """Load an image as an (N, 4) float32 array of RGBA values in [0, 1], row major."""
    with Image.open(path) as img:
        rgba = np.asarray(img.convert("RGBA"), dtype=np.float32)
    pixels = rgba.reshape(-1, 4) / 255.0
    print(f"image {len(pixels)} pixels")
    return pixels


def get_image_paths_from_dir(directory: str | os.PathLike[str]) -> list[str]:
    """Return the paths of all entries in ``directory``, sorted."""
    return sorted(os.path.join(directory, name) for name in os.listdir(directory))


def get_image_paths(directory: str, start: int, end: int, step: int) -> list[str]:
    """Return ``directory/image-<i>.png`` for i in range(start, end, step)."""
    if not start < end:
        raise ValueError(f"start ({start}) must be less than end ({end})")
    if step <= 0:
        raise ValueError(f"step must be positive, got {step}")
    if (end - start) % step != 0:
        raise ValueError(f"range {start}..{end} is not a multiple of step {step}")
    return [f"{directory}/image-{i}.png" for i in range(start, end, step)]


def load_multiple_images_as_arrays(paths: Iterable[str]) -> list[np.ndarray]:
    """Load every image in ``paths``."""
    return [load_image_as_array(path) for path in paths]