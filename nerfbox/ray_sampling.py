"""Camera rays for a pinhole camera orbiting the scene, and random samples along them."""

from __future__ import annotations

import math
from typing import NamedTuple, Sequence

import numpy as np

HITHER = 0.05
FOV = math.pi / 4.0

UP = np.array([0.0, 1.0, 0.0])
ORIGIN = np.array([0.0, 0.0, -1.0])
AT = np.array([0.0, 0.0, 1.0])

T_FAR = 10.0

WIDTH = 128
HEIGHT = 128

Vec3 = tuple[float, float, float]


class RaySample(NamedTuple):
    """A point sampled on a ray and the ray parameter it was taken at."""

    point: Vec3
    t: float


def _normalized(v: np.ndarray) -> np.ndarray:
    return v / np.linalg.norm(v)


def _as_vec3(v: np.ndarray) -> Vec3:
    return (float(v[0]), float(v[1]), float(v[2]))


def _rng(rng: np.random.Generator | None) -> np.random.Generator:
    return rng if rng is not None else np.random.default_rng()


def rotate(vec: Sequence[float], angle: float) -> Vec3:
    """Rotate a point about the vertical (y) axis by ``angle`` radians."""
    c = math.cos(angle)
    s = math.sin(angle)
    rot = np.array(
        [
            [c, 0.0, s],
            [0.0, 1.0, 0.0],
            [-s, 0.0, c],
        ]
    )
    return _as_vec3(rot @ np.asarray(vec, dtype=float))


def screen_space_to_world_space(x: float, y: float, width: float, height: float) -> Vec3:
    """Return the unit direction of the camera ray through screen point (x, y)."""
    off = math.tan(FOV / 2.0) * HITHER
    offset_left = off - 2.0 * off * x / width
    offset_up = off - 2.0 * off * y / height

    view = _normalized(AT - ORIGIN)
    left = _normalized(np.cross(view, UP))

    to = _normalized(view * HITHER + left * offset_left + UP * offset_up)
    return _as_vec3(to)


def sample_points_along_ray(
    origin: Sequence[float],
    to: Sequence[float],
    num_samples: int,
    rng: np.random.Generator | None = None,
) -> list[RaySample]:
    """Sample points ``to * t`` for uniform t in [0, 1), sorted by t.

    The points are measured from the camera, so ``origin`` does not shift them.
    """
    generator = _rng(rng)
    direction = np.asarray(to, dtype=float)
    ts = sorted(float(generator.random()) for _ in range(num_samples))
    return [RaySample(_as_vec3(direction * t), t) for t in ts]


def _rotated_samples(
    indices: Sequence[Sequence[int]],
    num_points: int,
    angle: float,
    rng: np.random.Generator,
) -> list[list[RaySample]]:
    rays = []
    for y, x in indices:
        to = screen_space_to_world_space(float(x), float(y), float(WIDTH), float(HEIGHT))
        rays.append(
            [
                RaySample(rotate(sample.point, angle), sample.t)
                for sample in sample_points_along_ray(ORIGIN, to, num_points, rng)
            ]
        )
    return rays


def sample_points_for_rays(
    indices: Sequence[Sequence[int]],
    num_points: int,
    angle: float,
    rng: np.random.Generator | None = None,
) -> list[list[RaySample]]:
    """Sample ``num_points`` rotated points on the ray through each (y, x) pixel."""
    return _rotated_samples(indices, num_points, angle, _rng(rng))


def sample_points_along_view_directions(
    num_rays: int,
    num_points: int,
    angle: float,
    rng: np.random.Generator | None = None,
) -> tuple[list[tuple[int, int]], list[Vec3], list[list[RaySample]]]:
    """Pick ``num_rays`` random pixels and sample points along their rays.

    Returns the (y, x) pixel indices, the view directions (currently empty)
    and the samples for each ray.
    """
    generator = _rng(rng)
    coord_y = generator.integers(0, HEIGHT, size=num_rays)
    coord_x = generator.integers(0, WIDTH, size=num_rays)
    indices = [(int(y), int(x)) for y, x in zip(coord_y, coord_x)]
    views: list[Vec3] = []
    points = _rotated_samples(indices, num_points, angle, generator)
    return indices, views, points