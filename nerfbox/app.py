"""Training loop: sample rays from the training views, fit the model, show renders."""

from __future__ import annotations

import csv
import math
import os
import sys
import time
from typing import Sequence

import numpy as np

from .cli import parse_args
from .display import run_window
from .image_loading import get_image_paths, load_multiple_images_as_arrays
from .model import NerfModel
from .pixels import prediction_array_as_u32
from .ray_sampling import (
    HEIGHT,
    WIDTH,
    sample_points_along_view_directions,
    sample_points_for_rays,
)


class _MaxIterationsReached(RuntimeError):
    pass


class ScalarLog:
    """Append (step, tag, value) scalar records to ``scalars.csv`` in a directory."""

    FILENAME = "scalars.csv"

    def __init__(self, directory: str | os.PathLike[str]) -> None:
        os.makedirs(directory, exist_ok=True)
        self.path = os.path.join(directory, self.FILENAME)
        self._file = open(self.path, "a", newline="", encoding="utf-8")
        self._writer = csv.writer(self._file)

    def add_scalar(self, tag: str, value: float, step: int) -> None:
        """Record ``value`` for ``tag`` at ``step``."""
        if self._file.closed:
            raise ValueError("scalar log is closed")
        self._writer.writerow([step, tag, repr(float(value))])
        self._file.flush()

    def close(self) -> None:
        """Close the underlying file."""
        self._file.close()

    def __enter__(self) -> "ScalarLog":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


def _rays_to_inputs(points, angle: float) -> tuple[np.ndarray, np.ndarray]:
    query_points = np.array(
        [[[*sample.point, angle] for sample in ray] for ray in points], dtype=np.float32
    )
    distances = np.array([[sample.t for sample in ray] for ray in points], dtype=np.float32)
    return query_points, distances


def get_batch(
    images: Sequence[np.ndarray],
    iteration: int,
    num_rays: int,
    num_points: int,
    rng: np.random.Generator | None = None,
):
    """Sample a training batch from the view chosen by ``iteration``.

    Returns the (y, x) pixel indices, the query points ``[x, y, z, angle]`` of
    shape (rays, points, 4), the sample distances (rays, points) and the gold
    RGBA colors (rays, 4).
    """
    if not images:
        raise ValueError("no training images")
    n = iteration % len(images)
    angle = (n / len(images)) * 2.0 * math.pi
    indices, _views, points = sample_points_along_view_directions(
        num_rays, num_points, angle, rng
    )
    image = np.asarray(images[n], dtype=np.float32)
    flat = np.array([y * WIDTH + x for y, x in indices], dtype=np.int64)
    gold = image[flat]
    query_points, distances = _rays_to_inputs(points, angle)
    return indices, query_points, distances, gold


def draw_valid_predictions(
    backbuffer: np.ndarray,
    iteration: int,
    angle: float,
    model: NerfModel,
    rng: np.random.Generator | None = None,
) -> None:
    """Render every screen pixel from ``angle`` into ``backbuffer`` in batches."""
    indices = [(y, x) for y in range(HEIGHT) for x in range(WIDTH)]
    batch = model.num_rays
    if len(indices) % batch != 0:
        raise ValueError(
            f"{len(indices)} pixels cannot be split into batches of {batch} rays"
        )
    for start in range(0, len(indices), batch):
        end = start + batch
        print(
            f"evaluating batch {start} iter {iteration} angle {angle} - {end} "
            f"out of {len(indices)}"
        )
        indices_batch = indices[start:end]
        points = sample_points_for_rays(indices_batch, model.num_points, angle, rng)
        query_points, distances = _rays_to_inputs(points, angle)
        prediction = model.predict(query_points, distances)
        for (y, x), color in zip(indices_batch, prediction.values):
            backbuffer[y * WIDTH + x] = prediction_array_as_u32(
                (float(color[0]), float(color[1]), float(color[2]), 1.0)
            )


def draw_to_screen(buffer: np.ndarray, backbuffer: np.ndarray, debug: bool) -> None:
    """Copy the backbuffer to the screen buffer unless in debug mode."""
    if not debug:
        buffer[: WIDTH * HEIGHT] = backbuffer[: WIDTH * HEIGHT]


def _loss_chart(values: Sequence[float], width: int = 120, height: int = 40) -> str:
    if not values:
        return ""
    low, high = min(values), max(values)
    span = high - low or 1.0
    rows = [[" "] * width for _ in range(height)]
    for column in range(width):
        value = values[min(len(values) - 1, column * len(values) // width)]
        row = height - 1 - int((value - low) / span * (height - 1))
        rows[row][column] = "*"
    lines = ["".join(row).rstrip() for row in rows]
    lines.append(f"{low:.6g} .. {high:.6g} over {len(values)} steps")
    return "\n".join(lines)


def main(argv: Sequence[str] | None = None) -> int:
    """Train the model on the views in ``--img-dir`` while showing renders."""
    args = parse_args(argv)
    ts = int(time.time())

    paths = get_image_paths(args.img_dir, 0, 360, 10)
    images = load_multiple_images_as_arrays(paths)

    model = NerfModel()
    if args.load_path:
        model.load(args.load_path)

    rng = np.random.default_rng()
    batch_losses: list[float] = []
    backbuffer = np.zeros(WIDTH * HEIGHT, dtype=np.uint32)
    iteration = 0

    with ScalarLog(os.path.join(args.log_dir, str(ts))) as writer:

        def update(buffer: np.ndarray) -> None:
            nonlocal iteration
            _indices, query_points, distances, gold = get_batch(
                images, iteration, model.num_rays, model.num_points, rng
            )
            prediction = model.predict(query_points, distances)

            if args.do_train:
                loss = model.step(prediction, gold)
                print(f"iter={iteration}, loss={loss:.16f}")
                writer.add_scalar("loss", loss, iteration)
                batch_losses.append(loss)
                print(_loss_chart(batch_losses))

                if iteration % args.save_steps == 0:
                    os.makedirs(args.save_dir, exist_ok=True)
                    model.save(
                        os.path.join(args.save_dir, f"checkpoint-{ts}-{iteration}.ot")
                    )

            if iteration % args.eval_steps == 0:
                backbuffer.fill(0)
                angle = (iteration / 180.0) * math.pi
                draw_valid_predictions(
                    backbuffer, iteration, angle % (2.0 * math.pi), model, rng
                )

            draw_to_screen(buffer, backbuffer, args.debug)

            iteration += 1
            if iteration > args.num_iter:
                raise _MaxIterationsReached("Reached maximum iterations")

        try:
            run_window(update, WIDTH, HEIGHT)
        except _MaxIterationsReached as exc:
            print(exc, file=sys.stderr)
            return 1
    return 0