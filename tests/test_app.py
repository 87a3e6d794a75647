import csv
import math

import numpy as np
import pytest

from nerfbox.app import ScalarLog, draw_to_screen, draw_valid_predictions, get_batch, main
from nerfbox.model import NerfModel
from nerfbox.ray_sampling import HEIGHT, WIDTH


def _images(count):
    base = np.arange(WIDTH * HEIGHT, dtype=np.float32)
    return [
        np.stack([base, base + k, base * 0 + k, np.ones_like(base)], axis=1)
        for k in range(count)
    ]


def test_scalar_log_round_trip(tmp_path):
    directory = tmp_path / "run"
    with ScalarLog(directory) as log:
        log.add_scalar("loss", 0.5, 0)
        log.add_scalar("loss", 0.25, 1)
    with open(directory / ScalarLog.FILENAME, newline="") as handle:
        rows = list(csv.reader(handle))
    assert rows == [["0", "loss", "0.5"], ["1", "loss", "0.25"]]


def test_scalar_log_rejects_writes_after_close(tmp_path):
    log = ScalarLog(tmp_path)
    log.close()
    with pytest.raises(ValueError):
        log.add_scalar("loss", 1.0, 3)


def test_get_batch_gold_matches_pixels():
    images = _images(2)
    rng = np.random.default_rng(1)
    indices, query_points, distances, gold = get_batch(images, 3, 16, 3, rng)
    assert len(indices) == 16
    assert query_points.shape == (16, 3, 4)
    assert distances.shape == (16, 3)
    assert gold.shape == (16, 4)
    for (y, x), color in zip(indices, gold):
        assert 0 <= y < HEIGHT and 0 <= x < WIDTH
        assert color[0] == y * WIDTH + x
        assert color[2] == 1  # iteration 3 of 2 views selects view 1


def test_get_batch_points_follow_sampled_distances():
    images = _images(2)
    _, query_points, distances, _ = get_batch(images, 1, 8, 4, np.random.default_rng(2))
    assert np.allclose(query_points[:, :, 3], math.pi)
    assert np.all(np.diff(distances, axis=1) >= 0)
    assert np.all((distances >= 0) & (distances < 1))
    norms = np.linalg.norm(query_points[:, :, :3], axis=2)
    assert np.allclose(norms, distances, atol=1e-5)


def test_get_batch_needs_images():
    with pytest.raises(ValueError):
        get_batch([], 0, 4, 2)


def test_draw_to_screen_copies_backbuffer():
    backbuffer = np.arange(WIDTH * HEIGHT, dtype=np.uint32)
    buffer = np.zeros(WIDTH * HEIGHT, dtype=np.uint32)
    draw_to_screen(buffer, backbuffer, False)
    assert np.array_equal(buffer, backbuffer)


def test_draw_to_screen_debug_leaves_buffer():
    backbuffer = np.arange(WIDTH * HEIGHT, dtype=np.uint32)
    buffer = np.zeros(WIDTH * HEIGHT, dtype=np.uint32)
    draw_to_screen(buffer, backbuffer, True)
    assert int(buffer.sum()) == 0


def test_draw_valid_predictions_fills_every_pixel():
    model = NerfModel(num_rays=WIDTH * HEIGHT // 2, num_points=2, hidden_nodes=6, seed=0)
    backbuffer = np.zeros(WIDTH * HEIGHT, dtype=np.uint32)
    draw_valid_predictions(backbuffer, 0, 0.0, model, np.random.default_rng(0))
    assert np.all(backbuffer > 0)
    assert np.all(backbuffer < 2**24)


def test_draw_valid_predictions_rejects_uneven_batches():
    model = NerfModel(num_rays=3000, num_points=1, hidden_nodes=2, seed=0)
    backbuffer = np.zeros(WIDTH * HEIGHT, dtype=np.uint32)
    with pytest.raises(ValueError):
        draw_valid_predictions(backbuffer, 0, 0.0, model)
    assert int(backbuffer.sum()) == 0


def test_main_fails_without_training_images(tmp_path):
    with pytest.raises(FileNotFoundError):
        main(["--img-dir", str(tmp_path), "--log-dir", str(tmp_path / "logs")])