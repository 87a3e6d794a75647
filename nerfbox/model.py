"""Radiance-field MLP with volume compositing along sampled camera rays."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Sequence

import numpy as np

from .layers import Adam, Linear, relu, relu_backward, sigmoid, sigmoid_backward
from .ray_sampling import T_FAR

NUM_RAYS = 16384
NUM_POINTS = 4
BATCH_SIZE = NUM_RAYS * NUM_POINTS

INDIM = 4
HIDDEN_NODES = 100
LABELS = 4

_TRUNK_DEPTH = 8


def _transmittance_mask(num_points: int) -> np.ndarray:
    """Row k marks the samples summed into the transmittance of sample k.

    Sample k covers indices ``0 .. k-1`` (exclusive), where a negative end
    counts back from the number of samples, so sample 0 covers all but the last.
    """
    mask = np.zeros((num_points, num_points), dtype=np.float32)
    for k in range(num_points):
        end = k - 1
        if end < 0:
            end += num_points
        mask[k, : max(end, 0)] = 1.0
    return mask


def _softmax(x: np.ndarray, axis: int) -> np.ndarray:
    shifted = np.exp(x - x.max(axis=axis, keepdims=True))
    return shifted / shifted.sum(axis=axis, keepdims=True)


@dataclass
class _CompositeCache:
    colors: np.ndarray
    deltas: np.ndarray
    decay: np.ndarray
    alpha: np.ndarray
    stacked: np.ndarray
    transmittance: np.ndarray
    weights: np.ndarray
    mask: np.ndarray


def _check_composite_shapes(
    densities: np.ndarray, colors: np.ndarray, distances: np.ndarray
) -> None:
    if densities.ndim != 2:
        raise ValueError(f"densities must be (rays, points), got {densities.shape}")
    if distances.shape != densities.shape:
        raise ValueError(
            f"distances shape {distances.shape} does not match densities {densities.shape}"
        )
    if colors.ndim != 3 or colors.shape[:2] != densities.shape:
        raise ValueError(
            f"colors must be (rays, points, channels) matching densities, got {colors.shape}"
        )


def _composite(
    densities: np.ndarray, colors: np.ndarray, distances: np.ndarray
) -> tuple[np.ndarray, _CompositeCache]:
    _check_composite_shapes(densities, colors, distances)
    rays, points = densities.shape
    mask = _transmittance_mask(points).astype(densities.dtype)
    optical = densities * distances
    # stacked[k, r] is the transmittance term of sample k on ray r
    stacked = np.exp(optical @ mask.T).T
    transmittance = stacked.reshape(rays, points)
    decay = np.exp(-optical)
    alpha = 1.0 - decay
    weights = _softmax(transmittance * alpha, axis=1)
    out = (weights[:, :, None] * colors).sum(axis=1)
    cache = _CompositeCache(
        colors=colors,
        deltas=distances,
        decay=decay,
        alpha=alpha,
        stacked=stacked,
        transmittance=transmittance,
        weights=weights,
        mask=mask,
    )
    return out, cache


def _composite_backward(
    cache: _CompositeCache, grad_out: np.ndarray
) -> tuple[np.ndarray, np.ndarray]:
    """Return gradients for densities and colors given the output gradient."""
    rays, points = cache.transmittance.shape
    weights = cache.weights
    grad_colors = weights[:, :, None] * grad_out[:, None, :]
    grad_weights = (cache.colors * grad_out[:, None, :]).sum(axis=2)
    grad_logits = weights * (
        grad_weights - (weights * grad_weights).sum(axis=1, keepdims=True)
    )
    grad_transmittance = grad_logits * cache.alpha
    grad_alpha = grad_logits * cache.transmittance

    grad_optical = grad_alpha * cache.decay
    grad_stacked = grad_transmittance.reshape(points, rays)
    grad_sums = (grad_stacked * cache.stacked).T
    grad_optical = grad_optical + grad_sums @ cache.mask
    return grad_optical * cache.deltas, grad_colors


def compositing(densities, colors, distances) -> np.ndarray:
    """Blend per-sample colors into one color per ray.

    ``densities`` and ``distances`` are (rays, points); ``colors`` is
    (rays, points, channels). Weights are a softmax over samples of
    transmittance times opacity.
    """
    out, _ = _composite(
        np.asarray(densities, dtype=np.float32),
        np.asarray(colors, dtype=np.float32),
        np.asarray(distances, dtype=np.float32),
    )
    return out


def mean_compositing(colors) -> np.ndarray:
    """Average the samples of each ray."""
    return np.asarray(colors).mean(axis=1)


def sum_compositing(colors) -> np.ndarray:
    """Sum the samples of each ray."""
    return np.asarray(colors).sum(axis=1)


def select_compositing(colors) -> np.ndarray:
    """Take the first sample of each ray."""
    return np.asarray(colors).transpose(1, 0, 2)[0]


def mse_loss(x, y) -> float:
    """Mean squared difference between two arrays."""
    diff = np.asarray(x, dtype=np.float64) - np.asarray(y, dtype=np.float64)
    return float(np.mean(diff * diff))


@dataclass(eq=False)
class _Trace:
    owner: object
    inputs: list[np.ndarray]
    outputs: list[np.ndarray]
    head_input: np.ndarray
    colors: np.ndarray
    composite: _CompositeCache
    used: bool = False


@dataclass(frozen=True, eq=False)
class Prediction:
    """Per-ray RGBA predictions together with what is needed to train on them."""

    values: np.ndarray
    trace: _Trace = field(repr=False)


def get_predictions_as_array_vec(prediction) -> list[list[float]]:
    """Return the predictions as one list of channel values per ray."""
    values = prediction.values if isinstance(prediction, Prediction) else prediction
    return np.asarray(values, dtype=np.float32).tolist()


class NerfModel:
    """Eight ReLU layers yield a density and features per point; a sigmoid head gives color."""

    def __init__(
        self,
        num_rays: int = NUM_RAYS,
        num_points: int = NUM_POINTS,
        hidden_nodes: int = HIDDEN_NODES,
        seed: int | None = None,
    ) -> None:
        if num_rays <= 0 or num_points <= 0 or hidden_nodes <= 0:
            raise ValueError("num_rays, num_points and hidden_nodes must be positive")
        self.num_rays = num_rays
        self.num_points = num_points
        self.hidden_nodes = hidden_nodes
        rng = np.random.default_rng(seed)
        sizes = [INDIM] + [hidden_nodes] * (_TRUNK_DEPTH - 1) + [hidden_nodes + 1]
        self.trunk = [Linear(a, b, rng) for a, b in zip(sizes, sizes[1:])]
        self.head = Linear(hidden_nodes, LABELS, rng)
        self.layers = tuple(self.trunk) + (self.head,)
        self._opt = Adam(self.layers, lr=5e-4)

    @property
    def batch_size(self) -> int:
        return self.num_rays * self.num_points

    def _named_layers(self) -> list[tuple[str, Linear]]:
        return [(f"fc{i}", layer) for i, layer in enumerate(self.layers, start=1)]

    def predict(self, coords, distances) -> Prediction:
        """Predict one color per ray from its sampled points and their ray parameters.

        ``coords`` holds, for every ray, ``num_points`` rows of
        ``[x, y, z, angle]``; ``distances`` holds the sorted t of each sample.
        """
        rays, points, hidden = self.num_rays, self.num_points, self.hidden_nodes
        coords_arr = np.asarray(coords, dtype=np.float32)
        if coords_arr.size != self.batch_size * INDIM:
            raise ValueError(
                f"expected {rays} rays of {points} points with {INDIM} values, "
                f"got array of shape {coords_arr.shape}"
            )
        dist_arr = np.asarray(distances, dtype=np.float32)
        if dist_arr.size != self.batch_size:
            raise ValueError(
                f"expected {rays} rays of {points} distances, got shape {dist_arr.shape}"
            )
        x = coords_arr.reshape(self.batch_size, INDIM)
        dist_arr = dist_arr.reshape(rays, points)

        inputs: list[np.ndarray] = []
        outputs: list[np.ndarray] = []
        for layer in self.trunk:
            inputs.append(x)
            x = relu(layer.forward(x))
            outputs.append(x)

        per_point = x.reshape(rays, points, hidden + 1)
        densities = per_point[:, :, 0]
        head_input = np.ascontiguousarray(per_point[:, :, 1:]).reshape(self.batch_size, hidden)
        colors = sigmoid(self.head.forward(head_input)).astype(np.float32)
        colors = colors.reshape(rays, points, LABELS)

        far = np.full((rays, 1), T_FAR, dtype=np.float32)
        deltas = np.concatenate([dist_arr[:, 1:], far], axis=1) - dist_arr

        values, cache = _composite(densities, colors, deltas)
        trace = _Trace(
            owner=self,
            inputs=inputs,
            outputs=outputs,
            head_input=head_input,
            colors=colors,
            composite=cache,
        )
        return Prediction(values=values.astype(np.float32), trace=trace)

    def step(self, prediction: Prediction, gold) -> float:
        """Take one Adam step on the MSE between ``prediction`` and ``gold``; return the loss."""
        trace = prediction.trace
        if trace.owner is not self:
            raise ValueError("prediction was made by a different model")
        if trace.used:
            raise RuntimeError("prediction has already been used for a training step")
        gold_arr = np.asarray(gold, dtype=np.float32)
        if gold_arr.size != self.num_rays * LABELS:
            raise ValueError(
                f"expected {self.num_rays} gold colors of {LABELS} channels, "
                f"got shape {gold_arr.shape}"
            )
        trace.used = True
        gold_arr = gold_arr.reshape(self.num_rays, LABELS)

        diff = prediction.values - gold_arr
        loss = float(np.mean(diff * diff))

        for layer in self.layers:
            layer.zero_grad()

        grad_out = (2.0 * diff / diff.size).astype(np.float32)
        grad_densities, grad_colors = _composite_backward(trace.composite, grad_out)

        grad_z = sigmoid_backward(
            trace.colors.reshape(self.batch_size, LABELS),
            grad_colors.reshape(self.batch_size, LABELS),
        )
        self.head.forward(trace.head_input)
        grad_features = self.head.backward(grad_z)

        grad = np.empty((self.batch_size, self.hidden_nodes + 1), dtype=np.float32)
        grad[:, 0] = grad_densities.reshape(self.batch_size)
        grad[:, 1:] = grad_features
        for layer, inp, out in zip(
            reversed(self.trunk), reversed(trace.inputs), reversed(trace.outputs)
        ):
            grad = relu_backward(out, grad)
            layer.forward(inp)
            grad = layer.backward(grad)

        self._opt.step()
        return loss

    def save(self, save_path) -> None:
        """Write all layer parameters to ``save_path``."""
        arrays = {}
        for name, layer in self._named_layers():
            arrays[f"{name}.weight"] = layer.weight
            arrays[f"{name}.bias"] = layer.bias
        with open(save_path, "wb") as handle:
            np.savez(handle, **arrays)

    def load(self, load_path) -> None:
        """Read layer parameters written by :meth:`save` into this model."""
        with np.load(load_path) as data:
            loaded = {}
            for name, layer in self._named_layers():
                for part, param in (("weight", layer.weight), ("bias", layer.bias)):
                    key = f"{name}.{part}"
                    if key not in data.files:
                        raise ValueError(f"checkpoint is missing {key}")
                    value = data[key]
                    if value.shape != param.shape:
                        raise ValueError(
                            f"{key} has shape {value.shape}, expected {param.shape}"
                        )
                    loaded[key] = (param, value)
        for param, value in loaded.values():
            param[...] = value