"""A small tanh MLP mapping screen coordinates straight to RGBA."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

import numpy as np

from .layers import Adam, Linear, tanh_backward

BATCH_SIZE = 16384

_IN = 2
_HIDDEN = 100
_OUT = 4
_HIDDEN_LAYERS = 5


def stack_rows(rows: Sequence[Sequence[float]], length: int) -> np.ndarray:
    """Stack exactly ``length`` equal-width rows into a float32 array."""
    if len(rows) != length:
        raise ValueError(f"Expected a Vec of length {length} but it was {len(rows)}")
    return np.asarray(rows, dtype=np.float32).reshape(length, -1)


@dataclass(frozen=True, eq=False)
class _Traced:
    """Network output together with the activations needed to backpropagate it."""

    values: np.ndarray
    activations: tuple[np.ndarray, ...]


class CoordinateMlp:
    """Five tanh layers of 100 units and a linear RGBA head, trained with Adam."""

    def __init__(self, batch_size: int = BATCH_SIZE, seed: int = 0) -> None:
        self.batch_size = batch_size
        rng = np.random.default_rng(seed)
        sizes = [_IN] + [_HIDDEN] * _HIDDEN_LAYERS
        self._hidden = [Linear(a, b, rng) for a, b in zip(sizes, sizes[1:] + [_HIDDEN])]
        self._head = Linear(_HIDDEN, _OUT, rng)
        self._opt = Adam(
            self._hidden + [self._head],
            lr=5e-5,
            betas=(0.5, 0.25),
            eps=1e-6,
            weight_decay=1e-2,
        )
        self._pending: _Traced | None = None

    def predict(
        self,
        coords: Sequence[Sequence[float]],
        views: Sequence[Sequence[float]] = (),
        points: Sequence[Sequence[float]] = (),
    ) -> _Traced:
        """Run the network on one batch of (y, x) coordinates.

        View directions and points are accepted but not used by this model.
        """
        x = stack_rows(coords, self.batch_size)
        activations = []
        for layer in self._hidden:
            activations.append(x)
            x = np.tanh(layer.forward(x))
        activations.append(x)
        out = self._head.forward(x)
        traced = _Traced(out, tuple(activations))
        self._pending = traced
        return traced

    def step(self, predictions: _Traced, gold: Sequence[Sequence[float]]) -> float:
        """Take one Adam step on the MSE between ``predictions`` and ``gold``."""
        if predictions is not self._pending:
            raise ValueError("predictions were not produced by the latest predict call")
        self._pending = None
        target = stack_rows(gold, self.batch_size)
        diff = predictions.values - target
        loss = float(np.mean(diff * diff))

        layers = self._hidden + [self._head]
        for layer in layers:
            layer.zero_grad()
        # Restore each layer's cached input from the traced activations.
        for layer, inp in zip(layers, predictions.activations):
            layer.forward(inp)
        grad = self._head.backward(2.0 * diff / diff.size)
        for layer, out in zip(reversed(self._hidden), reversed(predictions.activations[1:])):
            grad = layer.backward(tanh_backward(out, grad))
        self._opt.step()
        return loss

    def predictions_as_array(self, predictions: _Traced) -> np.ndarray:
        """Return the (batch, 4) RGBA predictions as a plain array."""
        return np.array(predictions.values, dtype=np.float32)