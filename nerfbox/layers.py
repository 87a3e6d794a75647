"""Dense layers, activations and an Adam optimizer on numpy arrays."""

from __future__ import annotations

import math
from typing import Iterable, Sequence

import numpy as np


def relu(x: np.ndarray) -> np.ndarray:
    """Elementwise max(x, 0)."""
    return np.maximum(x, 0)


def relu_backward(x: np.ndarray, grad: np.ndarray) -> np.ndarray:
    """Gradient of relu with respect to its input ``x``."""
    return np.where(x > 0, grad, 0).astype(np.result_type(grad), copy=False)


def tanh_backward(y: np.ndarray, grad: np.ndarray) -> np.ndarray:
    """Gradient of tanh given its output ``y``."""
    return grad * (1 - y * y)


def sigmoid(x: np.ndarray) -> np.ndarray:
    """Elementwise logistic function."""
    x = np.asarray(x)
    return 1 / (1 + np.exp(-x))


def sigmoid_backward(y: np.ndarray, grad: np.ndarray) -> np.ndarray:
    """Gradient of sigmoid given its output ``y``."""
    return grad * y * (1 - y)


class Linear:
    """Fully connected layer computing ``x @ weight.T + bias``."""

    def __init__(
        self,
        in_features: int,
        out_features: int,
        rng: np.random.Generator | None = None,
    ) -> None:
        if in_features <= 0 or out_features <= 0:
            raise ValueError("layer sizes must be positive")
        generator = rng if rng is not None else np.random.default_rng()
        bound = 1.0 / math.sqrt(in_features)
        self.in_features = in_features
        self.out_features = out_features
        self.weight = generator.uniform(
            -bound, bound, size=(out_features, in_features)
        ).astype(np.float32)
        self.bias = generator.uniform(-bound, bound, size=out_features).astype(np.float32)
        self.weight_grad = np.zeros_like(self.weight)
        self.bias_grad = np.zeros_like(self.bias)
        self._input: np.ndarray | None = None

    def forward(self, x: np.ndarray) -> np.ndarray:
        """Apply the layer to a (batch, in_features) array and remember the input."""
        x = np.asarray(x, dtype=np.float32)
        if x.ndim != 2 or x.shape[1] != self.in_features:
            raise ValueError(
                f"expected input of shape (batch, {self.in_features}), got {x.shape}"
            )
        self._input = x
        return x @ self.weight.T + self.bias

    def backward(self, grad: np.ndarray) -> np.ndarray:
        """Accumulate parameter gradients and return the gradient for the input."""
        if self._input is None:
            raise RuntimeError("backward called before forward")
        grad = np.asarray(grad, dtype=np.float32)
        if grad.shape != (self._input.shape[0], self.out_features):
            raise ValueError(f"gradient shape {grad.shape} does not match layer output")
        self.weight_grad += grad.T @ self._input
        self.bias_grad += grad.sum(axis=0)
        return grad @ self.weight

    def zero_grad(self) -> None:
        """Reset the accumulated gradients to zero."""
        self.weight_grad.fill(0)
        self.bias_grad.fill(0)


class Adam:
    """Adam with optional decoupled weight decay over the parameters of some layers."""

    def __init__(
        self,
        layers: Iterable[Linear],
        lr: float = 1e-3,
        betas: Sequence[float] = (0.9, 0.999),
        eps: float = 1e-8,
        weight_decay: float | None = None,
    ) -> None:
        self.layers = list(layers)
        self.lr = lr
        self.beta1, self.beta2 = (float(b) for b in betas)
        self.eps = eps
        self.weight_decay = weight_decay or 0.0
        self._t = 0
        self._moments = [
            (np.zeros_like(param), np.zeros_like(param))
            for layer in self.layers
            for param, _ in self._params(layer)
        ]

    @staticmethod
    def _params(layer: Linear) -> list[tuple[np.ndarray, np.ndarray]]:
        return [(layer.weight, layer.weight_grad), (layer.bias, layer.bias_grad)]

    def step(self) -> None:
        """Update every parameter in place from its accumulated gradient."""
        self._t += 1
        correction1 = 1 - self.beta1**self._t
        correction2 = 1 - self.beta2**self._t
        pairs = (pair for layer in self.layers for pair in self._params(layer))
        for (param, grad), (m, v) in zip(pairs, self._moments):
            if self.weight_decay:
                param -= self.lr * self.weight_decay * param
            m *= self.beta1
            m += (1 - self.beta1) * grad
            v *= self.beta2
            v += (1 - self.beta2) * grad * grad
            m_hat = m / correction1
            v_hat = v / correction2
            param -= (self.lr * m_hat / (np.sqrt(v_hat) + self.eps)).astype(param.dtype)