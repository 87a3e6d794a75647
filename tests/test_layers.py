import numpy as np
import pytest

from nerfbox.layers import (
    Adam,
    Linear,
    relu,
    relu_backward,
    sigmoid,
    sigmoid_backward,
    tanh_backward,
)


def _layer(seed=0, n_in=3, n_out=2):
    return Linear(n_in, n_out, np.random.default_rng(seed))


def test_linear_init_within_bounds():
    layer = _layer(n_in=4, n_out=5)
    bound = 1 / np.sqrt(4)
    assert layer.weight.shape == (5, 4)
    assert layer.bias.shape == (5,)
    assert np.all(np.abs(layer.weight) <= bound)
    assert np.all(np.abs(layer.bias) <= bound)


def test_linear_same_seed_same_weights():
    a, b = _layer(seed=7), _layer(seed=7)
    np.testing.assert_array_equal(a.weight, b.weight)
    np.testing.assert_array_equal(a.bias, b.bias)


def test_linear_forward_of_zero_is_bias():
    layer = _layer()
    out = layer.forward(np.zeros((2, 3)))
    np.testing.assert_allclose(out, np.stack([layer.bias, layer.bias]))


def test_linear_forward_rejects_wrong_width():
    with pytest.raises(ValueError):
        _layer().forward(np.zeros((2, 4)))


def test_linear_backward_before_forward():
    with pytest.raises(RuntimeError):
        _layer().backward(np.zeros((1, 2)))


def test_linear_gradients_match_finite_differences():
    layer = _layer(seed=3)
    x = np.random.default_rng(1).normal(size=(4, 3)).astype(np.float32)
    layer.forward(x)
    input_grad = layer.backward(np.ones((4, 2), dtype=np.float32))

    def total(w, inp):
        return float((inp.astype(np.float64) @ w.T.astype(np.float64) + layer.bias).sum())

    h = 1e-3
    w = layer.weight.astype(np.float64)
    bumped = w.copy()
    bumped[1, 2] += h
    numeric_w = (total(bumped, x) - total(w, x)) / h
    assert layer.weight_grad[1, 2] == pytest.approx(numeric_w, rel=1e-3)

    bumped_x = x.astype(np.float64).copy()
    bumped_x[0, 1] += h
    numeric_x = (total(w, bumped_x) - total(w, x)) / h
    assert input_grad[0, 1] == pytest.approx(numeric_x, rel=1e-3)
    np.testing.assert_allclose(layer.bias_grad, [4.0, 4.0])


def test_zero_grad_clears_accumulation():
    layer = _layer()
    layer.forward(np.ones((2, 3)))
    layer.backward(np.ones((2, 2)))
    layer.zero_grad()
    assert not layer.weight_grad.any()
    assert not layer.bias_grad.any()


def test_relu_and_backward():
    x = np.array([-1.0, 0.0, 2.0])
    np.testing.assert_array_equal(relu(x), [0.0, 0.0, 2.0])
    np.testing.assert_array_equal(relu_backward(x, np.array([5.0, 5.0, 5.0])), [0.0, 0.0, 5.0])


def test_sigmoid_at_zero():
    assert sigmoid(np.array([0.0]))[0] == pytest.approx(0.5)


def test_sigmoid_backward_matches_numeric():
    x = np.array([-1.5, 0.3, 2.0])
    h = 1e-6
    numeric = (sigmoid(x + h) - sigmoid(x)) / h
    np.testing.assert_allclose(sigmoid_backward(sigmoid(x), np.ones(3)), numeric, rtol=1e-4)


def test_tanh_backward_matches_numeric():
    x = np.array([-0.7, 0.0, 1.2])
    h = 1e-6
    numeric = (np.tanh(x + h) - np.tanh(x)) / h
    np.testing.assert_allclose(tanh_backward(np.tanh(x), np.ones(3)), numeric, rtol=1e-4)


def test_adam_first_step_moves_by_lr_against_gradient_sign():
    layer = _layer(seed=2)
    before = layer.weight.copy()
    layer.weight_grad[:] = np.array([[1.0, -2.0, 3.0], [-0.5, 0.5, 4.0]])
    Adam([layer], lr=0.01).step()
    np.testing.assert_allclose(
        layer.weight - before, -0.01 * np.sign(layer.weight_grad), atol=1e-5
    )


def test_adam_decoupled_decay_shrinks_with_zero_grad():
    layer = _layer(seed=4)
    before = layer.weight.copy()
    Adam([layer], lr=0.1, weight_decay=0.5).step()
    np.testing.assert_allclose(layer.weight, before * (1 - 0.1 * 0.5), rtol=1e-5)


def test_adam_reduces_quadratic_loss():
    layer = _layer(seed=5, n_in=2, n_out=1)
    opt = Adam([layer], lr=0.05)
    x = np.random.default_rng(0).normal(size=(16, 2)).astype(np.float32)
    target = np.zeros((16, 1), dtype=np.float32)
    losses = []
    for _ in range(50):
        layer.zero_grad()
        out = layer.forward(x)
        losses.append(float(((out - target) ** 2).mean()))
        layer.backward(2 * (out - target) / out.size)
        opt.step()
    assert losses[-1] < losses[0]