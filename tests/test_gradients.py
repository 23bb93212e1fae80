"""
test_gradients.py
~~~~~~~~~~~~~~~~~

Unit tests for the analytic and finite-difference gradient engines.
"""

import numpy as np
import pytest

from clear_flow.gradients import analytic_gradient, finite_difference, perturbed, vector_gradient
from clear_flow.layers import Hidden, Input, Output, weight_shapes
from clear_flow.propagation import batch_error, flow
from clear_flow.weights import uniform_weights


def _problem(layers, seed, batch_size=5):
    rng = np.random.default_rng(seed)
    weights = uniform_weights(-1.0, 1.0, seed=seed)(weight_shapes(layers))
    inputs = rng.normal(size=(batch_size, layers[0].neurons))
    targets = rng.uniform(-0.5, 0.5, size=(batch_size, layers[-1].neurons))
    return weights, inputs, targets


@pytest.mark.unit
class TestPerturbed:

    def test_value_set_inside_and_restored_after(self):
        matrix = np.array([[1.0, 2.0]])
        with perturbed(matrix, (0, 1), 7.0) as original:
            assert original == 2.0
            assert matrix[0, 1] == 7.0
        assert matrix[0, 1] == 2.0

    def test_restored_when_block_raises(self):
        matrix = np.array([[1.0, 2.0]])
        with pytest.raises(RuntimeError):
            with perturbed(matrix, (0, 0), -3.0):
                raise RuntimeError("evaluation failed")
        assert matrix[0, 0] == 1.0


@pytest.mark.unit
class TestGradientCheck:
    """Analytic and finite-difference gradients agree on small networks."""

    @pytest.mark.parametrize("seed", [0, 1, 2])
    @pytest.mark.parametrize("layers", [
        [Input(2), Hidden(3, 'sigmoid'), Output(1, 'sigmoid')],
        [Input(3), Hidden(4, 'tanh'), Hidden(3, 'sigmoid'), Output(2, 'tanh')],
        [Input(2), Output(2, 'linear')],
    ])
    def test_analytic_matches_finite_difference(self, layers, seed):
        weights, inputs, targets = _problem(layers, seed)
        error_fn = lambda: batch_error(flow(layers, weights, inputs), targets)

        for layer, matrix in enumerate(weights):
            for index in np.ndindex(*matrix.shape):
                analytic = analytic_gradient(layers, weights, inputs, targets, layer, index)
                approximate = finite_difference(error_fn, matrix, index, delta=1e-6)
                assert analytic.shape == (layers[-1].neurons,)
                assert np.allclose(analytic, approximate, atol=1e-4), (layer, index)

    def test_analytic_gradient_does_not_modify_weights(self, deep_layers):
        weights, inputs, targets = _problem(deep_layers, 3)
        before = [w.copy() for w in weights]
        analytic_gradient(deep_layers, weights, inputs, targets, 1, (2, 1))
        assert all(np.array_equal(a, b) for a, b in zip(before, weights))

    def test_zero_at_perfect_fit(self):
        layers = [Input(1), Output(1, 'linear')]
        weights = [np.array([[2.0]])]
        inputs = np.array([[1.0], [3.0]])
        targets = inputs * 2.0
        assert np.allclose(analytic_gradient(layers, weights, inputs, targets, 0, (0, 0)), 0.0)


@pytest.mark.unit
class TestFiniteDifference:

    def test_weights_restored_after_probe(self, deep_layers):
        weights, inputs, targets = _problem(deep_layers, 4)
        before = [w.copy() for w in weights]
        finite_difference(lambda: batch_error(flow(deep_layers, weights, inputs), targets),
                          weights[0], (1, 2))
        assert all(np.array_equal(a, b) for a, b in zip(before, weights))

    def test_weights_restored_when_error_fn_raises(self):
        matrix = np.array([[0.5]])

        def failing():
            raise FloatingPointError("diverged")

        with pytest.raises(FloatingPointError):
            finite_difference(failing, matrix, (0, 0))
        assert matrix[0, 0] == 0.5

    def test_second_order(self):
        array = np.array([2.0])
        second = finite_difference(lambda: np.array([array[0] ** 3]), array, 0, delta=1e-3, order=2)
        assert second[0] == pytest.approx(12.0, rel=1e-5)
        assert array[0] == 2.0

    def test_invalid_order_raises(self):
        with pytest.raises(ValueError):
            finite_difference(lambda: np.zeros(1), np.zeros(1), 0, order=0)


@pytest.mark.unit
class TestVectorGradient:

    def test_quadratic(self):
        vector = np.array([1.0, -2.0, 0.5])
        gradient = vector_gradient(lambda v: float(np.sum(v ** 2)), vector, delta=1e-5)
        assert np.allclose(gradient, 2 * vector, atol=1e-6)

    def test_vector_not_modified(self):
        vector = np.array([1.0, 2.0])
        vector_gradient(lambda v: float(v[0] * v[1]), vector)
        assert np.array_equal(vector, [1.0, 2.0])
