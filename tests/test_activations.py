"""
test_activations.py
~~~~~~~~~~~~~~~~~~~

Unit tests for activation functions and their derivatives.
"""

import numpy as np
import pytest

from clear_flow.activations import Linear, Power, ReLU, Sigmoid, Tanh, get_activation


@pytest.mark.unit
class TestActivations:
    """Forward values and derivatives."""

    @pytest.mark.parametrize("activation", [Sigmoid(), Tanh(), Linear(), Power(3.0)])
    def test_backward_matches_numerical_derivative(self, activation):
        x = np.linspace(-2.0, 2.0, 9).reshape(1, -1)
        h = 1e-6
        numerical = (activation.forward(x + h) - activation.forward(x - h)) / (2 * h)
        assert np.allclose(activation.backward(x), numerical, atol=1e-6)

    def test_relu_derivative_away_from_kink(self):
        x = np.array([[-1.5, -0.1, 0.1, 2.0]])
        assert np.array_equal(ReLU().backward(x), np.array([[0.0, 0.0, 1.0, 1.0]]))
        assert np.array_equal(ReLU().forward(x), np.array([[0.0, 0.0, 0.1, 2.0]]))

    def test_sigmoid_large_inputs_stay_finite(self):
        out = Sigmoid().forward(np.array([-1e4, 0.0, 1e4]))
        assert np.all(np.isfinite(out))
        assert out[1] == pytest.approx(0.5)

    def test_linear_derivative_is_float_ones(self):
        d = Linear().backward(np.array([1, 2, 3]))
        assert d.dtype == float
        assert np.array_equal(d, np.ones(3))

    def test_activation_is_callable(self):
        assert Tanh()(0.0) == pytest.approx(0.0)


@pytest.mark.unit
class TestGetActivation:
    """Factory lookup by name."""

    def test_lookup_is_case_insensitive(self):
        assert isinstance(get_activation("SIGMOID"), Sigmoid)
        assert isinstance(get_activation("tanh"), Tanh)

    def test_kwargs_are_forwarded(self):
        power = get_activation("power", n=3)
        assert power.n == 3

    def test_unknown_name_raises(self):
        with pytest.raises(ValueError, match="Unknown activation function"):
            get_activation("softsign")
