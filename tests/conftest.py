"""
conftest.py
~~~~~~~~~~~

Shared fixtures for the clear_flow test suite.
"""

import numpy as np
import pytest

from clear_flow import Hidden, Input, Output, Settings


@pytest.fixture
def xor_data():
    """The four XOR pairs as (inputs, targets) matrices."""
    X = np.array([[0.0, 0.0], [0.0, 1.0], [1.0, 0.0], [1.0, 1.0]])
    y = np.array([[0.0], [1.0], [1.0], [0.0]])
    return X, y


@pytest.fixture
def xor_layers():
    return [Input(2), Hidden(3, 'sigmoid'), Output(1, 'sigmoid')]


@pytest.fixture
def deep_layers():
    """Two hidden layers and a multi-neuron output, for gradient checks."""
    return [Input(3), Hidden(4, 'tanh'), Hidden(3, 'sigmoid'), Output(2, 'tanh')]


@pytest.fixture
def quiet_settings():
    """Settings factory with logging of training progress switched off."""
    def make(**kwargs):
        kwargs.setdefault('verbose', False)
        return Settings(**kwargs)
    return make


@pytest.fixture
def sinusoid():
    """cos(10 s) -> sin(10 s) for s in [0, 1) with step 0.1."""
    s = np.arange(0.0, 1.0, 0.1)
    return np.cos(10 * s).reshape(-1, 1), np.sin(10 * s).reshape(-1, 1)
