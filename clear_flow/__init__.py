"""
clear_flow
~~~~~~~~~~

Small sequential neural networks trained from labeled vector pairs with
NumPy: feed-forward networks trained by line-search gradient descent or
L-BFGS, and gated recurrent networks unfolded through time.
"""

from .activations import Activation, Linear, Power, ReLU, Sigmoid, Tanh, get_activation
from .errors import (
    ConfigurationError,
    InvalidArchitectureError,
    NumericalInstabilityError,
    SettingsNotSupportedError,
)
from .feedforward import FeedForwardNetwork
from .layers import Hidden, Input, Layer, LayerKind, Output, Recurrent, validate_layers, weight_shapes
from .lbfgs import LBFGSNetwork
from .network import Network, TrainingState
from .recurrent import LSTMNetwork
from .settings import Approximation, EarlyStopping, Settings
from .weights import (
    array_weights,
    file_weights,
    flatten,
    load_weights,
    save_weights,
    uniform_weights,
    unflatten,
    xavier_weights,
)

__version__ = "1.0.0"
