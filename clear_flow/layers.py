import numpy as np
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Sequence, Tuple, Union
import logging

from .activations import Activation, get_activation
from .errors import InvalidArchitectureError


class LayerKind(Enum):
    """Discriminant of the closed set of layer variants."""
    INPUT = "input"
    HIDDEN = "hidden"
    RECURRENT = "recurrent"
    OUTPUT = "output"


@dataclass(frozen=True)
class Layer:
    """
    Immutable description of one layer in a sequential network.

    A layer carries no weights. Weights live in the network's weight store,
    where matrix `i` connects layer `i` to layer `i + 1`.

    Attributes:
        kind (LayerKind): Which variant this layer is.
        neurons (int): Number of neurons (width of the signal at this layer).
        activation (Activation): Elementwise nonlinearity. `None` only for INPUT.
    """
    kind: LayerKind
    neurons: int
    activation: Optional[Activation] = None

    def activate(self, x: np.ndarray) -> np.ndarray:
        """Applies this layer's activator; the input layer passes the signal through."""
        if self.kind is LayerKind.INPUT:
            return x
        return self.activation.forward(x)

    def derivative(self, x: np.ndarray) -> np.ndarray:
        """Derivative of `activate` evaluated at the pre-activation `x`."""
        if self.kind is LayerKind.INPUT:
            return np.ones_like(x, dtype=float)
        return self.activation.backward(x)

    @property
    def is_hidden(self) -> bool:
        return self.kind in (LayerKind.HIDDEN, LayerKind.RECURRENT)

    def __repr__(self):
        if self.kind is LayerKind.INPUT:
            return f"Input({self.neurons})"
        return f"{self.kind.name.capitalize()}({self.neurons}, {self.activation!r})"


def _resolve(activation: Union[str, Activation]) -> Activation:
    if isinstance(activation, Activation):
        return activation
    if isinstance(activation, str):
        return get_activation(activation)
    raise TypeError(f"Expected an Activation or activation name, got {type(activation).__name__}")


def Input(neurons: int) -> Layer:
    return Layer(LayerKind.INPUT, neurons)


def Hidden(neurons: int, activation: Union[str, Activation]) -> Layer:
    return Layer(LayerKind.HIDDEN, neurons, _resolve(activation))


def Recurrent(neurons: int, activation: Union[str, Activation]) -> Layer:
    """A gated hidden layer; only accepted by the recurrent network."""
    return Layer(LayerKind.RECURRENT, neurons, _resolve(activation))


def Output(neurons: int, activation: Union[str, Activation]) -> Layer:
    return Layer(LayerKind.OUTPUT, neurons, _resolve(activation))


def validate_layers(layers: Sequence[Layer], recurrent: bool = False) -> List[Layer]:
    """
    Checks that `layers` describes a valid sequential architecture.

    A valid sequence starts with exactly one Input, ends with exactly one
    Output and holds only hidden layers in between, each with at least one
    neuron. Gated (RECURRENT) layers are only valid when `recurrent` is set.

    Args:
        layers: The ordered layer sequence.
        recurrent: Whether the consuming network unfolds through time.

    Returns:
        The layers as a list.

    Raises:
        InvalidArchitectureError: If any of the above is violated.
    """
    layers = list(layers)
    if len(layers) < 2:
        raise InvalidArchitectureError("A network needs at least an Input and an Output layer.")

    for i, layer in enumerate(layers):
        if not isinstance(layer, Layer):
            raise InvalidArchitectureError(f"Element {i} is not a Layer: {layer!r}")
        if not isinstance(layer.neurons, (int, np.integer)) or layer.neurons < 1:
            raise InvalidArchitectureError(f"Layer {i} ({layer!r}) must have at least one neuron.")
        if layer.kind is not LayerKind.INPUT and layer.activation is None:
            raise InvalidArchitectureError(f"Layer {i} ({layer!r}) has no activation.")

    if layers[0].kind is not LayerKind.INPUT:
        raise InvalidArchitectureError(f"The first layer must be an Input, got {layers[0]!r}.")
    if layers[-1].kind is not LayerKind.OUTPUT:
        raise InvalidArchitectureError(f"The last layer must be an Output, got {layers[-1]!r}.")

    for i, layer in enumerate(layers[1:-1], start=1):
        if layer.kind is LayerKind.RECURRENT and not recurrent:
            raise InvalidArchitectureError(
                f"Layer {i} ({layer!r}) is gated; use a recurrent network for gated layers.")
        if not layer.is_hidden:
            raise InvalidArchitectureError(
                f"Layer {i} ({layer!r}) must be Hidden; Input and Output only go at the ends.")

    logging.debug(f"Validated architecture: {layers}")
    return layers


def weight_shapes(layers: Sequence[Layer], recurrent: bool = False) -> List[Tuple[int, int]]:
    """
    Shapes of the weight store belonging to `layers`.

    Matrix `i` has shape (neurons_i, neurons_i+1). For a recurrent network one
    compressed gate matrix of shape (n, 3n) per hidden layer follows the plain
    connections, packing the input-transform, input-gate and output-gate
    sub-matrices by column range.
    """
    shapes = [(left.neurons, right.neurons) for left, right in zip(layers[:-1], layers[1:])]
    if recurrent:
        shapes += [(layer.neurons, 3 * layer.neurons) for layer in layers[1:-1]]
    return shapes
