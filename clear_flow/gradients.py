"""
Gradient engines.

Two interchangeable strategies produce the derivative of the batch error
with respect to a single weight entry:

- `analytic_gradient`: closed-form chain rule, feed-forward networks only.
- `finite_difference`: central differences, works for any evaluator
  (the only option for the recurrent network).

Both return one value per output neuron; the training drivers reduce that
vector with its mean.
"""
import numpy as np
from contextlib import contextmanager
from typing import Callable, Generator, Sequence, Tuple, Union
import logging

from .layers import Layer
from .propagation import pre_activations

Index = Union[int, Tuple[int, int]]


@contextmanager
def perturbed(array: np.ndarray, index: Index, value: float) -> Generator[float, None, None]:
    """
    Temporarily sets `array[index]` to `value`.

    The original value is restored when the block exits, including when the
    block raises.

    Yields:
        The original value.
    """
    original = array[index]
    array[index] = value
    try:
        yield original
    finally:
        array[index] = original


def analytic_gradient(layers: Sequence[Layer], weights: Sequence[np.ndarray],
                      inputs: np.ndarray, targets: np.ndarray,
                      layer: int, index: Tuple[int, int]) -> np.ndarray:
    """
    Derivative of the batch error w.r.t. entry `index` of weight matrix `layer`.

    The studied matrix is replaced by an indicator matrix (1 at `index`,
    0 elsewhere), so `activate(z_layer) @ indicator` is the derivative of
    the next layer's input w.r.t. the studied weight. That sensitivity is then
    carried forward to the output: multiplied by each downstream activator's
    derivative and, between layers, by the live weight matrices. The result is
    weighted with (prediction - target) and summed over the batch.

    Cost grows with (number of weights) x (number of layers) since each call
    runs its own forward pass; fine for small networks.

    Args:
        layers: Validated feed-forward layer sequence.
        weights: Current weight store (read, never modified).
        inputs: (batch_size, input_neurons) matrix.
        targets: (batch_size, output_neurons) matrix.
        layer: Index of the weight matrix holding the studied entry.
        index: (row, col) of the studied entry.

    Returns:
        Gradient per output neuron, shape (output_neurons,).
    """
    zs = pre_activations(layers, weights, inputs)
    prediction = layers[-1].activate(zs[-1])

    indicator = np.zeros_like(weights[layer])
    indicator[index] = 1.0

    last = len(layers) - 1
    chain = layers[layer].activate(zs[layer]) @ indicator
    for k in range(layer + 1, last + 1):
        chain = layers[k].derivative(zs[k]) * chain
        if k < last:
            chain = chain @ weights[k]

    return np.sum((prediction - targets) * chain, axis=0)


def finite_difference(error_fn: Callable[[], np.ndarray], array: np.ndarray, index: Index,
                      delta: float = 1e-6, order: int = 1) -> np.ndarray:
    """
    Central-difference derivative of `error_fn` w.r.t. `array[index]`.

    The entry is probed at value - delta and value + delta:

        (E(v + delta) - E(v - delta)) / (2 * delta)

    and restored afterwards, also if `error_fn` raises. With `order=2` the
    first-order probe is differenced again, approximating the second
    derivative.

    Args:
        error_fn: Evaluates the batch error with the current weights.
        array: The weight matrix (or flat vector) holding the entry.
        index: Position of the entry.
        delta: Probe distance.
        order: Derivative order (1 or higher).
    """
    if order < 1:
        raise ValueError(f"Derivative order must be at least 1, got {order}")
    if order == 1:
        probe = error_fn
    else:
        probe = lambda: finite_difference(error_fn, array, index, delta, order - 1)

    value = array[index]
    with perturbed(array, index, value - delta):
        below = probe()
    with perturbed(array, index, value + delta):
        above = probe()
    return (np.asarray(above) - np.asarray(below)) / (2 * delta)


def vector_gradient(objective: Callable[[np.ndarray], float], vector: np.ndarray,
                    delta: float = 1e-5) -> np.ndarray:
    """
    Central-difference gradient of a scalar objective over a flat parameter vector.

    Args:
        objective: Scalar function of the full parameter vector.
        vector: Point at which the gradient is taken (not modified).
        delta: Probe distance per component.

    Returns:
        Gradient vector with the same shape as `vector`.
    """
    probe = np.array(vector, dtype=float, copy=True)
    gradient = np.empty_like(probe)
    for i in range(probe.size):
        gradient[i] = finite_difference(lambda: objective(probe), probe, i, delta)
    logging.debug(f"Approximated gradient over {probe.size} parameters, norm {np.linalg.norm(gradient):.3e}")
    return gradient
