"""
Forward propagation and the squared-error evaluator.

Signals are row vectors: one sample is a (1, n) matrix and a batch of samples
is stacked into a (batch_size, n) matrix. Rows never interact during a
forward pass, so evaluating the stacked batch computes every sample's terms
independently; the batch error then sums them, an order-independent
reduction.
"""
import numpy as np
from typing import List, Optional, Sequence

from .activations import Sigmoid
from .layers import Layer

_GATE = Sigmoid()


def as_matrix(vectors, neurons: int, name: str = "input") -> np.ndarray:
    """
    Stacks a sequence of vectors into a (batch_size, neurons) float matrix.

    Raises:
        ValueError: If the data is empty, not 1-D/2-D, or has the wrong width.
    """
    matrix = np.asarray(vectors, dtype=float)
    if matrix.ndim == 1:
        matrix = matrix.reshape(1, -1)
    if matrix.ndim != 2:
        raise ValueError(f"Expected a sequence of {name} vectors, got an array of shape {matrix.shape}.")
    if matrix.shape[0] == 0:
        raise ValueError(f"Expected at least one {name} vector.")
    if matrix.shape[1] != neurons:
        raise ValueError(f"Expected {name} vectors of length {neurons}, got {matrix.shape[1]}.")
    return matrix


def flow(layers: Sequence[Layer], weights: Sequence[np.ndarray], signal: np.ndarray,
         target: Optional[int] = None) -> np.ndarray:
    """
    Propagates `signal` from the input layer up to layer index `target`.

    For each layer from 0 to `target`, the layer's activator is applied and,
    if a following weight matrix exists, the result is multiplied by it. So
    for `target < len(layers) - 1` the result is the pre-activation input of
    layer `target + 1`, and for the last layer it is the network output.
    A negative `target` returns the signal untouched.

    Args:
        layers: Validated layer sequence.
        weights: Weight store; only the first len(layers) - 1 matrices are read.
        signal: (batch_size, input_neurons) matrix.
        target: Last layer index to process (defaults to the output layer).
    """
    last = len(layers) - 1
    if target is None:
        target = last
    for cursor in range(target + 1):
        signal = layers[cursor].activate(signal)
        if cursor < last:
            signal = signal @ weights[cursor]
    return signal


def pre_activations(layers: Sequence[Layer], weights: Sequence[np.ndarray],
                    signal: np.ndarray) -> List[np.ndarray]:
    """
    Returns the input received by every layer: [z_0, ..., z_last].

    z_0 is the raw input and z_k+1 = activate_k(z_k) @ W_k, i.e. entry k equals
    `flow(layers, weights, signal, k - 1)`.
    """
    zs = [signal]
    for cursor in range(len(layers) - 1):
        zs.append(layers[cursor].activate(zs[-1]) @ weights[cursor])
    return zs


def gated_step(layer: Layer, signal: np.ndarray, previous_output: np.ndarray,
               compressed: np.ndarray, memory_cell: np.ndarray) -> np.ndarray:
    """
    One time step of a gated hidden layer.

    The compressed (n, 3n) matrix is split by column range into the
    input-transform, input-gate and output-gate recurrent weights:

        net_in   = activation(signal + previous_output @ W_in)
        gate_in  = sigmoid(signal + previous_output @ W_gate_in)
        gate_out = sigmoid(signal + previous_output @ W_gate_out)
        cell     = net_in * gate_in + cell
        output   = activation(cell) * gate_out

    `memory_cell` is updated in place.

    Args:
        layer: The hidden layer (supplies the activation).
        signal: (1, n) pre-activation input coming from the previous layer.
        previous_output: (1, n) output of this layer at the previous time step.
        compressed: (n, 3n) recurrent weight matrix.
        memory_cell: (1, n) persistent state of this layer.

    Returns:
        (1, n) output of the layer for this time step.
    """
    n = layer.neurons
    w_in, w_gate_in, w_gate_out = compressed[:, :n], compressed[:, n:2 * n], compressed[:, 2 * n:]
    net_in = layer.activation.forward(signal + previous_output @ w_in)
    gate_in = _GATE.forward(signal + previous_output @ w_gate_in)
    gate_out = _GATE.forward(signal + previous_output @ w_gate_out)
    memory_cell += net_in * gate_in
    return layer.activation.forward(memory_cell) * gate_out


def batch_error(predictions: np.ndarray, targets: np.ndarray) -> np.ndarray:
    """
    Evaluates Σ 0.5 * (prediction - target)² over the batch.

    Returns:
        Error per output neuron, shape (output_neurons,).
    """
    if predictions.shape != targets.shape:
        raise ValueError(f"Prediction shape {predictions.shape} must match target shape {targets.shape}")
    return np.sum(0.5 * (predictions - targets) ** 2, axis=0)


def mean_error(error: np.ndarray) -> float:
    """Reduces a per-output error vector to the scalar used for convergence tests."""
    return float(np.mean(error))
