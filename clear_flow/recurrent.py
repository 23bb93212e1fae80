import numpy as np
from typing import List, Tuple
import logging

from .errors import SettingsNotSupportedError
from .gradients import finite_difference
from .layers import LayerKind
from .network import Network
from .propagation import as_matrix, batch_error, gated_step
from .settings import EarlyStopping


class LSTMNetwork(Network):
    """
    Recurrent network with gated (LSTM-style) hidden layers, unfolded through time.

    Every hidden layer keeps a memory cell, a (1, neurons) state vector that
    is updated at every time step and reset to zero at the start of each
    sequence pass. Inputs and targets are sequences: element t of the input
    sequence produces element t of the output sequence.

    Weight store layout: the plain connections (matrix i connects layer i to
    layer i + 1), followed by one compressed (n, 3n) gate matrix per hidden
    layer in layer order.

    Training is plain gradient descent with step `settings.learning_rate` on
    finite-difference gradients; `settings.approximation` is required since no
    analytic gradient exists for the unfolded evaluator.
    """

    recurrent = True

    def __init__(self, layers, settings=None, weight_provider=None):
        super().__init__(layers, settings, weight_provider)
        self.hidden_layers = self.layers[1:-1]
        self.memory_cells: List[np.ndarray] = [np.zeros((1, layer.neurons)) for layer in self.hidden_layers]

    def check_settings(self):
        if self.settings.specifics:
            raise SettingsNotSupportedError("No specifics settings supported. Remove it from the settings object.")
        if self.settings.approximation is None:
            raise SettingsNotSupportedError(
                "Recurrent networks are trained with finite differences only; set an Approximation.")
        regularization = self.settings.regularization
        if regularization is not None and not isinstance(regularization, EarlyStopping):
            raise SettingsNotSupportedError("No regularization other than EarlyStopping is supported.")

    def reset(self):
        """Resets every memory cell to zero."""
        for cell in self.memory_cells:
            cell.fill(0.0)

    def evaluate(self, inputs) -> List[np.ndarray]:
        """
        Computes the output sequence for the input sequence `inputs`.

        Memory cells are reset first, so repeated calls with the same
        sequence and weights give the same result.

        Returns:
            One 1-D output vector per time step.
        """
        with self._lock:
            xs = as_matrix(inputs, self.input_neurons)
            return list(self._unfold(xs))

    def _unfold(self, xs: np.ndarray) -> np.ndarray:
        """Runs the whole sequence from fresh memory cells; returns (steps, output_neurons)."""
        self.reset()
        previous_outputs = [np.zeros((1, layer.neurons)) for layer in self.hidden_layers]
        outputs = []
        for x in xs:
            output, previous_outputs = self._step(x.reshape(1, -1), previous_outputs)
            outputs.append(output)
        return np.vstack(outputs)

    def _step(self, signal: np.ndarray, previous_outputs: List[np.ndarray]) -> Tuple[np.ndarray, List[np.ndarray]]:
        """Computes one time step; returns the network output and each hidden layer's output."""
        gates_offset = len(self.layers) - 1
        new_outputs = []
        for cursor, layer in enumerate(self.layers):
            if layer.kind is LayerKind.INPUT:
                signal = signal @ self.weights[cursor]
            elif layer.kind in (LayerKind.HIDDEN, LayerKind.RECURRENT):
                h = cursor - 1
                output = gated_step(layer, signal, previous_outputs[h],
                                    self.weights[gates_offset + h], self.memory_cells[h])
                new_outputs.append(output)
                signal = output @ self.weights[cursor]
            elif layer.kind is LayerKind.OUTPUT:
                signal = layer.activate(signal)
        return signal, new_outputs

    def _error(self, xs: np.ndarray, ys: np.ndarray) -> np.ndarray:
        return batch_error(self._unfold(xs), ys)

    def _adapt_weights(self, xs: np.ndarray, ys: np.ndarray):
        delta = self.settings.approximation.delta
        step_size = self.settings.learning_rate
        for layer, matrix in enumerate(self.weights):
            for index in np.ndindex(*matrix.shape):
                gradient = finite_difference(lambda: self._error(xs, ys), matrix, index, delta)
                matrix[index] -= step_size * float(np.mean(gradient))
        logging.debug(f"Adapted {sum(w.size for w in self.weights)} weights")
