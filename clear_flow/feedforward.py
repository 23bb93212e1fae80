import numpy as np
import logging

from .errors import SettingsNotSupportedError
from .gradients import analytic_gradient, finite_difference
from .line_search import backtracking_step
from .network import Network
from .propagation import as_matrix, batch_error, flow, mean_error
from .settings import EarlyStopping


class FeedForwardNetwork(Network):
    """
    Fully connected feed-forward network trained by gradient descent with a
    backtracking line search (Armijo–Goldstein condition).

    Every weight entry gets its own step size per iteration: the search
    starts at `settings.learning_rate` and shrinks until the error decreases
    enough. This converges in fewer iterations than a fixed step at the cost
    of extra error evaluations, so `learning_rate` should be a generous
    starting value.

    Gradients are analytic unless `settings.approximation` is set. The line
    search constants come from `settings.specifics` ("τ" or "tau", and "c"),
    both defaulting to 0.5.
    """

    def check_settings(self):
        regularization = self.settings.regularization
        if regularization is not None and not isinstance(regularization, EarlyStopping):
            raise SettingsNotSupportedError("No regularization other than EarlyStopping is supported.")
        tau = self.settings.specific("τ", 0.5, "tau")
        c = self.settings.specific("c", 0.5)
        if not 0.0 < tau < 1.0 or not 0.0 < c < 1.0:
            raise SettingsNotSupportedError(f"Line search needs 0 < τ < 1 and 0 < c < 1, got τ={tau}, c={c}.")

    def evaluate(self, x) -> np.ndarray:
        """
        Computes the output vector for a single input vector `x`.

        Returns:
            1-D array of length output_neurons.
        """
        with self._lock:
            signal = as_matrix(x, self.input_neurons)
            if signal.shape[0] != 1:
                raise ValueError(f"evaluate expects a single input vector, got {signal.shape[0]}. Use predict.")
            return flow(self.layers, self.weights, signal)[0]

    def predict(self, X) -> np.ndarray:
        """
        Computes outputs for a batch of inputs.

        Args:
            X: Input data (num_samples, input_neurons).

        Returns:
            Network outputs (num_samples, output_neurons).
        """
        with self._lock:
            return flow(self.layers, self.weights, as_matrix(X, self.input_neurons))

    def _error(self, xs: np.ndarray, ys: np.ndarray) -> np.ndarray:
        return batch_error(flow(self.layers, self.weights, xs), ys)

    def gradient(self, xs: np.ndarray, ys: np.ndarray, layer: int, index) -> np.ndarray:
        """
        Gradient of the batch error w.r.t. one weight entry, per output neuron.

        Uses finite central differences when `settings.approximation` is set,
        the analytic chain rule otherwise.
        """
        approximation = self.settings.approximation
        if approximation is not None:
            return finite_difference(lambda: self._error(xs, ys), self.weights[layer], index,
                                     approximation.delta)
        return analytic_gradient(self.layers, self.weights, xs, ys, layer, index)

    def _adapt_weights(self, xs: np.ndarray, ys: np.ndarray):
        tau = self.settings.specific("τ", 0.5, "tau")
        c = self.settings.specific("c", 0.5)
        objective = lambda: mean_error(self._error(xs, ys))

        # Entries are visited in order and updated immediately; later gradients see earlier updates.
        for layer, matrix in enumerate(self.weights):
            for index in np.ndindex(*matrix.shape):
                direction = float(np.mean(-self.gradient(xs, ys, layer, index)))
                step = backtracking_step(objective, matrix, index, self.settings.learning_rate,
                                         direction, tau=tau, c=c)
                logging.debug(f"Weight {layer}{index}: direction {direction:.3e}, step {step:.3e}")
                matrix[index] += step * direction
