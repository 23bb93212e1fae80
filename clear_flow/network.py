import numpy as np
from enum import Enum
from typing import Dict, List, Optional, Sequence, Tuple
import logging
import threading
import time

from .errors import NumericalInstabilityError
from .layers import Layer, validate_layers, weight_shapes
from .propagation import as_matrix, mean_error
from .settings import EarlyStopping, Settings
from .weights import WeightProvider, check_weights, save_weights, uniform_weights


class TrainingState(Enum):
    IDLE = "idle"
    RUNNING = "running"
    CONVERGED = "converged"
    ITERATION_LIMIT_REACHED = "iteration_limit_reached"
    EARLY_STOPPED = "early_stopped"


class Network:
    """
    Base class for sequential networks trained on labeled vector pairs.

    Owns the layer sequence, the settings and the weight store. The weight
    store is created once from the weight provider and then mutated in place
    by training. Calls to `train` and `evaluate` on one instance are
    serialized by an internal lock; the weights and any recurrent state are
    never shared between instances.

    Subclasses implement `check_settings`, `_error`, `_adapt_weights` and
    their own `evaluate`.
    """

    recurrent = False

    def __init__(
        self,
        layers: Sequence[Layer],
        settings: Optional[Settings] = None,
        weight_provider: Optional[WeightProvider] = None,
    ):
        """
        Initializes the network.

        Args:
            layers: Ordered layer sequence, Input first and Output last.
            settings: Training configuration. Defaults to `Settings()`.
            weight_provider: Callable producing the initial weight store from
                             the required shapes. Defaults to uniform weights
                             in [-0.2, 0.2).

        Raises:
            InvalidArchitectureError: If the layer sequence is invalid.
            SettingsNotSupportedError: If this network cannot train with `settings`.
            ValueError: If the provider returns matrices of the wrong shape.
        """
        self.layers: List[Layer] = validate_layers(layers, recurrent=self.recurrent)
        self.settings = settings if settings is not None else Settings()
        self.check_settings()

        self.shapes = weight_shapes(self.layers, recurrent=self.recurrent)
        provider = weight_provider if weight_provider is not None else uniform_weights()
        weights = provider(self.shapes)
        check_weights(weights, self.shapes)
        self.weights: List[np.ndarray] = [np.array(w, dtype=float, copy=True) for w in weights]

        self.state = TrainingState.IDLE
        self._lock = threading.RLock()
        self._best_validation_error = np.inf

        # Training history tracking
        self.training_history: Dict[str, List] = {
            'iteration': [],
            'error': [],
            'val_error': [],
            'time_per_iteration': []
        }

        logging.info(f"Created {self.__class__.__name__} with architecture: {self.layers}")

    @property
    def input_neurons(self) -> int:
        return self.layers[0].neurons

    @property
    def output_neurons(self) -> int:
        return self.layers[-1].neurons

    def check_settings(self):
        """
        Checks that `self.settings` can be used by this network.

        Raises:
            SettingsNotSupportedError: If an option is incompatible.
        """

    def train(self, inputs, targets):
        """
        Trains the network so that `inputs` map onto `targets`.

        Mutates the weight store in place; the outcome is left in `self.state`.

        Args:
            inputs: Sequence of input vectors.
            targets: Sequence of target vectors, one per input.
        """
        with self._lock:
            xs, ys = self._prepare(inputs, targets)
            self._train(xs, ys)

    def _prepare(self, inputs, targets) -> Tuple[np.ndarray, np.ndarray]:
        xs = as_matrix(inputs, self.input_neurons, "input")
        ys = as_matrix(targets, self.output_neurons, "target")
        if xs.shape[0] != ys.shape[0]:
            raise ValueError(f"Number of inputs ({xs.shape[0]}) and targets ({ys.shape[0]}) must match.")
        return xs, ys

    def _train(self, xs: np.ndarray, ys: np.ndarray):
        self._run(xs, ys)

    def _error(self, xs: np.ndarray, ys: np.ndarray) -> np.ndarray:
        """Batch error per output neuron with the current weights."""
        raise NotImplementedError

    def _adapt_weights(self, xs: np.ndarray, ys: np.ndarray):
        """One sweep over every weight entry, updating in place."""
        raise NotImplementedError

    def _run(self, xs: np.ndarray, ys: np.ndarray):
        """
        Iterates until converged, out of iterations or stopped early.

        Each iteration evaluates the batch error and tests, in this order,
        mean error <= precision, iteration >= max_iterations and the early
        stopping signal. If none holds, one sweep of weight updates is taken.

        Raises:
            NumericalInstabilityError: If the batch error becomes NaN or Inf.
        """
        settings = self.settings
        self._best_validation_error = np.inf
        self.state = TrainingState.RUNNING
        iteration = 0

        while True:
            iteration_start_time = time.time()
            error = self._error(xs, ys)
            current = mean_error(error)

            if not np.all(np.isfinite(error)):
                logging.error(f"Non-finite error {error} at iteration {iteration}. Stopping training.")
                raise NumericalInstabilityError(
                    f"Batch error became non-finite at iteration {iteration}: {error}")

            if current <= settings.precision:
                self.state = TrainingState.CONVERGED
                break
            if iteration >= settings.max_iterations:
                self.state = TrainingState.ITERATION_LIMIT_REACHED
                break
            val_error = self._validation_error()
            if self._should_stop_early(val_error):
                self.state = TrainingState.EARLY_STOPPED
                break

            if settings.verbose and iteration % settings.log_every == 0:
                msg = f"Taking step {iteration} - error: {current:.6f}, error per sample: {np.sum(error) / len(xs):.6f}"
                if val_error is not None:
                    msg += f" - val_error: {val_error:.6f}"
                logging.info(msg)

            self._adapt_weights(xs, ys)

            self.training_history['iteration'].append(iteration)
            self.training_history['error'].append(current)
            self.training_history['val_error'].append(val_error)
            self.training_history['time_per_iteration'].append(time.time() - iteration_start_time)
            iteration += 1

        if settings.verbose:
            logging.info(f"Took {iteration} iterations of {settings.max_iterations} with error "
                         f"{current:.6f} ({self.state.name})")

    def _validation_error(self) -> Optional[float]:
        """Mean error on the early stopping validation set, or None without early stopping."""
        regularization = self.settings.regularization
        if not isinstance(regularization, EarlyStopping):
            return None
        xs, ys = self._prepare(regularization.inputs, regularization.targets)
        return mean_error(self._error(xs, ys))

    def _should_stop_early(self, val_error: Optional[float]) -> bool:
        if val_error is None:
            return False
        factor = self.settings.regularization.factor
        if val_error > factor * self._best_validation_error:
            logging.info(f"Validation error {val_error:.6f} exceeds {factor} x best "
                         f"({self._best_validation_error:.6f}). Stopping early.")
            return True
        self._best_validation_error = min(self._best_validation_error, val_error)
        return False

    def save_weights(self, filename: str) -> str:
        """Saves the weight store to a compressed .npz file; see `clear_flow.weights.load_weights`."""
        with self._lock:
            return save_weights(self.weights, filename)

    def summary(self) -> str:
        """
        Generates a text summary of the network architecture and parameters.

        Returns:
            A string containing the network summary.
        """
        summary_str = "\n" + "="*50 + "\n"
        summary_str += f"{self.__class__.__name__} Summary\n"
        summary_str += "="*50 + "\n"
        for i, layer in enumerate(self.layers):
            summary_str += f"Layer {i}: {layer!r}\n"
        summary_str += "-"*50 + "\n"
        for i, w in enumerate(self.weights):
            summary_str += f"Weights {i}: shape {w.shape}, {w.size} parameters\n"
        summary_str += "-"*50 + "\n"
        summary_str += f"Total Parameters: {sum(w.size for w in self.weights)}\n"
        summary_str += f"State: {self.state.name}\n"
        summary_str += "="*50 + "\n"
        return summary_str

    def __repr__(self):
        return f"{self.__class__.__name__}(layers={self.layers})"
