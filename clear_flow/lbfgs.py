import numpy as np
from scipy.optimize import minimize
import logging
import time

from .errors import NumericalInstabilityError, SettingsNotSupportedError
from .feedforward import FeedForwardNetwork
from .gradients import vector_gradient
from .network import TrainingState
from .propagation import batch_error, flow, mean_error
from .weights import flatten, unflatten


class LBFGSNetwork(FeedForwardNetwork):
    """
    Fully connected feed-forward network whose weights are found by L-BFGS,
    a limited-memory quasi-Newton method (scipy's L-BFGS-B).

    The weight store is flattened into one parameter vector, the objective is
    the batch mean error as a function of that vector, and gradients come
    from central finite differences over the vector. The optimum is written
    back into the weight store in place.

    Recognized `settings.specifics`:
        m: Number of correction pairs kept in memory (default 3).
        maxLineSearchIterations: Line search bracketing budget (default 10).
        maxZoomIterations: Line search zoom budget (default 10).

    The solver stops on its own convergence test (tolerance =
    `settings.precision`) or after `settings.max_iterations` iterations, so
    no regularization is accepted.
    """

    def check_settings(self):
        if self.settings.regularization is not None:
            raise SettingsNotSupportedError("No regularization other than built-in LBFGS supported.")
        for key in ("m", "maxLineSearchIterations", "maxZoomIterations"):
            if self.settings.specific(key, 1) < 1:
                raise SettingsNotSupportedError(f"Specific '{key}' must be at least 1.")

    def _train(self, xs: np.ndarray, ys: np.ndarray):
        settings = self.settings
        memory = int(settings.specific("m", 3))
        max_zoom = int(settings.specific("maxZoomIterations", 10))
        max_line_search = int(settings.specific("maxLineSearchIterations", 10))
        delta = settings.approximation.delta if settings.approximation is not None else 1e-5

        def objective(vector: np.ndarray) -> float:
            return mean_error(batch_error(flow(self.layers, unflatten(vector, self.shapes), xs), ys))

        def gradient(vector: np.ndarray) -> np.ndarray:
            return vector_gradient(objective, vector, delta)

        iteration_start_time = [time.time()]

        def callback(vector: np.ndarray):
            iteration = len(self.training_history['iteration'])
            error = objective(vector)
            self.training_history['iteration'].append(iteration)
            self.training_history['error'].append(error)
            self.training_history['val_error'].append(None)
            self.training_history['time_per_iteration'].append(time.time() - iteration_start_time[0])
            iteration_start_time[0] = time.time()
            if settings.verbose and iteration % settings.log_every == 0:
                logging.info(f"Taking step {iteration} - error: {error:.6f}")

        self.state = TrainingState.RUNNING
        # L-BFGS-B brackets and zooms within a single line search budget.
        result = minimize(
            objective,
            flatten(self.weights),
            jac=gradient,
            method="L-BFGS-B",
            tol=settings.precision,
            callback=callback,
            options={
                "maxcor": memory,
                "maxls": max_line_search + max_zoom,
                "maxiter": settings.max_iterations,
            },
        )

        if not np.isfinite(result.fun) or not np.all(np.isfinite(result.x)):
            logging.error(f"L-BFGS ended with a non-finite result: {result.message}")
            raise NumericalInstabilityError(f"L-BFGS ended with non-finite error {result.fun}")

        for matrix, optimum in zip(self.weights, unflatten(result.x, self.shapes)):
            matrix[...] = optimum

        if result.success:
            self.state = TrainingState.CONVERGED
        else:
            self.state = TrainingState.ITERATION_LIMIT_REACHED
            if result.status != 1:
                logging.warning(f"L-BFGS stopped without converging: {result.message}")

        if settings.verbose:
            logging.info(f"Took {result.nit} iterations of {settings.max_iterations} with error "
                         f"{result.fun:.6f} ({self.state.name})")
