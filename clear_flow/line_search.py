import numpy as np
from typing import Callable, Tuple
import logging

from .gradients import perturbed

# Below this the step no longer moves the weight; the decrease test holds trivially at 0.
_MIN_STEP = np.finfo(float).tiny


def backtracking_step(objective: Callable[[], float], array: np.ndarray, index: Tuple[int, int],
                      step: float, direction: float, tau: float = 0.5, c: float = 0.5) -> float:
    """
    Backtracking line search (Armijo–Goldstein) for a single weight entry.

    With `v` the current value, `d` the descent direction and `m = -d²` the
    slope of the objective along `d`, the step `s` is accepted once

        f(v) - f(v + s * d) >= -c * s * m

    Otherwise it is shrunk to `s * tau` and tested again. The entry holds
    its original value again when this function returns.

    Args:
        objective: Batch mean error evaluated with the current weights.
        array: Weight matrix holding the entry.
        index: (row, col) of the entry.
        step: Initial step size.
        direction: Descent direction, the negated mean gradient.
        tau: Shrink factor, 0 < tau < 1.
        c: Sufficient-decrease constant, 0 < c < 1.

    Returns:
        The first accepted step size (0.0 if the step shrank to nothing).
    """
    if not 0.0 < tau < 1.0:
        raise ValueError(f"Line search tau must be in (0, 1), got {tau}")
    if not 0.0 < c < 1.0:
        raise ValueError(f"Line search c must be in (0, 1), got {c}")

    value = array[index]
    slope = -direction * direction
    current = objective()

    while step >= _MIN_STEP:
        with perturbed(array, index, value + step * direction):
            trial = objective()
        if current - trial >= -c * step * slope:
            return step
        step *= tau

    logging.warning(f"Line search for weight {index} shrank the step to zero "
                    f"(direction {direction:.3e}, error {current:.6f}).")
    return 0.0
