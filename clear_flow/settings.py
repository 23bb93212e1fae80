import numpy as np
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Sequence


@dataclass(frozen=True)
class Approximation:
    """Finite central differences with step `delta` instead of analytic gradients."""
    delta: float = 1e-6

    def __post_init__(self):
        if not self.delta > 0:
            raise ValueError(f"Approximation delta must be positive, got {self.delta}")


@dataclass
class EarlyStopping:
    """
    Stop training once the error on a validation set stops improving.

    The monitored signal is the mean error over `inputs`/`targets`. Training
    stops as soon as it exceeds `factor` times the best value seen so far.

    Attributes:
        inputs: Validation inputs (a sequence of vectors, or one sequence for
                recurrent networks).
        targets: Matching validation targets.
        factor: Tolerated growth over the best validation error (>= 1.0).
    """
    inputs: Sequence[Any]
    targets: Sequence[Any]
    factor: float = 1.0

    def __post_init__(self):
        if len(self.inputs) != len(self.targets):
            raise ValueError(f"EarlyStopping needs as many targets ({len(self.targets)}) "
                             f"as inputs ({len(self.inputs)}).")
        if len(self.inputs) == 0:
            raise ValueError("EarlyStopping needs at least one validation sample.")
        if self.factor < 1.0:
            raise ValueError(f"EarlyStopping factor must be >= 1.0, got {self.factor}")


@dataclass
class Settings:
    """
    Training configuration shared by every network type.

    Attributes:
        learning_rate: Initial step size (starting value of the line search,
                       or the fixed step of the recurrent driver).
        precision: Training is converged once the mean error is <= precision.
        max_iterations: Iteration budget.
        verbose: Log error and iteration while training.
        log_every: Log cadence in iterations when `verbose` is set.
        regularization: `None` or an `EarlyStopping` instance.
        approximation: Finite-difference step; `None` selects analytic gradients
                       where the network supports them.
        specifics: Algorithm-specific numeric parameters, e.g. the line search
                   "τ"/"c" or the L-BFGS memory depth "m".
    """
    learning_rate: float = 0.1
    precision: float = 1e-5
    max_iterations: int = 100
    verbose: bool = True
    log_every: int = 1
    regularization: Optional[Any] = None
    approximation: Optional[Approximation] = None
    specifics: Optional[Dict[str, float]] = field(default=None)

    def __post_init__(self):
        if not self.learning_rate > 0:
            raise ValueError(f"learning_rate must be positive, got {self.learning_rate}")
        if self.precision < 0:
            raise ValueError(f"precision must be non-negative, got {self.precision}")
        if self.max_iterations < 0:
            raise ValueError(f"max_iterations must be non-negative, got {self.max_iterations}")
        if self.log_every < 1:
            raise ValueError(f"log_every must be at least 1, got {self.log_every}")
        if self.specifics is not None:
            for key, value in self.specifics.items():
                if not np.isfinite(value):
                    raise ValueError(f"Specific '{key}' must be a finite number, got {value}")

    def specific(self, key: str, default: float, *aliases: str) -> float:
        """Looks up `key` (or one of its aliases) in `specifics`, falling back to `default`."""
        if not self.specifics:
            return default
        for name in (key,) + aliases:
            if name in self.specifics:
                return self.specifics[name]
        return default
