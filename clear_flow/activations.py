import numpy as np
from typing import Dict, Type, Union
import logging

Signal = Union[float, np.ndarray]


class Activation:
    """Elementwise activator applied by a layer to its incoming signal.

    `forward` maps a pre-activation signal to the layer's output and
    `backward` returns the derivative at that same pre-activation, which is
    what the chain rule in `clear_flow.gradients` multiplies through.
    Instances hold no state and may be shared between layers.
    """

    def forward(self, x: Signal) -> Signal:
        raise NotImplementedError

    def backward(self, x: Signal) -> Signal:
        """Derivative evaluated at the pre-activation `x` (not at the output)."""
        raise NotImplementedError

    def __call__(self, x: Signal) -> Signal:
        return self.forward(x)

    def __repr__(self):
        return f"{self.__class__.__name__}()"


class ReLU(Activation):
    """max(0, x); the derivative at the kink is taken as 0."""

    def forward(self, x: Signal) -> Signal:
        return np.maximum(0, x)

    def backward(self, x: Signal) -> Signal:
        return np.where(x > 0, 1.0, 0.0)


class Tanh(Activation):

    def forward(self, x: Signal) -> Signal:
        return np.tanh(x)

    def backward(self, x: Signal) -> Signal:
        return 1.0 - np.tanh(x) ** 2


class Sigmoid(Activation):
    """Logistic function 1 / (1 + e^-x), also used for the gates of recurrent layers."""

    def forward(self, x: Signal) -> Signal:
        # exp overflows past |x| ~ 709
        z = np.clip(x, -500, 500)
        return 1.0 / (1.0 + np.exp(-z))

    def backward(self, x: Signal) -> Signal:
        s = self.forward(x)
        return s * (1.0 - s)


class Power(Activation):
    """x ** n with derivative n * x ** (n - 1).

    Args:
        n: Exponent, 2 (square) by default.
    """

    def __init__(self, n: float = 2.0):
        self.n = n

    def forward(self, x: Signal) -> Signal:
        return np.power(x, self.n)

    def backward(self, x: Signal) -> Signal:
        return self.n * np.power(x, self.n - 1)

    def __repr__(self):
        return f"Power(n={self.n})"


class Linear(Activation):
    """Identity activator, typically for regression outputs."""

    def forward(self, x: Signal) -> Signal:
        return x

    def backward(self, x: Signal) -> Signal:
        return np.ones_like(x, dtype=float)


ACTIVATION_FUNCTIONS: Dict[str, Type[Activation]] = {
    'relu': ReLU,
    'tanh': Tanh,
    'sigmoid': Sigmoid,
    'power': Power,
    'linear': Linear,
}


def get_activation(name: str, **kwargs) -> Activation:
    """
    Builds an activator from its name, so layers can be declared as
    `Hidden(3, 'sigmoid')`.

    Args:
        name: One of the keys of `ACTIVATION_FUNCTIONS`, any case.
        **kwargs: Constructor arguments, e.g. `n` for `Power`.

    Raises:
        ValueError: If no activator has that name.
    """
    cls = ACTIVATION_FUNCTIONS.get(name.lower())
    if cls is None:
        raise ValueError(f"Unknown activation function '{name}'. "
                         f"Available functions: {sorted(ACTIVATION_FUNCTIONS)}")
    activation = cls(**kwargs)
    logging.debug(f"Created activation {activation!r} from name '{name}'")
    return activation
