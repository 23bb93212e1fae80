class ConfigurationError(ValueError):
    """Raised at network construction when settings or architecture cannot be used."""


class SettingsNotSupportedError(ConfigurationError):
    """The chosen network does not support a combination of `Settings` options."""


class InvalidArchitectureError(ConfigurationError):
    """The layer sequence violates the Input-first / Output-last invariant."""


class NumericalInstabilityError(ArithmeticError):
    """
    Raised by the training loop when the batch error stops being finite.

    Diverging step sizes or ill-conditioned finite differences show up as NaN
    or Inf in the error. Training stops instead of clamping the values; the
    weights keep whatever values they had reached.
    """
