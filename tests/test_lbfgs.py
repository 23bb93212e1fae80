"""
test_lbfgs.py
~~~~~~~~~~~~~

Tests for the L-BFGS trained feed-forward network.
"""

import numpy as np
import pytest
from scipy.optimize import OptimizeResult

import clear_flow.lbfgs
from clear_flow import (
    EarlyStopping, LBFGSNetwork, NumericalInstabilityError, SettingsNotSupportedError,
    TrainingState, uniform_weights,
)
from clear_flow.propagation import batch_error, mean_error


class _RecordingMinimize:
    """Stands in for scipy's minimize and returns `x0 + shift`."""

    def __init__(self, shift=0.1, success=True, status=0, fun=None):
        self.shift = shift
        self.success = success
        self.status = status
        self.fun = fun
        self.kwargs = None

    def __call__(self, fun, x0, **kwargs):
        self.kwargs = kwargs
        x = x0 + self.shift
        value = fun(x) if self.fun is None else self.fun
        return OptimizeResult(x=x, fun=value, success=self.success, status=self.status,
                              nit=1, message="recorded")


@pytest.mark.unit
class TestSettings:

    def test_early_stopping_rejected(self, xor_layers, xor_data, quiet_settings):
        X, y = xor_data
        with pytest.raises(SettingsNotSupportedError, match="LBFGS"):
            LBFGSNetwork(xor_layers, quiet_settings(regularization=EarlyStopping(X, y)))

    @pytest.mark.parametrize("key", ["m", "maxLineSearchIterations", "maxZoomIterations"])
    def test_specifics_below_one_rejected(self, xor_layers, quiet_settings, key):
        with pytest.raises(SettingsNotSupportedError, match=key):
            LBFGSNetwork(xor_layers, quiet_settings(specifics={key: 0}))


@pytest.mark.unit
class TestSolverWiring:

    def test_default_options(self, xor_layers, xor_data, quiet_settings, monkeypatch):
        fake = _RecordingMinimize()
        monkeypatch.setattr(clear_flow.lbfgs, "minimize", fake)
        network = LBFGSNetwork(xor_layers, quiet_settings(precision=1e-4, max_iterations=42))
        network.train(*xor_data)

        assert fake.kwargs["method"] == "L-BFGS-B"
        assert fake.kwargs["tol"] == 1e-4
        assert fake.kwargs["options"] == {"maxcor": 3, "maxls": 20, "maxiter": 42}

    def test_specific_options(self, xor_layers, xor_data, quiet_settings, monkeypatch):
        fake = _RecordingMinimize()
        monkeypatch.setattr(clear_flow.lbfgs, "minimize", fake)
        specifics = {"m": 7, "maxLineSearchIterations": 4, "maxZoomIterations": 6}
        network = LBFGSNetwork(xor_layers, quiet_settings(specifics=specifics))
        network.train(*xor_data)

        assert fake.kwargs["options"]["maxcor"] == 7
        assert fake.kwargs["options"]["maxls"] == 10

    def test_optimum_written_in_place(self, xor_layers, xor_data, quiet_settings, monkeypatch):
        monkeypatch.setattr(clear_flow.lbfgs, "minimize", _RecordingMinimize(shift=0.1))
        network = LBFGSNetwork(xor_layers, quiet_settings(), weight_provider=uniform_weights(seed=0))
        matrices = list(network.weights)
        before = [w.copy() for w in matrices]

        network.train(*xor_data)

        assert all(a is b for a, b in zip(matrices, network.weights))
        assert all(np.allclose(w, b + 0.1) for w, b in zip(network.weights, before))
        assert network.state is TrainingState.CONVERGED

    def test_unsuccessful_run_hits_iteration_limit(self, xor_layers, xor_data, quiet_settings, monkeypatch):
        monkeypatch.setattr(clear_flow.lbfgs, "minimize", _RecordingMinimize(success=False, status=1))
        network = LBFGSNetwork(xor_layers, quiet_settings())
        network.train(*xor_data)
        assert network.state is TrainingState.ITERATION_LIMIT_REACHED

    def test_non_finite_result_raises(self, xor_layers, xor_data, quiet_settings, monkeypatch):
        monkeypatch.setattr(clear_flow.lbfgs, "minimize", _RecordingMinimize(fun=np.nan))
        network = LBFGSNetwork(xor_layers, quiet_settings(), weight_provider=uniform_weights(seed=0))
        before = [w.copy() for w in network.weights]

        with pytest.raises(NumericalInstabilityError):
            network.train(*xor_data)
        assert all(np.array_equal(a, b) for a, b in zip(before, network.weights))

    def test_jacobian_matches_objective(self, xor_layers, xor_data, quiet_settings, monkeypatch):
        fake = _RecordingMinimize()
        monkeypatch.setattr(clear_flow.lbfgs, "minimize", fake)
        network = LBFGSNetwork(xor_layers, quiet_settings(), weight_provider=uniform_weights(seed=1))
        network.train(*xor_data)

        vector = np.linspace(-0.5, 0.5, 9)
        jacobian = fake.kwargs["jac"](vector)
        assert jacobian.shape == (9,)
        assert np.all(np.isfinite(jacobian))


@pytest.mark.unit
class TestTraining:

    def test_training_reduces_error(self, xor_layers, xor_data, quiet_settings):
        X, y = xor_data
        network = LBFGSNetwork(xor_layers, quiet_settings(max_iterations=50),
                               weight_provider=uniform_weights(-1.0, 1.0, seed=3))
        before = mean_error(batch_error(network.predict(X), y))

        network.train(X, y)

        after = mean_error(batch_error(network.predict(X), y))
        assert after < before
        assert network.state in (TrainingState.CONVERGED, TrainingState.ITERATION_LIMIT_REACHED)
        assert len(network.training_history['error']) > 0
