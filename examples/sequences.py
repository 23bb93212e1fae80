import logging
import numpy as np
import matplotlib.pyplot as plt

from clear_flow import (
    FeedForwardNetwork, LSTMNetwork, Settings, Approximation,
    Input, Hidden, Output, uniform_weights,
)

# --- Hyperparameters ---
step_size = 0.1          # Spacing of the samples s in [0, 1)
ffn_iterations = 200     # Line search iterations for the feed-forward baseline
lstm_iterations = 500    # Gradient descent iterations for the gated network
lstm_learning_rate = 0.2
print_every = 50         # How often to log the error


def sinusoid():
    """Samples cos(10 s) -> sin(10 s) for s in [0, 1)."""
    s = np.arange(0.0, 1.0, step_size)
    return s, np.cos(10 * s).reshape(-1, 1), np.sin(10 * s).reshape(-1, 1)


def sinusoidal_ffn(xs, ys):
    """
    A feed-forward network sees each sample on its own; cos(10s) does not
    determine sin(10s) without knowing where in the sequence it is, so the fit
    stays poor.
    """
    net = FeedForwardNetwork(
        [Input(1), Hidden(10, 'tanh'), Hidden(10, 'tanh'), Output(1, 'tanh')],
        Settings(learning_rate=0.1, max_iterations=ffn_iterations, log_every=print_every),
        weight_provider=uniform_weights(-0.2, 0.2, seed=1),
    )
    net.train(xs, ys)
    return net.predict(xs).ravel()


def sinusoidal_lstm(xs, ys):
    """The gated network learns the mapping as a sequence, one time step per sample."""
    net = LSTMNetwork(
        [Input(1), Hidden(5, 'tanh'), Output(1, 'tanh')],
        Settings(learning_rate=lstm_learning_rate, max_iterations=lstm_iterations,
                 log_every=print_every, approximation=Approximation(1e-6)),
        weight_provider=uniform_weights(-0.2, 0.2, seed=1),
    )
    before = np.array(net.evaluate(xs)).ravel()
    net.train(xs, ys)
    after = np.array(net.evaluate(xs)).ravel()
    return before, after


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")

    s, xs, ys = sinusoid()
    ffn_pred = sinusoidal_ffn(xs, ys)
    lstm_before, lstm_after = sinusoidal_lstm(xs, ys)

    for step, target, ffn, lstm in zip(s, ys.ravel(), ffn_pred, lstm_after):
        print(f"{step:.1f}, target {target:+.4f}, ffn {ffn:+.4f}, lstm {lstm:+.4f}")

    plt.figure("cos(10s) -> sin(10s)", figsize=(10, 5))
    plt.plot(s, ys.ravel(), 'k-', label='Target sin(10s)')
    plt.plot(s, ffn_pred, 'b--', label='Feed-forward')
    plt.plot(s, lstm_before, 'r:', label='LSTM (untrained)')
    plt.plot(s, lstm_after, 'r-', label='LSTM (trained)')
    plt.xlabel('s')
    plt.legend()
    plt.grid(True, alpha=0.3)
    plt.tight_layout()
    plt.show()
