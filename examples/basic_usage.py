import time
import logging
import numpy as np
import matplotlib.pyplot as plt
from sklearn.datasets import make_moons # Using this for the L-BFGS example

from clear_flow import (
    FeedForwardNetwork, LBFGSNetwork, Settings,
    Input, Hidden, Output, uniform_weights, xavier_weights,
)

MODEL_SAVE_PATH = "make_moons_lbfgs_weights.npz"  # Weights of the trained L-BFGS network

# --- Plotting Function ---

def plot_decision_boundary(X: np.ndarray, y_raw: np.ndarray, model: FeedForwardNetwork, title: str):
    """Plots the decision boundary of a trained model.

    Args:
        X: Input features used for training, shape (n_samples, 2).
        y_raw: True integer class labels, shape (n_samples,).
        model: Trained network (anything with a `predict` method).
        title: Figure title.
    """
    h = 0.02 # Step size in the mesh

    x_min, x_max = X[:, 0].min() - 0.5, X[:, 0].max() + 0.5
    y_min, y_max = X[:, 1].min() - 0.5, X[:, 1].max() + 0.5
    xx, yy = np.meshgrid(np.arange(x_min, x_max, h),
                         np.arange(y_min, y_max, h))

    # Single sigmoid output: threshold at 0.5
    Z = (model.predict(np.c_[xx.ravel(), yy.ravel()]) >= 0.5).astype(int).ravel()
    Z = Z.reshape(xx.shape)

    plt.figure(title, figsize=(8, 6))
    plt.contourf(xx, yy, Z, cmap=plt.cm.Spectral, alpha=0.8)
    plt.scatter(X[:, 0], X[:, 1], c=y_raw, cmap=plt.cm.Spectral, edgecolor='k', s=35)
    plt.xlabel("Feature 1")
    plt.ylabel("Feature 2")
    plt.title(title)
    plt.xlim(xx.min(), xx.max())
    plt.ylim(yy.min(), yy.max())
    plt.grid(True, alpha=0.2)


def plot_history(history, title: str):
    plt.figure(title, figsize=(8, 5))
    plt.plot(history['iteration'], history['error'], label='Training Error')
    plt.xlabel('Iteration')
    plt.ylabel('Mean Error')
    plt.title(title)
    plt.legend()
    plt.grid(True, alpha=0.3)
    plt.ylim(bottom=0)
    plt.tight_layout()


# --- XOR Example ---

def xor_example():
    """Trains Input(2) :: Hidden(3, sigmoid) :: Output(1, sigmoid) on XOR with line-search gradient descent."""
    logger = logging.getLogger("XORExample")

    X = np.array([[0, 0], [0, 1], [1, 0], [1, 1]])
    y = np.array([[0], [1], [1], [0]])

    network = FeedForwardNetwork(
        [Input(2), Hidden(3, 'sigmoid'), Output(1, 'sigmoid')],
        Settings(learning_rate=10.0, precision=0.01, max_iterations=2000, log_every=100),
        weight_provider=uniform_weights(-1.0, 1.0, seed=7),
    )
    logger.info(f"XOR Network Summary:\n{network.summary()}")

    start_time = time.time()
    network.train(X, y)
    logger.info(f"XOR training finished in {time.time() - start_time:.2f}s with state {network.state.name}")

    correct = 0
    for inputs, target in zip(X, y):
        pred = network.evaluate(inputs)[0]
        is_correct = int(pred >= 0.5) == target[0]
        correct += int(is_correct)
        logger.info(f"Input: {inputs}, Target: {target[0]}, Prediction: {pred:.4f} "
                    f"{'(Correct)' if is_correct else '(Incorrect)'}")
    logger.info(f"XOR Accuracy: {correct / len(X):.2%}")

    plot_history(network.training_history, "XOR Training History")
    plot_decision_boundary(X, y.ravel(), network, "XOR Decision Boundary")


# --- Make Moons Example ---

def make_moons_example():
    """Fits the make_moons dataset with the L-BFGS network."""
    logger = logging.getLogger("MakeMoonsExample")

    X_original, y_raw = make_moons(n_samples=100, noise=0.1, random_state=42)
    X = (X_original - X_original.mean(axis=0)) / (X_original.std(axis=0) + 1e-8)
    y = y_raw.reshape(-1, 1)
    logger.info(f"Data shapes - X: {X.shape}, y: {y.shape}")

    network = LBFGSNetwork(
        [Input(2), Hidden(8, 'tanh'), Hidden(8, 'tanh'), Output(1, 'sigmoid')],
        Settings(precision=1e-6, max_iterations=200, log_every=10, specifics={"m": 5}),
        weight_provider=xavier_weights(seed=42),
    )
    logger.info(f"Make Moons Network Summary:\n{network.summary()}")

    start_time = time.time()
    network.train(X, y)
    logger.info(f"Make moons training finished in {time.time() - start_time:.2f}s with state {network.state.name}")

    accuracy = np.mean((network.predict(X) >= 0.5).astype(int) == y)
    logger.info(f"Make Moons Accuracy (training data): {accuracy:.2%}")

    plot_history(network.training_history, "Make Moons Training History")
    plot_decision_boundary(X, y_raw, network, "Make Moons Decision Boundary")

    model_filename = network.save_weights(MODEL_SAVE_PATH)
    logger.info(f"Saved trained weights to {model_filename}")


# --- Script Execution ---

if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(name)s %(levelname)s %(message)s")

    print("\n" + "="*40)
    print("--- Running XOR Example ---")
    print("="*40)
    xor_example()

    print("\n" + "="*40)
    print("--- Running Make Moons Example (L-BFGS) ---")
    print("="*40)
    make_moons_example()

    print("\nDisplaying plots. Close plot windows to exit.")
    plt.show()
