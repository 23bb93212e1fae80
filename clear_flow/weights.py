import numpy as np
from typing import Callable, List, Optional, Sequence, Tuple
import logging

Shape = Tuple[int, int]
WeightProvider = Callable[[Sequence[Shape]], List[np.ndarray]]

# --- Weight Providers ---
# A provider turns the shapes a network asks for into its initial weight store.
# Networks call their provider exactly once, at construction.

def uniform_weights(low: float = -0.2, high: float = 0.2, seed: Optional[int] = None) -> WeightProvider:
    """
    Uniform random weights in [low, high).

    Args:
        low: Lower bound of the range.
        high: Upper bound of the range.
        seed: Optional seed for reproducible stores.
    """
    if not low < high:
        raise ValueError(f"Expected low < high, got low={low}, high={high}")

    def provide(shapes: Sequence[Shape]) -> List[np.ndarray]:
        rng = np.random.default_rng(seed)
        logging.debug(f"Initializing weights uniformly in [{low}, {high}) for shapes {list(shapes)}")
        return [rng.uniform(low, high, shape).astype(float) for shape in shapes]

    return provide


def xavier_weights(seed: Optional[int] = None) -> WeightProvider:
    """Xavier/Glorot uniform weights: limit = sqrt(6 / (fan_in + fan_out)) per matrix."""

    def provide(shapes: Sequence[Shape]) -> List[np.ndarray]:
        rng = np.random.default_rng(seed)
        weights = []
        for fan_in, fan_out in shapes:
            limit = np.sqrt(6.0 / (fan_in + fan_out))
            weights.append(rng.uniform(-limit, limit, (fan_in, fan_out)).astype(float))
            logging.debug(f"Xavier uniform ({limit:.4f}) for shape ({fan_in}, {fan_out})")
        return weights

    return provide


def array_weights(arrays: Sequence[np.ndarray]) -> WeightProvider:
    """Uses copies of pre-defined matrices; shapes are checked by the network."""

    def provide(shapes: Sequence[Shape]) -> List[np.ndarray]:
        weights = [np.array(a, dtype=float, copy=True) for a in arrays]
        check_weights(weights, shapes)
        return weights

    return provide


def file_weights(filename: str) -> WeightProvider:
    """Loads the weight store written by `save_weights`."""

    def provide(shapes: Sequence[Shape]) -> List[np.ndarray]:
        weights = load_weights(filename)
        check_weights(weights, shapes)
        return weights

    return provide


def check_weights(weights: Sequence[np.ndarray], shapes: Sequence[Shape]) -> None:
    """
    Raises:
        ValueError: If the number of matrices or any matrix shape does not match `shapes`.
    """
    if len(weights) != len(shapes):
        raise ValueError(f"Expected {len(shapes)} weight matrices, got {len(weights)}.")
    for i, (w, shape) in enumerate(zip(weights, shapes)):
        if np.shape(w) != tuple(shape):
            raise ValueError(f"Weight matrix {i} has shape {np.shape(w)}, expected {tuple(shape)}.")


# --- Persistence ---

def save_weights(weights: Sequence[np.ndarray], filename: str) -> str:
    """
    Saves a weight store to a compressed .npz file.

    Values are stored as float64, so loading reproduces them bit for bit.

    Returns:
        The filename actually written ('.npz' is appended when missing).
    """
    if not filename.endswith('.npz'):
        filename += '.npz'
    save_dict = {f'weights_{i}': np.asarray(w, dtype=float) for i, w in enumerate(weights)}
    save_dict['count'] = np.array(len(weights))
    np.savez_compressed(filename, **save_dict)
    logging.info(f"Saved {len(weights)} weight matrices to {filename}")
    return filename


def load_weights(filename: str) -> List[np.ndarray]:
    """
    Loads a weight store written by `save_weights`.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If the file is missing expected entries.
    """
    with np.load(filename) as data:
        try:
            count = int(data['count'])
            weights = [np.array(data[f'weights_{i}'], dtype=float) for i in range(count)]
        except KeyError as e:
            raise ValueError(f"Incompatible or incomplete weight file: {filename}") from e
    logging.info(f"Loaded {len(weights)} weight matrices from {filename}")
    return weights


# --- Flat parameter vectors ---

def flatten(weights: Sequence[np.ndarray]) -> np.ndarray:
    """Concatenates all matrices, row-major, into one parameter vector."""
    if not weights:
        return np.zeros(0)
    return np.concatenate([np.ravel(w) for w in weights]).astype(float)


def unflatten(vector: np.ndarray, shapes: Sequence[Shape]) -> List[np.ndarray]:
    """
    Inverse of `flatten`: slices `vector` back into matrices of the given shapes.

    Raises:
        ValueError: If the vector length does not match the total size of `shapes`.
    """
    vector = np.asarray(vector, dtype=float)
    total = sum(rows * cols for rows, cols in shapes)
    if vector.shape != (total,):
        raise ValueError(f"Expected a parameter vector of length {total}, got shape {vector.shape}.")
    matrices = []
    offset = 0
    for rows, cols in shapes:
        size = rows * cols
        matrices.append(vector[offset:offset + size].reshape(rows, cols).copy())
        offset += size
    return matrices
