# Libraries necessary for core functionality:
import numpy as np
from scipy import linalg

from .exceptions import NumericalInstabilityError


"""
Random weight generation for the echo state network. The reservoir, input and feedback matrices are drawn here once
and never touched again by the network.

"""


def spectral_radius_of(matrix: np.ndarray) -> float:
    """
    Returns the largest absolute eigenvalue of a square matrix.
    """
    eigenvalues = linalg.eigvals(matrix)
    return float(np.max(np.abs(eigenvalues)))


def generate_weights(Nr: int,
                     Ni: int,
                     No: int,
                     sparsity: float,
                     spectral_radius: float,
                     rng: np.random.Generator,
                     dtype: str = "float64",
                     verbosity: int = 0) -> tuple:

    """
    Generates the three fixed weight matrices of the network. Every element is sampled from a symmetric uniform
    distribution on [-0.5, 0.5). The draws always happen in the same order (reservoir, sparsity mask, input,
    feedback), so identically seeded generators give identical matrices.

    :param Nr: The number of neurons in the reservoir.
    :param Ni: The number of features in the input vector.
    :param No: The number of features in the output vector.
    :param sparsity: Fraction of reservoir cells to zero. Positions are drawn with replacement, so slightly fewer
    cells than round(Nr**2 * sparsity) end up zeroed.
    :param spectral_radius: The spectral radius the reservoir is rescaled to.
    :param rng: The generator used for every draw.
    :param dtype: Either float32 or float64.
    :param verbosity: Prints scaling information when greater than 0.

    :return: (W_res, W_in, W_fb) with shapes (Nr, Nr), (Nr, Ni + 1) and (Nr, No).
    """

    # Initializing the reservoir adjacency matrix.
    W_res = rng.random((Nr, Nr)) - 0.5

    # Zero out randomly chosen cells. Repeated indices are allowed.
    num_zeroed = int(round(W_res.size * sparsity))
    zeroed_cells = rng.integers(low=0, high=W_res.size, size=num_zeroed)
    W_res.flat[zeroed_cells] = 0.0

    largest_eigenvalue = spectral_radius_of(W_res)
    if not np.isfinite(largest_eigenvalue) or largest_eigenvalue == 0.0:
        raise NumericalInstabilityError(
            f"Cannot rescale the reservoir: its spectral radius after sparsification is {largest_eigenvalue}. "
            f"Try a lower sparsity ({sparsity}) or a larger reservoir ({Nr} nodes).")

    W_res *= spectral_radius / largest_eigenvalue

    if verbosity > 0:
        print(f"Reservoir spectral radius scaled to: {spectral_radius_of(W_res)}")

    # The first column of W_in multiplies the constant bias input.
    W_in = rng.random((Nr, Ni + 1)) - 0.5
    W_fb = rng.random((Nr, No)) - 0.5

    return W_res.astype(dtype), W_in.astype(dtype), W_fb.astype(dtype)
