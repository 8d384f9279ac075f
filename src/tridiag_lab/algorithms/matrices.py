"""Tridiagonal test problems for inverse iteration experiments.

This module provides symmetric tridiagonal matrices with known or reliably
computable leftmost eigenpairs, packaged with a starting vector.

Key Features:
- Reproducible generation with seed control
- Closed-form spectrum (1-D Laplacian), random and reducible matrices
- Reference eigenpairs via LAPACK ?stemr (scipy.linalg.eigh_tridiagonal)

References:
- Golub & Van Loan: "Matrix Computations" (4th ed.), §8.4
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

import numpy as np
from scipy.linalg import eigh_tridiagonal

if TYPE_CHECKING:
    from numpy.typing import NDArray


DEFAULT_SEED: int = 42
"""Default random seed for reproducible experiments."""


@dataclass(frozen=True, slots=True)
class TridiagonalMatrix:
    """Symmetric tridiagonal matrix stored as its two diagonals."""

    diag: NDArray[np.float64]
    """Main diagonal (length n)."""

    offdiag: NDArray[np.float64]
    """Off-diagonal (length n-1)."""

    def __post_init__(self) -> None:
        if self.diag.ndim != 1 or self.offdiag.shape != (self.diag.shape[0] - 1,):
            msg = (
                f"Inconsistent diagonals: diag {self.diag.shape}, "
                f"offdiag {self.offdiag.shape}"
            )
            raise ValueError(msg)

    @property
    def n(self) -> int:
        """Matrix dimension."""
        return int(self.diag.shape[0])

    def to_dense(self) -> NDArray[np.float64]:
        """Return the full n×n matrix."""
        return (
            np.diag(self.diag)
            + np.diag(self.offdiag, k=1)
            + np.diag(self.offdiag, k=-1)
        )

    def eigh(self) -> tuple[NDArray[np.float64], NDArray[np.float64]]:
        """Eigenvalues (ascending) and eigenvectors (columns)."""
        if self.n == 1:
            return self.diag.copy(), np.ones((1, 1))
        return eigh_tridiagonal(self.diag, self.offdiag)


def create_laplacian_matrix(n: int) -> TridiagonalMatrix:
    """Create the 1-D Dirichlet Laplacian tridiag(-1, 2, -1).

    Eigenpairs are known in closed form:
        λ_k = 2 - 2·cos(kπ/(n+1)),  v_k[j] = sin(jkπ/(n+1)),  k, j = 1..n

    Args:
        n: Matrix dimension.

    Returns:
        TridiagonalMatrix with positive, well separated eigenvalues.
    """
    return TridiagonalMatrix(
        diag=np.full(n, 2.0),
        offdiag=np.full(n - 1, -1.0),
    )


def laplacian_eigenpair(n: int, k: int = 1) -> tuple[float, NDArray[np.float64]]:
    """Closed-form k-th smallest eigenpair of ``create_laplacian_matrix(n)``.

    Returns:
        (eigenvalue, unit-norm eigenvector)
    """
    theta = k * np.pi / (n + 1)
    eigenvalue = 2.0 - 2.0 * np.cos(theta)
    vector = np.sin(theta * np.arange(1, n + 1))
    return float(eigenvalue), vector / np.linalg.norm(vector)


def create_random_tridiagonal(
    n: int,
    *,
    seed: int | None = DEFAULT_SEED,
) -> TridiagonalMatrix:
    """Create a tridiagonal matrix with standard normal entries.

    The spectrum is indefinite in general, which is the setting of the
    trust-region hard case.
    """
    rng = np.random.default_rng(seed)
    return TridiagonalMatrix(
        diag=rng.standard_normal(n),
        offdiag=rng.standard_normal(n - 1),
    )


def create_reducible_matrix() -> TridiagonalMatrix:
    """Create the 3×3 reducible matrix with a zero off-diagonal entry.

    T = [[1, 0, 0], [0, 2, 1], [0, 1, -1.75]] splits into a 1×1 block with
    eigenvalue 1.0 and a 2×2 block with eigenvalues -2.0 and 2.25.
    """
    return TridiagonalMatrix(
        diag=np.array([1.0, 2.0, -1.75]),
        offdiag=np.array([0.0, 1.0]),
    )


@dataclass(frozen=True, slots=True)
class TridiagonalProblem:
    """Container for a tridiagonal matrix with its leftmost eigenpair."""

    matrix: TridiagonalMatrix
    """The symmetric tridiagonal matrix."""

    target_eigenvalue: float
    """Smallest eigenvalue (ground truth)."""

    target_eigenvector: NDArray[np.float64]
    """Unit-norm eigenvector of the smallest eigenvalue."""

    initial_vector: NDArray[np.float64]
    """Starting vector for inverse iteration (not normalized)."""

    kind: str
    """Matrix type: 'laplacian', 'random' or 'reducible'."""


def create_problem(
    kind: str = "random",
    n: int = 50,
    *,
    seed: int = DEFAULT_SEED,
) -> TridiagonalProblem:
    """Create a problem for experiments with full metadata.

    Args:
        kind: "laplacian", "random" or "reducible" (ignores n).
        n: Matrix dimension.
        seed: Random seed for the matrix and the starting vector.

    Returns:
        TridiagonalProblem with reference eigenpair and starting vector.

    Example:
        >>> problem = create_problem("laplacian", 100)
        >>> print(f"λ_min = {problem.target_eigenvalue:.6e}")
    """
    if kind == "laplacian":
        matrix = create_laplacian_matrix(n)
        target_eigenvalue, target_eigenvector = laplacian_eigenpair(n)
    elif kind == "random":
        matrix = create_random_tridiagonal(n, seed=seed)
        eigenvalues, eigenvectors = matrix.eigh()
        target_eigenvalue = float(eigenvalues[0])
        target_eigenvector = eigenvectors[:, 0]
    elif kind == "reducible":
        matrix = create_reducible_matrix()
        target_eigenvalue = -2.0
        target_eigenvector = np.array([0.0, 1.0, -4.0]) / np.sqrt(17.0)
    else:
        msg = f"Unknown problem kind: {kind}"
        raise ValueError(msg)

    if kind == "reducible":
        # Seeded inside the 2×2 block, like a Lanczos residual would be
        initial_vector = np.array([0.0, 1.0, 1.0])
    else:
        rng = np.random.default_rng(seed + 1)
        initial_vector = rng.standard_normal(matrix.n)

    return TridiagonalProblem(
        matrix=matrix,
        target_eigenvalue=target_eigenvalue,
        target_eigenvector=target_eigenvector,
        initial_vector=initial_vector,
        kind=kind,
    )


__all__ = [
    "DEFAULT_SEED",
    "TridiagonalMatrix",
    "TridiagonalProblem",
    "create_laplacian_matrix",
    "create_problem",
    "create_random_tridiagonal",
    "create_reducible_matrix",
    "laplacian_eigenpair",
]
