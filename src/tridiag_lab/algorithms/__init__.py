"""Numerical algorithms module.

This module contains implementations of:
- Perturbed inverse iteration for symmetric tridiagonal eigenvectors
- Numeric-primitive backends (SciPy BLAS/LAPACK, NumPy reference)
- Tridiagonal test problems with known leftmost eigenpairs
"""

from tridiag_lab.algorithms.backends import (
    LapackBackend,
    LinalgBackend,
    NumpyBackend,
    create_backend,
)
from tridiag_lab.algorithms.inverse_iteration import (
    InverseIteration,
    InverseIterationResult,
    InverseStatus,
    IterationResult,
    IterationState,
    ShiftSearchResult,
    eigen_inverse,
    run_inverse_iteration,
)
from tridiag_lab.algorithms.matrices import (
    DEFAULT_SEED,
    TridiagonalMatrix,
    TridiagonalProblem,
    create_laplacian_matrix,
    create_problem,
    create_random_tridiagonal,
    create_reducible_matrix,
    laplacian_eigenpair,
)

__all__ = [
    # Backends
    "LapackBackend",
    "LinalgBackend",
    "NumpyBackend",
    "create_backend",
    # Inverse iteration
    "InverseIteration",
    "InverseIterationResult",
    "InverseStatus",
    "IterationResult",
    "IterationState",
    "ShiftSearchResult",
    "eigen_inverse",
    "run_inverse_iteration",
    # Test problems
    "DEFAULT_SEED",
    "TridiagonalMatrix",
    "TridiagonalProblem",
    "create_laplacian_matrix",
    "create_problem",
    "create_random_tridiagonal",
    "create_reducible_matrix",
    "laplacian_eigenpair",
]
