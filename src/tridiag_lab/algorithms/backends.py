"""Numeric-primitive backends for tridiagonal inverse iteration.

The inverse iteration never touches BLAS/LAPACK directly. It goes through a
``LinalgBackend`` exposing six primitives: copy, axpy, positive definite
tridiagonal factorization and solve, Euclidean norm and scaling. All of
them operate in place on caller-owned arrays.

Implementations:
- LapackBackend: SciPy's BLAS (?copy, ?axpy, ?nrm2, ?scal) and
  LAPACK (?pttrf, ?pttrs) wrappers for the working dtype
- NumpyBackend: reference implementation of the same primitives in NumPy,
  with the LDLᵀ recurrences written out

Status convention (LAPACK INFO): 0 on success, k > 0 when the leading minor
of order k is not positive definite, negative for an illegal argument.

References:
- Anderson et al.: "LAPACK Users' Guide" (3rd ed.), xPTTRF/xPTTRS
- Golub & Van Loan: "Matrix Computations" (4th ed.), §4.3.6
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

import numpy as np
from scipy.linalg import get_blas_funcs, get_lapack_funcs

from tridiag_lab.data.precision_types import (
    PrecisionFormat,
    get_dtype,
    get_spec,
)

if TYPE_CHECKING:
    from numpy.typing import NDArray


class LinalgBackend(ABC):
    """Abstract base class for the numeric primitives.

    All implementations must operate in place on the leading ``n`` entries of
    the arrays they are given and must not keep references to them.
    """

    @abstractmethod
    def copy(self, n: int, src: NDArray[np.floating], dst: NDArray[np.floating]) -> None:
        """dst[:n] <- src[:n]."""

    @abstractmethod
    def axpy(
        self,
        n: int,
        a: float,
        x: NDArray[np.floating],
        y: NDArray[np.floating],
    ) -> None:
        """y[:n] <- a * x[:n] + y[:n]."""

    @abstractmethod
    def tridiagonal_factorize(
        self,
        n: int,
        diag: NDArray[np.floating],
        offdiag: NDArray[np.floating],
    ) -> int:
        """Factor a symmetric positive definite tridiagonal matrix as L·D·Lᵀ.

        On exit ``diag`` holds D and ``offdiag`` the subdiagonal of L.

        Returns:
            0 on success, k > 0 if the pivot at (1-based) index k is not
            positive.
        """

    @abstractmethod
    def tridiagonal_solve(
        self,
        n: int,
        diag_fac: NDArray[np.floating],
        offdiag_fac: NDArray[np.floating],
        rhs: NDArray[np.floating],
    ) -> int:
        """Solve with factors from ``tridiagonal_factorize``; ``rhs`` is overwritten.

        Returns:
            0 on success, nonzero on failure.
        """

    @abstractmethod
    def norm2(self, n: int, x: NDArray[np.floating]) -> float:
        """Euclidean norm of x[:n]."""

    @abstractmethod
    def scale(self, n: int, a: float, x: NDArray[np.floating]) -> None:
        """x[:n] <- a * x[:n]."""

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}()"


class LapackBackend(LinalgBackend):
    """BLAS/LAPACK backend through ``scipy.linalg``.

    The routines are resolved once for the working precision, e.g.
    ``dpttrf``/``dpttrs`` for fp64 and ``spttrf``/``spttrs`` for fp32.

    Example:
        >>> backend = LapackBackend("fp64")
        >>> d = np.array([2.0, 2.0]); e = np.array([-1.0])
        >>> backend.tridiagonal_factorize(2, d, e)
        0
    """

    __slots__ = ("_precision", "_copy", "_axpy", "_nrm2", "_scal", "_pttrf", "_pttrs")

    def __init__(self, precision: PrecisionFormat | str = PrecisionFormat.FP64) -> None:
        spec = get_spec(precision)
        self._precision = spec.format
        probe = np.zeros(1, dtype=get_dtype(spec.format))

        self._copy, self._axpy, self._nrm2, self._scal = get_blas_funcs(
            ("copy", "axpy", "nrm2", "scal"), (probe,)
        )
        self._pttrf, self._pttrs = get_lapack_funcs(("pttrf", "pttrs"), (probe,))

    @property
    def precision(self) -> PrecisionFormat:
        """Working precision of the resolved routines."""
        return self._precision

    def copy(self, n: int, src: NDArray[np.floating], dst: NDArray[np.floating]) -> None:
        if n <= 0:
            return
        # f2py returns dst itself when it is contiguous with the right dtype
        dst[:n] = self._copy(src, dst, n=n)[:n]

    def axpy(
        self,
        n: int,
        a: float,
        x: NDArray[np.floating],
        y: NDArray[np.floating],
    ) -> None:
        if n <= 0:
            return
        y[:n] = self._axpy(x, y, n=n, a=a)[:n]

    def tridiagonal_factorize(
        self,
        n: int,
        diag: NDArray[np.floating],
        offdiag: NDArray[np.floating],
    ) -> int:
        if n == 1:
            # ?pttrf wrappers reject the empty subdiagonal of a 1×1 matrix
            return 0 if diag[0] > 0 else 1

        d, e, info = self._pttrf(diag[:n], offdiag[: n - 1])
        diag[:n] = d
        offdiag[: n - 1] = e
        return int(info)

    def tridiagonal_solve(
        self,
        n: int,
        diag_fac: NDArray[np.floating],
        offdiag_fac: NDArray[np.floating],
        rhs: NDArray[np.floating],
    ) -> int:
        if n == 1:
            rhs[0] /= diag_fac[0]
            return 0

        x, info = self._pttrs(diag_fac[:n], offdiag_fac[: n - 1], rhs[:n, np.newaxis])
        if info == 0:
            rhs[:n] = np.reshape(x, -1)[:n]
        return int(info)

    def norm2(self, n: int, x: NDArray[np.floating]) -> float:
        if n <= 0:
            return 0.0
        return float(self._nrm2(x, n=n))

    def scale(self, n: int, a: float, x: NDArray[np.floating]) -> None:
        if n <= 0:
            return
        x[:n] = self._scal(a, x, n=n)[:n]

    def __repr__(self) -> str:
        return f"LapackBackend(precision={self._precision.value!r})"


class NumpyBackend(LinalgBackend):
    """Reference backend written with NumPy array operations.

    The factorization and solve follow LAPACK's xPTTRF/xPTTS2 recurrences
    one entry at a time, so results agree with ``LapackBackend`` to rounding
    and the status codes are identical. Works for any floating dtype.
    """

    __slots__ = ()

    def copy(self, n: int, src: NDArray[np.floating], dst: NDArray[np.floating]) -> None:
        dst[:n] = src[:n]

    def axpy(
        self,
        n: int,
        a: float,
        x: NDArray[np.floating],
        y: NDArray[np.floating],
    ) -> None:
        y[:n] += a * x[:n]

    def tridiagonal_factorize(
        self,
        n: int,
        diag: NDArray[np.floating],
        offdiag: NDArray[np.floating],
    ) -> int:
        for i in range(n - 1):
            if diag[i] <= 0:
                return i + 1
            ei = offdiag[i]
            offdiag[i] = ei / diag[i]
            diag[i + 1] -= offdiag[i] * ei

        if diag[n - 1] <= 0:
            return n
        return 0

    def tridiagonal_solve(
        self,
        n: int,
        diag_fac: NDArray[np.floating],
        offdiag_fac: NDArray[np.floating],
        rhs: NDArray[np.floating],
    ) -> int:
        if n < 0 or rhs.shape[0] < n:
            return -1

        # L·z = b
        for i in range(1, n):
            rhs[i] -= rhs[i - 1] * offdiag_fac[i - 1]

        # D·Lᵀ·x = z
        rhs[n - 1] /= diag_fac[n - 1]
        for i in range(n - 2, -1, -1):
            rhs[i] = rhs[i] / diag_fac[i] - rhs[i + 1] * offdiag_fac[i]
        return 0

    def norm2(self, n: int, x: NDArray[np.floating]) -> float:
        if n <= 0:
            return 0.0
        # Scaled like ?nrm2 so squares neither overflow nor underflow
        peak = float(np.max(np.abs(x[:n])))
        if peak == 0.0 or not np.isfinite(peak):
            return peak
        return peak * float(np.linalg.norm(x[:n] / peak))

    def scale(self, n: int, a: float, x: NDArray[np.floating]) -> None:
        x[:n] *= a


def create_backend(
    backend_type: str = "lapack",
    precision: PrecisionFormat | str = PrecisionFormat.FP64,
) -> LinalgBackend:
    """Factory function to create numeric-primitive backends.

    Args:
        backend_type: Type of backend ('lapack', 'numpy').
        precision: Working precision (only used by the LAPACK backend).

    Returns:
        LinalgBackend instance.

    Example:
        >>> backend = create_backend("numpy")
    """
    if backend_type == "lapack":
        return LapackBackend(precision)
    if backend_type == "numpy":
        return NumpyBackend()

    msg = f"Unknown backend: {backend_type}. Available: ['lapack', 'numpy']"
    raise ValueError(msg)


__all__ = [
    "LinalgBackend",
    "LapackBackend",
    "NumpyBackend",
    "create_backend",
]
