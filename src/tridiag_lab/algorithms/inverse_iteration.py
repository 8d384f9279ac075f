"""Perturbed inverse iteration for symmetric tridiagonal matrices.

Computes the eigenvector belonging to a targeted eigenvalue of a symmetric
tridiagonal matrix T. The target is used as the shift of an inverse
iteration; when ``T - λI`` cannot be factored (singular or indefinite) the
shift is pushed down by an adaptively growing perturbation until it can.

Stages:
1. Shift search: factor ``T - (λ - pert)·I`` for
   ``pert = 0, ε^(1/4)·max(1, -λ), 10·pert, ...`` up to 1/ε
2. Normalize the starting vector
3. Solve against the fixed factorization and renormalize until
   ``|1/‖y‖ - pert| ≤ tol_abs``
4. Report CONV, ITMAX, FAIL_FACTOR or FAIL_LINSOLVE

The factorization is positive definite LDLᵀ, so an admissible shift lies
below the whole spectrum and the iteration resolves the leftmost
eigenvalue. This is the eigenvector needed for the "hard case" of
trust-region subproblems on Lanczos tridiagonals.

References:
- Golub & Van Loan: "Matrix Computations" (4th ed.), §8.2.2
- Gould, Lucidi, Roma & Toint: "Solving the trust-region subproblem using
  the Lanczos method", SIAM J. Optim. 9 (1999)
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING

import numpy as np

from tridiag_lab.algorithms.backends import LapackBackend, LinalgBackend
from tridiag_lab.data.precision_types import (
    InverseIterationConfig,
    PrecisionFormat,
    get_dtype,
    get_spec,
)

if TYPE_CHECKING:
    from numpy.typing import ArrayLike, NDArray


class InverseStatus(Enum):
    """Terminal outcome of perturbed inverse iteration."""

    CONV = 0
    ITMAX = -1
    FAIL_FACTOR = -2
    FAIL_LINSOLVE = -3


class IterationState(Enum):
    """Lifecycle of an ``InverseIteration`` engine."""

    SEARCHING_SHIFT = "searching_shift"
    ITERATING = "iterating"
    CONVERGED = "converged"
    FAILED_FACTOR = "failed_factor"
    FAILED_LINSOLVE = "failed_linsolve"
    MAX_ITER = "max_iter"

    @property
    def is_terminal(self) -> bool:
        """True for states the engine never leaves."""
        return self not in (IterationState.SEARCHING_SHIFT, IterationState.ITERATING)


@dataclass(frozen=True, slots=True)
class ShiftSearchResult:
    """Result of the shift-and-factor search."""

    success: bool
    """Whether an admissible shift was found."""

    pert: float
    """Accepted perturbation (or the first one past 1/ε on failure)."""

    lam_pert: float
    """Shift actually applied: lam_init - pert."""

    attempts: tuple[float, ...]
    """Every perturbation tried, in order."""

    info: int
    """Status of the last factorization attempt."""


@dataclass(frozen=True, slots=True)
class IterationResult:
    """Result of a single inverse iteration step."""

    iteration: int
    """Iteration count after this step."""

    invnorm: float
    """1/‖y‖ of the solved vector before normalization (NaN on failure)."""

    info: int
    """Status returned by the tridiagonal solve."""

    algorithm_time: float
    """Time for iteration (seconds)."""


@dataclass(frozen=True, slots=True)
class InverseIterationResult:
    """Outcome of a complete perturbed inverse iteration run."""

    status: InverseStatus
    """Terminal outcome."""

    lam_pert: float
    """Shift actually applied: lam_init - pert."""

    pert: float
    """Accepted perturbation."""

    iterations: int
    """Inverse iterations performed (0 if the shift search failed)."""

    shift_gap: float
    """Last 1/‖y‖: distance from the shift to the resolved eigenvalue (NaN if no solve)."""

    shift_attempts: tuple[float, ...]
    """Every perturbation tried by the shift search."""

    elapsed: float
    """Total execution time (seconds)."""

    history: list[dict] = field(default_factory=list)
    """Per-iteration metrics (only when requested)."""

    @property
    def converged(self) -> bool:
        """True if the run ended with CONV."""
        return self.status is InverseStatus.CONV

    @property
    def eigenvalue(self) -> float:
        """Refined eigenvalue estimate lam_pert + shift_gap."""
        return self.lam_pert + self.shift_gap


class InverseIteration:
    """Perturbed inverse iteration engine.

    Owns the factorization workspace for its lifetime and mutates the bound
    iterate in place; nothing is allocated once the engine is built.

    Example:
        >>> engine = InverseIteration([1.0, 2.0, -1.75], [0.0, 1.0], -2.0)
        >>> engine.search_shift().success
        True
        >>> eig = np.array([0.0, 1.0, 1.0])
        >>> engine.set_initial_vector(eig)
        >>> while not engine.check_convergence(engine.iterate().invnorm, 1e-10):
        ...     pass
    """

    __slots__ = (
        "_n",
        "_diag",
        "_offdiag",
        "_lam_init",
        "_precision",
        "_dtype",
        "_backend",
        "_logger",
        "_diag_fac",
        "_offdiag_fac",
        "_ones",
        "_eig",
        "_pert",
        "_lam_pert",
        "_iterations",
        "_state",
    )

    def __init__(
        self,
        diag: ArrayLike,
        offdiag: ArrayLike,
        lam_init: float,
        *,
        precision: PrecisionFormat | str = PrecisionFormat.FP64,
        backend: LinalgBackend | None = None,
        diag_fac: NDArray[np.floating] | None = None,
        offdiag_fac: NDArray[np.floating] | None = None,
        ones: NDArray[np.floating] | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        """Initialize inverse iteration engine.

        Args:
            diag: Main diagonal of T (length n).
            offdiag: Off-diagonal of T (length n-1).
            lam_init: Target eigenvalue estimate.
            precision: Working precision.
            backend: Numeric primitives (LAPACK backend for ``precision`` if None).
            diag_fac: Workspace for the factor D (length n, allocated if None).
            offdiag_fac: Workspace for the factor L (length n-1, allocated if None).
            ones: All-ones vector of length n (allocated if None); used as the
                shift direction, so every entry must be 1.0.
            logger: Diagnostics sink (module logger if None).

        Raises:
            ValueError: On inconsistent lengths, non-finite input or a
                ``ones`` buffer that is not all ones.
            TypeError: If a workspace buffer is not a writeable array of the
                working precision dtype.
        """
        self._precision = get_spec(precision).format
        dtype = get_dtype(self._precision)
        self._dtype = dtype

        self._diag = np.asarray(diag, dtype=dtype)
        self._offdiag = np.asarray(offdiag, dtype=dtype)
        if self._diag.ndim != 1 or self._diag.shape[0] < 1:
            msg = f"diag must be a non-empty 1-D array, got shape {self._diag.shape}"
            raise ValueError(msg)
        self._n = self._diag.shape[0]
        if self._offdiag.shape != (self._n - 1,):
            msg = (
                f"offdiag must have length n-1 = {self._n - 1}, "
                f"got shape {self._offdiag.shape}"
            )
            raise ValueError(msg)
        if not (np.all(np.isfinite(self._diag)) and np.all(np.isfinite(self._offdiag))):
            msg = "Tridiagonal matrix entries must be finite"
            raise ValueError(msg)
        if not np.isfinite(lam_init):
            msg = f"lam_init must be finite, got {lam_init}"
            raise ValueError(msg)

        self._lam_init = float(lam_init)
        self._backend = backend if backend is not None else LapackBackend(self._precision)
        self._logger = logger if logger is not None else logging.getLogger(__name__)

        self._diag_fac = self._workspace(diag_fac, self._n, "diag_fac", dtype)
        self._offdiag_fac = self._workspace(offdiag_fac, self._n - 1, "offdiag_fac", dtype)
        if ones is None:
            self._ones = np.ones(self._n, dtype=dtype)
        else:
            self._ones = self._workspace(ones, self._n, "ones", dtype)
            if not np.all(self._ones == 1.0):
                msg = "ones must hold 1.0 in every entry"
                raise ValueError(msg)

        self._eig: NDArray[np.floating] | None = None
        self._pert = 0.0
        self._lam_pert = self._lam_init
        self._iterations = 0
        self._state = IterationState.SEARCHING_SHIFT

    @staticmethod
    def _workspace(
        buffer: NDArray[np.floating] | None,
        size: int,
        name: str,
        dtype: object,
    ) -> NDArray[np.floating]:
        if buffer is None:
            return np.empty(size, dtype=dtype)
        _check_writeable_vector(buffer, size, name, dtype)
        return buffer

    def search_shift(self) -> ShiftSearchResult:
        """Find the smallest admissible perturbation and factor T - lam_pert·I.

        Tries ``pert = 0`` first, then ``ε^(1/4)·max(1, -lam_init)``, then
        multiplies by 10 after every failed factorization. Gives up once
        ``pert`` exceeds 1/ε.

        Returns:
            ShiftSearchResult; on success the workspace holds the factors.
        """
        spec = get_spec(self._precision)
        n = self._n
        backend = self._backend

        self._state = IterationState.SEARCHING_SHIFT
        self._iterations = 0

        pert = 0.0
        minuslam = -self._lam_init
        attempts: list[float] = []
        info = 0

        while pert <= spec.max_perturbation:
            attempts.append(pert)
            backend.copy(n, self._diag, self._diag_fac)
            backend.axpy(n, minuslam, self._ones, self._diag_fac)
            backend.copy(n - 1, self._offdiag, self._offdiag_fac)
            info = backend.tridiagonal_factorize(n, self._diag_fac, self._offdiag_fac)
            self._logger.debug(
                "shift attempt %d: pert=%.3e info=%d", len(attempts), pert, info
            )
            if info == 0:
                break
            if pert == 0.0:
                pert = spec.eps_pow_4 * max(1.0, -self._lam_init)
            else:
                pert = 10.0 * pert
            minuslam = pert - self._lam_init

        self._pert = pert
        self._lam_pert = -minuslam
        success = info == 0

        if success:
            self._state = IterationState.ITERATING
        else:
            self._state = IterationState.FAILED_FACTOR
            self._logger.info(
                "failure on factorizing in inverse correction (lam_init=%.6e, pert=%.3e)",
                self._lam_init,
                pert,
            )

        return ShiftSearchResult(
            success=success,
            pert=pert,
            lam_pert=self._lam_pert,
            attempts=tuple(attempts),
            info=info,
        )

    def set_initial_vector(self, eig: NDArray[np.floating]) -> None:
        """Bind the iterate and normalize it in place.

        Args:
            eig: Starting direction; mutated in place from now on.

        Raises:
            TypeError: If eig is not a writeable floating ndarray.
            ValueError: If eig has the wrong length or no finite nonzero norm.
        """
        _check_writeable_vector(eig, self._n, "eig", self._dtype)
        norm = self._backend.norm2(self._n, eig)
        if not np.isfinite(norm) or norm == 0.0:
            msg = f"Initial vector must have a finite nonzero norm, got {norm}"
            raise ValueError(msg)
        self._normalize(eig, norm)
        self._eig = eig

    def iterate(self) -> IterationResult:
        """Execute a single inverse iteration step with self-timing.

        Algorithm:
            1. Solve (T - lam_pert·I)·y = eig with the stored factors
            2. invnorm = 1/‖y‖
            3. eig = invnorm·y

        Returns:
            IterationResult with invnorm, solve status and timing.

        Raises:
            RuntimeError: If no factorization is available or no vector is bound.
        """
        if self._state is not IterationState.ITERATING:
            msg = f"Cannot iterate in state {self._state.value}"
            raise RuntimeError(msg)
        if self._eig is None:
            msg = "No initial vector bound; call set_initial_vector() first"
            raise RuntimeError(msg)

        start = time.perf_counter()
        n = self._n
        eig = self._eig
        self._iterations += 1

        info = self._backend.tridiagonal_solve(n, self._diag_fac, self._offdiag_fac, eig)
        norm = self._backend.norm2(n, eig) if info == 0 else float("nan")

        # Overflow in the solve is as fatal as a reported failure
        if info != 0 or not np.isfinite(norm) or norm == 0.0:
            self._state = IterationState.FAILED_LINSOLVE
            self._logger.info(
                "failure on solving inverse correction (iteration %d, info=%d)",
                self._iterations,
                info,
            )
            return IterationResult(
                iteration=self._iterations,
                invnorm=float("nan"),
                info=info,
                algorithm_time=time.perf_counter() - start,
            )

        invnorm = self._normalize(eig, norm)

        return IterationResult(
            iteration=self._iterations,
            invnorm=invnorm,
            info=info,
            algorithm_time=time.perf_counter() - start,
        )

    def _normalize(self, eig: NDArray[np.floating], norm: float) -> float:
        """Scale eig to unit norm and return 1/norm.

        When 1/norm would overflow the working precision, eig is first lifted
        in steps of 1/ε and the returned factor is ``inf``.
        """
        n = self._n
        tiny = 1.0 / float(np.finfo(self._dtype).max)
        if norm >= tiny:
            invnorm = 1.0 / norm
            self._backend.scale(n, invnorm, eig)
            return invnorm

        lift = get_spec(self._precision).max_perturbation
        while norm < tiny:
            self._backend.scale(n, lift, eig)
            norm = self._backend.norm2(n, eig)
        self._backend.scale(n, 1.0 / norm, eig)
        return float("inf")

    def check_convergence(self, invnorm: float, tol_abs: float) -> bool:
        """Test |invnorm - pert| ≤ tol_abs; moves the engine to CONVERGED if met.

        For the eigenvector of T with eigenvalue lam_init, the shifted
        eigenvalue is exactly ``pert``, so ‖y‖ tends to 1/pert.
        """
        converged = bool(abs(invnorm - self._pert) <= tol_abs)
        if converged and self._state is IterationState.ITERATING:
            self._state = IterationState.CONVERGED
        return converged

    def run(
        self,
        eig: NDArray[np.floating],
        config: InverseIterationConfig,
        *,
        record_history: bool = False,
    ) -> InverseIterationResult:
        """Run shift search and inverse iteration to a terminal state.

        Args:
            eig: Starting direction, overwritten with the eigenvector estimate.
            config: Iteration budget and tolerance.
            record_history: Keep per-iteration metrics in the result.

        Returns:
            InverseIterationResult with status and shift data.
        """
        start_time = time.perf_counter()
        _check_writeable_vector(eig, self._n, "eig", self._dtype)
        if not np.all(np.isfinite(eig)) or not np.any(eig):
            msg = "Initial vector must be finite and nonzero"
            raise ValueError(msg)

        history: list[dict] = []
        shift = self.search_shift()

        if not shift.success:
            return InverseIterationResult(
                status=InverseStatus.FAIL_FACTOR,
                lam_pert=self._lam_pert,
                pert=self._pert,
                iterations=0,
                shift_gap=float("nan"),
                shift_attempts=shift.attempts,
                elapsed=time.perf_counter() - start_time,
                history=history,
            )

        self.set_initial_vector(eig)

        status = InverseStatus.ITMAX
        shift_gap = float("nan")
        cumulative_algo_time = 0.0

        while True:
            if self._iterations >= config.itmax:
                self._state = IterationState.MAX_ITER
                status = InverseStatus.ITMAX
                break

            step = self.iterate()
            cumulative_algo_time += step.algorithm_time

            if self._state is IterationState.FAILED_LINSOLVE:
                status = InverseStatus.FAIL_LINSOLVE
                break

            shift_gap = step.invnorm
            residual = abs(step.invnorm - self._pert)
            self._logger.debug(
                "inverse iteration %d: invnorm=%.6e |invnorm - pert|=%.3e",
                step.iteration,
                step.invnorm,
                residual,
            )

            if record_history:
                history.append(
                    {
                        "iteration": step.iteration,
                        "invnorm": step.invnorm,
                        "residual": residual,
                        "algorithm_time": step.algorithm_time,
                        "cumulative_algorithm_time": cumulative_algo_time,
                    }
                )

            if self.check_convergence(step.invnorm, config.tol_abs):
                status = InverseStatus.CONV
                break

        return InverseIterationResult(
            status=status,
            lam_pert=self._lam_pert,
            pert=self._pert,
            iterations=self._iterations,
            shift_gap=shift_gap,
            shift_attempts=shift.attempts,
            elapsed=time.perf_counter() - start_time,
            history=history,
        )

    @property
    def n(self) -> int:
        """Matrix dimension."""
        return self._n

    @property
    def state(self) -> IterationState:
        """Current lifecycle state."""
        return self._state

    @property
    def pert(self) -> float:
        """Current perturbation."""
        return self._pert

    @property
    def lam_pert(self) -> float:
        """Shift applied to the factored matrix."""
        return self._lam_pert

    @property
    def iterations(self) -> int:
        """Inverse iterations performed since the last shift search."""
        return self._iterations

    @property
    def current_vector(self) -> NDArray[np.floating] | None:
        """Return the bound iterate (no copy)."""
        return self._eig

    @property
    def vector_norm(self) -> float:
        """Get norm of current iterate (should be ~1.0)."""
        if self._eig is None:
            return float("nan")
        return float(np.linalg.norm(self._eig))


def _check_writeable_vector(x: object, size: int, name: str, dtype: object) -> None:
    if not isinstance(x, np.ndarray) or not np.issubdtype(x.dtype, np.floating):
        msg = f"{name} must be a floating point numpy array"
        raise TypeError(msg)
    if x.dtype != dtype:
        msg = (
            f"{name} must have dtype {np.dtype(dtype).name} to match the "
            f"working precision, got {x.dtype}"
        )
        raise TypeError(msg)
    if not x.flags.writeable:
        msg = f"{name} must be writeable"
        raise TypeError(msg)
    if x.shape != (size,):
        msg = f"{name} must have shape ({size},), got {x.shape}"
        raise ValueError(msg)


def eigen_inverse(
    diag: ArrayLike,
    offdiag: ArrayLike,
    lam_init: float,
    eig: NDArray[np.floating],
    *,
    itmax: int | None = None,
    tol_abs: float | None = None,
    precision: PrecisionFormat | str = PrecisionFormat.FP64,
    backend: LinalgBackend | None = None,
    ones: NDArray[np.floating] | None = None,
    diag_fac: NDArray[np.floating] | None = None,
    offdiag_fac: NDArray[np.floating] | None = None,
    logger: logging.Logger | None = None,
    record_history: bool = False,
) -> InverseIterationResult:
    """Compute the eigenvector for ``lam_init`` by perturbed inverse iteration.

    Convenience function that builds the engine and drives it to a terminal
    state. ``eig`` is overwritten with the unit-norm eigenvector estimate.

    Args:
        diag: Main diagonal of T (length n).
        offdiag: Off-diagonal of T (length n-1).
        lam_init: Target eigenvalue (the leftmost one of T).
        eig: Starting direction, overwritten in place.
        itmax: Iteration budget (precision default if None).
        tol_abs: Absolute convergence tolerance (precision default if None).
        precision: Working precision.
        backend: Numeric primitives (LAPACK if None).
        ones: Optional all-ones vector of length n.
        diag_fac: Optional workspace of length n.
        offdiag_fac: Optional workspace of length n-1.
        logger: Diagnostics sink.
        record_history: Keep per-iteration metrics.

    Returns:
        InverseIterationResult; inspect ``status`` for the outcome.

    Example:
        >>> eig = np.array([0.0, 1.0, 1.0])
        >>> result = eigen_inverse([1.0, 2.0, -1.75], [0.0, 1.0], -2.0, eig)
        >>> result.status
        <InverseStatus.CONV: 0>
    """
    config = InverseIterationConfig.from_precision(
        precision, itmax=itmax, tol_abs=tol_abs
    )
    engine = InverseIteration(
        diag,
        offdiag,
        lam_init,
        precision=config.precision,
        backend=backend,
        diag_fac=diag_fac,
        offdiag_fac=offdiag_fac,
        ones=ones,
        logger=logger,
    )
    return engine.run(eig, config, record_history=record_history)


run_inverse_iteration = eigen_inverse


__all__ = [
    "InverseIteration",
    "InverseIterationResult",
    "InverseStatus",
    "IterationResult",
    "IterationState",
    "ShiftSearchResult",
    "eigen_inverse",
    "run_inverse_iteration",
]
