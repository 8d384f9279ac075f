"""
Precision Format Definitions - Single Source of Truth

This module defines the floating-point formats the inverse iteration can run
in, their machine epsilon values, the perturbation constants derived from
them, and the default convergence settings.

Only formats with a LAPACK positive definite tridiagonal factorization
(``spttrf``/``dpttrf``) are listed.

References:
    - IEEE 754-2019 Standard for Floating-Point Arithmetic
    - Anderson et al.: "LAPACK Users' Guide" (3rd ed.), xPTTRF/xPTTRS
    - Higham: "Accuracy and Stability of Numerical Algorithms" (2nd ed.)
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, cast

import numpy as np
from numpy.typing import DTypeLike


class PrecisionFormat(Enum):
    """Supported floating-point precision formats."""

    FP64 = "fp64"
    FP32 = "fp32"


@dataclass(frozen=True, slots=True)
class PrecisionSpec:
    """Specification for a floating-point precision format."""

    format: PrecisionFormat
    bits: int
    mantissa_bits: int
    exponent_bits: int
    machine_epsilon: float
    lapack_prefix: str  # BLAS/LAPACK type character ('d' or 's')

    @property
    def bytes(self) -> int:
        """Number of bytes for this format."""
        return self.bits // 8

    @property
    def eps_pow_4(self) -> float:
        """Fourth root of machine epsilon, the first nonzero perturbation unit."""
        return float(self.machine_epsilon**0.25)

    @property
    def max_perturbation(self) -> float:
        """Largest perturbation the shift search may try (1/ε)."""
        return 1.0 / self.machine_epsilon


# =============================================================================
# PRECISION SPECIFICATIONS
# =============================================================================
# Machine epsilon is taken from numpy.finfo so that the perturbation
# constants match the arithmetic the backends actually perform.

_PRECISION_SPECS: dict[PrecisionFormat, PrecisionSpec] = {
    PrecisionFormat.FP64: PrecisionSpec(
        format=PrecisionFormat.FP64,
        bits=64,
        mantissa_bits=52,
        exponent_bits=11,
        machine_epsilon=float(np.finfo(np.float64).eps),  # 2^(-52)
        lapack_prefix="d",
    ),
    PrecisionFormat.FP32: PrecisionSpec(
        format=PrecisionFormat.FP32,
        bits=32,
        mantissa_bits=23,
        exponent_bits=8,
        machine_epsilon=float(np.finfo(np.float32).eps),  # 2^(-23)
        lapack_prefix="s",
    ),
}


# =============================================================================
# CONVERGENCE TOLERANCES
# =============================================================================
# tol_abs ≈ sqrt(ε): |invnorm - pert| is resolved to about ε·‖T‖, so the
# square root leaves ample headroom. Inverse iteration against a fixed
# factorization converges in a handful of steps when the shift is close.

_CONVERGENCE_TOLERANCES: dict[PrecisionFormat, dict[str, float | int]] = {
    PrecisionFormat.FP64: {
        "tol_abs": float(np.sqrt(np.finfo(np.float64).eps)),
        "itmax": 10,
    },
    PrecisionFormat.FP32: {
        "tol_abs": float(np.sqrt(np.finfo(np.float32).eps)),
        "itmax": 10,
    },
}


# =============================================================================
# PUBLIC API
# =============================================================================


def get_spec(fmt: PrecisionFormat | str) -> PrecisionSpec:
    """
    Get the full specification for a precision format.

    Args:
        fmt: Precision format (enum or string like 'fp64', 'FP32')

    Returns:
        PrecisionSpec with all format properties

    Raises:
        ValueError: If format is unknown

    Example:
        >>> spec = get_spec("fp64")
        >>> spec.lapack_prefix
        'd'
    """
    if isinstance(fmt, str):
        fmt = _parse_format(fmt)
    return _PRECISION_SPECS[fmt]


def get_dtype(fmt: PrecisionFormat | str) -> DTypeLike:
    """
    Get the numpy dtype for a precision format.

    Example:
        >>> get_dtype("fp32")
        <class 'numpy.float32'>
    """
    if isinstance(fmt, str):
        fmt = _parse_format(fmt)

    dtype_map: dict[PrecisionFormat, Any] = {
        PrecisionFormat.FP64: np.float64,
        PrecisionFormat.FP32: np.float32,
    }
    return cast("DTypeLike", dtype_map[fmt])


def get_eps(fmt: PrecisionFormat | str) -> float:
    """
    Get machine epsilon for a precision format.

    Machine epsilon is the smallest positive number ε such that 1.0 + ε ≠ 1.0
    in the given floating-point representation.
    """
    return get_spec(fmt).machine_epsilon


def get_tolerance(
    fmt: PrecisionFormat | str,
    tolerance_type: str = "tol_abs",
) -> float | int:
    """
    Get a default convergence setting for a precision format.

    Args:
        fmt: Precision format
        tolerance_type: One of 'tol_abs', 'itmax'

    Returns:
        Tolerance value

    Example:
        >>> get_tolerance("fp64", "itmax")
        10
    """
    if isinstance(fmt, str):
        fmt = _parse_format(fmt)

    tols = _CONVERGENCE_TOLERANCES[fmt]
    if tolerance_type not in tols:
        valid = list(tols.keys())
        raise ValueError(f"Unknown tolerance type: {tolerance_type}. Valid: {valid}")

    return tols[tolerance_type]


def list_available_formats() -> list[PrecisionFormat]:
    """List all precision formats, highest precision first."""
    return [PrecisionFormat.FP64, PrecisionFormat.FP32]


def format_for_dtype(dtype: DTypeLike) -> PrecisionFormat:
    """
    Map a numpy dtype back to its precision format.

    Raises:
        ValueError: If the dtype has no matching format
    """
    resolved = np.dtype(dtype)
    for fmt in PrecisionFormat:
        if np.dtype(get_dtype(fmt)) == resolved:
            return fmt

    valid = [f.value for f in PrecisionFormat]
    raise ValueError(f"Unsupported dtype: {resolved}. Valid formats: {valid}")


# =============================================================================
# CONFIGURATION
# =============================================================================


@dataclass(frozen=True, slots=True)
class InverseIterationConfig:
    """Run settings for perturbed inverse iteration."""

    itmax: int
    """Iteration budget for the inverse iteration loop."""

    tol_abs: float
    """Absolute tolerance on |invnorm - pert|."""

    precision: PrecisionFormat = PrecisionFormat.FP64
    """Working precision."""

    def __post_init__(self) -> None:
        if self.itmax < 0:
            msg = f"itmax must be non-negative, got {self.itmax}"
            raise ValueError(msg)
        if self.tol_abs < 0:
            msg = f"tol_abs must be non-negative, got {self.tol_abs}"
            raise ValueError(msg)

    @classmethod
    def from_precision(
        cls,
        fmt: PrecisionFormat | str,
        *,
        itmax: int | None = None,
        tol_abs: float | None = None,
    ) -> "InverseIterationConfig":
        """Build a config from the defaults table, with optional overrides."""
        if isinstance(fmt, str):
            fmt = _parse_format(fmt)
        return cls(
            itmax=int(get_tolerance(fmt, "itmax")) if itmax is None else itmax,
            tol_abs=float(get_tolerance(fmt, "tol_abs"))
            if tol_abs is None
            else tol_abs,
            precision=fmt,
        )


# =============================================================================
# INTERNAL HELPERS
# =============================================================================


def _parse_format(name: str) -> PrecisionFormat:
    """Parse a string into a PrecisionFormat enum."""
    normalized = name.lower().replace("-", "_").replace(" ", "_")

    for fmt in PrecisionFormat:
        if fmt.value == normalized:
            return fmt

    valid = [f.value for f in PrecisionFormat]
    raise ValueError(f"Unknown precision format: '{name}'. Valid: {valid}")
