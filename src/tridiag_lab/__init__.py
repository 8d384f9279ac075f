"""Tridiag Lab: perturbed inverse iteration on symmetric tridiagonal matrices."""

import logging

__version__ = "0.1.0"

from tridiag_lab.algorithms.inverse_iteration import (
    InverseIterationResult,
    InverseStatus,
    eigen_inverse,
)
from tridiag_lab.data.precision_types import (
    InverseIterationConfig,
    PrecisionFormat,
    get_eps,
)

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    "__version__",
    "InverseIterationConfig",
    "InverseIterationResult",
    "InverseStatus",
    "PrecisionFormat",
    "eigen_inverse",
    "get_eps",
]
