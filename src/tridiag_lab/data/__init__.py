"""Data module for precision formats and run configuration."""

from tridiag_lab.data.precision_types import (
    InverseIterationConfig,
    PrecisionFormat,
    PrecisionSpec,
    format_for_dtype,
    get_dtype,
    get_eps,
    get_spec,
    get_tolerance,
    list_available_formats,
)

__all__ = [
    "InverseIterationConfig",
    "PrecisionFormat",
    "PrecisionSpec",
    "format_for_dtype",
    "get_dtype",
    "get_eps",
    "get_spec",
    "get_tolerance",
    "list_available_formats",
]
