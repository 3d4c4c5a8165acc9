"""Utility modules for LisaSmith."""

from lisasmith.utils.errors import (
    DataValidationError,
    LisaSmithError,
    ParameterError,
    PreconditionViolation,
    raise_parameter_error,
    raise_precondition_error,
)

__all__ = [
    "LisaSmithError",
    "DataValidationError",
    "PreconditionViolation",
    "ParameterError",
    "raise_precondition_error",
    "raise_parameter_error",
]
