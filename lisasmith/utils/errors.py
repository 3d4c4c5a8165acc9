"""Exceptions raised by LisaSmith.

Batch-level problems (mismatched inputs, zero variance, zero total mass,
weights of the wrong style) raise before any statistic is computed.
Per-unit problems are never raised; they are reported inline through
``UnitStatus`` on each record.
"""

from typing import Any, Optional


class LisaSmithError(Exception):
    """Base exception for LisaSmith errors.

    Args:
        message: What went wrong.
        suggestion: Optional hint appended to ``str(error)``.
        details: Optional structured context for callers.
    """

    def __init__(
        self,
        message: str,
        suggestion: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.suggestion = suggestion
        self.details = details or {}

    def __str__(self) -> str:
        if self.suggestion:
            return f"{self.message}\n\nSuggestion: {self.suggestion}"
        return self.message


class DataValidationError(LisaSmithError):
    """Input data failed validation."""


class PreconditionViolation(DataValidationError):
    """A whole attribute vector or weights object is unusable.

    Covers mismatched lengths or keys, zero attribute variance, zero total
    mass and weights that are not in the style a statistic requires.
    """


class ParameterError(LisaSmithError):
    """A keyword argument is out of range or not one of the allowed values."""


def raise_precondition_error(
    message: str,
    expected: Optional[str] = None,
    received: Optional[str] = None,
    suggestion: Optional[str] = None,
) -> None:
    """Raise PreconditionViolation with expected/received context lines.

    Raises:
        PreconditionViolation: Always.
    """
    lines = [message]
    if expected is not None:
        lines.append(f"  expected: {expected}")
    if received is not None:
        lines.append(f"  received: {received}")
    raise PreconditionViolation(
        "\n".join(lines),
        suggestion=suggestion,
        details={"expected": expected, "received": received},
    )


def raise_parameter_error(
    parameter_name: str,
    value: Any,
    valid_values: Optional[list[str]] = None,
    constraint: Optional[str] = None,
    suggestion: Optional[str] = None,
) -> None:
    """Raise ParameterError naming the parameter and the rejected value.

    Raises:
        ParameterError: Always.
    """
    lines = [f"Invalid value for parameter '{parameter_name}': {value!r}"]
    if valid_values:
        lines.append(f"  valid values: {', '.join(map(str, valid_values))}")
    if constraint:
        lines.append(f"  constraint: {constraint}")
    raise ParameterError(
        "\n".join(lines), suggestion=suggestion, details={parameter_name: value}
    )
