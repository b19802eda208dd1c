"""Core abstractions for matrix-free operators."""

from spotops.core.errors import (
    OperatorError,
    DimensionMismatch,
    IncompatibleOperators,
    InvalidOperand,
    ForwardModeDisabled,
    CurvatureRejectedWarning,
)
from spotops.core.operator import Mode, Operator

__all__ = [
    "Mode",
    "Operator",
    "OperatorError",
    "DimensionMismatch",
    "IncompatibleOperators",
    "InvalidOperand",
    "ForwardModeDisabled",
    "CurvatureRejectedWarning",
]
