"""
Spotops: matrix-free linear operators.

Operators behave like matrices under multiplication, transpose and
composition but only store the rule for applying themselves. The library
provides:
- An abstract operator contract with forward/adjoint dispatch
- Lazy products and (conjugate) transposes of operators
- Dense, sparse and callback-backed leaf operators
- A limited-memory BFGS operator with forward and inverse products
"""

__version__ = "0.1.0"

from spotops.core.operator import Mode, Operator
from spotops.core.errors import (
    OperatorError,
    DimensionMismatch,
    IncompatibleOperators,
    InvalidOperand,
    ForwardModeDisabled,
    CurvatureRejectedWarning,
)
from spotops.algebra.matrix import MatrixOperator, FunctionOperator, as_operator
from spotops.algebra.composition import Composition, compose
from spotops.algebra.transpose import ConjugateTranspose, Transpose
from spotops.quasi_newton.lbfgs import LBFGSOperator

__all__ = [
    "Mode",
    "Operator",
    "OperatorError",
    "DimensionMismatch",
    "IncompatibleOperators",
    "InvalidOperand",
    "ForwardModeDisabled",
    "CurvatureRejectedWarning",
    "MatrixOperator",
    "FunctionOperator",
    "as_operator",
    "Composition",
    "compose",
    "ConjugateTranspose",
    "Transpose",
    "LBFGSOperator",
]
