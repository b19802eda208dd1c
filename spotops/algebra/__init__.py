"""Operator algebra: leaves, products and transposes."""

from spotops.algebra.matrix import MatrixOperator, FunctionOperator, as_operator
from spotops.algebra.composition import Composition, compose
from spotops.algebra.transpose import ConjugateTranspose, Transpose

__all__ = [
    "MatrixOperator",
    "FunctionOperator",
    "as_operator",
    "Composition",
    "compose",
    "ConjugateTranspose",
    "Transpose",
]
