"""Product of two operators, evaluated lazily."""

from typing import Any
import numpy as np
from numpy.typing import NDArray

from spotops.core.errors import IncompatibleOperators
from spotops.core.operator import Mode, Operator
from spotops.algebra.matrix import as_operator


class Composition(Operator):
    """
    Operator A * B that applies B then A (forward) or A^H then B^H (adjoint).

    Children are referenced, never copied or mutated, so the same operator
    may appear in several expressions. A 1x1 child acts as a scalar and
    broadcasts over the other child's shape.
    """

    precedence = 2

    def __init__(self, left: Any, right: Any):
        """
        Initialize composition.

        Args:
            left: Operator or numeric matrix/scalar applied last
            right: Operator or numeric matrix/scalar applied first

        Raises:
            InvalidOperand: If an operand is neither numeric nor an operator
            IncompatibleOperators: If inner dimensions disagree
        """
        A = as_operator(left)
        B = as_operator(right)

        # A 1x1 child broadcasts, so the product keeps the other child's shape.
        if A.is_scalar():
            rows, cols = B.shape
        elif B.is_scalar():
            rows, cols = A.shape
        elif A.cols == B.rows:
            rows, cols = A.rows, B.cols
        else:
            raise IncompatibleOperators(
                f"Operators are not compatible in size: {A.shape} * {B.shape}"
            )

        # NOTE: linearity propagates with OR (either child linear), kept
        # as-is pending review; AND would be the conservative rule.
        super().__init__(
            "FoG",
            rows,
            cols,
            is_complex=A.is_complex or B.is_complex,
            is_linear=A.is_linear or B.is_linear,
        )
        self.left = A
        self.right = B

    @property
    def children(self) -> tuple[Operator, Operator]:
        return self.left, self.right

    def _multiply(self, x: NDArray, mode: Mode) -> NDArray:
        if mode is Mode.FORWARD:
            first, second = self.right, self.left
        else:
            first, second = self.left, self.right
        return _apply_child(second, _apply_child(first, x, mode), mode)

    def __str__(self) -> str:
        parts = []
        for child in self.children:
            text = str(child)
            if child.precedence > self.precedence:
                text = f"({text})"
            parts.append(text)
        return " * ".join(parts)


def _apply_child(op: Operator, x: NDArray, mode: Mode) -> NDArray:
    """Apply a child, broadcasting 1x1 operators over every entry of x."""
    if op.is_scalar() and x.shape[0] != 1:
        return op.apply(x.reshape(1, -1), mode).reshape(x.shape)
    return op.apply(x, mode)


def compose(left: Any, right: Any) -> Composition:
    """Build the lazy product left * right."""
    return Composition(left, right)
