"""Transpose and conjugate-transpose views of an operator."""

import numpy as np
from numpy.typing import NDArray

from spotops.core.operator import Mode, Operator


class ConjugateTranspose(Operator):
    """
    A^H without copying A: every call is forwarded with the mode flipped.
    """

    def __init__(self, op: Operator):
        super().__init__(
            "CTranspose",
            op.cols,
            op.rows,
            is_complex=op.is_complex,
            is_linear=op.is_linear,
        )
        self.child = op
        self.sweep = op.sweep

    def _multiply(self, x: NDArray, mode: Mode) -> NDArray:
        return self.child.apply(x, mode.flip())

    def _divide(self, b: NDArray, mode: Mode) -> NDArray:
        return self.child.solve(b, mode.flip())

    def adjoint(self) -> Operator:
        return self.child

    def __str__(self) -> str:
        text = str(self.child)
        if self.child.precedence > self.precedence:
            text = f"({text})"
        return f"{text}'"


class Transpose(Operator):
    """
    A^T without copying A, computed as conj(A^H conj(x)).
    """

    def __init__(self, op: Operator):
        super().__init__(
            "Transpose",
            op.cols,
            op.rows,
            is_complex=op.is_complex,
            is_linear=op.is_linear,
        )
        self.child = op
        self.sweep = op.sweep

    def _multiply(self, x: NDArray, mode: Mode) -> NDArray:
        if not self.is_complex:
            return self.child.apply(x, mode.flip())
        return np.conj(self.child.apply(np.conj(x), mode.flip()))

    def _divide(self, b: NDArray, mode: Mode) -> NDArray:
        if not self.is_complex:
            return self.child.solve(b, mode.flip())
        return np.conj(self.child.solve(np.conj(b), mode.flip()))

    @property
    def T(self) -> Operator:
        return self.child

    def __str__(self) -> str:
        text = str(self.child)
        if self.child.precedence > self.precedence:
            text = f"({text})"
        return f"{text}.'"
