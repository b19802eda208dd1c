"""Leaf operators backed by an explicit matrix or by callbacks."""

from typing import Any, Callable
import numpy as np
import scipy.sparse
from numpy.typing import NDArray

from spotops.core.errors import InvalidOperand
from spotops.core.operator import Mode, Operator, is_numeric


class MatrixOperator(Operator):
    """
    Operator view of a dense array, sparse matrix or scalar.

    Scalars become 1x1 operators and 1-D arrays become column vectors.
    """

    def __init__(self, matrix: Any, name: str = "Matrix"):
        """
        Initialize matrix operator.

        Args:
            matrix: NumPy array, scipy.sparse matrix or numeric scalar
            name: Label used in the textual form

        Raises:
            InvalidOperand: If matrix is not numeric or has rank > 2
        """
        if not is_numeric(matrix):
            raise InvalidOperand(
                f"Cannot build an operator from {type(matrix).__name__}"
            )
        if scipy.sparse.issparse(matrix):
            M = matrix.tocsr()
        else:
            M = np.asarray(matrix)
            if M.ndim > 2:
                raise InvalidOperand(
                    f"Cannot build an operator from an array of rank {M.ndim}"
                )
            if M.ndim == 0:
                M = M.reshape(1, 1)
            elif M.ndim == 1:
                M = M.reshape(-1, 1)

        super().__init__(
            name,
            M.shape[0],
            M.shape[1],
            is_complex=np.issubdtype(M.dtype, np.complexfloating),
        )
        self.matrix = M

    def _multiply(self, x: NDArray, mode: Mode) -> NDArray:
        if mode is Mode.FORWARD:
            return self.matrix @ x
        return self.matrix.conj().T @ x

    def to_dense(self) -> NDArray:
        if scipy.sparse.issparse(self.matrix):
            return self.matrix.toarray()
        return np.array(self.matrix)


class FunctionOperator(Operator):
    """
    Leaf whose products come from user callbacks.

    The callbacks only ever see single vectors: blocks are swept column by
    column. Without ``rmatvec`` the adjoint mode raises NotImplementedError.
    """

    sweep = True

    def __init__(
        self,
        shape: tuple[int, int],
        matvec: Callable[[NDArray], NDArray],
        rmatvec: Callable[[NDArray], NDArray] | None = None,
        is_complex: bool = False,
        name: str = "Function",
    ):
        """
        Initialize function operator.

        Args:
            shape: (m, n) dimensions
            matvec: Function computing A @ x for a vector x
            rmatvec: Function computing A^H @ x (optional)
            is_complex: Whether the callbacks may return complex values
            name: Label used in the textual form
        """
        super().__init__(name, shape[0], shape[1], is_complex=is_complex)
        self._matvec = matvec
        self._rmatvec = rmatvec

    def _multiply(self, x: NDArray, mode: Mode) -> NDArray:
        if mode is Mode.FORWARD:
            return np.asarray(self._matvec(x))
        if self._rmatvec is None:
            raise NotImplementedError("Adjoint operation not provided")
        return np.asarray(self._rmatvec(x))


def as_operator(value: Any) -> Operator:
    """
    Return value as an operator, wrapping numeric input in MatrixOperator.

    Raises:
        InvalidOperand: If value is neither an operator nor numeric
    """
    if isinstance(value, Operator):
        return value
    return MatrixOperator(value)
