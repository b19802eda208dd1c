"""Abstract operator contract shared by every matrix-free operator."""

from abc import ABC, abstractmethod
from enum import Enum
from numbers import Number
from typing import Any, Callable
import numpy as np
import scipy.sparse
import scipy.sparse.linalg
from numpy.typing import NDArray

from spotops.core.errors import DimensionMismatch


class Mode(Enum):
    """Direction in which an operator is applied."""
    FORWARD = 1   # A x
    ADJOINT = 2   # A^H x

    def flip(self) -> "Mode":
        """Return the complementary mode."""
        return Mode.ADJOINT if self is Mode.FORWARD else Mode.FORWARD


def is_numeric(value: Any) -> bool:
    """True for scalars, numeric NumPy arrays and SciPy sparse matrices."""
    if isinstance(value, Number):
        return True
    if isinstance(value, np.ndarray):
        return np.issubdtype(value.dtype, np.number)
    return scipy.sparse.issparse(value)


def is_scalar_value(value: Any) -> bool:
    """True for numeric scalars and 0-d arrays; vectors never qualify."""
    if isinstance(value, Number):
        return True
    return isinstance(value, np.ndarray) and is_numeric(value) and value.ndim == 0


class Operator(ABC):
    """
    Object that multiplies like a matrix without storing one.

    Subclasses implement ``_multiply`` and, where a solve makes sense,
    ``_divide``. The public entry points ``apply`` and ``solve`` check
    dimensions before dispatching, so implementations can assume
    conforming input.

    Inputs are either 1-D vectors or 2-D blocks whose columns are vectors.
    Operators with ``sweep = True`` only handle vectors and receive
    blocks one column at a time.
    """

    precedence: int = 1
    sweep: bool = False

    # Make NumPy defer to our reflected operators (c * A, M @ A).
    __array_ufunc__ = None

    def __init__(
        self,
        name: str,
        rows: int,
        cols: int,
        is_complex: bool = False,
        is_linear: bool = True,
    ):
        self.name = name
        self._shape = (int(rows), int(cols))
        self.is_complex = bool(is_complex)
        self.is_linear = bool(is_linear)

    @property
    def shape(self) -> tuple[int, int]:
        """(rows, cols), fixed for the operator's lifetime."""
        return self._shape

    @property
    def rows(self) -> int:
        return self._shape[0]

    @property
    def cols(self) -> int:
        return self._shape[1]

    def is_scalar(self) -> bool:
        """True for 1x1 operators, which broadcast in products."""
        return self._shape == (1, 1)

    def apply(self, x: NDArray, mode: Mode = Mode.FORWARD) -> NDArray:
        """
        Multiply by the operator (FORWARD) or its adjoint (ADJOINT).

        Args:
            x: Vector of length cols (FORWARD) or rows (ADJOINT), or a 2-D
               block of such column vectors
            mode: Application mode

        Returns:
            Product of length rows (FORWARD) or cols (ADJOINT)

        Raises:
            DimensionMismatch: If x does not conform
        """
        mode = Mode(mode)
        x = np.asarray(x)
        if mode is Mode.FORWARD:
            n_in, n_out = self.cols, self.rows
        else:
            n_in, n_out = self.rows, self.cols
        self._check_dimension(x, n_in)
        return self._dispatch(self._multiply, x, mode, n_out)

    def solve(self, b: NDArray, mode: Mode = Mode.FORWARD) -> NDArray:
        """
        Apply the inverse of the operator (FORWARD) or of its adjoint.

        Equivalent to ``A \\ b``. Only operators that know how to invert
        themselves implement this.

        Raises:
            DimensionMismatch: If b does not conform
            NotImplementedError: If the operator has no inverse action
        """
        mode = Mode(mode)
        b = np.asarray(b)
        if mode is Mode.FORWARD:
            n_in, n_out = self.rows, self.cols
        else:
            n_in, n_out = self.cols, self.rows
        self._check_dimension(b, n_in)
        return self._dispatch(self._divide, b, mode, n_out)

    @abstractmethod
    def _multiply(self, x: NDArray, mode: Mode) -> NDArray:
        """Compute the product for a conforming x."""
        ...

    def _divide(self, b: NDArray, mode: Mode) -> NDArray:
        raise NotImplementedError(f"{self} does not support solves")

    def _dispatch(
        self,
        func: Callable[[NDArray, Mode], NDArray],
        x: NDArray,
        mode: Mode,
        n_out: int,
    ) -> NDArray:
        if not (self.sweep and x.ndim == 2):
            return func(x, mode)
        if x.shape[1] == 0:
            return np.zeros((n_out, 0), dtype=x.dtype)
        return np.column_stack([func(x[:, j], mode) for j in range(x.shape[1])])

    def _check_dimension(self, x: NDArray, expected: int) -> None:
        if x.ndim not in (1, 2):
            raise DimensionMismatch(
                f"{self}: expected a vector or 2-D block, got array of rank {x.ndim}"
            )
        if x.shape[0] != expected:
            raise DimensionMismatch(
                f"{self}: expected input of length {expected}, got {x.shape[0]}"
            )

    def adjoint(self) -> "Operator":
        """Conjugate transpose A^H as a view on this operator."""
        from spotops.algebra.transpose import ConjugateTranspose
        return ConjugateTranspose(self)

    @property
    def H(self) -> "Operator":
        return self.adjoint()

    @property
    def T(self) -> "Operator":
        """Plain (non-conjugating) transpose."""
        from spotops.algebra.transpose import Transpose
        return Transpose(self)

    def __mul__(self, other: Any) -> Any:
        from spotops.algebra.composition import compose
        if isinstance(other, Operator) or is_scalar_value(other):
            return compose(self, other)
        if not is_numeric(other):
            return NotImplemented
        return self.apply(other)

    def __rmul__(self, other: Any) -> Any:
        from spotops.algebra.composition import compose
        if not is_numeric(other):
            return NotImplemented
        return compose(other, self)

    __matmul__ = __mul__
    __rmatmul__ = __rmul__

    def __neg__(self) -> "Operator":
        from spotops.algebra.composition import compose
        return compose(-1, self)

    def to_dense(self) -> NDArray:
        """
        Materialize the operator by applying it to each basis vector.

        Costs one apply per column; meant for debugging and tests.
        """
        dtype = np.complex128 if self.is_complex else np.float64
        result = np.zeros(self.shape, dtype=dtype)
        e = np.zeros(self.cols)
        for i in range(self.cols):
            e[i] = 1.0
            result[:, i] = self.apply(e)
            e[i] = 0.0
        return result

    def to_linear_operator(self) -> scipy.sparse.linalg.LinearOperator:
        """Expose as a SciPy LinearOperator (matvec/rmatvec)."""
        dtype = np.complex128 if self.is_complex else np.float64
        return scipy.sparse.linalg.LinearOperator(
            self.shape,
            matvec=lambda x: self.apply(x, Mode.FORWARD),
            rmatvec=lambda x: self.apply(x, Mode.ADJOINT),
            dtype=dtype,
        )

    def __str__(self) -> str:
        return f"{self.name}({self.rows},{self.cols})"

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self}>"
