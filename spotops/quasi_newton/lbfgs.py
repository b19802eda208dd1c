"""Limited-memory BFGS approximation as an operator."""

import logging
import warnings
from numbers import Integral
from typing import Any, Optional
import numpy as np
from numpy.typing import NDArray

from spotops.core.errors import (
    CurvatureRejectedWarning,
    DimensionMismatch,
    ForwardModeDisabled,
)
from spotops.core.operator import Mode, Operator
from spotops.utils.ring_buffer import RingBuffer

LOGGER = logging.getLogger(__name__)

# Pairs with s'y at or below this are discarded.
CURVATURE_THRESHOLD = 1.0e-20


def _check_integer(value: Any, label: str) -> int:
    if isinstance(value, bool) or not isinstance(value, Integral):
        raise ValueError(f"{label} must be an integer, got {value!r}")
    return int(value)


def _readonly(array: Optional[NDArray]) -> Optional[NDArray]:
    if array is None:
        return None
    view = array.view()
    view.flags.writeable = False
    return view


class LBFGSOperator(Operator):
    """
    Limited-memory BFGS approximation built from a history of (s, y) pairs.

    By default the operator is used through its inverse, i.e. ``solve``
    applies an approximation of the inverse Hessian by two-loop recursion
    (Nocedal & Wright, 2nd ed., Algorithm 7.4):

        B = LBFGSOperator(n, memory=5)
        B.update(s, y)
        d = -B.solve(g)

    Products with the Hessian approximation itself need forward mode,
    which maintains a compact representation B = I + sum(b b' - a a')
    (Procedure 7.6) at O(memory^2 n) cost per update:

        B.enable_forward_mode()
        Bx = B @ x

    Instances are stateful and must not be updated while an apply on the
    same instance is in flight.
    """

    sweep = True

    def __init__(
        self,
        n: int,
        memory: int = 1,
        scaling: bool = False,
        forward: bool = False,
    ):
        """
        Initialize an empty approximation.

        Args:
            n: Dimension of the vectors
            memory: Number of (s, y) pairs kept (values below 1 become 1)
            scaling: Scale the initial inverse Hessian by s'y / y'y
            forward: Enable forward products from the start

        Raises:
            ValueError: If n or memory is not an integer, or n < 1
        """
        n = _check_integer(n, "Dimension")
        if n < 1:
            raise ValueError(f"Dimension must be positive, got {n}")
        memory = max(_check_integer(memory, "Memory parameter"), 1)

        super().__init__("L-BFGS", n, n, is_complex=False)
        self._memory = memory
        self._ring = RingBuffer(memory)
        self._s = np.zeros((memory, n))
        self._y = np.zeros((memory, n))
        self._ys = np.zeros(memory)

        self._forward = False
        self._a: Optional[NDArray] = None
        self._b: Optional[NDArray] = None

        self.use_scaling = scaling
        if forward:
            self.enable_forward_mode()

    @property
    def n(self) -> int:
        return self.rows

    @property
    def memory(self) -> int:
        return self._memory

    @property
    def insert_index(self) -> int:
        """Slot the next accepted pair will overwrite."""
        return self._ring.head

    @property
    def num_pairs(self) -> int:
        return len(self._ring)

    @property
    def s(self) -> NDArray:
        """Stored steps, one row per slot."""
        return _readonly(self._s)

    @property
    def y(self) -> NDArray:
        """Stored gradient changes, one row per slot."""
        return _readonly(self._y)

    @property
    def ys(self) -> NDArray:
        """Curvature s'y per slot; zero marks an empty slot."""
        return _readonly(self._ys)

    @property
    def a(self) -> Optional[NDArray]:
        return _readonly(self._a)

    @property
    def b(self) -> Optional[NDArray]:
        return _readonly(self._b)

    @property
    def forward_enabled(self) -> bool:
        return self._forward

    def enable_forward_mode(self) -> None:
        """
        Start maintaining the compact representation for forward products.

        Buffers are reallocated and rebuilt from the pairs already stored.
        No-op if forward mode is already on.
        """
        if self._forward:
            return
        self._a = np.zeros_like(self._s)
        self._b = np.zeros_like(self._s)
        self._forward = True
        self._rebuild_compact()
        LOGGER.debug("L-BFGS forward mode enabled with %d stored pairs", self.num_pairs)

    def disable_forward_mode(self) -> None:
        """Stop maintaining the compact representation and release it."""
        self._forward = False
        self._a = None
        self._b = None
        LOGGER.debug("L-BFGS forward mode disabled")

    def update(self, s: NDArray, y: NDArray) -> bool:
        """
        Store the pair (s, y), discarding the oldest pair if memory is full.

        Pairs with s'y <= 1e-20 are rejected: a CurvatureRejectedWarning is
        issued and the operator is left untouched.

        Args:
            s: Step x_{k+1} - x_k
            y: Gradient change g_{k+1} - g_k

        Returns:
            True if the pair was stored

        Raises:
            DimensionMismatch: If s or y does not have n entries
        """
        s = self._as_vector(s, "s")
        y = self._as_vector(y, "y")

        ys = float(np.dot(s, y))
        if ys <= CURVATURE_THRESHOLD:
            LOGGER.warning("L-BFGS: rejecting (s,y) pair with s'y = %.3e", ys)
            warnings.warn(
                f"L-BFGS: Rejecting (s,y) pair with s'y = {ys:.3e}",
                CurvatureRejectedWarning,
                stacklevel=2,
            )
            return False

        slot = self._ring.push()
        self._s[slot] = s
        self._y[slot] = y
        self._ys[slot] = ys

        if self._forward:
            self._rebuild_compact()

        LOGGER.debug("L-BFGS: stored pair in slot %d (s'y = %.3e)", slot, ys)
        return True

    def _as_vector(self, v: NDArray, label: str) -> NDArray:
        v = np.asarray(v, dtype=np.float64).reshape(-1)
        if v.size != self.n:
            raise DimensionMismatch(
                f"{self}: {label} must have {self.n} entries, got {v.size}"
            )
        return v

    def _rebuild_compact(self) -> None:
        """Recompute a and b for every stored pair, oldest first."""
        a, b = self._a, self._b
        s, y, ys = self._s, self._y, self._ys
        a[:] = 0.0
        b[:] = 0.0

        processed: list[int] = []
        for k in self._ring.oldest_to_newest():
            b[k] = y[k] / np.sqrt(ys[k])
            a_k = s[k].copy()    # B0 = I
            for l in processed:
                a_k += (b[l] @ s[k]) * b[l]
                a_k -= (a[l] @ s[k]) * a[l]
            a[k] = a_k / np.sqrt(s[k] @ a_k)
            processed.append(k)

    def _multiply(self, x: NDArray, mode: Mode) -> NDArray:
        # B is symmetric: both modes give the same product.
        if not self._forward:
            raise ForwardModeDisabled(
                "L-BFGS: not using forward mode; call enable_forward_mode() first"
            )
        a, b = self._a, self._b
        q = np.array(x, dtype=np.result_type(x, np.float64))
        for k in self._ring.oldest_to_newest():
            q += (b[k] @ x) * b[k] - (a[k] @ x) * a[k]
        return q

    def _divide(self, g: NDArray, mode: Mode) -> NDArray:
        s, y, ys = self._s, self._y, self._ys
        q = np.array(g, dtype=np.result_type(g, np.float64))
        alpha = np.zeros(self._memory, dtype=q.dtype)

        for k in self._ring.newest_to_oldest():
            alpha[k] = (s[k] @ q) / ys[k]
            q -= alpha[k] * y[k]

        r = q
        last = self._ring.newest
        if self.use_scaling and last is not None:
            r *= ys[last] / (y[last] @ y[last])

        for k in self._ring.oldest_to_newest():
            beta = (y[k] @ r) / ys[k]
            r += (alpha[k] - beta) * s[k]
        return r

    def to_dense(self, inverse: bool = False) -> NDArray:
        """
        Materialize the approximation column by column.

        Args:
            inverse: Return the inverse Hessian approximation instead of
                     the Hessian approximation (no forward mode needed)

        Raises:
            ForwardModeDisabled: If inverse is False and forward mode is off
        """
        if not inverse:
            return super().to_dense()
        result = np.zeros(self.shape)
        e = np.zeros(self.n)
        for i in range(self.n):
            e[i] = 1.0
            result[:, i] = self.solve(e)
            e[i] = 0.0
        return result
