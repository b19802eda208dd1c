"""Quasi-Newton approximations exposed as operators."""

from spotops.quasi_newton.lbfgs import LBFGSOperator

__all__ = [
    "LBFGSOperator",
]
