"""Error and warning types raised by operators."""


class OperatorError(Exception):
    """Base class for operator algebra failures."""


class DimensionMismatch(OperatorError, ValueError):
    """Input length disagrees with the operator's dimension for the mode."""


class IncompatibleOperators(OperatorError, ValueError):
    """Operands of a product do not conform in size."""


class InvalidOperand(OperatorError, TypeError):
    """Operand is neither numeric nor an operator."""


class ForwardModeDisabled(OperatorError, RuntimeError):
    """Forward product requested from an L-BFGS operator without forward mode."""


class CurvatureRejectedWarning(RuntimeWarning):
    """
    An (s, y) pair was discarded because s'y was not sufficiently positive.

    The operator keeps its previous state; the caller may carry on.
    """
