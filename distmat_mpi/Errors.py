__all__ = [
    "LogicError",
    "DimensionError",
    "AlignmentError",
    "GridError",
    "ConvergenceError",
    "NonHPDMatrixError",
]


class LogicError(ValueError):
    r"""Invalid usage of a distributed object

    Raised synchronously, and identically on every process, when the
    metadata of the operands (shapes, distributions, grids, alignments)
    makes the requested operation invalid. No communication happens
    before such an error is raised.
    """


class DimensionError(LogicError):
    """Nonconformal operands."""


class AlignmentError(LogicError):
    """Conflicting alignment of an alignment-constrained matrix."""


class GridError(LogicError):
    """Invalid process grid shape."""


class ConvergenceError(RuntimeError):
    r"""Iterative routine did not converge

    Raised instead of returning an approximation when a bounded iteration
    (e.g. a power iteration) does not reach its tolerance.
    """


class NonHPDMatrixError(RuntimeError):
    """Cholesky factorization met a non-positive pivot."""
