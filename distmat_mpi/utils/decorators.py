__all__ = [
    "collective",
]

import inspect
from functools import wraps
from typing import Callable, Optional

import numpy as np

from distmat_mpi.Errors import LogicError
from distmat_mpi.utils import config


def collective(*names: str, output: Optional[str] = None) -> Callable:
    """Decorator checking the distributed operands of a collective routine.

    It is used by every panel routine.

    Parameters
    ----------
    names : :obj:`str`
        Names of the :class:`distmat_mpi.DistributedMatrix` arguments that
        must share a grid. ``None`` arguments are skipped.
    output : :obj:`str`, optional
        Name of the overwritten argument. In debug mode
        (``DISTMAT_MPI_DEBUG=1``) its local storage must not alias the
        storage of any other operand.

    Notes
    -----
    The checks only read metadata, so they raise on every process
    before any communication takes place.

    .. code-block:: python

        @collective("A", "B", output="B")
        def trsm(side, uplo, orientation, diag, alpha, A, B, blocksize=None):
            ...

    """

    def decorator(f):
        signature = inspect.signature(f)

        @wraps(f)
        def wrapper(*args, **kwargs):
            bound = signature.bind(*args, **kwargs)
            operands = [(name, bound.arguments.get(name)) for name in names]
            operands = [(name, M) for name, M in operands if M is not None]
            if operands:
                first_name, first = operands[0]
                for name, M in operands[1:]:
                    if M.grid != first.grid:
                        raise LogicError(f"{first_name} and {name} must be distributed "
                                         f"over the same grid")
            if config.debug_enabled and output is not None:
                out = bound.arguments.get(output)
                for name, M in operands:
                    if name != output and M is not out and out is not None and \
                            np.may_share_memory(M.local_array, out.local_array):
                        raise LogicError(f"{output} aliases the storage of {name}")
            return f(*args, **kwargs)
        return wrapper
    return decorator
