__all__ = [
    "default_blocksize",
    "debug_enabled",
    "blocksize_or_default",
]

import os
from typing import Optional


# default algorithmic block size of every panel routine
default_blocksize: int = int(os.getenv("DISTMAT_MPI_BLOCKSIZE", 128))

# enable view bounds and operand aliasing assertions
debug_enabled: bool = (
    True if int(os.getenv("DISTMAT_MPI_DEBUG", 0)) == 1 else False
)


def blocksize_or_default(blocksize: Optional[int] = None) -> int:
    """Resolve the block size of a blocked routine

    Parameters
    ----------
    blocksize : :obj:`int`, optional
        Requested block size. Defaults to ``DISTMAT_MPI_BLOCKSIZE``
        (128 when unset).

    Returns
    -------
    blocksize : :obj:`int`
        Block size to be used.

    """
    if blocksize is None:
        blocksize = default_blocksize
    if int(blocksize) < 1:
        raise ValueError(f"blocksize must be positive, got {blocksize}")
    return int(blocksize)
