__all__ = [
    "cholesky",
]

from typing import Optional

from distmat_mpi.DistributedMatrix import DistributedMatrix
from distmat_mpi.Errors import DimensionError
from distmat_mpi.LocalKernels import local_cholesky
from distmat_mpi.Options import Orientation, Side, UnitOrNonUnit, UpperOrLower
from distmat_mpi.Partitioning import sweep_down_diagonal
from distmat_mpi.blas.Trrk import herk
from distmat_mpi.blas.Trsm import trsm
from distmat_mpi.blas._panels import as_star_star, working_matrix, write_back
from distmat_mpi.utils.decorators import collective


@collective("A", output="A")
def cholesky(uplo: UpperOrLower, A: DistributedMatrix,
             blocksize: Optional[int] = None) -> None:
    r"""Blocked Cholesky factorization

    Overwrite the ``uplo`` triangle of the Hermitian positive definite
    ``A`` with :math:`L` such that :math:`A = L L^H`
    (``UpperOrLower.LOWER``) or :math:`U` such that :math:`A = U^H U`
    (``UpperOrLower.UPPER``). The other triangle is not referenced.

    Parameters
    ----------
    uplo : :obj:`distmat_mpi.UpperOrLower`
        Referenced triangle of ``A``.
    A : :obj:`distmat_mpi.DistributedMatrix`
        Square matrix, overwritten by its factor.
    blocksize : :obj:`int`, optional
        Panel size. Defaults to the configured block size.

    Raises
    ------
    NonHPDMatrixError
        If a diagonal block is not positive definite.

    Notes
    -----
    Right-looking variant: every diagonal block is factored redundantly on
    all processes, the panel below (right of) it is solved with
    :func:`distmat_mpi.blas.trsm` and the trailing matrix receives a
    Hermitian rank-k update.

    """
    uplo = UpperOrLower(uplo)
    if A.height != A.width:
        raise DimensionError(f"Matrix must be square, A ~ {A.height} x {A.width}")
    W = working_matrix(A)
    lower = uplo is UpperOrLower.LOWER
    for blocks in sweep_down_diagonal(W, blocksize):
        A11_ss = as_star_star(blocks.A11)
        A11_ss.local_array[...] = local_cholesky(uplo, A11_ss.local_array)
        blocks.A11.redistribute_from(A11_ss)
        if lower:
            A21 = blocks.A21
            if A21.height == 0:
                continue
            trsm(Side.RIGHT, uplo, Orientation.ADJOINT, UnitOrNonUnit.NON_UNIT,
                 1, A11_ss, A21, blocksize=blocksize)
            herk(uplo, Orientation.NORMAL, -1, A21.copy(), 1, blocks.A22, blocksize=blocksize)
        else:
            A12 = blocks.A12
            if A12.width == 0:
                continue
            trsm(Side.LEFT, uplo, Orientation.ADJOINT, UnitOrNonUnit.NON_UNIT,
                 1, A11_ss, A12, blocksize=blocksize)
            herk(uplo, Orientation.ADJOINT, -1, A12.copy(), 1, blocks.A22, blocksize=blocksize)
    write_back(A, W)
