__all__ = [
    "symv",
    "hemv",
]

import numpy as np
from mpi4py import MPI

from distmat_mpi.DistributedMatrix import DistributedMatrix
from distmat_mpi.Errors import DimensionError
from distmat_mpi.Options import UpperOrLower
from distmat_mpi.blas._panels import as_star_star, working_matrix
from distmat_mpi.utils.decorators import collective


def hermitian_product(uplo: UpperOrLower, A: DistributedMatrix,
                      x: np.ndarray, conjugate: bool = True) -> np.ndarray:
    r"""Replicated :math:`A x` reading only the ``uplo`` triangle of ``A``

    ``A`` is ``[MC,MR]`` and ``x`` a replicated one-dimensional array. The
    mirrored triangle is applied through the stored one (conjugated when
    ``conjugate=True``), and the local contributions are summed over the
    whole grid.
    """
    rows, cols = A.global_row_indices(), A.global_col_indices()
    dtype = np.result_type(A.dtype, x.dtype)
    z = np.zeros(A.height, dtype=dtype)
    if A.local_array.size > 0:
        if UpperOrLower(uplo) is UpperOrLower.LOWER:
            stored = rows[:, None] >= cols[None, :]
            mirrored = rows[:, None] > cols[None, :]
        else:
            stored = rows[:, None] <= cols[None, :]
            mirrored = rows[:, None] < cols[None, :]
        T = np.where(stored, A.local_array, 0)
        M = np.where(mirrored, A.local_array, 0)
        z[rows] += T @ x[cols]
        z[cols] += (M.conj() if conjugate else M).T @ x[rows]
    return A._allreduce(A.grid.comm, z, MPI.SUM)


def _symmetric_mv(uplo, alpha, A, x, beta, y, conjugate):
    if A.height != A.width:
        raise DimensionError(f"Matrix must be square, A ~ {A.height} x {A.width}")
    if x.width != 1 or y.width != 1:
        raise DimensionError(f"Expected column vectors, got x ~ {x.height} x {x.width} "
                             f"and y ~ {y.height} x {y.width}")
    if x.height != A.width or y.height != A.height:
        raise DimensionError(f"Nonconformal product: A ~ {A.height} x {A.width}, "
                             f"x ~ {x.height} x 1, y ~ {y.height} x 1")
    W = working_matrix(A)
    x_full = as_star_star(x).local_array[:, 0]
    z = hermitian_product(uplo, W, x_full, conjugate=conjugate)
    rows = y.global_row_indices()
    contribution = alpha * z[rows][:, np.newaxis]
    if beta == 0:
        y.local_array[...] = contribution
    else:
        y.local_array[...] = beta * y.local_array + contribution


@collective("A", "x", "y", output="y")
def symv(uplo: UpperOrLower, alpha, A: DistributedMatrix,
         x: DistributedMatrix, beta, y: DistributedMatrix) -> None:
    r"""Symmetric matrix-vector product :math:`y := \alpha A x + \beta y`

    Only the ``uplo`` triangle of ``A`` is referenced.

    Parameters
    ----------
    uplo : :obj:`distmat_mpi.UpperOrLower`
        Referenced triangle of ``A``.
    alpha : :obj:`float`
        Scaling of the product.
    A : :obj:`distmat_mpi.DistributedMatrix`
        Square symmetric matrix.
    x : :obj:`distmat_mpi.DistributedMatrix`
        Column vector.
    beta : :obj:`float`
        Scaling of ``y``.
    y : :obj:`distmat_mpi.DistributedMatrix`
        Updated column vector, in any distribution.

    """
    _symmetric_mv(uplo, alpha, A, x, beta, y, conjugate=False)


@collective("A", "x", "y", output="y")
def hemv(uplo: UpperOrLower, alpha, A: DistributedMatrix,
         x: DistributedMatrix, beta, y: DistributedMatrix) -> None:
    r"""Hermitian matrix-vector product :math:`y := \alpha A x + \beta y`

    Same as :func:`distmat_mpi.blas.symv`, the mirrored triangle being
    conjugated.
    """
    _symmetric_mv(uplo, alpha, A, x, beta, y, conjugate=True)
