__all__ = [
    "gemm",
    "gemv",
]

from typing import Optional

from distmat_mpi.DistributedMatrix import DistributedMatrix
from distmat_mpi.Errors import DimensionError
from distmat_mpi.LocalKernels import local_gemm
from distmat_mpi.Options import Orientation
from distmat_mpi.Partitioning import PanelPartition
from distmat_mpi.blas._panels import column_panel, op_shape, row_panel, working_matrix, write_back
from distmat_mpi.utils.decorators import collective


@collective("A", "B", "C", output="C")
def gemm(orientA: Orientation, orientB: Orientation, alpha,
         A: DistributedMatrix, B: DistributedMatrix, beta,
         C: DistributedMatrix, blocksize: Optional[int] = None) -> None:
    r"""Distributed general matrix-matrix product

    Compute :math:`C := \alpha\,\mathrm{op}(A)\,\mathrm{op}(B) + \beta C`
    with a stationary-C SUMMA sweep over the inner dimension: each panel
    of :math:`\mathrm{op}(A)` is replicated over grid rows (``[MC,*]``),
    each panel of :math:`\mathrm{op}(B)` over grid columns (``[*,MR]``),
    and the local product accumulates into ``C``.

    Parameters
    ----------
    orientA : :obj:`distmat_mpi.Orientation`
        Orientation of ``A``.
    orientB : :obj:`distmat_mpi.Orientation`
        Orientation of ``B``.
    alpha : :obj:`float`
        Scaling of the product.
    A : :obj:`distmat_mpi.DistributedMatrix`
        Left operand.
    B : :obj:`distmat_mpi.DistributedMatrix`
        Right operand.
    beta : :obj:`float`
        Scaling of ``C``.
    C : :obj:`distmat_mpi.DistributedMatrix`
        Updated matrix.
    blocksize : :obj:`int`, optional
        Width of the inner panels.

    """
    orientA, orientB = Orientation(orientA), Orientation(orientB)
    m, k = op_shape(A, orientA)
    k2, n = op_shape(B, orientB)
    if k != k2 or (m, n) != C.global_shape:
        raise DimensionError(f"Nonconformal gemm: op(A) ~ {m} x {k}, op(B) ~ {k2} x {n}, "
                             f"C ~ {C.height} x {C.width}")
    W = working_matrix(C)
    if beta == 0:
        W.set_to_zero()
    else:
        W.scale(beta)
    for _, k1, _ in PanelPartition(k, blocksize):
        A1 = column_panel(A, orientA, k1, W)
        B1 = row_panel(B, orientB, k1, W)
        W.local_array[...] = local_gemm(Orientation.NORMAL, Orientation.NORMAL, alpha,
                                        A1.local_array, B1.local_array, 1, W.local_array)
    write_back(C, W)


def gemv(orientation: Orientation, alpha, A: DistributedMatrix,
         x: DistributedMatrix, beta, y: DistributedMatrix,
         blocksize: Optional[int] = None) -> None:
    r"""Distributed matrix-vector product :math:`y := \alpha\,\mathrm{op}(A) x + \beta y`

    ``x`` and ``y`` are column vectors (``n x 1`` matrices).
    """
    if x.width != 1 or y.width != 1:
        raise DimensionError(f"gemv expects column vectors, got x ~ {x.height} x {x.width} "
                             f"and y ~ {y.height} x {y.width}")
    gemm(orientation, Orientation.NORMAL, alpha, A, x, beta, y, blocksize=blocksize)
