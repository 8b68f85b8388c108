__all__ = [
    "trmm",
]

from typing import Optional

from distmat_mpi.Distribution import MC_MR, MC_STAR, MR_STAR, STAR_MC, STAR_MR, STAR_VR, VC_STAR
from distmat_mpi.DistributedMatrix import DistributedMatrix, transpose
from distmat_mpi.Errors import DimensionError
from distmat_mpi.LocalKernels import local_trmm
from distmat_mpi.Options import Orientation, Side, UnitOrNonUnit, UpperOrLower
from distmat_mpi.Partitioning import PanelPartition
from distmat_mpi.blas._panels import as_dist, as_star_star, working_matrix, write_back
from distmat_mpi.utils.decorators import collective


def _apply_diagonal_block(T11, X1, side, uplo, diag):
    """X1 := T11 X1 (left) or X1 T11 (right), with a replicated T11"""
    T11_ss = as_star_star(T11)
    X1_tmp = as_dist(X1, STAR_VR if side is Side.LEFT else VC_STAR)
    X1_tmp.local_array[...] = local_trmm(side, uplo, Orientation.NORMAL, diag, 1,
                                         T11_ss.local_array, X1_tmp.local_array)
    X1.redistribute_from(X1_tmp)


def _left_update(T10, X0, X1):
    # X1 += T10 X0, partial sums over grid rows
    T10_star_mc = as_dist(T10, STAR_MC, row_align=X0.col_align)
    Z1 = DistributedMatrix(X1.grid, X1.height, X1.width, dist=STAR_MR,
                           dtype=X1.dtype, row_align=X1.row_align)
    Z1.local_array[...] = T10_star_mc.local_array @ X0.local_array
    X1.sum_scatter_update(1, Z1)


def _right_update(X0, T01, X1):
    # X1 += X0 T01, partial sums over grid columns
    T01_mr_star = as_dist(T01, MR_STAR, col_align=X0.row_align)
    Z1 = DistributedMatrix(X1.grid, X1.height, X1.width, dist=MC_STAR,
                           dtype=X1.dtype, col_align=X1.col_align)
    Z1.local_array[...] = X0.local_array @ T01_mr_star.local_array
    X1.sum_scatter_update(1, Z1)


def _trmm_lln(L, X, diag, blocksize):
    # bottom to top: X1 := L11 X1 + L10 X0
    for r0, r1, r2 in PanelPartition(X.height, blocksize, reverse=True):
        X0, X1 = X[r0, :], X[r1, :]
        _apply_diagonal_block(L[r1, r1], X1, Side.LEFT, UpperOrLower.LOWER, diag)
        if X0.height > 0:
            _left_update(L[r1, r0], X0, X1)


def _trmm_lun(U, X, diag, blocksize):
    # top to bottom: X1 := U11 X1 + U12 X2
    for r0, r1, r2 in PanelPartition(X.height, blocksize):
        X1, X2 = X[r1, :], X[r2, :]
        _apply_diagonal_block(U[r1, r1], X1, Side.LEFT, UpperOrLower.UPPER, diag)
        if X2.height > 0:
            _left_update(U[r1, r2], X2, X1)


def _trmm_rln(L, X, diag, blocksize):
    # left to right: X1 := X1 L11 + X2 L21
    for c0, c1, c2 in PanelPartition(X.width, blocksize):
        X1, X2 = X[:, c1], X[:, c2]
        _apply_diagonal_block(L[c1, c1], X1, Side.RIGHT, UpperOrLower.LOWER, diag)
        if X2.width > 0:
            _right_update(X2, L[c2, c1], X1)


def _trmm_run(U, X, diag, blocksize):
    # right to left: X1 := X1 U11 + X0 U01
    for c0, c1, c2 in PanelPartition(X.width, blocksize, reverse=True):
        X0, X1 = X[:, c0], X[:, c1]
        _apply_diagonal_block(U[c1, c1], X1, Side.RIGHT, UpperOrLower.UPPER, diag)
        if X0.width > 0:
            _right_update(X0, U[c0, c1], X1)


_VARIANTS = {
    (Side.LEFT, UpperOrLower.LOWER): _trmm_lln,
    (Side.LEFT, UpperOrLower.UPPER): _trmm_lun,
    (Side.RIGHT, UpperOrLower.LOWER): _trmm_rln,
    (Side.RIGHT, UpperOrLower.UPPER): _trmm_run,
}


@collective("A", "B", output="B")
def trmm(side: Side, uplo: UpperOrLower, orientation: Orientation,
         diag: UnitOrNonUnit, alpha, A: DistributedMatrix, B: DistributedMatrix,
         blocksize: Optional[int] = None) -> None:
    r"""Distributed triangular matrix-matrix product

    Overwrite ``B`` with :math:`\alpha\,\mathrm{op}(A) B` (``Side.LEFT``)
    or :math:`\alpha B\,\mathrm{op}(A)` (``Side.RIGHT``).

    Parameters
    ----------
    side : :obj:`distmat_mpi.Side`
        Side of the triangular matrix.
    uplo : :obj:`distmat_mpi.UpperOrLower`
        Referenced triangle of ``A``.
    orientation : :obj:`distmat_mpi.Orientation`
        Orientation of ``A``.
    diag : :obj:`distmat_mpi.UnitOrNonUnit`
        Whether ``A`` has an implicit unit diagonal.
    alpha : :obj:`float`
        Scaling of the product.
    A : :obj:`distmat_mpi.DistributedMatrix`
        Square triangular matrix.
    B : :obj:`distmat_mpi.DistributedMatrix`
        Overwritten operand.
    blocksize : :obj:`int`, optional
        Panel size. Defaults to the configured block size.

    Notes
    -----
    Panels are swept in the order that leaves the operand rows (or
    columns) feeding the off-diagonal update untouched. The off-diagonal
    contribution of each panel is computed as local partial products which
    are then summed and scattered to their owners in a single
    reduce-scatter.

    """
    side, uplo = Side(side), UpperOrLower(uplo)
    orientation, diag = Orientation(orientation), UnitOrNonUnit(diag)
    if A.height != A.width:
        raise DimensionError(f"Triangular matrix must be square, A ~ {A.height} x {A.width}")
    extent = B.height if side is Side.LEFT else B.width
    if A.height != extent:
        raise DimensionError(f"Nonconformal trmm: A ~ {A.height} x {A.width}, "
                             f"B ~ {B.height} x {B.width}")
    if orientation is not Orientation.NORMAL:
        A = transpose(A, conjugate=orientation is Orientation.ADJOINT, dist=MC_MR)
        uplo = UpperOrLower.UPPER if uplo is UpperOrLower.LOWER else UpperOrLower.LOWER
    X = working_matrix(B)
    if alpha != 1:
        X.scale(alpha)
    _VARIANTS[(side, uplo)](A, X, diag, blocksize)
    write_back(B, X)
