__all__ = [
    "trsm",
]

from typing import Optional

from distmat_mpi.Distribution import MC_MR, MC_STAR, STAR_MR, STAR_VR, VC_STAR
from distmat_mpi.DistributedMatrix import DistributedMatrix, transpose
from distmat_mpi.Errors import DimensionError
from distmat_mpi.LocalKernels import local_trsm
from distmat_mpi.Options import Orientation, Side, UnitOrNonUnit, UpperOrLower
from distmat_mpi.Partitioning import PanelPartition
from distmat_mpi.blas._panels import as_dist, as_star_star, working_matrix, write_back
from distmat_mpi.utils.decorators import collective


def _trsm_lln(L, X, diag, blocksize):
    # top to bottom: X1 := L11^-1 X1, X2 -= L21 X1
    for r0, r1, r2 in PanelPartition(X.height, blocksize):
        X1, X2 = X[r1, :], X[r2, :]
        L11_ss = as_star_star(L[r1, r1])
        X1_star_vr = as_dist(X1, STAR_VR)
        X1_star_vr.local_array[...] = local_trsm(Side.LEFT, UpperOrLower.LOWER, Orientation.NORMAL,
                                                 diag, 1, L11_ss.local_array, X1_star_vr.local_array)
        X1_star_mr = as_dist(X1_star_vr, STAR_MR, row_align=X.row_align)
        X1.redistribute_from(X1_star_mr)
        L21_mc_star = as_dist(L[r2, r1], MC_STAR, col_align=X2.col_align)
        X2.local_array[...] -= L21_mc_star.local_array @ X1_star_mr.local_array


def _trsm_lun(U, X, diag, blocksize):
    # bottom to top: X1 := U11^-1 X1, X0 -= U01 X1
    for r0, r1, r2 in PanelPartition(X.height, blocksize, reverse=True):
        X0, X1 = X[r0, :], X[r1, :]
        U11_ss = as_star_star(U[r1, r1])
        X1_star_vr = as_dist(X1, STAR_VR)
        X1_star_vr.local_array[...] = local_trsm(Side.LEFT, UpperOrLower.UPPER, Orientation.NORMAL,
                                                 diag, 1, U11_ss.local_array, X1_star_vr.local_array)
        X1_star_mr = as_dist(X1_star_vr, STAR_MR, row_align=X.row_align)
        X1.redistribute_from(X1_star_mr)
        U01_mc_star = as_dist(U[r0, r1], MC_STAR, col_align=X0.col_align)
        X0.local_array[...] -= U01_mc_star.local_array @ X1_star_mr.local_array


def _trsm_rln(L, X, diag, blocksize):
    # right to left: X1 := X1 L11^-1, X0 -= X1 L10
    for c0, c1, c2 in PanelPartition(X.width, blocksize, reverse=True):
        X0, X1 = X[:, c0], X[:, c1]
        L11_ss = as_star_star(L[c1, c1])
        X1_vc_star = as_dist(X1, VC_STAR)
        X1_vc_star.local_array[...] = local_trsm(Side.RIGHT, UpperOrLower.LOWER, Orientation.NORMAL,
                                                 diag, 1, L11_ss.local_array, X1_vc_star.local_array)
        X1_mc_star = as_dist(X1_vc_star, MC_STAR, col_align=X.col_align)
        X1.redistribute_from(X1_mc_star)
        L10_star_mr = as_dist(L[c1, c0], STAR_MR, row_align=X0.row_align)
        X0.local_array[...] -= X1_mc_star.local_array @ L10_star_mr.local_array


def _trsm_run(U, X, diag, blocksize):
    # left to right: X1 := X1 U11^-1, X2 -= X1 U12
    for c0, c1, c2 in PanelPartition(X.width, blocksize):
        X1, X2 = X[:, c1], X[:, c2]
        U11_ss = as_star_star(U[c1, c1])
        X1_vc_star = as_dist(X1, VC_STAR)
        X1_vc_star.local_array[...] = local_trsm(Side.RIGHT, UpperOrLower.UPPER, Orientation.NORMAL,
                                                 diag, 1, U11_ss.local_array, X1_vc_star.local_array)
        X1_mc_star = as_dist(X1_vc_star, MC_STAR, col_align=X.col_align)
        X1.redistribute_from(X1_mc_star)
        U12_star_mr = as_dist(U[c1, c2], STAR_MR, row_align=X2.row_align)
        X2.local_array[...] -= X1_mc_star.local_array @ U12_star_mr.local_array


_VARIANTS = {
    (Side.LEFT, UpperOrLower.LOWER): _trsm_lln,
    (Side.LEFT, UpperOrLower.UPPER): _trsm_lun,
    (Side.RIGHT, UpperOrLower.LOWER): _trsm_rln,
    (Side.RIGHT, UpperOrLower.UPPER): _trsm_run,
}


@collective("A", "B", output="B")
def trsm(side: Side, uplo: UpperOrLower, orientation: Orientation,
         diag: UnitOrNonUnit, alpha, A: DistributedMatrix, B: DistributedMatrix,
         blocksize: Optional[int] = None) -> None:
    r"""Distributed triangular solve

    Overwrite ``B`` with the solution :math:`X` of
    :math:`\mathrm{op}(A) X = \alpha B` (``Side.LEFT``) or
    :math:`X \mathrm{op}(A) = \alpha B` (``Side.RIGHT``).

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
        Scaling of the right-hand side.
    A : :obj:`distmat_mpi.DistributedMatrix`
        Square triangular matrix.
    B : :obj:`distmat_mpi.DistributedMatrix`
        Right-hand side, overwritten by the solution.
    blocksize : :obj:`int`, optional
        Panel size. Defaults to the configured block size.

    Notes
    -----
    Each diagonal block is replicated (``[*,*]``) and the matching panel of
    ``B`` is spread over all processes (``[*,VR]`` on the left,
    ``[VC,*]`` on the right) for the local solve; the solved panel is then
    replicated along one grid axis to update the remaining rows (or
    columns) of ``B`` with local products. Transposed orientations run the
    normal variant of the opposite triangle on an explicit transpose of
    ``A``.

    """
    side, uplo = Side(side), UpperOrLower(uplo)
    orientation, diag = Orientation(orientation), UnitOrNonUnit(diag)
    if A.height != A.width:
        raise DimensionError(f"Triangular matrix must be square, A ~ {A.height} x {A.width}")
    extent = B.height if side is Side.LEFT else B.width
    if A.height != extent:
        raise DimensionError(f"Nonconformal trsm: A ~ {A.height} x {A.width}, "
                             f"B ~ {B.height} x {B.width}")
    if orientation is not Orientation.NORMAL:
        A = transpose(A, conjugate=orientation is Orientation.ADJOINT, dist=MC_MR)
        uplo = UpperOrLower.UPPER if uplo is UpperOrLower.LOWER else UpperOrLower.LOWER
    X = working_matrix(B)
    if alpha != 1:
        X.scale(alpha)
    _VARIANTS[(side, uplo)](A, X, diag, blocksize)
    write_back(B, X)
