"""
    Panel redistributions shared by the blocked routines
"""
from typing import Tuple

import numpy as np

from distmat_mpi.Distribution import Dist, MC_MR, MC_STAR, STAR_MR, STAR_MC, MR_STAR, STAR_STAR
from distmat_mpi.DistributedMatrix import DistributedMatrix
from distmat_mpi.Options import Orientation


def op_shape(A: DistributedMatrix, orientation: Orientation) -> Tuple[int, int]:
    if Orientation(orientation) is Orientation.NORMAL:
        return A.height, A.width
    return A.width, A.height


def as_star_star(A: DistributedMatrix) -> DistributedMatrix:
    """Fully replicated copy of ``A``"""
    A_ss = DistributedMatrix(A.grid, dist=STAR_STAR, dtype=A.dtype)
    A_ss.redistribute_from(A)
    return A_ss


def as_dist(A: DistributedMatrix, dist: Tuple[Dist, Dist],
            col_align=None, row_align=None) -> DistributedMatrix:
    """Copy of ``A`` in ``dist``, with the given alignments if any"""
    B = DistributedMatrix(A.grid, dist=dist, dtype=A.dtype,
                          col_align=col_align, row_align=row_align)
    B.redistribute_from(A)
    return B


def column_panel(A: DistributedMatrix, orientation: Orientation,
                 cols: range, C: DistributedMatrix) -> DistributedMatrix:
    r""":math:`\mathrm{op}(A)` restricted to ``cols``, as ``[MC,*]`` aligned with the rows of ``C``"""
    if Orientation(orientation) is Orientation.NORMAL:
        return as_dist(A[:, cols], MC_STAR, col_align=C.col_align)
    A1 = as_dist(A[cols, :], STAR_MC, row_align=C.col_align)
    P = DistributedMatrix(A.grid, dist=MC_STAR, dtype=A.dtype, col_align=C.col_align)
    P.transpose_from(A1, conjugate=Orientation(orientation) is Orientation.ADJOINT)
    return P


def row_panel(B: DistributedMatrix, orientation: Orientation,
              rows: range, C: DistributedMatrix) -> DistributedMatrix:
    r""":math:`\mathrm{op}(B)` restricted to ``rows``, as ``[*,MR]`` aligned with the columns of ``C``"""
    if Orientation(orientation) is Orientation.NORMAL:
        return as_dist(B[rows, :], STAR_MR, row_align=C.row_align)
    B1 = as_dist(B[:, rows], MR_STAR, col_align=C.row_align)
    P = DistributedMatrix(B.grid, dist=STAR_MR, dtype=B.dtype, row_align=C.row_align)
    P.transpose_from(B1, conjugate=Orientation(orientation) is Orientation.ADJOINT)
    return P


def working_matrix(C: DistributedMatrix) -> DistributedMatrix:
    """``C`` itself when ``[MC,MR]``, otherwise an ``[MC,MR]`` copy"""
    if C.dist == MC_MR:
        return C
    return as_dist(C, MC_MR)


def write_back(C: DistributedMatrix, W: DistributedMatrix) -> None:
    if W is not C:
        C.redistribute_from(W)


def result_dtype(*matrices) -> np.dtype:
    return np.result_type(*[M.dtype for M in matrices])
