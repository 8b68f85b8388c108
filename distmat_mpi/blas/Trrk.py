__all__ = [
    "trrk",
    "trr2k",
    "syrk",
    "herk",
    "syr2k",
    "her2k",
]

from typing import Optional

import numpy as np

from distmat_mpi.DistributedMatrix import DistributedMatrix
from distmat_mpi.Errors import DimensionError, LogicError
from distmat_mpi.LocalKernels import local_trrk
from distmat_mpi.Options import Orientation, UpperOrLower
from distmat_mpi.Partitioning import PanelPartition
from distmat_mpi.blas._panels import column_panel, op_shape, row_panel, working_matrix, write_back
from distmat_mpi.utils.decorators import collective


def _scale_triangle(W: DistributedMatrix, uplo: UpperOrLower, beta) -> None:
    if beta == 1:
        return
    rows, cols = W.global_row_indices(), W.global_col_indices()
    if uplo is UpperOrLower.LOWER:
        mask = rows[:, None] >= cols[None, :]
    else:
        mask = rows[:, None] <= cols[None, :]
    W.local_array[mask] = 0 if beta == 0 else beta * W.local_array[mask]


@collective("A", "B", "C", output="C")
def trrk(uplo: UpperOrLower, orientA: Orientation, orientB: Orientation,
         alpha, A: DistributedMatrix, B: DistributedMatrix, beta,
         C: DistributedMatrix, blocksize: Optional[int] = None) -> None:
    r"""Triangular rank-k update

    Update the ``uplo`` triangle of the square ``C`` with
    :math:`\alpha\,\mathrm{op}(A)\,\mathrm{op}(B) + \beta C`; the other
    triangle is not referenced.

    Parameters
    ----------
    uplo : :obj:`distmat_mpi.UpperOrLower`
        Updated triangle of ``C``.
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
        Updated square matrix.
    blocksize : :obj:`int`, optional
        Width of the inner panels.

    """
    uplo = UpperOrLower(uplo)
    orientA, orientB = Orientation(orientA), Orientation(orientB)
    m, k = op_shape(A, orientA)
    k2, n = op_shape(B, orientB)
    if C.height != C.width:
        raise DimensionError(f"Updated matrix must be square, C ~ {C.height} x {C.width}")
    if k != k2 or (m, n) != C.global_shape:
        raise DimensionError(f"Nonconformal trrk: op(A) ~ {m} x {k}, op(B) ~ {k2} x {n}, "
                             f"C ~ {C.height} x {C.width}")
    W = working_matrix(C)
    _scale_triangle(W, uplo, beta)
    rows, cols = W.global_row_indices(), W.global_col_indices()
    for _, k1, _ in PanelPartition(k, blocksize):
        A1 = column_panel(A, orientA, k1, W)
        B1 = row_panel(B, orientB, k1, W)
        local_trrk(uplo, alpha, A1.local_array, B1.local_array, W.local_array, rows, cols)
    write_back(C, W)


@collective("A", "B", "C", "D", "E", output="E")
def trr2k(uplo: UpperOrLower,
          orientA: Orientation, orientB: Orientation,
          orientC: Orientation, orientD: Orientation,
          alpha, A: DistributedMatrix, B: DistributedMatrix,
          beta, C: DistributedMatrix, D: DistributedMatrix,
          gamma, E: DistributedMatrix, blocksize: Optional[int] = None) -> None:
    r"""Triangular rank-2k update

    Update the ``uplo`` triangle of the square ``E`` with
    :math:`\alpha\,\mathrm{op}(A)\,\mathrm{op}(B) +
    \beta\,\mathrm{op}(C)\,\mathrm{op}(D) + \gamma E`. Both products
    share the inner dimension, which is swept with a single panel
    partition.
    """
    uplo = UpperOrLower(uplo)
    orientA, orientB = Orientation(orientA), Orientation(orientB)
    orientC, orientD = Orientation(orientC), Orientation(orientD)
    m, k = op_shape(A, orientA)
    kb, n = op_shape(B, orientB)
    mc, kc = op_shape(C, orientC)
    kd, nd = op_shape(D, orientD)
    if E.height != E.width:
        raise DimensionError(f"Updated matrix must be square, E ~ {E.height} x {E.width}")
    if len({k, kb, kc, kd}) != 1 or (m, n) != E.global_shape or (mc, nd) != E.global_shape:
        raise DimensionError(f"Nonconformal trr2k: op(A) ~ {m} x {k}, op(B) ~ {kb} x {n}, "
                             f"op(C) ~ {mc} x {kc}, op(D) ~ {kd} x {nd}, "
                             f"E ~ {E.height} x {E.width}")
    W = working_matrix(E)
    _scale_triangle(W, uplo, gamma)
    rows, cols = W.global_row_indices(), W.global_col_indices()
    for _, k1, _ in PanelPartition(k, blocksize):
        A1 = column_panel(A, orientA, k1, W)
        B1 = row_panel(B, orientB, k1, W)
        local_trrk(uplo, alpha, A1.local_array, B1.local_array, W.local_array, rows, cols)
        C1 = column_panel(C, orientC, k1, W)
        D1 = row_panel(D, orientD, k1, W)
        local_trrk(uplo, beta, C1.local_array, D1.local_array, W.local_array, rows, cols)
    write_back(E, W)


def _check_orientation(name: str, orientation: Orientation, allowed: Orientation) -> Orientation:
    orientation = Orientation(orientation)
    if orientation not in (Orientation.NORMAL, allowed):
        raise LogicError(f"{name} accepts {Orientation.NORMAL.value} or {allowed.value} "
                         f"orientations, got {orientation.value}")
    return orientation


def syrk(uplo: UpperOrLower, orientation: Orientation, alpha,
         A: DistributedMatrix, beta, C: DistributedMatrix,
         blocksize: Optional[int] = None) -> None:
    r"""Symmetric rank-k update

    :math:`C := \alpha A A^T + \beta C` (``Orientation.NORMAL``) or
    :math:`C := \alpha A^T A + \beta C` (``Orientation.TRANSPOSE``), on the
    ``uplo`` triangle of ``C``.
    """
    orientation = _check_orientation("syrk", orientation, Orientation.TRANSPOSE)
    if orientation is Orientation.NORMAL:
        trrk(uplo, Orientation.NORMAL, Orientation.TRANSPOSE, alpha, A, A, beta, C, blocksize)
    else:
        trrk(uplo, Orientation.TRANSPOSE, Orientation.NORMAL, alpha, A, A, beta, C, blocksize)


def herk(uplo: UpperOrLower, orientation: Orientation, alpha,
         A: DistributedMatrix, beta, C: DistributedMatrix,
         blocksize: Optional[int] = None) -> None:
    r"""Hermitian rank-k update

    :math:`C := \alpha A A^H + \beta C` (``Orientation.NORMAL``) or
    :math:`C := \alpha A^H A + \beta C` (``Orientation.ADJOINT``), on the
    ``uplo`` triangle of ``C``.
    """
    orientation = _check_orientation("herk", orientation, Orientation.ADJOINT)
    if orientation is Orientation.NORMAL:
        trrk(uplo, Orientation.NORMAL, Orientation.ADJOINT, alpha, A, A, beta, C, blocksize)
    else:
        trrk(uplo, Orientation.ADJOINT, Orientation.NORMAL, alpha, A, A, beta, C, blocksize)


def syr2k(uplo: UpperOrLower, orientation: Orientation, alpha,
          A: DistributedMatrix, B: DistributedMatrix, beta, C: DistributedMatrix,
          blocksize: Optional[int] = None) -> None:
    r"""Symmetric rank-2k update

    :math:`C := \alpha (A B^T + B A^T) + \beta C` (``Orientation.NORMAL``)
    or :math:`C := \alpha (A^T B + B^T A) + \beta C`
    (``Orientation.TRANSPOSE``), on the ``uplo`` triangle of ``C``.
    """
    orientation = _check_orientation("syr2k", orientation, Orientation.TRANSPOSE)
    N, T = Orientation.NORMAL, Orientation.TRANSPOSE
    if orientation is Orientation.NORMAL:
        trr2k(uplo, N, T, N, T, alpha, A, B, alpha, B, A, beta, C, blocksize)
    else:
        trr2k(uplo, T, N, T, N, alpha, A, B, alpha, B, A, beta, C, blocksize)


def her2k(uplo: UpperOrLower, orientation: Orientation, alpha,
          A: DistributedMatrix, B: DistributedMatrix, beta, C: DistributedMatrix,
          blocksize: Optional[int] = None) -> None:
    r"""Hermitian rank-2k update

    :math:`C := \alpha A B^H + \bar{\alpha} B A^H + \beta C`
    (``Orientation.NORMAL``) or
    :math:`C := \alpha A^H B + \bar{\alpha} B^H A + \beta C`
    (``Orientation.ADJOINT``), on the ``uplo`` triangle of ``C``.
    """
    orientation = _check_orientation("her2k", orientation, Orientation.ADJOINT)
    N, H = Orientation.NORMAL, Orientation.ADJOINT
    if orientation is Orientation.NORMAL:
        trr2k(uplo, N, H, N, H, alpha, A, B, np.conj(alpha), B, A, beta, C, blocksize)
    else:
        trr2k(uplo, H, N, H, N, alpha, A, B, np.conj(alpha), B, A, beta, C, blocksize)
