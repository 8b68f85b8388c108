__all__ = [
    "least_squares",
]

import logging
from typing import Optional

import numpy as np
from pylops.optimization.basic import cgls

from distmat_mpi.Distribution import MC_MR
from distmat_mpi.DistributedMatrix import DistributedMatrix, transpose
from distmat_mpi.Errors import DimensionError, LogicError
from distmat_mpi.LinearOperator import DistributedMatrixOperator
from distmat_mpi.Options import Orientation, Side, UnitOrNonUnit, UpperOrLower
from distmat_mpi.blas.Gemm import gemm
from distmat_mpi.blas.Trrk import herk
from distmat_mpi.blas.Trsm import trsm
from distmat_mpi.blas._panels import op_shape, result_dtype
from distmat_mpi.lapack.Cholesky import cholesky
from distmat_mpi.lapack.QR import _apply_q, _qr
from distmat_mpi.utils.decorators import collective

logging.basicConfig(format="%(levelname)s: %(message)s", level=logging.WARNING)


def _cholesky_solve(C: DistributedMatrix, X: DistributedMatrix, blocksize):
    # X := (L L^H)^-1 X, with L in the lower triangle of C
    lower, non_unit = UpperOrLower.LOWER, UnitOrNonUnit.NON_UNIT
    trsm(Side.LEFT, lower, Orientation.NORMAL, non_unit, 1, C, X, blocksize=blocksize)
    trsm(Side.LEFT, lower, Orientation.ADJOINT, non_unit, 1, C, X, blocksize=blocksize)


def _factor_copy(A: DistributedMatrix, dtype, adjoint: bool = False) -> DistributedMatrix:
    # owning [MC,MR] copy of A (or A^H) promoted to the solution type
    if adjoint:
        A = transpose(A, conjugate=True, dist=MC_MR)
    F = DistributedMatrix(A.grid, dist=MC_MR, dtype=dtype)
    F.redistribute_from(A)
    return F


def _householder(A: DistributedMatrix, B: DistributedMatrix, blocksize) -> DistributedMatrix:
    m, n = A.global_shape
    dtype = result_dtype(A, B)
    grid = A.grid
    upper, non_unit = UpperOrLower.UPPER, UnitOrNonUnit.NON_UNIT
    if m >= n:
        # A = Q R, X = R^-1 (Q^H B)[:n]
        F = _factor_copy(A, dtype)
        taus = _qr(F, blocksize)
        Y = DistributedMatrix(grid, dist=MC_MR, dtype=dtype)
        Y.redistribute_from(B)
        _apply_q(F, taus, Y, adjoint=True, blocksize=blocksize)
        Y1 = Y.view(0, 0, n, Y.width)
        trsm(Side.LEFT, upper, Orientation.NORMAL, non_unit, 1, F.view(0, 0, n, n), Y1,
             blocksize=blocksize)
        X = DistributedMatrix(grid, dist=MC_MR, dtype=dtype)
        X.redistribute_from(Y1)
        return X
    # A = L Q with A^H = Q_1 R, L = R^H and Q = Q_1^H, X = Q_1 [L^-1 B; 0]
    logging.debug(f"least_squares: {m} x {n} system is underdetermined, computing the minimum-norm solution")
    FH = _factor_copy(A, dtype, adjoint=True)
    taus = _qr(FH, blocksize)
    X = DistributedMatrix(grid, n, B.width, dtype=dtype)
    X1 = X.view(0, 0, m, B.width)
    X1.redistribute_from(B)
    trsm(Side.LEFT, upper, Orientation.ADJOINT, non_unit, 1, FH.view(0, 0, m, m), X1,
         blocksize=blocksize)
    _apply_q(FH, taus, X, adjoint=False, blocksize=blocksize)
    return X


def _normal_equations(A: DistributedMatrix, B: DistributedMatrix, blocksize) -> DistributedMatrix:
    m, n = A.global_shape
    dtype = result_dtype(A, B)
    grid = A.grid
    if m >= n:
        # X = (A^H A)^-1 A^H B
        C = DistributedMatrix(grid, n, n, dtype=dtype)
        herk(UpperOrLower.LOWER, Orientation.ADJOINT, 1, A, 0, C, blocksize=blocksize)
        cholesky(UpperOrLower.LOWER, C, blocksize=blocksize)
        X = DistributedMatrix(grid, n, B.width, dtype=dtype)
        gemm(Orientation.ADJOINT, Orientation.NORMAL, 1, A, B, 0, X, blocksize=blocksize)
        _cholesky_solve(C, X, blocksize)
        return X
    # minimum norm: X = A^H (A A^H)^-1 B
    logging.debug(f"least_squares: {m} x {n} system is underdetermined, computing the minimum-norm solution")
    C = DistributedMatrix(grid, m, m, dtype=dtype)
    herk(UpperOrLower.LOWER, Orientation.NORMAL, 1, A, 0, C, blocksize=blocksize)
    cholesky(UpperOrLower.LOWER, C, blocksize=blocksize)
    Y = DistributedMatrix(grid, dist=MC_MR, dtype=dtype)
    Y.redistribute_from(B)
    _cholesky_solve(C, Y, blocksize)
    X = DistributedMatrix(grid, n, B.width, dtype=dtype)
    gemm(Orientation.ADJOINT, Orientation.NORMAL, 1, A, Y, 0, X, blocksize=blocksize)
    return X


def _cgls(A: DistributedMatrix, B: DistributedMatrix, niter: int,
          damp: float, tol: float, show: bool) -> DistributedMatrix:
    Op = DistributedMatrixOperator(A, dtype=result_dtype(A, B))
    B_full = B.asarray()
    X_full = np.zeros((A.width, B.width), dtype=Op.dtype)
    show = show and A.grid.rank == 0
    for k in range(B.width):
        X_full[:, k] = cgls(Op, B_full[:, k], x0=np.zeros(A.width, dtype=Op.dtype),
                            niter=niter, damp=damp, tol=tol, show=show)[0]
    return DistributedMatrix.to_dist(X_full, A.grid, dist=MC_MR)


@collective("A", "B")
def least_squares(orientation: Orientation, A: DistributedMatrix, B: DistributedMatrix,
                  method: str = "qr", blocksize: Optional[int] = None,
                  niter: int = 100, damp: float = 0.0, tol: float = 1e-10,
                  show: bool = False) -> DistributedMatrix:
    r"""Dense least-squares solve

    Solve :math:`\min_X \|\mathrm{op}(A) X - B\|_F` when
    :math:`\mathrm{op}(A)` has at least as many rows as columns, and the
    minimum-norm problem :math:`\min \|X\|_F` s.t.
    :math:`\mathrm{op}(A) X = B` otherwise.

    Parameters
    ----------
    orientation : :obj:`distmat_mpi.Orientation`
        Orientation of ``A``.
    A : :obj:`distmat_mpi.DistributedMatrix`
        Full-rank system matrix.
    B : :obj:`distmat_mpi.DistributedMatrix`
        Right-hand sides.
    method : :obj:`str`, optional
        ``qr`` for a Householder QR (tall) or LQ (wide) factorization,
        ``normal`` to solve the normal equations with a Cholesky
        factorization, or ``cgls`` to run
        :func:`pylops.optimization.basic.cgls` on every right-hand side
        through :class:`distmat_mpi.DistributedMatrixOperator`.
    blocksize : :obj:`int`, optional
        Panel size of the blocked routines.
    niter : :obj:`int`, optional
        Number of iterations (``cgls`` only).
    damp : :obj:`float`, optional
        Damping coefficient (``cgls`` only).
    tol : :obj:`float`, optional
        Tolerance on the residual norm (``cgls`` only).
    show : :obj:`bool`, optional
        Display iterations log on rank 0 (``cgls`` only).

    Returns
    -------
    X : :obj:`distmat_mpi.DistributedMatrix`
        ``[MC,MR]`` solution.

    Notes
    -----
    The default ``qr`` method factorizes :math:`\mathrm{op}(A) = Q R` and
    solves :math:`R X = (Q^H B)_{1:n}` when tall, and factorizes
    :math:`\mathrm{op}(A) = L Q` and computes
    :math:`X = Q^H [L^{-1} B; 0]` when wide. The normal equations square
    the condition number of ``A``; they are only meant for
    well-conditioned systems.

    """
    orientation = Orientation(orientation)
    if method not in ("qr", "normal", "cgls"):
        raise LogicError(f"method must be qr, normal or cgls, got {method}")
    m, n = op_shape(A, orientation)
    if m != B.height:
        raise DimensionError(f"Nonconformal least squares: op(A) ~ {m} x {n}, "
                             f"B ~ {B.height} x {B.width}")
    if orientation is not Orientation.NORMAL:
        A = transpose(A, conjugate=orientation is Orientation.ADJOINT, dist=MC_MR)
    if method == "cgls":
        return _cgls(A, B, niter, damp, tol, show)
    if method == "normal":
        return _normal_equations(A, B, blocksize)
    return _householder(A, B, blocksize)
