__all__ = [
    "sparse_least_squares",
]

import logging
from typing import Optional

import numpy as np
import scipy.sparse as sp

from pylops.utils import NDArray

from distmat_mpi.Errors import ConvergenceError, DimensionError
from distmat_mpi.sparse.SparseDirectSolver import SparseDirectSolver

logging.basicConfig(format="%(levelname)s: %(message)s", level=logging.WARNING)


def _augmented_system(A: sp.spmatrix, alpha: float) -> sp.spmatrix:
    m, n = A.shape
    if m >= n:
        return sp.bmat([[alpha * sp.identity(m, dtype=A.dtype), A],
                        [A.conj().T, None]], format="csr")
    return sp.bmat([[alpha * sp.identity(n, dtype=A.dtype), A.conj().T],
                    [A, None]], format="csr")


def sparse_least_squares(A: sp.spmatrix, B: NDArray,
                         alpha: Optional[float] = None,
                         reg_primal: Optional[float] = None,
                         reg_dual: Optional[float] = None,
                         solver: Optional[SparseDirectSolver] = None,
                         max_refine_its: int = 50,
                         tol: Optional[float] = None) -> NDArray:
    r"""Sparse least-squares and minimum-norm solve

    Solve :math:`\min_X \|A X - B\|_F` when :math:`A` is tall, and
    :math:`\min \|X\|_F` s.t. :math:`A X = B` when it is wide, through a
    Hermitian quasi-semidefinite augmented system.

    Parameters
    ----------
    A : :obj:`scipy.sparse.spmatrix`
        Full-rank system matrix of size :math:`[M \times N]`.
    B : :obj:`numpy.ndarray`
        Right-hand sides of size :math:`[M \times K]` (or :math:`[M]`).
    alpha : :obj:`float`, optional
        Scaling of the identity block, ideally close to the smallest
        singular value of ``A``. Defaults to :math:`\epsilon^{1/4}`.
    reg_primal : :obj:`float`, optional
        Regularization added to the first :math:`\max(M, N)` diagonal
        entries of the factored system. Defaults to :math:`\epsilon^{1/2}`.
    reg_dual : :obj:`float`, optional
        Regularization subtracted from the last :math:`\min(M, N)`
        diagonal entries. Defaults to :math:`\epsilon^{1/2}`.
    solver : :obj:`distmat_mpi.sparse.SparseDirectSolver`, optional
        Direct solver. A new one is created when not provided.
    max_refine_its : :obj:`int`, optional
        Maximum number of iterative refinement steps per right-hand side.
    tol : :obj:`float`, optional
        Relative residual tolerance of the refinement on the original
        system. Defaults to :math:`\epsilon^{1/2}`.

    Returns
    -------
    X : :obj:`numpy.ndarray`
        Solution of size :math:`[N \times K]` (or :math:`[N]`).

    Raises
    ------
    ConvergenceError
        If the refinement does not reach ``tol``.

    Notes
    -----
    For :math:`M \geq N` the system

    .. math::
        \begin{bmatrix} \alpha I & A \\ A^H & 0 \end{bmatrix}
        \begin{bmatrix} R / \alpha \\ X \end{bmatrix} =
        \begin{bmatrix} B \\ 0 \end{bmatrix}

    defines the residual :math:`R = B - A X` in the null space of
    :math:`A^H`; for :math:`M < N` the system
    :math:`\begin{bmatrix} \alpha I & A^H \\ A & 0 \end{bmatrix}
    \begin{bmatrix} X \\ Y \end{bmatrix} =
    \begin{bmatrix} 0 \\ B \end{bmatrix}` forces :math:`X` into the range
    of :math:`A^H`. The factored matrix is made quasi-definite by adding
    ``reg_primal`` and ``-reg_dual`` on its diagonal, and the solution is
    iteratively refined against the unregularized system.

    """
    A = sp.csr_matrix(A)
    B = np.asarray(B)
    vector = B.ndim == 1
    if vector:
        B = B[:, np.newaxis]
    m, n = A.shape
    if B.shape[0] != m:
        raise DimensionError(f"Nonconformal least squares: A ~ {m} x {n}, "
                             f"B ~ {B.shape[0]} x {B.shape[1]}")
    dtype = np.result_type(A.dtype, B.dtype, np.float64)
    eps = np.finfo(dtype).eps
    alpha = eps ** 0.25 if alpha is None else alpha
    reg_primal = eps ** 0.5 if reg_primal is None else reg_primal
    reg_dual = eps ** 0.5 if reg_dual is None else reg_dual
    tol = eps ** 0.5 if tol is None else tol
    solver = SparseDirectSolver() if solver is None else solver

    J = _augmented_system(A.astype(dtype), alpha)
    big = max(m, n)
    reg = np.concatenate([np.full(big, reg_primal), np.full(m + n - big, -reg_dual)])
    J_reg = (J + sp.diags(reg)).tocsr()

    tree = solver.factorize(J_reg)
    handle = solver.numeric_factor(J_reg, tree)

    D = np.zeros((m + n, B.shape[1]), dtype=dtype)
    if m >= n:
        D[:m] = B
    else:
        D[n:] = B

    U = np.zeros_like(D)
    for k in range(D.shape[1]):
        d = D[:, k]
        dnorm = np.linalg.norm(d)
        u = solver.solve(handle, d)
        if dnorm == 0:
            U[:, k] = u
            continue
        for its in range(max_refine_its + 1):
            r = d - J @ u
            rel = np.linalg.norm(r) / dnorm
            logging.debug(f"sparse_least_squares: rhs {k}, refinement {its}, "
                          f"relative residual {rel:.3e}")
            if rel <= tol:
                break
            if its == max_refine_its:
                raise ConvergenceError(f"Iterative refinement did not converge in "
                                       f"{max_refine_its} iterations (relative residual "
                                       f"{rel:.3e} > {tol:.3e})")
            u = u + solver.solve(handle, r)
        U[:, k] = u

    X = U[m:] if m >= n else U[:n]
    return X[:, 0] if vector else X
