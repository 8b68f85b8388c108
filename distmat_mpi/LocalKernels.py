"""
    Sequential kernels applied to co-located local data, no communication
"""
__all__ = [
    "op",
    "local_gemm",
    "local_trsm",
    "local_trmm",
    "local_trrk",
    "local_cholesky",
    "local_tridiag",
    "local_qr",
    "local_larft",
    "larfg",
]

from typing import Tuple

import numpy as np
from scipy.linalg import LinAlgError, cholesky, get_lapack_funcs, solve_triangular

from distmat_mpi.Errors import NonHPDMatrixError
from distmat_mpi.Options import Orientation, Side, UnitOrNonUnit, UpperOrLower


def op(A: np.ndarray, orientation: Orientation) -> np.ndarray:
    """Apply an orientation to a local array"""
    orientation = Orientation(orientation)
    if orientation is Orientation.TRANSPOSE:
        return A.T
    if orientation is Orientation.ADJOINT:
        return A.conj().T
    return A


def local_gemm(orientA: Orientation, orientB: Orientation, alpha,
               A: np.ndarray, B: np.ndarray, beta=0, C: np.ndarray = None) -> np.ndarray:
    r"""Local :math:`\alpha\,\mathrm{op}(A)\,\mathrm{op}(B) + \beta C`"""
    AB = op(A, orientA) @ op(B, orientB)
    if C is None or beta == 0:
        return alpha * AB
    return alpha * AB + beta * C


def _triangle(A: np.ndarray, uplo: UpperOrLower, diag: UnitOrNonUnit) -> np.ndarray:
    lower = UpperOrLower(uplo) is UpperOrLower.LOWER
    T = np.tril(A) if lower else np.triu(A)
    if UnitOrNonUnit(diag) is UnitOrNonUnit.UNIT:
        np.fill_diagonal(T, 1)
    return T


def local_trsm(side: Side, uplo: UpperOrLower, orientation: Orientation,
               diag: UnitOrNonUnit, alpha, A: np.ndarray, B: np.ndarray) -> np.ndarray:
    r"""Local triangular solve

    Solve :math:`\mathrm{op}(A) X = \alpha B` (``Side.LEFT``) or
    :math:`X \mathrm{op}(A) = \alpha B` (``Side.RIGHT``) with
    :func:`scipy.linalg.solve_triangular`.

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
    A : :obj:`numpy.ndarray`
        Square triangular matrix.
    B : :obj:`numpy.ndarray`
        Right-hand side.

    Returns
    -------
    X : :obj:`numpy.ndarray`
        Solution, with the shape of ``B``.

    """
    B = alpha * B
    if B.size == 0:
        return B
    lower = UpperOrLower(uplo) is UpperOrLower.LOWER
    unit = UnitOrNonUnit(diag) is UnitOrNonUnit.UNIT
    orientation = Orientation(orientation)
    if Side(side) is Side.LEFT:
        trans = {Orientation.NORMAL: 0, Orientation.TRANSPOSE: 1, Orientation.ADJOINT: 2}[orientation]
        return solve_triangular(A, B, trans=trans, lower=lower, unit_diagonal=unit)
    # X op(A) = B  <=>  op(A)^T X^T = B^T
    if orientation is Orientation.NORMAL:
        return solve_triangular(A, B.T, trans=1, lower=lower, unit_diagonal=unit).T
    if orientation is Orientation.TRANSPOSE:
        return solve_triangular(A, B.T, trans=0, lower=lower, unit_diagonal=unit).T
    return solve_triangular(A.conj(), B.T, trans=0, lower=lower, unit_diagonal=unit).T


def local_trmm(side: Side, uplo: UpperOrLower, orientation: Orientation,
               diag: UnitOrNonUnit, alpha, A: np.ndarray, B: np.ndarray) -> np.ndarray:
    r"""Local :math:`\alpha\,\mathrm{op}(T) B` or :math:`\alpha B\,\mathrm{op}(T)`

    ``T`` is the ``uplo`` triangle of ``A``, with a unit diagonal when
    ``diag`` is ``UnitOrNonUnit.UNIT``.
    """
    T = op(_triangle(A, uplo, diag), orientation)
    if Side(side) is Side.LEFT:
        return alpha * (T @ B)
    return alpha * (B @ T)


def local_trrk(uplo: UpperOrLower, alpha, A: np.ndarray, B: np.ndarray,
               C: np.ndarray, rows: np.ndarray, cols: np.ndarray) -> None:
    r"""In-place triangular update :math:`C \mathrel{+}= \alpha A B`

    Only the entries of the ``uplo`` triangle are updated, judged from the
    global row and column indices ``rows`` and ``cols`` of the local ``C``.
    """
    if C.size == 0:
        return
    if UpperOrLower(uplo) is UpperOrLower.LOWER:
        mask = rows[:, None] >= cols[None, :]
    else:
        mask = rows[:, None] <= cols[None, :]
    C[mask] += (alpha * (A @ B))[mask]


def local_cholesky(uplo: UpperOrLower, A: np.ndarray) -> np.ndarray:
    """Cholesky factor in the ``uplo`` triangle, the other triangle kept

    Raises :obj:`distmat_mpi.NonHPDMatrixError` when ``A`` is not Hermitian
    positive definite.
    """
    if A.size == 0:
        return A.copy()
    lower = UpperOrLower(uplo) is UpperOrLower.LOWER
    try:
        factor = cholesky(A, lower=lower)
    except LinAlgError as e:
        raise NonHPDMatrixError(f"Matrix is not Hermitian positive definite: {e}") from e
    F = A.copy()
    mask = np.tri(A.shape[0], dtype=bool) if lower else np.tri(A.shape[0], dtype=bool).T
    F[mask] = factor[mask]
    return F


def local_tridiag(uplo: UpperOrLower, A: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """Householder tridiagonalization with LAPACK ``sytrd``/``hetrd``

    Returns
    -------
    F : :obj:`numpy.ndarray`
        Reduced matrix: tridiagonal entries and reflectors in the
        ``uplo`` triangle, as returned by LAPACK.
    tau : :obj:`numpy.ndarray`
        Scalar factors of the ``n - 1`` reflectors.

    """
    n = A.shape[0]
    if n == 0:
        return A.copy(), np.zeros(0, dtype=A.dtype)
    name = "hetrd" if np.iscomplexobj(A) else "sytrd"
    trd, trd_lwork = get_lapack_funcs((name, name + "_lwork"), (A,))
    lwork, info = trd_lwork(n, lower=int(UpperOrLower(uplo) is UpperOrLower.LOWER))
    F, _, _, tau, info = trd(A, lower=int(UpperOrLower(uplo) is UpperOrLower.LOWER),
                             lwork=max(int(np.real(lwork)), 1))
    if info != 0:
        raise ValueError(f"LAPACK {name} failed with info={info}")
    return F, tau


def local_qr(A: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """Householder QR factorization with LAPACK ``geqrf``

    Returns
    -------
    F : :obj:`numpy.ndarray`
        ``R`` in the upper triangle, reflectors below the diagonal.
    tau : :obj:`numpy.ndarray`
        Scalar factors of the ``min(m, n)`` reflectors.

    """
    m, n = A.shape
    if m == 0 or n == 0:
        return A.copy(), np.zeros(0, dtype=A.dtype)
    geqrf, = get_lapack_funcs(("geqrf",), (A,))
    F, tau, _, info = geqrf(A)
    if info != 0:
        raise ValueError(f"LAPACK geqrf failed with info={info}")
    return F, tau


def local_larft(V: np.ndarray, tau: np.ndarray) -> np.ndarray:
    r"""Triangular factor of a block reflector

    Upper triangular :math:`T` such that
    :math:`H_1 H_2 \cdots H_k = I - V T V^H` for the forward, columnwise
    reflectors :math:`H_i = I - \tau_i v_i v_i^H` (LAPACK ``larft``).
    """
    k = tau.size
    T = np.zeros((k, k), dtype=np.result_type(V.dtype, tau.dtype))
    for i in range(k):
        T[:i, i] = -tau[i] * (T[:i, :i] @ (V[:, :i].conj().T @ V[:, i]))
        T[i, i] = tau[i]
    return T


def larfg(alpha, x: np.ndarray) -> Tuple[object, object, np.ndarray]:
    r"""Elementary Householder reflector

    Compute :math:`\beta, \tau, v` such that
    :math:`(I - \tau [1; v] [1; v]^H)^H [\alpha; x] = [\beta; 0]` with
    :math:`\beta` real, following LAPACK ``larfg`` conventions.

    Returns
    -------
    beta : :obj:`float`
        New leading entry.
    tau : :obj:`float` or :obj:`complex`
        Scalar factor (zero when no reflection is needed).
    v : :obj:`numpy.ndarray`
        Trailing part of the reflector (leading entry implicitly one).

    """
    xnorm = np.linalg.norm(x) if x.size > 0 else 0.
    alphr, alphi = np.real(alpha), np.imag(alpha)
    if xnorm == 0 and alphi == 0:
        return alpha, 0 * alpha, np.zeros_like(x)
    beta = -np.copysign(np.sqrt(alphr ** 2 + alphi ** 2 + xnorm ** 2), alphr)
    if np.iscomplexobj(x) or np.iscomplexobj(alpha):
        tau = complex((beta - alphr) / beta, -alphi / beta)
    else:
        tau = (beta - alphr) / beta
    v = x / (alpha - beta)
    return beta, tau, v
