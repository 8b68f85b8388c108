__all__ = [
    "tridiag",
]

import logging
from typing import Optional

import numpy as np

from distmat_mpi.Distribution import MC_MR, MD_STAR, STAR_STAR
from distmat_mpi.DistributedMatrix import DistributedMatrix, transpose
from distmat_mpi.Errors import DimensionError
from distmat_mpi.LocalKernels import larfg, local_tridiag
from distmat_mpi.Options import Orientation, UpperOrLower
from distmat_mpi.Partitioning import PanelPartition
from distmat_mpi.blas.Symv import hermitian_product
from distmat_mpi.blas.Trrk import her2k, syr2k
from distmat_mpi.blas._panels import as_star_star, working_matrix, write_back
from distmat_mpi.utils.decorators import collective

logging.basicConfig(format="%(levelname)s: %(message)s", level=logging.WARNING)


def _replicated(grid, x: np.ndarray) -> DistributedMatrix:
    if x.ndim == 1:
        x = x[:, np.newaxis]
    return DistributedMatrix.to_dist(x, grid, dist=STAR_STAR)


def _reduce_panel(ABR: DistributedMatrix, nb: int, conjugate: bool):
    """Reduce the first ``nb`` columns of ``ABR`` (lower storage)

    Returns the scalar factors of the ``nb`` reflectors together with the
    replicated ``V`` and ``W`` used by the trailing rank-2k update.
    """
    m = ABR.height
    V = np.zeros((m, nb), dtype=ABR.dtype)
    W = np.zeros((m, nb), dtype=ABR.dtype)
    taus = np.zeros(nb, dtype=ABR.dtype)
    for j in range(nb):
        column = ABR[j:, j:j + 1]
        a = as_star_star(column).local_array[:, 0].copy()
        a -= V[j:, :j] @ np.conj(W[j, :j]) + W[j:, :j] @ np.conj(V[j, :j])
        if conjugate:
            a[0] = np.real(a[0])
        beta, tau, v = larfg(a[1], a[2:])
        a[1] = beta
        a[2:] = v
        column.redistribute_from(_replicated(ABR.grid, a))
        taus[j] = tau

        # reflector with its implicit unit entry
        u = np.concatenate([np.ones(1, dtype=ABR.dtype), v])
        y = hermitian_product(UpperOrLower.LOWER, ABR[j + 1:, j + 1:], u,
                              conjugate=conjugate).astype(ABR.dtype, copy=False)
        Vj, Wj = V[j + 1:, :j], W[j + 1:, :j]
        y -= Vj @ (Wj.conj().T @ u) + Wj @ (Vj.conj().T @ u)
        y *= tau
        y += -0.5 * tau * np.vdot(y, u) * u
        V[j + 1:, j] = u
        W[j + 1:, j] = y
    return taus, V, W


def _tridiag_lower(A: DistributedMatrix, blocksize: Optional[int]) -> np.ndarray:
    n = A.height
    conjugate = np.iscomplexobj(A.local_array)
    taus = np.zeros(max(n - 1, 0), dtype=A.dtype)
    for r0, r1, r2 in PanelPartition(n, blocksize):
        k = r1.start
        ABR = A[k:, k:]
        if len(r2) == 0:
            # last diagonal block, reduced on every process
            ABR_ss = as_star_star(ABR)
            F, tau = local_tridiag(UpperOrLower.LOWER, ABR_ss.local_array)
            ABR.redistribute_from(_replicated(A.grid, F))
            taus[k:] = tau
            logging.debug(f"tridiag: reduced trailing {ABR.height} x {ABR.width} block locally")
            break
        nb = len(r1)
        panel_taus, V, W = _reduce_panel(ABR, nb, conjugate)
        taus[k:k + nb] = panel_taus
        A22 = ABR[nb:, nb:]
        V2 = _replicated(A.grid, V[nb:, :])
        W2 = _replicated(A.grid, W[nb:, :])
        rank2k = her2k if conjugate else syr2k
        rank2k(UpperOrLower.LOWER, Orientation.NORMAL, -1, V2, W2, 1, A22, blocksize=blocksize)
    return taus


@collective("A", output="A")
def tridiag(uplo: UpperOrLower, A: DistributedMatrix,
            blocksize: Optional[int] = None) -> DistributedMatrix:
    r"""Householder reduction to tridiagonal form

    Reduce the Hermitian (or real symmetric) matrix stored in the ``uplo``
    triangle of ``A`` to a real tridiagonal matrix
    :math:`T = Q^H A Q`, following the storage conventions of LAPACK
    ``hetrd``/``sytrd``: the diagonal and first sub- (or super-) diagonal
    of ``A`` are overwritten by those of :math:`T` and the remaining
    entries of the triangle by the Householder vectors.

    Parameters
    ----------
    uplo : :obj:`distmat_mpi.UpperOrLower`
        Referenced triangle of ``A``.
    A : :obj:`distmat_mpi.DistributedMatrix`
        Square matrix, overwritten.
    blocksize : :obj:`int`, optional
        Panel size. Defaults to the configured block size.

    Returns
    -------
    t : :obj:`distmat_mpi.DistributedMatrix`
        ``[MD,*]`` vector of the ``n - 1`` scalar factors of the
        reflectors, aligned with the sub-diagonal of ``A`` (the
        super-diagonal for ``UpperOrLower.UPPER``).

    Notes
    -----
    Each panel is reduced one column at a time: the current column is
    brought up to date with the accumulated reflectors ``V`` and their
    images ``W`` (as LAPACK ``latrd``), a reflector is generated, and its
    image through the trailing matrix is computed with a distributed
    Hermitian matrix-vector product. The trailing matrix is then updated
    with a single rank-2k update :math:`A_{22} -= V W^H + W V^H`. The last
    diagonal block is reduced with the sequential kernel.

    The upper variant reduces the adjoint of ``A`` with the lower
    algorithm and stores the adjoint back: reflectors are held in the rows
    of the upper triangle, and their scalar factors are conjugated.

    """
    uplo = UpperOrLower(uplo)
    if A.height != A.width:
        raise DimensionError(f"Matrix must be square, A ~ {A.height} x {A.width}")
    W = working_matrix(A)
    if uplo is UpperOrLower.LOWER:
        taus = _tridiag_lower(W, blocksize)
    else:
        WH = transpose(W, conjugate=True, dist=MC_MR)
        taus = np.conj(_tridiag_lower(WH, blocksize))
        W.transpose_from(WH, conjugate=True)
    write_back(A, W)

    t = DistributedMatrix(W.grid, dist=MD_STAR, dtype=W.dtype)
    t.align_with_diagonal(W, -1 if uplo is UpperOrLower.LOWER else 1)
    t.resize(taus.size, 1)
    if t.participating:
        t.local_array[:, 0] = taus[t.global_row_indices()]
    return t
