__all__ = [
    "qr",
    "lq",
    "apply_q",
]

import logging
from typing import Optional

import numpy as np

from distmat_mpi.Distribution import MC_MR, MD_STAR, STAR_STAR
from distmat_mpi.DistributedMatrix import DistributedMatrix, transpose
from distmat_mpi.Errors import DimensionError, LogicError
from distmat_mpi.LocalKernels import local_larft, local_qr
from distmat_mpi.Options import Orientation, Side, UnitOrNonUnit, UpperOrLower
from distmat_mpi.Partitioning import PanelPartition
from distmat_mpi.blas.Gemm import gemm
from distmat_mpi.blas.Trmm import trmm
from distmat_mpi.blas._panels import as_star_star, working_matrix, write_back
from distmat_mpi.utils.decorators import collective

logging.basicConfig(format="%(levelname)s: %(message)s", level=logging.WARNING)


def _unit_lower(F: np.ndarray) -> np.ndarray:
    # reflectors below the diagonal of a panel, with their implicit unit entries
    V = np.tril(F, -1)
    nb = F.shape[1]
    V[:nb, :nb] += np.eye(nb, dtype=F.dtype)
    return V


def _apply_block_reflector(V: np.ndarray, T: np.ndarray, X: DistributedMatrix,
                           adjoint: bool, blocksize: Optional[int]) -> None:
    """``X := (I - V T V^H) X``, or ``X := (I - V T^H V^H) X`` when ``adjoint``"""
    if X.width == 0:
        return
    grid = X.grid
    V_d = DistributedMatrix.to_dist(V.astype(X.dtype, copy=False), grid)
    T_d = DistributedMatrix.to_dist(T.astype(X.dtype, copy=False), grid)
    Z = DistributedMatrix(grid, V.shape[1], X.width, dtype=X.dtype)
    gemm(Orientation.ADJOINT, Orientation.NORMAL, 1, V_d, X, 0, Z, blocksize=blocksize)
    trmm(Side.LEFT, UpperOrLower.UPPER,
         Orientation.ADJOINT if adjoint else Orientation.NORMAL,
         UnitOrNonUnit.NON_UNIT, 1, T_d, Z, blocksize=blocksize)
    gemm(Orientation.NORMAL, Orientation.NORMAL, -1, V_d, Z, 1, X, blocksize=blocksize)


def _qr(A: DistributedMatrix, blocksize: Optional[int]) -> np.ndarray:
    """Factorize an ``[MC,MR]`` matrix in place, returning the scalar factors"""
    m, n = A.global_shape
    kmax = min(m, n)
    taus = np.zeros(kmax, dtype=A.dtype)
    for _, r1, _ in PanelPartition(kmax, blocksize):
        k, nb = r1.start, len(r1)
        # panel replicated on every process and factorized locally
        panel = A[k:, k:k + nb]
        F, tau = local_qr(as_star_star(panel).local_array)
        panel.redistribute_from(DistributedMatrix.to_dist(F, A.grid, dist=STAR_STAR))
        taus[k:k + nb] = tau
        if k + nb < n:
            V = _unit_lower(F)
            _apply_block_reflector(V, local_larft(V, tau), A[k:, k + nb:],
                                   adjoint=True, blocksize=blocksize)
    logging.debug(f"qr: factorized a {m} x {n} matrix with {kmax} reflectors")
    return taus


def _apply_q(F: DistributedMatrix, taus: np.ndarray, X: DistributedMatrix,
             adjoint: bool, blocksize: Optional[int]) -> None:
    # Q = H_1 ... H_k: Q^H X applies the panels first to last, Q X last to first
    for _, r1, _ in PanelPartition(taus.size, blocksize, reverse=not adjoint):
        k, nb = r1.start, len(r1)
        V = _unit_lower(as_star_star(F[k:, k:k + nb]).local_array)
        _apply_block_reflector(V, local_larft(V, taus[k:k + nb]), X[k:, :],
                               adjoint=adjoint, blocksize=blocksize)


def _scalar_factors(A: DistributedMatrix, taus: np.ndarray) -> DistributedMatrix:
    t = DistributedMatrix(A.grid, dist=MD_STAR, dtype=A.dtype)
    t.align_with_diagonal(A, 0)
    t.resize(taus.size, 1)
    if t.participating:
        t.local_array[:, 0] = taus[t.global_row_indices()]
    return t


@collective("A", output="A")
def qr(A: DistributedMatrix, blocksize: Optional[int] = None) -> DistributedMatrix:
    r"""Blocked Householder QR factorization

    Factorize :math:`A = Q R` following the storage conventions of LAPACK
    ``geqrf``: ``R`` overwrites the upper trapezoid of ``A`` and the
    Householder vectors :math:`v_i` the entries below the diagonal, so that
    :math:`Q = H_1 H_2 \cdots H_k` with
    :math:`H_i = I - \tau_i v_i v_i^H` and :math:`k = \min(m, n)`.

    Parameters
    ----------
    A : :obj:`distmat_mpi.DistributedMatrix`
        Matrix, overwritten.
    blocksize : :obj:`int`, optional
        Panel size. Defaults to the configured block size.

    Returns
    -------
    t : :obj:`distmat_mpi.DistributedMatrix`
        ``[MD,*]`` vector of the ``k`` scalar factors, aligned with the
        main diagonal of ``A``.

    Notes
    -----
    Each panel of ``blocksize`` columns is replicated on every process and
    factorized with the sequential kernel. Its reflectors are accumulated
    in the compact WY form :math:`I - V T V^H` and applied to the trailing
    columns with two distributed products and a triangular product.

    """
    W = working_matrix(A)
    taus = _qr(W, blocksize)
    write_back(A, W)
    return _scalar_factors(W, taus)


@collective("A", output="A")
def lq(A: DistributedMatrix, blocksize: Optional[int] = None) -> DistributedMatrix:
    r"""Blocked Householder LQ factorization

    Factorize :math:`A = L Q` following the storage conventions of LAPACK
    ``gelqf``: ``L`` overwrites the lower trapezoid of ``A`` and the
    conjugated Householder vectors the entries right of the diagonal,
    so that :math:`Q = H_k^H \cdots H_1^H`.

    Parameters
    ----------
    A : :obj:`distmat_mpi.DistributedMatrix`
        Matrix, overwritten.
    blocksize : :obj:`int`, optional
        Panel size. Defaults to the configured block size.

    Returns
    -------
    t : :obj:`distmat_mpi.DistributedMatrix`
        ``[MD,*]`` vector of the scalar factors, aligned with the main
        diagonal of ``A``.

    Notes
    -----
    The factorization is the QR factorization of :math:`A^H`,
    :math:`A^H = Q_1 R` with :math:`L = R^H` and :math:`Q = Q_1^H`,
    stored back as its adjoint.

    """
    W = working_matrix(A)
    WH = transpose(W, conjugate=True, dist=MC_MR)
    taus = _qr(WH, blocksize)
    W.transpose_from(WH, conjugate=True)
    write_back(A, W)
    return _scalar_factors(W, taus)


@collective("A", "t", "B", output="B")
def apply_q(orientation: Orientation, A: DistributedMatrix, t: DistributedMatrix,
            B: DistributedMatrix, blocksize: Optional[int] = None) -> None:
    r"""Apply the orthogonal factor of a QR factorization

    Overwrite ``B`` with :math:`Q B` (``Orientation.NORMAL``) or
    :math:`Q^H B` (``Orientation.ADJOINT``), where ``A`` and ``t`` are
    the output of :func:`distmat_mpi.lapack.qr`.

    Parameters
    ----------
    orientation : :obj:`distmat_mpi.Orientation`
        ``NORMAL`` or ``ADJOINT``.
    A : :obj:`distmat_mpi.DistributedMatrix`
        Factorized matrix.
    t : :obj:`distmat_mpi.DistributedMatrix`
        Scalar factors of the reflectors.
    B : :obj:`distmat_mpi.DistributedMatrix`
        Matrix with as many rows as ``A``, overwritten.
    blocksize : :obj:`int`, optional
        Panel size. Defaults to the configured block size.

    """
    orientation = Orientation(orientation)
    if orientation is Orientation.TRANSPOSE:
        raise LogicError("apply_q accepts Normal or Adjoint orientations")
    if B.height != A.height or t.height != min(A.global_shape):
        raise DimensionError(f"Nonconformal apply_q: A ~ {A.height} x {A.width}, "
                             f"t ~ {t.height} x {t.width}, B ~ {B.height} x {B.width}")
    if np.iscomplexobj(A.local_array) and not np.iscomplexobj(B.local_array):
        raise LogicError(f"Cannot apply a {A.dtype} orthogonal factor to a {B.dtype} matrix")
    taus = as_star_star(t).local_array[:, 0]
    F = working_matrix(A)
    X = working_matrix(B)
    _apply_q(F, taus, X, orientation is Orientation.ADJOINT, blocksize)
    write_back(B, X)
