__all__ = [
    "frobenius_norm",
    "max_norm",
    "nrm2",
    "two_norm_estimate",
    "hermitian_two_norm_estimate",
    "symmetric_two_norm_estimate",
]

import time
from typing import Callable, Optional

import numpy as np
from mpi4py import MPI

from distmat_mpi.DistributedMatrix import DistributedMatrix
from distmat_mpi.Errors import ConvergenceError, DimensionError
from distmat_mpi.LinearOperator import DistributedMatrixOperator
from distmat_mpi.Options import UpperOrLower
from distmat_mpi.blas.Symv import hermitian_product
from distmat_mpi.blas._panels import working_matrix


def max_norm(A: DistributedMatrix) -> float:
    r"""Largest absolute value of the entries of ``A`` (``0`` when empty)"""
    local = np.max(np.abs(A.local_array)) if A.local_array.size > 0 else 0.
    return float(A._allreduce(A.grid.comm, np.array([local], dtype=np.float64), MPI.MAX)[0])


def frobenius_norm(A: DistributedMatrix) -> float:
    r"""Frobenius norm :math:`\|A\|_F = \sqrt{\sum_{ij} |a_{ij}|^2}`

    The sum runs over an ``[MC,MR]`` copy, so that replicated entries are
    counted once, and the entries are scaled by the max norm to avoid
    overflow.
    """
    scale = max_norm(A)
    if scale == 0:
        return 0.
    W = working_matrix(A)
    local = np.sum(np.abs(W.local_array / scale) ** 2) if W.local_array.size > 0 else 0.
    total = W._allreduce(W.grid.comm, np.array([local], dtype=np.float64), MPI.SUM)[0]
    return float(scale * np.sqrt(total))


def nrm2(x: DistributedMatrix) -> float:
    """Euclidean norm of a row or column vector"""
    if x.width != 1 and x.height != 1:
        raise DimensionError(f"Expected a vector, got x ~ {x.height} x {x.width}")
    return frobenius_norm(x)


def _print_setup(kind: str, shape, tol: float, max_its: int) -> None:
    print(f"{kind} two-norm estimate\n" + "-" * 50)
    print(f"A: {shape[0]} x {shape[1]}    tol = {tol:10e}    max_its = {max_its}")
    print("-" * 50 + "\n")
    print("    Itn         estimate          change")


def _print_step(its: int, estimate: float, change: float) -> None:
    print(f"{its:6g}    {estimate:13.6e}    {change:13.6e}")


def _power_iteration(step: Callable[[np.ndarray], np.ndarray], n: int, dtype,
                     tol: float, max_its: int, seed: Optional[int],
                     show: bool, square_root: bool) -> float:
    rng = np.random.default_rng(seed)
    x = rng.standard_normal(n)
    if np.iscomplexobj(np.empty(0, dtype=dtype)):
        x = x + 1j * rng.standard_normal(n)
    x = x.astype(dtype) / np.linalg.norm(x)
    estimate = 0.
    tstart = time.time()
    for its in range(1, max_its + 1):
        last = estimate
        y = step(x)
        norm = np.linalg.norm(y)
        if norm == 0:
            return 0.
        x = y / norm
        estimate = float(np.sqrt(norm) if square_root else norm)
        change = abs(estimate - last)
        if show:
            _print_step(its, estimate, change)
        if change <= tol * max(estimate, last):
            if show:
                print(f"\nConverged in {its} iterations, {time.time() - tstart:.3e} s\n")
            return estimate
    raise ConvergenceError("Two-norm estimate did not converge in time")


def two_norm_estimate(A: DistributedMatrix, tol: float = 1e-6, max_its: int = 1000,
                      seed: Optional[int] = None, show: bool = False) -> float:
    r"""Power-iteration estimate of the spectral norm :math:`\|A\|_2`

    Parameters
    ----------
    A : :obj:`distmat_mpi.DistributedMatrix`
        Matrix of size :math:`[M \times N]`.
    tol : :obj:`float`, optional
        Relative tolerance on the change of the estimate between two
        iterations.
    max_its : :obj:`int`, optional
        Maximum number of iterations.
    seed : :obj:`int`, optional
        Seed of the starting vector; must be the same on every process.
    show : :obj:`bool`, optional
        Display iterations log on rank 0.

    Returns
    -------
    estimate : :obj:`float`
        Estimate of the largest singular value of ``A``.

    Raises
    ------
    ConvergenceError
        If the estimate does not settle within ``max_its`` iterations.

    Notes
    -----
    The iteration is run on :math:`A^H A`, whose largest eigenvalue is
    :math:`\|A\|_2^2`, through :class:`distmat_mpi.DistributedMatrixOperator`.

    """
    m, n = A.global_shape
    if m == 0 or n == 0:
        return 0.
    Op = DistributedMatrixOperator(A)
    show = show and A.grid.rank == 0
    if show:
        _print_setup("General", A.global_shape, tol, max_its)
    return _power_iteration(lambda x: Op.rmatvec(Op.matvec(x)), n, Op.dtype,
                            tol, max_its, seed, show, square_root=True)


def _hermitian_estimate(kind, uplo, A, tol, max_its, seed, show, conjugate) -> float:
    if A.height != A.width:
        raise DimensionError(f"Matrix must be square, A ~ {A.height} x {A.width}")
    if A.height == 0:
        return 0.
    W = working_matrix(A)
    show = show and A.grid.rank == 0
    if show:
        _print_setup(kind, A.global_shape, tol, max_its)
    return _power_iteration(lambda x: hermitian_product(uplo, W, x, conjugate=conjugate),
                            A.height, A.dtype, tol, max_its, seed, show, square_root=False)


def hermitian_two_norm_estimate(uplo: UpperOrLower, A: DistributedMatrix,
                                tol: float = 1e-6, max_its: int = 1000,
                                seed: Optional[int] = None, show: bool = False) -> float:
    r"""Spectral norm estimate of a Hermitian matrix

    Only the ``uplo`` triangle of ``A`` is referenced. The power iteration
    is run on :math:`A` itself, converging to its largest eigenvalue in
    absolute value. See :func:`distmat_mpi.lapack.two_norm_estimate` for
    the other parameters.
    """
    return _hermitian_estimate("Hermitian", UpperOrLower(uplo), A, tol, max_its,
                               seed, show, conjugate=True)


def symmetric_two_norm_estimate(uplo: UpperOrLower, A: DistributedMatrix,
                                tol: float = 1e-6, max_its: int = 1000,
                                seed: Optional[int] = None, show: bool = False) -> float:
    """Spectral norm estimate of a real symmetric matrix

    See :func:`distmat_mpi.lapack.hermitian_two_norm_estimate`.
    """
    return _hermitian_estimate("Symmetric", UpperOrLower(uplo), A, tol, max_its,
                               seed, show, conjugate=False)
