"""Test the trsm routine
    Designed to run with n processes
    $ mpiexec -n 6 pytest test_trsm.py --with-mpi
"""
import numpy as np
from numpy.testing import assert_allclose
from mpi4py import MPI
import pytest

import distmat_mpi as dm
from distmat_mpi import (
    DistributedMatrix,
    Grid,
    Side,
    UpperOrLower,
    Orientation,
    UnitOrNonUnit,
    STAR_STAR, VC_STAR,
    DimensionError,
)

base_comm = MPI.COMM_WORLD
grid = Grid(base_comm)


def _random(shape, dtype, seed):
    rng = np.random.default_rng(seed)
    x = rng.standard_normal(shape)
    if np.iscomplexobj(np.empty(0, dtype=dtype)):
        x = x + 1j * rng.standard_normal(shape)
    return x.astype(dtype)


def _op(x, orientation):
    if orientation is Orientation.TRANSPOSE:
        return x.T
    if orientation is Orientation.ADJOINT:
        return x.conj().T
    return x


def _triangular(n, uplo, diag, dtype, seed):
    """Well-conditioned triangle, with garbage in the other triangle"""
    a = _random((n, n), dtype, seed)
    t = np.tril(a, -1) if uplo is UpperOrLower.LOWER else np.triu(a, 1)
    t = t / n + np.diag(2 + np.abs(np.diag(a)))
    garbage = 100 * (np.triu(a, 1) if uplo is UpperOrLower.LOWER else np.tril(a, -1))
    stored = t + garbage
    if diag is UnitOrNonUnit.UNIT:
        np.fill_diagonal(t, 1)
        np.fill_diagonal(stored, 7)
    return stored, t


@pytest.mark.mpi(min_size=1)
@pytest.mark.parametrize("side", list(Side))
@pytest.mark.parametrize("uplo", list(UpperOrLower))
@pytest.mark.parametrize("orientation", list(Orientation))
@pytest.mark.parametrize("diag", list(UnitOrNonUnit))
@pytest.mark.parametrize("blocksize", [1, 3, 64])
@pytest.mark.parametrize("dtype", [np.float64, np.complex128])
def test_trsm(side, uplo, orientation, diag, blocksize, dtype):
    """op(A) X = alpha B and X op(A) = alpha B"""
    m, n = 10, 7
    k = m if side is Side.LEFT else n
    stored, t = _triangular(k, uplo, diag, dtype, 0)
    b = _random((m, n), dtype, 1)
    alpha = 2.
    A = DistributedMatrix.to_dist(stored, grid)
    B = DistributedMatrix.to_dist(b, grid)
    dm.trsm(side, uplo, orientation, diag, alpha, A, B, blocksize=blocksize)
    x = B.asarray()
    if side is Side.LEFT:
        assert_allclose(_op(t, orientation) @ x, alpha * b, rtol=1e-9, atol=1e-9)
    else:
        assert_allclose(x @ _op(t, orientation), alpha * b, rtol=1e-9, atol=1e-9)
    # the triangular matrix is untouched
    assert_allclose(A.asarray(), stored)


@pytest.mark.mpi(min_size=1)
@pytest.mark.parametrize("dist", [VC_STAR, STAR_STAR])
def test_trsm_dist(dist):
    """Triangular matrix and right-hand side in other distributions"""
    stored, t = _triangular(6, UpperOrLower.UPPER, UnitOrNonUnit.NON_UNIT, np.float64, 2)
    b = _random((6, 3), np.float64, 3)
    A = DistributedMatrix.to_dist(stored, grid, dist=dist)
    B = DistributedMatrix.to_dist(b, grid, dist=dist)
    dm.trsm("Left", "Upper", "Normal", "NonUnit", 1., A, B, blocksize=2)
    assert B.dist == dist
    assert_allclose(t @ B.asarray(), b, rtol=1e-9, atol=1e-9)


@pytest.mark.mpi(min_size=1)
def test_trsm_empty():
    A = DistributedMatrix(grid, 0, 0)
    B = DistributedMatrix(grid, 0, 4)
    dm.trsm(Side.LEFT, UpperOrLower.LOWER, Orientation.NORMAL, UnitOrNonUnit.NON_UNIT,
            1., A, B)
    assert B.global_shape == (0, 4)

    stored, t = _triangular(5, UpperOrLower.LOWER, UnitOrNonUnit.NON_UNIT, np.float64, 4)
    A = DistributedMatrix.to_dist(stored, grid)
    B = DistributedMatrix(grid, 5, 0)
    dm.trsm(Side.LEFT, UpperOrLower.LOWER, Orientation.NORMAL, UnitOrNonUnit.NON_UNIT,
            1., A, B, blocksize=2)
    assert B.global_shape == (5, 0)


@pytest.mark.mpi(min_size=1)
def test_trsm_errors():
    A = DistributedMatrix(grid, 4, 5)
    B = DistributedMatrix(grid, 4, 2)
    with pytest.raises(DimensionError):
        dm.trsm(Side.LEFT, UpperOrLower.LOWER, Orientation.NORMAL, UnitOrNonUnit.NON_UNIT,
                1., A, B)
    A = DistributedMatrix(grid, 4, 4)
    with pytest.raises(DimensionError):
        dm.trsm(Side.RIGHT, UpperOrLower.LOWER, Orientation.NORMAL, UnitOrNonUnit.NON_UNIT,
                1., A, B)
    with pytest.raises(ValueError):
        dm.trsm(Side.LEFT, UpperOrLower.LOWER, Orientation.NORMAL, UnitOrNonUnit.NON_UNIT,
                1., A, B, blocksize=0)


@pytest.mark.mpi(min_size=4)
def test_trsm_trmm_2x2():
    """Solve then multiply back on a 2 x 2 grid, 6 x 6 lower factor, blocksize 2"""
    rank = base_comm.Get_rank()
    comm = base_comm.Split(0 if rank < 4 else MPI.UNDEFINED, rank)
    if comm == MPI.COMM_NULL:
        return
    grid2 = Grid(comm, height=2)
    assert grid2.shape == (2, 2)
    stored, t = _triangular(6, UpperOrLower.LOWER, UnitOrNonUnit.NON_UNIT, np.float64, 5)
    b = _random((6, 4), np.float64, 6)
    L = DistributedMatrix.to_dist(stored, grid2)
    B = DistributedMatrix.to_dist(b, grid2)
    dm.trsm(Side.LEFT, UpperOrLower.LOWER, Orientation.NORMAL, UnitOrNonUnit.NON_UNIT,
            1., L, B, blocksize=2)
    assert_allclose(B.asarray(), np.linalg.solve(t, b), rtol=1e-9, atol=1e-9)
    dm.trmm(Side.LEFT, UpperOrLower.LOWER, Orientation.NORMAL, UnitOrNonUnit.NON_UNIT,
            1., L, B, blocksize=2)
    assert_allclose(B.asarray(), b, rtol=1e-9, atol=1e-9)
    comm.Free()
