"""Test the gemm and gemv routines
    Designed to run with n processes
    $ mpiexec -n 6 pytest test_gemm.py --with-mpi
"""
import numpy as np
from numpy.testing import assert_allclose
from mpi4py import MPI
import pytest

import distmat_mpi as dm
from distmat_mpi import (
    DistributedMatrix,
    Grid,
    GridOrder,
    Orientation,
    MC_MR, VC_STAR, STAR_STAR,
    DimensionError,
    LogicError,
)

base_comm = MPI.COMM_WORLD
grid = Grid(base_comm)

par1 = {'m': 9, 'n': 7, 'k': 5, 'dtype': np.float64}
par2 = {'m': 6, 'n': 11, 'k': 8, 'dtype': np.complex128}
par3 = {'m': 4, 'n': 3, 'k': 0, 'dtype': np.float64}
par4 = {'m': 0, 'n': 5, 'k': 3, 'dtype': np.float64}


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


def _stored(shape, orientation):
    return shape[::-1] if orientation is not Orientation.NORMAL else shape


@pytest.mark.mpi(min_size=1)
@pytest.mark.parametrize("par", [(par1), (par2), (par3), (par4)])
@pytest.mark.parametrize("orientA", list(Orientation))
@pytest.mark.parametrize("orientB", list(Orientation))
@pytest.mark.parametrize("blocksize", [1, 3, 200])
def test_gemm(par, orientA, orientB, blocksize):
    """C := alpha op(A) op(B) + beta C for every orientation pair"""
    m, n, k, dtype = par['m'], par['n'], par['k'], par['dtype']
    a = _random(_stored((m, k), orientA), dtype, 0)
    b = _random(_stored((k, n), orientB), dtype, 1)
    c = _random((m, n), dtype, 2)
    alpha, beta = 1.5, -0.5
    A = DistributedMatrix.to_dist(a, grid)
    B = DistributedMatrix.to_dist(b, grid)
    C = DistributedMatrix.to_dist(c, grid)
    dm.gemm(orientA, orientB, alpha, A, B, beta, C, blocksize=blocksize)
    expected = alpha * _op(a, orientA) @ _op(b, orientB) + beta * c
    assert_allclose(C.asarray(), expected, rtol=1e-10, atol=1e-12)


@pytest.mark.mpi(min_size=1)
@pytest.mark.parametrize("dist", [VC_STAR, STAR_STAR])
def test_gemm_output_dist(dist):
    """Results are written back to non-[MC,MR] outputs"""
    a = _random((8, 4), np.float64, 3)
    b = _random((4, 6), np.float64, 4)
    A = DistributedMatrix.to_dist(a, grid, dist=VC_STAR)
    B = DistributedMatrix.to_dist(b, grid, dist=STAR_STAR)
    C = DistributedMatrix(grid, 8, 6, dist=dist)
    dm.gemm("Normal", "Normal", 1., A, B, 0., C, blocksize=2)
    assert C.dist == dist
    assert_allclose(C.asarray(), a @ b, rtol=1e-10)


@pytest.mark.mpi(min_size=1)
def test_gemm_beta_zero():
    """beta = 0 overwrites C, even when it holds NaNs"""
    a = _random((5, 3), np.float64, 5)
    b = _random((3, 4), np.float64, 6)
    A = DistributedMatrix.to_dist(a, grid)
    B = DistributedMatrix.to_dist(b, grid)
    C = DistributedMatrix.to_dist(np.full((5, 4), np.nan), grid)
    dm.gemm(Orientation.NORMAL, Orientation.NORMAL, 2., A, B, 0., C)
    assert_allclose(C.asarray(), 2 * a @ b, rtol=1e-10)


@pytest.mark.mpi(min_size=1)
def test_gemm_into_view():
    a = _random((4, 3), np.float64, 7)
    b = _random((3, 2), np.float64, 8)
    c = _random((6, 6), np.float64, 9)
    A = DistributedMatrix.to_dist(a, grid)
    B = DistributedMatrix.to_dist(b, grid)
    C = DistributedMatrix.to_dist(c, grid)
    dm.gemm(Orientation.NORMAL, Orientation.NORMAL, 1., A, B, 1., C[1:5, 2:4])
    c[1:5, 2:4] += a @ b
    assert_allclose(C.asarray(), c, rtol=1e-10)


@pytest.mark.mpi(min_size=1)
def test_gemm_errors():
    A = DistributedMatrix(grid, 4, 3)
    B = DistributedMatrix(grid, 4, 2)
    C = DistributedMatrix(grid, 4, 2)
    with pytest.raises(DimensionError):
        dm.gemm(Orientation.NORMAL, Orientation.NORMAL, 1., A, B, 0., C)
    with pytest.raises(DimensionError):
        dm.gemm(Orientation.TRANSPOSE, Orientation.NORMAL, 1., A, B, 0., C)

    other = Grid(base_comm, order=GridOrder.ROW_MAJOR)
    D = DistributedMatrix(other, 3, 2)
    with pytest.raises(LogicError):
        dm.gemm(Orientation.NORMAL, Orientation.NORMAL, 1., A, D, 0., C)


@pytest.mark.mpi(min_size=1)
@pytest.mark.parametrize("orientation", list(Orientation))
def test_gemv(orientation):
    a = _random((7, 5), np.complex128, 10)
    m, n = _op(a, orientation).shape
    x = _random((n, 1), np.complex128, 11)
    y = _random((m, 1), np.complex128, 12)
    A = DistributedMatrix.to_dist(a, grid)
    X = DistributedMatrix.to_dist(x, grid)
    Y = DistributedMatrix.to_dist(y, grid, dist=MC_MR)
    dm.gemv(orientation, 2., A, X, 1., Y, blocksize=2)
    assert_allclose(Y.asarray(), 2 * _op(a, orientation) @ x + y, rtol=1e-10)

    Z = DistributedMatrix(grid, m, 2)
    with pytest.raises(DimensionError):
        dm.gemv(orientation, 1., A, X, 0., Z)
