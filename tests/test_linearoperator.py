"""Test the DistributedMatrixOperator class
    Designed to run with n processes
    $ mpiexec -n 6 pytest test_linearoperator.py --with-mpi
"""
import numpy as np
from numpy.testing import assert_allclose
from mpi4py import MPI
import pytest
from pylops.utils import dottest

from distmat_mpi import (
    DistributedMatrix,
    DistributedMatrixOperator,
    Grid,
    MC_MR, VC_STAR, STAR_STAR,
)

grid = Grid(MPI.COMM_WORLD)

par1 = {'m': 9, 'n': 6, 'dtype': np.float64}
par2 = {'m': 4, 'n': 11, 'dtype': np.complex128}


def _random(shape, dtype, seed):
    rng = np.random.default_rng(seed)
    x = rng.standard_normal(shape)
    if np.iscomplexobj(np.empty(0, dtype=dtype)):
        x = x + 1j * rng.standard_normal(shape)
    return x.astype(dtype)


@pytest.mark.mpi(min_size=1)
@pytest.mark.parametrize("par", [(par1), (par2)])
@pytest.mark.parametrize("dist", [MC_MR, VC_STAR, STAR_STAR])
def test_matvec(par, dist):
    """Forward and adjoint match the dense products"""
    a = _random((par['m'], par['n']), par['dtype'], 0)
    A = DistributedMatrix.to_dist(a, grid, dist=dist)
    Op = DistributedMatrixOperator(A)
    assert Op.shape == a.shape
    assert Op.dtype == par['dtype']
    assert Op.A.dist == MC_MR
    x = _random(par['n'], par['dtype'], 1)
    y = _random(par['m'], par['dtype'], 2)
    assert_allclose(Op @ x, a @ x, rtol=1e-12)
    assert_allclose(Op.H @ y, a.conj().T @ y, rtol=1e-12)


@pytest.mark.mpi(min_size=1)
@pytest.mark.parametrize("par", [(par1), (par2)])
def test_dottest(par):
    a = _random((par['m'], par['n']), par['dtype'], 3)
    Op = DistributedMatrixOperator(DistributedMatrix.to_dist(a, grid))
    # random vectors of the dot test must agree on every process
    np.random.seed(42)
    assert dottest(Op, par['m'], par['n'],
                   complexflag=0 if par['dtype'] == np.float64 else 3,
                   rtol=1e-10)


@pytest.mark.mpi(min_size=1)
def test_dtype():
    a = _random((3, 3), np.float64, 4)
    Op = DistributedMatrixOperator(DistributedMatrix.to_dist(a, grid), dtype=np.complex128)
    x = np.ones(3, dtype=np.complex128) * (1 + 1j)
    assert Op.dtype == np.complex128
    assert_allclose(Op.matvec(x), a @ x, rtol=1e-12)
