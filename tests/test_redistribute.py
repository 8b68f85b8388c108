"""Test the redistribution protocol
    Designed to run with n processes
    $ mpiexec -n 6 pytest test_redistribute.py --with-mpi
"""
import numpy as np
from numpy.testing import assert_allclose
from mpi4py import MPI
import pytest

from distmat_mpi import (
    DistributedMatrix,
    Grid,
    DISTRIBUTIONS,
    MC_MR, MC_STAR, STAR_MR, MR_MC, VC_STAR, STAR_VR, MD_STAR, STAR_STAR,
    AlignmentError,
    DimensionError,
    LogicError,
)
from distmat_mpi.Redistribute import route, _ROUTES

base_comm = MPI.COMM_WORLD
size = base_comm.Get_size()
grid = Grid(base_comm)

par1 = {'height': 9, 'width': 7, 'dtype': np.float64}
par2 = {'height': 5, 'width': 12, 'dtype': np.complex128}
par3 = {'height': 0, 'width': 4, 'dtype': np.float64}


def _global(par, seed=1):
    rng = np.random.default_rng(seed)
    x = rng.standard_normal((par['height'], par['width']))
    if np.iscomplexobj(np.empty(0, dtype=par['dtype'])):
        x = x + 1j * rng.standard_normal((par['height'], par['width']))
    return x.astype(par['dtype'])


def _dist_id(dist):
    return f"{dist[0].value}_{dist[1].value}"


@pytest.mark.mpi(min_size=1)
@pytest.mark.parametrize("par", [(par1), (par2), (par3)])
@pytest.mark.parametrize("src", DISTRIBUTIONS, ids=_dist_id)
def test_redistribute_all_pairs(par, src):
    """Every source can be redistributed to every target and back"""
    x = _global(par)
    A = DistributedMatrix.to_dist(x, grid, dist=src)
    for tgt in DISTRIBUTIONS:
        B = DistributedMatrix(grid, dist=tgt, dtype=par['dtype'])
        B.redistribute_from(A)
        assert B.global_shape == x.shape
        assert_allclose(B.local_array,
                        x[np.ix_(B.global_row_indices(), B.global_col_indices())])
        C = DistributedMatrix(grid, dist=src, dtype=par['dtype'])
        C.redistribute_from(B)
        assert_allclose(C.asarray(), x)


@pytest.mark.mpi(min_size=1)
@pytest.mark.parametrize("src", DISTRIBUTIONS, ids=_dist_id)
def test_route(src):
    """Routes are chains of registered conversions"""
    for tgt in DISTRIBUTIONS:
        path = route(src, tgt)
        assert path[0] == src and path[-1] == tgt
        for a, b in zip(path[:-1], path[1:]):
            assert (a, b) in _ROUTES
    assert route(MC_MR, MC_MR) == [MC_MR, MC_MR]


@pytest.mark.mpi(min_size=1)
@pytest.mark.parametrize("dist", [MC_MR, MC_STAR, VC_STAR, STAR_VR, MD_STAR], ids=_dist_id)
def test_realign(dist):
    """Redistribution into a constrained, differently aligned target"""
    x = _global(par1)
    A = DistributedMatrix.to_dist(x, grid, dist=dist)
    last = size - 1
    aligns = {MC_MR: (grid.height - 1, grid.width - 1), MC_STAR: (grid.height - 1, 0),
              VC_STAR: (last, 0), STAR_VR: (0, last), MD_STAR: (last, 0)}[dist]
    B = DistributedMatrix(grid, dist=dist, col_align=aligns[0], row_align=aligns[1])
    B.redistribute_from(A)
    assert (B.col_align, B.row_align) == aligns
    assert_allclose(B.local_array,
                    x[np.ix_(B.global_row_indices(), B.global_col_indices())])
    assert_allclose(B.asarray(), x)


@pytest.mark.mpi(min_size=1)
def test_auto_alignment():
    """Targets with free alignments follow the source"""
    x = _global(par1)
    A = DistributedMatrix.to_dist(x, grid, dist=MC_STAR, col_align=grid.height - 1)
    B = DistributedMatrix(grid, dist=MC_MR)
    B.redistribute_from(A)
    assert B.col_align == grid.height - 1
    assert_allclose(B.asarray(), x)


@pytest.mark.mpi(min_size=1)
@pytest.mark.parametrize("src", [MC_MR, STAR_STAR, MR_MC, VC_STAR], ids=_dist_id)
def test_redistribute_into_view(src):
    """Views receive the source in place, the rest of the parent is untouched"""
    x = _global(par1)
    y = _global({'height': 3, 'width': 2, 'dtype': np.float64}, seed=5)
    A = DistributedMatrix.to_dist(x, grid)
    Y = DistributedMatrix.to_dist(y, grid, dist=src)
    A[2:5, 3:5].redistribute_from(Y)
    x[2:5, 3:5] = y
    assert_allclose(A.asarray(), x)

    with pytest.raises(DimensionError):
        A[0:2, 0:2].redistribute_from(Y)


@pytest.mark.mpi(min_size=1)
def test_redistribute_dtype():
    """Real sources are promoted to complex targets"""
    x = _global(par1)
    A = DistributedMatrix.to_dist(x, grid)
    B = DistributedMatrix(grid, dist=VC_STAR, dtype=np.complex128)
    B.redistribute_from(A)
    assert B.dtype == np.complex128
    assert_allclose(B.asarray(), x.astype(np.complex128))

    # complex sources are never truncated to real targets
    with pytest.raises(LogicError):
        DistributedMatrix(grid, dist=VC_STAR).redistribute_from(B)


@pytest.mark.mpi(min_size=1)
@pytest.mark.parametrize("par", [(par1), (par2)])
def test_sum_scatter(par):
    """Partial contributions are summed over the replicating processes"""
    x = _global(par)
    A = DistributedMatrix.to_dist(x, grid, dist=MC_STAR)
    B = DistributedMatrix(grid, dist=MC_MR, dtype=par['dtype'])
    B.sum_scatter_from(A)
    assert_allclose(B.asarray(), grid.width * x)

    A = DistributedMatrix.to_dist(x, grid, dist=STAR_MR)
    B.sum_scatter_from(A)
    assert_allclose(B.asarray(), grid.height * x)

    A = DistributedMatrix.to_dist(x, grid, dist=STAR_STAR)
    B.sum_scatter_from(A)
    assert_allclose(B.asarray(), size * x)

    B.sum_scatter_update(-1., A)
    assert_allclose(B.asarray(), np.zeros_like(x), atol=1e-12)

    C = DistributedMatrix.to_dist(x, grid)
    C.sum_scatter_update(2., A)
    assert_allclose(C.asarray(), (1 + 2 * size) * x)


@pytest.mark.mpi(min_size=1)
@pytest.mark.parametrize("par", [(par1), (par2)])
def test_sum_scatter_update(par):
    """Updates accumulate into the existing contents and alignment"""
    x = _global(par)
    A = DistributedMatrix.to_dist(x, grid, dist=STAR_STAR)
    C = DistributedMatrix.to_dist(x, grid, col_align=grid.height - 1,
                                  row_align=grid.width - 1)
    C.free_alignments()
    C.sum_scatter_update(2., A)
    assert (C.col_align, C.row_align) == (grid.height - 1, grid.width - 1)
    assert_allclose(C.asarray(), (1 + 2 * size) * x)

    A = DistributedMatrix.to_dist(x, grid, dist=MC_STAR, col_align=grid.height - 1)
    C.sum_scatter_update(-1., A)
    assert_allclose(C.asarray(), (1 + 2 * size - grid.width) * x)

    # updates never resize their target
    with pytest.raises(DimensionError):
        C.sum_scatter_update(1., DistributedMatrix.to_dist(x[:-1], grid, dist=STAR_STAR))


@pytest.mark.mpi(min_size=1)
def test_sum_scatter_misaligned():
    x = _global(par1)
    A = DistributedMatrix.to_dist(x, grid, dist=MC_STAR, col_align=0)
    if grid.height > 1:
        B = DistributedMatrix(grid, dist=MC_MR, col_align=1)
        with pytest.raises(AlignmentError):
            B.sum_scatter_from(A)
    B = DistributedMatrix.to_dist(np.zeros((2, 2)), grid)
    with pytest.raises(DimensionError):
        B[0:1, 0:1].sum_scatter_from(A)
