"""Test the DistributedMatrix class
    Designed to run with n processes
    $ mpiexec -n 6 pytest test_distributedmatrix.py --with-mpi
"""
import numpy as np
from numpy.testing import assert_allclose
from mpi4py import MPI
import pytest

from distmat_mpi import (
    DistributedMatrix,
    Grid,
    GridOrder,
    DISTRIBUTIONS,
    MC_MR, MC_STAR, STAR_MR, MR_STAR, STAR_MC, MD_STAR, STAR_MD, STAR_STAR, VC_STAR,
    Dist,
    UpperOrLower,
    transpose,
    AlignmentError,
    DimensionError,
    LogicError,
)

np.random.seed(42)
base_comm = MPI.COMM_WORLD
rank = base_comm.Get_rank()
size = base_comm.Get_size()
grid = Grid(base_comm)

par1 = {'height': 7, 'width': 5, 'dtype': np.float64}
par2 = {'height': 11, 'width': 13, 'dtype': np.complex128}
par3 = {'height': 1, 'width': 9, 'dtype': np.float32}
par4 = {'height': 0, 'width': 0, 'dtype': np.float64}


def _global(par, seed=0):
    rng = np.random.default_rng(seed)
    x = rng.standard_normal((par['height'], par['width']))
    if np.iscomplexobj(np.empty(0, dtype=par['dtype'])):
        x = x + 1j * rng.standard_normal((par['height'], par['width']))
    return x.astype(par['dtype'])


def _dist_id(dist):
    return f"{dist[0].value}_{dist[1].value}"


@pytest.mark.mpi(min_size=1)
@pytest.mark.parametrize("par", [(par1), (par2), (par3), (par4)])
@pytest.mark.parametrize("dist", DISTRIBUTIONS, ids=_dist_id)
def test_to_dist(par, dist):
    """Local storage holds the owned entries of the global array"""
    x = _global(par)
    A = DistributedMatrix.to_dist(x, grid, dist=dist)
    assert A.global_shape == x.shape
    assert A.local_shape == A.local_array.shape
    assert A.dtype == par['dtype']
    rows, cols = A.global_row_indices(), A.global_col_indices()
    assert_allclose(A.local_array, x[np.ix_(rows, cols)])
    assert_allclose(A.asarray(), x)


@pytest.mark.mpi(min_size=1)
@pytest.mark.parametrize("dist", DISTRIBUTIONS, ids=_dist_id)
def test_local_sizes(dist):
    """Local sizes of all processes add up to the replicated global size"""
    x = _global(par2)
    A = DistributedMatrix.to_dist(x, grid, dist=dist)
    total = base_comm.allreduce(A.local_array.size, op=MPI.SUM)
    replicas = {MC_STAR: grid.width, STAR_MC: grid.width,
                MR_STAR: grid.height, STAR_MR: grid.height,
                STAR_STAR: size}.get(dist, 1)
    assert total == replicas * x.size


@pytest.mark.mpi(min_size=1)
def test_invalid_distribution():
    with pytest.raises(LogicError):
        DistributedMatrix(grid, 3, 3, dist=(Dist.MC, Dist.MC))
    with pytest.raises(DimensionError):
        DistributedMatrix(grid, -1, 3)


@pytest.mark.mpi(min_size=1)
@pytest.mark.parametrize("par", [(par1), (par2)])
def test_get_set_update(par):
    """Collective element access"""
    x = _global(par)
    A = DistributedMatrix.to_dist(x, grid)
    for i, j in [(0, 0), (par['height'] - 1, par['width'] - 1), (2, 3)]:
        assert A.get(i, j) == x[i, j]
        A.set(i, j, 5)
        assert A.get(i, j) == 5
        A.update(i, j, 2)
        assert A.get(i, j) == 7
    with pytest.raises(DimensionError):
        A.get(par['height'], 0)


@pytest.mark.mpi(min_size=1)
@pytest.mark.parametrize("dist", [MC_MR, VC_STAR, MD_STAR, STAR_STAR], ids=_dist_id)
def test_get_replicated(dist):
    x = _global(par1)
    A = DistributedMatrix.to_dist(x, grid, dist=dist)
    for i in range(par1['height']):
        for j in range(par1['width']):
            assert A.get(i, j) == x[i, j]


@pytest.mark.mpi(min_size=1)
def test_local_access():
    """Non-collective element access only on owning processes"""
    x = _global(par1)
    A = DistributedMatrix.to_dist(x, grid)
    for i in range(par1['height']):
        for j in range(par1['width']):
            if A.is_local(i, j):
                assert A.local_get(i, j) == x[i, j]
                A.local_set(i, j, -1)
                A.local_update(i, j, -1)
                assert A.local_get(i, j) == -2
            else:
                with pytest.raises(LogicError):
                    A.local_get(i, j)
                with pytest.raises(LogicError):
                    A.local_set(i, j, 0)
    assert_allclose(A.asarray(), -2 * np.ones_like(x))


@pytest.mark.mpi(min_size=1)
def test_owner():
    """The primary owner of each entry stores it"""
    x = _global(par2)
    for dist in DISTRIBUTIONS:
        A = DistributedMatrix.to_dist(x, grid, dist=dist)
        owners = base_comm.allgather([(i, j) for i in range(A.height)
                                      for j in range(A.width) if A.is_local(i, j)])
        vc_of_rank = base_comm.allgather(grid.vc_rank)
        for i in range(A.height):
            for j in range(A.width):
                root = A.owner(i, j)
                assert (i, j) in owners[vc_of_rank.index(root)]


@pytest.mark.mpi(min_size=1)
@pytest.mark.parametrize("par", [(par1), (par2)])
def test_views(par):
    """Views alias the storage of their parent"""
    x = _global(par)
    A = DistributedMatrix.to_dist(x, grid)
    V = A[1:5, 2:4]
    assert V.is_view and V.parent is A
    assert V.offsets == (1, 2)
    assert_allclose(V.asarray(), x[1:5, 2:4])
    V.set_to_zero()
    x[1:5, 2:4] = 0
    assert_allclose(A.asarray(), x)

    W = A.view(0, 1, 3, 2)
    assert_allclose(W.asarray(), x[0:3, 1:3])
    W.scale(2)
    x[0:3, 1:3] *= 2
    assert_allclose(A.asarray(), x)

    # nested views
    assert_allclose(A[1:, 1:][1:3, range(0, 2)].asarray(), x[2:4, 1:3])
    assert A[3:3, :].global_shape == (0, par['width'])


@pytest.mark.mpi(min_size=1)
def test_view_errors():
    A = DistributedMatrix.to_dist(_global(par1), grid)
    with pytest.raises(DimensionError):
        A.view(5, 0, 3, 1)
    with pytest.raises(LogicError):
        A[0:4:2, :]
    with pytest.raises(LogicError):
        A[1]
    with pytest.raises(LogicError):
        A[1:3, 1:3].resize(4, 4)
    with pytest.raises(AlignmentError):
        A[1:3, 1:3].align(col_align=grid.height)


@pytest.mark.mpi(min_size=1)
def test_locked_view():
    x = _global(par1)
    A = DistributedMatrix.to_dist(x, grid)
    L = A.locked_view(0, 0, 3, 3)
    assert L.is_locked
    assert_allclose(L.asarray(), x[:3, :3])
    with pytest.raises(LogicError):
        L.set(0, 0, 1.)
    with pytest.raises(LogicError):
        L.set_to_zero()
    # views of locked views are locked
    assert L[0:2, 0:2].is_locked


@pytest.mark.mpi(min_size=1)
def test_alignment():
    """Constrained alignments cannot be changed"""
    A = DistributedMatrix(grid, 6, 6, col_align=grid.height - 1)
    assert A.col_constrained and not A.row_constrained
    assert A.col_align == grid.height - 1
    A.align(row_align=grid.width - 1)
    assert A.row_align == grid.width - 1
    A.align(col_align=grid.height - 1)
    if grid.height > 1:
        with pytest.raises(AlignmentError):
            A.align(col_align=0)
    with pytest.raises(AlignmentError):
        A.align(col_align=grid.height)
    A.free_alignments()
    A.align(col_align=0)
    assert A.col_align == 0

    x = _global(par1)
    B = DistributedMatrix.to_dist(x, grid, dist=MC_STAR, col_align=grid.height - 1)
    C = DistributedMatrix(grid, dist=MC_MR)
    C.align_with(B)
    assert C.col_align == B.col_align
    C.redistribute_from(B)
    assert C.col_align == grid.height - 1
    assert_allclose(C.asarray(), x)


@pytest.mark.mpi(min_size=1)
def test_align_axes_with():
    """Single axes adopt the alignment of a matching axis"""
    x = _global(par1)
    A = DistributedMatrix(grid, 9, 7, col_align=grid.height - 1, row_align=grid.width - 1)
    B = DistributedMatrix(grid, dist=MR_STAR)
    B.align_cols_with(A)
    assert B.col_align == grid.width - 1
    assert B.col_constrained and not B.row_constrained
    B.redistribute_from(DistributedMatrix.to_dist(x, grid))
    assert B.col_align == grid.width - 1
    assert_allclose(B.asarray(), x)

    C = DistributedMatrix(grid, dist=STAR_MC)
    C.align_rows_with(A)
    assert C.row_align == grid.height - 1
    assert C.row_constrained and not C.col_constrained

    # no matching axis, nothing changes
    D = DistributedMatrix(grid, dist=VC_STAR)
    D.align_rows_with(A)
    assert not D.col_constrained and not D.row_constrained


@pytest.mark.mpi(min_size=1)
@pytest.mark.parametrize("offset", [-3, -1, 0, 1, 4])
@pytest.mark.parametrize("par", [(par1), (par2)])
def test_diagonal(par, offset):
    x = _global(par)
    A = DistributedMatrix.to_dist(x, grid)
    d = A.diagonal(offset)
    assert d.dist == MD_STAR
    assert_allclose(d.asarray()[:, 0], np.diag(x, offset))

    # alignment with the diagonal of another matrix
    e = DistributedMatrix(grid, dist=STAR_MD, dtype=par['dtype'])
    e.align_with_diagonal(A, offset)
    e.redistribute_from(transpose(d, dist=STAR_STAR))
    assert_allclose(e.asarray()[0], np.diag(x, offset))


@pytest.mark.mpi(min_size=1)
@pytest.mark.parametrize("par", [(par1), (par2), (par4)])
@pytest.mark.parametrize("conjugate", [False, True])
def test_transpose(par, conjugate):
    x = _global(par)
    xt = x.conj().T if conjugate else x.T
    A = DistributedMatrix.to_dist(x, grid)
    for dist in [None, MC_MR, STAR_STAR, VC_STAR]:
        At = transpose(A, conjugate=conjugate, dist=dist)
        assert_allclose(At.asarray(), xt)
    B = DistributedMatrix.to_dist(x, grid, dist=MC_STAR)
    Bt = DistributedMatrix(grid, dist=STAR_MC, dtype=par["dtype"])
    Bt.transpose_from(B, conjugate=conjugate)
    assert Bt.dist == STAR_MC
    assert_allclose(Bt.asarray(), xt)


@pytest.mark.mpi(min_size=1)
@pytest.mark.parametrize("offset", [-2, 0, 1])
def test_trapezoidal_identity(offset):
    x = _global(par2)
    A = DistributedMatrix.to_dist(x, grid)
    A.make_trapezoidal(UpperOrLower.LOWER, offset)
    assert_allclose(A.asarray(), np.tril(x, offset))
    A = DistributedMatrix.to_dist(x, grid)
    A.make_trapezoidal("Upper", offset)
    assert_allclose(A.asarray(), np.triu(x, offset))
    A.set_to_identity()
    assert_allclose(A.asarray(), np.eye(*x.shape))


@pytest.mark.mpi(min_size=1)
@pytest.mark.parametrize("dist", [MC_MR, VC_STAR, STAR_MD], ids=_dist_id)
def test_set_to_random(dist):
    """Random fill does not depend on the grid or the distribution"""
    A = DistributedMatrix(grid, 9, 4, dist=dist)
    A.set_to_random(seed=3)
    expected = np.random.default_rng(3).random((9, 4))
    assert_allclose(A.asarray(), expected)


@pytest.mark.mpi(min_size=1)
def test_copy_and_sums():
    x = _global(par1)
    A = DistributedMatrix.to_dist(x, grid, dist=MC_STAR)
    B = A.copy()
    assert not B.is_view
    assert (B.col_align, B.row_align) == (A.col_align, A.row_align)
    B.sum_over_row()
    assert_allclose(B.asarray(), grid.width * x)
    C = DistributedMatrix.to_dist(x, grid, dist=STAR_MR)
    C.sum_over_col()
    assert_allclose(C.asarray(), grid.height * x)


@pytest.mark.mpi(min_size=1)
def test_grid_mismatch():
    other = Grid(base_comm, order=GridOrder.ROW_MAJOR)
    A = DistributedMatrix.to_dist(_global(par1), grid)
    B = DistributedMatrix(other, dist=MC_MR)
    with pytest.raises(LogicError):
        B.redistribute_from(A)
