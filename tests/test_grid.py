"""Test the Grid class
    Designed to run with n processes
    $ mpiexec -n 6 pytest test_grid.py --with-mpi
"""
import math

from mpi4py import MPI
import pytest

from distmat_mpi import Dist, Grid, GridOrder, GridError, LogicError
from distmat_mpi.Distribution import dist_rank, stride
from distmat_mpi.Grid import find_factor

base_comm = MPI.COMM_WORLD
rank = base_comm.Get_rank()
size = base_comm.Get_size()


@pytest.mark.mpi(min_size=1)
@pytest.mark.parametrize("p, height", [(1, 1), (2, 1), (4, 2), (6, 2),
                                       (7, 1), (9, 3), (12, 3), (16, 4)])
def test_find_factor(p, height):
    """Most square factorization of a process count"""
    assert find_factor(p) == height


@pytest.mark.mpi(min_size=1)
def test_find_factor_invalid():
    with pytest.raises(GridError):
        find_factor(0)


@pytest.mark.mpi(min_size=1)
def test_grid_shape():
    grid = Grid(base_comm)
    assert grid.height * grid.width == size
    assert grid.height == find_factor(size)
    assert grid.height <= grid.width
    assert grid.shape == (grid.height, grid.width)
    assert grid.gcd == math.gcd(grid.height, grid.width)
    assert grid.lcm == size // grid.gcd


@pytest.mark.mpi(min_size=1)
def test_grid_invalid_height():
    """Heights not dividing the number of processes are rejected"""
    with pytest.raises(GridError):
        Grid(base_comm, height=size + 1)
    with pytest.raises(LogicError):
        Grid(base_comm, height=0)


@pytest.mark.mpi(min_size=1)
def test_grid_coordinates():
    """Column-major placement, VC and VR ranks"""
    grid = Grid(base_comm)
    assert grid.row == rank % grid.height
    assert grid.col == rank // grid.height
    assert grid.vc_rank == rank
    assert grid.vr_rank == grid.col + grid.row * grid.width
    assert grid.coords(grid.vc_rank) == (grid.row, grid.col)
    assert grid.vc_from_coords(grid.row, grid.col) == grid.vc_rank
    assert grid.vr_from_coords(grid.row, grid.col) == grid.vr_rank

    # every process has distinct coordinates
    coords = base_comm.allgather((grid.row, grid.col))
    assert len(set(coords)) == size


@pytest.mark.mpi(min_size=1)
def test_grid_row_major():
    grid = Grid(base_comm, order=GridOrder.ROW_MAJOR)
    assert grid.row == rank // grid.width
    assert grid.col == rank % grid.width
    assert grid.order is GridOrder.ROW_MAJOR


@pytest.mark.mpi(min_size=1)
def test_grid_communicators():
    """Sizes and ranks of the derived communicators"""
    grid = Grid(base_comm)
    assert grid.col_comm.Get_size() == grid.height
    assert grid.col_comm.Get_rank() == grid.row
    assert grid.row_comm.Get_size() == grid.width
    assert grid.row_comm.Get_rank() == grid.col
    assert grid.vc_comm.Get_size() == size
    assert grid.vc_comm.Get_rank() == grid.vc_rank
    assert grid.vr_comm.Get_size() == size
    assert grid.vr_comm.Get_rank() == grid.vr_rank
    assert grid.md_comm.Get_size() == grid.lcm
    assert grid.md_comm.Get_rank() == grid.diag_path_rank
    assert grid.md_perp_comm.Get_size() == grid.gcd
    assert grid.md_perp_comm.Get_rank() == grid.diag_path


@pytest.mark.mpi(min_size=1)
@pytest.mark.parametrize("dist", list(Dist))
def test_grid_dist_comm(dist):
    """Rank space of each axis distribution"""
    grid = Grid(base_comm)
    comm = grid.dist_comm(dist)
    assert comm.Get_size() == grid.dist_size(dist)
    assert comm.Get_rank() == grid.dist_rank(dist)
    assert grid.dist_size(dist) == stride(grid, dist)
    assert grid.dist_rank(dist) == dist_rank(grid, dist, grid.row, grid.col)


@pytest.mark.mpi(min_size=1)
def test_grid_diagonal_paths():
    """Each diagonal path visits lcm processes stepping down-right"""
    grid = Grid(base_comm)
    assert grid.diag_path == (grid.row - grid.col) % grid.gcd
    assert grid.diag_vc_rank(grid.diag_path, grid.diag_path_rank) == grid.vc_rank
    for path in range(grid.gcd):
        visited = [grid.coords(grid.diag_vc_rank(path, k)) for k in range(grid.lcm)]
        assert len(set(visited)) == grid.lcm
        for k, (row, col) in enumerate(visited):
            assert row == (path + k) % grid.height
            assert col == k % grid.width
            assert grid.diag_path_of(grid.vc_from_coords(row, col)) == path


@pytest.mark.mpi(min_size=1)
def test_grid_equality():
    grid1 = Grid(base_comm)
    grid2 = Grid(base_comm)
    grid3 = Grid(base_comm, order=GridOrder.ROW_MAJOR)
    assert grid1 == grid2
    assert grid1 != grid3
