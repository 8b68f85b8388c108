"""Test the element-cyclic distribution rules
    Designed to run with n processes
    $ mpiexec -n 6 pytest test_distribution.py --with-mpi
"""
from collections import Counter

import numpy as np
from mpi4py import MPI
import pytest

from distmat_mpi import Grid, Dist, DISTRIBUTIONS
from distmat_mpi import Distribution as dists

base_comm = MPI.COMM_WORLD
size = base_comm.Get_size()
grid = Grid(base_comm)

# number of processes storing each index of an axis
replication = {
    Dist.MC: grid.width,
    Dist.MR: grid.height,
    Dist.VC: 1,
    Dist.VR: 1,
    Dist.MD: 1,
    Dist.STAR: size,
}


def _alignments(dist):
    if dist is Dist.STAR:
        return [0]
    if dist is Dist.MD:
        return list(range(size))
    return list(range(dists.stride(grid, dist)))


@pytest.mark.mpi(min_size=1)
def test_distributions_list():
    """The 13 legal distribution pairs"""
    assert len(DISTRIBUTIONS) == 13
    assert len(set(DISTRIBUTIONS)) == 13
    assert (Dist.MC, Dist.MR) in DISTRIBUTIONS
    assert (Dist.MC, Dist.MC) not in DISTRIBUTIONS
    assert (Dist.MD, Dist.MD) not in DISTRIBUTIONS


@pytest.mark.mpi(min_size=1)
@pytest.mark.parametrize("n", [0, 1, 7, 23])
@pytest.mark.parametrize("stride", [1, 2, 3, 5])
def test_local_length(n, stride):
    """Local lengths over all shifts add up to the global length"""
    assert sum(dists.local_length(n, s, stride) for s in range(stride)) == n


@pytest.mark.mpi(min_size=1)
def test_consumed_dims():
    assert dists.consumed_dims(Dist.MC) == frozenset({dists.ROW})
    assert dists.consumed_dims(Dist.MR) == frozenset({dists.COL})
    assert dists.consumed_dims(Dist.STAR) == frozenset()
    for dist in (Dist.VC, Dist.VR, Dist.MD):
        assert dists.consumed_dims(dist) == frozenset({dists.ROW, dists.COL})


@pytest.mark.mpi(min_size=1)
@pytest.mark.parametrize("dist", list(Dist))
def test_ownership(dist):
    """Every index is owned by the expected number of processes, each
    owner agreeing with the owner formula"""
    n = 17
    for align in _alignments(dist):
        counts = Counter()
        for vc in range(size):
            row, col = grid.coords(vc)
            owned = dists.owned_indices(grid, dist, align, n, row, col)
            counts.update(owned.tolist())
            if dist is not Dist.STAR and dists.participates(grid, dist, align, row, col):
                rank_in_dist = dists.dist_rank(grid, dist, row, col)
                for i in owned:
                    assert dists.owner(grid, dist, align, int(i)) == rank_in_dist
                assert owned.size == dists.local_length(
                    n, dists.shift(grid, dist, align, row, col), dists.stride(grid, dist))
        assert sorted(counts) == list(range(n))
        assert set(counts.values()) == {replication[dist]}


@pytest.mark.mpi(min_size=1)
@pytest.mark.parametrize("dist", [Dist.MC, Dist.MR, Dist.VC, Dist.VR, Dist.MD])
def test_offset_alignment(dist):
    """The sub-range starting at an offset is owned like the original range"""
    n, offset = 19, 5
    align = _alignments(dist)[-1]
    sub_align = dists.offset_alignment(grid, dist, align, offset)
    for vc in range(size):
        row, col = grid.coords(vc)
        owned = dists.owned_indices(grid, dist, align, n, row, col)
        sub = dists.owned_indices(grid, dist, sub_align, n - offset, row, col)
        np.testing.assert_array_equal(sub + offset, owned[owned >= offset])


@pytest.mark.mpi(min_size=1)
@pytest.mark.parametrize("src, tgt", [(Dist.MC, Dist.VC), (Dist.MR, Dist.VR),
                                      (Dist.MC, Dist.MD), (Dist.MR, Dist.MD),
                                      (Dist.STAR, Dist.VC), (Dist.VC, Dist.VC)])
def test_covers(src, tgt):
    """A covering source stores every target index of each process"""
    n = 13
    for tgt_align in _alignments(tgt):
        src_align = dists.derived_alignment(grid, src, tgt, tgt_align)
        src_align = 0 if src_align is None else src_align
        assert dists.covers(grid, src, src_align, tgt, tgt_align)
        assert dists.structurally_covers(src, tgt)
        for vc in range(size):
            row, col = grid.coords(vc)
            owned_src = set(dists.owned_indices(grid, src, src_align, n, row, col).tolist())
            owned_tgt = set(dists.owned_indices(grid, tgt, tgt_align, n, row, col).tolist())
            assert owned_tgt <= owned_src


@pytest.mark.mpi(min_size=1)
def test_coarsen():
    col, row = frozenset({dists.COL}), frozenset({dists.ROW})
    assert dists.coarsen(Dist.VC, col) is Dist.MC
    assert dists.coarsen(Dist.VR, row) is Dist.MR
    assert dists.coarsen(Dist.MC, row) is Dist.STAR
    assert dists.coarsen(Dist.MC, col) is Dist.MC
    assert dists.coarsen(Dist.VC, row) is None
    assert dists.coarsen(Dist.MD, row | col) is Dist.STAR
