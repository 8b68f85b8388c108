__all__ = [
    "redistribute",
    "sum_scatter",
    "route",
]

import logging
from collections import deque
from typing import Callable, Dict, FrozenSet, List, Optional, Tuple

import numpy as np
from mpi4py import MPI

from distmat_mpi import Distribution as dists
from distmat_mpi.Distribution import Dist, DISTRIBUTIONS, ROW, COL, consumed_dims
from distmat_mpi.DistributedMatrix import DistributedMatrix
from distmat_mpi.Errors import AlignmentError, DimensionError, LogicError
from distmat_mpi.Grid import Grid

logging.basicConfig(format="%(levelname)s: %(message)s", level=logging.WARNING)

DistPair = Tuple[Dist, Dist]


def _pair_consumed(dist: DistPair) -> FrozenSet[str]:
    return consumed_dims(dist[0]) | consumed_dims(dist[1])


def _gathered_dims(src: DistPair, tgt: DistPair) -> FrozenSet[str]:
    """Grid dimensions the source must be gathered over to reach the target"""
    return (consumed_dims(src[0]) - consumed_dims(tgt[0])) | \
        (consumed_dims(src[1]) - consumed_dims(tgt[1]))


def _classify(src: DistPair, tgt: DistPair) -> Optional[str]:
    if src == tgt:
        return "realign"
    dims = _gathered_dims(src, tgt)
    coarse = (dists.coarsen(src[0], dims), dists.coarsen(src[1], dims))
    if None not in coarse and all(dists.structurally_covers(c, t) for c, t in zip(coarse, tgt)):
        if not dims:
            return "select"
        if not dims & _pair_consumed(tgt):
            return "gather"
    if _pair_consumed(src) == _pair_consumed(tgt) and Dist.MD not in src + tgt:
        return "alltoall"
    return None


# registered direct conversions, keyed by (source, target) distribution
_ROUTES: Dict[Tuple[DistPair, DistPair], str] = {}
for _src in DISTRIBUTIONS:
    for _tgt in DISTRIBUTIONS:
        _kind = _classify(_src, _tgt)
        if _kind is not None:
            _ROUTES[(_src, _tgt)] = _kind


def route(src: DistPair, tgt: DistPair) -> List[DistPair]:
    """Shortest chain of registered conversions from ``src`` to ``tgt``

    Parameters
    ----------
    src : :obj:`tuple`
        Source distribution pair.
    tgt : :obj:`tuple`
        Target distribution pair.

    Returns
    -------
    path : :obj:`list`
        Distribution pairs visited, ``src`` and ``tgt`` included.

    """
    if (src, tgt) in _ROUTES:
        return [src, tgt]
    previous = {src: None}
    queue = deque([src])
    while queue:
        current = queue.popleft()
        for (s, t) in _ROUTES:
            if s == current and t not in previous:
                previous[t] = current
                queue.append(t)
    if tgt not in previous:
        raise LogicError(f"No conversion registered from [{src[0].value},{src[1].value}] "
                         f"to [{tgt[0].value},{tgt[1].value}]")
    path = [tgt]
    while path[-1] != src:
        path.append(previous[path[-1]])
    return path[::-1]


def _intersect(a: np.ndarray, b: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    _, ia, ib = np.intersect1d(a, b, assume_unique=True, return_indices=True)
    return ia, ib


def _owned(A: DistributedMatrix, row: int, col: int) -> Tuple[np.ndarray, np.ndarray]:
    """Global rows and columns of ``A`` stored by process ``(row, col)``"""
    grid = A.grid
    if not (dists.participates(grid, A.col_dist, A.col_align, row, col) and
            dists.participates(grid, A.row_dist, A.row_align, row, col)):
        empty = np.empty(0, dtype=np.int64)
        return empty, empty
    return (dists.owned_indices(grid, A.col_dist, A.col_align, A.height, row, col),
            dists.owned_indices(grid, A.row_dist, A.row_align, A.width, row, col))


def _group(grid: Grid, dims: FrozenSet[str]) -> Tuple[MPI.Comm, List[Tuple[int, int]]]:
    """Communicator spanning ``dims`` and the coordinates of its members"""
    if dims == frozenset({COL}):
        return grid.row_comm, [(grid.row, c) for c in range(grid.width)]
    if dims == frozenset({ROW}):
        return grid.col_comm, [(r, grid.col) for r in range(grid.height)]
    return grid.vc_comm, [grid.coords(v) for v in range(grid.size)]


def _axis_comm(grid: Grid, dist: Dist) -> Optional[MPI.Comm]:
    # realigning an MD axis may move it to another diagonal path
    if dist in (Dist.MD, Dist.STAR):
        return None
    return grid.dist_comm(dist)


def _send_buffer(parts: List[np.ndarray], dtype) -> np.ndarray:
    if not parts:
        return np.empty(0, dtype=dtype)
    return np.concatenate(parts).astype(dtype, copy=False)


def _alignments(A: DistributedMatrix) -> Tuple[int, int]:
    return A.col_align, A.row_align


def _can_select(B: DistributedMatrix, A: DistributedMatrix) -> bool:
    return all(dists.covers(A.grid, sd, sa, td, ta) for sd, sa, td, ta in
               zip(A.dist, _alignments(A), B.dist, _alignments(B)))


def _can_gather(B: DistributedMatrix, A: DistributedMatrix) -> bool:
    dims = _gathered_dims(A.dist, B.dist)
    for sd, sa, td, ta in zip(A.dist, _alignments(A), B.dist, _alignments(B)):
        coarse = dists.coarsen(sd, dims)
        ca = dists.coarsened_alignment(A.grid, sd, sa, coarse)
        if not dists.covers(A.grid, coarse, ca, td, ta):
            return False
    return True


def _select(B: DistributedMatrix, A: DistributedMatrix) -> None:
    """Local filter: every target entry is already stored by the source"""
    rows, cols = B.global_row_indices(), B.global_col_indices()
    if rows.size == 0 or cols.size == 0:
        return
    ai, _ = _intersect(A.global_row_indices(), rows)
    aj, _ = _intersect(A.global_col_indices(), cols)
    B.local_array[...] = A.local_array[np.ix_(ai, aj)]


def _gather(B: DistributedMatrix, A: DistributedMatrix) -> None:
    """Allgather the source shards over the gathered grid dimensions"""
    comm, members = _group(A.grid, _gathered_dims(A.dist, B.dist))
    owned = [_owned(A, row, col) for row, col in members]
    counts = [len(r) * len(c) for r, c in owned]
    recv, counts = A._allgatherv(comm, A.local_array.astype(B.dtype, copy=False), counts)
    rows, cols = B.global_row_indices(), B.global_col_indices()
    offset = 0
    for (rows_m, cols_m), count in zip(owned, counts):
        block = recv[offset:offset + count].reshape(len(rows_m), len(cols_m))
        offset += count
        bi, mi = _intersect(rows, rows_m)
        bj, mj = _intersect(cols, cols_m)
        B.local_array[np.ix_(bi, bj)] = block[np.ix_(mi, mj)]


def _designated(free: FrozenSet[str], sender: Tuple[int, int],
                dest: Tuple[int, int]) -> bool:
    # replicas of the source only send to processes sharing their free coordinates
    return ((ROW not in free or sender[0] == dest[0]) and
            (COL not in free or sender[1] == dest[1]))


def _alltoall(B: DistributedMatrix, A: DistributedMatrix) -> None:
    """Generic exchange, one ``Alltoallv`` over the whole grid"""
    grid = A.grid
    me = (grid.row, grid.col)
    free = frozenset({ROW, COL}) - _pair_consumed(A.dist)
    a_rows, a_cols = A.global_row_indices(), A.global_col_indices()
    b_rows, b_cols = B.global_row_indices(), B.global_col_indices()
    parts, send_counts, recv_counts, plans = [], [], [], []
    for v in range(grid.size):
        other = grid.coords(v)
        if A.participating and _designated(free, me, other):
            tr, tc = _owned(B, *other)
            ai, _ = _intersect(a_rows, tr)
            aj, _ = _intersect(a_cols, tc)
            parts.append(A.local_array[np.ix_(ai, aj)].ravel())
            send_counts.append(len(ai) * len(aj))
        else:
            send_counts.append(0)
        if _designated(free, other, me):
            sr, sc = _owned(A, *other)
            bi, _ = _intersect(b_rows, sr)
            bj, _ = _intersect(b_cols, sc)
            plans.append((bi, bj))
            recv_counts.append(len(bi) * len(bj))
        else:
            plans.append(None)
            recv_counts.append(0)
    recv, _ = B._alltoallv(grid.vc_comm, _send_buffer(parts, B.dtype),
                           send_counts, recv_counts)
    offset = 0
    for plan, count in zip(plans, recv_counts):
        if plan is None or count == 0:
            continue
        bi, bj = plan
        B.local_array[np.ix_(bi, bj)] = recv[offset:offset + count].reshape(len(bi), len(bj))
        offset += count


def _realign(B: DistributedMatrix, A: DistributedMatrix) -> None:
    """Same distribution: local copy, or a cyclic shift along one axis"""
    misaligned = [k for k in (0, 1) if _alignments(A)[k] != _alignments(B)[k]]
    if not misaligned:
        B.local_array[...] = A.local_array
        return
    k = misaligned[0]
    comm = _axis_comm(A.grid, A.dist[k])
    if len(misaligned) > 1 or comm is None:
        _alltoall(B, A)
        return
    grid = A.grid
    stride = grid.dist_size(A.dist[k])
    me = grid.dist_rank(A.dist[k])
    d = (_alignments(B)[k] - _alignments(A)[k]) % stride
    recv = B._sendrecv(comm, A.local_array.astype(B.dtype, copy=False),
                       dest=(me + d) % stride, source=(me - d) % stride,
                       recv_count=B.local_array.size)
    B.local_array[...] = recv.reshape(B.local_shape)


_PATTERNS: Dict[str, Callable] = {
    "select": _select,
    "gather": _gather,
    "alltoall": _alltoall,
    "realign": _realign,
}

_PRECONDITIONS: Dict[str, Callable] = {
    "select": _can_select,
    "gather": _can_gather,
    "alltoall": lambda B, A: True,
    "realign": lambda B, A: True,
}


def _auto_align(B: DistributedMatrix, A: DistributedMatrix) -> None:
    grid = A.grid
    aligns = []
    for k in (0, 1):
        align = dists.derived_alignment(grid, B.dist[k], A.dist[k], _alignments(A)[k])
        aligns.append(align)
    B._adopt_alignments(*aligns)


def _convert(B: DistributedMatrix, A: DistributedMatrix) -> None:
    if not B.is_view:
        _auto_align(B, A)
        B.resize(A.height, A.width)
    if A.size == 0:
        return
    kind = _ROUTES[(A.dist, B.dist)]
    if not _PRECONDITIONS[kind](B, A):
        logging.debug(f"Misaligned {kind} from [{A.col_dist.value},{A.row_dist.value}] "
                      f"to [{B.col_dist.value},{B.row_dist.value}], using alltoall")
        kind = "alltoall"
    _PATTERNS[kind](B, A)


def _check_operands(B: DistributedMatrix, A: DistributedMatrix) -> None:
    if B.grid != A.grid:
        raise LogicError("Source and target must be distributed over the same grid")
    B._assert_writable()
    if B.is_view and B.global_shape != A.global_shape:
        raise DimensionError(f"Cannot redistribute a {A.height} x {A.width} matrix "
                             f"into a {B.height} x {B.width} view")
    if np.iscomplexobj(A.local_array) and not np.iscomplexobj(B.local_array):
        raise LogicError(f"Cannot redistribute a {A.dtype} matrix into a {B.dtype} matrix")


def redistribute(B: DistributedMatrix, A: DistributedMatrix) -> None:
    """Copy ``A`` into the distribution of ``B``

    Collective over the grid. Pairs without a registered conversion are
    routed through intermediate distributions.

    Parameters
    ----------
    B : :obj:`distmat_mpi.DistributedMatrix`
        Target matrix. Owning targets with free alignments are aligned
        with ``A`` and resized; views must have the shape of ``A``.
    A : :obj:`distmat_mpi.DistributedMatrix`
        Source matrix.

    """
    if B is A:
        return
    _check_operands(B, A)
    path = route(A.dist, B.dist)
    if len(path) > 2:
        logging.debug("Redistribution route " +
                      " -> ".join(f"[{c.value},{r.value}]" for c, r in path))
    src = A
    for hop in path[1:-1]:
        tmp = DistributedMatrix(A.grid, dist=hop, dtype=B.dtype)
        _convert(tmp, src)
        src = tmp
    _convert(B, src)


def sum_scatter(B: DistributedMatrix, A: DistributedMatrix, alpha=None) -> None:
    """Reduce-scatter replicated partial contributions

    Processes storing the same shard of ``A`` (replicas along the grid
    dimensions consumed by ``B`` but not by ``A``) hold partial values
    whose sum is scattered to the owners in ``B``.

    Parameters
    ----------
    B : :obj:`distmat_mpi.DistributedMatrix`
        Target matrix. Every process must store, in ``A``, the entries
        it owns in ``B``. When updating, ``B`` keeps its alignments and
        must already have the shape of ``A``.
    A : :obj:`distmat_mpi.DistributedMatrix`
        Partial contributions.
    alpha : :obj:`float`, optional
        When provided ``B += alpha * sum(A)``, otherwise ``B = sum(A)``.

    """
    _check_operands(B, A)
    if not B.is_view and alpha is None:
        _auto_align(B, A)
        B.resize(A.height, A.width)
    elif B.global_shape != A.global_shape:
        raise DimensionError(f"Cannot sum-scatter a {A.height} x {A.width} matrix "
                             f"into a {B.height} x {B.width} matrix")
    if not _can_select(B, A):
        raise AlignmentError(f"[{A.col_dist.value},{A.row_dist.value}] contributions do not "
                             f"cover the [{B.col_dist.value},{B.row_dist.value}] target")
    if A.size == 0:
        return
    a_rows, a_cols = A.global_row_indices(), A.global_col_indices()
    dims = _pair_consumed(B.dist) - _pair_consumed(A.dist)
    if not dims:
        ai, _ = _intersect(a_rows, B.global_row_indices())
        aj, _ = _intersect(a_cols, B.global_col_indices())
        block = A.local_array[np.ix_(ai, aj)]
    else:
        comm, members = _group(A.grid, dims)
        parts, counts = [], []
        for row, col in members:
            tr, tc = _owned(B, row, col)
            ai, _ = _intersect(a_rows, tr)
            aj, _ = _intersect(a_cols, tc)
            parts.append(A.local_array[np.ix_(ai, aj)].ravel())
            counts.append(len(ai) * len(aj))
        block = B._reduce_scatter(comm, _send_buffer(parts, B.dtype), counts)
        block = block.reshape(B.local_shape)
    if alpha is None:
        B.local_array[...] = block
    else:
        B.local_array[...] += alpha * block
