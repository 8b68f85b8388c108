__all__ = [
    "Dist",
    "MC_MR", "MC_STAR", "STAR_MR",
    "MR_MC", "MR_STAR", "STAR_MC",
    "VC_STAR", "STAR_VC", "VR_STAR", "STAR_VR",
    "STAR_STAR", "MD_STAR", "STAR_MD",
    "DISTRIBUTIONS",
    "local_length",
    "consumed_dims",
]

from enum import Enum
from typing import FrozenSet, Optional, Tuple

import numpy as np

from distmat_mpi.Grid import Grid


class Dist(Enum):
    r"""Enum class

    Element-cyclic distribution of one axis of a matrix over the grid.

    - ``MC``: cyclic over the rows of the grid
    - ``MR``: cyclic over the columns of the grid
    - ``VC``: cyclic over all processes in column-major (VC) order
    - ``VR``: cyclic over all processes in row-major (VR) order
    - ``MD``: cyclic over the processes of one diagonal path
    - ``STAR``: replicated on every process
    """
    MC = "MC"
    MR = "MR"
    VC = "VC"
    VR = "VR"
    MD = "MD"
    STAR = "STAR"


MC_MR = (Dist.MC, Dist.MR)
MC_STAR = (Dist.MC, Dist.STAR)
STAR_MR = (Dist.STAR, Dist.MR)
MR_MC = (Dist.MR, Dist.MC)
MR_STAR = (Dist.MR, Dist.STAR)
STAR_MC = (Dist.STAR, Dist.MC)
VC_STAR = (Dist.VC, Dist.STAR)
STAR_VC = (Dist.STAR, Dist.VC)
VR_STAR = (Dist.VR, Dist.STAR)
STAR_VR = (Dist.STAR, Dist.VR)
STAR_STAR = (Dist.STAR, Dist.STAR)
MD_STAR = (Dist.MD, Dist.STAR)
STAR_MD = (Dist.STAR, Dist.MD)

# legal (column distribution, row distribution) pairs
DISTRIBUTIONS = (
    MC_MR, MC_STAR, STAR_MR,
    MR_MC, MR_STAR, STAR_MC,
    VC_STAR, STAR_VC, VR_STAR, STAR_VR,
    STAR_STAR, MD_STAR, STAR_MD,
)

ROW = "row"
COL = "col"


def local_length(n: int, shift: int, stride: int) -> int:
    """Number of indices ``shift, shift + stride, ...`` below ``n``"""
    return (n - shift - 1) // stride + 1 if n > shift else 0


def consumed_dims(dist: Dist) -> FrozenSet[str]:
    """Grid dimensions an axis distribution is cyclic over"""
    if dist is Dist.MC:
        return frozenset({ROW})
    if dist is Dist.MR:
        return frozenset({COL})
    if dist is Dist.STAR:
        return frozenset()
    return frozenset({ROW, COL})


def stride(grid: Grid, dist: Dist) -> int:
    if dist is Dist.MC:
        return grid.height
    if dist is Dist.MR:
        return grid.width
    if dist in (Dist.VC, Dist.VR):
        return grid.size
    if dist is Dist.MD:
        return grid.lcm
    return 1


def dist_rank(grid: Grid, dist: Dist, row: int, col: int) -> int:
    """Rank of process ``(row, col)`` within the rank space of ``dist``"""
    if dist is Dist.MC:
        return row
    if dist is Dist.MR:
        return col
    if dist is Dist.VC:
        return grid.vc_from_coords(row, col)
    if dist is Dist.VR:
        return grid.vr_from_coords(row, col)
    if dist is Dist.MD:
        return grid.diag_path_rank_of(grid.vc_from_coords(row, col))
    return 0


def align_rank(grid: Grid, dist: Dist, align: int) -> int:
    # MD alignments are stored as the VC rank of the root process
    if dist is Dist.MD:
        return grid.diag_path_rank_of(align)
    return align


def participates(grid: Grid, dist: Dist, align: int, row: int, col: int) -> bool:
    if dist is not Dist.MD:
        return True
    return grid.diag_path_of(grid.vc_from_coords(row, col)) == grid.diag_path_of(align)


def shift(grid: Grid, dist: Dist, align: int, row: int, col: int) -> Optional[int]:
    """Offset of the first global index owned by process ``(row, col)``

    Returns ``None`` when the process holds no part of the axis (an
    ``MD`` axis off the diagonal path of its root).
    """
    if not participates(grid, dist, align, row, col):
        return None
    k = stride(grid, dist)
    return (dist_rank(grid, dist, row, col) - align_rank(grid, dist, align)) % k


def owned_indices(grid: Grid, dist: Dist, align: int, n: int,
                  row: int, col: int) -> np.ndarray:
    """Sorted global indices of an axis of length ``n`` owned by ``(row, col)``"""
    s = shift(grid, dist, align, row, col)
    if s is None:
        return np.empty(0, dtype=np.int64)
    return np.arange(s, n, stride(grid, dist), dtype=np.int64)


def owner(grid: Grid, dist: Dist, align: int, i: int) -> int:
    """Rank, within the rank space of ``dist``, owning global index ``i``"""
    return (align_rank(grid, dist, align) + i) % stride(grid, dist)


def owner_coords(grid: Grid, dist: Dist, align: int,
                 i: int) -> Tuple[Optional[int], Optional[int]]:
    """Grid coordinates fixed by the owner of global index ``i``

    Coordinates that the distribution does not constrain are ``None``.
    """
    r = owner(grid, dist, align, i)
    if dist is Dist.MC:
        return r, None
    if dist is Dist.MR:
        return None, r
    if dist is Dist.VC:
        return grid.coords(r)
    if dist is Dist.VR:
        return r // grid.width, r % grid.width
    if dist is Dist.MD:
        return grid.coords(grid.diag_vc_rank(grid.diag_path_of(align), r))
    return None, None


def offset_alignment(grid: Grid, dist: Dist, align: int, offset: int) -> int:
    """Alignment of the sub-range of an axis starting at ``offset``"""
    if dist is Dist.STAR:
        return 0
    if dist is Dist.MD:
        return grid.diag_vc_rank(grid.diag_path_of(align),
                                 grid.diag_path_rank_of(align) + offset)
    return (align + offset) % stride(grid, dist)


def derived_alignment(grid: Grid, dist: Dist, other_dist: Dist,
                      other_align: int) -> Optional[int]:
    """Alignment of ``dist`` matching an axis with ``other_dist``

    The returned alignment makes every process own, along ``dist``, a
    subset (or superset) of the indices it owns along ``other_dist``.
    ``None`` is returned when the two distributions cannot be matched.
    """
    if dist is Dist.STAR or other_dist is Dist.STAR:
        return None
    if dist is other_dist:
        return other_align
    if (dist, other_dist) in ((Dist.VC, Dist.MC), (Dist.VR, Dist.MR)):
        return other_align
    if (dist, other_dist) == (Dist.MC, Dist.VC):
        return other_align % grid.height
    if (dist, other_dist) == (Dist.MR, Dist.VR):
        return other_align % grid.width
    if (dist, other_dist) == (Dist.MD, Dist.MC):
        return grid.vc_from_coords(other_align, 0)
    if (dist, other_dist) == (Dist.MD, Dist.MR):
        return grid.vc_from_coords(0, other_align)
    if (dist, other_dist) == (Dist.MC, Dist.MD):
        return grid.coords(other_align)[0]
    if (dist, other_dist) == (Dist.MR, Dist.MD):
        return grid.coords(other_align)[1]
    return None


def covers(grid: Grid, src_dist: Dist, src_align: int,
           tgt_dist: Dist, tgt_align: int) -> bool:
    """Whether every process owns its target indices along the source axis"""
    if src_dist is Dist.STAR:
        return True
    if src_dist is tgt_dist:
        return src_align == tgt_align
    if (src_dist, tgt_dist) == (Dist.MC, Dist.VC):
        return tgt_align % grid.height == src_align
    if (src_dist, tgt_dist) == (Dist.MR, Dist.VR):
        return tgt_align % grid.width == src_align
    if (src_dist, tgt_dist) == (Dist.MC, Dist.MD):
        return grid.coords(tgt_align)[0] == src_align
    if (src_dist, tgt_dist) == (Dist.MR, Dist.MD):
        return grid.coords(tgt_align)[1] == src_align
    return False


def structurally_covers(src_dist: Dist, tgt_dist: Dist) -> bool:
    """Whether some alignment lets ``src_dist`` cover ``tgt_dist``"""
    return (src_dist is Dist.STAR or src_dist is tgt_dist or
            (src_dist, tgt_dist) in ((Dist.MC, Dist.VC), (Dist.MR, Dist.VR),
                                     (Dist.MC, Dist.MD), (Dist.MR, Dist.MD)))


def coarsen(dist: Dist, dims: FrozenSet[str]) -> Optional[Dist]:
    """Distribution obtained by gathering ``dist`` over grid dimensions ``dims``

    ``None`` when the union of the gathered shards is not element-cyclic.
    """
    consumed = consumed_dims(dist)
    if not consumed & dims:
        return dist
    if consumed <= dims:
        return Dist.STAR
    if dist is Dist.VC and dims == frozenset({COL}):
        return Dist.MC
    if dist is Dist.VR and dims == frozenset({ROW}):
        return Dist.MR
    return None


def coarsened_alignment(grid: Grid, dist: Dist, align: int, coarse: Dist) -> int:
    if coarse is Dist.STAR:
        return 0
    if (dist, coarse) == (Dist.VC, Dist.MC):
        return align % grid.height
    if (dist, coarse) == (Dist.VR, Dist.MR):
        return align % grid.width
    return align
