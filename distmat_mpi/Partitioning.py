__all__ = [
    "PanelPartition",
    "VerticalPanels",
    "HorizontalPanels",
    "DiagonalBlocks",
    "sweep_down",
    "sweep_up",
    "sweep_right",
    "sweep_left",
    "sweep_down_diagonal",
    "sweep_up_diagonal",
]

from collections import namedtuple
from typing import Iterator, Optional, Tuple

from distmat_mpi.DistributedMatrix import DistributedMatrix
from distmat_mpi.Errors import DimensionError
from distmat_mpi.utils.config import blocksize_or_default

VerticalPanels = namedtuple("VerticalPanels", ["top", "panel", "bottom"])
HorizontalPanels = namedtuple("HorizontalPanels", ["left", "panel", "right"])
DiagonalBlocks = namedtuple("DiagonalBlocks", ["A00", "A01", "A02",
                                               "A10", "A11", "A12",
                                               "A20", "A21", "A22"])


class PanelPartition:
    r"""Advancing panel decomposition of an index range

    Split ``[0, extent)`` into three contiguous ranges, the processed part,
    the active panel, and the remaining part, around a boundary that
    moves by one panel per iteration.

    Parameters
    ----------
    extent : :obj:`int`
        Length of the partitioned range.
    blocksize : :obj:`int`, optional
        Panel size. The last panel is ``min(blocksize, remaining)`` and is
        never padded. Defaults to the configured block size.
    reverse : :obj:`bool`, optional
        Advance from the end of the range towards its start.
        Defaults to ``False``.

    Notes
    -----
    Ranges are always returned in index order, ``(top, panel, bottom)``;
    in reverse sweeps ``bottom`` is the processed part.

    .. code-block:: python

        partition = PanelPartition(n, blocksize)
        while not partition.done:
            r0, r1, r2 = partition.repartition()
            ...
            partition.slide()

    """

    def __init__(self, extent: int, blocksize: Optional[int] = None,
                 reverse: bool = False):
        if extent < 0:
            raise DimensionError(f"Cannot partition an extent of {extent}")
        self.extent = extent
        self.blocksize = blocksize_or_default(blocksize)
        self.reverse = reverse
        self.boundary = extent if reverse else 0
        self._panel = 0

    @property
    def done(self) -> bool:
        return self.boundary <= 0 if self.reverse else self.boundary >= self.extent

    def repartition(self) -> Tuple[range, range, range]:
        """Carve the next panel out of the remaining range"""
        if self.reverse:
            self._panel = min(self.blocksize, self.boundary)
            start = self.boundary - self._panel
        else:
            self._panel = min(self.blocksize, self.extent - self.boundary)
            start = self.boundary
        stop = start + self._panel
        return range(0, start), range(start, stop), range(stop, self.extent)

    def slide(self) -> None:
        """Move the boundary past the current panel"""
        self.boundary += -self._panel if self.reverse else self._panel
        self._panel = 0

    def __iter__(self) -> Iterator[Tuple[range, range, range]]:
        while not self.done:
            ranges = self.repartition()
            yield ranges
            self.slide()


def sweep_down(A: DistributedMatrix,
               blocksize: Optional[int] = None) -> Iterator[VerticalPanels]:
    """Row panels of ``A``, top to bottom"""
    for r0, r1, r2 in PanelPartition(A.height, blocksize):
        yield VerticalPanels(A[r0, :], A[r1, :], A[r2, :])


def sweep_up(A: DistributedMatrix,
             blocksize: Optional[int] = None) -> Iterator[VerticalPanels]:
    """Row panels of ``A``, bottom to top"""
    for r0, r1, r2 in PanelPartition(A.height, blocksize, reverse=True):
        yield VerticalPanels(A[r0, :], A[r1, :], A[r2, :])


def sweep_right(A: DistributedMatrix,
                blocksize: Optional[int] = None) -> Iterator[HorizontalPanels]:
    """Column panels of ``A``, left to right"""
    for c0, c1, c2 in PanelPartition(A.width, blocksize):
        yield HorizontalPanels(A[:, c0], A[:, c1], A[:, c2])


def sweep_left(A: DistributedMatrix,
               blocksize: Optional[int] = None) -> Iterator[HorizontalPanels]:
    """Column panels of ``A``, right to left"""
    for c0, c1, c2 in PanelPartition(A.width, blocksize, reverse=True):
        yield HorizontalPanels(A[:, c0], A[:, c1], A[:, c2])


def _diagonal_blocks(A: DistributedMatrix, ranges) -> DiagonalBlocks:
    r0, r1, r2 = ranges
    return DiagonalBlocks(A[r0, r0], A[r0, r1], A[r0, r2],
                          A[r1, r0], A[r1, r1], A[r1, r2],
                          A[r2, r0], A[r2, r1], A[r2, r2])


def sweep_down_diagonal(A: DistributedMatrix,
                        blocksize: Optional[int] = None) -> Iterator[DiagonalBlocks]:
    """3x3 partitions of a square ``A`` around diagonal blocks, top-left first"""
    if A.height != A.width:
        raise DimensionError(f"Diagonal sweeps need a square matrix, got {A.height} x {A.width}")
    for ranges in PanelPartition(A.height, blocksize):
        yield _diagonal_blocks(A, ranges)


def sweep_up_diagonal(A: DistributedMatrix,
                      blocksize: Optional[int] = None) -> Iterator[DiagonalBlocks]:
    """3x3 partitions of a square ``A`` around diagonal blocks, bottom-right first"""
    if A.height != A.width:
        raise DimensionError(f"Diagonal sweeps need a square matrix, got {A.height} x {A.width}")
    for ranges in PanelPartition(A.height, blocksize, reverse=True):
        yield _diagonal_blocks(A, ranges)
