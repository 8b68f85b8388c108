__all__ = [
    "GridOrder",
    "Grid",
    "find_factor",
]

import math
from enum import Enum
from typing import Optional, Tuple

from mpi4py import MPI

from distmat_mpi.Errors import GridError


class GridOrder(Enum):
    r"""Enum class

    Placement of the ranks of a communicator onto the process lattice.

    - ``COLUMN_MAJOR``: consecutive ranks fill a grid column first
    - ``ROW_MAJOR``: consecutive ranks fill a grid row first
    """
    COLUMN_MAJOR = "ColumnMajor"
    ROW_MAJOR = "RowMajor"


def find_factor(p: int) -> int:
    """Most-square factor of a process count

    Parameters
    ----------
    p : :obj:`int`
        Number of processes.

    Returns
    -------
    height : :obj:`int`
        Largest divisor of ``p`` not exceeding :math:`\\sqrt{p}`.

    """
    if p < 1:
        raise GridError(f"Cannot factor {p} processes")
    for height in range(math.isqrt(p), 0, -1):
        if p % height == 0:
            return height
    return 1


class Grid:
    r"""Two-dimensional process grid

    Arrange the processes of a communicator on a ``height x width``
    lattice and derive the communicators used by the distribution
    schemes of :class:`distmat_mpi.DistributedMatrix`.

    Parameters
    ----------
    comm : :obj:`mpi4py.MPI.Comm`, optional
        Communicator of the processes forming the grid.
        Defaults to ``mpi4py.MPI.COMM_WORLD``.
    height : :obj:`int`, optional
        Number of grid rows. Must divide the size of ``comm``. Defaults
        to the most square factorization (see :func:`find_factor`).
    order : :obj:`GridOrder`, optional
        Placement of ranks on the lattice. Defaults to
        ``GridOrder.COLUMN_MAJOR``.

    Notes
    -----
    Every process derives the same shape independently, no broadcast of
    the shape takes place. Each process has

    - a VC rank ``row + col * height`` (column-major linearization),
    - a VR rank ``col + row * width`` (row-major linearization),
    - a diagonal path ``(row - col) mod gcd(height, width)`` and a rank
      ``k`` along it, where path ``j`` visits the processes
      ``((j + k) mod height, k mod width)`` for ``k = 0, ..., lcm - 1``.

    """

    def __init__(self, comm: MPI.Comm = MPI.COMM_WORLD,
                 height: Optional[int] = None,
                 order: GridOrder = GridOrder.COLUMN_MAJOR):
        size = comm.Get_size()
        if height is None:
            height = find_factor(size)
        if height < 1 or size % height != 0:
            raise GridError(f"Grid height {height} does not divide "
                            f"the number of processes {size}")
        self._comm = comm
        self._order = GridOrder(order)
        self._height = height
        self._width = size // height
        self._gcd = math.gcd(self._height, self._width)
        self._lcm = size // self._gcd

        rank = comm.Get_rank()
        if self._order is GridOrder.COLUMN_MAJOR:
            self._row, self._col = rank % self._height, rank // self._height
        else:
            self._row, self._col = rank // self._width, rank % self._width

        self._col_comm = comm.Split(color=self._col, key=self._row)
        self._row_comm = comm.Split(color=self._row, key=self._col)
        self._vc_comm = comm.Split(color=0, key=self.vc_rank)
        self._vr_comm = comm.Split(color=0, key=self.vr_rank)
        self._md_comm = comm.Split(color=self.diag_path, key=self.diag_path_rank)
        self._md_perp_comm = comm.Split(color=self.diag_path_rank, key=self.diag_path)

    @property
    def comm(self):
        """Communicator of the whole grid

        Returns
        -------
        comm : :obj:`mpi4py.MPI.Comm`
        """
        return self._comm

    @property
    def col_comm(self):
        """Communicator of the processes in this grid column (MC)

        Returns
        -------
        col_comm : :obj:`mpi4py.MPI.Comm`
        """
        return self._col_comm

    @property
    def row_comm(self):
        """Communicator of the processes in this grid row (MR)

        Returns
        -------
        row_comm : :obj:`mpi4py.MPI.Comm`
        """
        return self._row_comm

    @property
    def vc_comm(self):
        """Communicator of all processes ordered by VC rank"""
        return self._vc_comm

    @property
    def vr_comm(self):
        """Communicator of all processes ordered by VR rank"""
        return self._vr_comm

    @property
    def md_comm(self):
        """Communicator of the processes on this diagonal path (MD)"""
        return self._md_comm

    @property
    def md_perp_comm(self):
        """Communicator of the processes with this diagonal path rank"""
        return self._md_perp_comm

    @property
    def order(self):
        return self._order

    @property
    def rank(self):
        return self._comm.Get_rank()

    @property
    def size(self):
        return self._height * self._width

    @property
    def height(self):
        return self._height

    @property
    def width(self):
        return self._width

    @property
    def shape(self) -> Tuple[int, int]:
        return self._height, self._width

    @property
    def row(self):
        return self._row

    @property
    def col(self):
        return self._col

    @property
    def gcd(self):
        return self._gcd

    @property
    def lcm(self):
        return self._lcm

    @property
    def vc_rank(self):
        return self._row + self._col * self._height

    @property
    def vr_rank(self):
        return self._col + self._row * self._width

    @property
    def diag_path(self):
        return self.diag_path_of(self.vc_rank)

    @property
    def diag_path_rank(self):
        return self.diag_path_rank_of(self.vc_rank)

    def coords(self, vc_rank: int) -> Tuple[int, int]:
        """Grid coordinates of a VC rank

        Parameters
        ----------
        vc_rank : :obj:`int`
            VC rank of a process.

        Returns
        -------
        coords : :obj:`tuple`
            ``(row, col)`` of the process.

        """
        return vc_rank % self._height, vc_rank // self._height

    def vc_from_coords(self, row: int, col: int) -> int:
        return row + col * self._height

    def vr_from_coords(self, row: int, col: int) -> int:
        return col + row * self._width

    def diag_path_of(self, vc_rank: int) -> int:
        row, col = self.coords(vc_rank)
        return (row - col) % self._gcd

    def diag_path_rank_of(self, vc_rank: int) -> int:
        row, col = self.coords(vc_rank)
        path = (row - col) % self._gcd
        # k = col (mod width) and k = row - path (mod height)
        for k in range(col, self._lcm, self._width):
            if (path + k) % self._height == row:
                return k
        raise GridError(f"Process ({row}, {col}) is on no diagonal path")

    def dist_comm(self, dist) -> MPI.Comm:
        """Communicator spanning the rank space of an axis distribution

        Parameters
        ----------
        dist : :obj:`distmat_mpi.Dist`
            Axis distribution.

        Returns
        -------
        comm : :obj:`mpi4py.MPI.Comm`
            ``col_comm`` for ``MC``, ``row_comm`` for ``MR``, ``vc_comm``
            and ``vr_comm`` for ``VC`` and ``VR``, ``md_comm`` for ``MD``
            and ``mpi4py.MPI.COMM_SELF`` for ``STAR``.

        """
        from distmat_mpi.Distribution import Dist
        return {Dist.MC: self._col_comm, Dist.MR: self._row_comm,
                Dist.VC: self._vc_comm, Dist.VR: self._vr_comm,
                Dist.MD: self._md_comm, Dist.STAR: MPI.COMM_SELF}[Dist(dist)]

    def dist_rank(self, dist) -> int:
        """Rank of this process within the rank space of ``dist``"""
        from distmat_mpi.Distribution import Dist
        return {Dist.MC: self._row, Dist.MR: self._col,
                Dist.VC: self.vc_rank, Dist.VR: self.vr_rank,
                Dist.MD: self.diag_path_rank, Dist.STAR: 0}[Dist(dist)]

    def dist_size(self, dist) -> int:
        """Number of processes sharing one copy of an axis distributed as ``dist``"""
        from distmat_mpi.Distribution import Dist
        return {Dist.MC: self._height, Dist.MR: self._width,
                Dist.VC: self.size, Dist.VR: self.size,
                Dist.MD: self._lcm, Dist.STAR: 1}[Dist(dist)]

    def diag_vc_rank(self, path: int, k: int) -> int:
        """VC rank of the ``k``-th process along diagonal path ``path``"""
        k = k % self._lcm
        return self.vc_from_coords((path + k) % self._height, k % self._width)

    def __eq__(self, other):
        if self is other:
            return True
        if not isinstance(other, Grid):
            return False
        return (self.shape == other.shape and self.order is other.order and
                MPI.Comm.Compare(self.comm, other.comm) in (MPI.IDENT, MPI.CONGRUENT))

    def __ne__(self, other):
        return not self.__eq__(other)

    __hash__ = object.__hash__

    def __repr__(self):
        return f"<Grid with shape={self.shape}, order={self.order.value}, " \
               f"rank={self.rank} at (row={self.row}, col={self.col})> "
