__all__ = [
    "DistributedMatrix",
    "transpose",
]

from typing import Optional, Tuple, Union

import numpy as np
from pylops.utils import DTypeLike, NDArray

from distmat_mpi import Distribution as dists
from distmat_mpi.Distributed import DistributedMixIn
from distmat_mpi.Distribution import Dist, DISTRIBUTIONS, MC_MR, MD_STAR, STAR_MD, STAR_STAR
from distmat_mpi.Errors import AlignmentError, DimensionError, LogicError
from distmat_mpi.Grid import Grid
from distmat_mpi.Options import UpperOrLower
from distmat_mpi.utils import config

IndexLike = Union[slice, range]


def _normalize_range(index: IndexLike, n: int) -> Tuple[int, int]:
    """Start and length of a slice or range over an axis of length ``n``"""
    if isinstance(index, range):
        index = slice(index.start, index.stop, index.step)
    if not isinstance(index, slice):
        raise LogicError(f"Views are taken with slices or ranges, got {type(index).__name__}")
    start, stop, step = index.indices(n)
    if step != 1:
        raise LogicError(f"Views must be contiguous, got step {step}")
    return start, max(stop - start, 0)


class DistributedMatrix(DistributedMixIn):
    r"""Distributed dense matrix

    Two-dimensional matrix sharded element-cyclically over a
    :class:`distmat_mpi.Grid`. The distribution is a pair of
    :class:`distmat_mpi.Dist` values, one for the columns (how the rows of
    the matrix are spread) and one for the rows (how the columns are
    spread), drawn from :obj:`distmat_mpi.DISTRIBUTIONS`.

    Parameters
    ----------
    grid : :obj:`distmat_mpi.Grid`
        Process grid.
    height : :obj:`int`, optional
        Global number of rows. Defaults to ``0``.
    width : :obj:`int`, optional
        Global number of columns. Defaults to ``0``.
    dist : :obj:`tuple`, optional
        Distribution pair. Defaults to ``(Dist.MC, Dist.MR)``.
    dtype : :obj:`str`, optional
        Type of elements. Defaults to ``numpy.float64``.
    col_align : :obj:`int`, optional
        Rank (in the rank space of the column distribution) owning global
        row ``0``; for an ``MD`` axis, the VC rank of that process. When
        provided the alignment is constrained.
    row_align : :obj:`int`, optional
        Same as ``col_align`` for the row distribution and global column ``0``.

    Notes
    -----
    Process ``(r, c)`` owns global row ``i`` if
    :math:`(a_c + i) \bmod s_c` equals its rank in the column distribution
    (:math:`a_c` the alignment, :math:`s_c` the number of shards), and
    stores it at local row :math:`(i - \sigma_c) / s_c` where
    :math:`\sigma_c = (\mathrm{rank} - a_c) \bmod s_c` is the shift.
    Columns follow the same rule with the row distribution. Local
    storage is a C-ordered :obj:`numpy.ndarray`.

    """

    def __init__(self, grid: Grid,
                 height: int = 0, width: int = 0,
                 dist: Tuple[Dist, Dist] = MC_MR,
                 dtype: Optional[DTypeLike] = np.float64,
                 col_align: Optional[int] = None,
                 row_align: Optional[int] = None):
        dist = (Dist(dist[0]), Dist(dist[1]))
        if dist not in DISTRIBUTIONS:
            raise LogicError(f"[{dist[0].value},{dist[1].value}] is not a valid distribution")
        if height < 0 or width < 0:
            raise DimensionError(f"Cannot create a {height} x {width} matrix")
        self._grid = grid
        self._dist = dist
        self.dtype = np.dtype(dtype)
        self._height = int(height)
        self._width = int(width)
        self._col_constrained = col_align is not None
        self._row_constrained = row_align is not None
        self._col_align = self._check_alignment(dist[0], 0 if col_align is None else col_align)
        self._row_align = self._check_alignment(dist[1], 0 if row_align is None else row_align)
        self._parent = None
        self._offsets = (0, 0)
        self._locked = False
        self._local_array = np.zeros(self.local_shape, dtype=self.dtype)

    def _check_alignment(self, dist: Dist, align: int) -> int:
        if dist is Dist.STAR:
            return 0
        bound = self._grid.size if dist is Dist.MD else dists.stride(self._grid, dist)
        if not 0 <= align < bound:
            raise AlignmentError(f"Alignment {align} out of range for a {dist.value} axis "
                                 f"of a {self._grid.height} x {self._grid.width} grid")
        return int(align)

    @property
    def grid(self):
        """Process grid

        Returns
        -------
        grid : :obj:`distmat_mpi.Grid`
        """
        return self._grid

    @property
    def dist(self):
        """Distribution pair

        Returns
        -------
        dist : :obj:`tuple`
            ``(column distribution, row distribution)``
        """
        return self._dist

    @property
    def col_dist(self):
        return self._dist[0]

    @property
    def row_dist(self):
        return self._dist[1]

    @property
    def height(self):
        return self._height

    @property
    def width(self):
        return self._width

    @property
    def global_shape(self):
        """Global Shape of the matrix

        Returns
        -------
        global_shape : :obj:`tuple`
        """
        return self._height, self._width

    shape = global_shape

    @property
    def col_align(self):
        return self._col_align

    @property
    def row_align(self):
        return self._row_align

    @property
    def col_constrained(self):
        return self._col_constrained

    @property
    def row_constrained(self):
        return self._row_constrained

    @property
    def col_stride(self):
        return dists.stride(self._grid, self._dist[0])

    @property
    def row_stride(self):
        return dists.stride(self._grid, self._dist[1])

    @property
    def participating(self):
        """Whether this process holds a part of the matrix

        Returns
        -------
        participating : :obj:`bool`
            ``False`` only for ``MD`` distributions when the process is not
            on the diagonal path of the root.
        """
        return (dists.participates(self._grid, self._dist[0], self._col_align,
                                   self._grid.row, self._grid.col) and
                dists.participates(self._grid, self._dist[1], self._row_align,
                                   self._grid.row, self._grid.col))

    @property
    def col_shift(self):
        """Global row of the first local row (``None`` when not participating)"""
        if not self.participating:
            return None
        return dists.shift(self._grid, self._dist[0], self._col_align,
                           self._grid.row, self._grid.col)

    @property
    def row_shift(self):
        """Global column of the first local column (``None`` when not participating)"""
        if not self.participating:
            return None
        return dists.shift(self._grid, self._dist[1], self._row_align,
                           self._grid.row, self._grid.col)

    @property
    def local_shape(self):
        """Local Shape of the matrix

        Returns
        -------
        local_shape : :obj:`tuple`
        """
        if not self.participating:
            return 0, 0
        return (dists.local_length(self._height, self.col_shift, self.col_stride),
                dists.local_length(self._width, self.row_shift, self.row_stride))

    @property
    def local_array(self):
        """Local storage

        Returns
        -------
        local_array : :obj:`numpy.ndarray`
            Read-only for locked views.
        """
        return self._local_array

    @property
    def is_view(self):
        return self._parent is not None

    @property
    def is_locked(self):
        return self._locked

    @property
    def parent(self):
        return self._parent

    @property
    def offsets(self):
        """Offsets ``(i, j)`` of a view within its parent"""
        return self._offsets

    @property
    def size(self):
        return self._height * self._width

    def _assert_writable(self):
        if self._locked:
            raise LogicError("Cannot modify a locked view")

    def global_row_indices(self) -> np.ndarray:
        """Global rows of the local rows

        Returns
        -------
        rows : :obj:`numpy.ndarray`
        """
        return dists.owned_indices(self._grid, self._dist[0], self._col_align,
                                   self._height, self._grid.row, self._grid.col) \
            if self.participating else np.empty(0, dtype=np.int64)

    def global_col_indices(self) -> np.ndarray:
        """Global columns of the local columns

        Returns
        -------
        cols : :obj:`numpy.ndarray`
        """
        return dists.owned_indices(self._grid, self._dist[1], self._row_align,
                                   self._width, self._grid.row, self._grid.col) \
            if self.participating else np.empty(0, dtype=np.int64)

    def global_row(self, local_row: int) -> int:
        return self.col_shift + local_row * self.col_stride

    def global_col(self, local_col: int) -> int:
        return self.row_shift + local_col * self.row_stride

    def local_row(self, i: int) -> int:
        """Local row of global row ``i`` (which must be owned)"""
        return (i - self.col_shift) // self.col_stride

    def local_col(self, j: int) -> int:
        """Local column of global column ``j`` (which must be owned)"""
        return (j - self.row_shift) // self.row_stride

    def owner(self, i: int, j: int) -> int:
        """VC rank of the primary owner of entry ``(i, j)``

        Grid coordinates left free by the distribution (replicated axes)
        are taken as ``0``.
        """
        row0, col0 = dists.owner_coords(self._grid, self._dist[0], self._col_align, i)
        row1, col1 = dists.owner_coords(self._grid, self._dist[1], self._row_align, j)
        row = row0 if row0 is not None else (row1 if row1 is not None else 0)
        col = col0 if col0 is not None else (col1 if col1 is not None else 0)
        return self._grid.vc_from_coords(row, col)

    def is_local(self, i: int, j: int) -> bool:
        """Whether this process stores entry ``(i, j)``"""
        if not self.participating:
            return False
        return ((i - self.col_shift) % self.col_stride == 0 and
                (j - self.row_shift) % self.row_stride == 0)

    def _check_index(self, i: int, j: int):
        if not (0 <= i < self._height and 0 <= j < self._width):
            raise DimensionError(f"Entry ({i}, {j}) out of bounds of a "
                                 f"{self._height} x {self._width} matrix")

    def resize(self, height: int, width: int) -> None:
        """Reallocate local storage for a new global shape

        The scheme and alignments are kept, local contents are not.

        Parameters
        ----------
        height : :obj:`int`
            Global number of rows.
        width : :obj:`int`
            Global number of columns.

        """
        if self.is_view:
            if (height, width) != self.global_shape:
                raise LogicError(f"Cannot resize a {self._height} x {self._width} "
                                 f"view to {height} x {width}")
            return
        if height < 0 or width < 0:
            raise DimensionError(f"Cannot resize to {height} x {width}")
        self._height, self._width = int(height), int(width)
        self._local_array = np.zeros(self.local_shape, dtype=self.dtype)

    def align(self, col_align: Optional[int] = None,
              row_align: Optional[int] = None) -> None:
        """Constrain the alignment

        Alignment must be set before the matrix is filled: the local
        storage is reallocated and its contents are lost.

        Parameters
        ----------
        col_align : :obj:`int`, optional
            Alignment of the column distribution.
        row_align : :obj:`int`, optional
            Alignment of the row distribution.

        """
        if self.is_view:
            if ((col_align is not None and col_align != self._col_align) or
                    (row_align is not None and row_align != self._row_align)):
                raise AlignmentError("Cannot realign a view")
            return
        previous = (self._col_align, self._row_align)
        if col_align is not None:
            col_align = self._check_alignment(self._dist[0], col_align)
            if self._col_constrained and col_align != self._col_align:
                raise AlignmentError(f"Column alignment is constrained to {self._col_align}, "
                                     f"cannot realign to {col_align}")
            self._col_align, self._col_constrained = col_align, True
        if row_align is not None:
            row_align = self._check_alignment(self._dist[1], row_align)
            if self._row_constrained and row_align != self._row_align:
                raise AlignmentError(f"Row alignment is constrained to {self._row_align}, "
                                     f"cannot realign to {row_align}")
            self._row_align, self._row_constrained = row_align, True
        if (self._col_align, self._row_align) != previous:
            self._local_array = np.zeros(self.local_shape, dtype=self.dtype)

    def _matching_alignment(self, dist: Dist, other: "DistributedMatrix",
                            prefer: int) -> Optional[int]:
        candidates = [(other.dist[prefer], (other.col_align, other.row_align)[prefer]),
                      (other.dist[1 - prefer], (other.col_align, other.row_align)[1 - prefer])]
        for other_dist, other_align in candidates:
            align = dists.derived_alignment(self._grid, dist, other_dist, other_align)
            if align is not None:
                return align
        return None

    def align_cols_with(self, other: "DistributedMatrix") -> None:
        """Align the column distribution with a matching axis of ``other``"""
        align = self._matching_alignment(self._dist[0], other, 0)
        if align is not None:
            self.align(col_align=align)

    def align_rows_with(self, other: "DistributedMatrix") -> None:
        """Align the row distribution with a matching axis of ``other``"""
        align = self._matching_alignment(self._dist[1], other, 1)
        if align is not None:
            self.align(row_align=align)

    def align_with(self, other: "DistributedMatrix") -> None:
        """Align both distributions with matching axes of ``other``

        Parameters
        ----------
        other : :obj:`distmat_mpi.DistributedMatrix`
            Matrix whose alignment is adopted. Axes with no matching
            distribution in ``other`` are left untouched.

        """
        if self._grid != other.grid:
            raise LogicError("Matrices must be distributed over the same grid")
        col_align = self._matching_alignment(self._dist[0], other, 0)
        row_align = self._matching_alignment(self._dist[1], other, 1)
        self.align(col_align=col_align, row_align=row_align)

    def align_with_diagonal(self, A: "DistributedMatrix", offset: int = 0) -> None:
        """Align an ``[MD,*]`` or ``[*,MD]`` vector with a diagonal of ``A``

        Parameters
        ----------
        A : :obj:`distmat_mpi.DistributedMatrix`
            ``[MC,MR]`` matrix.
        offset : :obj:`int`, optional
            Diagonal offset (positive above the main diagonal).

        """
        if A.dist != MC_MR:
            raise LogicError(f"Can only align with the diagonal of an [MC,MR] matrix, "
                             f"got [{A.col_dist.value},{A.row_dist.value}]")
        if self._dist not in (MD_STAR, STAR_MD):
            raise LogicError("Only [MD,*] and [*,MD] matrices align with a diagonal")
        grid = self._grid
        if offset >= 0:
            root = grid.vc_from_coords(A.col_align % grid.height,
                                       (A.row_align + offset) % grid.width)
        else:
            root = grid.vc_from_coords((A.col_align - offset) % grid.height,
                                       A.row_align % grid.width)
        if self._dist == MD_STAR:
            self.align(col_align=root)
        else:
            self.align(row_align=root)

    def _adopt_alignments(self, col_align: Optional[int], row_align: Optional[int]) -> None:
        # unconstrained axes only, storage is reallocated by the caller
        if col_align is not None and not self._col_constrained:
            self._col_align = self._check_alignment(self._dist[0], col_align)
        if row_align is not None and not self._row_constrained:
            self._row_align = self._check_alignment(self._dist[1], row_align)

    def free_alignments(self) -> None:
        """Drop the alignment constraints of an owning matrix"""
        if self.is_view:
            raise AlignmentError("Cannot free the alignments of a view")
        self._col_constrained = False
        self._row_constrained = False

    def _view(self, i: int, j: int, height: int, width: int,
              locked: bool) -> "DistributedMatrix":
        if (i < 0 or j < 0 or height < 0 or width < 0 or
                i + height > self._height or j + width > self._width):
            raise DimensionError(f"View [{i}:{i + height}, {j}:{j + width}] out of bounds "
                                 f"of a {self._height} x {self._width} matrix")
        view = DistributedMatrix.__new__(DistributedMatrix)
        view._grid = self._grid
        view._dist = self._dist
        view.dtype = self.dtype
        view._height, view._width = height, width
        view._col_align = dists.offset_alignment(self._grid, self._dist[0], self._col_align, i)
        view._row_align = dists.offset_alignment(self._grid, self._dist[1], self._row_align, j)
        view._col_constrained = view._row_constrained = True
        view._parent = self
        view._offsets = (i, j)
        view._locked = locked or self._locked
        if self.participating:
            row_start = dists.local_length(i, self.col_shift, self.col_stride)
            row_stop = dists.local_length(i + height, self.col_shift, self.col_stride)
            col_start = dists.local_length(j, self.row_shift, self.row_stride)
            col_stop = dists.local_length(j + width, self.row_shift, self.row_stride)
            local = self._local_array[row_start:row_stop, col_start:col_stop]
        else:
            local = self._local_array[0:0, 0:0]
        if view._locked:
            local = local.view()
            local.flags.writeable = False
        view._local_array = local
        if config.debug_enabled:
            assert local.shape == view.local_shape, \
                f"View local shape {local.shape} != {view.local_shape}"
            assert local.size == 0 or np.may_share_memory(local, self._local_array)
        return view

    def view(self, i: int, j: int, height: int, width: int) -> "DistributedMatrix":
        """Non-owning view of a sub-matrix

        Parameters
        ----------
        i : :obj:`int`
            First global row of the view.
        j : :obj:`int`
            First global column of the view.
        height : :obj:`int`
            Number of rows of the view.
        width : :obj:`int`
            Number of columns of the view.

        Returns
        -------
        view : :obj:`distmat_mpi.DistributedMatrix`
            Matrix with the same distribution and grid aliasing the local
            storage of ``self``. It must not outlive ``self``.

        """
        return self._view(i, j, height, width, locked=False)

    def locked_view(self, i: int, j: int, height: int, width: int) -> "DistributedMatrix":
        """Read-only view of a sub-matrix (see :meth:`view`)"""
        return self._view(i, j, height, width, locked=True)

    def __getitem__(self, index):
        if not (isinstance(index, tuple) and len(index) == 2):
            raise LogicError("Index a DistributedMatrix with a pair of slices or ranges")
        i, height = _normalize_range(index[0], self._height)
        j, width = _normalize_range(index[1], self._width)
        return self._view(i, j, height, width, locked=self._locked)

    def get(self, i: int, j: int):
        """Collective read of entry ``(i, j)``

        The primary owner broadcasts the value to every process of the grid.
        """
        self._check_index(i, j)
        root = self.owner(i, j)
        value = None
        if self._grid.vc_rank == root:
            value = self._local_array[self.local_row(i), self.local_col(j)]
        return self.dtype.type(self._bcast(self._grid.vc_comm, value, root))

    def set(self, i: int, j: int, value) -> None:
        """Collective write of entry ``(i, j)``

        Every process passes the same ``value``; each process storing the
        entry (replicas included) writes it. No communication takes place.
        """
        self._assert_writable()
        self._check_index(i, j)
        if self.is_local(i, j):
            self._local_array[self.local_row(i), self.local_col(j)] = value

    def update(self, i: int, j: int, value) -> None:
        """Collective ``A[i, j] += value`` (see :meth:`set`)"""
        self._assert_writable()
        self._check_index(i, j)
        if self.is_local(i, j):
            self._local_array[self.local_row(i), self.local_col(j)] += value

    def _check_local(self, i: int, j: int):
        self._check_index(i, j)
        if not self.is_local(i, j):
            raise LogicError(f"Entry ({i}, {j}) is not stored by process "
                             f"({self._grid.row}, {self._grid.col})")

    def local_get(self, i: int, j: int):
        """Read the locally stored entry ``(i, j)`` (global indices)"""
        self._check_local(i, j)
        return self._local_array[self.local_row(i), self.local_col(j)]

    def local_set(self, i: int, j: int, value) -> None:
        """Write the locally stored entry ``(i, j)`` (global indices)

        Raises :obj:`distmat_mpi.LogicError` on a process not storing it.
        """
        self._assert_writable()
        self._check_local(i, j)
        self._local_array[self.local_row(i), self.local_col(j)] = value

    def local_update(self, i: int, j: int, value) -> None:
        self._assert_writable()
        self._check_local(i, j)
        self._local_array[self.local_row(i), self.local_col(j)] += value

    def redistribute_from(self, other: "DistributedMatrix") -> None:
        """Copy ``other`` into this matrix's distribution

        Collective over the grid. An owning matrix with free alignments
        is first aligned with ``other`` and resized to its shape.

        Parameters
        ----------
        other : :obj:`distmat_mpi.DistributedMatrix`
            Source matrix, distributed over the same grid.

        """
        from distmat_mpi.Redistribute import redistribute
        redistribute(self, other)

    def sum_scatter_from(self, other: "DistributedMatrix") -> None:
        """Sum the replicated partial contributions of ``other`` into this matrix"""
        from distmat_mpi.Redistribute import sum_scatter
        sum_scatter(self, other, alpha=None)

    def sum_scatter_update(self, alpha, other: "DistributedMatrix") -> None:
        """``self += alpha * (sum of the partial contributions of other)``"""
        from distmat_mpi.Redistribute import sum_scatter
        sum_scatter(self, other, alpha=alpha)

    def sum_over_row(self) -> None:
        """Sum the local storage over the processes of this grid row"""
        self._assert_writable()
        self._local_array[...] = self._allreduce(self._grid.row_comm, self._local_array)

    def sum_over_col(self) -> None:
        """Sum the local storage over the processes of this grid column"""
        self._assert_writable()
        self._local_array[...] = self._allreduce(self._grid.col_comm, self._local_array)

    def transpose_from(self, A: "DistributedMatrix", conjugate: bool = False) -> None:
        """Set this matrix to :math:`\\mathbf{A}^T` (or :math:`\\mathbf{A}^H`)

        When the distribution of this matrix is the swapped distribution
        of ``A`` and the alignments allow it, the transposition is purely
        local; otherwise it goes through a temporary and a redistribution.
        """
        self._assert_writable()
        if self._grid != A.grid:
            raise LogicError("Matrices must be distributed over the same grid")
        swapped = (A.row_dist, A.col_dist)
        local = A.local_array.conj().T if conjugate else A.local_array.T
        if self._dist == swapped:
            aligned = self.is_view is False and (
                (not self._col_constrained or self._col_align == A.row_align) and
                (not self._row_constrained or self._row_align == A.col_align))
            if aligned:
                self._col_align, self._row_align = A.row_align, A.col_align
                self.resize(A.width, A.height)
                self._local_array[...] = local
                return
            if self.is_view and (self._col_align, self._row_align) == (A.row_align, A.col_align):
                if self.global_shape != (A.width, A.height):
                    raise DimensionError(f"Cannot transpose a {A.height} x {A.width} matrix "
                                         f"into a {self._height} x {self._width} view")
                self._local_array[...] = local
                return
        tmp = DistributedMatrix(self._grid, A.width, A.height, dist=swapped, dtype=A.dtype,
                                col_align=A.row_align, row_align=A.col_align)
        tmp.local_array[...] = local
        self.redistribute_from(tmp)

    def diagonal(self, offset: int = 0) -> "DistributedMatrix":
        """Diagonal of an ``[MC,MR]`` matrix as an aligned ``[MD,*]`` vector

        No communication takes place: every diagonal entry is already
        stored by its ``MD`` owner.
        """
        if self._dist != MC_MR:
            raise LogicError("Diagonals are only extracted from [MC,MR] matrices")
        length = max(0, min(self._height + min(offset, 0), self._width - max(offset, 0)))
        d = DistributedMatrix(self._grid, dist=MD_STAR, dtype=self.dtype)
        d.align_with_diagonal(self, offset)
        d.resize(length, 1)
        if d.participating:
            k = d.global_row_indices()
            rows, cols = k - min(offset, 0), k + max(offset, 0)
            d.local_array[:, 0] = self._local_array[self.local_row(rows), self.local_col(cols)]
        return d

    def copy(self) -> "DistributedMatrix":
        """Owning copy with the same distribution and alignments"""
        B = DistributedMatrix(self._grid, self._height, self._width, dist=self._dist,
                              dtype=self.dtype, col_align=self._col_align,
                              row_align=self._row_align)
        B.local_array[...] = self._local_array
        return B

    def set_to_zero(self) -> None:
        self._assert_writable()
        self._local_array[...] = 0

    def set_to_identity(self) -> None:
        self._assert_writable()
        rows, cols = self.global_row_indices(), self.global_col_indices()
        self._local_array[...] = (rows[:, None] == cols[None, :]).astype(self.dtype)

    def set_to_random(self, seed: Optional[int] = None) -> None:
        """Fill with uniform random entries in :math:`[0, 1)`

        Entries are drawn from one global stream, so that the matrix does not
        depend on the grid. Every process must pass the same ``seed``. Complex
        matrices get a random imaginary part as well.
        """
        self._assert_writable()
        rng = np.random.default_rng(seed)
        x = rng.random(self.global_shape)
        if np.iscomplexobj(self._local_array):
            x = x + 1j * rng.random(self.global_shape)
        self._local_array[...] = x[np.ix_(self.global_row_indices(), self.global_col_indices())]

    def make_trapezoidal(self, uplo: UpperOrLower, offset: int = 0) -> None:
        """Zero the entries outside a triangle

        Parameters
        ----------
        uplo : :obj:`distmat_mpi.UpperOrLower`
            Kept triangle.
        offset : :obj:`int`, optional
            Diagonal bounding the kept triangle (positive above the main
            diagonal).

        """
        self._assert_writable()
        rows, cols = self.global_row_indices(), self.global_col_indices()
        if UpperOrLower(uplo) is UpperOrLower.LOWER:
            mask = cols[None, :] - rows[:, None] > offset
        else:
            mask = cols[None, :] - rows[:, None] < offset
        self._local_array[mask] = 0

    def scale(self, alpha) -> None:
        self._assert_writable()
        self._local_array *= alpha

    @classmethod
    def to_dist(cls, x: NDArray, grid: Grid,
                dist: Tuple[Dist, Dist] = MC_MR,
                col_align: Optional[int] = None,
                row_align: Optional[int] = None,
                dtype: Optional[DTypeLike] = None) -> "DistributedMatrix":
        """Convert a global array to a distributed matrix

        Every process passes the same global array and keeps its shard.

        Parameters
        ----------
        x : :obj:`numpy.ndarray`
            Global two-dimensional array.
        grid : :obj:`distmat_mpi.Grid`
            Process grid.
        dist : :obj:`tuple`, optional
            Distribution pair. Defaults to ``(Dist.MC, Dist.MR)``.
        col_align : :obj:`int`, optional
            Column alignment.
        row_align : :obj:`int`, optional
            Row alignment.
        dtype : :obj:`str`, optional
            Type of elements. Defaults to the type of ``x``.

        Returns
        -------
        dist_matrix : :obj:`distmat_mpi.DistributedMatrix`
            Distributed matrix of the global array.

        """
        x = np.asarray(x)
        if x.ndim == 1:
            x = x[:, np.newaxis]
        if x.ndim != 2:
            raise DimensionError(f"Expected a two-dimensional array, got shape {x.shape}")
        A = cls(grid, x.shape[0], x.shape[1], dist=dist,
                dtype=x.dtype if dtype is None else dtype,
                col_align=col_align, row_align=row_align)
        A.local_array[...] = x[np.ix_(A.global_row_indices(), A.global_col_indices())]
        return A

    def asarray(self) -> np.ndarray:
        """Global array, gathered on every process

        Returns
        -------
        final_array : :obj:`numpy.ndarray`
        """
        if self._dist == STAR_STAR:
            return self._local_array.copy()
        full = DistributedMatrix(self._grid, dist=STAR_STAR, dtype=self.dtype)
        full.redistribute_from(self)
        return full.local_array

    def __repr__(self):
        return f"<DistributedMatrix with global shape={self.global_shape}, " \
               f"dist=[{self.col_dist.value},{self.row_dist.value}], " \
               f"local shape={self.local_shape}, dtype={self.dtype}, " \
               f"alignments=({self.col_align}, {self.row_align}), " \
               f"view={self.is_view}, locked={self.is_locked}> "


def transpose(A: DistributedMatrix, conjugate: bool = False,
              dist: Optional[Tuple[Dist, Dist]] = None) -> DistributedMatrix:
    """Transpose (or adjoint) of a distributed matrix

    Parameters
    ----------
    A : :obj:`distmat_mpi.DistributedMatrix`
        Matrix to transpose.
    conjugate : :obj:`bool`, optional
        Conjugate the entries. Defaults to ``False``.
    dist : :obj:`tuple`, optional
        Distribution of the result. Defaults to the distribution of ``A``.

    Returns
    -------
    B : :obj:`distmat_mpi.DistributedMatrix`

    """
    if dist is None:
        dist = A.dist
    B = DistributedMatrix(A.grid, dist=dist, dtype=A.dtype)
    B.transpose_from(A, conjugate=conjugate)
    return B

