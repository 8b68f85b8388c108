__all__ = [
    "DistributedMatrixOperator",
]

import numpy as np
from mpi4py import MPI

from pylops import LinearOperator
from pylops.utils import DTypeLike, NDArray

from distmat_mpi.Distributed import DistributedMixIn
from distmat_mpi.Distribution import MC_MR
from distmat_mpi.DistributedMatrix import DistributedMatrix


class DistributedMatrixOperator(LinearOperator, DistributedMixIn):
    r"""Distributed matrix as a PyLops linear operator

    Wrap a :class:`distmat_mpi.DistributedMatrix` so that it can be
    handed to any PyLops solver. Model and data vectors are ordinary
    :obj:`numpy.ndarray` objects, replicated on every process of the grid.

    Parameters
    ----------
    A : :obj:`distmat_mpi.DistributedMatrix`
        Distributed matrix of size :math:`[M \times N]`.
    dtype : :obj:`str`, optional
        Type of elements in input array. Defaults to the type of ``A``.

    Notes
    -----
    The matrix is held as ``[MC,MR]`` so that every entry is stored exactly
    once. The forward is computed as

    .. math::
        y_i = \sum_{p} \sum_{j \in \mathcal{C}_p} A_{ij} x_j

    where each process :math:`p` multiplies its local block by the entries
    of :math:`\mathbf{x}` of its local columns :math:`\mathcal{C}_p`,
    scatters the result into the rows it owns, and the partial vectors
    are summed over the grid with an ``allreduce``. The adjoint swaps the
    roles of rows and columns and conjugates the local block.

    """

    def __init__(self, A: DistributedMatrix, dtype: DTypeLike = None):
        if A.dist != MC_MR:
            A_mc_mr = DistributedMatrix(A.grid, dist=MC_MR, dtype=A.dtype)
            A_mc_mr.redistribute_from(A)
            A = A_mc_mr
        self.A = A
        self.grid = A.grid
        self._rows = A.global_row_indices()
        self._cols = A.global_col_indices()
        super().__init__(dtype=np.dtype(A.dtype if dtype is None else dtype),
                         shape=A.global_shape)

    def _matvec(self, x: NDArray) -> NDArray:
        dtype = np.result_type(self.dtype, x.dtype)
        y = np.zeros(self.shape[0], dtype=dtype)
        if self.A.local_array.size > 0:
            y[self._rows] = self.A.local_array @ x[self._cols]
        return self._allreduce(self.grid.comm, y, MPI.SUM)

    def _rmatvec(self, x: NDArray) -> NDArray:
        dtype = np.result_type(self.dtype, x.dtype)
        y = np.zeros(self.shape[1], dtype=dtype)
        if self.A.local_array.size > 0:
            y[self._cols] = self.A.local_array.conj().T @ x[self._rows]
        return self._allreduce(self.grid.comm, y, MPI.SUM)
