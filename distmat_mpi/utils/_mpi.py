__all__ = [
    "mpi_allgatherv",
    "mpi_alltoallv",
    "mpi_reduce_scatter",
    "mpi_sendrecv",
    "mpi_allreduce",
    "mpi_bcast",
]

from typing import Any, Optional, Sequence, Tuple

import numpy as np
from mpi4py import MPI


def _displacements(counts: Sequence[int]) -> np.ndarray:
    displs = np.zeros(len(counts), dtype=np.int64)
    if len(counts) > 1:
        displs[1:] = np.cumsum(counts[:-1])
    return displs


def _mpi_type(dtype: np.dtype):
    return MPI._typedict[np.dtype(dtype).char]


def mpi_allgatherv(base_comm: MPI.Comm, send_buf: np.ndarray,
                   recv_counts: Optional[Sequence[int]] = None
                   ) -> Tuple[np.ndarray, np.ndarray]:
    """MPI_Allgatherv

    Gather contiguous buffers of different sizes from every rank of
    ``base_comm`` into one flat buffer, ordered by rank.

    Parameters
    ----------
    base_comm : :obj:`MPI.Comm`
        Communicator over which the buffers are gathered.
    send_buf : :obj:`numpy.ndarray`
        Local buffer (flattened in C order before sending).
    recv_counts : :obj:`list`, optional
        Number of elements sent by every rank. Exchanged with an
        ``allgather`` when not provided.

    Returns
    -------
    recv_buf : :obj:`numpy.ndarray`
        Flat buffer with the contributions of every rank.
    recv_counts : :obj:`numpy.ndarray`
        Number of elements contributed by every rank.

    """
    send_buf = np.ascontiguousarray(send_buf).ravel()
    if recv_counts is None:
        recv_counts = base_comm.allgather(send_buf.size)
    recv_counts = np.asarray(recv_counts, dtype=np.int64)
    displs = _displacements(recv_counts)
    recv_buf = np.empty(int(recv_counts.sum()), dtype=send_buf.dtype)
    mpi_type = _mpi_type(send_buf.dtype)
    base_comm.Allgatherv([send_buf, send_buf.size, mpi_type],
                         [recv_buf, (recv_counts, displs), mpi_type])
    return recv_buf, recv_counts


def mpi_alltoallv(base_comm: MPI.Comm, send_buf: np.ndarray,
                  send_counts: Sequence[int],
                  recv_counts: Optional[Sequence[int]] = None
                  ) -> Tuple[np.ndarray, np.ndarray]:
    """MPI_Alltoallv

    Parameters
    ----------
    base_comm : :obj:`MPI.Comm`
        Communicator over which data is exchanged.
    send_buf : :obj:`numpy.ndarray`
        Flat buffer packed by destination rank.
    send_counts : :obj:`list`
        Number of elements destined to every rank.
    recv_counts : :obj:`list`, optional
        Number of elements received from every rank. Exchanged with an
        ``alltoall`` when not provided.

    Returns
    -------
    recv_buf : :obj:`numpy.ndarray`
        Flat buffer packed by source rank.
    recv_counts : :obj:`numpy.ndarray`
        Number of elements received from every rank.

    """
    send_buf = np.ascontiguousarray(send_buf).ravel()
    send_counts = np.asarray(send_counts, dtype=np.int64)
    if recv_counts is None:
        recv_counts = base_comm.alltoall([int(c) for c in send_counts])
    recv_counts = np.asarray(recv_counts, dtype=np.int64)
    recv_buf = np.empty(int(recv_counts.sum()), dtype=send_buf.dtype)
    mpi_type = _mpi_type(send_buf.dtype)
    base_comm.Alltoallv([send_buf, (send_counts, _displacements(send_counts)), mpi_type],
                        [recv_buf, (recv_counts, _displacements(recv_counts)), mpi_type])
    return recv_buf, recv_counts


def mpi_reduce_scatter(base_comm: MPI.Comm, send_buf: np.ndarray,
                       recv_counts: Sequence[int],
                       op: MPI.Op = MPI.SUM) -> np.ndarray:
    """MPI_Reduce_scatter

    Every rank contributes a buffer packed by destination rank; the
    element-wise reduction of block ``r`` is delivered to rank ``r``.

    Parameters
    ----------
    base_comm : :obj:`MPI.Comm`
        Communicator over which data is reduced.
    send_buf : :obj:`numpy.ndarray`
        Flat buffer packed by destination rank.
    recv_counts : :obj:`list`
        Size of the block delivered to every rank.
    op : :obj:`MPI.Op`, optional
        Reduction operation. Defaults to ``MPI.SUM``.

    Returns
    -------
    recv_buf : :obj:`numpy.ndarray`
        Reduced block of this rank.

    """
    send_buf = np.ascontiguousarray(send_buf).ravel()
    recv_counts = np.asarray(recv_counts, dtype=np.int64)
    recv_buf = np.empty(int(recv_counts[base_comm.Get_rank()]), dtype=send_buf.dtype)
    mpi_type = _mpi_type(send_buf.dtype)
    base_comm.Reduce_scatter([send_buf, send_buf.size, mpi_type],
                             [recv_buf, recv_buf.size, mpi_type],
                             recv_counts, op)
    return recv_buf


def mpi_sendrecv(base_comm: MPI.Comm, send_buf: np.ndarray, dest: int,
                 source: int, recv_count: int, tag: int = 0) -> np.ndarray:
    """MPI_Sendrecv

    Send ``send_buf`` to ``dest`` while receiving ``recv_count`` elements
    from ``source``.
    """
    send_buf = np.ascontiguousarray(send_buf).ravel()
    recv_buf = np.empty(recv_count, dtype=send_buf.dtype)
    mpi_type = _mpi_type(send_buf.dtype)
    base_comm.Sendrecv([send_buf, send_buf.size, mpi_type], dest, tag,
                       [recv_buf, recv_count, mpi_type], source, tag)
    return recv_buf


def mpi_allreduce(base_comm: MPI.Comm, send_buf: np.ndarray,
                  op: MPI.Op = MPI.SUM) -> np.ndarray:
    """MPI_Allreduce

    Parameters
    ----------
    base_comm : :obj:`MPI.Comm`
        Communicator over which data is reduced.
    send_buf : :obj:`numpy.ndarray`
        Local contribution.
    op : :obj:`MPI.Op`, optional
        Reduction operation. Defaults to ``MPI.SUM``.

    Returns
    -------
    recv_buf : :obj:`numpy.ndarray`
        Reduced array with the shape of ``send_buf``.

    """
    send_buf = np.ascontiguousarray(send_buf)
    recv_buf = np.empty_like(send_buf)
    mpi_type = _mpi_type(send_buf.dtype)
    base_comm.Allreduce([send_buf, send_buf.size, mpi_type],
                        [recv_buf, recv_buf.size, mpi_type], op)
    return recv_buf


def mpi_bcast(base_comm: MPI.Comm, value: Any, root: int = 0) -> Any:
    # scalar values travel as pickled objects
    return base_comm.bcast(value, root=root)
