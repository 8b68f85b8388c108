from typing import Any, Optional, Sequence, Tuple

import numpy as np
from mpi4py import MPI
from pylops.utils import NDArray

from distmat_mpi.utils._mpi import (
    mpi_allgatherv, mpi_alltoallv, mpi_reduce_scatter,
    mpi_sendrecv, mpi_allreduce, mpi_bcast
)


class DistributedMixIn:
    r"""Distributed Mixin class

    This class gathers the communication primitives used by distributed
    matrices and by the redistribution protocol. Every primitive is a
    blocking collective (or a paired point-to-point exchange) over the
    communicator it is given: all ranks of that communicator must call it
    in the same order.

    """
    def _allgatherv(self,
                    base_comm: MPI.Comm,
                    send_buf: NDArray,
                    recv_counts: Optional[Sequence[int]] = None,
                    ) -> Tuple[NDArray, NDArray]:
        """Allgatherv operation

        Parameters
        ----------
        base_comm : :obj:`MPI.Comm`
            Communicator.
        send_buf: :obj:`numpy.ndarray`
            A buffer containing the data to be sent by this rank.
        recv_counts : :obj:`list`, optional
            Number of elements contributed by each rank.

        Returns
        -------
        recv_buf : :obj:`numpy.ndarray`
            Flat buffer with the contributions of all ranks.
        recv_counts : :obj:`numpy.ndarray`
            Number of elements contributed by each rank.

        """
        return mpi_allgatherv(base_comm, send_buf, recv_counts)

    def _alltoallv(self,
                   base_comm: MPI.Comm,
                   send_buf: NDArray,
                   send_counts: Sequence[int],
                   recv_counts: Optional[Sequence[int]] = None,
                   ) -> Tuple[NDArray, NDArray]:
        """Alltoallv operation

        Parameters
        ----------
        base_comm : :obj:`MPI.Comm`
            Communicator.
        send_buf: :obj:`numpy.ndarray`
            Flat buffer packed by destination rank.
        send_counts : :obj:`list`
            Number of elements sent to each rank.
        recv_counts : :obj:`list`, optional
            Number of elements received from each rank.

        Returns
        -------
        recv_buf : :obj:`numpy.ndarray`
            Flat buffer packed by source rank.
        recv_counts : :obj:`numpy.ndarray`
            Number of elements received from each rank.

        """
        return mpi_alltoallv(base_comm, send_buf, send_counts, recv_counts)

    def _reduce_scatter(self,
                        base_comm: MPI.Comm,
                        send_buf: NDArray,
                        recv_counts: Sequence[int],
                        op: MPI.Op = MPI.SUM,
                        ) -> NDArray:
        """Reduce-scatter operation

        Parameters
        ----------
        base_comm : :obj:`MPI.Comm`
            Communicator.
        send_buf: :obj:`numpy.ndarray`
            Flat buffer packed by destination rank.
        recv_counts : :obj:`list`
            Number of elements delivered to each rank.
        op : :obj:`MPI.Op`, optional
            MPI operation to perform.

        Returns
        -------
        recv_buf : :obj:`numpy.ndarray`
            Reduced block owned by this rank.

        """
        return mpi_reduce_scatter(base_comm, send_buf, recv_counts, op)

    def _sendrecv(self,
                  base_comm: MPI.Comm,
                  send_buf: NDArray,
                  dest: int,
                  source: int,
                  recv_count: int,
                  ) -> NDArray:
        """Paired send and receive

        Parameters
        ----------
        base_comm : :obj:`MPI.Comm`
            Communicator.
        send_buf: :obj:`numpy.ndarray`
            Buffer sent to ``dest``.
        dest : :obj:`int`
            Rank of the destination.
        source : :obj:`int`
            Rank of the source.
        recv_count : :obj:`int`
            Number of elements received from ``source``.

        Returns
        -------
        recv_buf : :obj:`numpy.ndarray`
            Flat buffer received from ``source``.

        """
        return mpi_sendrecv(base_comm, send_buf, dest, source, recv_count)

    def _allreduce(self,
                   base_comm: MPI.Comm,
                   send_buf: NDArray,
                   op: MPI.Op = MPI.SUM,
                   ) -> NDArray:
        """Allreduce operation

        Parameters
        ----------
        base_comm : :obj:`MPI.Comm`
            Communicator.
        send_buf: :obj:`numpy.ndarray`
            A buffer containing the data to be reduced.
        op : :obj:`MPI.Op`, optional
            MPI operation to perform.

        Returns
        -------
        recv_buf : :obj:`numpy.ndarray`
            Reduced buffer, identical on every rank.

        """
        return mpi_allreduce(base_comm, np.asarray(send_buf), op)

    def _bcast(self,
               base_comm: MPI.Comm,
               value: Any,
               root: int = 0,
               ) -> Any:
        """Broadcast a scalar value from ``root``"""
        return mpi_bcast(base_comm, value, root)
