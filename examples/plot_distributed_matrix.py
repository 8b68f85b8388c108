"""
Distributed Matrix
==================
This example shows how to use the :py:class:`distmat_mpi.DistributedMatrix`.
This class stores a matrix element-cyclically over a two-dimensional grid of
processes, following one of thirteen legal distributions, and can move it
from one distribution to any other with a single call.
"""

from matplotlib import pyplot as plt
import numpy as np
from mpi4py import MPI

import distmat_mpi

plt.close("all")
np.random.seed(42)

###############################################################################
# We start by creating a process grid. By default the grid is as square as
# possible; its processes are ranked in column-major order.
grid = distmat_mpi.Grid(MPI.COMM_WORLD)
if grid.rank == 0:
    print(f"Grid of {grid.height} x {grid.width} processes")

###############################################################################
# A matrix distributed as ``[MC,MR]`` has its rows dealt cyclically over the
# rows of the grid and its columns over the columns of the grid. The
# ``to_dist`` classmethod builds such a matrix from an array which is
# available on every process.
global_shape = (10, 8)
x = np.arange(global_shape[0] * global_shape[1], dtype=np.float64).reshape(global_shape)
A = distmat_mpi.DistributedMatrix.to_dist(x, grid)
distmat_mpi.plot_distributed_matrix(A)
distmat_mpi.plot_local_matrices(A, "[MC,MR]", vmin=0, vmax=x.max())

###############################################################################
# Redistributing into ``[VC,*]`` deals the rows over all processes in
# column-major order, while each process keeps entire rows.
B = distmat_mpi.DistributedMatrix(grid, dist=distmat_mpi.VC_STAR)
B.redistribute_from(A)
distmat_mpi.plot_distributed_matrix(B)
distmat_mpi.plot_local_matrices(B, "[VC,*]", vmin=0, vmax=x.max())

###############################################################################
# Distributions can also be aligned: the first row of ``C`` is owned by
# the second row of processes.
C = distmat_mpi.DistributedMatrix(grid, dist=distmat_mpi.MC_STAR,
                                  col_align=min(1, grid.height - 1))
C.redistribute_from(A)
distmat_mpi.plot_local_matrices(C, "[MC,*] aligned", vmin=0, vmax=x.max())

###############################################################################
# Views refer to a contiguous submatrix without copying it. Here we scale
# the trailing block of ``A`` and gather the full matrix back on every
# process.
ABR = A.view(4, 4, 6, 4)
ABR.scale(-1.)
y = A.asarray()
if grid.rank == 0:
    print(f"Trailing block scaled: {np.allclose(y[4:, 4:], -x[4:, 4:])}")

###############################################################################
# The diagonal of a matrix is naturally stored as an ``[MD,*]`` column
# vector, owned by the processes which own the diagonal entries.
d = A.diagonal()
if grid.rank == 0:
    print(f"Diagonal: {d.asarray().ravel()}")
