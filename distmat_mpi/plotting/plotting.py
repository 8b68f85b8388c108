"""
    Plotting functions for DistributedMatrix
"""

from typing import Any, Optional
from matplotlib import pyplot as plt
import numpy as np

from distmat_mpi.DistributedMatrix import DistributedMatrix


# Plot which process owns each entry of the global matrix
def plot_distributed_matrix(A: DistributedMatrix) -> None:
    """Visualize the distribution of a matrix over the process grid.

    Entries are colored by the VC rank of their primary owner.

    Parameters
    ----------
    A : :obj:`distmat_mpi.DistributedMatrix`
        DistributedMatrix
    """
    if not isinstance(A, DistributedMatrix):
        raise TypeError("Not a DistributedMatrix")
    grid = A.grid
    # replicated entries are assigned to the process with free coordinates at zero
    full_owners = np.array([[A.owner(i, j) for j in range(A.width)]
                            for i in range(A.height)], dtype=np.float64)
    full_arr = A.asarray()
    if grid.rank == 0:
        figure, (ax1, ax2) = plt.subplots(nrows=1, ncols=2,
                                          figsize=(18, 5))
        ax1.matshow(np.abs(full_arr), cmap='rainbow')
        ax1.set_title("Original Matrix")
        im2 = ax2.matshow(full_owners, cmap='rainbow',
                          vmin=0, vmax=max(grid.size - 1, 1))
        ax2.set_title(f"Distributed as [{A.col_dist.value},{A.row_dist.value}] "
                      f"over a {grid.height} x {grid.width} grid")
        cbar = figure.colorbar(im2)
        cbar.set_ticks(np.arange(grid.size))
        cbar.set_label("VC ranks")
        plt.tight_layout()


# Plot the local matrices of each process
def plot_local_matrices(A: DistributedMatrix, title: str = None,
                        vmin: Optional[Any] = None, vmax: Optional[Any] = None) -> None:
    """Visualize the local matrices of the given DistributedMatrix

    Parameters
    ----------
    A : :obj:`distmat_mpi.DistributedMatrix`
        DistributedMatrix
    title : :obj:`str`
        Main Title of the figure
    vmin : :obj:`numpy.float64`
        Minimum Value
    vmax : :obj:`numpy.float64`
        Maximum Value
    """
    grid = A.grid
    global_gather = grid.vc_comm.gather(np.abs(A.local_array), root=0)
    if grid.vc_rank == 0:
        figure, ax = plt.subplots(nrows=grid.height, ncols=grid.width,
                                  figsize=(18, 5), squeeze=False)
        for r in range(grid.size):
            row, col = grid.coords(r)
            axis = ax[row][col]
            axis.imshow(global_gather[r], cmap='rainbow', vmin=vmin, vmax=vmax)
            axis.set_xticks(np.arange(global_gather[r].shape[1]))
            axis.set_yticks(np.arange(global_gather[r].shape[0]))
            axis.set_title(f"VC rank-{r} ({row}, {col})")
        plt.suptitle(title)
        plt.tight_layout()
