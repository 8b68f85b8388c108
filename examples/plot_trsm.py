r"""
Triangular Solve
================
This example demonstrates the utilization of :py:func:`distmat_mpi.trsm`, a
blocked distributed solver for systems of the form

.. math::
        \mathbf{L} \mathbf{X} = \alpha \mathbf{B}

where :math:`\mathbf{L}` is lower triangular. The right-hand side is
overwritten by the solution :math:`\mathbf{X}`. We also use
:py:func:`distmat_mpi.cholesky` to factorize a Hermitian positive definite
matrix and solve a linear system with two triangular solves.
"""
import numpy as np
from mpi4py import MPI
from matplotlib import pyplot as plt

import distmat_mpi
from distmat_mpi import Orientation, Side, UnitOrNonUnit, UpperOrLower

plt.close("all")
grid = distmat_mpi.Grid(MPI.COMM_WORLD)
rng = np.random.default_rng(42)

###############################################################################
# Let's define a well-conditioned lower triangular matrix of size ``N`` and
# a right-hand side with ``K`` columns.
N, K = 60, 5
L = np.tril(rng.standard_normal((N, N))) + N * np.eye(N)
X = rng.standard_normal((N, K))

Ld = distmat_mpi.DistributedMatrix.to_dist(L, grid)
Bd = distmat_mpi.DistributedMatrix.to_dist(L @ X, grid)

###############################################################################
# The solve is carried out in panels of ``blocksize`` rows: every diagonal
# block is replicated on all processes, and the solved rows are used to
# update the remaining part of the right-hand side.
distmat_mpi.trsm(Side.LEFT, UpperOrLower.LOWER, Orientation.NORMAL,
                 UnitOrNonUnit.NON_UNIT, 1., Ld, Bd, blocksize=16)
Xinv = Bd.asarray()

###############################################################################
# We now factorize :math:`\mathbf{A} = \mathbf{L} \mathbf{L}^T` and solve
# :math:`\mathbf{A} \mathbf{x} = \mathbf{b}` as
# :math:`\mathbf{L} \mathbf{y} = \mathbf{b}` followed by
# :math:`\mathbf{L}^T \mathbf{x} = \mathbf{y}`.
G = rng.standard_normal((N, N))
A = G @ G.T + N * np.eye(N)
b = A @ X

Ad = distmat_mpi.DistributedMatrix.to_dist(A, grid)
bd = distmat_mpi.DistributedMatrix.to_dist(b, grid)
distmat_mpi.cholesky(UpperOrLower.LOWER, Ad, blocksize=16)
distmat_mpi.trsm(Side.LEFT, UpperOrLower.LOWER, Orientation.NORMAL,
                 UnitOrNonUnit.NON_UNIT, 1., Ad, bd, blocksize=16)
distmat_mpi.trsm(Side.LEFT, UpperOrLower.LOWER, Orientation.TRANSPOSE,
                 UnitOrNonUnit.NON_UNIT, 1., Ad, bd, blocksize=16)
xchol = bd.asarray()

if grid.rank == 0:
    print(f"trsm error: {np.linalg.norm(Xinv - X) / np.linalg.norm(X):.2e}")
    print(f"cholesky solve error: {np.linalg.norm(xchol - X) / np.linalg.norm(X):.2e}")
    fig, axs = plt.subplots(1, 3, figsize=(12, 4))
    axs[0].imshow(X, aspect="auto", cmap="gray")
    axs[0].set_title("True")
    axs[1].imshow(Xinv, aspect="auto", cmap="gray")
    axs[1].set_title("Triangular solve")
    axs[2].imshow(xchol, aspect="auto", cmap="gray")
    axs[2].set_title("Cholesky solve")
    plt.tight_layout()
