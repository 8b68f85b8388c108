r"""
Tridiagonal Reduction
=====================
This example shows how to use :py:func:`distmat_mpi.tridiag` to reduce a
Hermitian matrix to real tridiagonal form

.. math::
        \mathbf{T} = \mathbf{Q}^H \mathbf{A} \mathbf{Q}

where :math:`\mathbf{Q}` is a product of Householder reflectors. Since the
reduction is a similarity transform, the eigenvalues of
:math:`\mathbf{T}` are those of :math:`\mathbf{A}` and can be computed with
a sequential tridiagonal eigensolver.
"""
import numpy as np
from mpi4py import MPI
from matplotlib import pyplot as plt
from scipy.linalg import eigvalsh_tridiagonal

import distmat_mpi
from distmat_mpi import UpperOrLower

plt.close("all")
grid = distmat_mpi.Grid(MPI.COMM_WORLD)
rng = np.random.default_rng(0)

###############################################################################
# Let's create a random Hermitian matrix and distribute it. Only its lower
# triangle is referenced by the reduction.
N = 50
G = rng.standard_normal((N, N)) + 1j * rng.standard_normal((N, N))
A = (G + G.conj().T) / 2
Ad = distmat_mpi.DistributedMatrix.to_dist(A, grid)

###############################################################################
# The reduction overwrites the diagonal and sub-diagonal of ``Ad`` with
# those of :math:`\mathbf{T}`, and returns the scalar factors of the
# reflectors in an ``[MD,*]`` vector.
t = distmat_mpi.tridiag(UpperOrLower.LOWER, Ad, blocksize=8)
d = Ad.diagonal().asarray().ravel().real
e = Ad.diagonal(-1).asarray().ravel().real

###############################################################################
# Finally we compare the eigenvalues of :math:`\mathbf{T}` with those of
# the original matrix.
eigs_t = eigvalsh_tridiagonal(d, e)
eigs_a = np.linalg.eigvalsh(A)

if grid.rank == 0:
    print(f"Reflector factors: {t.height}")
    print(f"Max eigenvalue error: {np.max(np.abs(eigs_t - eigs_a)):.2e}")
    plt.figure(figsize=(8, 4))
    plt.plot(eigs_a, "k", lw=4, label="A")
    plt.plot(eigs_t, "--r", lw=2, label="T")
    plt.title("Eigenvalues")
    plt.legend()
    plt.tight_layout()
