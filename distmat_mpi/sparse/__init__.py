"""
Sparse direct-solve collaborator
================================

The subpackage sparse provides a sequential ``factorize / numeric_factor /
solve`` interface on top of :mod:`scipy.sparse` and a regularized sparse
least-squares driver built on it.

A list of routines present in distmat_mpi.sparse:
    SparseDirectSolver                Three-phase sparse direct solver
    sparse_least_squares              Sparse least-squares and minimum-norm solve

"""

from .SparseDirectSolver import *
from .LeastSquares import *

__all__ = [
    "EliminationTree",
    "FactorHandle",
    "SparseDirectSolver",
    "sparse_least_squares",
]
