"""
Distributed LAPACK-like routines
================================

The subpackage lapack builds dense factorizations, reductions and solvers
on top of the blocked routines of :mod:`distmat_mpi.blas`.

A list of routines present in distmat_mpi.lapack:
    tridiag                           Householder reduction to tridiagonal form
    cholesky                          Cholesky factorization
    qr                                Householder QR factorization
    lq                                Householder LQ factorization
    apply_q                           Apply the orthogonal factor of a QR factorization
    least_squares                     Dense least-squares and minimum-norm solve
    frobenius_norm                    Frobenius norm
    max_norm                          Max norm
    nrm2                              Euclidean norm of a vector
    two_norm_estimate                 Power-iteration estimate of the spectral norm
    hermitian_two_norm_estimate       Spectral norm estimate of a Hermitian matrix
    symmetric_two_norm_estimate       Spectral norm estimate of a symmetric matrix

"""

from .Tridiag import *
from .Cholesky import *
from .QR import *
from .LeastSquares import *
from .Norm import *

__all__ = [
    "tridiag",
    "cholesky",
    "qr",
    "lq",
    "apply_q",
    "least_squares",
    "frobenius_norm",
    "max_norm",
    "nrm2",
    "two_norm_estimate",
    "hermitian_two_norm_estimate",
    "symmetric_two_norm_estimate",
]
