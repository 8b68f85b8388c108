"""
Distributed BLAS-like routines
==============================

The subpackage blas provides blocked, collective versions of the level-2
and level-3 BLAS routines for :class:`distmat_mpi.DistributedMatrix`.

A list of routines present in distmat_mpi.blas:
    gemm                              General matrix-matrix product
    gemv                              General matrix-vector product
    trsm                              Triangular solve with multiple right-hand sides
    trmm                              Triangular matrix-matrix product
    trrk                              Triangular rank-k update
    trr2k                             Triangular rank-2k update
    syrk                              Symmetric rank-k update
    herk                              Hermitian rank-k update
    syr2k                             Symmetric rank-2k update
    her2k                             Hermitian rank-2k update
    symv                              Symmetric matrix-vector product
    hemv                              Hermitian matrix-vector product

"""

from .Gemm import *
from .Trsm import *
from .Trmm import *
from .Trrk import *
from .Symv import *

__all__ = [
    "gemm",
    "gemv",
    "trsm",
    "trmm",
    "trrk",
    "trr2k",
    "syrk",
    "herk",
    "syr2k",
    "her2k",
    "symv",
    "hemv",
]
