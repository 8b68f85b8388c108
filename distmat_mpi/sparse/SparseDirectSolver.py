__all__ = [
    "EliminationTree",
    "FactorHandle",
    "SparseDirectSolver",
]

import logging
from collections import namedtuple

import numpy as np
import scipy.sparse as sp
from scipy.sparse.csgraph import reverse_cuthill_mckee
from scipy.sparse.linalg import splu

from pylops.utils import NDArray

from distmat_mpi.Errors import DimensionError

logging.basicConfig(format="%(levelname)s: %(message)s", level=logging.WARNING)

EliminationTree = namedtuple("EliminationTree", ["n", "perm", "inv_perm"])
FactorHandle = namedtuple("FactorHandle", ["tree", "lu"])


class SparseDirectSolver:
    r"""Sequential sparse direct solver

    Three-phase ``factorize / numeric_factor / solve`` interface around
    :mod:`scipy.sparse`: a fill-reducing ordering is computed once from
    the sparsity graph and reused by any number of numerical
    factorizations with the same pattern.

    Notes
    -----
    The ordering is a reverse Cuthill-McKee permutation
    (:func:`scipy.sparse.csgraph.reverse_cuthill_mckee`) of the
    symmetrized graph. The permuted matrix :math:`P A P^T` is factored
    with SuperLU (:func:`scipy.sparse.linalg.splu`) keeping the column
    order, so that the returned handle only depends on the ordering
    stored in the :obj:`EliminationTree`.

    """

    def factorize(self, graph: sp.spmatrix) -> EliminationTree:
        """Symbolic phase

        Parameters
        ----------
        graph : :obj:`scipy.sparse.spmatrix`
            Square matrix whose nonzero pattern is the sparsity graph.

        Returns
        -------
        tree : :obj:`EliminationTree`
            Ordering of the unknowns.

        """
        n, n2 = graph.shape
        if n != n2:
            raise DimensionError(f"Sparsity graph must be square, got {n} x {n2}")
        pattern = abs(sp.csr_matrix(graph))
        pattern = (pattern + pattern.T).tocsr()
        pattern.sort_indices()
        perm = np.asarray(reverse_cuthill_mckee(pattern, symmetric_mode=True), dtype=np.int64)
        inv_perm = np.empty_like(perm)
        inv_perm[perm] = np.arange(n)
        logging.debug(f"SparseDirectSolver: ordered {n} unknowns, bandwidth "
                      f"{self._bandwidth(pattern[perm][:, perm])}")
        return EliminationTree(n, perm, inv_perm)

    @staticmethod
    def _bandwidth(A: sp.spmatrix) -> int:
        A = sp.coo_matrix(A)
        return int(np.max(np.abs(A.row - A.col))) if A.nnz > 0 else 0

    def numeric_factor(self, values: sp.spmatrix, tree: EliminationTree) -> FactorHandle:
        """Numerical phase on a matrix with the pattern of the tree"""
        if values.shape != (tree.n, tree.n):
            raise DimensionError(f"Matrix of shape {values.shape} does not match "
                                 f"an elimination tree of {tree.n} unknowns")
        A = sp.csr_matrix(values)[tree.perm][:, tree.perm].tocsc()
        return FactorHandle(tree, splu(A, permc_spec="NATURAL"))

    def solve(self, handle: FactorHandle, rhs: NDArray) -> NDArray:
        """Solve with the factored matrix for one or several right-hand sides"""
        rhs = np.asarray(rhs)
        if rhs.shape[0] != handle.tree.n:
            raise DimensionError(f"Right-hand side with {rhs.shape[0]} rows for a "
                                 f"system of {handle.tree.n} unknowns")
        if rhs.size == 0:
            return np.zeros_like(rhs)
        b = rhs[handle.tree.perm]
        if np.iscomplexobj(b) and not np.iscomplexobj(handle.lu.L):
            x = handle.lu.solve(np.ascontiguousarray(b.real)) + \
                1j * handle.lu.solve(np.ascontiguousarray(b.imag))
        else:
            x = handle.lu.solve(np.ascontiguousarray(b, dtype=handle.lu.L.dtype))
        return x[handle.tree.inv_perm]
