from __future__ import annotations
import logging
import warnings
import numpy as np
from scipy.linalg import LinAlgWarning, lu_factor, lu_solve

from ..errors import SingularMatrixError

logger = logging.getLogger(__name__)

Array = np.ndarray

DEFAULT_PIVOT_TOL = 1e-13


def solve_linear_system(G: Array, z: Array, pivot_tol: float = DEFAULT_PIVOT_TOL) -> Array:
    """
    Solve ``G x = z`` by LU factorization with partial pivoting.

    Works for real (DC, transient) and complex (AC) systems.

    Args:
        G: Square system matrix with the ground row/column already removed.
        z: Right-hand side.
        pivot_tol: Pivots with magnitude below this value are treated as zero.

    Returns:
        Solution vector x.

    Raises:
        SingularMatrixError: If some pivot falls below ``pivot_tol``; the error
            carries the offending row. This indicates a floating node or an
            under-constrained topology.
    """
    n = G.shape[0]
    if G.shape != (n, n) or z.shape != (n,):
        raise ValueError(f"Incompatible system shapes {G.shape} and {z.shape}.")
    if n == 0:
        return np.zeros(0, dtype=np.result_type(G, z))

    with warnings.catch_warnings():
        # Exact zero pivots are reported below through SingularMatrixError.
        warnings.simplefilter("ignore", LinAlgWarning)
        lu, piv = lu_factor(G)

    pivots = np.abs(np.diag(lu))
    bad = np.flatnonzero(pivots < pivot_tol)
    if bad.size:
        row = int(bad[0])
        logger.debug("Pivot %.3e at row %d below threshold %.1e", pivots[row], row, pivot_tol)
        raise SingularMatrixError(row)
    return lu_solve((lu, piv), z)
