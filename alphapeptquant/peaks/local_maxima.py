"""Local maximum detection on raw profile intensities."""

import numpy as np
from numba import njit

from ..constants import LOCAL_MAXIMA_EPSILON


@njit
def find_local_maxima(y: np.ndarray) -> np.ndarray:
    """Return indices of local maxima in an intensity trace.

    Interior point ``i`` is a maximum if it rises from ``i-1`` and falls to
    ``i+1`` by more than ``LOCAL_MAXIMA_EPSILON``. The first and last points
    are maxima if they are strictly above their single neighbour.

    Parameters
    ----------
    y : np.ndarray (float64)
        Intensities, in m/z order

    Returns
    -------
    indices : np.ndarray (int64)
        Ascending indices of maxima; empty when ``len(y) < 2``
    """
    n = y.shape[0]
    if n < 2:
        return np.zeros(0, dtype=np.int64)

    is_max = np.zeros(n, dtype=np.bool_)
    is_max[0] = y[0] > y[1]
    for i in range(1, n - 1):
        is_max[i] = (y[i] - y[i - 1] > LOCAL_MAXIMA_EPSILON) and (
            y[i + 1] - y[i] < -LOCAL_MAXIMA_EPSILON
        )
    is_max[n - 1] = y[n - 1] > y[n - 2]

    return np.nonzero(is_max)[0].astype(np.int64)


def local_maxima(y) -> np.ndarray:
    """Python wrapper for ``find_local_maxima`` accepting any sequence."""
    return find_local_maxima(np.asarray(y, dtype=np.float64))
