"""Nearest-neighbour matching of observed peaks against target m/z values.

Both arrays are merged and sorted; every adjacent pair that comes from
different arrays and is closer than the tolerance is a candidate. A
candidate is dropped when the gap on either side of it is also a candidate
and strictly smaller, so each value keeps only its nearest cross-array
neighbour.

Examples
--------
>>> observed = np.array([500.001, 500.51, 501.2])
>>> targets = np.array([500.0, 500.5, 501.0])
>>> obs_idx, targ_idx = match_targets(observed, targets, 0.0125)
>>> # (array([0, 1]), array([0, 1]))
"""

from typing import Tuple

import numpy as np
from numba import njit

OBSERVED_SOURCE = 1
TARGET_SOURCE = 2


@njit
def bind_targets(
    observed: np.ndarray,
    targets: np.ndarray,
    tolerance: float,
) -> Tuple[np.ndarray, np.ndarray]:
    """Pair observed values with targets within ``tolerance``.

    Parameters
    ----------
    observed : np.ndarray (float64)
        Observed m/z values (any order)
    targets : np.ndarray (float64)
        Target m/z values (any order)
    tolerance : float
        Absolute tolerance; gaps must be strictly smaller

    Returns
    -------
    observed_idx : np.ndarray (int64)
        Index into ``observed`` for each match
    target_idx : np.ndarray (int64)
        Index into ``targets`` for each match

    Notes
    -----
    A value can take part in at most one match. Order of the matches is not
    significant.
    """
    n_obs = observed.shape[0]
    n = n_obs + targets.shape[0]

    values = np.empty(n, dtype=np.float64)
    source = np.empty(n, dtype=np.int64)
    index = np.empty(n, dtype=np.int64)
    for i in range(n_obs):
        values[i] = observed[i]
        source[i] = OBSERVED_SOURCE
        index[i] = i
    for i in range(targets.shape[0]):
        values[n_obs + i] = targets[i]
        source[n_obs + i] = TARGET_SOURCE
        index[n_obs + i] = i

    if n < 2:
        return np.zeros(0, dtype=np.int64), np.zeros(0, dtype=np.int64)

    order = np.argsort(values, kind="mergesort")
    values = values[order]
    source = source[order]
    index = index[order]

    # gap[i] and hit[i] describe the pair (i-1, i)
    gap = np.zeros(n, dtype=np.float64)
    hit = np.zeros(n, dtype=np.bool_)
    for i in range(1, n):
        gap[i] = values[i] - values[i - 1]
        hit[i] = gap[i] < tolerance and source[i] != source[i - 1]

    keep = np.zeros(n, dtype=np.bool_)
    count = 0
    for i in range(n):
        if not hit[i]:
            continue
        right_better = i < n - 1 and hit[i + 1] and gap[i + 1] < gap[i]
        left_better = i > 0 and hit[i - 1] and gap[i] > gap[i - 1]
        if not right_better and not left_better:
            keep[i] = True
            count += 1

    observed_idx = np.empty(count, dtype=np.int64)
    target_idx = np.empty(count, dtype=np.int64)
    k = 0
    for i in range(n):
        if keep[i]:
            if source[i] == OBSERVED_SOURCE:
                observed_idx[k] = index[i]
                target_idx[k] = index[i - 1]
            else:
                observed_idx[k] = index[i - 1]
                target_idx[k] = index[i]
            k += 1

    return observed_idx, target_idx


def match_targets(observed, targets, tolerance: float) -> Tuple[np.ndarray, np.ndarray]:
    """Python wrapper for ``bind_targets`` accepting any sequences."""
    return bind_targets(
        np.asarray(observed, dtype=np.float64),
        np.asarray(targets, dtype=np.float64),
        float(tolerance),
    )
