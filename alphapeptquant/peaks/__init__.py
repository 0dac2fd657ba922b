"""Peak picking and target matching for MS1 scans.

Examples
--------
>>> from alphapeptquant.peaks import local_maxima, match_targets
>>>
>>> maxima = local_maxima(intensities)
>>> obs_idx, targ_idx = match_targets(mz[maxima], targets, tolerance=0.0125)
"""

from .local_maxima import find_local_maxima, local_maxima
from .matching import bind_targets, match_targets

__all__ = [
    "find_local_maxima",
    "local_maxima",
    "bind_targets",
    "match_targets",
]
