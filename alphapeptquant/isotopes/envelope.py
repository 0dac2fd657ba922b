"""Poisson approximation of peptide isotope envelopes.

The relative abundance of isotope peak ``i`` for a peptide of neutral mass
``m`` is modelled by a single-parameter Poisson distribution:

    p(i) = lambda^i * exp(-lambda) / i!,   lambda = m / 1800

This ignores elemental composition entirely; it is accurate enough to
correct light/heavy overlap and to score observed envelopes, and it is cheap
enough to evaluate per event.

Performance
-----------
- Envelope calculation: Numba-compiled, >1M envelopes/second

Examples
--------
>>> from alphapeptquant.isotopes import isotope_envelope
>>> isotope_envelope(1800.0, 3)
array([0.36787944, 0.36787944, 0.18393972])
"""

from __future__ import annotations

import numpy as np
from numba import njit

from ..constants import (
    FACTORIAL_SEQUENCE_25,
    POISSON_MASS_SCALE,
    TEMPLATE_NUM_PEAKS,
)


@njit
def isotope_envelope(mass: float, n_peaks: int) -> np.ndarray:
    """Calculate the Poisson isotope envelope for a neutral mass.

    Parameters
    ----------
    mass : float
        Neutral mass in Da
    n_peaks : int
        Number of isotope peaks (M, M+1, ...) to return

    Returns
    -------
    envelope : np.ndarray (float64)
        Relative abundances. Not normalized: the sum only approaches 1 as
        ``n_peaks`` grows. Entries from index 25 on are 0 (negligible, not
        exactly zero).

    Notes
    -----
    For ``mass == 0`` the envelope is ``[1, 0, 0, ...]``.
    """
    lam = mass / POISSON_MASS_SCALE
    lam_exp = np.exp(-lam)

    envelope = np.zeros(n_peaks, dtype=np.float64)
    n_table = FACTORIAL_SEQUENCE_25.shape[0]
    for i in range(n_peaks):
        if i < n_table:
            envelope[i] = lam ** i / FACTORIAL_SEQUENCE_25[i] * lam_exp
    return envelope


def normalized_envelope(mass: float, n_peaks: int = TEMPLATE_NUM_PEAKS) -> np.ndarray:
    """Isotope envelope rescaled to sum to 1 over ``n_peaks`` peaks.

    This is the template observed peak intensities are compared against.
    """
    envelope = isotope_envelope(float(mass), n_peaks)
    total = envelope.sum()
    if total <= 0:
        return envelope
    return envelope / total


def max_ideal_peak_index(mass: float, n_peaks: int = TEMPLATE_NUM_PEAKS) -> int:
    """Index of the theoretically most intense isotope peak.

    Ties resolve to the lower index.
    """
    return int(np.argmax(isotope_envelope(float(mass), n_peaks)))


def num_peaks_separation(light_mass: float, heavy_mass: float) -> int:
    """Number of whole Daltons separating the light and heavy monoisotopes.

    Rounds half up, so a 2.5 Da difference counts as 3 peaks.
    """
    return int(np.floor(heavy_mass - light_mass + 0.5))
