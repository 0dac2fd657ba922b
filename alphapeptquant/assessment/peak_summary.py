"""Raw isotope peak intensities summed over an event's scans, and KL scoring.

Assessment works on raw (not resampled, not peak-picked) spectra: for each
expected isotope peak the most intense point within a ppm window is taken
per scan and summed across scans. The peak one isotope below the
monoisotope is summed as well, as evidence for coeluting species.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Sequence

import numba as nb
import numpy as np

from ..constants import THEORETICAL_MASS_WAVELENGTH
from ..quant.spectra import SpectrumSource, max_intensity_in_range

# Floor applied to observed intensities before KL scoring
MIN_KL_INTENSITY = 0.1


@dataclass
class PeakSetSummary:
    """Summed raw intensities of one isotope series (light or heavy)."""

    monoisotopic_mass: float
    peak_below_intensity: float
    peak_intensities: np.ndarray


@nb.njit
def window_maxima(
    mz_array: np.ndarray,
    intensity_array: np.ndarray,
    centers: np.ndarray,
    tolerance: float,
) -> np.ndarray:
    """Most intense point within ``center +/- tolerance`` for each center."""
    result = np.zeros(centers.shape[0], dtype=np.float64)
    for i in range(centers.shape[0]):
        result[i] = max_intensity_in_range(
            mz_array, intensity_array, centers[i] - tolerance, centers[i] + tolerance
        )
    return result


def calc_peak_intensities(
    source: SpectrumSource,
    scan_indices: Sequence[int],
    mass: float,
    mz: float,
    charge: int,
    n_peaks: int,
    ppm_tolerance: float,
) -> PeakSetSummary:
    """Sum per-scan isotope peak maxima over ``scan_indices``.

    Parameters
    ----------
    source : SpectrumSource
        Run to read raw scans from
    scan_indices : Sequence[int]
        Scan indices of the event (inclusive range)
    mass : float
        Neutral monoisotopic mass; sets the ppm tolerance
    mz : float
        Monoisotopic m/z
    charge : int
        Charge state
    n_peaks : int
        Number of isotope peaks from the monoisotope up
    ppm_tolerance : float
        Window half-width in ppm of ``mass``, divided by charge

    Returns
    -------
    PeakSetSummary
    """
    tolerance = mass * ppm_tolerance / 1e6 / charge
    centers = mz + np.arange(-1, n_peaks, dtype=np.float64) * THEORETICAL_MASS_WAVELENGTH / charge

    sums = np.zeros(n_peaks + 1, dtype=np.float64)
    for scan_index in scan_indices:
        scan_mz, scan_intensity = source.scan_at(int(scan_index))
        if len(scan_mz) == 0:
            continue
        sums += window_maxima(
            np.asarray(scan_mz, dtype=np.float64),
            np.asarray(scan_intensity, dtype=np.float64),
            centers,
            tolerance,
        )

    return PeakSetSummary(
        monoisotopic_mass=mass,
        peak_below_intensity=float(sums[0]),
        peak_intensities=sums[1:],
    )


def kl_divergence(ideal: np.ndarray, observed: np.ndarray) -> float:
    """KL divergence (bits) of ``observed`` from the ``ideal`` template.

    Both inputs must already sum to 1. Negative rounding results are
    clipped to 0.
    """
    n = min(len(ideal), len(observed))
    diff = 0.0
    for k in range(n):
        p = float(ideal[k])
        q = float(observed[k])
        if p > 0:
            diff += p * math.log(p / q)
    return max(diff / math.log(2.0), 0.0)


def template_kl(ideal_peaks: np.ndarray, peak_intensities: np.ndarray, n_peaks: int) -> float:
    """KL of the first ``n_peaks`` observed intensities against a template.

    Observed intensities are floored at ``MIN_KL_INTENSITY`` and both the
    observed and template peaks are renormalized over the ``n_peaks`` used.
    """
    observed = np.zeros(n_peaks, dtype=np.float64)
    m = min(n_peaks, len(peak_intensities))
    observed[:m] = peak_intensities[:m]
    observed = np.maximum(observed, MIN_KL_INTENSITY)

    ideal = np.asarray(ideal_peaks[:n_peaks], dtype=np.float64)
    return kl_divergence(ideal / ideal.sum(), observed / observed.sum())
