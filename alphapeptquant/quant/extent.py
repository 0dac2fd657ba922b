"""Scan-window quantitation of light/heavy peptide pairs.

For each labeled identification a window of MS1 scans around the
identification scan is searched for the light and heavy isotope series:

1. Slice every scan to [light m/z - 1, heavy m/z + 3]
2. Reduce the slice to local maxima
3. Match maxima to the target list (tolerance in ppm of heavy m/z)
4. Record matched intensities in a scan x target grid
5. An isotope index counts as matched in a scan when both its light and
   heavy target were found; walk out from the center scan while scans
   still have at least one matched isotope (the "extent")
6. Sum matched intensities over the extent and overlap-correct the sums

Key Features
------------
- Coherent extent from paired light/heavy matches only
- Failsafe for center scans with too few paired matches
- Optional legacy compatibility mode (``compat_mode``)
- One overlap correction shared with the event assessor

Examples
--------
>>> from alphapeptquant.quant import ScanWindowExtent, QuantParams
>>>
>>> quantifier = ScanWindowExtent(QuantParams(ppm_tolerance=25.0))
>>> result = quantifier.quantitate(request, spectrum_source)
>>> print(f"{result.first_scan}-{result.last_scan}: ratio {result.ratio:.3f}")
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Tuple

import numpy as np

from ..constants import (
    DEFAULT_CENTER_INDEX,
    DEFAULT_MAX_LIGHT_ISOTOPES,
    DEFAULT_NUM_HEAVY_ISOTOPES,
    DEFAULT_PEAK_MATCH_PPM,
    DEFAULT_SCANS_AFTER,
    DEFAULT_SCANS_BEFORE,
)
from ..exceptions import ConfigurationError
from ..isotopes.overlap import solve_window_areas
from ..peaks.local_maxima import find_local_maxima
from ..peaks.matching import bind_targets
from .request import (
    PeptideQuantRequest,
    QuantResult,
    TargetList,
    build_target_list,
    empty_result,
)
from .spectra import SpectrumSource, mz_range_indices, scan_window_indices

logger = logging.getLogger(__name__)


@dataclass
class QuantParams:
    """Parameters for scan-window quantitation."""

    # Peak matching tolerance, ppm of the heavy monoisotopic m/z
    ppm_tolerance: float = DEFAULT_PEAK_MATCH_PPM

    # Window around the identification scan
    scans_before: int = DEFAULT_SCANS_BEFORE
    scans_after: int = DEFAULT_SCANS_AFTER
    center_index: int = DEFAULT_CENTER_INDEX

    # Target series lengths
    max_light_isotopes: int = DEFAULT_MAX_LIGHT_ISOTOPES
    num_heavy_isotopes: int = DEFAULT_NUM_HEAVY_ISOTOPES

    # m/z slice taken from each scan, relative to light / heavy m/z
    slice_below_mz: float = 1.0
    slice_above_mz: float = 3.0

    # Use the whole center row when it has <= 2 paired matches
    center_fallback: bool = True

    # Also add unpaired center-row heavy intensity in that case (legacy R behaviour)
    compat_mode: bool = False

    def __post_init__(self):
        if self.ppm_tolerance <= 0:
            raise ConfigurationError(f"ppm_tolerance must be positive, got {self.ppm_tolerance}")
        if self.scans_before < 0 or self.scans_after < 0:
            raise ConfigurationError("Scan window sizes must not be negative")
        if self.center_index < 0:
            raise ConfigurationError(f"center_index must not be negative, got {self.center_index}")
        if self.max_light_isotopes < 0 or self.num_heavy_isotopes < 1:
            raise ConfigurationError("Isotope series lengths are invalid")
        # Every light isotope index needs a heavy partner
        if self.num_heavy_isotopes < self.max_light_isotopes + 1:
            raise ConfigurationError(
                f"num_heavy_isotopes ({self.num_heavy_isotopes}) must be at least "
                f"max_light_isotopes + 1 ({self.max_light_isotopes + 1})"
            )

    @classmethod
    def legacy(cls) -> 'QuantParams':
        """Parameters that reproduce historical results exactly."""
        return cls(center_fallback=True, compat_mode=True)


def build_intensity_grid(
    source: SpectrumSource,
    window_indices: np.ndarray,
    targets: TargetList,
    tolerance: float,
    low_mz: float,
    high_mz: float,
) -> np.ndarray:
    """Matched local-maximum intensity per scan and target.

    Returns
    -------
    grid : np.ndarray (float64)
        Shape (n_scans, n_targets); 0 where a target was not matched
    """
    grid = np.zeros((len(window_indices), len(targets)), dtype=np.float64)

    for row, scan_index in enumerate(window_indices):
        mz, intensity = source.scan_at(int(scan_index))
        if len(mz) == 0:
            continue

        start, end = mz_range_indices(mz, low_mz, high_mz, False)
        if start >= end:
            continue

        x = mz[start:end]
        y = intensity[start:end]
        maxima = find_local_maxima(y)
        if len(maxima) == 0:
            continue

        observed_idx, target_idx = bind_targets(x[maxima], targets.mz, tolerance)
        grid[row, target_idx] = y[maxima][observed_idx]

    return grid


def paired_matches(grid: np.ndarray, n_light: int) -> np.ndarray:
    """Isotope indices where both the light and the heavy target matched.

    Returns
    -------
    match : np.ndarray (bool)
        Shape (n_scans, n_light)
    """
    light = grid[:, :n_light]
    heavy = grid[:, n_light:2 * n_light]
    return (light > 0) & (heavy > 0)


def find_extent(match_counts: np.ndarray, center: int) -> Tuple[int, int]:
    """Walk out from ``center`` while neighbouring scans have paired matches.

    The center itself is always included.
    """
    left = center
    while left >= 1 and match_counts[left - 1] > 0:
        left -= 1

    right = center
    while right < len(match_counts) - 1 and match_counts[right + 1] > 0:
        right += 1

    return left, right


def sum_window_areas(
    grid: np.ndarray,
    match: np.ndarray,
    left: int,
    right: int,
    center: int,
    center_fallback: bool = True,
    compat_mode: bool = False,
) -> Tuple[float, float]:
    """Sum paired-match intensities over ``left..right`` into light and heavy areas.

    Parameters
    ----------
    grid : np.ndarray
        Scan x target intensity grid
    match : np.ndarray
        Paired-match mask from ``paired_matches``
    left, right : int
        Extent rows (inclusive)
    center : int
        Center row
    center_fallback : bool
        If the center row has <= 2 paired matches, sum its raw light and
        heavy values instead of only the paired ones
    compat_mode : bool
        In that same case, also add the center row's heavy intensities
        beyond the paired range

    Returns
    -------
    q2_light, q2_heavy : float
    """
    n_light = match.shape[1]
    width = 2 * n_light

    paired = np.zeros((grid.shape[0], width), dtype=np.float64)
    paired[:, :n_light] = np.where(match, grid[:, :n_light], 0.0)
    paired[:, n_light:width] = np.where(match, grid[:, n_light:width], 0.0)

    center_sparse = int(match[center].sum()) <= 2
    if center_fallback and center_sparse:
        paired[center] = grid[center, :width]

    column_sums = paired[left:right + 1].sum(axis=0)
    q2_light = float(column_sums[:n_light].sum())
    q2_heavy = float(column_sums[n_light:].sum())

    if compat_mode and center_sparse:
        q2_heavy += float(grid[center, width:].sum())

    return q2_light, q2_heavy


class ScanWindowExtent:
    """Quantitate labeled identifications from a window of MS1 scans.

    Parameters
    ----------
    params : QuantParams, optional
        Window, tolerance and compatibility settings
    """

    def __init__(self, params: QuantParams = None):
        self.params = params if params is not None else QuantParams()

    def targets_for(self, request: PeptideQuantRequest) -> TargetList:
        return build_target_list(
            request,
            max_light_isotopes=self.params.max_light_isotopes,
            n_heavy=self.params.num_heavy_isotopes,
        )

    def quantitate(self, request: PeptideQuantRequest, source: SpectrumSource) -> QuantResult:
        """Compute extent, raw areas and overlap-corrected areas for one request.

        Empty windows do not raise; they produce an unevaluated zero result.
        """
        params = self.params
        targets = self.targets_for(request)
        logger.debug(
            f"{request.peptide_key}: mzL={request.light_mz} mzH={request.heavy_mz} "
            f"light isotopes={targets.n_light} (safe={request.safe_isotopes})"
        )

        window = scan_window_indices(source, request.scan, params.scans_before, params.scans_after)
        if len(window) == 0:
            logger.debug(f"{request.peptide_key}: no scans in window around scan {request.scan}")
            return empty_result(request, "no scans in window")

        tolerance = params.ppm_tolerance * 1e-6 * request.heavy_mz
        grid = build_intensity_grid(
            source,
            window,
            targets,
            tolerance,
            request.light_mz - params.slice_below_mz,
            request.heavy_mz + params.slice_above_mz,
        )

        match = paired_matches(grid, targets.n_light)
        match_counts = match.sum(axis=1)

        center = min(params.center_index, len(window) - 1)
        left, right = find_extent(match_counts, center)

        q2_light, q2_heavy = sum_window_areas(
            grid,
            match,
            left,
            right,
            center,
            center_fallback=params.center_fallback,
            compat_mode=params.compat_mode,
        )

        q3_light, q3_heavy = solve_window_areas(
            request.heavy_mass, request.separation, q2_light, q2_heavy
        )

        result = QuantResult(
            request=request,
            first_scan=source.scan_num_at(int(window[left])),
            last_scan=source.scan_num_at(int(window[right])),
            q2_light=q2_light,
            q2_heavy=q2_heavy,
            q3_light=q3_light,
            q3_heavy=q3_heavy,
            center_match_count=int(match_counts[center]),
        )
        logger.debug(
            f"{request.peptide_key}: scans {result.first_scan}-{result.last_scan}, "
            f"q2=({q2_light:.1f}, {q2_heavy:.1f}) q3=({q3_light:.1f}, {q3_heavy:.1f})"
        )
        return result


def quantitate_request(
    request: PeptideQuantRequest,
    source: SpectrumSource,
    params: QuantParams = None,
) -> QuantResult:
    """Convenience wrapper around ``ScanWindowExtent.quantitate``."""
    return ScanWindowExtent(params).quantitate(request, source)
