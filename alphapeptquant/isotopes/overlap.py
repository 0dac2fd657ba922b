"""Light/heavy isotope overlap correction.

When the light and heavy forms of a peptide are separated by only a few
Daltons, the upper isotope peaks of the light form land on top of the heavy
monoisotope and its neighbours. Summing raw peak areas then over-estimates
the heavy species.

The correction treats the observed (raw) light and heavy areas as the
product of a small lower-triangular system:

    [ head   0  ] [ light ]   [ raw_light ]
    [ tail  head] [ heavy ] = [ raw_heavy ]

where ``head`` is the fraction of a full envelope covered by the peaks that
were summed, and ``tail`` is the fraction of the light envelope that falls
on those same peak positions of the heavy envelope. Corrected areas are the
inferred sums over *all* isotope peaks, so they can be noticeably larger
than the raw areas for heavy peptides.

Both the quantitation window (``solve_window_areas``) and the general form
(``correct_light_heavy_areas``) go through ``overlap_head_tail`` and
``solve_overlap_system``, so the two always agree.

Notes
-----
The envelope is evaluated at the *heavy* mass for both species. This is a
historical choice that is preserved for numerical equivalence with existing
results; at the masses involved the difference is negligible.

Examples
--------
>>> light, heavy = correct_light_heavy_areas(1000.0, 1006.0, 5e6, 5e6, 0, 5)
>>> ratio = ratio_from_areas(light, heavy)
"""

from __future__ import annotations

import logging
from typing import Tuple

import numpy as np

from ..constants import INFINITE_RATIO_VALUE
from .envelope import isotope_envelope, num_peaks_separation

logger = logging.getLogger(__name__)


def overlap_head_tail(
    heavy_mass: float,
    separation: int,
    first_peak: int,
    last_peak: int,
) -> Tuple[float, float]:
    """Envelope coverage of the summed peaks and the light bleed onto heavy.

    Parameters
    ----------
    heavy_mass : float
        Neutral mass the envelope is evaluated at
    separation : int
        Whole Daltons between light and heavy monoisotopes
    first_peak : int
        First isotope index included in the raw sums (0 = monoisotope)
    last_peak : int
        Last isotope index included in the raw sums (inclusive)

    Returns
    -------
    head : float
        Sum of envelope[first_peak..last_peak]
    tail : float
        Sum of envelope[separation+first_peak..separation+last_peak]
    """
    if last_peak < first_peak or separation < 0:
        return 0.0, 0.0

    envelope = isotope_envelope(float(heavy_mass), separation + last_peak + 1)
    head = float(envelope[first_peak:last_peak + 1].sum())
    tail = float(envelope[separation + first_peak:separation + last_peak + 1].sum())
    return head, tail


def solve_overlap_system(
    head: float,
    tail: float,
    raw_light_area: float,
    raw_heavy_area: float,
) -> Tuple[float, float]:
    """Solve ``[[head, 0], [tail, head]] @ [light, heavy] = [raw_light, raw_heavy]``.

    The corrected heavy area is clamped to zero. A zero ``head`` means
    nothing of the envelope was observed; both areas are then reported as 0
    so callers fall through to their sentinel ratio.
    """
    if head <= 0:
        logger.debug(f"Overlap system has zero head (tail={tail}); areas set to 0")
        return 0.0, 0.0

    corrected_light = raw_light_area / head
    corrected_heavy = (raw_heavy_area - tail * corrected_light) / head
    if corrected_heavy < 0.0:
        corrected_heavy = 0.0
    return corrected_light, corrected_heavy


def correct_light_heavy_areas(
    light_mass: float,
    heavy_mass: float,
    raw_light_area: float,
    raw_heavy_area: float,
    first_peak: int = 0,
    highest_peak_max: int = 5,
) -> Tuple[float, float]:
    """Account for light intrusion onto heavy and return adjusted areas.

    Raw areas are assumed to be sums over isotope peaks ``first_peak``
    through the last light peak that is clear of the heavy envelope and
    does not exceed ``highest_peak_max``.

    Parameters
    ----------
    light_mass, heavy_mass : float
        Neutral monoisotopic masses
    raw_light_area, raw_heavy_area : float
        Summed raw peak intensities
    first_peak : int
        First isotope index used in the raw sums (0-based)
    highest_peak_max : int
        Maximum isotope index used in the raw sums. Capped at the number of
        overlap-free light peaks (separation - 1).

    Returns
    -------
    corrected_light, corrected_heavy : float
        Inferred total areas; heavy is never negative.
    """
    separation = num_peaks_separation(light_mass, heavy_mass)
    max_peak_used = min(highest_peak_max, separation - 1)

    head, tail = overlap_head_tail(heavy_mass, separation, first_peak, max_peak_used)
    corrected_light, corrected_heavy = solve_overlap_system(
        head, tail, raw_light_area, raw_heavy_area
    )

    logger.debug(
        f"Raw: {raw_light_area}, {raw_heavy_area}. Sep: {separation}. "
        f"head={head}, tail={tail}. Corrected: {corrected_light}, {corrected_heavy}"
    )
    return corrected_light, corrected_heavy


def solve_window_areas(
    heavy_mass: float,
    separation: int,
    q2_light: float,
    q2_heavy: float,
) -> Tuple[float, float]:
    """Overlap-correct the summed areas of a quantitation window.

    The window sums every overlap-free light peak (``separation`` of them),
    which is the general form with ``first_peak=0`` and
    ``last_peak=separation-1``.
    """
    head, tail = overlap_head_tail(heavy_mass, separation, 0, separation - 1)
    return solve_overlap_system(head, tail, q2_light, q2_heavy)


def ratio_from_areas(light_area: float, heavy_area: float) -> float:
    """Light/heavy ratio with ``INFINITE_RATIO_VALUE`` for a zero heavy area."""
    if heavy_area == 0:
        return INFINITE_RATIO_VALUE
    return light_area / heavy_area


def correct_ratio_for_overlap(
    light_mass: float,
    heavy_mass: float,
    ratio: float,
    first_peak: int = 0,
    max_peaks: int = 5,
) -> float:
    """Overlap-correct a light/heavy ratio.

    Only the ratio matters, so the light area is fixed at 1 and the heavy
    area at ``1 / ratio``.
    """
    if ratio <= 0:
        return 0.0
    if not np.isfinite(ratio):
        return INFINITE_RATIO_VALUE

    light, heavy = correct_light_heavy_areas(
        light_mass, heavy_mass, 1.0, 1.0 / ratio, first_peak, max_peaks
    )
    return ratio_from_areas(light, heavy)
