"""Isotope envelope model and light/heavy overlap correction.

This module provides the Poisson isotope approximation shared by the
quantitation window and the event assessor, and the single overlap
correction both of them use.

Key Features
------------
- Numba-compiled Poisson envelope (lambda = mass / 1800)
- Normalized 6-peak templates for KL scoring
- One head/tail computation and one 2x2 solve, used everywhere
- Corrected heavy areas clamped to zero

Examples
--------
>>> from alphapeptquant.isotopes import isotope_envelope, correct_light_heavy_areas
>>>
>>> envelope = isotope_envelope(1800.0, 5)
>>> light, heavy = correct_light_heavy_areas(1000.0, 1003.0, 1e6, 8e5)
"""

from .envelope import (
    isotope_envelope,
    max_ideal_peak_index,
    normalized_envelope,
    num_peaks_separation,
)
from .overlap import (
    correct_light_heavy_areas,
    correct_ratio_for_overlap,
    overlap_head_tail,
    ratio_from_areas,
    solve_overlap_system,
    solve_window_areas,
)

__all__ = [
    # Envelope
    "isotope_envelope",
    "normalized_envelope",
    "max_ideal_peak_index",
    "num_peaks_separation",
    # Overlap correction
    "overlap_head_tail",
    "solve_overlap_system",
    "correct_light_heavy_areas",
    "solve_window_areas",
    "correct_ratio_for_overlap",
    "ratio_from_areas",
]
