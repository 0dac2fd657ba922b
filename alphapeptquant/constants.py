"""Physical constants, sentinel values and default settings for labeled quantitation.

This module collects every fixed number the quantitation and assessment code
relies on, so that the numerical behaviour of the whole package can be read
off in one place.

Key Features
------------
- Correct PROTON_MASS (1.007276466622 Da, not hydrogen atom mass!)
- Truncated 25-entry factorial table used by the Poisson isotope model
- Isotope spacings used for target building and for peak assessment
- Sentinel values substituted for undefined light/heavy ratios
- Default tolerances and window sizes

Sources
-------
- NIST physical constants: https://physics.nist.gov/cgi-bin/cuu/Value
- Poisson isotope approximation: lambda = mass / 1800 (empirical)
"""

import numpy as np

# =============================================================================
# Fundamental Physical Constants (NIST values)
# =============================================================================

# Proton mass (NOT hydrogen atom mass!)
# Source: NIST 2018 CODATA
PROTON_MASS = 1.007276466622  # Da

# =============================================================================
# Isotope Spacing
# =============================================================================

# Spacing used when building the light/heavy target lists.
# Targets are laid out on an exact 1 Da grid divided by charge.
TARGET_ISOTOPE_SPACING = 1.0  # Da

# Empirical peptide isotope wavelength, used when summing raw peak windows
# during event assessment
THEORETICAL_MASS_WAVELENGTH = 1.000476  # Da

# =============================================================================
# Poisson Isotope Model
# =============================================================================

# lambda = mass / POISSON_MASS_SCALE
POISSON_MASS_SCALE = 1800.0  # Da

# First 25 elements of the factorial sequence. Values from 15! onwards are
# truncated to 7 significant digits; keep them that way so envelopes stay
# numerically identical to historical results.
FACTORIAL_SEQUENCE_25 = np.array([
    1.0, 1.0, 2.0, 6.0, 24.0,
    120.0, 720.0, 5040.0, 40320.0, 362880.0,
    3628800.0, 39916800.0, 479001600.0, 6227020800.0, 87178291200.0,
    1.307674e+12, 2.092279e+13, 3.556874e+14, 6.402374e+15, 1.216451e+17,
    2.432902e+18, 5.109094e+19, 1.124001e+21, 2.585202e+22, 6.204484e+23,
], dtype=np.float64)

# Number of peaks in the normalized isotope template used for KL scoring
TEMPLATE_NUM_PEAKS = 6

# =============================================================================
# Ratio Sentinels
# =============================================================================

# Ratio reported by the overlap correction when the corrected heavy area is 0
INFINITE_RATIO_VALUE = 999.0

# Fixed stand-ins written to result records when heavy area is zero
SENTINEL_POSITIVE_INFINITY = 999.0
SENTINEL_NAN = -666.0

# =============================================================================
# Default Quantitation Settings
# =============================================================================

# Peak matching tolerance in PPM of the heavy monoisotopic m/z
DEFAULT_PEAK_MATCH_PPM = 25.0  # ppm

# Scans taken before / after the identification scan
DEFAULT_SCANS_BEFORE = 10
DEFAULT_SCANS_AFTER = 20

# Window row treated as the center of the event
DEFAULT_CENTER_INDEX = 9

# Largest light isotope index searched, and number of heavy isotopes searched
DEFAULT_MAX_LIGHT_ISOTOPES = 5
DEFAULT_NUM_HEAVY_ISOTOPES = 6

# Noise guard for local maximum detection
LOCAL_MAXIMA_EPSILON = 1e-10

# Light/heavy residue masses closer than this are considered equal
MASS_MATCH_THRESHOLD = 0.01  # Da

# Tolerance used for raw peak windows during assessment
DEFAULT_ASSESSMENT_PPM = 50.0  # ppm

# =============================================================================
# Mass Accuracy Validation
# =============================================================================

def validate_constants():
    """Validate that constants are physically reasonable.

    Raises AssertionError if any constant is out of expected range.
    """
    assert 1.0072 < PROTON_MASS < 1.0073, f"PROTON_MASS is wrong: {PROTON_MASS}"

    # Factorial table must be monotonic and start at 0! = 1
    assert FACTORIAL_SEQUENCE_25[0] == 1.0
    assert np.all(np.diff(FACTORIAL_SEQUENCE_25[1:]) > 0), "factorial table not increasing"

    # Sentinels must not collide with plausible ratios of opposite meaning
    assert SENTINEL_NAN < 0 < SENTINEL_POSITIVE_INFINITY
