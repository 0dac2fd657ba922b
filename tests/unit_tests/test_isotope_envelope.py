"""Tests for the Poisson isotope envelope.

This module tests the envelope values, the normalized KL template, the
most-intense-peak index and the light/heavy peak separation.
"""

import numpy as np
import pytest

from alphapeptquant.constants import FACTORIAL_SEQUENCE_25, validate_constants
from alphapeptquant.isotopes import (
    isotope_envelope,
    max_ideal_peak_index,
    normalized_envelope,
    num_peaks_separation,
)


# =============================================================================
# Tests for Envelope Values
# =============================================================================


def test_envelope_zero_mass():
    """Mass 0 puts all abundance in the monoisotope."""
    envelope = isotope_envelope(0.0, 6)

    assert envelope[0] == 1.0
    np.testing.assert_array_equal(envelope[1:], np.zeros(5))


def test_envelope_lambda_one():
    """Mass 1800 gives the lambda = 1 Poisson distribution."""
    envelope = isotope_envelope(1800.0, 5)

    expected = [0.3679, 0.3679, 0.1839, 0.0613, 0.0153]
    np.testing.assert_allclose(envelope, expected, atol=1e-3)


def test_envelope_length():
    for n_peaks in [1, 3, 6, 10]:
        assert len(isotope_envelope(1000.0, n_peaks)) == n_peaks


def test_envelope_not_normalized():
    """Raw envelope sums approach 1 only as more peaks are included."""
    short = isotope_envelope(2500.0, 3).sum()
    long = isotope_envelope(2500.0, 12).sum()

    assert short < long < 1.0 + 1e-12
    assert long == pytest.approx(1.0, abs=1e-6)


def test_envelope_beyond_factorial_table():
    """Entries past the 25-entry factorial table are zero."""
    envelope = isotope_envelope(50000.0, 30)

    assert len(FACTORIAL_SEQUENCE_25) == 25
    np.testing.assert_array_equal(envelope[25:], np.zeros(5))
    assert envelope[24] > 0


def test_envelope_shifts_with_mass():
    """Heavier peptides have relatively more M+1."""
    small = isotope_envelope(800.0, 3)
    large = isotope_envelope(3000.0, 3)

    assert small[1] / small[0] < large[1] / large[0]


def test_constants_consistent():
    validate_constants()


# =============================================================================
# Tests for Templates and Peak Indices
# =============================================================================


def test_normalized_envelope_sums_to_one():
    for mass in [500.0, 1000.0, 2500.0, 6000.0]:
        template = normalized_envelope(mass)
        assert len(template) == 6
        assert template.sum() == pytest.approx(1.0, abs=1e-12)


def test_normalized_envelope_shape_matches_raw():
    raw = isotope_envelope(1500.0, 4)
    template = normalized_envelope(1500.0, 4)

    np.testing.assert_allclose(template, raw / raw.sum())


def test_max_ideal_peak_index():
    # lambda < 1: monoisotope is the most intense peak
    assert max_ideal_peak_index(1000.0) == 0

    # lambda = 2.5: M+2 is the mode
    assert max_ideal_peak_index(4500.0) == 2

    # lambda = 1: M+0 and M+1 tie, lower index wins
    assert max_ideal_peak_index(1800.0) == 0


@pytest.mark.parametrize(
    "light, heavy, expected",
    [
        (1000.0, 1006.0, 6),
        (1000.0, 1006.020129, 6),
        (1000.0, 1003.01, 3),
        (1000.0, 1002.5, 3),
        (1000.0, 1002.49, 2),
        (1000.0, 1000.3, 0),
    ],
)
def test_num_peaks_separation(light, heavy, expected):
    assert num_peaks_separation(light, heavy) == expected
