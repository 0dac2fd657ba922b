"""Pytest configuration for AlphaPeptQuant tests.

Provides synthetic MS1 runs with clean light/heavy Poisson envelopes
eluting over a handful of scans. Peaks are written in profile mode (five
points per isotope peak) so that local-maximum detection sees one apex
per peak, as in real data.
"""

import numpy as np
import pytest

from alphapeptquant.constants import PROTON_MASS, THEORETICAL_MASS_WAVELENGTH
from alphapeptquant.isotopes import isotope_envelope
from alphapeptquant.quant import InMemorySpectrumSource, PeptideQuantRequest

# Profile shape of one centroid: m/z offsets and relative heights
PROFILE_OFFSETS = np.array([-0.006, -0.003, 0.0, 0.003, 0.006])
PROFILE_SHAPE = np.array([0.3, 0.7, 1.0, 0.7, 0.3])

# Centroids closer than this are not resolved and appear as one peak
UNRESOLVED_MZ = 0.002

FIRST_SCAN_NUM = 1000
SCAN_NUM_STEP = 2
ID_SCAN_INDEX = 10
ELUTION_APEX_INDEX = 12
ELUTION_SIGMA = 2.5
MIN_ELUTION_AMPLITUDE = 0.05


def merge_unresolved(centroids):
    """Sum centroids closer than ``UNRESOLVED_MZ`` into one peak."""
    merged = []
    for c_mz, c_int in sorted(centroids):
        if merged and c_mz - merged[-1][0] < UNRESOLVED_MZ:
            m_mz, m_int = merged[-1]
            total = m_int + c_int
            merged[-1] = ((m_mz * m_int + c_mz * c_int) / total, total)
        else:
            merged.append((c_mz, c_int))
    return merged


def profile_peaks(centroids):
    """Expand (m/z, intensity) centroids into sorted profile arrays."""
    if not centroids:
        return np.zeros(0), np.zeros(0)
    centroids = merge_unresolved(centroids)
    mz = np.concatenate([c_mz + PROFILE_OFFSETS for c_mz, _ in centroids])
    intensity = np.concatenate([c_int * PROFILE_SHAPE for _, c_int in centroids])
    order = np.argsort(mz, kind="mergesort")
    return mz[order], intensity[order]


def envelope_centroids(mono_mz, charge, mass, scale, n_peaks=6, factors=None):
    """Centroids of a Poisson envelope starting at ``mono_mz``."""
    envelope = isotope_envelope(mass, n_peaks)
    if factors is not None:
        envelope = envelope * np.asarray(factors, dtype=np.float64)
    return [
        (mono_mz + k * THEORETICAL_MASS_WAVELENGTH / charge, scale * envelope[k])
        for k in range(n_peaks)
        if envelope[k] > 0
    ]


def elution_profile(n_scans):
    idx = np.arange(n_scans)
    amplitude = np.exp(-((idx - ELUTION_APEX_INDEX) ** 2) / (2 * ELUTION_SIGMA ** 2))
    amplitude[amplitude < MIN_ELUTION_AMPLITUDE] = 0.0
    return amplitude


def make_pair_run(
    light_mass=1000.0,
    heavy_mass=1006.0,
    charge=2,
    ratio=1.0,
    n_scans=40,
    light_intensity=1e6,
    heavy_factors=None,
    extra_centroids=None,
    run_name="synthetic",
):
    """Synthetic run with one light/heavy pair at light:heavy = ``ratio``.

    ``extra_centroids(scale) -> list of (m/z, intensity)`` adds peaks
    to every scan where the pair elutes.
    """
    light_mz = light_mass / charge + PROTON_MASS
    heavy_mz = heavy_mass / charge + PROTON_MASS
    amplitudes = elution_profile(n_scans)

    mz_arrays = []
    intensity_arrays = []
    for amplitude in amplitudes:
        centroids = []
        if amplitude > 0:
            scale = light_intensity * amplitude
            centroids += envelope_centroids(light_mz, charge, light_mass, scale)
            centroids += envelope_centroids(
                heavy_mz, charge, heavy_mass, scale / ratio, factors=heavy_factors
            )
            if extra_centroids is not None:
                centroids += extra_centroids(scale)
        # Background ion outside every quantitation slice
        centroids.append((300.0, 5e3))
        mz, intensity = profile_peaks(centroids)
        mz_arrays.append(mz)
        intensity_arrays.append(intensity)

    scan_numbers = FIRST_SCAN_NUM + SCAN_NUM_STEP * np.arange(n_scans)
    return InMemorySpectrumSource(scan_numbers, mz_arrays, intensity_arrays, run_name=run_name)


@pytest.fixture
def pair_request():
    """Charge 2, light 1000 Da, heavy 1006 Da, identified at the 11th scan."""
    return PeptideQuantRequest(
        peptide_key="PEPTIDEK_2_1020",
        charge=2,
        scan=FIRST_SCAN_NUM + SCAN_NUM_STEP * ID_SCAN_INDEX,
        light_mass=1000.0,
        heavy_mass=1006.0,
        sequence="PEPTIDEK",
    )


@pytest.fixture
def pair_run():
    """Clean 1:1 light/heavy run matching ``pair_request``."""
    return make_pair_run()


@pytest.fixture
def elution_amplitudes():
    """Per-scan elution amplitude of the synthetic pair (40 scans)."""
    return elution_profile(40)


@pytest.fixture
def pair_run_factory():
    """Factory for synthetic runs with custom ratio or distortions."""
    return make_pair_run


# Random seed for reproducibility
@pytest.fixture(scope="session", autouse=True)
def set_random_seed():
    """Set random seed for reproducible tests."""
    np.random.seed(42)
