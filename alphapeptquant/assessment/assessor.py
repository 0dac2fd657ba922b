"""Quality assessment of light/heavy quantitation events.

A computed ``QuantResult`` is checked against fresh raw peak intensities
summed over its scan extent. Checks run in increasing cost order:

1. Missing peaks (optional): the first two light or heavy peaks are empty
2. Single-peak ratio: the ratio of the theoretically most intense peak
   disagrees with the algorithm ratio
3. KL comparison: light and heavy envelopes fit their templates very
   differently
4. 2-peak KL cap: either envelope fits its template badly
5. Coeluting peptide: strong signal one isotope below a monoisotope that
   a 2+/3+ peptide cannot explain

The primary flag is the first failing check in that order. By default
assessment stops at the first failure; ``perform_all_checks`` evaluates
everything and keeps every explanation.

Examples
--------
>>> from alphapeptquant.assessment import EventAssessor, AssessmentParams
>>>
>>> assessor = EventAssessor(AssessmentParams.for_label("silac"))
>>> assessment = assessor.assess(result, spectrum_source)
>>> print(assessment.flag.code, assessment.explanation)
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Tuple

import numpy as np

from ..constants import (
    DEFAULT_ASSESSMENT_PPM,
    INFINITE_RATIO_VALUE,
    PROTON_MASS,
    TEMPLATE_NUM_PEAKS,
    THEORETICAL_MASS_WAVELENGTH,
)
from ..exceptions import ConfigurationError
from ..isotopes.envelope import (
    isotope_envelope,
    max_ideal_peak_index,
    normalized_envelope,
    num_peaks_separation,
)
from ..isotopes.overlap import correct_ratio_for_overlap
from ..quant.labels import ACRYLAMIDE_MASSDIFF, SILAC_LYSINE_MASSDIFF
from ..quant.request import QuantResult
from ..quant.spectra import SpectrumSource, scan_range_indices
from .flags import (
    SINGLE_PEAK_RATIO_UNSET,
    AssessmentFlag,
    AssessmentResult,
    unevaluated,
)
from .peak_summary import PeakSetSummary, calc_peak_intensities, template_kl

logger = logging.getLogger(__name__)

# Peaks used for the light and heavy KL scores
KL_NUM_PEAKS = 2

# Ratios are floored here before taking logs
MIN_LOG_RATIO = 1.0 / INFINITE_RATIO_VALUE

_LABEL_MASS_DIFFS = {
    "silac": SILAC_LYSINE_MASSDIFF,
    "acrylamide": ACRYLAMIDE_MASSDIFF,
}


@dataclass
class AssessmentParams:
    """Thresholds for quantitation event assessment."""

    # Raw peak windows, ppm of neutral mass (divided by charge)
    peak_ppm_tolerance: float = DEFAULT_ASSESSMENT_PPM
    num_peaks_to_use: int = 5
    num_scans_around_event: int = 0

    check_missing_peaks: bool = False

    # Single-peak ratio check
    max_log_ratio_diff: float = math.log(1.5)
    extreme_ratio_low: float = 0.5
    extreme_ratio_high: float = 2.0

    # Envelope contributions below which overlap is ignored
    max_light_heavy_overlap_to_ignore: float = 0.02
    min_significant_peak_contribution_below_monoisotope: float = 0.02

    # KL checks
    max_kl_diff: float = 0.15
    min_kl_ratio: float = 0.7
    max_2peak_kl: float = 10.0

    # Coeluting check
    peak_below_intensity_ratio_cutoff: float = 0.35
    coeluting_max_kl: float = 1.0
    coeluting_num_peaks: int = 3

    perform_all_checks: bool = False

    # Ratios strictly inside (low, high) are not assessed
    parity_band: Optional[Tuple[float, float]] = None

    def __post_init__(self):
        if self.peak_ppm_tolerance <= 0:
            raise ConfigurationError(
                f"peak_ppm_tolerance must be positive, got {self.peak_ppm_tolerance}"
            )
        if self.num_peaks_to_use < KL_NUM_PEAKS:
            raise ConfigurationError(
                f"num_peaks_to_use must be at least {KL_NUM_PEAKS}, got {self.num_peaks_to_use}"
            )
        if self.num_scans_around_event < 0:
            raise ConfigurationError("num_scans_around_event must not be negative")
        if self.extreme_ratio_low > self.extreme_ratio_high:
            raise ConfigurationError(
                f"Extreme ratio band is inverted ({self.extreme_ratio_low}, {self.extreme_ratio_high})"
            )
        if self.parity_band is not None and self.parity_band[0] > self.parity_band[1]:
            raise ConfigurationError(f"Parity band is inverted {self.parity_band}")

    @classmethod
    def for_label(cls, label: str) -> 'AssessmentParams':
        """Preset for a standard label.

        Raw peak summaries stop at the last light peak clear of the heavy
        monoisotope (5 for SILAC lysine, 3 for acrylamide).

        Parameters
        ----------
        label : str
            "silac" or "acrylamide"
        """
        key = label.lower()
        if key not in _LABEL_MASS_DIFFS:
            raise ConfigurationError(
                f"Unknown label '{label}', expected one of {sorted(_LABEL_MASS_DIFFS)}"
            )
        separation = int(math.floor(_LABEL_MASS_DIFFS[key] + 0.5))
        return cls(num_peaks_to_use=max(KL_NUM_PEAKS, min(5, separation)))


@dataclass
class _EventData:
    """Per-event values shared between checks."""

    result: QuantResult
    scan_indices: np.ndarray
    light: PeakSetSummary
    heavy: PeakSetSummary
    separation: int
    highest_peak_index: int
    light_has_peak_below_heavy: bool
    light_overlaps_heavy: bool
    light_kl: Optional[float] = None
    heavy_kl: Optional[float] = None
    single_peak_ratio: float = SINGLE_PEAK_RATIO_UNSET

    @property
    def ratio(self) -> float:
        return self.result.ratio


class EventAssessor:
    """Flag questionable quantitation events.

    Parameters
    ----------
    params : AssessmentParams, optional
        Thresholds and check selection
    """

    def __init__(self, params: AssessmentParams = None):
        self.params = params if params is not None else AssessmentParams()

    def assess(self, result: QuantResult, source: SpectrumSource) -> AssessmentResult:
        """Run the checks on one event and return the primary flag.

        ``result`` is not modified.
        """
        params = self.params
        key = result.request.peptide_key

        if not result.evaluated:
            return unevaluated(f"Event was not quantitated: {result.note}")

        if result.heavy_is_zero:
            logger.debug(f"{key}: heavy area is zero, skipping assessment")
            return unevaluated(f"Heavy area is zero (ratio {INFINITE_RATIO_VALUE})")

        ratio = result.ratio
        if params.parity_band is not None:
            low, high = params.parity_band
            if low < ratio < high:
                return unevaluated(f"Ratio {ratio:.3f} inside parity band ({low}, {high})")

        data = self._event_data(result, source)
        if data is None:
            return unevaluated("No scans available for the event extent")

        checks: List[Tuple[AssessmentFlag, Callable[[_EventData, SpectrumSource], Tuple[bool, str]]]] = []
        if params.check_missing_peaks:
            checks.append((AssessmentFlag.MISSING_PEAKS, self._check_missing_peaks))
        checks.extend([
            (AssessmentFlag.DISSIMILAR_MS1_RATIO, self._check_single_peak_ratio),
            (AssessmentFlag.DISSIMILAR_KL, self._check_kl_comparison),
            (AssessmentFlag.BIG_2PEAK_KL, self._check_2peak_kl),
            (AssessmentFlag.COELUTING, self._check_coeluting),
        ])

        explanations: Dict[AssessmentFlag, str] = {}
        failed: List[AssessmentFlag] = []
        for flag, check in checks:
            is_bad, explanation = check(data, source)
            explanations[flag] = explanation
            if is_bad:
                failed.append(flag)
                if not params.perform_all_checks:
                    break

        primary = failed[0] if failed else AssessmentFlag.OK
        logger.debug(
            f"{key}: {primary.code} (ratio={ratio:.3f}, single-peak={data.single_peak_ratio:.3f})"
        )
        return AssessmentResult(
            flag=primary,
            explanations=explanations,
            failed=tuple(failed),
            single_peak_ratio=data.single_peak_ratio,
        )

    def _event_data(self, result: QuantResult, source: SpectrumSource) -> Optional[_EventData]:
        params = self.params
        request = result.request

        scan_indices = scan_range_indices(
            source, result.first_scan, result.last_scan, params.num_scans_around_event
        )
        if scan_indices is None:
            return None

        highest_peak_index = max_ideal_peak_index(request.light_mass, TEMPLATE_NUM_PEAKS)
        n_peaks = max(params.num_peaks_to_use, highest_peak_index + 1)

        light = calc_peak_intensities(
            source, scan_indices, request.light_mass, request.light_mz,
            request.charge, n_peaks, params.peak_ppm_tolerance,
        )
        heavy = calc_peak_intensities(
            source, scan_indices, request.heavy_mass, request.heavy_mz,
            request.charge, n_peaks, params.peak_ppm_tolerance,
        )

        separation = num_peaks_separation(request.light_mass, request.heavy_mass)
        light_envelope = isotope_envelope(request.light_mass, separation + 1)
        logger.debug(
            f"{request.peptide_key}: light peaks {light.peak_intensities}, "
            f"heavy peaks {heavy.peak_intensities}"
        )

        return _EventData(
            result=result,
            scan_indices=scan_indices,
            light=light,
            heavy=heavy,
            separation=separation,
            highest_peak_index=highest_peak_index,
            light_has_peak_below_heavy=bool(
                light_envelope[separation - 1]
                > params.min_significant_peak_contribution_below_monoisotope
            ),
            light_overlaps_heavy=bool(
                light_envelope[separation] > params.max_light_heavy_overlap_to_ignore
            ),
        )

    def _check_missing_peaks(self, data: _EventData, source: SpectrumSource) -> Tuple[bool, str]:
        light = data.light.peak_intensities
        heavy = data.heavy.peak_intensities
        light_missing = light[0] == 0 and light[1] == 0
        heavy_missing = heavy[0] == 0 and heavy[1] == 0
        if light_missing or heavy_missing:
            which = "light and heavy" if light_missing and heavy_missing else (
                "light" if light_missing else "heavy"
            )
            return True, f"Missing first two {which} peaks"
        return False, "First two light and heavy peaks present"

    def _check_single_peak_ratio(self, data: _EventData, source: SpectrumSource) -> Tuple[bool, str]:
        params = self.params
        request = data.result.request
        idx = data.highest_peak_index

        light_peak = float(data.light.peak_intensities[idx])
        heavy_peak = float(data.heavy.peak_intensities[idx])
        if heavy_peak == 0.0:
            single = INFINITE_RATIO_VALUE
        elif light_peak == 0.0:
            single = 0.0
        else:
            single = light_peak / heavy_peak
            intrusion = isotope_envelope(request.light_mass, data.separation + idx + 1)[
                data.separation + idx
            ]
            if intrusion > params.max_light_heavy_overlap_to_ignore:
                single = correct_ratio_for_overlap(
                    request.light_mass, request.heavy_mass, single, idx, idx
                )
        data.single_peak_ratio = single

        ratio = data.ratio
        log_diff = abs(math.log(max(single, MIN_LOG_RATIO)) - math.log(max(ratio, MIN_LOG_RATIO)))
        explanation = (
            f"Single-peak ratio {single:.3f} (peak {idx}) vs algorithm ratio {ratio:.3f}, "
            f"log diff {log_diff:.3f} (max {params.max_log_ratio_diff:.3f})"
        )
        if log_diff <= params.max_log_ratio_diff:
            return False, explanation

        both_low = single < params.extreme_ratio_low and ratio < params.extreme_ratio_low
        both_high = single > params.extreme_ratio_high and ratio > params.extreme_ratio_high
        if both_low or both_high:
            return False, explanation + "; both ratios extreme, not flagged"
        return True, explanation

    def _kl_scores(self, data: _EventData) -> Tuple[float, float]:
        if data.light_kl is None:
            request = data.result.request
            light_ideal = normalized_envelope(request.light_mass, TEMPLATE_NUM_PEAKS)
            heavy_ideal = normalized_envelope(request.heavy_mass, TEMPLATE_NUM_PEAKS)

            if data.light_overlaps_heavy:
                # Fold the light bleed-through into the heavy template
                heavy_ideal = heavy_ideal.copy()
                total = 1.0
                for i in range(len(light_ideal) - data.separation):
                    extra = light_ideal[i + data.separation] * data.ratio
                    heavy_ideal[i] += extra
                    total += extra
                heavy_ideal /= total

            data.light_kl = template_kl(light_ideal, data.light.peak_intensities, KL_NUM_PEAKS)
            data.heavy_kl = template_kl(heavy_ideal, data.heavy.peak_intensities, KL_NUM_PEAKS)
            logger.debug(
                f"{request.peptide_key}: light KL {data.light_kl:.4f}, heavy KL {data.heavy_kl:.4f}"
            )
        return data.light_kl, data.heavy_kl

    def _check_kl_comparison(self, data: _EventData, source: SpectrumSource) -> Tuple[bool, str]:
        params = self.params
        light_kl, heavy_kl = self._kl_scores(data)

        kl_diff = abs(light_kl - heavy_kl)
        kl_ratio = light_kl / heavy_kl if heavy_kl > 0 else math.inf
        explanation = (
            f"Light KL {light_kl:.3f}, heavy KL {heavy_kl:.3f}: diff {kl_diff:.3f}, ratio {kl_ratio:.3f}"
        )
        if not (kl_diff > params.max_kl_diff and kl_ratio < params.min_kl_ratio):
            return False, explanation

        ratio = data.ratio
        heavy_is_worse = heavy_kl > light_kl
        heavy_is_low_abundance = ratio > 1.0
        if heavy_is_worse == heavy_is_low_abundance and (
            ratio < params.extreme_ratio_low or ratio > params.extreme_ratio_high
        ):
            return False, explanation + "; worse fit is the low-abundance species at an extreme ratio"
        return True, explanation

    def _check_2peak_kl(self, data: _EventData, source: SpectrumSource) -> Tuple[bool, str]:
        light_kl, heavy_kl = self._kl_scores(data)
        cap = self.params.max_2peak_kl
        explanation = f"Light KL {light_kl:.3f}, heavy KL {heavy_kl:.3f} (max {cap})"
        return bool(light_kl > cap or heavy_kl > cap), explanation

    def _check_coeluting(self, data: _EventData, source: SpectrumSource) -> Tuple[bool, str]:
        params = self.params
        request = data.result.request

        species = [("light", data.light, request.light_mz)]
        # A light isotope already sits one peak below the heavy monoisotope
        if not data.light_has_peak_below_heavy:
            species.append(("heavy", data.heavy, request.heavy_mz))

        problems = []
        notes = []
        for name, summary, mono_mz in species:
            mono = float(summary.peak_intensities[0])
            below = summary.peak_below_intensity
            if mono > 0:
                below_ratio = below / mono
            else:
                below_ratio = math.inf if below > 0 else 0.0
            notes.append(f"{name} peak-below ratio {below_ratio:.3f}")
            if below_ratio <= params.peak_below_intensity_ratio_cutoff:
                continue

            excused, reason = self._explain_by_other_charge(data, source, mono_mz)
            notes.append(reason)
            if not excused:
                problems.append(name)

        explanation = "; ".join(notes)
        if problems:
            return True, f"Unexplained peak below {' and '.join(problems)} monoisotope: {explanation}"
        return False, explanation

    def _explain_by_other_charge(
        self,
        data: _EventData,
        source: SpectrumSource,
        mono_mz: float,
    ) -> Tuple[bool, str]:
        """Test whether the peak below ``mono_mz`` starts a 2+/3+ peptide's envelope."""
        params = self.params
        charge = data.result.request.charge
        if charge not in (2, 3):
            return False, f"no other-charge explanation for charge {charge}"

        other_charge = 5 - charge
        below_mz = mono_mz - THEORETICAL_MASS_WAVELENGTH / charge
        candidate_mass = (below_mz - PROTON_MASS) * other_charge

        candidate = calc_peak_intensities(
            source,
            data.scan_indices,
            candidate_mass,
            below_mz,
            other_charge,
            params.coeluting_num_peaks,
            params.peak_ppm_tolerance,
        )
        ideal = normalized_envelope(candidate_mass, params.coeluting_num_peaks)
        kl = template_kl(ideal, candidate.peak_intensities, params.coeluting_num_peaks)
        excused = kl < params.coeluting_max_kl
        return excused, (
            f"{other_charge}+ candidate at m/z {below_mz:.4f} KL {kl:.3f}"
            f" ({'explains' if excused else 'does not explain'} it)"
        )
