"""Quantitation requests, target lists and results.

A ``PeptideQuantRequest`` describes one identification that carries an
isotopic label: where it was seen and the light/heavy masses to look for.
A ``QuantResult`` holds what the scan window produced for it.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import numpy as np

from ..constants import (
    DEFAULT_MAX_LIGHT_ISOTOPES,
    DEFAULT_NUM_HEAVY_ISOTOPES,
    PROTON_MASS,
    TARGET_ISOTOPE_SPACING,
)
from ..exceptions import ConfigurationError
from ..isotopes.envelope import num_peaks_separation
from ..isotopes.overlap import ratio_from_areas


@dataclass(frozen=True)
class PeptideQuantRequest:
    """One labeled identification to quantitate.

    Masses are neutral monoisotopic masses in Da.
    """

    peptide_key: str
    charge: int
    scan: int
    light_mass: float
    heavy_mass: float

    # Identity carried through to result records
    peptide_id: int = 0
    sequence: str = ""
    protein: str = ""
    is_heavy: bool = False

    def __post_init__(self):
        if self.charge < 1:
            raise ConfigurationError(
                f"Charge must be at least 1 for {self.peptide_key}, got {self.charge}"
            )
        if self.heavy_mass <= self.light_mass or self.light_mass < 0:
            raise ConfigurationError(
                f"Inconsistent light and heavy masses for {self.peptide_key} "
                f"({self.light_mass} and {self.heavy_mass})"
            )
        if self.separation < 1:
            raise ConfigurationError(
                f"Light and heavy masses of {self.peptide_key} are less than 0.5 Da apart "
                f"({self.light_mass} and {self.heavy_mass})"
            )

    @property
    def light_mz(self) -> float:
        return self.light_mass / self.charge + PROTON_MASS

    @property
    def heavy_mz(self) -> float:
        return self.heavy_mass / self.charge + PROTON_MASS

    @property
    def separation(self) -> int:
        """Whole Daltons between the light and heavy monoisotopes."""
        return num_peaks_separation(self.light_mass, self.heavy_mass)

    @property
    def safe_isotopes(self) -> int:
        """Highest light isotope index that does not land on the heavy envelope."""
        return self.separation - 1


@dataclass(frozen=True)
class TargetList:
    """m/z values searched in every scan: light series, then heavy series."""

    mz: np.ndarray
    n_light: int
    n_heavy: int

    def __len__(self) -> int:
        return len(self.mz)

    @property
    def light_mz(self) -> np.ndarray:
        return self.mz[:self.n_light]

    @property
    def heavy_mz(self) -> np.ndarray:
        return self.mz[self.n_light:]


def build_target_list(
    request: PeptideQuantRequest,
    max_light_isotopes: int = DEFAULT_MAX_LIGHT_ISOTOPES,
    n_heavy: int = DEFAULT_NUM_HEAVY_ISOTOPES,
) -> TargetList:
    """Build the light and heavy isotope targets for a request.

    The light series stops at ``min(safe_isotopes, max_light_isotopes)`` so
    no light target sits on a heavy peak.

    Example
    -------
    >>> request = PeptideQuantRequest("PEPTIDEK", 2, 100, 1000.0, 1006.0)
    >>> targets = build_target_list(request)
    >>> targets.n_light, targets.n_heavy
    (6, 6)
    """
    n_light = min(request.safe_isotopes, max_light_isotopes) + 1
    spacing = TARGET_ISOTOPE_SPACING / request.charge

    light = request.light_mz + np.arange(n_light) * spacing
    heavy = request.heavy_mz + np.arange(n_heavy) * spacing
    return TargetList(
        mz=np.concatenate([light, heavy]).astype(np.float64),
        n_light=n_light,
        n_heavy=n_heavy,
    )


@dataclass(frozen=True)
class QuantResult:
    """Areas and extent computed for one request.

    Scan bounds are real scan numbers, not indices. ``q3_*`` are the
    overlap-corrected areas; ``q3_heavy`` is never negative.
    """

    request: PeptideQuantRequest
    first_scan: int
    last_scan: int
    q2_light: float
    q2_heavy: float
    q3_light: float
    q3_heavy: float
    center_match_count: int
    evaluated: bool = True
    note: Optional[str] = None

    @property
    def ratio(self) -> float:
        """Corrected light/heavy ratio; ``INFINITE_RATIO_VALUE`` for zero heavy area."""
        return ratio_from_areas(self.q3_light, self.q3_heavy)

    @property
    def heavy_is_zero(self) -> bool:
        return self.q3_heavy == 0.0


def empty_result(request: PeptideQuantRequest, note: str) -> QuantResult:
    """Result for a request that could not be evaluated at all."""
    return QuantResult(
        request=request,
        first_scan=request.scan,
        last_scan=request.scan,
        q2_light=0.0,
        q2_heavy=0.0,
        q3_light=0.0,
        q3_heavy=0.0,
        center_match_count=0,
        evaluated=False,
        note=note,
    )
