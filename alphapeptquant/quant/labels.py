"""Isotopic labels and turning identifications into quantitation requests.

A label is a residue and the mass difference between its heavy and light
forms (e.g. SILAC lysine, +6.020129 Da; acrylamide cysteine, +3.0106 Da).
Residue masses come from the search modifications: the static modification
is the light form, the variable one the heavy form. If only one of them was
searched, the other is inferred from the mass difference.

An identification is quantitated when every labelable residue in it is in
the same state (all light or all heavy). Partially labeled peptides are
skipped with a warning; peptides without labelable residues are ignored.
"""

from __future__ import annotations

import logging
import warnings
from dataclasses import dataclass, replace
from typing import Dict, Iterable, List, Optional, Sequence

from ..constants import MASS_MATCH_THRESHOLD
from ..exceptions import ConfigurationError
from .request import PeptideQuantRequest

logger = logging.getLogger(__name__)

# Common label definitions (residue, mass difference)
SILAC_LYSINE_MASSDIFF = 6.020129  # Da, 13C6 lysine
ACRYLAMIDE_MASSDIFF = 3.0101100  # Da, d3-acrylamide on cysteine


@dataclass
class IsotopicLabel:
    """Residue label with light/heavy residue masses.

    Residue masses start at 0 (unknown) and are filled in by
    ``resolve_label_masses``.
    """

    residue: str
    mass_diff: float
    light_mass: float = 0.0
    heavy_mass: float = 0.0

    def __post_init__(self):
        if self.residue in ("[", "]", "n", "c"):
            raise ConfigurationError(
                "N-terminal and C-terminal labels are not currently supported"
            )
        if len(self.residue) != 1:
            raise ConfigurationError(f"Label residue must be a single character, got '{self.residue}'")

    @classmethod
    def silac_lysine(cls) -> 'IsotopicLabel':
        return cls("K", SILAC_LYSINE_MASSDIFF)

    @classmethod
    def acrylamide(cls) -> 'IsotopicLabel':
        return cls("C", ACRYLAMIDE_MASSDIFF)


@dataclass(frozen=True)
class SearchModification:
    """A residue modification declared for the search of one run."""

    amino_acid: str
    mass: float
    variable: bool


@dataclass(frozen=True)
class PeptideIdentification:
    """One peptide-spectrum match as delivered by an identification reader.

    ``modified_masses`` holds, per residue, the modified residue mass or
    None for unmodified residues (None overall when nothing is modified).
    """

    peptide_id: int
    sequence: str
    charge: int
    scan: int
    calculated_neutral_mass: float
    modified_masses: Optional[Sequence[Optional[float]]] = None
    probability: Optional[float] = None
    delta_mass: float = 0.0
    protein: str = ""


def _close_enough(m1: float, m2: float) -> bool:
    return abs(m1 - m2) < MASS_MATCH_THRESHOLD


def resolve_label_masses(
    labels: Dict[str, IsotopicLabel],
    modifications: Iterable[SearchModification],
    run_name: Optional[str] = None,
) -> Dict[str, IsotopicLabel]:
    """Fill in light and heavy residue masses from search modifications.

    The passed labels are not modified; resolved copies are returned.

    Raises
    ------
    ConfigurationError
        If a label residue has neither a static nor a variable modification,
        or the resulting masses are negative or inverted.
    """
    if not labels:
        raise ConfigurationError("Must specify at least one isotopic label", run_name=run_name)

    labels = {residue: replace(label) for residue, label in labels.items()}
    for mod in modifications:
        label = labels.get(mod.amino_acid[:1])
        if label is None:
            continue
        if mod.variable:
            label.heavy_mass = mod.mass
        else:
            label.light_mass = mod.mass

    for label in labels.values():
        light, heavy = label.light_mass, label.heavy_mass
        if light == 0.0 and heavy == 0.0:
            raise ConfigurationError(
                f"No static or variable modification found for labeled residue '{label.residue}'",
                run_name=run_name,
            )
        if heavy == 0.0:
            label.heavy_mass = light + label.mass_diff
        elif light == 0.0:
            label.light_mass = heavy - label.mass_diff

        if label.light_mass < 0 or label.heavy_mass < 0 or label.heavy_mass < label.light_mass:
            raise ConfigurationError(
                f"Inconsistent light and heavy masses ({label.light_mass} and {label.heavy_mass})",
                run_name=run_name,
            )

        searched_diff = label.heavy_mass - label.light_mass
        if abs(searched_diff - label.mass_diff) > MASS_MATCH_THRESHOLD:
            warnings.warn(
                f"Specified quantitation mass diff, {label.mass_diff}, may not be compatible "
                f"with mass diff used in search {searched_diff}"
            )
        logger.debug(f"Label {label.residue}: light={label.light_mass} heavy={label.heavy_mass}")

    return labels


@dataclass
class IdentificationFilter:
    """Optional filters applied before quantitation.

    ``max_frac_delta_mass`` limits how far the precursor mass error is from
    a whole number of Daltons (isotope errors are allowed), in ppm of the
    calculated mass or in Da.
    """

    min_probability: Optional[float] = None
    max_frac_delta_mass: Optional[float] = None
    frac_delta_mass_is_ppm: bool = True

    def __post_init__(self):
        if self.min_probability is not None and self.min_probability > 1.0:
            raise ConfigurationError("PeptideProphet cutoff must not exceed 1.0")

    def accepts(self, identification: PeptideIdentification) -> bool:
        if self.min_probability is not None and identification.probability is not None:
            if identification.probability < self.min_probability:
                return False

        if self.max_frac_delta_mass is not None:
            delta = identification.delta_mass
            frac_delta = abs(delta - round(delta))
            if self.frac_delta_mass_is_ppm:
                frac_delta = 1e6 * frac_delta / identification.calculated_neutral_mass
            if frac_delta > self.max_frac_delta_mass:
                return False

        return True


def build_quant_request(
    identification: PeptideIdentification,
    labels: Dict[str, IsotopicLabel],
) -> Optional[PeptideQuantRequest]:
    """Classify an identification as light or heavy and build its request.

    Returns None for unlabeled and partially labeled peptides, and for
    identifications whose charge or masses cannot form a valid request.
    """
    total_mass_diff = 0.0
    count_potential = 0
    count_light = 0
    count_heavy = 0

    mods = identification.modified_masses
    for i, residue in enumerate(identification.sequence):
        label = labels.get(residue)
        if label is None:
            continue

        count_potential += 1
        total_mass_diff += label.mass_diff

        # Unmodified is assumed light (e.g. 12C lysine in SILAC)
        mass = None if mods is None else mods[i]
        if mass is None or mass == 0.0 or _close_enough(mass, label.light_mass):
            count_light += 1
        elif _close_enough(mass, label.heavy_mass):
            count_heavy += 1

    if count_potential == 0:
        return None

    if count_light < count_potential and count_heavy < count_potential:
        logger.warning(f"Skipping partially labeled peptide: {identification.sequence}")
        return None

    is_heavy = count_heavy == count_potential
    mass = identification.calculated_neutral_mass
    if is_heavy:
        light_mass, heavy_mass = mass - total_mass_diff, mass
    else:
        light_mass, heavy_mass = mass, mass + total_mass_diff

    peptide_key = f"{identification.sequence}_{identification.charge}_{identification.scan}"
    try:
        return PeptideQuantRequest(
            peptide_key=peptide_key,
            charge=identification.charge,
            scan=identification.scan,
            light_mass=light_mass,
            heavy_mass=heavy_mass,
            peptide_id=identification.peptide_id,
            sequence=identification.sequence,
            protein=identification.protein,
            is_heavy=is_heavy,
        )
    except ConfigurationError as e:
        logger.warning(f"Skipping identification {peptide_key}: {e.user_msg}")
        return None


def build_quant_requests(
    identifications: Iterable[PeptideIdentification],
    labels: Dict[str, IsotopicLabel],
    id_filter: Optional[IdentificationFilter] = None,
) -> List[PeptideQuantRequest]:
    """Build requests for all labeled identifications passing ``id_filter``."""
    requests = []
    n_total = 0
    n_filtered = 0
    for identification in identifications:
        n_total += 1
        if id_filter is not None and not id_filter.accepts(identification):
            n_filtered += 1
            continue
        request = build_quant_request(identification, labels)
        if request is not None:
            requests.append(request)

    logger.info(
        f"✓ {len(requests):,} labeled requests from {n_total:,} identifications "
        f"({n_filtered:,} filtered)"
    )
    return requests
