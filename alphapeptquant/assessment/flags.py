"""Assessment flags and results."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Tuple

# Single-peak ratio reported when the check was never reached
SINGLE_PEAK_RATIO_UNSET = -1.0


class AssessmentFlag(Enum):
    """Primary verdict on a quantitation event."""

    OK = "OK"
    COELUTING = "Coeluting"
    DISSIMILAR_KL = "DissimilarKL"
    DISSIMILAR_MS1_RATIO = "DissimilarMS1Ratio"
    BIG_2PEAK_KL = "Big2PeakKL"
    MISSING_PEAKS = "MissingPeaks"
    UNEVALUATED = "Unevaluated"
    OTHER = "Other"

    @property
    def code(self) -> str:
        return self.value

    @property
    def description(self) -> str:
        return _DESCRIPTIONS[self]

    @classmethod
    def from_code(cls, code: str) -> 'AssessmentFlag':
        """Parse a flag code; unknown codes parse to ``UNEVALUATED``."""
        for flag in cls:
            if flag.value == code:
                return flag
        return _LEGACY_CODES.get(code, cls.UNEVALUATED)


_DESCRIPTIONS = {
    AssessmentFlag.OK: "OK",
    AssessmentFlag.COELUTING: "Coeluting peptide",
    AssessmentFlag.DISSIMILAR_KL: "Dissimilar light/heavy KL",
    AssessmentFlag.DISSIMILAR_MS1_RATIO: "Singlepeak Ratio Different",
    AssessmentFlag.BIG_2PEAK_KL: "Big 2-peak KL",
    AssessmentFlag.MISSING_PEAKS: "Missing peaks",
    AssessmentFlag.UNEVALUATED: "Unevaluated",
    AssessmentFlag.OTHER: "Other",
}

# Codes written by older review files
_LEGACY_CODES = {
    "CoelutingPeptide": AssessmentFlag.COELUTING,
    "MS1MS2RatioDiff": AssessmentFlag.DISSIMILAR_MS1_RATIO,
}


@dataclass(frozen=True)
class AssessmentResult:
    """Outcome of assessing one quantitation event.

    ``explanations`` maps every flag whose check was evaluated to a short
    text; ``failed`` lists the failing checks in evaluation order, the first
    of which is the primary ``flag``.
    """

    flag: AssessmentFlag
    explanations: Dict[AssessmentFlag, str] = field(default_factory=dict)
    failed: Tuple[AssessmentFlag, ...] = ()
    single_peak_ratio: float = SINGLE_PEAK_RATIO_UNSET

    @property
    def explanation(self) -> str:
        """Explanation of the primary flag."""
        return self.explanations.get(self.flag, "")

    @property
    def description(self) -> str:
        return self.flag.description

    @property
    def is_ok(self) -> bool:
        return self.flag is AssessmentFlag.OK

    def __str__(self):
        return (
            f"Assessment. Status: {self.description}, single-peak: "
            f"{self.single_peak_ratio}, explanation: {self.explanation}"
        )


def unevaluated(reason: str) -> AssessmentResult:
    return AssessmentResult(
        flag=AssessmentFlag.UNEVALUATED,
        explanations={AssessmentFlag.UNEVALUATED: reason},
    )
