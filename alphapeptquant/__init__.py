"""AlphaPeptQuant - Quantitation of isotopically labeled peptide pairs.

Light/heavy peptide pairs (SILAC, acrylamide, ...) are quantitated from a
window of MS1 scans around each identification, corrected for isotope
overlap between the two forms, and assessed for common failure modes
(coeluting peptides, distorted envelopes, disagreeing single-peak ratios).
"""

__version__ = "0.1.0"

from alphapeptquant import isotopes
from alphapeptquant import peaks
from alphapeptquant import quant
from alphapeptquant import assessment

__all__ = [
    "isotopes",
    "peaks",
    "quant",
    "assessment",
]
