"""Quality assessment of quantitation events.

Examples
--------
>>> from alphapeptquant.assessment import EventAssessor, AssessmentFlag
>>>
>>> assessment = EventAssessor().assess(result, source)
>>> if assessment.flag is not AssessmentFlag.OK:
...     print(assessment.description, assessment.explanation)
"""

from .flags import AssessmentFlag, AssessmentResult
from .peak_summary import PeakSetSummary, calc_peak_intensities, kl_divergence, template_kl
from .assessor import AssessmentParams, EventAssessor

__all__ = [
    "AssessmentFlag",
    "AssessmentResult",
    "PeakSetSummary",
    "calc_peak_intensities",
    "kl_divergence",
    "template_kl",
    "AssessmentParams",
    "EventAssessor",
]
