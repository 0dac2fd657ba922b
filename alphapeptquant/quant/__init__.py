"""Scan-window quantitation of light/heavy peptide pairs.

Key Features
------------
- ``SpectrumSource`` interface plus an in-memory implementation
- Label resolution and light/heavy classification of identifications
- Extent finding from paired light/heavy matches and overlap-corrected areas
- Result records with XPRESS-style ratios and sentinel values
- Thread-pool batch driver with a per-event failure log

Examples
--------
>>> from alphapeptquant.quant import ScanWindowExtent, PeptideQuantRequest
>>>
>>> request = PeptideQuantRequest("PEPTIDEK_2_1234", 2, 1234, 1000.0, 1006.0)
>>> result = ScanWindowExtent().quantitate(request, source)
"""

from .spectra import (
    InMemorySpectrumSource,
    SpectrumSource,
    scan_range_indices,
    scan_window_indices,
)
from .request import (
    PeptideQuantRequest,
    QuantResult,
    TargetList,
    build_target_list,
    empty_result,
)
from .extent import QuantParams, ScanWindowExtent, quantitate_request
from .labels import (
    IdentificationFilter,
    IsotopicLabel,
    PeptideIdentification,
    SearchModification,
    build_quant_request,
    build_quant_requests,
    resolve_label_masses,
)
from .results import OutputParams, analysis_result_record, q3_output_path

# Last: the batch driver depends on the assessment package
from .batch import BatchParams, BatchResult, EventOutcome, FailureRecord, quantitate_batch

__all__ = [
    # Spectra
    "SpectrumSource",
    "InMemorySpectrumSource",
    "scan_window_indices",
    "scan_range_indices",
    # Requests and results
    "PeptideQuantRequest",
    "TargetList",
    "QuantResult",
    "build_target_list",
    "empty_result",
    # Quantitation
    "QuantParams",
    "ScanWindowExtent",
    "quantitate_request",
    # Labels
    "IsotopicLabel",
    "SearchModification",
    "PeptideIdentification",
    "IdentificationFilter",
    "resolve_label_masses",
    "build_quant_request",
    "build_quant_requests",
    # Output
    "OutputParams",
    "analysis_result_record",
    "q3_output_path",
    # Batch
    "BatchParams",
    "BatchResult",
    "EventOutcome",
    "FailureRecord",
    "quantitate_batch",
]
