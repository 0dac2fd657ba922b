"""Quantitate and assess many identifications against one run.

Events are independent given read-only access to the run's spectra, so a
batch can be spread over a thread pool. Per-event problems (``EventError``
or a timeout) never abort the batch: the event gets an ``Unevaluated`` (or
``Other`` for timeouts) assessment and its identity and reason go into the
failure log. Any other exception propagates.

A timeout counts only the time an event has actually been running. Python
threads cannot be stopped, so a timed-out event keeps its worker; events
still queued behind it are moved to a fresh pool so they are not starved.

Examples
--------
>>> batch = quantitate_batch(requests, source, batch_params=BatchParams(n_workers=4))
>>> for outcome in batch.outcomes:
...     print(outcome.request.peptide_key, outcome.quant.ratio, outcome.flag.code)
"""

from __future__ import annotations

import logging
import time
from collections import Counter
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from ..assessment.assessor import AssessmentParams, EventAssessor
from ..assessment.flags import AssessmentFlag, AssessmentResult
from ..exceptions import ConfigurationError, EventError
from .extent import QuantParams, ScanWindowExtent
from .request import PeptideQuantRequest, QuantResult, empty_result
from .spectra import SpectrumSource

logger = logging.getLogger(__name__)


@dataclass
class BatchParams:
    """Parallelism and per-event limits."""

    n_workers: int = 1

    # Seconds one event may run once a worker has started it (None = no limit)
    event_timeout_sec: Optional[float] = None

    # Run the event assessor after quantitation
    assess: bool = True

    def __post_init__(self):
        if self.n_workers < 1:
            raise ConfigurationError(f"n_workers must be at least 1, got {self.n_workers}")
        if self.event_timeout_sec is not None and self.event_timeout_sec <= 0:
            raise ConfigurationError(
                f"event_timeout_sec must be positive, got {self.event_timeout_sec}"
            )


@dataclass(frozen=True)
class FailureRecord:
    """Identity and reason of an event that could not be processed."""

    peptide_key: str
    run_name: str
    reason: str


@dataclass(frozen=True)
class EventOutcome:
    request: PeptideQuantRequest
    quant: QuantResult
    assessment: Optional[AssessmentResult] = None

    @property
    def flag(self) -> AssessmentFlag:
        if self.assessment is None:
            return AssessmentFlag.UNEVALUATED
        return self.assessment.flag


@dataclass
class BatchResult:
    """Per-event outcomes in input order plus the failure log."""

    outcomes: List[EventOutcome] = field(default_factory=list)
    failures: List[FailureRecord] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.outcomes)

    @property
    def n_failed(self) -> int:
        return len(self.failures)

    def flag_counts(self) -> Dict[AssessmentFlag, int]:
        return dict(Counter(outcome.flag for outcome in self.outcomes))


def _check_scan_in_run(request: PeptideQuantRequest, source: SpectrumSource) -> None:
    n_scans = source.scan_count()
    if n_scans == 0:
        raise EventError("Run has no MS1 scans", request.peptide_key, source.run_name)

    first, last = source.scan_num_at(0), source.scan_num_at(n_scans - 1)
    if request.scan < first or request.scan > last:
        raise EventError(
            f"Scan {request.scan} outside run scan range {first}-{last}",
            request.peptide_key,
            source.run_name,
        )


def process_event(
    request: PeptideQuantRequest,
    source: SpectrumSource,
    quantifier: ScanWindowExtent,
    assessor: Optional[EventAssessor] = None,
) -> EventOutcome:
    """Quantitate (and optionally assess) one request.

    Raises
    ------
    EventError
        If the identification scan lies outside the run.
    """
    _check_scan_in_run(request, source)
    quant = quantifier.quantitate(request, source)
    assessment = assessor.assess(quant, source) if assessor is not None else None
    return EventOutcome(request=request, quant=quant, assessment=assessment)


class _EventRunner:
    """Thread pool for one batch that records when each event starts running.

    Parameters
    ----------
    requests : Sequence[PeptideQuantRequest]
        Events, submitted in order
    n_workers : int
        Threads per pool
    """

    def __init__(
        self,
        requests: Sequence[PeptideQuantRequest],
        source: SpectrumSource,
        quantifier: ScanWindowExtent,
        assessor: Optional[EventAssessor],
        n_workers: int,
    ):
        self._requests = requests
        self._source = source
        self._quantifier = quantifier
        self._assessor = assessor
        self._n_workers = n_workers
        self._started: Dict[int, float] = {}
        self._executor = ThreadPoolExecutor(max_workers=n_workers)
        self._futures: List[Future] = [self._submit(i) for i in range(len(requests))]

    def _run(self, index: int) -> EventOutcome:
        self._started[index] = time.monotonic()
        return process_event(self._requests[index], self._source, self._quantifier, self._assessor)

    def _submit(self, index: int) -> Future:
        return self._executor.submit(self._run, index)

    def result(self, index: int, timeout: Optional[float]) -> EventOutcome:
        """Outcome of event ``index``.

        Raises
        ------
        EventError
            Raised by the event itself
        concurrent.futures.TimeoutError
            If the event has been running for longer than ``timeout``
        """
        future = self._futures[index]
        if timeout is None:
            return future.result()

        while not future.done():
            start = self._started.get(index)
            # Queued events wait without a deadline until a worker picks them up
            remaining = timeout if start is None else timeout - (time.monotonic() - start)
            if remaining <= 0:
                raise FutureTimeoutError()
            try:
                return future.result(timeout=remaining)
            except FutureTimeoutError:
                continue
        return future.result()

    def requeue_after(self, index: int) -> None:
        """Move events still queued after ``index`` to a fresh pool.

        The worker stuck on ``index`` keeps running in the old pool.
        """
        self._executor.shutdown(wait=False, cancel_futures=True)
        self._executor = ThreadPoolExecutor(max_workers=self._n_workers)
        for later in range(index + 1, len(self._futures)):
            if self._futures[later].cancelled():
                self._futures[later] = self._submit(later)

    def shutdown(self) -> None:
        self._executor.shutdown(wait=False, cancel_futures=True)


def _failed_outcome(request: PeptideQuantRequest, flag: AssessmentFlag, reason: str) -> EventOutcome:
    return EventOutcome(
        request=request,
        quant=empty_result(request, reason),
        assessment=AssessmentResult(flag=flag, explanations={flag: reason}),
    )


def quantitate_batch(
    requests: Sequence[PeptideQuantRequest],
    source: SpectrumSource,
    quant_params: Optional[QuantParams] = None,
    assessment_params: Optional[AssessmentParams] = None,
    batch_params: Optional[BatchParams] = None,
) -> BatchResult:
    """Quantitate all requests of one run.

    Parameters
    ----------
    requests : Sequence[PeptideQuantRequest]
        Labeled identifications from this run
    source : SpectrumSource
        The run's spectra, shared read-only by all workers
    quant_params : QuantParams, optional
    assessment_params : AssessmentParams, optional
    batch_params : BatchParams, optional

    Returns
    -------
    BatchResult
        Outcomes in the order of ``requests``
    """
    batch_params = batch_params if batch_params is not None else BatchParams()
    quantifier = ScanWindowExtent(quant_params)
    assessor = EventAssessor(assessment_params) if batch_params.assess else None
    run_name = source.run_name

    logger.info(
        f"Quantitating {len(requests):,} events in {run_name} "
        f"({batch_params.n_workers} worker{'s' if batch_params.n_workers > 1 else ''})"
    )
    start_time = time.time()

    result = BatchResult()

    def record_failure(request: PeptideQuantRequest, flag: AssessmentFlag, reason: str):
        logger.warning(f"{request.peptide_key} ({run_name}): {reason}")
        result.failures.append(FailureRecord(request.peptide_key, run_name, reason))
        result.outcomes.append(_failed_outcome(request, flag, reason))

    if batch_params.n_workers == 1 and batch_params.event_timeout_sec is None:
        for request in requests:
            try:
                result.outcomes.append(process_event(request, source, quantifier, assessor))
            except EventError as e:
                record_failure(request, AssessmentFlag.UNEVALUATED, e.reason)
    else:
        runner = _EventRunner(requests, source, quantifier, assessor, batch_params.n_workers)
        try:
            for index, request in enumerate(requests):
                try:
                    result.outcomes.append(runner.result(index, batch_params.event_timeout_sec))
                except EventError as e:
                    record_failure(request, AssessmentFlag.UNEVALUATED, e.reason)
                except FutureTimeoutError:
                    record_failure(
                        request,
                        AssessmentFlag.OTHER,
                        f"Timed out after {batch_params.event_timeout_sec} s",
                    )
                    runner.requeue_after(index)
        finally:
            runner.shutdown()

    elapsed = time.time() - start_time
    logger.info(
        f"✓ {len(result.outcomes) - result.n_failed:,} events quantitated, "
        f"{result.n_failed:,} failed ({elapsed:.1f} s)"
    )
    return result
