"""Tests for the batch driver."""

import time
import unittest

import pytest

from alphapeptquant.assessment import AssessmentFlag
from alphapeptquant.exceptions import ConfigurationError, EventError
from alphapeptquant.quant import (
    BatchParams,
    PeptideQuantRequest,
    quantitate_batch,
)


class SlowSource:
    """Wraps a source and delays every scan read."""

    def __init__(self, source, delay):
        self._source = source
        self._delay = delay
        self.run_name = source.run_name

    def scan_count(self):
        return self._source.scan_count()

    def index_for_scan_num(self, scan_num):
        return self._source.index_for_scan_num(scan_num)

    def scan_at(self, index):
        time.sleep(self._delay)
        return self._source.scan_at(index)

    def scan_num_at(self, index):
        return self._source.scan_num_at(index)


class StallingSource(SlowSource):
    """Stalls on the first scan read only; later reads are immediate."""

    def __init__(self, source, delay):
        super().__init__(source, delay)
        self._stalled = False

    def scan_at(self, index):
        if not self._stalled:
            self._stalled = True
            time.sleep(self._delay)
        return self._source.scan_at(index)


@pytest.fixture
def requests(pair_request):
    outside = PeptideQuantRequest("LOSTPEPK_2_5000", 2, 5000, 1000.0, 1006.0)
    other = PeptideQuantRequest("PEPTIDEK_2_1024", 2, 1024, 1000.0, 1006.0)
    return [pair_request, outside, other]


def test_serial_batch(requests, pair_run):
    batch = quantitate_batch(requests, pair_run)

    assert len(batch) == 3
    assert [o.request.peptide_key for o in batch.outcomes] == [r.peptide_key for r in requests]

    assert batch.outcomes[0].flag is AssessmentFlag.OK
    assert batch.outcomes[0].quant.ratio == pytest.approx(1.0, abs=1e-3)
    assert batch.outcomes[2].flag is AssessmentFlag.OK


def test_event_error_recorded(requests, pair_run):
    """A scan outside the run is logged and does not abort the batch."""
    batch = quantitate_batch(requests, pair_run)

    assert batch.n_failed == 1
    failure = batch.failures[0]
    assert failure.peptide_key == "LOSTPEPK_2_5000"
    assert failure.run_name == "synthetic"
    assert "outside run scan range" in failure.reason

    outcome = batch.outcomes[1]
    assert outcome.flag is AssessmentFlag.UNEVALUATED
    assert not outcome.quant.evaluated
    assert batch.flag_counts() == {AssessmentFlag.OK: 2, AssessmentFlag.UNEVALUATED: 1}


def test_parallel_batch_matches_serial(requests, pair_run):
    serial = quantitate_batch(requests, pair_run)
    parallel = quantitate_batch(requests, pair_run, batch_params=BatchParams(n_workers=3))

    assert len(parallel) == len(serial)
    for a, b in zip(serial.outcomes, parallel.outcomes):
        assert a.request == b.request
        assert a.quant == b.quant
        assert a.flag is b.flag
    assert parallel.n_failed == 1


def test_quantitate_only(pair_request, pair_run):
    batch = quantitate_batch([pair_request], pair_run, batch_params=BatchParams(assess=False))

    outcome = batch.outcomes[0]
    assert outcome.assessment is None
    assert outcome.flag is AssessmentFlag.UNEVALUATED
    assert outcome.quant.evaluated


def test_event_timeout(pair_request, pair_run):
    source = SlowSource(pair_run, delay=0.05)
    batch = quantitate_batch(
        [pair_request], source, batch_params=BatchParams(event_timeout_sec=0.01)
    )

    assert batch.n_failed == 1
    assert batch.outcomes[0].flag is AssessmentFlag.OTHER
    assert "Timed out" in batch.failures[0].reason


def test_stalled_event_does_not_fail_later_events(pair_request, pair_run):
    """Events queued behind a stalled one run to completion on their own clock."""
    healthy = [
        PeptideQuantRequest(f"PEPTIDEK_2_{scan}", 2, scan, 1000.0, 1006.0)
        for scan in (1018, 1022, 1024)
    ]
    # Compile kernels first so healthy events are fast
    quantitate_batch(healthy, pair_run)

    source = StallingSource(pair_run, delay=2.0)
    batch = quantitate_batch(
        [pair_request] + healthy,
        source,
        batch_params=BatchParams(n_workers=1, event_timeout_sec=0.5),
    )

    assert len(batch) == 4
    assert batch.n_failed == 1
    assert batch.failures[0].peptide_key == pair_request.peptide_key
    assert batch.outcomes[0].flag is AssessmentFlag.OTHER
    assert [o.request.peptide_key for o in batch.outcomes[1:]] == [r.peptide_key for r in healthy]
    for outcome in batch.outcomes[1:]:
        assert outcome.flag is AssessmentFlag.OK
        assert outcome.quant.ratio == pytest.approx(1.0, abs=1e-3)


class TestBatchParams(unittest.TestCase):
    """Test batch parameter validation and errors."""

    def test_invalid_workers(self):
        with self.assertRaises(ConfigurationError):
            BatchParams(n_workers=0)

    def test_invalid_timeout(self):
        with self.assertRaises(ConfigurationError):
            BatchParams(event_timeout_sec=0.0)

    def test_event_error_carries_identity(self):
        error = EventError("bad scan", peptide_key="PEPTIDEK_2_1", run_name="run_a")

        self.assertEqual(error.reason, "bad scan")
        self.assertEqual(error.error_code, "EVENT_ERROR")
        self.assertIn("PEPTIDEK_2_1", str(error))
        self.assertIn("run_a", str(error))
