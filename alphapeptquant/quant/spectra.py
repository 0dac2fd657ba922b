"""Read-only access to MS1 scans of one LC-MS run.

Quantitation only needs four operations from a run: how many MS1 scans it
has, where a scan number falls in that list, and the peaks and scan number
at a given index. ``SpectrumSource`` names that interface; any reader
(mzML, mzXML, Bruker, ...) can implement it. ``InMemorySpectrumSource`` is
the reference implementation over numpy arrays.

A loaded source is shared by all events of a batch and is never mutated,
so concurrent reads from worker threads are safe.

Examples
--------
>>> source = InMemorySpectrumSource.from_flat_arrays(
...     mz_array, intensity_array, scan_index_array, scan_numbers,
...     run_name="fraction_01",
... )
>>> mz, intensity = source.scan_at(source.index_for_scan_num(1234))
"""

from __future__ import annotations

from typing import List, Optional, Protocol, Sequence, Tuple

import numba as nb
import numpy as np

from ..exceptions import ConfigurationError


class SpectrumSource(Protocol):
    """Interface consumed by the quantitation window and the assessor."""

    run_name: str

    def scan_count(self) -> int:
        """Number of MS1 scans in the run."""
        ...

    def index_for_scan_num(self, scan_num: int) -> int:
        """Index of ``scan_num``, or of the next MS1 scan if it is not one."""
        ...

    def scan_at(self, index: int) -> Tuple[np.ndarray, np.ndarray]:
        """(m/z, intensity) arrays of the scan at ``index``, sorted by m/z."""
        ...

    def scan_num_at(self, index: int) -> int:
        """Scan number of the scan at ``index``."""
        ...


@nb.njit
def mz_range_indices(
    mz_array: np.ndarray,
    low_mz: float,
    high_mz: float,
    include_high: bool,
) -> Tuple[int, int]:
    """Find the index range of peaks between ``low_mz`` and ``high_mz``.

    Parameters
    ----------
    mz_array : np.ndarray
        Sorted m/z values
    low_mz : float
        Inclusive lower bound
    high_mz : float
        Upper bound
    include_high : bool
        Whether a peak exactly at ``high_mz`` is included

    Returns
    -------
    start_idx : int
        Start index (inclusive)
    end_idx : int
        End index (exclusive, Python convention)

    Performance
    -----------
    O(log n) complexity for each search
    """
    # Binary search for lower bound
    left, right = 0, len(mz_array)
    while left < right:
        mid = (left + right) // 2
        if mz_array[mid] < low_mz:
            left = mid + 1
        else:
            right = mid
    start_idx = left

    # Binary search for upper bound
    left, right = start_idx, len(mz_array)
    while left < right:
        mid = (left + right) // 2
        if mz_array[mid] < high_mz or (include_high and mz_array[mid] == high_mz):
            left = mid + 1
        else:
            right = mid
    end_idx = left

    return start_idx, end_idx


@nb.njit
def max_intensity_in_range(
    mz_array: np.ndarray,
    intensity_array: np.ndarray,
    low_mz: float,
    high_mz: float,
) -> float:
    """Most intense peak with ``low_mz <= m/z <= high_mz``; 0 if none."""
    start_idx, end_idx = mz_range_indices(mz_array, low_mz, high_mz, True)
    best = 0.0
    for i in range(start_idx, end_idx):
        if intensity_array[i] > best:
            best = intensity_array[i]
    return best


class InMemorySpectrumSource:
    """MS1 scans held as per-scan numpy arrays.

    Parameters
    ----------
    scan_numbers : Sequence[int]
        Scan number of each MS1 scan, strictly increasing
    mz_arrays : Sequence[np.ndarray]
        Per-scan m/z values, each sorted ascending
    intensity_arrays : Sequence[np.ndarray]
        Per-scan intensities
    run_name : str
        Run/fraction identity used in log and error messages
    """

    def __init__(
        self,
        scan_numbers: Sequence[int],
        mz_arrays: Sequence[np.ndarray],
        intensity_arrays: Sequence[np.ndarray],
        run_name: str = "run",
    ):
        if not (len(scan_numbers) == len(mz_arrays) == len(intensity_arrays)):
            raise ConfigurationError(
                "Scan numbers, m/z arrays and intensity arrays differ in length",
                run_name=run_name,
            )

        self.run_name = run_name
        self._scan_numbers = np.asarray(scan_numbers, dtype=np.int64)
        if len(self._scan_numbers) > 1 and np.any(np.diff(self._scan_numbers) <= 0):
            raise ConfigurationError("Scan numbers must be strictly increasing", run_name=run_name)

        self._mz: List[np.ndarray] = []
        self._intensity: List[np.ndarray] = []
        for mz, intensity in zip(mz_arrays, intensity_arrays):
            mz = np.asarray(mz, dtype=np.float64)
            intensity = np.asarray(intensity, dtype=np.float64)
            if mz.shape != intensity.shape:
                raise ConfigurationError("m/z and intensity arrays differ in length", run_name=run_name)
            if len(mz) > 1 and np.any(np.diff(mz) < 0):
                raise ConfigurationError("m/z arrays must be sorted ascending", run_name=run_name)
            self._mz.append(mz)
            self._intensity.append(intensity)

    @classmethod
    def from_flat_arrays(
        cls,
        mz_array: np.ndarray,
        intensity_array: np.ndarray,
        scan_index_array: np.ndarray,
        scan_numbers: Sequence[int],
        run_name: str = "run",
    ) -> "InMemorySpectrumSource":
        """Build a source from flat peak arrays tagged with a 0-based scan index.

        Peaks need not be grouped or sorted; each scan is sorted by m/z.
        """
        mz_array = np.asarray(mz_array, dtype=np.float64)
        intensity_array = np.asarray(intensity_array, dtype=np.float64)
        scan_index_array = np.asarray(scan_index_array, dtype=np.int64)

        n_scans = len(scan_numbers)
        order = np.lexsort((mz_array, scan_index_array))
        mz_sorted = mz_array[order]
        intensity_sorted = intensity_array[order]
        boundaries = np.searchsorted(scan_index_array[order], np.arange(n_scans + 1))

        mz_arrays = []
        intensity_arrays = []
        for i in range(n_scans):
            start, end = boundaries[i], boundaries[i + 1]
            mz_arrays.append(mz_sorted[start:end])
            intensity_arrays.append(intensity_sorted[start:end])

        return cls(scan_numbers, mz_arrays, intensity_arrays, run_name=run_name)

    def scan_count(self) -> int:
        return len(self._scan_numbers)

    def index_for_scan_num(self, scan_num: int) -> int:
        return int(np.searchsorted(self._scan_numbers, scan_num, side="left"))

    def scan_at(self, index: int) -> Tuple[np.ndarray, np.ndarray]:
        return self._mz[index], self._intensity[index]

    def scan_num_at(self, index: int) -> int:
        return int(self._scan_numbers[index])


def scan_window_indices(
    source: SpectrumSource,
    scan_num: int,
    scans_before: int,
    scans_after: int,
) -> np.ndarray:
    """Sorted indices of the scans around ``scan_num``, clipped to the run."""
    n_scans = source.scan_count()
    if n_scans == 0:
        return np.zeros(0, dtype=np.int64)

    scan_index = source.index_for_scan_num(scan_num)
    left_index = max(scan_index - scans_before, 0)
    right_index = min(scan_index + scans_after, n_scans - 1)
    if right_index < left_index:
        return np.zeros(0, dtype=np.int64)
    return np.arange(left_index, right_index + 1, dtype=np.int64)


def scan_range_indices(
    source: SpectrumSource,
    first_scan: int,
    last_scan: int,
    extra_scans: int = 0,
) -> Optional[np.ndarray]:
    """Indices covering ``first_scan..last_scan`` plus ``extra_scans`` each side.

    Returns None when the run has no scans.
    """
    n_scans = source.scan_count()
    if n_scans == 0:
        return None

    first_index = max(source.index_for_scan_num(first_scan) - extra_scans, 0)
    last_index = min(source.index_for_scan_num(last_scan) + extra_scans, n_scans - 1)
    last_index = max(first_index, last_index)
    if first_index > n_scans - 1:
        return None
    return np.arange(first_index, last_index + 1, dtype=np.int64)
