from __future__ import annotations

import logging
import math
import numbers
from bisect import bisect_left, bisect_right
from concurrent.futures import ThreadPoolExecutor
from datetime import timedelta
from typing import List, Optional, Sequence, Tuple, Union

import numpy as np
import pandas as pd

from .errors import InvalidInput, InvalidStatistic
from .samples import AggregateResult, Sample
from .statistics import StatisticFunc


logger = logging.getLogger(__name__)

DAYS_PER_YEAR = 365.25
NS_PER_DAY = 86_400 * 10**9

WindowLike = Union[timedelta, float]


def window_span(window: WindowLike) -> Tuple[int, int]:
    """Split a window into (calendar years, nanoseconds).

    A ``timedelta`` is an exact duration: ``(0, ns)``. A number of years keeps
    its whole years as calendar years, so the same date N years earlier is
    exactly one window back, and converts the fraction at 365.25 days a year.
    """
    if isinstance(window, bool):
        raise InvalidInput(f"Window must be a duration, got {window!r}")
    if isinstance(window, timedelta):
        ns = int(pd.Timedelta(window).value)
        if ns <= 0:
            raise InvalidInput(f"Window must be positive, got {window!r}")
        return 0, ns
    if not isinstance(window, numbers.Real):
        raise InvalidInput(f"Window must be a timedelta or a number of years, got {window!r}")
    years = float(window)
    if not math.isfinite(years):
        raise InvalidInput(f"Window must be finite, got {window!r}")
    if years <= 0:
        raise InvalidInput(f"Window must be positive, got {window!r}")
    whole = int(years)
    ns = int(round((years - whole) * DAYS_PER_YEAR * NS_PER_DAY))
    if whole == 0 and ns == 0:
        raise InvalidInput(f"Window shorter than 1ns, got {window!r} years")
    return whole, ns


def _timestamp_index(samples: Sequence[Sample]) -> pd.DatetimeIndex:
    raw = [s.timestamp for s in samples]
    for i, value in enumerate(raw):
        # pandas would read bare numbers as epoch nanoseconds
        if isinstance(value, numbers.Real):
            raise InvalidInput(f"Timestamp at index {i} is a number, expected a calendar date")
    try:
        index = pd.to_datetime(raw)
        if isinstance(index, pd.DatetimeIndex):
            index = index.as_unit("ns")
    except (TypeError, ValueError, OverflowError) as exc:
        raise InvalidInput(f"Unparseable timestamp in samples: {exc}") from exc
    if not isinstance(index, pd.DatetimeIndex):
        raise InvalidInput("Timestamps do not share a single timezone")
    missing = np.flatnonzero(index.isna())
    if missing.size:
        raise InvalidInput(f"Missing timestamp at index {int(missing[0])}")
    ts = index.asi8
    for i in range(1, len(ts)):
        if ts[i] < ts[i - 1]:
            raise InvalidInput(
                f"Samples must be sorted by timestamp; index {i} is earlier than index {i - 1}"
            )
    return index


def _lower_bounds(index: pd.DatetimeIndex, span: Tuple[int, int]) -> List[int]:
    """Earliest timestamp (ns) inside each sample's window."""
    years, ns = span
    bounds = index
    try:
        if years:
            # Feb 29 minus whole years lands on Feb 28, which keeps bounds non-decreasing
            bounds = bounds - pd.DateOffset(years=years)
        if ns:
            bounds = bounds - pd.Timedelta(ns, unit="ns")
    except (OverflowError, ValueError) as exc:
        raise InvalidInput(f"Window reaches before the supported date range: {exc}") from exc
    return bounds.as_unit("ns").asi8.tolist()


def _values(samples: Sequence[Sample]) -> np.ndarray:
    try:
        values = np.asarray([s.value for s in samples], dtype=float)
    except (TypeError, ValueError) as exc:
        raise InvalidInput(f"Sample values must be real numbers: {exc}") from exc
    bad = np.flatnonzero(~np.isfinite(values))
    if bad.size:
        raise InvalidInput(f"Non-finite value at index {int(bad[0])}")
    values.flags.writeable = False
    return values


def _evaluate(statistic_fn: StatisticFunc, window: np.ndarray, index: int) -> float:
    try:
        result = statistic_fn(window)
    except InvalidStatistic as exc:
        logger.debug("Invalid statistic for window", extra={"index": index, "reason": str(exc)})
        return math.nan
    return float(result)


def _sweep(
    ts: List[int],
    bounds: List[int],
    values: np.ndarray,
    statistic_fn: StatisticFunc,
    require_full_history: bool,
    start: int,
    stop: int,
) -> List[Tuple[Optional[float], int]]:
    """Evaluate indices [start, stop) with a two-pointer pass over the sorted timestamps."""
    n = len(ts)
    first = ts[0]
    lo = bisect_left(ts, bounds[start])
    hi = bisect_right(ts, ts[start])
    out: List[Tuple[Optional[float], int]] = []
    for i in range(start, stop):
        t = ts[i]
        while ts[lo] < bounds[i]:
            lo += 1
        while hi < n and ts[hi] <= t:
            hi += 1
        if require_full_history and first > bounds[i]:
            out.append((None, 0))
            continue
        out.append((_evaluate(statistic_fn, values[lo:hi], i), hi - lo))
    return out


class WindowedAggregator:
    """Trailing time-window aggregation over an irregular, sorted sample series.

    For the sample at index i the window holds every sample j with
    t[i] - window <= t[j] <= t[i], so samples sharing t[i] are included even
    when they come later in the sequence. Indices whose timestamp is less than
    one window after the first sample are left undefined unless
    ``require_full_history`` is False.
    """

    def __init__(
        self,
        window: WindowLike,
        statistic_fn: StatisticFunc,
        require_full_history: bool = True,
    ) -> None:
        self.window = window
        self.span = window_span(window)
        self.statistic_fn = statistic_fn
        self.require_full_history = require_full_history

    def _prepare(self, samples: Sequence[Sample]) -> Tuple[List[int], List[int], np.ndarray]:
        index = _timestamp_index(samples)
        values = _values(samples)
        return index.asi8.tolist(), _lower_bounds(index, self.span), values

    def _results(
        self, samples: Sequence[Sample], rows: List[Tuple[Optional[float], int]]
    ) -> List[AggregateResult]:
        return [
            AggregateResult(timestamp=s.timestamp, statistic=stat, count=count)
            for s, (stat, count) in zip(samples, rows)
        ]

    def compute(self, samples: Sequence[Sample]) -> List[AggregateResult]:
        if len(samples) == 0:
            return []
        ts, bounds, values = self._prepare(samples)
        rows = _sweep(
            ts, bounds, values, self.statistic_fn, self.require_full_history, 0, len(ts)
        )
        return self._results(samples, rows)

    def compute_partitioned(
        self,
        samples: Sequence[Sample],
        partitions: int,
        max_workers: Optional[int] = None,
    ) -> List[AggregateResult]:
        """Same output as :meth:`compute`, evaluated over contiguous index ranges in threads."""
        if partitions < 1:
            raise InvalidInput(f"partitions must be >= 1, got {partitions}")
        n = len(samples)
        if n == 0:
            return []
        ts, bounds, values = self._prepare(samples)
        edges = [n * k // partitions for k in range(partitions + 1)]
        ranges = [(a, b) for a, b in zip(edges, edges[1:]) if a < b]
        with ThreadPoolExecutor(max_workers=max_workers or len(ranges)) as pool:
            futures = [
                pool.submit(
                    _sweep,
                    ts,
                    bounds,
                    values,
                    self.statistic_fn,
                    self.require_full_history,
                    a,
                    b,
                )
                for a, b in ranges
            ]
            rows = [row for fut in futures for row in fut.result()]
        return self._results(samples, rows)


def compute(
    samples: Sequence[Sample],
    window: WindowLike,
    statistic_fn: StatisticFunc,
    require_full_history: bool = True,
) -> List[AggregateResult]:
    return WindowedAggregator(window, statistic_fn, require_full_history).compute(samples)


def compute_partitioned(
    samples: Sequence[Sample],
    window: WindowLike,
    statistic_fn: StatisticFunc,
    partitions: int,
    max_workers: Optional[int] = None,
    require_full_history: bool = True,
) -> List[AggregateResult]:
    aggregator = WindowedAggregator(window, statistic_fn, require_full_history)
    return aggregator.compute_partitioned(samples, partitions, max_workers)
