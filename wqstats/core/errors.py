from __future__ import annotations


class WqStatsError(Exception):
    """Base class for errors raised by wqstats."""


class InvalidInput(WqStatsError, ValueError):
    """Input that the aggregation refuses to process.

    Raised for unsorted samples, unparseable or missing timestamps,
    non-finite values, non-positive windows and unknown configuration keys.
    """


class InvalidStatistic(WqStatsError, ArithmeticError):
    """A statistic could not be computed for one window.

    The aggregator records NaN for that window and carries on with the rest.
    """
