from __future__ import annotations

import math
from enum import Enum
from typing import Callable, Sequence, Union

import numpy as np
from scipy import stats

from .errors import InvalidInput


StatisticFunc = Callable[[np.ndarray], float]
# Receives the window's values as an array, returns a boolean mask of successes
Predicate = Callable[[np.ndarray], np.ndarray]


class ZeroPolicy(str, Enum):
    EXCLUDE = "exclude"
    PROPAGATE = "propagate"


class Direction(str, Enum):
    ABOVE = "above"
    BELOW = "below"


def _as_array(values: Union[Sequence[float], np.ndarray]) -> np.ndarray:
    return np.asarray(values, dtype=float)


def arithmetic_mean(values: Union[Sequence[float], np.ndarray]) -> float:
    arr = _as_array(values)
    if arr.size == 0:
        return math.nan
    return float(arr.mean())


def geometric_mean(
    values: Union[Sequence[float], np.ndarray],
    zero_policy: ZeroPolicy = ZeroPolicy.EXCLUDE,
) -> float:
    """Geometric mean with an explicit policy for zero values.

    Negative values make the result NaN regardless of policy. Zeros are
    dropped from the log-domain average under ``EXCLUDE`` and force 0.0 under
    ``PROPAGATE``. A window with nothing left to average is NaN.
    """
    policy = ZeroPolicy(zero_policy)
    arr = _as_array(values)
    if arr.size == 0 or np.any(arr < 0):
        return math.nan
    if np.any(arr == 0):
        if policy is ZeroPolicy.PROPAGATE:
            return 0.0
        arr = arr[arr > 0]
        if arr.size == 0:
            return math.nan
    return float(stats.gmean(arr))


def make_geometric_mean(zero_policy: ZeroPolicy = ZeroPolicy.EXCLUDE) -> StatisticFunc:
    policy = ZeroPolicy(zero_policy)

    def gmean(values: np.ndarray) -> float:
        return geometric_mean(values, policy)

    return gmean


def threshold_predicate(
    threshold: float,
    direction: Direction = Direction.ABOVE,
    inclusive: bool = False,
) -> Predicate:
    """Predicate marking values beyond ``threshold`` as exceedances."""
    if not math.isfinite(threshold):
        raise InvalidInput(f"Threshold must be finite, got {threshold!r}")
    direction = Direction(direction)

    def exceeds(values: np.ndarray) -> np.ndarray:
        if direction is Direction.ABOVE:
            return values >= threshold if inclusive else values > threshold
        return values <= threshold if inclusive else values < threshold

    return exceeds


def count_successes(values: Union[Sequence[float], np.ndarray], predicate: Predicate) -> int:
    arr = _as_array(values)
    return int(np.count_nonzero(np.asarray(predicate(arr), dtype=bool)))


def binomial_proportion(predicate: Predicate) -> StatisticFunc:
    """Successes over trials within the window."""

    def proportion(values: np.ndarray) -> float:
        arr = _as_array(values)
        if arr.size == 0:
            return math.nan
        return count_successes(arr, predicate) / arr.size

    return proportion


def exceedance_proportion(
    threshold: float,
    direction: Direction = Direction.ABOVE,
    inclusive: bool = False,
) -> StatisticFunc:
    return binomial_proportion(threshold_predicate(threshold, direction, inclusive))


def binomial_compliance_pvalue(allowed_rate: float, predicate: Predicate) -> StatisticFunc:
    """One-sided binomial test p-value that the exceedance rate is above ``allowed_rate``.

    Small values mean the window's exceedance count is unlikely under the
    allowed rate, i.e. evidence of impairment.
    """
    if not 0.0 < allowed_rate < 1.0:
        raise InvalidInput(f"allowed_rate must be in (0, 1), got {allowed_rate!r}")

    def pvalue(values: np.ndarray) -> float:
        arr = _as_array(values)
        if arr.size == 0:
            return math.nan
        k = count_successes(arr, predicate)
        return float(stats.binomtest(k, int(arr.size), allowed_rate, alternative="greater").pvalue)

    return pvalue
