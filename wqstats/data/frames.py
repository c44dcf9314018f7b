from __future__ import annotations

from typing import List, Sequence

import numpy as np
import pandas as pd

from ..core.samples import AggregateResult, Sample
from ..core.statistics import StatisticFunc
from ..core.window import WindowLike, WindowedAggregator
from .csv_source import samples_from_frame


def results_to_frame(
    samples: Sequence[Sample],
    results: Sequence[AggregateResult],
    time_column: str = "date",
    value_column: str = "value",
) -> pd.DataFrame:
    """Tabulate results next to their samples.

    Undefined windows appear as NaN in ``statistic`` with ``defined`` False;
    invalid statistics are NaN with ``defined`` True.
    """
    return pd.DataFrame(
        {
            time_column: [s.timestamp for s in samples],
            value_column: [s.value for s in samples],
            "statistic": [np.nan if r.statistic is None else r.statistic for r in results],
            "count": [r.count for r in results],
            "defined": [r.defined for r in results],
        }
    )


def rolling_frame(
    df: pd.DataFrame,
    window: WindowLike,
    statistic_fn: StatisticFunc,
    time_column: str = "date",
    value_column: str = "value",
    require_full_history: bool = True,
    partitions: int = 1,
) -> pd.DataFrame:
    samples = samples_from_frame(df, time_column, value_column)
    aggregator = WindowedAggregator(window, statistic_fn, require_full_history)
    results: List[AggregateResult]
    if partitions > 1:
        results = aggregator.compute_partitioned(samples, partitions)
    else:
        results = aggregator.compute(samples)
    return results_to_frame(samples, results, time_column, value_column)
