from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Iterable, List, Optional, Tuple


@dataclass(frozen=True)
class Sample:
    # date, datetime, pandas.Timestamp, numpy.datetime64 or ISO-8601 string
    timestamp: Any
    value: float


@dataclass(frozen=True)
class AggregateResult:
    timestamp: Any
    statistic: Optional[float]  # None when the window lacks full history
    count: int = 0

    @property
    def defined(self) -> bool:
        return self.statistic is not None

    @property
    def valid(self) -> bool:
        """True when defined and not NaN."""
        return self.statistic is not None and not math.isnan(self.statistic)


def samples_from_pairs(pairs: Iterable[Tuple[Any, float]]) -> List[Sample]:
    return [Sample(timestamp=ts, value=value) for ts, value in pairs]
