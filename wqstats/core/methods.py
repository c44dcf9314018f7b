from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional

from ..config import RuntimeConfig
from .errors import InvalidInput
from .statistics import (
    StatisticFunc,
    arithmetic_mean,
    binomial_compliance_pvalue,
    binomial_proportion,
    exceedance_proportion,
    make_geometric_mean,
    threshold_predicate,
)


@dataclass
class StatisticSpec:
    key: str
    compute: StatisticFunc
    label: str


def build_registry(runtime: RuntimeConfig) -> Dict[str, StatisticSpec]:
    predicate = threshold_predicate(runtime.threshold, runtime.direction, runtime.inclusive)
    return {
        "mean": StatisticSpec(key="mean", compute=arithmetic_mean, label="Arithmetic mean"),
        "geomean": StatisticSpec(
            key="geomean",
            compute=make_geometric_mean(runtime.zero_policy),
            label=f"Geometric mean (zeros: {runtime.zero_policy.value})",
        ),
        "exceedance": StatisticSpec(
            key="exceedance",
            compute=exceedance_proportion(runtime.threshold, runtime.direction, runtime.inclusive),
            label=f"Fraction {runtime.direction.value} {runtime.threshold:g}",
        ),
        "binomial": StatisticSpec(
            key="binomial",
            compute=binomial_proportion(predicate),
            label=f"Binomial success rate ({runtime.direction.value} {runtime.threshold:g})",
        ),
        "binomtest": StatisticSpec(
            key="binomtest",
            compute=binomial_compliance_pvalue(runtime.allowed_rate, predicate),
            label=f"Binomial test p-value (allowed rate {runtime.allowed_rate:g})",
        ),
    }


def resolve_statistic(runtime: RuntimeConfig, key: Optional[str] = None) -> StatisticSpec:
    registry = build_registry(runtime)
    selected = key or runtime.statistic
    try:
        return registry[selected]
    except KeyError:
        raise InvalidInput(
            f"Unknown statistic {selected!r}; choose one of {', '.join(sorted(registry))}"
        ) from None
