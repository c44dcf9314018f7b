from __future__ import annotations

import numpy as np
import pytest

from wqstats.config import RuntimeConfig
from wqstats.core.errors import InvalidInput
from wqstats.core.methods import build_registry, resolve_statistic
from wqstats.core.statistics import ZeroPolicy


def test_registry_keys() -> None:
    registry = build_registry(RuntimeConfig())
    assert set(registry) == {"mean", "geomean", "exceedance", "binomial", "binomtest"}
    for key, spec in registry.items():
        assert spec.key == key
        assert spec.label


def test_geomean_follows_zero_policy() -> None:
    runtime = RuntimeConfig(zero_policy=ZeroPolicy.PROPAGATE)
    spec = resolve_statistic(runtime, "geomean")
    assert spec.compute(np.array([0.0, 9.0])) == 0.0
    assert "propagate" in spec.label


def test_exceedance_uses_configured_threshold() -> None:
    runtime = RuntimeConfig(threshold=100.0, statistic="exceedance")
    spec = resolve_statistic(runtime)
    assert spec.key == "exceedance"
    assert spec.compute(np.array([50.0, 150.0, 250.0, 100.0])) == pytest.approx(0.5)


def test_binomial_and_exceedance_agree() -> None:
    registry = build_registry(RuntimeConfig(threshold=2.0))
    values = np.array([1.0, 2.0, 3.0, 4.0])
    assert registry["binomial"].compute(values) == registry["exceedance"].compute(values)


def test_unknown_statistic() -> None:
    with pytest.raises(InvalidInput, match="Unknown statistic"):
        resolve_statistic(RuntimeConfig(statistic="median"))
