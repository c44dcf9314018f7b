from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterator

import pandas as pd
import pytest
from typer.testing import CliRunner

from wqstats.cli import app


runner = CliRunner()


@pytest.fixture(autouse=True)
def isolated(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("LOG_LEVEL", raising=False)
    monkeypatch.delenv("LOG_JSON", raising=False)
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


def write_series(path: Path) -> Path:
    rows = ["date,value"] + [f"{2010 + k}-06-01,{v}" for k, v in enumerate([10, 100, 1000, 0, 10])]
    path.write_text("\n".join(rows) + "\n", encoding="utf-8")
    return path


def test_rolling_writes_output(tmp_path: Path) -> None:
    src = write_series(tmp_path / "ecoli.csv")
    out = tmp_path / "rolling.csv"
    result = runner.invoke(
        app,
        ["rolling", str(src), "--statistic", "geomean", "--window-years", "2", "-o", str(out)],
    )
    assert result.exit_code == 0, result.output
    frame = pd.read_csv(out)
    assert len(frame) == 5
    assert frame["defined"].tolist() == [False, False, True, True, True]
    # 2010-06-01 is exactly two calendar years before 2012-06-01
    assert frame["statistic"].iloc[2] == pytest.approx(100.0)
    assert frame["count"].iloc[2] == 3
    # zero excluded from the log-domain mean
    assert frame["statistic"].iloc[3] == pytest.approx((100.0 * 1000.0) ** 0.5)
    assert frame["statistic"].iloc[4] == pytest.approx(100.0)


def test_rolling_to_stdout(tmp_path: Path) -> None:
    src = write_series(tmp_path / "ecoli.csv")
    result = runner.invoke(
        app,
        ["rolling", str(src), "--statistic", "exceedance", "--threshold", "50",
         "--window-years", "1", "--partial-history", "--log-level", "ERROR"],
    )
    assert result.exit_code == 0, result.output
    assert result.output.startswith("date,value,statistic,count,defined")


def test_rolling_uses_config_file(tmp_path: Path) -> None:
    src = write_series(tmp_path / "ecoli.csv")
    (tmp_path / "config.yaml").write_text(
        "statistic: geomean\nzero_policy: propagate\nwindow_years: 2\npartitions: 2\n",
        encoding="utf-8",
    )
    out = tmp_path / "rolling.csv"
    result = runner.invoke(app, ["rolling", str(src), "-o", str(out)])
    assert result.exit_code == 0, result.output
    frame = pd.read_csv(out)
    assert frame["statistic"].iloc[3] == 0.0


def test_unknown_statistic_exits_nonzero(tmp_path: Path) -> None:
    src = write_series(tmp_path / "ecoli.csv")
    result = runner.invoke(app, ["rolling", str(src), "--statistic", "median"])
    assert result.exit_code == 2
    assert "Unknown statistic" in result.output


def test_missing_input_exits_nonzero(tmp_path: Path) -> None:
    result = runner.invoke(app, ["rolling", str(tmp_path / "absent.csv")])
    assert result.exit_code == 2


def test_statistics_lists_registry() -> None:
    result = runner.invoke(app, ["statistics"])
    assert result.exit_code == 0
    keys = [line.split("\t")[0] for line in result.output.strip().splitlines()]
    assert keys == ["mean", "geomean", "exceedance", "binomial", "binomtest"]


def test_statistics_bad_config_exits_nonzero(tmp_path: Path) -> None:
    (tmp_path / "config.yaml").write_text("threshold: .nan\n", encoding="utf-8")
    result = runner.invoke(app, ["statistics"])
    assert result.exit_code == 2
    assert "Threshold must be finite" in result.output
