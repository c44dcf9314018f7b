from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Optional

import typer

from .config import load_config
from .core.errors import WqStatsError
from .core.methods import build_registry, resolve_statistic
from .core.statistics import Direction, ZeroPolicy
from .core.window import WindowedAggregator
from .data.csv_source import load_samples
from .data.frames import results_to_frame
from .utils.logging import setup_logging


logger = logging.getLogger(__name__)

app = typer.Typer(add_completion=False, help="Rolling water-quality statistics.")


@app.command()
def rolling(
    input_path: Path = typer.Argument(..., help="CSV file with a date column and a value column"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write CSV here instead of stdout"),
    window_years: Optional[float] = typer.Option(None, help="Trailing window in years"),
    statistic: Optional[str] = typer.Option(None, help="Statistic key, see `wqstats statistics`"),
    threshold: Optional[float] = typer.Option(None, help="Exceedance criterion"),
    direction: Optional[Direction] = typer.Option(None, help="Exceedance side of the criterion"),
    allowed_rate: Optional[float] = typer.Option(None, help="Allowed exceedance rate for binomtest"),
    zero_policy: Optional[ZeroPolicy] = typer.Option(None, help="Geometric mean handling of zeros"),
    partial_history: bool = typer.Option(
        False, "--partial-history", help="Compute early windows over the history available"
    ),
    partitions: Optional[int] = typer.Option(None, help="Evaluate index ranges in parallel"),
    time_column: Optional[str] = typer.Option(None, help="Timestamp column name"),
    value_column: Optional[str] = typer.Option(None, help="Value column name"),
    config_path: Optional[Path] = typer.Option(None, "--config", help="YAML runtime config"),
    log_level: Optional[str] = typer.Option(None, help="Overrides LOG_LEVEL"),
) -> None:
    """Compute a trailing-window statistic for every sample in INPUT_PATH."""
    try:
        cfg = load_config(config_path)
        setup_logging(log_level or cfg.env.LOG_LEVEL, json_output=cfg.env.LOG_JSON, stream=sys.stderr)

        overrides = {
            "window_years": window_years,
            "statistic": statistic,
            "threshold": threshold,
            "direction": direction,
            "allowed_rate": allowed_rate,
            "zero_policy": zero_policy,
            "partitions": partitions,
            "time_column": time_column,
            "value_column": value_column,
        }
        overrides = {k: v for k, v in overrides.items() if v is not None}
        if partial_history:
            overrides["require_full_history"] = False
        runtime = cfg.runtime.with_overrides(**overrides)

        spec = resolve_statistic(runtime)
        samples = load_samples(input_path, runtime.time_column, runtime.value_column)
        aggregator = WindowedAggregator(runtime.window_years, spec.compute, runtime.require_full_history)
        if runtime.partitions > 1:
            results = aggregator.compute_partitioned(samples, runtime.partitions)
        else:
            results = aggregator.compute(samples)
    except WqStatsError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=2)

    defined = sum(1 for r in results if r.defined)
    logger.info(
        f"{spec.label}: {defined:,} of {len(results):,} windows defined",
        extra={"statistic": spec.key, "window_years": runtime.window_years},
    )

    frame = results_to_frame(samples, results, runtime.time_column, runtime.value_column)
    if output is not None:
        frame.to_csv(output, index=False)
        typer.echo(f"Wrote {len(frame):,} rows to {output}", err=True)
    else:
        typer.echo(frame.to_csv(index=False), nl=False)


@app.command()
def statistics(
    config_path: Optional[Path] = typer.Option(None, "--config", help="YAML runtime config"),
) -> None:
    """List the available statistic keys."""
    try:
        cfg = load_config(config_path)
        registry = build_registry(cfg.runtime)
    except WqStatsError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=2)
    for key, spec in registry.items():
        typer.echo(f"{key}\t{spec.label}")


if __name__ == "__main__":
    app()
