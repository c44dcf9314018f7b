from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import List, Union

import numpy as np
import pandas as pd

from ..core.errors import InvalidInput
from ..core.samples import Sample


logger = logging.getLogger(__name__)


def load_samples(
    path: Union[str, Path],
    time_column: str = "date",
    value_column: str = "value",
    sep: str = ",",
) -> List[Sample]:
    """Read (timestamp, value) samples from a delimited file, sorted by timestamp."""
    path = Path(path)
    logger.info(f"Reading samples from: {path}")

    start_time = time.time()
    try:
        df = pd.read_csv(path, sep=sep)
    except (OSError, UnicodeDecodeError, pd.errors.ParserError, pd.errors.EmptyDataError) as exc:
        raise InvalidInput(f"Cannot read {path}: {exc}") from exc
    load_time = time.time() - start_time

    logger.info(f"CSV loaded: {len(df):,} rows, {len(df.columns)} columns in {load_time:.2f}s")
    return samples_from_frame(df, time_column, value_column)


def samples_from_frame(
    df: pd.DataFrame,
    time_column: str = "date",
    value_column: str = "value",
) -> List[Sample]:
    """Convert two DataFrame columns into sorted samples.

    Rows with an unparseable timestamp or a missing / non-numeric value are
    dropped and counted in a warning. Equal timestamps keep their file order.
    """
    missing = [c for c in (time_column, value_column) if c not in df.columns]
    if missing:
        raise InvalidInput(
            f"Missing column(s) {missing}; available: {list(df.columns)}"
        )

    # pandas would read a numeric column such as a bare year as epoch nanoseconds
    if pd.api.types.is_numeric_dtype(df[time_column]):
        raise InvalidInput(
            f"Column {time_column!r} is numeric ({df[time_column].dtype}), expected calendar dates"
        )
    try:
        timestamps = pd.to_datetime(df[time_column], errors="coerce")
    except (TypeError, ValueError) as exc:
        raise InvalidInput(f"Cannot parse column {time_column!r} as dates: {exc}") from exc
    frame = pd.DataFrame(
        {
            "timestamp": timestamps,
            "value": pd.to_numeric(df[value_column], errors="coerce"),
        }
    )

    usable = frame["timestamp"].notna() & np.isfinite(frame["value"].astype(float))
    dropped = int((~usable).sum())
    if dropped:
        logger.warning(
            f"Dropped {dropped:,} of {len(frame):,} rows without a usable timestamp or value",
            extra={"dropped": dropped},
        )
    frame = frame[usable].sort_values("timestamp", kind="stable")

    samples = [
        Sample(timestamp=ts, value=float(v))
        for ts, v in zip(frame["timestamp"], frame["value"])
    ]
    if samples:
        logger.info(f"{len(samples):,} samples from {samples[0].timestamp} to {samples[-1].timestamp}")
    return samples
