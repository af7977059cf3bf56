"""Per-region metrics CSV parsing with pandas.

The first column holds the region id; every other column is a numeric
metric keyed by its (stripped) header name.  Non-numeric or empty cells
become missing metrics rather than errors.
"""

from __future__ import annotations

import logging
from typing import BinaryIO

import pandas as pd

logger = logging.getLogger(__name__)


def read_metrics_frame(f: BinaryIO) -> pd.DataFrame:
    """Read the CSV into a frame indexed by integer region id."""
    frame = pd.read_csv(f, skipinitialspace=True)
    frame.columns = [str(c).strip() for c in frame.columns]
    if frame.empty or len(frame.columns) == 0:
        return pd.DataFrame()

    id_col = frame.columns[0]
    frame[id_col] = pd.to_numeric(frame[id_col], errors="coerce")
    dropped = int(frame[id_col].isna().sum())
    if dropped:
        logger.warning("Dropped %d metric row(s) without a numeric id", dropped)
    frame = frame.dropna(subset=[id_col])
    frame[id_col] = frame[id_col].astype("int64")

    metric_cols = list(frame.columns[1:])
    if metric_cols:
        frame[metric_cols] = frame[metric_cols].apply(pd.to_numeric, errors="coerce")
    return frame.set_index(id_col)


def metrics_by_id(frame: pd.DataFrame) -> dict[int, dict[str, float]]:
    """Convert the frame into ``{region_id: {metric: value}}`` without NaNs."""
    result: dict[int, dict[str, float]] = {}
    for region_id, row in frame.iterrows():
        result[int(region_id)] = {
            str(key): float(value) for key, value in row.items() if pd.notna(value)
        }
    return result
