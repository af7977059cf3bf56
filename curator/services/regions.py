"""Region queries against DuckDB plus metric statistics.

Functions take a DuckDB cursor so callers control its lifetime, the same
way the routers open and close cursors per request.
"""

from __future__ import annotations

import json
from collections.abc import Iterable, Sequence

import pandas as pd
from duckdb import DuckDBPyConnection

from curator.models.region import AnnotationRegion, MetricStat, Point
from curator.services.errors import DatasetNotFoundError
from curator.services.geometry import bounding_box

REGION_COLUMNS = [
    "dataset_id", "id", "seq", "bbox_x", "bbox_y", "bbox_w", "bbox_h",
    "points", "metrics", "category_id", "is_manual_added",
]


def _load_json(value):
    return json.loads(value) if isinstance(value, str) else value


def region_record(dataset_id: str, seq: int, region: AnnotationRegion) -> dict:
    """Flatten a region into a row dict matching the ``regions`` table."""
    x, y, w, h = region.bbox
    return {
        "dataset_id": dataset_id,
        "id": region.id,
        "seq": seq,
        "bbox_x": float(x),
        "bbox_y": float(y),
        "bbox_w": float(w),
        "bbox_h": float(h),
        "points": json.dumps([p.model_dump() for p in region.points]),
        "metrics": json.dumps(region.metrics),
        "category_id": region.category_id,
        "is_manual_added": region.is_manual_added,
    }


def records_frame(records: list[dict]) -> pd.DataFrame:
    """Build a DataFrame with the ``regions`` column order for bulk insert."""
    frame = pd.DataFrame(records, columns=REGION_COLUMNS)
    frame["category_id"] = frame["category_id"].astype("Int64")
    return frame


def ensure_dataset(cursor: DuckDBPyConnection, dataset_id: str) -> None:
    """Raise DatasetNotFoundError unless *dataset_id* has been loaded."""
    row = cursor.execute("SELECT 1 FROM datasets WHERE id = ?", [dataset_id]).fetchone()
    if row is None:
        raise DatasetNotFoundError(f"Dataset '{dataset_id}' not found")


def fetch_regions(cursor: DuckDBPyConnection, dataset_id: str) -> list[AnnotationRegion]:
    """Return all regions of a dataset in draw order."""
    rows = cursor.execute(
        "SELECT id, bbox_x, bbox_y, bbox_w, bbox_h, points, metrics, "
        "category_id, is_manual_added "
        "FROM regions WHERE dataset_id = ? ORDER BY seq",
        [dataset_id],
    ).fetchall()

    return [
        AnnotationRegion(
            id=row[0],
            bbox=(row[1], row[2], row[3], row[4]),
            points=[Point(**p) for p in _load_json(row[5])],
            metrics=_load_json(row[6]),
            category_id=row[7],
            is_manual_added=bool(row[8]),
        )
        for row in rows
    ]


def insert_manual_region(
    cursor: DuckDBPyConnection,
    dataset_id: str,
    points: Sequence[Point],
    category_id: int | None = None,
) -> AnnotationRegion:
    """Append a hand-drawn region with the next free negative id."""
    row = cursor.execute(
        "SELECT LEAST(COALESCE(MIN(id), 0), 0), COALESCE(MAX(seq), -1) "
        "FROM regions WHERE dataset_id = ?",
        [dataset_id],
    ).fetchone()
    region = AnnotationRegion(
        id=int(row[0]) - 1,
        bbox=bounding_box(points),
        points=list(points),
        metrics={},
        category_id=category_id,
        is_manual_added=True,
    )
    record = region_record(dataset_id, int(row[1]) + 1, region)
    cursor.execute(
        f"INSERT INTO regions ({', '.join(REGION_COLUMNS)}) "
        f"VALUES ({', '.join('?' for _ in REGION_COLUMNS)})",
        [record[c] for c in REGION_COLUMNS],
    )
    cursor.execute(
        "UPDATE datasets SET region_count = region_count + 1 WHERE id = ?",
        [dataset_id],
    )
    return region


def compute_metric_stats(regions: Iterable[AnnotationRegion]) -> list[MetricStat]:
    """Min/max per metric over *regions*; metrics keep first-seen order."""
    frame = pd.DataFrame([r.metrics for r in regions])
    stats: list[MetricStat] = []
    for key in frame.columns:
        values = frame[key].dropna()
        if values.empty:
            stats.append(MetricStat(key=str(key), min=0.0, max=0.0))
        else:
            stats.append(
                MetricStat(key=str(key), min=float(values.min()), max=float(values.max()))
            )
    return stats
