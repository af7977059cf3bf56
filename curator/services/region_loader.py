"""Dataset loading: COCO segmentation polygons joined with a metrics CSV.

Coordinates the segmentation parser, the metrics parser and DuckDB bulk
inserts.  Loading the same dataset id again replaces its regions.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import PurePosixPath

import duckdb
from pandas.errors import EmptyDataError

from curator.ingestion.metrics_parser import metrics_by_id, read_metrics_frame
from curator.ingestion.segmentation_parser import SegmentationParser
from curator.repositories.duckdb_repo import DuckDBRepo
from curator.repositories.storage import StorageBackend
from curator.services.regions import records_frame, region_record

logger = logging.getLogger(__name__)


@dataclass
class LoadSummary:
    """Counts reported after a dataset load."""

    dataset_id: str
    region_count: int
    metric_count: int


class RegionLoader:
    """Loads regions into DuckDB from segmentation + metrics files.

    * *db* -- DuckDB repository for bulk inserts.
    * *storage* -- fsspec storage so inputs may be local or in a bucket.
    """

    def __init__(
        self,
        db: DuckDBRepo,
        storage: StorageBackend,
        batch_size: int = 1000,
    ) -> None:
        self.db = db
        self.storage = storage
        self.batch_size = batch_size

    def read_metrics(self, metrics_path: str | None) -> dict[int, dict[str, float]]:
        """Return per-region metrics, or an empty map if there are none."""
        if not metrics_path:
            return {}
        try:
            with self.storage.open(metrics_path, "rb") as f:
                frame = read_metrics_frame(f)
        except EmptyDataError:
            logger.warning("Metrics file %s is empty", metrics_path)
            return {}
        return metrics_by_id(frame)

    def load(
        self,
        dataset_id: str,
        segmentation_path: str,
        metrics_path: str | None = None,
        name: str | None = None,
    ) -> LoadSummary:
        """Parse both inputs and (re)write the dataset's regions.

        Steps:
        1. Read the metrics CSV into ``{id: {metric: value}}``.
        2. Stream segmentation annotations, joining metrics by id.
        3. Replace the dataset's rows in ``regions`` in batches.
        4. Insert or update the ``datasets`` record.

        Steps 2-4 run in one transaction: a missing or malformed
        segmentation file leaves the previously loaded regions intact.
        """
        metrics = self.read_metrics(metrics_path)
        metric_keys = {key for values in metrics.values() for key in values}
        name = name or PurePosixPath(segmentation_path).stem

        parser = SegmentationParser()
        cursor = self.db.connection.cursor()
        region_count = 0
        try:
            cursor.begin()
            cursor.execute("DELETE FROM regions WHERE dataset_id = ?", [dataset_id])

            batch: list[dict] = []
            with self.storage.open(segmentation_path, "rb") as f:
                for region in parser.iter_regions(f, metrics):
                    batch.append(region_record(dataset_id, region_count, region))
                    region_count += 1
                    if len(batch) >= self.batch_size:
                        self._insert_batch(cursor, batch)
                        batch = []
            if batch:
                self._insert_batch(cursor, batch)

            cursor.execute("DELETE FROM datasets WHERE id = ?", [dataset_id])
            cursor.execute(
                "INSERT INTO datasets "
                "(id, name, segmentation_path, metrics_path, region_count) "
                "VALUES (?, ?, ?, ?, ?)",
                [dataset_id, name, segmentation_path, metrics_path, region_count],
            )
            cursor.commit()
        except Exception:
            cursor.rollback()
            raise
        finally:
            cursor.close()

        logger.info(
            "Loaded dataset %s: %d regions, %d metrics",
            dataset_id,
            region_count,
            len(metric_keys),
        )
        return LoadSummary(
            dataset_id=dataset_id,
            region_count=region_count,
            metric_count=len(metric_keys),
        )

    @staticmethod
    def _insert_batch(cursor: duckdb.DuckDBPyConnection, batch: list[dict]) -> None:
        batch_df = records_frame(batch)  # noqa: F841 -- referenced by DuckDB SQL
        cursor.execute("INSERT INTO regions SELECT * FROM batch_df")
