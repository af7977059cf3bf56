"""DuckDB connection wrapper with schema initialization."""

from pathlib import Path

import duckdb


class DuckDBRepo:
    """Manages a DuckDB connection and schema lifecycle.

    Opens a single persistent connection at startup.  Callers obtain
    cursors via ``connection.cursor()`` for concurrent read access.
    """

    def __init__(self, db_path: str | Path) -> None:
        db_path = Path(db_path)
        db_path.parent.mkdir(parents=True, exist_ok=True)
        self.connection: duckdb.DuckDBPyConnection = duckdb.connect(str(db_path))
        self.connection.execute("PRAGMA threads=4")

    def initialize_schema(self) -> None:
        """Create core tables if they do not already exist.

        ``regions.seq`` is the draw order used for hit-testing; manually
        drawn regions are appended after the loaded ones.
        """
        self.connection.execute("""
            CREATE TABLE IF NOT EXISTS datasets (
                id                  VARCHAR NOT NULL,
                name                VARCHAR NOT NULL,
                segmentation_path   VARCHAR NOT NULL,
                metrics_path        VARCHAR,
                region_count        INTEGER DEFAULT 0,
                created_at          TIMESTAMP DEFAULT current_timestamp
            )
        """)

        self.connection.execute("""
            CREATE TABLE IF NOT EXISTS regions (
                dataset_id          VARCHAR NOT NULL,
                id                  BIGINT NOT NULL,
                seq                 INTEGER NOT NULL,
                bbox_x              DOUBLE NOT NULL,
                bbox_y              DOUBLE NOT NULL,
                bbox_w              DOUBLE NOT NULL,
                bbox_h              DOUBLE NOT NULL,
                points              JSON NOT NULL,
                metrics             JSON NOT NULL,
                category_id         INTEGER,
                is_manual_added     BOOLEAN DEFAULT false
            )
        """)

    def close(self) -> None:
        """Close the underlying DuckDB connection."""
        self.connection.close()
