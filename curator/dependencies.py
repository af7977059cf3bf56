"""FastAPI dependency injection for DuckDB and application services."""

from collections.abc import Generator

import duckdb
from fastapi import Depends, Request

from curator.config import Settings, get_settings
from curator.repositories.duckdb_repo import DuckDBRepo
from curator.repositories.storage import StorageBackend
from curator.repositories.workspace_store import WorkspaceStore
from curator.services.region_loader import RegionLoader


def get_db(request: Request) -> DuckDBRepo:
    """Return the application-wide DuckDBRepo stored on app.state."""
    return request.app.state.db


def get_cursor(
    db: DuckDBRepo = Depends(get_db),
) -> Generator[duckdb.DuckDBPyConnection, None, None]:
    """Yield a DuckDB cursor, closing it after the request."""
    cursor = db.connection.cursor()
    try:
        yield cursor
    finally:
        cursor.close()


def get_storage(request: Request) -> StorageBackend:
    """Return the application-wide StorageBackend stored on app.state."""
    return request.app.state.storage


def get_workspace(request: Request) -> WorkspaceStore:
    """Return the application-wide WorkspaceStore stored on app.state."""
    return request.app.state.workspace


def get_app_settings(request: Request) -> Settings:
    """Return settings stored on app.state, falling back to the cached ones."""
    return getattr(request.app.state, "settings", None) or get_settings()


def get_region_loader(
    db: DuckDBRepo = Depends(get_db),
    storage: StorageBackend = Depends(get_storage),
) -> RegionLoader:
    """Compose a RegionLoader from its collaborators."""
    return RegionLoader(db=db, storage=storage)
