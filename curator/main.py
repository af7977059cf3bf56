"""Region Curator FastAPI application entry point."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from curator.config import get_settings
from curator.repositories.duckdb_repo import DuckDBRepo
from curator.repositories.storage import StorageBackend
from curator.repositories.workspace_store import WorkspaceStore

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage application startup and shutdown.

    On startup:
    - Create DuckDB connection and initialize schema.
    - Create StorageBackend and the WorkspaceStore on top of it.
    - Store all services on app.state for dependency injection.

    On shutdown:
    - Close DuckDB connection.
    """
    settings = get_settings()
    app.state.settings = settings

    # Database
    db = DuckDBRepo(settings.db_path)
    db.initialize_schema()
    app.state.db = db

    # Storage + curation documents
    storage = StorageBackend()
    app.state.storage = storage
    app.state.workspace = WorkspaceStore(
        storage=storage,
        workspace_dir=settings.workspace_dir,
        default_max_depth=settings.default_max_depth,
    )
    logger.info("Workspace documents stored under %s", settings.workspace_dir)

    yield

    # Shutdown
    db.connection.execute("CHECKPOINT")  # Flush WAL to disk before container stops
    db.close()


settings = get_settings()
logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = FastAPI(
    title="Region Curator",
    description="Curate segmentation regions with filters and classification rules",
    version="0.1.0",
    lifespan=lifespan,
)

# In Docker with a reverse proxy (same origin): no CORS needed.
# In local dev: allow the frontend dev server origin.
if not settings.behind_proxy:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["http://localhost:3000"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

# Router includes
from curator.routers import classification, datasets, filters, selection  # noqa: E402

app.include_router(datasets.router)
app.include_router(filters.router)
app.include_router(classification.router)
app.include_router(selection.router)


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Simple health check endpoint."""
    return {"status": "ok"}
