"""Shared pytest fixtures for Region Curator tests."""

import json
from pathlib import Path

import httpx
import pytest
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from curator.config import Settings
from curator.models.region import AnnotationRegion, Point
from curator.repositories.duckdb_repo import DuckDBRepo
from curator.repositories.storage import StorageBackend
from curator.repositories.workspace_store import WorkspaceStore
from curator.routers import classification, datasets, filters, selection
from curator.services.region_loader import RegionLoader

DATASET_ID = "plate-01"

SEGMENTATION = {
    "images": [{"id": 1, "width": 200, "height": 200, "file_name": "plate.png"}],
    "annotations": [
        {
            "id": 1, "image_id": 1, "category_id": 1, "bbox": [0, 0, 10, 10],
            "seg": [[0, 0, 10, 0, 10, 10, 0, 10]],
        },
        {
            "id": 2, "image_id": 1, "category_id": 1, "bbox": [20, 0, 10, 10],
            "seg": [[20, 0, 30, 0, 30, 10, 20, 10]],
        },
        {
            "id": 3, "image_id": 1, "category_id": 1, "bbox": [40, 0, 10, 10],
            "seg": [[40, 0, 50, 0, 50, 10, 40, 10]],
        },
        {
            # No bbox, standard COCO key, flat polygon, no metrics row.
            "id": 4, "image_id": 1, "category_id": 2,
            "segmentation": [100, 100, 120, 100, 110, 120],
        },
    ],
}

METRICS_CSV = "ID, Area, Circularity\n1,3000,0.9\n2,1000,0.5\n3,2500,\n"


def square(region_id: int, x: float, y: float, size: float = 10.0, **kwargs) -> AnnotationRegion:
    """Axis-aligned square region with its top-left corner at (x, y)."""
    points = [
        Point(x=x, y=y),
        Point(x=x + size, y=y),
        Point(x=x + size, y=y + size),
        Point(x=x, y=y + size),
    ]
    return AnnotationRegion(
        id=region_id,
        bbox=(x, y, size, size),
        points=points,
        **kwargs,
    )


@pytest.fixture()
def tmp_db_path(tmp_path: Path) -> Path:
    """Return a temporary DuckDB file path."""
    return tmp_path / "test.duckdb"


@pytest.fixture()
def db(tmp_db_path: Path) -> DuckDBRepo:
    """Create a DuckDBRepo with a temporary database, initialize schema, then close."""
    repo = DuckDBRepo(tmp_db_path)
    repo.initialize_schema()
    yield repo
    repo.close()


@pytest.fixture()
def storage() -> StorageBackend:
    return StorageBackend()


@pytest.fixture()
def workspace(storage: StorageBackend, tmp_path: Path) -> WorkspaceStore:
    """WorkspaceStore writing into a temporary directory."""
    return WorkspaceStore(storage=storage, workspace_dir=str(tmp_path / "workspace"))


@pytest.fixture()
def input_files(tmp_path: Path) -> tuple[Path, Path]:
    """Write the segmentation JSON and metrics CSV; return their paths."""
    input_dir = tmp_path / "input"
    input_dir.mkdir()
    seg_path = input_dir / "segmentation.json"
    seg_path.write_text(json.dumps(SEGMENTATION))
    csv_path = input_dir / "result.csv"
    csv_path.write_text(METRICS_CSV)
    return seg_path, csv_path


@pytest.fixture()
def loaded_dataset(
    db: DuckDBRepo, storage: StorageBackend, input_files: tuple[Path, Path]
) -> str:
    """Load the fixture files into the DB and return the dataset id."""
    seg_path, csv_path = input_files
    RegionLoader(db=db, storage=storage).load(
        dataset_id=DATASET_ID,
        segmentation_path=str(seg_path),
        metrics_path=str(csv_path),
    )
    return DATASET_ID


@pytest.fixture()
async def app_client(
    db: DuckDBRepo,
    storage: StorageBackend,
    workspace: WorkspaceStore,
    tmp_path: Path,
) -> httpx.AsyncClient:
    """Create a fully wired FastAPI test app and yield an async HTTP client."""
    test_app = FastAPI()

    test_app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Wire services onto app.state
    test_app.state.db = db
    test_app.state.storage = storage
    test_app.state.workspace = workspace
    test_app.state.settings = Settings(
        db_path=tmp_path / "unused.duckdb",
        workspace_dir=workspace.workspace_dir,
    )

    # Include routers
    test_app.include_router(datasets.router)
    test_app.include_router(filters.router)
    test_app.include_router(classification.router)
    test_app.include_router(selection.router)

    @test_app.get("/health")
    async def health_check() -> dict[str, str]:
        return {"status": "ok"}

    async with httpx.AsyncClient(
        transport=httpx.ASGITransport(app=test_app),
        base_url="http://testserver",
    ) as client:
        yield client
