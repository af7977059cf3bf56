"""Datasets API router.

Endpoints:
- POST /datasets/load                        -- load segmentation + metrics into DuckDB
- GET  /datasets                             -- list all datasets
- GET  /datasets/{id}                        -- get a single dataset
- GET  /datasets/{id}/regions                -- regions in draw order
- GET  /datasets/{id}/metrics                -- per-metric min/max
- POST /datasets/{id}/regions/manual         -- add a hand-drawn region
- GET  /datasets/{id}/removed                -- manually removed region ids
- PUT  /datasets/{id}/removed                -- replace manually removed region ids
"""

from __future__ import annotations

import logging

import duckdb
import ijson
from fastapi import APIRouter, Depends, HTTPException

from curator.dependencies import get_cursor, get_region_loader, get_workspace
from curator.models.dataset import (
    DatasetListResponse,
    DatasetResponse,
    LoadRequest,
    LoadResponse,
)
from curator.models.filter import FilterConfig, FilterGroup
from curator.models.region import (
    AnnotationRegion,
    ManualRegionCreate,
    MetricStatsResponse,
    RegionListResponse,
)
from curator.models.selection import RemovedIdsDocument, RemovedIdsUpdate
from curator.repositories.workspace_store import WorkspaceStore
from curator.routers._errors import http_error
from curator.services.errors import CuratorError
from curator.services.filter_evaluator import compute_excluded_ids
from curator.services.region_loader import RegionLoader
from curator.services.regions import (
    compute_metric_stats,
    ensure_dataset,
    fetch_regions,
    insert_manual_region,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/datasets", tags=["datasets"])

_DATASET_COLUMNS = (
    "SELECT id, name, segmentation_path, metrics_path, region_count, created_at "
    "FROM datasets"
)


def _dataset_from_row(row) -> DatasetResponse:
    return DatasetResponse(
        id=row[0],
        name=row[1],
        segmentation_path=row[2],
        metrics_path=row[3],
        region_count=row[4],
        created_at=row[5],
    )


def load_dataset_regions(
    cursor: duckdb.DuckDBPyConnection, dataset_id: str
) -> list[AnnotationRegion]:
    """Fetch regions of an existing dataset, or raise a 404."""
    try:
        ensure_dataset(cursor, dataset_id)
    except CuratorError as exc:
        raise http_error(exc) from exc
    return fetch_regions(cursor, dataset_id)


def save_filter_config(
    cursor: duckdb.DuckDBPyConnection,
    workspace: WorkspaceStore,
    dataset_id: str,
    root: FilterGroup | None = None,
    max_depth: int | None = None,
) -> FilterConfig:
    """Recompute exclusions over the dataset's current regions and persist.

    Without *root* or *max_depth* the saved values are kept, so a reload
    refreshes ``excludedIds`` for the existing tree.
    """
    regions = load_dataset_regions(cursor, dataset_id)
    if root is None or max_depth is None:
        current = workspace.load_filter_config(dataset_id)
        root = root if root is not None else current.root
        max_depth = max_depth if max_depth is not None else current.max_depth
    config = FilterConfig(
        root=root,
        max_depth=max_depth,
        excluded_ids=compute_excluded_ids(root, regions),
    )
    workspace.save_filter_config(dataset_id, config)
    logger.info(
        "Saved filter for %s: %d of %d regions excluded",
        dataset_id,
        len(config.excluded_ids),
        len(regions),
    )
    return config


@router.post("/load", response_model=LoadResponse)
def load_dataset(
    request: LoadRequest,
    loader: RegionLoader = Depends(get_region_loader),
    cursor: duckdb.DuckDBPyConnection = Depends(get_cursor),
    workspace: WorkspaceStore = Depends(get_workspace),
) -> LoadResponse:
    """Load (or reload) a dataset's regions from its input files.

    The saved filter's ``excludedIds`` is recomputed over the new regions.
    """
    try:
        summary = loader.load(
            dataset_id=request.dataset_id,
            segmentation_path=request.segmentation_path,
            metrics_path=request.metrics_path,
            name=request.name,
        )
    except FileNotFoundError as exc:
        raise HTTPException(status_code=400, detail=f"File not found: {exc}") from exc
    except (ijson.JSONError, ValueError) as exc:
        logger.warning("Failed to load dataset %s", request.dataset_id, exc_info=True)
        raise HTTPException(status_code=400, detail=f"Invalid input: {exc}") from exc

    save_filter_config(cursor, workspace, summary.dataset_id)
    return LoadResponse(
        dataset_id=summary.dataset_id,
        region_count=summary.region_count,
        metric_count=summary.metric_count,
    )


@router.get("", response_model=DatasetListResponse)
def list_datasets(
    cursor: duckdb.DuckDBPyConnection = Depends(get_cursor),
) -> DatasetListResponse:
    """Return all datasets ordered by creation date (newest first)."""
    rows = cursor.execute(f"{_DATASET_COLUMNS} ORDER BY created_at DESC").fetchall()
    return DatasetListResponse(datasets=[_dataset_from_row(row) for row in rows])


@router.get("/{dataset_id}", response_model=DatasetResponse)
def get_dataset(
    dataset_id: str,
    cursor: duckdb.DuckDBPyConnection = Depends(get_cursor),
) -> DatasetResponse:
    """Return a single dataset by ID, or 404."""
    row = cursor.execute(f"{_DATASET_COLUMNS} WHERE id = ?", [dataset_id]).fetchone()
    if row is None:
        raise HTTPException(status_code=404, detail="Dataset not found")
    return _dataset_from_row(row)


@router.get("/{dataset_id}/regions", response_model=RegionListResponse)
def list_regions(
    dataset_id: str,
    cursor: duckdb.DuckDBPyConnection = Depends(get_cursor),
) -> RegionListResponse:
    """Return the dataset's regions in draw order."""
    return RegionListResponse(regions=load_dataset_regions(cursor, dataset_id))


@router.get("/{dataset_id}/metrics", response_model=MetricStatsResponse)
def get_metric_stats(
    dataset_id: str,
    cursor: duckdb.DuckDBPyConnection = Depends(get_cursor),
) -> MetricStatsResponse:
    """Return min/max per metric (for range controls)."""
    regions = load_dataset_regions(cursor, dataset_id)
    return MetricStatsResponse(stats=compute_metric_stats(regions))


@router.post("/{dataset_id}/regions/manual", response_model=AnnotationRegion, status_code=201)
def add_manual_region(
    dataset_id: str,
    body: ManualRegionCreate,
    cursor: duckdb.DuckDBPyConnection = Depends(get_cursor),
    workspace: WorkspaceStore = Depends(get_workspace),
) -> AnnotationRegion:
    """Append a hand-drawn polygon; it receives a negative id."""
    try:
        ensure_dataset(cursor, dataset_id)
    except CuratorError as exc:
        raise http_error(exc) from exc
    region = insert_manual_region(cursor, dataset_id, body.points, body.category_id)
    logger.info("Added manual region %d to dataset %s", region.id, dataset_id)
    save_filter_config(cursor, workspace, dataset_id)
    return region


@router.get("/{dataset_id}/removed", response_model=RemovedIdsDocument)
def get_removed_ids(
    dataset_id: str,
    workspace: WorkspaceStore = Depends(get_workspace),
) -> RemovedIdsDocument:
    """Return the manually removed region ids."""
    return RemovedIdsDocument(removed_ids=sorted(workspace.load_removed_ids(dataset_id)))


@router.put("/{dataset_id}/removed", response_model=RemovedIdsDocument)
def put_removed_ids(
    dataset_id: str,
    body: RemovedIdsUpdate,
    workspace: WorkspaceStore = Depends(get_workspace),
) -> RemovedIdsDocument:
    """Replace the manually removed region ids."""
    removed = set(body.removed_ids)
    workspace.save_removed_ids(dataset_id, removed)
    return RemovedIdsDocument(removed_ids=sorted(removed))
