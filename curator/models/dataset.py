"""Pydantic models for dataset loading and responses."""

from datetime import datetime

from curator.models._base import CamelModel


class LoadRequest(CamelModel):
    """Request body for POST /datasets/load."""

    dataset_id: str
    segmentation_path: str
    metrics_path: str | None = None
    name: str | None = None


class LoadResponse(CamelModel):
    """Summary of a completed load."""

    dataset_id: str
    region_count: int
    metric_count: int


class DatasetResponse(CamelModel):
    """Single dataset record returned by the API."""

    id: str
    name: str
    segmentation_path: str
    metrics_path: str | None = None
    region_count: int
    created_at: datetime


class DatasetListResponse(CamelModel):
    """List of datasets returned by the API."""

    datasets: list[DatasetResponse]
