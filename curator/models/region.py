"""Pydantic models for annotation regions and their metric statistics."""

from pydantic import BaseModel, Field

from curator.models._base import CamelModel


class Point(BaseModel):
    """A 2-D vertex in canvas (image) coordinates."""

    x: float
    y: float


class AnnotationRegion(CamelModel):
    """One segmented object: polygon, bounding box and numeric metrics.

    ``points`` is an open ring (the first vertex is not repeated).
    Manually drawn regions carry negative ids and ``is_manual_added=True``.
    """

    id: int
    bbox: tuple[float, float, float, float] = (0.0, 0.0, 0.0, 0.0)
    points: list[Point] = []
    metrics: dict[str, float] = {}
    category_id: int | None = None
    is_manual_added: bool = False


class MetricStat(BaseModel):
    """Min/max of one metric across a dataset (drives UI range sliders)."""

    key: str
    min: float
    max: float


class RegionListResponse(CamelModel):
    """Regions of a dataset in draw order."""

    regions: list[AnnotationRegion]


class MetricStatsResponse(CamelModel):
    """Per-metric statistics for a dataset."""

    stats: list[MetricStat]


class ManualRegionCreate(CamelModel):
    """Request body for POST /datasets/{id}/regions/manual."""

    points: list[Point] = Field(..., min_length=3)
    category_id: int | None = None
