"""Pydantic models for pointer hit-testing and selection requests."""

from typing import Literal

from curator.models._base import CamelModel


class CanvasViewport(CamelModel):
    """How the canvas is laid out on screen when the pointer event fired.

    ``internal_*`` is the canvas's native pixel size, ``display_*`` its CSS
    size. ``scale``/``pan_*`` describe the current zoom/pan transform.
    """

    internal_width: float
    internal_height: float
    display_width: float
    display_height: float
    offset_left: float = 0.0
    offset_top: float = 0.0
    scale: float = 1.0
    pan_x: float = 0.0
    pan_y: float = 0.0


class HitTestRequest(CamelModel):
    """Request body for POST /datasets/{id}/selection/hit."""

    client_x: float
    client_y: float
    viewport: CanvasViewport


class HitTestResponse(CamelModel):
    """Region under the pointer, if any."""

    region_id: int | None


class ClickRequest(HitTestRequest):
    """Request body for POST /datasets/{id}/selection/click."""

    target: Literal["remove", "classify"] = "remove"
    category_id: int | None = None


class RangeSelectRequest(CamelModel):
    """Request body for POST /datasets/{id}/selection/range.

    ``start_*``/``end_*`` are the drag anchor and release position in client
    (device) coordinates.
    """

    start_x: float
    start_y: float
    end_x: float
    end_y: float
    viewport: CanvasViewport
    target: Literal["remove", "classify"] = "remove"
    category_id: int | None = None


class SelectionResponse(CamelModel):
    """Outcome of a click or range selection."""

    kind: Literal["click", "range", "none"]
    region_ids: list[int]
    added: int
    removed: int


class RemovedIdsDocument(CamelModel):
    """Persisted ``remove.json`` document."""

    version: int = 1
    updated_at: str | None = None
    removed_ids: list[int] = []


class RemovedIdsUpdate(CamelModel):
    """Request body for PUT /datasets/{id}/removed."""

    removed_ids: list[int]
