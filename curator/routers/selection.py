"""Pointer selection API router.

Pointer coordinates arrive in client (device) units together with the
canvas viewport, so hit-testing happens against the same geometry the
operator sees.

Endpoints:
- POST /datasets/{id}/selection/hit     -- region under the pointer
- POST /datasets/{id}/selection/click   -- toggle the clicked region
- POST /datasets/{id}/selection/range   -- toggle regions inside a drag rectangle
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Literal

import duckdb
from fastapi import APIRouter, Depends, HTTPException

from curator.config import Settings
from curator.dependencies import get_app_settings, get_cursor, get_workspace
from curator.models.region import AnnotationRegion
from curator.models.selection import (
    CanvasViewport,
    ClickRequest,
    HitTestRequest,
    HitTestResponse,
    RangeSelectRequest,
    SelectionResponse,
)
from curator.repositories.workspace_store import WorkspaceStore
from curator.routers.datasets import load_dataset_regions
from curator.services.classification_pipeline import toggle_classification
from curator.services.selection import (
    CanvasGeometry,
    SelectionController,
    SelectionResult,
    ViewTransform,
    toggle_ids,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/datasets", tags=["selection"])


def _geometry(viewport: CanvasViewport) -> tuple[CanvasGeometry, ViewTransform]:
    canvas = CanvasGeometry(
        internal_width=viewport.internal_width,
        internal_height=viewport.internal_height,
        display_width=viewport.display_width,
        display_height=viewport.display_height,
        offset_left=viewport.offset_left,
        offset_top=viewport.offset_top,
    )
    scale = viewport.scale if viewport.scale > 0 else 1.0
    return canvas, ViewTransform(scale=scale, x=viewport.pan_x, y=viewport.pan_y)


class _ToggleTarget:
    """Holds the state a gesture edits and persists it afterwards."""

    def __init__(
        self,
        workspace: WorkspaceStore,
        dataset_id: str,
        regions: Sequence[AnnotationRegion],
        target: Literal["remove", "classify"],
        category_id: int | None,
    ) -> None:
        if target == "classify" and category_id is None:
            raise HTTPException(
                status_code=400,
                detail="categoryId is required when target is 'classify'",
            )
        self.workspace = workspace
        self.dataset_id = dataset_id
        self.regions = regions
        self.target = target
        self.category_id = category_id
        self.dirty = False
        if target == "remove":
            self.removed = workspace.load_removed_ids(dataset_id)
        else:
            self.classification = workspace.load_classification(dataset_id)

    def toggle(self, ids: list[int]) -> tuple[int, int]:
        if self.target == "remove":
            self.removed, added, removed = toggle_ids(self.removed, ids)
        else:
            self.classification, added, removed = toggle_classification(
                self.classification, self.regions, ids, self.category_id
            )
        self.dirty = True
        return added, removed

    def save(self) -> None:
        if not self.dirty:
            return
        if self.target == "remove":
            self.workspace.save_removed_ids(self.dataset_id, self.removed)
        else:
            self.workspace.save_classification(self.dataset_id, self.classification)


def _controller(
    regions: Sequence[AnnotationRegion],
    viewport: CanvasViewport,
    target: _ToggleTarget | None,
    settings: Settings,
) -> SelectionController:
    canvas, transform = _geometry(viewport)
    return SelectionController(
        regions,
        on_toggle=target.toggle if target is not None else (lambda ids: (0, 0)),
        canvas=canvas,
        transform=transform,
        min_drag_size=settings.min_drag_size,
    )


def _response(result: SelectionResult) -> SelectionResponse:
    return SelectionResponse(
        kind=result.kind,
        region_ids=result.region_ids,
        added=result.added,
        removed=result.removed,
    )


@router.post("/{dataset_id}/selection/hit", response_model=HitTestResponse)
def hit(
    dataset_id: str,
    body: HitTestRequest,
    cursor: duckdb.DuckDBPyConnection = Depends(get_cursor),
    settings: Settings = Depends(get_app_settings),
) -> HitTestResponse:
    """Return the topmost region under the pointer."""
    regions = load_dataset_regions(cursor, dataset_id)
    controller = _controller(regions, body.viewport, None, settings)
    return HitTestResponse(region_id=controller.pointer_move(body.client_x, body.client_y))


@router.post("/{dataset_id}/selection/click", response_model=SelectionResponse)
def click(
    dataset_id: str,
    body: ClickRequest,
    cursor: duckdb.DuckDBPyConnection = Depends(get_cursor),
    workspace: WorkspaceStore = Depends(get_workspace),
    settings: Settings = Depends(get_app_settings),
) -> SelectionResponse:
    """Toggle the region under the pointer in the removal set or a category."""
    regions = load_dataset_regions(cursor, dataset_id)
    target = _ToggleTarget(workspace, dataset_id, regions, body.target, body.category_id)
    controller = _controller(regions, body.viewport, target, settings)

    controller.pointer_down(body.client_x, body.client_y)
    result = controller.pointer_up(body.client_x, body.client_y)
    target.save()
    return _response(result)


@router.post("/{dataset_id}/selection/range", response_model=SelectionResponse)
def range_(
    dataset_id: str,
    body: RangeSelectRequest,
    cursor: duckdb.DuckDBPyConnection = Depends(get_cursor),
    workspace: WorkspaceStore = Depends(get_workspace),
    settings: Settings = Depends(get_app_settings),
) -> SelectionResponse:
    """Toggle every region fully inside the dragged rectangle.

    Only a gesture that never moved past the minimum drag size along
    either axis falls back to a click at the release point.
    """
    regions = load_dataset_regions(cursor, dataset_id)
    target = _ToggleTarget(workspace, dataset_id, regions, body.target, body.category_id)
    controller = _controller(regions, body.viewport, target, settings)

    controller.pointer_down(body.start_x, body.start_y)
    controller.pointer_move(body.end_x, body.end_y)
    result = controller.pointer_up(body.end_x, body.end_y)
    target.save()

    if result.kind == "range":
        logger.info(
            "Range selection on %s: %d added, %d removed",
            dataset_id,
            result.added,
            result.removed,
        )
    return _response(result)
