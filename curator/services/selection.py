"""Pointer-driven region selection.

Turns device (client) pointer coordinates into region ids:

1. :class:`CanvasGeometry` maps client coordinates onto the canvas's native
   pixel grid (the canvas may be CSS-scaled, independently in X and Y).
2. :class:`ViewTransform` undoes the current zoom/pan to reach image
   ("world") coordinates, where region polygons live.
3. :func:`hit_test` / :func:`range_select` resolve regions with the
   geometry predicates.

:class:`SelectionController` ties these together into the
down/move/up gesture state machine used for click toggles and drag
rectangles.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, field
from typing import Literal

from curator.models.region import AnnotationRegion
from curator.services.geometry import fully_contained, normalize_rect, point_in_polygon

logger = logging.getLogger(__name__)

MIN_SCALE = 0.1
MAX_SCALE = 20.0
ZOOM_STEP = 1.1


@dataclass(frozen=True)
class CanvasGeometry:
    """Native canvas size vs. its on-screen (displayed) box."""

    internal_width: float
    internal_height: float
    display_width: float
    display_height: float
    offset_left: float = 0.0
    offset_top: float = 0.0

    @property
    def scale_x(self) -> float:
        if self.display_width <= 0:
            return 1.0
        return self.internal_width / self.display_width

    @property
    def scale_y(self) -> float:
        if self.display_height <= 0:
            return 1.0
        return self.internal_height / self.display_height

    def to_internal(self, client_x: float, client_y: float) -> tuple[float, float]:
        """Map a client pointer position onto the canvas pixel grid."""
        return (
            (client_x - self.offset_left) * self.scale_x,
            (client_y - self.offset_top) * self.scale_y,
        )


@dataclass(frozen=True)
class ViewTransform:
    """Zoom (``scale``) and pan (``x``, ``y``) applied when drawing."""

    scale: float = 1.0
    x: float = 0.0
    y: float = 0.0

    def to_world(self, raw_x: float, raw_y: float) -> tuple[float, float]:
        return ((raw_x - self.x) / self.scale, (raw_y - self.y) / self.scale)

    def zoom_at(self, raw_x: float, raw_y: float, zoom_in: bool) -> ViewTransform:
        """Zoom one step around a canvas point, keeping it fixed on screen."""
        world_x, world_y = self.to_world(raw_x, raw_y)
        factor = ZOOM_STEP if zoom_in else 1 / ZOOM_STEP
        scale = max(MIN_SCALE, min(self.scale * factor, MAX_SCALE))
        return ViewTransform(
            scale=scale,
            x=raw_x - world_x * scale,
            y=raw_y - world_y * scale,
        )

    def pan(self, dx: float, dy: float) -> ViewTransform:
        return ViewTransform(scale=self.scale, x=self.x + dx, y=self.y + dy)


# ------------------------------------------------------------------
# Stateless resolution helpers
# ------------------------------------------------------------------


def hit_test(regions: Sequence[AnnotationRegion], x: float, y: float) -> int | None:
    """Return the id of the topmost region containing ``(x, y)``.

    Regions are drawn in list order, so the last one is on top and is
    checked first.
    """
    for region in reversed(regions):
        if point_in_polygon(region.points, x, y):
            return region.id
    return None


def range_select(
    regions: Iterable[AnnotationRegion],
    rect: tuple[float, float, float, float],
) -> list[int]:
    """Ids of non-manual regions whose every vertex lies in *rect*.

    *rect* is ``(min_x, min_y, max_x, max_y)`` in world coordinates.
    """
    min_x, min_y, max_x, max_y = rect
    return [
        region.id
        for region in regions
        if not region.is_manual_added
        and fully_contained(region.points, min_x, min_y, max_x, max_y)
    ]


def toggle_ids(current: Iterable[int], ids: Iterable[int]) -> tuple[set[int], int, int]:
    """Symmetric per-id toggle of a removal set.

    Returns ``(new_set, added, removed)``; *current* is not modified.
    """
    result = set(current)
    added = removed = 0
    for region_id in ids:
        if region_id in result:
            result.remove(region_id)
            removed += 1
        else:
            result.add(region_id)
            added += 1
    return result, added, removed


# ------------------------------------------------------------------
# Gesture state machine
# ------------------------------------------------------------------


@dataclass
class SelectionResult:
    """What a completed pointer gesture did."""

    kind: Literal["click", "range", "none"]
    region_ids: list[int] = field(default_factory=list)
    added: int = 0
    removed: int = 0


ToggleCallback = Callable[[list[int]], tuple[int, int]]


class SelectionController:
    """Hover, click-toggle and drag-rectangle selection over a region list.

    *on_toggle* receives the ids to toggle and returns ``(added, removed)``;
    it owns whichever state is being edited (removal set or classification).
    Manually added regions are never toggled by either gesture.

    A gesture becomes a drag once the pointer moves more than
    *min_drag_size* device units from the anchor along either axis. A
    drag always ends in a range selection, even when it is released back
    near the anchor; only a gesture that never became a drag is a click.
    """

    def __init__(
        self,
        regions: Sequence[AnnotationRegion],
        on_toggle: ToggleCallback,
        canvas: CanvasGeometry | None = None,
        transform: ViewTransform | None = None,
        min_drag_size: float = 2.0,
    ) -> None:
        self.regions = list(regions)
        self.on_toggle = on_toggle
        self.canvas = canvas
        self.transform = transform or ViewTransform()
        self.min_drag_size = min_drag_size

        self.hovered_id: int | None = None
        self._anchor_client: tuple[float, float] | None = None
        self._anchor_world: tuple[float, float] | None = None
        self._corner_world: tuple[float, float] | None = None
        self._dragging = False

    # -- coordinate mapping -------------------------------------------

    def to_world(self, client_x: float, client_y: float) -> tuple[float, float]:
        """Client pointer coordinates -> region (image) coordinates."""
        if self.canvas is not None:
            raw_x, raw_y = self.canvas.to_internal(client_x, client_y)
        else:
            raw_x, raw_y = client_x, client_y
        return self.transform.to_world(raw_x, raw_y)

    @property
    def is_dragging(self) -> bool:
        return self._dragging

    @property
    def selection_rect(self) -> tuple[float, float, float, float] | None:
        """Live drag rectangle in world coordinates, while dragging."""
        if not self._dragging or self._anchor_world is None or self._corner_world is None:
            return None
        return normalize_rect(*self._anchor_world, *self._corner_world)

    # -- pointer events -----------------------------------------------

    def pointer_down(self, client_x: float, client_y: float) -> None:
        self._anchor_client = (client_x, client_y)
        self._anchor_world = self.to_world(client_x, client_y)
        self._corner_world = self._anchor_world
        self._dragging = False

    def pointer_move(self, client_x: float, client_y: float) -> int | None:
        """Track hover, or the live corner of an active drag.

        Returns the hovered region id (unchanged while dragging).
        """
        world = self.to_world(client_x, client_y)

        if self._anchor_client is not None:
            self._corner_world = world
            if not self._dragging and self._exceeds_drag_size(client_x, client_y):
                self._dragging = True
            if self._dragging:
                return self.hovered_id

        self.hovered_id = hit_test(self.regions, *world)
        return self.hovered_id

    def pointer_up(self, client_x: float, client_y: float) -> SelectionResult:
        """Finish the gesture: range-select a real drag, else click."""
        if self._anchor_client is None:
            return SelectionResult(kind="none")

        self._corner_world = self.to_world(client_x, client_y)
        is_range = self._dragging or self._exceeds_drag_size(client_x, client_y)
        rect = normalize_rect(*self._anchor_world, *self._corner_world)
        self._reset_drag()

        if is_range:
            return self.select_rect(rect)
        self.hovered_id = hit_test(self.regions, *self.to_world(client_x, client_y))
        return self.click()

    def pointer_leave(self) -> SelectionResult:
        """Pointer left the canvas: drop hover and any pending drag."""
        self.hovered_id = None
        self._reset_drag()
        return SelectionResult(kind="none")

    # -- actions --------------------------------------------------------

    def click(self) -> SelectionResult:
        """Toggle the hovered region, if it is an automated region."""
        if self.hovered_id is None:
            return SelectionResult(kind="none")
        region = next((r for r in self.regions if r.id == self.hovered_id), None)
        if region is None or region.is_manual_added:
            return SelectionResult(kind="none")
        added, removed = self.on_toggle([region.id])
        return SelectionResult(kind="click", region_ids=[region.id], added=added, removed=removed)

    def select_rect(self, rect: tuple[float, float, float, float]) -> SelectionResult:
        """Toggle every region fully inside *rect* (world coordinates)."""
        ids = range_select(self.regions, rect)
        if not ids:
            return SelectionResult(kind="range")
        added, removed = self.on_toggle(ids)
        logger.debug("Range select toggled %d region(s): +%d -%d", len(ids), added, removed)
        return SelectionResult(kind="range", region_ids=ids, added=added, removed=removed)

    # -- internals ------------------------------------------------------

    def _exceeds_drag_size(self, client_x: float, client_y: float) -> bool:
        if self._anchor_client is None:
            return False
        ax, ay = self._anchor_client
        return (
            abs(client_x - ax) > self.min_drag_size
            or abs(client_y - ay) > self.min_drag_size
        )

    def _reset_drag(self) -> None:
        self._anchor_client = None
        self._anchor_world = None
        self._corner_world = None
        self._dragging = False
