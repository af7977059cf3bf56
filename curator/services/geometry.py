"""Polygon geometry for hit-testing and drag selection.

All functions are pure and total: degenerate inputs (no points, two-point
"polygons", zero-area rectangles) give zero/False results, never errors.
"""

from __future__ import annotations

from collections.abc import Sequence

from curator.models.region import Point


def bounding_box(points: Sequence[Point]) -> tuple[float, float, float, float]:
    """Return ``(x, y, w, h)`` enclosing *points*; ``(0, 0, 0, 0)`` if empty."""
    if not points:
        return (0.0, 0.0, 0.0, 0.0)

    min_x = max_x = points[0].x
    min_y = max_y = points[0].y
    for p in points:
        if p.x < min_x:
            min_x = p.x
        if p.x > max_x:
            max_x = p.x
        if p.y < min_y:
            min_y = p.y
        if p.y > max_y:
            max_y = p.y

    return (min_x, min_y, max_x - min_x, max_y - min_y)


def point_in_polygon(points: Sequence[Point], x: float, y: float) -> bool:
    """Even-odd ray casting test of ``(x, y)`` against the ring *points*.

    Edges are walked as ``(points[j], points[k])`` with ``k`` trailing ``j``
    by one (starting at the last vertex). Each edge straddling the
    horizontal line through ``y`` with a crossing right of ``x`` flips the
    result.
    """
    if len(points) < 3:
        return False

    inside = False
    k = len(points) - 1
    for j in range(len(points)):
        xi, yi = points[j].x, points[j].y
        xj, yj = points[k].x, points[k].y
        # The straddle check guarantees yj != yi before dividing.
        if (yi > y) != (yj > y) and x < (xj - xi) * (y - yi) / (yj - yi) + xi:
            inside = not inside
        k = j
    return inside


def fully_contained(
    points: Sequence[Point],
    rect_min_x: float,
    rect_min_y: float,
    rect_max_x: float,
    rect_max_y: float,
) -> bool:
    """Return True iff every vertex lies inside the (inclusive) rectangle.

    Partially overlapping polygons are not contained. An empty polygon is
    never contained.
    """
    if not points:
        return False
    return all(
        rect_min_x <= p.x <= rect_max_x and rect_min_y <= p.y <= rect_max_y
        for p in points
    )


def normalize_rect(
    ax: float, ay: float, bx: float, by: float
) -> tuple[float, float, float, float]:
    """Turn two opposite corners into ``(min_x, min_y, max_x, max_y)``."""
    return (min(ax, bx), min(ay, by), max(ax, bx), max(ay, by))


def points_from_segmentation(seg: Sequence) -> list[Point]:
    """Convert a COCO segmentation into a vertex list.

    Accepts both ``[[x1, y1, x2, y2, ...], ...]`` (only the first polygon is
    used) and the flat ``[x1, y1, x2, y2, ...]`` form. A trailing unpaired
    coordinate is dropped.
    """
    if not seg:
        return []
    flat = seg[0] if isinstance(seg[0], (list, tuple)) else seg
    return [
        Point(x=float(flat[i]), y=float(flat[i + 1]))
        for i in range(0, len(flat) - 1, 2)
    ]
