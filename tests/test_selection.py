"""Tests for coordinate mapping, hit-testing and the pointer gesture controller."""

import pytest

from conftest import square

from curator.services.selection import (
    MAX_SCALE,
    MIN_SCALE,
    CanvasGeometry,
    SelectionController,
    ViewTransform,
    hit_test,
    range_select,
    toggle_ids,
)


class Recorder:
    """on_toggle callback toggling a removal set and recording each call."""

    def __init__(self, initial=()) -> None:
        self.removed = set(initial)
        self.calls: list[list[int]] = []

    def __call__(self, ids: list[int]) -> tuple[int, int]:
        self.calls.append(list(ids))
        self.removed, added, removed = toggle_ids(self.removed, ids)
        return added, removed


@pytest.fixture()
def regions():
    """Three squares in a row plus a manual region at the far right."""
    return [
        square(1, 0, 0),
        square(2, 20, 0),
        square(3, 40, 0),
        square(-1, 60, 0, is_manual_added=True),
    ]


# ------------------------------------------------------------------
# Coordinate mapping
# ------------------------------------------------------------------


class TestCanvasGeometry:
    def test_independent_axis_scaling(self) -> None:
        canvas = CanvasGeometry(
            internal_width=1000, internal_height=500,
            display_width=500, display_height=500,
            offset_left=10, offset_top=20,
        )
        assert canvas.scale_x == 2.0
        assert canvas.scale_y == 1.0
        assert canvas.to_internal(60, 70) == (100.0, 50.0)

    def test_zero_display_size_falls_back_to_unit_scale(self) -> None:
        canvas = CanvasGeometry(internal_width=1000, internal_height=500, display_width=0, display_height=0)
        assert canvas.to_internal(5, 6) == (5.0, 6.0)


class TestViewTransform:
    def test_to_world_undoes_pan_and_zoom(self) -> None:
        assert ViewTransform(scale=2, x=10, y=20).to_world(30, 40) == (10.0, 10.0)

    def test_zoom_keeps_anchor_fixed(self) -> None:
        view = ViewTransform(scale=1.5, x=12, y=-4)
        zoomed = view.zoom_at(100, 80, zoom_in=True)
        before = view.to_world(100, 80)
        after = zoomed.to_world(100, 80)
        assert after == pytest.approx(before)
        assert zoomed.scale == pytest.approx(1.5 * 1.1)

    def test_zoom_is_clamped(self) -> None:
        assert ViewTransform(scale=MAX_SCALE).zoom_at(0, 0, zoom_in=True).scale == MAX_SCALE
        assert ViewTransform(scale=MIN_SCALE).zoom_at(0, 0, zoom_in=False).scale == MIN_SCALE

    def test_pan(self) -> None:
        assert ViewTransform(scale=2, x=1, y=1).pan(3, -4) == ViewTransform(scale=2, x=4, y=-3)


# ------------------------------------------------------------------
# Stateless helpers
# ------------------------------------------------------------------


def test_hit_test_prefers_topmost_region() -> None:
    bottom = square(1, 0, 0, size=20)
    top = square(2, 5, 5, size=10)
    assert hit_test([bottom, top], 10, 10) == 2
    assert hit_test([top, bottom], 10, 10) == 1
    assert hit_test([bottom, top], 2, 2) == 1
    assert hit_test([bottom, top], 50, 50) is None


def test_range_select_requires_full_containment(regions) -> None:
    assert range_select(regions, (-1, -1, 31, 11)) == [1, 2]
    assert range_select(regions, (-1, -1, 25, 11)) == [1]


def test_range_select_skips_manual_regions(regions) -> None:
    assert range_select(regions, (-100, -100, 100, 100)) == [1, 2, 3]


def test_toggle_ids_counts() -> None:
    result, added, removed = toggle_ids({1, 5}, [1, 2, 3])
    assert result == {2, 3, 5}
    assert (added, removed) == (2, 1)


# ------------------------------------------------------------------
# SelectionController
# ------------------------------------------------------------------


class TestSelectionController:
    def test_hover_tracks_region_under_pointer(self, regions) -> None:
        controller = SelectionController(regions, on_toggle=Recorder())
        assert controller.pointer_move(25, 5) == 2
        assert controller.pointer_move(15, 5) is None

    def test_hover_uses_canvas_and_view_mapping(self, regions) -> None:
        canvas = CanvasGeometry(internal_width=200, internal_height=200, display_width=100, display_height=100)
        view = ViewTransform(scale=2)
        controller = SelectionController(regions, on_toggle=Recorder(), canvas=canvas, transform=view)
        # client (25, 5) -> canvas (50, 10) -> world (25, 5)
        assert controller.pointer_move(25, 5) == 2

    def test_click_toggles_region(self, regions) -> None:
        recorder = Recorder()
        controller = SelectionController(regions, on_toggle=recorder)

        controller.pointer_down(5, 5)
        result = controller.pointer_up(5, 5)
        assert result.kind == "click"
        assert result.region_ids == [1]
        assert (result.added, result.removed) == (1, 0)

        controller.pointer_down(5, 5)
        result = controller.pointer_up(5, 5)
        assert (result.added, result.removed) == (0, 1)
        assert recorder.removed == set()

    def test_click_on_empty_space_does_nothing(self, regions) -> None:
        recorder = Recorder()
        controller = SelectionController(regions, on_toggle=recorder)
        controller.pointer_down(15, 50)
        assert controller.pointer_up(15, 50).kind == "none"
        assert recorder.calls == []

    def test_click_ignores_manual_regions(self, regions) -> None:
        recorder = Recorder()
        controller = SelectionController(regions, on_toggle=recorder)
        controller.pointer_down(65, 5)
        assert controller.pointer_up(65, 5).kind == "none"
        assert recorder.calls == []

    def test_drag_selects_contained_regions(self, regions) -> None:
        recorder = Recorder(initial={2})
        controller = SelectionController(regions, on_toggle=recorder)

        controller.pointer_down(-1, -1)
        controller.pointer_move(51, 11)
        assert controller.is_dragging is True
        assert controller.selection_rect == (-1, -1, 51, 11)
        result = controller.pointer_up(51, 11)

        assert result.kind == "range"
        assert result.region_ids == [1, 2, 3]
        assert (result.added, result.removed) == (2, 1)
        assert recorder.removed == {1, 3}
        assert controller.is_dragging is False

    def test_reverse_drag_is_normalized(self, regions) -> None:
        controller = SelectionController(regions, on_toggle=Recorder())
        controller.pointer_down(31, 11)
        result = controller.pointer_up(-1, -1)
        assert result.region_ids == [1, 2]

    def test_drag_never_selects_manual_regions(self, regions) -> None:
        recorder = Recorder()
        controller = SelectionController(regions, on_toggle=recorder)
        controller.pointer_down(-100, -100)
        result = controller.pointer_up(100, 100)
        assert result.region_ids == [1, 2, 3]
        assert -1 not in recorder.removed

    def test_micro_drag_is_a_click(self, regions) -> None:
        recorder = Recorder()
        controller = SelectionController(regions, on_toggle=recorder)
        controller.pointer_down(4, 4)
        controller.pointer_move(6, 6)
        assert controller.is_dragging is False
        result = controller.pointer_up(6, 6)
        assert result.kind == "click"
        assert result.region_ids == [1]

    def test_wide_thin_drag_is_a_range(self, regions) -> None:
        # Only 2 units tall, but 26 wide: still a drag, and region 2 is not fully inside.
        recorder = Recorder()
        controller = SelectionController(regions, on_toggle=recorder)
        controller.pointer_down(-1, 5)
        controller.pointer_move(25, 7)
        assert controller.is_dragging is True
        result = controller.pointer_up(25, 7)
        assert result.kind == "range"
        assert result.region_ids == []
        assert recorder.calls == []

    def test_drag_released_near_anchor_is_never_a_click(self, regions) -> None:
        recorder = Recorder()
        controller = SelectionController(regions, on_toggle=recorder)
        controller.pointer_down(5, 5)
        controller.pointer_move(51, 11)
        assert controller.is_dragging is True
        result = controller.pointer_up(5, 5)
        assert result.kind == "range"
        assert result.region_ids == []
        assert recorder.calls == []
        assert controller.is_dragging is False

    def test_drag_threshold_uses_device_units(self, regions) -> None:
        # At 4x zoom a 3-unit drag on screen is under one world unit, but still a range.
        controller = SelectionController(regions, on_toggle=Recorder(), transform=ViewTransform(scale=4))
        controller.pointer_down(0, 0)
        result = controller.pointer_up(3, 3)
        assert result.kind == "range"
        assert result.region_ids == []

    def test_empty_range_does_not_call_toggle(self, regions) -> None:
        recorder = Recorder()
        controller = SelectionController(regions, on_toggle=recorder)
        controller.pointer_down(100, 100)
        result = controller.pointer_up(200, 200)
        assert result.kind == "range"
        assert recorder.calls == []

    def test_pointer_leave_cancels_drag(self, regions) -> None:
        recorder = Recorder()
        controller = SelectionController(regions, on_toggle=recorder)
        controller.pointer_down(-1, -1)
        controller.pointer_move(51, 11)
        controller.pointer_leave()
        assert controller.selection_rect is None
        assert controller.pointer_up(51, 11).kind == "none"
        assert recorder.calls == []
