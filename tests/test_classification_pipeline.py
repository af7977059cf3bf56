"""Tests for the ordered classification pipeline and rule editing."""

import pytest

from conftest import square

from curator.models.classification import ClassificationRule
from curator.models.filter import FilterCondition, FilterGroup
from curator.models.region import AnnotationRegion
from curator.services.classification_pipeline import (
    create_rule,
    delete_rule,
    effective_category,
    move_rule,
    prune_classification,
    rule_targets,
    run_pipeline,
    summarize_changes,
    toggle_classification,
    update_rule,
)
from curator.services.errors import RuleNotFoundError

ALWAYS = FilterGroup(id="root")


def _rule(rule_id: str, from_class, to_class: int, filter: FilterGroup = ALWAYS, **kwargs) -> ClassificationRule:
    return ClassificationRule(
        id=rule_id,
        name=rule_id,
        from_class=from_class,
        to_class=to_class,
        filter=filter,
        **kwargs,
    )


def _area_filter(lo: float, hi: float, action: str = "keep") -> FilterGroup:
    return FilterGroup(
        id="root",
        action=action,
        children=[FilterCondition(id="a", metric="Area", min=lo, max=hi)],
    )


@pytest.fixture()
def region_a() -> AnnotationRegion:
    return square(1, 0, 0, category_id=1)


# ------------------------------------------------------------------
# Effective category
# ------------------------------------------------------------------


def test_effective_category_resolution_order() -> None:
    assert effective_category(square(1, 0, 0, category_id=4), {1: 7}) == 7
    assert effective_category(square(1, 0, 0, category_id=4), {}) == 4
    assert effective_category(square(1, 0, 0), {}) == 1


# ------------------------------------------------------------------
# run_pipeline
# ------------------------------------------------------------------


class TestRunPipeline:
    def test_rules_chain_in_order(self, region_a: AnnotationRegion) -> None:
        rules = [_rule("r1", 1, 2), _rule("r2", 2, 3)]
        assert run_pipeline(rules, [region_a], {}) == {1: 3}

    def test_reversed_order_gives_different_result(self, region_a: AnnotationRegion) -> None:
        rules = [_rule("r2", 2, 3), _rule("r1", 1, 2)]
        assert run_pipeline(rules, [region_a], {}) == {1: 2}

    def test_disabled_rules_are_skipped(self, region_a: AnnotationRegion) -> None:
        rules = [_rule("r1", 1, 2, enabled=False), _rule("r2", 1, 5)]
        assert run_pipeline(rules, [region_a], {}) == {1: 5}

    def test_any_matches_every_category(self) -> None:
        regions = [square(1, 0, 0, category_id=1), square(2, 20, 0, category_id=4)]
        assert run_pipeline([_rule("r", "any", 9)], regions, {}) == {1: 9, 2: 9}

    def test_filter_uses_pipeline_mode(self) -> None:
        regions = [
            square(1, 0, 0, metrics={"Area": 3000}),
            square(2, 20, 0, metrics={"Area": 1000}),
        ]
        # "remove" polarity is ignored: the rule targets what the predicate matches.
        rules = [_rule("r", "any", 999, filter=_area_filter(2000, 10000, action="remove"))]
        assert run_pipeline(rules, regions, {}) == {1: 999}

    def test_manual_regions_are_not_exempt(self) -> None:
        manual = square(-1, 0, 0, is_manual_added=True, metrics={"Area": 3000})
        rules = [_rule("r", "any", 2, filter=_area_filter(2000, 10000))]
        assert run_pipeline(rules, [manual], {}) == {-1: 2}

    def test_targets_collected_before_applying(self) -> None:
        # Targets are computed against the state at the start of the rule.
        regions = [square(1, 0, 0, category_id=1), square(2, 20, 0, category_id=2)]
        rule = _rule("r", 1, 2)
        assert rule_targets(rule, regions, {}) == [1]
        assert run_pipeline([rule], regions, {}) == {1: 2}

    def test_existing_overrides_drive_from_class(self, region_a: AnnotationRegion) -> None:
        assert run_pipeline([_rule("r", 4, 5)], [region_a], {1: 4}) == {1: 5}

    def test_input_not_mutated(self, region_a: AnnotationRegion) -> None:
        before = {1: 1}
        after = run_pipeline([_rule("r", 1, 2)], [region_a], before)
        assert before == {1: 1}
        assert after is not before

    def test_idempotent_rerun(self, region_a: AnnotationRegion) -> None:
        rules = [_rule("r1", 1, 2), _rule("r2", 2, 3)]
        first = run_pipeline(rules, [region_a], {})
        assert run_pipeline(rules, [region_a], {}) == first

    def test_zero_matches_is_noop(self, region_a: AnnotationRegion) -> None:
        assert run_pipeline([_rule("r", 7, 8)], [region_a], {}) == {}


def test_summarize_changes() -> None:
    regions = [square(1, 0, 0), square(2, 20, 0), square(3, 40, 0)]
    changed, per_category = summarize_changes({}, {1: 2, 2: 2, 3: 1}, regions)
    assert changed == 2
    assert per_category == {2: 2}


def test_prune_drops_default_entries() -> None:
    regions = [square(1, 0, 0, category_id=1), square(2, 20, 0, category_id=3)]
    assert prune_classification({1: 1, 2: 4, 77: 5}, regions) == {2: 4, 77: 5}


# ------------------------------------------------------------------
# Manual toggles
# ------------------------------------------------------------------


def test_toggle_classification_is_symmetric() -> None:
    regions = [square(1, 0, 0), square(2, 20, 0), square(3, 40, 0)]
    result, added, removed = toggle_classification({1: 5, 2: 3}, regions, [1, 2, 3], 5)
    assert result == {2: 5, 3: 5}
    assert (added, removed) == (2, 1)


def test_toggle_into_default_category_writes_no_entry() -> None:
    regions = [square(7, 0, 0, category_id=1), square(8, 20, 0, category_id=2)]

    # Region 7 already is category 1 by default, so it counts as present.
    result, added, removed = toggle_classification({}, regions, [7], 1)
    assert result == {}
    assert (added, removed) == (0, 1)

    # Moving region 8 back to its default drops the override.
    result, added, removed = toggle_classification({8: 5}, regions, [8], 2)
    assert result == {}
    assert (added, removed) == (1, 0)
    assert effective_category(regions[1], result) == 2


def test_toggle_treats_default_category_as_present() -> None:
    regions = [square(4, 0, 0, category_id=3)]
    result, added, removed = toggle_classification({}, regions, [4], 3)
    assert result == {}
    assert (added, removed) == (0, 1)

    result, added, removed = toggle_classification({}, regions, [4], 6)
    assert result == {4: 6}
    assert (added, removed) == (1, 0)


# ------------------------------------------------------------------
# Rule editing
# ------------------------------------------------------------------


class TestRuleEditing:
    def test_create_rule_snapshots_filter(self) -> None:
        live = _area_filter(0, 10)
        rule = create_rule("small", 1, 2, live)

        live.children[0].max = 99
        assert rule.id.startswith("rule-")
        assert rule.enabled is True
        assert rule.filter.children[0].max == 10

    def test_move_rule_swaps_neighbours(self) -> None:
        rules = [_rule("a", 1, 2), _rule("b", 1, 2), _rule("c", 1, 2)]
        assert [r.id for r in move_rule(rules, "b", "up")] == ["b", "a", "c"]
        assert [r.id for r in move_rule(rules, "b", "down")] == ["a", "c", "b"]
        assert [r.id for r in rules] == ["a", "b", "c"]

    def test_move_past_ends_is_noop(self) -> None:
        rules = [_rule("a", 1, 2), _rule("b", 1, 2)]
        assert [r.id for r in move_rule(rules, "a", "up")] == ["a", "b"]
        assert [r.id for r in move_rule(rules, "b", "down")] == ["a", "b"]

    def test_update_rule_keeps_filter_and_id(self) -> None:
        rules = [_rule("a", 1, 2, filter=_area_filter(0, 10))]
        updated = update_rule(rules, "a", {"name": "renamed", "enabled": False, "id": "x", "filter": None})
        assert updated[0].id == "a"
        assert updated[0].name == "renamed"
        assert updated[0].enabled is False
        assert updated[0].filter.children[0].max == 10

    def test_delete_rule(self) -> None:
        rules = [_rule("a", 1, 2), _rule("b", 1, 2)]
        assert [r.id for r in delete_rule(rules, "a")] == ["b"]

    def test_unknown_rule_raises(self) -> None:
        with pytest.raises(RuleNotFoundError):
            move_rule([], "missing", "up")
        with pytest.raises(RuleNotFoundError):
            delete_rule([_rule("a", 1, 2)], "missing")
