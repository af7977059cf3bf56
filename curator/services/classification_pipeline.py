"""Ordered classification pipeline.

Runs the enabled rules in list order over a dataset's regions.  Each rule
first collects every target (regions whose current category matches
``from_class`` and whose filter matches in pipeline mode), then assigns
``to_class`` to all of them, so:

* a rule sees the fully applied result of every earlier rule;
* within one rule, assignments cannot influence that rule's own
  ``from_class`` checks.

Manually added regions are *not* exempt here, unlike in display filtering.
The input classification is never mutated; a new dict is returned.
"""

from __future__ import annotations

import logging
import uuid
from collections import Counter
from collections.abc import Iterable, Mapping, Sequence
from typing import Literal

from curator.models.classification import (
    DEFAULT_CATEGORY_ID,
    Classification,
    ClassificationRule,
)
from curator.models.filter import FilterGroup
from curator.models.region import AnnotationRegion
from curator.services.errors import RuleNotFoundError
from curator.services.filter_evaluator import evaluate_filter
from curator.services.filter_tree import snapshot_filter

logger = logging.getLogger(__name__)


def default_category(region: AnnotationRegion) -> int:
    """Category a region has when no override exists."""
    return region.category_id if region.category_id is not None else DEFAULT_CATEGORY_ID


def effective_category(region: AnnotationRegion, classification: Mapping[int, int]) -> int:
    """Override from *classification*, else ``region.category_id``, else 1."""
    override = classification.get(region.id)
    if override is not None:
        return override
    return default_category(region)


def rule_targets(
    rule: ClassificationRule,
    regions: Iterable[AnnotationRegion],
    classification: Mapping[int, int],
) -> list[int]:
    """Return ids of the regions *rule* would reassign given *classification*."""
    targets: list[int] = []
    for region in regions:
        current = effective_category(region, classification)
        if rule.from_class != "any" and current != rule.from_class:
            continue
        if evaluate_filter(rule.filter, region, ignore_manual_flag=True, for_pipeline=True):
            targets.append(region.id)
    return targets


def run_pipeline(
    rules: Sequence[ClassificationRule],
    regions: Sequence[AnnotationRegion],
    classification: Mapping[int, int],
) -> Classification:
    """Apply the enabled *rules* in order and return the new classification."""
    result: Classification = dict(classification)

    for rule in rules:
        if not rule.enabled:
            continue
        targets = rule_targets(rule, regions, result)
        for region_id in targets:
            result[region_id] = rule.to_class
        logger.debug(
            "Rule %s (%s): %d region(s) -> %s",
            rule.id,
            rule.name,
            len(targets),
            rule.to_class,
        )

    return result


def summarize_changes(
    before: Mapping[int, int],
    after: Mapping[int, int],
    regions: Iterable[AnnotationRegion],
) -> tuple[int, dict[int, int]]:
    """Count regions whose effective category changed, grouped by new category."""
    per_category: Counter[int] = Counter()
    for region in regions:
        old = effective_category(region, before)
        new = effective_category(region, after)
        if old != new:
            per_category[new] += 1
    return sum(per_category.values()), dict(per_category)


def prune_classification(
    classification: Mapping[int, int], regions: Iterable[AnnotationRegion]
) -> Classification:
    """Drop entries that equal the region's default category.

    Entries for ids not present in *regions* are kept untouched.
    """
    defaults = {region.id: default_category(region) for region in regions}
    return {
        region_id: category
        for region_id, category in classification.items()
        if defaults.get(region_id) != category
    }


# ------------------------------------------------------------------
# Manual edits
# ------------------------------------------------------------------


def toggle_classification(
    classification: Mapping[int, int],
    regions: Iterable[AnnotationRegion],
    region_ids: Iterable[int],
    category_id: int,
) -> tuple[Classification, int, int]:
    """Toggle each region in or out of *category_id*.

    A region whose effective category already is *category_id* counts as
    present and loses its override; any other region is moved into
    *category_id*.  Overrides equal to a region's default are never
    written.  Returns ``(new_map, added, removed)``.
    """
    by_id = {region.id: region for region in regions}
    result: Classification = dict(classification)
    added = removed = 0
    for region_id in region_ids:
        region = by_id.get(region_id)
        if region is None:
            default = DEFAULT_CATEGORY_ID
            current = result.get(region_id, default)
        else:
            default = default_category(region)
            current = effective_category(region, result)

        if current == category_id:
            result.pop(region_id, None)
            removed += 1
        else:
            if category_id == default:
                result.pop(region_id, None)
            else:
                result[region_id] = category_id
            added += 1
    return result, added, removed


# ------------------------------------------------------------------
# Rule list editing
# ------------------------------------------------------------------


def create_rule(
    name: str,
    from_class: int | Literal["any"],
    to_class: int,
    filter_root: FilterGroup,
) -> ClassificationRule:
    """Create an enabled rule holding a snapshot of *filter_root*."""
    return ClassificationRule(
        id=f"rule-{uuid.uuid4().hex[:12]}",
        name=name,
        enabled=True,
        from_class=from_class,
        to_class=to_class,
        filter=snapshot_filter(filter_root),
    )


def _rule_index(rules: Sequence[ClassificationRule], rule_id: str) -> int:
    for index, rule in enumerate(rules):
        if rule.id == rule_id:
            return index
    raise RuleNotFoundError(f"Rule '{rule_id}' not found")


def move_rule(
    rules: Sequence[ClassificationRule],
    rule_id: str,
    direction: Literal["up", "down"],
) -> list[ClassificationRule]:
    """Swap a rule with its neighbour; moving past either end is a no-op."""
    index = _rule_index(rules, rule_id)
    other = index - 1 if direction == "up" else index + 1
    result = list(rules)
    if 0 <= other < len(result):
        result[index], result[other] = result[other], result[index]
    return result


def update_rule(
    rules: Sequence[ClassificationRule], rule_id: str, changes: dict
) -> list[ClassificationRule]:
    """Return rules with *changes* applied to *rule_id* (filter is not editable)."""
    index = _rule_index(rules, rule_id)
    result = list(rules)
    data = result[index].model_dump()
    data.update({k: v for k, v in changes.items() if k not in ("id", "filter")})
    result[index] = ClassificationRule.model_validate(data)
    return result


def delete_rule(rules: Sequence[ClassificationRule], rule_id: str) -> list[ClassificationRule]:
    """Return rules without *rule_id*."""
    index = _rule_index(rules, rule_id)
    return [rule for i, rule in enumerate(rules) if i != index]
