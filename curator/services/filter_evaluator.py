"""Recursive evaluation of a filter tree against a single region.

The same tree is read two ways:

* **Display mode** (``for_pipeline=False``): a group's ``action`` is applied,
  so the result means pass (shown) / block (hidden).  A ``remove`` group
  blocks the regions its predicate matches.
* **Pipeline mode** (``for_pipeline=True``): the raw predicate match is
  returned and ``action`` is ignored.  Classification rules use this.

A disabled node evaluated directly is True.  Groups drop disabled children
before combining, so a disabled child never forces an OR group to match;
a group whose children are all disabled is True.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from typing import Any

from pydantic import ValidationError

from curator.models.filter import (
    FILTER_CONFIG_VERSION,
    ROOT_NODE_ID,
    FilterCondition,
    FilterConfig,
    FilterGroup,
)
from curator.models.region import AnnotationRegion

logger = logging.getLogger(__name__)


def evaluate_filter(
    node: FilterCondition | FilterGroup,
    region: AnnotationRegion,
    ignore_manual_flag: bool = False,
    for_pipeline: bool = False,
) -> bool:
    """Evaluate *node* for *region*.

    Conditions return a match indicator; groups return a match indicator in
    pipeline mode and a pass/block indicator in display mode.  Manually
    added regions always pass unless *ignore_manual_flag* is set.
    """
    if not ignore_manual_flag and region.is_manual_added:
        return True

    if not node.enabled:
        return True

    if isinstance(node, FilterCondition):
        value = region.metrics.get(node.metric)
        if value is None:
            return False
        return node.min <= value <= node.max

    active = [child for child in node.children if child.enabled]
    if not active:
        return True

    results = [
        evaluate_filter(child, region, ignore_manual_flag, for_pipeline)
        for child in active
    ]
    is_match = all(results) if node.logic == "AND" else any(results)

    if for_pipeline:
        return is_match
    if node.action == "remove":
        return not is_match
    return is_match


def compute_excluded_ids(
    root: FilterGroup, regions: Iterable[AnnotationRegion]
) -> list[int]:
    """Return the sorted ids of regions hidden by *root* in display mode."""
    return sorted(
        region.id for region in regions if not evaluate_filter(root, region)
    )


def filter_expression(node: FilterCondition | FilterGroup) -> str:
    """Render *node* as a readable formula, e.g. ``KEEP (Area[0 <= x <= 5] ∩ ...)``.

    Disabled nodes and groups without renderable children render as ``""``.
    """
    if not node.enabled:
        return ""

    if isinstance(node, FilterCondition):
        return f"{node.metric}[{_fmt(node.min)} <= x <= {_fmt(node.max)}]"

    parts = [expr for expr in (filter_expression(c) for c in node.children) if expr]
    if not parts:
        return ""

    separator = " ∪ " if node.logic == "OR" else " ∩ "
    combined = separator.join(parts)
    wrapped = f"({combined})" if len(parts) > 1 else combined
    if node.action == "remove":
        return f"REMOVE {wrapped}"
    return f"KEEP {wrapped}"


def _fmt(value: float) -> str:
    rounded = round(value, 2)
    if rounded.is_integer():
        return str(int(rounded))
    return str(rounded)


# ------------------------------------------------------------------
# Config construction / version gate
# ------------------------------------------------------------------


def default_filter_config(max_depth: int = 2) -> FilterConfig:
    """Return a fresh config: empty enabled AND/keep root, no exclusions."""
    return FilterConfig(
        version=FILTER_CONFIG_VERSION,
        root=FilterGroup(
            id=ROOT_NODE_ID,
            action="keep",
            logic="AND",
            children=[],
            enabled=True,
        ),
        max_depth=max_depth,
        excluded_ids=[],
    )


def load_filter_config(raw: Any, max_depth: int = 2) -> FilterConfig:
    """Parse a stored config, falling back to the default.

    Anything that is not a mapping with ``version == 3`` and a valid tree is
    treated as absent.  No migration of older versions is attempted.
    """
    if not isinstance(raw, Mapping):
        return default_filter_config(max_depth)

    version = raw.get("version")
    if version != FILTER_CONFIG_VERSION:
        logger.info(
            "Ignoring filter config with version %r (expected %d)",
            version,
            FILTER_CONFIG_VERSION,
        )
        return default_filter_config(max_depth)

    try:
        return FilterConfig.model_validate(raw)
    except ValidationError:
        logger.warning("Invalid filter config, using default", exc_info=True)
        return default_filter_config(max_depth)
