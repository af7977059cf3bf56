"""Pydantic models for the recursive filter tree and its saved config.

- FilterCondition: leaf, "value of metric within [min, max]"
- FilterGroup: branch combining children with AND/OR, read as keep/remove
- FilterConfig: persisted ``filtered.json`` document (version 3)
"""

from __future__ import annotations

from typing import Annotated, Any, Literal, Union

from pydantic import Discriminator, Field, Tag

from curator.models._base import CamelModel

FILTER_CONFIG_VERSION = 3
ROOT_NODE_ID = "root"


class FilterCondition(CamelModel):
    """Leaf node: does ``metrics[metric]`` fall inside ``[min, max]``."""

    type: Literal["condition"] = "condition"
    id: str
    metric: str
    min: float
    max: float
    enabled: bool = True


class FilterGroup(CamelModel):
    """Branch node combining its enabled children."""

    type: Literal["group"] = "group"
    id: str
    action: Literal["keep", "remove"] = "keep"
    logic: Literal["AND", "OR"] = "AND"
    children: list[FilterNode] = []
    enabled: bool = True


def _node_kind(value: Any) -> str | None:
    # Older documents may omit "type"; a node with children/logic is a group.
    if isinstance(value, dict):
        kind = value.get("type")
        if kind is None:
            kind = "group" if "children" in value or "logic" in value else "condition"
        return kind
    return getattr(value, "type", None)


FilterNode = Annotated[
    Union[
        Annotated[FilterCondition, Tag("condition")],
        Annotated[FilterGroup, Tag("group")],
    ],
    Discriminator(_node_kind),
]

FilterGroup.model_rebuild()


class FilterConfig(CamelModel):
    """Saved filter configuration.

    ``excluded_ids`` is a derived cache: it is recomputed from ``root`` over
    the dataset's regions every time the config is saved.
    """

    version: int = FILTER_CONFIG_VERSION
    root: FilterGroup
    max_depth: int = 2
    excluded_ids: list[int] = []


class FilterConfigUpdate(CamelModel):
    """Request body for PUT /datasets/{id}/filter."""

    root: FilterGroup
    max_depth: int | None = None


class AddNodeRequest(CamelModel):
    """Request body for POST /datasets/{id}/filter/nodes.

    Either ``node`` (a full node) or ``kind`` with the fields of a fresh
    node must be supplied.
    """

    parent_id: str = ROOT_NODE_ID
    node: FilterNode | None = None
    kind: Literal["condition", "group"] | None = None
    metric: str | None = None
    min: float | None = None
    max: float | None = None
    action: Literal["keep", "remove"] = "keep"
    logic: Literal["AND", "OR"] = "AND"


class UpdateNodeRequest(CamelModel):
    """Request body for PATCH /datasets/{id}/filter/nodes/{node_id}."""

    enabled: bool | None = None
    metric: str | None = None
    min: float | None = None
    max: float | None = None
    action: Literal["keep", "remove"] | None = None
    logic: Literal["AND", "OR"] | None = None


class FilterExpressionResponse(CamelModel):
    """Readable rendering of the current filter tree."""

    expression: str
    excluded_count: int
