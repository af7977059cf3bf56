"""Pydantic models for classification rules, categories and results.

- ClassificationRule: ``from_class -> to_class`` guarded by a filter snapshot
- CategoryDef: a user-visible category (999 is the protected trash bin)
- Classification: region id -> category id overrides
"""

from typing import Literal

from pydantic import Field

from curator.models._base import CamelModel
from curator.models.filter import FilterGroup

DEFAULT_CATEGORY_ID = 1
TRASH_CATEGORY_ID = 999

Classification = dict[int, int]


class ClassificationRule(CamelModel):
    """One pipeline step.

    ``filter`` is a deep copy taken when the rule was created; it never
    aliases the live editor tree.
    """

    id: str
    name: str
    enabled: bool = True
    from_class: int | Literal["any"] = "any"
    to_class: int
    filter: FilterGroup


class CategoryDef(CamelModel):
    """A category regions can be assigned to."""

    id: int
    name: str
    color: str = "#06b6d4"
    fill: str = "rgba(6, 182, 212, 0.25)"
    is_system: bool = False


class CategoryUpdate(CamelModel):
    """Request body for PATCH /datasets/{id}/categories/{category_id}."""

    name: str | None = None
    color: str | None = None
    fill: str | None = None


class RuleCreate(CamelModel):
    """Request body for POST /datasets/{id}/rules.

    When ``filter`` is omitted the dataset's current filter tree is
    snapshotted into the rule.
    """

    name: str
    from_class: int | Literal["any"] = "any"
    to_class: int
    filter: FilterGroup | None = None


class RuleUpdate(CamelModel):
    """Request body for PATCH /datasets/{id}/rules/{rule_id}."""

    name: str | None = None
    enabled: bool | None = None
    from_class: int | Literal["any"] | None = None
    to_class: int | None = None


class RuleMoveRequest(CamelModel):
    """Request body for POST /datasets/{id}/rules/{rule_id}/move."""

    direction: Literal["up", "down"]


class RuleListResponse(CamelModel):
    """Rules in execution order."""

    rules: list[ClassificationRule]


class CategoryListResponse(CamelModel):
    """All categories of a dataset workspace."""

    categories: list[CategoryDef]


class ClassificationResponse(CamelModel):
    """Current classification overrides."""

    classification: Classification


class PipelineRunResponse(CamelModel):
    """Result of POST /datasets/{id}/classification/run."""

    classification: Classification
    changed: int
    per_category: dict[int, int] = Field(default_factory=dict)
