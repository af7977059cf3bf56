"""Classification API router: rules, pipeline runs, categories.

Endpoints:
- GET    /datasets/{id}/rules                        -- rules in execution order
- POST   /datasets/{id}/rules                        -- create a rule (filter snapshot)
- PATCH  /datasets/{id}/rules/{rule_id}              -- rename / enable / retarget
- DELETE /datasets/{id}/rules/{rule_id}              -- delete a rule
- POST   /datasets/{id}/rules/{rule_id}/move         -- swap with a neighbour
- POST   /datasets/{id}/classification/run           -- run the enabled rules
- GET    /datasets/{id}/classification               -- current overrides
- PUT    /datasets/{id}/classification               -- replace overrides
- GET    /datasets/{id}/categories                   -- list categories
- POST   /datasets/{id}/categories                   -- add a category
- PATCH  /datasets/{id}/categories/{category_id}     -- rename / recolour a category
- DELETE /datasets/{id}/categories/{category_id}     -- delete a category
"""

from __future__ import annotations

import logging

import duckdb
from fastapi import APIRouter, Depends

from curator.dependencies import get_cursor, get_workspace
from curator.models.classification import (
    CategoryDef,
    CategoryListResponse,
    CategoryUpdate,
    ClassificationResponse,
    ClassificationRule,
    PipelineRunResponse,
    RuleCreate,
    RuleListResponse,
    RuleMoveRequest,
    RuleUpdate,
)
from curator.repositories.workspace_store import WorkspaceStore
from curator.routers._errors import http_error
from curator.routers.datasets import load_dataset_regions
from curator.services.categories import (
    add_category,
    delete_category,
    drop_category_assignments,
    update_category,
)
from curator.services.classification_pipeline import (
    create_rule,
    delete_rule,
    move_rule,
    prune_classification,
    run_pipeline,
    summarize_changes,
    update_rule,
)
from curator.services.errors import CuratorError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/datasets", tags=["classification"])


# ------------------------------------------------------------------
# Rules
# ------------------------------------------------------------------


@router.get("/{dataset_id}/rules", response_model=RuleListResponse)
def list_rules(
    dataset_id: str,
    workspace: WorkspaceStore = Depends(get_workspace),
) -> RuleListResponse:
    """Return rules in execution order."""
    return RuleListResponse(rules=workspace.load_rules(dataset_id))


@router.post("/{dataset_id}/rules", response_model=ClassificationRule, status_code=201)
def post_rule(
    dataset_id: str,
    body: RuleCreate,
    workspace: WorkspaceStore = Depends(get_workspace),
) -> ClassificationRule:
    """Append a rule; without an explicit filter the live tree is snapshotted."""
    filter_root = body.filter
    if filter_root is None:
        filter_root = workspace.load_filter_config(dataset_id).root

    rule = create_rule(body.name, body.from_class, body.to_class, filter_root)
    rules = workspace.load_rules(dataset_id)
    workspace.save_rules(dataset_id, [*rules, rule])
    return rule


@router.patch("/{dataset_id}/rules/{rule_id}", response_model=ClassificationRule)
def patch_rule(
    dataset_id: str,
    rule_id: str,
    body: RuleUpdate,
    workspace: WorkspaceStore = Depends(get_workspace),
) -> ClassificationRule:
    """Edit a rule's name, enabled flag or classes (not its filter)."""
    rules = workspace.load_rules(dataset_id)
    try:
        rules = update_rule(rules, rule_id, body.model_dump(exclude_none=True))
    except CuratorError as exc:
        raise http_error(exc) from exc
    workspace.save_rules(dataset_id, rules)
    return next(rule for rule in rules if rule.id == rule_id)


@router.delete("/{dataset_id}/rules/{rule_id}", response_model=RuleListResponse)
def remove_rule(
    dataset_id: str,
    rule_id: str,
    workspace: WorkspaceStore = Depends(get_workspace),
) -> RuleListResponse:
    """Delete a rule and return the remaining list."""
    try:
        rules = delete_rule(workspace.load_rules(dataset_id), rule_id)
    except CuratorError as exc:
        raise http_error(exc) from exc
    workspace.save_rules(dataset_id, rules)
    return RuleListResponse(rules=rules)


@router.post("/{dataset_id}/rules/{rule_id}/move", response_model=RuleListResponse)
def post_move_rule(
    dataset_id: str,
    rule_id: str,
    body: RuleMoveRequest,
    workspace: WorkspaceStore = Depends(get_workspace),
) -> RuleListResponse:
    """Swap a rule with the one above/below it."""
    try:
        rules = move_rule(workspace.load_rules(dataset_id), rule_id, body.direction)
    except CuratorError as exc:
        raise http_error(exc) from exc
    workspace.save_rules(dataset_id, rules)
    return RuleListResponse(rules=rules)


# ------------------------------------------------------------------
# Classification map
# ------------------------------------------------------------------


@router.post("/{dataset_id}/classification/run", response_model=PipelineRunResponse)
def run_classification(
    dataset_id: str,
    cursor: duckdb.DuckDBPyConnection = Depends(get_cursor),
    workspace: WorkspaceStore = Depends(get_workspace),
) -> PipelineRunResponse:
    """Run every enabled rule in order and persist the new overrides."""
    regions = load_dataset_regions(cursor, dataset_id)
    rules = workspace.load_rules(dataset_id)
    before = workspace.load_classification(dataset_id)

    after = prune_classification(run_pipeline(rules, regions, before), regions)
    changed, per_category = summarize_changes(before, after, regions)
    workspace.save_classification(dataset_id, after)

    logger.info(
        "Ran %d rule(s) on %s: %d region(s) reclassified",
        sum(1 for rule in rules if rule.enabled),
        dataset_id,
        changed,
    )
    return PipelineRunResponse(
        classification=after,
        changed=changed,
        per_category=per_category,
    )


@router.get("/{dataset_id}/classification", response_model=ClassificationResponse)
def get_classification(
    dataset_id: str,
    workspace: WorkspaceStore = Depends(get_workspace),
) -> ClassificationResponse:
    """Return the current overrides."""
    return ClassificationResponse(classification=workspace.load_classification(dataset_id))


@router.put("/{dataset_id}/classification", response_model=ClassificationResponse)
def put_classification(
    dataset_id: str,
    body: ClassificationResponse,
    cursor: duckdb.DuckDBPyConnection = Depends(get_cursor),
    workspace: WorkspaceStore = Depends(get_workspace),
) -> ClassificationResponse:
    """Replace the overrides (entries equal to a region's default are dropped)."""
    regions = load_dataset_regions(cursor, dataset_id)
    classification = prune_classification(body.classification, regions)
    workspace.save_classification(dataset_id, classification)
    return ClassificationResponse(classification=classification)


# ------------------------------------------------------------------
# Categories
# ------------------------------------------------------------------


@router.get("/{dataset_id}/categories", response_model=CategoryListResponse)
def list_categories(
    dataset_id: str,
    workspace: WorkspaceStore = Depends(get_workspace),
) -> CategoryListResponse:
    return CategoryListResponse(categories=workspace.load_categories(dataset_id))


@router.post("/{dataset_id}/categories", response_model=CategoryListResponse, status_code=201)
def post_category(
    dataset_id: str,
    body: CategoryDef,
    workspace: WorkspaceStore = Depends(get_workspace),
) -> CategoryListResponse:
    """Add a user category (never a system one)."""
    category = body.model_copy(update={"is_system": False})
    try:
        categories = add_category(workspace.load_categories(dataset_id), category)
    except CuratorError as exc:
        raise http_error(exc) from exc
    workspace.save_categories(dataset_id, categories)
    return CategoryListResponse(categories=categories)


@router.patch("/{dataset_id}/categories/{category_id}", response_model=CategoryListResponse)
def patch_category(
    dataset_id: str,
    category_id: int,
    body: CategoryUpdate,
    workspace: WorkspaceStore = Depends(get_workspace),
) -> CategoryListResponse:
    """Rename or recolour a category."""
    try:
        categories = update_category(
            workspace.load_categories(dataset_id),
            category_id,
            body.model_dump(exclude_none=True),
        )
    except CuratorError as exc:
        raise http_error(exc) from exc
    workspace.save_categories(dataset_id, categories)
    return CategoryListResponse(categories=categories)


@router.delete("/{dataset_id}/categories/{category_id}", response_model=CategoryListResponse)
def remove_category(
    dataset_id: str,
    category_id: int,
    workspace: WorkspaceStore = Depends(get_workspace),
) -> CategoryListResponse:
    """Delete a category and forget overrides pointing at it.

    Category 999 and system categories are protected (409).
    """
    try:
        categories = delete_category(workspace.load_categories(dataset_id), category_id)
    except CuratorError as exc:
        raise http_error(exc) from exc
    workspace.save_categories(dataset_id, categories)
    workspace.save_classification(
        dataset_id,
        drop_category_assignments(workspace.load_classification(dataset_id), category_id),
    )
    return CategoryListResponse(categories=categories)
