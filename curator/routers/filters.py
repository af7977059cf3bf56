"""Filter tree API router.

Every write recomputes ``excludedIds`` from the tree over the dataset's
regions before persisting; client-supplied exclusions are never trusted.

Endpoints:
- GET    /datasets/{id}/filter                     -- saved filter config
- PUT    /datasets/{id}/filter                     -- replace the tree
- POST   /datasets/{id}/filter/nodes               -- add a node under a group
- PATCH  /datasets/{id}/filter/nodes/{node_id}     -- edit a node
- DELETE /datasets/{id}/filter/nodes/{node_id}     -- delete a node (and subtree)
- GET    /datasets/{id}/filter/expression          -- readable formula
"""

from __future__ import annotations

import duckdb
from fastapi import APIRouter, Depends, HTTPException

from curator.dependencies import get_cursor, get_workspace
from curator.models.filter import (
    AddNodeRequest,
    FilterConfig,
    FilterConfigUpdate,
    FilterExpressionResponse,
    UpdateNodeRequest,
)
from curator.repositories.workspace_store import WorkspaceStore
from curator.routers._errors import http_error
from curator.routers.datasets import load_dataset_regions, save_filter_config
from curator.services.errors import FilterTreeError
from curator.services.filter_evaluator import compute_excluded_ids, filter_expression
from curator.services.filter_tree import (
    add_node,
    delete_node,
    has_unique_ids,
    new_condition,
    new_group,
    tree_depth,
    update_node,
)

router = APIRouter(prefix="/datasets", tags=["filters"])


@router.get("/{dataset_id}/filter", response_model=FilterConfig)
def get_filter(
    dataset_id: str,
    workspace: WorkspaceStore = Depends(get_workspace),
) -> FilterConfig:
    """Return the saved config, or a default one if none/outdated."""
    return workspace.load_filter_config(dataset_id)


@router.put("/{dataset_id}/filter", response_model=FilterConfig)
def put_filter(
    dataset_id: str,
    body: FilterConfigUpdate,
    cursor: duckdb.DuckDBPyConnection = Depends(get_cursor),
    workspace: WorkspaceStore = Depends(get_workspace),
) -> FilterConfig:
    """Replace the whole tree."""
    current = workspace.load_filter_config(dataset_id)
    max_depth = body.max_depth if body.max_depth is not None else current.max_depth

    if not has_unique_ids(body.root):
        raise HTTPException(status_code=400, detail="Node ids must be unique within the tree")
    if tree_depth(body.root) > max_depth:
        raise HTTPException(
            status_code=400,
            detail=f"Group nesting is limited to depth {max_depth}",
        )
    return save_filter_config(cursor, workspace, dataset_id, body.root, max_depth)


@router.post("/{dataset_id}/filter/nodes", response_model=FilterConfig, status_code=201)
def post_filter_node(
    dataset_id: str,
    body: AddNodeRequest,
    cursor: duckdb.DuckDBPyConnection = Depends(get_cursor),
    workspace: WorkspaceStore = Depends(get_workspace),
) -> FilterConfig:
    """Append a condition or group under ``parentId``."""
    if body.node is not None:
        node = body.node
    elif body.kind == "condition":
        if body.metric is None or body.min is None or body.max is None:
            raise HTTPException(
                status_code=400,
                detail="A condition needs metric, min and max",
            )
        node = new_condition(body.metric, body.min, body.max)
    elif body.kind == "group":
        node = new_group(body.action, body.logic)
    else:
        raise HTTPException(status_code=400, detail="Provide either node or kind")

    current = workspace.load_filter_config(dataset_id)
    try:
        root = add_node(current.root, body.parent_id, node, current.max_depth)
    except FilterTreeError as exc:
        raise http_error(exc) from exc
    return save_filter_config(cursor, workspace, dataset_id, root, current.max_depth)


@router.patch("/{dataset_id}/filter/nodes/{node_id}", response_model=FilterConfig)
def patch_filter_node(
    dataset_id: str,
    node_id: str,
    body: UpdateNodeRequest,
    cursor: duckdb.DuckDBPyConnection = Depends(get_cursor),
    workspace: WorkspaceStore = Depends(get_workspace),
) -> FilterConfig:
    """Edit fields of a node anywhere in the tree."""
    current = workspace.load_filter_config(dataset_id)
    changes = body.model_dump(exclude_none=True)
    try:
        root = update_node(current.root, node_id, changes)
    except FilterTreeError as exc:
        raise http_error(exc) from exc
    return save_filter_config(cursor, workspace, dataset_id, root, current.max_depth)


@router.delete("/{dataset_id}/filter/nodes/{node_id}", response_model=FilterConfig)
def delete_filter_node(
    dataset_id: str,
    node_id: str,
    cursor: duckdb.DuckDBPyConnection = Depends(get_cursor),
    workspace: WorkspaceStore = Depends(get_workspace),
) -> FilterConfig:
    """Delete a node and its subtree; the root cannot be deleted."""
    current = workspace.load_filter_config(dataset_id)
    try:
        root = delete_node(current.root, node_id)
    except FilterTreeError as exc:
        raise http_error(exc) from exc
    return save_filter_config(cursor, workspace, dataset_id, root, current.max_depth)


@router.get("/{dataset_id}/filter/expression", response_model=FilterExpressionResponse)
def get_filter_expression(
    dataset_id: str,
    cursor: duckdb.DuckDBPyConnection = Depends(get_cursor),
    workspace: WorkspaceStore = Depends(get_workspace),
) -> FilterExpressionResponse:
    """Render the saved tree and count the regions it currently hides."""
    config = workspace.load_filter_config(dataset_id)
    regions = load_dataset_regions(cursor, dataset_id)
    return FilterExpressionResponse(
        expression=filter_expression(config.root),
        excluded_count=len(compute_excluded_ids(config.root, regions)),
    )
