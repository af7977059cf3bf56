"""Pure edits over the filter tree.

Every function returns a new tree and leaves its input untouched, so the
previous tree stays valid for diffing/undo and rule snapshots can never be
changed through the editor.
"""

from __future__ import annotations

import uuid
from collections.abc import Iterator
from typing import Any

from curator.models.filter import FilterCondition, FilterGroup
from curator.services.errors import FilterTreeError

FilterNodeT = FilterCondition | FilterGroup


def new_node_id() -> str:
    """Mint a node id that is unique across trees."""
    return uuid.uuid4().hex


def new_condition(metric: str, min: float, max: float) -> FilterCondition:
    """Create an enabled condition with a fresh id."""
    return FilterCondition(id=new_node_id(), metric=metric, min=min, max=max)


def new_group(action: str = "keep", logic: str = "AND") -> FilterGroup:
    """Create an empty enabled group with a fresh id."""
    return FilterGroup(id=new_node_id(), action=action, logic=logic, children=[])


def snapshot_filter(root: FilterGroup) -> FilterGroup:
    """Return a structurally independent deep copy of *root*."""
    return FilterGroup.model_validate(root.model_dump())


# ------------------------------------------------------------------
# Queries
# ------------------------------------------------------------------


def iter_nodes(node: FilterNodeT) -> Iterator[FilterNodeT]:
    """Yield *node* and all of its descendants, depth first."""
    yield node
    if isinstance(node, FilterGroup):
        for child in node.children:
            yield from iter_nodes(child)


def collect_node_ids(root: FilterGroup) -> list[str]:
    """Return every node id in the tree, in depth-first order."""
    return [node.id for node in iter_nodes(root)]


def has_unique_ids(root: FilterGroup) -> bool:
    ids = collect_node_ids(root)
    return len(ids) == len(set(ids))


def find_node(root: FilterGroup, node_id: str) -> FilterNodeT | None:
    """Return the node with *node_id*, or None."""
    for node in iter_nodes(root):
        if node.id == node_id:
            return node
    return None


def tree_depth(node: FilterNodeT) -> int:
    """Group nesting depth below *node* (a lone group is depth 0).

    Conditions do not add depth.
    """
    if not isinstance(node, FilterGroup):
        return 0
    nested = [tree_depth(c) + 1 for c in node.children if isinstance(c, FilterGroup)]
    return max(nested, default=0)


def _depth_of(root: FilterGroup, node_id: str, depth: int = 0) -> int | None:
    if root.id == node_id:
        return depth
    for child in root.children:
        if isinstance(child, FilterGroup):
            found = _depth_of(child, node_id, depth + 1)
            if found is not None:
                return found
    return None


# ------------------------------------------------------------------
# Rebuilding edits
# ------------------------------------------------------------------


def update_node(root: FilterGroup, node_id: str, changes: dict[str, Any]) -> FilterGroup:
    """Return a tree where the node *node_id* has *changes* applied.

    ``id``, ``type`` and ``children`` cannot be changed this way.
    """
    forbidden = {"id", "type", "children"} & changes.keys()
    if forbidden:
        raise FilterTreeError(f"Cannot update fields: {sorted(forbidden)}")
    if find_node(root, node_id) is None:
        raise FilterTreeError(f"Node '{node_id}' not found")
    return _rebuild_update(root, node_id, changes)


def _rebuild_update(node: FilterNodeT, node_id: str, changes: dict[str, Any]) -> FilterNodeT:
    if node.id == node_id:
        data = node.model_dump()
        data.update(changes)
        return type(node).model_validate(data)
    if isinstance(node, FilterGroup):
        return node.model_copy(
            update={"children": [_rebuild_update(c, node_id, changes) for c in node.children]}
        )
    return node


def delete_node(root: FilterGroup, node_id: str) -> FilterGroup:
    """Return a tree without the node *node_id* (and its subtree)."""
    if node_id == root.id:
        raise FilterTreeError("The root group cannot be deleted")
    if find_node(root, node_id) is None:
        raise FilterTreeError(f"Node '{node_id}' not found")
    return _rebuild_delete(root, node_id)


def _rebuild_delete(group: FilterGroup, node_id: str) -> FilterGroup:
    children = []
    for child in group.children:
        if child.id == node_id:
            continue
        if isinstance(child, FilterGroup):
            child = _rebuild_delete(child, node_id)
        children.append(child)
    return group.model_copy(update={"children": children})


def add_node(
    root: FilterGroup,
    parent_id: str,
    node: FilterNodeT,
    max_depth: int,
) -> FilterGroup:
    """Return a tree with *node* appended to the group *parent_id*.

    Raises FilterTreeError if the parent is missing or a condition, if the
    new node's ids collide with existing ones, or if the added group would
    nest deeper than *max_depth*.
    """
    parent = find_node(root, parent_id)
    if parent is None:
        raise FilterTreeError(f"Parent '{parent_id}' not found")
    if not isinstance(parent, FilterGroup):
        raise FilterTreeError("Conditions cannot have children")

    existing = set(collect_node_ids(root))
    incoming = [n.id for n in iter_nodes(node)]
    if existing & set(incoming) or len(incoming) != len(set(incoming)):
        raise FilterTreeError("Node ids must be unique within the tree")

    if isinstance(node, FilterGroup):
        parent_depth = _depth_of(root, parent_id) or 0
        if parent_depth + 1 + tree_depth(node) > max_depth:
            raise FilterTreeError(f"Group nesting is limited to depth {max_depth}")

    return _rebuild_add(root, parent_id, snapshot_node(node))


def _rebuild_add(group: FilterGroup, parent_id: str, node: FilterNodeT) -> FilterGroup:
    if group.id == parent_id:
        return group.model_copy(update={"children": [*group.children, node]})
    return group.model_copy(
        update={
            "children": [
                _rebuild_add(c, parent_id, node) if isinstance(c, FilterGroup) else c
                for c in group.children
            ]
        }
    )


def snapshot_node(node: FilterNodeT) -> FilterNodeT:
    """Deep copy of a single node of either kind."""
    return type(node).model_validate(node.model_dump())
