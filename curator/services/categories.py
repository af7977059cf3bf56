"""Category list editing.

Category 999 is the terminal "remove" bin and, like any ``is_system``
category, cannot be deleted.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence

from curator.models.classification import (
    DEFAULT_CATEGORY_ID,
    TRASH_CATEGORY_ID,
    CategoryDef,
    Classification,
)
from curator.services.errors import (
    CategoryExistsError,
    CategoryNotFoundError,
    ProtectedCategoryError,
)


def default_categories() -> list[CategoryDef]:
    return [
        CategoryDef(
            id=DEFAULT_CATEGORY_ID,
            name="Default",
            color="#06b6d4",
            fill="rgba(6, 182, 212, 0.25)",
        ),
        CategoryDef(
            id=TRASH_CATEGORY_ID,
            name="Remove",
            color="#dc2626",
            fill="rgba(239, 68, 68, 0.35)",
            is_system=True,
        ),
    ]


def add_category(categories: Sequence[CategoryDef], category: CategoryDef) -> list[CategoryDef]:
    """Append *category*; ids must be unique."""
    if any(c.id == category.id for c in categories):
        raise CategoryExistsError(f"Category {category.id} already exists")
    return [*categories, category]


def update_category(
    categories: Sequence[CategoryDef], category_id: int, changes: dict
) -> list[CategoryDef]:
    """Rename or recolour a category.  ``id`` and ``is_system`` stay fixed."""
    result = list(categories)
    for index, category in enumerate(result):
        if category.id == category_id:
            data = category.model_dump()
            data.update({k: v for k, v in changes.items() if k not in ("id", "is_system")})
            result[index] = CategoryDef.model_validate(data)
            return result
    raise CategoryNotFoundError(f"Category {category_id} not found")


def delete_category(categories: Sequence[CategoryDef], category_id: int) -> list[CategoryDef]:
    """Remove *category_id*.  Unknown ids are a no-op."""
    protected = category_id == TRASH_CATEGORY_ID or any(
        c.id == category_id and c.is_system for c in categories
    )
    if protected:
        raise ProtectedCategoryError(f"Category {category_id} is protected")
    return [c for c in categories if c.id != category_id]


def drop_category_assignments(
    classification: Mapping[int, int], category_id: int
) -> Classification:
    """Forget every override pointing at *category_id*."""
    return {rid: cid for rid, cid in classification.items() if cid != category_id}
