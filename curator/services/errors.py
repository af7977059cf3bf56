"""Domain exceptions raised by editing operations.

Evaluation, the pipeline and geometry never raise; these cover invalid
edits (unknown ids, protected categories, depth limits). Routers map them
to HTTP status codes.
"""

from __future__ import annotations


class CuratorError(Exception):
    """Base class for all curator domain errors."""


class FilterTreeError(CuratorError):
    """An edit to the filter tree is not allowed."""


class RuleNotFoundError(CuratorError):
    """No classification rule with the given id."""


class ProtectedCategoryError(CuratorError):
    """The category is a system category and cannot be removed."""


class CategoryExistsError(CuratorError):
    """A category with the same id already exists."""


class DatasetNotFoundError(CuratorError):
    """No dataset with the given id has been loaded."""


class CategoryNotFoundError(CuratorError):
    """No category with the given id."""
