"""Translate domain errors into HTTP errors for the routers."""

from __future__ import annotations

from fastapi import HTTPException

from curator.services.errors import (
    CategoryExistsError,
    CategoryNotFoundError,
    CuratorError,
    DatasetNotFoundError,
    FilterTreeError,
    ProtectedCategoryError,
    RuleNotFoundError,
)

_STATUS_BY_ERROR: dict[type[CuratorError], int] = {
    DatasetNotFoundError: 404,
    RuleNotFoundError: 404,
    FilterTreeError: 400,
    ProtectedCategoryError: 409,
    CategoryExistsError: 409,
    CategoryNotFoundError: 404,
}


def http_error(exc: CuratorError) -> HTTPException:
    """Return the HTTPException matching *exc* (400 when unmapped)."""
    status_code = 400
    for error_type, code in _STATUS_BY_ERROR.items():
        if isinstance(exc, error_type):
            status_code = code
            break
    return HTTPException(status_code=status_code, detail=str(exc))
