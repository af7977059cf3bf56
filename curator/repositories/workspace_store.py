"""Per-dataset curation state persisted as JSON documents.

Layout under ``<workspace_dir>/<dataset_id>/``:

- ``filtered.json``       -- FilterConfig (version-gated)
- ``rules.json``          -- list of ClassificationRule
- ``categories.json``     -- list of CategoryDef
- ``classification.json`` -- ``{"<region id>": category id}``
- ``remove.json``         -- manually removed region ids

Missing or unreadable documents load as defaults; save errors propagate.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

from pydantic import TypeAdapter, ValidationError

from curator.models.classification import CategoryDef, Classification, ClassificationRule
from curator.models.filter import FilterConfig
from curator.models.selection import RemovedIdsDocument
from curator.repositories.storage import StorageBackend
from curator.services.categories import default_categories
from curator.services.filter_evaluator import load_filter_config

logger = logging.getLogger(__name__)

FILTER_FILE = "filtered.json"
RULES_FILE = "rules.json"
CATEGORIES_FILE = "categories.json"
CLASSIFICATION_FILE = "classification.json"
REMOVED_FILE = "remove.json"

_rules_adapter = TypeAdapter(list[ClassificationRule])
_categories_adapter = TypeAdapter(list[CategoryDef])
_classification_adapter = TypeAdapter(Classification)


class WorkspaceStore:
    """Reads and writes a dataset's curation documents via StorageBackend."""

    def __init__(
        self,
        storage: StorageBackend,
        workspace_dir: str,
        default_max_depth: int = 2,
    ) -> None:
        self.storage = storage
        self.workspace_dir = str(workspace_dir)
        self.default_max_depth = default_max_depth

    def _path(self, dataset_id: str, file_name: str) -> str:
        return self.storage.join(self.workspace_dir, dataset_id, file_name)

    def _read(self, dataset_id: str, file_name: str) -> Any | None:
        path = self._path(dataset_id, file_name)
        try:
            if not self.storage.exists(path):
                return None
            return self.storage.read_json(path)
        except (OSError, ValueError):
            logger.warning("Could not read %s", path, exc_info=True)
            return None

    def _write(self, dataset_id: str, file_name: str, data: Any) -> None:
        self.storage.write_json(self._path(dataset_id, file_name), data)

    # ------------------------------------------------------------------
    # Filter config
    # ------------------------------------------------------------------

    def load_filter_config(self, dataset_id: str) -> FilterConfig:
        return load_filter_config(
            self._read(dataset_id, FILTER_FILE), self.default_max_depth
        )

    def save_filter_config(self, dataset_id: str, config: FilterConfig) -> None:
        self._write(dataset_id, FILTER_FILE, config.to_json_dict())

    # ------------------------------------------------------------------
    # Rules
    # ------------------------------------------------------------------

    def load_rules(self, dataset_id: str) -> list[ClassificationRule]:
        raw = self._read(dataset_id, RULES_FILE)
        if raw is None:
            return []
        try:
            return _rules_adapter.validate_python(raw)
        except ValidationError:
            logger.warning("Invalid rules document for %s", dataset_id, exc_info=True)
            return []

    def save_rules(self, dataset_id: str, rules: list[ClassificationRule]) -> None:
        self._write(dataset_id, RULES_FILE, [rule.to_json_dict() for rule in rules])

    # ------------------------------------------------------------------
    # Categories
    # ------------------------------------------------------------------

    def load_categories(self, dataset_id: str) -> list[CategoryDef]:
        raw = self._read(dataset_id, CATEGORIES_FILE)
        if raw is None:
            return default_categories()
        try:
            return _categories_adapter.validate_python(raw)
        except ValidationError:
            logger.warning("Invalid categories document for %s", dataset_id, exc_info=True)
            return default_categories()

    def save_categories(self, dataset_id: str, categories: list[CategoryDef]) -> None:
        self._write(dataset_id, CATEGORIES_FILE, [c.to_json_dict() for c in categories])

    # ------------------------------------------------------------------
    # Classification map
    # ------------------------------------------------------------------

    def load_classification(self, dataset_id: str) -> Classification:
        raw = self._read(dataset_id, CLASSIFICATION_FILE)
        if raw is None:
            return {}
        try:
            return _classification_adapter.validate_python(raw)
        except ValidationError:
            logger.warning("Invalid classification document for %s", dataset_id, exc_info=True)
            return {}

    def save_classification(self, dataset_id: str, classification: Classification) -> None:
        self._write(
            dataset_id,
            CLASSIFICATION_FILE,
            {str(region_id): category for region_id, category in sorted(classification.items())},
        )

    # ------------------------------------------------------------------
    # Removed ids
    # ------------------------------------------------------------------

    def load_removed_ids(self, dataset_id: str) -> set[int]:
        raw = self._read(dataset_id, REMOVED_FILE)
        if raw is None:
            return set()
        try:
            return set(RemovedIdsDocument.model_validate(raw).removed_ids)
        except ValidationError:
            logger.warning("Invalid remove document for %s", dataset_id, exc_info=True)
            return set()

    def save_removed_ids(self, dataset_id: str, removed_ids: set[int]) -> None:
        document = RemovedIdsDocument(
            version=1,
            updated_at=datetime.now(timezone.utc).isoformat(),
            removed_ids=sorted(removed_ids),
        )
        self._write(dataset_id, REMOVED_FILE, document.to_json_dict())
