"""Shared pydantic base for models exchanged as camelCase JSON."""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """BaseModel that reads and writes camelCase keys.

    Python code uses snake_case attributes; the persisted JSON documents and
    the HTTP payloads use camelCase (``categoryId``, ``excludedIds``...).
    Both spellings are accepted on input.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_json_dict(self) -> dict:
        """Dump to a JSON-ready dict using the camelCase aliases."""
        return self.model_dump(by_alias=True, mode="json")
