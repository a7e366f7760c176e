"""Shared pydantic base for stored documents and API payloads."""
from typing import Any, Dict

from pydantic import BaseModel
from pydantic.alias_generators import to_camel


class DocumentModel(BaseModel):
    """Model whose stored and wire representation uses camelCase keys.

    Python attributes stay snake_case; ``populate_by_name`` lets callers use
    either form when constructing.
    """

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        use_enum_values = True
        validate_default = True

    def to_document(self) -> Dict[str, Any]:
        """Dump to a Mongo-ready dict (camelCase keys, datetimes preserved)."""
        return self.model_dump(by_alias=True)


class RequestModel(BaseModel):
    """Incoming JSON body; accepts camelCase and snake_case keys."""

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        use_enum_values = True
        validate_default = True
