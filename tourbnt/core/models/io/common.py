"""
Shared base for the API schemas.

The API speaks camelCase while entities use snake_case columns; every schema
accepts both spellings on input and dumps camelCase.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base schema with camelCase aliases."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

    def dump(self, **kwargs: Any) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json", **kwargs)

    @classmethod
    def serialize(cls, obj: Any, **kwargs: Any) -> Dict[str, Any]:
        """Validate ``obj`` (usually an entity) and dump it as a response dict."""
        return cls.model_validate(obj).dump(**kwargs)


class UserSummary(CamelModel):
    """Embedded user reference (post author, booking customer, ...)."""

    id: str
    name: str
    email: str


class IdsRequest(CamelModel):
    """Body of the bulk delete endpoints."""

    ids: list[str] = Field(default_factory=list, description="Identifiers to delete")


class BulkResult(CamelModel):
    """Per id outcome of a bulk operation."""

    success: list[str] = Field(default_factory=list)
    failed: list[Dict[str, str]] = Field(default_factory=list)

    def fail(self, item_id: str, error: str) -> None:
        self.failed.append({"id": item_id, "error": error})


class ReasonRequest(CamelModel):
    reason: Optional[str] = Field(default=None, description="Free text reason shown to the submitter")
