"""Pydantic models describing the Airtable REST payloads."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, cast

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


def _mapping_or_empty(value: object) -> object:
    return value if isinstance(value, Mapping) else {}


class AirtableBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class RecordPayload(AirtableBaseModel):
    id: str
    fields: dict[str, Any] = Field(default_factory=dict)
    created_time: str | None = Field(default=None, alias="createdTime")

    _fields = field_validator("fields", mode="before")(_mapping_or_empty)


class ListRecordsResponse(AirtableBaseModel):
    records: list[RecordPayload] = Field(default_factory=list)
    offset: str | None = None


class RecordsResponse(AirtableBaseModel):
    records: list[RecordPayload] = Field(default_factory=list)


class DeletedRecord(AirtableBaseModel):
    id: str
    deleted: bool = False


class DeleteRecordsResponse(AirtableBaseModel):
    records: list[DeletedRecord] = Field(default_factory=list)


class ErrorDetail(AirtableBaseModel):
    type: str | None = None
    message: str | None = None


class ErrorResponse(AirtableBaseModel):
    error: ErrorDetail = Field(default_factory=ErrorDetail)

    @model_validator(mode="before")
    @classmethod
    def _normalize_error(cls, value: object) -> object:
        if not isinstance(value, Mapping):
            return {}
        mapping_value = cast(Mapping[str, object], value)
        error = mapping_value.get("error")
        if isinstance(error, str):
            return {"error": {"type": error}}
        return mapping_value

    def describe(self) -> str | None:
        parts = [part for part in (self.error.type, self.error.message) if part]
        return ": ".join(parts) if parts else None
