"""HTTP client for the Airtable table the tracker syncs with."""

from __future__ import annotations

import json
from dataclasses import dataclass, field, replace
from itertools import batched
from logging import getLogger
from typing import TYPE_CHECKING, Any, Final

from furnitrack.adapters.http_resilience import ResilienceConfig, ResilientClient
from furnitrack.config.remote import AIRTABLE_BASE_URL, RemoteConfig, get_remote_config
from furnitrack.domain.ports import RemoteRecord

from .schema import (
    DeleteRecordsResponse,
    ErrorResponse,
    ListRecordsResponse,
    RecordPayload,
    RecordsResponse,
)

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping, Sequence

    import httpx

    from furnitrack.domain.ports import RemoteRecordStore, RemoteUpdate

log = getLogger(__name__)

PAGE_SIZE: Final = 100
WRITE_BATCH_SIZE: Final = 10


def _default_client_factory(config: ResilienceConfig) -> ResilientClient:
    return ResilientClient(config)


class RemoteAPIError(RuntimeError):
    """Raised when the remote table answers with a non-success status."""

    def __init__(self, code: int, text: str) -> None:
        super().__init__(f"Airtable error {code}: {text}")
        self.code = code
        self.text = text


def _to_record(payload: RecordPayload) -> RemoteRecord:
    return RemoteRecord(id=payload.id, fields=payload.fields, created_time=payload.created_time)


def _error_text(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except json.JSONDecodeError:
        return response.text
    return ErrorResponse.model_validate(payload).describe() or response.text


@dataclass(slots=True)
class AirtableRecordStore:
    config: RemoteConfig = field(default_factory=get_remote_config)
    client_factory: Callable[[ResilienceConfig], ResilientClient] = field(
        default=_default_client_factory
    )

    @property
    def table_url(self) -> str:
        base_url = self.config.resilience.base_url or AIRTABLE_BASE_URL
        return f"{base_url.rstrip('/')}/{self.config.table_path}"

    @property
    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.config.token}",
            "Content-Type": "application/json",
        }

    def _client(self) -> ResilientClient:
        return self.client_factory(replace(self.config.resilience, default_headers=self._headers))

    def _checked(self, response: httpx.Response) -> Any:
        if response.status_code >= 400:  # noqa: PLR2004
            text = _error_text(response)
            log.error("Airtable error %s: %s", response.status_code, text)
            raise RemoteAPIError(response.status_code, text)
        return response.json()

    async def list_records(self, *, view: str | None = None) -> list[RemoteRecord]:
        records: list[RemoteRecord] = []
        offset: str | None = None
        async with self._client() as client:
            while True:
                params: dict[str, str | int] = {"pageSize": PAGE_SIZE}
                if view:
                    params["view"] = view
                if offset:
                    params["offset"] = offset
                response = await client.get(self.table_url, params=params, headers=self._headers)
                page = ListRecordsResponse.model_validate(self._checked(response))
                records.extend(_to_record(payload) for payload in page.records)
                if not page.offset:
                    break
                offset = page.offset
        log.debug("Listed %d remote records (view=%r)", len(records), view)
        return records

    async def create_records(self, records: Sequence[Mapping[str, Any]]) -> list[RemoteRecord]:
        created: list[RemoteRecord] = []
        async with self._client() as client:
            for batch in batched(records, WRITE_BATCH_SIZE):
                body = {"records": [{"fields": dict(fields)} for fields in batch], "typecast": True}
                response = await client.post(self.table_url, json=body, headers=self._headers)
                payload = RecordsResponse.model_validate(self._checked(response))
                created.extend(_to_record(record) for record in payload.records)
        return created

    async def update_records(self, updates: Sequence[RemoteUpdate]) -> list[RemoteRecord]:
        updated: list[RemoteRecord] = []
        async with self._client() as client:
            for batch in batched(updates, WRITE_BATCH_SIZE):
                body = {
                    "records": [{"id": update.id, "fields": dict(update.fields)} for update in batch],
                    "typecast": True,
                }
                response = await client.patch(self.table_url, json=body, headers=self._headers)
                payload = RecordsResponse.model_validate(self._checked(response))
                updated.extend(_to_record(record) for record in payload.records)
        return updated

    async def delete_records(self, record_ids: Sequence[str]) -> list[str]:
        deleted: list[str] = []
        async with self._client() as client:
            for batch in batched(record_ids, WRITE_BATCH_SIZE):
                params = [("records[]", record_id) for record_id in batch]
                response = await client.delete(self.table_url, params=params, headers=self._headers)
                payload = DeleteRecordsResponse.model_validate(self._checked(response))
                deleted.extend(record.id for record in payload.records if record.deleted)
        return deleted


if TYPE_CHECKING:
    _store_check: RemoteRecordStore = AirtableRecordStore()
