"""Render domain records as camelCase bundle JSON."""

from __future__ import annotations

from dataclasses import fields, is_dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any

from pydantic.alias_generators import to_camel

from furnitrack.domain.model import Actor, Attachment, ChangeLogEntry, EntityKind, ExportMeta

from .normalize import iso_timestamp

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    from furnitrack.domain.model import HomeMeta, Item, Measurement, Option, PlannerMeta, Room, Store

BUNDLE_VERSION = 2


def attachment_key(kind: EntityKind, parent_id: str) -> str:
    return f"{kind}:{parent_id}"


def to_wire(value: object) -> Any:
    """Recursively convert dataclasses, enums and tuples into JSON-ready values."""

    if isinstance(value, Enum):
        return value.value
    if isinstance(value, ChangeLogEntry):
        return {
            "field": value.field,
            "from": to_wire(value.from_value),
            "to": to_wire(value.to_value),
            "by": to_wire(value.by),
            "at": value.at,
            "sessionId": value.session_id,
        }
    if isinstance(value, Attachment):
        return {
            "id": value.id,
            "url": value.url,
            "name": value.name,
            "mime": value.mime,
            "size": value.size,
            "createdAt": value.created_at,
            "updatedAt": value.updated_at,
        }
    if is_dataclass(value) and not isinstance(value, type):
        return {to_camel(f.name): to_wire(getattr(value, f.name)) for f in fields(value)}
    if isinstance(value, dict):
        return {str(key): to_wire(item) for key, item in value.items()}
    if isinstance(value, list | tuple):
        return [to_wire(item) for item in value]
    return value


def _with_attachments(
    record: Item | Option,
    attachments: Mapping[str, Sequence[Attachment]],
) -> dict[str, Any]:
    wire = to_wire(record)
    wire["attachments"] = to_wire(list(attachments.get(attachment_key(record.kind, record.id), ())))
    return wire


def export_payload(
    *,
    exported_at: int,
    session_id: str,
    home: HomeMeta,
    planner: PlannerMeta | None,
    rooms: Sequence[Room],
    measurements: Sequence[Measurement],
    items: Sequence[Item],
    options: Sequence[Option],
    stores: Sequence[Store],
    attachments: Mapping[str, Sequence[Attachment]],
    app_version: str | None = None,
) -> dict[str, Any]:
    """Assemble a version 2 bundle; items and options carry their attachments."""

    meta = ExportMeta(
        exported_at=exported_at,
        exported_by=Actor.HUMAN,
        app_version=app_version,
        schema_version=BUNDLE_VERSION,
        session_id=session_id,
    )
    return {
        "version": BUNDLE_VERSION,
        "exportedAt": iso_timestamp(exported_at),
        "exportMeta": to_wire(meta),
        "home": to_wire(home),
        "planner": to_wire(planner),
        "rooms": to_wire(list(rooms)),
        "measurements": to_wire(list(measurements)),
        "items": [_with_attachments(item, attachments) for item in items],
        "options": [_with_attachments(option, attachments) for option in options],
        "stores": to_wire(list(stores)),
    }
