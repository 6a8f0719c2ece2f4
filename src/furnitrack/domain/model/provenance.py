"""Provenance records and the review-state transitions applied to them."""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import TYPE_CHECKING, Any

from .enums import Actor, DataSource, ReviewStatus

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping, Sequence

    from furnitrack.domain.diff import FieldChange


@dataclass(slots=True, frozen=True, kw_only=True)
class ChangeLogEntry:
    field: str
    from_value: object
    to_value: object
    by: Actor | None
    at: int
    session_id: str | None = None


@dataclass(slots=True, frozen=True, kw_only=True)
class Provenance:
    created_by: Actor | None = None
    created_at: int | None = None
    last_edited_by: Actor | None = None
    last_edited_at: int | None = None
    data_source: DataSource | None = None
    source_ref: str | None = None
    review_status: ReviewStatus | None = None
    verified_at: int | None = None
    verified_by: Actor | None = None
    modified_fields: tuple[str, ...] | None = None
    change_log: tuple[ChangeLogEntry, ...] | None = None

    @property
    def needs_attention(self) -> bool:
        return self.review_status in {ReviewStatus.NEEDS_REVIEW, ReviewStatus.AI_MODIFIED}


def merge_modified_fields(existing: Sequence[str] | None, added: Iterable[str]) -> tuple[str, ...]:
    """Deduplicated union that keeps first-seen order."""

    seen: dict[str, None] = {}
    for name in (*(existing or ()), *added):
        seen.setdefault(name, None)
    return tuple(seen)


def _settle_verified(provenance: Provenance, at: int) -> Provenance:
    if provenance.review_status is not ReviewStatus.VERIFIED:
        return provenance
    return replace(
        provenance,
        verified_at=provenance.verified_at if provenance.verified_at is not None else at,
        verified_by=provenance.verified_by or Actor.HUMAN,
        modified_fields=None,
        change_log=None,
    )


def mark_verified(provenance: Provenance | None, at: int) -> Provenance:
    """Transition to ``verified``; clears pending history."""

    base = provenance or Provenance()
    return _settle_verified(
        replace(
            base,
            last_edited_by=Actor.HUMAN,
            last_edited_at=at,
            review_status=ReviewStatus.VERIFIED,
        ),
        at,
    )


def mark_needs_review(provenance: Provenance | None, at: int) -> Provenance:
    """Transition back to ``needs_review``; history is preserved."""

    base = provenance or Provenance()
    return replace(
        base,
        last_edited_by=Actor.HUMAN,
        last_edited_at=at,
        review_status=ReviewStatus.NEEDS_REVIEW,
        verified_at=None,
        verified_by=None,
    )


def human_created(provenance: Provenance | None, at: int) -> Provenance:
    base = provenance or Provenance()
    stamped = replace(
        base,
        created_by=base.created_by or Actor.HUMAN,
        created_at=base.created_at if base.created_at is not None else at,
        last_edited_by=Actor.HUMAN,
        last_edited_at=at,
        modified_fields=None,
    )
    return _settle_verified(stamped, at)


def human_edited(
    provenance: Provenance | None,
    patch: Mapping[str, Any] | None,
    at: int,
) -> Provenance:
    """Overlay ``patch`` onto ``provenance`` and stamp a human edit."""

    base = provenance or Provenance()
    changes = {**dict(patch or {}), "last_edited_by": Actor.HUMAN, "last_edited_at": at}
    stamped = replace(base, **changes)
    return _settle_verified(stamped, at)


def imported_new(incoming: Provenance | None, *, actor: Actor, at: int) -> Provenance:
    """Provenance for a record that did not exist locally before an import."""

    base = incoming or Provenance()
    return Provenance(
        created_by=actor,
        created_at=at,
        last_edited_by=actor,
        last_edited_at=at,
        data_source=base.data_source or DataSource.ESTIMATED,
        source_ref=base.source_ref,
        review_status=ReviewStatus.NEEDS_REVIEW,
    )


def imported_change(
    existing: Provenance | None,
    incoming: Provenance | None,
    changes: Sequence[FieldChange],
    *,
    actor: Actor,
    at: int,
    session_id: str,
) -> Provenance:
    """Provenance for an existing record that an import changed."""

    prev = existing or Provenance()
    inc = incoming or Provenance()
    entries = tuple(
        ChangeLogEntry(
            field=change.field,
            from_value=change.from_value,
            to_value=change.to_value,
            by=actor,
            at=at,
            session_id=session_id,
        )
        for change in changes
    )
    return replace(
        inc,
        created_by=prev.created_by if prev.created_by is not None else inc.created_by,
        created_at=prev.created_at if prev.created_at is not None else inc.created_at,
        verified_at=prev.verified_at if prev.verified_at is not None else inc.verified_at,
        verified_by=prev.verified_by if prev.verified_by is not None else inc.verified_by,
        data_source=inc.data_source if inc.data_source is not None else prev.data_source,
        source_ref=inc.source_ref if inc.source_ref is not None else prev.source_ref,
        last_edited_by=actor,
        last_edited_at=at,
        review_status=ReviewStatus.AI_MODIFIED,
        modified_fields=merge_modified_fields(
            prev.modified_fields, (change.field for change in changes)
        ),
        change_log=(*(prev.change_log or ()), *entries),
    )
