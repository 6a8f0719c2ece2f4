"""Bundle import/export: shape classification, normalization, serialization."""

from __future__ import annotations

from .normalize import (
    NormalizedBundle,
    dimensions_from_legacy_specs,
    enforce_single_selection,
    iso_timestamp,
    normalize_bundle,
    provenance_from_raw,
    sanitize_home,
    sanitize_planner,
)
from .schema import BundlePayload, LegacyBundlePayload, VersionedBundlePayload, classify_bundle
from .serialize import BUNDLE_VERSION, attachment_key, export_payload, to_wire

__all__ = [
    "BUNDLE_VERSION",
    "BundlePayload",
    "LegacyBundlePayload",
    "NormalizedBundle",
    "VersionedBundlePayload",
    "attachment_key",
    "classify_bundle",
    "dimensions_from_legacy_specs",
    "enforce_single_selection",
    "export_payload",
    "iso_timestamp",
    "normalize_bundle",
    "provenance_from_raw",
    "sanitize_home",
    "sanitize_planner",
    "to_wire",
]
