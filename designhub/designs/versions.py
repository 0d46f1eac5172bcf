"""Version resolution over documents that share a design name.

Uploading never overwrites: every upload of a design is a new document
with the same `name`. Ordering a name's documents by `uploadedAt`,
newest first, numbers them 0 (current), 1 (previous), and so on.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from datetime import datetime, timezone
from typing import Any

from designhub.core.errors import NotFoundError, ValidationError

UNNAMED = "Unnamed Item"

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


def _uploaded_at(doc: dict[str, Any]) -> datetime:
    value = doc.get("uploadedAt")
    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value)
        except ValueError:
            return _EPOCH
    if not isinstance(value, datetime):
        return _EPOCH
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


def sort_versions(docs: Iterable[dict[str, Any]]) -> list[dict[str, Any]]:
    """Newest first. Documents without a usable timestamp sort last."""
    return sorted(docs, key=_uploaded_at, reverse=True)


def list_versions(name: str, docs: Sequence[dict[str, Any]]) -> dict[str, Any]:
    ordered = sort_versions(docs)
    if not ordered:
        raise NotFoundError(
            f"No stored documents are named {name!r}",
            error="No versions found for this design name",
        )
    return {
        "designName": name,
        "totalVersions": len(ordered),
        "versions": [
            {
                "id": doc["_id"],
                "name": doc.get("name"),
                "versionNumber": index,
                "uploadedAt": doc.get("uploadedAt"),
                "isCurrent": index == 0,
            }
            for index, doc in enumerate(ordered)
        ],
    }


def parse_version_number(raw: str) -> int:
    try:
        number = int(raw)
    except (TypeError, ValueError):
        number = -1
    if number < 0:
        raise ValidationError(
            "Version number must be a non-negative integer (0 = current, 1 = previous, etc.)",
            error="Invalid version number",
        )
    return number


def pick_version(name: str, docs: Sequence[dict[str, Any]], number: int) -> dict[str, Any]:
    """Return version `number` of `name` with a `versionInfo` block attached."""
    ordered = sort_versions(docs)
    if not ordered:
        raise NotFoundError(
            f"No stored documents are named {name!r}",
            error="No versions found for this design name",
        )
    if number >= len(ordered):
        raise NotFoundError(
            f"Version {number} does not exist. Available versions: [0,{len(ordered) - 1}]",
            error="Version not found",
            totalVersions=len(ordered),
        )
    doc = ordered[number]
    return {
        **doc,
        "versionInfo": {
            "versionNumber": number,
            "totalVersions": len(ordered),
            "isCurrent": number == 0,
            "uploadedAt": doc.get("uploadedAt"),
        },
    }


def latest_per_name(docs: Iterable[dict[str, Any]]) -> list[dict[str, Any]]:
    """One entry per design name: its newest document plus the version count."""
    groups: dict[str, list[dict[str, Any]]] = {}
    for doc in docs:
        groups.setdefault(doc.get("name") or UNNAMED, []).append(doc)

    latest = []
    for name, versions in groups.items():
        newest = sort_versions(versions)[0]
        latest.append(
            {
                "id": newest["_id"],
                "name": name,
                "uploadedAt": newest.get("uploadedAt"),
                "isLatestVersion": True,
                "totalVersions": len(versions),
            }
        )
    return latest
