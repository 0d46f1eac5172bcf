"""Document-style access to stored designs.

The rest of the service treats designs as plain dicts shaped like
``{"_id", "name", "uploadedAt", ...payload}``; this module is the only
place that knows they are rows in the `designs` table.

Identifiers are accepted in their native form (a UUID, in any of the
spellings `uuid.UUID` understands) and fall back to the raw string for
anything else, so ids minted by another system still resolve.
"""

from __future__ import annotations

import uuid
from collections.abc import Iterable
from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from designhub.db.models import Design

# Keys that map to columns rather than to the JSON payload.
_RESERVED_KEYS = frozenset({"_id", "name", "uploadedAt"})


def coerce_id(raw: Any) -> str:
    """Return the canonical UUID spelling of `raw`, or `raw` as a string."""
    try:
        return str(uuid.UUID(str(raw)))
    except ValueError:
        return str(raw)


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; every stored timestamp is UTC.
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


def to_document(design: Design, fields: Optional[Iterable[str]] = None) -> dict[str, Any]:
    doc: dict[str, Any] = {
        "_id": design.id,
        **(design.payload or {}),
        "name": design.name,
        "uploadedAt": _as_utc(design.uploaded_at).isoformat(),
    }
    if fields is None:
        return doc
    wanted = set(fields) | {"_id"}
    return {k: v for k, v in doc.items() if k in wanted}


class DocumentStore:
    """Design collection bound to one request-scoped session."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def find(
        self,
        *,
        name: Optional[str] = None,
        name_contains: Optional[str] = None,
        fields: Optional[Iterable[str]] = None,
        limit: Optional[int] = None,
    ) -> list[dict[str, Any]]:
        """Return documents matching an exact name and/or a case-insensitive substring."""
        stmt = select(Design)
        if name is not None:
            stmt = stmt.where(Design.name == name)
        if name_contains:
            stmt = stmt.where(
                func.lower(Design.name).contains(name_contains.lower(), autoescape=True)
            )
        if limit is not None:
            stmt = stmt.limit(limit)
        rows = (await self.session.execute(stmt)).scalars().all()
        return [to_document(row, fields) for row in rows]

    async def find_one(self, doc_id: Any) -> Optional[dict[str, Any]]:
        design = await self.session.get(Design, coerce_id(doc_id))
        return to_document(design) if design else None

    async def insert_one(self, doc: dict[str, Any]) -> str:
        """Insert `doc` as a new record and return its id."""
        uploaded_at = doc.get("uploadedAt")
        design = Design(
            name=doc["name"],
            uploaded_at=uploaded_at if isinstance(uploaded_at, datetime) else datetime.now(timezone.utc),
            payload={k: v for k, v in doc.items() if k not in _RESERVED_KEYS},
        )
        if doc.get("_id") is not None:
            design.id = coerce_id(doc["_id"])
        self.session.add(design)
        await self.session.flush()
        return design.id

    async def update_one(self, doc_id: Any, patch: dict[str, Any]) -> int:
        """Merge `patch` into the document. Returns the matched count (0 or 1)."""
        design = await self.session.get(Design, coerce_id(doc_id))
        if design is None:
            return 0
        if patch.get("name"):
            design.name = patch["name"]
        if isinstance(patch.get("uploadedAt"), datetime):
            design.uploaded_at = patch["uploadedAt"]
        # Reassign so SQLAlchemy sees the JSON column change.
        design.payload = {
            **(design.payload or {}),
            **{k: v for k, v in patch.items() if k not in _RESERVED_KEYS},
        }
        await self.session.flush()
        return 1

    async def delete_one(self, doc_id: Any) -> int:
        result = await self.session.execute(
            delete(Design).where(Design.id == coerce_id(doc_id))
        )
        return result.rowcount or 0
