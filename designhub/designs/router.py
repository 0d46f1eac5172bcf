"""Design document endpoints.

CRUD, listing, search and version resolution over the design store.
`GET /api/data/{id}` doubles as the URL the ShapeDiver model fetches the
design JSON from when an export is computed, so it must stay public.
"""

import logging
from datetime import datetime, timezone
from typing import Any

from fastapi import APIRouter, Body, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from designhub.core.errors import NotFoundError, ValidationError
from designhub.db.session import get_db
from designhub.designs import versions
from designhub.designs.schemas import (
    DesignSummary,
    LatestDesign,
    MessageResponse,
    SearchResponse,
    UploadResponse,
    VersionListResponse,
)
from designhub.designs.store import DocumentStore

logger = logging.getLogger(__name__)

router = APIRouter(tags=["designs"])

_SUMMARY_FIELDS = ("name",)
_VERSION_FIELDS = ("name", "uploadedAt")


def get_store(db: AsyncSession = Depends(get_db)) -> DocumentStore:
    return DocumentStore(db)


def _summary(doc: dict[str, Any]) -> DesignSummary:
    return DesignSummary(id=doc["_id"], name=doc.get("name") or versions.UNNAMED)


@router.get("/api/data")
async def list_documents(store: DocumentStore = Depends(get_store)) -> list[dict[str, Any]]:
    """Return every stored document in full."""
    return await store.find()


@router.get("/api/data/list", response_model=list[DesignSummary])
async def list_summaries(store: DocumentStore = Depends(get_store)) -> list[DesignSummary]:
    docs = await store.find(fields=_SUMMARY_FIELDS)
    return [_summary(doc) for doc in docs]


@router.get("/api/data/list_latest", response_model=list[LatestDesign])
@router.get("/api/designs/list", response_model=list[LatestDesign])
async def list_latest(store: DocumentStore = Depends(get_store)) -> list[dict[str, Any]]:
    """One entry per design name: the current version and the version count."""
    docs = await store.find(fields=_VERSION_FIELDS)
    latest = versions.latest_per_name(docs)
    logger.info("Listing %d unique designs out of %d documents", len(latest), len(docs))
    return latest


@router.get("/api/data/search", response_model=SearchResponse)
async def search(
    q: str | None = Query(default=None),
    limit: int = Query(default=50, ge=1, le=1000),
    store: DocumentStore = Depends(get_store),
) -> SearchResponse:
    """Case-insensitive substring search on design names."""
    docs = await store.find(name_contains=q, fields=_SUMMARY_FIELDS, limit=limit)
    results = [_summary(doc) for doc in docs]
    return SearchResponse(query=q or "all", count=len(results), results=results)


@router.get("/api/data/versions/{name}", response_model=VersionListResponse)
async def get_versions(
    name: str, store: DocumentStore = Depends(get_store)
) -> dict[str, Any]:
    docs = await store.find(name=name, fields=_VERSION_FIELDS)
    return versions.list_versions(name, docs)


@router.get("/api/data/versions/{name}/{version_number}")
async def get_version(
    name: str, version_number: str, store: DocumentStore = Depends(get_store)
) -> dict[str, Any]:
    """Return one version of a design (0 = current, 1 = previous, ...)."""
    number = versions.parse_version_number(version_number)
    docs = await store.find(name=name)
    return versions.pick_version(name, docs, number)


@router.get("/api/data/{doc_id}")
async def get_document(doc_id: str, store: DocumentStore = Depends(get_store)) -> dict[str, Any]:
    doc = await store.find_one(doc_id)
    if doc is None:
        raise NotFoundError(f"No document with id {doc_id!r}", error="Data not found")
    return doc


@router.post(
    "/api/data/upload",
    response_model=UploadResponse,
    status_code=status.HTTP_201_CREATED,
)
async def upload(
    body: dict[str, Any] = Body(...),
    store: DocumentStore = Depends(get_store),
) -> UploadResponse:
    """Store an uploaded design as a new version; existing records are never overwritten."""
    if not body.get("name"):
        raise ValidationError("Design must have a name field", error="Invalid design data")

    now = datetime.now(timezone.utc)
    fields = {k: v for k, v in body.items() if k != "_id"}
    doc_id = await store.insert_one({**fields, "uploadedAt": now})
    logger.info("Uploaded design %r as %s", body["name"], doc_id)
    return UploadResponse(id=doc_id, name=body["name"], uploadedAt=now.isoformat())


@router.put("/api/data/{doc_id}", response_model=MessageResponse)
async def update_document(
    doc_id: str,
    body: dict[str, Any] = Body(...),
    store: DocumentStore = Depends(get_store),
) -> MessageResponse:
    matched = await store.update_one(
        doc_id, {**body, "uploadedAt": datetime.now(timezone.utc)}
    )
    if not matched:
        raise NotFoundError(f"No document with id {doc_id!r}", error="Data not found")
    return MessageResponse(message="Data updated successfully")


@router.delete("/api/data/{doc_id}", response_model=MessageResponse)
async def delete_document(doc_id: str, store: DocumentStore = Depends(get_store)) -> MessageResponse:
    if not await store.delete_one(doc_id):
        raise NotFoundError(f"No document with id {doc_id!r}", error="Data not found")
    return MessageResponse(message="Data deleted successfully")
