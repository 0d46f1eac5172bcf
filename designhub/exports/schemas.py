"""Pydantic schemas for export download and cache admin endpoints.

Field names follow the JSON the browser client already sends (camelCase).
"""

from typing import Optional

from pydantic import BaseModel, Field


class DownloadRequest(BaseModel):
    """Body of POST /api/data/download.

    `designId` is optional at the schema level so a missing id answers
    400 with the usual error body instead of a 422 validation dump.
    """

    designId: Optional[str] = None
    shapediverEndpoint: Optional[str] = None
    exportType: Optional[str] = Field(
        default=None,
        description="Export type to match, e.g. 'download' or 'data' (default 'download')",
    )
    exportNameContains: Optional[str] = Field(
        default=None,
        description="Case-insensitive substring of the export name, e.g. 'pdf'",
    )
    contentType: Optional[str] = Field(
        default=None,
        description="Preferred MIME type when an export carries several contents",
    )
    bypassCache: bool = False


class PurgeResponse(BaseModel):
    message: str = "Purge complete"
    deleted: int


class CacheStatsResponse(BaseModel):
    designScoped: bool
    designId: Optional[str] = None
    objects: int
    totalBytes: int
