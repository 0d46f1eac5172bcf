"""Pydantic schemas for design document endpoints.

Documents themselves are free-form JSON and are returned as plain dicts;
only the list / search / version envelopes have a fixed shape.
"""

from typing import Optional

from pydantic import BaseModel


class DesignSummary(BaseModel):
    id: str
    name: str


class LatestDesign(BaseModel):
    id: str
    name: str
    uploadedAt: Optional[str] = None
    isLatestVersion: bool = True
    totalVersions: int


class SearchResponse(BaseModel):
    query: str
    count: int
    results: list[DesignSummary]


class VersionEntry(BaseModel):
    id: str
    name: Optional[str] = None
    versionNumber: int
    uploadedAt: Optional[str] = None
    isCurrent: bool


class VersionListResponse(BaseModel):
    designName: str
    totalVersions: int
    versions: list[VersionEntry]


class UploadResponse(BaseModel):
    message: str = "Design uploaded successfully"
    id: str
    name: str
    uploadedAt: str


class MessageResponse(BaseModel):
    message: str
