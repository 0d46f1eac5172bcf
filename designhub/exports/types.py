"""Value types shared by the export pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional

DEFAULT_EXPORT_KIND = "download"


@dataclass(frozen=True)
class CacheKey:
    """Exact identity of a cache entry. No partial or fuzzy matching."""

    design_id: str
    export_kind: str
    name_contains: Optional[str]
    content_type: Optional[str]


@dataclass(frozen=True)
class ExportCriteria:
    design_id: str
    export_kind: str = DEFAULT_EXPORT_KIND
    name_contains: Optional[str] = None
    preferred_content_type: Optional[str] = None
    bypass_cache: bool = False

    def cache_key(self, content_type: Optional[str]) -> CacheKey:
        return CacheKey(self.design_id, self.export_kind, self.name_contains, content_type)

    @property
    def probe_key(self) -> CacheKey:
        return self.cache_key(self.preferred_content_type)


@dataclass(frozen=True)
class SessionDescriptor:
    session_id: str
    parameters: dict[str, dict[str, Any]] = field(default_factory=dict)
    exports: dict[str, dict[str, Any]] = field(default_factory=dict)


@dataclass(frozen=True)
class ExtractedArtifact:
    data: bytes
    content_type: str
    filename: str
