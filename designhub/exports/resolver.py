"""Export resolution: from a design id and loose criteria to artifact bytes.

Steps, strictly in order:

1. Probe the cache (skipped when the caller bypasses it)
2. Open a ShapeDiver session with the server-held ticket
3. Find the JSON input parameter and the requested export
4. Compute the export, pointing the model at this service's copy of the design
5. Extract the payload and normalize its content type and filename

Populating the cache is a separate call the router schedules as a
background task, so a slow or failing cache never affects the response.
No step is retried and identical concurrent requests are not merged.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass
from fnmatch import fnmatch
from typing import Optional, Protocol
from urllib.parse import urlsplit

import httpx
import structlog

from designhub.core.errors import (
    ConfigurationError,
    ContentError,
    DownloadError,
    UpstreamError,
    ValidationError,
)
from designhub.exports import discovery
from designhub.exports.cache import ArtifactCache
from designhub.exports.client import RemoteComputationError
from designhub.exports.normalize import normalize
from designhub.exports.payload import extract_payload
from designhub.exports.types import (
    CacheKey,
    ExportCriteria,
    ExtractedArtifact,
    SessionDescriptor,
)

logger = structlog.get_logger(__name__)

CACHE_HIT = "HIT"
CACHE_MISS = "MISS"


class RemoteClient(Protocol):
    async def create_session(self, ticket: str) -> SessionDescriptor:
        ...

    async def compute_exports(
        self, session_id: str, parameters: dict, exports: list[str]
    ) -> dict:
        ...


RemoteClientFactory = Callable[[str], RemoteClient]


@dataclass(frozen=True)
class ResolvedExport:
    artifact: ExtractedArtifact
    cache_status: str


class ExportResolver:
    def __init__(
        self,
        *,
        cache: ArtifactCache,
        remote_factory: RemoteClientFactory,
        http: httpx.AsyncClient,
        ticket: str,
        default_endpoint: str,
        database_api_url: str,
        allowed_hosts: Optional[Sequence[str]] = None,
    ):
        self.cache = cache
        self.remote_factory = remote_factory
        self.http = http
        self.ticket = ticket
        self.default_endpoint = default_endpoint
        self.database_api_url = database_api_url.rstrip("/")
        # None leaves caller-supplied endpoints unrestricted.
        self.allowed_hosts = allowed_hosts

    def design_json_url(self, design_id: str) -> str:
        return f"{self.database_api_url}/api/data/{design_id}"

    def check_endpoint(self, endpoint: str) -> None:
        """Reject a caller-supplied endpoint whose host is not allowed."""
        if self.allowed_hosts is None:
            return
        try:
            host = (urlsplit(endpoint).hostname or "").lower()
        except ValueError:
            host = ""
        if not host or not any(fnmatch(host, pattern.lower()) for pattern in self.allowed_hosts):
            raise ValidationError(
                f"ShapeDiver endpoint host {host or endpoint!r} is not allowed",
                error="Endpoint not allowed",
            )

    async def resolve(self, criteria: ExportCriteria, endpoint: str | None = None) -> ResolvedExport:
        if endpoint:
            self.check_endpoint(endpoint)
        if not criteria.bypass_cache:
            cached = await self.cache.get(criteria.probe_key)
            if cached.hit and cached.buffer:
                logger.info("export_cache_hit", design_id=criteria.design_id)
                return ResolvedExport(
                    ExtractedArtifact(
                        data=cached.buffer,
                        content_type=cached.content_type or "application/octet-stream",
                        filename=cached.filename or "",
                    ),
                    CACHE_HIT,
                )
        artifact = await self.compute(criteria, endpoint or self.default_endpoint)
        return ResolvedExport(artifact, CACHE_MISS)

    async def compute(self, criteria: ExportCriteria, endpoint: str) -> ExtractedArtifact:
        log = logger.bind(design_id=criteria.design_id, export_kind=criteria.export_kind)
        if not self.ticket:
            raise ConfigurationError("SHAPEDIVER_TICKET is not configured")

        remote = self.remote_factory(endpoint)
        try:
            session = await remote.create_session(self.ticket)
        except RemoteComputationError as exc:
            raise UpstreamError(f"Failed to create ShapeDiver session: {exc}") from exc

        input_id = discovery.find_json_input_parameter(session)
        export_id, definition = discovery.select_export(
            session, criteria.export_kind, criteria.name_contains
        )
        log = log.bind(session_id=session.session_id, export_id=export_id)
        log.info("export_selected", export_name=definition.get("name"))

        try:
            results = await remote.compute_exports(
                session.session_id,
                {input_id: self.design_json_url(criteria.design_id)},
                [export_id],
            )
        except RemoteComputationError as exc:
            raise UpstreamError(
                f"Export computation failed: {exc}", error="Export computation failed"
            ) from exc

        result = results.get(export_id)
        if not isinstance(result, dict):
            raise ContentError("Export not found in results", error="Export missing")

        data, picked = await extract_payload(
            result, criteria.preferred_content_type, self._download
        )
        if not data:
            raise ContentError("No file content or URL returned by export")

        content_type, filename = normalize(
            picked=picked,
            result=result,
            preferred_content_type=criteria.preferred_content_type,
            design_id=criteria.design_id,
            label=definition.get("name") or criteria.export_kind,
        )
        log.info("export_computed", content_type=content_type, size=len(data))
        return ExtractedArtifact(data=data, content_type=content_type, filename=filename)

    async def _download(self, url: str) -> bytes:
        try:
            response = await self.http.get(url, follow_redirects=True)
        except httpx.HTTPError as exc:
            raise UpstreamError(f"Failed to download export: {exc}") from exc
        if not response.is_success:
            raise DownloadError(
                f"Failed to download export: {response.status_code} {response.reason_phrase}"
            )
        return response.content

    @staticmethod
    def cache_keys(criteria: ExportCriteria, artifact: ExtractedArtifact) -> list[CacheKey]:
        """Keys a freshly computed artifact is stored under.

        Always the criteria with the normalized content type; also the
        caller's exact criteria when their preferred type differs, so an
        identical repeat request is answered from the cache.
        """
        keys = [criteria.cache_key(artifact.content_type)]
        if criteria.probe_key not in keys:
            keys.append(criteria.probe_key)
        return keys

    async def populate_cache(self, criteria: ExportCriteria, artifact: ExtractedArtifact) -> None:
        """Best-effort cache write. Failures are logged and never raised."""
        for key in self.cache_keys(criteria, artifact):
            try:
                await self.cache.put(key, artifact)
            except Exception as exc:
                logger.warning(
                    "export_cache_store_failed",
                    design_id=criteria.design_id,
                    content_type=key.content_type,
                    error=str(exc),
                )
