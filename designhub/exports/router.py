"""Export download and export cache admin endpoints.

POST /api/data/download resolves an export of a stored design through
ShapeDiver and streams the bytes back. The response always carries
`X-Cache: HIT|MISS`; on a miss the artifact is written to the cache by a
background task after the response has been sent.
"""

import logging
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query, Request
from fastapi.responses import Response

from designhub.core.config import get_settings
from designhub.core.context import AppContext, get_context
from designhub.core.errors import ValidationError
from designhub.core.limiter import limiter
from designhub.db.session import require_store
from designhub.exports.client import ShapeDiverClient
from designhub.exports.normalize import content_disposition
from designhub.exports.resolver import (
    CACHE_MISS,
    ExportResolver,
    RemoteClientFactory,
)
from designhub.exports.schemas import CacheStatsResponse, DownloadRequest, PurgeResponse
from designhub.exports.types import DEFAULT_EXPORT_KIND, ExportCriteria

logger = logging.getLogger(__name__)

settings = get_settings()

router = APIRouter(tags=["exports"])
cache_router = APIRouter(prefix="/api/cache", tags=["cache"])


def get_remote_factory(ctx: AppContext = Depends(get_context)) -> RemoteClientFactory:
    return lambda endpoint: ShapeDiverClient(ctx.http, endpoint)


def get_resolver(
    ctx: AppContext = Depends(get_context),
    remote_factory: RemoteClientFactory = Depends(get_remote_factory),
) -> ExportResolver:
    return ExportResolver(
        cache=ctx.cache,
        remote_factory=remote_factory,
        http=ctx.http,
        ticket=ctx.settings.shapediver_ticket,
        default_endpoint=ctx.settings.shapediver_endpoint,
        database_api_url=ctx.settings.database_api_url,
        allowed_hosts=ctx.settings.shapediver_allowed_hosts,
    )


@router.post("/api/data/download", dependencies=[Depends(require_store)])
@limiter.limit(settings.download_rate_limit)
async def download_export(
    request: Request,
    body: DownloadRequest,
    background_tasks: BackgroundTasks,
    resolver: ExportResolver = Depends(get_resolver),
) -> Response:
    """Resolve, compute and download an export of a stored design.

    The export is the first one of type `exportType` whose name contains
    `exportNameContains`. Set `bypassCache` to force a fresh computation.
    """
    if not body.designId:
        raise ValidationError("designId is required", error="Missing required parameter")

    criteria = ExportCriteria(
        design_id=body.designId,
        export_kind=body.exportType or DEFAULT_EXPORT_KIND,
        name_contains=body.exportNameContains or None,
        preferred_content_type=body.contentType or None,
        bypass_cache=body.bypassCache,
    )
    resolved = await resolver.resolve(criteria, body.shapediverEndpoint)
    artifact = resolved.artifact

    # Content-Type goes out verbatim, without an added charset.
    headers = {"X-Cache": resolved.cache_status, "Content-Type": artifact.content_type}
    if artifact.filename:
        headers["Content-Disposition"] = content_disposition(artifact.filename)

    if resolved.cache_status == CACHE_MISS and not criteria.bypass_cache:
        background_tasks.add_task(resolver.populate_cache, criteria, artifact)

    return Response(content=artifact.data, headers=headers)


def _require_cache(ctx: AppContext) -> None:
    if not ctx.cache.enabled:
        raise ValidationError("Export cache is not enabled", error="Cache disabled")


@cache_router.delete("/exports", response_model=PurgeResponse)
async def purge_exports(
    designId: Optional[str] = Query(default=None),
    exportType: Optional[str] = Query(default=None),
    exportNameContains: Optional[str] = Query(default=None),
    ctx: AppContext = Depends(get_context),
) -> PurgeResponse:
    """Delete cached exports, optionally scoped by design, export type and name filter."""
    _require_cache(ctx)
    deleted = await ctx.cache.purge(designId, exportType, exportNameContains)
    logger.info(
        "Purged %d cached exports (designId=%s, exportType=%s, exportNameContains=%s)",
        deleted, designId, exportType, exportNameContains,
    )
    return PurgeResponse(deleted=deleted)


@cache_router.get("/exports/stats", response_model=CacheStatsResponse)
async def export_cache_stats(
    designId: Optional[str] = Query(default=None),
    ctx: AppContext = Depends(get_context),
) -> CacheStatsResponse:
    _require_cache(ctx)
    stats = await ctx.cache.stats(designId)
    return CacheStatsResponse(
        designScoped=bool(designId),
        designId=designId,
        objects=stats.objects,
        totalBytes=stats.total_bytes,
    )
