"""Cache of computed export artifacts.

Entries are keyed by the exact `CacheKey` tuple (design id, export kind,
name filter, content type). Three backends conform to `ArtifactCache`:

  redis     — one Redis hash per entry, `export:{design_id}:{digest}`,
              holding the body and its metadata
  memory    — a per-process dict (development, tests)
  disabled  — every probe misses and writes are dropped

Redis layout (hash fields): body, content_type, filename, export_kind,
name_contains, size. The criteria are stored alongside the body so the
admin purge can filter on them without decoding the digest.
"""

from __future__ import annotations

import hashlib
import json
import logging
import re
from collections import OrderedDict
from dataclasses import dataclass
from typing import Optional, Protocol, runtime_checkable

from designhub.core.config import Settings
from designhub.exports.types import CacheKey, ExtractedArtifact

logger = logging.getLogger(__name__)

_KEY_PREFIX = "export"
_GLOB_CHARS = re.compile(r"([*?\[\]\\])")


@dataclass(frozen=True)
class CacheLookup:
    hit: bool
    buffer: Optional[bytes] = None
    content_type: Optional[str] = None
    filename: Optional[str] = None


MISS = CacheLookup(hit=False)


@dataclass(frozen=True)
class CacheStats:
    objects: int
    total_bytes: int


@runtime_checkable
class ArtifactCache(Protocol):
    """Interface shared by every cache backend."""

    enabled: bool

    async def get(self, key: CacheKey) -> CacheLookup:
        ...

    async def put(self, key: CacheKey, artifact: ExtractedArtifact) -> None:
        ...

    async def purge(
        self,
        design_id: Optional[str] = None,
        export_kind: Optional[str] = None,
        name_contains: Optional[str] = None,
    ) -> int:
        """Delete matching entries and return how many were removed."""
        ...

    async def stats(self, design_id: Optional[str] = None) -> CacheStats:
        ...

    async def aclose(self) -> None:
        ...


def _matches(key: CacheKey, design_id, export_kind, name_contains) -> bool:
    return (
        (not design_id or key.design_id == design_id)
        and (not export_kind or key.export_kind == export_kind)
        and (not name_contains or key.name_contains == name_contains)
    )


class DisabledArtifactCache:
    enabled = False

    async def get(self, key: CacheKey) -> CacheLookup:
        return MISS

    async def put(self, key: CacheKey, artifact: ExtractedArtifact) -> None:
        return None

    async def purge(self, design_id=None, export_kind=None, name_contains=None) -> int:
        return 0

    async def stats(self, design_id=None) -> CacheStats:
        return CacheStats(objects=0, total_bytes=0)

    async def aclose(self) -> None:
        return None


class MemoryArtifactCache:
    """LRU dict cache, lost on restart. Not shared between workers.

    Holds at most `max_entries` artifacts; the least recently used entry
    is evicted first.
    """

    enabled = True

    def __init__(self, max_entries: int = 256):
        self.max_entries = max(1, max_entries)
        self._entries: OrderedDict[CacheKey, ExtractedArtifact] = OrderedDict()

    async def get(self, key: CacheKey) -> CacheLookup:
        artifact = self._entries.get(key)
        if artifact is None:
            return MISS
        self._entries.move_to_end(key)
        return CacheLookup(True, artifact.data, artifact.content_type, artifact.filename)

    async def put(self, key: CacheKey, artifact: ExtractedArtifact) -> None:
        self._entries[key] = artifact
        self._entries.move_to_end(key)
        while len(self._entries) > self.max_entries:
            self._entries.popitem(last=False)

    async def purge(self, design_id=None, export_kind=None, name_contains=None) -> int:
        doomed = [k for k in self._entries if _matches(k, design_id, export_kind, name_contains)]
        for key in doomed:
            del self._entries[key]
        return len(doomed)

    async def stats(self, design_id=None) -> CacheStats:
        sizes = [
            len(artifact.data)
            for key, artifact in self._entries.items()
            if _matches(key, design_id, None, None)
        ]
        return CacheStats(objects=len(sizes), total_bytes=sum(sizes))

    async def aclose(self) -> None:
        self._entries.clear()


def redis_key(key: CacheKey) -> str:
    digest = hashlib.sha256(
        json.dumps([key.export_kind, key.name_contains, key.content_type]).encode()
    ).hexdigest()[:32]
    return f"{_KEY_PREFIX}:{key.design_id}:{digest}"


def _scan_pattern(design_id: Optional[str]) -> str:
    if not design_id:
        return f"{_KEY_PREFIX}:*"
    escaped = _GLOB_CHARS.sub(r"\\\1", design_id)
    return f"{_KEY_PREFIX}:{escaped}:*"


def _text(value: Optional[bytes]) -> Optional[str]:
    if value is None or value == b"":
        return None
    return value.decode("utf-8")


class RedisArtifactCache:
    """Redis-backed cache. `ttl_seconds=0` keeps entries until purged."""

    enabled = True

    def __init__(self, client, ttl_seconds: int = 0):
        self.client = client
        self.ttl_seconds = ttl_seconds

    @classmethod
    def from_url(cls, url: str, ttl_seconds: int = 0) -> "RedisArtifactCache":
        import redis.asyncio as aioredis

        return cls(aioredis.Redis.from_url(url), ttl_seconds=ttl_seconds)

    async def get(self, key: CacheKey) -> CacheLookup:
        fields = await self.client.hgetall(redis_key(key))
        body = fields.get(b"body") if fields else None
        if not body:
            return MISS
        return CacheLookup(
            hit=True,
            buffer=body,
            content_type=_text(fields.get(b"content_type")),
            filename=_text(fields.get(b"filename")),
        )

    async def put(self, key: CacheKey, artifact: ExtractedArtifact) -> None:
        name = redis_key(key)
        pipe = self.client.pipeline()
        pipe.hset(
            name,
            mapping={
                "body": artifact.data,
                "content_type": artifact.content_type,
                "filename": artifact.filename,
                "export_kind": key.export_kind,
                "name_contains": key.name_contains or "",
                "size": len(artifact.data),
            },
        )
        if self.ttl_seconds > 0:
            pipe.expire(name, self.ttl_seconds)
        await pipe.execute()

    async def purge(self, design_id=None, export_kind=None, name_contains=None) -> int:
        deleted = 0
        async for name in self.client.scan_iter(match=_scan_pattern(design_id)):
            if export_kind or name_contains:
                kind, contains = await self.client.hmget(name, "export_kind", "name_contains")
                if export_kind and _text(kind) != export_kind:
                    continue
                if name_contains and _text(contains) != name_contains:
                    continue
            deleted += await self.client.delete(name)
        return deleted

    async def stats(self, design_id=None) -> CacheStats:
        objects = 0
        total_bytes = 0
        async for name in self.client.scan_iter(match=_scan_pattern(design_id)):
            size = await self.client.hget(name, "size")
            objects += 1
            total_bytes += int(size or 0)
        return CacheStats(objects=objects, total_bytes=total_bytes)

    async def aclose(self) -> None:
        await self.client.aclose()


def build_cache(settings: Settings) -> ArtifactCache:
    backend = settings.export_cache_backend.strip().lower()
    if backend == "redis":
        logger.info("Export cache: redis (ttl=%ss)", settings.export_cache_ttl_seconds)
        return RedisArtifactCache.from_url(
            settings.redis_url, ttl_seconds=settings.export_cache_ttl_seconds
        )
    if backend == "memory":
        logger.info(
            "Export cache: in-process memory (max %d entries, single worker only)",
            settings.export_cache_memory_max_entries,
        )
        return MemoryArtifactCache(max_entries=settings.export_cache_memory_max_entries)
    if backend != "disabled":
        logger.warning("Unknown EXPORT_CACHE_BACKEND %r — cache disabled", backend)
    return DisabledArtifactCache()
