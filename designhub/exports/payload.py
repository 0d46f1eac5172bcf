"""Extraction of the binary payload from a computed export result.

The result shape differs between backend versions. An export either
carries a `content` array of entries or is itself the entry, and the
bytes sit inline (`data` / `content`) as a data URI, as base64 text or as
raw bytes, or behind a URL (`href`, `url`, `downloadUrl`, `link`).

Every way of carrying bytes is one of four closed payload shapes.
`payload_shapes()` lists the shapes found on an entry in priority order
and `decode_first()` decodes them in that order, stopping at the first
one that yields bytes.
"""

from __future__ import annotations

import base64
import binascii
import re
from collections.abc import Awaitable, Callable, Iterator
from dataclasses import dataclass
from typing import Any, Optional, Union

INLINE_FIELDS = ("data", "content")
URL_FIELDS = ("href", "url", "downloadUrl", "link")

_NON_BASE64 = re.compile(r"[^A-Za-z0-9+/]")


@dataclass(frozen=True)
class InlineDataUri:
    uri: str


@dataclass(frozen=True)
class InlineBase64:
    text: str


@dataclass(frozen=True)
class InlineBinary:
    data: bytes


@dataclass(frozen=True)
class RemoteHref:
    url: str


PayloadShape = Union[InlineDataUri, InlineBase64, InlineBinary, RemoteHref]

Fetcher = Callable[[str], Awaitable[bytes]]


def pick_content(result: dict[str, Any], preferred_content_type: Optional[str]) -> Optional[dict[str, Any]]:
    """Choose the entry of `result["content"]` to use, or None without an array.

    The entry whose contentType equals the preferred type wins
    (case-insensitive); otherwise the first entry.
    """
    entries = result.get("content")
    if not isinstance(entries, list):
        return None
    entries = [e for e in entries if isinstance(e, dict)]
    if not entries:
        return None
    if preferred_content_type:
        wanted = preferred_content_type.lower()
        for entry in entries:
            if str(entry.get("contentType") or "").lower() == wanted:
                return entry
    return entries[0]


def _is_byte_list(value: Any) -> bool:
    return (
        isinstance(value, list)
        and bool(value)
        and all(isinstance(b, int) and 0 <= b <= 255 for b in value)
    )


def _inline_shape(value: Any) -> Optional[PayloadShape]:
    if isinstance(value, str) and value:
        if value.startswith("data:"):
            return InlineDataUri(value)
        return InlineBase64(value)
    if isinstance(value, (bytes, bytearray, memoryview)) and len(value):
        return InlineBinary(bytes(value))
    if _is_byte_list(value):
        return InlineBinary(bytes(value))
    return None


def payload_shapes(source: dict[str, Any]) -> Iterator[PayloadShape]:
    """Yield the payload shapes present on `source`, highest priority first.

    At most one inline shape (the first of `data` / `content` holding a
    usable value) followed by at most one remote URL.
    """
    for field in INLINE_FIELDS:
        shape = _inline_shape(source.get(field))
        if shape is not None:
            yield shape
            break
    for field in URL_FIELDS:
        url = source.get(field)
        if isinstance(url, str) and url:
            yield RemoteHref(url)
            break


def _lenient_b64decode(text: str) -> bytes:
    """Decode base64 the forgiving way: ignore stray characters, fix padding."""
    cleaned = _NON_BASE64.sub("", text.replace("-", "+").replace("_", "/"))
    if len(cleaned) % 4 == 1:
        cleaned = cleaned[:-1]
    return base64.b64decode(cleaned + "=" * (-len(cleaned) % 4))


def _raw_binary(text: str) -> bytes:
    return bytes(ord(ch) & 0xFF for ch in text)


def decode_inline(shape: PayloadShape) -> bytes:
    if isinstance(shape, InlineDataUri):
        _, _, encoded = shape.uri.partition(",")
        return _lenient_b64decode(encoded)
    if isinstance(shape, InlineBase64):
        try:
            return base64.b64decode("".join(shape.text.split()), validate=True)
        except (binascii.Error, ValueError):
            return _raw_binary(shape.text)
    if isinstance(shape, InlineBinary):
        return shape.data
    raise TypeError(f"{type(shape).__name__} is not an inline payload")


async def decode_first(shapes: Iterator[PayloadShape], fetch: Fetcher) -> Optional[bytes]:
    """Decode `shapes` in order and return the first non-empty result.

    Later shapes are never touched once bytes exist, so a remote URL is
    only fetched when no inline payload produced anything.
    """
    for shape in shapes:
        if isinstance(shape, RemoteHref):
            data = await fetch(shape.url)
        else:
            data = decode_inline(shape)
        if data:
            return data
    return None


async def extract_payload(
    result: dict[str, Any],
    preferred_content_type: Optional[str],
    fetch: Fetcher,
) -> tuple[Optional[bytes], Optional[dict[str, Any]]]:
    """Return `(payload bytes or None, picked content entry or None)`."""
    picked = pick_content(result, preferred_content_type)
    data = await decode_first(payload_shapes(picked if picked is not None else result), fetch)
    return data, picked
