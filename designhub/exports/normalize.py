"""Content type and filename normalization for computed exports.

Backends report OBJ meshes under several vendor types (`text/x-obj`,
`application/x-obj`, ...). Downstream viewers only understand the
registered `model/obj`, so every OBJ-looking type is rewritten to it.
"""

from __future__ import annotations

import re
from typing import Any, Optional
from urllib.parse import quote

DEFAULT_CONTENT_TYPE = "application/octet-stream"
OBJ_CONTENT_TYPE = "model/obj"

FORMAT_CONTENT_TYPES = {
    "pdf": "application/pdf",
    "zip": "application/zip",
    "obj": OBJ_CONTENT_TYPE,
}
CONTENT_TYPE_EXTENSIONS = {ct: f".{fmt}" for fmt, ct in FORMAT_CONTENT_TYPES.items()}

_VENDOR_OBJ = re.compile(r"\b(x-)?obj\b", re.IGNORECASE)
_CONTROL_CHARS = re.compile(r"[\x00-\x1f\x7f]")


def format_token(picked: Optional[dict[str, Any]], result: dict[str, Any]) -> str:
    raw = (picked or {}).get("format") or result.get("format") or ""
    return str(raw).strip().lower()


def normalize_content_type(
    fmt: str,
    picked: Optional[dict[str, Any]],
    preferred_content_type: Optional[str],
) -> str:
    content_type = FORMAT_CONTENT_TYPES.get(fmt) or (
        (picked or {}).get("contentType") or preferred_content_type or DEFAULT_CONTENT_TYPE
    )
    if _VENDOR_OBJ.search(content_type):
        return OBJ_CONTENT_TYPE
    return content_type


def file_extension(fmt: str, content_type: str) -> str:
    if fmt:
        return f".{fmt}"
    ext = CONTENT_TYPE_EXTENSIONS.get(content_type, "")
    if not ext and _VENDOR_OBJ.search(content_type):
        ext = ".obj"
    return ext


def normalize(
    *,
    picked: Optional[dict[str, Any]],
    result: dict[str, Any],
    preferred_content_type: Optional[str],
    design_id: str,
    label: str,
) -> tuple[str, str]:
    """Return `(content_type, filename)` for an export.

    `label` is the export's declared name, or the export kind when the
    export has no name.
    """
    fmt = format_token(picked, result)
    content_type = normalize_content_type(fmt, picked, preferred_content_type)
    return content_type, f"{design_id}_{label}{file_extension(fmt, content_type)}"


def content_disposition(filename: str) -> str:
    """Attachment header value for `filename`.

    The quoted `filename` is ASCII with quotes and backslashes escaped.
    Names that lose anything in that form also get an RFC 5987
    `filename*` carrying the UTF-8 name.
    """
    cleaned = _CONTROL_CHARS.sub("_", filename)
    ascii_name = cleaned.encode("ascii", "replace").decode("ascii")
    escaped = ascii_name.replace("\\", "\\\\").replace('"', '\\"')
    value = f'attachment; filename="{escaped}"'
    if escaped != filename:
        value += f"; filename*=UTF-8''{quote(cleaned, safe='')}"
    return value
