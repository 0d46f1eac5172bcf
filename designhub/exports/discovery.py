"""Locate the JSON input parameter and the requested export in a session.

Both lookups take the first match in the order the remote service
returned its mappings; ties are not broken any further.
"""

from __future__ import annotations

from typing import Any, Optional

from designhub.core.errors import ConfigurationError, NotFoundError
from designhub.exports.types import SessionDescriptor

# Name of the model input that receives the URL of the design JSON.
JSON_INPUT_PARAMETER = "moda-json"


def find_json_input_parameter(session: SessionDescriptor) -> str:
    for param_id, definition in session.parameters.items():
        if (definition or {}).get("name") == JSON_INPUT_PARAMETER:
            return param_id
    raise ConfigurationError(
        f"Could not find {JSON_INPUT_PARAMETER} input parameter",
        error="Missing required input parameter",
    )


def _matches(definition: dict[str, Any], export_kind: str, name_contains: Optional[str]) -> bool:
    if str(definition.get("type") or "").lower() != export_kind.lower():
        return False
    if name_contains:
        return name_contains.lower() in str(definition.get("name") or "").lower()
    return True


def select_export(
    session: SessionDescriptor,
    export_kind: str,
    name_contains: Optional[str] = None,
) -> tuple[str, dict[str, Any]]:
    """Return `(export_id, definition)` of the first export matching kind and name filter."""
    for export_id, definition in session.exports.items():
        if _matches(definition or {}, export_kind, name_contains):
            return export_id, definition
    criteria = f'type="{export_kind}"'
    if name_contains:
        criteria += f' and nameContains="{name_contains}"'
    raise NotFoundError(f"No export matched {criteria}", error="Export not found")
