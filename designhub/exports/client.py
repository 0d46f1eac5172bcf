"""ShapeDiver Geometry API v2 client.

Uses the application's shared httpx.AsyncClient. Only the two calls the
export pipeline needs are implemented:

1. Open a session from a ticket (returns parameter and export definitions)
2. Compute exports for a set of parameter values

Every call is attempted once. Transport errors, non-2xx answers and
bodies that are not the expected JSON object all raise
`RemoteComputationError`; callers decide how to report it.
"""

from typing import Any

import httpx

from designhub.exports.types import SessionDescriptor

API_PREFIX = "/api/v2"


class RemoteComputationError(Exception):
    """A ShapeDiver call failed or returned something unusable."""


class ShapeDiverClient:
    def __init__(self, http: httpx.AsyncClient, endpoint: str):
        self.http = http
        self.endpoint = endpoint.rstrip("/")

    async def _call(self, method: str, path: str, **kwargs: Any) -> dict[str, Any]:
        try:
            response = await self.http.request(
                method,
                f"{self.endpoint}{API_PREFIX}{path}",
                headers={"Accept": "application/json"},
                **kwargs,
            )
        except httpx.HTTPError as exc:
            raise RemoteComputationError(f"{type(exc).__name__}: {exc}") from exc

        if not response.is_success:
            raise RemoteComputationError(
                f"HTTP {response.status_code} {response.reason_phrase}: {response.text[:200]}"
            )
        try:
            body = response.json()
        except ValueError as exc:
            raise RemoteComputationError("response body is not JSON") from exc
        if not isinstance(body, dict):
            raise RemoteComputationError("response body is not a JSON object")
        return body

    async def create_session(self, ticket: str) -> SessionDescriptor:
        """POST /api/v2/ticket/{ticket}"""
        body = await self._call("POST", f"/ticket/{ticket}")
        session_id = body.get("sessionId")
        if not isinstance(session_id, str) or not session_id:
            raise RemoteComputationError("session response has no sessionId")
        return SessionDescriptor(
            session_id=session_id,
            parameters=body.get("parameters") or {},
            exports=body.get("exports") or {},
        )

    async def compute_exports(
        self,
        session_id: str,
        parameters: dict[str, Any],
        exports: list[str],
    ) -> dict[str, Any]:
        """PUT /api/v2/session/{sessionId}/export

        Returns the `exports` mapping of the response: export id → result.
        """
        body = await self._call(
            "PUT",
            f"/session/{session_id}/export",
            json={"parameters": parameters, "exports": exports},
        )
        results = body.get("exports")
        if not isinstance(results, dict):
            raise RemoteComputationError("export response has no exports mapping")
        return results
