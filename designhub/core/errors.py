"""Error types raised by the store and export pipeline, and their HTTP mapping.

Every error carries a short `error` title and a human readable `message`;
the handler registered in `create_app()` turns them into a JSON body
`{"error": ..., "message": ...}` with the error's status code. Extra
keyword fields passed at raise time are merged into the body.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class DesignHubError(Exception):
    """Base class for errors that map to a JSON error response."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    error: str = "Internal server error"

    def __init__(self, message: str, *, error: str | None = None, **extra: Any) -> None:
        super().__init__(message)
        self.message = message
        if error is not None:
            self.error = error
        self.extra = extra

    def to_body(self) -> dict[str, Any]:
        return {"error": self.error, "message": self.message, **self.extra}


class ValidationError(DesignHubError):
    """Malformed request input (missing designId, bad version number)."""

    status_code = status.HTTP_400_BAD_REQUEST
    error = "Invalid request"


class NotFoundError(DesignHubError):
    status_code = status.HTTP_404_NOT_FOUND
    error = "Not found"


class ConfigurationError(DesignHubError):
    """The remote model or server configuration does not match what we expect."""

    error = "Configuration error"


class UpstreamError(DesignHubError):
    """Session creation or export computation failed on the remote backend."""

    error = "Download error"


class DownloadError(DesignHubError):
    """The secondary fetch of an export URL returned a non-success status."""

    status_code = status.HTTP_502_BAD_GATEWAY
    error = "Download failed"


class ContentError(DesignHubError):
    """The computed export held no extractable payload."""

    error = "No export content"


class StoreUnavailableError(DesignHubError):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    error = "Database unavailable"


async def handle_designhub_error(request: Request, exc: DesignHubError) -> JSONResponse:
    log = logger.warning if exc.status_code < 500 else logger.error
    log(
        "%s %s -> %d %s: %s",
        request.method, request.url.path, exc.status_code, exc.error, exc.message,
    )
    return JSONResponse(status_code=exc.status_code, content=exc.to_body())


async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        "Unhandled error on %s %s", request.method, request.url.path, exc_info=exc
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": "Internal server error", "message": str(exc) or "Unknown error"},
    )


def _describe_validation_error(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Malformed request"
    first = errors[0]
    loc = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    msg = first.get("msg", "invalid value")
    return f"{loc}: {msg}" if loc else msg


async def handle_request_validation_error(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Malformed bodies and query parameters answer 400 with the usual error body."""
    return await handle_designhub_error(request, ValidationError(_describe_validation_error(exc)))
