"""Error taxonomy for the screening service and the FastAPI handlers that map it.

Only ``ClientInputError`` and ``SessionNotFoundError`` ever reach a caller.
The upstream errors are raised inside the model gateway and always recovered
there by the deterministic fallback.
"""

import logging
from typing import Optional

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class ScreeningError(Exception):
    status_code = 500
    public_message = "An unexpected error occurred"


class ClientInputError(ScreeningError):
    status_code = 400
    public_message = "Invalid request: responses object is required"

    def __init__(self, message: str, public_message: Optional[str] = None):
        super().__init__(message)
        if public_message is not None:
            self.public_message = public_message


class SessionNotFoundError(ScreeningError):
    status_code = 404
    public_message = "Session not found or expired"

    def __init__(self, session_id: str):
        super().__init__(f"session {session_id} not found")
        self.session_id = session_id


class UpstreamError(ScreeningError):
    """Any failure of the model provider call path."""


class UpstreamTransportError(UpstreamError):
    """Network failure, timeout, non-2xx status or malformed envelope."""


class UpstreamParseError(UpstreamError):
    """The model replied, but not with a JSON object of the expected shape."""


async def screening_error_handler(request: Request, exc: ScreeningError) -> JSONResponse:
    # messages carry ids; keep them server-side
    logger.warning("%s [%d] at %s: %s", type(exc).__name__, exc.status_code, request.url.path, exc)
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "message": exc.public_message},
    )


async def generic_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled exception at %s", request.url.path)
    content = {"success": False, "message": "Error processing screening"}
    settings = getattr(request.app.state, "settings", None)
    if settings is not None and settings.APP_ENV == "dev":
        content["error"] = str(exc)
    return JSONResponse(status_code=500, content=content)


async def request_validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    # bodies FastAPI cannot parse get the same 400 shape as ClientInputError
    logger.warning("RequestValidationError at %s errors=%s", request.url.path, exc.errors())
    return JSONResponse(
        status_code=ClientInputError.status_code,
        content={"success": False, "message": "Invalid request: malformed request body"},
    )
