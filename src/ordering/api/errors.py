"""HTTP mapping of the ordering error taxonomy.

Protean's handlers cover ``ValidationError`` (400). The handlers below add
404 for missing resources, 409 for conflicting state and 502 when a
collaborating service fails.
"""

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from protean.integrations.fastapi import register_exception_handlers

from ordering.errors import ConflictError, NotFoundError, UpstreamServiceError

logger = structlog.get_logger(__name__)


def _message(exc: Exception) -> str:
    messages = getattr(exc, "messages", None)
    if messages:
        return messages if isinstance(messages, str) else str(messages)
    return str(exc.args[0]) if exc.args else exc.__class__.__name__


async def not_found_handler(request: Request, exc: NotFoundError) -> JSONResponse:
    return JSONResponse(status_code=404, content={"error": _message(exc)})


async def conflict_handler(request: Request, exc: ConflictError) -> JSONResponse:
    logger.info("Request conflicts with current state", path=request.url.path, error=_message(exc))
    return JSONResponse(status_code=409, content={"error": _message(exc)})


async def upstream_handler(request: Request, exc: UpstreamServiceError) -> JSONResponse:
    logger.error("Upstream service failure", path=request.url.path, service=exc.service, error=str(exc))
    return JSONResponse(status_code=502, content={"error": str(exc), "service": exc.service})


def register_error_handlers(app: FastAPI) -> None:
    register_exception_handlers(app)
    app.add_exception_handler(NotFoundError, not_found_handler)
    app.add_exception_handler(ConflictError, conflict_handler)
    app.add_exception_handler(UpstreamServiceError, upstream_handler)
