"""ASGI application entrypoint."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from rendezvous.api.v1.router import get_api_router
from rendezvous.core.config import get_config
from rendezvous.core.exceptions import (
    AlreadyResolvedError,
    ConflictError,
    InsufficientCreditsError,
    NotFoundError,
    OrderingViolationError,
    PermissionDeniedError,
    RendezvousException,
    StoreUnavailableError,
    ValidationError,
)
from rendezvous.schemas.common import ErrorEnvelope

logger = logging.getLogger(__name__)

ERROR_STATUS_CODES: dict[type[RendezvousException], tuple[int, str]] = {
    NotFoundError: (404, "not_found"),
    ValidationError: (422, "validation_error"),
    InsufficientCreditsError: (402, "insufficient_credits"),
    AlreadyResolvedError: (409, "already_resolved"),
    ConflictError: (409, "conflict"),
    OrderingViolationError: (409, "ordering_violation"),
    PermissionDeniedError: (403, "permission_denied"),
    StoreUnavailableError: (503, "store_unavailable"),
}


def map_domain_error(exc: RendezvousException) -> tuple[int, str]:
    for error_type in type(exc).__mro__:
        if error_type in ERROR_STATUS_CODES:
            return ERROR_STATUS_CODES[error_type]
    return 500, "internal_error"


async def handle_domain_error(request: Request, exc: RendezvousException) -> JSONResponse:
    status_code, error_code = map_domain_error(exc)
    if status_code >= 500:
        logger.error(
            "api.domain_error",
            extra={"event": "api.domain_error", "path": request.url.path, "error_code": error_code},
        )
    body = ErrorEnvelope(error_code=error_code, detail=str(exc)).model_dump()
    if isinstance(exc, InsufficientCreditsError):
        body["available"] = exc.available
    return JSONResponse(status_code=status_code, content=body)


def create_app() -> FastAPI:
    cfg = get_config()
    app = FastAPI(title=cfg.APP_NAME, version=cfg.APP_VERSION)
    app.include_router(get_api_router())
    app.add_exception_handler(RendezvousException, handle_domain_error)

    @app.get("/")
    def root() -> dict:
        return {"service": cfg.APP_NAME, "version": cfg.APP_VERSION, "api_prefix": cfg.API_PREFIX}

    return app


# ASGI app for `uvicorn rendezvous.main:app`.
app = create_app()
