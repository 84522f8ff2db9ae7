"""Exception handlers turning auth errors into JSON responses."""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from taskboard.services.errors import AuthError

logger = logging.getLogger(__name__)


def error_response(exc: AuthError) -> JSONResponse:
    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "code": exc.code},
        headers=headers,
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Install the handler for the AuthError hierarchy."""

    @app.exception_handler(AuthError)
    async def handle_auth_error(request: Request, exc: AuthError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error(f"{exc.code} on {request.method} {request.url.path}: {exc.message}")
        else:
            logger.debug(f"{exc.code} on {request.method} {request.url.path}")
        return error_response(exc)
