"""
Gestionnaires d’exceptions utilisés par la factory.
- ServiceError (taxonomie boutique.errors): JSON {detail, code} + Retry-After si rejouable.
- HTTPException: JSON FastAPI standard {detail}.
"""
import logging
from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse

from boutique.errors import ServiceError

logger = logging.getLogger(__name__)

RETRY_AFTER_SECONDS = "5"

def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(ServiceError)
    async def service_error_handler(request: Request, exc: ServiceError):
        if exc.status_code >= 500:
            logger.warning("%s %s -> %s (%s): %s", request.method, request.url.path, exc.status_code, exc.code, exc.message)
        headers = {"Retry-After": RETRY_AFTER_SECONDS} if exc.retryable else None
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.message, "code": exc.code},
            headers=headers,
        )

    @app.exception_handler(HTTPException)
    async def http_error_handler(request: Request, exc: HTTPException):
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail}, headers=exc.headers)
