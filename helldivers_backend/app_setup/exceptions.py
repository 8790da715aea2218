"""
Gestionnaires d’exceptions.
- CheckoutError: code HTTP et corps {error, details, ...} portés par l’erreur.
- RequestValidationError: 400 {error: "Invalid request data", details: "champ: message, ..."}.
- HTTPException (rate limit, 404...): {error, detail}.
- Toute autre exception sur /api/*: 500 {error: "Internal server error", details}, loggée avec la trace.
"""
import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from helldivers_backend.errors import CheckoutError

logger = logging.getLogger(__name__)

def format_validation_errors(errors) -> str:
    parts = []
    for err in errors:
        loc = [str(p) for p in err.get("loc", ()) if p != "body"]
        parts.append(f"{'.'.join(loc) or 'body'}: {err.get('msg')}")
    return ", ".join(parts)

def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(CheckoutError)
    async def checkout_error(request: Request, exc: CheckoutError):
        if exc.status_code >= 500:
            logger.error("%s %s -> %s %s", request.method, request.url.path, exc.status_code, exc.to_payload())
        else:
            logger.info("%s %s -> %s %s", request.method, request.url.path, exc.status_code, exc.error)
        return JSONResponse(status_code=exc.status_code, content=exc.to_payload())

    @app.exception_handler(RequestValidationError)
    async def request_validation_error(request: Request, exc: RequestValidationError):
        details = format_validation_errors(exc.errors())
        logger.info("%s %s -> 400 invalid request: %s", request.method, request.url.path, details)
        return JSONResponse(status_code=400, content={"error": "Invalid request data", "details": details})

    @app.exception_handler(StarletteHTTPException)
    async def http_error(request: Request, exc: StarletteHTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": str(exc.detail), "detail": exc.detail},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def unhandled_error(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        if request.url.path.startswith("/api/"):
            return JSONResponse(status_code=500, content={"error": "Internal server error", "details": str(exc) or type(exc).__name__})
        return JSONResponse(status_code=500, content={"error": "Internal server error"})
