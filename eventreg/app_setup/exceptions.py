"""
Gestionnaires d'exceptions.
- DomainError -> JSON {"error": message, "code": code} avec le statut porté par l'erreur.
- RequestValidationError (corps pydantic invalide) -> 400 {"error", "code": "invalid_request"}.
- HTTPException -> JSON {"detail"} FastAPI standard (401 runner, 429 rate limit).
"""
import logging
from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from eventreg.errors import DomainError

logger = logging.getLogger(__name__)

def _first_error_message(exc: RequestValidationError) -> str:
    errors = exc.errors() or []
    if not errors:
        return "Requête invalide"
    err = errors[0]
    field = ".".join(str(p) for p in err.get("loc", ()) if p != "body")
    return f"{field}: {err.get('msg')}" if field else str(err.get("msg"))

def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(DomainError)
    async def domain_error_handler(request: Request, exc: DomainError):
        if exc.status_code >= 500:
            logger.warning("app_setup.exceptions %s %s -> %s %s", request.method, request.url.path, exc.code, exc.message)
        return JSONResponse(status_code=exc.status_code, content={"error": exc.message, "code": exc.code})

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(status_code=400, content={"error": _first_error_message(exc), "code": "invalid_request"})

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail}, headers=exc.headers)
