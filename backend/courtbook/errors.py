"""Problem-style JSON error bodies for the HTTP surface."""

from http import HTTPStatus
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .core.exceptions import DomainException


def _title(status_code: int) -> str:
    try:
        return HTTPStatus(status_code).phrase
    except ValueError:
        return "Error"


def problem_body(
    status_code: int,
    instance: str,
    *,
    detail: str = "",
    code: Optional[str] = None,
    errors: Any = None,
) -> Dict[str, Any]:
    """Body shared by every error response; `code` is the machine-readable key."""
    body: Dict[str, Any] = {
        "type": "about:blank",
        "title": _title(status_code),
        "status": status_code,
        "detail": detail,
        "instance": instance,
    }
    if code:
        body["code"] = code
    if errors:
        body["errors"] = jsonable_encoder(errors)
    return body


def _from_detail(detail: Any) -> Dict[str, Any]:
    """Unpack the {message, code, details} envelope built by DomainException."""
    if isinstance(detail, dict):
        code = detail.get("code")
        return {
            "detail": str(detail.get("message") or ""),
            "code": code if isinstance(code, str) else None,
            "errors": detail.get("details"),
        }
    return {"detail": "" if detail is None else str(detail)}


def register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        body = problem_body(exc.status_code, request.url.path, **_from_detail(exc.detail))
        return JSONResponse(body, status_code=exc.status_code, headers=exc.headers)

    @app.exception_handler(DomainException)
    async def domain_exception_handler(request: Request, exc: DomainException) -> JSONResponse:
        # Reached only when a service error escapes a route untranslated
        return await http_exception_handler(request, exc.to_http_exception())

    @app.exception_handler(RequestValidationError)
    async def request_validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        body = problem_body(
            422,
            request.url.path,
            detail="Request validation failed",
            code="validation_error",
            errors=exc.errors(),
        )
        return JSONResponse(body, status_code=422)
