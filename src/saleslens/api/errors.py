"""Exception handlers rendering every failure as ``{"error", "suggestion"}``.

- SalesLensError subclasses map to their ``status_code``; shape errors add
  ``"fields"`` (dotted paths of the violated response fields).
- HTTPException keeps its status; ``detail`` becomes ``error``.
- RequestValidationError becomes 400 naming the first violated field.

``suggestion`` is a keyword heuristic over the message, a presentation
hint for the client.
"""

from __future__ import annotations

from typing import Any

import structlog
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from src.saleslens.core.errors import SalesLensError, UpstreamShapeError

logger = structlog.get_logger(__name__)

# (keywords, suggestion); first match wins
SUGGESTION_RULES: tuple[tuple[tuple[str, ...], str], ...] = (
    (("transcript", "company name"), "Make sure both fields are filled in before submitting."),
    (("email", "thread"), "Paste a complete email thread and enter a company name."),
    (("network", "fetch"), "Check your internet connection and try again."),
    (("rate limit", "429"), "You're sending requests too quickly. Wait a moment and retry."),
    (("api", "key"), "There may be a server configuration issue. Contact support if this persists."),
)


def suggest_for_error(message: str) -> str | None:
    lower = (message or "").lower()
    for keywords, suggestion in SUGGESTION_RULES:
        if any(keyword in lower for keyword in keywords):
            return suggestion
    return None


def error_body(message: str, fields: list[str] | None = None) -> dict[str, Any]:
    body: dict[str, Any] = {"error": message, "suggestion": suggest_for_error(message)}
    if fields:
        body["fields"] = fields
    return body


def _validation_message(exc: RequestValidationError) -> tuple[str, list[str]]:
    fields: list[str] = []
    messages: list[str] = []
    for error in exc.errors():
        # loc starts with "body"/"query"/"path"
        path = ".".join(str(part) for part in error.get("loc", ())[1:]) or "body"
        if path not in fields:
            fields.append(path)
            messages.append(f"{path}: {error.get('msg', 'invalid value')}")
    return "Invalid request. " + "; ".join(messages), fields


async def saleslens_error_handler(request: Request, exc: SalesLensError) -> JSONResponse:
    fields = exc.fields if isinstance(exc, UpstreamShapeError) else None
    if exc.status_code >= 500:
        logger.warning(
            "api.upstream_error",
            path=request.url.path,
            error_type=type(exc).__name__,
            error=exc.message,
        )
    return JSONResponse(status_code=exc.status_code, content=error_body(exc.message, fields))


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    message = exc.detail if isinstance(exc.detail, str) else "Request failed"
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(message),
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    message, fields = _validation_message(exc)
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=error_body(message, fields),
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(SalesLensError, saleslens_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
