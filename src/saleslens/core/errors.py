"""Domain exceptions raised by stores and services.

Route handlers never build error payloads for these by hand; the
exception handlers in ``src.saleslens.api.errors`` translate each class
to its HTTP status and the ``{"error": ...}`` body.
"""

from __future__ import annotations


class SalesLensError(Exception):
    """Base class for all application errors."""

    status_code: int = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class UpstreamConfigurationError(SalesLensError):
    """A required provider credential is not configured."""

    status_code = 500


class UpstreamServiceError(SalesLensError):
    """The model or speech provider answered with a failure."""

    status_code = 502


class UpstreamShapeError(SalesLensError):
    """The model answered, but not with the JSON shape we asked for.

    Retriable: model output is non-deterministic, so the message invites
    the caller to try again.
    """

    status_code = 502

    def __init__(self, message: str, fields: list[str] | None = None, reason: str = "schema") -> None:
        super().__init__(message)
        self.fields = list(fields or [])
        self.reason = reason


class InvalidSlugError(SalesLensError):
    status_code = 400


class WorkspaceNotFoundError(SalesLensError):
    status_code = 404

    def __init__(self, slug: str) -> None:
        super().__init__("Workspace not found")
        self.slug = slug


class WorkspaceUnreadableError(SalesLensError):
    """The workspace file exists but cannot be parsed; it is never overwritten."""

    status_code = 500

    def __init__(self, slug: str) -> None:
        super().__init__("Workspace file is unreadable")
        self.slug = slug


class ItemNotFoundError(SalesLensError):
    """A task, note, document or history entry id did not resolve."""

    status_code = 404

    def __init__(self, kind: str, item_id: str) -> None:
        super().__init__(f"{kind.capitalize()} not found")
        self.kind = kind
        self.item_id = item_id


class LimitReachedError(SalesLensError):
    status_code = 409

    def __init__(self, kind: str, limit: int) -> None:
        super().__init__(f"{kind.capitalize()} limit reached ({limit})")
        self.kind = kind
        self.limit = limit
