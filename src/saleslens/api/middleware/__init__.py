"""API middleware package."""

from src.saleslens.api.middleware.logging import LoggingMiddleware

__all__ = ["LoggingMiddleware"]
