"""API middleware package."""

from src.api.middleware.error_handler import APIError, BadRequestError, setup_exception_handlers
from src.api.middleware.logging import RequestLoggingMiddleware, get_client_ip, setup_logging

__all__ = [
    "APIError",
    "BadRequestError",
    "setup_exception_handlers",
    "RequestLoggingMiddleware",
    "get_client_ip",
    "setup_logging",
]
