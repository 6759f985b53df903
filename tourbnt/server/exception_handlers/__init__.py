"""
Exception handlers for the TourBNT API server.

This package renders every error (raised ``ApiError``, FastAPI HTTP and
validation errors, unmatched routes and unhandled exceptions) as the
standard error envelope, and provides a setup function that registers the
handlers with the FastAPI application.
"""

from .api_handlers import api_error_handler, http_exception_handler, validation_exception_handler
from .global_handler import global_exception_handler, setup_exception_handlers

__all__ = [
    "api_error_handler",
    "global_exception_handler",
    "http_exception_handler",
    "setup_exception_handlers",
    "validation_exception_handler",
]
