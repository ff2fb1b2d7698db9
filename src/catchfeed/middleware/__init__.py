"""Middleware registration."""

from fastapi import FastAPI

from catchfeed.config import Settings
from catchfeed.middleware.error_handler import setup_error_handlers
from catchfeed.middleware.logging import setup_logging
from catchfeed.middleware.request_id import RequestIdMiddleware


def setup_middleware(app: FastAPI, settings: Settings) -> None:
    """Configure logging, JSON error handlers and request id propagation."""
    setup_logging(settings)
    setup_error_handlers(app)
    app.add_middleware(RequestIdMiddleware)
