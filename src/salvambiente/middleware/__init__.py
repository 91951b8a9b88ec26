"""Middleware registration."""

from fastapi import FastAPI

from salvambiente.config import Settings
from salvambiente.middleware.cors import setup_cors
from salvambiente.middleware.error_handler import setup_error_handlers
from salvambiente.middleware.logging import setup_logging
from salvambiente.middleware.request_id import RequestIdMiddleware


def setup_middleware(app: FastAPI, settings: Settings) -> None:
    """Register logging, error handlers and middleware.

    Starlette runs middleware in reverse-add order, so CORS is added last to
    wrap every response, including error responses.
    """
    setup_logging(settings)
    setup_error_handlers(app)
    app.add_middleware(RequestIdMiddleware)
    setup_cors(app, settings)
