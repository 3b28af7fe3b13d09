"""Middleware registration."""

from fastapi import FastAPI

from vca.config import Settings
from vca.middleware.cors import setup_cors
from vca.middleware.error_handler import setup_error_handlers
from vca.middleware.logging import setup_logging
from vca.middleware.rate_limit import RateLimitMiddleware
from vca.middleware.request_id import RequestIdMiddleware


def setup_middleware(app: FastAPI, settings: Settings) -> None:
    """Register all middleware.

    Starlette runs middleware in reverse-add order, so CORS is added last to
    wrap 429 and error responses from the inner layers.
    """
    setup_logging(settings)
    setup_error_handlers(app)
    app.add_middleware(
        RateLimitMiddleware,
        requests_per_window=settings.rate_limit_requests,
        window_seconds=settings.rate_limit_window_seconds,
    )
    app.add_middleware(RequestIdMiddleware)
    setup_cors(app, settings)
