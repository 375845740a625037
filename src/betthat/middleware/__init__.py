"""Middleware registration for the Bet That API."""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from betthat.config import Settings
from betthat.middleware.error_handler import setup_error_handlers
from betthat.middleware.logging import setup_logging
from betthat.middleware.rate_limit import RateLimitMiddleware
from betthat.middleware.request_id import REQUEST_ID_HEADER, RequestIdMiddleware


def setup_middleware(app: FastAPI, settings: Settings) -> None:
    """Install logging, error envelopes and the middleware stack.

    Starlette runs middleware in reverse-add order: CORS wraps everything,
    then request ids, then the rate limiter closest to the routes.
    """
    setup_logging(settings)
    setup_error_handlers(app)

    if settings.rate_limit_requests > 0:
        app.add_middleware(
            RateLimitMiddleware,
            requests_per_window=settings.rate_limit_requests,
            window_seconds=settings.rate_limit_window_seconds,
        )
    app.add_middleware(RequestIdMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type", REQUEST_ID_HEADER],
        expose_headers=[REQUEST_ID_HEADER, "Retry-After", "X-RateLimit-Remaining", "X-RateLimit-Limit"],
    )
