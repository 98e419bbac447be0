"""FastAPI application factory."""

import logging
import re
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from media_paywall.api.admin import router as admin_router
from media_paywall.api.checkout import router as checkout_router
from media_paywall.api.public import router as public_router
from media_paywall.api.webhooks import router as webhook_router
from media_paywall.app_logging import configure_logging
from media_paywall.containers import AppContainer
from media_paywall.domain.errors import (
    AlreadyUnlocked,
    AuthenticationRequired,
    EmptyCart,
    IntentNotFound,
    InvalidLineItem,
    InvalidPrice,
    InvalidProviderToken,
    InvalidTransition,
    MediaItemNotFound,
    PaymentFailed,
    PaymentNotFound,
    PaywallError,
    ProfileNotFound,
    StoreUnavailable,
)

_UNPROCESSABLE = 422

_STATUS_CODES: tuple[tuple[type[PaywallError], int], ...] = (
    (StoreUnavailable, status.HTTP_503_SERVICE_UNAVAILABLE),
    (InvalidPrice, _UNPROCESSABLE),
    (InvalidLineItem, _UNPROCESSABLE),
    (EmptyCart, status.HTTP_400_BAD_REQUEST),
    (AlreadyUnlocked, status.HTTP_409_CONFLICT),
    (InvalidTransition, status.HTTP_409_CONFLICT),
    (AuthenticationRequired, status.HTTP_401_UNAUTHORIZED),
    (InvalidProviderToken, status.HTTP_403_FORBIDDEN),
    (PaymentNotFound, status.HTTP_404_NOT_FOUND),
    (IntentNotFound, status.HTTP_404_NOT_FOUND),
    (ProfileNotFound, status.HTTP_404_NOT_FOUND),
    (MediaItemNotFound, status.HTTP_404_NOT_FOUND),
)


def create_app(container: AppContainer) -> FastAPI:
    """Create a FastAPI app configured with dependencies."""
    configure_logging(container.settings.log_level)
    logger = logging.getLogger(__name__)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        await app.state.container.close_resources()

    app = FastAPI(lifespan=lifespan)
    app.state.container = container

    app.include_router(public_router)
    app.include_router(checkout_router)
    app.include_router(webhook_router)
    app.include_router(admin_router)

    @app.exception_handler(PaywallError)
    async def paywall_error_handler(_request: Request, exc: PaywallError) -> JSONResponse:
        if isinstance(exc, PaymentFailed):
            return JSONResponse(
                status_code=status.HTTP_402_PAYMENT_REQUIRED,
                content={
                    "error": error_code(exc),
                    "category": str(exc.category),
                    "message": str(exc),
                },
            )
        status_code = status_for(exc)
        if status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR:
            logger.error("Request failed: %s", exc)
        elif isinstance(exc, PaymentNotFound):
            logger.warning("Payment not found: %s", exc)
        return JSONResponse(
            status_code=status_code,
            content={"error": error_code(exc), "message": str(exc)},
        )

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    return app


def status_for(exc: PaywallError) -> int:
    """Return the HTTP status for a domain error."""
    for error_type, status_code in _STATUS_CODES:
        if isinstance(exc, error_type):
            return status_code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def error_code(exc: PaywallError) -> str:
    """Return a snake_case code from the error class name."""
    return re.sub(r"(?<!^)(?=[A-Z])", "_", type(exc).__name__).lower()
