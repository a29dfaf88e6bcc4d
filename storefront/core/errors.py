from __future__ import annotations

import logging
from typing import Dict, Optional

from fastapi import Request
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)

RETRY_MESSAGE = "Unable to estimate shipping rates. Please try again."


class ShippingEstimateError(Exception):
    """Base for failures that map onto a `{"error": ...}` JSON response."""

    status_code: int = 500
    default_message: str = RETRY_MESSAGE

    def __init__(self, message: Optional[str] = None, headers: Optional[Dict[str, str]] = None) -> None:
        self.message = message or self.default_message
        self.headers = headers or {}
        super().__init__(self.message)


class BadRequest(ShippingEstimateError):
    status_code = 400
    default_message = "Invalid request body"


class RateLimited(ShippingEstimateError):
    status_code = 429
    default_message = "Too many requests. Please try again shortly."


class NotConfigured(ShippingEstimateError):
    status_code = 503
    default_message = "Shipping estimates are not configured"


class UpstreamUnavailable(ShippingEstimateError):
    """EasyPost could not be reached or answered with a non-2xx status."""

    status_code = 502


async def shipping_error_handler(request: Request, exc: ShippingEstimateError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.warning("%s %s -> %s: %s", request.method, request.url.path, exc.status_code, exc.message)
    return JSONResponse({"error": exc.message}, status_code=exc.status_code, headers=exc.headers or None)


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse({"error": RETRY_MESSAGE}, status_code=500)
