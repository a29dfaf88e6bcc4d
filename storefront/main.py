from __future__ import annotations

import asyncio
import contextlib
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from storefront.core.errors import ShippingEstimateError, shipping_error_handler, unhandled_error_handler
from storefront.core.logging_config import configure_logging
from storefront.core.settings import S, Settings
from storefront.metrics import metrics_endpoint, metrics_middleware, set_app_info
from storefront.routers.misc import router as misc_router
from storefront.routers.shipping import router as shipping_router
from storefront.services.easypost import EasyPostClient
from storefront.services.rate_cache import RateCache
from storefront.services.rate_limit import RateLimiter
from storefront.services.sweeper import run_sweeper

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings: Settings = app.state.settings
    if not settings.estimates_enabled:
        logger.warning("EASYPOST_API_KEY is not set; shipping estimates are disabled")
    task = asyncio.create_task(
        run_sweeper(settings.cache_sweep_seconds, app.state.rate_cache, app.state.rate_limiter)
    )
    try:
        yield
    finally:
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or S
    configure_logging(settings.log_level)

    app = FastAPI(title="Storefront Shipping Estimator", version="0.1.0", lifespan=lifespan)
    app.state.settings = settings
    app.state.rate_cache = RateCache(
        ttl_seconds=settings.cache_ttl_seconds,
        max_entries=settings.cache_max_entries,
    )
    app.state.rate_limiter = RateLimiter(settings.estimate_max_per_window, settings.estimate_window_seconds)
    app.state.rate_client = EasyPostClient.from_settings(settings)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    if settings.metrics_enabled:
        app.middleware("http")(metrics_middleware)
        set_app_info(app.title, app.version)
        app.get("/metrics")(metrics_endpoint)

    app.add_exception_handler(ShippingEstimateError, shipping_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    app.include_router(misc_router)
    app.include_router(shipping_router)

    return app

app = create_app()
