from __future__ import annotations

from fastapi import Request

from storefront.core.settings import Settings
from storefront.services.easypost import EasyPostClient
from storefront.services.rate_cache import RateCache
from storefront.services.rate_limit import RateLimiter

# Process-wide collaborators are built once by create_app() and kept on app.state.

def get_settings(request: Request) -> Settings:
    return request.app.state.settings

def get_rate_cache(request: Request) -> RateCache:
    return request.app.state.rate_cache

def get_rate_limiter(request: Request) -> RateLimiter:
    return request.app.state.rate_limiter

def get_rate_client(request: Request) -> EasyPostClient:
    return request.app.state.rate_client
