from __future__ import annotations

import logging
import math
from typing import Optional

import anyio
from fastapi import APIRouter, Depends, Request
from pydantic import ValidationError

from storefront.core.deps import get_rate_cache, get_rate_client, get_rate_limiter, get_settings
from storefront.core.errors import BadRequest, NotConfigured, RateLimited, ShippingEstimateError, UpstreamUnavailable
from storefront.core.normalize import client_ip_from_request, normalize_zip
from storefront.core.settings import Settings
from storefront.metrics import record_cache_lookup, record_cache_size, record_rate_limited
from storefront.models import EstimateReq, EstimateResp
from storefront.services.easypost import EasyPostClient
from storefront.services.rate_cache import RateCache
from storefront.services.rate_limit import RateLimiter, rate_limit_or_429

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/shipping", tags=["shipping"])


def estimate_weight_oz(weight: Optional[float], qty: int) -> float:
    # Missing or zero catalog weights still get a (rough) 1 lb estimate.
    weight_lbs = (weight if weight is not None and weight > 0 else 1) * qty
    weight_oz = weight_lbs * 16
    if not math.isfinite(weight_oz):
        raise BadRequest()
    return weight_oz


async def parse_estimate_body(req: Request) -> EstimateReq:
    try:
        raw = await req.json()
    except ValueError:
        raise BadRequest()
    if not isinstance(raw, dict):
        raise BadRequest()
    try:
        return EstimateReq.model_validate(raw)
    except ValidationError:
        raise BadRequest()


@router.post("/estimate", response_model=EstimateResp, response_model_exclude_none=True)
async def shipping_estimate(
    req: Request,
    settings: Settings = Depends(get_settings),
    limiter: RateLimiter = Depends(get_rate_limiter),
    cache: RateCache = Depends(get_rate_cache),
    client: EasyPostClient = Depends(get_rate_client),
):
    if not settings.estimates_enabled:
        raise NotConfigured()

    ip = client_ip_from_request(req)
    try:
        rate_limit_or_429(limiter, f"shipping-estimate:{ip}")
    except RateLimited:
        record_rate_limited()
        raise

    body = await parse_estimate_body(req)
    zip_code = normalize_zip(body.zipCode)
    weight_oz = estimate_weight_oz(body.weight, body.qty)

    hit = cache.get(weight_oz, zip_code)
    record_cache_lookup(hit is not None)
    if hit is not None:
        logger.debug("Shipping rates cache hit sku=%s oz=%.2f zip=%s", body.sku, weight_oz, zip_code)
        return EstimateResp(rates=list(hit.rates), cached=True)

    logger.debug("Shipping rates cache miss sku=%s oz=%.2f zip=%s", body.sku, weight_oz, zip_code)
    try:
        rates = await anyio.to_thread.run_sync(client.fetch_rates, weight_oz, zip_code)
    except UpstreamUnavailable:
        raise
    except Exception as e:
        logger.exception("Shipping estimate error")
        raise ShippingEstimateError() from e

    cache.set(weight_oz, zip_code, rates)
    record_cache_size(len(cache))
    return EstimateResp(rates=rates)
