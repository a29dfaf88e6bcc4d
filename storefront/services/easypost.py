from __future__ import annotations

import logging
import time
from typing import Any, Dict, List, Optional

import requests

from storefront.core.errors import UpstreamUnavailable
from storefront.core.settings import S, Settings
from storefront.metrics import record_upstream_call
from storefront.models import FormattedRate
from storefront.services.rate_labels import format_delivery_days, friendly_carrier, friendly_service

logger = logging.getLogger(__name__)


def _positive_price(raw: Any) -> Optional[float]:
    try:
        price = float(raw)
    except (TypeError, ValueError):
        return None
    # NaN compares False against everything, so this also drops it
    if not price > 0:
        return None
    return price


def _delivery_days(rate: Dict[str, Any]) -> Optional[int]:
    days = rate.get("delivery_days")
    if days is None:
        days = rate.get("est_delivery_days")
    try:
        return int(days) if days is not None else None
    except (TypeError, ValueError):
        return None


def parse_rates(payload: Dict[str, Any]) -> List[FormattedRate]:
    """Turn an EasyPost shipment response into display rates, cheapest first.

    Carriers quote zero or negative placeholders for unavailable services;
    those are dropped. sorted() is stable, so equal prices keep EasyPost's order.
    """
    rates: List[FormattedRate] = []
    for r in payload.get("rates") or []:
        if not isinstance(r, dict):
            continue
        price = _positive_price(r.get("rate"))
        if price is None:
            continue
        carrier = str(r.get("carrier") or "")
        service = str(r.get("service") or "")
        rates.append(
            FormattedRate(
                carrier=carrier.lower(),
                carrier_title=friendly_carrier(carrier),
                method=service,
                method_title=friendly_service(service),
                price=price,
                estimated_days=format_delivery_days(_delivery_days(r)),
            )
        )
    return sorted(rates, key=lambda rate: rate.price)


class EasyPostClient:
    """Rate quotes from EasyPost for a fixed origin and default parcel."""

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://api.easypost.com/v2",
        timeout: float = 10,
        from_address: Optional[Dict[str, Any]] = None,
        parcel: Optional[Dict[str, Any]] = None,
        country: str = "US",
    ) -> None:
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.from_address = dict(from_address or {})
        self.parcel = dict(parcel or {})
        self.country = country
        self.auth = (api_key, "")

    @classmethod
    def from_settings(cls, settings: Settings = S) -> "EasyPostClient":
        return cls(
            api_key=settings.easypost_api_key,
            base_url=settings.easypost_api_url,
            timeout=settings.easypost_timeout_seconds,
            from_address=settings.from_address(),
            parcel=settings.default_parcel(),
            country=settings.dest_country,
        )

    def shipment_payload(self, weight_oz: float, zip_code: str) -> Dict[str, Any]:
        return {
            "shipment": {
                "from_address": self.from_address,
                "to_address": {"zip": zip_code, "country": self.country},
                "parcel": {**self.parcel, "weight": weight_oz},
            }
        }

    def fetch_rates(self, weight_oz: float, zip_code: str) -> List[FormattedRate]:
        url = f"{self.base_url}/shipments"
        start = time.perf_counter()
        try:
            r = requests.post(
                url,
                auth=self.auth,
                json=self.shipment_payload(weight_oz, zip_code),
                headers={"Content-Type": "application/json"},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            record_upstream_call("error", time.perf_counter() - start)
            logger.error("EasyPost request failed: %s", e)
            raise UpstreamUnavailable() from e

        if not r.ok:
            record_upstream_call("error", time.perf_counter() - start)
            logger.error("EasyPost API error: %s %s", r.status_code, (r.text or "")[:500])
            raise UpstreamUnavailable()

        try:
            data = r.json()
        except ValueError as e:
            record_upstream_call("error", time.perf_counter() - start)
            logger.error("EasyPost returned a non-JSON body (status %s)", r.status_code)
            raise UpstreamUnavailable() from e

        if not isinstance(data, dict):
            record_upstream_call("error", time.perf_counter() - start)
            logger.error("EasyPost returned unexpected payload type: %s", type(data).__name__)
            raise UpstreamUnavailable()

        record_upstream_call("ok", time.perf_counter() - start)
        return parse_rates(data)
