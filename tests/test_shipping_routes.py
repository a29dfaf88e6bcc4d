import asyncio
import json
import unittest
from types import SimpleNamespace
from unittest.mock import Mock

from storefront.core.errors import (
    BadRequest,
    NotConfigured,
    RateLimited,
    ShippingEstimateError,
    UpstreamUnavailable,
)
from storefront.core.settings import Settings
from storefront.models import FormattedRate
from storefront.routers import shipping
from storefront.services.rate_cache import RateCache
from storefront.services.rate_limit import RateLimiter


def run_async(coro):
    return asyncio.run(coro)


class FakeClock:
    def __init__(self, now: float = 10_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


def build_request(body=None, raw: bytes = None, ip: str = "198.51.100.7"):
    async def _json():
        data = raw if raw is not None else json.dumps(body).encode()
        return json.loads(data)

    return SimpleNamespace(headers={"x-forwarded-for": ip}, client=None, json=_json)


def make_rate(price: float, method: str) -> FormattedRate:
    return FormattedRate(
        carrier="usps",
        carrier_title="USPS",
        method=method,
        method_title=method,
        price=price,
        estimated_days="2 business days",
    )


RATES = [make_rate(8.25, "GroundAdvantage"), make_rate(11.4, "Priority")]


class ShippingRouteTestCase(unittest.TestCase):
    def setUp(self):
        self.clock = FakeClock()
        self.settings = Settings(easypost_api_key="EZTK_test")
        self.cache = RateCache(ttl_seconds=900, clock=self.clock)
        self.limiter = RateLimiter(20, 60, clock=self.clock)
        self.client = Mock()
        self.client.fetch_rates.return_value = list(RATES)

    def call(self, req, settings=None):
        return run_async(
            shipping.shipping_estimate(
                req,
                settings=settings or self.settings,
                limiter=self.limiter,
                cache=self.cache,
                client=self.client,
            )
        )


class TestEstimateWeight(unittest.TestCase):
    def test_positive_weight_times_qty(self):
        self.assertEqual(shipping.estimate_weight_oz(2, 1), 32)
        self.assertEqual(shipping.estimate_weight_oz(1.5, 3), 72)

    def test_missing_or_non_positive_weight_defaults_to_one_pound(self):
        self.assertEqual(shipping.estimate_weight_oz(None, 1), 16)
        self.assertEqual(shipping.estimate_weight_oz(0, 2), 32)
        self.assertEqual(shipping.estimate_weight_oz(-4, 3), 48)

    def test_overflowing_weight_is_rejected(self):
        with self.assertRaises(BadRequest):
            shipping.estimate_weight_oz(1e308, 2)


class TestShippingEstimateGuards(ShippingRouteTestCase):
    def test_not_configured_short_circuits(self):
        req = build_request({"sku": "A1", "zipCode": "60614"})
        with self.assertRaises(NotConfigured) as ctx:
            self.call(req, settings=Settings(easypost_api_key=""))
        self.assertEqual(ctx.exception.status_code, 503)
        self.assertEqual(ctx.exception.message, "Shipping estimates are not configured")
        self.assertEqual(len(self.limiter), 0)
        self.client.fetch_rates.assert_not_called()

    def test_twenty_first_request_is_rate_limited_regardless_of_payload(self):
        for _ in range(20):
            with self.assertRaises(BadRequest):
                self.call(build_request({"zipCode": "bad"}))
        with self.assertRaises(RateLimited) as ctx:
            self.call(build_request({"sku": "A1", "zipCode": "60614"}))
        self.assertEqual(ctx.exception.status_code, 429)
        self.client.fetch_rates.assert_not_called()

    def test_rate_limit_is_per_ip(self):
        for _ in range(20):
            self.call(build_request({"zipCode": "60614"}, ip="203.0.113.1"))
        resp = self.call(build_request({"zipCode": "60614"}, ip="203.0.113.2"))
        self.assertTrue(resp.cached)

    def test_unparsable_body(self):
        with self.assertRaises(BadRequest) as ctx:
            self.call(build_request(raw=b"{not json"))
        self.assertEqual(ctx.exception.message, "Invalid request body")

    def test_non_object_body(self):
        with self.assertRaises(BadRequest) as ctx:
            self.call(build_request(["60614"]))
        self.assertEqual(ctx.exception.message, "Invalid request body")

    def test_wrong_field_types(self):
        for body in ({"zipCode": "60614", "qty": 0}, {"zipCode": "60614", "weight": "heavy"}, {"zipCode": 60614}):
            with self.assertRaises(BadRequest) as ctx:
                self.call(build_request(body))
            self.assertEqual(ctx.exception.message, "Invalid request body")

    def test_missing_zip(self):
        with self.assertRaises(BadRequest) as ctx:
            self.call(build_request({"sku": "A1"}))
        self.assertEqual(ctx.exception.message, "zipCode is required")

    def test_invalid_zip_makes_no_upstream_call(self):
        with self.assertRaises(BadRequest) as ctx:
            self.call(build_request({"zipCode": "123"}))
        self.assertEqual(ctx.exception.message, "Please enter a valid 5-digit US ZIP code")
        self.client.fetch_rates.assert_not_called()

    def test_zip_with_surrounding_spaces_makes_no_upstream_call(self):
        with self.assertRaises(BadRequest) as ctx:
            self.call(build_request({"zipCode": " 60614 "}))
        self.assertEqual(ctx.exception.message, "Please enter a valid 5-digit US ZIP code")
        self.client.fetch_rates.assert_not_called()

    def test_overflowing_weight_makes_no_upstream_call(self):
        with self.assertRaises(BadRequest):
            self.call(build_request({"zipCode": "60614", "weight": 1e308, "qty": 2}))
        self.client.fetch_rates.assert_not_called()
        self.assertEqual(len(self.cache), 0)


class TestShippingEstimateRates(ShippingRouteTestCase):
    def test_fetches_with_weight_in_ounces(self):
        resp = self.call(build_request({"sku": "A1", "weight": 2, "qty": 1, "zipCode": "60614"}))
        self.client.fetch_rates.assert_called_once_with(32.0, "60614")
        self.assertIsNone(resp.cached)
        self.assertEqual([r.price for r in resp.rates], [8.25, 11.4])

    def test_default_weight_and_qty(self):
        self.call(build_request({"sku": "A1", "zipCode": "60614"}))
        self.client.fetch_rates.assert_called_once_with(16, "60614")

    def test_second_request_is_served_from_cache(self):
        first = self.call(build_request({"sku": "A1", "weight": 2, "zipCode": "60614"}))
        second = self.call(build_request({"sku": "B2", "weight": 1, "qty": 2, "zipCode": "60614"}))
        self.assertEqual(self.client.fetch_rates.call_count, 1)
        self.assertTrue(second.cached)
        self.assertEqual(second.rates, first.rates)

    def test_expired_entry_triggers_fresh_fetch(self):
        self.call(build_request({"weight": 2, "zipCode": "60614"}))
        self.clock.now += 900
        resp = self.call(build_request({"weight": 2, "zipCode": "60614"}))
        self.assertEqual(self.client.fetch_rates.call_count, 2)
        self.assertIsNone(resp.cached)

    def test_rounding_boundary_produces_distinct_keys(self):
        self.call(build_request({"weight": 1.01, "zipCode": "60614"}))
        self.call(build_request({"weight": 1.04, "zipCode": "60614"}))
        self.assertEqual(self.client.fetch_rates.call_count, 2)
        self.assertIsNotNone(self.cache.get(16, "60614"))
        self.assertIsNotNone(self.cache.get(17, "60614"))

    def test_upstream_failure_is_not_cached(self):
        self.client.fetch_rates.side_effect = UpstreamUnavailable()
        with self.assertRaises(UpstreamUnavailable) as ctx:
            self.call(build_request({"zipCode": "60614"}))
        self.assertEqual(ctx.exception.status_code, 502)
        self.assertEqual(ctx.exception.message, "Unable to estimate shipping rates. Please try again.")
        self.assertEqual(len(self.cache), 0)

        self.client.fetch_rates.side_effect = None
        resp = self.call(build_request({"zipCode": "60614"}))
        self.assertIsNone(resp.cached)
        self.assertEqual(self.client.fetch_rates.call_count, 2)

    def test_unexpected_error_becomes_generic_500(self):
        self.client.fetch_rates.side_effect = KeyError("rates")
        with self.assertRaises(ShippingEstimateError) as ctx:
            self.call(build_request({"zipCode": "60614"}))
        self.assertEqual(ctx.exception.status_code, 500)
        self.assertEqual(ctx.exception.message, "Unable to estimate shipping rates. Please try again.")
        self.assertEqual(len(self.cache), 0)
