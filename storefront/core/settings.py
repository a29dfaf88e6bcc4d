from __future__ import annotations

import os
from dataclasses import dataclass

@dataclass(frozen=True)
class Settings:
    # EasyPost (rate shopping); an empty key disables shipping estimates
    easypost_api_key: str = os.environ.get("EASYPOST_API_KEY", "")
    easypost_api_url: str = os.environ.get("EASYPOST_API_URL", "https://api.easypost.com/v2").rstrip("/")
    easypost_timeout_seconds: float = float(os.environ.get("EASYPOST_TIMEOUT_SECONDS", "10"))

    # Warehouse origin (Cary, IL)
    origin_company: str = os.environ.get("SHIPPING_ORIGIN_COMPANY", "Technimark")
    origin_street1: str = os.environ.get("SHIPPING_ORIGIN_STREET1", "720 Industrial Dr")
    origin_city: str = os.environ.get("SHIPPING_ORIGIN_CITY", "Cary")
    origin_state: str = os.environ.get("SHIPPING_ORIGIN_STATE", "IL")
    origin_zip: str = os.environ.get("SHIPPING_ORIGIN_ZIP", "60013")
    origin_country: str = os.environ.get("SHIPPING_ORIGIN_COUNTRY", "US")
    origin_phone: str = os.environ.get("SHIPPING_ORIGIN_PHONE", "8476394700")

    # Default parcel in inches; only weight varies per request
    parcel_length: float = float(os.environ.get("SHIPPING_PARCEL_LENGTH", "12"))
    parcel_width: float = float(os.environ.get("SHIPPING_PARCEL_WIDTH", "10"))
    parcel_height: float = float(os.environ.get("SHIPPING_PARCEL_HEIGHT", "6"))
    dest_country: str = os.environ.get("SHIPPING_DEST_COUNTRY", "US")

    # Rate cache
    cache_ttl_seconds: int = int(os.environ.get("SHIPPING_CACHE_TTL_SECONDS", str(15 * 60)))
    cache_sweep_seconds: int = int(os.environ.get("SHIPPING_CACHE_SWEEP_SECONDS", str(10 * 60)))
    cache_max_entries: int = int(os.environ.get("SHIPPING_CACHE_MAX_ENTRIES", "10000"))

    # Per-IP rate limiting
    estimate_max_per_window: int = int(os.environ.get("SHIPPING_ESTIMATE_MAX_PER_WINDOW", "20"))
    estimate_window_seconds: int = int(os.environ.get("SHIPPING_ESTIMATE_WINDOW_SECONDS", "60"))

    metrics_enabled: bool = os.environ.get("METRICS_ENABLED", "1") not in ("0", "false", "False")
    cors_allow_origins: str = os.environ.get("CORS_ALLOW_ORIGINS", "*")
    log_level: str = os.environ.get("LOG_LEVEL", "INFO").upper()

    @property
    def estimates_enabled(self) -> bool:
        return bool(self.easypost_api_key)

    def from_address(self) -> dict:
        return {
            "company": self.origin_company,
            "street1": self.origin_street1,
            "city": self.origin_city,
            "state": self.origin_state,
            "zip": self.origin_zip,
            "country": self.origin_country,
            "phone": self.origin_phone,
        }

    def default_parcel(self) -> dict:
        return {
            "length": self.parcel_length,
            "width": self.parcel_width,
            "height": self.parcel_height,
        }

    def cors_origins(self) -> list[str]:
        return [o.strip() for o in self.cors_allow_origins.split(",") if o.strip()]


S = Settings()
