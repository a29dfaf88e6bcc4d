from __future__ import annotations

import re
from typing import Dict, Optional

# EasyPost carrier codes -> display brand
CARRIER_NAMES: Dict[str, str] = {
    "UPSDAP": "UPS",
    "UPS": "UPS",
    "USPS": "USPS",
    "FEDEX": "FedEx",
    "FedEx": "FedEx",
}

# EasyPost service codes -> display label
SERVICE_LABELS: Dict[str, str] = {
    "Ground": "Ground",
    "GroundAdvantage": "Ground Advantage",
    "Express": "Priority Mail Express",
    "Priority": "Priority Mail",
    "First": "First-Class",
    "ParcelSelect": "Parcel Select",
    "3DaySelect": "3 Day Select",
    "2ndDayAir": "2nd Day Air",
    "2ndDayAirAM": "2nd Day Air AM",
    "NextDayAir": "Next Day Air",
    "NextDayAirSaver": "Next Day Air Saver",
    "NextDayAirEarlyAM": "Next Day Air Early AM",
    "UPSGroundsaverGreaterThan1lb": "Ground Saver",
    "FEDEX_GROUND": "Ground",
    "GROUND_HOME_DELIVERY": "Home Delivery",
    "FEDEX_EXPRESS_SAVER": "Express Saver",
    "FEDEX_2_DAY": "2-Day",
    "STANDARD_OVERNIGHT": "Standard Overnight",
    "PRIORITY_OVERNIGHT": "Priority Overnight",
}

_CAPITAL_RE = re.compile(r"([A-Z])")


def friendly_carrier(code: str) -> str:
    return CARRIER_NAMES.get(code) or code


def friendly_service(code: str) -> str:
    """Display label for a service code.

    Unknown codes are split on capital letters ("PriorityMailX" ->
    "Priority Mail X") instead of failing.
    """
    label = SERVICE_LABELS.get(code)
    if label:
        return label
    return _CAPITAL_RE.sub(r" \1", code or "").strip()


def format_delivery_days(days: Optional[int]) -> str:
    if not days:
        return ""
    if days == 1:
        return "1 business day"
    return f"{days} business days"
