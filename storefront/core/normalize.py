from __future__ import annotations

import re
from typing import Optional

from storefront.core.errors import BadRequest

_ZIP5_RE = re.compile(r"[0-9]{5}")

def client_ip_from_request(req) -> str:
    xff = req.headers.get("x-forwarded-for")
    if xff:
        first = xff.split(",")[0].strip()
        if first:
            return first
    return req.client.host if req.client else "0.0.0.0"

def normalize_zip(s: Optional[str]) -> str:
    if not s:
        raise BadRequest("zipCode is required")
    if not _ZIP5_RE.fullmatch(s):
        raise BadRequest("Please enter a valid 5-digit US ZIP code")
    return s
