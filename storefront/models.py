from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, conint

class EstimateReq(BaseModel):
    # sku is informational; pricing depends on weight and destination only.
    model_config = ConfigDict(extra="ignore")
    sku: str = ""
    qty: conint(ge=1) = 1
    weight: Optional[float] = Field(default=None, allow_inf_nan=False)  # pounds
    zipCode: Optional[str] = None

class FormattedRate(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)
    carrier: str
    carrier_title: str = Field(alias="carrierTitle")
    method: str
    method_title: str = Field(alias="methodTitle")
    price: float
    estimated_days: str = Field(default="", alias="estimatedDays")

class EstimateResp(BaseModel):
    rates: List[FormattedRate] = Field(default_factory=list)
    cached: Optional[bool] = None
