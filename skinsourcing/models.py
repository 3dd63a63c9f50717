"""Typed models for the skin price aggregation pipeline."""

from __future__ import annotations

import math
from typing import Any, Dict, List, Literal, Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

Wear = Literal[
    "Factory New",
    "Minimal Wear",
    "Field-Tested",
    "Well-Worn",
    "Battle-Scarred",
]
SortStrategy = Literal["price", "discount", "market", "name"]
ProviderStatus = Literal["ok", "error", "timeout", "rate_limited"]

TIMEOUT_ERROR = "timeout"


class SearchQuery(BaseModel):
    """One user request. Frozen; passed by value through the pipeline."""

    model_config = ConfigDict(frozen=True)

    text: str = Field(..., min_length=1)
    wear: Optional[Wear] = None
    stattrak: Optional[bool] = None
    souvenir: Optional[bool] = None
    float_min: Optional[float] = Field(None, ge=0.0, le=1.0)
    float_max: Optional[float] = Field(None, ge=0.0, le=1.0)
    pattern_in: Optional[List[int]] = None
    limit_per_market: Optional[int] = Field(None, ge=1, le=50)
    currency: Optional[str] = None
    country: Optional[str] = None
    price_min: Optional[float] = Field(None, ge=0)
    price_max: Optional[float] = Field(None, ge=0)
    providers: Optional[List[str]] = None
    sort_by: SortStrategy = "price"

    @field_validator("text", mode="before")
    @classmethod
    def _strip_text(cls, value: Any) -> Any:
        if isinstance(value, str):
            return " ".join(value.split())
        return value

    @field_validator("currency", "country", mode="before")
    @classmethod
    def _upper_code(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        cleaned = str(value).strip().upper()
        return cleaned or None

    @field_validator("providers", mode="before")
    @classmethod
    def _clean_providers(cls, value: Sequence[str] | str | None) -> Optional[List[str]]:
        if value is None:
            return None
        if isinstance(value, str):
            value = value.split(",")
        cleaned = [str(item).strip() for item in value if str(item).strip()]
        return cleaned or None

    @model_validator(mode="after")
    def _check_ranges(self) -> "SearchQuery":
        if self.float_min is not None and self.float_max is not None and self.float_min > self.float_max:
            raise ValueError("float_min must not exceed float_max")
        if self.price_min is not None and self.price_max is not None and self.price_min > self.price_max:
            raise ValueError("price_min must not exceed price_max")
        return self


class MarketResult(BaseModel):
    """One normalized listing from one marketplace."""

    market: str
    name: str
    currency: str
    url: Optional[str] = None
    price: Optional[float] = None
    price_formatted: Optional[str] = None
    availability: Optional[str] = None
    wear: Optional[Wear] = None
    stattrak: Optional[bool] = None
    souvenir: Optional[bool] = None
    volume_24h: Optional[str] = None
    median_7d: Optional[float] = None
    median_30d: Optional[float] = None
    source_meta: Dict[str, Any] = Field(default_factory=dict)

    @property
    def discount(self) -> Optional[float]:
        """Percent below the 30-day median; None when it cannot be computed."""
        if self.price is None or self.median_30d is None or self.median_30d <= 0:
            return None
        value = (self.median_30d - self.price) / self.median_30d * 100
        return value if math.isfinite(value) else None


class ProviderExecution(BaseModel):
    """Per-provider outcome of one aggregation run. Reporting only."""

    provider: str
    status: ProviderStatus
    results: List[MarketResult] = Field(default_factory=list)
    result_count: int = 0
    duration_ms: int = 0
    timed_out: bool = False
    error: Optional[str] = None

    @model_validator(mode="after")
    def _check_consistency(self) -> "ProviderExecution":
        if self.timed_out != (self.status == "timeout"):
            raise ValueError("timed_out must match status='timeout'")
        if self.timed_out and self.error != TIMEOUT_ERROR:
            raise ValueError("timed out executions carry the timeout error marker")
        if self.status == "ok" and self.error is not None:
            raise ValueError("successful executions carry no error")
        return self


class AggregatedSearchResult(BaseModel):
    """Merged, sorted listings plus one execution record per active provider."""

    results: List[MarketResult] = Field(default_factory=list)
    executions: List[ProviderExecution] = Field(default_factory=list)
    all_providers_failed: bool = False
    user_message: Optional[str] = None

    def provider_summary(self) -> Dict[str, ProviderExecution]:
        return {execution.provider: execution for execution in self.executions}
