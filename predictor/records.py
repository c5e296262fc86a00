"""
Immutable value objects passed between the pipeline stages.

Decimals are serialized as strings so that a record written to a JSONField
comes back equal to what was stored.
"""
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Optional, Tuple


def _decimal_or_none(value):
    if value is None or value == "":
        return None
    return Decimal(str(value))


@dataclass(frozen=True)
class SearchRequest:
    niche: str
    timeframe_months: int = 3
    budget: Optional[Decimal] = None
    keywords: str = ""

    def keyword_list(self):
        return [k.strip() for k in self.keywords.split(",") if k.strip()]

    def to_dict(self):
        return {
            "niche": self.niche,
            "timeframe_months": self.timeframe_months,
            "budget": str(self.budget) if self.budget is not None else None,
            "keywords": self.keywords,
        }

    @classmethod
    def from_dict(cls, data):
        return cls(
            niche=data.get("niche", ""),
            timeframe_months=int(data.get("timeframe_months", 3)),
            budget=_decimal_or_none(data.get("budget")),
            keywords=data.get("keywords") or "",
        )


@dataclass(frozen=True)
class AvailabilityResult:
    available: bool
    price: Decimal
    source: str = ""


@dataclass(frozen=True)
class DomainResult:
    domain: str
    available: bool
    price: Decimal
    potential_value: Decimal
    registrar_link: str

    def to_dict(self):
        return {
            "domain": self.domain,
            "available": self.available,
            "price": str(self.price),
            "potential_value": str(self.potential_value),
            "registrar_link": self.registrar_link,
        }

    @classmethod
    def from_dict(cls, data):
        return cls(
            domain=data["domain"],
            available=bool(data["available"]),
            price=Decimal(str(data["price"])),
            potential_value=Decimal(str(data["potential_value"])),
            registrar_link=data["registrar_link"],
        )


@dataclass(frozen=True)
class PredictionRecord:
    user_id: int
    search_params: SearchRequest
    domains: Tuple[DomainResult, ...] = field(default_factory=tuple)
    id: Optional[int] = None
    created_at: Optional[datetime] = None

    @classmethod
    def from_model(cls, prediction):
        return cls(
            id=prediction.pk,
            user_id=prediction.user_id,
            search_params=SearchRequest.from_dict(prediction.search_params),
            domains=tuple(DomainResult.from_dict(d) for d in prediction.domains),
            created_at=prediction.created_at,
        )
