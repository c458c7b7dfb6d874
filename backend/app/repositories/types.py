"""DTOs shared by the catalog repositories."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal


@dataclass(slots=True)
class ItemInput:
    seller_id: str
    title: str
    price: Decimal
    description: str = ""
    category: str = ""
    images: list[str] = field(default_factory=list)
    auction: bool = False
    auction_end_time: datetime | None = None


@dataclass(slots=True)
class ItemFilters:
    search: str | None = None
    category: str | None = None
    min_price: Decimal | None = None
    max_price: Decimal | None = None
    auction: bool | None = None
    status: str | None = None
    limit: int = 50
    offset: int = 0


__all__ = ["ItemFilters", "ItemInput"]
