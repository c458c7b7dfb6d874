from datetime import datetime
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .models import MAX_MONEY


def _to_float(value: Any) -> float | None:
    if value is None:
        return None
    return float(value)


# ----------------------------------------------------------------------
# Requests


class BidCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    item_id: str = Field(alias="itemId")
    # Left unparsed so strings and booleans reach the bid service's own check.
    amount: Any = Field(default=None, description="Bid amount (JSON number)")


class OrderCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    item_id: str = Field(alias="itemId")
    type: str = Field(description="Order type (buy-now|auction)")


class ItemCreate(BaseModel):
    title: str = Field(min_length=3, max_length=100)
    description: str = Field(min_length=10, max_length=2000)
    category: str = Field(min_length=1)
    images: list[str] = Field(default_factory=list)
    price: Decimal = Field(ge=0, le=MAX_MONEY)
    auction: bool = False
    auction_end_time: datetime | None = None


# ----------------------------------------------------------------------
# Responses


class UserSummary(BaseModel):
    id: str
    name: str | None = None
    email: str | None = None


class Item(BaseModel):
    item_id: str
    seller_id: str
    title: str
    description: str
    category: str
    images: list[str] = Field(default_factory=list)
    price: float
    auction: bool
    auction_end_time: datetime | None = None
    status: str
    is_auction_closed: bool
    winning_bid_id: str | None = None
    winner_id: str | None = None
    final_price: float | None = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}

    @field_validator("price", "final_price", mode="before")
    @classmethod
    def _coerce_numeric(cls, value: Any) -> float | None:
        return _to_float(value)

    @field_validator("images", mode="before")
    @classmethod
    def _default_images(cls, value: Any) -> list[str]:
        return list(value or [])


class ItemList(BaseModel):
    total: int
    items: list[Item]


class ItemSummary(BaseModel):
    item_id: str
    title: str
    price: float
    auction: bool
    status: str

    model_config = {"from_attributes": True}

    @field_validator("price", mode="before")
    @classmethod
    def _coerce_numeric(cls, value: Any) -> float | None:
        return _to_float(value)


class Bid(BaseModel):
    bid_id: str
    item_id: str
    bidder_id: str
    amount: float
    created_at: datetime

    model_config = {"from_attributes": True}

    @field_validator("amount", mode="before")
    @classmethod
    def _coerce_amount(cls, value: Any) -> float | None:
        return _to_float(value)


class BidPlaced(BaseModel):
    message: str = "Bid placed successfully."
    bid: Bid


class RankedBid(BaseModel):
    bid_id: str
    amount: float
    bidder: UserSummary | None = None
    created_at: datetime

    @field_validator("amount", mode="before")
    @classmethod
    def _coerce_amount(cls, value: Any) -> float | None:
        return _to_float(value)


class BidList(BaseModel):
    item_id: str
    total_bids: int
    bids: list[RankedBid]


class HighestBid(BaseModel):
    item_id: str
    highest_bid: float
    bidder: UserSummary | None = None

    @field_validator("highest_bid", mode="before")
    @classmethod
    def _coerce_amount(cls, value: Any) -> float | None:
        return _to_float(value)


class AuctionClosure(BaseModel):
    message: str = "Auction closed"
    item_id: str
    winner: UserSummary | None = None
    final_price: float | None = None
    winning_bid_id: str | None = None

    @field_validator("final_price", mode="before")
    @classmethod
    def _coerce_amount(cls, value: Any) -> float | None:
        return _to_float(value)


class Order(BaseModel):
    order_id: str
    item: ItemSummary
    buyer: UserSummary
    seller: UserSummary
    price: float
    status: str
    created_at: datetime

    @field_validator("price", mode="before")
    @classmethod
    def _coerce_amount(cls, value: Any) -> float | None:
        return _to_float(value)


class OrderCreated(BaseModel):
    message: str = "Order created"
    order: Order


class OrderList(BaseModel):
    orders: list[Order]


class ErrorResponse(BaseModel):
    code: str
    message: str
    errors: list[str] | None = None
