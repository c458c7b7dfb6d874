from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    JSON,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .db import Base
from .domain.identifiers import new_object_id

MONEY_PRECISION = 18
MONEY_SCALE = 4
# Largest value a money column holds: 99999999999999.9999
MAX_MONEY = Decimal(10) ** (MONEY_PRECISION - MONEY_SCALE) - Decimal(1).scaleb(-MONEY_SCALE)


class ItemStatus(str, Enum):
    ACTIVE = "active"
    SOLD = "sold"
    EXPIRED = "expired"


class OrderStatus(str, Enum):
    COMPLETED = "completed"


class OrderType(str, Enum):
    BUY_NOW = "buy-now"
    AUCTION = "auction"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime | None) -> datetime | None:
    """Attach UTC to naive timestamps (SQLite drops the offset on read)."""

    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class User(Base):
    __tablename__ = "users"

    user_id: Mapped[str] = mapped_column(String(24), primary_key=True)
    username: Mapped[str | None] = mapped_column(String(30), nullable=True)
    email: Mapped[str | None] = mapped_column(String, nullable=True)
    rating: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)


class Item(Base):
    __tablename__ = "items"

    item_id: Mapped[str] = mapped_column(String(24), primary_key=True, default=new_object_id)
    seller_id: Mapped[str] = mapped_column(String(24), nullable=False, index=True)
    title: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    category: Mapped[str] = mapped_column(String, nullable=False, default="")
    images: Mapped[list | None] = mapped_column(JSON, nullable=True)
    price: Mapped[Decimal] = mapped_column(Numeric(MONEY_PRECISION, MONEY_SCALE), nullable=False)
    auction: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    auction_end_time: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    status: Mapped[str] = mapped_column(String, nullable=False, default=ItemStatus.ACTIVE.value)

    is_auction_closed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    # Plain column rather than a foreign key: items and bids would otherwise
    # reference each other and SQLite cannot add the cycle with ALTER.
    winning_bid_id: Mapped[str | None] = mapped_column(String(24), nullable=True)
    winner_id: Mapped[str | None] = mapped_column(String(24), nullable=True)
    final_price: Mapped[Decimal | None] = mapped_column(Numeric(MONEY_PRECISION, MONEY_SCALE), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )

    bids: Mapped[list["Bid"]] = relationship("Bid", back_populates="item")
    orders: Mapped[list["Order"]] = relationship("Order", back_populates="item")


class Bid(Base):
    __tablename__ = "bids"

    bid_id: Mapped[str] = mapped_column(String(24), primary_key=True, default=new_object_id)
    item_id: Mapped[str] = mapped_column(String(24), ForeignKey("items.item_id"), nullable=False)
    bidder_id: Mapped[str] = mapped_column(String(24), nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(MONEY_PRECISION, MONEY_SCALE), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)

    item: Mapped[Item] = relationship("Item", back_populates="bids")

    __table_args__ = (Index("ix_bids_item_amount", "item_id", "amount"),)


class Order(Base):
    __tablename__ = "orders"

    order_id: Mapped[str] = mapped_column(String(24), primary_key=True, default=new_object_id)
    item_id: Mapped[str] = mapped_column(String(24), ForeignKey("items.item_id"), nullable=False)
    buyer_id: Mapped[str] = mapped_column(String(24), nullable=False, index=True)
    seller_id: Mapped[str] = mapped_column(String(24), nullable=False)
    price: Mapped[Decimal] = mapped_column(Numeric(MONEY_PRECISION, MONEY_SCALE), nullable=False)
    status: Mapped[str] = mapped_column(String, nullable=False, default=OrderStatus.COMPLETED.value)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)

    item: Mapped[Item] = relationship("Item", back_populates="orders")

    __table_args__ = (
        UniqueConstraint("item_id", "buyer_id", name="uq_order_item_buyer"),
    )
