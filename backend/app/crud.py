from __future__ import annotations

from decimal import Decimal

from sqlalchemy.orm import Session

from app.repositories import (
    BidRepository,
    ItemFilters,
    ItemInput,
    ItemRepository,
    OrderRepository,
    UserRepository,
)

from .models import Bid, Item, Order, User


def create_item(session: Session, payload: ItemInput) -> Item:
    return ItemRepository(session).create_item(payload)


def get_item(session: Session, item_id: str) -> Item | None:
    return ItemRepository(session).get_item(item_id)


def update_item(session: Session, item_id: str, **patch) -> Item | None:
    return ItemRepository(session).update_item(item_id, **patch)


def list_items(session: Session, filters: ItemFilters) -> tuple[list[Item], int]:
    return ItemRepository(session).list_items(filters)


def append_bid(session: Session, *, item_id: str, bidder_id: str, amount: Decimal) -> Bid:
    return BidRepository(session).append_bid(item_id=item_id, bidder_id=bidder_id, amount=amount)


def highest_bid(session: Session, item_id: str) -> Bid | None:
    return BidRepository(session).highest_bid(item_id)


def find_order(session: Session, *, item_id: str, buyer_id: str) -> Order | None:
    return OrderRepository(session).find_order(item_id=item_id, buyer_id=buyer_id)


def ensure_user(
    session: Session, user_id: str, *, username: str | None = None, email: str | None = None
) -> User:
    return UserRepository(session).ensure_user(user_id, username=username, email=email)


def get_user(session: Session, user_id: str) -> User | None:
    return UserRepository(session).get_user(user_id)
