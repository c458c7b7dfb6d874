"""Append-only bid ledger."""

from __future__ import annotations

from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.models import Bid, utcnow

# Highest amount first; equal amounts keep submission order.
_RANKING = (Bid.amount.desc(), Bid.created_at.asc(), Bid.bid_id.asc())


class BidRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def append_bid(self, *, item_id: str, bidder_id: str, amount: Decimal) -> Bid:
        record = Bid(item_id=item_id, bidder_id=bidder_id, amount=amount, created_at=utcnow())
        self._session.add(record)
        self._session.flush()
        return record

    def highest_bid(self, item_id: str) -> Bid | None:
        query = select(Bid).where(Bid.item_id == item_id).order_by(*_RANKING).limit(1)
        return self._session.execute(query).scalars().first()

    def list_bids(self, item_id: str) -> list[Bid]:
        query = select(Bid).where(Bid.item_id == item_id).order_by(*_RANKING)
        return list(self._session.execute(query).scalars().all())
