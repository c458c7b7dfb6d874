"""Bid placement and bid ranking queries."""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime
from decimal import Decimal

from loguru import logger
from sqlalchemy.orm import Session

from app.core.config import Settings
from app.errors import (
    AuctionClosed,
    AuctionEnded,
    AuctionNotActive,
    BiddingNotAllowed,
    BidTooLow,
    SellerCannotBid,
)
from app.models import Item, ItemStatus, as_utc, utcnow
from app.repositories import BidRepository, ItemRepository, UserRepository
from app.schemas import Bid, BidList, HighestBid, RankedBid

from .base import (
    coerce_amount,
    load_item,
    require_item_id,
    run_unit_of_work,
    service_boundary,
    summarize_user,
)
from .locks import KeyedLock, item_locks


class BidService:
    """Validate bids against live auction state and append them to the ledger."""

    def __init__(
        self,
        session: Session,
        *,
        clock: Callable[[], datetime] = utcnow,
        locks: KeyedLock = item_locks,
        settings: Settings | None = None,
    ) -> None:
        self._session = session
        self._clock = clock
        self._locks = locks
        self._settings = settings
        self._items = ItemRepository(session)
        self._bids = BidRepository(session)
        self._users = UserRepository(session)

    def place_bid(self, item_id: object, bidder_id: str, amount: object) -> Bid:
        key = require_item_id(item_id)
        value = coerce_amount(amount)

        # Reading the current highest bid and appending must not interleave
        # with another placement or a closure on the same item.
        with self._locks.hold(key):
            return run_unit_of_work(
                self._session,
                lambda: self._place(key, bidder_id, value),
                description=f"place bid on item {key}",
                settings=self._settings,
            )

    def list_bids_for_item(self, item_id: object) -> BidList:
        key = require_item_id(item_id)
        with service_boundary(f"list bids for item {key}"):
            load_item(self._items, key)
            bids = self._bids.list_bids(key)
            users = self._users.get_users(bid.bidder_id for bid in bids)
            ranked = [
                RankedBid(
                    bid_id=bid.bid_id,
                    amount=bid.amount,
                    bidder=summarize_user(bid.bidder_id, users),
                    created_at=bid.created_at,
                )
                for bid in bids
            ]
            return BidList(item_id=key, total_bids=len(ranked), bids=ranked)

    def get_highest_bid(self, item_id: object) -> HighestBid:
        key = require_item_id(item_id)
        with service_boundary(f"read highest bid for item {key}"):
            item = load_item(self._items, key)
            highest = self._bids.highest_bid(key)
            if highest is None:
                return HighestBid(item_id=key, highest_bid=item.price, bidder=None)
            users = self._users.get_users([highest.bidder_id])
            return HighestBid(
                item_id=key,
                highest_bid=highest.amount,
                bidder=summarize_user(highest.bidder_id, users),
            )

    # ------------------------------------------------------------------

    def _place(self, item_id: str, bidder_id: str, amount: Decimal) -> Bid:
        item = load_item(self._items, item_id, for_update=True)
        self._ensure_open_for_bidding(item)
        if item.seller_id == bidder_id:
            raise SellerCannotBid()

        highest = self._bids.highest_bid(item_id)
        min_bid = Decimal(highest.amount if highest is not None else item.price)
        if amount <= min_bid:
            raise BidTooLow(min_bid)

        record = self._bids.append_bid(item_id=item_id, bidder_id=bidder_id, amount=amount)
        logger.info(
            "Accepted bid {} of {} on item {} from {} (previous minimum {})",
            record.bid_id,
            amount,
            item_id,
            bidder_id,
            min_bid,
        )
        return Bid.model_validate(record)

    def _ensure_open_for_bidding(self, item: Item) -> None:
        if not item.auction:
            raise BiddingNotAllowed()
        if item.status != ItemStatus.ACTIVE.value:
            raise AuctionNotActive()
        if item.is_auction_closed:
            raise AuctionClosed()
        end_time = as_utc(item.auction_end_time)
        if end_time is None or as_utc(self._clock()) > end_time:
            raise AuctionEnded()
