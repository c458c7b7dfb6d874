"""Seller-initiated auction closure."""

from __future__ import annotations

from loguru import logger
from sqlalchemy.orm import Session

from app.core.config import Settings
from app.errors import AlreadyClosedError, NotAnAuction, NotAuthorized
from app.repositories import BidRepository, ItemRepository, UserRepository
from app.schemas import AuctionClosure

from .base import load_item, require_item_id, run_unit_of_work, summarize_user
from .locks import KeyedLock, item_locks


class AuctionService:
    """Move an auction from open to closed exactly once and fix its winner.

    The closed-state check runs before the ownership check, so any caller
    learns that an auction is already closed. Closing is allowed before or
    after ``auction_end_time``.
    """

    def __init__(
        self,
        session: Session,
        *,
        locks: KeyedLock = item_locks,
        settings: Settings | None = None,
    ) -> None:
        self._session = session
        self._locks = locks
        self._settings = settings
        self._items = ItemRepository(session)
        self._bids = BidRepository(session)
        self._users = UserRepository(session)

    def close_auction(self, item_id: object, requester_id: str) -> AuctionClosure:
        key = require_item_id(item_id)
        with self._locks.hold(key):
            return run_unit_of_work(
                self._session,
                lambda: self._close(key, requester_id),
                description=f"close auction {key}",
                settings=self._settings,
            )

    def _close(self, item_id: str, requester_id: str) -> AuctionClosure:
        item = load_item(self._items, item_id, for_update=True)
        if item.is_auction_closed:
            raise AlreadyClosedError()
        if item.seller_id != requester_id:
            raise NotAuthorized("Only seller can close auction.")
        if not item.auction:
            raise NotAnAuction()

        highest = self._bids.highest_bid(item_id)
        winner_id = highest.bidder_id if highest is not None else None
        final_price = highest.amount if highest is not None else None
        winning_bid_id = highest.bid_id if highest is not None else None

        # Conditional write: a concurrent closer in another process loses here.
        if not self._items.close_auction(
            item_id,
            winner_id=winner_id,
            final_price=final_price,
            winning_bid_id=winning_bid_id,
        ):
            raise AlreadyClosedError()

        logger.info(
            "Closed auction {} (winner={}, final_price={}, winning_bid={})",
            item_id,
            winner_id or "none",
            final_price,
            winning_bid_id or "none",
        )
        users = self._users.get_users([winner_id])
        return AuctionClosure(
            item_id=item_id,
            winner=summarize_user(winner_id, users),
            final_price=final_price,
            winning_bid_id=winning_bid_id,
        )
