"""Order creation for buy-now purchases and won auctions."""

from __future__ import annotations

from collections.abc import Sequence
from decimal import Decimal

from loguru import logger
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm import Session

from app.core.config import Settings
from app.errors import (
    AuctionNotResolved,
    DuplicateOrder,
    InvalidOrderType,
    ItemUnavailable,
    NotAuthorized,
    TypeMismatch,
)
from app.models import Item, ItemStatus, Order as OrderRecord, OrderType
from app.repositories import ItemRepository, OrderRepository, UserRepository
from app.schemas import ItemSummary, Order, UserSummary

from .base import load_item, require_item_id, run_unit_of_work, service_boundary, summarize_user
from .locks import KeyedLock, order_locks


def _parse_order_type(value: object) -> OrderType:
    try:
        return OrderType(value)
    except ValueError as exc:
        raise InvalidOrderType() from exc


class OrderService:
    """Create orders and keep the seller reputation counter in the same transaction."""

    def __init__(
        self,
        session: Session,
        *,
        locks: KeyedLock = order_locks,
        settings: Settings | None = None,
    ) -> None:
        self._session = session
        self._locks = locks
        self._settings = settings
        self._items = ItemRepository(session)
        self._orders = OrderRepository(session)
        self._users = UserRepository(session)

    def create_order(self, item_id: object, buyer_id: str, order_type: object) -> Order:
        key = require_item_id(item_id)
        with self._locks.hold((key, buyer_id)):
            # A unique-constraint race from another process is retried; the
            # duplicate check then reports it as DuplicateOrder.
            return run_unit_of_work(
                self._session,
                lambda: self._create(key, buyer_id, order_type),
                description=f"create order for item {key}",
                retry_on=(OperationalError, IntegrityError),
                settings=self._settings,
            )

    def list_orders_for_buyer(self, buyer_id: str) -> list[Order]:
        with service_boundary(f"list orders for buyer {buyer_id}"):
            return self._present(self._orders.list_for_buyer(buyer_id))

    def list_orders_for_item(self, item_id: object) -> list[Order]:
        key = require_item_id(item_id)
        with service_boundary(f"list orders for item {key}"):
            return self._present(self._orders.list_for_item(key))

    # ------------------------------------------------------------------

    def _create(self, item_id: str, buyer_id: str, order_type: object) -> Order:
        item = load_item(self._items, item_id, for_update=True)
        if self._orders.find_order(item_id=item_id, buyer_id=buyer_id) is not None:
            raise DuplicateOrder()

        kind = _parse_order_type(order_type)
        if kind is OrderType.BUY_NOW:
            buyer, price = self._claim_buy_now(item, buyer_id)
        else:
            buyer, price = self._claim_auction(item, buyer_id)

        order = self._orders.create_order(
            item_id=item_id,
            buyer_id=buyer,
            seller_id=item.seller_id,
            price=price,
        )
        self._users.increment_rating(item.seller_id)
        logger.info(
            "Created {} order {} for item {} (buyer={}, seller={}, price={})",
            kind.value,
            order.order_id,
            item_id,
            buyer,
            item.seller_id,
            price,
        )
        return self._present([order])[0]

    def _claim_buy_now(self, item: Item, buyer_id: str) -> tuple[str, Decimal]:
        if item.auction:
            raise TypeMismatch()
        if item.status != ItemStatus.ACTIVE.value:
            raise ItemUnavailable()
        if not self._items.mark_sold(item.item_id):
            raise ItemUnavailable()
        return buyer_id, item.price

    def _claim_auction(self, item: Item, buyer_id: str) -> tuple[str, Decimal]:
        if not (item.auction and item.is_auction_closed and item.winner_id):
            raise AuctionNotResolved()
        if item.winner_id != buyer_id:
            raise NotAuthorized("Only auction winner can order.")
        return item.winner_id, item.final_price  # type: ignore[return-value]

    def _present(self, records: Sequence[OrderRecord]) -> list[Order]:
        users = self._users.get_users(
            user_id for record in records for user_id in (record.buyer_id, record.seller_id)
        )
        orders: list[Order] = []
        for record in records:
            orders.append(
                Order(
                    order_id=record.order_id,
                    item=ItemSummary.model_validate(record.item),
                    buyer=summarize_user(record.buyer_id, users) or UserSummary(id=record.buyer_id),
                    seller=summarize_user(record.seller_id, users) or UserSummary(id=record.seller_id),
                    price=record.price,
                    status=record.status,
                    created_at=record.created_at,
                )
            )
        return orders
