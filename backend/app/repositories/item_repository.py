"""Item catalog persistence, including the compare-and-swap state transitions."""

from __future__ import annotations

from decimal import Decimal
from typing import Any

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from app.models import Item, ItemStatus, utcnow

from .types import ItemFilters, ItemInput


class ItemRepository:
    """Encapsulate item reads and the guarded writes other services rely on."""

    def __init__(self, session: Session) -> None:
        self._session = session

    # ------------------------------------------------------------------
    # Mutations

    def create_item(self, payload: ItemInput) -> Item:
        record = Item(
            seller_id=payload.seller_id,
            title=payload.title,
            description=payload.description,
            category=payload.category,
            images=list(payload.images),
            price=payload.price,
            auction=payload.auction,
            auction_end_time=payload.auction_end_time if payload.auction else None,
            status=ItemStatus.ACTIVE.value,
        )
        self._session.add(record)
        self._session.flush()
        return record

    def update_item(self, item_id: str, **patch: Any) -> Item | None:
        item = self.get_item(item_id)
        if item is None:
            return None
        for key, value in patch.items():
            if not hasattr(Item, key):
                raise AttributeError(f"Item has no attribute {key!r}")
            setattr(item, key, value)
        self._session.flush()
        return item

    def close_auction(
        self,
        item_id: str,
        *,
        winner_id: str | None,
        final_price: Decimal | None,
        winning_bid_id: str | None,
    ) -> bool:
        """Flip ``is_auction_closed`` only if it is still false; return whether we won."""

        result = self._session.execute(
            update(Item)
            .where(Item.item_id == item_id, Item.is_auction_closed.is_(False))
            .values(
                is_auction_closed=True,
                winner_id=winner_id,
                final_price=final_price,
                winning_bid_id=winning_bid_id,
                updated_at=utcnow(),
            )
        )
        return result.rowcount == 1

    def mark_sold(self, item_id: str) -> bool:
        """Move an active item to sold; False when another buyer got there first."""

        result = self._session.execute(
            update(Item)
            .where(Item.item_id == item_id, Item.status == ItemStatus.ACTIVE.value)
            .values(status=ItemStatus.SOLD.value, updated_at=utcnow())
        )
        return result.rowcount == 1

    # ------------------------------------------------------------------
    # Queries

    def get_item(self, item_id: str, *, for_update: bool = False) -> Item | None:
        query = select(Item).where(Item.item_id == item_id).execution_options(populate_existing=True)
        if for_update:
            query = query.with_for_update()
        return self._session.execute(query).scalars().first()

    def get_items(self, item_ids: set[str]) -> dict[str, Item]:
        if not item_ids:
            return {}
        rows = self._session.execute(select(Item).where(Item.item_id.in_(item_ids))).scalars().all()
        return {row.item_id: row for row in rows}

    def list_items(self, filters: ItemFilters) -> tuple[list[Item], int]:
        conditions: list[Any] = []
        if filters.search:
            conditions.append(Item.title.ilike(f"%{filters.search}%"))
        if filters.category:
            conditions.append(Item.category == filters.category)
        if filters.auction is not None:
            conditions.append(Item.auction.is_(filters.auction))
        if filters.status:
            conditions.append(Item.status == filters.status)
        if filters.min_price is not None:
            conditions.append(Item.price >= filters.min_price)
        if filters.max_price is not None:
            conditions.append(Item.price <= filters.max_price)

        query = (
            select(Item)
            .where(*conditions)
            .order_by(Item.created_at.desc(), Item.item_id)
            .limit(filters.limit)
            .offset(filters.offset)
        )
        total_query = select(func.count(Item.item_id)).where(*conditions)

        items = self._session.execute(query).scalars().all()
        total = self._session.execute(total_query).scalar_one()
        return list(items), total
