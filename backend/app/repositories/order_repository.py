"""Order persistence."""

from __future__ import annotations

from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from app.models import Order, OrderStatus


class OrderRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def find_order(self, *, item_id: str, buyer_id: str) -> Order | None:
        query = select(Order).where(Order.item_id == item_id, Order.buyer_id == buyer_id)
        return self._session.execute(query).scalars().first()

    def create_order(
        self,
        *,
        item_id: str,
        buyer_id: str,
        seller_id: str,
        price: Decimal,
    ) -> Order:
        record = Order(
            item_id=item_id,
            buyer_id=buyer_id,
            seller_id=seller_id,
            price=price,
            status=OrderStatus.COMPLETED.value,
        )
        self._session.add(record)
        self._session.flush()
        return record

    def list_for_buyer(self, buyer_id: str) -> list[Order]:
        query = (
            select(Order)
            .options(selectinload(Order.item))
            .where(Order.buyer_id == buyer_id)
            .order_by(Order.created_at.desc(), Order.order_id)
        )
        return list(self._session.execute(query).scalars().all())

    def list_for_item(self, item_id: str) -> list[Order]:
        query = (
            select(Order)
            .options(selectinload(Order.item))
            .where(Order.item_id == item_id)
            .order_by(Order.created_at.desc(), Order.order_id)
        )
        return list(self._session.execute(query).scalars().all())
