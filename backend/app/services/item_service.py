"""Thin catalog facade: create, search and fetch items."""

from __future__ import annotations

from loguru import logger
from sqlalchemy.orm import Session

from app.core.config import Settings
from app.errors import ValidationError
from app.models import as_utc
from app.repositories import ItemFilters, ItemInput, ItemRepository, UserRepository
from app.schemas import Item, ItemCreate, ItemList

from .base import load_item, require_item_id, run_unit_of_work, service_boundary


class ItemService:
    def __init__(self, session: Session, *, settings: Settings | None = None) -> None:
        self._session = session
        self._settings = settings
        self._items = ItemRepository(session)
        self._users = UserRepository(session)

    def create_item(self, seller_id: str, payload: ItemCreate) -> Item:
        if payload.auction and payload.auction_end_time is None:
            raise ValidationError("Auction end time required for auction items.")

        item_input = ItemInput(
            seller_id=seller_id,
            title=payload.title,
            description=payload.description,
            category=payload.category,
            images=list(payload.images),
            price=payload.price,
            auction=payload.auction,
            auction_end_time=as_utc(payload.auction_end_time) if payload.auction else None,
        )

        def _create() -> Item:
            self._users.ensure_user(seller_id)
            record = self._items.create_item(item_input)
            logger.info(
                "Listed item {} for seller {} (auction={}, price={})",
                record.item_id,
                seller_id,
                record.auction,
                record.price,
            )
            return Item.model_validate(record)

        return run_unit_of_work(
            self._session,
            _create,
            description=f"list item for seller {seller_id}",
            settings=self._settings,
        )

    def list_items(self, filters: ItemFilters) -> ItemList:
        with service_boundary("search items"):
            records, total = self._items.list_items(filters)
            return ItemList(total=total, items=[Item.model_validate(record) for record in records])

    def get_item(self, item_id: object) -> Item:
        key = require_item_id(item_id)
        with service_boundary(f"load item {key}"):
            return Item.model_validate(load_item(self._items, key))
