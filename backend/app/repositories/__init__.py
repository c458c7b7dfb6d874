"""Repository abstractions for database interactions."""

from .bid_repository import BidRepository
from .item_repository import ItemRepository
from .order_repository import OrderRepository
from .types import ItemFilters, ItemInput
from .user_repository import UserRepository

__all__ = [
    "BidRepository",
    "ItemRepository",
    "OrderRepository",
    "UserRepository",
    "ItemFilters",
    "ItemInput",
]
