"""Validation and transaction helpers shared by the marketplace services."""

from __future__ import annotations

import math
import time
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from decimal import Decimal, InvalidOperation
from typing import TypeVar

from loguru import logger
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from app.core import config
from app.core.config import Settings
from app.domain.identifiers import is_object_id, normalize_object_id
from app.errors import InternalError, InvalidAmount, InvalidReference, ItemNotFound, MarketplaceError
from app.models import MAX_MONEY, MONEY_SCALE, Item, User
from app.repositories import ItemRepository
from app.schemas import UserSummary

T = TypeVar("T")

AMOUNT_QUANTUM = Decimal(1).scaleb(-MONEY_SCALE)


def require_item_id(value: object) -> str:
    if not is_object_id(value):
        raise InvalidReference()
    return normalize_object_id(value)  # type: ignore[arg-type]


def coerce_amount(value: object) -> Decimal:
    """Return ``value`` as a Decimal if it is a finite, strictly positive number."""

    if isinstance(value, bool) or not isinstance(value, (int, float, Decimal)):
        raise InvalidAmount()
    if isinstance(value, float):
        if not math.isfinite(value):
            raise InvalidAmount()
        value = Decimal(repr(value))
    try:
        amount = Decimal(value)
    except (InvalidOperation, ValueError) as exc:
        raise InvalidAmount() from exc
    if not amount.is_finite() or amount <= 0:
        raise InvalidAmount()
    if amount > MAX_MONEY:
        raise InvalidAmount(f"Bid amount must not exceed {MAX_MONEY}.")
    # Trailing zeros do not count: 150.00000 is a whole amount.
    if amount != amount.quantize(AMOUNT_QUANTUM):
        raise InvalidAmount(f"Bid amount supports at most {MONEY_SCALE} decimal places.")
    return amount


def load_item(items: ItemRepository, item_id: str, *, for_update: bool = False) -> Item:
    item = items.get_item(item_id, for_update=for_update)
    if item is None:
        raise ItemNotFound()
    return item


@contextmanager
def service_boundary(description: str) -> Iterator[None]:
    """Let domain errors through and hide everything else behind InternalError."""

    try:
        yield
    except MarketplaceError:
        raise
    except Exception as exc:  # noqa: BLE001
        logger.exception("Unexpected error while trying to {}", description)
        raise InternalError() from exc


def run_unit_of_work(
    session: Session,
    operation: Callable[[], T],
    *,
    description: str,
    retry_on: tuple[type[Exception], ...] = (OperationalError,),
    settings: Settings | None = None,
) -> T:
    """Run ``operation`` and commit it as one transaction.

    Any failure rolls the whole transaction back. Exceptions listed in
    ``retry_on`` re-run the operation from scratch, so every check it performs
    sees fresh state, following the configured backoff schedule.
    """

    active = settings or config.get_settings()
    attempts = active.db_retry_attempts
    schedule = active.db_retry_backoff_schedule

    with service_boundary(description):
        attempt = 0
        while True:
            attempt += 1
            try:
                result = operation()
                session.commit()
                return result
            except retry_on as exc:
                session.rollback()
                if attempt >= attempts:
                    logger.error(
                        "Giving up on {} after {} attempts: {}", description, attempt, exc
                    )
                    raise
                delay = schedule[min(attempt - 1, len(schedule) - 1)]
                logger.warning(
                    "Transient database error while trying to {} (attempt {}/{}); retrying in {:.2f}s: {}",
                    description,
                    attempt,
                    attempts,
                    delay,
                    exc,
                )
                time.sleep(delay)
            except BaseException:
                session.rollback()
                raise


def summarize_user(user_id: str | None, users: dict[str, User]) -> UserSummary | None:
    if not user_id:
        return None
    record = users.get(user_id)
    if record is None:
        return UserSummary(id=user_id)
    return UserSummary(id=user_id, name=record.username, email=record.email)
