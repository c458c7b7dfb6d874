from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal

import pytest
from pydantic import ValidationError

from app.core.config import Settings
from app.models import MAX_MONEY
from app.schemas import AuctionClosure, BidCreate, HighestBid, Item, ItemCreate, OrderCreate


def test_item_coerces_decimal_fields():
    """Verify that Decimal fields are correctly coerced to floats."""
    now = datetime.now(timezone.utc)
    item = Item(
        item_id="a" * 24,
        seller_id="b" * 24,
        title="Test Item",
        description="Test description",
        category="test",
        images=None,
        price=Decimal("99.9000"),
        auction=True,
        status="active",
        is_auction_closed=True,
        final_price=Decimal("120.5000"),
        created_at=now,
        updated_at=now,
    )
    assert isinstance(item.price, float)
    assert item.price == 99.9
    assert isinstance(item.final_price, float)
    assert item.final_price == 120.5
    assert item.images == []


def test_bid_responses_coerce_numeric_fields():
    """Verify that numeric fields are correctly coerced to floats."""
    highest = HighestBid(item_id="a" * 24, highest_bid=Decimal("1000.50"))
    assert isinstance(highest.highest_bid, float)
    assert highest.highest_bid == 1000.50
    assert highest.bidder is None

    closure = AuctionClosure(item_id="a" * 24)
    assert closure.final_price is None
    assert closure.message == "Auction closed"


def test_requests_accept_camel_case_and_field_names():
    by_alias = BidCreate.model_validate({"itemId": "a" * 24, "amount": "10.5"})
    by_name = BidCreate.model_validate({"item_id": "a" * 24, "amount": 10.5})
    assert by_alias.item_id == by_name.item_id
    # Amounts are checked by the bid service, not coerced here.
    assert by_alias.amount == "10.5"
    assert by_name.amount == 10.5

    order = OrderCreate.model_validate({"itemId": "a" * 24, "type": "buy-now"})
    assert order.type == "buy-now"

    with pytest.raises(ValidationError):
        BidCreate.model_validate({"amount": 10})


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("0.5, 1, 2", (0.5, 1.0, 2.0)),
        ([0, 0.25], (0.0, 0.25)),
        ("", (0.05, 0.1, 0.2)),
    ],
)
def test_retry_backoff_parsing(raw, expected):
    settings = Settings(db_retry_backoff_seconds=raw)
    assert settings.db_retry_backoff_schedule == expected


@pytest.mark.parametrize("raw", ["-1", "soon", [0.1, -0.2]])
def test_retry_backoff_rejects_bad_values(raw):
    with pytest.raises(ValidationError):
        Settings(db_retry_backoff_seconds=raw)


def test_postgres_urls_use_psycopg_driver():
    settings = Settings(database_url="postgres://user:pw@db.internal:5432/market")
    assert settings.resolved_database_url.startswith("postgresql+psycopg://")
    assert "target_session_attrs=read-write" in settings.resolved_database_url


def test_item_price_is_bounded_by_money_column():
    payload = {
        "title": "Test Item",
        "description": "Test description",
        "category": "test",
        "price": "100000000000000",
    }
    with pytest.raises(ValidationError):
        ItemCreate.model_validate(payload)

    payload["price"] = str(MAX_MONEY)
    assert ItemCreate.model_validate(payload).price == MAX_MONEY
