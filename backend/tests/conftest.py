from __future__ import annotations

import sys
from datetime import timedelta
from decimal import Decimal
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

import pytest
from fastapi.testclient import TestClient

from app import crud
from app.core.config import Settings
from app.db import _build_db_components, get_db, init_db
from app.domain import new_object_id
from app.main import app
from app.models import utcnow
from app.repositories import ItemInput


@pytest.fixture
def test_settings(tmp_path, monkeypatch) -> Settings:
    settings = Settings(
        database_url=f"sqlite:///{tmp_path/'marketplace.db'}",
        db_retry_attempts=3,
        db_retry_backoff_seconds=[0.0],
    )
    monkeypatch.setattr("app.core.config.get_settings", lambda: settings)
    monkeypatch.setattr("app.core.config.settings", settings)
    return settings


@pytest.fixture
def session_factory(test_settings):
    engine, factory = _build_db_components(test_settings.resolved_database_url)
    init_db(bind=engine)
    yield factory
    engine.dispose()


@pytest.fixture
def db_session(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client(session_factory):
    """Test client bound to the temporary database; overrides are cleared afterwards."""

    def _override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def seller_id(db_session) -> str:
    user_id = new_object_id()
    crud.ensure_user(db_session, user_id, username="Seller", email="seller@test.com")
    db_session.commit()
    return user_id


@pytest.fixture
def buyer_id(db_session) -> str:
    user_id = new_object_id()
    crud.ensure_user(db_session, user_id, username="Buyer", email="buyer@test.com")
    db_session.commit()
    return user_id


@pytest.fixture
def other_buyer_id() -> str:
    # No user row: principals may act before they have one.
    return new_object_id()


@pytest.fixture
def make_item(db_session):
    """Create an item straight through the catalog store and return its id."""

    def _make(
        seller: str,
        *,
        auction: bool = True,
        price: Decimal | int | str = 100,
        ends_in: timedelta | None = timedelta(hours=1),
        **overrides,
    ) -> str:
        payload = ItemInput(
            seller_id=seller,
            title="Auction Test Item" if auction else "Buy Now Test Item",
            description="Test item description",
            category="Test",
            price=Decimal(str(price)),
            auction=auction,
            auction_end_time=utcnow() + ends_in if auction and ends_in is not None else None,
        )
        item = crud.create_item(db_session, payload)
        if overrides:
            crud.update_item(db_session, item.item_id, **overrides)
        db_session.commit()
        return item.item_id

    return _make


@pytest.fixture
def make_bid(db_session):
    """Append a bid to the ledger directly, bypassing placement rules."""

    def _make(item_id: str, bidder: str, amount: Decimal | int | str) -> str:
        bid = crud.append_bid(
            db_session, item_id=item_id, bidder_id=bidder, amount=Decimal(str(amount))
        )
        db_session.commit()
        return bid.bid_id

    return _make
