"""Races between requests that touch the same item, each on its own session."""

from __future__ import annotations

import threading
from concurrent.futures import ThreadPoolExecutor
from decimal import Decimal

import pytest

from app import crud
from app.domain import new_object_id
from app.errors import AlreadyClosedError, BidTooLow, MarketplaceError
from app.services.auction_service import AuctionService
from app.services.bid_service import BidService
from app.services.locks import KeyedLock
from app.services.order_service import OrderService

WORKERS = 8


def _race(session_factory, make_service, call, count=WORKERS):
    """Start ``count`` calls together and collect each outcome or domain error."""

    barrier = threading.Barrier(count)

    def _run(index):
        session = session_factory()
        try:
            service = make_service(session)
            barrier.wait()
            return call(service, index)
        except MarketplaceError as exc:
            return exc
        finally:
            session.close()

    with ThreadPoolExecutor(max_workers=count) as pool:
        return list(pool.map(_run, range(count)))


def test_identical_concurrent_bids_accept_exactly_one(session_factory, test_settings, make_item, seller_id):
    item_id = make_item(seller_id, price=100)
    bidders = [new_object_id() for _ in range(WORKERS)]

    outcomes = _race(
        session_factory,
        lambda session: BidService(session, settings=test_settings),
        lambda service, index: service.place_bid(item_id, bidders[index], Decimal("150")),
    )

    accepted = [outcome for outcome in outcomes if not isinstance(outcome, MarketplaceError)]
    rejected = [outcome for outcome in outcomes if isinstance(outcome, MarketplaceError)]
    assert len(accepted) == 1
    assert len(rejected) == WORKERS - 1
    assert all(isinstance(outcome, BidTooLow) for outcome in rejected)


def test_concurrent_bids_keep_ledger_strictly_increasing(
    session_factory, db_session, test_settings, make_item, seller_id
):
    item_id = make_item(seller_id, price=100)
    bidders = [new_object_id() for _ in range(WORKERS)]
    amounts = [Decimal(110 + 5 * ((index * 3) % WORKERS)) for index in range(WORKERS)]

    _race(
        session_factory,
        lambda session: BidService(session, settings=test_settings),
        lambda service, index: service.place_bid(item_id, bidders[index], amounts[index]),
    )

    db_session.expire_all()
    ledger = sorted(
        crud.get_item(db_session, item_id).bids,
        key=lambda bid: (bid.created_at, bid.bid_id),
    )
    accepted = [bid.amount for bid in ledger]
    assert accepted
    assert all(later > earlier for earlier, later in zip(accepted, accepted[1:]))
    assert max(accepted) == max(amounts)


def test_concurrent_closes_resolve_once(session_factory, test_settings, make_item, make_bid, seller_id, buyer_id):
    item_id = make_item(seller_id)
    make_bid(item_id, buyer_id, 300)

    outcomes = _race(
        session_factory,
        lambda session: AuctionService(session, settings=test_settings),
        lambda service, index: service.close_auction(item_id, seller_id),
    )

    closures = [outcome for outcome in outcomes if not isinstance(outcome, MarketplaceError)]
    assert len(closures) == 1
    assert closures[0].final_price == 300
    assert all(
        isinstance(outcome, AlreadyClosedError)
        for outcome in outcomes
        if isinstance(outcome, MarketplaceError)
    )


def test_concurrent_orders_do_not_lose_reputation(session_factory, db_session, test_settings, make_item, seller_id):
    items = [make_item(seller_id, auction=False) for _ in range(WORKERS)]
    buyers = [new_object_id() for _ in range(WORKERS)]

    outcomes = _race(
        session_factory,
        lambda session: OrderService(session, settings=test_settings),
        lambda service, index: service.create_order(items[index], buyers[index], "buy-now"),
    )

    assert not any(isinstance(outcome, MarketplaceError) for outcome in outcomes)
    db_session.expire_all()
    assert crud.get_user(db_session, seller_id).rating == WORKERS


def test_concurrent_buy_now_sells_once(session_factory, db_session, test_settings, make_item, seller_id):
    item_id = make_item(seller_id, auction=False)
    buyers = [new_object_id() for _ in range(WORKERS)]

    outcomes = _race(
        session_factory,
        lambda session: OrderService(session, settings=test_settings),
        lambda service, index: service.create_order(item_id, buyers[index], "buy-now"),
    )

    orders = [outcome for outcome in outcomes if not isinstance(outcome, MarketplaceError)]
    assert len(orders) == 1
    db_session.expire_all()
    assert crud.get_user(db_session, seller_id).rating == 1


def test_keyed_lock_serializes_per_key_and_forgets_idle_keys():
    locks = KeyedLock()
    active: dict[str, int] = {"a": 0, "b": 0}
    peak: dict[str, int] = {"a": 0, "b": 0}
    guard = threading.Lock()

    def _work(key):
        with locks.hold(key):
            with guard:
                active[key] += 1
                peak[key] = max(peak[key], active[key])
            threading.Event().wait(0.005)
            with guard:
                active[key] -= 1

    with ThreadPoolExecutor(max_workers=8) as pool:
        list(pool.map(_work, ["a", "b"] * 10))

    assert peak == {"a": 1, "b": 1}
    assert len(locks) == 0


@pytest.mark.parametrize("key", ["x", ("item", "buyer")])
def test_keyed_lock_releases_on_error(key):
    locks = KeyedLock()
    with pytest.raises(RuntimeError):
        with locks.hold(key):
            raise RuntimeError("boom")
    with locks.hold(key):
        pass
    assert len(locks) == 0
