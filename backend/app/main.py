from __future__ import annotations

from decimal import Decimal
from typing import Annotated

from fastapi import Depends, FastAPI, Query, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from loguru import logger

from . import schemas
from .core.config import settings
from .db import get_db, init_db
from .errors import MarketplaceError, ValidationError
from .repositories import ItemFilters
from .security import require_principal
from .services.auction_service import AuctionService
from .services.bid_service import BidService
from .services.item_service import ItemService
from .services.order_service import OrderService

app = FastAPI(title="Marketplace Auction API", version="0.1.0", debug=settings.debug)

Principal = Annotated[str, Depends(require_principal)]


@app.on_event("startup")
def on_startup() -> None:
    """Initialize database connections when the API boots."""

    init_db()


@app.exception_handler(MarketplaceError)
async def _marketplace_error_handler(request: Request, exc: MarketplaceError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("{} {} failed: {}", request.method, request.url.path, exc.code)
    return JSONResponse(
        status_code=exc.status_code,
        content={"code": exc.code, "message": exc.message},
    )


@app.exception_handler(RequestValidationError)
async def _request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Report malformed payloads as 400 with one message per offending field."""

    messages: list[str] = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
        messages.append(f"{location}: {error.get('msg')}" if location else str(error.get("msg")))
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"code": ValidationError.code, "message": ValidationError.default_message, "errors": messages},
    )


@app.get("/healthz", tags=["system"])
def healthcheck() -> dict[str, str]:
    """Basic readiness probe consumed by infrastructure monitors."""

    return {"status": "ok"}


def _item_service(db=Depends(get_db)) -> ItemService:
    return ItemService(db)


def _bid_service(db=Depends(get_db)) -> BidService:
    return BidService(db)


def _auction_service(db=Depends(get_db)) -> AuctionService:
    return AuctionService(db)


def _order_service(db=Depends(get_db)) -> OrderService:
    return OrderService(db)


def _item_filters(
    *,
    search: Annotated[str | None, Query(description="Case-insensitive title match")] = None,
    category: Annotated[str | None, Query(description="Category filter")] = None,
    min_price: Annotated[Decimal | None, Query(ge=0, description="Minimum price")] = None,
    max_price: Annotated[Decimal | None, Query(ge=0, description="Maximum price")] = None,
    auction: Annotated[bool | None, Query(description="Only auction (true) or buy-now (false) items")] = None,
    status: Annotated[
        str | None,
        Query(description="Item status filter", pattern="^(active|sold|expired)$"),
    ] = None,
    limit: Annotated[int, Query(ge=1, le=200)] = 50,
    offset: Annotated[int, Query(ge=0)] = 0,
) -> ItemFilters:
    """Normalize catalog search parameters."""

    return ItemFilters(
        search=search,
        category=category,
        min_price=min_price,
        max_price=max_price,
        auction=auction,
        status=status,
        limit=limit,
        offset=offset,
    )


# ----------------------------------------------------------------------
# Items


@app.post("/items", response_model=schemas.Item, status_code=201, tags=["items"])
def create_item(
    payload: schemas.ItemCreate,
    principal: Principal,
    service: ItemService = Depends(_item_service),
):
    """List a new item owned by the caller."""

    return service.create_item(principal, payload)


@app.get("/items", response_model=schemas.ItemList, tags=["items"])
def list_items(
    *,
    filters: ItemFilters = Depends(_item_filters),
    service: ItemService = Depends(_item_service),
):
    return service.list_items(filters)


@app.get("/items/{item_id}", response_model=schemas.Item, tags=["items"])
def get_item(item_id: str, service: ItemService = Depends(_item_service)):
    return service.get_item(item_id)


@app.post("/items/{item_id}/close-auction", response_model=schemas.AuctionClosure, tags=["auctions"])
def close_auction(
    item_id: str,
    principal: Principal,
    service: AuctionService = Depends(_auction_service),
):
    """Close an auction and fix its winner; only the seller may do this, once."""

    return service.close_auction(item_id, principal)


# ----------------------------------------------------------------------
# Bids


@app.post("/bids", response_model=schemas.BidPlaced, status_code=201, tags=["bids"])
def place_bid(
    payload: schemas.BidCreate,
    principal: Principal,
    service: BidService = Depends(_bid_service),
):
    bid = service.place_bid(payload.item_id, principal, payload.amount)
    return schemas.BidPlaced(bid=bid)


@app.get("/bids/item/{item_id}", response_model=schemas.BidList, tags=["bids"])
def list_bids(item_id: str, service: BidService = Depends(_bid_service)):
    """Return every bid on an item, highest first."""

    return service.list_bids_for_item(item_id)


@app.get("/bids/highest/{item_id}", response_model=schemas.HighestBid, tags=["bids"])
def highest_bid(item_id: str, service: BidService = Depends(_bid_service)):
    """Return the leading bid, or the starting price when nobody has bid."""

    return service.get_highest_bid(item_id)


# ----------------------------------------------------------------------
# Orders


@app.post("/orders", response_model=schemas.OrderCreated, status_code=201, tags=["orders"])
def create_order(
    payload: schemas.OrderCreate,
    principal: Principal,
    service: OrderService = Depends(_order_service),
):
    order = service.create_order(payload.item_id, principal, payload.type)
    return schemas.OrderCreated(order=order)


@app.get("/orders/user", response_model=schemas.OrderList, tags=["orders"])
def list_user_orders(principal: Principal, service: OrderService = Depends(_order_service)):
    return schemas.OrderList(orders=service.list_orders_for_buyer(principal))


@app.get("/orders/item/{item_id}", response_model=schemas.OrderList, tags=["orders"])
def list_item_orders(
    item_id: str,
    principal: Principal,
    service: OrderService = Depends(_order_service),
):
    return schemas.OrderList(orders=service.list_orders_for_item(item_id))
