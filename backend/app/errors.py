"""Domain error taxonomy raised by services and rendered by the API layer."""

from __future__ import annotations

from decimal import Decimal


class MarketplaceError(Exception):
    """Base class for every failure a caller may see."""

    status_code: int = 500
    code: str = "internal_error"
    default_message: str = "Server error."

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(MarketplaceError):
    status_code = 400
    code = "validation_error"
    default_message = "Invalid request."


class NotFoundError(MarketplaceError):
    status_code = 404
    code = "not_found"
    default_message = "Not found."


class BusinessRuleViolation(MarketplaceError):
    status_code = 400
    code = "business_rule_violation"
    default_message = "Request conflicts with the current state."


class AuthorizationError(MarketplaceError):
    status_code = 403
    code = "forbidden"
    default_message = "Not permitted."


class UnauthenticatedError(MarketplaceError):
    status_code = 401
    code = "unauthenticated"
    default_message = "Not authorized, no valid principal."


class InternalError(MarketplaceError):
    status_code = 500
    code = "internal_error"
    default_message = "Server error."


# ----------------------------------------------------------------------
# Validation


class InvalidReference(ValidationError):
    code = "invalid_reference"
    default_message = "Invalid itemId format."


class InvalidAmount(ValidationError):
    code = "invalid_amount"
    default_message = "Bid amount must be a positive number."


# ----------------------------------------------------------------------
# Lookups


class ItemNotFound(NotFoundError):
    code = "item_not_found"
    default_message = "Item not found."


# ----------------------------------------------------------------------
# Bidding


class BiddingNotAllowed(BusinessRuleViolation):
    code = "bidding_not_allowed"
    default_message = "Bidding not allowed on this item."


class AuctionNotActive(BusinessRuleViolation):
    code = "auction_not_active"
    default_message = "Auction is not active."


class AuctionClosed(BusinessRuleViolation):
    code = "auction_closed"
    default_message = "Auction is already closed."


class AuctionEnded(BusinessRuleViolation):
    code = "auction_ended"
    default_message = "Auction has ended."


class BidTooLow(BusinessRuleViolation):
    code = "bid_too_low"

    def __init__(self, min_bid: Decimal) -> None:
        self.min_bid = min_bid
        super().__init__(f"Bid must be greater than current highest ({_format_amount(min_bid)}).")


class SellerCannotBid(AuthorizationError):
    code = "seller_cannot_bid"
    default_message = "Seller cannot bid on own item."


# ----------------------------------------------------------------------
# Closure


class AlreadyClosedError(AuthorizationError):
    code = "already_closed"
    default_message = "Auction already closed"


class NotAuthorized(AuthorizationError):
    code = "not_authorized"
    default_message = "Not permitted."


class NotAnAuction(BusinessRuleViolation):
    code = "not_an_auction"
    default_message = "Item is not an auction."


# ----------------------------------------------------------------------
# Orders


class DuplicateOrder(BusinessRuleViolation):
    code = "duplicate_order"
    default_message = "Order already exists for this item/user."


class InvalidOrderType(BusinessRuleViolation):
    code = "invalid_order_type"
    default_message = "Invalid order type."


class TypeMismatch(BusinessRuleViolation):
    code = "type_mismatch"
    default_message = "Cannot buy-now an auction item."


class ItemUnavailable(BusinessRuleViolation):
    code = "item_unavailable"
    default_message = "Item not available."


class AuctionNotResolved(BusinessRuleViolation):
    code = "auction_not_resolved"
    default_message = "Auction not closed or no winner."


def _format_amount(value: Decimal) -> str:
    normalized = Decimal(value).normalize()
    # normalize() turns 100 into 1E+2
    if normalized == normalized.to_integral():
        return str(normalized.quantize(Decimal(1)))
    return format(normalized, "f")
