"""
Checkout error hierarchy.

Every error carries a stable ``code`` that views map to HTTP statuses.
"""

from __future__ import annotations

import uuid


class CheckoutError(Exception):
    """Base class for every way a checkout can fail."""

    code = "checkout_error"

    def __init__(self, message: str = "") -> None:
        super().__init__(message or self.__class__.__doc__ or self.code)
        self.message = message or (self.__class__.__doc__ or self.code).strip()

    def to_dict(self) -> dict[str, object]:
        return {"code": self.code, "message": self.message}


class CheckoutValidationError(CheckoutError):
    """Shipping address and payment method are required."""

    code = "validation_error"

    def __init__(self, message: str = "", field: str | None = None) -> None:
        super().__init__(message)
        self.field = field

    def to_dict(self) -> dict[str, object]:
        return {**super().to_dict(), "field": self.field}


class EmptyCartError(CheckoutError):
    """Cart is empty."""

    code = "empty_cart"


class InsufficientStockError(CheckoutError):
    """Not enough stock for a cart line; the whole order is rejected."""

    code = "insufficient_stock"

    def __init__(self, product_id: uuid.UUID | str, product_name: str, requested: int, available: int) -> None:
        super().__init__(f"Insufficient stock for {product_name}: requested {requested}, available {available}")
        self.product_id = product_id
        self.product_name = product_name
        self.requested = requested
        self.available = available

    def to_dict(self) -> dict[str, object]:
        return {
            **super().to_dict(),
            "product_id": str(self.product_id),
            "product_name": self.product_name,
            "requested": self.requested,
            "available": self.available,
        }


class CouponRejectedError(CheckoutError):
    """The selected coupon cannot be applied."""

    code = "coupon_rejected"

    def __init__(self, kind: str, message: str = "") -> None:
        super().__init__(message or f"Coupon rejected: {kind}")
        self.kind = kind

    def to_dict(self) -> dict[str, object]:
        return {**super().to_dict(), "kind": self.kind}


class SettlementFailedError(CheckoutError):
    """Order could not be committed; nothing was changed."""

    code = "settlement_failed"
