"""
Cart services for the Storefront Platform
Read-side snapshot consumed by checkout, plus line management.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from decimal import Decimal
from typing import TYPE_CHECKING

from django.db import transaction
from django.db.models import F

from apps.common.types import Err, Ok, Result
from apps.products.models import Product

from .models import CartItem

if TYPE_CHECKING:
    from apps.users.models import User

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CartLine:
    """A cart line joined with the product's current price and stock"""

    product_id: uuid.UUID
    product_name: str
    unit_price: Decimal
    quantity: int
    stock: int

    @property
    def line_total(self) -> Decimal:
        return self.unit_price * self.quantity

    @property
    def has_sufficient_stock(self) -> bool:
        return self.quantity <= self.stock


@dataclass(frozen=True)
class CartSnapshot:
    lines: tuple[CartLine, ...]

    @property
    def is_empty(self) -> bool:
        return not self.lines

    @property
    def subtotal(self) -> Decimal:
        return sum((line.line_total for line in self.lines), Decimal("0"))

    @property
    def item_count(self) -> int:
        return sum(line.quantity for line in self.lines)


class CartSnapshotReader:
    """Loads a user's current cart lines with live product price and stock"""

    @staticmethod
    def read(user: User) -> CartSnapshot:
        items = CartItem.objects.filter(user=user).select_related("product").order_by("created_at", "pk")
        return CartSnapshot(
            lines=tuple(
                CartLine(
                    product_id=item.product_id,
                    product_name=item.product.name,
                    unit_price=item.product.price,
                    quantity=item.quantity,
                    stock=item.product.stock,
                )
                for item in items
            )
        )


class CartService:
    """Cart line management"""

    @staticmethod
    @transaction.atomic
    def add_item(user: User, product: Product, quantity: int = 1) -> Result[CartItem, str]:
        """Add quantity of product to the cart, merging with an existing line."""
        if quantity < 1:
            return Err("Quantity must be positive")
        if not product.is_active:
            return Err("Product is not available")

        item = CartItem.objects.select_for_update().filter(user=user, product=product).first()
        new_quantity = quantity + (item.quantity if item else 0)
        if product.stock < new_quantity:
            return Err("Insufficient stock")

        if item is None:
            item = CartItem.objects.create(user=user, product=product, quantity=new_quantity)
        else:
            item.quantity = new_quantity
            item.save(update_fields=["quantity", "updated_at"])

        logger.debug(f"🛒 [Cart] {user.pk} now has {new_quantity} x {product.pk}")
        return Ok(item)

    @staticmethod
    def clear(user: User) -> int:
        """Delete every cart line for the user; returns the number removed."""
        deleted, _ = CartItem.objects.filter(user=user).delete()
        return deleted

    @staticmethod
    def remove_purchased(user: User, cart: CartSnapshot) -> int:
        """
        Take a settled snapshot's quantities out of the cart.

        Lines added or topped up after the snapshot was read keep whatever was
        not purchased. Returns the number of lines deleted.
        """
        removed = 0
        for line in cart.lines:
            items = CartItem.objects.filter(user=user, product_id=line.product_id)
            deleted, _ = items.filter(quantity__lte=line.quantity).delete()
            if deleted:
                removed += deleted
            else:
                items.update(quantity=F("quantity") - line.quantity)
        return removed
