"""
Order pricing for the Storefront Platform.

    after_discount = subtotal - discount          (may be negative)
    shipping       = 0 if free_shipping or subtotal > threshold else fee
    tax            = rate * max(0, after_discount)
    total          = max(0, after_discount) + tax + shipping

The shipping threshold is compared against the ORIGINAL subtotal while tax is
charged on the discounted amount. Arithmetic is exact; values are quantized to
cents only when they are stored.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

from apps.common.constants import CENT, ZERO, get_pricing_config


def quantize_money(amount: Decimal) -> Decimal:
    """Round an exact amount to cents for persistence."""
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class PriceBreakdown:
    subtotal: Decimal
    discount_amount: Decimal
    subtotal_after_discount: Decimal
    shipping: Decimal
    tax: Decimal
    total: Decimal

    def quantized(self) -> PriceBreakdown:
        """Cent-rounded copy for storing on an order."""
        return PriceBreakdown(
            subtotal=quantize_money(self.subtotal),
            discount_amount=quantize_money(self.discount_amount),
            subtotal_after_discount=quantize_money(self.subtotal_after_discount),
            shipping=quantize_money(self.shipping),
            tax=quantize_money(self.tax),
            total=quantize_money(self.total),
        )


class PricingCalculator:
    """Derives shipping, tax and total from a subtotal and composed discount"""

    def __init__(
        self,
        free_shipping_threshold: Decimal | None = None,
        shipping_fee: Decimal | None = None,
        tax_rate: Decimal | None = None,
    ) -> None:
        config = get_pricing_config()
        self.free_shipping_threshold = (
            free_shipping_threshold if free_shipping_threshold is not None else config["free_shipping_threshold"]
        )
        self.shipping_fee = shipping_fee if shipping_fee is not None else config["shipping_fee"]
        self.tax_rate = tax_rate if tax_rate is not None else config["tax_rate"]

    def shipping_for(self, subtotal: Decimal, free_shipping: bool) -> Decimal:
        if free_shipping or subtotal > self.free_shipping_threshold:
            return ZERO
        return self.shipping_fee

    def calculate(self, subtotal: Decimal, discount_amount: Decimal, free_shipping: bool) -> PriceBreakdown:
        subtotal_after_discount = subtotal - discount_amount
        taxable = max(ZERO, subtotal_after_discount)
        shipping = self.shipping_for(subtotal, free_shipping)
        tax = self.tax_rate * taxable
        return PriceBreakdown(
            subtotal=subtotal,
            discount_amount=discount_amount,
            subtotal_after_discount=subtotal_after_discount,
            shipping=shipping,
            tax=tax,
            total=taxable + tax + shipping,
        )
