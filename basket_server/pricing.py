"""
Promotional pricing.

Pure functions pricing a product or box line under the store's promotion
policies:

    discount  - percentage off the list price
    2+1       - for every group of quantity_required + quantity_free units,
                only quantity_required are billed
    box       - fixed bundle price, independent of its products

All amounts are Decimal and stay unrounded; ``quantize_money`` is applied
only when a value leaves the process (display or order payload).
"""

from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

from .models import Box, Product, PromotionRef

DEFAULT_QUANTITY_REQUIRED = 2
DEFAULT_QUANTITY_FREE = 1

CENTS = Decimal("0.01")
ZERO = Decimal("0")
HUNDRED = Decimal("100")


def _promotion_type(product: Product) -> Optional[str]:
    return product.promotion.type if product.promotion else None


def _tier(promotion: PromotionRef) -> tuple[int, int]:
    return (
        promotion.quantity_required or DEFAULT_QUANTITY_REQUIRED,
        promotion.quantity_free or DEFAULT_QUANTITY_FREE,
    )


def paid_items(
    quantity: int,
    quantity_required: int = DEFAULT_QUANTITY_REQUIRED,
    quantity_free: int = DEFAULT_QUANTITY_FREE,
) -> int:
    """
    Number of units billed under a buy-N-get-M-free promotion.

    Example: 2+1 with quantity 5 is one full group (2 paid, 1 free) plus a
    remainder of 2, both paid, so 4 units are billed.
    """
    group_size = quantity_required + quantity_free
    full_sets, remainder = divmod(quantity, group_size)
    return full_sets * quantity_required + min(remainder, quantity_required)


def unit_price(product: Product) -> Decimal:
    """Per-unit price; 2+1 only shows up at line level so it keeps the list price."""
    if _promotion_type(product) == "discount":
        # Store percents outside 0..100 are clamped
        discount_value = min(max(product.promotion.discount_value or ZERO, ZERO), HUNDRED)
        return product.price * (1 - discount_value / 100)
    return product.price


def effective_price_per_item(product: Product, quantity: int) -> Decimal:
    """Average billed price of one unit at the given quantity."""
    if _promotion_type(product) == "2+1":
        if quantity <= 0:
            return ZERO
        billed = paid_items(quantity, *_tier(product.promotion))
        return billed * product.price / quantity
    return unit_price(product)


def line_total(product: Product, quantity: int) -> Decimal:
    if _promotion_type(product) == "2+1":
        return paid_items(quantity, *_tier(product.promotion)) * product.price
    return quantity * unit_price(product)


def box_line_total(box: Box, quantity: int) -> Decimal:
    return quantity * box.price


def savings(product: Product, quantity: int) -> Decimal:
    """Amount saved on the line compared to list price."""
    promotion_type = _promotion_type(product)
    if promotion_type == "discount":
        return (product.price - unit_price(product)) * quantity
    if promotion_type == "2+1":
        return product.price * quantity - line_total(product, quantity)
    return ZERO


def quantize_money(value: Decimal) -> Decimal:
    """Round to cents for display and order payloads."""
    return Decimal(value).quantize(CENTS, rounding=ROUND_HALF_UP)
