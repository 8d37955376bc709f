"""Turn the cart into an order and submit it."""

import logging
from decimal import Decimal
from typing import Any, Optional

from .cart import Cart
from .exceptions import CheckoutError
from .grocery_client import GroceryClient
from .models import ApiResult, BoxOrderItem, DeliveryAddress, OrderPayload, ProductOrderItem
from .pricing import quantize_money

logger = logging.getLogger(__name__)

FREE_DELIVERY_THRESHOLD = Decimal("50")
DELIVERY_FEE = Decimal("5.99")
PAYMENT_METHODS = ("cash", "card")


def delivery_fee(subtotal: Decimal) -> Decimal:
    """Delivery is free for orders strictly above the threshold."""
    return Decimal("0") if subtotal > FREE_DELIVERY_THRESHOLD else DELIVERY_FEE


def _wire_id(value: str) -> Any:
    # The order service expects numeric ids
    return int(value) if value.isdigit() else value


def build_order_payload(
    cart: Cart,
    address: DeliveryAddress,
    payment_method: str = "cash",
    comment: Optional[str] = None,
) -> OrderPayload:
    """
    Build the order payload from the current cart.

    Lines with quantity 0 (left behind by decrements) are not ordered.

    Raises:
        CheckoutError: empty cart, incomplete address or unknown payment method
    """
    if not address.is_complete():
        raise CheckoutError("ADDRESS_REQUIRED")
    if payment_method not in PAYMENT_METHODS:
        raise CheckoutError("INVALID_PAYMENT_METHOD", payment_method=payment_method)

    items: list = []
    for line in cart.cart_items_with_pricing():
        if line.quantity <= 0:
            continue
        price = quantize_money(line.final_price)
        if line.type == "box":
            box = cart.get_box(line.id)
            items.append(
                BoxOrderItem(
                    box_id=_wire_id(line.id),
                    quantity=line.quantity,
                    price=price,
                    box_title=box.title,
                    box_description=box.description,
                    box_products=box.products or [],
                )
            )
        else:
            items.append(
                ProductOrderItem(product_id=_wire_id(line.id), quantity=line.quantity, price=price)
            )

    if not items:
        raise CheckoutError("EMPTY_CART")

    subtotal = cart.cart_total()
    return OrderPayload(
        items=items,
        delivery_address=address.format(),
        comment=comment or "",
        payment_method=payment_method,
        total_amount=quantize_money(subtotal + delivery_fee(subtotal)),
    )


def place_order(
    client: GroceryClient,
    cart: Cart,
    address: DeliveryAddress,
    payment_method: str = "cash",
    comment: Optional[str] = None,
) -> ApiResult:
    """
    Submit the cart as an order.

    On success the cart is cleared; on failure it is left untouched and the
    API error is returned to the caller.

    Raises:
        CheckoutError: if the cart or the checkout input cannot be submitted
    """
    payload = build_order_payload(cart, address, payment_method, comment)
    result = client.submit_order(payload)
    if result.success:
        logger.info("Order placed successfully")
        cart.clear()
    else:
        logger.error(f"Order failed: {result.error.message}")
    return result
