"""In-memory shopping cart with stock-aware mutations and promotional totals."""

import logging
from decimal import Decimal
from typing import Any, Optional

from . import pricing
from .catalog import CatalogSnapshot
from .models import Box, CartItemPricing, Product, id_key

logger = logging.getLogger(__name__)


class Cart:
    """
    Products and boxes selected by one customer session.

    Mutators never raise: a stock limit is reported by returning ``False``
    and leaving the cart untouched. Ids are normalized to ``str`` so numeric
    and string identifiers address the same line.

    Attributes:
        catalog: Snapshot used for stock validation and lookups
        items: product id -> quantity
        boxes: box id -> quantity
        promotional_products: product id -> richest known promotion-bearing snapshot
    """

    def __init__(self, catalog: Optional[CatalogSnapshot] = None) -> None:
        self.catalog = catalog if catalog is not None else CatalogSnapshot()
        self.items: dict[str, int] = {}
        self.boxes: dict[str, int] = {}
        self.promotional_products: dict[str, Product] = {}

    # ======================================================================
    # PRODUCTS
    # ======================================================================

    def add_to_cart(self, product_id: Any) -> bool:
        key = id_key(product_id)
        current = self.items.get(key, 0)
        product = self.catalog.get_product(key)
        if product and product.stock_quantity is not None and current >= product.stock_quantity:
            logger.info(f"Cannot add product {key}: stock limit {product.stock_quantity} reached")
            return False
        self.items[key] = current + 1
        logger.debug(f"Added product {key}, quantity now {current + 1}")
        return True

    def remove_from_cart(self, product_id: Any) -> None:
        """Decrement by one, flooring at zero. The line stays in the cart at 0."""
        key = id_key(product_id)
        self.items[key] = max(self.items.get(key, 0) - 1, 0)
        logger.debug(f"Removed one of product {key}, quantity now {self.items[key]}")

    def set_quantity(self, product_id: Any, quantity: int) -> Optional[bool]:
        """
        Set a product line to an exact quantity.

        Returns:
            None when quantity <= 0 (the line is deleted),
            False when quantity exceeds stock, True otherwise
        """
        key = id_key(product_id)
        if quantity <= 0:
            self.items.pop(key, None)
            return None
        product = self.catalog.get_product(key)
        if product and product.stock_quantity is not None and quantity > product.stock_quantity:
            logger.info(f"Cannot set product {key} to {quantity}: exceeds stock {product.stock_quantity}")
            return False
        self.items[key] = quantity
        return True

    def remove_item(self, product_id: Any) -> None:
        self.items.pop(id_key(product_id), None)

    def can_add_to_cart(self, product_id: Any) -> bool:
        key = id_key(product_id)
        product = self.catalog.get_product(key)
        if product is None or product.stock_quantity is None:
            return True
        return self.items.get(key, 0) < product.stock_quantity

    def get_product_stock(self, product_id: Any) -> Optional[int]:
        return self.catalog.get_product_stock(product_id)

    # ======================================================================
    # BOXES
    # ======================================================================

    def can_add_box_to_cart(self, box_id: Any) -> bool:
        """A box is addable unless unknown, empty, or holding a product with zero stock."""
        box = self.catalog.get_box(box_id)
        if box is None or box.products is None:
            return False
        return not any(product.stock_quantity == 0 for product in box.products)

    def add_box_to_cart(self, box_id: Any) -> bool:
        key = id_key(box_id)
        if not self.can_add_box_to_cart(key):
            logger.info(f"Cannot add box {key}: unknown or some products are out of stock")
            return False
        self.boxes[key] = self.boxes.get(key, 0) + 1
        logger.debug(f"Added box {key}, quantity now {self.boxes[key]}")
        return True

    def remove_box_from_cart(self, box_id: Any) -> None:
        key = id_key(box_id)
        self.boxes[key] = max(self.boxes.get(key, 0) - 1, 0)

    def set_box_quantity(self, box_id: Any, quantity: int) -> Optional[bool]:
        key = id_key(box_id)
        if quantity <= 0:
            self.boxes.pop(key, None)
            return None
        self.boxes[key] = quantity
        return True

    def remove_box_item(self, box_id: Any) -> None:
        self.boxes.pop(id_key(box_id), None)

    # ======================================================================
    # LOOKUPS
    # ======================================================================

    def add_promotional_product(self, product: Optional[Product]) -> None:
        """Remember a product's promotion data, if it carries any."""
        if product is not None and product.promotion is not None:
            self.promotional_products[id_key(product.id)] = product

    def get_product_with_promotion(self, product_id: Any) -> Optional[Product]:
        promotional = self.promotional_products.get(id_key(product_id))
        if promotional is not None:
            return promotional
        return self.catalog.get_product(product_id)

    def get_box(self, box_id: Any) -> Optional[Box]:
        return self.catalog.get_box(box_id)

    def clear(self) -> None:
        self.items = {}
        self.boxes = {}
        logger.info("Cart cleared")

    # ======================================================================
    # AGGREGATION
    # ======================================================================

    def cart_items(self) -> list[tuple[str, int]]:
        return list(self.items.items())

    def box_cart_items(self) -> list[tuple[str, int]]:
        return list(self.boxes.items())

    def box_item_count(self) -> int:
        return sum(self.boxes.values())

    def total_item_count(self) -> int:
        return sum(self.items.values()) + sum(self.boxes.values())

    def is_empty(self) -> bool:
        return self.total_item_count() == 0

    def cart_total(self) -> Decimal:
        """Sum of all line totals; lines whose id cannot be resolved are skipped."""
        total = pricing.ZERO
        for product_id, quantity in self.items.items():
            product = self.get_product_with_promotion(product_id)
            if product is not None:
                total += pricing.line_total(product, quantity)
        for box_id, quantity in self.boxes.items():
            box = self.get_box(box_id)
            if box is not None:
                total += pricing.box_line_total(box, quantity)
        return total

    def cart_items_with_pricing(self) -> list[CartItemPricing]:
        """Priced product lines followed by box lines; unresolved ids are dropped."""
        lines = []
        for product_id, quantity in self.items.items():
            product = self.get_product_with_promotion(product_id)
            if product is None:
                continue
            promotion_type = product.promotion.type if product.promotion else None
            effective = pricing.effective_price_per_item(product, quantity)
            lines.append(
                CartItemPricing(
                    id=product_id,
                    type="product",
                    title=product.name,
                    quantity=quantity,
                    original_price=product.price,
                    final_price=effective,
                    effective_price_per_item=effective,
                    promotional_price=effective if promotion_type == "discount" else None,
                    savings=pricing.savings(product, quantity),
                    total_price=pricing.line_total(product, quantity),
                )
            )

        for box_id, quantity in self.boxes.items():
            box = self.get_box(box_id)
            if box is None:
                continue
            lines.append(
                CartItemPricing(
                    id=box_id,
                    type="box",
                    title=box.title,
                    quantity=quantity,
                    original_price=box.price,
                    final_price=box.price,
                    effective_price_per_item=box.price,
                    savings=pricing.ZERO,
                    total_price=pricing.box_line_total(box, quantity),
                )
            )
        return lines

    def total_savings(self) -> Decimal:
        return sum((line.savings for line in self.cart_items_with_pricing()), pricing.ZERO)
