"""Catalog snapshot used for stock and lookup validation."""

import logging
from typing import TYPE_CHECKING, Any, Iterable, Optional

from .models import ApiResult, Box, Product, id_key
from .promotions import merge_promotions

if TYPE_CHECKING:
    from .cart import Cart
    from .grocery_client import GroceryClient

logger = logging.getLogger(__name__)


class CatalogSnapshot:
    """Most recently fetched products and boxes.

    Ids may arrive as strings or numbers from different sources, so every
    lookup goes through ``id_key``. Unknown ids resolve to ``None``.
    """

    def __init__(self) -> None:
        self._products: dict[str, Product] = {}
        self._boxes: dict[str, Box] = {}

    @property
    def products(self) -> list[Product]:
        return list(self._products.values())

    @property
    def boxes(self) -> list[Box]:
        return list(self._boxes.values())

    def set_products(self, products: Iterable[Product]) -> None:
        """Replace the product snapshot wholesale."""
        self._products = {id_key(product.id): product for product in products}
        logger.debug(f"Catalog snapshot holds {len(self._products)} product(s)")

    def set_boxes(self, boxes: Iterable[Box]) -> None:
        """Replace the box snapshot wholesale."""
        self._boxes = {id_key(box.id): box for box in boxes}
        logger.debug(f"Catalog snapshot holds {len(self._boxes)} box(es)")

    def get_product(self, product_id: Any) -> Optional[Product]:
        return self._products.get(id_key(product_id))

    def get_box(self, box_id: Any) -> Optional[Box]:
        return self._boxes.get(id_key(box_id))

    def get_product_stock(self, product_id: Any) -> Optional[int]:
        product = self.get_product(product_id)
        return product.stock_quantity if product else None


def refresh_catalog(client: "GroceryClient", cart: "Cart") -> ApiResult:
    """
    Reload the cart's catalog snapshot from the grocery API.

    Products are fetched first and decorated with the active discount and
    2+1 promotions; a failed promotions fetch leaves them bare. Active boxes
    are fetched last. Promotion-bearing products are recorded in the cart's
    promotional index so pricing keeps them after later bare fetches.

    Args:
        client: Grocery API client
        cart: Cart whose snapshot is replaced

    Returns:
        The result of the product fetch; on failure the snapshot is unchanged
    """
    products_result = client.fetch_products()
    if not products_result.success:
        logger.error(f"Catalog refresh failed: {products_result.error.message}")
        return products_result

    products: list[Product] = products_result.data
    promotions_result = client.fetch_promotions(is_active=True)
    if promotions_result.success:
        products = merge_promotions(products, promotions_result.data)
    else:
        logger.warning("Failed to fetch promotions, keeping products without promotions")

    cart.catalog.set_products(products)
    for product in products:
        cart.add_promotional_product(product)

    boxes_result = client.fetch_boxes()
    if boxes_result.success:
        cart.catalog.set_boxes(boxes_result.data)
    else:
        logger.warning("Failed to fetch boxes, keeping previous box snapshot")

    logger.info(
        f"Catalog refreshed: {len(cart.catalog.products)} product(s), "
        f"{len(cart.catalog.boxes)} box(es)"
    )
    return ApiResult(success=True, data=products)
