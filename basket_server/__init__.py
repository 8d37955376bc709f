"""Grocery basket with promotional pricing, served over MCP and HTTP."""

from .cart import Cart
from .catalog import CatalogSnapshot, refresh_catalog
from .exceptions import CheckoutError
from .promotions import merge_promotions

__all__ = ["Cart", "CatalogSnapshot", "CheckoutError", "merge_promotions", "refresh_catalog"]
__version__ = "0.1.0"
