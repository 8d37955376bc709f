"""HTTP server exposing the grocery basket as a REST API."""

import logging
import os
from contextlib import asynccontextmanager
from typing import Literal, Optional

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel, field_validator

from .auth import AuthManager
from .cart import Cart
from .catalog import refresh_catalog
from .checkout import delivery_fee, place_order
from .exceptions import CheckoutError
from .grocery_client import GroceryClient
from .models import AuthCredentials, DeliveryAddress, normalize_id
from .pricing import quantize_money

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("basket-http-server")

# Global state
auth_manager: Optional[AuthManager] = None
grocery_client: Optional[GroceryClient] = None
cart: Cart = Cart()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup and shutdown."""
    global auth_manager, grocery_client, cart

    # Startup
    logger.info("Starting Basket HTTP Server...")
    auth_manager = AuthManager()
    grocery_client = GroceryClient.from_env(auth_manager)
    cart = Cart()

    email = os.environ.get("BASKET_EMAIL")
    password = os.environ.get("BASKET_PASSWORD")
    if email and password and not auth_manager.is_authenticated():
        result = grocery_client.login(AuthCredentials(email=email, password=password))
        if not result.success:
            logger.warning(f"Auto-login failed: {result.error.message}")

    result = refresh_catalog(grocery_client, cart)
    if not result.success:
        logger.warning("Starting with an empty catalog; POST /catalog/refresh to retry")

    yield

    # Shutdown
    logger.info("Shutting down Basket HTTP Server...")
    grocery_client.close()


app = FastAPI(
    title="Basket MCP Server",
    description="HTTP API for the grocery store cart with promotional pricing",
    version="0.1.0",
    lifespan=lifespan,
)


# Request/Response Models
class LoginRequest(BaseModel):
    email: str
    password: str


class LoginResponse(BaseModel):
    success: bool
    message: str


class CartItemRequest(BaseModel):
    id: str
    item_type: Literal["product", "box"] = "product"

    normalize_ids = field_validator("id", mode="before")(normalize_id)


class AddToCartRequest(CartItemRequest):
    quantity: int = 1


class UpdateCartRequest(CartItemRequest):
    quantity: int


class CheckoutRequest(BaseModel):
    street: str
    house_number: str
    district: str
    payment_method: str = "cash"
    comment: Optional[str] = None


def cart_summary() -> dict:
    subtotal = cart.cart_total()
    fee = delivery_fee(subtotal)
    return {
        "items": [line.model_dump(mode="json") for line in cart.cart_items_with_pricing()],
        "item_count": cart.total_item_count(),
        "subtotal": str(quantize_money(subtotal)),
        "savings": str(quantize_money(cart.total_savings())),
        "delivery_fee": str(quantize_money(fee)),
        "total": str(quantize_money(subtotal + fee)),
    }


# Root endpoint
@app.get("/")
async def root():
    """Root endpoint with API information."""
    return {
        "name": "Basket MCP Server",
        "version": "0.1.0",
        "description": "HTTP API for the grocery store cart with promotional pricing",
        "endpoints": {
            "docs": "/docs",
            "health": "/health",
            "auth": {"login": "POST /auth/login", "logout": "POST /auth/logout", "status": "GET /auth/status"},
            "catalog": {"refresh": "POST /catalog/refresh", "products": "GET /products", "boxes": "GET /boxes"},
            "cart": {
                "get": "GET /cart",
                "add": "POST /cart/add",
                "remove": "POST /cart/remove",
                "update": "POST /cart/update",
                "remove_item": "POST /cart/remove-item",
                "clear": "POST /cart/clear",
            },
            "checkout": "POST /checkout",
        },
        "authenticated": auth_manager.is_authenticated() if auth_manager else False,
    }


# Health check endpoint
@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "authenticated": auth_manager.is_authenticated() if auth_manager else False,
    }


# Authentication endpoints
@app.post("/auth/login", response_model=LoginResponse)
async def login(request: LoginRequest):
    """Login to the grocery store."""
    result = grocery_client.login(AuthCredentials(email=request.email, password=request.password))
    if result.success:
        return LoginResponse(success=True, message=f"Successfully logged in as {request.email}")
    return LoginResponse(success=False, message=result.error.message)


@app.post("/auth/logout")
async def logout():
    """Logout and empty the cart."""
    grocery_client.logout()
    cart.clear()
    return {"success": True, "message": "Successfully logged out"}


@app.get("/auth/status")
async def auth_status():
    """Get authentication status."""
    return {
        "authenticated": auth_manager.is_authenticated(),
        "email": auth_manager.session.user_email if auth_manager.is_authenticated() else None,
    }


# Catalog endpoints
@app.post("/catalog/refresh")
async def catalog_refresh():
    """Reload products, promotions and boxes."""
    result = refresh_catalog(grocery_client, cart)
    if not result.success:
        raise HTTPException(status_code=502, detail=result.error.message)
    return {"products": len(cart.catalog.products), "boxes": len(cart.catalog.boxes)}


@app.get("/products")
async def list_products(promotions_only: bool = False):
    """List catalog products with their promotion, if any."""
    products = [cart.get_product_with_promotion(p.id) for p in cart.catalog.products]
    if promotions_only:
        products = [p for p in products if p.promotion]
    return {
        "count": len(products),
        "products": [p.model_dump(mode="json") for p in products],
    }


@app.get("/boxes")
async def list_boxes():
    """List boxes and whether they can be added."""
    return {
        "count": len(cart.catalog.boxes),
        "boxes": [
            {**box.model_dump(mode="json"), "available": cart.can_add_box_to_cart(box.id)}
            for box in cart.catalog.boxes
        ],
    }


# Cart endpoints
@app.get("/cart")
async def get_cart():
    """Get the cart with promotional pricing."""
    return cart_summary()


@app.post("/cart/add")
async def add_to_cart(request: AddToCartRequest):
    """Add units of a product or box."""
    if request.quantity <= 0:
        raise HTTPException(status_code=400, detail="Quantity must be positive")

    add = cart.add_box_to_cart if request.item_type == "box" else cart.add_to_cart
    added = 0
    while added < request.quantity and add(request.id):
        added += 1

    if added == 0:
        raise HTTPException(
            status_code=409,
            detail=f"Cannot add {request.item_type} {request.id}: out of stock or unavailable",
        )
    return {"success": True, "added": added, "requested": request.quantity, "cart": cart_summary()}


@app.post("/cart/remove")
async def remove_from_cart(request: CartItemRequest):
    """Remove one unit of a product or box."""
    if request.item_type == "box":
        cart.remove_box_from_cart(request.id)
    else:
        cart.remove_from_cart(request.id)
    return {"success": True, "cart": cart_summary()}


@app.post("/cart/update")
async def update_cart(request: UpdateCartRequest):
    """Set the exact quantity of a line; 0 or less removes it."""
    if request.item_type == "box":
        outcome = cart.set_box_quantity(request.id, request.quantity)
    else:
        outcome = cart.set_quantity(request.id, request.quantity)

    if outcome is False:
        raise HTTPException(
            status_code=409,
            detail=f"Quantity exceeds stock ({cart.get_product_stock(request.id)})",
        )
    return {"success": True, "removed": outcome is None, "cart": cart_summary()}


@app.post("/cart/remove-item")
async def remove_item(request: CartItemRequest):
    """Remove a line entirely."""
    if request.item_type == "box":
        cart.remove_box_item(request.id)
    else:
        cart.remove_item(request.id)
    return {"success": True, "cart": cart_summary()}


@app.post("/cart/clear")
async def clear_cart():
    cart.clear()
    return {"success": True, "cart": cart_summary()}


@app.post("/checkout")
async def checkout(request: CheckoutRequest):
    """Place an order for the current cart."""
    if not auth_manager.is_authenticated():
        raise HTTPException(status_code=401, detail="Not authenticated")

    address = DeliveryAddress(
        street=request.street, house_number=request.house_number, district=request.district
    )
    try:
        result = place_order(
            grocery_client,
            cart,
            address,
            payment_method=request.payment_method,
            comment=request.comment,
        )
    except CheckoutError as e:
        raise HTTPException(status_code=400, detail=e.as_dict())

    if not result.success:
        raise HTTPException(
            status_code=result.error.status or 502,
            detail=result.error.message,
        )
    return {"success": True, "order": result.data}


def run_http_server(host: str = "0.0.0.0", port: int = 8000):
    """Run the HTTP server."""
    import uvicorn

    uvicorn.run(app, host=host, port=port, log_level="info")


if __name__ == "__main__":
    run_http_server()
