"""MCP Server for the grocery store basket."""

import asyncio
import logging
import os
from typing import Any, Optional

from mcp.server import Server
from mcp.types import Resource, Tool, TextContent
from pydantic import AnyUrl

from .auth import AuthManager
from .cart import Cart
from .catalog import refresh_catalog
from .checkout import delivery_fee, place_order
from .exceptions import CheckoutError
from .grocery_client import GroceryClient
from .models import AuthCredentials, DeliveryAddress, id_key
from .pricing import quantize_money

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("basket-mcp-server")

# Initialize server
app = Server("basket-mcp-server")

# Global state
auth_manager: Optional[AuthManager] = None
grocery_client: Optional[GroceryClient] = None
cart: Cart = Cart()
credentials: Optional[AuthCredentials] = None

ITEM_TYPE_SCHEMA = {
    "type": "string",
    "enum": ["product", "box"],
    "description": "Whether the id refers to a product or a box (default: product)",
    "default": "product",
}


async def ensure_authenticated() -> bool:
    """Ensure the client is authenticated, auto-login if credentials are available."""
    if auth_manager.is_authenticated():
        return True

    if credentials:
        logger.info("Auto-logging in with configured credentials...")
        result = grocery_client.login(credentials)
        if result.success:
            logger.info("Auto-login successful")
            return True
        logger.warning(f"Auto-login failed: {result.error.message}")

    return False


def _money(value) -> str:
    return f"{quantize_money(value)}"


def format_cart() -> str:
    """Render the cart with promotional pricing."""
    lines = cart.cart_items_with_pricing()
    if not lines:
        return "Your cart is empty"

    result_lines = [f"Shopping Cart ({cart.total_item_count()} items):"]
    for line in lines:
        label = "Box" if line.type == "box" else "Product"
        result_lines.append(f"\n- {label} {line.id}: {line.title}")
        result_lines.append(f"   Quantity: {line.quantity}")
        result_lines.append(f"   Price: {_money(line.original_price)}")
        if line.effective_price_per_item != line.original_price:
            result_lines.append(f"   Effective price: {_money(line.effective_price_per_item)}")
        if line.savings:
            result_lines.append(f"   Savings: {_money(line.savings)}")
        result_lines.append(f"   Total: {_money(line.total_price)}")

    subtotal = cart.cart_total()
    fee = delivery_fee(subtotal)
    result_lines.append(f"\nSubtotal: {_money(subtotal)}")
    result_lines.append(f"Delivery: {_money(fee) if fee else 'free'}")
    result_lines.append(f"Total: {_money(subtotal + fee)}")
    return "\n".join(result_lines)


@app.list_resources()
async def list_resources() -> list[Resource]:
    """List available resources."""
    return [
        Resource(
            uri=AnyUrl("basket://cart"),
            name="Shopping Cart",
            mimeType="application/json",
            description="Current cart lines with promotional pricing",
        )
    ]


@app.read_resource()
async def read_resource(uri: AnyUrl) -> str:
    """Read a resource by URI."""
    uri_str = str(uri)

    if uri_str == "basket://cart":
        import json

        payload = {
            "items": [line.model_dump(mode="json") for line in cart.cart_items_with_pricing()],
            "item_count": cart.total_item_count(),
            "total": str(quantize_money(cart.cart_total())),
        }
        return json.dumps(payload, indent=2)

    raise ValueError(f"Unknown resource: {uri}")


@app.list_tools()
async def list_tools() -> list[Tool]:
    """List available tools."""
    return [
        Tool(
            name="basket_login",
            description="Authenticate with the grocery store. Uses BASKET_EMAIL/BASKET_PASSWORD if not provided.",
            inputSchema={
                "type": "object",
                "properties": {
                    "email": {
                        "type": "string",
                        "description": "User email address (optional if BASKET_EMAIL is configured)",
                    },
                    "password": {
                        "type": "string",
                        "description": "User password (optional if BASKET_PASSWORD is configured)",
                    },
                },
            },
        ),
        Tool(
            name="basket_logout",
            description="Logout, clear the session and empty the cart",
            inputSchema={"type": "object", "properties": {}},
        ),
        Tool(
            name="basket_refresh_catalog",
            description="Reload products, active promotions and boxes from the store",
            inputSchema={"type": "object", "properties": {}},
        ),
        Tool(
            name="basket_list_products",
            description="List catalog products with price, stock and promotion",
            inputSchema={
                "type": "object",
                "properties": {
                    "query": {
                        "type": "string",
                        "description": "Only products whose name contains this text",
                    },
                    "promotions_only": {
                        "type": "boolean",
                        "description": "Only products with a discount or 2+1 promotion",
                        "default": False,
                    },
                },
            },
        ),
        Tool(
            name="basket_list_boxes",
            description="List available boxes (fixed-price bundles)",
            inputSchema={"type": "object", "properties": {}},
        ),
        Tool(
            name="basket_add_to_cart",
            description="Add units of a product or box to the cart (respects stock limits)",
            inputSchema={
                "type": "object",
                "properties": {
                    "id": {"type": "string", "description": "Product or box ID"},
                    "quantity": {
                        "type": "integer",
                        "description": "Units to add (default: 1)",
                        "default": 1,
                    },
                    "item_type": ITEM_TYPE_SCHEMA,
                },
                "required": ["id"],
            },
        ),
        Tool(
            name="basket_remove_from_cart",
            description="Remove one unit of a product or box from the cart",
            inputSchema={
                "type": "object",
                "properties": {
                    "id": {"type": "string", "description": "Product or box ID"},
                    "item_type": ITEM_TYPE_SCHEMA,
                },
                "required": ["id"],
            },
        ),
        Tool(
            name="basket_set_quantity",
            description="Set the exact quantity of a cart line (0 removes it)",
            inputSchema={
                "type": "object",
                "properties": {
                    "id": {"type": "string", "description": "Product or box ID"},
                    "quantity": {"type": "integer", "description": "New quantity"},
                    "item_type": ITEM_TYPE_SCHEMA,
                },
                "required": ["id", "quantity"],
            },
        ),
        Tool(
            name="basket_remove_item",
            description="Remove a line from the cart entirely",
            inputSchema={
                "type": "object",
                "properties": {
                    "id": {"type": "string", "description": "Product or box ID"},
                    "item_type": ITEM_TYPE_SCHEMA,
                },
                "required": ["id"],
            },
        ),
        Tool(
            name="basket_get_cart",
            description="Get cart contents with promotional pricing and totals",
            inputSchema={"type": "object", "properties": {}},
        ),
        Tool(
            name="basket_checkout",
            description="Place an order for the current cart",
            inputSchema={
                "type": "object",
                "properties": {
                    "street": {"type": "string", "description": "Street"},
                    "house_number": {"type": "string", "description": "House number"},
                    "district": {"type": "string", "description": "District"},
                    "payment_method": {
                        "type": "string",
                        "enum": ["cash", "card"],
                        "default": "cash",
                    },
                    "comment": {"type": "string", "description": "Comment for the store"},
                },
                "required": ["street", "house_number", "district"],
            },
        ),
    ]


def _add(item_id: str, quantity: int, item_type: str) -> int:
    """Add up to ``quantity`` units, stopping at the first refusal. Returns units added."""
    add = cart.add_box_to_cart if item_type == "box" else cart.add_to_cart
    added = 0
    while added < quantity and add(item_id):
        added += 1
    return added


@app.call_tool()
async def call_tool(name: str, arguments: Any) -> list[TextContent]:
    """Handle tool calls."""
    arguments = arguments or {}
    try:
        if name == "basket_login":
            email = arguments.get("email") or (credentials.email if credentials else None)
            password = arguments.get("password") or (credentials.password if credentials else None)
            if not email or not password:
                return [
                    TextContent(
                        type="text",
                        text="Error: No credentials provided and BASKET_EMAIL/BASKET_PASSWORD not configured.",
                    )
                ]

            result = grocery_client.login(AuthCredentials(email=email, password=password))
            if result.success:
                return [TextContent(type="text", text=f"✅ Successfully logged in as {email}")]
            return [TextContent(type="text", text=f"❌ Login failed: {result.error.message}")]

        elif name == "basket_logout":
            grocery_client.logout()
            cart.clear()
            return [TextContent(type="text", text="✅ Successfully logged out")]

        elif name == "basket_refresh_catalog":
            result = refresh_catalog(grocery_client, cart)
            if not result.success:
                return [TextContent(type="text", text=f"❌ Failed to load catalog: {result.error.message}")]
            return [
                TextContent(
                    type="text",
                    text=f"✅ Loaded {len(cart.catalog.products)} product(s) and {len(cart.catalog.boxes)} box(es)",
                )
            ]

        elif name == "basket_list_products":
            query = (arguments.get("query") or "").lower()
            promotions_only = arguments.get("promotions_only", False)
            products = [
                cart.get_product_with_promotion(p.id)
                for p in cart.catalog.products
                if query in p.name.lower()
            ]
            if promotions_only:
                products = [p for p in products if p.promotion]
            if not products:
                return [TextContent(type="text", text="No products found. Try basket_refresh_catalog first.")]

            result_lines = [f"Found {len(products)} product(s):\n"]
            for i, product in enumerate(products, 1):
                result_lines.append(f"\n{i}. {product.name}")
                result_lines.append(f"   ID: {product.id}")
                result_lines.append(f"   Price: {_money(product.price)}")
                if product.stock_quantity is not None:
                    result_lines.append(f"   Stock: {product.stock_quantity}")
                if product.promotion:
                    promo = product.promotion
                    if promo.type == "discount":
                        result_lines.append(f"   Promotion: {promo.discount_value}% off ({promo.title})")
                    else:
                        result_lines.append(
                            f"   Promotion: buy {promo.quantity_required or 2} get "
                            f"{promo.quantity_free or 1} free ({promo.title})"
                        )
            return [TextContent(type="text", text="\n".join(result_lines))]

        elif name == "basket_list_boxes":
            boxes = cart.catalog.boxes
            if not boxes:
                return [TextContent(type="text", text="No boxes available. Try basket_refresh_catalog first.")]

            result_lines = [f"Found {len(boxes)} box(es):\n"]
            for i, box in enumerate(boxes, 1):
                availability = "available" if cart.can_add_box_to_cart(box.id) else "out of stock"
                result_lines.append(f"\n{i}. {box.title} ({availability})")
                result_lines.append(f"   ID: {box.id}")
                result_lines.append(f"   Price: {_money(box.price)}")
                if box.products:
                    result_lines.append(f"   Contains: {', '.join(p.name for p in box.products)}")
            return [TextContent(type="text", text="\n".join(result_lines))]

        elif name == "basket_add_to_cart":
            item_id = id_key(arguments["id"])
            item_type = arguments.get("item_type", "product")
            quantity = int(arguments.get("quantity", 1))
            if quantity <= 0:
                return [TextContent(type="text", text="❌ Quantity must be a positive integer")]
            added = _add(item_id, quantity, item_type)

            if added == quantity:
                return [TextContent(type="text", text=f"✅ Added {added} x {item_type} {item_id} to cart")]
            if added:
                return [
                    TextContent(
                        type="text",
                        text=f"⚠️ Added only {added} of {quantity} x {item_type} {item_id}: stock limit reached",
                    )
                ]
            return [
                TextContent(
                    type="text",
                    text=f"❌ Cannot add {item_type} {item_id} to cart (out of stock or unavailable)",
                )
            ]

        elif name == "basket_remove_from_cart":
            item_id = id_key(arguments["id"])
            if arguments.get("item_type") == "box":
                cart.remove_box_from_cart(item_id)
            else:
                cart.remove_from_cart(item_id)
            return [TextContent(type="text", text=f"✅ Removed one unit of {item_id}")]

        elif name == "basket_set_quantity":
            item_id = id_key(arguments["id"])
            quantity = int(arguments["quantity"])
            if arguments.get("item_type") == "box":
                outcome = cart.set_box_quantity(item_id, quantity)
            else:
                outcome = cart.set_quantity(item_id, quantity)

            if outcome is None:
                return [TextContent(type="text", text=f"✅ Removed {item_id} from cart")]
            if outcome:
                return [TextContent(type="text", text=f"✅ Quantity of {item_id} set to {quantity}")]
            stock = cart.get_product_stock(item_id)
            return [
                TextContent(
                    type="text",
                    text=f"❌ Cannot set {item_id} to {quantity}: only {stock} in stock",
                )
            ]

        elif name == "basket_remove_item":
            item_id = id_key(arguments["id"])
            if arguments.get("item_type") == "box":
                cart.remove_box_item(item_id)
            else:
                cart.remove_item(item_id)
            return [TextContent(type="text", text=f"✅ Removed {item_id} from cart")]

        elif name == "basket_get_cart":
            return [TextContent(type="text", text=format_cart())]

        elif name == "basket_checkout":
            if not await ensure_authenticated():
                return [
                    TextContent(
                        type="text",
                        text="Error: Not authenticated. Please configure BASKET_EMAIL and BASKET_PASSWORD, "
                             "or use basket_login first.",
                    )
                ]

            address = DeliveryAddress(
                street=arguments.get("street", ""),
                house_number=str(arguments.get("house_number", "")),
                district=arguments.get("district", ""),
            )
            try:
                result = place_order(
                    grocery_client,
                    cart,
                    address,
                    payment_method=arguments.get("payment_method", "cash"),
                    comment=arguments.get("comment"),
                )
            except CheckoutError as e:
                return [TextContent(type="text", text=f"❌ {e.message}")]

            if result.success:
                order = result.data or {}
                order_id = order.get("id") if isinstance(order, dict) else None
                return [
                    TextContent(
                        type="text",
                        text=f"✅ Order placed{f' (#{order_id})' if order_id else ''}. Cart cleared.",
                    )
                ]
            return [TextContent(type="text", text=f"❌ Order failed: {result.error.message}")]

        else:
            return [TextContent(type="text", text=f"Unknown tool: {name}")]

    except Exception as e:
        logger.error(f"Error executing tool {name}: {e}", exc_info=True)
        return [
            TextContent(
                type="text",
                text=f"Error: {str(e)}",
            )
        ]


async def main() -> None:
    """Main entry point for the MCP server."""
    global auth_manager, grocery_client, cart, credentials

    # Initialize authentication manager, client and an empty cart
    auth_manager = AuthManager()
    grocery_client = GroceryClient.from_env(auth_manager)
    cart = Cart()
    logger.info(f"Using grocery API at {grocery_client.base_url}")

    # Load credentials from environment variables
    email = os.environ.get("BASKET_EMAIL")
    password = os.environ.get("BASKET_PASSWORD")

    if email and password:
        credentials = AuthCredentials(email=email, password=password)
        logger.info(f"Credentials loaded from environment for: {email}")
    else:
        logger.warning("No credentials found in environment variables (BASKET_EMAIL, BASKET_PASSWORD)")
        logger.warning("Checkout will require manual login via basket_login tool")

    result = refresh_catalog(grocery_client, cart)
    if not result.success:
        logger.warning("Starting with an empty catalog; use basket_refresh_catalog to retry")

    logger.info("Starting Basket MCP Server...")

    # Import and run the server
    from mcp.server.stdio import stdio_server

    try:
        async with stdio_server() as (read_stream, write_stream):
            await app.run(
                read_stream,
                write_stream,
                app.create_initialization_options(),
            )
    finally:
        grocery_client.close()


if __name__ == "__main__":
    asyncio.run(main())
