"""Pytest fixtures for basket tests."""

from decimal import Decimal

import httpx
import pytest

from basket_server.auth import AuthManager
from basket_server.cart import Cart
from basket_server.grocery_client import GroceryClient
from basket_server.models import Box, Product, PromotionRef

API_URL = "http://store.test/api"

PRODUCTS_JSON = [
    {"id": 1, "name": "Milk", "price": 2.5, "stockQuantity": 3, "categoryId": 4},
    {"id": 7, "name": "Bread", "price": 20, "stockQuantity": 10},
    {"id": 9, "name": "Apples", "price": "10.00"},
]

PROMOTIONS_JSON = [
    {
        "id": 11,
        "title": "Bread week",
        "type": "discount",
        "discountValue": 25,
        "isActive": True,
        "products": [{"id": 7, "name": "Bread", "price": 20, "stockQuantity": 10}],
    },
    {
        "id": 12,
        "title": "Apples 2+1",
        "type": "2+1",
        "quantityRequired": 2,
        "quantityFree": 1,
        "isActive": True,
        "products": [{"id": 9, "name": "Apples", "price": 10}],
    },
    {
        "id": 21,
        "title": "Breakfast box",
        "description": "Milk and apples",
        "type": "box",
        "price": 12,
        "isActive": True,
        "products": [
            {"id": 1, "name": "Milk", "price": 2.5, "stockQuantity": 3},
            {"id": 9, "name": "Apples", "price": 10},
        ],
    },
]


class FakeStoreApi:
    """In-process stand-in for the grocery REST API, served via httpx.MockTransport."""

    def __init__(self) -> None:
        self.routes: dict = {}
        self.requests: list[httpx.Request] = []

    def add(self, method: str, path: str, status: int = 200, json=None) -> None:
        self.routes[(method, f"/api{path}")] = (status, json)

    def add_handler(self, method: str, path: str, handler) -> None:
        self.routes[(method, f"/api{path}")] = handler

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        route = self.routes.get((request.method, request.url.path))
        if route is None:
            return httpx.Response(404, json={"message": "Not found"})
        if callable(route):
            return route(request)
        status, body = route
        return httpx.Response(status, json=body)

    def last(self, method: str, path: str) -> httpx.Request:
        matches = [
            r for r in self.requests if r.method == method and r.url.path == f"/api{path}"
        ]
        return matches[-1]


def _promotions_route(request: httpx.Request) -> httpx.Response:
    promo_type = request.url.params.get("type")
    data = [p for p in PROMOTIONS_JSON if promo_type is None or p["type"] == promo_type]
    return httpx.Response(200, json=data)


@pytest.fixture(autouse=True)
def isolated_session(tmp_path, monkeypatch):
    """Keep session files and tokens out of the user's home directory."""
    monkeypatch.setenv("BASKET_SESSION_FILE", str(tmp_path / "session.json"))
    monkeypatch.delenv("BASKET_TOKEN", raising=False)
    return tmp_path / "session.json"


@pytest.fixture
def store_api():
    """Fake store API serving the sample catalog."""
    api = FakeStoreApi()
    api.add("GET", "/products", json={"products": PRODUCTS_JSON, "total": 3})
    api.add_handler("GET", "/promotions", _promotions_route)
    return api


@pytest.fixture
def auth_manager():
    return AuthManager()


@pytest.fixture
def grocery_client(store_api, auth_manager):
    client = GroceryClient(
        auth_manager, base_url=API_URL, transport=httpx.MockTransport(store_api.handler)
    )
    yield client
    client.close()


@pytest.fixture
def make_product():
    """Factory for catalog products."""

    def _make(id="1", price="10", stock=None, promotion=None, name=None):
        return Product(
            id=id,
            name=name or f"Product {id}",
            price=Decimal(str(price)),
            stock_quantity=stock,
            promotion=promotion,
        )

    return _make


@pytest.fixture
def discount():
    def _make(value, id="11"):
        return PromotionRef(id=id, title="Discount", type="discount", discount_value=Decimal(str(value)))

    return _make


@pytest.fixture
def two_plus_one():
    def _make(required=2, free=1, id="12"):
        return PromotionRef(
            id=id, title="2+1", type="2+1", quantity_required=required, quantity_free=free
        )

    return _make


@pytest.fixture
def make_box(make_product):
    """Factory for boxes; ``stocks`` gives one constituent product per entry."""

    def _make(id="21", price="12", stocks=(None,)):
        products = [make_product(id=str(100 + i), stock=s) for i, s in enumerate(stocks)]
        return Box(id=id, title=f"Box {id}", price=Decimal(str(price)), products=products)

    return _make


@pytest.fixture
def cart():
    return Cart()
