"""Grocery store REST API client."""

import logging
import os
from typing import Any, Callable, Optional

import httpx
from pydantic import ValidationError

from .auth import AuthManager
from .models import (
    ApiError,
    ApiResult,
    AuthCredentials,
    Box,
    OrderPayload,
    Product,
    Promotion,
)

logger = logging.getLogger(__name__)


class GroceryClient:
    """Client for the grocery store catalog, promotion and order endpoints.

    Every call returns an ``ApiResult``; HTTP and transport failures are
    reported in ``result.error`` rather than raised. Nothing is retried.
    """

    DEFAULT_BASE_URL = "http://localhost:5000/api"
    DEFAULT_TIMEOUT = 10.0
    # The products endpoint paginates; ask for the whole catalog in one page.
    CATALOG_PAGE_SIZE = 1000

    def __init__(
        self,
        auth_manager: AuthManager,
        base_url: Optional[str] = None,
        timeout: float = DEFAULT_TIMEOUT,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        """
        Initialize the grocery client.

        Args:
            auth_manager: Authentication manager instance
            base_url: API root, e.g. http://localhost:5000/api
            timeout: Request timeout in seconds
            transport: Optional httpx transport (used by tests)
        """
        self.auth_manager = auth_manager
        self.base_url = base_url or self.DEFAULT_BASE_URL
        self.client = httpx.Client(
            base_url=self.base_url,
            timeout=timeout,
            transport=transport,
            headers={
                "Accept": "application/json",
                "Content-Type": "application/json",
            },
        )

    @classmethod
    def from_env(cls, auth_manager: AuthManager) -> "GroceryClient":
        """Build a client from BASKET_API_URL and BASKET_TIMEOUT."""
        base_url = os.environ.get("BASKET_API_URL", cls.DEFAULT_BASE_URL)
        timeout = float(os.environ.get("BASKET_TIMEOUT", cls.DEFAULT_TIMEOUT))
        return cls(auth_manager, base_url=base_url, timeout=timeout)

    def close(self) -> None:
        self.client.close()

    def _auth_headers(self) -> dict[str, str]:
        token = self.auth_manager.get_token()
        return {"Authorization": f"Bearer {token}"} if token else {}

    def _request(self, method: str, path: str, **kwargs: Any) -> ApiResult:
        """Send a request and wrap the JSON body or the failure in an ApiResult."""
        try:
            response = self.client.request(method, path, headers=self._auth_headers(), **kwargs)
            response.raise_for_status()
            data = response.json() if response.content else None
            return ApiResult(success=True, data=data)
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            if status == 401:
                logger.warning("Token rejected by API, clearing session")
                self.auth_manager.clear_session()
            try:
                body = e.response.json()
            except ValueError:
                body = {}
            if not isinstance(body, dict):
                body = {}
            message = body.get("message") or body.get("error") or "An error occurred"
            logger.error(f"{method} {path} failed: status={status}, message={message}")
            return ApiResult(
                success=False,
                error=ApiError(status=status, message=message, data=body.get("data")),
            )
        except httpx.RequestError as e:
            logger.error(f"{method} {path} network error: {e}")
            return ApiResult(
                success=False,
                error=ApiError(status=0, message="Network error. Please check your connection."),
            )
        except ValueError as e:
            logger.error(f"{method} {path} returned invalid JSON: {e}")
            return ApiResult(
                success=False,
                error=ApiError(status=response.status_code, message="Invalid response from server"),
            )

    @staticmethod
    def _parse_list(result: ApiResult, key: str, parse: Callable[[Any], Any]) -> ApiResult:
        """Convert a successful list payload (bare or wrapped under ``key``) into models."""
        if not result.success:
            return result
        raw = result.data
        if isinstance(raw, dict):
            raw = raw.get(key, [])
        try:
            return ApiResult(success=True, data=[parse(item) for item in raw or []])
        except ValidationError as e:
            logger.error(f"Could not parse {key}: {e}")
            return ApiResult(
                success=False,
                error=ApiError(status=0, message=f"Malformed {key} data", data=str(e)),
            )

    # ======================================================================
    # CATALOG / PROMOTIONS
    # ======================================================================

    def fetch_products(self, **params: Any) -> ApiResult:
        """
        Fetch catalog products.

        Args:
            **params: Query filters (search, categoryId, isNew, recommended, ...)

        Returns:
            ApiResult with ``data`` as list[Product]
        """
        params.setdefault("limit", self.CATALOG_PAGE_SIZE)
        logger.info(f"Fetching products: {params}")
        result = self._request("GET", "/products", params=params)
        return self._parse_list(result, "products", Product.model_validate)

    def fetch_promotions(
        self, type: Optional[str] = None, is_active: Optional[bool] = None
    ) -> ApiResult:
        """
        Fetch promotions.

        Args:
            type: Promotion type filter ("box", "discount", "2+1", ...)
            is_active: Only active (True) or inactive (False) promotions

        Returns:
            ApiResult with ``data`` as list[Promotion]
        """
        params: dict[str, str] = {}
        if type:
            params["type"] = type
        if is_active is not None:
            params["isActive"] = "true" if is_active else "false"
        logger.info(f"Fetching promotions: {params}")
        result = self._request("GET", "/promotions", params=params)
        return self._parse_list(result, "promotions", Promotion.model_validate)

    def fetch_boxes(self) -> ApiResult:
        """Fetch active box promotions as ``Box`` models."""
        result = self.fetch_promotions(type="box", is_active=True)
        if not result.success:
            return result
        return ApiResult(success=True, data=[Box.from_promotion(p) for p in result.data])

    # ======================================================================
    # ORDERS
    # ======================================================================

    def submit_order(self, payload: OrderPayload) -> ApiResult:
        """Submit a finalized order."""
        body = payload.to_request()
        logger.info(
            f"Submitting order: {len(body['items'])} item(s), total={body['totalAmount']}"
        )
        return self._request("POST", "/orders", json=body)

    def get_orders(self, page: int = 1, limit: int = 10) -> ApiResult:
        """List the customer's orders."""
        return self._request("GET", "/orders/customer", params={"page": page, "limit": limit})

    # ======================================================================
    # AUTH
    # ======================================================================

    def login(self, credentials: AuthCredentials) -> ApiResult:
        """
        Authenticate the customer and store the returned token.

        Returns:
            ApiResult with ``data`` as the user record
        """
        logger.info(f"=== LOGIN: email={credentials.email} ===")
        result = self._request(
            "POST",
            "/customer/auth/login",
            json={"email": credentials.email, "password": credentials.password},
        )
        if not result.success:
            return result

        data = result.data or {}
        token = data.get("token")
        if not token:
            logger.error("Login response did not contain a token")
            return ApiResult(
                success=False, error=ApiError(status=0, message="Login response missing token")
            )
        self.auth_manager.save_session(token, data.get("user"))
        logger.info("Login successful")
        return ApiResult(success=True, data=data.get("user"))

    def logout(self) -> None:
        """Logout and clear the stored session."""
        if self.auth_manager.is_authenticated():
            result = self._request("POST", "/customer/auth/logout")
            if not result.success:
                logger.warning(f"Logout request failed: {result.error.message}")
        self.auth_manager.clear_session()
