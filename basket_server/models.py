"""Data models for the grocery store catalog, cart and orders."""

from datetime import datetime
from decimal import Decimal
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, PlainSerializer, field_validator
from pydantic.alias_generators import to_camel

# Decimal in memory, plain JSON number on the wire.
Money = Annotated[Decimal, PlainSerializer(float, return_type=float, when_used="json")]

PromotionType = Literal["discount", "bundle", "bogo", "2+1", "box"]
PaymentMethod = Literal["cash", "card"]


class ApiModel(BaseModel):
    """Base model accepting both camelCase (wire) and snake_case (Python) names."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


def normalize_id(value: Any) -> Any:
    """Numeric ids become strings; integral floats drop the ``.0`` (7.0 -> "7")."""
    if isinstance(value, bool):
        return value
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    if isinstance(value, (int, float)):
        return str(value)
    return value


def id_key(value: Any) -> str:
    """Lookup key for a product or box id, whatever type it arrived as."""
    return str(normalize_id(value))


class PromotionRef(ApiModel):
    """Trimmed promotion descriptor embedded on a product."""

    id: str = Field(description="Promotion ID")
    title: str = Field(default="", description="Promotion title")
    type: Literal["discount", "2+1"] = Field(description="Promotion policy")
    discount_value: Optional[Decimal] = Field(None, description="Discount percent, clamped to 0..100 when pricing")
    price: Optional[Money] = Field(None, description="Promotion price, informational")
    quantity_required: Optional[int] = Field(None, gt=0, description="Paid units per group")
    quantity_free: Optional[int] = Field(None, gt=0, description="Free units per group")

    normalize_ids = field_validator("id", mode="before")(normalize_id)


class Product(ApiModel):
    """Read-only catalog snapshot of a product."""

    id: str = Field(description="Product ID")
    name: str = Field(default="", description="Product name")
    price: Money = Field(default=Decimal("0"), ge=0, description="List price")
    stock_quantity: Optional[int] = Field(None, ge=0, description="Units in stock, None if unlimited")
    promotion: Optional[PromotionRef] = Field(None, description="Attached promotion")
    description: Optional[str] = None
    category_id: Optional[str] = None
    image_url: Optional[str] = None
    is_new: bool = False
    is_recommended: bool = False

    normalize_ids = field_validator("id", "category_id", mode="before")(normalize_id)


class Promotion(ApiModel):
    """Promotion record as returned by the promotions endpoint."""

    id: str
    title: str = ""
    description: Optional[str] = None
    type: PromotionType
    discount_value: Optional[Decimal] = None
    price: Optional[Money] = None
    quantity_required: Optional[int] = None
    quantity_free: Optional[int] = None
    is_active: bool = True
    image_url: Optional[str] = None
    created_at: Optional[datetime] = None
    products: Optional[list[Product]] = None

    normalize_ids = field_validator("id", mode="before")(normalize_id)


class Box(ApiModel):
    """Fixed-price bundle of products, sold as one cart line."""

    id: str
    title: str = ""
    price: Money = Field(default=Decimal("0"), ge=0)
    products: Optional[list[Product]] = None
    description: Optional[str] = None
    image_url: Optional[str] = None

    normalize_ids = field_validator("id", mode="before")(normalize_id)

    @classmethod
    def from_promotion(cls, promotion: Promotion) -> "Box":
        return cls(
            id=promotion.id,
            title=promotion.title,
            price=promotion.price or Decimal("0"),
            products=promotion.products,
            description=promotion.description,
            image_url=promotion.image_url,
        )


class CartItemPricing(BaseModel):
    """Priced view of a single cart line."""

    id: str
    type: Literal["product", "box"]
    title: str = ""
    quantity: int
    original_price: Decimal
    final_price: Decimal
    effective_price_per_item: Decimal
    promotional_price: Optional[Decimal] = None
    savings: Decimal = Decimal("0")
    total_price: Decimal


class ApiError(BaseModel):
    """Error reported by the grocery API or the transport."""

    status: int = 0
    message: str = "An unexpected error occurred"
    data: Any = None


class ApiResult(BaseModel):
    """Outcome of a call to the grocery API."""

    success: bool
    data: Any = None
    error: Optional[ApiError] = None


class DeliveryAddress(BaseModel):
    """Delivery address as entered at checkout."""

    street: str
    house_number: str
    district: str

    def is_complete(self) -> bool:
        return all(part.strip() for part in (self.street, self.house_number, self.district))

    def format(self) -> str:
        return f"{self.street}, {self.house_number}, {self.district}"


class ProductOrderItem(ApiModel):
    """Order line for a single product."""

    product_id: Union[int, str]
    quantity: int
    price: Money
    item_type: Literal["product"] = "product"


class BoxOrderItem(ApiModel):
    """Order line for a box."""

    box_id: Union[int, str]
    quantity: int
    price: Money
    item_type: Literal["box"] = "box"
    box_title: str = ""
    box_description: Optional[str] = None
    box_products: list[Product] = Field(default_factory=list)


class OrderPayload(ApiModel):
    """Finalized order accepted by the order service."""

    items: list[Union[ProductOrderItem, BoxOrderItem]] = Field(default_factory=list)
    delivery_address: str
    comment: str = ""
    payment_method: PaymentMethod = "cash"
    total_amount: Money

    def to_request(self) -> dict[str, Any]:
        """Serialize to the JSON body expected by POST /orders."""
        return self.model_dump(by_alias=True, mode="json", exclude_none=True)


class AuthCredentials(BaseModel):
    """Authentication credentials."""

    email: str
    password: str


class SessionData(BaseModel):
    """Session data for an authenticated customer."""

    token: Optional[str] = Field(None, description="Bearer token")
    user_id: Optional[str] = Field(None, description="User ID")
    user_email: Optional[str] = Field(None, description="User email")
    user_name: Optional[str] = Field(None, description="User display name")
    is_authenticated: bool = Field(default=False, description="Authentication status")
