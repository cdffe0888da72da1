"""
gourmetclick/schemas/cart.py - Pydantic models for the POS cart.
"""
from typing import Any, List, Literal, Optional

from pydantic import BaseModel, Field, computed_field, field_validator

OrderType = Literal["dine_in", "pickup", "delivery"]
PaymentMethod = Literal["cash", "card", "transfer"]

UNKNOWN_PRODUCT_NAME = "Producto desconocido"


def _text_or_none(v: Any) -> Any:
    # legacy rows store table numbers as integers
    if isinstance(v, (int, float)) and not isinstance(v, bool):
        return str(v)
    return v


class Modifier(BaseModel):
    """Customization attached to a cart line (extra cheese, a free-text note...)."""
    name: str = Field(..., description="Modifier name")
    value: str = Field("", description="Free-text value (e.g. the note itself)")
    extra_price: float = Field(0.0, description="Incremental price of the modifier")

    @field_validator("value", mode="before")
    @classmethod
    def _none_value(cls, v):
        return "" if v is None else v

    @field_validator("extra_price", mode="before")
    @classmethod
    def _none_price(cls, v):
        return 0.0 if v in (None, "") else v


class ProductSnapshot(BaseModel):
    """Product data copied into the cart at add time."""
    id: str
    name: str
    price: float = Field(..., ge=0)
    image_url: Optional[str] = None


class CartLine(BaseModel):
    line_id: str = Field(..., description="Identifier of this customization group")
    product_id: Optional[str] = Field(None, description="Catalog product reference")
    name: str
    unit_price: float = Field(..., description="Price per unit at the time of adding to cart")
    quantity: int = Field(1, ge=1, description="Quantity of the line")
    modifiers: List[Modifier] = Field(default_factory=list)
    image_url: Optional[str] = None

    @computed_field
    @property
    def subtotal(self) -> float:
        return self.unit_price * self.quantity


class EditingOrder(BaseModel):
    """Reference to a persisted order loaded into the cart for editing."""
    id: Optional[str] = None
    status: str = "pending"
    folio: Optional[int] = None


# ---------- persisted order payload (edit hand-off) ----------
class PersistedOrderItem(BaseModel):
    model_config = {"extra": "ignore"}

    id: Optional[str] = None
    product_id: Optional[str] = None
    name: Optional[str] = None
    price: Optional[float] = None
    quantity: Optional[int] = None
    modifiers: Optional[List[Modifier]] = None
    image_url: Optional[str] = None

    @field_validator("id", "product_id", mode="before")
    @classmethod
    def _ids_as_text(cls, v):
        return _text_or_none(v)


class PersistedOrder(BaseModel):
    model_config = {"extra": "ignore"}

    id: Optional[str] = None
    status: Optional[str] = None
    folio: Optional[int] = None
    items: List[PersistedOrderItem] = Field(default_factory=list)
    customer_name: Optional[str] = None
    order_type: Optional[OrderType] = None
    payment_method: Optional[PaymentMethod] = None
    table_number: Optional[str] = None
    delivery_address: Optional[str] = None
    notes: Optional[str] = None

    @field_validator("items", mode="before")
    @classmethod
    def _none_items(cls, v):
        return [] if v is None else v

    @field_validator("table_number", mode="before")
    @classmethod
    def _table_as_text(cls, v):
        return _text_or_none(v)


# ---------- API bodies ----------
class AddItemBody(BaseModel):
    """Add a catalog product to the terminal cart."""
    product_id: str = Field(..., min_length=1, description="Catalog product id")
    modifiers: List[Modifier] = Field(default_factory=list)
    note: Optional[str] = Field(None, description="Free-text customization, stored as a 'Nota' modifier")
    quantity: int = Field(1, ge=1, le=10000, description="Quantity (>=1)")


class QuantityDelta(BaseModel):
    delta: int = Field(..., description="Signed quantity change; the result never drops below 1")


class CartMetadataUpdate(BaseModel):
    order_type: Optional[OrderType] = None
    payment_method: Optional[PaymentMethod] = None
    customer_name: Optional[str] = None
    table_number: Optional[str] = None
    delivery_address: Optional[str] = None
    notes: Optional[str] = None


class CartOut(BaseModel):
    lines: List[CartLine] = Field(default_factory=list)
    order_type: OrderType
    payment_method: PaymentMethod
    customer_name: str
    table_number: str
    delivery_address: str
    notes: str
    editing_order: Optional[EditingOrder] = None
    total: float
    item_count: int
