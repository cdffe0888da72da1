# gourmetclick/schemas/order.py
from __future__ import annotations

from typing import Optional, List, Literal, Any, Dict
from datetime import datetime
from pydantic import BaseModel, Field

from gourmetclick.schemas.cart import Modifier, OrderType, PaymentMethod

# Order statuses (kitchen flow)
OrderStatus = Literal[
    "pending",
    "confirmed",
    "preparing",
    "ready",
    "on_the_way",
    "delivered",
    "cancelled",
]

OrderListMode = Literal["active", "caja", "historial"]

# keep extra fields on legacy documents
class _Base(BaseModel):
    model_config = {"extra": "allow"}

# (Input) item sent by clients or snapshotted from the cart
class OrderItem(_Base):
    id: Optional[str] = None
    product_id: Optional[str] = None
    name: Optional[str] = None
    quantity: int = Field(1, ge=1)
    price: Optional[float] = Field(None, ge=0)
    unit_price: Optional[float] = Field(None, ge=0)
    modifiers: List[Modifier] = Field(default_factory=list)
    image_url: Optional[str] = None

# (Output) stored line with its price snapshot
class OrderItemOut(_Base):
    id: Optional[str] = None
    product_id: Optional[str] = None
    name: str
    quantity: int = 1
    price: float
    unit_price: float
    subtotal: float
    modifiers: List[Modifier] = Field(default_factory=list)
    image_url: Optional[str] = None

class AuditEntry(_Base):
    action: str
    timestamp: str
    user: str
    details: str = ""

# (Input) order creation payload (public menu, integrations)
class OrderCreate(_Base):
    items: List[OrderItem] = Field(default_factory=list)
    order_type: OrderType = "dine_in"
    payment_method: PaymentMethod = "cash"
    customer_name: Optional[str] = None
    customer_phone: Optional[str] = None
    table_number: Optional[str] = None
    delivery_address: Optional[str] = None
    notes: Optional[str] = None
    status: Optional[OrderStatus] = None

# (Input) editable fields of an existing order
class OrderUpdate(BaseModel):
    items: Optional[List[OrderItem]] = None
    order_type: Optional[OrderType] = None
    payment_method: Optional[PaymentMethod] = None
    customer_name: Optional[str] = None
    table_number: Optional[str] = None
    delivery_address: Optional[str] = None
    notes: Optional[str] = None

class StatusUpdate(BaseModel):
    status: OrderStatus

# (Output) order with all details
class OrderOut(_Base):
    id: str
    tenant_id: str
    folio: Optional[int] = None
    tracking_id: Optional[str] = None
    status: OrderStatus
    order_type: OrderType = "dine_in"
    payment_method: PaymentMethod = "cash"
    customer_name: Optional[str] = None
    table_number: Optional[str] = None
    delivery_address: Optional[str] = None
    notes: Optional[str] = None
    items: List[OrderItemOut] = Field(default_factory=list)
    total: float = 0.0
    cash_session_id: Optional[str] = None
    cash_cut_id: Optional[str] = None
    audit_log: List[AuditEntry] = Field(default_factory=list)
    closed_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

class OrderPage(BaseModel):
    data: List[OrderOut]
    count: int

# Public tracking view (no audit data)
class OrderTrackingOut(BaseModel):
    tracking_id: Optional[str] = None
    folio: Optional[int] = None
    status: OrderStatus
    order_type: OrderType
    items: List[Dict[str, Any]] = Field(default_factory=list)
    total: float
    created_at: Optional[datetime] = None
