"""
Pydantic Schemas for Request/Response Validation

Request bodies for orders and the catalog, and the fully materialised
order aggregate (table + items with their products) returned by every
order endpoint.
"""

import datetime as dt
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from table_orders.core.exceptions import InvalidInput
from table_orders.services.dates import parse_business_date


# =============================================================================
# REQUEST SCHEMAS
# =============================================================================

class OrderItemCreate(BaseModel):
    """Single product line in an order request."""
    product_id: int = Field(..., gt=0, examples=[1])
    quantity: int = Field(..., gt=0, examples=[2])


class OrderCreate(BaseModel):
    """
    Request schema for creating an order, and for replacing one with PUT.

    The date is the business day the order belongs to (YYYY-MM-DD).
    """
    table_id: int = Field(..., gt=0, examples=[1])
    date: dt.date = Field(..., examples=["2024-03-10"])
    items: List[OrderItemCreate] = Field(..., min_length=1)

    @field_validator("date", mode="before")
    @classmethod
    def validate_date(cls, v):
        if isinstance(v, dt.date):
            return v
        if not isinstance(v, str):
            raise ValueError("Invalid date format for order. Use YYYY-MM-DD")
        try:
            return parse_business_date(v)
        except InvalidInput as exc:
            raise ValueError(exc.message)

    def item_lines(self) -> list[tuple[int, int]]:
        return [(item.product_id, item.quantity) for item in self.items]


class KitchenStatusUpdate(BaseModel):
    """New kitchen status: Waiting, Preparing or Ready."""
    status: str = Field(..., min_length=1, examples=["Preparing"])


class ProductCreate(BaseModel):
    name: str = Field(..., min_length=3, max_length=100, examples=["Pizza Margherita"])
    price: float = Field(..., gt=0, examples=[14.99])
    stock: int = Field(..., ge=0, examples=[25])


class TableCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100, examples=["Terrace 1"])
    capacity: int = Field(..., gt=0, examples=[4])
    single_tab: bool = Field(default=False)


class TableUpdate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    capacity: int = Field(..., gt=0)
    single_tab: Optional[bool] = Field(
        default=None,
        description="Leave out to keep the current policy"
    )


# =============================================================================
# RESPONSE SCHEMAS
# =============================================================================

class ProductResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    price: float
    stock: int


class TableResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    capacity: int
    single_tab: bool


class OrderItemResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    product_id: int
    quantity: int
    product: ProductResponse


class OrderResponse(BaseModel):
    """The order aggregate: table and items-with-product, never partial."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    table_id: int
    table: TableResponse
    status: str
    kitchen_status: str
    date: dt.date
    created_at: Optional[dt.datetime]
    updated_at: Optional[dt.datetime]
    items: List[OrderItemResponse]

    @field_validator("status", "kitchen_status", mode="before")
    @classmethod
    def enum_value(cls, v):
        return getattr(v, "value", v)


class MessageResponse(BaseModel):
    """Response for operations that only report an outcome."""
    success: bool = True
    message: str


class ErrorResponse(BaseModel):
    """Standard error response."""
    success: bool = False
    error: str
    detail: Optional[str] = None


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    database: str
    environment: str
    timestamp: dt.datetime
