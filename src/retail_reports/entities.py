"""Entity definitions for the retail sales dataset."""

from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
)


# Upper bound for integer columns (32-bit signed)
MAX_INT = 2**31 - 1


class Entity(str, Enum):
    """Entity (table) names."""

    CATEGORY = "category"
    LOCATION = "location"
    CUSTOMER = "customer"
    PRODUCT = "product"
    SALE = "sale"


class Row(BaseModel):
    """Base class for stored rows.

    Rows are immutable once validated. The store replaces a row instead of mutating it.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: int = Field(..., gt=0, description="Primary key")


class Category(Row):
    """Product category."""

    name: str = Field(..., min_length=1, max_length=50, description="Category name")
    description: Optional[str] = Field(None, description="Category description")


class Location(Row):
    """Customer location."""

    city: str = Field(..., min_length=1, max_length=50, description="City")
    state: Optional[str] = Field(None, max_length=50, description="State")
    region: Optional[str] = Field(None, max_length=50, description="Sales region")


class Customer(Row):
    """Customer master data."""

    first_name: str = Field(..., min_length=1, max_length=50, description="First name")
    last_name: str = Field(..., min_length=1, max_length=50, description="Last name")
    email: Optional[str] = Field(None, max_length=100, description="Email address (unique when present)")
    location_id: Optional[int] = Field(None, description="Reference to location")
    join_date: date = Field(..., description="Date the customer joined")

    @property
    def full_name(self) -> str:
        """First and last name separated by a space."""
        return f"{self.first_name} {self.last_name}"


class Product(Row):
    """Product master data with current price and stock."""

    name: str = Field(..., min_length=1, max_length=100, description="Product name")
    category_id: Optional[int] = Field(None, description="Reference to category")
    unit_price: Decimal = Field(..., gt=0, max_digits=10, decimal_places=2, description="Current selling price")
    stock_quantity: int = Field(default=0, ge=0, le=MAX_INT, description="Units in stock")
    is_active: bool = Field(default=True, description="Whether the product is sold")


class Sale(Row):
    """Sale line.

    ``unit_price`` is captured at sale time and is independent of the product's current price.
    ``total_amount`` is derived from ``quantity * unit_price`` and cannot be supplied by callers.
    """

    customer_id: int = Field(..., description="Reference to customer")
    product_id: int = Field(..., description="Reference to product")
    quantity: int = Field(..., gt=0, le=MAX_INT, description="Units sold")
    sale_date: date = Field(..., description="Date of sale")
    unit_price: Decimal = Field(..., gt=0, max_digits=10, decimal_places=2, description="Price per unit at sale time")
    total_amount: Optional[Decimal] = Field(None, description="Derived line total")
