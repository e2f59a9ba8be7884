"""Sample retail dataset.

Creates categories, locations, customers, products and sales through the store's ``insert``
so every row passes the same constraint checks as any other write.

The Coffee Maker sale has no explicit date and takes the store clock's current date.
"""

import logging
from datetime import date
from decimal import Decimal
from typing import (
    Any,
    Dict,
    List,
    Optional,
)

from .clock import Clock
from .entities import Entity
from .store import TableStore


logger = logging.getLogger(__name__)


CATEGORIES: List[Dict[str, Any]] = [
    {"name": "Electronics", "description": "Electronic devices and accessories"},
    {"name": "Clothing", "description": "Apparel and fashion items"},
    {"name": "Books", "description": "Books and publications"},
    {"name": "Home & Kitchen", "description": "Home and kitchen appliances"},
]

LOCATIONS: List[Dict[str, Any]] = [
    {"city": "New York", "state": "NY", "region": "Northeast"},
    {"city": "Los Angeles", "state": "CA", "region": "West"},
    {"city": "Chicago", "state": "IL", "region": "Midwest"},
    {"city": "Houston", "state": "TX", "region": "South"},
]

# location_id refers to the position in LOCATIONS (1-based)
CUSTOMERS: List[Dict[str, Any]] = [
    {"first_name": "John", "last_name": "Doe", "email": "john.doe@email.com", "location_id": 1},
    {"first_name": "Jane", "last_name": "Smith", "email": "jane.smith@email.com", "location_id": 2},
    {"first_name": "Bob", "last_name": "Johnson", "email": "bob.johnson@email.com", "location_id": 3},
    {"first_name": "Alice", "last_name": "Brown", "email": "alice.brown@email.com", "location_id": 4},
]

# category_id refers to the position in CATEGORIES (1-based)
PRODUCTS: List[Dict[str, Any]] = [
    {"name": "Smartphone", "category_id": 1, "unit_price": Decimal("699.99"), "stock_quantity": 50},
    {"name": "T-Shirt", "category_id": 2, "unit_price": Decimal("19.99"), "stock_quantity": 100},
    {"name": "Novel", "category_id": 3, "unit_price": Decimal("14.99"), "stock_quantity": 75},
    {"name": "Coffee Maker", "category_id": 4, "unit_price": Decimal("89.99"), "stock_quantity": 30},
]

SALES: List[Dict[str, Any]] = [
    {"customer_id": 1, "product_id": 1, "quantity": 1, "sale_date": date(2024, 1, 15), "unit_price": Decimal("699.99")},
    {"customer_id": 2, "product_id": 2, "quantity": 3, "sale_date": date(2024, 1, 16), "unit_price": Decimal("19.99")},
    {"customer_id": 3, "product_id": 3, "quantity": 2, "sale_date": date(2024, 1, 16), "unit_price": Decimal("14.99")},
    {"customer_id": 4, "product_id": 4, "quantity": 1, "unit_price": Decimal("89.99")},
]


def load_sample_data(store: TableStore) -> TableStore:
    """Insert the sample dataset into a store.

    Rows are inserted in dependency order and reference each other by position, so the
    store is expected to be empty.

    Args:
        store: Store to populate.

    Returns:
        The same store, for chaining.

    Raises:
        ConstraintViolation: If a sample row is rejected (e.g. the store already holds rows
            with conflicting emails).
    """
    for entity, rows in (
        (Entity.CATEGORY, CATEGORIES),
        (Entity.LOCATION, LOCATIONS),
        (Entity.CUSTOMER, CUSTOMERS),
        (Entity.PRODUCT, PRODUCTS),
        (Entity.SALE, SALES),
    ):
        for row in rows:
            store.insert(entity, row)
        logger.info("Loaded %d %s rows", len(rows), entity.value)

    return store


def create_sample_store(clock: Optional[Clock] = None) -> TableStore:
    """Create a new store populated with the sample dataset.

    Args:
        clock: Clock for current-date defaults. Defaults to the system clock.
    """
    return load_sample_data(TableStore(clock=clock))
