"""Aggregation engine: the fixed sales reports and monitoring queries.

Every report is a read-only pipeline over the table store (join, group, aggregate, order)
returning a list of frozen result rows. Reports never fail on empty tables.

Ordering ties keep the store's insertion order: groups are created in the order the driving
table is scanned and the final sort is stable.
"""

import logging
from datetime import date
from decimal import (
    ROUND_HALF_UP,
    Decimal,
)
from typing import (
    Any,
    Callable,
    Dict,
    Hashable,
    Iterable,
    List,
    Optional,
    Sequence,
    Tuple,
    TypeVar,
)

from pydantic import (
    BaseModel,
    ConfigDict,
)

from .clock import Clock
from .config import ReportingSettings
from .derived import CENTS
from .entities import (
    Entity,
    Row,
    Sale,
)
from .store import TableStore
from .utils import configure_logging


logger = logging.getLogger(__name__)

ResultT = TypeVar("ResultT", bound=BaseModel)

ZERO = Decimal("0.00")


# ==============================================================================
# Result Rows
# ==============================================================================


class ReportRow(BaseModel):
    """Base class for report result rows."""

    model_config = ConfigDict(frozen=True)


class CategoryRevenue(ReportRow):
    """Revenue per product category."""

    category_name: str
    total_sales: int
    total_revenue: Decimal


class CustomerPurchaseHistory(ReportRow):
    """Purchases per customer and city."""

    customer_name: str
    city: str
    purchase_count: int
    total_spent: Decimal


class ProductPerformance(ReportRow):
    """Units sold and revenue per product."""

    product_name: str
    category_name: str
    units_sold: int
    revenue: Decimal


class RegionalSales(ReportRow):
    """Sales per customer region."""

    region: Optional[str]
    total_sales: int
    total_revenue: Decimal
    avg_sale_amount: Decimal


class DailySales(ReportRow):
    """Sales per day."""

    sale_date: date
    total_sales: int
    daily_revenue: Decimal


class LowStockItem(ReportRow):
    """Product whose stock is under the alert threshold."""

    product_name: str
    stock_quantity: int
    unit_price: Decimal


class CustomerActivity(ReportRow):
    """Purchase recency per customer.

    ``last_purchase_date`` and ``days_since_last_purchase`` are None for customers without purchases.
    """

    customer_id: int
    customer_name: str
    email: Optional[str]
    purchase_count: int
    last_purchase_date: Optional[date]
    days_since_last_purchase: Optional[int]


# ==============================================================================
# Pipeline Helpers
# ==============================================================================


def _total(sales: Iterable[Sale]) -> Decimal:
    return sum((sale.total_amount or ZERO for sale in sales), ZERO)


def _group_by(pairs: Iterable[Tuple[Hashable, Any]]) -> Dict[Any, List[Any]]:
    """Group values by key, keeping first-seen key order and value order."""
    groups: Dict[Any, List[Any]] = {}
    for key, value in pairs:
        groups.setdefault(key, []).append(value)
    return groups


def _order(rows: Sequence[ResultT], key: Callable[[ResultT], Any], descending: bool = False) -> List[ResultT]:
    """Stable sort; equal keys keep their current order in both directions."""
    return sorted(rows, key=key, reverse=descending)


class ReportEngine:
    """Runs the named reports against a table store.

    Usage:
        engine = ReportEngine(store, clock=FixedClock(date(2024, 2, 1)))
        for row in engine.category_revenue():
            print(row.category_name, row.total_revenue)

        engine.run("daily_sales_trend")
    """

    REPORTS: Tuple[str, ...] = (
        "category_revenue",
        "customer_purchase_history",
        "product_performance",
        "regional_sales",
        "daily_sales_trend",
        "low_stock",
        "customer_inactivity",
    )

    def __init__(
        self,
        store: TableStore,
        clock: Optional[Clock] = None,
        settings: Optional[ReportingSettings] = None,
    ) -> None:
        """Initialize the engine.

        Args:
            store: Table store to read from.
            clock: Clock for day counts. Defaults to the store's clock.
            settings: Report settings. Defaults to ``ReportingSettings()``.
        """
        self.store = store
        self.clock: Clock = clock or store.clock
        self.settings = settings or ReportingSettings()

    @classmethod
    def from_env(cls, store: TableStore, clock: Optional[Clock] = None) -> "ReportEngine":
        """Create an engine with settings read from the environment and logging configured.

        See ``ReportingSettings.from_env`` for the variables read.
        """
        settings = ReportingSettings.from_env()
        configure_logging(name="retail_reports", level=settings.log_level)
        return cls(store, clock=clock, settings=settings)

    @classmethod
    def report_names(cls) -> List[str]:
        """Names accepted by ``run``."""
        return list(cls.REPORTS)

    def run(self, name: str) -> List[ReportRow]:
        """Run a report by name.

        Raises:
            KeyError: If the report name is unknown.
        """
        if name not in self.REPORTS:
            raise KeyError(f"Unknown report '{name}'. Available: {', '.join(self.REPORTS)}")
        rows: List[ReportRow] = getattr(self, name)()
        logger.debug("Report %s returned %d rows", name, len(rows))
        return rows

    def _sales_by(self, entity: Entity, sale_key: str) -> Dict[int, List[Row]]:
        """Sales grouped by the id of the referenced row."""
        return _group_by(
            (left.id, sale) for left, sale in self.store.join(entity, Entity.SALE, "id", sale_key)
        )

    # ==============================================================================
    # Analytical Reports
    # ==============================================================================

    def category_revenue(self) -> List[CategoryRevenue]:
        """Number of sales and revenue per category, highest revenue first."""
        sales_by_product = self._sales_by(Entity.PRODUCT, "product_id")
        groups = _group_by(
            (category.name, sale)
            for category, product in self.store.join(Entity.CATEGORY, Entity.PRODUCT, "id", "category_id")
            for sale in sales_by_product.get(product.id, [])
        )

        rows = [
            CategoryRevenue(category_name=name, total_sales=len(sales), total_revenue=_total(sales))
            for name, sales in groups.items()
        ]
        return _order(rows, key=lambda row: row.total_revenue, descending=True)

    def customer_purchase_history(self) -> List[CustomerPurchaseHistory]:
        """Purchase count and total spent per customer and city, biggest spender first.

        Customers without a location are excluded. Customers without sales are included with
        zero purchases and a zero total.
        """
        city_by_customer = {
            customer.id: location.city
            for customer, location in self.store.join(Entity.CUSTOMER, Entity.LOCATION, "location_id")
        }

        groups: Dict[Tuple[str, str], List[Sale]] = {}
        for customer, sale in self.store.join(Entity.CUSTOMER, Entity.SALE, "id", "customer_id", how="left"):
            if customer.id not in city_by_customer:
                continue
            bucket = groups.setdefault((customer.full_name, city_by_customer[customer.id]), [])
            if sale is not None:
                bucket.append(sale)

        rows = [
            CustomerPurchaseHistory(
                customer_name=name,
                city=city,
                purchase_count=len(sales),
                total_spent=_total(sales),
            )
            for (name, city), sales in groups.items()
        ]
        return _order(rows, key=lambda row: row.total_spent, descending=True)

    def product_performance(self) -> List[ProductPerformance]:
        """Units sold and revenue per product, most units first."""
        sales_by_product = self._sales_by(Entity.PRODUCT, "product_id")
        groups = _group_by(
            ((product.name, category.name), sale)
            for product, category in self.store.join(Entity.PRODUCT, Entity.CATEGORY, "category_id")
            for sale in sales_by_product.get(product.id, [])
        )

        rows = [
            ProductPerformance(
                product_name=product_name,
                category_name=category_name,
                units_sold=sum(sale.quantity for sale in sales),
                revenue=_total(sales),
            )
            for (product_name, category_name), sales in groups.items()
        ]
        return _order(rows, key=lambda row: row.units_sold, descending=True)

    def regional_sales(self) -> List[RegionalSales]:
        """Number of sales, revenue and average sale amount per region, highest revenue first.

        The average is rounded half-up to cents.
        """
        sales_by_customer = self._sales_by(Entity.CUSTOMER, "customer_id")
        groups = _group_by(
            (location.region, sale)
            for location, customer in self.store.join(Entity.LOCATION, Entity.CUSTOMER, "id", "location_id")
            for sale in sales_by_customer.get(customer.id, [])
        )

        rows = []
        for region, sales in groups.items():
            revenue = _total(sales)
            rows.append(
                RegionalSales(
                    region=region,
                    total_sales=len(sales),
                    total_revenue=revenue,
                    avg_sale_amount=(revenue / len(sales)).quantize(CENTS, rounding=ROUND_HALF_UP),
                )
            )
        return _order(rows, key=lambda row: row.total_revenue, descending=True)

    def daily_sales_trend(self) -> List[DailySales]:
        """Number of sales and revenue per sale date, oldest first."""
        groups = _group_by((sale.sale_date, sale) for sale in self.store.scan_all(Entity.SALE))

        rows = [
            DailySales(sale_date=sale_date, total_sales=len(sales), daily_revenue=_total(sales))
            for sale_date, sales in groups.items()
        ]
        return _order(rows, key=lambda row: row.sale_date)

    # ==============================================================================
    # Monitoring Queries
    # ==============================================================================

    def low_stock(self, threshold: Optional[int] = None) -> List[LowStockItem]:
        """Products with stock below the threshold, lowest stock first.

        Args:
            threshold: Stock level to compare against. Defaults to ``settings.low_stock_threshold``.
        """
        limit = self.settings.low_stock_threshold if threshold is None else threshold
        rows = [
            LowStockItem(
                product_name=product.name,
                stock_quantity=product.stock_quantity,
                unit_price=product.unit_price,
            )
            for product in self.store.scan_all(Entity.PRODUCT)
            if product.stock_quantity < limit
        ]
        return _order(rows, key=lambda row: row.stock_quantity)

    def customer_inactivity(self) -> List[CustomerActivity]:
        """Purchase recency per customer, most recent purchase first.

        Customers who never purchased come last, in insertion order, with no last purchase date
        and no day count.
        """
        today = self.clock.today()
        groups: Dict[int, Tuple[Row, List[Sale]]] = {}
        for customer, sale in self.store.join(Entity.CUSTOMER, Entity.SALE, "id", "customer_id", how="left"):
            _, sales = groups.setdefault(customer.id, (customer, []))
            if sale is not None:
                sales.append(sale)

        active: List[CustomerActivity] = []
        inactive: List[CustomerActivity] = []
        for customer, sales in groups.values():
            last_purchase = max((sale.sale_date for sale in sales), default=None)
            row = CustomerActivity(
                customer_id=customer.id,
                customer_name=customer.full_name,
                email=customer.email,
                purchase_count=len(sales),
                last_purchase_date=last_purchase,
                days_since_last_purchase=(today - last_purchase).days if last_purchase else None,
            )
            (active if last_purchase else inactive).append(row)

        return _order(active, key=lambda row: row.last_purchase_date, descending=True) + inactive
