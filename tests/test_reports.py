"""Tests for ReportEngine over the sample dataset."""

from datetime import date
from decimal import Decimal

import pytest
from pydantic import ValidationError

from retail_reports import (
    Entity,
    FixedClock,
    ReportEngine,
    ReportingSettings,
    TableStore,
    create_sample_store,
)
from retail_reports.reports import (
    CategoryRevenue,
    CustomerActivity,
    DailySales,
    LowStockItem,
)


def add_sale(store: TableStore, customer_id: int, product_id: int, quantity: int, price: str, day: date) -> int:
    return store.insert(
        Entity.SALE,
        {
            "customer_id": customer_id,
            "product_id": product_id,
            "quantity": quantity,
            "unit_price": Decimal(price),
            "sale_date": day,
        },
    )


# ============================================================================
# Analytical Reports
# ============================================================================


class TestCategoryRevenue:
    """Tests for the category revenue report."""

    def test_sample_data(self, engine: ReportEngine) -> None:
        """Four categories with one sale each, highest revenue first."""
        assert engine.category_revenue() == [
            CategoryRevenue(category_name="Electronics", total_sales=1, total_revenue=Decimal("699.99")),
            CategoryRevenue(category_name="Home & Kitchen", total_sales=1, total_revenue=Decimal("89.99")),
            CategoryRevenue(category_name="Clothing", total_sales=1, total_revenue=Decimal("59.97")),
            CategoryRevenue(category_name="Books", total_sales=1, total_revenue=Decimal("29.98")),
        ]

    def test_groups_multiple_sales(self, sample_store: TableStore, engine: ReportEngine) -> None:
        """Additional sales add to their category's count and revenue and can change the ranking."""
        add_sale(sample_store, 3, 3, 50, "14.99", date(2024, 1, 18))

        books = engine.category_revenue()[0]
        assert books.category_name == "Books"
        assert books.total_sales == 2
        assert books.total_revenue == Decimal("779.48")

    def test_products_without_category_are_excluded(self, sample_store: TableStore, engine: ReportEngine) -> None:
        """Inner join: sales of uncategorized products do not form a group."""
        product_id = sample_store.insert(Entity.PRODUCT, {"name": "Mystery Box", "unit_price": Decimal("5.00")})
        add_sale(sample_store, 1, product_id, 1, "5.00", date(2024, 1, 18))

        assert [row.category_name for row in engine.category_revenue()] == [
            "Electronics",
            "Home & Kitchen",
            "Clothing",
            "Books",
        ]

    def test_equal_revenue_keeps_insertion_order(self, store: TableStore) -> None:
        """Ties are broken by category insertion order."""
        store.insert(Entity.CATEGORY, {"name": "Zeta"})
        store.insert(Entity.CATEGORY, {"name": "Alpha"})
        store.insert(Entity.PRODUCT, {"name": "Z", "category_id": 1, "unit_price": Decimal("10.00")})
        store.insert(Entity.PRODUCT, {"name": "A", "category_id": 2, "unit_price": Decimal("10.00")})
        store.insert(Entity.CUSTOMER, {"first_name": "Ann", "last_name": "Lee"})
        add_sale(store, 1, 2, 1, "10.00", date(2024, 1, 2))
        add_sale(store, 1, 1, 1, "10.00", date(2024, 1, 3))

        names = [row.category_name for row in ReportEngine(store).category_revenue()]
        assert names == ["Zeta", "Alpha"]


class TestCustomerPurchaseHistory:
    """Tests for the customer purchase history report."""

    def test_sample_data(self, engine: ReportEngine) -> None:
        """Every customer appears with one purchase, biggest spender first."""
        rows = engine.customer_purchase_history()

        assert [(row.customer_name, row.city, row.purchase_count, row.total_spent) for row in rows] == [
            ("John Doe", "New York", 1, Decimal("699.99")),
            ("Alice Brown", "Houston", 1, Decimal("89.99")),
            ("Jane Smith", "Los Angeles", 1, Decimal("59.97")),
            ("Bob Johnson", "Chicago", 1, Decimal("29.98")),
        ]

    def test_customer_without_sales(self, sample_store: TableStore, engine: ReportEngine) -> None:
        """A customer without sales appears last with zero purchases and a zero total."""
        sample_store.insert(
            Entity.CUSTOMER,
            {"first_name": "Eve", "last_name": "Adams", "email": "eve@email.com", "location_id": 1},
        )

        rows = engine.customer_purchase_history()

        assert len(rows) == 5
        assert rows[-1].customer_name == "Eve Adams"
        assert rows[-1].purchase_count == 0
        assert rows[-1].total_spent == Decimal("0")
        assert rows[-1].total_spent is not None

    def test_customer_without_location_is_excluded(self, sample_store: TableStore, engine: ReportEngine) -> None:
        """Inner join with location: customers without one are left out."""
        sample_store.insert(Entity.CUSTOMER, {"first_name": "No", "last_name": "Where"})

        assert "No Where" not in [row.customer_name for row in engine.customer_purchase_history()]


class TestProductPerformance:
    """Tests for the product performance report."""

    def test_sample_data(self, engine: ReportEngine) -> None:
        """Units sold descending; Smartphone precedes Coffee Maker on the tie."""
        rows = engine.product_performance()

        assert [(row.product_name, row.category_name, row.units_sold, row.revenue) for row in rows] == [
            ("T-Shirt", "Clothing", 3, Decimal("59.97")),
            ("Novel", "Books", 2, Decimal("29.98")),
            ("Smartphone", "Electronics", 1, Decimal("699.99")),
            ("Coffee Maker", "Home & Kitchen", 1, Decimal("89.99")),
        ]

    def test_units_accumulate(self, sample_store: TableStore, engine: ReportEngine) -> None:
        """Units from several sales of the same product are summed."""
        add_sale(sample_store, 2, 4, 4, "80.00", date(2024, 1, 19))

        top = engine.product_performance()[0]
        assert (top.product_name, top.units_sold, top.revenue) == ("Coffee Maker", 5, Decimal("409.99"))


class TestRegionalSales:
    """Tests for the regional sales report."""

    def test_sample_data(self, engine: ReportEngine) -> None:
        """One sale per region, highest revenue first."""
        rows = engine.regional_sales()

        assert [(row.region, row.total_sales, row.total_revenue, row.avg_sale_amount) for row in rows] == [
            ("Northeast", 1, Decimal("699.99"), Decimal("699.99")),
            ("South", 1, Decimal("89.99"), Decimal("89.99")),
            ("West", 1, Decimal("59.97"), Decimal("59.97")),
            ("Midwest", 1, Decimal("29.98"), Decimal("29.98")),
        ]

    def test_average_rounds_to_cents(self, sample_store: TableStore, engine: ReportEngine) -> None:
        """The average sale amount is rounded half-up to two places."""
        add_sale(sample_store, 3, 3, 1, "0.01", date(2024, 1, 19))
        add_sale(sample_store, 3, 3, 1, "0.01", date(2024, 1, 19))

        midwest = next(row for row in engine.regional_sales() if row.region == "Midwest")
        assert midwest.total_sales == 3
        assert midwest.total_revenue == Decimal("30.00")
        assert midwest.avg_sale_amount == Decimal("10.00")

    def test_regions_merge_locations(self, sample_store: TableStore, engine: ReportEngine) -> None:
        """Sales from different cities in the same region are grouped together."""
        location_id = sample_store.insert(Entity.LOCATION, {"city": "Boston", "state": "MA", "region": "Northeast"})
        customer_id = sample_store.insert(
            Entity.CUSTOMER, {"first_name": "Tom", "last_name": "Hill", "location_id": location_id}
        )
        add_sale(sample_store, customer_id, 2, 1, "20.01", date(2024, 1, 19))

        northeast = engine.regional_sales()[0]
        assert (northeast.region, northeast.total_sales, northeast.total_revenue) == (
            "Northeast",
            2,
            Decimal("720.00"),
        )
        assert northeast.avg_sale_amount == Decimal("360.00")


class TestDailySalesTrend:
    """Tests for the daily sales trend report."""

    def test_sample_data(self, engine: ReportEngine) -> None:
        """Dated sales group by day; the undated sample sale falls on the clock date."""
        assert engine.daily_sales_trend() == [
            DailySales(sale_date=date(2024, 1, 15), total_sales=1, daily_revenue=Decimal("699.99")),
            DailySales(sale_date=date(2024, 1, 16), total_sales=2, daily_revenue=Decimal("89.95")),
            DailySales(sale_date=date(2024, 1, 20), total_sales=1, daily_revenue=Decimal("89.99")),
        ]

    def test_undated_sale_joins_existing_day(self) -> None:
        """With the clock on 2024-01-16 the undated sample sale merges into that day's group."""
        engine = ReportEngine(create_sample_store(clock=FixedClock(date(2024, 1, 16))))

        assert engine.daily_sales_trend() == [
            DailySales(sale_date=date(2024, 1, 15), total_sales=1, daily_revenue=Decimal("699.99")),
            DailySales(sale_date=date(2024, 1, 16), total_sales=3, daily_revenue=Decimal("179.94")),
        ]

    def test_orders_by_date_not_insertion(self, sample_store: TableStore, engine: ReportEngine) -> None:
        """A sale backdated before all others comes first."""
        add_sale(sample_store, 1, 2, 1, "19.99", date(2023, 12, 31))

        assert engine.daily_sales_trend()[0].sale_date == date(2023, 12, 31)


# ============================================================================
# Monitoring Queries
# ============================================================================


class TestLowStock:
    """Tests for the low stock query."""

    def test_sample_data_has_no_low_stock(self, engine: ReportEngine) -> None:
        """All sample products have at least 30 units."""
        assert engine.low_stock() == []

    def test_reduced_stock_is_reported(self, sample_store: TableStore, engine: ReportEngine) -> None:
        """Products updated below the threshold appear, lowest stock first."""
        sample_store.update(Entity.PRODUCT, 3, stock_quantity=15)
        sample_store.update(Entity.PRODUCT, 4, stock_quantity=5)

        assert engine.low_stock() == [
            LowStockItem(product_name="Coffee Maker", stock_quantity=5, unit_price=Decimal("89.99")),
            LowStockItem(product_name="Novel", stock_quantity=15, unit_price=Decimal("14.99")),
        ]

    def test_threshold_is_exclusive(self, sample_store: TableStore, engine: ReportEngine) -> None:
        """Stock equal to the threshold is not low."""
        sample_store.update(Entity.PRODUCT, 1, stock_quantity=20)
        assert engine.low_stock() == []

    def test_threshold_override_and_settings(self, sample_store: TableStore) -> None:
        """The threshold comes from the argument, then from settings."""
        engine = ReportEngine(sample_store, settings=ReportingSettings(low_stock_threshold=40))

        assert [row.product_name for row in engine.low_stock()] == ["Coffee Maker"]
        assert [row.product_name for row in engine.low_stock(threshold=80)] == [
            "Coffee Maker",
            "Smartphone",
            "Novel",
        ]


class TestCustomerInactivity:
    """Tests for the customer inactivity query."""

    def test_sample_data(self, engine: ReportEngine) -> None:
        """Most recent purchase first; equal dates keep insertion order."""
        rows = engine.customer_inactivity()

        assert [(row.customer_name, row.last_purchase_date, row.days_since_last_purchase) for row in rows] == [
            ("Alice Brown", date(2024, 1, 20), 0),
            ("Jane Smith", date(2024, 1, 16), 4),
            ("Bob Johnson", date(2024, 1, 16), 4),
            ("John Doe", date(2024, 1, 15), 5),
        ]
        assert all(row.purchase_count == 1 for row in rows)

    def test_customers_without_purchases_sort_last(self, sample_store: TableStore, engine: ReportEngine) -> None:
        """Customers without purchases have no date or day count and come last."""
        customer_id = sample_store.insert(
            Entity.CUSTOMER, {"first_name": "Eve", "last_name": "Adams", "email": "eve@email.com"}
        )

        last = engine.customer_inactivity()[-1]
        assert last == CustomerActivity(
            customer_id=customer_id,
            customer_name="Eve Adams",
            email="eve@email.com",
            purchase_count=0,
            last_purchase_date=None,
            days_since_last_purchase=None,
        )

    def test_days_follow_engine_clock(self, sample_store: TableStore) -> None:
        """Day counts use the engine's clock."""
        engine = ReportEngine(sample_store, clock=FixedClock(date(2024, 2, 15)))

        john = next(row for row in engine.customer_inactivity() if row.customer_name == "John Doe")
        assert john.days_since_last_purchase == 31


# ============================================================================
# Engine
# ============================================================================


class TestEngine:
    """Tests for report dispatch and read-only behavior."""

    def test_report_names(self) -> None:
        """All seven reports are available by name."""
        assert ReportEngine.report_names() == [
            "category_revenue",
            "customer_purchase_history",
            "product_performance",
            "regional_sales",
            "daily_sales_trend",
            "low_stock",
            "customer_inactivity",
        ]

    def test_run_by_name(self, engine: ReportEngine) -> None:
        """run() dispatches to the report method."""
        assert engine.run("category_revenue") == engine.category_revenue()

    def test_run_unknown_report(self, engine: ReportEngine) -> None:
        """Unknown report names raise KeyError."""
        with pytest.raises(KeyError):
            engine.run("top_suppliers")

    @pytest.mark.parametrize("name", ReportEngine.REPORTS)
    def test_reports_on_empty_store(self, store: TableStore, name: str) -> None:
        """Reports return an empty list for an empty store."""
        assert ReportEngine(store).run(name) == []

    @pytest.mark.parametrize("name", ReportEngine.REPORTS)
    def test_reports_do_not_modify_store(self, sample_store: TableStore, engine: ReportEngine, name: str) -> None:
        """Running a report leaves every table unchanged."""
        before = {entity: list(sample_store.scan_all(entity)) for entity in Entity}

        engine.run(name)

        assert {entity: list(sample_store.scan_all(entity)) for entity in Entity} == before

    def test_results_are_immutable(self, engine: ReportEngine) -> None:
        """Result rows cannot be modified."""
        row = engine.category_revenue()[0]
        with pytest.raises(ValidationError):
            row.total_sales = 10  # type: ignore[misc]

    def test_from_env(self, sample_store: TableStore, monkeypatch: pytest.MonkeyPatch) -> None:
        """from_env reads the threshold from the environment."""
        monkeypatch.setenv("RETAIL_REPORTS_LOW_STOCK_THRESHOLD", "60")
        monkeypatch.setenv("RETAIL_REPORTS_LOG_LEVEL", "debug")

        engine = ReportEngine.from_env(sample_store)

        assert engine.settings.low_stock_threshold == 60
        assert engine.settings.log_level == "DEBUG"
        assert [row.product_name for row in engine.low_stock()] == ["Coffee Maker", "Smartphone"]
