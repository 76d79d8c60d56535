import math

import pytest

from app.bakery.schemas.orders import build_catalog, build_orders
from app.bakery.services.sales_report import SalesReportEngine
from tests.report_helpers import item_payload, order_payload


@pytest.fixture()
def engine(sales_orders, b2b_clients, catalog):
    return SalesReportEngine(sales_orders, b2b_clients, catalog)


@pytest.fixture()
def report(engine):
    return engine.summary_report().to_payload()


def test_report_sections(report):
    assert set(report) == {"summary", "salesMetrics", "productMetrics", "operationalMetrics", "taxMetrics"}


def test_complimentary_orders_are_split_out(engine, report):
    assert len(engine.orders) == 4
    assert len(engine.complimentary_orders) == 1
    assert report["summary"]["totalPaidOrders"] == 4
    assert report["summary"]["totalComplimentaryOrders"] == 1


def test_summary_totals(report):
    summary = report["summary"]

    assert summary["totalRevenue"] == 120000
    assert summary["totalSales"] == 111000
    assert summary["totalDelivery"] == 9000
    assert summary["totalB2B"] == 65000
    assert summary["totalB2C"] == 46000
    assert summary["percentageB2B"] == 58.6
    assert summary["percentageB2C"] == 41.4
    assert summary["currency"] == "COP"


def test_date_range(report):
    date_range = report["summary"]["dateRange"]

    assert date_range["start"].isoformat() == "2024-01-15T10:00:00+00:00"
    assert date_range["end"].isoformat() == "2024-01-20T10:00:00+00:00"
    assert date_range["totalDays"] == 6


def test_single_day_date_range():
    engine = SalesReportEngine(build_orders([order_payload(dueDate="2024-01-15T10:00:00Z")]))

    assert engine.date_range.total_days == 1
    assert engine.date_range.start == engine.date_range.end


def test_daily_buckets(report):
    daily = report["salesMetrics"]["total"]["daily"]

    assert list(daily) == ["2024-01-15", "2024-01-16", "2024-01-20"]
    first_day = daily["2024-01-15"]
    assert first_day["total"] == 72000
    assert first_day["sales"] == 63000
    assert first_day["delivery"] == 9000
    assert first_day["b2b"]["amount"] == 45000
    assert first_day["b2c"]["amount"] == 18000
    for day in daily.values():
        assert day["b2b"]["percentage"] + day["b2c"]["percentage"] == pytest.approx(100)


def test_weekly_and_monthly_rollups(report):
    ranges = report["salesMetrics"]["total"]

    week = ranges["weekly"]["2024-01-15/2024-01-21"]
    assert week["days"] == 3
    assert week["total"] == 120000
    assert week["sales"] == 111000
    assert week["delivery"] == 9000
    assert ranges["monthly"]["2024-01"]["days"] == 3


def test_averages(report):
    metrics = report["salesMetrics"]

    assert metrics["averageOrderValue"] == 30000
    assert metrics["averageOrderSales"] == 27750


def test_payment_methods_sum_to_hundred(report):
    methods = report["salesMetrics"]["byPaymentMethod"]

    assert set(methods) == {"card", "cash", "transfer"}
    assert methods["card"]["total"] == 72000
    assert methods["card"]["orderCount"] == 2
    assert methods["card"]["percentage"] == pytest.approx(60)
    assert sum(method["percentage"] for method in methods.values()) == pytest.approx(100, abs=1)


def test_sales_by_collection(report):
    collections = report["salesMetrics"]["byCollection"]

    assert set(collections) == {"Cakes", "Cupcakes", "Tarts", "Muffins"}
    assert collections["Cupcakes"]["quantity"] == 5
    assert collections["Cakes"]["revenue"] == 78000
    assert collections["Cakes"]["averagePrice"] == 9750
    assert sum(entry["percentageQuantity"] for entry in collections.values()) == pytest.approx(100)


def test_customer_segments_use_sales(report):
    segments = report["salesMetrics"]["byCustomerSegment"]

    assert segments["b2b"]["total"] == 65000
    assert segments["b2b"]["orders"] == 2
    assert segments["b2b"]["averagePrice"] == 32500
    assert segments["b2c"]["averagePrice"] == 23000
    assert segments["b2b"]["percentageRevenue"] + segments["b2c"]["percentageRevenue"] == pytest.approx(100)


def test_best_sellers(report):
    best = report["productMetrics"]["bestSellers"]

    assert best["byQuantity"][0]["productId"] == "prod-1"
    assert best["byQuantity"][0]["quantity"] == 6
    quantities = [entry["quantity"] for entry in best["byQuantity"]]
    assert quantities == sorted(quantities, reverse=True)
    revenues = [entry["revenue"] for entry in best["bySales"]]
    assert revenues == sorted(revenues, reverse=True)
    assert len(best["byQuantity"]) <= 10


def test_segment_best_sellers_only_include_segment_sales(report):
    best = report["productMetrics"]["bestSellers"]

    b2b_ids = [entry["productId"] for entry in best["b2b"]["bySales"]]
    b2c_ids = [entry["productId"] for entry in best["b2c"]["bySales"]]
    assert b2b_ids == ["prod-1", "prod-2"]
    assert "prod-3" not in b2b_ids
    assert "prod-2" not in b2c_ids
    assert "prod-5" in b2c_ids
    b2b_cake = next(entry for entry in best["b2b"]["byQuantity"] if entry["productId"] == "prod-1")
    assert b2b_cake["quantity"] == 5
    b2b_cupcake = next(entry for entry in best["b2b"]["byQuantity"] if entry["productId"] == "prod-2")
    assert b2b_cupcake["quantity"] == 5


def test_segment_percentages_relative_to_segment(report):
    best = report["productMetrics"]["bestSellers"]

    for segment in ("b2b", "b2c"):
        total = sum(entry["percentageOfSales"] for entry in best[segment]["bySales"])
        assert total == pytest.approx(100, abs=0.5)


def test_lowest_sellers_ascending(report):
    lowest = report["productMetrics"]["lowestSellers"]

    quantities = [entry["quantity"] for entry in lowest["byQuantity"]]
    assert quantities == sorted(quantities)
    revenues = [entry["revenue"] for entry in lowest["bySales"]]
    assert revenues == sorted(revenues)
    assert set(lowest) == {"byQuantity", "bySales", "b2b", "b2c"}


def test_seller_limits_are_configurable(sales_orders, b2b_clients):
    engine = SalesReportEngine(sales_orders, b2b_clients, top_limit=2, lowest_limit=1)

    metrics = engine.segmented_product_metrics()

    assert len(metrics.best_sellers.by_quantity) == 2
    assert len(metrics.lowest_sellers.by_sales) == 1


def test_ties_keep_insertion_order():
    orders = build_orders(
        [
            order_payload(
                item_payload(productId="first", quantity=2),
                item_payload(productId="second", quantity=2),
                item_payload(productId="third", quantity=2),
            )
        ]
    )

    engine = SalesReportEngine(orders)
    best = engine.product_metrics().best_sellers

    assert [entry.product_id for entry in best.by_quantity] == ["first", "second", "third"]


def test_average_items_per_order(report):
    assert report["productMetrics"]["averageItemsPerOrder"] == 4.5


def test_fulfillment(report):
    fulfillment = report["operationalMetrics"]["fulfillment"]

    assert fulfillment["delivery"]["orders"] == 2
    assert fulfillment["pickup"]["orders"] == 2
    assert fulfillment["delivery"]["percentage"] + fulfillment["pickup"]["percentage"] == pytest.approx(100)


def test_delivery_metrics(report):
    delivery = report["operationalMetrics"]["deliveryMetrics"]

    assert delivery == {
        "totalFees": 9000,
        "averageFee": 4500,
        "totalCost": 5500,
        "averageCost": 2750,
        "deliveryRevenue": 3500,
        "totalOrders": 2,
    }


def test_tax_metrics(report):
    tax = report["taxMetrics"]

    assert tax["taxableItems"] == 9
    assert tax["totalTax"] == 13733
    assert tax["preTaxSubtotal"] == 72267
    assert tax["total"] == 86000
    assert tax["total"] == tax["preTaxSubtotal"] + tax["totalTax"]


def test_rankings_only_include_sold_products():
    orders = build_orders([order_payload(item_payload(productId="retired", quantity=1))])
    catalog = build_catalog(
        [
            {"id": "retired", "name": "Retired", "isDeleted": True},
            {"id": "unused", "name": "Unused"},
            {"id": "gone", "name": "Gone", "isDeleted": True},
        ]
    )

    engine = SalesReportEngine(orders, [], catalog)
    products = {entry.product_id: entry for entry in engine.products}
    lowest = engine.product_metrics().lowest_sellers

    assert products["retired"].quantity == 1
    assert products["retired"].name == "Retired"
    assert set(products) == {"retired"}
    assert [entry.product_id for entry in lowest.by_quantity] == ["retired"]


def test_empty_orders_yield_nan_percentages():
    engine = SalesReportEngine([], [])

    report = engine.summary_report().to_payload()

    assert report["summary"]["totalRevenue"] == 0
    assert report["summary"]["dateRange"] is None
    assert math.isnan(report["summary"]["percentageB2B"])
    assert math.isnan(report["summary"]["percentageB2C"])
    assert math.isnan(report["salesMetrics"]["byCustomerSegment"]["b2b"]["percentageRevenue"])
    assert report["operationalMetrics"]["deliveryMetrics"]["averageFee"] == 0
    assert report["salesMetrics"]["total"]["daily"] == {}


def test_all_complimentary_orders():
    orders = build_orders([order_payload(id=f"c-{index}", paymentMethod="complimentary") for index in range(3)])

    engine = SalesReportEngine(orders, [])

    assert engine.orders == []
    assert len(engine.complimentary_orders) == 3
    assert engine.total_revenue == 0


def test_orders_without_due_date_are_not_bucketed():
    orders = build_orders(
        [
            order_payload(id="dated", dueDate="2024-01-15T10:00:00Z"),
            order_payload(id="undated", dueDate=None),
        ]
    )

    engine = SalesReportEngine(orders, [])
    ranges = engine.calculate_time_ranges()

    assert list(ranges.daily) == ["2024-01-15"]
    assert ranges.daily["2024-01-15"].total == 1000
    assert engine.total_revenue == 2000
