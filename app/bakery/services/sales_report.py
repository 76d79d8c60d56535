from __future__ import annotations

import math
from collections import defaultdict
from datetime import date
from typing import Iterable, Sequence

from app.bakery.core.config import settings
from app.bakery.core.error_catalog import AppError, ErrorCatalog
from app.bakery.core.money import average_or_zero, percentage, round_half_up, safe_ratio
from app.bakery.schemas.orders import CatalogProduct, Order
from app.bakery.schemas.reports import (
    CollectionEntry,
    DeliveryMetrics,
    FulfillmentEntry,
    OperationalMetrics,
    PaymentMethodEntry,
    ProductMetrics,
    RollupBucket,
    SalesDateRange,
    SalesMetadataReport,
    SalesMetrics,
    SalesOverview,
    SalesSummaryReport,
    SegmentedProductMetrics,
    SegmentedSellerRanking,
    SegmentRevenue,
    SegmentShare,
    SellerEntry,
    SellerRanking,
    TaxMetrics,
    TimeBucket,
    TimeRanges,
)
from app.bakery.services.periods import daily_key, monthly_key, report_timezone, weekly_key
from app.bakery.services.product_aggregation import ProductAggregate, aggregate_products
from app.bakery.services.segments import B2B, B2C, SegmentClassifier

SUMMARY_FAMILY = "summary"
METADATA_FAMILY = "metadata"
FAMILIES = (SUMMARY_FAMILY, METADATA_FAMILY)

UNKNOWN_PAYMENT_METHOD = "unknown"
UNCATEGORIZED = "Uncategorized"
SECONDS_PER_DAY = 24 * 60 * 60


def _one_decimal(value: float) -> float:
    return round_half_up(value, 1)


class SalesReportEngine:
    """Sales report over one set of orders.

    Complimentary orders are split out once at construction and only counted in
    ``totalComplimentaryOrders``. Everything else is derived from the paid orders.
    """

    def __init__(
        self,
        orders: Iterable[Order],
        b2b_clients: Iterable | SegmentClassifier = (),
        catalog: Sequence[CatalogProduct] = (),
        *,
        currency: str | None = None,
        tz=None,
        top_limit: int | None = None,
        lowest_limit: int | None = None,
    ) -> None:
        all_orders = list(orders)
        self.orders = [order for order in all_orders if not order.is_complimentary]
        self.complimentary_orders = [order for order in all_orders if order.is_complimentary]
        if isinstance(b2b_clients, SegmentClassifier):
            self.classifier = b2b_clients
        else:
            self.classifier = SegmentClassifier.from_clients(b2b_clients)
        self.catalog = list(catalog)
        self.currency = currency or settings.REPORT_CURRENCY
        self.tz = tz or report_timezone()
        self.top_limit = settings.REPORT_TOP_SELLERS_LIMIT if top_limit is None else top_limit
        self.lowest_limit = settings.REPORT_LOWEST_SELLERS_LIMIT if lowest_limit is None else lowest_limit

        self.b2b_orders, self.b2c_orders = self.classifier.split(self.orders)
        self.total_revenue = sum(order.total for order in self.orders)
        self.total_sales = sum(order.subtotal for order in self.orders)
        self.total_delivery = sum(order.delivery_charge for order in self.orders)
        self.total_b2b_sales = sum(order.subtotal for order in self.b2b_orders)
        self.total_b2c_sales = sum(order.subtotal for order in self.b2c_orders)
        self.total_b2b_revenue = sum(order.total for order in self.b2b_orders)
        self.total_b2c_revenue = sum(order.total for order in self.b2c_orders)

        self.date_range = self.calculate_date_range()
        self.products = self._seller_entries(
            aggregate_products(
                self.orders, self.catalog, classifier=self.classifier, tz=self.tz, include_catalog=False
            )
        )
        self.segment_products = {
            B2B: self._seller_entries(aggregate_products(self.b2b_orders, self.catalog, include_catalog=False)),
            B2C: self._seller_entries(aggregate_products(self.b2c_orders, self.catalog, include_catalog=False)),
        }

    def build(self, family: str = SUMMARY_FAMILY) -> SalesSummaryReport | SalesMetadataReport:
        if family == SUMMARY_FAMILY:
            return self.summary_report()
        if family == METADATA_FAMILY:
            return self.metadata_report()
        raise AppError(
            ErrorCatalog.VALIDATION_ERROR,
            details={"message": "unsupported report family", "family": family, "allowed": list(FAMILIES)},
        )

    def summary_report(self) -> SalesSummaryReport:
        return SalesSummaryReport(
            summary=self.overview(by_revenue=False),
            sales_metrics=self.sales_metrics(by_revenue=False),
            product_metrics=self.segmented_product_metrics(),
            operational_metrics=self.operational_metrics(),
            tax_metrics=self.tax_metrics(),
        )

    def metadata_report(self) -> SalesMetadataReport:
        return SalesMetadataReport(
            metadata=self.overview(by_revenue=True),
            revenue_metrics=self.sales_metrics(by_revenue=True),
            product_metrics=self.product_metrics(),
            operational_metrics=self.operational_metrics(),
            tax_metrics=self.tax_metrics(),
        )

    # Summary

    def calculate_date_range(self) -> SalesDateRange | None:
        dates = [order.due_date for order in self.orders if order.due_date is not None]
        if not dates:
            return None
        start, end = min(dates), max(dates)
        return SalesDateRange(
            start=start,
            end=end,
            total_days=math.ceil((end - start).total_seconds() / SECONDS_PER_DAY) + 1,
        )

    def _segment_totals(self, by_revenue: bool) -> tuple[int, int, int]:
        if by_revenue:
            return self.total_b2b_revenue, self.total_b2c_revenue, self.total_revenue
        return self.total_b2b_sales, self.total_b2c_sales, self.total_sales

    def overview(self, *, by_revenue: bool) -> SalesOverview:
        b2b_total, b2c_total, whole = self._segment_totals(by_revenue)
        return SalesOverview(
            date_range=self.date_range,
            total_paid_orders=len(self.orders),
            total_revenue=self.total_revenue,
            total_sales=self.total_sales,
            total_delivery=self.total_delivery,
            total_b2b=b2b_total,
            total_b2c=b2c_total,
            percentage_b2b=_one_decimal(percentage(b2b_total, whole)),
            percentage_b2c=_one_decimal(percentage(b2c_total, whole)),
            total_complimentary_orders=len(self.complimentary_orders),
            currency=self.currency,
        )

    # Sales metrics

    def sales_metrics(self, *, by_revenue: bool) -> SalesMetrics:
        return SalesMetrics(
            total=self.calculate_time_ranges(),
            average_order_value=safe_ratio(self.total_revenue, len(self.orders)),
            average_order_sales=safe_ratio(self.total_sales, len(self.orders)),
            by_payment_method=self.sales_by_payment_method(),
            by_collection=self.sales_by_collection(),
            by_customer_segment=self.sales_by_customer_segment(by_revenue=by_revenue),
        )

    def calculate_time_ranges(self) -> TimeRanges:
        daily = self._daily_buckets()
        return TimeRanges(
            daily=daily,
            weekly=self._rollup(daily, weekly_key),
            monthly=self._rollup(daily, monthly_key),
        )

    def _daily_buckets(self) -> dict[str, TimeBucket]:
        grouped: dict[str, list[Order]] = defaultdict(list)
        for order in self.orders:
            if order.due_date is None:
                continue
            grouped[daily_key(order.due_date.astimezone(self.tz))].append(order)

        buckets: dict[str, TimeBucket] = {}
        for day in sorted(grouped):
            day_orders = grouped[day]
            b2b_orders, b2c_orders = self.classifier.split(day_orders)
            b2b_amount = sum(order.subtotal for order in b2b_orders)
            b2c_amount = sum(order.subtotal for order in b2c_orders)
            buckets[day] = self._bucket(
                TimeBucket,
                total=sum(order.total for order in day_orders),
                delivery=sum(order.delivery_charge for order in day_orders),
                b2b_amount=b2b_amount,
                b2c_amount=b2c_amount,
            )
        return buckets

    def _rollup(self, daily: dict[str, TimeBucket], key_for) -> dict[str, RollupBucket]:
        sums: dict[str, dict[str, int]] = {}
        for day, bucket in daily.items():
            key = key_for(date.fromisoformat(day))
            entry = sums.setdefault(key, {"total": 0, "delivery": 0, "b2b": 0, "b2c": 0, "days": 0})
            entry["total"] += bucket.total
            entry["delivery"] += bucket.delivery
            entry["b2b"] += bucket.b2b.amount
            entry["b2c"] += bucket.b2c.amount
            entry["days"] += 1
        return {
            key: self._bucket(
                RollupBucket,
                total=entry["total"],
                delivery=entry["delivery"],
                b2b_amount=entry["b2b"],
                b2c_amount=entry["b2c"],
                days=entry["days"],
            )
            for key, entry in sums.items()
        }

    @staticmethod
    def _bucket(model, *, total: int, delivery: int, b2b_amount: int, b2c_amount: int, **extra):
        sales = b2b_amount + b2c_amount
        return model(
            total=total,
            sales=sales,
            delivery=delivery,
            b2b=SegmentShare(amount=b2b_amount, percentage=percentage(b2b_amount, sales)),
            b2c=SegmentShare(amount=b2c_amount, percentage=percentage(b2c_amount, sales)),
            **extra,
        )

    def sales_by_payment_method(self) -> dict[str, PaymentMethodEntry]:
        grouped: dict[str, dict[str, int]] = {}
        for order in self.orders:
            method = order.payment_method or UNKNOWN_PAYMENT_METHOD
            entry = grouped.setdefault(method, {"total": 0, "orders": 0})
            entry["total"] += order.total
            entry["orders"] += 1
        return {
            method: PaymentMethodEntry(
                total=entry["total"],
                order_count=entry["orders"],
                percentage=percentage(entry["total"], self.total_revenue),
            )
            for method, entry in grouped.items()
        }

    def sales_by_collection(self) -> dict[str, CollectionEntry]:
        grouped: dict[str, dict[str, int]] = {}
        total_quantity = 0
        for order in self.orders:
            for item in order.billable_items:
                entry = grouped.setdefault(item.collection_name or UNCATEGORIZED, {"revenue": 0, "quantity": 0})
                entry["revenue"] += item.subtotal
                entry["quantity"] += item.quantity
                total_quantity += item.quantity
        return {
            name: CollectionEntry(
                revenue=entry["revenue"],
                quantity=entry["quantity"],
                average_price=safe_ratio(entry["revenue"], entry["quantity"]),
                percentage_revenue=percentage(entry["revenue"], self.total_sales),
                percentage_quantity=percentage(entry["quantity"], total_quantity),
            )
            for name, entry in grouped.items()
        }

    def sales_by_customer_segment(self, *, by_revenue: bool) -> dict[str, SegmentRevenue]:
        b2b_total, b2c_total, whole = self._segment_totals(by_revenue)
        return {
            B2B: SegmentRevenue(
                total=b2b_total,
                orders=len(self.b2b_orders),
                average_price=safe_ratio(b2b_total, len(self.b2b_orders)),
                percentage_revenue=percentage(b2b_total, whole),
            ),
            B2C: SegmentRevenue(
                total=b2c_total,
                orders=len(self.b2c_orders),
                average_price=safe_ratio(b2c_total, len(self.b2c_orders)),
                percentage_revenue=percentage(b2c_total, whole),
            ),
        }

    # Product metrics

    @staticmethod
    def _seller_entries(aggregates: list[ProductAggregate]) -> list[SellerEntry]:
        total_revenue = sum(aggregate.total_revenue for aggregate in aggregates)
        total_quantity = sum(aggregate.total_quantity for aggregate in aggregates)
        return [
            SellerEntry(
                product_id=aggregate.product_id,
                name=aggregate.name,
                collection=aggregate.category_name,
                quantity=aggregate.total_quantity,
                revenue=aggregate.total_revenue,
                average_price=aggregate.average_price,
                percentage_of_sales=_one_decimal(percentage(aggregate.total_revenue, total_revenue)),
                percentage_of_quantity=_one_decimal(percentage(aggregate.total_quantity, total_quantity)),
            )
            for aggregate in aggregates
        ]

    def _best(self, entries: list[SellerEntry]) -> SellerRanking:
        return SellerRanking(
            by_quantity=sorted(entries, key=lambda entry: entry.quantity, reverse=True)[: self.top_limit],
            by_sales=sorted(entries, key=lambda entry: entry.revenue, reverse=True)[: self.top_limit],
        )

    def _lowest(self, entries: list[SellerEntry]) -> SellerRanking:
        return SellerRanking(
            by_quantity=sorted(entries, key=lambda entry: entry.quantity)[: self.lowest_limit],
            by_sales=sorted(entries, key=lambda entry: entry.revenue)[: self.lowest_limit],
        )

    def average_items_per_order(self) -> float:
        total_items = sum(item.quantity for order in self.orders for item in order.billable_items)
        return safe_ratio(total_items, len(self.orders))

    def product_metrics(self) -> ProductMetrics:
        return ProductMetrics(
            best_sellers=self._best(self.products),
            lowest_sellers=self._lowest(self.products),
            average_items_per_order=self.average_items_per_order(),
        )

    def segmented_product_metrics(self) -> SegmentedProductMetrics:
        best = self._best(self.products)
        lowest = self._lowest(self.products)
        return SegmentedProductMetrics(
            best_sellers=SegmentedSellerRanking(
                by_quantity=best.by_quantity,
                by_sales=best.by_sales,
                b2b=self._best(self.segment_products[B2B]),
                b2c=self._best(self.segment_products[B2C]),
            ),
            lowest_sellers=SegmentedSellerRanking(
                by_quantity=lowest.by_quantity,
                by_sales=lowest.by_sales,
                b2b=self._lowest(self.segment_products[B2B]),
                b2c=self._lowest(self.segment_products[B2C]),
            ),
            average_items_per_order=self.average_items_per_order(),
        )

    # Operational and tax metrics

    def operational_metrics(self) -> OperationalMetrics:
        return OperationalMetrics(
            fulfillment=self.fulfillment_metrics(),
            delivery_metrics=self.delivery_metrics(),
        )

    def fulfillment_metrics(self) -> dict[str, FulfillmentEntry]:
        delivery_orders = sum(1 for order in self.orders if order.is_delivery)
        pickup_orders = len(self.orders) - delivery_orders
        return {
            "delivery": FulfillmentEntry(
                orders=delivery_orders,
                percentage=percentage(delivery_orders, len(self.orders)),
            ),
            "pickup": FulfillmentEntry(
                orders=pickup_orders,
                percentage=percentage(pickup_orders, len(self.orders)),
            ),
        }

    def delivery_metrics(self) -> DeliveryMetrics:
        delivery_orders = [order for order in self.orders if order.is_delivery]
        total_fees = sum(order.delivery_fee for order in delivery_orders)
        total_cost = sum(order.delivery_cost for order in delivery_orders)
        count = len(delivery_orders)
        return DeliveryMetrics(
            total_fees=total_fees,
            average_fee=average_or_zero(total_fees, count),
            total_cost=total_cost,
            average_cost=average_or_zero(total_cost, count),
            delivery_revenue=total_fees - total_cost,
            total_orders=count,
        )

    def tax_metrics(self) -> TaxMetrics:
        taxable_items = 0
        pre_tax_subtotal = 0
        total_tax = 0
        total = 0
        for order in self.orders:
            for item in order.billable_items:
                if item.tax_percentage <= 0:
                    continue
                amounts = item.amounts
                taxable_items += item.quantity
                pre_tax_subtotal += amounts.pre_tax_amount * item.quantity
                total_tax += amounts.tax_amount * item.quantity
                total += amounts.subtotal
        return TaxMetrics(
            taxable_items=taxable_items,
            pre_tax_subtotal=pre_tax_subtotal,
            total_tax=total_tax,
            total=total,
        )
