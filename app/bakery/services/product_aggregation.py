from __future__ import annotations

import unicodedata
from dataclasses import dataclass, field
from typing import Iterable, Sequence

from app.bakery.core.money import average_or_zero
from app.bakery.schemas.orders import CatalogProduct, Order, OrderLineItem
from app.bakery.services.periods import period_key
from app.bakery.services.segments import B2B, SegmentClassifier


@dataclass
class SegmentTotals:
    revenue: int = 0
    quantity: int = 0

    def add(self, revenue: int, quantity: int) -> None:
        self.revenue += revenue
        self.quantity += quantity


@dataclass
class PeriodTotals:
    revenue: int = 0
    quantity: int = 0
    b2b: SegmentTotals = field(default_factory=SegmentTotals)
    b2c: SegmentTotals = field(default_factory=SegmentTotals)


@dataclass
class ProductAggregate:
    product_id: str
    name: str | None = None
    category_id: str | None = None
    category_name: str | None = None
    total_revenue: int = 0
    total_quantity: int = 0
    price_sum: int = 0
    b2b: SegmentTotals = field(default_factory=SegmentTotals)
    b2c: SegmentTotals = field(default_factory=SegmentTotals)
    periods: dict[str, PeriodTotals] = field(default_factory=dict)

    @property
    def average_price(self) -> float:
        return average_or_zero(self.price_sum, self.total_quantity)

    def add_sale(self, item: OrderLineItem, *, segment: str, bucket: str | None) -> None:
        subtotal = item.subtotal
        self.total_revenue += subtotal
        self.total_quantity += item.quantity
        self.price_sum += item.current_price * item.quantity
        segment_totals = self.b2b if segment == B2B else self.b2c
        segment_totals.add(subtotal, item.quantity)
        if bucket is None:
            return
        period = self.periods.setdefault(bucket, PeriodTotals())
        period.revenue += subtotal
        period.quantity += item.quantity
        (period.b2b if segment == B2B else period.b2c).add(subtotal, item.quantity)


def aggregate_products(
    orders: Iterable[Order],
    catalog: Sequence[CatalogProduct] = (),
    *,
    classifier: SegmentClassifier | None = None,
    categories: Iterable[str] | None = None,
    period: str | None = None,
    date_field: str = "dueDate",
    tz=None,
    include_catalog: bool = True,
) -> list[ProductAggregate]:
    """Fold orders into one aggregate per product.

    The sales pass runs over every non-complimentary order and item. Once it has
    finished, the catalog pass adds zero rows for active products that never sold;
    soft-deleted products only survive when they have sales. Labels are refreshed
    from the catalog so renamed products show their current name.
    """
    classifier = classifier or SegmentClassifier()
    allowed = set(categories) if categories is not None else None
    aggregates: dict[str, ProductAggregate] = {}

    for order in orders:
        if order.is_complimentary:
            continue
        segment = classifier.segment_of(order)
        bucket = period_key(order.date_for(date_field), period, tz) if period else None
        for item in order.billable_items:
            if allowed is not None and item.collection_id not in allowed:
                continue
            aggregate = aggregates.get(item.product_id)
            if aggregate is None:
                aggregate = ProductAggregate(
                    product_id=item.product_id,
                    name=item.product_name,
                    category_id=item.collection_id,
                    category_name=item.collection_name,
                )
                aggregates[item.product_id] = aggregate
            aggregate.add_sale(item, segment=segment, bucket=bucket)

    catalog_by_id = {product.id: product for product in catalog}
    if include_catalog:
        for product in catalog:
            if product.id in aggregates:
                continue
            if product.is_deleted:
                continue
            if allowed is not None and product.collection_id not in allowed:
                continue
            aggregates[product.id] = ProductAggregate(
                product_id=product.id,
                name=product.name,
                category_id=product.collection_id,
                category_name=product.collection_name,
            )

    for aggregate in aggregates.values():
        product = catalog_by_id.get(aggregate.product_id)
        if product is None:
            continue
        aggregate.name = product.name or aggregate.name
        aggregate.category_name = product.collection_name or aggregate.category_name
        aggregate.category_id = product.collection_id or aggregate.category_id
    return list(aggregates.values())


def _collation_key(value: str | None) -> tuple[str, str]:
    text = (value or "").strip().casefold()
    folded = unicodedata.normalize("NFKD", text)
    folded = "".join(ch for ch in folded if not unicodedata.combining(ch))
    return folded, text


def sort_for_table(rows: Iterable) -> list:
    return sorted(rows, key=lambda row: (_collation_key(row.category_name), _collation_key(row.name)))
