from __future__ import annotations

from typing import Iterable, Sequence

from pydantic import ValidationError

from app.bakery.core.config import settings
from app.bakery.core.errors import validation_error
from app.bakery.schemas.orders import CatalogProduct, Order
from app.bakery.schemas.reports import (
    CategoryTotals,
    DateSpan,
    ProductPeriodRow,
    ProductReportDocument,
    ProductReportMetadata,
    ProductReportOptions,
    ProductReportSummary,
    ProductRow,
    ProductTotals,
)
from app.bakery.services.periods import report_timezone
from app.bakery.services.product_aggregation import ProductAggregate, aggregate_products, sort_for_table
from app.bakery.services.segments import SegmentClassifier

UNCATEGORIZED_ID = "uncategorized"
UNCATEGORIZED_NAME = "Uncategorized"


def build_product_report_options(raw) -> ProductReportOptions:
    if isinstance(raw, ProductReportOptions):
        return raw
    try:
        return ProductReportOptions.model_validate(raw or {})
    except ValidationError as exc:
        raise validation_error(exc, prefix=["options"]) from exc


class ProductReport:
    def __init__(
        self,
        orders: Iterable[Order],
        b2b_clients: Iterable | SegmentClassifier = (),
        catalog: Sequence[CatalogProduct] = (),
        options: ProductReportOptions | dict | None = None,
        *,
        currency: str | None = None,
        tz=None,
    ) -> None:
        self.options = build_product_report_options(options)
        self.currency = currency or settings.REPORT_CURRENCY
        self.tz = tz or report_timezone()
        if isinstance(b2b_clients, SegmentClassifier):
            self.classifier = b2b_clients
        else:
            self.classifier = SegmentClassifier.from_clients(b2b_clients)
        self.catalog = list(catalog)
        self.all_orders = [order for order in orders if not order.is_complimentary]
        self.orders = self.classifier.filter(self.all_orders, self.options.segment)
        self.aggregates = aggregate_products(
            self.orders,
            self.catalog,
            classifier=self.classifier,
            categories=self.options.categories,
            period=self.options.period,
            date_field=self.options.date_field,
            tz=self.tz,
        )

    def generate(self) -> ProductReportDocument:
        return ProductReportDocument(
            metadata=self.metadata(),
            products=self.product_rows(),
            summary=self.summary(),
        )

    def metadata(self) -> ProductReportMetadata:
        dates = [moment for order in self.orders if (moment := order.date_for(self.options.date_field)) is not None]
        return ProductReportMetadata(
            options=self.options,
            total_orders=len(self.orders),
            date_range=DateSpan(start=min(dates), end=max(dates)) if dates else None,
            total_products=len(self.aggregates),
            currency=self.currency,
        )

    def _metric_values(self, *, revenue: int, quantity: int, prefix: str) -> dict[str, int]:
        values = {}
        if self.options.includes_revenue:
            values[f"{prefix}revenue"] = revenue
        if self.options.includes_quantity:
            values[f"{prefix}quantity"] = quantity
        return values

    def _segment_values(self, b2b, b2c) -> dict[str, int]:
        if not self.options.splits_segments:
            return {}
        return {
            **self._metric_values(revenue=b2b.revenue, quantity=b2b.quantity, prefix="b2b_"),
            **self._metric_values(revenue=b2c.revenue, quantity=b2c.quantity, prefix="b2c_"),
        }

    def _row(self, aggregate: ProductAggregate) -> ProductRow:
        values = self._metric_values(
            revenue=aggregate.total_revenue,
            quantity=aggregate.total_quantity,
            prefix="total_",
        )
        values.update(self._segment_values(aggregate.b2b, aggregate.b2c))
        if self.options.period:
            values["periods"] = {
                key: ProductPeriodRow(
                    **self._metric_values(revenue=period.revenue, quantity=period.quantity, prefix=""),
                    **self._segment_values(period.b2b, period.b2c),
                )
                for key, period in sorted(aggregate.periods.items())
            }
        return ProductRow(
            category_id=aggregate.category_id,
            category_name=aggregate.category_name,
            product_id=aggregate.product_id,
            name=aggregate.name,
            average_price=aggregate.average_price,
            **values,
        )

    def product_rows(self) -> list[ProductRow]:
        return sort_for_table(self._row(aggregate) for aggregate in self.aggregates)

    def summary(self) -> ProductReportSummary:
        total_revenue = sum(aggregate.total_revenue for aggregate in self.aggregates)
        total_quantity = sum(aggregate.total_quantity for aggregate in self.aggregates)
        totals = self._metric_values(revenue=total_revenue, quantity=total_quantity, prefix="total_")
        if self.options.splits_segments:
            for segment in ("b2b", "b2c"):
                totals.update(
                    self._metric_values(
                        revenue=sum(getattr(aggregate, segment).revenue for aggregate in self.aggregates),
                        quantity=sum(getattr(aggregate, segment).quantity for aggregate in self.aggregates),
                        prefix=f"{segment}_",
                    )
                )

        by_category: dict[str, CategoryTotals] = {}
        for aggregate in self.aggregates:
            category_id = aggregate.category_id or UNCATEGORIZED_ID
            entry = by_category.get(category_id)
            if entry is None:
                entry = CategoryTotals(
                    category_id=category_id,
                    category_name=aggregate.category_name or UNCATEGORIZED_NAME,
                    total_revenue=0,
                    total_quantity=0,
                )
                by_category[category_id] = entry
            entry.total_revenue += aggregate.total_revenue
            entry.total_quantity += aggregate.total_quantity

        return ProductReportSummary(totals=ProductTotals(**totals), by_category=list(by_category.values()))
