from __future__ import annotations

from datetime import date, datetime
from typing import Any, ClassVar, Literal

from pydantic import BaseModel, ConfigDict, Field, model_serializer, model_validator
from app.bakery.core.config import settings


def camel_alias(name: str) -> str:
    """snake_case to camelCase; a letter after a digit stays lower case, so b2b_revenue becomes b2bRevenue."""
    head, *rest = name.split("_")
    return head + "".join(part[:1].upper() + part[1:] for part in rest)


class ReportModel(BaseModel):
    model_config = ConfigDict(alias_generator=camel_alias, populate_by_name=True)

    def to_payload(self) -> dict:
        return self.model_dump(by_alias=True)


class SparseReportModel(ReportModel):
    """Report block whose optional metrics are left out of the payload when not requested."""

    sparse_fields: ClassVar[frozenset[str]] = frozenset()

    @model_serializer(mode="wrap")
    def _drop_unrequested(self, handler) -> dict[str, Any]:
        data = handler(self)
        omitted = {name for name in self.sparse_fields if getattr(self, name) is None}
        omitted |= {camel_alias(name) for name in omitted}
        return {key: value for key, value in data.items() if key not in omitted}


def _drop_none(values):
    if isinstance(values, dict):
        return {key: value for key, value in values.items() if value is not None}
    return values


# Options and queries


class ProductReportOptions(ReportModel):
    model_config = ConfigDict(alias_generator=camel_alias, populate_by_name=True, extra="ignore", frozen=True)

    categories: list[str] | None = None
    period: Literal["daily", "weekly", "monthly"] | None = None
    metrics: Literal["ingresos", "cantidad", "both"] = "both"
    segment: Literal["none", "all", "b2b", "b2c"] = "none"
    date_field: Literal["dueDate", "paymentDate", "preparationDate"] = Field(
        default_factory=lambda: settings.REPORT_DEFAULT_DATE_FIELD
    )
    default_date_range_applied: bool = False

    @model_validator(mode="before")
    @classmethod
    def _defaults_for_missing(cls, values):
        return _drop_none(values)

    @property
    def includes_revenue(self) -> bool:
        return self.metrics in ("ingresos", "both")

    @property
    def includes_quantity(self) -> bool:
        return self.metrics in ("cantidad", "both")

    @property
    def splits_segments(self) -> bool:
        return self.segment == "all"


class QueryDateRange(ReportModel):
    model_config = ConfigDict(alias_generator=camel_alias, populate_by_name=True, extra="ignore", frozen=True)

    start_date: datetime | date | str | None = None
    end_date: datetime | date | str | None = None


class IncomeStatementQuery(ReportModel):
    model_config = ConfigDict(alias_generator=camel_alias, populate_by_name=True, extra="ignore", frozen=True)

    date_range: QueryDateRange | None = None
    group_by: Literal["total", "month"] = "total"
    date_filter_type: str | None = None

    @model_validator(mode="before")
    @classmethod
    def _defaults_for_missing(cls, values):
        return _drop_none(values)


# Shared blocks


class DateSpan(ReportModel):
    start: datetime
    end: datetime


class SalesDateRange(DateSpan):
    total_days: int


# Sales report


class SalesOverview(ReportModel):
    date_range: SalesDateRange | None
    total_paid_orders: int
    total_revenue: int
    total_sales: int
    total_delivery: int
    total_b2b: int = Field(alias="totalB2B")
    total_b2c: int = Field(alias="totalB2C")
    percentage_b2b: float = Field(alias="percentageB2B")
    percentage_b2c: float = Field(alias="percentageB2C")
    total_complimentary_orders: int
    currency: str


class SegmentShare(ReportModel):
    amount: int
    percentage: float


class TimeBucket(ReportModel):
    total: int
    sales: int
    delivery: int
    b2b: SegmentShare
    b2c: SegmentShare


class RollupBucket(TimeBucket):
    days: int


class TimeRanges(ReportModel):
    daily: dict[str, TimeBucket]
    weekly: dict[str, RollupBucket]
    monthly: dict[str, RollupBucket]


class PaymentMethodEntry(ReportModel):
    total: int
    order_count: int
    percentage: float


class CollectionEntry(ReportModel):
    revenue: int
    quantity: int
    average_price: float
    percentage_revenue: float
    percentage_quantity: float


class SegmentRevenue(ReportModel):
    total: int
    orders: int
    average_price: float
    percentage_revenue: float


class SalesMetrics(ReportModel):
    total: TimeRanges
    average_order_value: float
    average_order_sales: float
    by_payment_method: dict[str, PaymentMethodEntry]
    by_collection: dict[str, CollectionEntry]
    by_customer_segment: dict[str, SegmentRevenue]


class SellerEntry(ReportModel):
    product_id: str
    name: str | None
    collection: str | None
    quantity: int
    revenue: int
    average_price: float
    percentage_of_sales: float
    percentage_of_quantity: float


class SellerRanking(ReportModel):
    by_quantity: list[SellerEntry]
    by_sales: list[SellerEntry]


class SegmentedSellerRanking(SellerRanking):
    b2b: SellerRanking
    b2c: SellerRanking


class ProductMetrics(ReportModel):
    best_sellers: SellerRanking
    lowest_sellers: SellerRanking
    average_items_per_order: float


class SegmentedProductMetrics(ReportModel):
    best_sellers: SegmentedSellerRanking
    lowest_sellers: SegmentedSellerRanking
    average_items_per_order: float


class FulfillmentEntry(ReportModel):
    orders: int
    percentage: float


class DeliveryMetrics(ReportModel):
    total_fees: int
    average_fee: float
    total_cost: int
    average_cost: float
    delivery_revenue: int
    total_orders: int


class OperationalMetrics(ReportModel):
    fulfillment: dict[str, FulfillmentEntry]
    delivery_metrics: DeliveryMetrics


class TaxMetrics(ReportModel):
    taxable_items: int
    pre_tax_subtotal: int
    total_tax: int
    total: int


class SalesSummaryReport(ReportModel):
    summary: SalesOverview
    sales_metrics: SalesMetrics
    product_metrics: SegmentedProductMetrics
    operational_metrics: OperationalMetrics
    tax_metrics: TaxMetrics


class SalesMetadataReport(ReportModel):
    metadata: SalesOverview
    revenue_metrics: SalesMetrics
    product_metrics: ProductMetrics
    operational_metrics: OperationalMetrics
    tax_metrics: TaxMetrics


# Product report


class ProductPeriodRow(SparseReportModel):
    sparse_fields: ClassVar[frozenset[str]] = frozenset(
        {"revenue", "quantity", "b2b_revenue", "b2b_quantity", "b2c_revenue", "b2c_quantity"}
    )

    revenue: int | None = None
    quantity: int | None = None
    b2b_revenue: int | None = None
    b2b_quantity: int | None = None
    b2c_revenue: int | None = None
    b2c_quantity: int | None = None


class ProductRow(SparseReportModel):
    sparse_fields: ClassVar[frozenset[str]] = frozenset(
        {
            "total_revenue",
            "total_quantity",
            "b2b_revenue",
            "b2b_quantity",
            "b2c_revenue",
            "b2c_quantity",
            "periods",
        }
    )

    category_id: str | None
    category_name: str | None
    product_id: str
    name: str | None
    average_price: float
    total_revenue: int | None = None
    total_quantity: int | None = None
    b2b_revenue: int | None = None
    b2b_quantity: int | None = None
    b2c_revenue: int | None = None
    b2c_quantity: int | None = None
    periods: dict[str, ProductPeriodRow] | None = None


class ProductTotals(SparseReportModel):
    sparse_fields: ClassVar[frozenset[str]] = ProductRow.sparse_fields - {"periods"}

    total_revenue: int | None = None
    total_quantity: int | None = None
    b2b_revenue: int | None = None
    b2b_quantity: int | None = None
    b2c_revenue: int | None = None
    b2c_quantity: int | None = None


class CategoryTotals(ReportModel):
    category_id: str
    category_name: str
    total_revenue: int
    total_quantity: int


class ProductReportSummary(ReportModel):
    totals: ProductTotals
    by_category: list[CategoryTotals]


class ProductReportMetadata(ReportModel):
    options: ProductReportOptions
    total_orders: int
    date_range: DateSpan | None
    total_products: int
    currency: str


class ProductReportDocument(ReportModel):
    metadata: ProductReportMetadata
    products: list[ProductRow]
    summary: ProductReportSummary


# Income statement


class RevenueBlock(ReportModel):
    product_sales: int
    delivery_fees: int
    taxes_collected: int
    total_revenue: int


class CostBlock(ReportModel):
    cogs: int
    delivery_costs: int
    total_costs: int


class GrossProfit(ReportModel):
    amount: int
    margin_percent: float


class CostCoverage(ReportModel):
    total_items: int
    items_with_cost: int
    percent_covered: int
    unique_products_total: int
    unique_products_with_cost: int


class ExcludedProductEntry(ReportModel):
    id: str
    name: str | None
    total_quantity: int
    order_count: int
    reason: str


class StatementBlock(ReportModel):
    revenue: RevenueBlock
    costs: CostBlock
    gross_profit: GrossProfit
    coverage: CostCoverage


class IncomeStatementTotal(StatementBlock):
    excluded_products: list[ExcludedProductEntry]


class MonthStatement(StatementBlock):
    month: str
    label: str


class IncomeStatementByMonth(ReportModel):
    periods: list[MonthStatement]
    totals: StatementBlock
    excluded_products: list[ExcludedProductEntry]
