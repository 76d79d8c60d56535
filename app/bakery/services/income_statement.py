from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, time
from fractions import Fraction
from typing import Iterable, Sequence

from pydantic import ValidationError

from app.bakery.core.config import settings
from app.bakery.core.errors import validation_error
from app.bakery.core.money import round_half_up
from app.bakery.schemas.orders import BakerySettings, CatalogProduct, Order, OrderLineItem
from app.bakery.schemas.reports import (
    CostBlock,
    CostCoverage,
    ExcludedProductEntry,
    GrossProfit,
    IncomeStatementByMonth,
    IncomeStatementQuery,
    IncomeStatementTotal,
    MonthStatement,
    RevenueBlock,
    StatementBlock,
)
from app.bakery.services.periods import (
    ReportDateRange,
    monthly_key,
    report_timezone,
    resolve_date_range,
    validate_date_range,
)

STATEMENT_DATE_FIELDS = ("dueDate", "paymentDate")
NO_COST_REASON = "no cost defined"
MONTH_NAMES = (
    "January",
    "February",
    "March",
    "April",
    "May",
    "June",
    "July",
    "August",
    "September",
    "October",
    "November",
    "December",
)


def build_income_statement_query(raw) -> IncomeStatementQuery:
    if isinstance(raw, IncomeStatementQuery):
        return raw
    try:
        return IncomeStatementQuery.model_validate(raw or {})
    except ValidationError as exc:
        raise validation_error(exc, prefix=["query"]) from exc


def resolve_date_field(query: IncomeStatementQuery, bakery_settings: BakerySettings | None) -> str:
    if query.date_filter_type in STATEMENT_DATE_FIELDS:
        return query.date_filter_type
    if bakery_settings is not None and bakery_settings.default_report_filter in STATEMENT_DATE_FIELDS:
        return bakery_settings.default_report_filter
    return settings.REPORT_DEFAULT_DATE_FIELD


def resolve_statement_range(query: IncomeStatementQuery, *, today: date, tz) -> ReportDateRange:
    start_value = query.date_range.start_date if query.date_range else None
    end_value = query.date_range.end_date if query.date_range else None
    date_range = resolve_date_range(
        start_value,
        end_value,
        tz,
        default_start=datetime.combine(date(today.year, 1, 1), time.min, tzinfo=tz),
        default_end=datetime.combine(date(today.year, 12, 31), time.max, tzinfo=tz),
    )
    validate_date_range(date_range, max_days=settings.REPORTS_MAX_DATE_RANGE_DAYS)
    return date_range


def resolve_unit_cost(item: OrderLineItem, catalog_by_id: dict[str, CatalogProduct]) -> int | None:
    if item.cost_price is not None:
        return item.cost_price
    product = catalog_by_id.get(item.product_id)
    if product is not None and product.cost_price is not None:
        return product.cost_price
    return None


@dataclass
class _ExcludedProduct:
    product_id: str
    name: str | None
    total_quantity: int = 0
    order_ids: set[str] = field(default_factory=set)


class ExcludedProductsLedger:
    def __init__(self) -> None:
        self._entries: dict[str, _ExcludedProduct] = {}

    def record(self, item: OrderLineItem, order: Order, catalog_by_id: dict[str, CatalogProduct]) -> None:
        entry = self._entries.get(item.product_id)
        if entry is None:
            product = catalog_by_id.get(item.product_id)
            name = (product.name if product is not None else None) or item.product_name
            entry = _ExcludedProduct(product_id=item.product_id, name=name)
            self._entries[item.product_id] = entry
        entry.total_quantity += item.quantity
        entry.order_ids.add(order.id)

    def __len__(self) -> int:
        return len(self._entries)

    def entries(self) -> list[ExcludedProductEntry]:
        ordered = sorted(self._entries.values(), key=lambda entry: entry.total_quantity, reverse=True)
        return [
            ExcludedProductEntry(
                id=entry.product_id,
                name=entry.name,
                total_quantity=entry.total_quantity,
                order_count=len(entry.order_ids),
                reason=NO_COST_REASON,
            )
            for entry in ordered
        ]


@dataclass
class StatementAccumulator:
    product_sales: int = 0
    delivery_fees: int = 0
    taxes_collected: int = 0
    cogs: int = 0
    delivery_costs: int = 0
    total_items: int = 0
    items_with_cost: int = 0
    products: set[str] = field(default_factory=set)
    products_with_cost: set[str] = field(default_factory=set)

    def add_order(
        self,
        order: Order,
        catalog_by_id: dict[str, CatalogProduct],
        ledger: ExcludedProductsLedger,
    ) -> None:
        if order.is_delivery:
            self.delivery_fees += order.delivery_fee
            self.delivery_costs += order.delivery_cost
        for item in order.billable_items:
            self.total_items += 1
            self.product_sales += item.pre_tax_amount * item.quantity
            self.taxes_collected += item.tax_amount * item.quantity
            self.products.add(item.product_id)
            unit_cost = resolve_unit_cost(item, catalog_by_id)
            if unit_cost is None:
                ledger.record(item, order, catalog_by_id)
                continue
            self.items_with_cost += 1
            self.products_with_cost.add(item.product_id)
            self.cogs += unit_cost * item.quantity

    def merge(self, other: StatementAccumulator) -> None:
        self.product_sales += other.product_sales
        self.delivery_fees += other.delivery_fees
        self.taxes_collected += other.taxes_collected
        self.cogs += other.cogs
        self.delivery_costs += other.delivery_costs
        self.total_items += other.total_items
        self.items_with_cost += other.items_with_cost
        self.products |= other.products
        self.products_with_cost |= other.products_with_cost

    def block(self) -> dict:
        total_revenue = self.product_sales + self.delivery_fees + self.taxes_collected
        total_costs = self.cogs + self.delivery_costs
        gross_profit = total_revenue - total_costs
        margin = round_half_up(Fraction(gross_profit * 100, total_revenue), 1) if total_revenue else 0.0
        covered = round_half_up(Fraction(self.items_with_cost * 100, self.total_items)) if self.total_items else 0
        return {
            "revenue": RevenueBlock(
                product_sales=self.product_sales,
                delivery_fees=self.delivery_fees,
                taxes_collected=self.taxes_collected,
                total_revenue=total_revenue,
            ),
            "costs": CostBlock(cogs=self.cogs, delivery_costs=self.delivery_costs, total_costs=total_costs),
            "gross_profit": GrossProfit(amount=gross_profit, margin_percent=margin),
            "coverage": CostCoverage(
                total_items=self.total_items,
                items_with_cost=self.items_with_cost,
                percent_covered=covered,
                unique_products_total=len(self.products),
                unique_products_with_cost=len(self.products_with_cost),
            ),
        }


def month_label(month: str) -> str:
    year, number = month.split("-")
    return f"{MONTH_NAMES[int(number) - 1]} {year}"


def counted_orders(orders: Iterable[Order], date_field: str, date_range: ReportDateRange) -> list[Order]:
    return [
        order
        for order in orders
        if order.is_paid and not order.is_complimentary and date_range.contains(order.date_for(date_field))
    ]


def build_income_statement(
    orders: Iterable[Order],
    catalog: Sequence[CatalogProduct] = (),
    bakery_settings: BakerySettings | None = None,
    query: IncomeStatementQuery | dict | None = None,
    *,
    today: date | None = None,
    tz=None,
) -> IncomeStatementTotal | IncomeStatementByMonth:
    """Revenue, cost of goods and gross profit for the paid orders in a date range.

    Each sold unit is costed with the sale-time snapshot on the order item, then the
    current catalog cost. Items with neither still count as revenue but land in the
    excluded-products ledger and add nothing to COGS.
    """
    query = build_income_statement_query(query)
    tz = tz or report_timezone()
    today = today or datetime.now(tz).date()
    date_field = resolve_date_field(query, bakery_settings)
    date_range = resolve_statement_range(query, today=today, tz=tz)
    catalog_by_id = {product.id: product for product in catalog}
    ledger = ExcludedProductsLedger()

    if query.group_by == "total":
        accumulator = StatementAccumulator()
        for order in counted_orders(orders, date_field, date_range):
            accumulator.add_order(order, catalog_by_id, ledger)
        return IncomeStatementTotal(**accumulator.block(), excluded_products=ledger.entries())

    months: dict[str, StatementAccumulator] = {}
    for order in counted_orders(orders, date_field, date_range):
        month = monthly_key(order.date_for(date_field).astimezone(tz))
        months.setdefault(month, StatementAccumulator()).add_order(order, catalog_by_id, ledger)

    totals = StatementAccumulator()
    periods = []
    for month in sorted(months):
        totals.merge(months[month])
        periods.append(MonthStatement(month=month, label=month_label(month), **months[month].block()))
    return IncomeStatementByMonth(
        periods=periods,
        totals=StatementBlock(**totals.block()),
        excluded_products=ledger.entries(),
    )
