from __future__ import annotations

import math
from datetime import datetime
from functools import cached_property
from typing import Annotated, Iterable

from pydantic import AliasChoices, BaseModel, BeforeValidator, ConfigDict, Field, ValidationError

from app.bakery.core.errors import validation_error
from app.bakery.core.money import coerce_money
from app.bakery.schemas.reports import camel_alias
from app.bakery.services.periods import parse_timestamp
from app.bakery.services.pricing import (
    COMPLIMENTARY_PAYMENT_METHOD,
    LineItemAmounts,
    OrderDiscount,
    OrderTotals,
    line_item_amounts,
    order_totals,
)

DATE_FIELDS = {
    "dueDate": "due_date",
    "paymentDate": "payment_date",
    "preparationDate": "preparation_date",
}
TRUE_STRINGS = ("true", "1", "yes", "y", "on")
FALSE_STRINGS = ("false", "0", "no", "n", "off", "")


def _zero_if_none(value):
    return 0 if value is None else value


def _money_or_zero(value):
    return _zero_if_none(coerce_money(value))


def _lenient_number(value):
    if value is None or isinstance(value, bool):
        return None
    try:
        number = value if isinstance(value, int) else float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def _lenient_bool(value):
    if value is None:
        return False
    if isinstance(value, str):
        text = value.strip().lower()
        if text in TRUE_STRINGS:
            return True
        if text in FALSE_STRINGS:
            return False
        raise ValueError(f"unrecognized boolean value: {value!r}")
    return bool(value)


def _lower_or_default(default: str):
    def _normalize(value):
        if value is None or value == "":
            return default
        return str(value).strip().lower()

    return _normalize


Money = Annotated[int, BeforeValidator(_money_or_zero), Field(ge=0)]
OptionalMoney = Annotated[Annotated[int, Field(ge=0)] | None, BeforeValidator(coerce_money)]
Timestamp = Annotated[datetime | None, BeforeValidator(parse_timestamp)]
LenientNumber = Annotated[float | None, BeforeValidator(_lenient_number)]
Flag = Annotated[bool, BeforeValidator(_lenient_bool)]


class InputModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=camel_alias,
        populate_by_name=True,
        extra="ignore",
        frozen=True,
    )


class OrderLineItem(InputModel):
    product_id: str = Field(min_length=1)
    product_name: str | None = None
    collection_id: str | None = None
    collection_name: str | None = None
    quantity: int = Field(gt=0)
    current_price: Money
    base_price: OptionalMoney = None
    tax_percentage: Annotated[float, BeforeValidator(_zero_if_none), Field(ge=0, le=100)] = 0
    discount_type: str | None = None
    discount_value: LenientNumber = None
    is_complimentary: Flag = False
    display_order: int | None = None
    cost_price: OptionalMoney = None

    @property
    def reference_price(self) -> int:
        return self.current_price if self.base_price is None else self.base_price

    @property
    def amounts(self) -> LineItemAmounts:
        return line_item_amounts(self)

    @property
    def subtotal(self) -> int:
        return self.amounts.subtotal

    @property
    def tax_amount(self) -> int:
        return self.amounts.tax_amount

    @property
    def pre_tax_amount(self) -> int:
        return self.amounts.pre_tax_amount


class Order(InputModel):
    id: str = Field(min_length=1)
    bakery_id: str | None = None
    customer_id: str | None = Field(
        default=None,
        validation_alias=AliasChoices("customerId", "userId", "customer_id"),
    )
    line_items: tuple[OrderLineItem, ...] = Field(
        default=(),
        validation_alias=AliasChoices("orderItems", "items", "lineItems", "line_items"),
    )
    fulfillment_type: Annotated[str, BeforeValidator(_lower_or_default("pickup"))] = "pickup"
    delivery_fee: Money = 0
    delivery_cost: Money = 0
    payment_method: str | None = None
    order_discount_type: str | None = None
    order_discount_value: LenientNumber = None
    is_paid: Flag = False
    status: int | str | None = None
    due_date: Timestamp = None
    payment_date: Timestamp = None
    preparation_date: Timestamp = None

    @property
    def is_complimentary(self) -> bool:
        return self.payment_method == COMPLIMENTARY_PAYMENT_METHOD

    @property
    def is_delivery(self) -> bool:
        return self.fulfillment_type == "delivery"

    @cached_property
    def totals(self) -> OrderTotals:
        return order_totals(self)

    @property
    def taxable_subtotal(self) -> int:
        return self.totals.taxable_subtotal

    @property
    def non_taxable_subtotal(self) -> int:
        return self.totals.non_taxable_subtotal

    @property
    def subtotal(self) -> int:
        return self.totals.subtotal

    @property
    def order_discount(self) -> OrderDiscount:
        return self.totals.discount

    @property
    def order_discount_amount(self) -> int:
        return self.totals.discount.amount

    @property
    def total_tax_amount(self) -> int:
        return self.totals.total_tax_amount

    @property
    def pre_tax_total(self) -> int:
        return self.totals.pre_tax_total

    @property
    def total(self) -> int:
        return self.totals.total

    @property
    def delivery_charge(self) -> int:
        return self.totals.delivery_fee

    @property
    def billable_items(self) -> list[OrderLineItem]:
        return [item for item in self.line_items if not item.is_complimentary]

    def date_for(self, date_field: str) -> datetime | None:
        attribute = DATE_FIELDS.get(date_field, date_field)
        if attribute not in DATE_FIELDS.values():
            return None
        return getattr(self, attribute)


class CatalogProduct(InputModel):
    id: str = Field(min_length=1)
    name: str | None = None
    collection_id: str | None = None
    collection_name: str | None = None
    cost_price: OptionalMoney = None
    is_deleted: Flag = False


class B2BClient(InputModel):
    id: str = Field(min_length=1)


class ReportFeatureSettings(InputModel):
    default_report_filter: str | None = None
    show_multiple_reports: Flag = False


class FeatureSettings(InputModel):
    reports: ReportFeatureSettings = Field(default_factory=ReportFeatureSettings)


class BakerySettings(InputModel):
    id: str | None = None
    features: FeatureSettings = Field(default_factory=FeatureSettings)

    @property
    def default_report_filter(self) -> str | None:
        return self.features.reports.default_report_filter


def _build_many(model: type[InputModel], records: Iterable | None, collection: str) -> list:
    built = []
    for index, record in enumerate(records or ()):
        if isinstance(record, model):
            built.append(record)
            continue
        try:
            built.append(model.model_validate(record))
        except ValidationError as exc:
            raise validation_error(exc, prefix=[collection, index]) from exc
    return built


def build_line_item(record) -> OrderLineItem:
    if isinstance(record, OrderLineItem):
        return record
    try:
        return OrderLineItem.model_validate(record)
    except ValidationError as exc:
        raise validation_error(exc) from exc


def build_order(record) -> Order:
    if isinstance(record, Order):
        return record
    try:
        return Order.model_validate(record)
    except ValidationError as exc:
        raise validation_error(exc) from exc


def build_orders(records: Iterable | None) -> list[Order]:
    return _build_many(Order, records, "orders")


def build_catalog(records: Iterable | None) -> list[CatalogProduct]:
    return _build_many(CatalogProduct, records, "products")


def build_b2b_clients(records: Iterable | None) -> list[B2BClient]:
    return _build_many(B2BClient, records, "b2bClients")


def build_bakery_settings(record) -> BakerySettings:
    if isinstance(record, BakerySettings):
        return record
    try:
        return BakerySettings.model_validate(record or {})
    except ValidationError as exc:
        raise validation_error(exc, prefix=["settings"]) from exc
