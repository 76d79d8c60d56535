from __future__ import annotations

from dataclasses import dataclass
from fractions import Fraction
from typing import TYPE_CHECKING

from app.bakery.core.money import inclusive_tax, round_half_up, scale

if TYPE_CHECKING:
    from app.bakery.schemas.orders import Order, OrderLineItem

COMPLIMENTARY_PAYMENT_METHOD = "complimentary"
DISCOUNT_TYPES = ("percentage", "fixed")

MISSING_TYPE = "missing_type"
UNSUPPORTED_TYPE = "unsupported_type"
NON_POSITIVE_VALUE = "non_positive_value"
COMPLIMENTARY_ORDER = "complimentary_order"


@dataclass(frozen=True)
class LineItemAmounts:
    tax_amount: int
    pre_tax_amount: int
    subtotal: int


@dataclass(frozen=True)
class OrderDiscount:
    amount: int
    ignored_reason: str | None = None

    @property
    def applied(self) -> bool:
        return self.ignored_reason is None


@dataclass(frozen=True)
class OrderTotals:
    taxable_subtotal: int
    non_taxable_subtotal: int
    subtotal: int
    discount: OrderDiscount
    total_tax_amount: int
    pre_tax_total: int
    delivery_fee: int
    total: int

    @property
    def order_discount_amount(self) -> int:
        return self.discount.amount


ZERO_LINE_ITEM = LineItemAmounts(tax_amount=0, pre_tax_amount=0, subtotal=0)


def unit_tax(item: OrderLineItem) -> int:
    if item.is_complimentary:
        return 0
    return inclusive_tax(item.current_price, item.tax_percentage)


def line_item_amounts(item: OrderLineItem) -> LineItemAmounts:
    """Per-unit tax and pre-tax figures plus the line subtotal.

    The stored unit price already includes tax, so the tax share is backed out of it
    and rounded half-up to a whole unit.
    """
    if item.is_complimentary:
        return ZERO_LINE_ITEM
    tax = unit_tax(item)
    return LineItemAmounts(
        tax_amount=tax,
        pre_tax_amount=item.current_price - tax,
        subtotal=item.quantity * item.current_price,
    )


def resolve_order_discount(discount_type: str | None, discount_value, subtotal: int) -> OrderDiscount:
    if not discount_type:
        return OrderDiscount(amount=0, ignored_reason=MISSING_TYPE)
    if discount_type not in DISCOUNT_TYPES:
        return OrderDiscount(amount=0, ignored_reason=UNSUPPORTED_TYPE)
    if discount_value is None or discount_value <= 0:
        return OrderDiscount(amount=0, ignored_reason=NON_POSITIVE_VALUE)
    if discount_type == "percentage":
        amount = round_half_up(Fraction(subtotal) * Fraction(str(discount_value)) / 100)
    else:
        amount = round_half_up(discount_value)
    return OrderDiscount(amount=min(amount, subtotal))


def order_totals(order: Order) -> OrderTotals:
    if order.is_complimentary:
        return OrderTotals(
            taxable_subtotal=0,
            non_taxable_subtotal=0,
            subtotal=0,
            discount=OrderDiscount(amount=0, ignored_reason=COMPLIMENTARY_ORDER),
            total_tax_amount=0,
            pre_tax_total=0,
            delivery_fee=0,
            total=0,
        )

    taxable_subtotal = 0
    non_taxable_subtotal = 0
    total_tax_amount = 0
    for item in order.line_items:
        amounts = line_item_amounts(item)
        if item.tax_percentage > 0:
            taxable_subtotal += amounts.subtotal
            total_tax_amount += amounts.tax_amount * item.quantity
        else:
            non_taxable_subtotal += amounts.subtotal

    subtotal = taxable_subtotal + non_taxable_subtotal
    pre_tax_total = subtotal - total_tax_amount
    discount = resolve_order_discount(order.order_discount_type, order.order_discount_value, subtotal)
    if discount.amount and subtotal:
        ratio = Fraction(discount.amount, subtotal)
        total_tax_amount = scale(total_tax_amount, ratio)
        pre_tax_total = scale(pre_tax_total, ratio)

    delivery_fee = order.delivery_fee if order.is_delivery else 0
    return OrderTotals(
        taxable_subtotal=taxable_subtotal,
        non_taxable_subtotal=non_taxable_subtotal,
        subtotal=subtotal,
        discount=discount,
        total_tax_amount=total_tax_amount,
        pre_tax_total=pre_tax_total,
        delivery_fee=delivery_fee,
        total=max(0, subtotal - discount.amount) + delivery_fee,
    )
