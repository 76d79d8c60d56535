from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable

from app.bakery.schemas.orders import B2BClient, Order

B2B = "b2b"
B2C = "b2c"
SEGMENTS = (B2B, B2C)


@dataclass(frozen=True)
class SegmentClassifier:
    """B2B membership for one report run; built once and shared by every section of the report."""

    b2b_ids: frozenset[str] = field(default_factory=frozenset)

    @classmethod
    def from_clients(cls, clients: Iterable | None) -> SegmentClassifier:
        ids = set()
        for client in clients or ():
            if isinstance(client, B2BClient):
                ids.add(client.id)
            elif isinstance(client, dict):
                if client.get("id"):
                    ids.add(str(client["id"]))
            elif client:
                ids.add(str(client))
        return cls(b2b_ids=frozenset(ids))

    def is_b2b(self, customer_id: str | None) -> bool:
        return customer_id is not None and customer_id in self.b2b_ids

    def segment_of(self, order: Order) -> str:
        return B2B if self.is_b2b(order.customer_id) else B2C

    def split(self, orders: Iterable[Order]) -> tuple[list[Order], list[Order]]:
        b2b_orders: list[Order] = []
        b2c_orders: list[Order] = []
        for order in orders:
            if self.is_b2b(order.customer_id):
                b2b_orders.append(order)
            else:
                b2c_orders.append(order)
        return b2b_orders, b2c_orders

    def filter(self, orders: Iterable[Order], segment: str | None) -> list[Order]:
        if segment not in SEGMENTS:
            return list(orders)
        return [order for order in orders if self.segment_of(order) == segment]
