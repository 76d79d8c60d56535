from __future__ import annotations

from app.bakery.schemas.orders import Order, OrderLineItem, build_order

B2B_USER_1 = "b2b-user-1"
B2B_USER_2 = "b2b-user-2"
B2C_USER_1 = "b2c-user-1"
B2C_USER_2 = "b2c-user-2"


def item_payload(**overrides) -> dict:
    payload = {
        "productId": "prod-1",
        "productName": "Chocolate Cake",
        "collectionId": "col-cakes",
        "collectionName": "Cakes",
        "quantity": 1,
        "currentPrice": 1000,
        "taxPercentage": 0,
        "isComplimentary": False,
    }
    payload.update(overrides)
    return payload


def order_payload(*items: dict, **overrides) -> dict:
    payload = {
        "id": "order-1",
        "bakeryId": "bakery-1",
        "userId": B2C_USER_1,
        "dueDate": "2024-01-15T10:00:00Z",
        "fulfillmentType": "pickup",
        "paymentMethod": "cash",
        "isPaid": True,
        "orderItems": list(items) or [item_payload()],
    }
    payload.update(overrides)
    return payload


def make_item(**overrides) -> OrderLineItem:
    return OrderLineItem.model_validate(item_payload(**overrides))


def make_order(*items: dict, **overrides) -> Order:
    return build_order(order_payload(*items, **overrides))


def sales_orders() -> list[dict]:
    return [
        order_payload(
            item_payload(productId="prod-1", quantity=3, currentPrice=10000, taxPercentage=19),
            item_payload(
                productId="prod-2",
                productName="Vanilla Cupcake",
                collectionId="col-cupcakes",
                collectionName="Cupcakes",
                quantity=5,
                currentPrice=3000,
            ),
            id="order-1",
            userId=B2B_USER_1,
            dueDate="2024-01-15T10:00:00Z",
            fulfillmentType="delivery",
            deliveryFee=5000,
            deliveryCost=3000,
            paymentMethod="card",
        ),
        order_payload(
            item_payload(productId="prod-1", quantity=2, currentPrice=10000, taxPercentage=19),
            id="order-2",
            userId=B2B_USER_2,
            dueDate="2024-01-16T10:00:00Z",
            paymentMethod="cash",
        ),
        order_payload(
            item_payload(
                productId="prod-3",
                productName="Strawberry Tart",
                collectionId="col-tarts",
                collectionName="Tarts",
                quantity=1,
                currentPrice=8000,
                taxPercentage=19,
            ),
            item_payload(
                productId="prod-4",
                productName="Blueberry Muffin",
                collectionId="col-muffins",
                collectionName="Muffins",
                quantity=4,
                currentPrice=2500,
            ),
            id="order-3",
            userId=B2C_USER_1,
            dueDate="2024-01-15T14:00:00Z",
            fulfillmentType="delivery",
            deliveryFee=4000,
            deliveryCost=2500,
            paymentMethod="card",
        ),
        order_payload(
            item_payload(productId="prod-1", quantity=1, currentPrice=10000, taxPercentage=19),
            item_payload(productId="prod-5", productName="Lemon Cake", quantity=2, currentPrice=9000, taxPercentage=19),
            id="order-4",
            userId=B2C_USER_2,
            dueDate="2024-01-20T10:00:00Z",
            paymentMethod="transfer",
        ),
        order_payload(
            item_payload(
                productId="prod-2",
                productName="Vanilla Cupcake",
                collectionId="col-cupcakes",
                collectionName="Cupcakes",
                quantity=10,
                currentPrice=3000,
            ),
            id="order-5",
            userId=B2C_USER_1,
            dueDate="2024-01-17T10:00:00Z",
            paymentMethod="complimentary",
        ),
    ]


def b2b_clients() -> list[dict]:
    return [
        {"id": B2B_USER_1, "name": "B2B Client 1"},
        {"id": B2B_USER_2, "name": "B2B Client 2"},
    ]


def catalog() -> list[dict]:
    return [
        {"id": "prod-1", "name": "Chocolate Cake", "collectionId": "col-cakes", "collectionName": "Cakes"},
        {"id": "prod-2", "name": "Vanilla Cupcake", "collectionId": "col-cupcakes", "collectionName": "Cupcakes"},
        {"id": "prod-3", "name": "Strawberry Tart", "collectionId": "col-tarts", "collectionName": "Tarts"},
        {"id": "prod-4", "name": "Blueberry Muffin", "collectionId": "col-muffins", "collectionName": "Muffins"},
        {"id": "prod-5", "name": "Lemon Cake", "collectionId": "col-cakes", "collectionName": "Cakes"},
        {
            "id": "prod-deleted",
            "name": "Old Product",
            "collectionId": "col-cakes",
            "collectionName": "Cakes",
            "isDeleted": True,
        },
    ]
