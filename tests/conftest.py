import pytest

from app.bakery.core.metrics import metrics
from app.bakery.schemas.orders import build_b2b_clients, build_catalog, build_orders
from tests import report_helpers


@pytest.fixture(autouse=True)
def reset_metrics():
    metrics.reset()
    yield


@pytest.fixture()
def sales_orders():
    return build_orders(report_helpers.sales_orders())


@pytest.fixture()
def b2b_clients():
    return build_b2b_clients(report_helpers.b2b_clients())


@pytest.fixture()
def catalog():
    return build_catalog(report_helpers.catalog())
