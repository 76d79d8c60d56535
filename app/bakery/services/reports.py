from __future__ import annotations

import logging
import time
from typing import Iterable

from app.bakery.core.errors import json_safe
from app.bakery.core.logging import log_json
from app.bakery.core.metrics import metrics
from app.bakery.schemas.orders import build_b2b_clients, build_bakery_settings, build_catalog, build_orders
from app.bakery.schemas.reports import IncomeStatementByMonth, ReportModel
from app.bakery.services.income_statement import build_income_statement, build_income_statement_query
from app.bakery.services.product_report import ProductReport, build_product_report_options
from app.bakery.services.sales_report import SUMMARY_FAMILY, SalesReportEngine
from app.bakery.services.segments import SegmentClassifier

logger = logging.getLogger("bakery.reports")


def _elapsed_ms(start: float) -> float:
    return round((time.perf_counter() - start) * 1000, 2)


def _finish(report: str, family: str, start: float, payload: dict) -> None:
    query_ms = _elapsed_ms(start)
    metrics.record_report_build(report=report, family=family, duration_ms=query_ms)
    log_json(logger, {"event": "report_built", "report": report, "family": family, **payload, "query_ms": query_ms})


def to_json_payload(report: ReportModel | dict) -> dict:
    if isinstance(report, ReportModel):
        report = report.to_payload()
    return json_safe(report)


def build_sales_report(
    orders: Iterable,
    b2b_clients: Iterable = (),
    products: Iterable = (),
    *,
    family: str = SUMMARY_FAMILY,
) -> dict:
    start = time.perf_counter()
    order_models = build_orders(orders)
    classifier = SegmentClassifier.from_clients(build_b2b_clients(b2b_clients))
    engine = SalesReportEngine(order_models, classifier, build_catalog(products))
    report = engine.build(family)
    _finish(
        "sales",
        family,
        start,
        {
            "orders": len(engine.orders),
            "complimentary_orders": len(engine.complimentary_orders),
            "b2b_clients": len(classifier.b2b_ids),
        },
    )
    return report.to_payload()


def build_product_report(
    orders: Iterable,
    b2b_clients: Iterable = (),
    products: Iterable = (),
    options=None,
) -> dict:
    start = time.perf_counter()
    report_options = build_product_report_options(options)
    engine = ProductReport(
        build_orders(orders),
        build_b2b_clients(b2b_clients),
        build_catalog(products),
        report_options,
    )
    report = engine.generate()
    _finish(
        "products",
        report_options.segment,
        start,
        {
            "orders": len(engine.orders),
            "products": len(engine.aggregates),
            "period": report_options.period,
            "date_field": report_options.date_field,
        },
    )
    return report.to_payload()


def build_income_statement_report(
    orders: Iterable,
    products: Iterable = (),
    bakery_settings=None,
    query=None,
    *,
    today=None,
) -> dict:
    start = time.perf_counter()
    statement_query = build_income_statement_query(query)
    report = build_income_statement(
        build_orders(orders),
        build_catalog(products),
        build_bakery_settings(bakery_settings),
        statement_query,
        today=today,
    )
    excluded = len(report.excluded_products)
    metrics.increment_excluded_products(excluded)
    payload = {"excluded_products": excluded}
    if isinstance(report, IncomeStatementByMonth):
        payload["months"] = len(report.periods)
    _finish("income_statement", statement_query.group_by, start, payload)
    return report.to_payload()
