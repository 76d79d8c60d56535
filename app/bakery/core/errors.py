from __future__ import annotations

import math
from datetime import date, datetime
from decimal import Decimal

from pydantic import ValidationError

from app.bakery.core.error_catalog import AppError, ErrorCatalog


def json_safe(value):
    if isinstance(value, Decimal):
        return format(value, "f")
    if isinstance(value, float) and (math.isnan(value) or math.isinf(value)):
        return None
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, dict):
        return {key: json_safe(item) for key, item in value.items()}
    if isinstance(value, list):
        return [json_safe(item) for item in value]
    if isinstance(value, tuple):
        return tuple(json_safe(item) for item in value)
    return value


def validation_error_details(exc: ValidationError, *, prefix: list | None = None) -> dict:
    errors = []
    for error in exc.errors():
        loc = list(prefix or []) + list(error.get("loc", []))
        field = ".".join(str(item) for item in loc) or None
        errors.append(
            {
                "field": field,
                "message": error.get("msg", "Invalid value"),
                "type": error.get("type", "validation_error"),
                "loc": loc,
                "input": json_safe(error.get("input")),
            }
        )
    return {"errors": errors}


def validation_error(exc: ValidationError, *, prefix: list | None = None) -> AppError:
    return AppError(ErrorCatalog.VALIDATION_ERROR, details=validation_error_details(exc, prefix=prefix))
