# Overview: Request payload checking for the writable models.

"""
Payload validation.

A route names a model and a ModelValidationPolicy; validate_payload turns the raw
request body (JSON or multipart form) into a patch dict holding only
allowed, type-correct column values. The enforce_rules_* helpers then
apply the domain bounds that column metadata cannot express.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Callable

from sqlalchemy import Boolean, DateTime, Integer, Numeric, String, Text

from .errors import ValidationError
from .models.projects import EXPENSE_CATEGORIES, INVENTORY_STATUSES, MILESTONE_STATUSES
from .time_utils import parse_iso_datetime

# Largest amount accepted for any Numeric(10, 2) money column
MAX_MONEY = Decimal("9999999.99")

_BOOL_WORDS = {
    "true": True, "1": True, "yes": True, "on": True,
    "false": False, "0": False, "no": False, "off": False, "": False,
}


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    What a client may send for one model.

    writable_fields  column keys a request may set; anything else is refused
    required_on_create  keys that must be present and non-blank on create
    aliases  request key -> column key (camelCase spellings)
    """
    writable_fields: set[str]
    required_on_create: set[str] = field(default_factory=set)
    aliases: dict[str, str] = field(default_factory=dict)


def _to_int(key: str, value: Any) -> int:
    if isinstance(value, bool) or isinstance(value, float):
        raise ValidationError(f"{key} must be a whole number")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        text = value.strip()
        digits = text[1:] if text[:1] in "+-" else text
        if digits.isascii() and digits.isdigit():
            return int(text)
    raise ValidationError(f"{key} must be a whole number")


def _to_decimal(key: str, value: Any, scale: int | None) -> Decimal:
    if isinstance(value, bool):
        raise ValidationError(f"{key} must be a number")
    # floats go through str() so 19.99 stays 19.99
    text = str(value).strip() if isinstance(value, (float, str)) else value
    if text == "":
        raise ValidationError(f"{key} must be a number")
    try:
        amount = Decimal(text)
    except (InvalidOperation, TypeError, ValueError):
        raise ValidationError(f"{key} must be a number")
    if not amount.is_finite():
        raise ValidationError(f"{key} must be a number")
    if scale is not None and amount.as_tuple().exponent < -scale:
        raise ValidationError(f"{key} allows at most {scale} decimal places")
    return amount


def _to_bool(key: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in _BOOL_WORDS:
        return _BOOL_WORDS[value.strip().lower()]
    raise ValidationError(f"{key} must be true or false")


def _to_datetime(key: str, value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    parsed = None
    if isinstance(value, str):
        try:
            parsed = parse_iso_datetime(value)
        except ValueError:
            parsed = None
    if parsed is None:
        raise ValidationError(f"{key} must be an ISO-8601 date or datetime")
    return parsed


def _coercer(col) -> Callable[[str, Any], Any]:
    coltype = col.type
    if isinstance(coltype, Boolean):
        return _to_bool
    if isinstance(coltype, Integer):
        return _to_int
    if isinstance(coltype, Numeric):
        return lambda key, value: _to_decimal(key, value, coltype.scale)
    if isinstance(coltype, DateTime):
        return _to_datetime
    if isinstance(coltype, (String, Text)):
        return lambda key, value: str(value).strip()
    return lambda key, value: value


def _check_text(col, value: str) -> None:
    if value == "" and not col.nullable:
        raise ValidationError(f"{col.key} cannot be blank")
    limit = getattr(col.type, "length", None)
    if limit and len(value) > limit:
        raise ValidationError(f"{col.key} is longer than {limit} characters")


def validate_payload(
    *,
    model,
    payload: Any,
    policy: ModelValidationPolicy,
    partial: bool,
) -> dict:
    """
    Clean a request body for `model`.

    partial=False is create: every required_on_create key must be given.
    partial=True is update: only the keys sent are checked.
    Raises ValidationError on the first problem found.
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Request body must be a JSON object")

    body = {policy.aliases.get(key, key): value for key, value in payload.items()}

    if not partial:
        missing = sorted(k for k in policy.required_on_create if body.get(k) in (None, ""))
        if missing:
            raise ValidationError(
                f"Missing required fields: {', '.join(missing)}",
                details={"missing": missing},
            )

    columns = {col.key: col for col in model.__mapper__.columns}
    patch: dict = {}

    for key, raw in body.items():
        col = columns.get(key)
        if key not in policy.writable_fields or col is None:
            raise ValidationError(f"Field not allowed: {key}")

        if raw is None:
            if not col.nullable:
                raise ValidationError(f"{key} cannot be null")
            patch[key] = None
            continue

        value = _coercer(col)(key, raw)
        if isinstance(value, str):
            _check_text(col, value)
        patch[key] = value

    return patch


def _check_money(patch: dict, key: str, *, allow_zero: bool = True) -> None:
    amount = patch.get(key)
    if amount is None:
        return
    if amount < 0 or (amount == 0 and not allow_zero):
        raise ValidationError(f"{key} must be {'>= 0' if allow_zero else '> 0'}")
    if amount > MAX_MONEY:
        raise ValidationError(f"{key} cannot exceed {MAX_MONEY}")


def _check_choice(patch: dict, key: str, choices) -> None:
    if key in patch and patch[key] not in choices:
        raise ValidationError(f"{key} must be one of: {', '.join(choices)}")


def _check_non_negative(patch: dict, key: str) -> None:
    if patch.get(key) is not None and patch[key] < 0:
        raise ValidationError(f"{key} must be >= 0")


def enforce_rules_product(patch: dict) -> None:
    _check_money(patch, "price")
    _check_non_negative(patch, "stock")


def enforce_rules_milestone(patch: dict) -> None:
    _check_choice(patch, "status", MILESTONE_STATUSES)


def enforce_rules_inventory(patch: dict) -> None:
    _check_non_negative(patch, "quantity")
    _check_money(patch, "unit_cost")
    _check_choice(patch, "status", INVENTORY_STATUSES)


def enforce_rules_expense(patch: dict) -> None:
    _check_money(patch, "amount", allow_zero=False)
    _check_choice(patch, "category", EXPENSE_CATEGORIES)


def enforce_date_range(patch: dict, start_field: str, end_field: str) -> None:
    start = patch.get(start_field)
    end = patch.get(end_field)
    if start is not None and end is not None and end < start:
        raise ValidationError(f"{end_field} must not be before {start_field}")
