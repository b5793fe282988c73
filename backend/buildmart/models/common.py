from __future__ import annotations

import uuid
from decimal import Decimal, ROUND_HALF_UP

TWO_PLACES = Decimal("0.01")


def generate_id() -> str:
    """Opaque primary key, generated once at insert."""
    return str(uuid.uuid4())


def quantize_money(value: Decimal | int | str) -> Decimal:
    return Decimal(value).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


def money_str(value: Decimal | None) -> str | None:
    """Render money as a fixed two-decimal string ("45.00")."""
    if value is None:
        return None
    return str(quantize_money(value))
