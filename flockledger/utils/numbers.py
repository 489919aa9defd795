from decimal import ROUND_HALF_UP, Decimal, InvalidOperation, localcontext
from math import isfinite
from typing import Any

import structlog

logger = structlog.get_logger(__name__)


class AmountParseError(ValueError):
    """Raised when a monetary/quantity value cannot be read as a finite number."""


def round_to(value: float, decimals: int = 2) -> float:
    """Round half away from zero, the way amounts are shown on invoices."""
    quantum = Decimal(1).scaleb(-decimals)
    with localcontext() as ctx:
        ctx.prec = 400
        return float(Decimal(repr(float(value))).quantize(quantum, rounding=ROUND_HALF_UP))


def parse_decimal(value: Any, allow_negative: bool = True) -> float:
    if value is None:
        raise AmountParseError("value is required")
    # bool is an int subclass; a True amount is always a data error
    if isinstance(value, bool):
        raise AmountParseError(f"invalid input type: {type(value).__name__}")

    if isinstance(value, (int, float, Decimal)):
        number = float(value)
    elif isinstance(value, str):
        trimmed = value.strip()
        if not trimmed:
            raise AmountParseError("value cannot be empty")
        try:
            number = float(Decimal(trimmed))
        except InvalidOperation as exc:
            raise AmountParseError(f"invalid numeric value: {value!r}") from exc
    else:
        raise AmountParseError(f"invalid input type: {type(value).__name__}")

    if not isfinite(number):
        raise AmountParseError(f"value must be finite: {value!r}")
    if not allow_negative and number < 0:
        raise AmountParseError(f"value cannot be negative: {value!r}")
    return number


def coerce_amount(value: Any, field: str = "amount", allow_negative: bool = True) -> float:
    """Best-effort variant of parse_decimal: unreadable values count as zero."""
    try:
        return parse_decimal(value, allow_negative=allow_negative)
    except AmountParseError as exc:
        logger.warning("amount_parse_failed", field=field, value=repr(value), error=str(exc))
        return 0.0
