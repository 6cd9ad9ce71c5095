from decimal import Decimal, InvalidOperation

from .exceptions import InvalidArgumentError

# Quantity columns are 32-bit integers; unit costs are Numeric(12, 4)
MAX_QUANTITY = 2**31 - 1
COST_QUANTUM = Decimal('0.0001')
MAX_UNIT_COST = Decimal('99999999.9999')


def _as_int(value, field: str, message: str) -> int:
    """Accept ints, integral floats/Decimals and signed digit strings within MAX_QUANTITY."""
    number = _coerce_int(value, field, message)
    if abs(number) > MAX_QUANTITY:
        raise InvalidArgumentError(f"{field} must not exceed {MAX_QUANTITY}", **{field: value})
    return number


def _coerce_int(value, field: str, message: str) -> int:
    if isinstance(value, bool) or value is None:
        raise InvalidArgumentError(message, **{field: value})
    if isinstance(value, int):
        return value
    if isinstance(value, (float, Decimal)):
        if value != value or value in (float('inf'), float('-inf')) or value != int(value):
            raise InvalidArgumentError(message, **{field: value})
        return int(value)
    if isinstance(value, str):
        text = value.strip()
        digits = text[1:] if text[:1] in ('-', '+') else text
        if digits.isascii() and digits.isdigit():
            return int(text)
    raise InvalidArgumentError(message, **{field: value})


def require_positive_int(value, field: str) -> int:
    message = f"{field} must be a positive integer"
    number = _as_int(value, field, message)
    if number <= 0:
        raise InvalidArgumentError(message, **{field: value})
    return number


def require_non_negative_int(value, field: str) -> int:
    message = f"{field} must be an integer >= 0"
    number = _as_int(value, field, message)
    if number < 0:
        raise InvalidArgumentError(message, **{field: value})
    return number


def require_nonzero_int(value, field: str) -> int:
    message = f"{field} must be a non-zero integer"
    number = _as_int(value, field, message)
    if number == 0:
        raise InvalidArgumentError(message, **{field: value})
    return number


def require_unit_cost(value) -> Decimal:
    """
    Coerce a unit cost to a Decimal with exactly four places.

    Negatives, NaN, infinity, values above MAX_UNIT_COST and costs with more
    precision than the column stores are rejected rather than rounded.
    """
    message = "unit_cost must be a non-negative number"
    if isinstance(value, bool) or value is None:
        raise InvalidArgumentError(message, unit_cost=value)
    try:
        cost = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise InvalidArgumentError(message, unit_cost=value)
    if not cost.is_finite() or cost < 0:
        raise InvalidArgumentError(message, unit_cost=value)
    if cost > MAX_UNIT_COST:
        raise InvalidArgumentError(f"unit_cost must not exceed {MAX_UNIT_COST}", unit_cost=value)
    quantized = cost.quantize(COST_QUANTUM)
    if quantized != cost:
        raise InvalidArgumentError("unit_cost allows at most 4 decimal places", unit_cost=value)
    return quantized


def clean_text(value, field: str, max_length: int | None = None):
    if value is None:
        return None
    text = str(value).strip()
    if not text:
        return None
    if max_length is not None and len(text) > max_length:
        raise InvalidArgumentError(f"{field} exceeds {max_length} characters")
    return text
