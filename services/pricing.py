from datetime import datetime, timedelta
from decimal import Decimal, InvalidOperation

from services.errors import InvalidRange, ValidationError

ONE_DAY = timedelta(days=1)


def rental_days(start_date: datetime, end_date: datetime) -> int:
    """Whole 24-hour buckets between two instants, partial days rounded up."""
    delta = end_date - start_date
    days = delta // ONE_DAY
    if delta % ONE_DAY:
        days += 1
    return days


def _check_scale(amount: Decimal, max_digits: int, places: int, label: str) -> Decimal:
    """Reject amounts a Numeric(max_digits, places) column would round or refuse."""
    if amount >= Decimal(10) ** (max_digits - places):
        raise ValidationError(f"{label} is too large")
    cents = amount.quantize(Decimal(1).scaleb(-places))
    if cents != amount:
        raise ValidationError(f"{label} must have at most {places} decimal places")
    return cents


def to_amount(value, max_digits=10, places=2) -> Decimal:
    if isinstance(value, bool):
        raise ValidationError("price must be numeric")
    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError):
        raise ValidationError("price must be numeric")
    if not amount.is_finite():
        raise ValidationError("price must be numeric")
    if amount < 0:
        raise ValidationError("price must not be negative")
    return _check_scale(amount, max_digits, places, "price")


def price(start_date: datetime, end_date: datetime, price_per_day) -> Decimal:
    days = rental_days(start_date, end_date)
    if days <= 0:
        raise InvalidRange()
    # total_cost is stored as Numeric(12, 2)
    return _check_scale(days * to_amount(price_per_day), 12, 2, "total cost")
