"""Discount price calculation."""

from datetime import datetime
from enum import Enum

from src.services.errors import ValidationError


class DiscountType(str, Enum):
    NONE = "none"
    PERCENTAGE = "percentage"
    FIXED = "fixed"


def validate_discount_window(start_date: datetime | None, end_date: datetime | None) -> list[str]:
    if start_date and end_date and start_date >= end_date:
        return ["Discount start date must be before end date"]
    return []


def calculate_discounted_price(
    base_price: float,
    discount_type: DiscountType | str | None,
    discount_value: float | None,
    start_date: datetime | None = None,
    end_date: datetime | None = None,
) -> float:
    """
    Compute the effective sale price.

    The validity window is checked for consistency only; whether the discount applies
    at a given moment is answered by is_discount_active.

    Raises:
        ValidationError: listing every problem with the discount parameters
    """
    try:
        discount_type = DiscountType(discount_type or DiscountType.NONE)
    except ValueError:
        raise ValidationError(f"Invalid discount type: {discount_type}")
    value = float(discount_value or 0)
    price = float(base_price)

    errors = validate_discount_window(start_date, end_date)
    if value < 0:
        errors.append("Discount value cannot be negative")

    discounted = price
    if discount_type != DiscountType.NONE and value > 0:
        if discount_type == DiscountType.PERCENTAGE:
            if value > 100:
                errors.append("Percentage discount cannot exceed 100%")
            else:
                discounted = price - price * value / 100
        elif discount_type == DiscountType.FIXED:
            if value >= price:
                errors.append("Fixed discount cannot be greater than or equal to product price")
            else:
                discounted = price - value

    if errors:
        raise ValidationError(errors)
    return discounted


def is_discount_active(start_date: datetime | None, end_date: datetime | None, now: datetime) -> bool:
    """True when ``now`` falls inside the (open-ended where missing) validity window."""
    if start_date and now < start_date:
        return False
    if end_date and now > end_date:
        return False
    return True
