"""
Sanitization and validation of product input.

Every entry point (CSV rows, queue messages, API bodies) passes raw data
through sanitize_product_input, which is the only place untyped input is
touched, and then checks business rules with validate_product.
"""

import logging
import math
from collections.abc import Mapping
from decimal import Decimal
from typing import Any

from exceptions import MalformedInputError, ValidationFailedError
from models import FieldError, ProductInput

logger = logging.getLogger(__name__)

REQUIRED_KEYS = ("title", "price", "count")

TITLE_REQUIRED = "Title is required and must be a non-empty string"
PRICE_REQUIRED = "Price is required and must be a positive number"
COUNT_REQUIRED = "Count is required and must be a non-negative number"
COUNT_WHOLE = "Count must be a whole number"


def _to_number(value: Any) -> float:
    """
    Numeric conversion; anything that is not a number becomes NaN.
    Integers too large for a float become +/-inf and fail validation.
    """
    if isinstance(value, bool) or value is None:
        return math.nan
    if isinstance(value, (int, float, Decimal)):
        try:
            return float(value)
        except OverflowError:
            return math.inf if value > 0 else -math.inf
    if isinstance(value, str):
        try:
            return float(value.strip())
        except ValueError:
            return math.nan
    return math.nan


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def sanitize_product_input(raw: Any) -> ProductInput:
    """
    Normalize a loosely typed product payload.

    Args:
        raw: Decoded JSON object, CSV row dict, or an existing ProductInput

    Returns:
        ProductInput with coerced field types (not yet validated)

    Raises:
        MalformedInputError: If raw is not an object or lacks title, price or count
    """
    if isinstance(raw, ProductInput):
        raw = raw.model_dump()

    if not isinstance(raw, Mapping):
        raise MalformedInputError(
            message=f"Invalid product input structure: expected object, got {type(raw).__name__}"
        )

    missing = [k for k in REQUIRED_KEYS if k not in raw]
    if missing:
        raise MalformedInputError(
            message=f"Invalid product input structure: missing {', '.join(missing)}"
        )

    title = raw.get("title")
    description = raw.get("description")
    count = raw.get("count")
    image = raw.get("image")

    return ProductInput(
        title=title.strip() if isinstance(title, str) else "",
        description=description if isinstance(description, str) else "",
        price=_to_number(raw.get("price")),
        count=0 if _is_blank(count) else _to_number(count),
        image=image.strip() if isinstance(image, str) and image.strip() else None,
    )


def validate_product(product: ProductInput) -> list[FieldError]:
    """
    Check business rules, collecting every violation.

    Never raises; an empty list means the input is valid.
    """
    errors = []

    if not product.title.strip():
        errors.append(FieldError(field="title", message=TITLE_REQUIRED))

    if not math.isfinite(product.price) or product.price <= 0:
        errors.append(FieldError(field="price", message=PRICE_REQUIRED))

    if not math.isfinite(product.count) or product.count < 0:
        errors.append(FieldError(field="count", message=COUNT_REQUIRED))
    elif product.count != int(product.count):
        errors.append(FieldError(field="count", message=COUNT_WHOLE))

    return errors


def ensure_valid(product: ProductInput) -> ProductInput:
    """Return product unchanged or raise ValidationFailedError."""
    errors = validate_product(product)
    if errors:
        raise ValidationFailedError(errors)
    return product
