"""Amount parsing utilities."""

from decimal import Decimal, InvalidOperation
import re

# Uganda shilling prefixes plus common currency symbols
_CURRENCY_MARKERS = re.compile(r"(?i)ugx|ush|[$€£¥]")


def parse_amount(amount_str: str) -> Decimal:
    """Parse an amount string into a Decimal.

    Handles various formats:
    - "5000"
    - "UGX 5,000"
    - "USh 12,500.50"
    - "$123.45"
    - "-1,234.56"

    Args:
        amount_str: Amount string

    Returns:
        Decimal amount

    Raises:
        ValueError: If amount string cannot be parsed
    """
    if not amount_str or not amount_str.strip():
        raise ValueError("Empty amount string")

    cleaned = _CURRENCY_MARKERS.sub("", amount_str.strip())
    cleaned = cleaned.replace(",", "").replace(" ", "")

    try:
        return Decimal(cleaned)
    except InvalidOperation:
        raise ValueError(f"Could not parse amount '{amount_str}'") from None


def parse_quantity(quantity_str: str) -> int:
    """Parse a positive whole-unit quantity.

    Raises:
        ValueError: If the value is not a positive integer
    """
    try:
        quantity = int(str(quantity_str).strip())
    except ValueError:
        raise ValueError(f"Could not parse quantity '{quantity_str}'") from None
    if quantity <= 0:
        raise ValueError(f"Quantity must be positive, got {quantity}")
    return quantity
