"""Output formatting helpers for CLI commands."""

from datetime import datetime
from decimal import Decimal
from typing import Optional


def format_money(amount: Optional[Decimal]) -> str:
    """Format an amount in Uganda shillings, e.g. 'UGX 12,500.00'."""
    if amount is None:
        return "-"
    sign = "-" if amount < 0 else ""
    return f"{sign}UGX {abs(amount):,.2f}"


def format_timestamp(moment: Optional[datetime]) -> str:
    """Format a stored timestamp to the minute."""
    if moment is None:
        return "never"
    return moment.strftime("%Y-%m-%d %H:%M")
