"""Utility functions for pharmapos."""

from pharmapos.utils.date_parser import parse_date, get_date_range
from pharmapos.utils.amount_parser import parse_amount, parse_quantity

__all__ = ["parse_date", "get_date_range", "parse_amount", "parse_quantity"]
