"""Customer segmentation rules.

Segments are derived from a customer's running aggregates. Rules are checked
in order and the first match wins, so the spend/loyalty/volume thresholds for
``vip`` always beat recency-based demotion to ``inactive``.
"""

import math
from datetime import datetime, timedelta, UTC
from decimal import Decimal
from typing import Optional, Union

from pharmapos.domain.entities import Customer, Segment

Number = Union[int, float, Decimal, None]

VIP_MIN_SPENT = Decimal("1000000")
VIP_MIN_POINTS = 1000
VIP_MIN_ORDERS = 50

LOYAL_MIN_ORDERS = 10
LOYAL_MIN_POINTS = 200
LOYAL_MAX_DAYS = 60

REGULAR_MIN_ORDERS = 3
REGULAR_MAX_DAYS = 90

INACTIVE_AFTER_DAYS = 180

VALID_SEGMENTS = tuple(s.value for s in Segment)


def _as_utc(moment: datetime) -> datetime:
    # Stored timestamps come back naive and are UTC
    if moment.tzinfo is None:
        return moment.replace(tzinfo=UTC)
    return moment


def days_since(last_order_date: Optional[datetime], now: Optional[datetime] = None) -> float:
    """Fractional days elapsed since the last order; infinity when there was none."""
    if last_order_date is None:
        return math.inf
    now = _as_utc(now) if now is not None else datetime.now(UTC)
    return (now - _as_utc(last_order_date)) / timedelta(days=1)


def classify(
    total_spent: Number,
    total_orders: Number,
    loyalty_points: Number,
    last_order_date: Optional[datetime],
    now: Optional[datetime] = None,
) -> Segment:
    """Compute the marketing segment for a set of customer aggregates.

    Pure and total: missing numbers count as zero and a missing last order
    date counts as infinitely long ago.

    Args:
        total_spent: Lifetime spend
        total_orders: Lifetime completed orders
        loyalty_points: Current loyalty point balance
        last_order_date: Time of the most recent order, if any
        now: Reference time for recency rules (defaults to the current UTC time)

    Returns:
        The first matching segment
    """
    spent = Decimal(str(total_spent or 0))
    orders = total_orders or 0
    points = loyalty_points or 0
    days = days_since(last_order_date, now)

    if spent >= VIP_MIN_SPENT or points >= VIP_MIN_POINTS or orders >= VIP_MIN_ORDERS:
        return Segment.VIP
    if orders >= LOYAL_MIN_ORDERS and points >= LOYAL_MIN_POINTS and days <= LOYAL_MAX_DAYS:
        return Segment.LOYAL
    if orders >= REGULAR_MIN_ORDERS and days <= REGULAR_MAX_DAYS:
        return Segment.REGULAR
    if days > INACTIVE_AFTER_DAYS and orders > 0:
        return Segment.INACTIVE
    return Segment.NEW


def classify_customer(customer: Customer, now: Optional[datetime] = None) -> Segment:
    """Classify a customer entity from its stored aggregates."""
    return classify(
        customer.total_spent,
        customer.total_orders,
        customer.loyalty_points,
        customer.last_order_date,
        now=now,
    )
