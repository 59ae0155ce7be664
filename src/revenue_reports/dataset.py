from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone, tzinfo
from typing import Callable, Iterable, Iterator, Sequence, Tuple, TypeVar
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dateutil.relativedelta import relativedelta

from .models import (
    ORDER_COMPLETED,
    PAYMENT_COMPLETED,
    OrderRecord,
    PaymentRecord,
    ProfileRecord,
    SubscriptionRecord,
)

logger = logging.getLogger(__name__)

MONTH_LABELS = ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")

MonthKey = Tuple[int, int]
T = TypeVar("T")


def coerce_timezone(name: str) -> tzinfo:
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning("Unknown timezone %r, falling back to UTC", name)
        return ZoneInfo("UTC")


def reference_timezone(now: datetime) -> tzinfo:
    """Timezone that month boundaries are evaluated in; naive ``now`` means UTC."""

    return now.tzinfo or timezone.utc


def normalize_datetime(dt: datetime, tz: tzinfo) -> datetime:
    if dt.tzinfo is None:
        return dt.replace(tzinfo=tz)
    return dt.astimezone(tz)


def month_of(dt: datetime, tz: tzinfo) -> MonthKey:
    local = normalize_datetime(dt, tz)
    return local.year, local.month


def shift_month(now: datetime, months_back: int) -> MonthKey:
    """
    Calendar month ``months_back`` months before the month containing ``now``.

    Anchoring on the first of the month keeps the arithmetic exact across
    short months and year boundaries (two months before January is November).
    """

    local = normalize_datetime(now, reference_timezone(now))
    target = local.replace(day=1) - relativedelta(months=months_back)
    return target.year, target.month


def month_label(key: MonthKey) -> str:
    return MONTH_LABELS[key[1] - 1]


def in_month(
    records: Iterable[T],
    timestamp: Callable[[T], datetime],
    key: MonthKey,
    tz: tzinfo,
) -> Iterator[T]:
    """Yield records whose localised ``timestamp`` falls inside the ``key`` month."""

    for record in records:
        if month_of(timestamp(record), tz) == key:
            yield record


@dataclass
class ReportDataset:
    """
    Immutable snapshot prepared for one report evaluation.

    Payments and orders are expected to arrive already restricted to the
    ``completed`` status; anything else is dropped here so inline snapshots
    behave the same way as database loads. Subscriptions are kept unfiltered
    because MRR and churn need every status. Input order is preserved since
    the categorical rollups break ties by first appearance.
    """

    payments: Sequence[PaymentRecord]
    subscriptions: Sequence[SubscriptionRecord]
    orders: Sequence[OrderRecord]
    profiles: Sequence[ProfileRecord]

    def __post_init__(self) -> None:
        payments = tuple(self.payments)
        orders = tuple(self.orders)
        self.payments = tuple(payment for payment in payments if payment.status == PAYMENT_COMPLETED)
        self.orders = tuple(order for order in orders if order.status == ORDER_COMPLETED)
        self.subscriptions = tuple(self.subscriptions)
        self.profiles = tuple(self.profiles)

        dropped_payments = len(payments) - len(self.payments)
        dropped_orders = len(orders) - len(self.orders)
        if dropped_payments or dropped_orders:
            logger.debug(
                "Ignoring %d non-completed payments and %d non-completed orders",
                dropped_payments,
                dropped_orders,
            )
