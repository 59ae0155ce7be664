from __future__ import annotations

from datetime import datetime
from typing import List, Sequence

from .dataset import in_month, month_label, reference_timezone, shift_month
from .models import ZERO, OrderRecord, PaymentRecord, RevenueBucket, SubscriptionRecord


def bucketize(
    payments: Sequence[PaymentRecord],
    subscriptions: Sequence[SubscriptionRecord],
    orders: Sequence[OrderRecord],
    window_months: int,
    now: datetime,
) -> List[RevenueBucket]:
    """
    One row per calendar month, oldest first, ending with the month of ``now``.

    ``window_months`` must already be resolved via ``resolve_window``.
    """

    tz = reference_timezone(now)
    buckets: List[RevenueBucket] = []
    for offset in range(window_months - 1, -1, -1):
        key = shift_month(now, offset)
        month_payments = in_month(payments, lambda p: p.created_at, key, tz)
        month_subscriptions = in_month(subscriptions, lambda s: s.created_at, key, tz)
        month_orders = in_month(orders, lambda o: o.created_at, key, tz)
        buckets.append(
            RevenueBucket(
                label=month_label(key),
                year=key[0],
                month=key[1],
                revenue=sum((payment.amount for payment in month_payments), ZERO),
                subscription_count=sum(1 for _ in month_subscriptions),
                order_count=sum(1 for _ in month_orders),
            )
        )
    return buckets
