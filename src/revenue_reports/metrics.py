from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Iterable, Sequence

from .dataset import in_month, reference_timezone, shift_month
from .models import (
    SUBSCRIPTION_ACTIVE,
    SUBSCRIPTION_CANCELLED,
    ZERO,
    MetricsSummary,
    OrderRecord,
    PaymentRecord,
    ProfileRecord,
    SubscriptionRecord,
)
from .normalize import monthly_equivalent

HUNDRED = Decimal(100)
MONTHS_PER_YEAR = 12


def _sum(values: Iterable[Decimal]) -> Decimal:
    return sum(values, ZERO)


def calc_growth_rate(current: Decimal, previous: Decimal) -> Decimal:
    """
    Month-over-month change in percent.

    A month with revenue following an empty month counts as 100% growth; two
    empty months count as no growth.
    """

    if previous == 0:
        return HUNDRED if current != 0 else ZERO
    return (current - previous) / previous * HUNDRED


def calc_mrr(subscriptions: Iterable[SubscriptionRecord]) -> Decimal:
    return _sum(
        monthly_equivalent(subscription.amount, subscription.billing_cycle)
        for subscription in subscriptions
        if subscription.status == SUBSCRIPTION_ACTIVE
    )


def calc_churn_rate(subscriptions: Sequence[SubscriptionRecord]) -> Decimal:
    cancelled = sum(1 for subscription in subscriptions if subscription.status == SUBSCRIPTION_CANCELLED)
    return Decimal(cancelled) / max(len(subscriptions), 1) * HUNDRED


def revenue_for_month(payments: Iterable[PaymentRecord], now: datetime, months_back: int = 0) -> Decimal:
    key = shift_month(now, months_back)
    tz = reference_timezone(now)
    return _sum(payment.amount for payment in in_month(payments, lambda p: p.created_at, key, tz))


def compute_metrics(
    payments: Sequence[PaymentRecord],
    subscriptions: Sequence[SubscriptionRecord],
    orders: Sequence[OrderRecord],
    profiles: Sequence[ProfileRecord],
    now: datetime,
) -> MetricsSummary:
    """
    Scalar business metrics for one snapshot.

    ``payments`` and ``orders`` are expected to contain completed records only;
    ``subscriptions`` may hold every status.
    """

    monthly_revenue = revenue_for_month(payments, now)
    previous_month_revenue = revenue_for_month(payments, now, months_back=1)
    growth_rate = calc_growth_rate(monthly_revenue, previous_month_revenue)

    mrr = calc_mrr(subscriptions)
    order_total = _sum(order.total_amount for order in orders)
    avg_order_value = order_total / len(orders) if orders else ZERO

    return MetricsSummary(
        total_revenue=_sum(payment.amount for payment in payments),
        monthly_revenue=monthly_revenue,
        previous_month_revenue=previous_month_revenue,
        growth_rate=growth_rate,
        trend_up=growth_rate > 0,
        mrr=mrr,
        arr=mrr * MONTHS_PER_YEAR,
        churn_rate=calc_churn_rate(subscriptions),
        total_customers=len(profiles),
        active_subscriptions=sum(1 for s in subscriptions if s.status == SUBSCRIPTION_ACTIVE),
        cancelled_subscriptions=sum(1 for s in subscriptions if s.status == SUBSCRIPTION_CANCELLED),
        total_orders=len(orders),
        avg_order_value=avg_order_value,
    )
