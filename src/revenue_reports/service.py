from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional, Sequence, Union

from .buckets import bucketize
from .dataset import ReportDataset, coerce_timezone, normalize_datetime
from .metrics import compute_metrics
from .models import (
    CategorySlice,
    InvalidWindowError,
    MetricsSummary,
    OrderRecord,
    PackageRanking,
    PaymentRecord,
    ProfileRecord,
    ReportSnapshot,
    RevenueBucket,
    RevenueReport,
    SubscriptionRecord,
)
from .rollups import category_distribution, top_packages

logger = logging.getLogger(__name__)

WINDOW_CHOICES = {
    "1m": 1,
    "3m": 3,
    "6m": 6,
    "1y": 12,
}
WINDOW_MONTHS = frozenset(WINDOW_CHOICES.values())


def resolve_window(window: Union[int, str]) -> int:
    """
    Map a dashboard range selector (``"1m"``, ``"3m"``, ``"6m"``, ``"1y"``) or a
    month count (1, 3, 6, 12) to the number of monthly buckets.
    """

    if isinstance(window, bool):
        raise InvalidWindowError(f"Unsupported report window: {window!r}")
    if isinstance(window, int):
        if window in WINDOW_MONTHS:
            return window
        raise InvalidWindowError(f"Unsupported report window: {window!r}")
    key = str(window).strip().lower()
    if key in WINDOW_CHOICES:
        return WINDOW_CHOICES[key]
    if key.isdigit() and int(key) in WINDOW_MONTHS:
        return int(key)
    raise InvalidWindowError(f"Unsupported report window: {window!r}")


def assemble(
    metrics: MetricsSummary,
    buckets: Sequence[RevenueBucket],
    category_rollup: Sequence[CategorySlice],
    packages: Sequence[PackageRanking],
    window_months: Optional[int] = None,
    generated_at: Optional[datetime] = None,
) -> RevenueReport:
    return RevenueReport(
        metrics=metrics,
        revenue_by_month=tuple(buckets),
        category_distribution=tuple(category_rollup),
        top_packages=tuple(packages),
        window_months=len(buckets) if window_months is None else window_months,
        generated_at=generated_at,
    )


class RevenueReportService:
    """
    Builds the revenue & subscription report for one fetched snapshot.

    Holds nothing besides the snapshot; ``build`` may be called repeatedly
    with different windows or reference times.
    """

    def __init__(
        self,
        payments: Sequence[PaymentRecord],
        subscriptions: Sequence[SubscriptionRecord],
        orders: Sequence[OrderRecord],
        profiles: Sequence[ProfileRecord],
        timezone: str = "UTC",
    ) -> None:
        self.dataset = ReportDataset(
            payments=payments,
            subscriptions=subscriptions,
            orders=orders,
            profiles=profiles,
        )
        self.timezone = coerce_timezone(timezone)

    @classmethod
    def from_snapshot(cls, snapshot: ReportSnapshot, timezone: str = "UTC") -> "RevenueReportService":
        return cls(
            payments=snapshot.payments,
            subscriptions=snapshot.subscriptions,
            orders=snapshot.orders,
            profiles=snapshot.profiles,
            timezone=timezone,
        )

    def build(self, window: Union[int, str], now: Optional[datetime] = None) -> RevenueReport:
        window_months = resolve_window(window)
        now = datetime.now(self.timezone) if now is None else normalize_datetime(now, self.timezone)

        data = self.dataset
        logger.debug(
            "Building %d-month report at %s from %d payments, %d subscriptions, %d orders, %d profiles",
            window_months,
            now.isoformat(),
            len(data.payments),
            len(data.subscriptions),
            len(data.orders),
            len(data.profiles),
        )

        metrics = compute_metrics(data.payments, data.subscriptions, data.orders, data.profiles, now)
        buckets = bucketize(data.payments, data.subscriptions, data.orders, window_months, now)
        categories = category_distribution(data.subscriptions, data.orders)
        packages = top_packages(data.subscriptions, data.orders)
        return assemble(metrics, buckets, categories, packages, window_months=window_months, generated_at=now)
