from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Iterable, Optional, Sequence

PAYMENT_COMPLETED = "completed"
ORDER_COMPLETED = "completed"
SUBSCRIPTION_ACTIVE = "active"
SUBSCRIPTION_CANCELLED = "cancelled"

ZERO = Decimal("0")


class InvalidWindowError(ValueError):
    """Raised when a report window is outside the supported selector set."""


@dataclass(frozen=True)
class PackageRef:
    """
    Joined ``service_packages`` relation.

    Either field may be missing for legacy records that were never linked to a
    package; the normalizer replaces them with sentinel values.
    """

    name: Optional[str] = None
    category: Optional[str] = None


@dataclass(frozen=True)
class PaymentRecord:
    id: str
    amount: Decimal
    status: str
    created_at: datetime


@dataclass(frozen=True)
class SubscriptionRecord:
    """
    Subscription row as fetched from the store (unfiltered by status).

    ``amount`` is charged once per ``billing_cycle``; MRR normalises it to a
    monthly equivalent.
    """

    id: str
    amount: Decimal
    billing_cycle: str
    status: str
    created_at: datetime
    cancelled_at: Optional[datetime] = None
    package: Optional[PackageRef] = None


@dataclass(frozen=True)
class OrderRecord:
    id: str
    total_amount: Decimal
    status: str
    created_at: datetime
    package: Optional[PackageRef] = None


@dataclass(frozen=True)
class ProfileRecord:
    id: str
    created_at: datetime


@dataclass(frozen=True)
class NormalizedRecord:
    """Uniform view over subscription and order contributions."""

    category: str
    package_name: str
    amount: Decimal
    timestamp: datetime
    status: str
    source: str


@dataclass(frozen=True)
class ReportSnapshot:
    """All four collections fetched for a single report request."""

    payments: Sequence[PaymentRecord] = field(default_factory=tuple)
    subscriptions: Sequence[SubscriptionRecord] = field(default_factory=tuple)
    orders: Sequence[OrderRecord] = field(default_factory=tuple)
    profiles: Sequence[ProfileRecord] = field(default_factory=tuple)

    def counts(self) -> Dict[str, int]:
        return {
            "payments": len(self.payments),
            "subscriptions": len(self.subscriptions),
            "orders": len(self.orders),
            "profiles": len(self.profiles),
        }


@dataclass(frozen=True)
class MetricsSummary:
    total_revenue: Decimal = ZERO
    monthly_revenue: Decimal = ZERO
    previous_month_revenue: Decimal = ZERO
    growth_rate: Decimal = ZERO
    trend_up: bool = False
    mrr: Decimal = ZERO
    arr: Decimal = ZERO
    churn_rate: Decimal = ZERO
    total_customers: int = 0
    active_subscriptions: int = 0
    cancelled_subscriptions: int = 0
    total_orders: int = 0
    avg_order_value: Decimal = ZERO


@dataclass(frozen=True)
class RevenueBucket:
    label: str
    year: int
    month: int
    revenue: Decimal
    subscription_count: int
    order_count: int


@dataclass(frozen=True)
class CategorySlice:
    category: str
    label: str
    value: Decimal


@dataclass(frozen=True)
class PackageRanking:
    name: str
    revenue: Decimal
    count: int


@dataclass(frozen=True)
class RevenueReport:
    metrics: MetricsSummary
    revenue_by_month: Sequence[RevenueBucket]
    category_distribution: Sequence[CategorySlice]
    top_packages: Sequence[PackageRanking]
    window_months: int = 0
    generated_at: Optional[datetime] = None

    def as_dict(self) -> Dict[str, Any]:
        """
        Convert the nested dataclasses into a JSON-serialisable structure.

        Monetary values are emitted as plain numbers in the base currency unit;
        rounding and currency symbols are left to the presentation layer.
        """

        def _serialize(obj: Any) -> Any:
            if isinstance(obj, RevenueReport):
                return {
                    "window": obj.window_months,
                    "generatedAt": None if obj.generated_at is None else obj.generated_at.isoformat(),
                    "metrics": _serialize(obj.metrics),
                    "revenueByMonth": [_serialize(bucket) for bucket in obj.revenue_by_month],
                    "categoryDistribution": [_serialize(item) for item in obj.category_distribution],
                    "topPackages": [_serialize(item) for item in obj.top_packages],
                }
            if isinstance(obj, MetricsSummary):
                return {
                    "totalRevenue": _serialize(obj.total_revenue),
                    "monthlyRevenue": _serialize(obj.monthly_revenue),
                    "previousMonthRevenue": _serialize(obj.previous_month_revenue),
                    "growthRate": _serialize(obj.growth_rate),
                    "trendUp": obj.trend_up,
                    "mrr": _serialize(obj.mrr),
                    "arr": _serialize(obj.arr),
                    "churnRate": _serialize(obj.churn_rate),
                    "totalCustomers": obj.total_customers,
                    "activeSubscriptions": obj.active_subscriptions,
                    "cancelledSubscriptions": obj.cancelled_subscriptions,
                    "totalOrders": obj.total_orders,
                    "avgOrderValue": _serialize(obj.avg_order_value),
                }
            if isinstance(obj, RevenueBucket):
                return {
                    "month": obj.label,
                    "year": obj.year,
                    "monthNumber": obj.month,
                    "revenue": _serialize(obj.revenue),
                    "subscriptions": obj.subscription_count,
                    "orders": obj.order_count,
                }
            if isinstance(obj, CategorySlice):
                return {"key": obj.category, "name": obj.label, "value": _serialize(obj.value)}
            if isinstance(obj, PackageRanking):
                return {"name": obj.name, "revenue": _serialize(obj.revenue), "count": obj.count}
            if isinstance(obj, Decimal):
                return float(obj)
            if isinstance(obj, Iterable) and not isinstance(obj, (str, bytes)):
                return [_serialize(item) for item in obj]
            return obj

        return _serialize(self)
