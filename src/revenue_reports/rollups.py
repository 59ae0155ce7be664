from __future__ import annotations

from decimal import Decimal
from typing import Dict, List, Sequence

from .models import ZERO, CategorySlice, OrderRecord, PackageRanking, SubscriptionRecord
from .normalize import iter_contributions

TOP_PACKAGES_LIMIT = 5

CATEGORY_LABELS = {
    "social_media": "Social Media",
    "website": "Website",
    "app": "App Development",
    "marketing": "Marketing",
    "design": "Design",
    "other": "Other",
}


def category_label(category: str) -> str:
    return CATEGORY_LABELS.get(category, category)


def category_distribution(
    subscriptions: Sequence[SubscriptionRecord],
    orders: Sequence[OrderRecord],
) -> List[CategorySlice]:
    """
    Revenue contributed per package category, largest first.

    Ties keep the order in which categories were first seen.
    """

    totals: Dict[str, Decimal] = {}
    for record in iter_contributions(subscriptions, orders):
        totals[record.category] = totals.get(record.category, ZERO) + record.amount

    slices = [
        CategorySlice(category=category, label=category_label(category), value=value)
        for category, value in totals.items()
    ]
    return sorted(slices, key=lambda item: item.value, reverse=True)


def top_packages(
    subscriptions: Sequence[SubscriptionRecord],
    orders: Sequence[OrderRecord],
    limit: int = TOP_PACKAGES_LIMIT,
) -> List[PackageRanking]:
    revenue: Dict[str, Decimal] = {}
    counts: Dict[str, int] = {}
    for record in iter_contributions(subscriptions, orders):
        revenue[record.package_name] = revenue.get(record.package_name, ZERO) + record.amount
        counts[record.package_name] = counts.get(record.package_name, 0) + 1

    rows = [
        PackageRanking(name=name, revenue=total, count=counts[name])
        for name, total in revenue.items()
    ]
    return sorted(rows, key=lambda row: row.revenue, reverse=True)[:limit]
