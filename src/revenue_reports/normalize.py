"""
Record and billing-rate normalisation.

Every consumer of package data goes through ``resolve_package`` so the
sentinel fallback for unlinked records lives in exactly one place.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Any, Iterable, Iterator, Optional, Tuple

from .models import NormalizedRecord, OrderRecord, PackageRef, SubscriptionRecord, ZERO

SENTINEL_CATEGORY = "other"
SENTINEL_PACKAGE_NAME = "Unknown"

CYCLE_DIVISORS = {
    "monthly": Decimal(1),
    "quarterly": Decimal(3),
    "yearly": Decimal(12),
}


def to_decimal(value: Any) -> Decimal:
    if value in (None, ""):
        return ZERO
    if isinstance(value, bool):
        raise ValueError(f"Could not parse monetary value '{value}'")
    try:
        parsed = Decimal(str(value))
    except InvalidOperation:
        raise ValueError(f"Could not parse monetary value '{value}'")
    if not parsed.is_finite():
        raise ValueError(f"Monetary value must be finite, got '{value}'")
    return parsed


def monthly_equivalent(amount: Decimal, billing_cycle: Optional[str]) -> Decimal:
    """
    Convert an amount charged once per ``billing_cycle`` into its monthly share.

    Unrecognised cycles are treated as monthly so that revenue is never
    silently dropped.
    """

    divisor = CYCLE_DIVISORS.get(str(billing_cycle or "").strip().lower())
    if divisor is None:
        return amount
    return amount / divisor


def resolve_package(package: Optional[PackageRef]) -> Tuple[str, str]:
    """Return ``(category, package_name)`` with sentinels for missing data."""

    if package is None:
        return SENTINEL_CATEGORY, SENTINEL_PACKAGE_NAME
    category = package.category or SENTINEL_CATEGORY
    name = package.name or SENTINEL_PACKAGE_NAME
    return category, name


def normalize_subscription(record: SubscriptionRecord) -> NormalizedRecord:
    category, name = resolve_package(record.package)
    return NormalizedRecord(
        category=category,
        package_name=name,
        amount=record.amount,
        timestamp=record.created_at,
        status=record.status,
        source="subscription",
    )


def normalize_order(record: OrderRecord) -> NormalizedRecord:
    category, name = resolve_package(record.package)
    return NormalizedRecord(
        category=category,
        package_name=name,
        amount=record.total_amount,
        timestamp=record.created_at,
        status=record.status,
        source="order",
    )


def iter_contributions(
    subscriptions: Iterable[SubscriptionRecord],
    orders: Iterable[OrderRecord],
) -> Iterator[NormalizedRecord]:
    """Subscription contributions followed by order contributions, in input order."""

    for subscription in subscriptions:
        yield normalize_subscription(subscription)
    for order in orders:
        yield normalize_order(order)
