"""
Shared fixtures for the revenue reports test suite.

Record factories keep the tests focused on the fields that matter; every
timestamp defaults to the fixed reference time so month bucketing is
deterministic.
"""

import itertools
from datetime import datetime, timezone
from decimal import Decimal

import pytest

from revenue_reports.models import (
    OrderRecord,
    PackageRef,
    PaymentRecord,
    ProfileRecord,
    SubscriptionRecord,
)

REFERENCE_NOW = datetime(2024, 3, 15, 12, 0, tzinfo=timezone.utc)

_ids = itertools.count(1)


def _next_id(prefix):
    return f"{prefix}-{next(_ids)}"


@pytest.fixture
def now():
    return REFERENCE_NOW


@pytest.fixture
def make_payment():
    def _make(amount, created_at=REFERENCE_NOW, status="completed"):
        return PaymentRecord(
            id=_next_id("pay"),
            amount=Decimal(str(amount)),
            status=status,
            created_at=created_at,
        )

    return _make


@pytest.fixture
def make_subscription():
    def _make(
        amount,
        billing_cycle="monthly",
        status="active",
        created_at=REFERENCE_NOW,
        package_name=None,
        category=None,
        cancelled_at=None,
    ):
        package = None
        if package_name is not None or category is not None:
            package = PackageRef(name=package_name, category=category)
        return SubscriptionRecord(
            id=_next_id("sub"),
            amount=Decimal(str(amount)),
            billing_cycle=billing_cycle,
            status=status,
            created_at=created_at,
            cancelled_at=cancelled_at,
            package=package,
        )

    return _make


@pytest.fixture
def make_order():
    def _make(total_amount, status="completed", created_at=REFERENCE_NOW, package_name=None, category=None):
        package = None
        if package_name is not None or category is not None:
            package = PackageRef(name=package_name, category=category)
        return OrderRecord(
            id=_next_id("ord"),
            total_amount=Decimal(str(total_amount)),
            status=status,
            created_at=created_at,
            package=package,
        )

    return _make


@pytest.fixture
def make_profile():
    def _make(created_at=REFERENCE_NOW):
        return ProfileRecord(id=_next_id("prof"), created_at=created_at)

    return _make
