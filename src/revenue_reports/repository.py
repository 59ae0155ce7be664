from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Optional, Sequence

from dateutil.parser import parse as dateutil_parse
from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine, Row

from .models import (
    ORDER_COMPLETED,
    PAYMENT_COMPLETED,
    OrderRecord,
    PackageRef,
    PaymentRecord,
    ProfileRecord,
    ReportSnapshot,
    SubscriptionRecord,
)
from .normalize import to_decimal

logger = logging.getLogger(__name__)


def _parse_timestamp(value: Any) -> Optional[datetime]:
    """SQLite hands back ISO strings where Postgres returns datetimes."""

    if value in (None, ""):
        return None
    if isinstance(value, datetime):
        return value
    parsed = dateutil_parse(str(value))
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed


def _package_from_row(row: Row) -> Optional[PackageRef]:
    if row.package_name is None and row.package_category is None:
        return None
    return PackageRef(name=row.package_name, category=row.package_category)


class ReportDataRepository:
    """
    Interface for loading the report snapshot.

    Implementations must return payments and orders restricted to the
    ``completed`` status and subscriptions unfiltered. Rows without a
    ``created_at`` cannot be placed in a month and are left out.
    """

    def load(self) -> ReportSnapshot:
        raise NotImplementedError


class SQLReportRepository(ReportDataRepository):
    """
    Load the snapshot from the relational store behind the admin dashboard.

    Expected tables:
      - payments(id, amount, status, created_at)
      - subscriptions(id, amount, billing_cycle, status, created_at, cancelled_at, package_id)
      - orders(id, total_amount, status, created_at, package_id)
      - service_packages(id, name, category)
      - profiles(id, created_at)
    """

    def __init__(self, engine: Engine):
        self.engine = engine

    def load(self) -> ReportSnapshot:
        snapshot = ReportSnapshot(
            payments=self._load_payments(),
            subscriptions=self._load_subscriptions(),
            orders=self._load_orders(),
            profiles=self._load_profiles(),
        )
        logger.debug("Loaded report snapshot: %s", snapshot.counts())
        return snapshot

    def _fetch(self, query: str, params: Optional[dict] = None) -> Sequence[Row]:
        with self.engine.connect() as connection:
            return connection.execute(text(query), params or {}).fetchall()

    def _load_payments(self) -> Sequence[PaymentRecord]:
        rows = self._fetch(
            """
            SELECT id, COALESCE(amount, 0) AS amount, status, created_at
            FROM payments
            WHERE status = :status AND created_at IS NOT NULL
            ORDER BY created_at ASC
            """,
            {"status": PAYMENT_COMPLETED},
        )
        return tuple(self._row_to_payment(row) for row in rows)

    def _load_subscriptions(self) -> Sequence[SubscriptionRecord]:
        rows = self._fetch(
            """
            SELECT s.id, COALESCE(s.amount, 0) AS amount, s.billing_cycle, s.status,
                   s.created_at, s.cancelled_at,
                   p.name AS package_name, p.category AS package_category
            FROM subscriptions s
            LEFT JOIN service_packages p ON p.id = s.package_id
            WHERE s.created_at IS NOT NULL
            ORDER BY s.created_at ASC
            """
        )
        return tuple(self._row_to_subscription(row) for row in rows)

    def _load_orders(self) -> Sequence[OrderRecord]:
        rows = self._fetch(
            """
            SELECT o.id, COALESCE(o.total_amount, 0) AS total_amount, o.status, o.created_at,
                   p.name AS package_name, p.category AS package_category
            FROM orders o
            LEFT JOIN service_packages p ON p.id = o.package_id
            WHERE o.status = :status AND o.created_at IS NOT NULL
            ORDER BY o.created_at ASC
            """,
            {"status": ORDER_COMPLETED},
        )
        return tuple(self._row_to_order(row) for row in rows)

    def _load_profiles(self) -> Sequence[ProfileRecord]:
        rows = self._fetch("SELECT id, created_at FROM profiles")
        return tuple(ProfileRecord(id=str(row.id), created_at=_parse_timestamp(row.created_at)) for row in rows)

    @staticmethod
    def _row_to_payment(row: Row) -> PaymentRecord:
        return PaymentRecord(
            id=str(row.id),
            amount=to_decimal(row.amount),
            status=str(row.status),
            created_at=_parse_timestamp(row.created_at),
        )

    @staticmethod
    def _row_to_subscription(row: Row) -> SubscriptionRecord:
        return SubscriptionRecord(
            id=str(row.id),
            amount=to_decimal(row.amount),
            billing_cycle=str(row.billing_cycle or ""),
            status=str(row.status),
            created_at=_parse_timestamp(row.created_at),
            cancelled_at=_parse_timestamp(row.cancelled_at),
            package=_package_from_row(row),
        )

    @staticmethod
    def _row_to_order(row: Row) -> OrderRecord:
        return OrderRecord(
            id=str(row.id),
            total_amount=to_decimal(row.total_amount),
            status=str(row.status),
            created_at=_parse_timestamp(row.created_at),
            package=_package_from_row(row),
        )


@dataclass(frozen=True)
class RepositoryConfig:
    database_url: Optional[str] = None

    @classmethod
    def from_env(cls) -> "RepositoryConfig":
        return cls(database_url=os.getenv("REVENUE_REPORTS_DATABASE_URL"))


def build_repository_from_env(config: Optional[RepositoryConfig] = None) -> Optional[ReportDataRepository]:
    cfg = config or RepositoryConfig.from_env()
    if cfg.database_url:
        engine = create_engine(cfg.database_url)
        return SQLReportRepository(engine)
    return None
