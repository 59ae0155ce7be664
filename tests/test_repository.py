from datetime import datetime, timezone
from decimal import Decimal

import pytest
from sqlalchemy import create_engine, text

from revenue_reports.models import PackageRef
from revenue_reports.repository import (
    RepositoryConfig,
    SQLReportRepository,
    build_repository_from_env,
)
from revenue_reports.service import RevenueReportService

SCHEMA = [
    "CREATE TABLE service_packages (id TEXT PRIMARY KEY, name TEXT, category TEXT)",
    "CREATE TABLE payments (id TEXT PRIMARY KEY, amount REAL, status TEXT, created_at TEXT)",
    """
    CREATE TABLE subscriptions (
        id TEXT PRIMARY KEY,
        amount REAL,
        billing_cycle TEXT,
        status TEXT,
        created_at TEXT,
        cancelled_at TEXT,
        package_id TEXT
    )
    """,
    "CREATE TABLE orders (id TEXT PRIMARY KEY, total_amount REAL, status TEXT, created_at TEXT, package_id TEXT)",
    "CREATE TABLE profiles (id TEXT PRIMARY KEY, created_at TEXT)",
]

ROWS = [
    "INSERT INTO service_packages VALUES ('pkg-1', 'Website Care', 'website')",
    "INSERT INTO service_packages VALUES ('pkg-2', 'Social Boost', NULL)",
    "INSERT INTO payments VALUES ('pay-1', 49.99, 'completed', '2024-03-10T10:00:00+00:00')",
    "INSERT INTO payments VALUES ('pay-2', 10, 'failed', '2024-03-11T10:00:00+00:00')",
    "INSERT INTO payments VALUES ('pay-3', NULL, 'completed', '2024-02-01 08:00:00')",
    "INSERT INTO subscriptions VALUES "
        "('sub-1', 1200, 'yearly', 'active', '2024-01-05T00:00:00+00:00', NULL, 'pkg-1')",
    "INSERT INTO subscriptions VALUES "
        "('sub-2', 300, 'monthly', 'cancelled', '2024-02-05T00:00:00+00:00', '2024-03-01T00:00:00+00:00', NULL)",
    "INSERT INTO orders VALUES ('ord-1', 250, 'completed', '2024-03-02T00:00:00+00:00', 'pkg-2')",
    "INSERT INTO orders VALUES ('ord-2', 900, 'pending', '2024-03-03T00:00:00+00:00', 'pkg-1')",
    "INSERT INTO profiles VALUES ('prof-1', '2023-12-01T00:00:00+00:00')",
    "INSERT INTO profiles VALUES ('prof-2', '2024-01-01T00:00:00+00:00')",
]


@pytest.fixture
def engine(tmp_path):
    engine = create_engine(f"sqlite:///{tmp_path / 'reports.db'}")
    with engine.begin() as connection:
        for statement in SCHEMA:
            connection.execute(text(statement))
        for statement in ROWS:
            connection.execute(text(statement))
    yield engine
    engine.dispose()


class TestSQLReportRepository:
    def test_load_filters_completed_payments_and_orders(self, engine):
        snapshot = SQLReportRepository(engine).load()

        assert [payment.id for payment in snapshot.payments] == ["pay-3", "pay-1"]
        assert [order.id for order in snapshot.orders] == ["ord-1"]
        assert len(snapshot.subscriptions) == 2
        assert len(snapshot.profiles) == 2

    def test_rows_are_converted_to_records(self, engine):
        snapshot = SQLReportRepository(engine).load()

        latest = snapshot.payments[-1]
        assert latest.amount == Decimal("49.99")
        assert latest.created_at == datetime(2024, 3, 10, 10, tzinfo=timezone.utc)
        assert snapshot.payments[0].amount == Decimal("0")
        assert snapshot.payments[0].created_at.tzinfo is not None

        yearly, cancelled = snapshot.subscriptions
        assert yearly.billing_cycle == "yearly"
        assert yearly.package == PackageRef(name="Website Care", category="website")
        assert yearly.cancelled_at is None
        assert cancelled.package is None
        assert cancelled.cancelled_at == datetime(2024, 3, 1, tzinfo=timezone.utc)

        order = snapshot.orders[0]
        assert order.total_amount == Decimal("250")
        assert order.package == PackageRef(name="Social Boost", category=None)

    def test_rows_without_timestamp_are_skipped(self, engine):
        with engine.begin() as connection:
            connection.execute(text("INSERT INTO payments VALUES ('pay-9', 10, 'completed', NULL)"))
            connection.execute(
                text("INSERT INTO subscriptions VALUES ('sub-9', 40, 'monthly', 'active', NULL, NULL, NULL)")
            )
            connection.execute(text("INSERT INTO orders VALUES ('ord-9', 70, 'completed', NULL, 'pkg-1')"))

        snapshot = SQLReportRepository(engine).load()

        assert [payment.id for payment in snapshot.payments] == ["pay-3", "pay-1"]
        assert [subscription.id for subscription in snapshot.subscriptions] == ["sub-1", "sub-2"]
        assert [order.id for order in snapshot.orders] == ["ord-1"]

        report = RevenueReportService.from_snapshot(snapshot).build(
            "3m", now=datetime(2024, 3, 15, 12, tzinfo=timezone.utc)
        )
        assert report.metrics.total_revenue == Decimal("49.99")


class TestBuildRepository:
    def test_returns_none_without_url(self):
        assert build_repository_from_env(RepositoryConfig(database_url=None)) is None

    def test_reads_url_from_environment(self, monkeypatch, tmp_path):
        monkeypatch.setenv("REVENUE_REPORTS_DATABASE_URL", f"sqlite:///{tmp_path / 'env.db'}")

        repository = build_repository_from_env()

        assert isinstance(repository, SQLReportRepository)
        repository.engine.dispose()
