"""
Revenue & subscription reporting helpers.

This package turns a snapshot of payments, subscriptions, orders and customer
profiles into the metrics, monthly series and category/package rollups shown
on the admin reports page.
"""

from .buckets import bucketize  # noqa: F401
from .metrics import compute_metrics  # noqa: F401
from .models import (  # noqa: F401
    CategorySlice,
    InvalidWindowError,
    MetricsSummary,
    NormalizedRecord,
    OrderRecord,
    PackageRanking,
    PackageRef,
    PaymentRecord,
    ProfileRecord,
    ReportSnapshot,
    RevenueBucket,
    RevenueReport,
    SubscriptionRecord,
)
from .normalize import monthly_equivalent, normalize_order, normalize_subscription  # noqa: F401
from .repository import (  # noqa: F401
    ReportDataRepository,
    RepositoryConfig,
    SQLReportRepository,
    build_repository_from_env,
)
from .rollups import category_distribution, top_packages  # noqa: F401
from .service import RevenueReportService, assemble, resolve_window  # noqa: F401
