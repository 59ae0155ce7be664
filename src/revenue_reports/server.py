from __future__ import annotations

import logging
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple

from fastapi import FastAPI, HTTPException, Query
from pydantic import BaseModel, Field, field_validator
from sqlalchemy.exc import SQLAlchemyError

from .config import configure_logging, load_settings
from .models import (
    InvalidWindowError,
    OrderRecord,
    PackageRef,
    PaymentRecord,
    ProfileRecord,
    ReportSnapshot,
    SubscriptionRecord,
)
from .repository import ReportDataRepository, RepositoryConfig, build_repository_from_env
from .service import RevenueReportService, resolve_window

settings = load_settings()
configure_logging(settings)
logger = logging.getLogger(__name__)

app = FastAPI(title="Revenue Reports API", version="0.1.0")
repository: Optional[ReportDataRepository] = build_repository_from_env(
    RepositoryConfig(database_url=settings.database_url)
)

LOAD_FAILURE_DETAIL = "Failed to load reports"


class PackagePayload(BaseModel):
    name: Optional[str] = None
    category: Optional[str] = None


class PaymentPayload(BaseModel):
    id: str
    amount: Decimal = Decimal("0")
    status: str = "completed"
    created_at: datetime


class SubscriptionPayload(BaseModel):
    id: str
    amount: Decimal = Decimal("0")
    billing_cycle: str = "monthly"
    status: str
    created_at: datetime
    cancelled_at: Optional[datetime] = None
    package: Optional[PackagePayload] = None


class OrderPayload(BaseModel):
    id: str
    total_amount: Decimal = Decimal("0")
    status: str = "completed"
    created_at: datetime
    package: Optional[PackagePayload] = None


class ProfilePayload(BaseModel):
    id: str
    created_at: datetime


class ReportRequest(BaseModel):
    range: str = Field(default=settings.default_window, description="One of 1m, 3m, 6m, 1y")
    now: Optional[datetime] = None
    timezone: Optional[str] = None
    payments: Optional[List[PaymentPayload]] = None
    subscriptions: Optional[List[SubscriptionPayload]] = None
    orders: Optional[List[OrderPayload]] = None
    profiles: Optional[List[ProfilePayload]] = None

    @field_validator("range")
    @classmethod
    def _validate_range(cls, value: str) -> str:
        resolve_window(value)
        return value


class ReportResponse(BaseModel):
    data: Dict[str, Any]
    source: str


@app.get("/health")
async def health() -> Dict[str, str]:
    return {"status": "ok"}


@app.get("/reports", response_model=ReportResponse)
async def get_report(range_: str = Query(default=settings.default_window, alias="range")) -> ReportResponse:
    window = _resolve_or_400(range_)
    if repository is None:
        raise HTTPException(
            status_code=500,
            detail="REVENUE_REPORTS_DATABASE_URL is not configured; POST inline records to /reports instead.",
        )
    snapshot = _load_from_repository(repository)
    service = RevenueReportService.from_snapshot(snapshot, timezone=settings.timezone)
    report = service.build(window)
    return ReportResponse(data=report.as_dict(), source="database")


@app.post("/reports", response_model=ReportResponse)
async def post_report(request: ReportRequest) -> ReportResponse:
    window = _resolve_or_400(request.range)
    snapshot, source = _load_snapshot(request)
    service = RevenueReportService.from_snapshot(snapshot, timezone=request.timezone or settings.timezone)
    report = service.build(window, now=request.now)
    return ReportResponse(data=report.as_dict(), source=source)


def _resolve_or_400(value: str) -> int:
    try:
        return resolve_window(value)
    except InvalidWindowError as exc:
        raise HTTPException(status_code=400, detail=str(exc))


def _load_from_repository(repo: ReportDataRepository) -> ReportSnapshot:
    try:
        return repo.load()
    except (SQLAlchemyError, ValueError):
        logger.exception("Error fetching report data")
        raise HTTPException(status_code=502, detail=LOAD_FAILURE_DETAIL)


def _load_snapshot(request: ReportRequest) -> Tuple[ReportSnapshot, str]:
    if repository is not None:
        return _load_from_repository(repository), "database"

    if request.payments is None or request.subscriptions is None or request.orders is None:
        raise HTTPException(
            status_code=500,
            detail=(
                "REVENUE_REPORTS_DATABASE_URL is not configured; "
                "supply payments+subscriptions+orders in the request body for ad-hoc queries."
            ),
        )

    snapshot = ReportSnapshot(
        payments=tuple(_convert_payment_payload(payload) for payload in request.payments),
        subscriptions=tuple(_convert_subscription_payload(payload) for payload in request.subscriptions),
        orders=tuple(_convert_order_payload(payload) for payload in request.orders),
        profiles=tuple(_convert_profile_payload(payload) for payload in request.profiles or ()),
    )
    return snapshot, "inline"


def _convert_package_payload(payload: Optional[PackagePayload]) -> Optional[PackageRef]:
    if payload is None:
        return None
    return PackageRef(name=payload.name, category=payload.category)


def _convert_payment_payload(payload: PaymentPayload) -> PaymentRecord:
    return PaymentRecord(
        id=payload.id,
        amount=payload.amount,
        status=payload.status,
        created_at=payload.created_at,
    )


def _convert_subscription_payload(payload: SubscriptionPayload) -> SubscriptionRecord:
    return SubscriptionRecord(
        id=payload.id,
        amount=payload.amount,
        billing_cycle=payload.billing_cycle,
        status=payload.status,
        created_at=payload.created_at,
        cancelled_at=payload.cancelled_at,
        package=_convert_package_payload(payload.package),
    )


def _convert_order_payload(payload: OrderPayload) -> OrderRecord:
    return OrderRecord(
        id=payload.id,
        total_amount=payload.total_amount,
        status=payload.status,
        created_at=payload.created_at,
        package=_convert_package_payload(payload.package),
    )


def _convert_profile_payload(payload: ProfilePayload) -> ProfileRecord:
    return ProfileRecord(id=payload.id, created_at=payload.created_at)
