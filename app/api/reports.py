"""Manager reports. Omit ``year`` for the current year; add ``month`` for one month."""
from typing import Optional

from fastapi import APIRouter, Depends, Query

from app.core.auth import require_permission
from app.core.permissions import Permission
from app.domain.account import Account
from app.infrastructure.mongo import StudioStore, get_store
from app.services import reports

router = APIRouter(prefix="/reports", tags=["reports"])

view_reports = require_permission(Permission.VIEW_REPORTS)


@router.get("/performance")
def performance(
    year: Optional[int] = Query(None, ge=1970, le=9999),
    month: Optional[int] = Query(None, ge=1, le=12),
    manager: Account = Depends(view_reports),
    store: StudioStore = Depends(get_store),
):
    """New clients, new instructors and pass sales.

    Example:
        GET /api/reports/performance?year=2024&month=3
    """
    return reports.performance(store, year, month)


@router.get("/instructor-performance")
def instructor_performance(
    year: Optional[int] = Query(None, ge=1970, le=9999),
    month: Optional[int] = Query(None, ge=1, le=12),
    instructor_id: Optional[str] = Query(None, alias="instructorId"),
    manager: Account = Depends(view_reports),
    store: StudioStore = Depends(get_store),
):
    return reports.instructor_performance(store, year, month, instructor_id)


@router.get("/customer-attendance")
def customer_attendance(
    year: Optional[int] = Query(None, ge=1970, le=9999),
    month: Optional[int] = Query(None, ge=1, le=12),
    account_id: Optional[str] = Query(None, alias="accountId"),
    manager: Account = Depends(view_reports),
    store: StudioStore = Depends(get_store),
):
    return reports.customer_attendance(store, year, month, account_id)


@router.get("/general-attendance")
def general_attendance(
    year: Optional[int] = Query(None, ge=1970, le=9999),
    month: Optional[int] = Query(None, ge=1, le=12),
    manager: Account = Depends(view_reports),
    store: StudioStore = Depends(get_store),
):
    return reports.general_attendance(store, year, month)
