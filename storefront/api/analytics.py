"""
Admin analytics endpoints
"""
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from storefront.api.deps import require_admin
from storefront.models.base import get_db
from storefront.services.analytics_service import AnalyticsService

router = APIRouter(
    prefix="/analytics",
    tags=["analytics"],
    dependencies=[Depends(require_admin)],
)


@router.get("/dashboard")
async def dashboard(
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    db: Session = Depends(get_db),
):
    """
    Admin overview

    Counts, revenue, orders by status, 7-day revenue trend, top products,
    recent orders, low stock, user growth and top articles
    """
    return {"success": True, "data": AnalyticsService(db).get_dashboard(start_date, end_date)}


@router.get("/sales")
async def sales(
    period: str = Query("month", description="week, month, year or custom"),
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    db: Session = Depends(get_db),
):
    return {"success": True, "data": AnalyticsService(db).get_sales(period, start_date, end_date)}


@router.get("/customers")
async def customers(db: Session = Depends(get_db)):
    return {"success": True, "data": AnalyticsService(db).get_customers()}
