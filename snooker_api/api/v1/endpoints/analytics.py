# snooker_api/api/v1/endpoints/analytics.py
import logging
from datetime import datetime
from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from snooker_api import schemas
from snooker_api.api import deps
from snooker_api.db.models.snooker_house import SnookerHouse
from snooker_api.services.analytics_service import AnalyticsService

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/dashboard", response_model=schemas.Dashboard)
def read_dashboard(
    db: Session = Depends(deps.get_db),
    house: SnookerHouse = Depends(deps.get_current_house),
) -> Any:
    """
    Revenue, sessions, inventory, tables, customers, trends and insights in one payload.
    """
    try:
        return AnalyticsService(db, house).dashboard()
    except Exception as e:
        logger.error(f"Dashboard failed for house {house.id}: {e}")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to build dashboard")


@router.get("/financial-report", response_model=schemas.FinancialReport)
def read_financial_report(
    db: Session = Depends(deps.get_db),
    house: SnookerHouse = Depends(deps.get_current_house),
    period: schemas.ReportPeriod = schemas.ReportPeriod.MONTH,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
) -> Any:
    """
    Revenue, expenses, profit and cash flow. `start_date` and `end_date` together override the period.
    """
    if start_date and end_date and start_date > end_date:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="start_date must be before end_date")
    try:
        return AnalyticsService(db, house).financial_report(period.value, start_date, end_date)
    except Exception as e:
        logger.error(f"Financial report failed for house {house.id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to build financial report"
        )


@router.get("/customer-analytics", response_model=schemas.CustomerAnalytics)
def read_customer_analytics(
    db: Session = Depends(deps.get_db),
    house: SnookerHouse = Depends(deps.get_current_house),
) -> Any:
    try:
        return AnalyticsService(db, house).customer_analytics()
    except Exception as e:
        logger.error(f"Customer analytics failed for house {house.id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to build customer analytics"
        )
