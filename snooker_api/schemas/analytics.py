# snooker_api/schemas/analytics.py
import enum
from typing import Any, Dict, List

from pydantic import BaseModel


class ReportPeriod(str, enum.Enum):
    TODAY = "today"
    WEEK = "week"
    MONTH = "month"
    YEAR = "year"


class Insight(BaseModel):
    type: str
    category: str
    title: str
    message: str
    priority: str


class Dashboard(BaseModel):
    revenue: Dict[str, Any]
    sessions: Dict[str, Any]
    inventory: Dict[str, Any]
    tables: Dict[str, Any]
    customers: Dict[str, Any]
    trends: Dict[str, Any]
    insights: List[Insight]


class FinancialReport(BaseModel):
    period: Dict[str, Any]
    revenue: Dict[str, Any]
    expenses: Dict[str, Any]
    profit: Dict[str, Any]
    cash_flow: Dict[str, Any]
    summary: Dict[str, Any]


class CustomerAnalytics(BaseModel):
    segmentation: Dict[str, Any]
    lifetime_value: List[Dict[str, Any]]
    visit_frequency: Dict[str, int]
    session_patterns: List[Dict[str, Any]]


class PaymentSummary(BaseModel):
    period: ReportPeriod
    date_range: Dict[str, Any]
    totals: Dict[str, Any]
    payment_methods: Dict[str, Any]
    credit_sessions: List[Dict[str, Any]]
