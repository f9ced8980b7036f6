from datetime import datetime, timedelta, timezone

import pytest

from snooker_api import crud
from snooker_api.db.models import PaymentStatus, SessionPaymentMethod
from snooker_api.schemas.game_session import SessionStart
from snooker_api.schemas.table import TableCreate
from snooker_api.services.analytics_service import AnalyticsService, customer_segment, visit_frequency_bucket

T0 = datetime(2024, 3, 15, 18, 0, tzinfo=timezone.utc)


@pytest.fixture
def played_session(db, owner, house, cola):
    table = crud.table.create(
        db, obj_in=TableCreate(name="Table 1", hourly_rate=100), house=house, owner=owner
    )
    session = crud.game_session.start(
        db, obj_in=SessionStart(table_id=table.id, customer_name="Ram"), owner=owner, now=T0
    )
    crud.game_session.add_item(
        db, session=session, product_id=cola.id, quantity=2, owner=owner, now=T0 + timedelta(minutes=5)
    )
    crud.game_session.confirm_payment(
        db,
        session=session,
        payment_status=PaymentStatus.PAID,
        payment_method=SessionPaymentMethod.CASH,
        now=T0 + timedelta(minutes=60),
    )
    return crud.game_session.end(db, session=session, now=T0 + timedelta(minutes=60))


@pytest.fixture
def analytics(db, house, played_session) -> AnalyticsService:
    return AnalyticsService(db, house, now=T0 + timedelta(hours=2))


def test_played_session_totals(played_session) -> None:
    assert float(played_session.game_cost) == 100.0
    assert float(played_session.total_cost) == 260.0
    assert played_session.payment_status == PaymentStatus.PAID


def test_dashboard(analytics) -> None:
    dashboard = analytics.dashboard()

    assert dashboard["revenue"]["total"] == 260
    assert dashboard["revenue"]["today"] == 260
    assert dashboard["revenue"]["breakdown"]["game_revenue"] == 100
    assert dashboard["revenue"]["payment_methods"] == [{"method": "cash", "count": 1, "amount": 260}]
    assert dashboard["sessions"]["completed"] == 1
    assert dashboard["sessions"]["average_duration"] == 60
    assert dashboard["inventory"]["top_selling_products"][0]["total_sold"] == 2
    assert dashboard["tables"]["utilization"][0]["total_revenue"] == 260
    assert [i["title"] for i in dashboard["insights"]] == ["Peak Hours"]


def test_financial_report(analytics) -> None:
    report = analytics.financial_report("month")

    assert report["revenue"]["total"] == 260
    assert report["revenue"]["game_revenue"] == 100
    assert report["revenue"]["items_profit"] == 60
    assert report["expenses"]["total"] == 0
    assert report["cash_flow"]["paid"] == {"amount": 260, "count": 1}
    assert report["summary"]["profit_margin"] == 100


def test_financial_report_outside_range(analytics) -> None:
    report = analytics.financial_report(
        start_date=datetime(2024, 1, 1, tzinfo=timezone.utc),
        end_date=datetime(2024, 1, 31, tzinfo=timezone.utc),
    )
    assert report["revenue"]["sessions_count"] == 0
    assert report["summary"]["profit_margin"] == 0


def test_customer_analytics(analytics) -> None:
    result = analytics.customer_analytics()

    assert result["segmentation"]["New"]["count"] == 1
    assert result["visit_frequency"]["One-time"] == 1
    assert result["lifetime_value"][0]["name"] == "Ram"
    assert result["session_patterns"] == [{"hour": 18, "total_sessions": 1, "avg_revenue": 260}]


@pytest.mark.parametrize(
    "spent, sessions, segment",
    [
        (12000, 1, "VIP"),
        (6000, 2, "Premium"),
        (2500, 1, "Regular"),
        (500, 6, "Frequent"),
        (500, 1, "New"),
    ],
)
def test_customer_segment(spent, sessions, segment) -> None:
    assert customer_segment(spent, sessions) == segment


@pytest.mark.parametrize("count, bucket", [(1, "One-time"), (3, "Occasional"), (7, "Regular"), (11, "Frequent")])
def test_visit_frequency_bucket(count, bucket) -> None:
    assert visit_frequency_bucket(count) == bucket
