# snooker_api/services/analytics_service.py
"""
Read-only business analytics for one snooker house.

Rows are loaded per house and folded in Python; nothing here writes. Open
sessions are valued with ``calculate_current_cost`` so reading never
changes stored totals.
"""
import logging
from collections import defaultdict
from datetime import datetime, timedelta
from typing import Any, Dict, Iterable, List, Optional, Tuple

from sqlalchemy.orm import Session

from snooker_api.core.timeutils import ensure_aware, period_start, start_of_day, utcnow
from snooker_api.db.models.game_session import OPEN_STATUSES, GameSession, PaymentStatus, SessionStatus
from snooker_api.db.models.product import Product
from snooker_api.db.models.sale import Sale
from snooker_api.db.models.snooker_house import SnookerHouse
from snooker_api.db.models.snooker_table import SnookerTable, TableStatus

logger = logging.getLogger(__name__)

GUEST = "Guest"

# (segment, minimum spent, minimum sessions), first match wins
CUSTOMER_SEGMENTS = (
    ("VIP", 10000, None),
    ("Premium", 5000, None),
    ("Regular", 2000, None),
    ("Frequent", None, 5),
)


def _amount(value) -> float:
    return float(value or 0)


def _round(value) -> int:
    return round(float(value or 0))


def _between(value: Optional[datetime], start: datetime, end: datetime) -> bool:
    return value is not None and start <= ensure_aware(value) <= end


def _minutes(session: GameSession) -> float:
    return (ensure_aware(session.end_time) - ensure_aware(session.start_time)).total_seconds() / 60


def customer_segment(total_spent: float, session_count: int) -> str:
    for name, min_spent, min_sessions in CUSTOMER_SEGMENTS:
        if min_spent is not None and total_spent >= min_spent:
            return name
        if min_sessions is not None and session_count >= min_sessions:
            return name
    return "New"


def visit_frequency_bucket(session_count: int) -> str:
    if session_count == 1:
        return "One-time"
    if session_count <= 3:
        return "Occasional"
    if session_count <= 10:
        return "Regular"
    return "Frequent"


class AnalyticsService:
    def __init__(self, db: Session, house: SnookerHouse, now: Optional[datetime] = None):
        self.db = db
        self.house = house
        self.now = now or utcnow()

    # Loading

    def _sessions(self) -> List[GameSession]:
        return self.db.query(GameSession).filter(GameSession.snooker_house_id == self.house.id).all()

    def _completed(self, sessions: Iterable[GameSession]) -> List[GameSession]:
        return [s for s in sessions if s.status == SessionStatus.COMPLETED and s.end_time is not None]

    def _products(self) -> List[Product]:
        return self.db.query(Product).filter(Product.snooker_house_id == self.house.id).all()

    def _sales(self) -> List[Sale]:
        return self.db.query(Sale).filter(Sale.snooker_house_id == self.house.id).all()

    def _tables(self) -> List[SnookerTable]:
        return self.db.query(SnookerTable).filter(SnookerTable.snooker_house_id == self.house.id).all()

    def _month_ranges(self) -> Tuple[datetime, datetime]:
        this_month = period_start("month", self.now)
        last_month = (this_month - timedelta(days=1)).replace(day=1)
        return this_month, last_month

    def session_value(self, session: GameSession) -> float:
        if session.status in OPEN_STATUSES:
            return _amount(session.calculate_current_cost(self.now))
        return _amount(session.total_cost)

    # Dashboard

    def dashboard(self) -> Dict[str, Any]:
        sessions = self._sessions()
        completed = self._completed(sessions)
        products = self._products()
        sales = self._sales()
        tables = self._tables()

        revenue = self.revenue_metrics(completed, sales)
        session_metrics = self.session_metrics(sessions, completed)
        inventory = self.inventory_metrics(products, sales, sessions)
        dashboard = {
            "revenue": revenue,
            "sessions": session_metrics,
            "inventory": inventory,
            "tables": self.table_metrics(tables, sessions),
            "customers": self.customer_metrics(sessions, completed),
            "trends": self.trend_data(sessions, completed),
            "insights": self.insights(revenue, session_metrics, inventory),
        }
        logger.info(f"Dashboard generated for house {self.house.id}")
        return dashboard

    def revenue_metrics(self, completed: List[GameSession], sales: List[Sale]) -> Dict[str, Any]:
        today = start_of_day(self.now)
        this_month, last_month = self._month_ranges()

        def total_between(start: datetime, end: datetime) -> float:
            return sum(_amount(s.total_cost) for s in completed if _between(s.end_time, start, end))

        today_sessions = [s for s in completed if _between(s.end_time, today, self.now)]
        month_total = total_between(this_month, self.now)
        last_month_total = total_between(last_month, this_month - timedelta(microseconds=1))
        growth = (month_total - last_month_total) / last_month_total * 100 if last_month_total > 0 else 0.0

        game_revenue = sum(_amount(s.game_cost) for s in completed)
        items_revenue = sum(_amount(s.total_items_revenue) for s in completed)
        methods: Dict[str, Dict[str, float]] = defaultdict(lambda: {"count": 0, "amount": 0.0})
        for s in completed:
            if s.payment_status == PaymentStatus.PAID and s.payment_method:
                methods[s.payment_method.value]["count"] += 1
                methods[s.payment_method.value]["amount"] += _amount(s.total_paid_amount)
        today_total = sum(_amount(s.total_cost) for s in today_sessions)

        return {
            "total": _round(sum(_amount(s.total_cost) for s in completed)),
            "today": _round(today_total),
            "week": _round(total_between(period_start("week", self.now), self.now)),
            "month": _round(month_total),
            "last_month": _round(last_month_total),
            "monthly_growth": round(growth, 2),
            "average_session_value": _round(today_total / len(today_sessions)) if today_sessions else 0,
            "breakdown": {
                "game_revenue": _round(game_revenue),
                "items_revenue": _round(items_revenue),
                "items_profit": _round(sum(_amount(s.total_items_profit) for s in completed)),
                "game_percentage": _round(game_revenue / (game_revenue + items_revenue) * 100)
                if game_revenue + items_revenue > 0 else 0,
            },
            "payment_methods": [
                {"method": method, "count": data["count"], "amount": _round(data["amount"])}
                for method, data in methods.items()
            ],
            "sales_revenue": _round(sum(_amount(s.total_revenue) for s in sales)),
        }

    def session_metrics(self, sessions: List[GameSession], completed: List[GameSession]) -> Dict[str, Any]:
        today = start_of_day(self.now)
        this_month, _ = self._month_ranges()

        def created_since(start: datetime) -> int:
            return sum(1 for s in sessions if _between(s.created_at, start, self.now))

        durations = [_minutes(s) for s in completed]
        by_hour: Dict[int, List[float]] = defaultdict(list)
        for s in completed:
            by_hour[ensure_aware(s.start_time).hour].append(_amount(s.total_cost))
        peak_hours = sorted(by_hour.items(), key=lambda kv: len(kv[1]), reverse=True)[:5]

        status_breakdown: Dict[str, int] = defaultdict(int)
        payment_breakdown = {p.value: 0 for p in PaymentStatus}
        for s in sessions:
            status_breakdown[s.status.value] += 1
            payment_breakdown[s.payment_status.value] += 1

        return {
            "total": len(sessions),
            "active": status_breakdown.get(SessionStatus.ACTIVE.value, 0),
            "paused": status_breakdown.get(SessionStatus.PAUSED.value, 0),
            "completed": status_breakdown.get(SessionStatus.COMPLETED.value, 0),
            "cancelled": status_breakdown.get(SessionStatus.CANCELLED.value, 0),
            "today": created_since(today),
            "week": created_since(period_start("week", self.now)),
            "month": created_since(this_month),
            "average_duration": _round(sum(durations) / len(durations)) if durations else 0,
            "open_value": _round(sum(self.session_value(s) for s in sessions if s.is_open)),
            "peak_hours": [
                {"hour": hour, "sessions": len(values), "avg_revenue": _round(sum(values) / len(values))}
                for hour, values in peak_hours
            ],
            "status_breakdown": dict(status_breakdown),
            "payment_breakdown": payment_breakdown,
        }

    def inventory_metrics(
        self, products: List[Product], sales: List[Sale], sessions: List[GameSession]
    ) -> Dict[str, Any]:
        categories: Dict[str, Dict[str, float]] = defaultdict(lambda: {"count": 0, "stock": 0, "value": 0.0})
        for p in products:
            entry = categories[p.category.value]
            entry["count"] += 1
            entry["stock"] += p.current_stock or 0
            entry["value"] += _amount(p.stock_value)

        sold: Dict[str, Dict[str, float]] = defaultdict(lambda: {"quantity": 0, "revenue": 0.0, "profit": 0.0})
        lines = [item for sale in sales for item in sale.items]
        lines += [item for s in sessions if s.status != SessionStatus.CANCELLED for item in s.items]
        for item in lines:
            entry = sold[item.product_name]
            entry["quantity"] += item.quantity
            entry["revenue"] += _amount(item.total_revenue)
            entry["profit"] += _amount(item.profit)
        top_selling = sorted(sold.items(), key=lambda kv: kv[1]["quantity"], reverse=True)[:5]

        stock_value = sum(_amount(p.stock_value) for p in products)
        potential_revenue = sum(_amount(p.potential_revenue) for p in products)
        return {
            "total_products": len(products),
            "low_stock_products": sum(1 for p in products if p.is_low_stock),
            "total_inventory_value": _round(stock_value),
            "potential_revenue": _round(potential_revenue),
            "potential_profit": _round(potential_revenue - stock_value),
            "total_items": sum(p.current_stock or 0 for p in products),
            "category_breakdown": [
                {
                    "category": category,
                    "product_count": data["count"],
                    "total_stock": data["stock"],
                    "total_value": _round(data["value"]),
                }
                for category, data in sorted(categories.items())
            ],
            "top_selling_products": [
                {
                    "name": name,
                    "total_sold": data["quantity"],
                    "total_revenue": _round(data["revenue"]),
                    "total_profit": _round(data["profit"]),
                }
                for name, data in top_selling
            ],
        }

    def table_metrics(self, tables: List[SnookerTable], sessions: List[GameSession]) -> Dict[str, Any]:
        active = sum(1 for t in tables if t.status == TableStatus.ACTIVE)
        occupied = sum(1 for t in tables if t.is_occupied)
        per_table: Dict[Any, List[GameSession]] = defaultdict(list)
        for s in sessions:
            if s.table_id:
                per_table[s.table_id].append(s)

        utilization = []
        for t in sorted(tables, key=lambda t: len(per_table[t.id]), reverse=True):
            rows = per_table[t.id]
            finished = [s for s in rows if s.end_time is not None]
            utilization.append({
                "table_id": str(t.id),
                "table_name": t.name,
                "table_number": t.table_number,
                "total_sessions": len(rows),
                "total_revenue": _round(sum(_amount(s.total_cost) for s in rows if s.status == SessionStatus.COMPLETED)),
                "avg_duration": _round(sum(_minutes(s) for s in finished) / len(finished)) if finished else 0,
            })
        return {
            "total_tables": len(tables),
            "active_tables": active,
            "occupied_tables": occupied,
            "utilization_rate": _round(occupied / active * 100) if active else 0,
            "utilization": utilization,
        }

    def customer_metrics(self, sessions: List[GameSession], completed: List[GameSession]) -> Dict[str, Any]:
        this_month, _ = self._month_ranges()
        named = [s for s in sessions if s.customer_name and s.customer_name != GUEST]
        month_visits: Dict[str, int] = defaultdict(int)
        for s in named:
            if _between(s.created_at, this_month, self.now):
                month_visits[s.customer_name] += 1
        returning = sum(1 for count in month_visits.values() if count >= 2)

        spend = self._spend_by_customer(completed)
        top = sorted(spend.items(), key=lambda kv: kv[1]["total_spent"], reverse=True)[:5]
        unique = {s.customer_name for s in named}
        return {
            "total": len(unique),
            "returning": returning,
            "new_this_month": len(unique) - returning,
            "top_customers": [
                {
                    "name": name,
                    "total_sessions": data["sessions"],
                    "total_spent": _round(data["total_spent"]),
                    "avg_spent": _round(data["total_spent"] / data["sessions"]),
                    "last_visit": data["last_visit"],
                }
                for name, data in top
            ],
        }

    def trend_data(self, sessions: List[GameSession], completed: List[GameSession], days: int = 30) -> Dict[str, Any]:
        start = self.now - timedelta(days=days)
        daily: Dict[str, Dict[str, float]] = defaultdict(
            lambda: {"revenue": 0.0, "sessions": 0, "game_revenue": 0.0, "items_revenue": 0.0}
        )
        for s in completed:
            if _between(s.end_time, start, self.now):
                entry = daily[ensure_aware(s.end_time).strftime("%Y-%m-%d")]
                entry["revenue"] += _amount(s.total_cost)
                entry["sessions"] += 1
                entry["game_revenue"] += _amount(s.game_cost)
                entry["items_revenue"] += _amount(s.total_items_revenue)

        hourly = [0] * 24
        for s in sessions:
            if _between(s.created_at, start, self.now):
                hourly[ensure_aware(s.start_time).hour] += 1

        return {
            "daily_revenue": [
                {
                    "date": date,
                    "revenue": _round(data["revenue"]),
                    "sessions": data["sessions"],
                    "game_revenue": _round(data["game_revenue"]),
                    "items_revenue": _round(data["items_revenue"]),
                }
                for date, data in sorted(daily.items())
            ],
            "hourly_sessions": [{"hour": hour, "sessions": count} for hour, count in enumerate(hourly)],
        }

    def insights(
        self, revenue: Dict[str, Any], sessions: Dict[str, Any], inventory: Dict[str, Any]
    ) -> List[Dict[str, str]]:
        insights = []
        growth = revenue["monthly_growth"]
        if growth > 10:
            insights.append({
                "type": "positive", "category": "revenue", "title": "Strong Growth",
                "message": f"Revenue increased by {growth}% this month", "priority": "high",
            })
        elif growth < -10:
            insights.append({
                "type": "warning", "category": "revenue", "title": "Revenue Decline",
                "message": f"Revenue decreased by {abs(growth)}% this month", "priority": "high",
            })
        if inventory["low_stock_products"] > 0:
            insights.append({
                "type": "warning", "category": "inventory", "title": "Low Stock Alert",
                "message": f"{inventory['low_stock_products']} products are running low on stock",
                "priority": "medium",
            })
        if sessions["average_duration"] < 30:
            insights.append({
                "type": "info", "category": "sessions", "title": "Short Sessions",
                "message": f"Average session duration is {sessions['average_duration']} minutes", "priority": "low",
            })
        if sessions["peak_hours"]:
            peak = sessions["peak_hours"][0]
            insights.append({
                "type": "info", "category": "operations", "title": "Peak Hours",
                "message": f"Most busy hour is {peak['hour']}:00 with {peak['sessions']} sessions", "priority": "low",
            })
        return insights

    # Financial report

    def report_range(
        self, period: str, start_date: Optional[datetime] = None, end_date: Optional[datetime] = None
    ) -> Tuple[datetime, datetime]:
        if start_date and end_date:
            return ensure_aware(start_date), ensure_aware(end_date)
        return period_start(period, self.now), self.now

    def financial_report(
        self, period: str = "month", start_date: Optional[datetime] = None, end_date: Optional[datetime] = None
    ) -> Dict[str, Any]:
        start, end = self.report_range(period, start_date, end_date)
        completed = [s for s in self._completed(self._sessions()) if _between(s.end_time, start, end)]
        sales = [s for s in self._sales() if _between(s.sale_date, start, end)]

        total = sum(_amount(s.total_cost) for s in completed)
        game = sum(_amount(s.game_cost) for s in completed)
        items_profit = sum(_amount(s.total_items_profit) for s in completed)
        sales_profit = sum(_amount(s.total_profit) for s in sales)
        expenses = sum(_amount(s.total_cost) for s in sales)

        cash_flow = {p.value: {"amount": 0.0, "count": 0} for p in PaymentStatus}
        for s in completed:
            cash_flow[s.payment_status.value]["amount"] += _amount(s.total_cost)
            cash_flow[s.payment_status.value]["count"] += 1
        for entry in cash_flow.values():
            entry["amount"] = _round(entry["amount"])

        total_revenue = _round(total)
        total_expenses = _round(expenses)
        return {
            "period": {"name": period, "start": start, "end": end},
            "revenue": {
                "total": total_revenue,
                "game_revenue": _round(game),
                "items_revenue": _round(sum(_amount(s.total_items_revenue) for s in completed)),
                "items_profit": _round(items_profit),
                "sessions_count": len(completed),
                "average_per_session": _round(total / len(completed)) if completed else 0,
            },
            "expenses": {"total": total_expenses, "inventory": total_expenses, "operational": 0, "maintenance": 0},
            "profit": {
                "game_profit": _round(game),
                "items_profit": _round(items_profit + sales_profit),
                "total_profit": _round(game + items_profit + sales_profit),
            },
            "cash_flow": cash_flow,
            "summary": {
                "total_revenue": total_revenue,
                "total_expenses": total_expenses,
                "net_profit": total_revenue - total_expenses,
                "profit_margin": _round((total_revenue - total_expenses) / total_revenue * 100) if total_revenue else 0,
            },
        }

    # Customers

    def _spend_by_customer(self, completed: List[GameSession]) -> Dict[str, Dict[str, Any]]:
        spend: Dict[str, Dict[str, Any]] = {}
        for s in completed:
            if not s.customer_name or s.customer_name == GUEST:
                continue
            entry = spend.setdefault(
                s.customer_name,
                {"total_spent": 0.0, "sessions": 0, "first_visit": None, "last_visit": None},
            )
            entry["total_spent"] += _amount(s.total_cost)
            entry["sessions"] += 1
            started = ensure_aware(s.start_time)
            ended = ensure_aware(s.end_time)
            if entry["first_visit"] is None or started < entry["first_visit"]:
                entry["first_visit"] = started
            if entry["last_visit"] is None or ended > entry["last_visit"]:
                entry["last_visit"] = ended
        return spend

    def customer_analytics(self) -> Dict[str, Any]:
        sessions = self._sessions()
        completed = self._completed(sessions)
        spend = self._spend_by_customer(completed)

        segments: Dict[str, List[Dict[str, Any]]] = defaultdict(list)
        for data in spend.values():
            segments[customer_segment(data["total_spent"], data["sessions"])].append(data)
        segmentation = {
            name: {
                "count": len(rows),
                "avg_spent": _round(sum(r["total_spent"] for r in rows) / len(rows)),
                "avg_sessions": _round(sum(r["sessions"] for r in rows) / len(rows)),
            }
            for name, rows in segments.items()
        }

        lifetime = []
        for name, data in sorted(spend.items(), key=lambda kv: kv[1]["total_spent"], reverse=True)[:10]:
            lifetime.append({
                "name": name,
                "total_spent": _round(data["total_spent"]),
                "session_count": data["sessions"],
                "avg_spent_per_visit": _round(data["total_spent"] / data["sessions"]),
                "days_since_first_visit": (self.now - data["first_visit"]).days,
            })

        visits: Dict[str, int] = defaultdict(int)
        for s in sessions:
            if s.customer_name and s.customer_name != GUEST:
                visits[s.customer_name] += 1
        frequency = {bucket: 0 for bucket in ("One-time", "Occasional", "Regular", "Frequent")}
        for count in visits.values():
            frequency[visit_frequency_bucket(count)] += 1

        by_hour: Dict[int, List[float]] = defaultdict(list)
        for s in completed:
            by_hour[ensure_aware(s.start_time).hour].append(_amount(s.total_cost))
        patterns = [
            {"hour": hour, "total_sessions": len(values), "avg_revenue": _round(sum(values) / len(values))}
            for hour, values in sorted(by_hour.items())
        ]

        return {
            "segmentation": segmentation,
            "lifetime_value": lifetime,
            "visit_frequency": frequency,
            "session_patterns": patterns,
        }
