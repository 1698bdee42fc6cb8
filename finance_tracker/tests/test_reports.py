# finance_tracker/tests/test_reports.py
# Tests for financial reports and dashboard metrics

from datetime import date, timedelta
from types import SimpleNamespace
from unittest.mock import MagicMock

from fastapi.testclient import TestClient

from finance_tracker.cache import Cache
from finance_tracker.dependencies import get_cache
from finance_tracker.main import app
from finance_tracker.reports import (
    build_report, category_breakdown, dashboard_metrics, monthly_trends, percentage_change, period_start
)


def _tx(type, amount, day, category_id=None, name=None):
    return SimpleNamespace(
        type=type, amount=amount, date=day, category_id=category_id,
        category=SimpleNamespace(name=name, color="#111111", icon="x") if name else None,
    )


def test_period_start():
    today = date(2025, 8, 20)
    assert period_start("week", today) == date(2025, 8, 13)
    assert period_start("month", today) == date(2024, 9, 1)
    assert period_start("year", today) == date(2025, 1, 1)
    assert period_start("all", today) == date(2000, 1, 1)


def test_category_breakdown_sorts_by_total():
    rows = [
        _tx("expense", 50, date(2025, 8, 1), "c1", "Food"),
        _tx("expense", 70, date(2025, 8, 2), "c2", "Transport"),
        _tx("expense", 40, date(2025, 8, 3), "c1", "Food"),
        _tx("expense", 5, date(2025, 8, 3)),
    ]
    breakdown = category_breakdown(rows)
    assert [(c["name"], c["total"], c["count"]) for c in breakdown] == [
        ("Food", 90, 2), ("Transport", 70, 1), ("Uncategorized", 5, 1)
    ]


def test_monthly_trends_cover_twelve_months():
    today = date(2025, 8, 20)
    rows = [
        _tx("income", 1000, date(2025, 8, 1)),
        _tx("expense", 300, date(2025, 8, 5)),
        _tx("expense", 200, date(2025, 1, 31)),
        _tx("expense", 999, date(2024, 8, 31)),  # outside the window
    ]
    trends = monthly_trends(rows, today)
    assert len(trends) == 12
    assert trends[0]["month"] == "Sep 2024"
    assert trends[-1] == {"month": "Aug 2025", "income": 1000, "expenses": 300, "net": 700}
    assert next(t for t in trends if t["month"] == "Jan 2025")["expenses"] == 200


def test_build_report_summary():
    today = date(2025, 8, 20)
    rows = [
        _tx("income", 1000, date(2025, 8, 1), "s", "Salary"),
        _tx("income", 500, date(2025, 8, 2), "s", "Salary"),
        _tx("expense", 300, date(2025, 8, 5), "f", "Food"),
    ]
    report = build_report(rows, "month", today)
    summary = report["summary"]
    assert summary["total_income"] == 1500
    assert summary["total_expenses"] == 300
    assert summary["net_income"] == 1200
    assert summary["avg_income"] == 750
    assert summary["avg_expense"] == 300
    assert [c["name"] for c in report["top_spending_categories"]] == ["Food"]
    assert report["date_range"] == {"start": "2024-09-01", "end": "2025-08-20"}


def test_percentage_change():
    assert percentage_change(150, 100) == 50
    assert percentage_change(50, 0) == 100
    assert percentage_change(0, 0) == 0
    assert percentage_change(-50, -100) == 50


def test_dashboard_metrics():
    today = date(2025, 8, 20)
    rows = [
        _tx("income", 2000, date(2025, 8, 1)),
        _tx("expense", 500, date(2025, 8, 10), "f", "Food"),
        _tx("income", 1000, date(2025, 7, 1)),
        _tx("expense", 1000, date(2025, 7, 15), "f", "Food"),
    ]
    budgets = [SimpleNamespace(
        id="b1", category_id="f", category=SimpleNamespace(name="Food"), amount=1000,
        period="monthly", start_date=date(2025, 1, 1), end_date=None,
    )]

    metrics = dashboard_metrics(rows, budgets, today)

    assert metrics["total_balance"] == 1500
    assert metrics["current_month"]["balance"] == 1500
    assert metrics["last_month"]["balance"] == 0
    assert metrics["changes"]["income"] == 100
    assert metrics["changes"]["expenses"] == -50
    assert metrics["budgets"][0]["spent"] == 500
    assert metrics["budgets"][0]["category_name"] == "Food"

# ===== ENDPOINTS =====

def test_report_endpoint(client: TestClient, auth_headers, category_id):
    today = date.today()
    client.post("/transactions/", json={"type": "income", "amount": 800, "date": today.isoformat()}, headers=auth_headers)
    client.post(
        "/transactions/",
        json={"type": "expense", "amount": 300, "date": today.isoformat(), "category_id": category_id},
        headers=auth_headers,
    )
    client.post(
        "/transactions/",
        json={"type": "expense", "amount": 50, "date": (today - timedelta(days=30)).isoformat()},
        headers=auth_headers,
    )

    response = client.get("/reports/?period=week", headers=auth_headers)
    assert response.status_code == 200
    summary = response.json()["report"]["summary"]
    assert summary["transaction_count"] == 2
    assert summary["net_income"] == 500

    expenses_only = client.get("/reports/?period=all&type=expense", headers=auth_headers).json()["report"]
    assert expenses_only["summary"]["total_income"] == 0
    assert expenses_only["summary"]["total_expenses"] == 350


def test_report_uses_cache(client: TestClient, auth_headers):
    cache = MagicMock(spec=Cache)
    cache.get_or_set.return_value = {"report": {"summary": {"cached": True}}}
    app.dependency_overrides[get_cache] = lambda: cache

    response = client.get("/reports/?period=year&type=income", headers=auth_headers)
    assert response.json() == {"report": {"summary": {"cached": True}}}
    key, _, ttl = cache.get_or_set.call_args.args
    assert key.startswith("reports:") and key.endswith(":year:income")
    assert ttl == 3600


def test_dashboard_endpoint(client: TestClient, auth_headers, category_id):
    client.post("/budgets/", json={"category_id": category_id, "amount": 100, "period": "monthly"}, headers=auth_headers)
    client.post(
        "/transactions/",
        json={"type": "expense", "amount": 40, "date": date.today().isoformat(), "category_id": category_id},
        headers=auth_headers,
    )

    data = client.get("/reports/dashboard", headers=auth_headers).json()
    assert data["total_expenses"] == 40
    assert data["current_month"]["transaction_count"] == 1
    assert data["budgets"][0]["percentage"] == 40


def test_dashboard_uses_analytics_cache(client: TestClient, auth_headers):
    cache = MagicMock(spec=Cache)
    cache.get_or_set.return_value = {"total_expenses": 7}
    app.dependency_overrides[get_cache] = lambda: cache

    response = client.get("/reports/dashboard", headers=auth_headers)
    assert response.json() == {"total_expenses": 7}
    key, _, ttl = cache.get_or_set.call_args.args
    assert key.startswith("analytics:")
    assert key.endswith(f":dashboard:{date.today().isoformat()}")
    assert ttl == 1800


def test_reports_reject_unknown_period(client: TestClient, auth_headers):
    assert client.get("/reports/?period=decade", headers=auth_headers).status_code == 422
