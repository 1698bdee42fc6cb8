# finance_tracker/tests/test_budgets.py
# Tests for budget CRUD and spending progress

from datetime import date, timedelta
from types import SimpleNamespace

from fastapi.testclient import TestClient

from finance_tracker.reports import budget_period_window, budget_spending


def _budget(client, headers, category_id, **overrides):
    payload = {"category_id": category_id, "amount": 1000, "period": "monthly", "start_date": "2025-01-01"}
    payload.update(overrides)
    return client.post("/budgets/", json=payload, headers=headers)


def test_create_budget_reports_spending(client: TestClient, auth_headers, category_id):
    today = date.today().isoformat()
    client.post(
        "/transactions/",
        json={"type": "expense", "amount": 250, "date": today, "category_id": category_id},
        headers=auth_headers,
    )
    # Income never counts against a budget
    client.post(
        "/transactions/",
        json={"type": "income", "amount": 900, "date": today, "category_id": category_id},
        headers=auth_headers,
    )

    response = _budget(client, auth_headers, category_id, notes="<b>Food</b> <script>x</script>")
    assert response.status_code == 201
    data = response.json()
    assert data["spent"] == 250
    assert data["remaining"] == 750
    assert data["percentage"] == 25
    assert data["categories"]["name"] == "Food & Dining"
    assert "<script>" not in data["notes"]
    assert "<b>Food</b>" in data["notes"]


def test_overspent_budget_is_capped(client: TestClient, auth_headers, category_id):
    client.post(
        "/transactions/",
        json={"type": "expense", "amount": 1500, "date": date.today().isoformat(), "category_id": category_id},
        headers=auth_headers,
    )
    data = _budget(client, auth_headers, category_id).json()
    assert data["spent"] == 1500
    assert data["remaining"] == 0
    assert data["percentage"] == 100


def test_open_ended_duplicate_is_rejected(client: TestClient, auth_headers, category_id):
    assert _budget(client, auth_headers, category_id).status_code == 201

    response = _budget(client, auth_headers, category_id)
    assert response.status_code == 400
    assert response.json() == {"detail": "An active budget already exists for this category and period"}

    # A different period or a bounded budget is fine
    assert _budget(client, auth_headers, category_id, period="weekly").status_code == 201
    assert _budget(client, auth_headers, category_id, end_date="2025-06-30").status_code == 201


def test_budget_validation(client: TestClient, auth_headers, category_id):
    assert _budget(client, auth_headers, category_id, amount=0).status_code == 422
    assert _budget(client, auth_headers, category_id, period="daily").status_code == 422
    assert _budget(client, auth_headers, category_id, end_date="2024-12-31").status_code == 422


def test_budget_needs_own_category(client: TestClient, auth_headers, other_headers, category_id):
    response = _budget(client, other_headers, category_id)
    assert response.status_code == 400
    assert response.json() == {"detail": "Invalid category"}


def test_list_and_filter_budgets(client: TestClient, auth_headers, category_id):
    _budget(client, auth_headers, category_id)
    _budget(client, auth_headers, category_id, period="yearly")

    assert len(client.get("/budgets/", headers=auth_headers).json()) == 2
    yearly = client.get("/budgets/?period=yearly", headers=auth_headers).json()
    assert [b["period"] for b in yearly] == ["yearly"]


def test_update_budget(client: TestClient, auth_headers, category_id):
    created = _budget(client, auth_headers, category_id).json()

    response = client.put(f"/budgets/{created['id']}", json={"amount": 2000}, headers=auth_headers)
    assert response.status_code == 200
    assert response.json()["amount"] == 2000

    response = client.put(f"/budgets/{created['id']}", json={"end_date": "2024-01-01"}, headers=auth_headers)
    assert response.status_code == 400


def test_delete_budget_goes_to_trash(client: TestClient, auth_headers, other_headers, category_id):
    created = _budget(client, auth_headers, category_id).json()

    assert client.delete(f"/budgets/{created['id']}", headers=other_headers).status_code == 404

    response = client.delete(f"/budgets/{created['id']}", headers=auth_headers)
    assert response.status_code == 200
    assert response.json()["message"] == "Budget moved to trash"
    assert client.get(f"/budgets/{created['id']}", headers=auth_headers).status_code == 404

# ===== SPENDING WINDOWS =====

def _plain_budget(period, start=date(2025, 1, 1), end=None, amount=100):
    return SimpleNamespace(period=period, start_date=start, end_date=end, amount=amount, category_id="c1")


def test_weekly_window_runs_monday_to_sunday():
    # 2025-03-12 is a Wednesday
    assert budget_period_window(_plain_budget("weekly"), date(2025, 3, 12)) == (date(2025, 3, 10), date(2025, 3, 16))


def test_monthly_and_yearly_windows():
    assert budget_period_window(_plain_budget("monthly", start=date(2024, 1, 1)), date(2024, 2, 10)) == (date(2024, 2, 1), date(2024, 2, 29))
    assert budget_period_window(_plain_budget("yearly"), date(2025, 7, 4)) == (date(2025, 1, 1), date(2025, 12, 31))


def test_window_is_clipped_to_budget_dates():
    budget = _plain_budget("monthly", start=date(2025, 3, 5), end=date(2025, 3, 20))
    assert budget_period_window(budget, date(2025, 3, 12)) == (date(2025, 3, 5), date(2025, 3, 20))


def test_spending_only_counts_matching_expenses_in_window():
    today = date(2025, 3, 12)
    rows = [
        SimpleNamespace(type="expense", category_id="c1", date=today, amount=30),
        SimpleNamespace(type="expense", category_id="c1", date=today - timedelta(days=40), amount=500),
        SimpleNamespace(type="expense", category_id="c2", date=today, amount=70),
        SimpleNamespace(type="income", category_id="c1", date=today, amount=90),
    ]
    assert budget_spending(_plain_budget("monthly"), rows, today) == {
        "spent": 30.0,
        "remaining": 70.0,
        "percentage": 30.0,
    }
