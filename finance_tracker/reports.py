# finance_tracker/reports.py
# Financial report, dashboard metrics and budget spending calculations

from datetime import date, timedelta
from typing import Dict, List, Optional, Tuple

from dateutil.relativedelta import relativedelta


def _total(transactions, tx_type: str) -> float:
    return sum(float(t.amount) for t in transactions if t.type == tx_type)


def _month_start(day: date) -> date:
    return day.replace(day=1)


def _month_end(day: date) -> date:
    return _month_start(day) + relativedelta(months=1) - timedelta(days=1)


def period_start(period: str, today: Optional[date] = None) -> date:
    """First day included in a report for the given period."""
    today = today or date.today()
    if period == "week":
        return today - timedelta(days=7)
    if period == "month":
        # The month view covers the last 12 months
        return _month_start(today) - relativedelta(months=11)
    if period == "year":
        return date(today.year, 1, 1)
    return date(2000, 1, 1)


# ===== REPORT =====

def category_breakdown(transactions) -> List[Dict]:
    """Totals per category, largest first. Rows without a category share one bucket."""
    buckets: Dict[str, Dict] = {}
    for t in transactions:
        key = t.category_id or "uncategorized"
        if key not in buckets:
            category = t.category
            buckets[key] = {
                "id": key,
                "name": category.name if category else "Uncategorized",
                "total": 0.0,
                "count": 0,
                "type": t.type,
                "color": category.color if category else None,
                "icon": category.icon if category else None,
            }
        buckets[key]["total"] += float(t.amount)
        buckets[key]["count"] += 1
    return sorted(buckets.values(), key=lambda b: b["total"], reverse=True)


def monthly_trends(transactions, today: Optional[date] = None, months: int = 12) -> List[Dict]:
    """Income, expenses and net for each of the last `months` calendar months, oldest first."""
    today = today or date.today()
    trends = []
    for i in range(months - 1, -1, -1):
        start = _month_start(today) - relativedelta(months=i)
        end = _month_end(start)
        in_month = [t for t in transactions if start <= t.date <= end]
        income = _total(in_month, "income")
        expenses = _total(in_month, "expense")
        trends.append({
            "month": start.strftime("%b %Y"),
            "income": income,
            "expenses": expenses,
            "net": income - expenses,
        })
    return trends


def build_report(transactions, period: str = "month", today: Optional[date] = None) -> Dict:
    today = today or date.today()
    total_income = _total(transactions, "income")
    total_expenses = _total(transactions, "expense")
    income_count = sum(1 for t in transactions if t.type == "income")
    expense_count = sum(1 for t in transactions if t.type == "expense")
    breakdown = category_breakdown(transactions)

    return {
        "summary": {
            "period": period,
            "total_income": total_income,
            "total_expenses": total_expenses,
            "net_income": total_income - total_expenses,
            "transaction_count": len(transactions),
            "avg_income": total_income / income_count if income_count else 0.0,
            "avg_expense": total_expenses / expense_count if expense_count else 0.0,
        },
        "category_breakdown": breakdown,
        "monthly_trends": monthly_trends(transactions, today),
        "top_spending_categories": [c for c in breakdown if c["type"] == "expense"][:5],
        "date_range": {
            "start": period_start(period, today).isoformat(),
            "end": today.isoformat(),
        },
    }


# ===== BUDGETS =====

def budget_period_window(budget, today: Optional[date] = None) -> Tuple[date, date]:
    """
    The weekly (Mon-Sun), monthly or yearly window containing `today`,
    clipped to the budget's own start and end dates.
    """
    today = today or date.today()
    if budget.period == "weekly":
        start = today - timedelta(days=today.weekday())
        end = start + timedelta(days=6)
    elif budget.period == "yearly":
        start = date(today.year, 1, 1)
        end = date(today.year, 12, 31)
    else:
        start = _month_start(today)
        end = _month_end(today)

    if budget.start_date and budget.start_date > start:
        start = budget.start_date
    if budget.end_date and budget.end_date < end:
        end = budget.end_date
    return start, end


def budget_spending(budget, transactions, today: Optional[date] = None) -> Dict:
    """Spent, remaining and percentage used for one budget in its current window."""
    start, end = budget_period_window(budget, today)
    spent = sum(
        float(t.amount) for t in transactions
        if t.type == "expense" and t.category_id == budget.category_id and start <= t.date <= end
    )
    amount = float(budget.amount)
    return {
        "spent": spent,
        "remaining": max(0.0, amount - spent),
        "percentage": min(100.0, (spent / amount) * 100) if amount > 0 else 0.0,
    }


# ===== DASHBOARD =====

def percentage_change(current: float, previous: float) -> float:
    if previous == 0:
        return 100.0 if current > 0 else 0.0
    return ((current - previous) / abs(previous)) * 100


def _month_metrics(transactions) -> Dict:
    income = _total(transactions, "income")
    expenses = _total(transactions, "expense")
    return {
        "income": income,
        "expenses": expenses,
        "balance": income - expenses,
        "transaction_count": len(transactions),
    }


def dashboard_metrics(transactions, budgets, today: Optional[date] = None) -> Dict:
    """All-time totals, this month against last month and budget progress."""
    today = today or date.today()
    this_start = _month_start(today)
    last_start = this_start - relativedelta(months=1)

    current = _month_metrics([t for t in transactions if this_start <= t.date <= _month_end(this_start)])
    previous = _month_metrics([t for t in transactions if last_start <= t.date <= _month_end(last_start)])

    total_income = _total(transactions, "income")
    total_expenses = _total(transactions, "expense")

    budgets_with_spending = []
    for budget in budgets:
        row = {
            "id": budget.id,
            "category_id": budget.category_id,
            "category_name": budget.category.name if budget.category else "Uncategorized",
            "amount": float(budget.amount),
            "period": budget.period,
        }
        row.update(budget_spending(budget, transactions, today))
        budgets_with_spending.append(row)

    return {
        "total_income": total_income,
        "total_expenses": total_expenses,
        "total_balance": total_income - total_expenses,
        "transaction_count": len(transactions),
        "current_month": current,
        "last_month": previous,
        "changes": {
            key: percentage_change(current[key], previous[key])
            for key in ("balance", "income", "expenses", "transaction_count")
        },
        "budgets": budgets_with_spending,
    }
