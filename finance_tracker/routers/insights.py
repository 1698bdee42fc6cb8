# finance_tracker/routers/insights.py
# AI insights and financial reports

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session, joinedload
from typing import Optional
from datetime import date, datetime, timedelta
import logging

from .. import models, schemas
from ..ai_insights import generate_financial_insights
from ..cache import Cache, CACHE_PREFIXES, CACHE_TTL, build_cache_key
from ..dependencies import get_current_user, get_db, get_cache, get_llm_client, rate_limit
from ..llm import LLMClient
from ..reports import build_report, dashboard_metrics, period_start

logger = logging.getLogger(__name__)

insights_router = APIRouter()
reports_router = APIRouter()

INSIGHT_PERIOD_DAYS = {"week": 7, "month": 30, "quarter": 90}


def _transactions_since(db: Session, user_id: str, start: Optional[date] = None, tx_type: Optional[str] = None):
    query = db.query(models.Transaction).options(
        joinedload(models.Transaction.category)
    ).filter(models.Transaction.user_id == user_id)
    if start:
        query = query.filter(models.Transaction.date >= start)
    if tx_type:
        query = query.filter(models.Transaction.type == tx_type)
    return query.order_by(models.Transaction.date.desc()).all()


def _budgets(db: Session, user_id: str):
    return db.query(models.Budget).options(
        joinedload(models.Budget.category)
    ).filter(models.Budget.user_id == user_id).all()

# ===== INSIGHTS =====

@insights_router.get("/", dependencies=[Depends(rate_limit("read"))])
async def get_insights(
    period: str = Query("month", pattern="^(week|month|quarter)$", description="week, month or quarter"),
    refresh: bool = Query(False, description="Skip the cache and regenerate"),
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
    cache: Cache = Depends(get_cache),
    client: LLMClient = Depends(get_llm_client)
):
    """AI-generated insights for the last 7, 30 or 90 days."""
    cache_key = build_cache_key(CACHE_PREFIXES["insights"], current_user.id, period)
    if not refresh:
        cached = cache.get(cache_key)
        if cached is not None:
            cached["cached"] = True
            return cached

    today = date.today()
    start = today - timedelta(days=INSIGHT_PERIOD_DAYS[period])
    transactions = _transactions_since(db, current_user.id, start)
    budgets = _budgets(db, current_user.id)

    insights = generate_financial_insights(transactions, budgets, client)

    total_income = sum(float(t.amount) for t in transactions if t.type == "income")
    total_expenses = sum(float(t.amount) for t in transactions if t.type == "expense")
    result = {
        "insights": [schemas.FinancialInsight(**i).model_dump() for i in insights],
        "metadata": {
            "period": period,
            "date_range": {"start": start.isoformat(), "end": today.isoformat()},
            "transaction_count": len(transactions),
            "budget_count": len(budgets),
            "total_income": total_income,
            "total_expenses": total_expenses,
            "net_income": total_income - total_expenses,
            "generated_at": datetime.utcnow().isoformat(),
        },
        "cached": False
    }

    # Failures are not cached so the next request retries
    if not any(i["severity"] == "error" for i in insights):
        cache.set(cache_key, result, CACHE_TTL["insights"])
    return result

# ===== REPORTS =====

@reports_router.get("/", dependencies=[Depends(rate_limit("read"))])
async def get_report(
    period: str = Query("month", pattern="^(week|month|year|all)$", description="week, month, year or all"),
    type: Optional[schemas.TransactionTypeEnum] = Query(None, description="income or expense"),
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
    cache: Cache = Depends(get_cache)
):
    """Summary, category breakdown, monthly trends and top spending for a period."""
    type_value = type.value if type else None
    cache_key = build_cache_key(CACHE_PREFIXES["reports"], current_user.id, period, type_value or "all")

    def generate():
        today = date.today()
        transactions = _transactions_since(db, current_user.id, period_start(period, today), type_value)
        return {"report": build_report(transactions, period, today)}

    return cache.get_or_set(cache_key, generate, CACHE_TTL["reports"])


@reports_router.get("/dashboard", dependencies=[Depends(rate_limit("read"))])
async def get_dashboard(
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
    cache: Cache = Depends(get_cache)
):
    """Totals, month-over-month changes and budget progress for the dashboard."""
    today = date.today()
    cache_key = build_cache_key(CACHE_PREFIXES["analytics"], current_user.id, "dashboard", today.isoformat())

    def generate():
        transactions = _transactions_since(db, current_user.id)
        return dashboard_metrics(transactions, _budgets(db, current_user.id), today)

    return cache.get_or_set(cache_key, generate, CACHE_TTL["analytics"])
