# finance_tracker/ai_insights.py
# AI financial insights: spending summary, advisor prompt and reply parsing

import json
import logging
import re
import time
from typing import Dict, List, Optional

from .llm import LLMClient, LLMError

logger = logging.getLogger(__name__)

SYSTEM_MESSAGE = (
    "You are a professional financial advisor providing actionable insights. "
    "Always respond with valid JSON only, no markdown formatting."
)

INSIGHT_ICONS = {
    "pattern": "📊",
    "budget": "💰",
    "savings": "💡",
    "alert": "⚠️",
    "summary": "📈",
}

INSIGHT_COLORS = {
    "success": "text-green-600 bg-green-50 border-green-200",
    "warning": "text-yellow-600 bg-yellow-50 border-yellow-200",
    "error": "text-red-600 bg-red-50 border-red-200",
    "info": "text-blue-600 bg-blue-50 border-blue-200",
}

_FENCE = re.compile(r"```(?:json)?\n?")


def _now_ms() -> int:
    return int(time.time() * 1000)


def _category_name(row) -> str:
    category = getattr(row, "category", None)
    return category.name if category is not None and category.name else "Uncategorized"


# ===== SUMMARY =====

def calculate_spending_summary(transactions, budgets) -> Dict:
    """
    Reduce transactions and budgets to the figures the advisor prompt needs.

    Budget spending counts every expense in the budget's category across the
    transactions given, so the caller decides the time window.
    """
    total_income = sum(float(t.amount) for t in transactions if t.type == "income")
    total_expenses = sum(float(t.amount) for t in transactions if t.type == "expense")
    net_income = total_income - total_expenses
    savings_rate = (net_income / total_income) * 100 if total_income > 0 else 0.0

    category_totals: Dict[str, float] = {}
    for t in transactions:
        if t.type != "expense":
            continue
        name = _category_name(t)
        category_totals[name] = category_totals.get(name, 0.0) + float(t.amount)

    top_categories = sorted(
        (
            {
                "name": name,
                "amount": amount,
                "percentage": (amount / total_expenses) * 100 if total_expenses > 0 else 0.0,
            }
            for name, amount in category_totals.items()
        ),
        key=lambda c: c["amount"],
        reverse=True,
    )[:5]

    budget_status = []
    for budget in budgets:
        spent = sum(
            float(t.amount) for t in transactions
            if t.type == "expense" and t.category_id == budget.category_id
        )
        limit = float(budget.amount)
        budget_status.append({
            "category": _category_name(budget),
            "spent": spent,
            "limit": limit,
            "percentage": (spent / limit) * 100 if limit else 0.0,
        })

    return {
        "total_income": total_income,
        "total_expenses": total_expenses,
        "net_income": net_income,
        "savings_rate": savings_rate,
        "transaction_count": len(transactions),
        "top_categories": top_categories,
        "budget_status": budget_status,
    }


# ===== PROMPT =====

def generate_insights_prompt(summary: Dict) -> str:
    top = "\n".join(
        f"{i + 1}. {c['name']}: ₱{c['amount']:.2f} ({c['percentage']:.1f}%)"
        for i, c in enumerate(summary["top_categories"])
    )
    budgets = "\n".join(
        f"- {b['category']}: ₱{b['spent']:.2f} / ₱{b['limit']:.2f} ({b['percentage']:.1f}%)"
        for b in summary["budget_status"]
    )

    return f"""You are a professional financial advisor analyzing a user's spending data. Provide 4-5 actionable insights based on the following financial data:

**Financial Summary:**
- Total Income: ₱{summary['total_income']:.2f}
- Total Expenses: ₱{summary['total_expenses']:.2f}
- Net Income: ₱{summary['net_income']:.2f}
- Savings Rate: {summary['savings_rate']:.1f}%
- Total Transactions: {summary['transaction_count']}

**Top Spending Categories:**
{top}

**Budget Status:**
{budgets}

Provide insights in the following format (return ONLY valid JSON, no markdown):

{{
  "insights": [
    {{
      "type": "pattern|budget|savings|alert|summary",
      "title": "Brief title (max 60 chars)",
      "description": "Detailed description (2-3 sentences)",
      "severity": "info|warning|success|error",
      "actionable": true|false,
      "recommendation": "Specific action to take (optional)"
    }}
  ]
}}

Focus on:
1. Spending patterns and trends
2. Budget adherence and optimization
3. Savings opportunities
4. Unusual spending or alerts
5. Overall financial health summary

Be specific, actionable, and encouraging. Use Philippine Peso (₱) for currency."""


# ===== PARSING =====

def _fallback_insight() -> Dict:
    return {
        "id": f"insight-{_now_ms()}-fallback",
        "type": "summary",
        "title": "Financial Analysis Available",
        "description": "Your financial data has been analyzed. Continue tracking your expenses to get more detailed insights.",
        "severity": "info",
        "actionable": False,
        "recommendation": None,
    }


def _no_data_insight() -> Dict:
    return {
        "id": f"insight-{_now_ms()}-no-data",
        "type": "summary",
        "title": "No Transaction Data",
        "description": "Start adding transactions to get personalized financial insights and recommendations.",
        "severity": "info",
        "actionable": True,
        "recommendation": "Add your first transaction to begin tracking your finances.",
    }


def _error_insight() -> Dict:
    return {
        "id": f"insight-{_now_ms()}-error",
        "type": "alert",
        "title": "Unable to Generate Insights",
        "description": "We encountered an issue generating your financial insights. Please try again later.",
        "severity": "error",
        "actionable": False,
        "recommendation": None,
    }


def _text(value, default: Optional[str]) -> Optional[str]:
    """Model output as a string. Numbers are converted, other types dropped."""
    if isinstance(value, str):
        return value or default
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return default


def parse_ai_response(response: str) -> List[Dict]:
    """Parse the model's JSON reply. Anything malformed becomes a single fallback insight."""
    cleaned = _FENCE.sub("", response).strip()
    try:
        parsed = json.loads(cleaned)
        raw = parsed["insights"]
        if not isinstance(raw, list):
            raise ValueError("insights is not a list")
    except (ValueError, KeyError, TypeError) as e:
        logger.warning("Could not parse AI insights response: %s", e)
        return [_fallback_insight()]

    stamp = _now_ms()
    insights = []
    for index, item in enumerate(raw):
        if not isinstance(item, dict):
            item = {}
        actionable = item.get("actionable")
        insights.append({
            "id": f"insight-{stamp}-{index}",
            "type": _text(item.get("type"), "info"),
            "title": _text(item.get("title"), "Financial Insight"),
            "description": _text(item.get("description"), ""),
            "severity": _text(item.get("severity"), "info"),
            "actionable": bool(actionable) if actionable is not None else False,
            "recommendation": _text(item.get("recommendation"), None),
        })
    return insights


# ===== GENERATION =====

def generate_financial_insights(transactions, budgets, client: Optional[LLMClient]) -> List[Dict]:
    """Insights for the given period. Never raises; failures become an error insight."""
    if not transactions:
        return [_no_data_insight()]

    if client is None or not client.is_configured:
        logger.error("AI insights requested but no LLM client is configured")
        return [_error_insight()]

    summary = calculate_spending_summary(transactions, budgets)
    prompt = generate_insights_prompt(summary)

    try:
        reply = client.complete(
            [
                {"role": "system", "content": SYSTEM_MESSAGE},
                {"role": "user", "content": prompt},
            ],
            temperature=0.7,
            max_tokens=2000,
        )
    except LLMError as e:
        logger.error("Error generating financial insights: %s", e)
        return [_error_insight()]

    return parse_ai_response(reply)


def get_insight_icon(insight_type: str) -> str:
    return INSIGHT_ICONS.get(insight_type, "💡")


def get_insight_color(severity: str) -> str:
    return INSIGHT_COLORS.get(severity, INSIGHT_COLORS["info"])
