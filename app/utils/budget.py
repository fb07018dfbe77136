from __future__ import annotations

import calendar
from datetime import datetime
from typing import Any, Dict, Iterable, Optional

from app.models.insights import BudgetRecommendations, RecommendedBudget
from app.utils.analyzer import compute_basic_stats, round_half_up

NEEDS_SHARE = 0.5
WANTS_SHARE = 0.3
SAVINGS_SHARE = 0.2
CATEGORY_REDUCTION = 0.8  # aim for 20% less per category
EMERGENCY_FUND_MONTHS = 6

GENERAL_RECOMMENDATIONS = [
    "Track all expenses to identify spending patterns",
    "Set up automatic transfers to savings",
    "Review subscriptions and cancel unused services",
    "Cook meals at home to reduce food expenses",
    "Use cashback cards for essential purchases",
]


def _whole(value: float) -> int:
    return int(round_half_up(value, 0))


def lookback_start(now: datetime, months: int = 3) -> datetime:
    """Same day and time ``months`` calendar months earlier, clamped to the month end."""
    month_index = now.month - 1 - months
    year = now.year + month_index // 12
    month = month_index % 12 + 1
    day = min(now.day, calendar.monthrange(year, month)[1])
    return now.replace(year=year, month=month, day=day)


def recommend_budget(
    expenses: Optional[Iterable[Any]],
    monthly_income: float,
    months: int = 3,
) -> Dict[str, Any]:
    """
    Suggest a 50/30/20 budget for the given income and per-category limits
    20% below what was spent. ``expenses`` must already be limited to the
    trailing ``months`` window.
    """
    stats = compute_basic_stats(expenses)
    income = float(monthly_income)

    recommendations = BudgetRecommendations(
        monthly_income=income,
        current_spending=stats.total_amount / months,
        recommended_budget=RecommendedBudget(
            needs=_whole(income * NEEDS_SHARE),
            wants=_whole(income * WANTS_SHARE),
            savings=_whole(income * SAVINGS_SHARE),
        ),
        category_limits={
            category: _whole(total * CATEGORY_REDUCTION)
            for category, total in stats.category_breakdown.items()
        },
        savings_target=_whole(income * SAVINGS_SHARE),
        emergency_fund_target=_whole(income * EMERGENCY_FUND_MONTHS),
        recommendations=list(GENERAL_RECOMMENDATIONS),
    )
    return recommendations.model_dump(by_alias=True)
