from __future__ import annotations

import math
from collections.abc import Mapping
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal, localcontext
from typing import Any, Dict, Iterable, List, Optional, Tuple

DEFAULT_CATEGORY = "others"

TREND_INCREASING = "increasing"
TREND_DECREASING = "decreasing"
TREND_STABLE = "stable"

RISK_LOW = "low"
RISK_MEDIUM = "medium"
RISK_HIGH = "high"

# Fixed thresholds on the total spent
HIGH_RISK_TOTAL = 2000
MEDIUM_RISK_TOTAL = 800

TREND_UPPER_RATIO = 1.05
TREND_LOWER_RATIO = 0.95

# Checked in order; the first key holding a value wins
_DATE_KEYS = ("createdAt", "created_at", "date", "timestamp")


@dataclass(frozen=True)
class NormalizedExpense:
    """An expense record after defaulting and amount coercion."""

    description: Optional[str]
    amount: float
    category: str
    date: Any = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "description": self.description,
            "amount": self.amount,
            "category": self.category,
            "date": self.date,
        }


@dataclass(frozen=True)
class StatsSummary:
    """Aggregate statistics for one list of expenses. Built fresh on every call."""

    normalized: Tuple[NormalizedExpense, ...]
    total_amount: float
    average_transaction: float
    top_category: Optional[str]
    spending_trend: str
    category_breakdown: Dict[str, float] = field(default_factory=dict)
    risk_level: str = RISK_LOW

    @property
    def count(self) -> int:
        return len(self.normalized)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "normalized": [item.to_dict() for item in self.normalized],
            "totalAmount": self.total_amount,
            "averageTransaction": self.average_transaction,
            "topCategory": self.top_category,
            "spendingTrend": self.spending_trend,
            "categoryBreakdown": dict(self.category_breakdown),
            "riskLevel": self.risk_level,
        }


def round_half_up(value: float, places: int = 2) -> float:
    """Round like a till does: halves go up at the last kept digit."""
    if not math.isfinite(value):
        return value
    quantum = Decimal(1).scaleb(-places)
    with localcontext() as ctx:
        # enough digits for any finite float down to the kept place
        ctx.prec = 330 + max(places, 0)
        return float(Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP))


def coerce_amount(value: Any) -> float:
    """
    Coerce a stored amount to a float. Missing, non-numeric and non-finite
    values become 0; negative values are kept (refunds).
    """
    if value is None or value == "":
        return 0.0
    try:
        amount = float(value)
    except (TypeError, ValueError, OverflowError):
        return 0.0
    if not math.isfinite(amount):
        return 0.0
    return amount


def _field(record: Any, name: str) -> Any:
    if isinstance(record, Mapping):
        return record.get(name)
    return getattr(record, name, None)


def normalize_expense(record: Any) -> NormalizedExpense:
    date = None
    for key in _DATE_KEYS:
        date = _field(record, key)
        if date:
            break
    category = _field(record, "category")
    return NormalizedExpense(
        description=_field(record, "description"),
        amount=coerce_amount(_field(record, "amount")),
        category=str(category) if category else DEFAULT_CATEGORY,
        date=date or None,
    )


def _spending_trend(amounts: List[float]) -> str:
    n = len(amounts)
    if n < 3:
        return TREND_STABLE

    third = max(1, n // 3)
    first_sum = sum(amounts[:third])
    last_sum = sum(amounts[-third:])
    if last_sum > first_sum * TREND_UPPER_RATIO:
        return TREND_INCREASING
    if last_sum < first_sum * TREND_LOWER_RATIO:
        return TREND_DECREASING
    return TREND_STABLE


def risk_level_for(total: float) -> str:
    if total > HIGH_RISK_TOTAL:
        return RISK_HIGH
    if total > MEDIUM_RISK_TOTAL:
        return RISK_MEDIUM
    return RISK_LOW


def compute_basic_stats(expenses: Optional[Iterable[Any]]) -> StatsSummary:
    """
    Compute normalized records and aggregate statistics for a list of raw
    expenses. Input order is taken as chronological ascending, which the
    trend heuristic relies on. ``None`` is treated as an empty list.
    """
    normalized = tuple(normalize_expense(exp) for exp in (expenses or []))
    amounts = [item.amount for item in normalized]

    total = sum(amounts)
    average = total / len(amounts) if amounts else 0

    breakdown: Dict[str, float] = {}
    for item in normalized:
        breakdown[item.category] = breakdown.get(item.category, 0) + item.amount

    # max() keeps the first inserted category on ties
    top_category = max(breakdown, key=breakdown.__getitem__) if breakdown else None

    return StatsSummary(
        normalized=normalized,
        total_amount=total,
        average_transaction=round_half_up(average, 2),
        top_category=top_category,
        spending_trend=_spending_trend(amounts),
        category_breakdown=breakdown,
        risk_level=risk_level_for(total),
    )
