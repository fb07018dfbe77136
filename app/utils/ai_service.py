"""
AI Service
Expense analysis and quick insights, generated by the configured provider
when there is one and computed deterministically otherwise.

Both public operations always return a payload of the success shape; the
``SynthesisResult`` wrapper records whether the deterministic path was used.
"""
from __future__ import annotations

import json
import logging
import math
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Generic, Iterable, Optional, TypeVar

from app.models.insights import ExpenseInsights
from app.utils.ai_provider import ProviderUnavailableError, TextProvider
from app.utils.analyzer import StatsSummary, compute_basic_stats

logger = logging.getLogger(__name__)

T = TypeVar("T")

NOT_AVAILABLE = "N/A"
GENERIC_CATEGORY = "high-cost categories"

ANALYSIS_PROMPT = """
As a financial advisor, analyze the following expense data and provide personalized advice to help the user save money and manage their expenses more efficiently.

Expense Data:
{expense_data}

Summary:
- Total Expenses: {total}
- Number of Transactions: {count}
- Category Breakdown: {breakdown}

Please provide:
1. Spending Analysis: Identify patterns and potential areas of concern
2. Budget Recommendations: Suggest realistic budget allocations for each category
3. Money-Saving Tips: Provide specific, actionable advice based on their spending patterns
4. Financial Goals: Suggest short-term and long-term financial goals
5. Emergency Fund: Advice on building and maintaining an emergency fund
6. Investment Opportunities: Basic investment advice if applicable

Format the response in a structured, easy-to-read manner with clear sections and actionable steps.
Keep the tone friendly and encouraging.
"""

INSIGHTS_PROMPT = """
Analyze these expenses and provide quick insights in JSON format:
{expense_data}

Return a JSON object with exactly these keys:
{{
  "topCategory": "category with highest spending",
  "totalSpent": "total amount spent, as a number",
  "averageTransaction": "average transaction amount, as a number",
  "spendingTrend": "increasing/decreasing/stable",
  "quickTip": "one actionable tip",
  "riskLevel": "low/medium/high"
}}
"""

_CODE_FENCE = re.compile(r"^```(?:json)?\s*(.*?)\s*```$", re.DOTALL | re.IGNORECASE)


class FallbackReason(str, Enum):
    PROVIDER_UNAVAILABLE = "provider_unavailable"
    PROVIDER_CALL_FAILED = "provider_call_failed"
    PARSE_FAILED = "parse_failed"


@dataclass(frozen=True)
class SynthesisResult(Generic[T]):
    payload: T
    degraded: bool = False
    reason: Optional[FallbackReason] = None


def _finite_or_none(value: float) -> Optional[float]:
    return value if math.isfinite(value) else None


def _money(value: float) -> str:
    return f"{value:.2f}"


def _expense_json(stats: StatsSummary) -> str:
    return json.dumps([item.to_dict() for item in stats.normalized], indent=2, default=str)


def deterministic_analysis(stats: StatsSummary) -> str:
    top = stats.top_category or NOT_AVAILABLE
    return (
        f"Total spent: {_money(stats.total_amount)}\n"
        f"Top category: {top}\n"
        f"Average transaction: {_money(stats.average_transaction)}\n"
        f"Trend: {stats.spending_trend}\n"
        f"Suggested actions: Review top spending categories ({top}) "
        f"and reduce non-essential spending."
    )


def fallback_analysis(stats: StatsSummary) -> str:
    return (
        f"AI unavailable - fallback analysis: "
        f"Total: {_money(stats.total_amount)}, "
        f"Top category: {stats.top_category or NOT_AVAILABLE}, "
        f"Avg: {_money(stats.average_transaction)}, "
        f"Trend: {stats.spending_trend}"
    )


def deterministic_insights(stats: StatsSummary, failed: bool = False) -> Dict[str, Any]:
    """
    Insights computed from the statistics alone. ``failed`` selects the tip
    wording used after a provider failure.
    """
    target = stats.top_category or GENERIC_CATEGORY
    if failed:
        tip = f"Consider tracking and reducing {target} spending."
    else:
        tip = f"Consider reducing expenses in {target} by 10%"

    return ExpenseInsights(
        top_category=stats.top_category,
        total_spent=_finite_or_none(stats.total_amount),
        average_transaction=_finite_or_none(stats.average_transaction),
        spending_trend=stats.spending_trend,
        quick_tip=tip,
        risk_level=stats.risk_level,
    ).model_dump(by_alias=True)


def build_analysis_prompt(stats: StatsSummary) -> str:
    return ANALYSIS_PROMPT.format(
        expense_data=_expense_json(stats),
        total=stats.total_amount,
        count=stats.count,
        breakdown=json.dumps(stats.category_breakdown, indent=2),
    )


def build_insights_prompt(stats: StatsSummary) -> str:
    return INSIGHTS_PROMPT.format(expense_data=_expense_json(stats))


def parse_insights(text: str) -> Dict[str, Any]:
    """
    Parse a provider reply into the insights schema. Raises ``ValueError``
    (``json.JSONDecodeError`` or pydantic's ``ValidationError``) when it does
    not fit.
    """
    cleaned = text.strip()
    fenced = _CODE_FENCE.match(cleaned)
    if fenced:
        cleaned = fenced.group(1)
    data = json.loads(cleaned)
    insights = ExpenseInsights.model_validate(data)
    # json.loads lets NaN, Infinity and overflowing literals through
    for value in (insights.total_spent, insights.average_transaction):
        if value is None or not math.isfinite(value):
            raise ValueError("insights reply must carry finite totals")
    return insights.model_dump(by_alias=True)


class AIService:
    """Expense analysis backed by an injected ``TextProvider``."""

    def __init__(
        self,
        provider: TextProvider,
        analysis_model: str = "gemini-2.5-flash",
        insights_model: str = "gemini-2.5-flash-lite",
    ) -> None:
        self._provider = provider
        self._analysis_model = analysis_model
        self._insights_model = insights_model

    @property
    def provider_available(self) -> bool:
        return self._provider.available

    @staticmethod
    def _failure_reason(error: Exception) -> FallbackReason:
        if isinstance(error, ProviderUnavailableError):
            return FallbackReason.PROVIDER_UNAVAILABLE
        return FallbackReason.PROVIDER_CALL_FAILED

    async def analyze_expenses_result(self, expenses: Optional[Iterable[Any]]) -> SynthesisResult[str]:
        stats = compute_basic_stats(expenses)

        if not self._provider.available:
            return SynthesisResult(
                deterministic_analysis(stats),
                degraded=True,
                reason=FallbackReason.PROVIDER_UNAVAILABLE,
            )

        try:
            prompt = build_analysis_prompt(stats)
            text = (await self._provider.generate(prompt, model=self._analysis_model)).text
        except Exception as e:
            logger.error(f"AI Analysis Error: {str(e)}", exc_info=True)
            return SynthesisResult(fallback_analysis(stats), degraded=True, reason=self._failure_reason(e))

        return SynthesisResult(text)

    async def analyze_expenses(self, expenses: Optional[Iterable[Any]]) -> str:
        result = await self.analyze_expenses_result(expenses)
        return result.payload

    async def get_expense_insights_result(
        self, expenses: Optional[Iterable[Any]]
    ) -> SynthesisResult[Dict[str, Any]]:
        stats = compute_basic_stats(expenses)

        if not self._provider.available:
            return SynthesisResult(
                deterministic_insights(stats),
                degraded=True,
                reason=FallbackReason.PROVIDER_UNAVAILABLE,
            )

        try:
            prompt = build_insights_prompt(stats)
            text = (await self._provider.generate(prompt, model=self._insights_model, json_output=True)).text
        except Exception as e:
            logger.error(f"AI Insights Error: {str(e)}", exc_info=True)
            return SynthesisResult(
                deterministic_insights(stats, failed=True),
                degraded=True,
                reason=self._failure_reason(e),
            )

        try:
            insights = parse_insights(text)
        except (ValueError, TypeError, AttributeError) as e:
            logger.warning(f"AI insights reply did not match the insights schema: {str(e)}")
            return SynthesisResult(
                deterministic_insights(stats, failed=True),
                degraded=True,
                reason=FallbackReason.PARSE_FAILED,
            )

        return SynthesisResult(insights)

    async def get_expense_insights(self, expenses: Optional[Iterable[Any]]) -> Dict[str, Any]:
        result = await self.get_expense_insights_result(expenses)
        return result.payload
