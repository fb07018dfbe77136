from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ExpenseInsights(CamelModel):
    """Quick insights payload. Serialized with camelCase keys."""

    top_category: Optional[str] = None
    # null only when the deterministic total overflowed
    total_spent: Optional[float]
    average_transaction: Optional[float]
    spending_trend: Literal["increasing", "decreasing", "stable"]
    quick_tip: str
    risk_level: Literal["low", "medium", "high"]

    @field_validator("spending_trend", "risk_level", mode="before")
    @classmethod
    def _lowercase(cls, value):
        return value.strip().lower() if isinstance(value, str) else value


class RecommendedBudget(BaseModel):
    needs: int
    wants: int
    savings: int


class BudgetRecommendations(CamelModel):
    monthly_income: float
    current_spending: float
    recommended_budget: RecommendedBudget
    category_limits: Dict[str, int]
    savings_target: int
    emergency_fund_target: int
    recommendations: List[str]


class BudgetRecommendationRequest(CamelModel):
    # Optional so a missing value is answered with 400, not a validation 422
    monthly_income: Optional[float] = Field(default=None)
