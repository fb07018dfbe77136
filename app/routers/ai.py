"""
AI Router
Expense analysis, quick insights and budget recommendations.
"""
import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Request, status
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse

from app.core.config import settings
from app.core.security import decode_access_token
from app.db import dynamo
from app.models.insights import BudgetRecommendationRequest
from app.utils.ai_service import AIService
from app.utils.budget import lookback_start, recommend_budget

router = APIRouter()
logger = logging.getLogger(__name__)


def get_current_user_id(authorization: Optional[str] = Header(None)) -> str:
    """Extract user_id from JWT token"""
    if not authorization or not authorization.startswith("Bearer "):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Token required")

    token = authorization.replace("Bearer ", "")
    payload = decode_access_token(token)
    user_id = payload.get("sub")
    if not user_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")
    return user_id


def get_ai_service(request: Request) -> AIService:
    return request.app.state.ai_service


def _failure(message: str, status_code: int, **extra) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={**extra, "message": message, "success": False})


@router.get("/analysis")
async def get_ai_expense_analysis(
    user_id: str = Depends(get_current_user_id),
    ai_service: AIService = Depends(get_ai_service),
):
    """
    Comprehensive analysis of all of the user's expenses.
    """
    try:
        expenses = await run_in_threadpool(dynamo.get_expenses_for_user, user_id)
        if not expenses:
            return _failure("No expenses found for analysis.", status.HTTP_404_NOT_FOUND, analysis=None)

        result = await ai_service.analyze_expenses_result(expenses)
        if result.degraded:
            logger.info(f"Deterministic analysis served for user {user_id} ({result.reason.value})")
        return {"analysis": result.payload, "success": True}
    except Exception as e:
        logger.error(f"AI Analysis Error: {str(e)}", exc_info=True)
        return _failure("Failed to analyze expenses with AI", status.HTTP_500_INTERNAL_SERVER_ERROR)


@router.get("/insights")
async def get_ai_expense_insights(
    user_id: str = Depends(get_current_user_id),
    ai_service: AIService = Depends(get_ai_service),
):
    try:
        expenses = await run_in_threadpool(dynamo.get_expenses_for_user, user_id)
        if not expenses:
            return _failure("No expenses found for insights.", status.HTTP_404_NOT_FOUND, insights=None)

        result = await ai_service.get_expense_insights_result(expenses)
        if result.degraded:
            logger.info(f"Deterministic insights served for user {user_id} ({result.reason.value})")
        return {"insights": result.payload, "success": True}
    except Exception as e:
        logger.error(f"AI Insights Error: {str(e)}", exc_info=True)
        return _failure("Failed to generate expense insights", status.HTTP_500_INTERNAL_SERVER_ERROR)


@router.post("/budget-recommendations")
async def get_ai_budget_recommendations(
    body: Optional[BudgetRecommendationRequest] = None,
    user_id: str = Depends(get_current_user_id),
):
    """
    Budget recommendations from the last few months of spending and the
    user's monthly income.
    """
    if body is None or not body.monthly_income:
        return _failure("Monthly income is required for budget recommendations.", status.HTTP_400_BAD_REQUEST)

    try:
        months = settings.BUDGET_LOOKBACK_MONTHS
        since = lookback_start(datetime.utcnow(), months)
        expenses = await run_in_threadpool(dynamo.get_expenses_for_user, user_id, since)
        if not expenses:
            return _failure("No recent expenses found for budget recommendations.", status.HTTP_404_NOT_FOUND)

        recommendations = recommend_budget(expenses, body.monthly_income, months=months)
        return {"recommendations": recommendations, "success": True}
    except Exception as e:
        logger.error(f"Budget Recommendations Error: {str(e)}", exc_info=True)
        return _failure("Failed to generate budget recommendations", status.HTTP_500_INTERNAL_SERVER_ERROR)
