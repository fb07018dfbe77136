"""
Health Check Router
Service health and dependency status
"""
from fastapi import APIRouter, Request
from datetime import datetime
import logging
from botocore.exceptions import ClientError

from app.core.config import settings
from app.db import dynamo

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/health")
async def health_check(request: Request):
    """
    Health check endpoint.
    Returns API status and whether AI responses come from the provider.
    """
    ai_service = getattr(request.app.state, "ai_service", None)
    ai_available = bool(ai_service and ai_service.provider_available)
    return {
        "status": "healthy",
        "service": settings.PROJECT_NAME,
        "ai_provider": "available" if ai_available else "deterministic",
        "timestamp": datetime.utcnow().isoformat()
    }


@router.get("/status")
def dependency_status():
    """
    Check connectivity to the DynamoDB expenses table.
    """
    dynamodb_status = {
        "connected": False,
        "table": settings.DYNAMO_EXPENSES_TABLE,
        "region": settings.DYNAMO_REGION,
        "error": None
    }
    try:
        dynamo.ping_expenses_table()
        dynamodb_status["connected"] = True
        dynamodb_status["status"] = "accessible"
    except ClientError as e:
        error_code = e.response.get('Error', {}).get('Code', 'Unknown')
        dynamodb_status["error"] = f"{error_code}: {str(e)}"
        dynamodb_status["status"] = "error"
        logger.error(f"DynamoDB check failed: {str(e)}")
    except Exception as e:
        dynamodb_status["error"] = str(e)
        dynamodb_status["status"] = "error"
        logger.error(f"DynamoDB check failed: {str(e)}")

    return {
        "timestamp": datetime.utcnow().isoformat(),
        "services": {"dynamodb": dynamodb_status},
        "overall_status": "healthy" if dynamodb_status["connected"] else "degraded"
    }
