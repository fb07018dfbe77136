import logging
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

import boto3
from boto3.dynamodb.conditions import Key
from botocore.exceptions import ClientError

from app.core.config import settings

logger = logging.getLogger(__name__)

# Initialize DynamoDB resource
dynamodb = boto3.resource("dynamodb", region_name=settings.DYNAMO_REGION)

# Expenses are keyed by user_id (PK) and an ISO timestamp expense_id (SK)
expenses_table = dynamodb.Table(settings.DYNAMO_EXPENSES_TABLE)


def get_expenses_for_user(user_id: str, since: Optional[datetime] = None) -> List[Dict[str, Any]]:
    """
    Query all expenses for a user, oldest first. When ``since`` is given only
    expenses recorded at or after it are returned.
    """
    condition = Key("user_id").eq(user_id)
    if since is not None:
        condition = condition & Key("expense_id").gte(since.isoformat())

    query_kwargs: Dict[str, Any] = {
        "KeyConditionExpression": condition,
        "ScanIndexForward": True,
    }
    items: List[Dict[str, Any]] = []
    try:
        while True:
            response = expenses_table.query(**query_kwargs)
            items.extend(response.get("Items", []))
            last_key = response.get("LastEvaluatedKey")
            if not last_key:
                break
            query_kwargs["ExclusiveStartKey"] = last_key
    except ClientError as e:
        logger.error(f"get_expenses_for_user failed: {e.response['Error']['Message']}")
        return []

    return [_from_dynamo(item) for item in items]


def ping_expenses_table() -> None:
    """Raise if the expenses table cannot be reached."""
    expenses_table.scan(Limit=1)


def _from_dynamo(obj: Any):
    """
    Recursively convert Decimal instances back to native Python numeric types.
    """
    if isinstance(obj, list):
        return [_from_dynamo(item) for item in obj]
    if isinstance(obj, dict):
        return {k: _from_dynamo(v) for k, v in obj.items()}
    if isinstance(obj, Decimal):
        if obj % 1 == 0:
            return int(obj)
        return float(obj)
    return obj
