"""
Converts audit and attendance-event metadata into values a JSON column accepts
"""
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any

from app.utils.datetime_utils import ensure_utc


def sanitize_for_json(obj: Any) -> Any:
    """
    Recursively sanitize metadata before it is written to meta_json.

    Datetimes are normalized to UTC ISO strings, dates to ISO days, enums to their
    value. Money stays exact: Decimal amounts become strings, never floats.
    """
    if obj is None or isinstance(obj, (bool, int, float, str)):
        return obj
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, datetime):
        return ensure_utc(obj).isoformat()
    if isinstance(obj, date):
        return obj.isoformat()
    if isinstance(obj, Decimal):
        return str(obj)
    if isinstance(obj, dict):
        return {str(k): sanitize_for_json(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple, set, frozenset)):
        return [sanitize_for_json(item) for item in obj]
    return str(obj)
