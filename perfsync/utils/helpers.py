"""
Helper utilities
"""
from datetime import date, datetime
from decimal import Decimal
from typing import Any


def to_jsonable(value: Any) -> Any:
    """Convert dates and Decimals nested in a payload into JSON-friendly values"""
    if isinstance(value, dict):
        return {str(k): to_jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        return [to_jsonable(v) for v in value]
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return float(value)
    return value


def truncate(text: str, limit: int = 500) -> str:
    """Trim long error text for storage"""
    return text if len(text) <= limit else text[: limit - 3] + "..."
