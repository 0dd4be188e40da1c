"""
Utility functions for the application.
"""
from typing import Any, Dict
from decimal import Decimal
import math


def format_error(message: str, details: Any = None) -> Dict[str, Any]:
    """Format error response."""
    response = {"error": message}
    if details:
        response["details"] = details
    return response


def is_number(value: Any) -> bool:
    """True for int/float/Decimal values; booleans, NaN and infinities are rejected."""
    if isinstance(value, bool):
        return False
    if isinstance(value, int):
        return True
    if isinstance(value, Decimal):
        return value.is_finite()
    if isinstance(value, float):
        return math.isfinite(value)
    return False
