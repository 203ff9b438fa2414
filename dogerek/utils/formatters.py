"""
Display and response formatting helpers shared by the API routes.
"""
import math
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Union


DATE_FORMATS = {
    "DD.MM.YYYY": "%d.%m.%Y",
    "DD.MM.YYYY HH:mm": "%d.%m.%Y %H:%M",
    "YYYY-MM-DD": "%Y-%m-%d",
}


def format_date(value: Union[datetime, str, int, float, None], fmt: str = "DD.MM.YYYY") -> str:
    """Format a datetime, ISO string or unix timestamp; unknown formats fall back to DD.MM.YYYY."""
    if value is None or value == "":
        return ""

    if isinstance(value, (int, float)):
        value = datetime.fromtimestamp(value, tz=timezone.utc)
    elif isinstance(value, str):
        value = datetime.fromisoformat(value.replace("Z", "+00:00"))

    return value.strftime(DATE_FORMATS.get(fmt, DATE_FORMATS["DD.MM.YYYY"]))


def calculate_pagination(page: int = 1, limit: int = 20) -> Dict[str, int]:
    """Translate a 1-based page into an offset."""
    return {"skip": (page - 1) * limit, "limit": limit}


def pagination_meta(total: int, page: int, limit: int) -> Dict[str, int]:
    return {
        "total": total,
        "page": page,
        "limit": limit,
        "pages": math.ceil(total / limit) if limit else 0,
    }


def format_response(
    success: bool = True,
    data: Any = None,
    message: str = "",
    error: Optional[str] = None
) -> Dict[str, Any]:
    """Standard JSON envelope for every API response."""
    return {
        "success": success,
        "data": data,
        "message": message,
        "error": error,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
