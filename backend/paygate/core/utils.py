"""
Utility functions for the application.
"""
from typing import Any, Dict, List, Optional
from datetime import datetime


def utc_timestamp() -> str:
    """Current UTC time as an ISO 8601 string."""
    return datetime.utcnow().isoformat() + "Z"


def format_response(data: Any = None, message: str = "Success") -> Dict[str, Any]:
    """Format API response."""
    return {
        "success": True,
        "message": message,
        "data": data,
        "timestamp": utc_timestamp(),
    }


def format_error(message: str, errors: Optional[List[Dict[str, Any]]] = None) -> Dict[str, Any]:
    """Format error response."""
    return {
        "success": False,
        "message": message,
        "errors": errors or [],
        "timestamp": utc_timestamp(),
    }


def paginate(total: int, page: int, limit: int) -> Dict[str, int]:
    """Pagination block returned alongside list results."""
    return {
        "total": total,
        "page": page,
        "limit": limit,
        "pages": (total + limit - 1) // limit if limit else 0,
    }
