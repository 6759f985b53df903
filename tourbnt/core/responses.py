"""
Response envelopes shared by every endpoint.

- success: ``{"success": true, "message": ..., "data": ...}``
- paginated: ``{"success": true, "items": [...], "pagination": {...}, "message": ...}``
- error: ``{"success": false, "message": ..., "code": ..., "errors"?: ...}``
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional


def success_response(data: Any = None, message: str = "Success") -> Dict[str, Any]:
    return {"success": True, "message": message, "data": data}


def paginated_response(
    items: List[Any], pagination: Dict[str, Any], message: str = "Items retrieved successfully"
) -> Dict[str, Any]:
    return {"success": True, "items": items, "pagination": pagination, "message": message}


def error_body(message: str, code: str, errors: Optional[Any] = None) -> Dict[str, Any]:
    body: Dict[str, Any] = {"success": False, "message": message, "code": code}
    if errors is not None:
        body["errors"] = errors
    return body
