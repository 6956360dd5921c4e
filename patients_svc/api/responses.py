"""
Response envelope helpers.

Every API response, success or failure, uses the same JSON shape:

    {"success": bool, "message": str, "data"?: any, "errors"?: [str], "code"?: str}
"""
from typing import Any, Dict, List, Optional


def success_response(data: Any, message: str = "Success") -> Dict[str, Any]:
    """Build a success envelope. ``data`` is always present, even when None."""
    return {
        "success": True,
        "message": message,
        "data": data,
    }


def error_response(
    message: str = "Error",
    errors: Optional[List[str]] = None,
    code: Optional[str] = None,
) -> Dict[str, Any]:
    """Build an error envelope, adding ``errors`` and ``code`` only when set."""
    response: Dict[str, Any] = {
        "success": False,
        "message": message,
    }
    if errors:
        response["errors"] = errors
    if code:
        response["code"] = code
    return response
