"""Response envelopes shared by every endpoint"""

from typing import Any


def success_response(message: str, **data: Any) -> dict:
    return {"success": True, "error": False, "message": message, **data}


def warning_response(message: str, **data: Any) -> dict:
    """Non-fatal refusal (e.g. already friends); returned with HTTP 200"""
    return {"success": False, "error": False, "warning": True, "message": message, **data}


def error_body(message: Any) -> dict:
    return {"success": False, "error": True, "message": message}
