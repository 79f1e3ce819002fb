"""Shared helpers for route blueprints."""

from __future__ import annotations

import uuid
from typing import Any

from flask import jsonify, request

from forms import form_error_details

__all__ = [
    "error_response",
    "is_valid_id",
    "json_payload",
    "success_response",
    "validation_error",
]


def success_response(data: Any, message: str | None = None, *, status: int = 200):
    """Return the ``{success, data, message?}`` envelope."""
    payload: dict[str, Any] = {"success": True, "data": data}
    if message:
        payload["message"] = message
    return jsonify(payload), status


def error_response(error: str, details: dict[str, str] | None = None, *, status: int = 400):
    """Return the ``{success, error, details?}`` envelope."""
    payload: dict[str, Any] = {"success": False, "error": error}
    if details:
        payload["details"] = details
    return jsonify(payload), status


def validation_error(form, message: str = "Validation failed"):
    return error_response(message, form_error_details(form.errors), status=400)


def is_valid_id(value: Any) -> bool:
    """True when the value is a well-formed UUID string."""
    if not isinstance(value, str):
        return False
    try:
        uuid.UUID(value)
    except ValueError:
        return False
    return True


def json_payload() -> dict[str, Any] | None:
    """Return the JSON object body of the request, None when it is not an object."""
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        return None
    return payload
