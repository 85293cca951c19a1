from __future__ import annotations

import hmac
from functools import wraps

from flask import current_app, jsonify, request

from ..core.constants import MAX_QUERY_DATE, MIN_QUERY_DATE
from ..core.exceptions import ValidationError
from .datetime_utils import parse_iso_date


def admin_api_key_required(view):
    """Admin endpoints are called by the admin UI and the scheduler with an X-API-KEY header."""

    @wraps(view)
    def wrapper(*args, **kwargs):
        api_key = request.headers.get("X-API-KEY")
        if not api_key:
            return jsonify({"success": False, "message": "API key is missing"}), 401

        expected = current_app.config.get("ADMIN_API_KEY") or ""
        if not expected or not hmac.compare_digest(api_key, expected):
            return jsonify({"success": False, "message": "Invalid API key"}), 403

        return view(*args, **kwargs)

    return wrapper


def json_body() -> dict:
    return request.get_json(silent=True) or {}


def date_arg(name: str, default=None):
    """Optional ``YYYY-MM-DD`` query argument within the supported calendar."""
    raw = request.args.get(name)
    if not raw:
        return default
    try:
        value = parse_iso_date(raw)
    except ValueError as exc:
        raise ValidationError(f"{name} must be a date in YYYY-MM-DD format") from exc
    return check_date_bounds(name, value)


def check_date_bounds(name: str, value):
    if not MIN_QUERY_DATE <= value <= MAX_QUERY_DATE:
        raise ValidationError(f"{name} must be between {MIN_QUERY_DATE} and {MAX_QUERY_DATE}")
    return value


def int_arg(name: str, default: int, *, minimum: int = 1, maximum: int = 1000) -> int:
    raw = request.args.get(name)
    if raw is None or raw == "":
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        raise ValidationError(f"{name} must be an integer") from exc
    if not minimum <= value <= maximum:
        raise ValidationError(f"{name} must be between {minimum} and {maximum}")
    return value
