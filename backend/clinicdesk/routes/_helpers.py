# Overview: Shared query-string parsing for API routes.

from __future__ import annotations

from datetime import date

from flask import request

from ..errors import ValidationError
from ..time_utils import parse_local_date


def day_arg(name: str = "date", *, required: bool = True) -> date | None:
    """Read a YYYY-MM-DD query parameter as a clinic-local day."""
    raw = request.args.get(name)
    if raw in (None, ""):
        if required:
            raise ValidationError(f"{name} is required (YYYY-MM-DD)")
        return None
    try:
        return parse_local_date(raw)
    except ValueError:
        raise ValidationError(f"{name} must be YYYY-MM-DD")


def json_body() -> dict:
    payload = request.get_json(silent=True)
    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")
    return payload
