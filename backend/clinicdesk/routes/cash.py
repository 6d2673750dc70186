# Overview: Flask API routes for the cash ledger; parses input and returns JSON responses.

# backend/clinicdesk/routes/cash.py
"""
Cash ledger routes.

Only BANK_DEPOSIT records are created, edited or deleted here; INCOME and
EXPENSE rows come from the visit-payment, expense and extra-income
workflows. Closed days are read-only.
"""
from flask import Blueprint, current_app, g, jsonify

from ..decorators import require_auth
from ..errors import ClinicError, ValidationError, error_response
from ..models import CashRecord
from ..services import balance_service, cash_service
from ..validation import (
    CASH_RECORD_POLICY,
    coerce_amount,
    enforce_rules_cash_record,
    validate_payload,
)
from ..time_utils import parse_local_date, to_utc_z
from ._helpers import day_arg, json_body

cash_bp = Blueprint("cash", __name__, url_prefix="/api/cash")


@cash_bp.get("")
@require_auth
def list_cash_route():
    """List the cash records of one local day (?date=YYYY-MM-DD)."""
    try:
        day = day_arg()
        records = cash_service.list_records_for_day(day)
        return jsonify([r.to_dict() for r in records]), 200
    except ClinicError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to list cash records")
        return jsonify({"error": "Internal server error"}), 500


@cash_bp.post("")
@require_auth
def create_cash_route():
    try:
        patch = validate_payload(model=CashRecord, payload=json_body(), policy=CASH_RECORD_POLICY, partial=False)
        enforce_rules_cash_record(patch)
        record = cash_service.create_bank_deposit(patch, user_id=g.current_user.id)
        return jsonify(record.to_dict()), 201
    except ClinicError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create cash record")
        return jsonify({"error": "Internal server error"}), 500


@cash_bp.put("/<int:record_id>")
@require_auth
def update_cash_route(record_id: int):
    try:
        patch = validate_payload(model=CashRecord, payload=json_body(), policy=CASH_RECORD_POLICY, partial=True)
        enforce_rules_cash_record(patch)
        record = cash_service.update_bank_deposit(record_id, patch)
        return jsonify(record.to_dict()), 200
    except ClinicError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update cash record")
        return jsonify({"error": "Internal server error"}), 500


@cash_bp.delete("/<int:record_id>")
@require_auth
def delete_cash_route(record_id: int):
    try:
        cash_service.delete_bank_deposit(record_id)
        return jsonify({"message": "Deleted", "id": record_id}), 200
    except ClinicError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to delete cash record")
        return jsonify({"error": "Internal server error"}), 500


@cash_bp.post("/close")
@require_auth
def close_day_route():
    """
    Close one local day.

    Body: {"date": "YYYY-MM-DD", "closingAmount": <int>}
    (closing_amount is accepted as well). Re-closing overwrites.
    """
    try:
        payload = json_body()
        raw_date = payload.get("date")
        raw_amount = payload.get("closingAmount", payload.get("closing_amount"))
        if raw_date in (None, "") or raw_amount in (None, ""):
            raise ValidationError("date and closingAmount are required")

        try:
            day = parse_local_date(str(raw_date))
        except ValueError:
            raise ValidationError("date must be YYYY-MM-DD")

        result = cash_service.close_day(day, coerce_amount("closingAmount", raw_amount))
        result["closed_at"] = to_utc_z(result["closed_at"])
        return jsonify(result), 200
    except ClinicError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to close cash day")
        return jsonify({"error": "Internal server error"}), 500


@cash_bp.get("/previous")
@require_auth
def previous_balance_route():
    """Opening balance for ?date=, i.e. the cash carried over from the previous day."""
    try:
        day = day_arg()
        return jsonify({"closingAmount": balance_service.opening_balance(day)}), 200
    except ClinicError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to compute previous balance")
        return jsonify({"error": "Internal server error"}), 500


@cash_bp.get("/summary")
@require_auth
def day_summary_route():
    try:
        return jsonify(balance_service.day_summary(day_arg())), 200
    except ClinicError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to build cash summary")
        return jsonify({"error": "Internal server error"}), 500
