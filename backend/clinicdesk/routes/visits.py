# Overview: Flask API routes for visit payments; parses input and returns JSON responses.

# backend/clinicdesk/routes/visits.py
"""
Visit payment routes.

A CASH payment is the drawer's INCOME row for that visit. Changing the
method, amount, date or patient name of a payment whose cash record is on a
closed day is refused.
"""
from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import require_auth
from ..errors import ClinicError, error_response
from ..models import VisitPayment
from ..services import finance_service
from ..validation import VISIT_PAYMENT_POLICY, enforce_rules_finance, validate_payload
from ._helpers import day_arg, json_body

visit_payments_bp = Blueprint("visit_payments", __name__, url_prefix="/api/visit-payments")


@visit_payments_bp.get("")
@require_auth
def list_visit_payments_route():
    try:
        payments = finance_service.list_visit_payments(
            start=day_arg("start", required=False),
            end=day_arg("end", required=False),
            chart_number=request.args.get("chart_number") or None,
        )
        return jsonify([p.to_dict() for p in payments]), 200
    except ClinicError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to list visit payments")
        return jsonify({"error": "Internal server error"}), 500


@visit_payments_bp.get("/<int:payment_id>")
@require_auth
def get_visit_payment_route(payment_id: int):
    try:
        return jsonify(finance_service.get_visit_payment(payment_id).to_dict()), 200
    except ClinicError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to get visit payment")
        return jsonify({"error": "Internal server error"}), 500


@visit_payments_bp.post("")
@require_auth
def create_visit_payment_route():
    try:
        patch = validate_payload(model=VisitPayment, payload=json_body(), policy=VISIT_PAYMENT_POLICY, partial=False)
        enforce_rules_finance(patch)
        payment = finance_service.create_visit_payment(patch, user_id=g.current_user.id)
        return jsonify(payment.to_dict()), 201
    except ClinicError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create visit payment")
        return jsonify({"error": "Internal server error"}), 500


@visit_payments_bp.put("/<int:payment_id>")
@require_auth
def update_visit_payment_route(payment_id: int):
    try:
        patch = validate_payload(model=VisitPayment, payload=json_body(), policy=VISIT_PAYMENT_POLICY, partial=True)
        enforce_rules_finance(patch)
        payment = finance_service.update_visit_payment(payment_id, patch, user_id=g.current_user.id)
        return jsonify(payment.to_dict()), 200
    except ClinicError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update visit payment")
        return jsonify({"error": "Internal server error"}), 500


@visit_payments_bp.delete("/<int:payment_id>")
@require_auth
def delete_visit_payment_route(payment_id: int):
    try:
        finance_service.delete_visit_payment(payment_id)
        return jsonify({"message": "Deleted", "id": payment_id}), 200
    except ClinicError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to delete visit payment")
        return jsonify({"error": "Internal server error"}), 500
