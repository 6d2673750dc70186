# Overview: Flask API routes for expenses and extra income; parses input and returns JSON responses.

# backend/clinicdesk/routes/expenses.py
"""
Expense and extra-income routes.

CASH entries keep a linked cash record in the ledger. Once that record is on
a closed day, deleting the entry or changing its cash fields is refused.
"""
from flask import Blueprint, current_app, g, jsonify

from ..decorators import require_auth
from ..errors import ClinicError, error_response
from ..models import Expense, ExtraIncome
from ..services import finance_service
from ..validation import (
    EXPENSE_POLICY,
    EXTRA_INCOME_POLICY,
    enforce_rules_finance,
    validate_payload,
)
from ._helpers import day_arg, json_body

expenses_bp = Blueprint("expenses", __name__, url_prefix="/api/expenses")
extra_income_bp = Blueprint("extra_income", __name__, url_prefix="/api/extra-income")


# =============================================================================
# EXPENSES
# =============================================================================

@expenses_bp.get("")
@require_auth
def list_expenses_route():
    try:
        expenses = finance_service.list_expenses(
            start=day_arg("start", required=False),
            end=day_arg("end", required=False),
        )
        return jsonify([e.to_dict() for e in expenses]), 200
    except ClinicError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to list expenses")
        return jsonify({"error": "Internal server error"}), 500


@expenses_bp.post("")
@require_auth
def create_expense_route():
    try:
        patch = validate_payload(model=Expense, payload=json_body(), policy=EXPENSE_POLICY, partial=False)
        enforce_rules_finance(patch)
        expense = finance_service.create_expense(patch, user_id=g.current_user.id)
        return jsonify(expense.to_dict()), 201
    except ClinicError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create expense")
        return jsonify({"error": "Internal server error"}), 500


@expenses_bp.put("/<int:expense_id>")
@require_auth
def update_expense_route(expense_id: int):
    try:
        patch = validate_payload(model=Expense, payload=json_body(), policy=EXPENSE_POLICY, partial=True)
        enforce_rules_finance(patch)
        expense = finance_service.update_expense(expense_id, patch, user_id=g.current_user.id)
        return jsonify(expense.to_dict()), 200
    except ClinicError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update expense")
        return jsonify({"error": "Internal server error"}), 500


@expenses_bp.delete("/<int:expense_id>")
@require_auth
def delete_expense_route(expense_id: int):
    try:
        finance_service.delete_expense(expense_id)
        return jsonify({"message": "Deleted", "id": expense_id}), 200
    except ClinicError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to delete expense")
        return jsonify({"error": "Internal server error"}), 500


# =============================================================================
# EXTRA INCOME
# =============================================================================

@extra_income_bp.get("")
@require_auth
def list_extra_income_route():
    try:
        incomes = finance_service.list_extra_incomes(
            start=day_arg("start", required=False),
            end=day_arg("end", required=False),
        )
        return jsonify([i.to_dict() for i in incomes]), 200
    except ClinicError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to list extra income")
        return jsonify({"error": "Internal server error"}), 500


@extra_income_bp.post("")
@require_auth
def create_extra_income_route():
    try:
        patch = validate_payload(model=ExtraIncome, payload=json_body(), policy=EXTRA_INCOME_POLICY, partial=False)
        enforce_rules_finance(patch)
        income = finance_service.create_extra_income(patch, user_id=g.current_user.id)
        return jsonify(income.to_dict()), 201
    except ClinicError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create extra income")
        return jsonify({"error": "Internal server error"}), 500


@extra_income_bp.put("/<int:income_id>")
@require_auth
def update_extra_income_route(income_id: int):
    try:
        patch = validate_payload(model=ExtraIncome, payload=json_body(), policy=EXTRA_INCOME_POLICY, partial=True)
        enforce_rules_finance(patch)
        income = finance_service.update_extra_income(income_id, patch, user_id=g.current_user.id)
        return jsonify(income.to_dict()), 200
    except ClinicError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update extra income")
        return jsonify({"error": "Internal server error"}), 500


@extra_income_bp.delete("/<int:income_id>")
@require_auth
def delete_extra_income_route(income_id: int):
    try:
        finance_service.delete_extra_income(income_id)
        return jsonify({"message": "Deleted", "id": income_id}), 200
    except ClinicError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to delete extra income")
        return jsonify({"error": "Internal server error"}), 500
