# Overview: Flask API routes for dental product sales; parses input and returns JSON responses.

from flask import Blueprint, current_app, g, jsonify

from ..decorators import require_auth
from ..errors import ClinicError, error_response
from ..services import sales_service
from ..validation import parse_sale
from ._helpers import day_arg, json_body

sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


@sales_bp.get("")
@require_auth
def list_sales_route():
    """Query params: start, end (YYYY-MM-DD, inclusive, optional)."""
    try:
        sales = sales_service.list_sales(
            start=day_arg("start", required=False),
            end=day_arg("end", required=False),
        )
        return jsonify([s.to_dict() for s in sales]), 200
    except ClinicError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to list sales")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.post("")
@require_auth
def create_sale_route():
    """
    Record a sale.

    Body: {"chart_number", "patient_name", "doctor"?, "date"?,
           "lines": [{"product_id", "quantity", "sale_price"}, ...]}
    All lines are taken out of stock or none are.
    """
    try:
        data = parse_sale(json_body())
        sale = sales_service.create_sale(data, user_id=g.current_user.id)
        return jsonify(sale.to_dict()), 201
    except ClinicError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create sale")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.get("/<int:sale_id>")
@require_auth
def get_sale_route(sale_id: int):
    try:
        return jsonify(sales_service.get_sale(sale_id).to_dict()), 200
    except ClinicError as e:
        return error_response(e)
