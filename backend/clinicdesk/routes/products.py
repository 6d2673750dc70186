# Overview: Flask API routes for products and stock operations; parses input and returns JSON responses.

# backend/clinicdesk/routes/products.py
"""
Product and stock routes.

SECURITY: All routes require authentication. Stock is never written from
request bodies; it changes only through stock-in, stock-out, sales and
activity deletion.
"""
from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import require_auth
from ..errors import ClinicError, error_response
from ..models import Product
from ..services import inventory_service, reporting_service, reversal_service
from ..validation import (
    PRODUCT_CREATE_POLICY,
    PRODUCT_UPDATE_POLICY,
    enforce_rules_product,
    parse_stock_in,
    parse_stock_out,
    validate_payload,
)
from ._helpers import day_arg, json_body

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


@products_bp.get("")
@require_auth
def list_products_route():
    """
    Query params:
    - product_line: IMPLANT | DENTAL (optional)
    - category: str (optional)
    """
    try:
        products = inventory_service.list_products(
            product_line=request.args.get("product_line"),
            category=request.args.get("category"),
        )
        return jsonify([p.to_dict() for p in products]), 200
    except Exception:
        current_app.logger.exception("Failed to list products")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.post("")
@require_auth
def create_product_route():
    """Create a product. Stock always starts at 0."""
    try:
        patch = validate_payload(model=Product, payload=json_body(), policy=PRODUCT_CREATE_POLICY, partial=False)
        enforce_rules_product(patch)
        product = inventory_service.create_product(patch)
        return jsonify(product.to_dict()), 201
    except ClinicError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create product")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.get("/<int:product_id>")
@require_auth
def get_product_route(product_id: int):
    try:
        return jsonify(inventory_service.get_product(product_id).to_dict()), 200
    except ClinicError as e:
        return error_response(e)


@products_bp.put("/<int:product_id>")
@require_auth
def update_product_route(product_id: int):
    try:
        product = inventory_service.get_product(product_id)
        patch = validate_payload(model=Product, payload=json_body(), policy=PRODUCT_UPDATE_POLICY, partial=True)
        enforce_rules_product(patch, product_line=product.product_line)
        product = inventory_service.update_product(product_id, patch)
        return jsonify(product.to_dict()), 200
    except ClinicError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update product")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.delete("/<int:product_id>")
@require_auth
def delete_product_route(product_id: int):
    try:
        inventory_service.delete_product(product_id)
        return jsonify({"message": "Deleted", "id": product_id}), 200
    except ClinicError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to delete product")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.post("/<int:product_id>/stock-in")
@require_auth
def stock_in_route(product_id: int):
    """
    Receive stock.

    Body: {"quantity": int > 0, "unit_cost"?: int, "notes"?: str, "date"?: ISO-8601}
    """
    try:
        movement = parse_stock_in(json_body())
        product, entry = inventory_service.stock_in(product_id, movement, user_id=g.current_user.id)
        return jsonify({"product": product.to_dict(), "log": entry.to_dict()}), 200
    except ClinicError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to receive stock")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.post("/<int:product_id>/stock-out")
@require_auth
def stock_out_route(product_id: int):
    """
    Issue stock.

    Body: {"quantity": int > 0, "out_reason": PATIENT_USE | DISCARD | OTHER, ...}
    PATIENT_USE requires chart_number, patient_name and doctor; other reasons
    must not carry them.
    """
    try:
        movement = parse_stock_out(json_body())
        product, entry = inventory_service.stock_out(product_id, movement, user_id=g.current_user.id)
        return jsonify({"product": product.to_dict(), "log": entry.to_dict()}), 200
    except ClinicError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to issue stock")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.get("/<int:product_id>/activities")
@require_auth
def product_activities_route(product_id: int):
    try:
        limit = min(max(request.args.get("limit", default=200, type=int), 1), 1000)
        return jsonify(inventory_service.list_product_activities(product_id, limit=limit)), 200
    except ClinicError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to list product activities")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.get("/<int:product_id>/reconcile")
@require_auth
def reconcile_product_route(product_id: int):
    try:
        return jsonify(inventory_service.reconcile_stock(product_id)), 200
    except ClinicError as e:
        return error_response(e)


@products_bp.get("/statistics")
@require_auth
def statistics_route():
    """
    Query params: product_line, category, start, end (YYYY-MM-DD, inclusive).
    """
    try:
        stats = reporting_service.inventory_statistics(
            product_line=request.args.get("product_line"),
            category=request.args.get("category"),
            start=day_arg("start", required=False),
            end=day_arg("end", required=False),
        )
        return jsonify(stats), 200
    except ClinicError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to build inventory statistics")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.delete("/activities/<activity_id>")
@require_auth
def delete_activity_route(activity_id: str):
    """
    Delete a sale or stock log entry and restore the stock it moved.

    ?kind=sale|log disambiguates; otherwise a sale is looked up first.
    409 when the reversal would make stock negative; 500 when the stock
    update fails (nothing is deleted in either case).
    """
    try:
        kind = request.args.get("kind")
        if kind is not None and kind not in reversal_service.ACTIVITY_KINDS:
            return jsonify({"error": "kind must be sale or log"}), 400
        outcome = reversal_service.delete_activity(activity_id, kind=kind)
        return jsonify(outcome), 200
    except ClinicError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to delete activity")
        return jsonify({"error": "Internal server error"}), 500
