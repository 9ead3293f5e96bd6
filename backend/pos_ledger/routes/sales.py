# Overview: Flask API routes for checkout, sale lookups and refunds.

# backend/pos_ledger/routes/sales.py
"""Sales API routes"""

from flask import Blueprint, request, jsonify, current_app

from ..errors import PosError, ValidationError
from ..services import sales_service, refund_service
from ..time_utils import parse_iso_datetime


sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


def _parse_bound(name: str):
    raw = request.args.get(name)
    try:
        return parse_iso_datetime(raw)
    except ValueError:
        raise ValidationError(f"{name} must be an ISO-8601 datetime", details={name: raw})


@sales_bp.get("")
def list_sales_route():
    """
    List sales oldest first.

    Query params:
    - start: ISO-8601 (optional, inclusive)
    - end: ISO-8601 (optional, inclusive)
    """
    try:
        sales = sales_service.list_sales(_parse_bound("start"), _parse_bound("end"))
    except PosError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to list sales")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({
        "items": [s.to_dict() for s in sales],
        "count": len(sales),
    }), 200


@sales_bp.post("")
def create_sale_route():
    """
    Check out a cart.

    Body: {"items": [{"product_id": "...", "quantity": 2}, ...]}
    Header: Idempotency-Key (optional) - a retried request with the same key
    returns the original sale instead of selling twice.
    """
    data = request.get_json(silent=True) or {}
    if not isinstance(data, dict):
        return jsonify({"error": "Invalid JSON payload", "details": {}}), 400

    idempotency_key = request.headers.get("Idempotency-Key")

    try:
        sale = sales_service.create_sale(data.get("items"), idempotency_key=idempotency_key)
    except PosError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create sale")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({"sale": sale.to_dict()}), 201


@sales_bp.get("/<sale_id>")
def get_sale_route(sale_id: str):
    try:
        sale = sales_service.get_sale(sale_id)
    except PosError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to get sale")
        return jsonify({"error": "Internal server error"}), 500
    return jsonify({"sale": sale.to_dict()}), 200


@sales_bp.post("/<sale_id>/refund")
def refund_sale_route(sale_id: str):
    """
    Refund a sale and restock its products.

    409 if the sale was already refunded; inventory is not touched again.
    """
    try:
        result = refund_service.refund_sale(sale_id)
    except PosError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to refund sale")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify(result.to_dict()), 200
