# Overview: Flask API routes for the inventory store; parses input and returns JSON responses.

# backend/pos_ledger/routes/products.py
"""
Product management routes.

Prices are integer cents. quantity is on-hand stock; after creation it moves
through checkout and refunds, or through an explicit edit here.
"""
from flask import Blueprint, request, jsonify, current_app

from ..errors import PosError
from ..services import products_service

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


@products_bp.get("")
def list_products():
    """
    List products ordered by name.

    Query params:
    - q: str (optional) - case-insensitive substring match on name or variant
    """
    search = request.args.get("q")
    try:
        products = products_service.list_products(search=search)
    except Exception:
        current_app.logger.exception("Failed to list products")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({
        "items": [p.to_dict() for p in products],
        "count": len(products),
    }), 200


@products_bp.get("/<product_id>")
def get_product_route(product_id: str):
    try:
        product = products_service.get_product(product_id)
    except PosError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to get product")
        return jsonify({"error": "Internal server error"}), 500
    return jsonify(product.to_dict()), 200


@products_bp.post("")
def create_product_route():
    """
    Create a new product.

    Body: name, cost_price_cents, price_cents required; variant, quantity optional.
    """
    payload = request.get_json(silent=True)
    if payload is None:
        payload = {}

    try:
        product = products_service.add_product(payload)
    except PosError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create product")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify(product.to_dict()), 201


@products_bp.put("/<product_id>")
def update_product_route(product_id: str):
    """Partial update: only the supplied fields change."""
    payload = request.get_json(silent=True)
    if payload is None:
        payload = {}

    try:
        product = products_service.update_product(product_id, payload)
    except PosError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update product")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify(product.to_dict()), 200


@products_bp.delete("/<product_id>")
def delete_product_route(product_id: str):
    try:
        products_service.remove_product(product_id)
    except PosError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to delete product")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({"ok": True}), 200
