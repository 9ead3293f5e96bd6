# Overview: Read-only API over the append-only audit ledger.

from flask import Blueprint, request, jsonify, current_app

from ..services.ledger_service import list_events

ledger_bp = Blueprint("ledger", __name__, url_prefix="/api/ledger")


@ledger_bp.get("")
def list_ledger_events():
    """
    Newest events first.

    Query params:
    - entity_id: product or sale id (optional)
    - event_type: e.g. sale.refunded (optional)
    - limit: int, default 100, max 500
    """
    try:
        events = list_events(
            entity_id=request.args.get("entity_id"),
            event_type=request.args.get("event_type"),
            limit=request.args.get("limit", default=100, type=int),
        )
    except Exception:
        current_app.logger.exception("Failed to list ledger events")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({
        "items": [ev.to_dict() for ev in events],
        "count": len(events),
    }), 200
