from flask import Blueprint, jsonify, current_app

from ..errors import PosError
from ..services import stats_service


stats_bp = Blueprint("stats", __name__, url_prefix="/api/stats")


def _run(fn, *args):
    try:
        return jsonify(fn(*args)), 200
    except PosError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to compute %s", fn.__name__)
        return jsonify({"error": "Internal server error"}), 500


@stats_bp.get("/daily/<day>")
def daily_stats(day: str):
    return _run(stats_service.daily_stats, day)


@stats_bp.get("/monthly/<int:year>/<int:month>")
def monthly_stats(year: int, month: int):
    """month is 1-based (1 = January)."""
    return _run(stats_service.monthly_stats, year, month)


@stats_bp.get("/weekly/<int:year>/<int:month>")
def weekly_stats(year: int, month: int):
    return _run(stats_service.weekly_buckets, year, month)


@stats_bp.get("/calendar/<int:year>/<int:month>")
def calendar_stats(year: int, month: int):
    return _run(stats_service.calendar_month, year, month)


@stats_bp.get("/dashboard")
def dashboard():
    return _run(stats_service.dashboard_summary)
