# Overview: Flask API routes for stock levels and manual adjustments.

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_auth
from ..services import stock_service
from ..services.errors import NotFoundError, ValidationError
from ..validation import validate_stock_adjustment


stocks_bp = Blueprint("stocks", __name__, url_prefix="/api/stock")


@stocks_bp.get("")
@require_auth
def list_stock_route():
    try:
        stocks = stock_service.list_stocks(g.owner_id)
        return jsonify({"stocks": [s.to_dict() for s in stocks]}), 200
    except Exception:
        current_app.logger.exception("Failed to list stock")
        return jsonify({"error": "Internal server error"}), 500


@stocks_bp.post("/adjust")
@require_auth
def adjust_stock_route():
    """
    Manual adjustment.

    Request body:
    {
        "stock_id": 4,
        "change": 3,          (for "recount": the counted quantity)
        "type": "adjust" | "reduce" | "recount",   (optional, default "adjust")
        "note": "damaged"     (optional)
    }
    """
    try:
        adjustment = validate_stock_adjustment(request.get_json(silent=True))
        stock = stock_service.adjust_stock(
            g.owner_id,
            adjustment.stock_id,
            adjustment.change,
            adjustment.type,
            adjustment.note,
        )
        return jsonify({"stock": stock.to_dict()}), 200

    except ValidationError as e:
        return jsonify({"error": e.message}), 400
    except NotFoundError:
        return jsonify({"error": "stock not found"}), 404
    except Exception:
        current_app.logger.exception("Failed to adjust stock")
        return jsonify({"error": "Internal server error"}), 500


@stocks_bp.get("/<int:stock_id>/history")
@require_auth
def stock_history_route(stock_id: int):
    try:
        limit = request.args.get("limit", 100, type=int)
        entries = stock_service.stock_history(g.owner_id, stock_id, limit=max(1, min(limit, 500)))
        return jsonify({"history": [e.to_dict() for e in entries]}), 200

    except NotFoundError:
        return jsonify({"error": "stock not found"}), 404
    except Exception:
        current_app.logger.exception("Failed to load stock history")
        return jsonify({"error": "Internal server error"}), 500
