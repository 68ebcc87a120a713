# Overview: Flask API routes for orders and transactions; parses input and returns JSON responses.

"""
Orders & Transactions API Routes

DESIGN:
- POST /orders records a paid sale with its default side effects
  (stock decrement, quota consumption) as one atomic unit
- Transactions are looked up by their human readable code
- Refund and mark-paid are manager/admin only

SECURITY:
- Every query is scoped to g.owner_id; a foreign code is "not found"
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_auth, require_role
from ..models.tenancy import ROLE_ADMIN, ROLE_MANAGER
from ..services import refund_service, sales_service
from ..services.errors import ConflictError, DeadlineExceededError, NotFoundError, ValidationError
from ..validation import coerce_bool, validate_date_range, validate_order_payload


sales_bp = Blueprint("sales", __name__, url_prefix="/api")


@sales_bp.post("/orders")
@require_auth
def create_order_route():
    """
    Record a paid order.

    Request body:
    {
        "items": [{"product_id": 1, "name": "Shampoo", "category": "Care", "price": 25000, "qty": 2}],
        "total": 50000,
        "paid": 50000,      (optional, echoed back)
        "change": 0,        (optional, echoed back)
        "payment_method": "cash",
        "stylist": "Rina", "stylist_id": 3,   (optional)
        "customer": "Budi" | {"name": ..., "phone": ...},   (optional)
        "shift_id": "S-1"   (optional)
    }

    Returns:
        201: sale with generated code
        400: invalid payload
    """
    try:
        data = request.get_json(silent=True)
        order = validate_order_payload(data)

        sale = sales_service.create_sale(
            g.owner_id,
            order.payment_method,
            order.items,
            order.amount,
            customer=order.customer,
            customer_id=order.customer_id,
            stylist=order.stylist,
            stylist_id=order.stylist_id,
            shift_id=order.shift_id,
            operator_name=g.current_user.name,
        )

        body = sale.to_dict()
        body["total"] = sale.amount
        body["paid"] = data.get("paid", sale.amount)
        body["change"] = data.get("change", 0)
        body["currency"] = current_app.config["CURRENCY_CODE"]
        return jsonify({"sale": body}), 201

    except ValidationError as e:
        return jsonify({"error": e.message}), 400
    except DeadlineExceededError as e:
        return jsonify({"error": e.message}), 503
    except Exception:
        current_app.logger.exception("Failed to create order")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.get("/transactions")
@require_auth
def list_transactions_route():
    """List visible sales, newest first, optionally within ?start_date&end_date."""
    try:
        start_date, end_date = validate_date_range(
            request.args.get("start_date"),
            request.args.get("end_date"),
        )
        sales = sales_service.list_sales(g.owner_id, start_date, end_date)
        return jsonify({"transactions": [s.to_dict() for s in sales]}), 200

    except ValidationError as e:
        return jsonify({"error": e.message}), 400
    except Exception:
        current_app.logger.exception("Failed to list transactions")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.get("/transactions/<code>")
@require_auth
def get_transaction_route(code: str):
    try:
        sale = sales_service.get_sale(g.owner_id, code)
        return jsonify({"transaction": sale.to_dict()}), 200

    except NotFoundError:
        return jsonify({"error": "transaction not found"}), 404
    except Exception:
        current_app.logger.exception("Failed to get transaction")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.post("/transactions/<code>/refund")
@require_auth
@require_role(ROLE_ADMIN, ROLE_MANAGER)
def refund_transaction_route(code: str):
    """
    Refund a sale: stock back, one expense entry, quota restored.

    Request body (optional):
    {
        "note": "customer complaint",
        "delete": true   (default: hide the refunded sale from listings)
    }

    Returns:
        200: refunded sale
        400: delete is not a boolean
        404: unknown code
        409: already refunded
    """
    try:
        data = request.get_json(silent=True) or {}
        hide = coerce_bool(data.get("delete"), "delete", default=True)

        sale = refund_service.refund_sale(
            g.owner_id,
            code,
            (data.get("note") or "").strip(),
            hide,
            refunded_by=g.current_user.id,
        )
        return jsonify({"transaction": sale.to_dict()}), 200

    except ValidationError as e:
        return jsonify({"error": e.message}), 400
    except NotFoundError:
        return jsonify({"error": "transaction not found"}), 404
    except ConflictError as e:
        return jsonify({"error": e.message}), 409
    except DeadlineExceededError as e:
        return jsonify({"error": e.message}), 503
    except Exception:
        current_app.logger.exception("Failed to refund transaction")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.post("/transactions/<code>/mark-paid")
@require_auth
@require_role(ROLE_ADMIN, ROLE_MANAGER)
def mark_paid_route(code: str):
    """Undo a refund. Stock and quota are not debited again."""
    try:
        sale = refund_service.undo_refund(g.owner_id, code)
        return jsonify({"transaction": sale.to_dict()}), 200

    except NotFoundError:
        return jsonify({"error": "transaction not found"}), 404
    except ConflictError as e:
        return jsonify({"error": e.message}), 409
    except Exception:
        current_app.logger.exception("Failed to mark transaction paid")
        return jsonify({"error": "Internal server error"}), 500
