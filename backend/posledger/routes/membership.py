# Overview: Flask API routes for membership quota state and top-ups.

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_auth, require_role
from ..models.tenancy import ROLE_ADMIN, ROLE_MANAGER
from ..services import membership_service
from ..services.errors import ValidationError
from ..validation import coerce_int
from posledger.time_utils import parse_iso_datetime


membership_bp = Blueprint("membership", __name__, url_prefix="/api/membership")


@membership_bp.get("")
@require_auth
def get_membership_route():
    try:
        state = membership_service.get_state(g.owner_id)
        return jsonify({"membership": state.to_dict(membership_service.free_quota_monthly())}), 200
    except Exception:
        current_app.logger.exception("Failed to load membership")
        return jsonify({"error": "Internal server error"}), 500


@membership_bp.put("")
@require_auth
@require_role(ROLE_ADMIN, ROLE_MANAGER)
def set_used_quota_route():
    """
    Manually correct drift.

    Request body: {"used_quota": 1200}
    """
    try:
        data = request.get_json(silent=True) or {}
        used = coerce_int(data.get("used_quota"), "used_quota")
        state = membership_service.set_used_quota(g.owner_id, used)
        return jsonify({"membership": state.to_dict(membership_service.free_quota_monthly())}), 200

    except ValidationError as e:
        return jsonify({"error": e.message}), 400
    except Exception:
        current_app.logger.exception("Failed to set used quota")
        return jsonify({"error": "Internal server error"}), 500


@membership_bp.get("/topups")
@require_auth
@require_role(ROLE_ADMIN, ROLE_MANAGER)
def list_topups_route():
    try:
        topups = membership_service.list_topups(g.owner_id)
        return jsonify({"topups": [t.to_dict() for t in topups]}), 200
    except Exception:
        current_app.logger.exception("Failed to list top-ups")
        return jsonify({"error": "Internal server error"}), 500


@membership_bp.post("/topups")
@require_auth
@require_role(ROLE_ADMIN, ROLE_MANAGER)
def create_topup_route():
    """
    Record a quota top-up purchase.

    Request body:
    {
        "amount": 500,
        "manager": "Sari",           (optional, defaults to the caller's name or email)
        "note": "bank transfer",     (optional)
        "date": "2026-03-01T10:00:00Z"   (optional)
    }
    """
    try:
        data = request.get_json(silent=True) or {}
        amount = coerce_int(data.get("amount"), "amount")
        manager = (data.get("manager") or g.current_user.name or g.current_user.email or "").strip()
        try:
            topup_date = parse_iso_datetime(data.get("date"))
        except ValueError:
            raise ValidationError("date must be an ISO-8601 datetime")

        topup = membership_service.create_topup(
            g.owner_id,
            amount,
            manager,
            (data.get("note") or "").strip(),
            topup_date,
        )
        return jsonify({"topup": topup.to_dict()}), 201

    except ValidationError as e:
        return jsonify({"error": e.message}), 400
    except Exception:
        current_app.logger.exception("Failed to create top-up")
        return jsonify({"error": "Internal server error"}), 500
