# Overview: Request authentication and role decorators for API routes.

from functools import wraps
from flask import request, jsonify, g, current_app

from .services.ownership_service import Actor, OwnershipError, resolve_owner_id


def _is_authenticated() -> bool:
    return hasattr(g, 'current_user') and hasattr(g, 'owner_id')


def require_auth(f):
    """
    Require a bearer token and establish owner context.

    Sets the following Flask g attributes:
    - g.current_user: the authenticated Actor
    - g.owner_id: the owner id every ledger row is scoped by

    Returns 401 if the header is missing or the token verifier rejects the
    token, 400 if the actor cannot be mapped to an owner.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        auth_header = request.headers.get("Authorization")

        if not auth_header or not auth_header.startswith("Bearer "):
            return jsonify({"error": "Authentication required"}), 401

        token = auth_header.split(" ", 1)[1]

        verifier = current_app.config.get("TOKEN_VERIFIER")
        if verifier is None:
            current_app.logger.error("TOKEN_VERIFIER is not configured")
            return jsonify({"error": "Authentication unavailable"}), 401

        claims = verifier(token)
        if not claims:
            return jsonify({"error": "Invalid or expired token"}), 401

        try:
            actor = Actor.from_claims(claims)
        except (KeyError, TypeError, ValueError):
            return jsonify({"error": "Invalid or expired token"}), 401

        try:
            owner_id = resolve_owner_id(actor)
        except OwnershipError as e:
            return jsonify({"error": e.message}), 400

        g.current_user = actor
        g.owner_id = owner_id

        return f(*args, **kwargs)

    return decorated_function


def require_role(*roles):
    """Require the authenticated actor to hold one of the given roles."""
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not _is_authenticated():
                return jsonify({"error": "Authentication required"}), 401

            if g.current_user.role not in roles:
                return jsonify({
                    "error": "Permission denied",
                    "required_roles": list(roles),
                }), 403

            return f(*args, **kwargs)

        return decorated_function
    return decorator
