# Overview: Request guards for API routes; bearer sessions, role checks and the cron secret.

import hmac
from functools import wraps

from flask import current_app, g, jsonify, request

from .services import session_service


def _bearer_token() -> str | None:
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        return None
    return auth_header.split(" ", 1)[1].strip() or None


def require_auth(f):
    """
    Require a valid bearer session.

    Sets:
    - g.current_user: the authenticated User
    - g.session_context: the SessionContext (roles included)
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        token = _bearer_token()
        if not token:
            return jsonify({"error": "Authentication required"}), 401

        context = session_service.validate_session(token)
        if not context:
            return jsonify({"error": "Invalid or expired token"}), 401

        g.current_user = context.user
        g.session_context = context
        return f(*args, **kwargs)

    return decorated_function


def require_role(*roles):
    """
    Require any of the given roles. Must be stacked under @require_auth.

    For licensee_owner callers g.tenant_id is set to the tenant they own, which
    routes use to scope every query. An owner assigned to several tenants is
    scoped to the lowest tenant id; the other tenants are not reachable through
    a licensee session.
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            context = getattr(g, "session_context", None)
            if context is None:
                return jsonify({"error": "Authentication required"}), 401

            granted = [role for role in roles if context.has_role(role)]
            if not granted:
                return jsonify({
                    "error": "Permission denied",
                    "required_roles": list(roles),
                }), 403

            g.roles = set(granted)
            tenant_ids = set()
            for role in granted:
                tenant_ids |= context.tenant_ids_for(role)
            g.tenant_id = min(tenant_ids) if tenant_ids else None

            return f(*args, **kwargs)

        return decorated_function
    return decorator


def cron_request_authorized() -> bool:
    """
    Scheduler auth: "Authorization: Bearer <CRON_SECRET>".

    With no CRON_SECRET configured, access is only allowed outside production.
    """
    secret = current_app.config.get("CRON_SECRET")
    if not secret:
        current_app.logger.warning("CRON_SECRET not configured; cron auth skipped outside production")
        return current_app.config.get("APP_ENV") != "production"
    token = _bearer_token() or ""
    return hmac.compare_digest(token.encode("utf-8"), secret.encode("utf-8"))


def require_cron_secret(f):
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not cron_request_authorized():
            current_app.logger.warning("Rejected unauthorized cron request to %s", request.path)
            return jsonify({"error": "Unauthorized"}), 401
        return f(*args, **kwargs)

    return decorated_function
