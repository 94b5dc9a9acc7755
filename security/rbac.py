from functools import wraps
from flask import g, jsonify

ROLES = ("ADMIN", "GST", "NON_GST")
SUPERUSER_ROLE = "ADMIN"

def require_roles(*allowed: str):
    """
    Usage: @require_roles("ADMIN") or @require_roles("GST", "NON_GST").
    ADMIN passes every check.
    """
    unknown = set(allowed) - set(ROLES)
    if unknown:
        raise ValueError(f"Unknown role(s): {', '.join(sorted(unknown))}")

    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            user = getattr(g, "user", None)
            if user is None:
                return jsonify(error="Authentication required"), 401

            held = set(user.role_names)
            if SUPERUSER_ROLE not in held and not held.intersection(allowed):
                return jsonify(error="Forbidden"), 403

            return fn(*args, **kwargs)
        return wrapper
    return decorator
