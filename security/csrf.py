import secrets
from flask import request, jsonify, current_app, g

CSRF_COOKIE = "csrf_token"
CSRF_HEADER = "X-CSRF-Token"

# no session cookie yet, or nothing to protect
EXEMPT_PATHS = {"/auth/login", "/health"}
UNSAFE_METHODS = ("POST", "PUT", "PATCH", "DELETE")


def issue_csrf_token(resp):
    """Attach a fresh double-submit token; the client echoes it back in X-CSRF-Token."""
    resp.set_cookie(
        CSRF_COOKIE,
        secrets.token_urlsafe(32),
        httponly=False,
        secure=current_app.config.get("SESSION_COOKIE_SECURE", False),
        samesite=current_app.config.get("SESSION_COOKIE_SAMESITE", "Lax"),
        path="/",
    )
    return resp


def csrf_protect():
    """
    before_request hook. Only cookie-authenticated writes are checked;
    returns an error response to short-circuit the request, else None.
    """
    if not current_app.config.get("CSRF_ENABLED", True):
        return None
    if request.method not in UNSAFE_METHODS or request.path in EXEMPT_PATHS:
        return None
    if getattr(g, "user", None) is None:
        return None

    cookie_token = request.cookies.get(CSRF_COOKIE) or ""
    header_token = request.headers.get(CSRF_HEADER) or ""
    if not cookie_token or not secrets.compare_digest(cookie_token, header_token):
        return jsonify(error="CSRF validation failed"), 403
    return None
