from flask import Blueprint, request, jsonify, current_app, g

from models import db
from models.user import User
from security.csrf import issue_csrf_token
from security.password import verify_pin
from security.session import create_session, revoke_sessions
from services.validation import json_object
from utils.audit import log_event
from utils.auth_context import login_required

auth_bp = Blueprint("auth", __name__, url_prefix="/auth")


@auth_bp.post("/login")
def login():
    data = json_object(request.get_json(silent=True))
    username = (data.get("username") or "").strip().lower()
    security_pin = data.get("security_pin") or ""

    if not username or not security_pin:
        return jsonify(error="username and security_pin are required"), 400

    user = User.query.filter_by(username=username).first()
    if not user or not user.is_active or not verify_pin(security_pin, user.pin_hash):
        log_event("LOGIN_FAIL", user_id=user.id if user else None, metadata={"username": username})
        db.session.commit()
        return jsonify(error="Invalid credentials"), 401

    # Rotate: one live session per user
    revoked_count = revoke_sessions(user.id)
    raw_token = create_session(user.id)
    log_event("LOGIN_SUCCESS", user_id=user.id, metadata={"revoked_sessions": revoked_count})
    db.session.commit()

    resp = jsonify(id=user.id, username=user.username, roles=user.role_names)
    resp.set_cookie(
        current_app.config.get("AUTH_COOKIE_NAME", "studio_session"),
        raw_token,
        httponly=True,
        secure=current_app.config.get("SESSION_COOKIE_SECURE", False),
        samesite=current_app.config.get("SESSION_COOKIE_SAMESITE", "Lax"),
        max_age=current_app.config.get("SESSION_LIFETIME_SECONDS", 8 * 60 * 60),
        path="/",
    )
    return issue_csrf_token(resp), 200


@auth_bp.get("/me")
@login_required
def me():
    return jsonify(
        id=g.user.id,
        username=g.user.username,
        full_name=g.user.full_name,
        roles=g.user.role_names,
    ), 200


@auth_bp.post("/logout")
@login_required
def logout():
    cookie_name = current_app.config.get("AUTH_COOKIE_NAME", "studio_session")
    raw_token = request.cookies.get(cookie_name)

    revoke_sessions(g.user.id, raw_token=raw_token)
    log_event("LOGOUT", user_id=g.user.id)
    db.session.commit()

    resp = jsonify(message="Logged out")
    resp.delete_cookie(cookie_name, path="/")
    return resp, 200
