import hashlib
import secrets
from datetime import timedelta
from flask import request, current_app

from models import db
from models.session import Session
from services import clock

def _hash_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()

def create_session(user_id: int) -> str:
    """
    Stages a server-side session and returns the raw token for the cookie.
    Only the hash is persisted; the caller commits.
    """
    raw_token = secrets.token_urlsafe(32)
    now = clock.now()
    lifetime = current_app.config.get("SESSION_LIFETIME_SECONDS", 8 * 60 * 60)

    db.session.add(Session(
        user_id=user_id,
        token_hash=_hash_token(raw_token),
        created_at=now,
        last_seen_at=now,
        expires_at=now + timedelta(seconds=lifetime),
        ip=(request.headers.get("X-Forwarded-For", request.remote_addr) or "")[:64] or None,
    ))
    return raw_token

def get_session_from_request():
    cookie_name = current_app.config.get("AUTH_COOKIE_NAME", "studio_session")
    raw_token = request.cookies.get(cookie_name)
    if not raw_token:
        return None

    sess = Session.query.filter_by(token_hash=_hash_token(raw_token), revoked=False).first()
    if not sess:
        return None

    now = clock.now()
    if sess.expires_at <= now:
        return None

    idle_seconds = current_app.config.get("IDLE_TIMEOUT_SECONDS", 30 * 60)
    last_seen = sess.last_seen_at or sess.created_at
    if last_seen + timedelta(seconds=idle_seconds) <= now:
        return None

    sess.last_seen_at = now
    db.session.commit()
    return sess

def revoke_sessions(user_id: int, raw_token: str = None) -> int:
    """Revoke one session (by raw token) or, without a token, all of the user's sessions."""
    q = Session.query.filter_by(user_id=user_id, revoked=False)
    if raw_token:
        q = q.filter_by(token_hash=_hash_token(raw_token))
    rows = q.all()
    for row in rows:
        row.revoked = True
    return len(rows)
