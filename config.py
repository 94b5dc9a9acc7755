import os

BASE_DIR = os.path.abspath(os.path.dirname(__file__))

def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() == "true"

class Config:
    # Secrets
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-only-change-me")

    # SQLite file next to the app unless DATABASE_URL points at Postgres
    SQLALCHEMY_DATABASE_URI = os.getenv(
        "DATABASE_URL",
        "sqlite:///" + os.path.join(BASE_DIR, "studio.db")
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    # Session cookie
    AUTH_COOKIE_NAME = "studio_session"
    SESSION_LIFETIME_SECONDS = 8 * 60 * 60
    IDLE_TIMEOUT_SECONDS = 30 * 60
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = "Lax"
    SESSION_COOKIE_SECURE = _env_bool("SESSION_COOKIE_SECURE", "false")  # true behind HTTPS

    # Double-submit CSRF for authenticated state-changing requests
    CSRF_ENABLED = _env_bool("CSRF_ENABLED", "true")

    # Zero-arg callable returning a naive UTC datetime; None means the wall clock
    CLOCK = None

    # Booking writes reject room/editor conflicts unless the request sets allow_conflicts
    BLOCK_ON_CONFLICT = _env_bool("BLOCK_ON_CONFLICT", "true")
    MAX_REPEAT_DAYS = int(os.getenv("MAX_REPEAT_DAYS", "31"))

    # Chalan / revision numbers: attempts before giving up on unique-constraint collisions
    NUMBERING_MAX_ATTEMPTS = int(os.getenv("NUMBERING_MAX_ATTEMPTS", "5"))

    # When true, item amount is recomputed as quantity * rate instead of trusting the client
    CHALAN_RECOMPUTE_ITEM_AMOUNTS = _env_bool("CHALAN_RECOMPUTE_ITEM_AMOUNTS", "false")

    DEBUG = False
