import logging

import click
from flask import Flask, request, jsonify

from config import Config
from models import db
from flask_migrate import Migrate
from routes import (
    health_bp, auth_bp, masters_bp, leaves_bp, booking_bp, chalan_bp, reports_bp, audit_bp,
)
from security.csrf import csrf_protect
from services.errors import SchedulingError
from utils.auth_context import load_current_user
from utils.seed import seed_roles, seed_demo, create_user

logger = logging.getLogger(__name__)


def create_app(overrides=None):
    app = Flask(__name__)
    app.config.from_object(Config)
    if overrides:
        app.config.update(overrides)

    logging.basicConfig(
        level=app.config.get("LOG_LEVEL", "INFO"),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    # Register routes
    app.register_blueprint(health_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(masters_bp)
    app.register_blueprint(leaves_bp)
    app.register_blueprint(booking_bp)
    app.register_blueprint(chalan_bp)
    app.register_blueprint(reports_bp)
    app.register_blueprint(audit_bp)

    # Database init
    db.init_app(app)

    # Migrations
    Migrate(app, db)

    @app.before_request
    def _load_user():
        load_current_user()

    @app.before_request
    def _csrf_protect():
        return csrf_protect()

    @app.errorhandler(SchedulingError)
    def _scheduling_error(exc):
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.path, exc.message)
        return jsonify(exc.to_dict()), exc.status_code

    @app.after_request
    def add_security_headers(resp):
        resp.headers["X-Content-Type-Options"] = "nosniff"
        resp.headers["X-Frame-Options"] = "DENY"
        resp.headers["Referrer-Policy"] = "no-referrer"
        resp.headers["Content-Security-Policy"] = "default-src 'none'; frame-ancestors 'none';"
        return resp

    register_cli(app)

    return app

#-------------------------

def register_cli(app):
    @app.cli.command("seed-roles")
    def seed_roles_command():
        """Create the ADMIN / GST / NON_GST roles (idempotent)."""
        seed_roles()
        click.echo("Roles ready")

    @app.cli.command("create-user")
    @click.argument("username")
    @click.option("--pin", prompt=True, hide_input=True, confirmation_prompt=True, help="Security PIN")
    @click.option("--role", default="NON_GST", type=click.Choice(["ADMIN", "GST", "NON_GST"], case_sensitive=False))
    @click.option("--full-name", default=None)
    def create_user_command(username, pin, role, full_name):
        """Create a login (bootstrap the first ADMIN with --role ADMIN)."""
        seed_roles()
        try:
            user = create_user(username, pin, role=role, full_name=full_name)
        except ValueError as exc:
            raise click.ClickException(str(exc))
        click.echo(f"{user.username} created with role {role.upper()}")

    @app.cli.command("seed-demo")
    def seed_demo_command():
        """Load a small December 2025 demo data set."""
        seed_roles()
        if seed_demo():
            click.echo("Demo data seeded")
        else:
            click.echo("Demo data already exists, skipping")

#-------------------------


if __name__ == "__main__":
    app = create_app()
    with app.app_context():
        db.create_all()
        seed_roles()
    app.run(host="127.0.0.1", port=5002)
