"""Application factory for the stockly package."""

from __future__ import annotations

import os
from typing import Any, Mapping, Optional

import click
from alembic import command
from alembic.config import Config
from flask import Flask, jsonify
from werkzeug.exceptions import HTTPException

from .blueprints import API_BLUEPRINTS
from .config import settings
from .csrf_extension import csrf
from .db import configure_engine, get_session
from .diagnostics import bp as diagnostics_bp
from .domain.users import set_password
from .errors import StocklyError
from .logging_config import configure_logging
from .models import Profile


def ensure_db_path(app: Flask) -> None:
    """Refuse to start on a database path that is not a regular file."""

    db_path = settings.DB_PATH
    if os.path.isdir(db_path):
        app.logger.error(f"Database path {db_path} is a directory. Please fix the mount.")
        raise SystemExit(1)
    if os.path.exists(db_path) and not os.path.isfile(db_path):
        app.logger.error(f"Database path {db_path} is not a file.")
        raise SystemExit(1)
    parent = os.path.dirname(os.path.abspath(db_path))
    os.makedirs(parent, exist_ok=True)


def upgrade_database(app: Flask) -> None:
    alembic_ini_path = os.path.join(app.root_path, "..", "alembic.ini")
    alembic_cfg = Config(alembic_ini_path)
    alembic_cfg.set_main_option("sqlalchemy.url", f"sqlite:///{settings.DB_PATH}")
    command.upgrade(alembic_cfg, "head")


def _register_error_handlers(app: Flask) -> None:
    @app.errorhandler(StocklyError)
    def handle_stockly_error(exc: StocklyError):
        if exc.status_code >= 500:
            app.logger.error("%s: %s", type(exc).__name__, exc.message)
        else:
            app.logger.info("%s: %s", type(exc).__name__, exc.message)
        return jsonify(exc.to_dict()), exc.status_code

    @app.errorhandler(HTTPException)
    def handle_http_error(exc: HTTPException):
        return jsonify({"error": exc.description}), exc.code

    @app.errorhandler(Exception)
    def handle_unexpected_error(exc: Exception):
        app.logger.exception("Unhandled error: %s", exc)
        return jsonify({"error": "Internal server error"}), 500


def create_app(config: Optional[Mapping[str, Any]] = None) -> Flask:
    """Create and configure a :class:`Flask` application instance."""

    configure_logging()

    app = Flask(__name__)
    app.secret_key = settings.SECRET_KEY

    if config:
        app.config.update(config)

    ensure_db_path(app)
    configure_engine(settings.DB_PATH)

    csrf.init_app(app)
    for blueprint in API_BLUEPRINTS:
        csrf.exempt(blueprint)
        app.register_blueprint(blueprint)
    app.register_blueprint(diagnostics_bp)

    _register_error_handlers(app)

    with app.app_context():
        upgrade_database(app)

    @app.after_request
    def apply_security_headers(response):
        """Attach security headers to every response."""

        response.headers.setdefault(
            "Content-Security-Policy", "default-src 'none'; frame-ancestors 'none'"
        )
        response.headers.setdefault(
            "Strict-Transport-Security", "max-age=31536000; includeSubDomains"
        )
        response.headers.setdefault("X-Content-Type-Options", "nosniff")
        return response

    @app.cli.command("init-db")
    def init_db_command() -> None:
        """Apply all database migrations."""
        upgrade_database(app)
        click.echo("Database is up to date")

    @app.cli.command("set-password")
    @click.argument("email")
    @click.password_option()
    def set_password_command(email: str, password: str) -> None:
        """Set the password of an existing user."""
        with get_session() as db:
            profile = db.query(Profile).filter_by(email=email.strip().lower()).first()
        if profile is None:
            raise click.ClickException(f"No user with email {email}")
        set_password(profile.id, password)
        click.echo(f"Password updated for {email}")

    return app
