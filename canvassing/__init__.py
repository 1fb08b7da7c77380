"""
canvassing/__init__.py

Flask application factory for the canvassing (procurement workflow) API.

Requirements:
- PostgreSQL-ready (SQLAlchemy + migrations) but SQLite is used for dev and tests.
- Clients are never trusted; server-side access control is enforced in every route.
- Every response is JSON; errors share the {"error": true, "message": ...} shape.
"""

from __future__ import annotations

import click
from flask import Flask, jsonify
from flask_login import current_user
from loguru import logger

from .errors import json_error, register_error_handlers
from .extensions import csrf, db, login_manager, migrate
from .logging import setup_logging
from .models import User

# Blueprint imports kept inside create_app() where possible to reduce import side effects.


def create_app(config_object: str = "config.Config", overrides: dict | None = None) -> Flask:
    """Create and configure the Flask application."""
    app = Flask(__name__)
    app.config.from_object(config_object)
    if overrides:
        app.config.update(overrides)

    setup_logging(app.config.get("LOG_LEVEL", "INFO"))

    # Extensions
    db.init_app(app)
    migrate.init_app(app, db)
    csrf.init_app(app)
    login_manager.init_app(app)

    @login_manager.user_loader
    def load_user(user_id: str) -> User | None:
        """Load user for Flask-Login."""
        try:
            return db.session.get(User, int(user_id))
        except (TypeError, ValueError):
            return None

    @login_manager.unauthorized_handler
    def unauthorized():
        return json_error("User not authenticated.", 401)

    register_error_handlers(app)

    # ----------------------------------------------------------------------
    # Blueprints
    # ----------------------------------------------------------------------
    from .blueprints.auth import auth_bp
    from .blueprints.canvass import canvass_bp
    from .blueprints.comments import comments_bp
    from .blueprints.dashboard import dashboard_bp
    from .blueprints.files import files_bp
    from .blueprints.notifications import notifications_bp
    from .blueprints.profile import profile_bp
    from .blueprints.tickets import tickets_bp
    from .blueprints.users import users_bp

    app.register_blueprint(auth_bp)
    app.register_blueprint(tickets_bp)
    app.register_blueprint(canvass_bp)
    app.register_blueprint(comments_bp)
    app.register_blueprint(notifications_bp)
    app.register_blueprint(users_bp)
    app.register_blueprint(profile_bp)
    app.register_blueprint(dashboard_bp)
    app.register_blueprint(files_bp)

    # ----------------------------------------------------------------------
    # CLI
    # ----------------------------------------------------------------------
    @app.cli.command("init-db")
    def init_db_command():
        """Create all tables (development; use `flask db upgrade` with migrations)."""
        db.create_all()
        click.echo("Database tables created.")

    @app.cli.command("seed-users")
    @click.option("--password", default="password123", show_default=True, help="Password for new demo users.")
    def seed_users_command(password: str):
        """Seed the demo team (admin, manager, reviewers, purchaser)."""
        from .seed import seed_default_users

        created = seed_default_users(password)
        click.echo(f"Demo team seeded ({created} new users).")

    # ----------------------------------------------------------------------
    # Home
    # ----------------------------------------------------------------------
    @app.route("/")
    def index():
        """API root: app name and whether the caller is logged in."""
        return jsonify(
            {
                "app": app.config.get("APP_NAME", "CanvassingApp"),
                "authenticated": bool(current_user.is_authenticated),
            }
        )

    logger.debug("Application created with {config}", config=config_object)
    return app
