# backend/royalty_engine/__init__.py
from flask import Flask

from .config import Config
from .extensions import db, migrate


def create_app(config_overrides: dict | None = None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)
    if config_overrides:
        app.config.update(config_overrides)

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    # Register blueprints
    from .routes.system import system_bp
    from .routes.royalties import admin_royalties_bp
    from .routes.licensee import licensee_royalties_bp
    from .routes.revenue import revenue_bp
    from .routes.cron import cron_bp

    app.register_blueprint(system_bp)
    app.register_blueprint(admin_royalties_bp)
    app.register_blueprint(licensee_royalties_bp)
    app.register_blueprint(revenue_bp)
    app.register_blueprint(cron_bp)

    if app.config.get("APP_ENV") == "production" and not app.config.get("CRON_SECRET"):
        app.logger.warning("CRON_SECRET is not set; cron endpoints will reject every request")

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app
