# backend/posledger/__init__.py
from __future__ import annotations

from flask import Flask

from .config import Config
from .extensions import db, migrate


def create_app(config_overrides: dict | None = None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)
    if config_overrides:
        app.config.update(config_overrides)

    app.logger.setLevel(app.config.get("LOG_LEVEL", "INFO"))

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    # Register blueprints
    from .routes.system import system_bp
    from .routes.sales import sales_bp
    from .routes.stocks import stocks_bp
    from .routes.membership import membership_bp

    app.register_blueprint(system_bp)
    app.register_blueprint(sales_bp)
    app.register_blueprint(stocks_bp)
    app.register_blueprint(membership_bp)

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    if app.config.get("SYNC_STOCKS_ON_STARTUP"):
        _sync_stocks_on_startup(app)

    return app


def _sync_stocks_on_startup(app: Flask) -> None:
    """Best-effort: a failed sync is logged and never blocks startup."""
    from .services.stock_service import sync_all_owners

    with app.app_context():
        try:
            synced = sync_all_owners()
            app.logger.info("Stock sync on startup covered %s owner(s)", synced)
        except Exception:
            db.session.rollback()
            app.logger.exception("Stock sync on startup failed")
