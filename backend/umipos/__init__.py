# backend/umipos/__init__.py
from __future__ import annotations

from typing import Any, Mapping, Optional

from flask import Flask

from .config import Config
from .extensions import db, migrate
from .logging_config import configure_logging


def create_app(config_overrides: Optional[Mapping[str, Any]] = None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)
    if config_overrides:
        app.config.update(config_overrides)

    configure_logging(app)

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    # Permission lookups used by every authorization decorator
    from .decorators import PERMISSION_RESOLVER_KEY
    from .services.permission_service import DatabasePermissionResolver
    app.extensions[PERMISSION_RESOLVER_KEY] = DatabasePermissionResolver()

    # Register blueprints
    from .routes.system import system_bp
    from .routes.auth import auth_bp
    from .routes.products import products_bp
    from .routes.customers import customers_bp
    from .routes.sales import sales_bp
    from .routes.employees import employees_bp
    from .routes.access import access_bp

    app.register_blueprint(system_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(products_bp)
    app.register_blueprint(customers_bp)
    app.register_blueprint(sales_bp)
    app.register_blueprint(employees_bp)
    app.register_blueprint(access_bp)

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app
