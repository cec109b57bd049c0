# backend/stockpos/__init__.py
from flask import Flask, request

from .config import Config
from .extensions import db, migrate


def create_app(config_overrides: dict | None = None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)
    # Overrides must land before db.init_app: the engine is built there
    if config_overrides:
        app.config.update(config_overrides)

    app.logger.setLevel(app.config["LOG_LEVEL"])

    db.init_app(app)
    migrate.init_app(app, db)

    # Registers every table on db.metadata for create_all and flask db
    from . import models  # noqa: F401

    from .routes.system import system_bp
    from .routes.auth import auth_bp
    from .routes.stores import stores_bp
    from .routes.users import users_bp
    from .routes.products import products_bp, categories_bp
    from .routes.stock import stock_bp
    from .routes.customers import customers_bp
    from .routes.suppliers import suppliers_bp
    from .routes.sales import sales_bp
    from .routes.expenses import expenses_bp
    from .routes.purchase_orders import purchase_orders_bp
    from .routes.reports import reports_bp

    app.register_blueprint(system_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(stores_bp)
    app.register_blueprint(users_bp)
    app.register_blueprint(products_bp)
    app.register_blueprint(categories_bp)
    app.register_blueprint(stock_bp)
    app.register_blueprint(customers_bp)
    app.register_blueprint(suppliers_bp)
    app.register_blueprint(sales_bp)
    app.register_blueprint(expenses_bp)
    app.register_blueprint(purchase_orders_bp)
    app.register_blueprint(reports_bp)

    allowed_origins = set(app.config["CORS_ORIGINS"])

    @app.after_request
    def add_cors_headers(response):
        origin = request.headers.get("Origin")
        if origin in allowed_origins:
            response.headers["Access-Control-Allow-Origin"] = origin
            response.headers["Vary"] = "Origin"
            response.headers["Access-Control-Allow-Headers"] = "Authorization, Content-Type"
            response.headers["Access-Control-Allow-Methods"] = "GET,POST,PUT,DELETE,OPTIONS"
        return response

    from .cli import register_commands
    register_commands(app)

    return app
