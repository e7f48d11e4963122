# backend/app/__init__.py
from flask import Flask, request, send_from_directory

from .config import Config
from .extensions import db, migrate



def create_app(test_config: dict | None = None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)
    if test_config:
        app.config.update(test_config)

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    from .errors import register_error_handlers
    register_error_handlers(app)

    # Register blueprints
    from .routes.system import system_bp
    from .routes.auth import auth_bp
    from .routes.users import users_bp
    from .routes.products import products_bp
    from .routes.cart import cart_bp
    from .routes.orders import orders_bp
    from .routes.payments import payments_bp
    from .routes.reviews import reviews_bp
    from .routes.stock import stock_bp
    from .routes.inventory import inventory_bp
    from .routes.reports import reports_bp
    from .routes.sales_reports import sales_reports_bp
    from .routes.notifications import notifications_bp
    from .routes.contact import contact_bp

    app.register_blueprint(system_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(users_bp)
    app.register_blueprint(products_bp)
    app.register_blueprint(cart_bp)
    app.register_blueprint(orders_bp)
    app.register_blueprint(payments_bp)
    app.register_blueprint(reviews_bp)
    app.register_blueprint(stock_bp)
    app.register_blueprint(inventory_bp)
    app.register_blueprint(reports_bp)
    app.register_blueprint(sales_reports_bp)
    app.register_blueprint(notifications_bp)
    app.register_blueprint(contact_bp)

    @app.get("/uploads/<path:filename>")
    def uploaded_file(filename):
        from .services.upload_service import upload_root
        return send_from_directory(upload_root(), filename)

    @app.after_request
    def add_cors_headers(response):
        origin = request.headers.get("Origin")
        if origin in app.config["CORS_ORIGINS"]:
            response.headers["Access-Control-Allow-Origin"] = origin
            response.headers["Vary"] = "Origin"
            response.headers["Access-Control-Allow-Credentials"] = "true"
            response.headers["Access-Control-Allow-Headers"] = "Authorization, Content-Type"
            response.headers["Access-Control-Allow-Methods"] = "GET,POST,PUT,DELETE,PATCH,OPTIONS"
        return response

    if app.config.get("APP_ENV") == "development":
        @app.after_request
        def log_request(response):
            app.logger.debug("%s %s -> %s", request.method, request.path, response.status_code)
            return response

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app
