# backend/backoffice/__init__.py
from flask import Flask, request, send_from_directory

from .config import Config
from .extensions import db, migrate



def create_app(config_object=None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(config_object or Config)

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    # Register blueprints
    from .routes.system import system_bp
    from .routes.auth import auth_bp
    from .routes.managers import managers_bp
    from .routes.workers import workers_bp
    from .routes.cities import cities_bp
    from .routes.leaflets import leaflets_bp
    from .routes.distribution import distribution_bp
    from .routes.distributors import distributors_bp
    from .routes.orders import orders_bp
    from .routes.goals import goals_bp
    from .routes.logs import logs_bp
    from .routes.statistics import statistics_bp
    from .routes.telegram import telegram_bp  # polled by the notifier process

    app.register_blueprint(system_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(managers_bp)
    app.register_blueprint(workers_bp)
    app.register_blueprint(cities_bp)
    app.register_blueprint(leaflets_bp)
    app.register_blueprint(distribution_bp)
    app.register_blueprint(distributors_bp)
    app.register_blueprint(orders_bp)
    app.register_blueprint(goals_bp)
    app.register_blueprint(logs_bp)
    app.register_blueprint(statistics_bp)
    app.register_blueprint(telegram_bp)

    @app.get("/uploads/<path:filename>")
    def uploaded_file(filename: str):
        return send_from_directory(app.config["UPLOAD_FOLDER"], filename)

    @app.after_request
    def add_cors_headers(response):
        origin = request.headers.get("Origin")
        allowed_origins = {
            app.config.get("SITE_URL", "").rstrip("/"),
            "http://localhost:3000",
            "http://127.0.0.1:3000",
        }
        if origin and origin in allowed_origins:
            response.headers["Access-Control-Allow-Origin"] = origin
            response.headers["Access-Control-Allow-Credentials"] = "true"
            response.headers["Vary"] = "Origin"
            response.headers["Access-Control-Allow-Headers"] = "Authorization, Content-Type"
            response.headers["Access-Control-Allow-Methods"] = "GET,POST,PUT,DELETE,PATCH,OPTIONS"
        return response

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app
