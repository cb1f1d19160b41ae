import logging
import os

import click
from flask import Flask

from api import api_bp
from config import Config, engine_options
from errors import register_error_handlers
from guard import login_manager
from jobs import expire_rentals, start_scheduler
from models import db


def create_app(overrides=None):
    app = Flask(__name__)
    app.config.from_object(Config)
    if overrides:
        app.config.update(overrides)
    app.config.setdefault(
        "SQLALCHEMY_ENGINE_OPTIONS",
        engine_options(app.config["SQLALCHEMY_DATABASE_URI"], app.config["DB_TIMEOUT"]),
    )

    app.logger.setLevel(app.config["LOG_LEVEL"])
    logging.basicConfig(
        level=app.config["LOG_LEVEL"],
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    db.init_app(app)
    login_manager.init_app(app)
    register_error_handlers(app, db)
    app.register_blueprint(api_bp, url_prefix=app.config["API_PREFIX"] or None)

    # фронтенд живет на другом порту
    @app.after_request
    def add_cors_headers(resp):
        resp.headers["Access-Control-Allow-Origin"] = app.config["CORS_ORIGIN"]
        resp.headers["Access-Control-Allow-Methods"] = "GET, POST, PUT, DELETE, OPTIONS"
        resp.headers["Access-Control-Allow-Headers"] = "Content-Type, Authorization"
        return resp

    # --- Создание таблиц ---
    with app.app_context():
        db.create_all()

    # --- Автоматическое завершение просроченных аренд ---
    if app.config["RENTAL_SWEEP_ENABLED"] and not app.testing:
        app.extensions["rental_scheduler"] = start_scheduler(app)

    @app.cli.command("init-db")
    def init_db():
        """Создать таблицы."""
        db.create_all()
        click.echo("Database initialised")

    @app.cli.command("expire-rentals")
    def expire_rentals_command():
        """Завершить просроченные аренды и вернуть книги на витрину."""
        click.echo(f"Completed rentals: {expire_rentals()}")

    return app


if __name__ == "__main__":
    app = create_app()
    port = int(os.environ.get("PORT", 5000))
    app.run(host="0.0.0.0", port=port, debug=True)
