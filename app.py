import argparse
import logging
import os

from flask import Flask, jsonify
from flask_cors import CORS

from auth import auth_bp
from categories import categories_bp
from config import configure_logging, load_config
from errors import register_error_handlers
from model import db
from tasks import tasks_bp

logger = logging.getLogger(__name__)


def create_app(test_config=None):
    # Flask setup
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_mapping(load_config(app.instance_path))
    if test_config:
        app.config.from_mapping(test_config)

    if not app.config.get("SECRET_KEY"):
        raise RuntimeError("FLASK_SECRET_KEY not set in .env")

    configure_logging(app.config["LOG_LEVEL"], app.config.get("LOG_FILE"))

    # Ensure instance folder exists
    os.makedirs(app.instance_path, exist_ok=True)

    CORS(app, resources={r"/api/*": {"origins": app.config["CORS_ORIGINS"]}})

    # Initialize SQLAlchemy
    db.init_app(app)
    with app.app_context():
        db.create_all()

    app.register_blueprint(auth_bp)
    app.register_blueprint(categories_bp)
    app.register_blueprint(tasks_bp)
    register_error_handlers(app)

    @app.route("/health")
    def health():
        return jsonify({"status": "ok"})

    @app.cli.command("init-db")
    def init_db():
        """Drop and recreate all tables."""
        db.drop_all()
        db.create_all()
        print("Database initialized.")

    logger.info("Task board API ready (db=%s)", app.config["SQLALCHEMY_DATABASE_URI"])
    return app


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Task board API server")
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, default=int(os.getenv("PORT", "5000")))
    parser.add_argument("--debug", action="store_true")
    args = parser.parse_args()

    create_app().run(host=args.host, port=args.port, debug=args.debug)
