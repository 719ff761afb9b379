import logging
import os

from flask import Flask, jsonify, redirect, url_for
from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()

from .models import Settings  # noqa: E402
from .shared.errors import (  # noqa: E402
    BackgroundAssetError,
    ConstraintViolation,
    InvalidInput,
    NotFound,
)


def create_app():
    app = Flask(__name__, template_folder="templates")
    app.secret_key = os.getenv("SECRET_KEY", "dev")

    DATABASE_URL = os.getenv(
        "DATABASE_URL",
        "sqlite:///" + os.path.join(app.instance_path, "certdesigner.db"),
    )
    app.config["SQLALCHEMY_DATABASE_URI"] = DATABASE_URL
    app.config["SQLALCHEMY_TRACK_MODIFICATIONS"] = False
    app.config["MAX_CONTENT_LENGTH"] = int(
        os.getenv("MAX_CONTENT_LENGTH", str(25 * 1024 * 1024))
    )
    app.config["ASSET_ROOT"] = os.getenv(
        "ASSET_ROOT", os.path.join(app.instance_path, "assets")
    )

    log_level = os.getenv("LOG_LEVEL")
    if log_level:
        app.logger.setLevel(log_level.upper())

    os.makedirs(app.config["ASSET_ROOT"], exist_ok=True)
    if DATABASE_URL.startswith("sqlite:///") and ":memory:" not in DATABASE_URL:
        os.makedirs(app.instance_path, exist_ok=True)

    db.init_app(app)

    @app.errorhandler(NotFound)
    def handle_not_found(exc):
        return jsonify({"error": str(exc)}), 404

    @app.errorhandler(InvalidInput)
    def handle_invalid_input(exc):
        return jsonify({"error": str(exc)}), 400

    @app.errorhandler(ConstraintViolation)
    def handle_constraint(exc):
        return jsonify({"error": str(exc)}), 409

    @app.errorhandler(BackgroundAssetError)
    def handle_background(exc):
        app.logger.error(
            "[RENDER-FAIL] template=%s reason=%s", exc.template_id, exc.reason
        )
        return (
            jsonify(
                {
                    "error": "Failed to generate certificate",
                    "message": str(exc),
                }
            ),
            500,
        )

    @app.get("/health")
    def health():  # pragma: no cover - simple healthcheck
        return "OK", 200

    @app.get("/")
    def index():  # pragma: no cover - trivial route
        return redirect(url_for("templates.list_templates"))

    from .routes.assets import bp as assets_bp
    from .routes.certificates import bp as certificates_bp
    from .routes.editor import bp as editor_bp
    from .routes.fonts import bp as fonts_bp
    from .routes.settings import bp as settings_bp
    from .routes.templates import bp as templates_bp

    app.register_blueprint(assets_bp)
    app.register_blueprint(certificates_bp)
    app.register_blueprint(editor_bp)
    app.register_blueprint(fonts_bp)
    app.register_blueprint(settings_bp)
    app.register_blueprint(templates_bp)

    with app.app_context():
        if os.getenv("AUTO_CREATE_TABLES"):
            create_tables_safely()

    return app


def create_tables_safely() -> None:
    """Create missing tables and the settings row for throwaway databases."""

    try:
        db.create_all()
        Settings.get_or_create()
    except Exception:
        db.session.rollback()
        logging.exception("create_tables_safely failed")
