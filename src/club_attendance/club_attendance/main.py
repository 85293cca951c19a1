from __future__ import annotations

import importlib
import logging
from typing import Optional

from dotenv import load_dotenv
from flask import Flask, jsonify

from config import get_settings_module

from .attendance.controller import register as register_attendance
from .container import Container, build_container
from .core.constants import (
    DEFAULT_TIMEZONE,
    LOGOUT_WINDOW_END,
    LOGOUT_WINDOW_START,
    REGISTRATION_TOKEN_TTL_MINUTES,
)
from .core.exceptions import StoreUnavailable, ValidationError
from .database.bootstrap import apply_schema, list_tables
from .registration.controller import register as register_registration
from .stats.controller import register as register_stats
from .system.controller import register as register_system

logger = logging.getLogger(__name__)


def _register_error_handlers(app: Flask) -> None:
    @app.errorhandler(ValidationError)
    def handle_validation_error(exc: ValidationError):
        return jsonify({"success": False, "message": str(exc)}), 400

    @app.errorhandler(StoreUnavailable)
    def handle_store_unavailable(exc: StoreUnavailable):
        logger.error("store unavailable: %s", exc)
        return jsonify({"success": False, "message": "The attendance store is temporarily unavailable."}), 503


def create_app(container: Optional[Container] = None) -> Flask:
    load_dotenv(override=False)
    app = Flask(__name__)

    settings_module = get_settings_module()
    settings = importlib.import_module(settings_module)
    app.secret_key = getattr(settings, "SECRET_KEY")
    db_config = getattr(settings, "DB_CONFIG")
    app.config["DEBUG"] = bool(getattr(settings, "DEBUG", False))
    app.config["TIMEZONE"] = getattr(settings, "TIMEZONE", DEFAULT_TIMEZONE)
    app.config["ADMIN_API_KEY"] = getattr(settings, "ADMIN_API_KEY", "")
    app.config["LOGOUT_WINDOW_START"] = getattr(settings, "LOGOUT_WINDOW_START", LOGOUT_WINDOW_START)
    app.config["LOGOUT_WINDOW_END"] = getattr(settings, "LOGOUT_WINDOW_END", LOGOUT_WINDOW_END)
    app.config["PUBLIC_BASE_URL"] = getattr(settings, "PUBLIC_BASE_URL", "")

    logging.basicConfig(
        level=getattr(settings, "LOG_LEVEL", "INFO"),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logger.info(
        "settings=%s db=%s@%s:%s/%s",
        settings_module,
        db_config.get("user"),
        db_config.get("host"),
        db_config.get("port", 3306),
        db_config.get("database"),
    )

    if container is None:
        if bool(getattr(settings, "AUTO_INIT_DB", False)):
            apply_schema(db_config)
            logger.info("schema ready (tables=%d)", len(list_tables(db_config)))
        container = build_container(
            db_config=db_config,
            timezone=app.config["TIMEZONE"],
            token_ttl_minutes=int(getattr(settings, "REGISTRATION_TOKEN_TTL_MINUTES", REGISTRATION_TOKEN_TTL_MINUTES)),
        )

    _register_error_handlers(app)
    register_attendance(app, container)
    register_registration(app, container)
    register_stats(app, container)
    register_system(app, container)

    return app
