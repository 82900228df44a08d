from __future__ import annotations

import importlib
from datetime import timedelta
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from flask import Flask, jsonify
from werkzeug.exceptions import HTTPException

from config import get_settings_module

from .common.logger import configure_logging, get_logger
from .core.constants import DEFAULT_SESSION_DAYS
from .core.exceptions import (
    AuthenticationError,
    AuthorizationError,
    ConflictError,
    DomainError,
    InvariantViolationError,
    NotFoundError,
    ValidationError,
)
from .database.bootstrap import apply_schema, ensure_admin_user, list_tables

from .container import Container, build_container
from .accommodations.controller import register as register_accommodations
from .advances.controller import register as register_advances
from .audit.controller import register as register_audit
from .contracts.controller import register as register_contracts
from .dashboard.controller import register as register_dashboard
from .employees.controller import register as register_employees
from .users.controller import register as register_users


logger = get_logger(__name__)

_STATUS_BY_ERROR = (
    (ValidationError, 400),
    (AuthenticationError, 401),
    (AuthorizationError, 403),
    (NotFoundError, 404),
    (ConflictError, 409),
)


def _register_error_handlers(app: Flask) -> None:
    for error_type, status in _STATUS_BY_ERROR:

        def handle(exc: DomainError, status: int = status):
            return jsonify({"message": str(exc)}), status

        app.register_error_handler(error_type, handle)

    @app.errorhandler(InvariantViolationError)
    def handle_invariant_violation(exc: InvariantViolationError):
        logger.error("Data invariant violated: %s", exc)
        return jsonify({"message": "Internal data inconsistency, please contact an administrator"}), 500

    @app.errorhandler(Exception)
    def handle_unexpected(exc: Exception):
        # Unknown routes, wrong methods and the like keep their HTTP status.
        if isinstance(exc, HTTPException):
            return jsonify({"message": exc.description}), exc.code
        logger.exception("Unhandled error: %s", exc)
        return jsonify({"message": "An unexpected error occurred"}), 500


def create_app(container: Optional[Container] = None) -> Flask:
    load_dotenv(override=False)
    app = Flask(__name__)

    settings_module = get_settings_module()
    settings = importlib.import_module(settings_module)
    configure_logging(getattr(settings, "LOG_LEVEL", None))

    app.secret_key = getattr(settings, "SECRET_KEY")
    app.config["DEBUG"] = bool(getattr(settings, "DEBUG", False))
    app.config["TESTING"] = bool(getattr(settings, "TESTING", False))
    app.permanent_session_lifetime = timedelta(days=int(getattr(settings, "SESSION_DAYS", DEFAULT_SESSION_DAYS)))

    if container is None:
        db_config = getattr(settings, "DB_CONFIG")
        logger.info(
            "settings=%s db=%s@%s:%s/%s",
            settings_module,
            db_config.get("user"),
            db_config.get("host"),
            db_config.get("port", 3306),
            db_config.get("database"),
        )

        if bool(getattr(settings, "AUTO_INIT_DB", False)):
            schema_path = Path(__file__).resolve().parents[3] / "database" / "schema.sql"
            apply_schema(db_config, schema_path=schema_path)
            ensure_admin_user(
                db_config,
                email=getattr(settings, "BOOTSTRAP_ADMIN_EMAIL", None),
                password=getattr(settings, "BOOTSTRAP_ADMIN_PASSWORD", None),
            )
            logger.info("Schema ready (tables=%d)", len(list_tables(db_config)))

        container = build_container(db_config=db_config)

    _register_error_handlers(app)

    register_users(app, container)
    register_employees(app, container)
    register_accommodations(app, container)
    register_advances(app, container)
    register_contracts(app, container)
    register_audit(app, container)
    register_dashboard(app, container)

    return app
