"""
PrintQ - Flask Application Entry Point.

A slim app factory that:
1. Loads configuration (environment + .env)
2. Configures logging
3. Builds the services with explicit configuration (no module-level clients)
4. Registers route blueprints

ARCHITECTURE:
    Request threads (Flask)
    ├── JobService         create-print: allocate id, upload files, insert record
    ├── CheckoutService    create-checkout: PayMongo session, annotate record
    ├── WebhookReconciler  paymongo-webhook: state machine, per-job lock
    └── StatusReader       get-status: read-only projection

    Shared collaborators (built once here, stored in app.config)
    ├── OrderStore         memory or SQLAlchemy
    ├── FileStorage        local folder or S3
    └── PayMongoClient     httpx connection pool
"""

from __future__ import annotations

import atexit
import logging
import os
from typing import Any, Dict, Optional

from flask import Flask
from flask_cors import CORS

from config import CONFIG_BY_NAME
from logging_config import setup_logging, get_logger
from core.paymongo_client import PayMongoClient
from services.checkout_service import CheckoutService
from services.file_storage import build_file_storage
from services.id_allocator import IdentifierAllocator
from services.job_service import JobService
from services.order_store import build_order_store
from services.reconciler import WebhookReconciler
from services.status_reader import StatusReader
from routes import register_blueprints


# Module logger (configured after setup_logging)
logger = get_logger(__name__)


def create_app(
    config_name: Optional[str] = None,
    overrides: Optional[Dict[str, Any]] = None
) -> Flask:
    """
    Application factory - creates and configures the Flask app.

    Args:
        config_name: "development", "production" or "testing"
            (default: FLASK_ENV, then "development")
        overrides: Config values applied last. Besides plain settings this
            accepts prebuilt collaborators: ORDER_STORE, FILE_STORAGE and
            PAYMONGO_TRANSPORT (an httpx transport).

    Returns:
        Configured Flask application
    """
    config_name = config_name or os.environ.get("FLASK_ENV", "development")
    config_class = CONFIG_BY_NAME.get(config_name, CONFIG_BY_NAME["development"])

    app = Flask(__name__)
    app.config.from_object(config_class)
    if overrides:
        app.config.update(overrides)

    # Configure logging
    log_level = logging.DEBUG if app.config.get("DEBUG") else logging.INFO
    log_to_file = str(app.config.get("LOG_TO_FILE") or "").lower()
    if log_to_file:
        enable_file_logging = log_to_file in ("1", "true", "yes")
    else:
        enable_file_logging = app.config.get("ENVIRONMENT") == "production"

    root_logger = setup_logging(
        log_level=log_level,
        log_dir=app.config.get("LOG_DIR"),
        enable_file_logging=enable_file_logging,
        max_bytes=app.config["LOG_MAX_BYTES"],
        backup_count=app.config["LOG_BACKUP_COUNT"],
    )
    app.logger.handlers = root_logger.handlers
    app.logger.setLevel(log_level)

    logger.info(f"Starting PrintQ in {app.config.get('ENVIRONMENT')} mode")

    # =========================================================================
    # COLLABORATORS
    # =========================================================================

    store = app.config.get("ORDER_STORE")
    if store is None:
        store = build_order_store(app.config["DATABASE_URL"])

    file_storage = app.config.get("FILE_STORAGE")
    if file_storage is None:
        file_storage = build_file_storage(app.config)

    if not app.config.get("PAYMONGO_SECRET"):
        logger.warning("PAYMONGO_SECRET not set. Checkout creation will fail until set.")

    gateway = PayMongoClient(
        secret_key=app.config.get("PAYMONGO_SECRET", ""),
        api_base=app.config["PAYMONGO_API_BASE"],
        timeout_seconds=app.config["PAYMONGO_TIMEOUT_SECONDS"],
        transport=app.config.get("PAYMONGO_TRANSPORT"),
    )

    # =========================================================================
    # SERVICES
    # =========================================================================

    allocator = IdentifierAllocator(store, max_attempts=app.config["ID_ALLOCATION_ATTEMPTS"])

    app.config["ORDER_STORE"] = store
    app.config["FILE_STORAGE"] = file_storage
    app.config["JOB_SERVICE"] = JobService(store, file_storage, allocator)
    app.config["CHECKOUT_SERVICE"] = CheckoutService(
        gateway,
        store,
        success_url=app.config["SUCCESS_URL"],
        cancel_url=app.config["CANCEL_URL"],
        currency=app.config["CHECKOUT_CURRENCY"],
        payment_method_types=app.config["CHECKOUT_PAYMENT_METHODS"],
    )
    app.config["RECONCILER"] = WebhookReconciler(store)
    app.config["STATUS_READER"] = StatusReader(store)
    logger.info("Services initialized")

    atexit.register(gateway.close)

    register_blueprints(app)

    # =========================================================================
    # CORS
    # =========================================================================

    CORS(
        app,
        origins=app.config.get("CORS_ORIGINS") or [],
        methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type"],
    )

    # =========================================================================
    # ERROR HANDLERS
    # =========================================================================

    @app.errorhandler(413)
    def handle_file_too_large(e):
        max_mb = app.config.get("MAX_CONTENT_LENGTH", 0) / (1024 * 1024)
        return f"Upload too large. Maximum request size is {max_mb:.0f} MB.", 413

    @app.errorhandler(500)
    def handle_server_error(e):
        logger.error(f"500 error: {e}", exc_info=True)
        return "Server error", 500

    logger.info("Application initialized successfully")
    return app


if __name__ == "__main__":
    app = create_app()
    debug_mode = os.environ.get("FLASK_DEBUG", "1") == "1"
    port = int(os.environ.get("PORT", 3000))
    app.run(host="0.0.0.0", port=port, debug=debug_mode, threaded=True)
