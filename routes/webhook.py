"""
PayMongo webhook route.

Acknowledges every delivery with 200 except when the record store fails,
in which case 500 makes PayMongo redeliver later. Events that are
unparseable, unrelated or already applied are acknowledged too; answering
them with an error would only trigger endless retries.
"""

from flask import Blueprint, current_app, request

from core.exceptions import StoreError
from services.reconciler import APPLIED
from logging_config import get_logger


# Module logger
logger = get_logger(__name__)

webhook_bp = Blueprint("webhook", __name__)


@webhook_bp.route("/api/paymongo-webhook", methods=["POST"])
def paymongo_webhook():
    """
    Receive a PayMongo event.

    Returns:
        200 "ok"        status applied
        200 "ignored"   nothing to do
        200 "duplicate" job already in a final state
        500             store failure
    """
    body = request.get_json(silent=True)

    try:
        reconciler = current_app.config["RECONCILER"]
        result = reconciler.reconcile(body)
    except StoreError as e:
        logger.error(f"Webhook error: {e}")
        return "server error", 500

    if result.action == APPLIED:
        return "ok", 200
    return result.action, 200
