"""
Checkout route.

Creates a PayMongo checkout session for a job and hands the hosted
payment page URL back to the browser.
"""

from flask import Blueprint, current_app, jsonify, request

from core.exceptions import GatewayError, InvalidRequestError, MissingCheckoutUrlError
from logging_config import get_logger


# Module logger
logger = get_logger(__name__)

checkout_bp = Blueprint("checkout", __name__)


@checkout_bp.route("/api/create-checkout", methods=["POST"])
def create_checkout():
    """
    Create a checkout session.

    Body: {"printId", "amount", "email"}

    Returns:
        200 {"checkout_url"}
        400 missing or invalid parameters
        500 PayMongo failure or no checkout url
    """
    body = request.get_json(silent=True) or {}

    try:
        checkout_service = current_app.config["CHECKOUT_SERVICE"]
        checkout_url = checkout_service.create_checkout(
            body.get("printId"),
            body.get("amount"),
            body.get("email"),
        )
        return jsonify({"checkout_url": checkout_url})

    except InvalidRequestError as e:
        return e.message, 400
    except MissingCheckoutUrlError as e:
        logger.error(f"Create checkout error: {e}")
        return e.message, 500
    except GatewayError as e:
        logger.error(f"Create checkout error: {e}")
        return "Failed to create checkout session", 500
