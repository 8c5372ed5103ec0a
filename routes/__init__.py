"""
Flask route blueprints for PrintQ.

This module contains all route handlers organized by functionality:
- main: Health check and locally stored uploads
- jobs: Job submission and status polling
- checkout: PayMongo checkout session creation
- webhook: PayMongo event receiver

Each blueprint is registered with the Flask app in create_app().
"""

from .main import main_bp
from .jobs import jobs_bp
from .checkout import checkout_bp
from .webhook import webhook_bp

__all__ = [
    "main_bp",
    "jobs_bp",
    "checkout_bp",
    "webhook_bp",
]


def register_blueprints(app):
    """
    Register all blueprints with the Flask app.

    Args:
        app: Flask application instance
    """
    app.register_blueprint(main_bp)
    app.register_blueprint(jobs_bp)
    app.register_blueprint(checkout_bp)
    app.register_blueprint(webhook_bp)
