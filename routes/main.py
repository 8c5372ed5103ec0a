"""
Main routes (health, uploaded files).
"""

from flask import Blueprint, abort, current_app, send_file

from services.file_storage import LocalFileStorage

main_bp = Blueprint("main", __name__)


@main_bp.route("/health", methods=["GET"])
def health():
    """Liveness probe."""
    return {"status": "ok"}


@main_bp.route("/uploads/<path:path>", methods=["GET"])
def uploaded_file(path: str):
    """Serve a file stored by the local storage backend."""
    storage = current_app.config.get("FILE_STORAGE")
    if not isinstance(storage, LocalFileStorage):
        abort(404)

    try:
        target = storage.resolve(path)
    except ValueError:
        abort(404)

    if not target.is_file():
        abort(404)
    return send_file(target)
