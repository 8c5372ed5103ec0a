"""
Print job routes.

Handles:
- POST /api/create-print - multipart submission (form fields + files[])
- GET  /api/get-status   - status polling by printId
"""

from flask import Blueprint, current_app, jsonify, request

from core.exceptions import (
    FileUploadError,
    InvalidRequestError,
    JobNotFoundError,
    StoreError,
    StoreWriteFailedError,
)
from services.job_service import UploadedFile, parse_submission
from logging_config import get_logger


# Module logger
logger = get_logger(__name__)

jobs_bp = Blueprint("jobs", __name__)


def _read_uploads():
    uploads = []
    for storage in request.files.getlist("files"):
        if not storage or not storage.filename:
            continue
        uploads.append(UploadedFile(
            filename=storage.filename,
            data=storage.read(),
            content_type=storage.mimetype,
        ))
    return uploads


@jobs_bp.route("/api/create-print", methods=["POST"])
def create_print():
    """
    Create a print job from a multipart submission.

    Returns:
        200 {"printId", "amount", "recordId"}
        400 missing files, name or phone
        500 upload or database failure
    """
    uploads = _read_uploads()
    if not uploads:
        return "No files uploaded", 400

    try:
        submission = parse_submission(request.form)
        job_service = current_app.config["JOB_SERVICE"]
        result = job_service.create_job(submission, uploads)
        return jsonify(result)

    except InvalidRequestError as e:
        return e.message, 400
    except FileUploadError as e:
        logger.error(f"Upload error: {e}")
        return "File upload failed", 500
    except StoreWriteFailedError as e:
        logger.error(f"Insert error: {e}")
        return "Database insert failed", 500
    except StoreError as e:
        logger.error(f"Store error during submission: {e}")
        return "Server error", 500


@jobs_bp.route("/api/get-status", methods=["GET"])
def get_status():
    """
    Return the customer-visible status of a job.

    Returns:
        200 {"print_code", "payment_status", "print_status", "notification"}
        400 missing printId
        404 unknown printId
    """
    job_id = request.args.get("printId", "")

    try:
        status_reader = current_app.config["STATUS_READER"]
        view = status_reader.get_status(job_id)
        return jsonify(view.to_dict())

    except InvalidRequestError as e:
        return e.message, 400
    except JobNotFoundError:
        return "Not found", 404
    except StoreError as e:
        logger.error(f"Status lookup failed for {job_id}: {e}")
        return "Server error", 500
