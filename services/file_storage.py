"""
Object storage for uploaded print files.

Every file lands under its job's folder:

    {job_id}/{timestamp_ms}_{random}_{sanitized original name}

so concurrent uploads for different jobs (or the same name twice) never
overwrite each other. ``upload()`` returns the public URL stored in the
job's ``files`` list.

Backends:
    LocalFileStorage - writes below UPLOAD_FOLDER, served by the /uploads route
    S3FileStorage    - boto3 put_object into a bucket
"""

from __future__ import annotations

import re
import secrets
import time
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional
from urllib.parse import quote

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from core.exceptions import FileUploadError
from logging_config import get_logger


# Module logger
logger = get_logger(__name__)

_WHITESPACE = re.compile(r"\s+")
_UNSAFE_CHARS = re.compile(r"[^a-zA-Z0-9._-]")


def sanitize_filename(filename: str) -> str:
    """
    Make a client filename safe for a storage key.

    Whitespace runs become ``_``; anything outside ``[A-Za-z0-9._-]``
    is dropped.
    """
    return _UNSAFE_CHARS.sub("", _WHITESPACE.sub("_", filename or ""))


def build_file_path(job_id: str, filename: str, timestamp_ms: Optional[int] = None) -> str:
    """Return ``{job_id}/{timestamp_ms}_{random}_{name}`` for one upload."""
    if timestamp_ms is None:
        timestamp_ms = int(time.time() * 1000)
    random_part = secrets.token_hex(3)
    return f"{job_id}/{timestamp_ms}_{random_part}_{sanitize_filename(filename)}"


def encode_path(path: str) -> str:
    # Slashes included, so the whole key is one URL segment
    return quote(path, safe="")


class FileStorage(ABC):
    """Where uploaded files go and how they are addressed."""

    def build_path(self, job_id: str, filename: str) -> str:
        return build_file_path(job_id, filename)

    @abstractmethod
    def upload(self, path: str, data: bytes, content_type: Optional[str] = None) -> str:
        """
        Store ``data`` at ``path``.

        Returns:
            Public URL of the stored object

        Raises:
            FileUploadError: If the backend rejects the write
        """

    @abstractmethod
    def public_url(self, path: str) -> str:
        """URL under which the object at ``path`` is reachable."""


class LocalFileStorage(FileStorage):
    """Filesystem backend for development and single-host deployments."""

    def __init__(self, root: str, public_base_url: str):
        """
        Args:
            root: Directory files are written below (created if missing)
            public_base_url: Base URL of this service, e.g. ``http://localhost:5000``
        """
        self._root = Path(root).resolve()
        self._root.mkdir(parents=True, exist_ok=True)
        self._public_base_url = public_base_url.rstrip("/")

    @property
    def root(self) -> Path:
        return self._root

    def resolve(self, path: str) -> Path:
        """
        Map a storage path to a file below the root.

        Raises:
            ValueError: If the path escapes the root directory
        """
        target = (self._root / path).resolve()
        if self._root not in target.parents:
            raise ValueError(f"Path escapes upload folder: {path}")
        return target

    def upload(self, path: str, data: bytes, content_type: Optional[str] = None) -> str:
        try:
            target = self.resolve(path)
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(data)
        except (OSError, ValueError) as e:
            logger.error(f"Upload error for {path}: {e}")
            raise FileUploadError(path, str(e)) from e

        logger.debug(f"Stored {len(data)} bytes at {target}")
        return self.public_url(path)

    def public_url(self, path: str) -> str:
        return f"{self._public_base_url}/uploads/{encode_path(path)}"


class S3FileStorage(FileStorage):
    """Bucket backend using boto3 (credentials from the standard AWS chain)."""

    def __init__(
        self,
        bucket: str,
        region: str,
        public_base_url: Optional[str] = None,
        client=None
    ):
        """
        Args:
            bucket: Target bucket name
            region: AWS region of the bucket
            public_base_url: CDN or custom domain; defaults to the bucket endpoint
            client: Pre-built boto3 S3 client (tests pass a mock)
        """
        self._bucket = bucket
        self._client = client or boto3.client("s3", region_name=region)
        base = public_base_url or f"https://{bucket}.s3.{region}.amazonaws.com"
        self._public_base_url = base.rstrip("/")

    def upload(self, path: str, data: bytes, content_type: Optional[str] = None) -> str:
        params = {"Bucket": self._bucket, "Key": path, "Body": data}
        if content_type:
            params["ContentType"] = content_type

        try:
            self._client.put_object(**params)
        except (BotoCoreError, ClientError) as e:
            logger.error(f"Upload error for s3://{self._bucket}/{path}: {e}")
            raise FileUploadError(path, str(e)) from e

        return self.public_url(path)

    def public_url(self, path: str) -> str:
        return f"{self._public_base_url}/{encode_path(path)}"


def build_file_storage(config) -> FileStorage:
    """Create the configured storage backend from a Flask config mapping."""
    backend = config.get("STORAGE_BACKEND", "local")

    if backend == "s3":
        logger.info(f"Using S3 file storage, bucket={config['S3_BUCKET']}")
        return S3FileStorage(
            bucket=config["S3_BUCKET"],
            region=config["S3_REGION"],
            public_base_url=config.get("S3_PUBLIC_URL") or None,
        )
    if backend == "local":
        logger.info(f"Using local file storage at {config['UPLOAD_FOLDER']}")
        return LocalFileStorage(config["UPLOAD_FOLDER"], config["PUBLIC_BASE_URL"])

    raise ValueError(f"Unknown STORAGE_BACKEND: {backend}")
