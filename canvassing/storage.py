"""
canvassing/storage.py

Object storage for uploaded files (canvass attachments, avatars).

Objects live on local disk under UPLOAD_ROOT/<bucket>/<object path> and are
served by the `files` blueprint, which also builds their public URLs.

IMPORTANT:
- Object paths are always built server-side (uuid + sanitized extension).
  Client file names are never used as paths.
- Callers that upload several files inside one transaction use UploadBatch so
  a failed commit does not leave orphaned objects behind.
"""

from __future__ import annotations

import mimetypes
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, List
from uuid import uuid4

from flask import current_app, url_for
from loguru import logger
from werkzeug.datastructures import FileStorage
from werkzeug.utils import secure_filename

from .errors import StorageError, ValidationError


@dataclass
class StoredObject:
    bucket: str
    path: str
    public_url: str
    file_type: str
    file_size: int


def bucket_root(bucket: str) -> Path:
    root = Path(current_app.config["UPLOAD_ROOT"]) / bucket
    root.mkdir(parents=True, exist_ok=True)
    return root


def _resolve(bucket: str, object_path: str) -> Path:
    """Absolute path of an object; refuses paths escaping the bucket."""
    root = bucket_root(bucket).resolve()
    target = (root / object_path).resolve()
    if root != target and root not in target.parents:
        raise StorageError("Invalid object path.", status_code=400)
    return target


def file_extension(filename: str | None) -> str:
    safe = secure_filename(filename or "")
    if "." not in safe:
        return ""
    return safe.rsplit(".", 1)[1].lower()


def allowed_file(filename: str | None) -> bool:
    ext = file_extension(filename)
    return bool(ext) and ext in current_app.config["ALLOWED_UPLOAD_EXTENSIONS"]


def public_url(bucket: str, object_path: str) -> str:
    return url_for("files.serve_file", bucket=bucket, object_path=object_path)


def object_path_from_url(bucket: str, url: str | None) -> str | None:
    """Inverse of public_url (used to remove a previous avatar)."""
    if not url:
        return None
    marker = f"/{bucket}/"
    if marker not in url:
        return None
    return url.split(marker, 1)[1] or None


def upload(bucket: str, object_path: str, file: FileStorage) -> StoredObject:
    """Write an uploaded file to the bucket and return its metadata."""
    if not allowed_file(file.filename):
        raise ValidationError(f"File type not allowed: {file.filename or 'unnamed file'}")

    target = _resolve(bucket, object_path)
    target.parent.mkdir(parents=True, exist_ok=True)
    try:
        file.save(target)
    except OSError as exc:
        logger.error("Upload to {bucket}/{path} failed: {error}", bucket=bucket, path=object_path, error=exc)
        raise StorageError(f"Failed to upload {file.filename}") from exc

    file_type = file.mimetype or mimetypes.guess_type(target.name)[0] or "application/octet-stream"
    return StoredObject(
        bucket=bucket,
        path=object_path,
        public_url=public_url(bucket, object_path),
        file_type=file_type,
        file_size=target.stat().st_size,
    )


def upload_attachment(ticket_id: int, file: FileStorage, kind: str) -> StoredObject:
    """
    Upload a canvass attachment.

    Path format: "{ticket_id}/{kind}_{uuid}.{ext}", e.g. "12/quotation_1_<uuid>.pdf".
    """
    ext = file_extension(file.filename)
    object_path = f"{ticket_id}/{kind}_{uuid4().hex}.{ext}"
    return upload(current_app.config["CANVASS_BUCKET"], object_path, file)


def remove(bucket: str, paths: Iterable[str]) -> None:
    """Remove objects; missing objects are ignored."""
    for object_path in paths:
        if not object_path:
            continue
        try:
            target = _resolve(bucket, object_path)
            target.unlink(missing_ok=True)
        except OSError as exc:
            logger.warning("Could not remove {bucket}/{path}: {error}", bucket=bucket, path=object_path, error=exc)


@dataclass
class UploadBatch:
    """
    Tracks objects uploaded during one request.

    discard() removes everything uploaded so far (after a rollback).
    """

    uploaded: List[StoredObject] = field(default_factory=list)

    def attachment(self, ticket_id: int, file: FileStorage, kind: str) -> StoredObject:
        stored = upload_attachment(ticket_id, file, kind)
        self.uploaded.append(stored)
        return stored

    def discard(self) -> None:
        by_bucket: dict[str, list[str]] = {}
        for stored in self.uploaded:
            by_bucket.setdefault(stored.bucket, []).append(stored.path)
        for bucket, paths in by_bucket.items():
            remove(bucket, paths)
        self.uploaded.clear()
