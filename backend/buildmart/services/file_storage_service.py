# Overview: Local disk storage for uploaded images.

"""
Accepts any uploaded file and stores it under UPLOAD_FOLDER with a
collision-free name. Callers persist only the returned reference string
("/uploads/<name>"); GET /uploads/<name> serves it back.
"""

from __future__ import annotations

import os
import uuid
from contextlib import contextmanager

from flask import current_app
from werkzeug.datastructures import FileStorage
from werkzeug.utils import secure_filename

from ..errors import ValidationError

URL_PREFIX = "/uploads/"


def upload_folder() -> str:
    folder = current_app.config["UPLOAD_FOLDER"]
    os.makedirs(folder, exist_ok=True)
    return folder


def _stored_name(file: FileStorage, field_name: str) -> str:
    original = secure_filename(file.filename or "")
    _, ext = os.path.splitext(original)
    return f"{field_name}-{uuid.uuid4().hex}{ext.lower()}"


def save_upload(file: FileStorage | None, field_name: str = "image") -> str:
    """
    Write the upload to disk and return its storage-relative URL.

    Raises ValidationError if no file was sent.
    """
    if file is None or not file.filename:
        raise ValidationError(f"{field_name} file is required")

    name = _stored_name(file, field_name)
    file.save(os.path.join(upload_folder(), name))
    current_app.logger.info("Stored upload %s (%s)", name, file.mimetype)
    return URL_PREFIX + name


def resolve_path(image_url: str) -> str | None:
    """Absolute path of a stored file, or None if the reference isn't ours."""
    if not image_url or not image_url.startswith(URL_PREFIX):
        return None
    name = secure_filename(image_url[len(URL_PREFIX):])
    if not name:
        return None
    return os.path.join(upload_folder(), name)


def discard_upload(image_url: str | None) -> None:
    """Remove a stored file; references that aren't ours are ignored."""
    path = resolve_path(image_url) if image_url else None
    if path and os.path.exists(path):
        os.remove(path)
        current_app.logger.info("Discarded upload %s", image_url)


@contextmanager
def staged_upload(file: FileStorage | None, field_name: str = "image", *, required: bool = False):
    """
    Store an upload for the duration of a write.

    Yields the stored URL (None when an optional file was not sent). If
    the block raises, the file is deleted again before the error
    propagates, so a refused or failed write leaves nothing on disk.
    """
    if not required and (file is None or not file.filename):
        yield None
        return

    image_url = save_upload(file, field_name)
    try:
        yield image_url
    except Exception:
        discard_upload(image_url)
        raise
