# Overview: Local filesystem storage for uploaded documents and payment proofs.

from __future__ import annotations

import os
import uuid

from flask import current_app
from werkzeug.datastructures import FileStorage
from werkzeug.utils import secure_filename

from ..validation import ValidationError


def _extension(filename: str | None, default: str = "png") -> str:
    if filename and "." in filename:
        ext = filename.rsplit(".", 1)[1].strip().lower()
        if ext:
            return ext
    return default


def _target_dir(subdir: str) -> str:
    root = current_app.config["UPLOAD_FOLDER"]
    path = os.path.join(root, subdir)
    os.makedirs(path, exist_ok=True)
    return path


def save_upload(file: FileStorage | None, *, subdir: str, filename: str | None = None) -> tuple[str, str]:
    """
    Persist an uploaded file under UPLOAD_FOLDER/<subdir>.

    Returns (relative_url, extension). The url is what document rows store
    and what /uploads/<path> serves back.

    When filename is omitted a uuid-based name is generated so two uploads
    of "scan.jpg" never collide.
    """
    if file is None or not file.filename:
        raise ValidationError("Файл не загружен")

    ext = _extension(file.filename)
    if filename is None:
        filename = f"{uuid.uuid4()}.{ext}"
    filename = secure_filename(filename) or f"{uuid.uuid4()}.{ext}"

    absolute_path = os.path.join(_target_dir(subdir), filename)
    file.save(absolute_path)

    return f"/uploads/{subdir}/{filename}", ext


def absolute_path_for(url: str) -> str:
    """Map a stored /uploads/... url back to the file on disk."""
    relative = url.removeprefix("/uploads/")
    return os.path.join(current_app.config["UPLOAD_FOLDER"], relative)


def delete_upload(url: str) -> None:
    """Remove a stored file. A file already gone is not an error."""
    try:
        os.remove(absolute_path_for(url))
    except FileNotFoundError:
        pass
