# Overview: Service-layer operations for uploads; stores product and profile images under UPLOAD_FOLDER.

from __future__ import annotations

import os
import uuid

from flask import current_app
from werkzeug.utils import secure_filename

from app.errors import ValidationError


def upload_root() -> str:
    folder = current_app.config["UPLOAD_FOLDER"]
    if not os.path.isabs(folder):
        folder = os.path.join(current_app.root_path, "..", folder)
    return os.path.abspath(folder)


def _extension(filename: str) -> str:
    return filename.rsplit(".", 1)[-1].lower() if "." in filename else ""


def save_image(file_storage, subdir: str) -> str:
    """
    Persist one uploaded image and return its public URL (/uploads/<subdir>/<name>).

    Raises ValidationError for missing files or disallowed extensions.
    """
    if file_storage is None or not file_storage.filename:
        raise ValidationError("Please upload an image file")

    filename = secure_filename(file_storage.filename)
    ext = _extension(filename)
    if ext not in current_app.config["ALLOWED_IMAGE_EXTENSIONS"]:
        raise ValidationError("Only image files (jpeg, jpg, png, gif, webp) are allowed!")

    stored_name = f"{subdir.rstrip('s')}-{uuid.uuid4().hex}.{ext}"
    target_dir = os.path.join(upload_root(), subdir)
    os.makedirs(target_dir, exist_ok=True)
    file_storage.save(os.path.join(target_dir, stored_name))
    return f"/uploads/{subdir}/{stored_name}"


def save_images(files, subdir: str, *, max_files: int = 5) -> list[str]:
    files = [f for f in files or [] if f and f.filename]
    if len(files) > max_files:
        raise ValidationError(f"Too many files. Maximum is {max_files} files.")
    return [save_image(f, subdir) for f in files]
