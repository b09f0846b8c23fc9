"""
Local file storage for uploaded documents, order photos and delivery
signatures. Files land under ``settings.UPLOAD_DIR`` and are served
from ``/uploads``.
"""
import logging
import secrets
import time
from pathlib import Path
from typing import Optional
from xml.sax.saxutils import quoteattr

from fastapi import UploadFile

from app.core.config import settings
from app.core.exceptions import ValidationException

logger = logging.getLogger(__name__)

UPLOAD_URL_PREFIX = "/uploads"

ALLOWED_MIME_TYPES = {
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/webp": "webp",
    "application/pdf": "pdf",
}
IMAGE_MIME_TYPES = {"image/jpeg", "image/png", "image/webp"}


class StoredFile:
    """File written to the upload directory."""

    def __init__(self, url: str, file_name: str, file_size: int, mime_type: str):
        self.url = url
        self.file_name = file_name
        self.file_size = file_size
        self.mime_type = mime_type


def validate_upload(
    mime_type: Optional[str],
    size: int,
    allowed: Optional[set[str]] = None,
) -> None:
    """Raise ValidationException for a disallowed type or an oversized file."""
    allowed = allowed or set(ALLOWED_MIME_TYPES)
    if mime_type not in allowed:
        if allowed == IMAGE_MIME_TYPES:
            raise ValidationException("Dozwolone formaty: JPG, PNG, WebP")
        raise ValidationException("Dozwolone formaty: JPG, PNG, WebP, PDF")
    if size > settings.max_upload_size_bytes:
        raise ValidationException(f"Maksymalny rozmiar pliku to {settings.MAX_UPLOAD_SIZE_MB}MB")


def unique_filename(original: Optional[str], mime_type: str) -> str:
    """``{millis}-{random}.{ext}``; extension taken from the name or the type."""
    ext = ""
    if original and "." in original:
        ext = original.rsplit(".", 1)[-1].lower()
    if not ext.isalnum() or len(ext) > 5:
        ext = ALLOWED_MIME_TYPES.get(mime_type, "bin")
    return f"{int(time.time() * 1000)}-{secrets.token_hex(4)}.{ext}"


def write_file(relative_dir: str, filename: str, content: bytes) -> str:
    """Write ``content`` below the upload root and return its public URL."""
    directory = Path(settings.UPLOAD_DIR) / relative_dir
    directory.mkdir(parents=True, exist_ok=True)
    (directory / filename).write_bytes(content)
    logger.debug(f"Stored file {relative_dir}/{filename} ({len(content)} bytes)")
    return f"{UPLOAD_URL_PREFIX}/{relative_dir}/{filename}"


async def save_upload(
    file: UploadFile,
    relative_dir: str,
    allowed: Optional[set[str]] = None,
) -> StoredFile:
    """Validate and store a multipart upload."""
    stored = await save_uploads([file], relative_dir, allowed)
    return stored[0]


async def save_uploads(
    files: list[UploadFile],
    relative_dir: str,
    allowed: Optional[set[str]] = None,
) -> list[StoredFile]:
    """Store several uploads; nothing is written unless every file is valid."""
    contents = []
    for file in files:
        content = await file.read()
        validate_upload(file.content_type, len(content), allowed)
        contents.append((file, content))

    stored = []
    for file, content in contents:
        filename = unique_filename(file.filename, file.content_type)
        url = write_file(relative_dir, filename, content)
        stored.append(
            StoredFile(url=url, file_name=file.filename or filename, file_size=len(content), mime_type=file.content_type)
        )
    return stored


def document_dir(tenant_id, entity_type: Optional[str], entity_id) -> str:
    """``documents/{entity}/{id}`` or the tenant folder for company files."""
    if entity_type and entity_id:
        return f"documents/{entity_type}/{entity_id}"
    return f"documents/{tenant_id}"


def render_signature_svg(paths: list[str], width: float, height: float) -> str:
    """Signature strokes captured on the device as an SVG document."""
    strokes = "\n  ".join(
        f'<path d={quoteattr(path)} stroke="#111827" stroke-width="3" fill="none" '
        f'stroke-linecap="round" stroke-linejoin="round"/>'
        for path in paths
    )
    return (
        '<?xml version="1.0" encoding="UTF-8"?>\n'
        f'<svg xmlns="http://www.w3.org/2000/svg" width="{width:g}" height="{height:g}" '
        f'viewBox="0 0 {width:g} {height:g}">\n'
        '  <rect width="100%" height="100%" fill="white"/>\n'
        f"  {strokes}\n"
        "</svg>"
    )
