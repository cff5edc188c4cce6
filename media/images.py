"""Single-file-per-entity image storage on the local filesystem."""

from __future__ import annotations

import io
import logging
import os
from pathlib import Path

from PIL import Image, UnidentifiedImageError

from errors import InvalidReferenceError

logger = logging.getLogger(__name__)

CONTENT_TYPE_EXTENSIONS: dict[str, str] = {
    "image/png": "png",
    "image/jpeg": "jpeg",
    "image/gif": "gif",
}

EXTENSION_CONTENT_TYPES: dict[str, str] = {
    ".png": "image/png",
    ".jpeg": "image/jpeg",
    ".jpg": "image/jpeg",
    ".gif": "image/gif",
}

# Pillow format names for each accepted content type.
_PIL_FORMATS: dict[str, str] = {
    "image/png": "PNG",
    "image/jpeg": "JPEG",
    "image/gif": "GIF",
}


def extension_for(content_type: str | None) -> str:
    """Return the file extension for an allow-listed ``content_type``."""

    normalized = (content_type or "").split(";", 1)[0].strip().lower()
    try:
        return CONTENT_TYPE_EXTENSIONS[normalized]
    except KeyError:
        raise InvalidReferenceError("Unsupported image type") from None


def content_type_for(filename: str) -> str:
    return EXTENSION_CONTENT_TYPES.get(Path(filename).suffix.lower(), "application/octet-stream")


class ImageStore:
    """Stores at most one image per ``(prefix, entity_id)`` in ``directory``."""

    def __init__(self, directory: str | os.PathLike[str]):
        self.directory = Path(directory)

    def ensure_directory(self) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)

    def _path(self, filename: str) -> Path:
        name = Path(filename).name
        if not name or name != filename:
            raise InvalidReferenceError(f"Invalid image filename: {filename!r}")
        return self.directory / name

    def verify(self, data: bytes, content_type: str) -> None:
        """Ensure ``data`` decodes as the image format named by ``content_type``."""

        if not data:
            raise InvalidReferenceError("Invalid image data")
        expected = _PIL_FORMATS.get(content_type)
        try:
            with Image.open(io.BytesIO(data)) as img:
                actual = img.format
                img.verify()
        except (UnidentifiedImageError, OSError, SyntaxError) as exc:
            raise InvalidReferenceError("Invalid image data") from exc
        if expected is None or actual != expected:
            raise InvalidReferenceError(
                f"Image data is {actual or 'unknown'} but Content-Type is {content_type}"
            )

    def filename_for(self, prefix: str, entity_id: int, content_type: str) -> str:
        return f"{prefix}_{entity_id}.{extension_for(content_type)}"

    def save(self, filename: str, data: bytes) -> str:
        """Atomically write ``data`` to ``filename`` and return the filename.

        A failed write leaves any image already stored under that name intact.
        """

        self.ensure_directory()
        path = self._path(filename)
        partial = path.with_name(f".{path.name}.partial")
        try:
            partial.write_bytes(data)
            os.replace(partial, path)
        except OSError:
            partial.unlink(missing_ok=True)
            raise
        logger.info("Stored image %s (%d bytes)", filename, len(data))
        return filename

    def load(self, filename: str | None) -> tuple[bytes, str] | None:
        """Return ``(data, content_type)`` or ``None`` when the file is missing."""

        if not filename:
            return None
        path = self._path(filename)
        if not path.is_file():
            logger.warning("Image %s referenced in database but missing on disk", filename)
            return None
        return path.read_bytes(), content_type_for(filename)

    def delete(self, filename: str | None) -> None:
        if not filename:
            return
        try:
            self._path(filename).unlink()
        except FileNotFoundError:
            logger.warning("Image %s already removed from disk", filename)
        except OSError:
            logger.exception("Failed to delete image %s", filename)
        else:
            logger.info("Deleted image %s", filename)


__all__ = [
    "CONTENT_TYPE_EXTENSIONS",
    "EXTENSION_CONTENT_TYPES",
    "ImageStore",
    "content_type_for",
    "extension_for",
]
