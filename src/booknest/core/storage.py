"""Store and remove uploaded cover images on local disk."""

from __future__ import annotations

import os
import uuid
from dataclasses import dataclass
from pathlib import Path, PurePosixPath

import structlog

from .models import CoverUpload

log = structlog.get_logger()

COVERS_DIR = "uploads/covers"
DEFAULT_MAX_BYTES = 5 * 1024 * 1024

ALLOWED_EXTENSIONS = {".jpg": "jpg", ".jpeg": "jpg", ".png": "png", ".gif": "gif"}
ALLOWED_MIME_TYPES = {"image/jpeg", "image/jpg", "image/pjpeg", "image/png", "image/gif"}

# Leading bytes of each accepted format
_SIGNATURES = {
    "jpg": (b"\xff\xd8\xff",),
    "png": (b"\x89PNG\r\n\x1a\n",),
    "gif": (b"GIF87a", b"GIF89a"),
}


@dataclass(frozen=True)
class Stored:
    filename: str


@dataclass(frozen=True)
class StoreFailed:
    reason: str


StoreResult = Stored | StoreFailed


class CoverStorage:
    """Cover images under ``root``, referenced by paths relative to it."""

    def __init__(self, root: Path | None = None, max_bytes: int | None = None) -> None:
        if root is None:
            root = Path(os.environ.get("MEDIA_ROOT", "media"))
        if max_bytes is None:
            max_bytes = int(os.environ.get("MAX_COVER_BYTES", DEFAULT_MAX_BYTES))
        self.root = root
        self.max_bytes = max_bytes
        (self.root / COVERS_DIR).mkdir(parents=True, exist_ok=True)

    def _resolve(self, path: str) -> Path | None:
        """Map a stored path to a file under root, or None if it escapes root."""
        if not path:
            return None
        root = self.root.resolve()
        full = (root / PurePosixPath(path)).resolve()
        if not full.is_relative_to(root):
            log.warning("cover_path_outside_root", path=path)
            return None
        return full

    def exists(self, path: str) -> bool:
        full = self._resolve(path)
        return full is not None and full.is_file()

    def _check(self, upload: CoverUpload) -> tuple[str | None, str | None]:
        """Return (format, error) for an upload."""
        if upload.size == 0:
            return None, "The uploaded file is empty."
        if upload.size > self.max_bytes:
            limit_mb = self.max_bytes / (1024 * 1024)
            return None, f"File is too large. Maximum size is {limit_mb:g}MB."
        fmt = ALLOWED_EXTENSIONS.get(PurePosixPath(upload.filename).suffix.lower())
        content_type = upload.content_type.split(";")[0].strip().lower()
        if fmt is None or content_type not in ALLOWED_MIME_TYPES:
            return None, "Invalid file type. Only JPG, PNG and GIF images are allowed."
        if not upload.data.startswith(_SIGNATURES[fmt]):
            return None, "The uploaded file is not a valid image."
        return fmt, None

    def store(self, upload: CoverUpload) -> StoreResult:
        fmt, error = self._check(upload)
        if error:
            log.info("cover_rejected", filename=upload.filename, size=upload.size, reason=error)
            return StoreFailed(reason=error)

        relative = f"{COVERS_DIR}/{uuid.uuid4().hex}.{fmt}"
        dest = self.root / relative
        try:
            dest.write_bytes(upload.data)
        except OSError as e:
            log.error("cover_write_failed", path=str(dest), error=str(e))
            return StoreFailed(reason="Failed to save the uploaded image. Please try again.")

        log.info("cover_stored", path=relative, size=upload.size)
        return Stored(filename=relative)

    def delete(self, path: str) -> None:
        """Remove a stored image. Missing files and errors are logged, not raised."""
        full = self._resolve(path)
        if full is None or not full.is_file():
            return
        try:
            full.unlink()
        except OSError as e:
            log.warning("cover_delete_failed", path=path, error=str(e))
            return
        log.info("cover_deleted", path=path)
