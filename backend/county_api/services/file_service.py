"""
County Directory Backend: Icon Upload Storage
===============================================

What:  Validates, stores and removes uploaded county icons.
How:   Checks extension and size, writes the bytes under a UUID filename in
       <storage_root>/uploads and returns the public path `/uploads/<filename>`.
Who:   Called by CountyService during create/update; read by the /uploads route.

Upload checks:
    1. Extension:  must be in settings.allowed_icon_extensions
    2. Size:       non-empty and at most settings.max_file_size
    3. Content:    libmagic reads the header bytes; the detected MIME type
                   must belong to the extension (a renamed .exe is rejected)
    4. Filename:   replaced by a UUID, user input never reaches the path
"""

import logging
import os
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, FrozenSet, Optional

import aiofiles
import magic

from county_api.config import settings
from county_api.exceptions import ValidationError, FileStorageError

logger = logging.getLogger(__name__)

UPLOADS_DIR = "uploads"
PUBLIC_PREFIX = f"/{UPLOADS_DIR}/"

# Content types libmagic may report for each icon extension
ICON_MIME_TYPES: Dict[str, FrozenSet[str]] = {
    ".png": frozenset({"image/png"}),
    ".jpg": frozenset({"image/jpeg"}),
    ".jpeg": frozenset({"image/jpeg"}),
    ".gif": frozenset({"image/gif"}),
    ".webp": frozenset({"image/webp"}),
    ".svg": frozenset({"image/svg+xml", "image/svg"}),
}


@dataclass(frozen=True)
class IconUpload:
    """An icon file received with a create/update request, not yet stored."""

    filename: str
    content: bytes
    content_length: Optional[int] = None


@dataclass(frozen=True)
class StoredFile:
    """Where an uploaded icon ended up."""

    absolute_path: str
    filename: str

    @property
    def public_path(self) -> str:
        return f"{PUBLIC_PREFIX}{self.filename}"


class FileService:
    """
    Manages the icon upload lifecycle.

    Directory Structure:
        storage/
        └── uploads/
            ├── a1b2c3d4-....png
            └── e5f6g7h8-....svg
    """

    def __init__(self, storage_root: Optional[str] = None):
        """
        Args:
            storage_root: Override the default storage path (used in tests).
                          If None, uses settings.storage_root.
        """
        self.storage_root = Path(storage_root or settings.storage_root).resolve()
        self.uploads_dir = self.storage_root / UPLOADS_DIR
        self.uploads_dir.mkdir(parents=True, exist_ok=True)
        logger.info("FileService initialized with uploads_dir=%s", self.uploads_dir)

    def validate_extension(self, filename: str) -> str:
        """
        Returns:  Normalized extension (lowercase with dot).
        Raises:   ValidationError if the extension is not allowed.
        """
        allowed = settings.allowed_icon_extensions_set
        ext = Path(filename).suffix.lower()
        if ext not in allowed:
            raise ValidationError(
                message=(
                    f"File type '{ext or filename}' is not supported. "
                    f"Allowed types: {', '.join(sorted(allowed))}"
                ),
                field="icon",
                context={"extension": ext, "allowed": sorted(allowed)},
            )
        return ext

    def validate_size(self, content_length: Optional[int], actual_size: int) -> None:
        """
        Rejects empty files and files over settings.max_file_size.

        Args:
            content_length: Size reported by the client (may be None)
            actual_size: Byte count actually received
        """
        max_mb = settings.max_file_size / (1024 * 1024)

        if actual_size == 0:
            raise ValidationError(
                message="Uploaded icon is empty.",
                field="icon",
            )

        if (content_length and content_length > settings.max_file_size) or \
                actual_size > settings.max_file_size:
            raise ValidationError(
                message=f"Uploaded icon is too large. Maximum size is {max_mb:.1f}MB.",
                field="icon",
                context={
                    "max_size_mb": max_mb,
                    "reported_size": content_length,
                    "actual_size": actual_size,
                },
            )

    def validate_mime_type(self, content: bytes, extension: str) -> str:
        """
        Detect the content type from the header bytes and match it against
        the extension the client used.

        Returns:  Detected MIME type (e.g. "image/png").
        Raises:
            ValidationError if the content is not an image of that kind.
            FileStorageError if libmagic itself fails.
        """
        try:
            mime_type = magic.from_buffer(content[:2048], mime=True)
        except Exception as e:
            logger.error("MIME type detection failed: %s", str(e))
            raise FileStorageError(
                message="Could not verify icon file type. Please try again.",
                context={"error": str(e)},
            ) from e

        expected = ICON_MIME_TYPES.get(extension, frozenset())
        if mime_type not in expected:
            raise ValidationError(
                message=(
                    f"Icon content type '{mime_type}' does not match its "
                    f"'{extension}' extension."
                ),
                field="icon",
                context={"detected_mime": mime_type, "expected": sorted(expected)},
            )
        return mime_type

    async def store_file(self, content: bytes, extension: str) -> StoredFile:
        """
        Write validated content under a fresh UUID filename.

        Raises:
            FileStorageError if the write fails.
        """
        filename = f"{uuid.uuid4()}{extension}"
        absolute_path = self.uploads_dir / filename

        try:
            self.uploads_dir.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(absolute_path, "wb") as f:
                await f.write(content)
        except OSError as e:
            logger.error("Failed to store file at %s: %s", absolute_path, str(e))
            raise FileStorageError(
                message="Failed to save uploaded icon. Please try again.",
                context={"path": str(absolute_path), "os_error": str(e)},
            ) from e

        logger.info("Icon stored: %s (%d bytes)", filename, len(content))
        return StoredFile(absolute_path=str(absolute_path), filename=filename)

    async def cleanup_file(self, file_path: str) -> None:
        """
        Remove a stored file, best effort.

        Used when a request fails after its upload was already written.
        Missing files are ignored; other failures are logged, never raised.
        """
        try:
            path = Path(file_path)
            if path.exists():
                os.remove(path)
                logger.info("Cleaned up file: %s", path.name)
            else:
                logger.debug("Cleanup: file already gone: %s", path.name)
        except OSError as e:
            logger.warning("Failed to clean up file %s: %s", file_path, str(e))

    def resolve_upload(self, filename: str) -> Path:
        """
        Map a public filename back to its location on disk.

        Raises:
            ValidationError if the name escapes the uploads directory.
        """
        full_path = (self.uploads_dir / filename).resolve()
        if full_path.parent != self.uploads_dir:
            raise ValidationError(message="Invalid file path", field="filename")
        return full_path

    async def validate_and_store(self, upload: IconUpload) -> StoredFile:
        """
        Extension check, size check, content check, then write to disk.

        Returns:
            StoredFile with the absolute path and the public `/uploads/...` path.
        """
        ext = self.validate_extension(upload.filename)
        self.validate_size(upload.content_length, len(upload.content))
        self.validate_mime_type(upload.content, ext)
        return await self.store_file(upload.content, ext)


# ── Singleton Instance ────────────────────────────────────────────────────
file_service = FileService()
