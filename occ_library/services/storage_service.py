"""
Upload storage for ebook PDFs and their covers.

Every stored file lives under one storage root taken from settings:
    <root>/ebooks/   uploaded PDFs
    <root>/covers/   generated cover thumbnails
The root is also mounted at /uploads, so a file's public URL is derived
from its path relative to the root.
"""
import logging
import re
import uuid
from pathlib import Path
from typing import Optional, Union
import aiofiles

from ..config import settings

logger = logging.getLogger(__name__)

PUBLIC_PREFIX = "/uploads"
EBOOKS_SUBDIR = "ebooks"
COVERS_SUBDIR = "covers"


class StorageService:
    """
    Filesystem layout for uploads.

    Features:
    - Single resolved root for all upload directories
    - Collision-free names for stored PDFs
    - Async writes of uploaded files
    """

    def __init__(self, root: Union[str, Path]):
        self.root = Path(root).resolve()
        self.ebooks_dir = self.root / EBOOKS_SUBDIR
        self.covers_dir = self.root / COVERS_SUBDIR

    def ensure_dirs(self) -> None:
        """Create the storage directories if they don't exist."""
        for directory in (self.root, self.ebooks_dir, self.covers_dir):
            directory.mkdir(parents=True, exist_ok=True)
        logger.info(f"Storage ready at {self.root}")

    @staticmethod
    def stored_pdf_name(original_filename: str) -> str:
        """Unique name for a stored PDF, keeping a readable stem."""
        stem = Path(original_filename or "").stem
        safe_stem = re.sub(r"[^0-9A-Za-z_-]+", "-", stem).strip("-")[:60] or "ebook"
        return f"{safe_stem}-{uuid.uuid4().hex}.pdf"

    async def save_pdf(self, pdf_bytes: bytes, original_filename: str) -> Path:
        """
        Write an uploaded PDF into the ebooks directory.

        Returns:
            Absolute path of the stored file
        """
        file_path = self.ebooks_dir / self.stored_pdf_name(original_filename)

        async with aiofiles.open(file_path, "wb") as f:
            await f.write(pdf_bytes)

        size_mb = len(pdf_bytes) / (1024 * 1024)
        logger.info(f"Stored PDF: {file_path.name}, size={size_mb:.2f}MB, original={original_filename}")
        return file_path

    def public_url(self, path: Optional[Union[str, Path]]) -> Optional[str]:
        """
        Public URL for a stored file, or None.

        <root>/covers/cover-x.jpg -> /uploads/covers/cover-x.jpg
        """
        if not path:
            return None

        path = Path(path)
        try:
            relative = path.resolve().relative_to(self.root)
        except ValueError:
            # Stored outside the root (legacy rows): fall back to the directory name
            relative = Path(path.parent.name) / path.name

        return f"{PUBLIC_PREFIX}/{relative.as_posix()}"

    def remove(self, path: Optional[Union[str, Path]]) -> bool:
        """
        Delete a stored file if it exists.

        Returns:
            True if a file was deleted
        """
        if not path:
            return False

        file_path = Path(path)
        if not file_path.exists():
            return False

        try:
            file_path.unlink()
            logger.info(f"Deleted file: {file_path.name}")
            return True
        except OSError as e:
            logger.error(f"Failed to delete {file_path}: {e}")
            return False


# Global instance
_storage: Optional[StorageService] = None


def init_storage(root: Optional[Union[str, Path]] = None) -> StorageService:
    """Create the global StorageService from settings and create its directories."""
    global _storage
    _storage = StorageService(root or settings.storage_root)
    _storage.ensure_dirs()
    return _storage


def get_storage() -> StorageService:
    """Get or create the global StorageService instance."""
    if _storage is None:
        return init_storage()
    return _storage
