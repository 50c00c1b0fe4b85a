import hashlib
import logging
import uuid
from pathlib import Path
from typing import Optional

from fastapi import UploadFile

from blog.config import settings
from blog.exceptions import InvalidImageError

logger = logging.getLogger(__name__)


class ImageStore:
    """
    Filesystem storage for article images.

    Only the generated file name is stored on the article; the public URL
    is derived from ``settings.UPLOAD_URL_PREFIX``.
    """

    def __init__(
        self,
        upload_dir: str | Path,
        allowed_extensions: Optional[list[str]] = None,
    ) -> None:
        self.upload_dir = Path(upload_dir)
        self.allowed_extensions = {
            ext.lower().lstrip(".") for ext in (allowed_extensions or ["jpg", "jpeg", "png"])
        }

    def path_for(self, filename: str) -> Path:
        # Only the final path component is ever trusted.
        return self.upload_dir / Path(filename).name

    def generate_filename(self, original_name: str) -> str:
        extension = Path(original_name).suffix.lower().lstrip(".")
        if extension not in self.allowed_extensions:
            raise InvalidImageError(
                f"extension {extension or '<none>'!r} is not one of "
                f"{', '.join(sorted(self.allowed_extensions))}"
            )
        digest = hashlib.md5(f"{uuid.uuid4().hex}{original_name}".encode()).hexdigest()
        return f"{digest}.{extension}"

    async def save_upload(self, upload: UploadFile) -> str:
        """
        Write *upload* under a fresh name and return that name.

        Existing files are never touched; the caller removes the previous
        image once the article row points at the new one.
        """
        filename = self.generate_filename(upload.filename or "")
        self.upload_dir.mkdir(parents=True, exist_ok=True)
        self.path_for(filename).write_bytes(await upload.read())
        logger.info("Stored uploaded image %s", filename)
        return filename

    def delete_image(self, filename: Optional[str]) -> bool:
        """
        Remove *filename* from the upload directory.

        Returns False when there was nothing to delete. Filesystem errors
        other than a missing file propagate as ``OSError``.
        """
        if not filename:
            return False
        path = self.path_for(filename)
        try:
            path.unlink()
        except FileNotFoundError:
            logger.debug("Image %s already gone", filename)
            return False
        logger.info("Deleted image %s", filename)
        return True


def get_image_store() -> ImageStore:
    """FastAPI dependency; overridden in tests."""
    return ImageStore(
        settings.UPLOAD_DIR,
        allowed_extensions=settings.ALLOWED_IMAGE_EXTENSIONS,
    )
