"""Local disk storage for profile pictures and package images."""

import os
import re
import time
from pathlib import Path
from typing import Iterable, Optional

from fastapi import UploadFile
from starlette.concurrency import run_in_threadpool

from ..core.config import settings
from ..core.exceptions import PayloadTooLargeError, ValidationError
from ..core.observability import get_logger

logger = get_logger(__name__)

ALLOWED_CONTENT_TYPES = frozenset({
    "image/jpeg",
    "image/jpg",
    "image/png",
    "image/svg+xml",
    "image/gif",
    "image/webp",
    "image/avif",
    "video/mp4",
    "video/mpeg",
    "video/quicktime",
})

PROFILE_PICTURE_MAX_BYTES = 20 * 1024 * 1024
PACKAGE_IMAGE_MAX_BYTES = 10 * 1024 * 1024
MAX_PACKAGE_IMAGES = 5

PACKAGE_SUBDIR = "package"
PUBLIC_PREFIX = "upload"

_WHITESPACE_RUN = re.compile(r"\s\s+")
_UNSAFE_CHARS = re.compile(r"[&/\\#, +()$~%'\":=*?<>{}@-]")


def _now_ms() -> int:
    return int(time.time() * 1000)


def profile_filename(original: str, now_ms: Optional[int] = None) -> str:
    """`<epoch-ms>_<name>` with whitespace runs collapsed and unsafe characters replaced."""
    name = Path(original or "upload").name
    name = _WHITESPACE_RUN.sub(" ", name)
    name = _UNSAFE_CHARS.sub("_", name)
    return f"{now_ms if now_ms is not None else _now_ms()}_{name}"


def package_filename(original: str, now_ms: Optional[int] = None) -> str:
    """First ten characters of the stem, then the timestamp, then the original extension."""
    name = Path(original or "image").name
    stem = name.split(".")[0].replace(" ", "_")[:10]
    ext = os.path.splitext(name)[1]
    return f"{stem}{now_ms if now_ms is not None else _now_ms()}{ext}"


class MediaStorage:
    """Stores uploads under a root directory and maps them to public URLs."""

    def __init__(self, root: Path, base_url: str):
        self.root = Path(root)
        self.base_url = base_url.rstrip("/")

    @property
    def package_dir(self) -> Path:
        return self.root / PACKAGE_SUBDIR

    def _url_for(self, *parts: str) -> str:
        return "/".join([self.base_url, PUBLIC_PREFIX, *parts])

    @staticmethod
    def _check_content_type(upload: UploadFile) -> None:
        if upload.content_type not in ALLOWED_CONTENT_TYPES:
            raise ValidationError(
                detail="Invalid file type",
                errors={"filename": upload.filename, "content_type": upload.content_type},
            )

    @staticmethod
    async def _read_limited(upload: UploadFile, limit: int) -> bytes:
        content = await upload.read()
        if len(content) > limit:
            raise PayloadTooLargeError(size=len(content), limit=limit, filename=upload.filename)
        return content

    async def _write(self, directory: Path, filename: str, content: bytes) -> Path:
        directory.mkdir(parents=True, exist_ok=True)
        path = directory / filename
        await run_in_threadpool(path.write_bytes, content)
        return path

    async def save_profile_picture(self, upload: UploadFile) -> str:
        """
        Store a profile picture.

        Returns:
            Public URL of the stored file

        Raises:
            ValidationError: If the content type is not allowed
            PayloadTooLargeError: If the file exceeds 20 MiB
        """
        self._check_content_type(upload)
        content = await self._read_limited(upload, PROFILE_PICTURE_MAX_BYTES)

        filename = profile_filename(upload.filename or "")
        path = await self._write(self.root, filename, content)

        logger.info("Profile picture stored", path=str(path), size=len(content))
        return self._url_for(filename)

    def _unique_package_filename(self, original: str, taken: set[str]) -> str:
        # Same stem and extension within one millisecond: step the timestamp until free
        stamp = _now_ms()
        filename = package_filename(original, stamp)
        while filename in taken or (self.package_dir / filename).exists():
            stamp += 1
            filename = package_filename(original, stamp)
        return filename

    async def save_package_images(self, uploads: Iterable[UploadFile]) -> list[str]:
        """
        Store package images, validating every file before writing any.

        Returns:
            Public URLs in upload order
        """
        uploads = [upload for upload in uploads if upload.filename]
        if len(uploads) > MAX_PACKAGE_IMAGES:
            raise ValidationError(
                detail=f"At most {MAX_PACKAGE_IMAGES} images can be uploaded",
                errors={"images": len(uploads)},
            )

        staged = []
        taken: set[str] = set()
        for upload in uploads:
            self._check_content_type(upload)
            content = await self._read_limited(upload, PACKAGE_IMAGE_MAX_BYTES)
            filename = self._unique_package_filename(upload.filename, taken)
            taken.add(filename)
            staged.append((filename, content))

        urls = []
        for filename, content in staged:
            await self._write(self.package_dir, filename, content)
            urls.append(self._url_for(PACKAGE_SUBDIR, filename))

        if urls:
            logger.info("Package images stored", count=len(urls))
        return urls

    def delete_by_url(self, url: str) -> bool:
        """
        Delete the stored file a public URL points to.

        Looks in the package directory first, then the root. Missing
        files are logged and reported as False.
        """
        filename = Path(url.split("/")[-1]).name if url else ""
        if not filename:
            logger.warning("Could not extract filename from URL", url=url)
            return False

        for directory in (self.package_dir, self.root):
            path = directory / filename
            if path.is_file():
                path.unlink()
                logger.info("Stored file deleted", path=str(path))
                return True

        logger.warning("Stored file does not exist", filename=filename)
        return False

    def delete_many(self, urls: Iterable[str]) -> int:
        """Delete several stored files; returns how many were removed."""
        return sum(1 for url in urls if self.delete_by_url(url))


def get_media_storage() -> MediaStorage:
    """Dependency returning storage rooted at the configured upload directory."""
    return MediaStorage(settings.upload_dir, settings.backend_url)
