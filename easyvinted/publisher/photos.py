"""
Download of remote listing photos into short-lived temp files.

The browser file input only accepts local paths, so every photo URL is
fetched to a uniquely named file, uploaded, then removed.
"""

from __future__ import annotations

import asyncio
import tempfile
from pathlib import Path
from typing import Optional, Tuple

import aiohttp

from easyvinted.utils.exceptions import PhotoDownloadError
from easyvinted.utils.image_validation import extension_for_content_type, validate_image_file
from easyvinted.utils.logger import get_logger

from .utils import build_temp_filename, url_basename

logger = get_logger(__name__)

DOWNLOAD_TIMEOUT_SECONDS = 30


class PhotoDownloader:
    """
    Fetch photo URLs to local temp files.

    Attributes:
        temp_dir: Directory receiving the downloaded files.
        validate: Whether downloaded files are checked with Pillow.
        user_agent: User-Agent header sent with each request.
    """

    def __init__(
        self,
        temp_dir: Optional[Path | str] = None,
        validate: bool = True,
        user_agent: Optional[str] = None,
        timeout_seconds: float = DOWNLOAD_TIMEOUT_SECONDS,
    ):
        self.temp_dir = Path(temp_dir) if temp_dir else Path(tempfile.gettempdir())
        self.validate = validate
        self.user_agent = user_agent
        self.timeout_seconds = timeout_seconds

    async def _fetch(self, url: str) -> Tuple[bytes, str]:
        """
        GET a photo URL.

        Returns:
            The body and the Content-Type header.

        Raises:
            PhotoDownloadError: On HTTP errors or network failures.
        """
        headers = {"User-Agent": self.user_agent} if self.user_agent else None
        try:
            async with aiohttp.ClientSession(headers=headers) as session:
                async with session.get(
                    url,
                    timeout=aiohttp.ClientTimeout(total=self.timeout_seconds),
                ) as response:
                    if response.status != 200:
                        raise PhotoDownloadError(
                            f"Failed to download photo: HTTP {response.status}",
                            photo_url=url,
                            status_code=response.status,
                        )
                    content = await response.read()
                    return content, response.headers.get("Content-Type", "")
        except aiohttp.ClientError as e:
            raise PhotoDownloadError(
                f"Failed to download photo: {e}",
                photo_url=url,
            ) from e
        except asyncio.TimeoutError as e:
            raise PhotoDownloadError(
                f"Timed out downloading photo after {self.timeout_seconds}s",
                photo_url=url,
            ) from e

    async def download(self, url: str) -> Path:
        """
        Download a photo to a new temp file.

        Args:
            url: Remote photo URL.

        Returns:
            Path of the written file. The caller owns its deletion.

        Raises:
            PhotoDownloadError: If the photo cannot be fetched.
            ImageValidationError: If the payload is not a usable image.
        """
        logger.debug(f"Downloading photo: {url[:80]}...")
        content, content_type = await self._fetch(url)
        if not content:
            raise PhotoDownloadError("Downloaded photo is empty", photo_url=url)

        suffix = extension_for_content_type(content_type)
        self.temp_dir.mkdir(parents=True, exist_ok=True)
        path = self.temp_dir / build_temp_filename(url, default_suffix=suffix)
        path.write_bytes(content)

        if self.validate:
            try:
                validate_image_file(path)
            except Exception:
                self.cleanup(path)
                raise

        logger.info(f"Downloaded photo {url_basename(url) or url} ({len(content)} bytes)")
        return path

    def cleanup(self, path: Optional[Path]) -> bool:
        """
        Delete a downloaded file. Failures are logged, never raised.

        Returns:
            True if the file no longer exists.
        """
        if path is None:
            return True
        try:
            path.unlink(missing_ok=True)
            logger.debug(f"Removed temp photo {path.name}")
            return True
        except OSError as e:
            logger.warning(f"Could not remove temp photo {path}: {e}")
            return False
