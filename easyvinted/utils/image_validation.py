"""Validation of downloaded listing photos before they are uploaded."""

from pathlib import Path
from typing import Optional

from PIL import Image

from .exceptions import ImageValidationError
from .logger import get_logger

logger = get_logger(__name__)

# Marketplace upload constraints
MAX_FILE_SIZE_MB = 20
MIN_DIMENSION = 50
MAX_DIMENSION = 8000
SUPPORTED_FORMATS = ("JPEG", "PNG", "WEBP", "HEIF", "HEIC")

# Content-Type -> file extension, used when the URL carries none
CONTENT_TYPE_EXTENSIONS = {
    "image/jpeg": ".jpg",
    "image/jpg": ".jpg",
    "image/png": ".png",
    "image/webp": ".webp",
    "image/heic": ".heic",
}


def validate_image_file(path: str | Path) -> str:
    """Validate a photo file before handing it to the listing form.

    Args:
        path: Path to image file

    Returns:
        The detected image format (e.g. "JPEG")

    Raises:
        ImageValidationError: If image fails validation
        FileNotFoundError: If file doesn't exist
    """
    path = Path(path)

    if not path.exists():
        raise FileNotFoundError(f"Image file not found: {path}")

    size = path.stat().st_size
    if size == 0:
        raise ImageValidationError(f"Image file is empty: {path.name}", path=str(path))

    file_size_mb = size / (1024 * 1024)
    if file_size_mb > MAX_FILE_SIZE_MB:
        raise ImageValidationError(
            f"Image too large: {file_size_mb:.1f}MB (max {MAX_FILE_SIZE_MB}MB)",
            path=str(path),
        )

    try:
        with Image.open(path) as img:
            width, height = img.size
            image_format = img.format

            if width < MIN_DIMENSION or height < MIN_DIMENSION:
                raise ImageValidationError(
                    f"Image too small: {width}x{height} (min {MIN_DIMENSION}x{MIN_DIMENSION})",
                    path=str(path),
                )

            if width > MAX_DIMENSION or height > MAX_DIMENSION:
                raise ImageValidationError(
                    f"Image too large: {width}x{height} (max {MAX_DIMENSION}x{MAX_DIMENSION})",
                    path=str(path),
                )

            if image_format not in SUPPORTED_FORMATS:
                raise ImageValidationError(
                    f"Unsupported format: {image_format} (supported: {', '.join(SUPPORTED_FORMATS)})",
                    path=str(path),
                )

            img.verify()

    except (ImageValidationError, FileNotFoundError):
        raise
    except Exception as e:
        raise ImageValidationError(f"Corrupted or invalid image: {e}", path=str(path)) from e

    logger.debug(f"Image validation passed: {path.name} ({image_format})")
    return image_format


def extension_for_content_type(content_type: Optional[str]) -> str:
    """Return a file extension for an HTTP Content-Type header value."""
    if not content_type:
        return ".jpg"
    mime = content_type.split(";", 1)[0].strip().lower()
    return CONTENT_TYPE_EXTENSIONS.get(mime, ".jpg")
