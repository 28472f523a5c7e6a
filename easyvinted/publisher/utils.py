"""Helper utilities for photo files and marketplace URLs."""

import re
import time
import uuid
from decimal import Decimal, ROUND_HALF_UP
from pathlib import PurePosixPath
from typing import Optional
from urllib.parse import unquote, urlparse


ITEM_URL_PATTERN = re.compile(r"/items/(\d+)")


def sanitize_filename(name: str, max_length: int = 120) -> str:
    """Remove invalid characters from filename and truncate.

    Args:
        name: Original filename
        max_length: Maximum filename length

    Returns:
        Sanitized filename safe for filesystem
    """
    sanitized = re.sub(r'[<>:"/\\|?*\x00-\x1f]', '', name)
    sanitized = sanitized.replace(' ', '_')
    sanitized = re.sub(r'_+', '_', sanitized)

    if len(sanitized) > max_length:
        stem, dot, suffix = sanitized.rpartition('.')
        if dot and len(suffix) <= 5:
            sanitized = stem[:max_length - len(suffix) - 1] + '.' + suffix
        else:
            sanitized = sanitized[:max_length]

    sanitized = sanitized.strip('_.')
    return sanitized if sanitized else 'photo'


def is_remote_url(reference: str) -> bool:
    """Return True for http(s) URLs with a host."""
    if not reference:
        return False
    try:
        parsed = urlparse(reference.strip())
    except ValueError:
        return False
    return parsed.scheme in ('http', 'https') and bool(parsed.netloc)


def url_basename(url: str) -> str:
    """Last path segment of a URL, without query string."""
    path = unquote(urlparse(url).path)
    return PurePosixPath(path).name


def build_temp_filename(url: str, default_suffix: str = ".jpg") -> str:
    """Build a unique temp filename for a downloaded photo.

    Format: ``vinted-<ms timestamp>-<random>-<url basename>``. The random
    part keeps names unique when two photos share a basename within the
    same millisecond.
    """
    basename = sanitize_filename(url_basename(url) or 'photo')
    if '.' not in basename:
        basename = f"{basename}{default_suffix}"
    timestamp = int(time.time() * 1000)
    return f"vinted-{timestamp}-{uuid.uuid4().hex[:8]}-{basename}"


def is_item_url(url: Optional[str]) -> bool:
    """True for a canonical listing URL such as ``/items/1234567890-title``."""
    if not url:
        return False
    return ITEM_URL_PATTERN.search(urlparse(url).path) is not None


def extract_item_id_from_url(url: str) -> str:
    """Extract the Vinted item ID from a listing URL.

    Handles:
    - https://www.vinted.fr/items/1234567890
    - https://www.vinted.fr/items/1234567890-product-title

    Raises:
        ValueError: If the URL is not a listing URL
    """
    match = ITEM_URL_PATTERN.search(urlparse(url).path)
    if not match:
        raise ValueError(f"Not a Vinted item URL: {url}")
    return match.group(1)


def format_price(price: Decimal) -> str:
    """Plain decimal with two places, e.g. ``Decimal("12.5")`` -> ``"12.50"``."""
    return str(Decimal(price).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))
