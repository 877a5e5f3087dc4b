# Path: core/features/loader.py
# Purpose: Resolve photo inputs into raw bytes and discover photos on disk.
# Layer: core/features.
# Details: Supports in-memory bytes, local paths, and http(s) URLs fetched with retries.

from __future__ import annotations

from pathlib import Path
from typing import Iterable, List

import httpx
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from core.errors import DecodeError
from core.models.domain import PhotoInput

SUPPORTED_EXTENSIONS = {".png", ".jpg", ".jpeg", ".bmp", ".gif", ".webp"}


def load_photo_bytes(photo: PhotoInput, max_bytes: int, timeout: float = 30.0) -> bytes:
    """Return the raw bytes behind a photo input.

    Raises:
        DecodeError: the photo has no source, cannot be read, or exceeds ``max_bytes``.
    """

    if photo.data is not None:
        content = photo.data
    elif photo.url and photo.url.startswith(("http://", "https://")):
        try:
            content = _fetch(photo.url, timeout)
        except httpx.HTTPError as exc:
            raise DecodeError(f"Could not fetch {photo.url}: {exc}") from exc
    elif photo.url:
        try:
            content = Path(photo.url).read_bytes()
        except OSError as exc:
            raise DecodeError(f"Could not read {photo.url}: {exc}") from exc
    else:
        raise DecodeError(f"Photo {photo.id} has neither bytes nor a location.")

    if not content:
        raise DecodeError(f"Photo {photo.id} is empty.")
    if len(content) > max_bytes:
        raise DecodeError(f"Photo {photo.id} is too large: {len(content) / 1024 / 1024:.2f}MB")
    return content


@retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, max=10),
    retry=retry_if_exception_type(httpx.TransportError),
    reraise=True,
)
def _fetch(url: str, timeout: float) -> bytes:
    """Download a photo, retrying transport failures with exponential backoff."""
    with httpx.Client(timeout=timeout, follow_redirects=True) as client:
        response = client.get(url)
        response.raise_for_status()
        return response.content


def scan_photo_folder(root: Path) -> List[PhotoInput]:
    """Return one photo input per supported image file under ``root``, sorted by path."""

    return [
        PhotoInput(id=path.relative_to(root).with_suffix("").as_posix(), url=str(path))
        for path in sorted(_iter_image_files(root))
    ]


def _iter_image_files(root: Path) -> Iterable[Path]:
    """Yield image files under the root directory."""

    for path in root.rglob("*"):
        if path.is_file() and path.suffix.lower() in SUPPORTED_EXTENSIONS:
            yield path
