"""
Module: export.images.loader

Purpose:
    Load report images (observation photos, logos, contributor portraits)
    from data URLs, HTTP(S) URLs or local files, with a bounded wait.

Key Classes:
    - ImageLoader: Async loader with per-export cache
    - ImageLoadError: Missing, unreachable or undecodable image
    - AsyncResourceTimeout: Load exceeded its time bound

Dependencies:
    - httpx: Async HTTP client
    - PIL: Image decoding

Used By:
    - export.output.rasterizer: Fills image slots before capture
    - export.controller: Owns the loader for one export
"""

from __future__ import annotations

import asyncio
import base64
import binascii
import logging
from io import BytesIO
from pathlib import Path
from typing import Dict, Optional
from urllib.parse import unquote_to_bytes

import httpx
from PIL import Image, UnidentifiedImageError

logger = logging.getLogger(__name__)

DEFAULT_REQUEST_TIMEOUT = 10.0


class ImageLoadError(Exception):
    """Image could not be fetched or decoded."""
    pass


class AsyncResourceTimeout(Exception):
    """An asynchronous resource did not become ready within its bound."""
    pass


class ImageLoader:
    """
    Async image loader.

    Sources are cached by their string value for the loader's lifetime,
    so an image shared by several pages is fetched once.

    Attributes:
        base_dir: Directory that relative file paths resolve against

    Example:
        >>> async with ImageLoader() as loader:
        ...     image = await loader.load_with_timeout("photo.jpg", 1.5)
    """

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        *,
        base_dir: Optional[Path] = None,
        request_timeout: float = DEFAULT_REQUEST_TIMEOUT,
    ) -> None:
        """
        Initialize loader.

        Args:
            client: HTTP client to use (created lazily and owned if None)
            base_dir: Base directory for relative paths
            request_timeout: HTTP timeout for an owned client
        """
        self._client = client
        self._owns_client = client is None
        self._request_timeout = request_timeout
        self.base_dir = Path(base_dir) if base_dir else None
        self._cache: Dict[str, Image.Image] = {}

    async def __aenter__(self) -> ImageLoader:
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None

    async def load(self, src: str) -> Image.Image:
        """
        Load and decode an image.

        Args:
            src: ``data:`` URL, ``http(s)://`` URL, ``file://`` URL or path

        Returns:
            Decoded PIL Image

        Raises:
            ImageLoadError: If the image is missing, unreachable or invalid
        """
        if not src:
            raise ImageLoadError("Empty image source")
        if src in self._cache:
            return self._cache[src]

        if src.startswith("data:"):
            data = _decode_data_url(src)
        elif src.startswith(("http://", "https://")):
            data = await self._fetch(src)
        else:
            data = self._read_file(src)

        image = _decode_image(data, src)
        self._cache[src] = image
        logger.debug(f"Loaded image {_describe(src)} ({image.width}x{image.height})")
        return image

    async def load_with_timeout(self, src: str, timeout: float) -> Image.Image:
        """
        Load an image, giving up after ``timeout`` seconds.

        Raises:
            AsyncResourceTimeout: If the load did not finish in time
            ImageLoadError: If the image is missing or invalid
        """
        try:
            return await asyncio.wait_for(self.load(src), timeout)
        except asyncio.TimeoutError as e:
            raise AsyncResourceTimeout(
                f"Image load exceeded {timeout:.1f}s: {_describe(src)}"
            ) from e

    async def _fetch(self, url: str) -> bytes:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._request_timeout, follow_redirects=True)
        try:
            response = await self._client.get(url)
            response.raise_for_status()
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise ImageLoadError(f"Could not fetch image {_describe(url)}: {e}") from e
        return response.content

    def _read_file(self, src: str) -> bytes:
        path = Path(src[len("file://"):] if src.startswith("file://") else src)
        if not path.is_absolute() and self.base_dir is not None:
            path = self.base_dir / path
        try:
            return path.read_bytes()
        except (OSError, ValueError) as e:
            raise ImageLoadError(f"Image not found: {path}") from e


def _decode_data_url(src: str) -> bytes:
    header, sep, payload = src.partition(",")
    if not sep:
        raise ImageLoadError("Malformed data URL")
    try:
        if header.endswith(";base64"):
            return base64.b64decode(payload, validate=False)
        return unquote_to_bytes(payload)
    except (binascii.Error, ValueError) as e:
        raise ImageLoadError(f"Malformed data URL: {e}") from e


def _decode_image(data: bytes, src: str) -> Image.Image:
    try:
        image = Image.open(BytesIO(data))
        image.load()
    except (UnidentifiedImageError, OSError, ValueError, Image.DecompressionBombError) as e:
        raise ImageLoadError(f"Could not decode image {_describe(src)}: {e}") from e
    return image


def _describe(src: str, limit: int = 80) -> str:
    return src if len(src) <= limit else src[:limit] + "..."
