# Path: core/loading/image_loader.py
# Purpose: Fetch images by URL and decode them into fixed-size pixel buffers for the embedder.
# Layer: core/loading.
# Details: Isolates network and decode failures behind ImageUnavailable so ranking never sees them.

from __future__ import annotations

import asyncio
import logging
from http.cookiejar import CookieJar, DefaultCookiePolicy
from io import BytesIO
from pathlib import Path
from typing import Optional, Tuple
from urllib.parse import unquote, urlparse

import httpx
from PIL import Image, UnidentifiedImageError

from config.settings import LoaderSettings
from core.errors import ImageUnavailable

logger = logging.getLogger(__name__)

REMOTE_SCHEMES = {"http", "https"}


class ImageLoader:
    """Load remote or local images and resize them to the embedder's input size.

    Remote fetches are anonymous: the client ignores ambient credentials, sends no auth,
    and its cookie jar refuses every cookie, so no fetch can leak state into another.
    Bodies are streamed and abandoned as soon as they pass ``max_bytes``.
    """

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        *,
        size: Tuple[int, int] = (224, 224),
        timeout: float = 10.0,
        max_bytes: int = 20 * 1024 * 1024,
        user_agent: str = "page-gallery-search/0.1",
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        if client is not None and transport is not None:
            raise ValueError("Pass either an HTTP client or a transport, not both.")
        self.size = size
        self.timeout = timeout
        self.max_bytes = max_bytes
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            follow_redirects=True,
            trust_env=False,
            timeout=httpx.Timeout(timeout),
            headers={"User-Agent": user_agent},
            cookies=CookieJar(policy=DefaultCookiePolicy(allowed_domains=[])),
            transport=transport,
        )

    @classmethod
    def from_settings(
        cls, settings: LoaderSettings, transport: Optional[httpx.AsyncBaseTransport] = None
    ) -> "ImageLoader":
        """Build a loader that owns its HTTP client from loader settings."""

        return cls(
            size=(settings.image_size, settings.image_size),
            timeout=settings.timeout_seconds,
            max_bytes=settings.max_bytes,
            user_agent=settings.user_agent,
            transport=transport,
        )

    async def load(self, url: str) -> Image.Image:
        """
        Return the image at ``url`` as an RGB image of ``self.size``.

        Raises ImageUnavailable on fetch failure, timeout, oversized body, or undecodable bytes.
        """

        try:
            content = await asyncio.wait_for(self._read(url), timeout=self.timeout)
        except asyncio.TimeoutError as exc:
            raise ImageUnavailable(url, f"timed out after {self.timeout}s") from exc

        logger.debug("Fetched %s (%d bytes)", url, len(content))
        return await asyncio.to_thread(self._decode, url, content)

    async def _read(self, url: str) -> bytes:
        parsed = urlparse(url)
        if parsed.scheme in REMOTE_SCHEMES:
            return await self._fetch(url)
        if parsed.scheme in ("", "file"):
            path = Path(unquote(parsed.path)) if parsed.scheme == "file" else Path(url)
            return await asyncio.to_thread(self._read_file, url, path)
        raise ImageUnavailable(url, f"unsupported scheme '{parsed.scheme}'")

    def _read_file(self, url: str, path: Path) -> bytes:
        try:
            if path.stat().st_size > self.max_bytes:
                raise ImageUnavailable(url, f"file exceeds {self.max_bytes} bytes")
            return path.read_bytes()
        except OSError as exc:
            raise ImageUnavailable(url, f"cannot read file: {exc}") from exc

    async def _fetch(self, url: str) -> bytes:
        try:
            async with self._client.stream("GET", url) as response:
                response.raise_for_status()
                declared = response.headers.get("content-length")
                if declared is not None and declared.isdigit() and int(declared) > self.max_bytes:
                    raise ImageUnavailable(url, f"body exceeds {self.max_bytes} bytes")
                body = bytearray()
                async for chunk in response.aiter_bytes():
                    body.extend(chunk)
                    if len(body) > self.max_bytes:
                        raise ImageUnavailable(url, f"body exceeds {self.max_bytes} bytes")
                return bytes(body)
        except httpx.HTTPStatusError as exc:
            raise ImageUnavailable(url, f"HTTP {exc.response.status_code}") from exc
        except httpx.TimeoutException as exc:
            raise ImageUnavailable(url, "timed out") from exc
        except httpx.HTTPError as exc:
            raise ImageUnavailable(url, f"request error: {exc}") from exc
        finally:
            self._client.cookies.clear()

    def _decode(self, url: str, content: bytes) -> Image.Image:
        """Decode and resize inside a scoped Image.open so the source buffer is released."""

        try:
            with Image.open(BytesIO(content)) as source:
                source.load()
                return source.convert("RGB").resize(self.size)
        except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as exc:
            raise ImageUnavailable(url, f"not a decodable image: {exc}") from exc

    async def aclose(self) -> None:
        """Close the HTTP client when this loader created it."""

        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "ImageLoader":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()
