import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import Dict, Optional
from urllib.parse import urlparse

import httpx

from comicseed.config import Settings
from comicseed.core.errors import UpstreamIOError
from comicseed.core.image_path import is_absolute_url
from comicseed.services.image_cache import ImageCache
from comicseed.services.upload.base import UploadOptions, UploadProvider

logger = logging.getLogger(__name__)

USER_AGENT = "Mozilla/5.0 (compatible; comicseed/0.2; +https://github.com/)"
RETRYABLE_STATUS = (429, 500, 502, 503, 504)


@dataclass(frozen=True)
class ResolvedImage:
    source: str
    url: str
    # True when no upload happened for this call (URL or content already known)
    cached: bool


def filename_from_url(url: str, fallback: str = "image.jpg") -> str:
    name = PurePosixPath(urlparse(url).path).name
    return name or fallback


def upload_filename(url: str, image_hash: str) -> str:
    """
    Stored name for an upload: "<stem>-<hash prefix><ext>". Different bytes
    sharing a basename (a/cover.jpg, b/cover.jpg) never share a destination.
    """
    name = PurePosixPath(filename_from_url(url))
    suffix = name.suffix.lower() or ".jpg"
    return f"{name.stem}-{image_hash[:12]}{suffix}"


class ImageResolver:
    """
    Turns a source image reference into its destination URL.

    The cache is consulted before any network access. Concurrent resolutions
    of the same URL share one in-flight task, so a URL is uploaded at most
    once per run. Identical bytes arriving under different URLs are caught by
    the hash index and reuse the first upload.
    """

    def __init__(
            self,
            cache: ImageCache,
            provider: Optional[UploadProvider],
            settings: Settings,
            dry_run: bool = False,
            skip_images: bool = False,
            concurrency: int = 5,
            client: Optional[httpx.AsyncClient] = None,
    ):
        self.cache = cache
        self.provider = provider
        self.settings = settings
        self.dry_run = dry_run
        self.skip_images = skip_images
        self.retries = max(1, settings.image_download_retries)
        self.retry_delay = 1.0
        self._semaphore = asyncio.Semaphore(max(1, concurrency))
        self._inflight: Dict[str, asyncio.Future] = {}
        self._client = client
        self._owns_client = client is None

        self.downloaded = 0
        self.uploaded = 0

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self.settings.image_download_timeout,
                follow_redirects=True,
                headers={"User-Agent": USER_AGENT},
            )
        return self._client

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def resolve(self, source: str, folder: str = "general") -> ResolvedImage:
        if self.skip_images:
            return ResolvedImage(source=source, url=source, cached=False)

        cached_url = self.cache.get_cached_url(source)
        if cached_url is not None:
            logger.debug(f"Image cache hit: {source}")
            return ResolvedImage(source=source, url=cached_url, cached=True)

        # No await between the lookup above and the registration below:
        # the first caller owns the work, everyone else waits on it.
        pending = self._inflight.get(source)
        if pending is not None:
            url = await asyncio.shield(pending)
            return ResolvedImage(source=source, url=url, cached=True)

        future = asyncio.get_running_loop().create_future()
        self._inflight[source] = future
        try:
            resolved = await self._fetch_and_store(source, folder)
        except asyncio.CancelledError:
            future.cancel()
            raise
        except Exception as e:
            future.set_exception(e)
            # Mark retrieved, nobody may be waiting on it
            future.exception()
            raise
        else:
            future.set_result(resolved.url)
            return resolved
        finally:
            self._inflight.pop(source, None)

    async def _fetch_and_store(self, source: str, folder: str) -> ResolvedImage:
        async with self._semaphore:
            data = await self.fetch(source)
            self.downloaded += 1

            image_hash = self.cache.get_image_hash(data)
            known = self.cache.get_cached_by_hash(image_hash)
            if known is not None:
                logger.debug(f"Duplicate image content for {source}, reusing {known}")
                if not self.dry_run:
                    self.cache.cache_image(source, known, image_hash)
                return ResolvedImage(source=source, url=known, cached=True)

            if self.dry_run:
                logger.debug(f"[dry-run] Would upload {source} ({len(data)} bytes) to {folder}")
                return ResolvedImage(source=source, url=source, cached=False)

            if self.provider is None:
                raise UpstreamIOError(f"No upload provider configured for {source}")

            result = await self.provider.upload(
                data,
                UploadOptions(folder=folder, filename=upload_filename(source, image_hash)),
            )
            if not result.success:
                raise UpstreamIOError(f"Upload failed for {source}: {result.error}")

            self.uploaded += 1
            self.cache.cache_image(source, result.url, image_hash)
            logger.debug(f"Uploaded {source} -> {result.url}")
            return ResolvedImage(source=source, url=result.url, cached=False)

    async def fetch(self, source: str) -> bytes:
        """Read image bytes from a remote URL or from the public directory"""
        if is_absolute_url(source):
            if source.lower().startswith("data:"):
                raise UpstreamIOError("data: URLs are stored inline, not downloaded")
            return await self._download(source)
        return self._read_local(source)

    def _read_local(self, source: str) -> bytes:
        public_dir = Path(self.settings.public_dir).resolve()
        path = (public_dir / source.lstrip("/")).resolve()
        if public_dir not in path.parents:
            raise UpstreamIOError(f"Refusing to read outside the public directory: {source}")
        try:
            return path.read_bytes()
        except OSError as e:
            raise UpstreamIOError(f"Cannot read local image {source}: {e}") from e

    async def _download(self, url: str) -> bytes:
        last_error: Optional[Exception] = None

        for attempt in range(1, self.retries + 1):
            try:
                response = await self.client.get(url)
                if response.status_code in RETRYABLE_STATUS:
                    raise httpx.HTTPStatusError(
                        f"HTTP {response.status_code}", request=response.request, response=response
                    )
                response.raise_for_status()
                if not response.content:
                    raise UpstreamIOError(f"Empty response body from {url}")
                return response.content

            except httpx.HTTPStatusError as e:
                last_error = e
                if e.response.status_code not in RETRYABLE_STATUS:
                    break
            except httpx.TransportError as e:
                last_error = e

            if attempt < self.retries:
                delay = self.retry_delay * attempt
                logger.warning(f"Download attempt {attempt} failed for {url}: {last_error}. Retrying in {delay:.1f}s")
                await asyncio.sleep(delay)

        raise UpstreamIOError(f"Download failed for {url}: {last_error}")
