import logging
import time
from typing import Optional

import httpx

from comicseed.core.errors import ConfigurationError
from comicseed.services.upload.base import HttpUploadProvider, UploadOptions, UploadResult

logger = logging.getLogger(__name__)

UPLOAD_URL = "https://upload.imagekit.io/api/v1/files/upload"
FILES_URL = "https://api.imagekit.io/v1/files"

MAX_UPLOAD_BYTES = 25 * 1024 * 1024  # ImageKit limit


class ImageKitProvider(HttpUploadProvider):
    name = "imagekit"

    def __init__(self, public_key: str, private_key: str, url_endpoint: str,
                 client: Optional[httpx.AsyncClient] = None):
        if not (public_key and private_key and url_endpoint):
            raise ConfigurationError(
                "ImageKit configuration missing. Set IMAGEKIT_PUBLIC_KEY, "
                "IMAGEKIT_PRIVATE_KEY and IMAGEKIT_URL_ENDPOINT."
            )
        super().__init__(client)
        self.public_key = public_key
        self.private_key = private_key
        self.url_endpoint = url_endpoint.rstrip("/")

    async def upload(self, data: bytes, options: Optional[UploadOptions] = None) -> UploadResult:
        options = options or UploadOptions()

        if len(data) > MAX_UPLOAD_BYTES:
            return UploadResult(
                success=False,
                size=len(data),
                error=f"File too large: {len(data) / 1024 / 1024:.2f}MB (max {MAX_UPLOAD_BYTES // 1024 // 1024}MB)",
            )

        form = {
            "fileName": options.filename or f"image-{int(time.time() * 1000)}",
            "folder": "/" + (options.folder or "comicwise").strip("/"),
            "useUniqueFileName": "false" if options.filename else "true",
        }
        if options.tags:
            form["tags"] = ",".join(options.tags)

        try:
            response = await self.client.post(
                UPLOAD_URL,
                data=form,
                files={"file": (form["fileName"], data)},
                auth=(self.private_key, ""),
            )
            response.raise_for_status()
            body = response.json()
        except httpx.TimeoutException:
            return UploadResult(success=False, error="Upload timeout - image may be too large or network is slow")
        except httpx.HTTPStatusError as e:
            if e.response.status_code == 401:
                return UploadResult(success=False, error="ImageKit authentication failed - check API keys")
            return UploadResult(success=False, error=f"ImageKit upload failed: HTTP {e.response.status_code}")
        except httpx.HTTPError as e:
            return UploadResult(success=False, error=f"ImageKit upload failed: {e}")

        return UploadResult(
            success=True,
            url=body.get("url", ""),
            public_id=body.get("fileId", ""),
            size=body.get("size", len(data)),
            format=body.get("fileType", ""),
            width=body.get("width"),
            height=body.get("height"),
        )

    async def delete(self, public_id: str) -> bool:
        try:
            response = await self.client.delete(f"{FILES_URL}/{public_id}", auth=(self.private_key, ""))
            response.raise_for_status()
            return True
        except httpx.HTTPError as e:
            logger.warning(f"ImageKit delete failed for {public_id}: {e}")
            return False

    def get_url(self, public_id: str) -> str:
        # Expects the file path (e.g. "/comicwise/cover.jpg"), not the fileId
        return f"{self.url_endpoint}/{public_id.lstrip('/')}"
