import hashlib
import logging
import time
from pathlib import Path
from typing import Dict, Optional

import httpx

from comicseed.core.errors import ConfigurationError
from comicseed.services.upload.base import HttpUploadProvider, UploadOptions, UploadResult

logger = logging.getLogger(__name__)

API_BASE = "https://api.cloudinary.com/v1_1"


def sign_params(params: Dict[str, str], api_secret: str) -> str:
    """Cloudinary signature: sha1 of the sorted key=value pairs followed by the secret"""
    to_sign = "&".join(f"{k}={params[k]}" for k in sorted(params) if params[k] not in (None, ""))
    return hashlib.sha1(f"{to_sign}{api_secret}".encode("utf-8")).hexdigest()


class CloudinaryProvider(HttpUploadProvider):
    name = "cloudinary"

    def __init__(self, cloud_name: str, api_key: str, api_secret: str,
                 client: Optional[httpx.AsyncClient] = None):
        if not (cloud_name and api_key and api_secret):
            raise ConfigurationError(
                "Cloudinary configuration missing. Set CLOUDINARY_CLOUD_NAME, "
                "CLOUDINARY_API_KEY and CLOUDINARY_API_SECRET."
            )
        super().__init__(client)
        self.cloud_name = cloud_name
        self.api_key = api_key
        self.api_secret = api_secret

    def _signed(self, params: Dict[str, str]) -> Dict[str, str]:
        params = {k: v for k, v in params.items() if v not in (None, "")}
        params["timestamp"] = str(int(time.time()))
        params["signature"] = sign_params(params, self.api_secret)
        params["api_key"] = self.api_key
        return params

    async def upload(self, data: bytes, options: Optional[UploadOptions] = None) -> UploadResult:
        options = options or UploadOptions()
        public_id = Path(options.filename).stem if options.filename else None

        params = self._signed({
            "folder": options.folder,
            "public_id": public_id,
            "tags": ",".join(options.tags) if options.tags else None,
        })

        try:
            response = await self.client.post(
                f"{API_BASE}/{self.cloud_name}/image/upload",
                data=params,
                files={"file": (options.filename or "image", data)},
            )
            response.raise_for_status()
            body = response.json()
        except httpx.HTTPError as e:
            logger.warning(f"Cloudinary upload failed: {e}")
            return UploadResult(success=False, error=f"Cloudinary upload failed: {e}")

        return UploadResult(
            success=True,
            url=body.get("secure_url") or body.get("url", ""),
            public_id=body.get("public_id", ""),
            size=body.get("bytes", len(data)),
            format=body.get("format", ""),
            width=body.get("width"),
            height=body.get("height"),
        )

    async def delete(self, public_id: str) -> bool:
        try:
            response = await self.client.post(
                f"{API_BASE}/{self.cloud_name}/image/destroy",
                data=self._signed({"public_id": public_id}),
            )
            response.raise_for_status()
            return response.json().get("result") == "ok"
        except httpx.HTTPError as e:
            logger.warning(f"Cloudinary delete failed for {public_id}: {e}")
            return False

    def get_url(self, public_id: str) -> str:
        return f"https://res.cloudinary.com/{self.cloud_name}/image/upload/{public_id}"
