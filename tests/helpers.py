import asyncio
import json
from pathlib import Path
from typing import List, Optional

from comicseed.config import Settings
from comicseed.services.upload.base import UploadOptions, UploadProvider, UploadResult


def write_json(path: Path, data) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


def write_image(settings: Settings, name: str, content: bytes) -> str:
    """Puts an image under public/images and returns its public reference"""
    target = Path(settings.public_dir) / "images" / name
    target.write_bytes(content)
    return f"/images/{name}"


class RecordingProvider(UploadProvider):
    """Keeps uploads in memory. Optional delay lets concurrent callers overlap."""

    name = "recording"

    def __init__(self, delay: float = 0.0, fail_for: Optional[List[bytes]] = None):
        self.delay = delay
        self.fail_for = fail_for or []
        self.uploads: List[UploadOptions] = []
        self.closed = False

    async def upload(self, data: bytes, options: Optional[UploadOptions] = None) -> UploadResult:
        options = options or UploadOptions()
        if self.delay:
            await asyncio.sleep(self.delay)
        if data in self.fail_for:
            return UploadResult(success=False, error="rejected")
        self.uploads.append(options)
        public_id = f"{options.folder}/{len(self.uploads)}-{options.filename}"
        return UploadResult(success=True, url=self.get_url(public_id), public_id=public_id, size=len(data))

    async def delete(self, public_id: str) -> bool:
        return True

    def get_url(self, public_id: str) -> str:
        return f"https://cdn.test/{public_id}"

    async def aclose(self) -> None:
        self.closed = True
