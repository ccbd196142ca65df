import hashlib
import logging
from pathlib import Path
from typing import Optional

from comicseed.services.upload.base import UploadOptions, UploadProvider, UploadResult

logger = logging.getLogger(__name__)


class LocalProvider(UploadProvider):
    """Stores images under <public_dir>/uploads and serves them as /uploads/..."""

    name = "local"

    def __init__(self, public_dir: Path, public_path: str = "/uploads"):
        self.upload_dir = Path(public_dir) / public_path.strip("/")
        self.public_path = "/" + public_path.strip("/")

    async def upload(self, data: bytes, options: Optional[UploadOptions] = None) -> UploadResult:
        options = options or UploadOptions()

        if not isinstance(data, (bytes, bytearray)):
            return UploadResult(success=False, error="Invalid file type. Must be bytes.")

        filename = options.filename or hashlib.sha256(data).hexdigest()[:32]
        if not Path(filename).suffix:
            filename = f"{filename}.jpg"

        folder = (options.folder or "general").strip("/")
        target_dir = self.upload_dir / folder

        try:
            target_dir.mkdir(parents=True, exist_ok=True)
            target = target_dir / filename
            target.write_bytes(data)
        except OSError as e:
            return UploadResult(success=False, error=str(e))

        public_id = f"{folder}/{filename}"
        logger.debug(f"Stored {len(data)} bytes at {target}")

        return UploadResult(
            success=True,
            url=self.get_url(public_id),
            public_id=public_id,
            size=len(data),
            format=Path(filename).suffix.lstrip("."),
        )

    async def delete(self, public_id: str) -> bool:
        try:
            (self.upload_dir / public_id).unlink()
            return True
        except OSError as e:
            logger.warning(f"Local delete failed for {public_id}: {e}")
            return False

    def get_url(self, public_id: str) -> str:
        return f"{self.public_path}/{public_id}"
