from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import List, Optional

import httpx


@dataclass
class UploadOptions:
    # Folder path in storage (e.g. "comics/covers/solo-leveling")
    folder: Optional[str] = None
    # File name, with or without extension
    filename: Optional[str] = None
    tags: List[str] = field(default_factory=list)


@dataclass
class UploadResult:
    success: bool
    url: str = ""
    public_id: str = ""
    size: int = 0
    format: str = ""
    width: Optional[int] = None
    height: Optional[int] = None
    error: Optional[str] = None


class UploadProvider(ABC):
    """A storage backend for seeded images"""

    name: str = "base"

    @abstractmethod
    async def upload(self, data: bytes, options: Optional[UploadOptions] = None) -> UploadResult:
        ...

    @abstractmethod
    async def delete(self, public_id: str) -> bool:
        ...

    @abstractmethod
    def get_url(self, public_id: str) -> str:
        ...

    async def aclose(self) -> None:
        return None


class HttpUploadProvider(UploadProvider):
    """Shared httpx client handling for the remote providers"""

    upload_timeout: float = 60.0

    def __init__(self, client: Optional[httpx.AsyncClient] = None):
        self._client = client
        self._owns_client = client is None

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.upload_timeout)
        return self._client

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None
