import hashlib
from dataclasses import dataclass, asdict
from typing import Dict, Optional


@dataclass(frozen=True)
class CacheStats:
    url_cache_size: int
    hash_cache_size: int
    cache_hits: int
    cache_misses: int
    hit_rate: float  # percentage

    def to_dict(self) -> dict:
        return asdict(self)


class ImageCache:
    """
    In-memory two level lookup for resolved images.

    - url index:  original source URL -> destination URL
    - hash index: SHA-256 of the image bytes -> destination URL

    One instance lives for one seed run and is shared by every image
    resolution in that run. Nothing is ever evicted; clear_cache() wipes it.
    """

    def __init__(self):
        self._url_cache: Dict[str, str] = {}
        self._hash_cache: Dict[str, str] = {}
        self.cache_hits = 0
        self.cache_misses = 0

    @staticmethod
    def get_image_hash(data: bytes) -> str:
        return hashlib.sha256(data).hexdigest()

    def is_cached(self, url: str) -> bool:
        return url in self._url_cache

    def get_cached_url(self, url: str) -> Optional[str]:
        cached = self._url_cache.get(url)
        if cached is not None:
            self.cache_hits += 1
        else:
            self.cache_misses += 1
        return cached

    def get_cached_by_hash(self, image_hash: str) -> Optional[str]:
        cached = self._hash_cache.get(image_hash)
        if cached is not None:
            self.cache_hits += 1
        return cached

    def has_hash(self, image_hash: str) -> bool:
        return image_hash in self._hash_cache

    def cache_image(self, original_url: str, uploaded_url: str, image_hash: Optional[str] = None) -> None:
        self._url_cache[original_url] = uploaded_url
        if image_hash:
            self._hash_cache[image_hash] = uploaded_url

    def clear_cache(self) -> None:
        self._url_cache.clear()
        self._hash_cache.clear()
        self.cache_hits = 0
        self.cache_misses = 0

    # Test/teardown alias
    reset = clear_cache

    def get_cache_stats(self) -> CacheStats:
        lookups = self.cache_hits + self.cache_misses
        return CacheStats(
            url_cache_size=len(self._url_cache),
            hash_cache_size=len(self._hash_cache),
            cache_hits=self.cache_hits,
            cache_misses=self.cache_misses,
            hit_rate=(self.cache_hits / lookups) * 100 if lookups else 0.0,
        )

    def export_cache(self) -> dict:
        """Snapshot for debugging"""
        return {
            "url_cache": dict(self._url_cache),
            "hash_cache": dict(self._hash_cache),
            "stats": self.get_cache_stats().to_dict(),
        }
