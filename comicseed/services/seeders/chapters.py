import logging
from typing import List, Optional

from comicseed.core.errors import UpstreamIOError
from comicseed.models import Chapter, Comic
from comicseed.schemas.seed import ChapterSeed
from comicseed.services.seeders.base import BaseSeeder

logger = logging.getLogger(__name__)


class MissingComicError(LookupError):
    """Chapter references a comic slug that is not in the database"""


class ChapterSeeder(BaseSeeder[ChapterSeed]):
    entity = "chapter"
    label = "chapters"

    def record_key(self, record: ChapterSeed) -> str:
        return f"{record.comic.slug}#{record.chapter_number}"

    def image_folder(self, record: ChapterSeed) -> str:
        return f"chapters/{record.comic.slug}/{record.chapter_number}"

    def _parent(self, record: ChapterSeed) -> Optional[Comic]:
        comic = self.repository.get_comic_by_slug(record.comic.slug)
        if comic is None and record.comic.slug not in self.context.planned_comics:
            raise MissingComicError(f"Comic not found: {record.comic.slug}")
        return comic

    async def prepare(self, record: ChapterSeed) -> List[str]:
        # Fail fast before downloading pages for an orphan chapter
        self._parent(record)

        urls = []
        for source, image, error in await self.resolve_images([img.url for img in record.images],
                                                              self.image_folder(record)):
            if error is not None:
                raise UpstreamIOError(f"Page image {source} failed: {error}") from error
            urls.append(image.url)
        return urls

    def find_existing(self, record: ChapterSeed, prepared) -> Optional[Chapter]:
        comic = self._parent(record)
        if comic is None:
            # Parent exists only in a dry run plan
            return None
        return self.repository.get_chapter(comic.id, record.chapter_number)

    def _fields(self, record: ChapterSeed) -> dict:
        fields = {
            "title": record.title,
            "chapter_number": record.chapter_number,
            "slug": f"chapter-{record.chapter_number}",
            "url": record.url,
            "views": record.views,
            "release_date": record.release_date,
        }
        if record.updated_at:
            fields["updated_at"] = record.updated_at
        return fields

    def create(self, record: ChapterSeed, prepared: List[str]) -> None:
        comic = self._parent(record)
        self.repository.create_chapter(prepared, comic_id=comic.id, **self._fields(record))

    def update(self, existing: Chapter, record: ChapterSeed, prepared: List[str]) -> None:
        self.repository.update_chapter(existing, prepared, **self._fields(record))
