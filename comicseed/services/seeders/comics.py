import logging
from dataclasses import dataclass
from typing import List, Optional

from comicseed.models import Comic
from comicseed.schemas.seed import ComicSeed
from comicseed.services.seeders.base import BaseSeeder

logger = logging.getLogger(__name__)

DEFAULT_TYPE = "Manga"
# Source data uses "_" for unknown credits
UNKNOWN_CREDIT = "_"


@dataclass
class ComicImages:
    cover: str
    gallery: List[str]


class ComicSeeder(BaseSeeder[ComicSeed]):
    entity = "comic"
    label = "comics"

    def record_key(self, record: ComicSeed) -> str:
        return record.slug

    def image_folder(self, record: ComicSeed) -> str:
        return f"comics/covers/{record.slug}"

    async def prepare(self, record: ComicSeed) -> ComicImages:
        sources = [img.url for img in record.images]
        if record.cover_image and record.cover_image not in sources:
            sources.append(record.cover_image)

        resolved = {}
        for source, image, error in await self.resolve_images(sources, self.image_folder(record)):
            if error is not None:
                logger.warning(f"Image {source} for comic {record.slug} skipped: {error}")
                continue
            resolved[source] = image.url

        gallery = [resolved[img.url] for img in record.images if img.url in resolved]

        # Cover: first gallery image, then the explicit cover, then the placeholder
        if gallery:
            cover = gallery[0]
        elif record.cover_image and record.cover_image in resolved:
            cover = resolved[record.cover_image]
        else:
            cover = self.settings.fallback_comic_image

        return ComicImages(cover=cover, gallery=gallery)

    def find_existing(self, record: ComicSeed, prepared) -> Optional[Comic]:
        return self.repository.get_comic_by_slug(record.slug)

    def on_planned_create(self, record: ComicSeed) -> None:
        self.context.planned_comics.add(record.slug)

    def _fields(self, record: ComicSeed, images: ComicImages) -> dict:
        type_name = record.type.name if record.type else DEFAULT_TYPE
        author_name = record.author.name if record.author else UNKNOWN_CREDIT
        artist_name = record.artist.name if record.artist else UNKNOWN_CREDIT

        fields = {
            "title": record.title,
            "slug": record.slug,
            "description": record.description,
            "url": record.url,
            "cover_image": images.cover,
            "rating": record.rating,
            "status": record.status,
            "serialization": record.serialization,
            "type": self.repository.get_or_create_type(type_name),
            "author": self.repository.get_or_create_author(author_name),
            "artist": self.repository.get_or_create_artist(artist_name),
        }
        if record.updated_at:
            fields["updated_at"] = record.updated_at
        return fields

    def create(self, record: ComicSeed, prepared: ComicImages) -> None:
        genres = self.repository.get_or_create_genres(g.name for g in record.genres)
        self.repository.create_comic(genres, prepared.gallery, **self._fields(record, prepared))

    def update(self, existing: Comic, record: ComicSeed, prepared: ComicImages) -> None:
        genres = self.repository.get_or_create_genres(g.name for g in record.genres)
        self.repository.update_comic(existing, genres, prepared.gallery, **self._fields(record, prepared))
