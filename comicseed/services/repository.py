import logging
from typing import Dict, Iterable, List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from comicseed.core.utils import slugify
from comicseed.models import (
    Artist,
    Author,
    Chapter,
    ChapterImage,
    Comic,
    ComicImage,
    ComicType,
    Genre,
    User,
    comic_genres,
)

logger = logging.getLogger(__name__)


class SeedRepository:
    """Database reads and writes used by the seeders, with per-run lookup caches"""

    def __init__(self, db: Session):
        self.db = db
        # Cache to store objects by name to avoid DB lookups
        self.author_cache: Dict[str, Author] = {}
        self.artist_cache: Dict[str, Artist] = {}
        self.type_cache: Dict[str, ComicType] = {}
        self.genre_cache: Dict[str, Genre] = {}

    # ==========================================
    # TRANSACTIONS
    # ==========================================

    def commit(self):
        self.db.commit()

    def rollback(self):
        self.db.rollback()
        # Rows created since the last commit are gone, so are their cache entries
        self._clear_caches()

    def _clear_caches(self):
        self.author_cache.clear()
        self.artist_cache.clear()
        self.type_cache.clear()
        self.genre_cache.clear()

    # ==========================================
    # USERS
    # ==========================================

    def get_user_by_email(self, email: str) -> Optional[User]:
        return self.db.query(User).filter(func.lower(User.email) == email.lower()).first()

    def create_user(self, **fields) -> User:
        user = User(**fields)
        self.db.add(user)
        self.db.flush()
        return user

    def update_user(self, user: User, **fields) -> User:
        for key, value in fields.items():
            setattr(user, key, value)
        self.db.flush()
        return user

    # ==========================================
    # METADATA (get or create)
    # ==========================================

    def get_or_create_author(self, name: str) -> Optional[Author]:
        return self._get_or_create_named(Author, self.author_cache, name)

    def get_or_create_artist(self, name: str) -> Optional[Artist]:
        return self._get_or_create_named(Artist, self.artist_cache, name)

    def get_or_create_type(self, name: str) -> Optional[ComicType]:
        return self._get_or_create_named(ComicType, self.type_cache, name)

    def _get_or_create_named(self, model, cache: Dict, name: str):
        name = (name or "").strip()
        if not name:
            return None

        # 1. Check Cache
        if name in cache:
            return cache[name]

        # 2. Check DB
        obj = self.db.query(model).filter(model.name == name).first()

        if not obj:
            # 3. Create (Flush only)
            obj = model(name=name)
            self.db.add(obj)
            self.db.flush()
            logger.debug(f"Created {model.__name__}: {name}")

        # 4. Update Cache
        cache[name] = obj
        return obj

    def get_or_create_genre(self, name: str) -> Optional[Genre]:
        name = (name or "").strip()
        slug = slugify(name)
        if not slug:
            return None

        if slug in self.genre_cache:
            return self.genre_cache[slug]

        genre = self.db.query(Genre).filter(Genre.slug == slug).first()
        if not genre:
            genre = Genre(name=name, slug=slug)
            self.db.add(genre)
            self.db.flush()
            logger.debug(f"Created Genre: {name}")

        self.genre_cache[slug] = genre
        return genre

    def get_or_create_genres(self, names: Iterable[str]) -> List[Genre]:
        unique_names = list(dict.fromkeys(n.strip() for n in names if n and n.strip()))
        genres = [self.get_or_create_genre(n) for n in unique_names]
        # Different spellings can share a slug
        return list({g.id: g for g in genres if g}.values())

    # ==========================================
    # COMICS
    # ==========================================

    def get_comic_by_slug(self, slug: str) -> Optional[Comic]:
        return self.db.query(Comic).filter(Comic.slug == slug).first()

    def create_comic(self, genres: List[Genre], image_urls: List[str], **fields) -> Comic:
        comic = Comic(**fields)
        comic.genres = list(genres)
        comic.images = [ComicImage(image_url=url, image_order=i + 1) for i, url in enumerate(image_urls)]
        self.db.add(comic)
        self.db.flush()
        return comic

    def update_comic(self, comic: Comic, genres: List[Genre], image_urls: List[str], **fields) -> Comic:
        for key, value in fields.items():
            setattr(comic, key, value)
        comic.genres = list(genres)
        comic.images = [ComicImage(image_url=url, image_order=i + 1) for i, url in enumerate(image_urls)]
        self.db.flush()
        return comic

    # ==========================================
    # CHAPTERS
    # ==========================================

    def get_chapter(self, comic_id: int, chapter_number: int) -> Optional[Chapter]:
        return (
            self.db.query(Chapter)
            .filter(Chapter.comic_id == comic_id, Chapter.chapter_number == chapter_number)
            .first()
        )

    def create_chapter(self, image_urls: List[str], **fields) -> Chapter:
        chapter = Chapter(**fields)
        chapter.images = [ChapterImage(image_url=url, page_number=i + 1) for i, url in enumerate(image_urls)]
        self.db.add(chapter)
        self.db.flush()
        return chapter

    def update_chapter(self, chapter: Chapter, image_urls: List[str], **fields) -> Chapter:
        for key, value in fields.items():
            setattr(chapter, key, value)
        chapter.images = [ChapterImage(image_url=url, page_number=i + 1) for i, url in enumerate(image_urls)]
        self.db.flush()
        return chapter

    # ==========================================
    # CLEAR
    # ==========================================

    def clear_all(self) -> Dict[str, int]:
        """Delete every seeded row, children first. Returns deleted counts per table."""
        deleted: Dict[str, int] = {}

        deleted["chapter_images"] = self.db.query(ChapterImage).delete(synchronize_session=False)
        deleted["chapters"] = self.db.query(Chapter).delete(synchronize_session=False)
        deleted["comic_images"] = self.db.query(ComicImage).delete(synchronize_session=False)

        self.db.execute(comic_genres.delete())

        deleted["comics"] = self.db.query(Comic).delete(synchronize_session=False)
        deleted["genres"] = self.db.query(Genre).delete(synchronize_session=False)
        deleted["types"] = self.db.query(ComicType).delete(synchronize_session=False)
        deleted["artists"] = self.db.query(Artist).delete(synchronize_session=False)
        deleted["authors"] = self.db.query(Author).delete(synchronize_session=False)
        deleted["users"] = self.db.query(User).delete(synchronize_session=False)

        self.db.commit()
        self._clear_caches()
        return deleted
