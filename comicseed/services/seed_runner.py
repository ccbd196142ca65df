import logging
import time
from typing import Callable, Optional

from sqlalchemy.orm import Session

from comicseed.config import Settings, settings as default_settings
from comicseed.core.seed_config import SeedConfig
from comicseed.schemas.summary import SeedSummary
from comicseed.services.file_loader import FileLoader
from comicseed.services.image_cache import ImageCache
from comicseed.services.image_resolver import ImageResolver
from comicseed.services.repository import SeedRepository
from comicseed.services.seeders import ChapterSeeder, ComicSeeder, SeedContext, UserSeeder
from comicseed.services.status import SeedStatusWriter
from comicseed.services.upload import UploadProvider, get_upload_provider

logger = logging.getLogger(__name__)

# Lives as long as the process, so repeated run_seed calls share resolved images
default_image_cache = ImageCache()


class SeedOrchestrator:
    """
    Runs the enabled seeders strictly in order: users, comics, chapters.
    Chapters need their comics committed first, so phases never overlap.
    """

    def __init__(
            self,
            settings: Settings,
            config: SeedConfig,
            session_factory: Callable[[], Session],
            provider: Optional[UploadProvider] = None,
            cache: Optional[ImageCache] = None,
            status: Optional[SeedStatusWriter] = None,
    ):
        self.settings = settings
        self.config = config
        self.session_factory = session_factory
        self.provider = provider
        self._owns_provider = provider is None
        self.cache = cache if cache is not None else ImageCache()
        self.status = status

    def _write_status(self, step: str, **detail) -> None:
        if self.status:
            self.status.write(step, **detail)

    async def run(self) -> SeedSummary:
        start_time = time.time()
        summary = SeedSummary(dry_run=self.config.dry_run)

        self._write_status("starting", mode=self.config.mode, dryRun=self.config.dry_run)

        provider = None
        db = self.session_factory()
        try:
            repository = SeedRepository(db)

            if self.config.mode != "clear":
                # Misconfiguration must abort before a reset deletes anything
                provider = self._build_provider()

            if self.config.mode in ("clear", "reset"):
                self._clear(repository)
                if self.config.mode == "clear":
                    summary.message = "Database cleared"
                    summary.duration = round(time.time() - start_time, 2)
                    self._write_status("complete", summary=summary.to_dict())
                    return summary

            await self._seed(repository, summary, provider)

        except Exception as e:
            self._write_status("failed", error=str(e))
            raise
        finally:
            if provider is not None and self._owns_provider:
                await provider.aclose()
            db.close()

        summary.duration = round(time.time() - start_time, 2)
        summary.message = self._message(summary)
        self._write_status("complete", summary=summary.to_dict())

        logger.info(f"{summary.message} in {summary.duration}s")
        return summary

    def _clear(self, repository: SeedRepository) -> None:
        if self.config.dry_run:
            logger.info("[dry-run] Would clear all seeded tables")
            return

        logger.warning("Clearing all seeded tables")
        deleted = repository.clear_all()
        self.cache.clear_cache()
        for table, count in deleted.items():
            logger.info(f"  Deleted {count} rows from {table}")

    def _build_provider(self) -> Optional[UploadProvider]:
        if self.provider is not None:
            return self.provider
        if self.config.dry_run or self.config.skip_images:
            return None
        return get_upload_provider(self.settings)

    async def _seed(self, repository: SeedRepository, summary: SeedSummary,
                    provider: Optional[UploadProvider]) -> None:
        resolver = ImageResolver(
            self.cache,
            provider,
            self.settings,
            dry_run=self.config.dry_run,
            skip_images=self.config.skip_images,
            concurrency=self.config.image_concurrency,
        )

        context = SeedContext(
            settings=self.settings,
            config=self.config,
            repository=repository,
            resolver=resolver,
            loader=FileLoader(self.settings.data_dir),
            status=self.status,
        )

        if self.config.dry_run:
            logger.info("[dry-run] Nothing will be written")

        try:
            if self.config.seed_users:
                logger.info("Seeding users...")
                self._write_status("users")
                summary.users = await UserSeeder(context).seed(self.settings.users_sources)

            if self.config.seed_comics:
                logger.info("Seeding comics...")
                self._write_status("comics")
                summary.comics = await ComicSeeder(context).seed(self.settings.comics_sources)

            if self.config.seed_chapters:
                logger.info("Seeding chapters...")
                self._write_status("chapters")
                summary.chapters = await ChapterSeeder(context).seed(self.settings.chapters_sources)
        finally:
            await resolver.aclose()

        stats = self.cache.get_cache_stats()
        logger.info(f"Images: {resolver.downloaded} fetched, {resolver.uploaded} uploaded. "
                    f"Cache: {stats.url_cache_size} urls, {stats.hash_cache_size} hashes, "
                    f"hit rate {stats.hit_rate:.1f}%")

    @staticmethod
    def _message(summary: SeedSummary) -> str:
        prefix = "[dry-run] " if summary.dry_run else ""
        parts = [
            f"users {summary.users.created}/{summary.users.updated}/{summary.users.skipped}",
            f"comics {summary.comics.created}/{summary.comics.updated}/{summary.comics.skipped}",
            f"chapters {summary.chapters.created}/{summary.chapters.updated}/{summary.chapters.skipped}",
        ]
        errors = summary.total_errors
        outcome = "Seed completed" if errors == 0 else f"Seed completed with {errors} errors"
        return f"{prefix}{outcome} (created/updated/skipped: {', '.join(parts)})"


async def run_seed(
        config: SeedConfig,
        settings: Optional[Settings] = None,
        session_factory: Optional[Callable[[], Session]] = None,
        provider: Optional[UploadProvider] = None,
        cache: Optional[ImageCache] = None,
) -> SeedSummary:
    """
    Programmatic entry point. Only ConfigurationError escapes; every per-record
    failure is counted in the returned summary.

    Without an explicit cache, calls share the process-wide default_image_cache.
    """
    settings = settings or default_settings
    if cache is None:
        cache = default_image_cache
    if session_factory is None:
        from comicseed.database import SessionLocal
        session_factory = SessionLocal

    orchestrator = SeedOrchestrator(
        settings,
        config,
        session_factory,
        provider=provider,
        cache=cache,
        status=SeedStatusWriter(settings.status_file),
    )
    return await orchestrator.run()
